"""Application configuration using pydantic-settings."""

from __future__ import annotations

from enum import Enum
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings


class Environment(str, Enum):
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"
    TESTING = "testing"


class CloudSettings(BaseSettings):
    """Control-plane connection and deployment defaults."""

    subscription_id: str = Field(default="", alias="AZURE_SUBSCRIPTION_ID")
    default_resource_group: str | None = Field(default=None, alias="AZURE_DEFAULT_RESOURCE_GROUP")
    default_region: str = Field(default="eastus", alias="AZURE_DEFAULT_LOCATION")
    arm_endpoint: str = Field(default="https://management.azure.com", alias="AZURE_ARM_ENDPOINT")
    portal_base_url: str = Field(default="https://portal.azure.com", alias="AZURE_PORTAL_URL")
    access_token: str = Field(default="", alias="AZURE_ACCESS_TOKEN")
    request_timeout: float = Field(default=30.0, alias="AZURE_REQUEST_TIMEOUT")

    model_config = {"env_prefix": "AZURE_", "extra": "ignore", "populate_by_name": True}


class OrchestrationSettings(BaseSettings):
    """Deployment status polling configuration."""

    status_poll_interval_seconds: float = Field(default=5.0, alias="STATUS_POLL_INTERVAL")
    status_poll_timeout_seconds: float = Field(default=3600.0, alias="STATUS_POLL_TIMEOUT")

    model_config = {"env_prefix": "ORCHESTRATION_", "extra": "ignore", "populate_by_name": True}


class MonitoringSettings(BaseSettings):
    """Resource monitoring loop configuration."""

    interval_seconds: float = Field(default=30.0, alias="MONITORING_INTERVAL")
    default_period_minutes: float = Field(default=5.0, alias="MONITORING_PERIOD_MINUTES")

    model_config = {"env_prefix": "MONITORING_", "extra": "ignore", "populate_by_name": True}


class ObservabilitySettings(BaseSettings):
    """Observability configuration."""

    service_name: str = Field(default="infra-orchestrator", alias="SERVICE_NAME")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    json_logs: bool = Field(default=True, alias="JSON_LOGS")

    model_config = {"env_prefix": "OBS_", "extra": "ignore", "populate_by_name": True}


class Settings(BaseSettings):
    """Main application settings."""

    environment: Environment = Field(default=Environment.DEVELOPMENT, alias="ENVIRONMENT")
    debug: bool = Field(default=False, alias="DEBUG")

    cloud: CloudSettings = Field(default_factory=CloudSettings)
    orchestration: OrchestrationSettings = Field(default_factory=OrchestrationSettings)
    monitoring: MonitoringSettings = Field(default_factory=MonitoringSettings)
    observability: ObservabilitySettings = Field(default_factory=ObservabilitySettings)

    model_config = {"env_prefix": "", "extra": "ignore", "populate_by_name": True}


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()
