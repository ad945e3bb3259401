"""Composition root wiring services from settings."""

from __future__ import annotations

import structlog

from infra_orchestrator.config import get_settings, Settings
from infra_orchestrator.domain.ports.repositories import DeploymentRegistry
from infra_orchestrator.domain.ports.services import ControlPlaneClient, EventPublisher
from infra_orchestrator.domain.services.deployment_service import DeploymentOrchestrator
from infra_orchestrator.domain.services.monitoring_service import ResourceMonitor
from infra_orchestrator.domain.services.verification_service import ResourceVerificationService
from infra_orchestrator.infrastructure.cloud.arm_client import ArmControlPlaneClient
from infra_orchestrator.infrastructure.cloud.simulated import SimulatedControlPlane
from infra_orchestrator.infrastructure.messaging.event_publisher import InMemoryEventPublisher
from infra_orchestrator.infrastructure.observability.logging import setup_logging
from infra_orchestrator.infrastructure.persistence.repositories.in_memory import (
    InMemoryDeploymentRegistry,
)
from infra_orchestrator.infrastructure.terraform.executor import TerraformCliExecutor


logger = structlog.get_logger(__name__)


def create_control_plane(settings: Settings) -> ControlPlaneClient:
    """ARM adapter when credentials are configured, otherwise the simulated control plane."""
    cloud = settings.cloud
    if cloud.subscription_id and cloud.access_token:
        return ArmControlPlaneClient(
            subscription_id=cloud.subscription_id,
            access_token=cloud.access_token,
            endpoint=cloud.arm_endpoint,
            timeout=cloud.request_timeout,
            terraform_executor=TerraformCliExecutor(),
        )

    logger.warning(
        "control_plane_simulated",
        reason="AZURE_SUBSCRIPTION_ID or AZURE_ACCESS_TOKEN not set",
    )
    if cloud.subscription_id:
        return SimulatedControlPlane(subscription_id=cloud.subscription_id)
    return SimulatedControlPlane()


class ServiceContainer:
    """Simple dependency injection container.

    Owns one control plane, registry and event publisher, and hands out the
    services built on top of them.
    """

    _instance: ServiceContainer | None = None

    def __init__(
        self,
        settings: Settings | None = None,
        control_plane: ControlPlaneClient | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._control_plane = control_plane or create_control_plane(self._settings)
        self._registry = InMemoryDeploymentRegistry()
        self._event_publisher = InMemoryEventPublisher()

        self._orchestrator: DeploymentOrchestrator | None = None
        self._verification_service: ResourceVerificationService | None = None
        self._monitor: ResourceMonitor | None = None

    @classmethod
    def get_instance(cls) -> ServiceContainer:
        """Process-wide container; configures logging on first use."""
        if cls._instance is None:
            settings = get_settings()
            setup_logging(
                settings.observability.log_level,
                service_name=settings.observability.service_name,
                json_output=settings.observability.json_logs,
            )
            cls._instance = cls(settings)
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        cls._instance = None

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def control_plane(self) -> ControlPlaneClient:
        return self._control_plane

    @property
    def registry(self) -> DeploymentRegistry:
        return self._registry

    @property
    def event_publisher(self) -> EventPublisher:
        return self._event_publisher

    @property
    def orchestrator(self) -> DeploymentOrchestrator:
        if self._orchestrator is None:
            cloud = self._settings.cloud
            orchestration = self._settings.orchestration
            self._orchestrator = DeploymentOrchestrator(
                control_plane=self._control_plane,
                registry=self._registry,
                default_resource_group=cloud.default_resource_group,
                default_region=cloud.default_region,
                event_publisher=self._event_publisher,
                portal_base_url=cloud.portal_base_url,
                poll_interval_seconds=orchestration.status_poll_interval_seconds,
                poll_timeout_seconds=orchestration.status_poll_timeout_seconds,
            )
        return self._orchestrator

    @property
    def verification_service(self) -> ResourceVerificationService:
        if self._verification_service is None:
            self._verification_service = ResourceVerificationService(
                self._control_plane,
                portal_base_url=self._settings.cloud.portal_base_url,
            )
        return self._verification_service

    @property
    def monitor(self) -> ResourceMonitor:
        if self._monitor is None:
            self._monitor = ResourceMonitor(
                self._control_plane,
                interval_seconds=self._settings.monitoring.interval_seconds,
                default_period_minutes=self._settings.monitoring.default_period_minutes,
            )
        return self._monitor


def get_service_container() -> ServiceContainer:
    return ServiceContainer.get_instance()
