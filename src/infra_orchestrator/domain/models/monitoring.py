"""Resource monitoring domain models."""

from __future__ import annotations

from datetime import datetime, timedelta
from enum import Enum

from pydantic import BaseModel, Field

from infra_orchestrator.domain.models.base import elapsed, utc_now, ValueObject
from infra_orchestrator.domain.models.verification import VerificationIssue


class MonitoringStatus(str, Enum):
    """Overall stability classification of monitored resources."""

    STABLE = "stable"
    DEGRADED = "degraded"
    UNSTABLE = "unstable"
    UNAVAILABLE = "unavailable"
    FAILED = "failed"


def classify_availability(unavailable: int, total: int) -> MonitoringStatus:
    """Classify a cycle by the fraction of currently unavailable resources.

    0% is stable, up to and including 50% is degraded, above 50% but not all
    is unstable, and 100% is unavailable.
    """
    if total <= 0 or unavailable <= 0:
        return MonitoringStatus.STABLE
    if unavailable >= total:
        return MonitoringStatus.UNAVAILABLE
    if unavailable * 2 > total:
        return MonitoringStatus.UNSTABLE
    return MonitoringStatus.DEGRADED


class MonitoringDataPoint(ValueObject):
    """One observation of one resource."""

    resource_id: str
    timestamp: datetime = Field(default_factory=utc_now)
    status: str = "Unknown"
    metrics: dict[str, float] = Field(default_factory=dict)
    is_available: bool = False


class MonitoringResult(BaseModel):
    """Time series collected by one monitoring run."""

    deployment_id: str
    started_at: datetime = Field(default_factory=utc_now)
    ended_at: datetime | None = None
    status: MonitoringStatus = MonitoringStatus.STABLE
    data_points: list[MonitoringDataPoint] = Field(default_factory=list)
    issues: list[VerificationIssue] = Field(default_factory=list)

    @property
    def duration(self) -> timedelta:
        return elapsed(self.started_at, self.ended_at)

    @property
    def is_successful(self) -> bool:
        return self.status == MonitoringStatus.STABLE

    def data_points_for(self, resource_id: str) -> list[MonitoringDataPoint]:
        return [dp for dp in self.data_points if dp.resource_id == resource_id]

    def latest_data_points(self) -> list[MonitoringDataPoint]:
        """Most recent data point per resource, in first-seen order."""
        latest: dict[str, MonitoringDataPoint] = {}
        for point in self.data_points:
            current = latest.get(point.resource_id)
            if current is None or point.timestamp >= current.timestamp:
                latest[point.resource_id] = point
        return list(latest.values())
