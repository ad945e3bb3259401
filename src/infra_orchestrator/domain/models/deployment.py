"""Deployment record aggregate root with the lifecycle state machine."""

from __future__ import annotations

from datetime import datetime, timedelta
from enum import Enum

from pydantic import Field

import infra_orchestrator.domain.events.deployment_events as _events
from infra_orchestrator.domain.models.base import AggregateRoot, elapsed, utc_now, ValueObject


class DeploymentStatus(str, Enum):
    """Deployment lifecycle states."""

    PREPARING = "preparing"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELED = "canceled"
    UNKNOWN = "unknown"


class ScriptKind(str, Enum):
    """Infrastructure definition languages."""

    BICEP = "bicep"
    TERRAFORM = "terraform"
    POWERSHELL = "powershell"


TERMINAL_STATUSES: frozenset[DeploymentStatus] = frozenset({
    DeploymentStatus.SUCCEEDED,
    DeploymentStatus.FAILED,
    DeploymentStatus.CANCELED,
})

_ACTIVE_TARGETS = {
    DeploymentStatus.RUNNING,
    DeploymentStatus.SUCCEEDED,
    DeploymentStatus.FAILED,
    DeploymentStatus.CANCELED,
    DeploymentStatus.UNKNOWN,
}

# State machine transitions
VALID_TRANSITIONS: dict[DeploymentStatus, set[DeploymentStatus]] = {
    DeploymentStatus.PREPARING: set(_ACTIVE_TARGETS),
    DeploymentStatus.RUNNING: set(_ACTIVE_TARGETS),
    DeploymentStatus.UNKNOWN: set(_ACTIVE_TARGETS),
    DeploymentStatus.SUCCEEDED: set(),
    DeploymentStatus.FAILED: set(),
    DeploymentStatus.CANCELED: set(),
}

# Remote provisioning-state vocabulary
REMOTE_STATE_MAP: dict[str, DeploymentStatus] = {
    "succeeded": DeploymentStatus.SUCCEEDED,
    "failed": DeploymentStatus.FAILED,
    "canceled": DeploymentStatus.CANCELED,
    "running": DeploymentStatus.RUNNING,
    "accepted": DeploymentStatus.RUNNING,
}


def is_terminal_status(status: DeploymentStatus) -> bool:
    """Whether no further transitions can happen from ``status``."""
    return status in TERMINAL_STATUSES


def map_remote_state(provisioning_state: str | None) -> DeploymentStatus:
    """Map a remote provisioning state onto the local status enumeration."""
    if not provisioning_state:
        return DeploymentStatus.UNKNOWN
    return REMOTE_STATE_MAP.get(provisioning_state.strip().lower(), DeploymentStatus.UNKNOWN)


class DeployedResource(ValueObject):
    """A resource present in the target resource group after a deployment."""

    resource_id: str
    name: str
    resource_type: str
    provisioning_state: str = "Unknown"
    timestamp: datetime = Field(default_factory=utc_now)
    is_new: bool = True
    portal_url: str = ""


class DeploymentRecord(AggregateRoot):
    """One submission of an infrastructure definition, tracked to a terminal outcome.

    ``ended_at`` is set if and only if ``status`` is terminal; every mutation
    goes through the transition methods below to keep that true.
    """

    name: str
    resource_group: str
    region: str
    script_kind: ScriptKind
    status: DeploymentStatus = DeploymentStatus.PREPARING
    started_at: datetime = Field(default_factory=utc_now)
    ended_at: datetime | None = None
    resources: list[DeployedResource] = Field(default_factory=list)
    error_message: str = ""
    error_detail: str = ""
    portal_url: str = ""
    baseline_resource_ids: list[str] = Field(default_factory=list)

    def _transition_to(self, new_status: DeploymentStatus) -> None:
        """Validate and execute state transition."""
        if new_status == self.status and not self.is_terminal:
            return
        valid = VALID_TRANSITIONS.get(self.status, set())
        if new_status not in valid:
            raise InvalidStateTransitionError(
                f"Cannot transition from {self.status.value} to {new_status.value}. "
                f"Valid transitions: {sorted(s.value for s in valid)}"
            )
        self.status = new_status
        if is_terminal_status(new_status):
            self.ended_at = utc_now()
        self.touch()

    def mark_submitted(self) -> None:
        """Record that the control plane accepted the definition."""
        self._transition_to(DeploymentStatus.RUNNING)
        self.add_event(_events.DeploymentSubmitted(
            deployment_id=self.id,
            deployment_name=self.name,
            resource_group=self.resource_group,
            correlation_id=self.id,
        ))

    def mark_running(self) -> None:
        self._transition_to(DeploymentStatus.RUNNING)

    def mark_unknown(self) -> None:
        self._transition_to(DeploymentStatus.UNKNOWN)

    def succeed(self, resources: list[DeployedResource]) -> None:
        """Mark the deployment succeeded and attach the resources it produced."""
        self._transition_to(DeploymentStatus.SUCCEEDED)
        self.resources.extend(resources)
        self.add_event(_events.DeploymentSucceeded(
            deployment_id=self.id,
            resource_count=len(self.resources),
            correlation_id=self.id,
        ))

    def fail(self, error_message: str, error_detail: str = "") -> None:
        """Mark the deployment as failed."""
        self._transition_to(DeploymentStatus.FAILED)
        self.error_message = error_message
        self.error_detail = error_detail
        self.add_event(_events.DeploymentFailed(
            deployment_id=self.id,
            error_message=error_message,
            correlation_id=self.id,
        ))

    def cancel(self) -> None:
        """Cancel the deployment."""
        self._transition_to(DeploymentStatus.CANCELED)
        self.add_event(_events.DeploymentCanceled(
            deployment_id=self.id,
            correlation_id=self.id,
        ))

    @property
    def is_terminal(self) -> bool:
        return is_terminal_status(self.status)

    @property
    def is_successful(self) -> bool:
        return self.status == DeploymentStatus.SUCCEEDED

    @property
    def duration(self) -> timedelta:
        """Elapsed time, up to now for deployments still in flight."""
        return elapsed(self.started_at, self.ended_at)

    @property
    def resource_ids(self) -> list[str]:
        return [r.resource_id for r in self.resources]


class InvalidStateTransitionError(Exception):
    """Raised when an invalid state transition is attempted."""
