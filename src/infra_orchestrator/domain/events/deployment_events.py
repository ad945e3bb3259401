"""Deployment domain events."""

from __future__ import annotations

from infra_orchestrator.domain.models.base import DomainEvent


class DeploymentSubmitted(DomainEvent):
    """Emitted when a definition is accepted by the control plane."""

    deployment_id: str
    deployment_name: str
    resource_group: str
    event_type: str = "deployment.submitted"


class DeploymentSucceeded(DomainEvent):
    """Emitted when a deployment reaches the succeeded state."""

    deployment_id: str
    resource_count: int
    event_type: str = "deployment.succeeded"


class DeploymentFailed(DomainEvent):
    """Emitted when a deployment fails."""

    deployment_id: str
    error_message: str
    event_type: str = "deployment.failed"


class DeploymentCanceled(DomainEvent):
    """Emitted when a deployment is canceled."""

    deployment_id: str
    event_type: str = "deployment.canceled"
