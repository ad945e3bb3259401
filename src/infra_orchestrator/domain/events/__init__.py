"""Domain events package."""

from infra_orchestrator.domain.events.deployment_events import (
    DeploymentCanceled,
    DeploymentFailed,
    DeploymentSubmitted,
    DeploymentSucceeded,
)


__all__ = [
    "DeploymentCanceled",
    "DeploymentFailed",
    "DeploymentSubmitted",
    "DeploymentSucceeded",
]
