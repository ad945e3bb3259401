"""Registry implementations."""

from infra_orchestrator.infrastructure.persistence.repositories.in_memory import (
    DuplicateDeploymentError,
    InMemoryDeploymentRegistry,
)


__all__ = [
    "DuplicateDeploymentError",
    "InMemoryDeploymentRegistry",
]
