"""Repository port interfaces (hexagonal architecture)."""

from __future__ import annotations

from abc import ABC, abstractmethod
from contextlib import AbstractAsyncContextManager

from infra_orchestrator.domain.models.deployment import DeploymentRecord, DeploymentStatus


class DeploymentRegistry(ABC):
    """Port for the shared registry of tracked deployments.

    Implementations must support concurrent pollers: ``lock`` serializes
    read-modify-write of a single record without blocking other records.
    """

    @abstractmethod
    async def add(self, record: DeploymentRecord) -> DeploymentRecord:
        """Register a new deployment record."""

    @abstractmethod
    async def get(self, deployment_id: str) -> DeploymentRecord | None:
        """Retrieve a record by deployment id."""

    @abstractmethod
    async def list_records(
        self, status: DeploymentStatus | None = None, limit: int = 50, offset: int = 0
    ) -> list[DeploymentRecord]:
        """List records, newest first, optionally filtered by status."""

    @abstractmethod
    async def count(self, status: DeploymentStatus | None = None) -> int:
        """Count records, optionally filtered by status."""

    @abstractmethod
    def lock(self, deployment_id: str) -> AbstractAsyncContextManager[None]:
        """Exclusive access to one record for the duration of the context."""
