"""In-memory deployment registry."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from infra_orchestrator.domain.models.deployment import DeploymentRecord, DeploymentStatus
from infra_orchestrator.domain.ports.repositories import DeploymentRegistry


class InMemoryDeploymentRegistry(DeploymentRegistry):
    """Concurrency-safe in-process registry keyed by deployment id.

    ``_guard`` protects the mapping itself; each record additionally owns a
    lock so pollers of different deployments never wait on each other.
    """

    def __init__(self) -> None:
        self._store: dict[str, DeploymentRecord] = {}
        self._locks: dict[str, asyncio.Lock] = {}
        self._guard = asyncio.Lock()

    async def add(self, record: DeploymentRecord) -> DeploymentRecord:
        async with self._guard:
            if record.id in self._store:
                raise DuplicateDeploymentError(f"Deployment {record.id} is already registered")
            self._store[record.id] = record
            self._locks[record.id] = asyncio.Lock()
        return record

    async def get(self, deployment_id: str) -> DeploymentRecord | None:
        async with self._guard:
            return self._store.get(deployment_id)

    async def list_records(
        self, status: DeploymentStatus | None = None, limit: int = 50, offset: int = 0
    ) -> list[DeploymentRecord]:
        async with self._guard:
            items = [
                r for r in self._store.values() if status is None or r.status == status
            ]
        return sorted(items, key=lambda r: r.started_at, reverse=True)[offset:offset + limit]

    async def count(self, status: DeploymentStatus | None = None) -> int:
        async with self._guard:
            return sum(1 for r in self._store.values() if status is None or r.status == status)

    @asynccontextmanager
    async def lock(self, deployment_id: str) -> AsyncIterator[None]:
        async with self._guard:
            record_lock = self._locks.setdefault(deployment_id, asyncio.Lock())
        async with record_lock:
            yield

    def clear(self) -> None:
        """Drop every record. Used by test fixtures for isolation."""
        self._store.clear()
        self._locks.clear()


class DuplicateDeploymentError(Exception):
    """Raised when a deployment id is registered twice."""
