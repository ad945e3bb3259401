"""Service port interfaces (hexagonal architecture)."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from infra_orchestrator.domain.models.cloud_resource import (
    RemoteDeployment,
    RemoteResource,
    RemoteResourceGroup,
)
from infra_orchestrator.domain.models.deployment import ScriptKind


class ControlPlaneClient(ABC):
    """Port for the remote cloud control plane.

    Every method is a network call; adapters raise on transport or API
    errors and return ``None`` for definitive "not found" answers.
    """

    @property
    @abstractmethod
    def subscription_id(self) -> str:
        """Subscription all calls are scoped to."""

    @abstractmethod
    async def resource_group_exists(self, name: str) -> bool:
        """Check whether a resource group exists."""

    @abstractmethod
    async def ensure_resource_group(self, name: str, region: str) -> RemoteResourceGroup:
        """Return the resource group, creating it in ``region`` if absent."""

    @abstractmethod
    async def submit_deployment(
        self,
        resource_group: str,
        deployment_name: str,
        definition: str,
        kind: ScriptKind,
    ) -> RemoteDeployment:
        """Submit a definition; returns the accepted deployment."""

    @abstractmethod
    async def get_deployment(
        self, resource_group: str, deployment_name: str
    ) -> RemoteDeployment | None:
        """Current provisioning state of a deployment."""

    @abstractmethod
    async def cancel_deployment(self, resource_group: str, deployment_name: str) -> None:
        """Request cancellation of a running deployment."""

    @abstractmethod
    async def list_resources(self, resource_group: str) -> list[RemoteResource]:
        """Enumerate the resources currently in a resource group."""

    @abstractmethod
    async def get_resource(self, resource_id: str) -> RemoteResource | None:
        """Read a resource by fully-qualified identifier."""


class TerraformExecutor(ABC):
    """Port for Terraform execution."""

    @abstractmethod
    async def init(self, working_dir: str) -> tuple[bool, str]:
        """Initialize Terraform in a working directory."""

    @abstractmethod
    async def apply(self, working_dir: str, auto_approve: bool = True) -> tuple[bool, str]:
        """Run terraform apply."""


class EventPublisher(ABC):
    """Port for publishing domain events."""

    @abstractmethod
    async def publish(self, event_type: str, payload: dict[str, Any]) -> None:
        """Publish an event."""

    @abstractmethod
    async def publish_batch(self, events: list[tuple[str, dict[str, Any]]]) -> None:
        """Publish a batch of events."""
