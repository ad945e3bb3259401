"""Control-plane views of resources and deployments."""

from __future__ import annotations

from typing import Any

from pydantic import Field

from infra_orchestrator.domain.models.base import ValueObject


class RemoteResource(ValueObject):
    """A live resource as returned by the control plane's generic read API."""

    id: str
    name: str
    type: str
    location: str = ""
    properties: dict[str, Any] = Field(default_factory=dict)
    tags: dict[str, str] = Field(default_factory=dict)

    @property
    def provisioning_state(self) -> str:
        state = self.properties.get("provisioningState")
        return str(state) if state else "Unknown"


class RemoteDeployment(ValueObject):
    """A deployment as tracked by the control plane."""

    name: str
    resource_group: str
    provisioning_state: str = "Unknown"
    error_message: str = ""
    error_detail: str = ""
    id: str = ""


class RemoteResourceGroup(ValueObject):
    """A resource group on the control plane."""

    name: str
    location: str
    id: str = ""
