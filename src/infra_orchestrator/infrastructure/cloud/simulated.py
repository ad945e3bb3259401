"""In-process control plane for development and testing."""

from __future__ import annotations

import asyncio
from typing import Any

import structlog

from infra_orchestrator.domain.errors import RemoteFailureError, UnsupportedDefinitionError
from infra_orchestrator.domain.models.cloud_resource import (
    RemoteDeployment,
    RemoteResource,
    RemoteResourceGroup,
)
from infra_orchestrator.domain.models.deployment import ScriptKind
from infra_orchestrator.domain.models.resource_identity import build_resource_id
from infra_orchestrator.domain.ports.services import ControlPlaneClient


logger = structlog.get_logger(__name__)

DEFAULT_SUBSCRIPTION_ID = "00000000-0000-0000-0000-000000000000"
DEFAULT_STATE_SEQUENCE = ("Running", "Succeeded")
_TERMINAL_REMOTE_STATES = {"succeeded", "failed", "canceled"}


class _SimulatedDeployment:
    def __init__(self, resource_group: str, name: str, states: list[str]) -> None:
        self.resource_group = resource_group
        self.name = name
        self.states = states
        self.state = "Accepted"
        self.error_message = ""
        self.error_detail = ""
        self.planned_resources: list[RemoteResource] = []

    def advance(self) -> str:
        if self.state.lower() not in _TERMINAL_REMOTE_STATES and self.states:
            self.state = self.states.pop(0)
        return self.state


class SimulatedControlPlane(ControlPlaneClient):
    """Simulated control plane for development/testing.

    Deployments advance one scripted state per status query; unscripted
    deployments go Running then Succeeded. Resources planned for a deployment
    appear in its resource group when it first reports Succeeded. Failures
    can be injected per method, and individual resources can be made
    unreachable.
    """

    def __init__(
        self,
        subscription_id: str = DEFAULT_SUBSCRIPTION_ID,
        latency: float = 0.0,
    ) -> None:
        self._subscription_id = subscription_id
        self._latency = latency
        self._resource_groups: dict[str, RemoteResourceGroup] = {}
        self._resources: dict[str, RemoteResource] = {}
        self._deployments: dict[tuple[str, str], _SimulatedDeployment] = {}
        self._scripts: dict[str, dict[str, Any]] = {}
        self._plans: dict[str, list[RemoteResource]] = {}
        self._failures: dict[str, tuple[Exception, bool]] = {}
        self._unreachable: dict[str, Exception] = {}
        self.calls: list[tuple[str, tuple[Any, ...]]] = []

    @property
    def subscription_id(self) -> str:
        return self._subscription_id

    # ------------------------------------------------------------------
    # Scenario setup
    # ------------------------------------------------------------------

    def add_resource_group(self, name: str, location: str = "eastus") -> RemoteResourceGroup:
        group = RemoteResourceGroup(
            name=name,
            location=location,
            id=f"/subscriptions/{self._subscription_id}/resourceGroups/{name}",
        )
        self._resource_groups[name.lower()] = group
        return group

    def remove_resource_group(self, name: str) -> None:
        self._resource_groups.pop(name.lower(), None)
        prefix = f"/subscriptions/{self._subscription_id}/resourcegroups/{name.lower()}/"
        for resource_id in [rid for rid in self._resources if rid.startswith(prefix)]:
            del self._resources[resource_id]

    def make_resource(
        self,
        resource_group: str,
        provider_namespace: str,
        resource_type_name: str,
        name: str,
        properties: dict[str, Any] | None = None,
        location: str = "eastus",
    ) -> RemoteResource:
        """Build a resource in this subscription without adding it."""
        properties = {"provisioningState": "Succeeded", **(properties or {})}
        return RemoteResource(
            id=build_resource_id(
                self._subscription_id, resource_group, provider_namespace, resource_type_name, name
            ),
            name=name,
            type=f"{provider_namespace}/{resource_type_name}",
            location=location,
            properties=properties,
        )

    def add_resource(self, resource: RemoteResource) -> RemoteResource:
        self._resources[resource.id.lower()] = resource
        return resource

    def remove_resource(self, resource_id: str) -> None:
        self._resources.pop(resource_id.lower(), None)

    def script_deployment(
        self,
        deployment_name: str,
        states: list[str],
        error_message: str = "",
        error_detail: str = "",
    ) -> None:
        """Provisioning states reported by successive status queries; the last one sticks."""
        self._scripts[deployment_name] = {
            "states": list(states),
            "error_message": error_message,
            "error_detail": error_detail,
        }

    def plan_resources(self, deployment_name: str, resources: list[RemoteResource]) -> None:
        """Resources that appear once ``deployment_name`` succeeds."""
        self._plans.setdefault(deployment_name, []).extend(resources)

    def fail(self, method: str, error: Exception, persistent: bool = False) -> None:
        """Make the next call (or every call) to ``method`` raise ``error``."""
        self._failures[method] = (error, persistent)

    def clear_failures(self) -> None:
        self._failures.clear()

    def make_unreachable(self, resource_id: str, error: Exception | None = None) -> None:
        self._unreachable[resource_id.lower()] = error or RemoteFailureError(
            f"Connection to resource {resource_id} timed out"
        )

    def make_reachable(self, resource_id: str) -> None:
        self._unreachable.pop(resource_id.lower(), None)

    def calls_to(self, method: str) -> list[tuple[Any, ...]]:
        return [args for name, args in self.calls if name == method]

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _enter(self, method: str, *args: Any) -> None:
        self.calls.append((method, args))
        if self._latency:
            await asyncio.sleep(self._latency)
        failure = self._failures.get(method)
        if failure is not None:
            error, persistent = failure
            if not persistent:
                del self._failures[method]
            raise error

    def _to_remote(self, deployment: _SimulatedDeployment) -> RemoteDeployment:
        return RemoteDeployment(
            name=deployment.name,
            resource_group=deployment.resource_group,
            provisioning_state=deployment.state,
            error_message=deployment.error_message if deployment.state == "Failed" else "",
            error_detail=deployment.error_detail if deployment.state == "Failed" else "",
            id=(
                f"/subscriptions/{self._subscription_id}/resourceGroups/{deployment.resource_group}"
                f"/providers/Microsoft.Resources/deployments/{deployment.name}"
            ),
        )

    # ------------------------------------------------------------------
    # ControlPlaneClient
    # ------------------------------------------------------------------

    async def resource_group_exists(self, name: str) -> bool:
        await self._enter("resource_group_exists", name)
        return name.lower() in self._resource_groups

    async def ensure_resource_group(self, name: str, region: str) -> RemoteResourceGroup:
        await self._enter("ensure_resource_group", name, region)
        existing = self._resource_groups.get(name.lower())
        if existing is not None:
            return existing
        logger.info("simulated_resource_group_created", resource_group=name, region=region)
        return self.add_resource_group(name, region)

    async def submit_deployment(
        self,
        resource_group: str,
        deployment_name: str,
        definition: str,  # noqa: ARG002
        kind: ScriptKind,
    ) -> RemoteDeployment:
        await self._enter("submit_deployment", resource_group, deployment_name, kind)
        if kind not in (ScriptKind.BICEP, ScriptKind.TERRAFORM):
            raise UnsupportedDefinitionError(f"{kind.value} deployment is not currently supported")
        if resource_group.lower() not in self._resource_groups:
            raise RemoteFailureError(f"Resource group '{resource_group}' could not be found", 404)

        script = self._scripts.get(deployment_name, {})
        deployment = _SimulatedDeployment(
            resource_group,
            deployment_name,
            list(script.get("states", DEFAULT_STATE_SEQUENCE)),
        )
        deployment.error_message = script.get("error_message", "")
        deployment.error_detail = script.get("error_detail", "")
        deployment.planned_resources = list(self._plans.get(deployment_name, []))
        self._deployments[(resource_group.lower(), deployment_name)] = deployment

        logger.info(
            "simulated_deployment_accepted",
            resource_group=resource_group,
            deployment_name=deployment_name,
            kind=kind.value,
        )
        return self._to_remote(deployment)

    async def get_deployment(
        self, resource_group: str, deployment_name: str
    ) -> RemoteDeployment | None:
        await self._enter("get_deployment", resource_group, deployment_name)
        if resource_group.lower() not in self._resource_groups:
            return None
        deployment = self._deployments.get((resource_group.lower(), deployment_name))
        if deployment is None:
            return None

        previous = deployment.state
        state = deployment.advance()
        if state == "Succeeded" and previous != "Succeeded":
            for resource in deployment.planned_resources:
                self.add_resource(resource)
        return self._to_remote(deployment)

    async def cancel_deployment(self, resource_group: str, deployment_name: str) -> None:
        await self._enter("cancel_deployment", resource_group, deployment_name)
        deployment = self._deployments.get((resource_group.lower(), deployment_name))
        if deployment is None:
            raise RemoteFailureError(f"Deployment '{deployment_name}' could not be found", 404)
        if deployment.state.lower() in _TERMINAL_REMOTE_STATES:
            raise RemoteFailureError(
                f"Deployment '{deployment_name}' is {deployment.state} and cannot be canceled", 409
            )
        deployment.state = "Canceled"

    async def list_resources(self, resource_group: str) -> list[RemoteResource]:
        await self._enter("list_resources", resource_group)
        if resource_group.lower() not in self._resource_groups:
            raise RemoteFailureError(f"Resource group '{resource_group}' could not be found", 404)
        prefix = f"/subscriptions/{self._subscription_id}/resourcegroups/{resource_group.lower()}/"
        return [r for rid, r in self._resources.items() if rid.startswith(prefix)]

    async def get_resource(self, resource_id: str) -> RemoteResource | None:
        await self._enter("get_resource", resource_id)
        error = self._unreachable.get(resource_id.lower())
        if error is not None:
            raise error
        return self._resources.get(resource_id.lower())
