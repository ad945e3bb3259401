"""Azure Resource Manager control-plane adapter over the REST API."""

from __future__ import annotations

import asyncio
import json
import os
import shutil
import tempfile
from collections.abc import Awaitable, Callable
from typing import Any

import httpx
import structlog

from infra_orchestrator.domain.errors import RemoteFailureError, UnsupportedDefinitionError
from infra_orchestrator.domain.models.cloud_resource import (
    RemoteDeployment,
    RemoteResource,
    RemoteResourceGroup,
)
from infra_orchestrator.domain.models.deployment import ScriptKind
from infra_orchestrator.domain.models.resource_identity import parse_resource_id
from infra_orchestrator.domain.ports.services import ControlPlaneClient, TerraformExecutor
from infra_orchestrator.infrastructure.terraform.executor import run_terraform


logger = structlog.get_logger(__name__)

RESOURCES_API_VERSION = "2021-04-01"

# API versions for types whose properties the verifiers inspect
KNOWN_API_VERSIONS: dict[str, str] = {
    "microsoft.compute/virtualmachines": "2023-03-01",
    "microsoft.storage/storageaccounts": "2023-01-01",
    "microsoft.web/sites": "2022-09-01",
    "microsoft.sql/servers": "2021-11-01",
}

TERRAFORM_MARKER_TEMPLATE: dict[str, Any] = {
    "$schema": "https://schema.management.azure.com/schemas/2019-04-01/deploymentTemplate.json#",
    "contentVersion": "1.0.0.0",
    "parameters": {"terraformDeployment": {"type": "string"}},
    "resources": [],
}

BicepCompiler = Callable[[str], Awaitable[str]]


async def compile_bicep(definition: str) -> str:
    """Compile Bicep source to an ARM JSON template with the ``az`` CLI."""
    working_dir = tempfile.mkdtemp(prefix="bicep-")
    try:
        path = os.path.join(working_dir, "main.bicep")
        with open(path, "w") as f:
            f.write(definition)

        process = await asyncio.create_subprocess_exec(
            "az", "bicep", "build", "--file", path, "--stdout",
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        stdout, stderr = await process.communicate()
        if process.returncode != 0:
            raise RemoteFailureError(
                f"Bicep compilation failed: {stderr.decode(errors='replace')}"
            )
        return stdout.decode()
    finally:
        shutil.rmtree(working_dir, ignore_errors=True)


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text
    error = body.get("error") if isinstance(body, dict) else None
    if isinstance(error, dict):
        return f"{error.get('code', '')}: {error.get('message', '')}".strip(": ")
    return response.text


class ArmControlPlaneClient(ControlPlaneClient):
    """Talks to the Resource Manager REST API with a bearer token.

    Definitive 404 answers come back as ``None`` (or ``False``); any other
    non-success response or transport error raises ``RemoteFailureError``.
    """

    def __init__(
        self,
        subscription_id: str,
        access_token: str,
        endpoint: str = "https://management.azure.com",
        timeout: float = 30.0,
        terraform_executor: TerraformExecutor | None = None,
        bicep_compiler: BicepCompiler = compile_bicep,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._subscription_id = subscription_id
        self._access_token = access_token
        self._endpoint = endpoint.rstrip("/")
        self._timeout = timeout
        self._terraform_executor = terraform_executor
        self._bicep_compiler = bicep_compiler
        self._client = http_client
        self._api_versions: dict[str, str] = dict(KNOWN_API_VERSIONS)

    @property
    def subscription_id(self) -> str:
        return self._subscription_id

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self._endpoint,
                timeout=self._timeout,
                headers={
                    "Authorization": f"Bearer {self._access_token}",
                    "Content-Type": "application/json",
                },
            )
        return self._client

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> ArmControlPlaneClient:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()

    async def _request(
        self,
        method: str,
        path: str,
        api_version: str = RESOURCES_API_VERSION,
        json_body: dict[str, Any] | None = None,
        params: dict[str, str] | None = None,
    ) -> httpx.Response | None:
        """Send a request; ``None`` on 404, raises on any other failure."""
        query = {"api-version": api_version, **(params or {})}
        try:
            response = await self._get_client().request(method, path, params=query, json=json_body)
        except httpx.HTTPError as e:
            logger.warning("arm_request_failed", method=method, path=path, error=str(e))
            raise RemoteFailureError(f"{method} {path} failed: {e}") from e

        if response.status_code == 404:
            return None
        if response.is_error:
            message = _error_message(response)
            logger.warning(
                "arm_request_rejected",
                method=method,
                path=path,
                status_code=response.status_code,
                error=message,
            )
            raise RemoteFailureError(
                f"{method} {path} returned {response.status_code}: {message}",
                response.status_code,
            )
        return response

    def _group_path(self, name: str) -> str:
        return f"/subscriptions/{self._subscription_id}/resourcegroups/{name}"

    def _deployment_path(self, resource_group: str, deployment_name: str) -> str:
        return (
            f"{self._group_path(resource_group)}"
            f"/providers/Microsoft.Resources/deployments/{deployment_name}"
        )

    # ------------------------------------------------------------------
    # Resource groups
    # ------------------------------------------------------------------

    async def resource_group_exists(self, name: str) -> bool:
        response = await self._request("HEAD", self._group_path(name))
        return response is not None

    async def ensure_resource_group(self, name: str, region: str) -> RemoteResourceGroup:
        response = await self._request("GET", self._group_path(name))
        if response is None:
            logger.info("arm_resource_group_creating", resource_group=name, region=region)
            response = await self._request(
                "PUT", self._group_path(name), json_body={"location": region}
            )
            if response is None:
                raise RemoteFailureError(f"Resource group '{name}' could not be created", 404)

        body = response.json()
        return RemoteResourceGroup(
            name=body.get("name", name),
            location=body.get("location", region),
            id=body.get("id", ""),
        )

    # ------------------------------------------------------------------
    # Deployments
    # ------------------------------------------------------------------

    async def _template_for(self, definition: str, kind: ScriptKind, deployment_name: str) -> dict[str, Any]:
        if kind == ScriptKind.BICEP:
            source = definition if definition.lstrip().startswith("{") else await self._bicep_compiler(definition)
            try:
                return {"template": json.loads(source)}
            except ValueError as e:
                raise RemoteFailureError(f"Compiled template is not valid JSON: {e}") from e

        if kind == ScriptKind.TERRAFORM:
            if self._terraform_executor is None:
                raise UnsupportedDefinitionError("No Terraform executor is configured")
            await run_terraform(self._terraform_executor, definition, deployment_name)
            # Terraform creates no deployment of its own; register a marker so status polling works
            return {
                "template": TERRAFORM_MARKER_TEMPLATE,
                "parameters": {"terraformDeployment": {"value": deployment_name}},
            }

        raise UnsupportedDefinitionError(f"{kind.value} deployment is not currently supported")

    async def submit_deployment(
        self,
        resource_group: str,
        deployment_name: str,
        definition: str,
        kind: ScriptKind,
    ) -> RemoteDeployment:
        properties = {"mode": "Incremental", **await self._template_for(definition, kind, deployment_name)}
        response = await self._request(
            "PUT",
            self._deployment_path(resource_group, deployment_name),
            json_body={"properties": properties},
        )
        if response is None:
            raise RemoteFailureError(f"Resource group '{resource_group}' could not be found", 404)

        logger.info(
            "arm_deployment_submitted",
            resource_group=resource_group,
            deployment_name=deployment_name,
            kind=kind.value,
        )
        return self._parse_deployment(response.json(), resource_group, deployment_name)

    @staticmethod
    def _parse_deployment(
        body: dict[str, Any], resource_group: str, deployment_name: str
    ) -> RemoteDeployment:
        properties = body.get("properties") or {}
        error = properties.get("error") or {}
        return RemoteDeployment(
            name=body.get("name", deployment_name),
            resource_group=resource_group,
            provisioning_state=properties.get("provisioningState") or "Unknown",
            error_message=error.get("message", ""),
            error_detail=json.dumps(error["details"]) if error.get("details") else "",
            id=body.get("id", ""),
        )

    async def get_deployment(
        self, resource_group: str, deployment_name: str
    ) -> RemoteDeployment | None:
        response = await self._request("GET", self._deployment_path(resource_group, deployment_name))
        if response is None:
            return None
        return self._parse_deployment(response.json(), resource_group, deployment_name)

    async def cancel_deployment(self, resource_group: str, deployment_name: str) -> None:
        response = await self._request(
            "POST", f"{self._deployment_path(resource_group, deployment_name)}/cancel"
        )
        if response is None:
            raise RemoteFailureError(f"Deployment '{deployment_name}' could not be found", 404)

    # ------------------------------------------------------------------
    # Resources
    # ------------------------------------------------------------------

    async def list_resources(self, resource_group: str) -> list[RemoteResource]:
        path = f"{self._group_path(resource_group)}/resources"
        response = await self._request("GET", path, params={"$expand": "provisioningState"})
        if response is None:
            raise RemoteFailureError(f"Resource group '{resource_group}' could not be found", 404)

        resources: list[RemoteResource] = []
        body = response.json()
        while True:
            for entry in body.get("value", []):
                properties = dict(entry.get("properties") or {})
                if "provisioningState" in entry:
                    properties.setdefault("provisioningState", entry["provisioningState"])
                resources.append(RemoteResource(
                    id=entry["id"],
                    name=entry.get("name", ""),
                    type=entry.get("type", ""),
                    location=entry.get("location", ""),
                    properties=properties,
                    tags=entry.get("tags") or {},
                ))

            next_link = body.get("nextLink")
            if not next_link:
                break
            try:
                next_response = await self._get_client().get(next_link)
            except httpx.HTTPError as e:
                raise RemoteFailureError(f"GET {next_link} failed: {e}") from e
            if next_response.is_error:
                raise RemoteFailureError(
                    f"GET {next_link} returned {next_response.status_code}",
                    next_response.status_code,
                )
            body = next_response.json()
        return resources

    async def _api_version_for(self, provider_namespace: str, resource_type_name: str) -> str:
        key = f"{provider_namespace}/{resource_type_name}".lower()
        cached = self._api_versions.get(key)
        if cached:
            return cached

        response = await self._request(
            "GET", f"/subscriptions/{self._subscription_id}/providers/{provider_namespace}"
        )
        version = RESOURCES_API_VERSION
        if response is not None:
            for resource_type in response.json().get("resourceTypes", []):
                if resource_type.get("resourceType", "").lower() == resource_type_name.lower():
                    stable = [v for v in resource_type.get("apiVersions", []) if "preview" not in v]
                    if stable:
                        version = stable[0]
                    break
        self._api_versions[key] = version
        return version

    async def get_resource(self, resource_id: str) -> RemoteResource | None:
        identity = parse_resource_id(resource_id)
        api_version = await self._api_version_for(
            identity.provider_namespace, identity.resource_type_name
        )
        response = await self._request("GET", resource_id, api_version=api_version)
        if response is None:
            return None

        body = response.json()
        properties = dict(body.get("properties") or {})
        full_type = identity.full_type.lower()

        if full_type == "microsoft.compute/virtualmachines":
            view = await self._request("GET", f"{resource_id}/instanceView", api_version=api_version)
            if view is not None:
                properties["instanceView"] = view.json()
        elif full_type == "microsoft.sql/servers":
            rules = await self._request("GET", f"{resource_id}/firewallRules", api_version=api_version)
            if rules is not None:
                properties["firewallRules"] = rules.json().get("value", [])

        return RemoteResource(
            id=body.get("id", resource_id),
            name=body.get("name", identity.resource_name),
            type=body.get("type", identity.full_type),
            location=body.get("location", ""),
            properties=properties,
            tags=body.get("tags") or {},
        )
