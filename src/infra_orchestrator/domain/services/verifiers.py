"""Type-specific resource verifiers.

Each supported resource type inspects the property bag returned by the
control plane and reports what it finds as a ``VerificationItem``. Types
without a dedicated verifier fall back to ``verify_generic``, which only
confirms the resource exists.
"""

from __future__ import annotations

from collections.abc import Callable
from enum import Enum
from typing import Any

from infra_orchestrator.domain.models.cloud_resource import RemoteResource
from infra_orchestrator.domain.models.verification import (
    IssueCategory,
    IssueSeverity,
    VerificationIssue,
    VerificationItem,
    VerificationStatus,
)


Verifier = Callable[[RemoteResource], VerificationItem]

STORAGE_HTTPS_DOCS = (
    "https://docs.microsoft.com/en-us/azure/storage/common/storage-require-secure-transfer"
)
WEB_HTTPS_DOCS = (
    "https://docs.microsoft.com/en-us/azure/app-service/configure-ssl-bindings#enforce-https"
)
SQL_FIREWALL_DOCS = (
    "https://docs.microsoft.com/en-us/azure/azure-sql/database/firewall-configure"
)

_POWER_STATES = {
    "running": "Running",
    "deallocated": "Deallocated",
    "stopped": "Stopped",
    "starting": "Starting",
    "stopping": "Stopping",
    "deallocating": "Deallocating",
}

# (start, end) ranges that open a SQL server to the internet or to all cloud-hosted clients
_BROAD_FIREWALL_RANGES = {
    ("0.0.0.0", "255.255.255.255"),
    ("0.0.0.0", "0.0.0.0"),
}


def _base_item(resource: RemoteResource) -> VerificationItem:
    return VerificationItem(
        resource_id=resource.id,
        name=resource.name,
        resource_type=resource.type,
        provisioning_state=resource.provisioning_state,
        is_accessible=True,
        is_properly_configured=True,
    )


def _is_enabled(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() == "true"
    return value is True


def power_state(properties: dict[str, Any]) -> str:
    """Extract the VM power state from an instance view's status codes."""
    instance_view = properties.get("instanceView") or {}
    for status in instance_view.get("statuses") or []:
        code = str(status.get("code", ""))
        prefix, _, state = code.partition("/")
        if prefix.lower() == "powerstate":
            return _POWER_STATES.get(state.lower(), "Unknown")
    return "Unknown"


def verify_virtual_machine(resource: RemoteResource) -> VerificationItem:
    item = _base_item(resource)
    state = power_state(resource.properties)
    item.metrics["PowerState"] = state

    if state != "Running":
        item.is_properly_configured = False
        item.escalate(VerificationStatus.WARNING)
        item.add_issue(VerificationIssue(
            resource_id=resource.id,
            category=IssueCategory.AVAILABILITY,
            severity=IssueSeverity.MEDIUM,
            description=f"Virtual Machine is not running (Current state: {state})",
            recommended_action="Start the VM if it should be running",
            auto_fixable=True,
        ))
    return item


def _verify_https_only(
    resource: RemoteResource,
    property_name: str,
    description: str,
    recommended_action: str,
    documentation_url: str,
) -> VerificationItem:
    item = _base_item(resource)
    https_only = _is_enabled(resource.properties.get(property_name))
    item.metrics["HttpsOnly"] = "Enabled" if https_only else "Disabled"

    if not https_only:
        item.is_properly_configured = False
        item.has_security_issues = True
        item.escalate(VerificationStatus.WARNING)
        item.add_issue(VerificationIssue(
            resource_id=resource.id,
            category=IssueCategory.SECURITY,
            severity=IssueSeverity.MEDIUM,
            description=description,
            recommended_action=recommended_action,
            auto_fixable=True,
            documentation_url=documentation_url,
        ))
    return item


def verify_storage_account(resource: RemoteResource) -> VerificationItem:
    return _verify_https_only(
        resource,
        "supportsHttpsTrafficOnly",
        "Storage Account does not enforce HTTPS only traffic",
        "Enable 'Secure transfer required' setting on the Storage Account",
        STORAGE_HTTPS_DOCS,
    )


def verify_web_site(resource: RemoteResource) -> VerificationItem:
    return _verify_https_only(
        resource,
        "httpsOnly",
        "App Service does not enforce HTTPS only traffic",
        "Enable 'HTTPS Only' setting on the App Service",
        WEB_HTTPS_DOCS,
    )


def _rule_range(rule: dict[str, Any]) -> tuple[str, str]:
    properties = rule.get("properties") or rule
    return (
        str(properties.get("startIpAddress", "")).strip(),
        str(properties.get("endIpAddress", "")).strip(),
    )


def firewall_restricts_access(properties: dict[str, Any]) -> bool:
    """Whether a SQL server's firewall keeps out broad address ranges.

    A server with public network access disabled is restricted regardless of
    its rules. Rules that were never retrieved count as unrestricted.
    """
    if str(properties.get("publicNetworkAccess", "")).lower() == "disabled":
        return True
    rules = properties.get("firewallRules")
    if rules is None:
        return False
    return not any(_rule_range(rule) in _BROAD_FIREWALL_RANGES for rule in rules)


def verify_sql_server(resource: RemoteResource) -> VerificationItem:
    item = _base_item(resource)
    restricted = firewall_restricts_access(resource.properties)
    item.metrics["FirewallEnabled"] = str(restricted)

    if not restricted:
        item.is_properly_configured = False
        item.has_security_issues = True
        item.escalate(VerificationStatus.WARNING)
        item.add_issue(VerificationIssue(
            resource_id=resource.id,
            category=IssueCategory.SECURITY,
            severity=IssueSeverity.HIGH,
            description="SQL Server firewall may allow broad access",
            recommended_action="Review and restrict SQL Server firewall rules",
            documentation_url=SQL_FIREWALL_DOCS,
        ))
    return item


def verify_generic(resource: RemoteResource) -> VerificationItem:
    return _base_item(resource)


class SupportedResourceType(Enum):
    """Resource types with a dedicated verifier, keyed by (namespace, type)."""

    VIRTUAL_MACHINE = ("Microsoft.Compute", "virtualMachines")
    STORAGE_ACCOUNT = ("Microsoft.Storage", "storageAccounts")
    WEB_SITE = ("Microsoft.Web", "sites")
    SQL_SERVER = ("Microsoft.Sql", "servers")

    def __init__(self, provider_namespace: str, resource_type_name: str) -> None:
        self.provider_namespace = provider_namespace
        self.resource_type_name = resource_type_name

    @property
    def full_type(self) -> str:
        return f"{self.provider_namespace}/{self.resource_type_name}"

    @property
    def verifier(self) -> Verifier:
        return _VERIFIERS[self]

    @classmethod
    def lookup(cls, provider_namespace: str, resource_type_name: str) -> SupportedResourceType | None:
        """Case-insensitive match on namespace and type name."""
        key = (provider_namespace.lower(), resource_type_name.lower())
        for member in cls:
            if (member.provider_namespace.lower(), member.resource_type_name.lower()) == key:
                return member
        return None


_VERIFIERS: dict[SupportedResourceType, Verifier] = {
    SupportedResourceType.VIRTUAL_MACHINE: verify_virtual_machine,
    SupportedResourceType.STORAGE_ACCOUNT: verify_storage_account,
    SupportedResourceType.WEB_SITE: verify_web_site,
    SupportedResourceType.SQL_SERVER: verify_sql_server,
}


def resolve_verifier(provider_namespace: str, resource_type_name: str) -> Verifier:
    supported = SupportedResourceType.lookup(provider_namespace, resource_type_name)
    return supported.verifier if supported is not None else verify_generic
