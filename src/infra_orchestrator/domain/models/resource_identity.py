"""Resource identifier decomposition."""

from __future__ import annotations

from infra_orchestrator.domain.errors import MalformedIdentifierError
from infra_orchestrator.domain.models.base import ValueObject


PORTAL_BASE_URL = "https://portal.azure.com"

# Positional layout of a fully-qualified identifier split on "/":
# ["", "subscriptions", <sub>, "resourceGroups", <rg>, "providers", <ns>, <type>, <name>, ...]
_MIN_SEGMENTS = 8
_SUBSCRIPTION_INDEX = 2
_RESOURCE_GROUP_INDEX = 4
_PROVIDER_INDEX = 6
_TYPE_INDEX = 7
_NAME_INDEX = 8

_FIXED_SEGMENTS = {
    1: "subscriptions",
    3: "resourcegroups",
    5: "providers",
}


class ResourceIdentity(ValueObject):
    """The parts of a fully-qualified resource identifier."""

    subscription_id: str
    resource_group: str
    provider_namespace: str
    resource_type_name: str
    resource_name: str = ""

    @property
    def full_type(self) -> str:
        return f"{self.provider_namespace}/{self.resource_type_name}"

    @property
    def resource_id(self) -> str:
        return build_resource_id(
            self.subscription_id,
            self.resource_group,
            self.provider_namespace,
            self.resource_type_name,
            self.resource_name,
        )

    @property
    def portal_url(self) -> str:
        return portal_url(self.resource_id)


def parse_resource_id(resource_id: str) -> ResourceIdentity:
    """Decompose ``resource_id`` into subscription, group, provider, type and name.

    Raises MalformedIdentifierError when the identifier has fewer than eight
    ``/``-delimited segments or the fixed keyword segments are out of place.
    """
    if not resource_id or not resource_id.strip():
        raise MalformedIdentifierError(resource_id or "", "empty identifier")

    parts = resource_id.strip().split("/")
    if len(parts) < _MIN_SEGMENTS:
        raise MalformedIdentifierError(
            resource_id, f"expected at least {_MIN_SEGMENTS} segments, got {len(parts)}"
        )

    for index, keyword in _FIXED_SEGMENTS.items():
        if parts[index].lower() != keyword:
            raise MalformedIdentifierError(
                resource_id, f"segment {index} should be {keyword!r}"
            )

    for index in (_SUBSCRIPTION_INDEX, _RESOURCE_GROUP_INDEX, _PROVIDER_INDEX, _TYPE_INDEX):
        if not parts[index]:
            raise MalformedIdentifierError(resource_id, f"segment {index} is empty")

    return ResourceIdentity(
        subscription_id=parts[_SUBSCRIPTION_INDEX],
        resource_group=parts[_RESOURCE_GROUP_INDEX],
        provider_namespace=parts[_PROVIDER_INDEX],
        resource_type_name=parts[_TYPE_INDEX],
        resource_name=parts[_NAME_INDEX] if len(parts) > _NAME_INDEX else "",
    )


def build_resource_id(
    subscription_id: str,
    resource_group: str,
    provider_namespace: str,
    resource_type_name: str,
    resource_name: str,
) -> str:
    """Build a fully-qualified resource identifier."""
    return (
        f"/subscriptions/{subscription_id}/resourceGroups/{resource_group}"
        f"/providers/{provider_namespace}/{resource_type_name}/{resource_name}"
    )


def portal_url(resource_id: str, base_url: str = PORTAL_BASE_URL) -> str:
    """Portal link for a resource or deployment identifier."""
    return f"{base_url.rstrip('/')}/#@/resource{resource_id}"
