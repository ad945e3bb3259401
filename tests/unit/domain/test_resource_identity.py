"""Unit tests for resource identifier parsing."""

from __future__ import annotations

import pytest

from infra_orchestrator.domain.errors import MalformedIdentifierError
from infra_orchestrator.domain.models.resource_identity import (
    build_resource_id,
    parse_resource_id,
    portal_url,
)


VM_ID = (
    "/subscriptions/1111-2222/resourceGroups/rg-app/providers/"
    "Microsoft.Compute/virtualMachines/vm-web-01"
)


class TestParseResourceId:
    def test_full_identifier(self) -> None:
        identity = parse_resource_id(VM_ID)
        assert identity.subscription_id == "1111-2222"
        assert identity.resource_group == "rg-app"
        assert identity.provider_namespace == "Microsoft.Compute"
        assert identity.resource_type_name == "virtualMachines"
        assert identity.resource_name == "vm-web-01"
        assert identity.full_type == "Microsoft.Compute/virtualMachines"

    def test_name_absent_is_empty(self) -> None:
        identity = parse_resource_id(
            "/subscriptions/s/resourceGroups/rg/providers/Microsoft.Storage/storageAccounts"
        )
        assert identity.resource_name == ""

    def test_child_resource_takes_parent_name(self) -> None:
        identity = parse_resource_id(
            "/subscriptions/s/resourceGroups/rg/providers/Microsoft.Sql/servers/sql1/databases/db1"
        )
        assert identity.full_type == "Microsoft.Sql/servers"
        assert identity.resource_name == "sql1"

    def test_keywords_case_insensitive(self) -> None:
        identity = parse_resource_id(
            "/SUBSCRIPTIONS/s/resourcegroups/rg/Providers/Microsoft.Web/sites/app"
        )
        assert identity.resource_group == "rg"
        assert identity.resource_name == "app"

    def test_round_trip_through_builder(self) -> None:
        assert parse_resource_id(VM_ID).resource_id == VM_ID
        assert build_resource_id(
            "1111-2222", "rg-app", "Microsoft.Compute", "virtualMachines", "vm-web-01"
        ) == VM_ID

    @pytest.mark.parametrize(
        "resource_id",
        [
            "",
            "   ",
            "not-a-resource-id",
            "/subscriptions/s/resourceGroups/rg",
            "/subscriptions/s/resourceGroups/rg/providers/Microsoft.Web",
            "/subs/s/resourceGroups/rg/providers/Microsoft.Web/sites/app",
            "/subscriptions/s/groups/rg/providers/Microsoft.Web/sites/app",
            "/subscriptions//resourceGroups/rg/providers/Microsoft.Web/sites/app",
            "/subscriptions/s/resourceGroups/rg/providers//sites/app",
        ],
    )
    def test_malformed(self, resource_id: str) -> None:
        with pytest.raises(MalformedIdentifierError):
            parse_resource_id(resource_id)

    def test_malformed_is_value_error(self) -> None:
        with pytest.raises(ValueError, match="Malformed resource identifier"):
            parse_resource_id("bogus")


class TestPortalUrl:
    def test_default_base(self) -> None:
        assert portal_url(VM_ID) == f"https://portal.azure.com/#@/resource{VM_ID}"

    def test_custom_base_trailing_slash(self) -> None:
        assert portal_url(VM_ID, "https://portal.example/") == f"https://portal.example/#@/resource{VM_ID}"

    def test_identity_property(self) -> None:
        assert parse_resource_id(VM_ID).portal_url == portal_url(VM_ID)
