"""Unit tests for the resource verification service."""

from __future__ import annotations

from collections.abc import Callable

import pytest

from infra_orchestrator.domain.errors import InvalidInputError, RemoteFailureError
from infra_orchestrator.domain.models.cloud_resource import RemoteResource
from infra_orchestrator.domain.models.deployment import DeploymentRecord
from infra_orchestrator.domain.models.verification import (
    IssueCategory,
    IssueSeverity,
    VerificationStatus,
)
from infra_orchestrator.domain.services.verification_service import ResourceVerificationService
from infra_orchestrator.infrastructure.cloud.simulated import SimulatedControlPlane


MakeResource = Callable[..., RemoteResource]
MakeRecord = Callable[..., DeploymentRecord]


class TestVerifyResource:
    @pytest.mark.asyncio
    async def test_storage_without_https(
        self, verification_service: ResourceVerificationService, make_resource: MakeResource
    ) -> None:
        storage = make_resource("Microsoft.Storage", "storageAccounts", "stweb")
        item = await verification_service.verify_resource(storage.id)

        assert item.status == VerificationStatus.WARNING
        assert item.has_security_issues
        assert item.is_accessible
        assert item.provisioning_state == "Succeeded"
        (issue,) = item.issues
        assert issue.category == IssueCategory.SECURITY
        assert issue.severity == IssueSeverity.MEDIUM

    @pytest.mark.asyncio
    async def test_generic_resource_successful(
        self, verification_service: ResourceVerificationService, make_resource: MakeResource
    ) -> None:
        vnet = make_resource("Microsoft.Network", "virtualNetworks", "vnet")
        item = await verification_service.verify_resource(vnet.id)
        assert item.status == VerificationStatus.SUCCESSFUL
        assert item.issues == []
        assert item.name == "vnet"
        assert item.resource_type == "Microsoft.Network/virtualNetworks"
        assert item.portal_url.endswith(vnet.id)

    @pytest.mark.asyncio
    async def test_malformed_id_never_raises(
        self, verification_service: ResourceVerificationService, control_plane: SimulatedControlPlane
    ) -> None:
        item = await verification_service.verify_resource("not/a/resource")
        assert item.status == VerificationStatus.FAILED
        (issue,) = item.issues
        assert issue.category == IssueCategory.OTHER
        assert issue.severity == IssueSeverity.CRITICAL
        assert control_plane.calls_to("get_resource") == []

    @pytest.mark.asyncio
    async def test_missing_resource(
        self, verification_service: ResourceVerificationService, control_plane: SimulatedControlPlane
    ) -> None:
        resource = control_plane.make_resource("rg-test", "Microsoft.Web", "sites", "gone")
        item = await verification_service.verify_resource(resource.id)
        assert item.status == VerificationStatus.FAILED
        assert not item.is_accessible
        (issue,) = item.issues
        assert issue.category == IssueCategory.AVAILABILITY
        assert issue.severity == IssueSeverity.CRITICAL
        assert issue.description == "Resource not found"

    @pytest.mark.asyncio
    async def test_fetch_error(
        self,
        verification_service: ResourceVerificationService,
        control_plane: SimulatedControlPlane,
        make_resource: MakeResource,
    ) -> None:
        site = make_resource("Microsoft.Web", "sites", "app", {"httpsOnly": True})
        control_plane.make_unreachable(site.id)

        item = await verification_service.verify_resource(site.id)
        assert item.status == VerificationStatus.ERROR
        (issue,) = item.issues
        assert issue.category == IssueCategory.OTHER
        assert issue.severity == IssueSeverity.CRITICAL

    @pytest.mark.asyncio
    async def test_provisioning_state_adds_to_type_issues(
        self, verification_service: ResourceVerificationService, make_resource: MakeResource
    ) -> None:
        storage = make_resource(
            "Microsoft.Storage", "storageAccounts", "stslow", {"provisioningState": "Updating"}
        )
        item = await verification_service.verify_resource(storage.id)

        assert item.status == VerificationStatus.WARNING
        assert item.provisioning_state == "Updating"
        assert [i.category for i in item.issues] == [IssueCategory.AVAILABILITY, IssueCategory.SECURITY]

    @pytest.mark.asyncio
    async def test_vm_dispatch_case_insensitive(
        self, verification_service: ResourceVerificationService, make_resource: MakeResource
    ) -> None:
        vm = make_resource(
            "microsoft.compute", "VirtualMachines", "vm1",
            {"instanceView": {"statuses": [{"code": "PowerState/running"}]}},
        )
        item = await verification_service.verify_resource(vm.id)
        assert item.status == VerificationStatus.SUCCESSFUL
        assert item.metrics["PowerState"] == "Running"

    @pytest.mark.asyncio
    async def test_each_call_builds_fresh_item(
        self, verification_service: ResourceVerificationService, make_resource: MakeResource
    ) -> None:
        storage = make_resource("Microsoft.Storage", "storageAccounts", "st")
        first = await verification_service.verify_resource(storage.id)
        second = await verification_service.verify_resource(storage.id)
        assert first is not second
        assert len(second.issues) == 1


class TestVerifyDeployment:
    @pytest.mark.asyncio
    async def test_none_record_rejected(
        self, verification_service: ResourceVerificationService
    ) -> None:
        with pytest.raises(InvalidInputError):
            await verification_service.verify_deployment(None)

    @pytest.mark.asyncio
    async def test_aggregates_in_record_order(
        self,
        verification_service: ResourceVerificationService,
        make_resource: MakeResource,
        completed_record: MakeRecord,
    ) -> None:
        vnet = make_resource("Microsoft.Network", "virtualNetworks", "vnet")
        storage = make_resource("Microsoft.Storage", "storageAccounts", "st")
        record = completed_record([vnet.id, storage.id])

        result = await verification_service.verify_deployment(record)

        assert result.deployment_id == record.id
        assert [i.resource_id for i in result.items] == [vnet.id, storage.id]
        assert result.status == VerificationStatus.WARNING
        assert result.passed_count == 1
        assert result.warning_count == 1
        assert len(result.issues) == 1

    @pytest.mark.asyncio
    async def test_failed_outranks_warning(
        self,
        verification_service: ResourceVerificationService,
        control_plane: SimulatedControlPlane,
        make_resource: MakeResource,
        completed_record: MakeRecord,
    ) -> None:
        storage = make_resource("Microsoft.Storage", "storageAccounts", "st")
        missing = control_plane.make_resource("rg-test", "Microsoft.Web", "sites", "gone")
        record = completed_record([storage.id, missing.id])

        result = await verification_service.verify_deployment(record)
        assert result.status == VerificationStatus.FAILED
        assert len(result.issues) == 2

    @pytest.mark.asyncio
    async def test_item_error_aggregates_as_failed(
        self,
        verification_service: ResourceVerificationService,
        control_plane: SimulatedControlPlane,
        make_resource: MakeResource,
        completed_record: MakeRecord,
    ) -> None:
        vnet = make_resource("Microsoft.Network", "virtualNetworks", "vnet")
        control_plane.make_unreachable(vnet.id)
        result = await verification_service.verify_deployment(completed_record([vnet.id]))
        assert result.items[0].status == VerificationStatus.ERROR
        assert result.status == VerificationStatus.FAILED
        assert result.error_count == 1

    @pytest.mark.asyncio
    async def test_no_resources_is_successful(
        self, verification_service: ResourceVerificationService, completed_record: MakeRecord
    ) -> None:
        result = await verification_service.verify_deployment(completed_record([]))
        assert result.status == VerificationStatus.SUCCESSFUL
        assert result.items == []

    @pytest.mark.asyncio
    async def test_missing_resource_group(
        self,
        verification_service: ResourceVerificationService,
        make_resource: MakeResource,
        completed_record: MakeRecord,
    ) -> None:
        vnet = make_resource("Microsoft.Network", "virtualNetworks", "vnet")
        record = completed_record([vnet.id], resource_group="rg-deleted")

        result = await verification_service.verify_deployment(record)
        assert result.status == VerificationStatus.FAILED
        assert result.items == []
        (issue,) = result.issues
        assert issue.category == IssueCategory.AVAILABILITY
        assert issue.severity == IssueSeverity.CRITICAL

    @pytest.mark.asyncio
    async def test_resource_group_lookup_error(
        self,
        verification_service: ResourceVerificationService,
        control_plane: SimulatedControlPlane,
        completed_record: MakeRecord,
    ) -> None:
        control_plane.fail("resource_group_exists", RemoteFailureError("unauthorized", 401))
        result = await verification_service.verify_deployment(completed_record([]))
        assert result.status == VerificationStatus.ERROR
        (issue,) = result.issues
        assert issue.category == IssueCategory.OTHER
        assert issue.severity == IssueSeverity.CRITICAL

    @pytest.mark.asyncio
    async def test_bounded_concurrency(
        self,
        control_plane: SimulatedControlPlane,
        make_resource: MakeResource,
        completed_record: MakeRecord,
    ) -> None:
        ids = [make_resource("Microsoft.Network", "virtualNetworks", f"vnet{i}").id for i in range(5)]
        service = ResourceVerificationService(control_plane, max_concurrency=2)
        result = await service.verify_deployment(completed_record(ids))
        assert [i.resource_id for i in result.items] == ids
        assert result.status == VerificationStatus.SUCCESSFUL
