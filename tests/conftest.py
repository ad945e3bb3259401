"""Shared test fixtures."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import pytest

from infra_orchestrator.config import CloudSettings, Environment, Settings
from infra_orchestrator.domain.models.cloud_resource import RemoteResource
from infra_orchestrator.domain.models.deployment import (
    DeployedResource,
    DeploymentRecord,
    ScriptKind,
)
from infra_orchestrator.domain.services.deployment_service import DeploymentOrchestrator
from infra_orchestrator.domain.services.verification_service import ResourceVerificationService
from infra_orchestrator.infrastructure.cloud.simulated import SimulatedControlPlane
from infra_orchestrator.infrastructure.messaging.event_publisher import InMemoryEventPublisher
from infra_orchestrator.infrastructure.persistence.repositories.in_memory import (
    InMemoryDeploymentRegistry,
)


RESOURCE_GROUP = "rg-test"


@pytest.fixture
def settings() -> Settings:
    return Settings(
        environment=Environment.TESTING,
        debug=True,
        cloud=CloudSettings(default_resource_group=RESOURCE_GROUP),
    )


@pytest.fixture
def control_plane() -> SimulatedControlPlane:
    plane = SimulatedControlPlane()
    plane.add_resource_group(RESOURCE_GROUP)
    return plane


@pytest.fixture
def registry() -> InMemoryDeploymentRegistry:
    return InMemoryDeploymentRegistry()


@pytest.fixture
def event_publisher() -> InMemoryEventPublisher:
    return InMemoryEventPublisher()


@pytest.fixture
def orchestrator(
    control_plane: SimulatedControlPlane,
    registry: InMemoryDeploymentRegistry,
    event_publisher: InMemoryEventPublisher,
) -> DeploymentOrchestrator:
    return DeploymentOrchestrator(
        control_plane=control_plane,
        registry=registry,
        default_resource_group=RESOURCE_GROUP,
        event_publisher=event_publisher,
        poll_interval_seconds=0.0,
        poll_timeout_seconds=5.0,
    )


@pytest.fixture
def verification_service(control_plane: SimulatedControlPlane) -> ResourceVerificationService:
    return ResourceVerificationService(control_plane)


@pytest.fixture
def make_resource(control_plane: SimulatedControlPlane) -> Callable[..., RemoteResource]:
    """Create a live resource in the test resource group."""

    def _make(
        provider_namespace: str,
        resource_type_name: str,
        name: str,
        properties: dict[str, Any] | None = None,
    ) -> RemoteResource:
        resource = control_plane.make_resource(
            RESOURCE_GROUP, provider_namespace, resource_type_name, name, properties
        )
        return control_plane.add_resource(resource)

    return _make


@pytest.fixture
def completed_record() -> Callable[..., DeploymentRecord]:
    """Build a succeeded record that produced the given resource ids."""

    def _make(resource_ids: list[str], resource_group: str = RESOURCE_GROUP) -> DeploymentRecord:
        record = DeploymentRecord(
            name="deployment-test",
            resource_group=resource_group,
            region="eastus",
            script_kind=ScriptKind.BICEP,
        )
        record.mark_submitted()
        record.succeed([
            DeployedResource(
                resource_id=rid,
                name=rid.rsplit("/", 1)[-1],
                resource_type="/".join(rid.split("/")[6:8]),
            )
            for rid in resource_ids
        ])
        record.collect_events()
        return record

    return _make
