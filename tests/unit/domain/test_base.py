"""Unit tests for base domain models and deployment events."""

from __future__ import annotations

from datetime import timedelta

import pytest
from pydantic import ValidationError

from infra_orchestrator.domain.models.base import (
    AggregateRoot,
    DomainEntity,
    DomainEvent,
    elapsed,
    generate_id,
    utc_now,
    ValueObject,
)
from infra_orchestrator.domain.events import (
    DeploymentCanceled,
    DeploymentFailed,
    DeploymentSubmitted,
    DeploymentSucceeded,
)


class TestIdentifiers:
    def test_unique(self) -> None:
        ids = {generate_id() for _ in range(100)}
        assert len(ids) == 100

    def test_utc_now_is_aware(self) -> None:
        assert utc_now().tzinfo is not None

    def test_elapsed_open_and_closed(self) -> None:
        start = utc_now() - timedelta(seconds=30)
        assert elapsed(start, start + timedelta(seconds=5)) == timedelta(seconds=5)
        assert elapsed(start) >= timedelta(seconds=30)


class TestDomainEntity:
    def test_touch_bumps_version(self) -> None:
        entity = DomainEntity()
        before = entity.updated_at
        entity.touch()
        assert entity.version == 2
        assert entity.updated_at >= before

    def test_id_cannot_be_reassigned(self) -> None:
        entity = DomainEntity()
        with pytest.raises(ValidationError):
            entity.id = "replacement"


class TestValueObject:
    def test_frozen(self) -> None:
        class Region(ValueObject):
            name: str

        region = Region(name="eastus")
        with pytest.raises(ValidationError):
            region.name = "westus"


class TestAggregateRoot:
    def test_events_are_per_instance(self) -> None:
        first = AggregateRoot()
        second = AggregateRoot()
        first.add_event(DomainEvent(event_type="a"))
        assert len(first.pending_events) == 1
        assert second.pending_events == []

    def test_collect_clears(self) -> None:
        agg = AggregateRoot()
        agg.add_event(DomainEvent(event_type="a"))
        agg.add_event(DomainEvent(event_type="b"))
        assert len(agg.collect_events()) == 2
        assert agg.collect_events() == []


class TestDeploymentEvents:
    def test_event_types(self) -> None:
        assert DeploymentSubmitted(
            deployment_id="d", deployment_name="n", resource_group="rg"
        ).event_type == "deployment.submitted"
        assert DeploymentSucceeded(deployment_id="d", resource_count=2).event_type == "deployment.succeeded"
        assert DeploymentFailed(deployment_id="d", error_message="x").event_type == "deployment.failed"
        assert DeploymentCanceled(deployment_id="d").event_type == "deployment.canceled"

    def test_json_payload(self) -> None:
        payload = DeploymentSucceeded(deployment_id="d", resource_count=2).to_payload()
        assert payload["deployment_id"] == "d"
        assert payload["resource_count"] == 2
        assert isinstance(payload["occurred_at"], str)
