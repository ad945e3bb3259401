"""Pydantic building blocks shared by the domain models."""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone
from typing import Any

from pydantic import BaseModel, Field, PrivateAttr


def generate_id() -> str:
    return str(uuid.uuid4())


def utc_now() -> datetime:
    """Timezone-aware current time; every timestamp in the domain is UTC."""
    return datetime.now(timezone.utc)


def elapsed(start: datetime, end: datetime | None = None) -> timedelta:
    """Time from ``start`` to ``end``, or to now while ``end`` is unset."""
    return (end or utc_now()) - start


class DomainEntity(BaseModel):
    """Mutable model with a stable identity.

    Assignments are validated, and ``touch`` records every state change by
    bumping ``version``.
    """

    id: str = Field(default_factory=generate_id, frozen=True)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
    version: int = 1

    model_config = {"validate_assignment": True}

    def touch(self) -> None:
        self.updated_at = utc_now()
        self.version += 1


class ValueObject(BaseModel):
    """Immutable model compared by value."""

    model_config = {"frozen": True}


class DomainEvent(ValueObject):
    """Something that happened to an aggregate, published after the fact."""

    event_id: str = Field(default_factory=generate_id)
    event_type: str = ""
    occurred_at: datetime = Field(default_factory=utc_now)
    correlation_id: str = Field(default_factory=generate_id)
    metadata: dict[str, Any] = Field(default_factory=dict)

    def to_payload(self) -> dict[str, Any]:
        """JSON-safe body handed to an ``EventPublisher``."""
        return self.model_dump(mode="json")


class AggregateRoot(DomainEntity):
    """Entity that buffers domain events until the owning service publishes them."""

    _domain_events: list[DomainEvent] = PrivateAttr(default_factory=list)

    def add_event(self, event: DomainEvent) -> None:
        self._domain_events.append(event)

    def collect_events(self) -> list[DomainEvent]:
        """Drain the buffer."""
        events, self._domain_events = self._domain_events, []
        return events

    @property
    def pending_events(self) -> list[DomainEvent]:
        return list(self._domain_events)
