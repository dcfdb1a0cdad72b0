"""Domain events accepted by the ingestor.

``DomainEvent`` is a closed union: one variant per ``EventType``, each with a
fixed metadata shape.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, ClassVar

from notify_service.domain.value_objects.enums import EventType


@dataclass(frozen=True, slots=True)
class PostCreated:
    type: ClassVar[EventType] = EventType.POST_CREATED

    actor_id: str
    entity_id: str
    content: str | None = None


@dataclass(frozen=True, slots=True)
class Followed:
    """``entity_id`` is the followed user."""

    type: ClassVar[EventType] = EventType.FOLLOWED

    actor_id: str
    entity_id: str


@dataclass(frozen=True, slots=True)
class Liked:
    type: ClassVar[EventType] = EventType.LIKED

    actor_id: str
    entity_id: str
    entity_owner_id: str


@dataclass(frozen=True, slots=True)
class Commented:
    type: ClassVar[EventType] = EventType.COMMENTED

    actor_id: str
    entity_id: str
    entity_owner_id: str
    comment: str | None = None


DomainEvent = PostCreated | Followed | Liked | Commented


def event_to_payload(event: DomainEvent) -> dict[str, Any]:
    """Storage form of an event (the outbox ``payload`` column)."""
    match event:
        case PostCreated(content=content):
            metadata: dict[str, Any] = {"content": content}
        case Followed():
            metadata = {}
        case Liked(entity_owner_id=owner):
            metadata = {"entity_owner_id": owner}
        case Commented(entity_owner_id=owner, comment=comment):
            metadata = {"entity_owner_id": owner, "comment": comment}
        case _:
            raise TypeError(f"Unsupported event: {event!r}")
    return {
        "type": event.type.value,
        "actor_id": event.actor_id,
        "entity_id": event.entity_id,
        "metadata": metadata,
    }
