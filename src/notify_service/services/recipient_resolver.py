"""Who gets notified about an event. Pure: no I/O, no state."""
from __future__ import annotations

import logging
from typing import Iterable

from notify_service.domain.events.domain_event import (
    Commented,
    DomainEvent,
    Followed,
    Liked,
    PostCreated,
)

logger = logging.getLogger(__name__)


def resolve_recipients(event: DomainEvent | None, followers: Iterable[str] = ()) -> frozenset[str]:
    """Return the recipient ids for ``event``, never including its actor.

    ``followers`` are the actor's followers; only post events use them.
    Unknown events resolve to nobody.
    """
    match event:
        case PostCreated():
            candidates = set(followers)
        case Followed(entity_id=target):
            candidates = {target}
        case Liked(entity_owner_id=owner) | Commented(entity_owner_id=owner):
            candidates = {owner}
        case _:
            logger.warning("No recipient rule for event %r", event)
            return frozenset()

    candidates.discard(event.actor_id)
    candidates.discard("")
    return frozenset(candidates)
