from __future__ import annotations

from enum import StrEnum


class EventType(StrEnum):
    POST_CREATED = "POST_CREATED"
    FOLLOWED = "FOLLOWED"
    LIKED = "LIKED"
    COMMENTED = "COMMENTED"


class OutboxStatus(StrEnum):
    PENDING = "PENDING"
    PROCESSED = "PROCESSED"


class NotificationType(StrEnum):
    NEW_POST_FROM_FOLLOWING = "NEW_POST_FROM_FOLLOWING"
    NEW_FOLLOWER = "NEW_FOLLOWER"
    NEW_LIKE_ON_YOUR_POST = "NEW_LIKE_ON_YOUR_POST"
    NEW_COMMENT_ON_YOUR_POST = "NEW_COMMENT_ON_YOUR_POST"


class EntityKind(StrEnum):
    POST = "POST"
    USER = "USER"


class DeliveryStatus(StrEnum):
    PENDING = "PENDING"
    EMITTED = "EMITTED"
    FAILED = "FAILED"
