"""Inbound event parsing and ingestion outcomes."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Annotated, Any, Literal, Mapping, Union
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from notify_service.application.exceptions import ValidationError
from notify_service.domain.events.domain_event import (
    Commented,
    DomainEvent,
    Followed,
    Liked,
    PostCreated,
)

_NonEmpty = Annotated[str, Field(min_length=1, max_length=64)]


class _WireModel(BaseModel):
    # Accepts both the camelCase wire form and the snake_case storage form.
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
        extra="ignore",
        frozen=True,
    )


class _EventIn(_WireModel):
    actor_id: _NonEmpty
    entity_id: _NonEmpty


class PostMetadata(_WireModel):
    content: str | None = None


class OwnedEntityMetadata(_WireModel):
    entity_owner_id: _NonEmpty


class CommentMetadata(OwnedEntityMetadata):
    comment: str | None = None


class PostCreatedIn(_EventIn):
    type: Literal["POST_CREATED"]
    metadata: PostMetadata = Field(default_factory=PostMetadata)

    def to_domain(self) -> PostCreated:
        return PostCreated(self.actor_id, self.entity_id, content=self.metadata.content)


class FollowedIn(_EventIn):
    type: Literal["FOLLOWED"]

    def to_domain(self) -> Followed:
        return Followed(self.actor_id, self.entity_id)


class LikedIn(_EventIn):
    type: Literal["LIKED"]
    metadata: OwnedEntityMetadata

    def to_domain(self) -> Liked:
        return Liked(self.actor_id, self.entity_id, self.metadata.entity_owner_id)


class CommentedIn(_EventIn):
    type: Literal["COMMENTED"]
    metadata: CommentMetadata

    def to_domain(self) -> Commented:
        return Commented(
            self.actor_id,
            self.entity_id,
            self.metadata.entity_owner_id,
            comment=self.metadata.comment,
        )


EventIn = Annotated[
    Union[PostCreatedIn, FollowedIn, LikedIn, CommentedIn],
    Field(discriminator="type"),
]

_event_adapter: TypeAdapter[Any] = TypeAdapter(EventIn)


def parse_domain_event(data: Mapping[str, Any]) -> DomainEvent:
    """Validate a raw event dict. Raises ``ValidationError`` on any problem."""
    if not isinstance(data, Mapping):
        raise ValidationError("Event must be a JSON object")
    try:
        parsed = _event_adapter.validate_python(dict(data))
    except PydanticValidationError as exc:
        reasons = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'event'}: {err['msg']}"
            for err in exc.errors()
        )
        raise ValidationError(reasons) from exc
    return parsed.to_domain()


@dataclass(frozen=True, slots=True)
class Accepted:
    event_id: UUID


@dataclass(frozen=True, slots=True)
class AlreadyProcessed:
    event_id: UUID | None = None


@dataclass(frozen=True, slots=True)
class Rejected:
    reason: str


IngestResult = Accepted | AlreadyProcessed | Rejected
