from __future__ import annotations

import asyncio
import uuid

import pytest

from notify_service.application.dto.jobs import FanoutJob
from notify_service.application.exceptions import FatalProcessingError
from notify_service.domain.value_objects.enums import (
    DeliveryStatus,
    EntityKind,
    NotificationType,
    OutboxStatus,
)
from notify_service.services import fanout_service, notification_service
from notify_service.services.relay_service import RelayService
from tests.conftest import make_outbox_record, uow_factory_for

POST_PAYLOAD = {
    "type": "POST_CREATED",
    "actor_id": "A",
    "entity_id": "p1",
    "metadata": {"content": "hello"},
}


@pytest.fixture
def relay(publisher):
    return RelayService(publisher, "test.relay")


async def _run(uow, relay, record, clock, **kwargs):
    return await fanout_service.process_job(
        FanoutJob(record.id), uow_factory_for(uow), relay, clock=clock, **kwargs,
    )


@pytest.mark.asyncio
async def test_post_notifies_followers_but_not_actor(uow, relay, publisher, clock):
    uow.directory.follows["A"] = ["B", "C"]
    uow.directory.names["A"] = "Alice"
    record = make_outbox_record(POST_PAYLOAD)
    uow.outbox._records[record.id] = record

    result = await _run(uow, relay, record, clock)

    assert result.recipients == {"B", "C"}
    assert uow.notifications.for_recipient("A") == []
    for recipient in ("B", "C"):
        [n] = uow.notifications.for_recipient(recipient)
        assert n.actor_id == "A"
        assert n.source_entity_id == "p1"
        assert n.source_entity_kind == EntityKind.POST
        assert n.type == NotificationType.NEW_POST_FROM_FOLLOWING
        assert n.message == "Alice created a new post"
        assert n.delivery_status == DeliveryStatus.EMITTED
    assert uow.outbox._records[record.id].status == OutboxStatus.PROCESSED
    assert sorted(p["recipient_id"] for _, p in publisher.published) == ["B", "C"]


@pytest.mark.asyncio
async def test_post_then_read_updates_unread_count(uow, relay, clock):
    uow.directory.follows["A"] = ["B", "C"]
    record = make_outbox_record(POST_PAYLOAD)
    uow.outbox._records[record.id] = record

    await _run(uow, relay, record, clock)

    assert await notification_service.unread_count("B", uow) == 1
    [n] = uow.notifications.for_recipient("B")
    await notification_service.mark_read(n.id, uow)
    assert await notification_service.unread_count("B", uow) == 0
    assert await notification_service.unread_count("C", uow) == 1


@pytest.mark.asyncio
async def test_follow_notifies_target_only(uow, relay, clock):
    record = make_outbox_record(
        {"type": "FOLLOWED", "actor_id": "A", "entity_id": "B", "metadata": {}}
    )
    uow.outbox._records[record.id] = record

    await _run(uow, relay, record, clock)

    assert len(uow.notifications._rows) == 1
    [n] = uow.notifications.for_recipient("B")
    assert n.actor_id == "A"
    assert n.type == NotificationType.NEW_FOLLOWER
    assert n.source_entity_kind == EntityKind.USER
    # Unknown display name falls back to the actor id.
    assert n.message == "A started following you"


@pytest.mark.asyncio
async def test_redelivered_job_creates_nothing_new(uow, relay, publisher, clock):
    uow.directory.follows["A"] = ["B", "C"]
    record = make_outbox_record(POST_PAYLOAD)
    uow.outbox._records[record.id] = record

    await _run(uow, relay, record, clock)
    second = await _run(uow, relay, record, clock)

    assert second.already_processed is True
    assert len(uow.notifications.for_recipient("B")) == 1
    assert len(uow.notifications.for_recipient("C")) == 1
    assert len(publisher.published) == 2


@pytest.mark.asyncio
async def test_rerun_before_mark_processed_skips_existing(uow, relay, publisher, clock):
    """A crash after the writes but before completion re-runs the whole job."""
    uow.directory.follows["A"] = ["B", "C"]
    record = make_outbox_record(POST_PAYLOAD)
    uow.outbox._records[record.id] = record

    await _run(uow, relay, record, clock)
    uow.outbox._records[record.id] = record  # back to PENDING

    result = await _run(uow, relay, record, clock)

    assert result.created == []
    assert len(uow.notifications._rows) == 2
    assert len(publisher.published) == 2
    assert uow.outbox._records[record.id].status == OutboxStatus.PROCESSED


@pytest.mark.asyncio
async def test_partial_write_failure_fails_job_and_retry_fills_gap(uow, relay, clock):
    uow.directory.follows["A"] = ["B", "C", "D"]
    record = make_outbox_record(POST_PAYLOAD)
    uow.outbox._records[record.id] = record
    uow.notifications.fail_for = {"C"}

    with pytest.raises(RuntimeError):
        await _run(uow, relay, record, clock)

    assert {n.recipient_user_id for n in uow.notifications._rows} == {"B", "D"}
    assert uow.outbox._records[record.id].status == OutboxStatus.PENDING

    uow.notifications.fail_for = set()
    result = await _run(uow, relay, record, clock)

    assert [n.recipient_user_id for n in result.created] == ["C"]
    assert {n.recipient_user_id for n in uow.notifications._rows} == {"B", "C", "D"}
    assert uow.outbox._records[record.id].status == OutboxStatus.PROCESSED


@pytest.mark.asyncio
async def test_missing_record_is_fatal(uow, relay, clock):
    with pytest.raises(FatalProcessingError):
        await fanout_service.process_job(
            FanoutJob(uuid.uuid4()), uow_factory_for(uow), relay, clock=clock,
        )


@pytest.mark.asyncio
async def test_relay_failure_marks_failed_and_still_completes(uow, relay, publisher, clock):
    publisher.fail = True
    record = make_outbox_record(
        {"type": "LIKED", "actor_id": "A", "entity_id": "p1", "metadata": {"entity_owner_id": "B"}}
    )
    uow.outbox._records[record.id] = record

    await _run(uow, relay, record, clock)

    [n] = uow.notifications.for_recipient("B")
    assert n.delivery_status == DeliveryStatus.FAILED
    assert n.message == "A liked your post"
    assert uow.outbox._records[record.id].status == OutboxStatus.PROCESSED


@pytest.mark.asyncio
async def test_unusable_payload_marked_processed_without_notifications(uow, relay, clock):
    record = make_outbox_record({"type": "SHARED", "actor_id": "A", "entity_id": "p1"})
    uow.outbox._records[record.id] = record

    result = await _run(uow, relay, record, clock)

    assert result.recipients == frozenset()
    assert uow.notifications._rows == []
    assert uow.outbox._records[record.id].status == OutboxStatus.PROCESSED


@pytest.mark.asyncio
async def test_post_without_followers_just_completes(uow, relay, publisher, clock):
    record = make_outbox_record(POST_PAYLOAD)
    uow.outbox._records[record.id] = record

    await _run(uow, relay, record, clock)

    assert uow.notifications._rows == []
    assert publisher.published == []
    assert uow.outbox._records[record.id].status == OutboxStatus.PROCESSED


@pytest.mark.asyncio
async def test_write_concurrency_of_one_still_covers_everyone(uow, relay, clock):
    followers = [f"u{i}" for i in range(25)]
    uow.directory.follows["A"] = followers
    record = make_outbox_record(POST_PAYLOAD)
    uow.outbox._records[record.id] = record

    await _run(uow, relay, record, clock, write_concurrency=1)

    assert {n.recipient_user_id for n in uow.notifications._rows} == set(followers)


@pytest.mark.asyncio
async def test_recipient_writes_never_exceed_write_concurrency(uow, relay, clock):
    uow.directory.follows["A"] = [f"u{i}" for i in range(12)]
    uow.notifications.write_delay = 0.01
    record = make_outbox_record(POST_PAYLOAD)
    uow.outbox._records[record.id] = record

    await _run(uow, relay, record, clock, write_concurrency=3)

    assert uow.notifications.peak_in_flight == 3
    assert len(uow.notifications._rows) == 12


@pytest.mark.asyncio
async def test_shared_write_slots_cap_writes_across_jobs(uow, relay, clock):
    uow.directory.follows["A"] = [f"u{i}" for i in range(8)]
    uow.directory.follows["Z"] = [f"v{i}" for i in range(8)]
    uow.notifications.write_delay = 0.01
    first = make_outbox_record(POST_PAYLOAD)
    second = make_outbox_record({**POST_PAYLOAD, "actor_id": "Z", "entity_id": "p2"})
    for record in (first, second):
        uow.outbox._records[record.id] = record
    slots = asyncio.Semaphore(2)

    await asyncio.gather(
        _run(uow, relay, first, clock, write_concurrency=10, write_slots=slots),
        _run(uow, relay, second, clock, write_concurrency=10, write_slots=slots),
    )

    assert uow.notifications.peak_in_flight == 2
    assert len(uow.notifications._rows) == 16

def test_comment_description():
    from notify_service.domain.events.domain_event import Commented

    ntype, kind, message = fanout_service.describe(Commented("A", "p1", "B"), "Alice")
    assert ntype == NotificationType.NEW_COMMENT_ON_YOUR_POST
    assert kind == EntityKind.POST
    assert message == "Alice commented on your post"
