"""Dispatch loop cycles: due detection, removal, corruption and failures."""

import asyncio
from unittest.mock import AsyncMock

import pytest
import redis

from remindme.common.errors import DeliveryError, StoreUnavailable
from remindme.reminders.dispatcher import DispatchOutcome, ReminderDispatcher
from remindme.reminders.models import Reminder, serialize
from remindme.reminders.service import ReminderService
from remindme.reminders.store import ReminderQueue

from conftest import T0, FakeClock


def make_dispatcher(queue, clock, channel=None, poll_interval_ms=100):
    channel = channel or AsyncMock()
    return ReminderDispatcher(queue, channel, poll_interval_ms=poll_interval_ms, clock=clock), channel


@pytest.mark.asyncio
async def test_empty_queue_is_idle(queue, clock):
    """Nothing to do on an empty queue."""

    dispatcher, channel = make_dispatcher(queue, clock)

    assert await dispatcher.run_once() is DispatchOutcome.EMPTY
    channel.deliver.assert_not_awaited()


@pytest.mark.asyncio
async def test_reminder_delivered_exactly_once_when_due(queue, clock):
    """Reminder waits until due, then goes out once."""

    service = ReminderService(queue, clock=clock)
    dispatcher, channel = make_dispatcher(queue, clock)

    scheduled = await service.submit(2, "hours", "U", "call mom")
    assert scheduled.due_at == T0 + 7200
    assert await queue.depth() == 1

    clock.advance(7199)
    assert await dispatcher.run_once() is DispatchOutcome.NOT_DUE
    channel.deliver.assert_not_awaited()
    assert await queue.depth() == 1

    clock.advance(1)
    assert await dispatcher.run_once() is DispatchOutcome.DELIVERED
    channel.deliver.assert_awaited_once_with("U", "Reminder: call mom")
    assert await queue.depth() == 0

    clock.advance(3600)
    assert await dispatcher.run_once() is DispatchOutcome.EMPTY
    channel.deliver.assert_awaited_once()


@pytest.mark.asyncio
async def test_overdue_reminders_go_out_in_due_order(queue, clock):
    """Backlog is drained earliest first."""

    service = ReminderService(queue, clock=clock)
    dispatcher, channel = make_dispatcher(queue, clock)
    await service.submit(3, "minutes", "U", "third")
    await service.submit(1, "minute", "U", "first")
    await service.submit(2, "minutes", "U", "second")

    clock.advance(3600)
    for _ in range(3):
        assert await dispatcher.run_once() is DispatchOutcome.DELIVERED
    assert [call.args[1] for call in channel.deliver.await_args_list] == [
        "Reminder: first",
        "Reminder: second",
        "Reminder: third",
    ]


@pytest.mark.asyncio
async def test_identical_submissions_deliver_once(queue, clock):
    """Identical submissions collapse and are delivered once."""

    service = ReminderService(queue, clock=clock)
    dispatcher, channel = make_dispatcher(queue, clock)

    await asyncio.gather(
        service.submit(10, "seconds", "U", "same"),
        service.submit(10, "seconds", "U", "same"),
    )
    distinct = await queue.depth()

    clock.advance(10)
    outcomes = [await dispatcher.run_once() for _ in range(3)]
    assert outcomes.count(DispatchOutcome.DELIVERED) == distinct == 1
    assert outcomes[-1] is DispatchOutcome.EMPTY
    assert channel.deliver.await_count == distinct


@pytest.mark.asyncio
async def test_corrupt_entry_dropped_and_loop_continues(queue, redis_client, clock, caplog):
    """Undecodable entries are removed, logged and skipped."""

    await redis_client.zadd(queue.key, {b"\x80\x81{not a reminder": T0})
    await queue.insert(serialize(Reminder(created_at=T0, recipient="U", body="ok")), T0 + 1)
    dispatcher, channel = make_dispatcher(queue, clock)

    assert await dispatcher.run_once() is DispatchOutcome.CORRUPT
    assert "reminder_dropped_corrupt" in caplog.text
    assert await queue.depth() == 1
    channel.deliver.assert_not_awaited()

    clock.advance(1)
    assert await dispatcher.run_once() is DispatchOutcome.DELIVERED
    channel.deliver.assert_awaited_once_with("U", "Reminder: ok")


@pytest.mark.asyncio
async def test_delivery_failure_is_not_requeued(queue, clock):
    """Failed deliveries are lost, not retried."""

    channel = AsyncMock()
    channel.deliver.side_effect = DeliveryError("recipient unreachable")
    service = ReminderService(queue, clock=clock)
    dispatcher, _ = make_dispatcher(queue, clock, channel=channel)
    await service.submit(0, "seconds", "U", "lost")

    assert await dispatcher.run_once() is DispatchOutcome.DELIVERY_FAILED
    assert await queue.depth() == 0
    assert await dispatcher.run_once() is DispatchOutcome.EMPTY
    channel.deliver.assert_awaited_once()


@pytest.mark.asyncio
async def test_store_outage_is_reported_not_raised(clock):
    """Store outages end the cycle without raising."""

    client = AsyncMock()
    client.zrange.side_effect = redis.ConnectionError("connection refused")
    dispatcher, channel = make_dispatcher(ReminderQueue(client, key="q"), clock)

    assert await dispatcher.run_once() is DispatchOutcome.STORE_ERROR
    channel.deliver.assert_not_awaited()


@pytest.mark.asyncio
async def test_entry_removed_by_another_dispatcher_is_skipped(clock):
    """An entry another worker removed is not delivered here."""

    payload = serialize(Reminder(created_at=T0, recipient="U", body="x"))
    queue = AsyncMock(spec=ReminderQueue)
    queue.key = "q"
    queue.peek_earliest.return_value = (payload, T0)
    queue.depth.return_value = 1
    queue.remove.return_value = False
    dispatcher, channel = make_dispatcher(queue, clock)

    assert await dispatcher.run_once() is DispatchOutcome.CLAIMED_ELSEWHERE
    channel.deliver.assert_not_awaited()


@pytest.mark.asyncio
async def test_two_dispatchers_never_double_deliver(queue, redis_client, clock):
    """Concurrent workers deliver a reminder once between them."""

    service = ReminderService(queue, clock=clock)
    await service.submit(0, "seconds", "U", "once")
    first, first_channel = make_dispatcher(queue, clock)
    second, second_channel = make_dispatcher(ReminderQueue(redis_client, key=queue.key), clock)

    outcomes = await asyncio.gather(first.run_once(), second.run_once())

    assert outcomes.count(DispatchOutcome.DELIVERED) == 1
    assert first_channel.deliver.await_count + second_channel.deliver.await_count == 1


@pytest.mark.asyncio
async def test_clock_failure_is_reported(queue):
    """A broken clock leaves the entry queued."""

    await queue.insert(b"payload", T0)
    dispatcher, channel = make_dispatcher(queue, FakeClock(-1))

    assert await dispatcher.run_once() is DispatchOutcome.CLOCK_ERROR
    assert await queue.depth() == 1
    channel.deliver.assert_not_awaited()


@pytest.mark.asyncio
async def test_run_forever_survives_errors_and_stops_on_signal(queue, clock):
    """Unexpected errors do not end the loop; the stop event does."""

    dispatcher, _ = make_dispatcher(queue, clock, poll_interval_ms=1)
    stop_event = asyncio.Event()
    calls = 0

    async def flaky_cycle():
        nonlocal calls
        calls += 1
        if calls == 1:
            raise RuntimeError("unexpected")
        if calls == 3:
            stop_event.set()
        return DispatchOutcome.EMPTY

    dispatcher.run_once = flaky_cycle
    await asyncio.wait_for(dispatcher.run_forever(stop_event), timeout=5)

    assert calls == 3


@pytest.mark.asyncio
async def test_run_forever_delivers_then_stops(queue, clock):
    """The loop delivers due work and honours the stop event."""

    service = ReminderService(queue, clock=clock)
    stop_event = asyncio.Event()
    channel = AsyncMock()
    channel.deliver.side_effect = lambda recipient, text: stop_event.set()
    dispatcher, _ = make_dispatcher(queue, clock, channel=channel, poll_interval_ms=1)
    await service.submit(0, "seconds", "U", "bye")

    await asyncio.wait_for(dispatcher.run_forever(stop_event), timeout=5)

    channel.deliver.assert_awaited_once_with("U", "Reminder: bye")
    assert await queue.depth() == 0


@pytest.mark.asyncio
async def test_depth_refresh_failure_does_not_delay_delivery(clock):
    """A failing ZCARD leaves the due reminder flowing to delivery."""

    payload = serialize(Reminder(created_at=T0, recipient="U", body="on time"))
    queue = AsyncMock(spec=ReminderQueue)
    queue.key = "q"
    queue.peek_earliest.return_value = (payload, T0)
    queue.depth.side_effect = StoreUnavailable("depth", "connection refused")
    queue.remove.return_value = True
    dispatcher, channel = make_dispatcher(queue, clock)

    assert await dispatcher.run_once() is DispatchOutcome.DELIVERED
    channel.deliver.assert_awaited_once_with("U", "Reminder: on time")
