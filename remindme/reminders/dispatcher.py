"""Polling loop that moves due reminders from the queue to delivery.

Each cycle peeks the earliest entry and, once it is due, removes it before
delivering. Removal first means a reminder is never delivered twice, at the
cost of losing it if delivery then fails (at-most-once after dequeue).
"""

import asyncio
import time
from enum import Enum
from typing import Callable

from remindme.common.errors import ClockError, CorruptPayloadError, DeliveryError, StoreUnavailable
from remindme.common.logging import logger, recipient_ctx
from remindme.common.metrics import (
    reminder_corrupt_payloads_total,
    reminder_delivery_failures_total,
    reminder_dispatch_lag_seconds,
    reminder_queue_depth,
    reminders_delivered_total,
)
from remindme.reminders.delivery import DeliveryChannel
from remindme.reminders.models import current_timestamp, deserialize
from remindme.reminders.store import ReminderQueue


class DispatchOutcome(str, Enum):
    EMPTY = "EMPTY"
    NOT_DUE = "NOT_DUE"
    DELIVERED = "DELIVERED"
    CLAIMED_ELSEWHERE = "CLAIMED_ELSEWHERE"
    CORRUPT = "CORRUPT"
    DELIVERY_FAILED = "DELIVERY_FAILED"
    STORE_ERROR = "STORE_ERROR"
    CLOCK_ERROR = "CLOCK_ERROR"


class ReminderDispatcher:
    """Single sequential dispatch loop over one reminder queue."""

    def __init__(
        self,
        queue: ReminderQueue,
        channel: DeliveryChannel,
        poll_interval_ms: int = 100,
        message_prefix: str = "Reminder: ",
        clock: Callable[[], float] = time.time,
        service_name: str = "reminder-scheduler",
    ) -> None:
        self.queue = queue
        self.channel = channel
        self.poll_interval = poll_interval_ms / 1000
        self.message_prefix = message_prefix
        self.clock = clock
        self.service_name = service_name

    async def _refresh_depth(self) -> None:
        """Update the depth gauge; a failed ZCARD never holds up dispatch."""

        try:
            depth = await self.queue.depth()
        except StoreUnavailable:
            return
        reminder_queue_depth.labels(service=self.service_name).set(depth)

    async def run_once(self) -> DispatchOutcome:
        """Run one peek / compare / remove / deliver cycle without sleeping."""

        try:
            entry = await self.queue.peek_earliest()
            if entry is None:
                reminder_queue_depth.labels(service=self.service_name).set(0)
                return DispatchOutcome.EMPTY

            payload, due_at = entry
            now = current_timestamp(self.clock)
            if due_at > now:
                await self._refresh_depth()
                return DispatchOutcome.NOT_DUE

            removed = await self.queue.remove(payload)
            await self._refresh_depth()
            if not removed:
                logger.info("reminder_claimed_elsewhere due_at=%s", due_at)
                return DispatchOutcome.CLAIMED_ELSEWHERE
        except StoreUnavailable as exc:
            logger.warning("dispatch_store_unavailable error=%s", exc)
            return DispatchOutcome.STORE_ERROR
        except ClockError as exc:
            logger.error("dispatch_clock_error error=%s", exc)
            return DispatchOutcome.CLOCK_ERROR

        try:
            reminder = deserialize(payload)
        except CorruptPayloadError as exc:
            reminder_corrupt_payloads_total.labels(service=self.service_name).inc()
            logger.error("reminder_dropped_corrupt due_at=%s payload=%r error=%s", due_at, payload[:200], exc)
            return DispatchOutcome.CORRUPT

        token = recipient_ctx.set(reminder.recipient)
        try:
            await self.channel.deliver(reminder.recipient, f"{self.message_prefix}{reminder.body}")
        except DeliveryError as exc:
            reminder_delivery_failures_total.labels(service=self.service_name).inc()
            logger.error(
                "reminder_delivery_failed recipient=%s due_at=%s created_at=%s error=%s",
                reminder.recipient,
                due_at,
                reminder.created_at,
                exc,
            )
            return DispatchOutcome.DELIVERY_FAILED
        finally:
            recipient_ctx.reset(token)

        reminders_delivered_total.labels(service=self.service_name).inc()
        reminder_dispatch_lag_seconds.labels(service=self.service_name).observe(max(0, now - due_at))
        logger.info("reminder_delivered recipient=%s due_at=%s lag_s=%s", reminder.recipient, due_at, now - due_at)
        return DispatchOutcome.DELIVERED

    async def run_forever(self, stop_event: asyncio.Event | None = None) -> None:
        """Repeat cycles until `stop_event` is set.

        The event is only checked between cycles, so a reminder already
        removed from the queue is always handed to delivery before stopping.
        """

        stop_event = stop_event or asyncio.Event()
        logger.info("dispatcher_started key=%s poll_interval_s=%s", self.queue.key, self.poll_interval)
        while not stop_event.is_set():
            try:
                await self.run_once()
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                logger.exception("dispatch_loop_error error=%s", exc)
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=self.poll_interval)
            except asyncio.TimeoutError:
                pass
        logger.info("dispatcher_stopped key=%s", self.queue.key)
