"""Reminder submission: resolve the delay, build the record and enqueue it."""

import time
from typing import Callable, NamedTuple

from remindme.common.errors import ReminderError
from remindme.common.logging import logger
from remindme.common.metrics import reminders_rejected_total, reminders_scheduled_total
from remindme.reminders.commands import parse_reminder_arguments
from remindme.reminders.models import create_reminder, serialize
from remindme.reminders.store import ReminderQueue
from remindme.reminders.units import resolve


class ScheduledReminder(NamedTuple):
    due_at: int
    quantity: int
    unit: str
    confirmation: str


class ReminderService:
    """Accepts reminder requests and writes them to the shared queue."""

    def __init__(
        self,
        queue: ReminderQueue,
        clock: Callable[[], float] = time.time,
        service_name: str = "reminder-scheduler",
    ) -> None:
        self.queue = queue
        self.clock = clock
        self.service_name = service_name

    async def submit(self, quantity: int, unit_token: str, recipient: str, body: str) -> ScheduledReminder:
        """Schedule one reminder; nothing is stored unless every step succeeds."""

        try:
            offset_seconds = resolve(quantity, unit_token)
            due_at, reminder = create_reminder(offset_seconds, recipient, body, clock=self.clock)
            await self.queue.insert(serialize(reminder), due_at)
        except ReminderError as exc:
            reminders_rejected_total.labels(service=self.service_name, error_code=exc.code).inc()
            logger.info("reminder_rejected recipient=%s code=%s error=%s", recipient, exc.code, exc)
            raise

        reminders_scheduled_total.labels(service=self.service_name).inc()
        logger.info("reminder_scheduled recipient=%s due_at=%s offset_s=%s", recipient, due_at, offset_seconds)
        return ScheduledReminder(
            due_at=due_at,
            quantity=quantity,
            unit=unit_token,
            confirmation=f"You will be reminded {quantity} {unit_token} from now",
        )

    async def submit_command(self, text: str, recipient: str) -> ScheduledReminder:
        """Schedule from raw `!reminder <amount> <unit> <message>` text."""

        try:
            args = parse_reminder_arguments(text)
        except ReminderError as exc:
            reminders_rejected_total.labels(service=self.service_name, error_code=exc.code).inc()
            logger.info("reminder_command_invalid recipient=%s text=%r error=%s", recipient, text, exc)
            raise
        return await self.submit(args.quantity, args.unit, recipient, args.message)
