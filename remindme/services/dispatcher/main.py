"""Standalone dispatch worker.

Runs only the dispatch loop against the shared queue. Several workers may run
at once; a reminder is delivered by whichever one removes it first.

Run with `python -m remindme.services.dispatcher.main`.
"""

import asyncio
import signal

from remindme.common.config import settings
from remindme.common.logging import configure_logging, logger
from remindme.common.startup import log_startup_config
from remindme.reminders.delivery import build_delivery_channel
from remindme.reminders.dispatcher import ReminderDispatcher
from remindme.reminders.store import ReminderQueue


async def run(stop_event: asyncio.Event | None = None) -> None:
    """Connect, then dispatch until `stop_event` is set or SIGINT/SIGTERM."""

    queue = ReminderQueue.from_settings(settings)
    channel = build_delivery_channel(settings)
    try:
        await queue.ping()
        dispatcher = ReminderDispatcher(
            queue,
            channel,
            poll_interval_ms=settings.poll_interval_ms,
            message_prefix=settings.reminder_message_prefix,
            service_name=settings.service_name,
        )
        if stop_event is None:
            stop_event = asyncio.Event()
            loop = asyncio.get_running_loop()
            for sig in (signal.SIGINT, signal.SIGTERM):
                loop.add_signal_handler(sig, stop_event.set)
        await dispatcher.run_forever(stop_event)
    finally:
        await channel.aclose()
        await queue.close()


def main() -> None:
    configure_logging()
    log_startup_config(
        settings,
        ["redis_url", "reminder_queue_key", "poll_interval_ms", "delivery_webhook_url"],
    )
    try:
        asyncio.run(run())
    except Exception as exc:
        logger.critical("dispatcher_startup_failed error=%s", exc)
        raise SystemExit(1) from exc


if __name__ == "__main__":
    main()
