"""Public entrypoint for scheduling reminders.

Stands in for the chat front end: it accepts reminder requests behind an API
key, writes them to the Redis queue and, unless disabled, runs a dispatch loop
alongside the HTTP server.

Run with `uvicorn remindme.services.scheduler.main:app --host 0.0.0.0 --port 8000`.
"""

import asyncio
from contextlib import asynccontextmanager
from time import perf_counter
from uuid import uuid4

from fastapi import FastAPI, Header, HTTPException, Request

from remindme.common.config import settings
from remindme.common.errors import (
    ClockError,
    CorruptPayloadError,
    InvalidQuantity,
    InvalidReminder,
    InvalidTimeUnit,
    OffsetOverflow,
    ReminderError,
    StoreUnavailable,
)
from remindme.common.logging import configure_logging, logger, trace_id_ctx
from remindme.common.metrics import http_request_duration_seconds, http_requests_total, metrics_response
from remindme.common.startup import log_startup_config
from remindme.common.tracing import instrument_app, setup_tracing
from remindme.reminders.commands import USAGE_TEXT
from remindme.reminders.delivery import build_delivery_channel
from remindme.reminders.dispatcher import ReminderDispatcher
from remindme.reminders.models import deserialize
from remindme.reminders.service import ReminderService
from remindme.reminders.store import ReminderQueue
from remindme.services.scheduler.schemas import (
    QueueEntry,
    QueueResponse,
    ReminderCommandRequest,
    ReminderCreateRequest,
    ReminderScheduledResponse,
)

configure_logging()
setup_tracing(settings.service_name)
log_startup_config(settings)
service = ReminderService(ReminderQueue.from_settings(settings), service_name=settings.service_name)


@asynccontextmanager
async def lifespan(_: FastAPI):
    """Check the store, then run the dispatch loop with the app lifecycle."""

    # An unreachable store at startup is the one fatal condition.
    await service.queue.ping()
    stop_event = asyncio.Event()
    dispatcher_task = None
    channel = None
    dispatcher_queue = None
    if settings.dispatcher_enabled:
        channel = build_delivery_channel(settings)
        dispatcher_queue = ReminderQueue.from_settings(settings)
        dispatcher = ReminderDispatcher(
            dispatcher_queue,
            channel,
            poll_interval_ms=settings.poll_interval_ms,
            message_prefix=settings.reminder_message_prefix,
            service_name=settings.service_name,
        )
        dispatcher_task = asyncio.create_task(dispatcher.run_forever(stop_event))
    yield
    stop_event.set()
    if dispatcher_task is not None:
        await dispatcher_task
        await channel.aclose()
        await dispatcher_queue.close()
    await service.queue.close()


app = FastAPI(title="Reminder Scheduler", lifespan=lifespan)
instrument_app(app)


@app.middleware("http")
async def metrics_middleware(request: Request, call_next):
    """Record request count and latency for every HTTP call."""

    start = perf_counter()
    route = request.url.path
    method = request.method
    status_code = 500
    try:
        response = await call_next(request)
        status_code = response.status_code
        route_obj = request.scope.get("route")
        if route_obj is not None and getattr(route_obj, "path", None):
            route = route_obj.path
        return response
    finally:
        elapsed = max(0.0, perf_counter() - start)
        http_request_duration_seconds.labels(
            service=settings.service_name,
            route=route,
            method=method,
        ).observe(elapsed)
        http_requests_total.labels(
            service=settings.service_name,
            route=route,
            method=method,
            status_code=str(status_code),
        ).inc()


def enforce_api_key(x_api_key: str | None) -> None:
    """Reject requests that do not provide the configured API key."""

    if x_api_key != settings.api_key:
        raise HTTPException(status_code=401, detail="invalid API key")


def _reminder_error(exc: ReminderError) -> HTTPException:
    """Map typed scheduling failures to HTTP status codes."""

    detail = {"code": exc.code, "message": str(exc)}
    if isinstance(exc, (InvalidTimeUnit, InvalidQuantity)):
        detail["usage"] = USAGE_TEXT
        return HTTPException(status_code=422, detail=detail)
    if isinstance(exc, (StoreUnavailable, ClockError)):
        detail["message"] = "An error occurred while scheduling your reminder. Please try again later."
        return HTTPException(status_code=503, detail=detail)
    if isinstance(exc, (OffsetOverflow, InvalidReminder)):
        return HTTPException(status_code=422, detail=detail)
    return HTTPException(status_code=400, detail=detail)


@app.post("/reminders", status_code=201, response_model=ReminderScheduledResponse)
async def create_reminder(
    req: ReminderCreateRequest,
    x_api_key: str | None = Header(default=None),
    x_correlation_id: str | None = Header(default=None),
):
    """Schedule a reminder `quantity` `unit`s from now."""

    enforce_api_key(x_api_key)
    trace_id_ctx.set(x_correlation_id or str(uuid4()))
    try:
        scheduled = await service.submit(req.quantity, req.unit, req.recipient, req.body)
    except ReminderError as exc:
        raise _reminder_error(exc) from exc
    return ReminderScheduledResponse(due_at=scheduled.due_at, confirmation=scheduled.confirmation)


@app.post("/reminders/command", status_code=201, response_model=ReminderScheduledResponse)
async def create_reminder_from_command(
    req: ReminderCommandRequest,
    x_api_key: str | None = Header(default=None),
    x_correlation_id: str | None = Header(default=None),
):
    """Schedule a reminder from raw `!reminder` chat command text."""

    enforce_api_key(x_api_key)
    trace_id_ctx.set(x_correlation_id or str(uuid4()))
    try:
        scheduled = await service.submit_command(req.text, req.recipient)
    except ReminderError as exc:
        raise _reminder_error(exc) from exc
    return ReminderScheduledResponse(due_at=scheduled.due_at, confirmation=scheduled.confirmation)


@app.get("/ops/queue", response_model=QueueResponse)
async def get_queue(limit: int = 20, x_api_key: str | None = Header(default=None)):
    """Show queue depth and the next entries due."""

    enforce_api_key(x_api_key)
    try:
        depth = await service.queue.depth()
        rows = await service.queue.upcoming(limit)
    except StoreUnavailable as exc:
        raise _reminder_error(exc) from exc

    entries = []
    for payload, due_at in rows:
        try:
            reminder = deserialize(payload)
        except CorruptPayloadError:
            logger.warning("queue_entry_corrupt due_at=%s", due_at)
            entries.append(QueueEntry(due_at=due_at, recipient=None, body=None, corrupt=True))
            continue
        entries.append(QueueEntry(due_at=due_at, recipient=reminder.recipient, body=reminder.body))
    return QueueResponse(depth=depth, upcoming=entries)


@app.get("/metrics")
def metrics():
    """Prometheus scrape endpoint."""

    return metrics_response()


@app.get("/health")
def health():
    """Container health check endpoint."""

    return {"ok": True}
