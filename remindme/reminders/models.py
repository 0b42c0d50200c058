"""Durable representation of a scheduled reminder and its wire encoding.

The serialized form is the member stored in the queue, so it must be stable:
the same reminder always encodes to the same bytes.
"""

import time
from typing import Callable, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from remindme.common.errors import ClockError, CorruptPayloadError, InvalidReminder, OffsetOverflow
from remindme.reminders.units import MAX_SECONDS


class Reminder(BaseModel):
    """One-shot message for a recipient, immutable once created."""

    model_config = ConfigDict(frozen=True, extra="forbid", strict=True)

    v: Literal[1] = 1
    created_at: int = Field(ge=0)
    recipient: str = Field(min_length=1)
    body: str

    @field_validator("recipient", "body")
    @classmethod
    def _utf8_encodable(cls, value: str) -> str:
        # lone surrogates survive JSON parsing but cannot be re-encoded
        try:
            value.encode("utf-8")
        except UnicodeEncodeError as exc:
            raise ValueError("text is not valid unicode") from exc
        return value


def current_timestamp(clock: Callable[[], float] = time.time) -> int:
    """Read wall-clock seconds since epoch, refusing pre-epoch readings."""

    try:
        now = clock()
        seconds = int(now)
    except (OSError, OverflowError, ValueError) as exc:
        raise ClockError(f"system clock unreadable: {exc}") from exc
    if now < 0:
        raise ClockError(f"system clock reports {now}, before the unix epoch")
    return seconds


def create_reminder(
    offset_seconds: int,
    recipient: str,
    body: str,
    clock: Callable[[], float] = time.time,
) -> tuple[int, Reminder]:
    """Stamp a new reminder with the current time and compute its due time."""

    created_at = current_timestamp(clock)
    due_at = created_at + offset_seconds
    if due_at > MAX_SECONDS:
        raise OffsetOverflow(f"due time {due_at} exceeds the maximum timestamp")
    try:
        reminder = Reminder(created_at=created_at, recipient=recipient, body=body)
    except ValidationError as exc:
        problems = "; ".join(f"{'.'.join(map(str, err['loc']))}: {err['msg']}" for err in exc.errors())
        raise InvalidReminder(problems) from exc
    return due_at, reminder


def serialize(reminder: Reminder) -> bytes:
    return reminder.model_dump_json().encode("utf-8")


def deserialize(payload: bytes) -> Reminder:
    """Decode queue bytes back into a reminder or raise `CorruptPayloadError`."""

    try:
        text = payload.decode("utf-8")
        return Reminder.model_validate_json(text)
    except (UnicodeDecodeError, ValidationError) as exc:
        raise CorruptPayloadError(f"undecodable reminder payload: {exc}") from exc
