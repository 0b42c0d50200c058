"""Request/response schemas for the scheduler API."""

from pydantic import BaseModel, Field


class ReminderCreateRequest(BaseModel):
    """Payload accepted by `POST /reminders`."""

    quantity: int = Field(ge=0)
    unit: str = Field(min_length=1)
    recipient: str = Field(min_length=1)
    body: str = ""


class ReminderCommandRequest(BaseModel):
    """Raw chat command text, e.g. `!reminder 2 hours call mom`."""

    recipient: str = Field(min_length=1)
    text: str


class ReminderScheduledResponse(BaseModel):
    due_at: int
    confirmation: str


class QueueEntry(BaseModel):
    due_at: int
    recipient: str | None
    body: str | None
    corrupt: bool = False


class QueueResponse(BaseModel):
    depth: int
    upcoming: list[QueueEntry]
