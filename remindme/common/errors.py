"""Typed failures raised by the reminder core.

Every error carries a stable `code` that the HTTP layer returns to clients and
metrics use as a label.
"""


class ReminderError(Exception):
    """Base class for all reminder scheduling and dispatch failures."""

    code = "reminder_error"


class InvalidTimeUnit(ReminderError):
    code = "invalid_time_unit"

    def __init__(self, unit_token: str) -> None:
        super().__init__(f"{unit_token!r} is an invalid time unit")
        self.unit_token = unit_token


class InvalidQuantity(ReminderError):
    code = "invalid_quantity"

    def __init__(self, raw: object) -> None:
        super().__init__(f"{raw!r} is not a valid non-negative time amount")
        self.raw = raw


class OffsetOverflow(ReminderError):
    """Offset or due time does not fit the 64-bit timestamp range."""

    code = "offset_overflow"


class ClockError(ReminderError):
    """System clock could not be read or reported a pre-epoch time."""

    code = "clock_error"


class CorruptPayloadError(ReminderError):
    """Stored payload bytes do not decode into a reminder."""

    code = "corrupt_payload"


class StoreUnavailable(ReminderError):
    code = "store_unavailable"

    def __init__(self, operation: str, reason: object = None) -> None:
        message = f"reminder store unavailable during {operation}"
        if reason is not None:
            message = f"{message}: {reason}"
        super().__init__(message)
        self.operation = operation


class DeliveryError(ReminderError):
    """Delivery channel refused or failed to send a reminder."""

    code = "delivery_error"


class InvalidReminder(ReminderError):
    """Recipient or body cannot form a reminder (e.g. empty recipient)."""

    code = "invalid_reminder"
