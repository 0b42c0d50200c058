"""Parsing of the chat command `!reminder <amount> <unit> <message>`."""

from typing import NamedTuple

from remindme.common.errors import InvalidQuantity, InvalidTimeUnit
from remindme.reminders.units import UNIT_CHOICES

COMMAND_PREFIX = "!reminder"

USAGE_TEXT = (
    "Please make sure to use the command format\n"
    f"`{COMMAND_PREFIX} [time_amount] [time_unit] [reminder message]`\n"
    f"Your options for time_unit are {', '.join(UNIT_CHOICES[:-1])}, or {UNIT_CHOICES[-1]}."
)


class ReminderArguments(NamedTuple):
    quantity: int
    unit: str
    message: str


def parse_reminder_arguments(text: str) -> ReminderArguments:
    """Split command arguments into amount, unit token and free-text message.

    A leading `!reminder` is tolerated. Only the amount is validated here; the
    unit token is checked when the duration is resolved.
    """

    rest = text.lstrip()
    if rest.startswith(COMMAND_PREFIX):
        rest = rest[len(COMMAND_PREFIX):].lstrip()

    parts = rest.split(None, 1)
    if not parts:
        raise InvalidQuantity("")
    raw_quantity = parts[0]
    if not raw_quantity.isascii() or not raw_quantity.isdigit():
        raise InvalidQuantity(raw_quantity)
    try:
        quantity = int(raw_quantity)
    except ValueError:
        # digit strings beyond the interpreter conversion limit
        raise InvalidQuantity(raw_quantity) from None

    remainder = parts[1] if len(parts) > 1 else ""
    unit_and_message = remainder.split(None, 1)
    if not unit_and_message:
        raise InvalidTimeUnit("")
    unit = unit_and_message[0]
    message = unit_and_message[1] if len(unit_and_message) > 1 else ""
    return ReminderArguments(quantity, unit, message)
