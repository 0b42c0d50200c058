"""Conversion of a user supplied quantity and unit token into seconds."""

from enum import Enum

from remindme.common.errors import InvalidQuantity, InvalidTimeUnit, OffsetOverflow

# Due times are stored as unsigned 64-bit second counts.
MAX_SECONDS = 2**64 - 1


class TimeUnit(Enum):
    """Recognized reminder units and their length in seconds."""

    SECOND = 1
    MINUTE = 60
    HOUR = 60 * 60
    DAY = 24 * 60 * 60
    WEEK = 7 * 24 * 60 * 60

    @property
    def seconds(self) -> int:
        return self.value

    @classmethod
    def from_token(cls, unit_token: str) -> "TimeUnit":
        """Look up a unit by its singular or plural spelling."""

        try:
            return UNIT_TOKENS[unit_token]
        except KeyError:
            raise InvalidTimeUnit(unit_token) from None


UNIT_TOKENS: dict[str, TimeUnit] = {}
for _unit in TimeUnit:
    UNIT_TOKENS[_unit.name.lower()] = _unit
    UNIT_TOKENS[_unit.name.lower() + "s"] = _unit

UNIT_CHOICES = tuple(UNIT_TOKENS)


def resolve(quantity: int, unit_token: str) -> int:
    """Return `quantity * unit` in seconds.

    Raises `InvalidTimeUnit` for unknown tokens, `InvalidQuantity` for negative
    or non-integer quantities and `OffsetOverflow` when the product leaves the
    64-bit range.
    """

    unit = TimeUnit.from_token(unit_token)
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 0:
        raise InvalidQuantity(quantity)
    offset_seconds = quantity * unit.seconds
    if offset_seconds > MAX_SECONDS:
        raise OffsetOverflow(f"{quantity} {unit_token} exceeds the maximum schedulable offset")
    return offset_seconds
