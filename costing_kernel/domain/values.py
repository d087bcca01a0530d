"""
Values -- Monetary amounts and date ranges for the costing core.

Responsibility:
    Canonical helpers for currency amounts (always ``Decimal`` quantized to
    cents) and an inclusive ``DateRange`` value object.  Every engine goes
    through these helpers so that rounding and tolerance comparisons are
    applied one way everywhere.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    - Amounts are Decimal, never float.
    - Rounding to currency precision uses ROUND_HALF_UP.

Failure modes:
    - ValueError on amounts that cannot be converted to Decimal, on float
      inputs, and on ``DateRange`` construction with end before start.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

CURRENCY_PLACES = 2
CENT = Decimal("0.01")
ZERO = Decimal("0.00")
DEFAULT_TOLERANCE = Decimal("0.01")


def to_decimal(value: Decimal | int | str) -> Decimal:
    """
    Convert a value to Decimal without going through float.

    Raises:
        ValueError: If the value is a float or is not a valid number.
    """
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool) or isinstance(value, float):
        raise ValueError(f"Amounts must not be float or bool: {value!r}")
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError) as e:
        raise ValueError(f"Invalid amount: {value!r}") from e


def round_amount(value: Decimal | int | str) -> Decimal:
    """Round to currency precision (2 places, ROUND_HALF_UP)."""
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def sum_amounts(values) -> Decimal:
    """Sum amounts and round the result to currency precision."""
    return round_amount(sum((to_decimal(v) for v in values), Decimal("0")))


def amounts_equal(
    left: Decimal,
    right: Decimal,
    tolerance: Decimal = DEFAULT_TOLERANCE,
) -> bool:
    """True when two amounts differ by no more than ``tolerance``."""
    return abs(to_decimal(left) - to_decimal(right)) <= tolerance


def as_date(value: date | datetime) -> date:
    """Calendar date of a date or timestamp (timestamps keep their own zone)."""
    if isinstance(value, datetime):
        return value.date()
    return value


@dataclass(frozen=True, slots=True)
class DateRange:
    """
    Inclusive range of calendar dates.

    Guarantees:
        - ``start <= end``.
        - Iteration yields every date from start to end inclusive.
    """

    start: date
    end: date

    def __post_init__(self) -> None:
        if self.end < self.start:
            raise ValueError(f"DateRange end {self.end} precedes start {self.start}")

    @classmethod
    def covering(cls, dates) -> DateRange | None:
        """Smallest range covering all given dates, or None when empty."""
        dates = list(dates)
        if not dates:
            return None
        return cls(min(dates), max(dates))

    @property
    def days(self) -> int:
        return (self.end - self.start).days + 1

    def __contains__(self, day: object) -> bool:
        return isinstance(day, date) and self.start <= as_date(day) <= self.end

    def __iter__(self) -> Iterator[date]:
        current = self.start
        while current <= self.end:
            yield current
            current += timedelta(days=1)

    def __str__(self) -> str:
        return f"{self.start.isoformat()}..{self.end.isoformat()}"
