"""
Common Value Objects

Value objects used across multiple domains:
- Money: Integer amount in minor currency units (cents, agorot) with currency
- DateRange: Range of dates (check-in inclusive, check-out exclusive)
"""

from dataclasses import dataclass
from datetime import date, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterator, List

from shared.domain.base import ValueObject


def round_half_up(value) -> int:
    """Round a number to the nearest integer, halves away from zero"""
    return int(Decimal(str(value)).quantize(Decimal('1'), rounding=ROUND_HALF_UP))


@dataclass(frozen=True)
class Money(ValueObject):
    """
    Money value object

    Amounts are integers in the currency's minor unit, so arithmetic is
    exact; percentages are rounded half-up when they are taken.
    """
    amount: int
    currency: str = 'ILS'

    def __post_init__(self):
        if not isinstance(self.amount, int):
            raise TypeError("Money amount must be an integer number of minor units")
        if self.amount < 0:
            raise ValueError("Amount cannot be negative")
        if not self.currency or len(self.currency) != 3:
            raise ValueError(f"Unsupported currency: {self.currency!r}")

    def _check_currency(self, other: 'Money'):
        if not isinstance(other, Money):
            raise TypeError("Can only combine Money with Money")
        if self.currency != other.currency:
            raise ValueError(f"Cannot combine different currencies: {self.currency} and {other.currency}")

    def __add__(self, other: 'Money') -> 'Money':
        self._check_currency(other)
        return Money(self.amount + other.amount, self.currency)

    def __sub__(self, other: 'Money') -> 'Money':
        self._check_currency(other)
        return Money(self.amount - other.amount, self.currency)

    def __mul__(self, factor: int) -> 'Money':
        if not isinstance(factor, int):
            raise TypeError("Can only multiply Money by an integer, use percentage() for rates")
        return Money(self.amount * factor, self.currency)

    def percentage(self, rate: Decimal) -> 'Money':
        """Return ``rate`` (e.g. Decimal('0.10')) of this amount, rounded half-up"""
        return Money(round_half_up(Decimal(self.amount) * Decimal(rate)), self.currency)

    @classmethod
    def zero(cls, currency: str) -> 'Money':
        return cls(0, currency)

    def __str__(self):
        return f"{self.amount} {self.currency}"

    def __repr__(self):
        return f"Money({self.amount}, '{self.currency}')"


@dataclass(frozen=True)
class DateRange(ValueObject):
    """
    Date range value object

    Represents a stay from start_date (inclusive) to end_date (exclusive).
    Each date in the range is one night.
    """
    start_date: date
    end_date: date

    def __post_init__(self):
        if self.start_date >= self.end_date:
            raise ValueError(f"Start date ({self.start_date}) must be before end date ({self.end_date})")

    def overlaps_with(self, other: 'DateRange') -> bool:
        """
        Check if this range overlaps with another

        end_date is exclusive, so back-to-back ranges don't overlap.
        """
        if not isinstance(other, DateRange):
            raise TypeError("Can only check overlap with another DateRange")
        return (self.start_date < other.end_date and
                self.end_date > other.start_date)

    def contains(self, check_date: date) -> bool:
        return self.start_date <= check_date < self.end_date

    def nights(self) -> Iterator[date]:
        """Iterate over every night (date) of the stay"""
        current = self.start_date
        while current < self.end_date:
            yield current
            current += timedelta(days=1)

    def dates(self) -> List[date]:
        return list(self.nights())

    def shift(self, days: int) -> 'DateRange':
        """Same length range moved by ``days``"""
        delta = timedelta(days=days)
        return DateRange(self.start_date + delta, self.end_date + delta)

    def __len__(self) -> int:
        """Number of nights"""
        return (self.end_date - self.start_date).days

    def __str__(self):
        return f"{self.start_date.isoformat()} - {self.end_date.isoformat()}"

    def __repr__(self):
        return f"DateRange({self.start_date}, {self.end_date})"
