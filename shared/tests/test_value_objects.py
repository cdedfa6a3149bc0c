"""Tests for the shared Money and DateRange value objects."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from unittest import TestCase

from shared.domain.value_objects import DateRange, Money, round_half_up


class RoundHalfUpTests(TestCase):
    def test_halves_round_away_from_zero(self) -> None:
        self.assertEqual(round_half_up(Decimal("0.5")), 1)
        self.assertEqual(round_half_up(Decimal("2.5")), 3)
        self.assertEqual(round_half_up(Decimal("324.7")), 325)
        self.assertEqual(round_half_up(Decimal("739.49")), 739)


class MoneyTests(TestCase):
    def test_arithmetic_keeps_currency(self) -> None:
        total = Money(1600, "ILS") + Money(150, "ILS") - Money(50, "ILS")
        self.assertEqual(total, Money(1700, "ILS"))
        self.assertEqual(Money(500, "ILS") * 3, Money(1500, "ILS"))

    def test_percentage_rounds_half_up(self) -> None:
        self.assertEqual(Money(505, "ILS").percentage(Decimal("0.10")).amount, 51)
        self.assertEqual(Money(1910, "ILS").percentage(Decimal("0.17")).amount, 325)

    def test_rejects_fractional_and_negative_amounts(self) -> None:
        with self.assertRaises(TypeError):
            Money(10.5, "ILS")
        with self.assertRaises(ValueError):
            Money(-1, "ILS")
        with self.assertRaises(ValueError):
            Money(100, "SHEKEL")

    def test_cannot_mix_currencies(self) -> None:
        with self.assertRaises(ValueError):
            Money(100, "ILS") + Money(100, "USD")

    def test_subtraction_below_zero_is_rejected(self) -> None:
        with self.assertRaises(ValueError):
            Money(100, "ILS") - Money(101, "ILS")


class DateRangeTests(TestCase):
    def test_nights_are_half_open(self) -> None:
        window = DateRange(date(2030, 1, 1), date(2030, 1, 4))
        self.assertEqual(len(window), 3)
        self.assertEqual(window.dates(), [date(2030, 1, 1), date(2030, 1, 2), date(2030, 1, 3)])
        self.assertFalse(window.contains(date(2030, 1, 4)))

    def test_back_to_back_ranges_do_not_overlap(self) -> None:
        first = DateRange(date(2030, 1, 1), date(2030, 1, 3))
        second = DateRange(date(2030, 1, 3), date(2030, 1, 5))
        self.assertFalse(first.overlaps_with(second))
        self.assertTrue(first.overlaps_with(DateRange(date(2030, 1, 2), date(2030, 1, 6))))

    def test_shift_keeps_length(self) -> None:
        shifted = DateRange(date(2030, 1, 1), date(2030, 1, 3)).shift(5)
        self.assertEqual(shifted, DateRange(date(2030, 1, 6), date(2030, 1, 8)))

    def test_empty_or_reversed_range_is_invalid(self) -> None:
        with self.assertRaises(ValueError):
            DateRange(date(2030, 1, 3), date(2030, 1, 3))
