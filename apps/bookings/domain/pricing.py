"""
Pricing Calculator

Pure computation of a stay's price. Given the property's rates, the
calendar price overrides and an optional promo code it always yields the
same breakdown. All amounts are integers in minor currency units and every
percentage is rounded half-up at the step where it is taken.

Algorithm:
1. Nightly rate: calendar override, else base price +20% on Friday and
   Saturday nights, else base price
2. Service fee: 10% of the accommodation total
3. Discounts (summed, not compounded): 10% for 7+ nights, 20% for 28+
   nights, 5% for any promo code
4. Taxes: 17% of accommodation + cleaning + service - discounts
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Iterable, Mapping, Optional, Tuple

from shared.domain.base import ValueObject
from shared.domain.value_objects import DateRange, Money, round_half_up

from .entities import GuestCount

WEEKEND_PREMIUM = Decimal('1.20')
WEEKEND_WEEKDAYS = frozenset({4, 5})  # Friday, Saturday nights
SERVICE_FEE_RATE = Decimal('0.10')
WEEKLY_MIN_NIGHTS = 7
WEEKLY_DISCOUNT_RATE = Decimal('0.10')
MONTHLY_MIN_NIGHTS = 28
MONTHLY_DISCOUNT_RATE = Decimal('0.20')
PROMO_DISCOUNT_RATE = Decimal('0.05')
TAX_RATE = Decimal('0.17')


@dataclass(frozen=True)
class NightlyRate(ValueObject):
    date: date
    price: int
    reason: Optional[str] = None

    def to_dict(self) -> dict:
        return {'date': self.date.isoformat(), 'price': self.price, 'reason': self.reason}


@dataclass(frozen=True)
class Discount(ValueObject):
    type: str
    description: str
    amount: int

    def to_dict(self) -> dict:
        return {'type': self.type, 'description': self.description, 'amount': self.amount}


@dataclass(frozen=True)
class PricingBreakdown(ValueObject):
    """Frozen price of a stay, copied verbatim into quotes and reservations"""
    currency: str
    nightly_rates: Tuple[NightlyRate, ...]
    accommodation_total: int
    cleaning_fee: int
    service_fee: int
    discounts: Tuple[Discount, ...] = field(default_factory=tuple)
    discount_total: int = 0
    taxable_amount: int = 0
    taxes: int = 0
    grand_total: int = 0

    @property
    def nights(self) -> int:
        return len(self.nightly_rates)

    @property
    def average_nightly_rate(self) -> int:
        if not self.nightly_rates:
            return 0
        return round_half_up(Decimal(self.accommodation_total) / self.nights)

    def to_dict(self) -> dict:
        return {
            'currency': self.currency,
            'nightly_rates': [rate.to_dict() for rate in self.nightly_rates],
            'accommodation_total': self.accommodation_total,
            'cleaning_fee': self.cleaning_fee,
            'service_fee': self.service_fee,
            'discounts': [discount.to_dict() for discount in self.discounts],
            'discount_total': self.discount_total,
            'taxable_amount': self.taxable_amount,
            'taxes': self.taxes,
            'grand_total': self.grand_total,
            'average_nightly_rate': self.average_nightly_rate,
        }

    @classmethod
    def from_dict(cls, data: Mapping) -> 'PricingBreakdown':
        return cls(
            currency=data['currency'],
            nightly_rates=tuple(
                NightlyRate(
                    date=date.fromisoformat(rate['date']),
                    price=rate['price'],
                    reason=rate.get('reason'),
                )
                for rate in data['nightly_rates']
            ),
            accommodation_total=data['accommodation_total'],
            cleaning_fee=data['cleaning_fee'],
            service_fee=data['service_fee'],
            discounts=tuple(Discount(**discount) for discount in data.get('discounts', ())),
            discount_total=data.get('discount_total', 0),
            taxable_amount=data.get('taxable_amount', 0),
            taxes=data.get('taxes', 0),
            grand_total=data.get('grand_total', 0),
        )


def build_breakdown(
    nightly_rates: Iterable[NightlyRate],
    cleaning_fee: int,
    currency: str,
    discounts: Iterable[Discount] = (),
) -> PricingBreakdown:
    """
    Totals for a list of nightly rates

    Shared by the internal calculator and the external PMS adapter, which
    brings its own nightly rates but the same fee and tax rules.
    """
    rates = tuple(nightly_rates)
    discounts = tuple(discounts)

    accommodation = Money.zero(currency)
    for rate in rates:
        accommodation += Money(rate.price, currency)

    cleaning = Money(cleaning_fee, currency)
    service = accommodation.percentage(SERVICE_FEE_RATE)
    discount_total = sum(discount.amount for discount in discounts)

    taxable = accommodation + cleaning + service - Money(discount_total, currency)
    taxes = taxable.percentage(TAX_RATE)

    return PricingBreakdown(
        currency=currency,
        nightly_rates=rates,
        accommodation_total=accommodation.amount,
        cleaning_fee=cleaning.amount,
        service_fee=service.amount,
        discounts=discounts,
        discount_total=discount_total,
        taxable_amount=taxable.amount,
        taxes=taxes.amount,
        grand_total=(taxable + taxes).amount,
    )


class PricingCalculator:
    """Computes nightly rates, fees, discounts and taxes for a stay"""

    def price(
        self,
        property,
        window: DateRange,
        guests: GuestCount,
        calendar_overrides: Mapping[date, int],
        promo_code: Optional[str] = None,
    ) -> PricingBreakdown:
        rates = self.nightly_rates(property, window, calendar_overrides)
        accommodation_total = sum(rate.price for rate in rates)
        discounts = self.discounts(
            accommodation_total,
            len(window),
            property.currency,
            promo_code,
        )
        return build_breakdown(rates, property.cleaning_fee, property.currency, discounts)

    def nightly_rates(self, property, window: DateRange, calendar_overrides: Mapping[date, int]):
        base = Money(property.base_price, property.currency)
        rates = []
        for night in window.nights():
            override = calendar_overrides.get(night)
            if override is not None:
                rates.append(NightlyRate(night, override, 'Custom rate'))
            elif night.weekday() in WEEKEND_WEEKDAYS:
                rates.append(NightlyRate(night, base.percentage(WEEKEND_PREMIUM).amount, 'Weekend rate'))
            else:
                rates.append(NightlyRate(night, base.amount))
        return rates

    def discounts(self, accommodation_total: int, nights: int, currency: str, promo_code: Optional[str] = None):
        accommodation = Money(accommodation_total, currency)
        discounts = []

        if nights >= WEEKLY_MIN_NIGHTS:
            discounts.append(Discount(
                'weekly',
                'Weekly stay discount (10%)',
                accommodation.percentage(WEEKLY_DISCOUNT_RATE).amount,
            ))

        # Stacks with the weekly discount
        if nights >= MONTHLY_MIN_NIGHTS:
            discounts.append(Discount(
                'monthly',
                'Monthly stay discount (20%)',
                accommodation.percentage(MONTHLY_DISCOUNT_RATE).amount,
            ))

        # TODO: look promo codes up in a promotions registry (existence, expiry, property eligibility)
        if promo_code:
            discounts.append(Discount(
                'promo',
                f'Promo code: {promo_code}',
                accommodation.percentage(PROMO_DISCOUNT_RATE).amount,
            ))

        return discounts
