"""
retailpos/pos/pricing.py
------------------------
Quantity-tiered unit prices.

A product carries one or more PriceTier(min_qty, price). The unit price for
a quantity is the price of the tier with the greatest min_qty not above the
quantity; below every breakpoint the lowest tier's price applies.
"""
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Sequence


@dataclass(frozen=True)
class PriceTier:
    min_qty: int
    price:   Decimal

    def to_dict(self) -> dict:
        return {'min_qty': self.min_qty, 'price': str(self.price)}

    @classmethod
    def from_dict(cls, data: dict) -> 'PriceTier':
        return cls(min_qty=int(data['min_qty']), price=Decimal(str(data['price'])))


def resolve_price(tiers: Sequence[PriceTier], quantity: int) -> Decimal:
    """
    Unit price for `quantity` units. Returns 0 when there are no tiers.

    sorted() is stable, so among tiers sharing a min_qty the one listed last
    is met first by the descending scan and wins.
    """
    if not tiers:
        return Decimal('0')

    ordered = sorted(tiers, key=lambda t: t.min_qty)
    price = ordered[0].price
    for tier in reversed(ordered):
        if tier.min_qty <= quantity:
            price = tier.price
            break
    return price


def tiers_from_dicts(rows: Iterable[dict]) -> tuple:
    return tuple(PriceTier.from_dict(r) for r in rows or ())
