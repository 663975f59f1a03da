"""
retailpos/pos/calculation.py
----------------------------
Derives the priced view of a cart.

For every line:
    original_price            = tier price at quantity 1
    price_after_item_discount = tier price at the line quantity
    item_discount             = (original_price − price_after_item_discount) × qty
    subtotal                  = price_after_item_discount × qty

Totals:
    member_discount = sub_total × member.discount / 100
    grand_total     = round_half_up(sub_total − member_discount − additional_discount), ≥ 0
    total_discount  = item_discount + member_discount + additional_discount

The tier saving is already inside sub_total, so the member percentage is
taken on the tiered amount and nothing is discounted twice. All arithmetic
is Decimal and the only rounding is the final one on grand_total.
"""
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, Sequence, Tuple

from retailpos.pos.pricing import resolve_price

WHOLE = Decimal('1')   # grand totals are whole currency units
ZERO  = Decimal('0')


@dataclass(frozen=True)
class CalculatedLine:
    product_id:                int
    name:                      str
    product_code:              str
    quantity:                  int
    stock:                     int
    original_price:            Decimal
    price_after_item_discount: Decimal
    item_discount:             Decimal
    subtotal:                  Decimal

    def to_dict(self) -> dict:
        return {
            'product_id':                self.product_id,
            'name':                      self.name,
            'product_code':              self.product_code,
            'quantity':                  self.quantity,
            'stock':                     self.stock,
            'original_price':            str(self.original_price),
            'price_after_item_discount': str(self.price_after_item_discount),
            'item_discount':             str(self.item_discount),
            'subtotal':                  str(self.subtotal),
        }


@dataclass(frozen=True)
class Calculation:
    items:               Tuple[CalculatedLine, ...]
    sub_total:           Decimal
    item_discount:       Decimal
    member_discount:     Decimal
    additional_discount: Decimal
    total_discount:      Decimal
    tax:                 Decimal
    grand_total:         Decimal

    def to_dict(self) -> dict:
        return {
            'items':               [i.to_dict() for i in self.items],
            'sub_total':           str(self.sub_total),
            'item_discount':       str(self.item_discount),
            'member_discount':     str(self.member_discount),
            'additional_discount': str(self.additional_discount),
            'total_discount':      str(self.total_discount),
            'tax':                 str(self.tax),
            'grand_total':         str(self.grand_total),
        }


def recompute(lines: Sequence, member=None,
              additional_discount: Decimal = ZERO) -> Optional[Calculation]:
    """
    Price `lines` (CartLines) for `member` (a MemberRef or None).

    Returns None for an empty cart, so "nothing to price" is distinguishable
    from a zero total.
    """
    if not lines:
        return None

    additional = Decimal(str(additional_discount or 0))
    items = []
    sub_total = ZERO
    item_discount_total = ZERO

    for line in lines:
        base_price   = resolve_price(line.price_tiers, 1)
        actual_price = resolve_price(line.price_tiers, line.quantity)
        item_discount = (base_price - actual_price) * line.quantity
        subtotal      = actual_price * line.quantity

        sub_total += subtotal
        item_discount_total += item_discount
        items.append(CalculatedLine(
            product_id=line.product_id,
            name=line.name,
            product_code=line.product_code,
            quantity=line.quantity,
            stock=line.stock,
            original_price=base_price,
            price_after_item_discount=actual_price,
            item_discount=item_discount,
            subtotal=subtotal,
        ))

    member_discount = ZERO
    if member is not None and member.discount:
        member_discount = sub_total * Decimal(str(member.discount)) / Decimal('100')

    grand_total = (sub_total - member_discount - additional).quantize(WHOLE, rounding=ROUND_HALF_UP)

    return Calculation(
        items=tuple(items),
        sub_total=sub_total,
        item_discount=item_discount_total,
        member_discount=member_discount,
        additional_discount=additional,
        total_discount=item_discount_total + member_discount + additional,
        tax=ZERO,
        grand_total=max(grand_total, ZERO),
    )
