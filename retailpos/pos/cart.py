"""
retailpos/pos/cart.py
---------------------
In-memory cart of the active till transaction.

Each line freezes the product's stock and price tiers at add-time. The stock
acts as a soft ceiling: asking for more clamps to it (with a notice) instead
of failing. The data API re-checks real stock when the sale is submitted.

Lines serialise to JSON-safe dicts (money as strings) for the Flask session
and for suspended sales.
"""
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from retailpos.pos.errors import ValidationError
from retailpos.pos.pricing import PriceTier, tiers_from_dicts

logger = logging.getLogger(__name__)

# ── Central threshold for the low-stock notice ───────────────────
LOW_STOCK_THRESHOLD = 5


@dataclass
class CartLine:
    product_id:   int
    name:         str
    product_code: str
    quantity:     int
    stock:        int                     # ceiling captured at add-time
    price_tiers:  Tuple[PriceTier, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict:
        return {
            'product_id':   self.product_id,
            'name':         self.name,
            'product_code': self.product_code,
            'quantity':     self.quantity,
            'stock':        self.stock,
            'price_tiers':  [t.to_dict() for t in self.price_tiers],
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'CartLine':
        return cls(
            product_id=int(data['product_id']),
            name=data.get('name') or '',
            product_code=data.get('product_code') or '',
            quantity=int(data['quantity']),
            stock=int(data['stock']),
            price_tiers=tiers_from_dicts(data.get('price_tiers')),
        )


class CartStore:
    """Ordered collection of CartLines keyed by product id."""

    def __init__(self, lines=None):
        self._lines: List[CartLine] = list(lines or [])
        self.notices: List[str] = []

    # ── Read ──────────────────────────────────────────────────────

    @property
    def lines(self) -> Tuple[CartLine, ...]:
        return tuple(self._lines)

    def find(self, product_id: int) -> Optional[CartLine]:
        for line in self._lines:
            if line.product_id == product_id:
                return line
        return None

    def __len__(self):
        return len(self._lines)

    def __iter__(self):
        return iter(self.lines)

    # ── Write ─────────────────────────────────────────────────────

    def add(self, product) -> Optional[CartLine]:
        """
        Add one unit of `product` (a ProductRef).
        If already present, behaves as update_quantity(existing + 1).
        """
        existing = self.find(product.id)
        if existing is not None:
            return self.update_quantity(product.id, existing.quantity + 1)

        if product.stock <= 0:
            raise ValidationError(f'"{product.name}" is out of stock.')

        line = CartLine(
            product_id=product.id,
            name=product.name,
            product_code=product.product_code,
            quantity=1,
            stock=product.stock,
            price_tiers=tuple(product.price_tiers),
        )
        self._lines.append(line)
        if product.stock < LOW_STOCK_THRESHOLD:
            self.notices.append(f'Only {product.stock} left of "{product.name}".')
        return line

    def update_quantity(self, product_id: int, new_quantity: int) -> Optional[CartLine]:
        """
        Set a line's quantity.
          <= 0          → line removed, returns None
          > ceiling     → clamped to the captured stock
        Unknown product ids are ignored.
        """
        line = self.find(product_id)
        if line is None:
            return None

        if new_quantity <= 0:
            self.remove(product_id)
            return None

        if new_quantity > line.stock:
            logger.warning("Quantity %s for product %s clamped to stock %s",
                           new_quantity, product_id, line.stock)
            self.notices.append(f'Maximum quantity for "{line.name}" is {line.stock} (stock available).')
            new_quantity = line.stock

        line.quantity = new_quantity
        return line

    def remove(self, product_id: int) -> None:
        """Remove a product entirely from the cart."""
        self._lines = [l for l in self._lines if l.product_id != product_id]

    def replace(self, lines) -> None:
        self._lines = list(lines)

    def clear(self) -> None:
        self._lines = []

    def drain_notices(self) -> List[str]:
        notices, self.notices = self.notices, []
        return notices

    # ── Serialisation ─────────────────────────────────────────────

    def to_list(self) -> list:
        return [line.to_dict() for line in self._lines]

    @classmethod
    def from_list(cls, rows) -> 'CartStore':
        return cls(CartLine.from_dict(r) for r in rows or [])
