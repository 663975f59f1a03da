"""
retailpos/pos/records.py
------------------------
Plain value objects exchanged with the data API.

The till core never touches ORM rows; the gateway converts rows (or JSON)
into these records.
"""
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Optional, Tuple

from retailpos.pos.pricing import PriceTier, tiers_from_dicts


def _dec(value) -> Decimal:
    return Decimal(str(value)) if value is not None else Decimal('0')


@dataclass(frozen=True)
class ProductRef:
    id:           int
    name:         str
    product_code: str
    stock:        int
    price_tiers:  Tuple[PriceTier, ...] = ()

    def to_dict(self) -> dict:
        return {
            'id':           self.id,
            'name':         self.name,
            'product_code': self.product_code,
            'stock':        self.stock,
            'price_tiers':  [t.to_dict() for t in self.price_tiers],
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'ProductRef':
        return cls(
            id=int(data['id']),
            name=data['name'],
            product_code=data.get('product_code') or '',
            stock=int(data.get('stock', 0)),
            price_tiers=tiers_from_dicts(data.get('price_tiers')),
        )


@dataclass(frozen=True)
class MemberRef:
    id:              int
    name:            str
    discount:        Decimal = Decimal('0')      # percent of the subtotal
    membership_type: str = 'RETAIL'
    is_general:      bool = False
    phone:           Optional[str] = None

    def to_dict(self) -> dict:
        return {
            'id':              self.id,
            'name':            self.name,
            'discount':        str(self.discount),
            'membership_type': self.membership_type,
            'is_general':      self.is_general,
            'phone':           self.phone,
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'MemberRef':
        return cls(
            id=int(data['id']),
            name=data['name'],
            discount=_dec(data.get('discount')),
            membership_type=data.get('membership_type') or 'RETAIL',
            is_general=bool(data.get('is_general', False)),
            phone=data.get('phone'),
        )


@dataclass(frozen=True)
class AttendantRef:
    id:   int
    name: str

    def to_dict(self) -> dict:
        return {'id': self.id, 'name': self.name}

    @classmethod
    def from_dict(cls, data: dict) -> 'AttendantRef':
        return cls(id=int(data['id']), name=data['name'])


@dataclass(frozen=True)
class SaleLine:
    product_id: int
    quantity:   int
    price:      Decimal     # tiered unit price actually charged
    discount:   Decimal     # per-unit saving against the quantity-1 price

    def to_dict(self) -> dict:
        return {
            'product_id': self.product_id,
            'quantity':   self.quantity,
            'price':      str(self.price),
            'discount':   str(self.discount),
        }


@dataclass(frozen=True)
class SaleSubmission:
    cashier_id:          int
    attendant_id:        Optional[int]
    member_id:           Optional[int]
    items:               Tuple[SaleLine, ...]
    total:               Decimal
    payment:             Decimal
    change:              Decimal
    tax:                 Decimal
    discount:            Decimal
    additional_discount: Decimal
    transaction_type:    str
    submission_token:    Optional[str] = None

    def to_payload(self) -> dict:
        """JSON body accepted by POST /api/sales (cashier comes from the login)."""
        return {
            'attendant_id':        self.attendant_id,
            'member_id':           self.member_id,
            'items':               [line.to_dict() for line in self.items],
            'total':               str(self.total),
            'payment':             str(self.payment),
            'change':              str(self.change),
            'tax':                 str(self.tax),
            'discount':            str(self.discount),
            'additional_discount': str(self.additional_discount),
            'transaction_type':    self.transaction_type,
            'submission_token':    self.submission_token,
        }


@dataclass(frozen=True)
class SaleResult:
    id:             int
    invoice_number: str
    date:           datetime


@dataclass(frozen=True)
class SuspendedSaleRecord:
    id:                  int
    name:                Optional[str]
    notes:               Optional[str]
    cart_items:          list
    member_id:           Optional[int] = None
    attendant_id:        Optional[int] = None
    additional_discount: Decimal = Decimal('0')
    created_at:          Optional[datetime] = None

    def to_dict(self) -> dict:
        return {
            'id':                  self.id,
            'name':                self.name,
            'notes':               self.notes,
            'cart_items':          self.cart_items,
            'member_id':           self.member_id,
            'attendant_id':        self.attendant_id,
            'additional_discount': str(self.additional_discount),
            'created_at':          self.created_at.isoformat() if self.created_at else None,
        }


@dataclass(frozen=True)
class ReceivableRecord:
    id:             int
    member:         MemberRef
    sale_id:        int
    amount_due:     Decimal
    amount_paid:    Decimal
    status:         str
    invoice_number: Optional[str] = None
    sale_date:      Optional[datetime] = field(default=None, compare=False)

    @property
    def remaining(self) -> Decimal:
        return self.amount_due - self.amount_paid

    def to_dict(self) -> dict:
        return {
            'id':             self.id,
            'member':         self.member.to_dict(),
            'sale_id':        self.sale_id,
            'invoice_number': self.invoice_number,
            'sale_date':      self.sale_date.isoformat() if self.sale_date else None,
            'amount_due':     str(self.amount_due),
            'amount_paid':    str(self.amount_paid),
            'remaining':      str(self.remaining),
            'status':         self.status,
        }
