"""
retailpos/sales/models.py
-------------------------
Tables:
  invoice_sequences
  sales
  sale_items
  suspended_sales
  receivables
  receivable_payments
"""
import enum
import json
import logging
from datetime import datetime
from decimal import Decimal

from retailpos import db

logger = logging.getLogger(__name__)


class SaleStatus(enum.Enum):
    PAID   = 'PAID'
    UNPAID = 'UNPAID'


class ReceivableStatus(enum.Enum):
    UNPAID         = 'UNPAID'
    PARTIALLY_PAID = 'PARTIALLY_PAID'
    PAID           = 'PAID'


class InvoiceSequence(db.Model):
    """
    One row per calendar year holding the last-used invoice sequence number.
    Locked FOR UPDATE while a sale allocates its number.
    """
    __tablename__ = 'invoice_sequences'

    year     = db.Column(db.Integer, primary_key=True)
    last_seq = db.Column(db.Integer, nullable=False, default=0)

    def __repr__(self):
        return f"<InvoiceSequence year={self.year} last_seq={self.last_seq}>"


class Sale(db.Model):
    """
    One finalized till transaction.
    `total` is the rounded grand total the customer owes.
    `submission_token` is set by the till when the sale is confirmed; a
    second submission carrying the same token is refused.
    """
    __tablename__ = 'sales'

    id                  = db.Column(db.Integer, primary_key=True)
    invoice_number      = db.Column(db.String(20), unique=True, nullable=False, index=True)
    submission_token    = db.Column(db.String(64), unique=True, nullable=True)    # one per confirmed settlement
    cashier_id          = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    attendant_id        = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)
    member_id           = db.Column(db.Integer, db.ForeignKey('members.id'), nullable=True)
    total               = db.Column(db.Numeric(12, 2), nullable=False)
    discount            = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    additional_discount = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    tax                 = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    payment             = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    change              = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    status              = db.Column(db.Enum(SaleStatus), nullable=False,
                                    default=SaleStatus.PAID, index=True)
    created_at          = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    # ── Relationships ─────────────────────────────────────────────
    cashier    = db.relationship('User', foreign_keys=[cashier_id], lazy='select')
    attendant  = db.relationship('User', foreign_keys=[attendant_id], lazy='select')
    member     = db.relationship('Member', lazy='select')
    items      = db.relationship('SaleItem', backref='sale', lazy='select',
                                 cascade='all, delete-orphan')
    receivable = db.relationship('Receivable', backref='sale', uselist=False, lazy='select')

    def to_dict(self) -> dict:
        return {
            'id':                  self.id,
            'invoice_number':      self.invoice_number,
            'date':                self.created_at.isoformat(),
            'cashier':             {'id': self.cashier_id, 'name': self.cashier.name if self.cashier else None},
            'attendant_id':        self.attendant_id,
            'member':              {'id': self.member_id, 'name': self.member.name} if self.member else None,
            'total':               str(self.total),
            'discount':            str(self.discount),
            'additional_discount': str(self.additional_discount),
            'tax':                 str(self.tax),
            'payment':             str(self.payment),
            'change':              str(self.change),
            'status':              self.status.value,
            'items':               [i.to_dict() for i in self.items],
        }

    def __repr__(self):
        return f"<Sale {self.invoice_number!r} {self.status.value} {self.total}>"


class SaleItem(db.Model):
    """
    One line of a Sale. Price and per-unit tier discount are snapshots
    so later product edits don't alter historical invoices.
    """
    __tablename__ = 'sale_items'

    id         = db.Column(db.Integer, primary_key=True)
    sale_id    = db.Column(db.Integer, db.ForeignKey('sales.id'), nullable=False)
    product_id = db.Column(db.Integer, db.ForeignKey('products.id'), nullable=False)
    quantity   = db.Column(db.Integer, nullable=False)
    price      = db.Column(db.Numeric(12, 2), nullable=False)     # tiered unit price
    discount   = db.Column(db.Numeric(12, 2), nullable=False, default=0)   # per unit
    subtotal   = db.Column(db.Numeric(12, 2), nullable=False)     # qty × price

    product = db.relationship('Product', lazy='select')

    def to_dict(self) -> dict:
        return {
            'product_id': self.product_id,
            'name':       self.product.name if self.product else None,
            'quantity':   self.quantity,
            'price':      str(self.price),
            'discount':   str(self.discount),
            'subtotal':   str(self.subtotal),
        }

    def __repr__(self):
        return f"<SaleItem sale={self.sale_id} product={self.product_id} qty={self.quantity}>"


class SuspendedSale(db.Model):
    """A parked, not yet settled cart. Deleted once it has been resumed."""
    __tablename__ = 'suspended_sales'

    id                  = db.Column(db.Integer, primary_key=True)
    name                = db.Column(db.String(120), nullable=True)
    notes               = db.Column(db.Text, nullable=True)
    cart_items          = db.Column(db.Text, nullable=False)    # JSON list of cart lines
    member_id           = db.Column(db.Integer, db.ForeignKey('members.id'), nullable=True)
    attendant_id        = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)
    additional_discount = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    created_by          = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)
    created_at          = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, index=True)

    member = db.relationship('Member', lazy='select')

    @property
    def cart(self) -> list:
        try:
            items = json.loads(self.cart_items or '[]')
        except (ValueError, TypeError):
            logger.error("Unreadable cart payload on suspended sale %s", self.id)
            return []
        return items if isinstance(items, list) else []

    def to_dict(self) -> dict:
        return {
            'id':                  self.id,
            'name':                self.name,
            'notes':               self.notes,
            'cart_items':          self.cart,
            'member_id':           self.member_id,
            'member':              self.member.to_dict() if self.member else None,
            'attendant_id':        self.attendant_id,
            'additional_discount': str(self.additional_discount),
            'created_at':          self.created_at.isoformat(),
        }

    def __repr__(self):
        return f"<SuspendedSale {self.id} {self.name!r}>"


class Receivable(db.Model):
    """Money a member still owes for an UNPAID sale."""
    __tablename__ = 'receivables'

    id          = db.Column(db.Integer, primary_key=True)
    sale_id     = db.Column(db.Integer, db.ForeignKey('sales.id'), unique=True, nullable=False)
    member_id   = db.Column(db.Integer, db.ForeignKey('members.id'), nullable=False, index=True)
    amount_due  = db.Column(db.Numeric(12, 2), nullable=False)
    amount_paid = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    status      = db.Column(db.Enum(ReceivableStatus), nullable=False,
                            default=ReceivableStatus.UNPAID, index=True)
    created_at  = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at  = db.Column(db.DateTime, nullable=False, default=datetime.utcnow,
                            onupdate=datetime.utcnow)

    member   = db.relationship('Member', lazy='select')
    payments = db.relationship('ReceivablePayment', backref='receivable', lazy='select',
                               order_by='ReceivablePayment.paid_at')

    __table_args__ = (
        db.CheckConstraint('amount_paid >= 0', name='check_receivable_paid_non_negative'),
        db.CheckConstraint('amount_paid <= amount_due', name='check_receivable_not_overpaid'),
    )

    @property
    def remaining(self) -> Decimal:
        return Decimal(str(self.amount_due)) - Decimal(str(self.amount_paid))

    def to_dict(self) -> dict:
        return {
            'id':          self.id,
            'member':      self.member.to_dict() if self.member else None,
            'sale':        {'id': self.sale_id,
                            'invoice_number': self.sale.invoice_number if self.sale else None,
                            'date': self.sale.created_at.isoformat() if self.sale else None},
            'amount_due':  str(self.amount_due),
            'amount_paid': str(self.amount_paid),
            'remaining':   str(self.remaining),
            'status':      self.status.value,
        }

    def __repr__(self):
        return f"<Receivable {self.id} sale={self.sale_id} {self.amount_paid}/{self.amount_due}>"


class ReceivablePayment(db.Model):
    """One repayment instalment against a Receivable."""
    __tablename__ = 'receivable_payments'

    id            = db.Column(db.Integer, primary_key=True)
    receivable_id = db.Column(db.Integer, db.ForeignKey('receivables.id'), nullable=False, index=True)
    amount        = db.Column(db.Numeric(12, 2), nullable=False)
    cashier_id    = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)
    paid_at       = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    def __repr__(self):
        return f"<ReceivablePayment R:{self.receivable_id} {self.amount}>"
