"""
retailpos/sales/services.py
---------------------------
Server-side behaviour of the sales data API.

Both the JSON routes and the in-process POS gateway call these functions.
Business rejections raise ValueError, missing rows raise LookupError; in
both cases the session is rolled back before the exception propagates,
so nothing is half-written.
"""
import json
import logging
from datetime import datetime
from decimal import Decimal, InvalidOperation

from sqlalchemy.exc import IntegrityError

from retailpos import db
from retailpos.auth.models import User, RoleEnum
from retailpos.catalog.models import Product, InventoryLog
from retailpos.members.models import Member
from retailpos.sales.invoice import next_invoice_number
from retailpos.sales.models import (
    Sale, SaleItem, SaleStatus, SuspendedSale,
    Receivable, ReceivablePayment, ReceivableStatus,
)

logger = logging.getLogger(__name__)


class DuplicateSaleError(ValueError):
    """The submission token was already used by a recorded sale."""

    def __init__(self, invoice_number=None):
        self.invoice_number = invoice_number
        suffix = f' as {invoice_number}' if invoice_number else ''
        super().__init__(f'This sale was already recorded{suffix}.')


def to_money(value, field: str) -> Decimal:
    """Parse a money amount from JSON input. Floats go through str() first."""
    if value is None or value == '':
        return Decimal('0')
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValueError(f'{field} must be a number.')


def _get_attendant(attendant_id):
    if attendant_id is None:
        return None
    attendant = db.session.get(User, attendant_id)
    if attendant is None or attendant.role != RoleEnum.attendant or not attendant.is_active:
        raise ValueError(f'Attendant {attendant_id} not found.')
    return attendant


def _recorded_with_token(token):
    if not token:
        return None
    return Sale.query.filter_by(submission_token=token).first()


# ── Sales ─────────────────────────────────────────────────────────

def record_sale(payload: dict, cashier_id: int) -> Sale:
    """
    Finalise a sale submitted by a till:
      0. Refuse a submission token that already produced a sale
      1. Validate cashier / member / attendant and the settlement type
      2. Lock each product row with SELECT … FOR UPDATE (id order)
      3. Verify stock for every line, then deduct it
      4. Allocate the invoice number
      5. Persist Sale + SaleItems (+ Receivable for UNPAID)
      6. Commit
    """
    items = payload.get('items') or []
    token = payload.get('submission_token') or None
    try:
        if token is not None and (not isinstance(token, str) or len(token) > 64):
            raise ValueError('submission_token must be a string of at most 64 characters.')
        recorded = _recorded_with_token(token)
        if recorded is not None:
            raise DuplicateSaleError(recorded.invoice_number)

        if not isinstance(items, list) or not items:
            raise ValueError('At least one item is required.')

        try:
            status = SaleStatus(payload.get('transaction_type', 'PAID'))
        except ValueError:
            raise ValueError('transaction_type must be PAID or UNPAID.')

        cashier = db.session.get(User, cashier_id)
        if cashier is None:
            raise LookupError('Cashier not found.')

        member = None
        if payload.get('member_id') is not None:
            member = db.session.get(Member, payload['member_id'])
            if member is None:
                raise LookupError('Member not found.')

        attendant = _get_attendant(payload.get('attendant_id'))

        total    = to_money(payload.get('total'), 'total')
        payment  = to_money(payload.get('payment'), 'payment')
        if total < 0 or payment < 0:
            raise ValueError('Amounts cannot be negative.')

        if status == SaleStatus.UNPAID:
            if member is None or member.is_general:
                raise ValueError('A credit sale needs a specific member, not the general customer.')
            if payment >= total:
                raise ValueError('Payment covers the total; settle it as a paid sale.')
            change = Decimal('0')
        else:
            if payment < total:
                raise ValueError(f'Payment {payment} is less than the total {total}.')
            change = payment - total

        # ── Lock all product rows in a deterministic order ────────
        # Always in product-id order across tills.
        quantities = {}
        for line in items:
            try:
                pid = int(line['product_id'])
                qty = int(line['quantity'])
            except (KeyError, TypeError, ValueError):
                raise ValueError('Each item needs a product_id and an integer quantity.')
            if qty <= 0:
                raise ValueError('Quantities must be positive.')
            quantities[pid] = quantities.get(pid, 0) + qty

        locked = {}
        for pid in sorted(quantities):
            product = (
                db.session.query(Product)
                .filter(Product.id == pid)
                .with_for_update()
                .first()
            )
            if product is None or not product.is_active:
                raise LookupError(f'Product {pid} no longer exists.')
            locked[pid] = product

        # ── Stock validation (all-or-nothing) ─────────────────────
        for pid, required in quantities.items():
            product = locked[pid]
            if product.stock < required:
                raise ValueError(
                    f'Insufficient stock for "{product.name}". '
                    f'Available: {product.stock}, requested: {required}.'
                )

        created_at = datetime.utcnow()
        sale = Sale(
            invoice_number      = next_invoice_number(db.session, created_at),
            submission_token    = token,
            created_at          = created_at,
            cashier_id          = cashier.id,
            attendant_id        = attendant.id if attendant else None,
            member_id           = member.id if member else None,
            total               = total,
            discount            = to_money(payload.get('discount'), 'discount'),
            additional_discount = to_money(payload.get('additional_discount'), 'additional_discount'),
            tax                 = to_money(payload.get('tax'), 'tax'),
            payment             = payment,
            change              = change,
            status              = status,
        )
        db.session.add(sale)

        for line in items:
            pid   = int(line['product_id'])
            qty   = int(line['quantity'])
            price = to_money(line.get('price'), 'price')
            sale.items.append(SaleItem(
                product_id = pid,
                quantity   = qty,
                price      = price,
                discount   = to_money(line.get('discount'), 'discount'),
                subtotal   = price * qty,
            ))

        for pid, qty in quantities.items():
            product = locked[pid]
            old_stock = product.stock
            product.stock -= qty
            db.session.add(InventoryLog(
                product_id=pid,
                old_stock=old_stock,
                new_stock=product.stock,
                changed_by=cashier.id,
                reason=f'Sale Deduction ({sale.invoice_number})',
            ))

        if status == SaleStatus.UNPAID:
            sale.receivable = Receivable(
                member_id   = member.id,
                amount_due  = total,
                amount_paid = payment,
                status      = (ReceivableStatus.PARTIALLY_PAID if payment > 0
                               else ReceivableStatus.UNPAID),
            )

        db.session.commit()
    except (ValueError, LookupError):
        db.session.rollback()
        raise
    except IntegrityError as exc:
        db.session.rollback()
        recorded = _recorded_with_token(token)
        if recorded is None:
            raise
        raise DuplicateSaleError(recorded.invoice_number) from exc

    logger.info("Sale %s recorded by user %s | %s | total %s",
                sale.invoice_number, cashier_id, status.value, sale.total)
    return sale


def list_sales(page: int = 1, limit: int = 10, cashier_id=None, member_id=None):
    query = Sale.query
    if cashier_id:
        query = query.filter(Sale.cashier_id == cashier_id)
    if member_id:
        query = query.filter(Sale.member_id == member_id)
    total = query.count()
    rows = (query.order_by(Sale.created_at.desc(), Sale.id.desc())
            .offset((page - 1) * limit).limit(limit).all())
    return rows, total


# ── Suspended sales ───────────────────────────────────────────────

def create_suspended_sale(cart_items, created_by, name=None, notes=None,
                          member_id=None, attendant_id=None,
                          additional_discount=None) -> SuspendedSale:
    try:
        if not isinstance(cart_items, list) or not cart_items:
            raise ValueError('Cart items are required.')
        if member_id is not None and db.session.get(Member, member_id) is None:
            raise LookupError('Member not found.')
        _get_attendant(attendant_id)

        parked = SuspendedSale(
            name                = (name or '').strip() or None,
            notes               = (notes or '').strip() or None,
            cart_items          = json.dumps(cart_items),
            member_id           = member_id,
            attendant_id        = attendant_id,
            additional_discount = to_money(additional_discount, 'additional_discount'),
            created_by          = created_by,
        )
        db.session.add(parked)
        db.session.commit()
    except (ValueError, LookupError, TypeError):
        db.session.rollback()
        raise

    logger.info("Sale suspended as #%s (%d lines) by user %s",
                parked.id, len(cart_items), created_by)
    return parked


def list_suspended_sales():
    return SuspendedSale.query.order_by(SuspendedSale.created_at.desc(),
                                        SuspendedSale.id.desc()).all()


def delete_suspended_sale(suspended_id: int) -> None:
    parked = db.session.get(SuspendedSale, suspended_id)
    if parked is None:
        raise LookupError(f'Suspended sale {suspended_id} not found.')
    db.session.delete(parked)
    db.session.commit()


# ── Receivables ───────────────────────────────────────────────────

def parse_statuses(raw) -> list:
    """'UNPAID,PARTIALLY_PAID' or an iterable → list of ReceivableStatus."""
    if isinstance(raw, str):
        raw = [s for s in raw.split(',') if s.strip()]
    try:
        return [ReceivableStatus(s.strip().upper()) for s in raw or []]
    except ValueError:
        raise ValueError('Unknown receivable status.')


def search_receivables(statuses=None, search: str = ''):
    query = Receivable.query.join(Member, Receivable.member_id == Member.id)
    statuses = parse_statuses(statuses)
    if statuses:
        query = query.filter(Receivable.status.in_(statuses))
    if search:
        query = query.filter(Member.name.ilike(f'%{search}%'))
    return query.order_by(Receivable.created_at.desc(), Receivable.id.desc()).all()


def get_receivable(receivable_id: int) -> Receivable:
    receivable = db.session.get(Receivable, receivable_id)
    if receivable is None:
        raise LookupError('Receivable not found.')
    return receivable


def pay_receivable(receivable_id: int, amount, cashier_id=None) -> Receivable:
    """Record a repayment; the receivable becomes PAID when nothing remains."""
    try:
        amount = to_money(amount, 'amount')
        if amount <= 0:
            raise ValueError('A valid payment amount is required.')

        receivable = (
            db.session.query(Receivable)
            .filter(Receivable.id == receivable_id)
            .with_for_update()
            .first()
        )
        if receivable is None:
            raise LookupError('Receivable not found.')
        if receivable.status == ReceivableStatus.PAID:
            raise ValueError('This receivable is already settled.')

        remaining = receivable.remaining
        if amount > remaining:
            raise ValueError(f'Payment exceeds the remaining balance. Remaining: {remaining}')

        receivable.amount_paid = Decimal(str(receivable.amount_paid)) + amount
        receivable.status = (ReceivableStatus.PAID if receivable.remaining <= 0
                             else ReceivableStatus.PARTIALLY_PAID)
        db.session.add(ReceivablePayment(receivable_id=receivable.id, amount=amount,
                                         cashier_id=cashier_id))
        db.session.commit()
    except (ValueError, LookupError):
        db.session.rollback()
        raise

    logger.info("Receivable %s paid %s by user %s (remaining %s)",
                receivable.id, amount, cashier_id, receivable.remaining)
    return receivable
