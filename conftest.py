import dataclasses
from datetime import datetime
from decimal import Decimal

import pytest

from retailpos.pos.errors import SubmissionError
from retailpos.pos.gateway import PosGateway
from retailpos.pos.pricing import PriceTier
from retailpos.pos.records import (
    AttendantRef, MemberRef, ProductRef, ReceivableRecord,
    SaleResult, SuspendedSaleRecord,
)
from retailpos.pos.session import TransactionSession


def make_product(pid, name=None, stock=100, tiers=((1, '1000'),), code=None):
    return ProductRef(
        id=pid,
        name=name or f'Product {pid}',
        product_code=code or f'P{pid:03d}',
        stock=stock,
        price_tiers=tuple(PriceTier(q, Decimal(p)) for q, p in tiers),
    )


class FakeGateway(PosGateway):
    """In-memory PosGateway recording every call the till makes."""

    def __init__(self):
        self.general = MemberRef(id=1, name='General Customer', is_general=True)
        self.products = {}
        self.members = {1: self.general}
        self.attendants = {}
        self.suspended = {}
        self.receivables = {}
        self.submissions = []
        self.recorded_tokens = []
        self.payments = []
        self.receivable_searches = []
        self.fail_submit = None          # SubmissionError to raise on next submit
        self.fail_delete = False
        self._next_sale = 0
        self._next_suspended = 0

    def add_product(self, product):
        self.products[product.id] = product
        return product

    def add_member(self, member):
        self.members[member.id] = member
        return member

    def add_attendant(self, attendant):
        self.attendants[attendant.id] = attendant
        return attendant

    # ── Catalog ──
    def find_product(self, product_id):
        return self.products.get(product_id)

    def find_product_by_code(self, code):
        for p in self.products.values():
            if p.product_code.lower() == code.lower():
                return p
        return None

    def search_products(self, term, limit=20):
        term = term.lower()
        rows = [p for p in self.products.values()
                if term in p.name.lower() or term in p.product_code.lower()]
        return rows[:limit]

    # ── People ──
    def list_members(self, search=''):
        return [m for m in self.members.values() if search.lower() in m.name.lower()]

    def get_member(self, member_id):
        return self.members.get(member_id)

    def general_customer(self):
        return self.general

    def list_attendants(self):
        return list(self.attendants.values())

    def get_attendant(self, attendant_id):
        return self.attendants.get(attendant_id)

    # ── Sales ──
    def submit_sale(self, submission):
        self.submissions.append(submission)
        if self.fail_submit is not None:
            exc, self.fail_submit = self.fail_submit, None
            raise exc
        token = submission.submission_token
        if token is not None and token in self.recorded_tokens:
            raise SubmissionError('This sale was already recorded.', status=409)
        self.recorded_tokens.append(token)
        self._next_sale += 1
        return SaleResult(id=self._next_sale, invoice_number=f'2026-{self._next_sale:04d}',
                          date=datetime(2026, 10, 19, 10, 0))

    def create_suspended(self, cart_items, created_by, name=None, notes=None,
                         member_id=None, attendant_id=None,
                         additional_discount=Decimal('0')):
        self._next_suspended += 1
        record = SuspendedSaleRecord(
            id=self._next_suspended, name=name, notes=notes, cart_items=cart_items,
            member_id=member_id, attendant_id=attendant_id,
            additional_discount=additional_discount, created_at=datetime(2026, 10, 19, 9, 0),
        )
        self.suspended[record.id] = record
        return record

    def list_suspended(self):
        return list(self.suspended.values())

    def get_suspended(self, suspended_id):
        return self.suspended.get(suspended_id)

    def delete_suspended(self, suspended_id):
        if self.fail_delete:
            raise SubmissionError('Storage unavailable', status=500)
        if suspended_id not in self.suspended:
            raise SubmissionError('Suspended sale not found.', status=404)
        del self.suspended[suspended_id]

    # ── Receivables ──
    def search_receivables(self, statuses, fragment=''):
        self.receivable_searches.append((tuple(statuses), fragment))
        return [r for r in self.receivables.values()
                if r.status in statuses and fragment.lower() in r.member.name.lower()]

    def get_receivable(self, receivable_id):
        return self.receivables.get(receivable_id)

    def pay_receivable(self, receivable_id, amount, cashier_id):
        self.payments.append((receivable_id, amount, cashier_id))
        current = self.receivables[receivable_id]
        paid = current.amount_paid + amount
        status = 'PAID' if paid >= current.amount_due else 'PARTIALLY_PAID'
        updated = dataclasses.replace(current, amount_paid=paid, status=status)
        self.receivables[receivable_id] = updated
        return updated

    def add_receivable(self, rid, member, amount_due, amount_paid='0', status='UNPAID'):
        record = ReceivableRecord(
            id=rid, member=member, sale_id=100 + rid,
            amount_due=Decimal(amount_due), amount_paid=Decimal(amount_paid),
            status=status, invoice_number=f'2026-{rid:04d}',
        )
        self.receivables[rid] = record
        return record


@pytest.fixture
def gateway():
    gw = FakeGateway()
    gw.add_attendant(AttendantRef(id=50, name='Budi'))
    gw.add_member(MemberRef(id=2, name='Siti Rahma', discount=Decimal('10'), membership_type='GOLD'))
    return gw


@pytest.fixture
def till(gateway):
    return TransactionSession(cashier_id=7, general_customer=gateway.general_customer())
