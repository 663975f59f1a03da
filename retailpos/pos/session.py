"""
retailpos/pos/session.py
------------------------
State of one cashier's open transaction.

Every mutator changes the cart or its inputs and then recomputes the
calculation before returning, so `calculation` always matches the cart.
The whole state serialises to a JSON-safe dict and lives in the Flask
session between requests.
"""
import logging
from decimal import Decimal, InvalidOperation
from typing import Optional

from retailpos.pos.calculation import recompute
from retailpos.pos.cart import CartStore
from retailpos.pos.errors import ValidationError
from retailpos.pos.records import AttendantRef, MemberRef

logger = logging.getLogger(__name__)


def parse_amount(value, label: str) -> Decimal:
    """Non-negative money amount from user input."""
    if value is None or value == '':
        return Decimal('0')
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationError(f'{label} must be a number.')
    if not amount.is_finite():
        raise ValidationError(f'{label} must be a number.')
    if amount < 0:
        raise ValidationError(f'{label} cannot be negative.')
    return amount


class TransactionSession:

    def __init__(self, cashier_id: int, general_customer: Optional[MemberRef] = None):
        self.cashier_id          = cashier_id
        self.general_customer    = general_customer
        self.cart                = CartStore()
        self.member: Optional[MemberRef]       = None
        self.attendant: Optional[AttendantRef] = None
        self.payment             = Decimal('0')
        self.additional_discount = Decimal('0')
        self.calculation         = None
        self.pending: Optional[str] = None     # settlement type awaiting confirmation
        self.submission_token: Optional[str] = None   # one-time, armed with `pending`
        self.loading             = False       # a submission is in flight
        self.notices             = []

    @property
    def effective_member(self) -> Optional[MemberRef]:
        """Selected member, or the general customer when nobody is selected."""
        return self.member or self.general_customer

    @property
    def has_specific_member(self) -> bool:
        return self.member is not None and not self.member.is_general

    @property
    def change_due(self) -> Decimal:
        if self.calculation is None:
            return Decimal('0')
        return max(self.payment - self.calculation.grand_total, Decimal('0'))

    # ── Pipeline ──────────────────────────────────────────────────

    def recalculate(self):
        self.calculation = recompute(self.cart.lines, self.effective_member,
                                     self.additional_discount)
        self.notices.extend(self.cart.drain_notices())
        return self.calculation

    def add_product(self, product):
        line = self.cart.add(product)
        self.recalculate()
        return line

    def update_quantity(self, product_id: int, quantity: int):
        line = self.cart.update_quantity(product_id, quantity)
        self.recalculate()
        return line

    def remove_product(self, product_id: int):
        self.cart.remove(product_id)
        self.recalculate()

    def select_member(self, member: Optional[MemberRef]):
        """None, or the general customer itself, clears the selection."""
        self.member = member if member is not None and not member.is_general else None
        self.recalculate()

    def select_attendant(self, attendant: Optional[AttendantRef]):
        self.attendant = attendant

    def set_payment(self, value):
        self.payment = parse_amount(value, 'Payment')

    def set_additional_discount(self, value):
        self.additional_discount = parse_amount(value, 'Additional discount')
        self.recalculate()

    def load(self, lines, member=None, attendant=None, additional_discount=Decimal('0')):
        """Replace the transaction with restored lines and selections."""
        self.reset()
        self.cart.replace(lines)
        self.member = member if member is not None and not member.is_general else None
        self.attendant = attendant
        self.additional_discount = Decimal(str(additional_discount or 0))
        self.recalculate()

    def reset(self):
        """Back to an empty transaction for the same cashier."""
        self.cart.clear()
        self.member = None
        self.attendant = None
        self.payment = Decimal('0')
        self.additional_discount = Decimal('0')
        self.calculation = None
        self.pending = None
        self.submission_token = None

    def drain_notices(self) -> list:
        notices, self.notices = self.notices, []
        return notices

    # ── Serialisation ─────────────────────────────────────────────

    def to_dict(self) -> dict:
        return {
            'cashier_id':          self.cashier_id,
            'general_customer':    self.general_customer.to_dict() if self.general_customer else None,
            'cart':                self.cart.to_list(),
            'member':              self.member.to_dict() if self.member else None,
            'attendant':           self.attendant.to_dict() if self.attendant else None,
            'payment':             str(self.payment),
            'additional_discount': str(self.additional_discount),
            'pending':             self.pending,
            'submission_token':    self.submission_token,
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'TransactionSession':
        general = data.get('general_customer')
        state = cls(int(data['cashier_id']),
                    MemberRef.from_dict(general) if general else None)
        state.cart = CartStore.from_list(data.get('cart'))
        if data.get('member'):
            state.member = MemberRef.from_dict(data['member'])
        if data.get('attendant'):
            state.attendant = AttendantRef.from_dict(data['attendant'])
        state.payment = Decimal(data.get('payment') or '0')
        state.additional_discount = Decimal(data.get('additional_discount') or '0')
        state.pending = data.get('pending')
        state.submission_token = data.get('submission_token')
        state.calculation = recompute(state.cart.lines, state.effective_member,
                                      state.additional_discount)
        return state

    def snapshot(self) -> dict:
        """What the cashier screen renders."""
        return {
            'cart':                self.cart.to_list(),
            'member':              self.effective_member.to_dict() if self.effective_member else None,
            'attendant':           self.attendant.to_dict() if self.attendant else None,
            'payment':             str(self.payment),
            'additional_discount': str(self.additional_discount),
            'calculation':         self.calculation.to_dict() if self.calculation else None,
            'change':              str(self.change_due),
            'pending':             self.pending,
            'notices':             self.drain_notices(),
        }
