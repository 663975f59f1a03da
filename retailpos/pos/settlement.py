"""
retailpos/pos/settlement.py
---------------------------
Finalizing the open transaction.

Two settlement types, both confirmed in two steps:

  PAID    payment >= grand total, attendant selected. Produces receipt data.
  UNPAID  a specific (non-general) member buys on credit; any payment is a
          down payment and the data API opens a receivable for the rest.

initiate_*() checks the preconditions and arms the pending confirmation
together with a fresh submission token. confirm() consumes both, checks
again and submits once. The token travels with the sale and the data API
records it, so replaying an armed state (a double click that resends the
same session cookie) is refused as a duplicate instead of producing a
second invoice. A failed submission leaves the transaction exactly as it
was; a refused duplicate clears it, since that sale already exists.
"""
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional, Tuple

from retailpos.pos.calculation import CalculatedLine
from retailpos.pos.errors import SubmissionError, ValidationError
from retailpos.pos.records import AttendantRef, MemberRef, SaleLine, SaleResult, SaleSubmission

logger = logging.getLogger(__name__)

PAID   = 'PAID'
UNPAID = 'UNPAID'


@dataclass(frozen=True)
class Receipt:
    sale_id:             int
    invoice_number:      str
    date:                datetime
    cashier_id:          int
    member:              Optional[MemberRef]
    attendant:           Optional[AttendantRef]
    items:               Tuple[CalculatedLine, ...]
    sub_total:           Decimal
    item_discount:       Decimal
    member_discount:     Decimal
    additional_discount: Decimal
    total_discount:      Decimal
    tax:                 Decimal
    grand_total:         Decimal
    payment:             Decimal
    change:              Decimal

    def to_dict(self) -> dict:
        return {
            'sale_id':             self.sale_id,
            'invoice_number':      self.invoice_number,
            'date':                self.date.isoformat() if self.date else None,
            'cashier_id':          self.cashier_id,
            'member':              self.member.to_dict() if self.member else None,
            'attendant':           self.attendant.to_dict() if self.attendant else None,
            'items':               [i.to_dict() for i in self.items],
            'sub_total':           str(self.sub_total),
            'item_discount':       str(self.item_discount),
            'member_discount':     str(self.member_discount),
            'additional_discount': str(self.additional_discount),
            'total_discount':      str(self.total_discount),
            'tax':                 str(self.tax),
            'grand_total':         str(self.grand_total),
            'payment':             str(self.payment),
            'change':              str(self.change),
        }


@dataclass(frozen=True)
class SettlementOutcome:
    transaction_type: str
    sale:             SaleResult
    receipt:          Optional[Receipt] = None     # PAID only
    message:          str = ''

    def to_dict(self) -> dict:
        return {
            'transaction_type': self.transaction_type,
            'sale': {
                'id':             self.sale.id,
                'invoice_number': self.sale.invoice_number,
                'date':           self.sale.date.isoformat() if self.sale.date else None,
            },
            'receipt': self.receipt.to_dict() if self.receipt else None,
            'message': self.message,
        }


class SettlementCoordinator:

    def __init__(self, session, gateway):
        self.session = session
        self.gateway = gateway

    # ── Preconditions ─────────────────────────────────────────────

    def _check_paid(self):
        state = self.session
        if state.calculation is None:
            raise ValidationError('The cart is empty.')
        if state.payment < state.calculation.grand_total:
            raise ValidationError(
                f'Payment {state.payment} is less than the total {state.calculation.grand_total}.')
        if state.attendant is None:
            raise ValidationError('Select an attendant before settling.')

    def _check_unpaid(self):
        state = self.session
        if state.calculation is None:
            raise ValidationError('The cart is empty.')
        if not state.has_specific_member:
            raise ValidationError('Select a member for a credit sale; the general customer cannot buy on credit.')
        if state.payment >= state.calculation.grand_total:
            raise ValidationError('Payment covers the total; settle it as a paid sale.')

    def _check(self, kind):
        if kind == PAID:
            self._check_paid()
        elif kind == UNPAID:
            self._check_unpaid()
        else:
            raise ValidationError(f'Unknown settlement type {kind!r}.')

    # ── Two-step flow ─────────────────────────────────────────────

    def initiate_paid(self):
        self._initiate(PAID)

    def initiate_unpaid(self):
        self._initiate(UNPAID)

    def _initiate(self, kind):
        if self.session.loading:
            raise ValidationError('A submission is already in progress.')
        self._check(kind)
        self.session.pending = kind
        self.session.submission_token = uuid.uuid4().hex

    def cancel(self):
        self.session.pending = None
        self.session.submission_token = None

    def confirm(self) -> SettlementOutcome:
        state = self.session
        if state.loading:
            raise ValidationError('A submission is already in progress.')
        kind = state.pending
        if kind is None:
            raise ValidationError('There is no settlement awaiting confirmation.')
        token = state.submission_token
        state.pending = None
        state.submission_token = None

        self._check(kind)
        submission = self._build_submission(kind, token)

        state.loading = True
        try:
            result = self.gateway.submit_sale(submission)
        except SubmissionError as exc:
            if exc.status == 409:
                logger.warning("%s sale already recorded for cashier %s: %s",
                               kind, state.cashier_id, exc)
                state.reset()
            else:
                logger.warning("%s sale rejected for cashier %s: %s", kind, state.cashier_id, exc)
            raise
        finally:
            state.loading = False

        outcome = self._outcome(kind, submission, result)
        logger.info("%s sale %s settled by cashier %s | total %s",
                    kind, result.invoice_number, state.cashier_id, submission.total)
        state.reset()
        return outcome

    # ── Building ──────────────────────────────────────────────────

    def _build_submission(self, kind, token=None) -> SaleSubmission:
        state = self.session
        calc = state.calculation
        member = state.effective_member
        lines = tuple(
            SaleLine(
                product_id=item.product_id,
                quantity=item.quantity,
                price=item.price_after_item_discount,
                discount=item.original_price - item.price_after_item_discount,
            )
            for item in calc.items
        )
        change = state.payment - calc.grand_total if kind == PAID else Decimal('0')
        return SaleSubmission(
            cashier_id=state.cashier_id,
            attendant_id=state.attendant.id if state.attendant else None,
            member_id=member.id if member else None,
            items=lines,
            total=calc.grand_total,
            payment=state.payment,
            change=change,
            tax=calc.tax,
            discount=calc.total_discount,
            additional_discount=calc.additional_discount,
            transaction_type=kind,
            submission_token=token,
        )

    def _outcome(self, kind, submission, result) -> SettlementOutcome:
        state = self.session
        if kind == UNPAID:
            return SettlementOutcome(
                transaction_type=UNPAID,
                sale=result,
                message=f'Sale {result.invoice_number} recorded as debt for {state.member.name}.',
            )
        calc = state.calculation
        receipt = Receipt(
            sale_id=result.id,
            invoice_number=result.invoice_number,
            date=result.date,
            cashier_id=state.cashier_id,
            member=state.effective_member,
            attendant=state.attendant,
            items=calc.items,
            sub_total=calc.sub_total,
            item_discount=calc.item_discount,
            member_discount=calc.member_discount,
            additional_discount=calc.additional_discount,
            total_discount=calc.total_discount,
            tax=calc.tax,
            grand_total=calc.grand_total,
            payment=state.payment,
            change=submission.change,
        )
        return SettlementOutcome(transaction_type=PAID, sale=result, receipt=receipt,
                                 message=f'Sale {result.invoice_number} completed.')
