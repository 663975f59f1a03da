"""
retailpos/pos/debt.py
---------------------
Repayment of open receivables from the till.

The result list is always what the data API last returned: after a payment
the previous search is simply run again rather than patched locally.
"""
import logging

from retailpos.pos.errors import SubmissionError, ValidationError
from retailpos.pos.search import Debouncer, LatestOnly
from retailpos.pos.session import parse_amount

logger = logging.getLogger(__name__)

OPEN_STATUSES = ('UNPAID', 'PARTIALLY_PAID')


class DebtSettlementCoordinator:

    def __init__(self, gateway, cashier_id: int, statuses=OPEN_STATUSES,
                 debounce_seconds: float = 0.3):
        self.gateway = gateway
        self.cashier_id = cashier_id
        self.statuses = tuple(statuses)
        self.results = []
        self.selected = None
        self.last_fragment = ''
        self.loading = False
        self._tickets = LatestOnly()
        self._debouncer = Debouncer(debounce_seconds)

    def search(self, fragment: str = ''):
        """Open receivables whose member name contains `fragment`."""
        fragment = (fragment or '').strip()
        ticket = self._tickets.issue()
        rows = self.gateway.search_receivables(self.statuses, fragment)
        if self._tickets.accept(ticket, rows, self._apply):
            self.last_fragment = fragment
        return self.results

    def search_as_you_type(self, fragment: str):
        """
        Debounced search for an in-process front end; a burst of keystrokes
        runs one query, and only its result lands in `results`.
        """
        return self._debouncer.call(self.search, fragment)

    def _apply(self, rows):
        self.results = list(rows)

    def select(self, receivable_id: int):
        for row in self.results:
            if row.id == receivable_id:
                self.selected = row
                return row
        row = self.gateway.get_receivable(receivable_id)
        if row is None:
            raise SubmissionError('Receivable not found.', status=404)
        self.selected = row
        return row

    def pay(self, receivable, amount):
        """
        Record a repayment of 0 < amount <= remaining, then refresh the
        last search. Returns the updated receivable.
        """
        if self.loading:
            raise ValidationError('A payment is already in progress.')
        if receivable is None:
            raise ValidationError('Select a receivable to pay.')

        amount = parse_amount(amount, 'Payment amount')
        if amount <= 0:
            raise ValidationError('Enter a payment amount greater than zero.')
        if amount > receivable.remaining:
            raise ValidationError(
                f'Payment exceeds the remaining balance. Remaining: {receivable.remaining}')

        self.loading = True
        try:
            updated = self.gateway.pay_receivable(receivable.id, amount, self.cashier_id)
        finally:
            self.loading = False

        logger.info("Cashier %s paid %s on receivable %s (remaining %s)",
                    self.cashier_id, amount, receivable.id, updated.remaining)
        self.selected = None
        self.search(self.last_fragment)
        return updated

    def pay_by_id(self, receivable_id: int, amount):
        receivable = self.gateway.get_receivable(receivable_id)
        if receivable is None:
            raise SubmissionError('Receivable not found.', status=404)
        return self.pay(receivable, amount)
