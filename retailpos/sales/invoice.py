"""
retailpos/sales/invoice.py
--------------------------
Invoice numbers for recorded sales: YYYY-NNNN, one series per year.

The year comes from the sale's own timestamp, not the clock at allocation
time, so a sale stamped on 31 December is numbered in that year's series.
Numbers come from a locked InvoiceSequence row that only advances when the
sale commits, so the series has no gaps.
"""
from datetime import datetime

from retailpos.sales.models import InvoiceSequence


def format_invoice_number(year: int, seq: int) -> str:
    return f"{year}-{seq:04d}"


def sequence_for(db_session, year: int, lock: bool = False) -> InvoiceSequence:
    """The sequence row for `year`, inserted at zero when the year has none yet."""
    query = db_session.query(InvoiceSequence).filter(InvoiceSequence.year == year)
    if lock:
        query = query.with_for_update()
    row = query.first()
    if row is None:
        row = InvoiceSequence(year=year, last_seq=0)
        db_session.add(row)
        db_session.flush()
    return row


def next_invoice_number(db_session, issued_at: datetime = None) -> str:
    """
    Advance the series for the year of `issued_at` and return the number.

    Must run inside the transaction that inserts the Sale; the row lock is
    held until that transaction ends.
    """
    year = (issued_at or datetime.utcnow()).year
    row = sequence_for(db_session, year, lock=True)
    row.last_seq += 1
    db_session.flush()
    return format_invoice_number(year, row.last_seq)
