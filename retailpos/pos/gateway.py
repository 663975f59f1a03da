"""
retailpos/pos/gateway.py
------------------------
The till core's only way out: lookups, sale submission, suspended sales and
receivables.

PosGateway is the abstract boundary. DatabaseGateway serves it in-process
from the sales/catalog/members tables through the same service functions the
JSON data API uses, so both paths apply identical server-side rules.
"""
import logging
from abc import ABC, abstractmethod
from contextlib import contextmanager
from decimal import Decimal
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError

from retailpos.pos.errors import SubmissionError
from retailpos.pos.records import (
    AttendantRef, MemberRef, ProductRef, ReceivableRecord,
    SaleResult, SaleSubmission, SuspendedSaleRecord,
)

logger = logging.getLogger(__name__)


class PosGateway(ABC):

    # ── Catalog ───────────────────────────────────────────────────

    @abstractmethod
    def find_product(self, product_id: int) -> Optional[ProductRef]: ...

    @abstractmethod
    def find_product_by_code(self, code: str) -> Optional[ProductRef]: ...

    @abstractmethod
    def search_products(self, term: str, limit: int = 20) -> List[ProductRef]: ...

    # ── People ────────────────────────────────────────────────────

    @abstractmethod
    def list_members(self, search: str = '') -> List[MemberRef]: ...

    @abstractmethod
    def get_member(self, member_id: int) -> Optional[MemberRef]: ...

    @abstractmethod
    def general_customer(self) -> MemberRef: ...

    @abstractmethod
    def list_attendants(self) -> List[AttendantRef]: ...

    @abstractmethod
    def get_attendant(self, attendant_id: int) -> Optional[AttendantRef]: ...

    # ── Sales ─────────────────────────────────────────────────────

    @abstractmethod
    def submit_sale(self, submission: SaleSubmission) -> SaleResult:
        """
        Persist a finalized sale. Raises SubmissionError on rejection, with
        status 409 when the submission token was already recorded.
        """

    @abstractmethod
    def create_suspended(self, cart_items: list, created_by: int, name=None, notes=None,
                         member_id=None, attendant_id=None,
                         additional_discount=Decimal('0')) -> SuspendedSaleRecord: ...

    @abstractmethod
    def list_suspended(self) -> List[SuspendedSaleRecord]: ...

    @abstractmethod
    def get_suspended(self, suspended_id: int) -> Optional[SuspendedSaleRecord]: ...

    @abstractmethod
    def delete_suspended(self, suspended_id: int) -> None: ...

    # ── Receivables ───────────────────────────────────────────────

    @abstractmethod
    def search_receivables(self, statuses, fragment: str = '') -> List[ReceivableRecord]: ...

    @abstractmethod
    def get_receivable(self, receivable_id: int) -> Optional[ReceivableRecord]: ...

    @abstractmethod
    def pay_receivable(self, receivable_id: int, amount: Decimal,
                       cashier_id: int) -> ReceivableRecord: ...


# ── Row → record conversion ───────────────────────────────────────

def product_ref(product) -> ProductRef:
    return ProductRef.from_dict(product.to_dict())


def member_ref(member) -> MemberRef:
    return MemberRef.from_dict(member.to_dict())


def suspended_record(row) -> SuspendedSaleRecord:
    return SuspendedSaleRecord(
        id=row.id,
        name=row.name,
        notes=row.notes,
        cart_items=row.cart,
        member_id=row.member_id,
        attendant_id=row.attendant_id,
        additional_discount=Decimal(str(row.additional_discount or 0)),
        created_at=row.created_at,
    )


def receivable_record(row) -> ReceivableRecord:
    return ReceivableRecord(
        id=row.id,
        member=member_ref(row.member),
        sale_id=row.sale_id,
        amount_due=Decimal(str(row.amount_due)),
        amount_paid=Decimal(str(row.amount_paid)),
        status=row.status.value,
        invoice_number=row.sale.invoice_number if row.sale else None,
        sale_date=row.sale.created_at if row.sale else None,
    )


class DatabaseGateway(PosGateway):
    """In-process gateway. Needs an application context."""

    def __init__(self, general_customer_name: str = 'General Customer'):
        self.general_customer_name = general_customer_name

    @contextmanager
    def _translate(self, action: str):
        """Turn service-layer rejections into SubmissionError."""
        from retailpos import db
        from retailpos.sales.services import DuplicateSaleError
        try:
            yield
        except DuplicateSaleError as exc:
            raise SubmissionError(str(exc), status=409) from exc
        except LookupError as exc:
            raise SubmissionError(str(exc), status=404) from exc
        except ValueError as exc:
            raise SubmissionError(str(exc), status=400) from exc
        except SQLAlchemyError as exc:
            db.session.rollback()
            logger.error("Database error during %s: %s", action, exc, exc_info=True)
            raise SubmissionError('A database error occurred. Please try again.', status=500) from exc

    # ── Catalog ───────────────────────────────────────────────────

    def find_product(self, product_id):
        from retailpos import db
        from retailpos.catalog.models import Product
        product = db.session.get(Product, product_id)
        if product is None or not product.is_active:
            return None
        return product_ref(product)

    def find_product_by_code(self, code):
        from retailpos.catalog.routes import find_by_code
        product = find_by_code(code)
        return product_ref(product) if product else None

    def search_products(self, term, limit=20):
        from retailpos.catalog.routes import search
        return [product_ref(p) for p in search(term, limit)]

    # ── People ────────────────────────────────────────────────────

    def list_members(self, search=''):
        from retailpos.members.models import Member
        query = Member.query
        if search:
            query = query.filter(Member.name.ilike(f'%{search}%') |
                                 Member.phone.ilike(f'%{search}%'))
        return [member_ref(m) for m in query.order_by(Member.is_general.desc(),
                                                      Member.name.asc()).all()]

    def get_member(self, member_id):
        from retailpos import db
        from retailpos.members.models import Member
        member = db.session.get(Member, member_id)
        return member_ref(member) if member else None

    def general_customer(self):
        from retailpos.members.models import ensure_general_customer
        return member_ref(ensure_general_customer(self.general_customer_name))

    def list_attendants(self):
        from retailpos.auth.models import User, RoleEnum
        rows = (User.query
                .filter_by(role=RoleEnum.attendant, is_active=True)
                .order_by(User.name.asc())
                .all())
        return [AttendantRef(id=u.id, name=u.name) for u in rows]

    def get_attendant(self, attendant_id):
        from retailpos import db
        from retailpos.auth.models import User, RoleEnum
        user = db.session.get(User, attendant_id)
        if user is None or user.role != RoleEnum.attendant or not user.is_active:
            return None
        return AttendantRef(id=user.id, name=user.name)

    # ── Sales ─────────────────────────────────────────────────────

    def submit_sale(self, submission):
        from retailpos.sales import services
        with self._translate('sale submission'):
            sale = services.record_sale(submission.to_payload(), cashier_id=submission.cashier_id)
        return SaleResult(id=sale.id, invoice_number=sale.invoice_number, date=sale.created_at)

    def create_suspended(self, cart_items, created_by, name=None, notes=None,
                         member_id=None, attendant_id=None,
                         additional_discount=Decimal('0')):
        from retailpos.sales import services
        with self._translate('suspend'):
            row = services.create_suspended_sale(
                cart_items=cart_items,
                created_by=created_by,
                name=name,
                notes=notes,
                member_id=member_id,
                attendant_id=attendant_id,
                additional_discount=additional_discount,
            )
        return suspended_record(row)

    def list_suspended(self):
        from retailpos.sales import services
        return [suspended_record(r) for r in services.list_suspended_sales()]

    def get_suspended(self, suspended_id):
        from retailpos import db
        from retailpos.sales.models import SuspendedSale
        row = db.session.get(SuspendedSale, suspended_id)
        return suspended_record(row) if row else None

    def delete_suspended(self, suspended_id):
        from retailpos.sales import services
        with self._translate('suspended sale deletion'):
            services.delete_suspended_sale(suspended_id)

    # ── Receivables ───────────────────────────────────────────────

    def search_receivables(self, statuses, fragment=''):
        from retailpos.sales import services
        with self._translate('receivable search'):
            rows = services.search_receivables(statuses=statuses, search=fragment)
        return [receivable_record(r) for r in rows]

    def get_receivable(self, receivable_id):
        from retailpos.sales import services
        try:
            return receivable_record(services.get_receivable(receivable_id))
        except LookupError:
            return None

    def pay_receivable(self, receivable_id, amount, cashier_id):
        from retailpos.sales import services
        with self._translate('receivable payment'):
            row = services.pay_receivable(receivable_id, amount, cashier_id=cashier_id)
        return receivable_record(row)
