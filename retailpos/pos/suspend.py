"""
retailpos/pos/suspend.py
------------------------
Parking an open cart and bringing it back later.

A suspended sale stores the cart lines exactly as they were (quantity,
captured stock ceiling, frozen tiers) together with the selected member,
attendant and manual discount, so resuming reproduces the same calculation.
"""
import logging

from retailpos.pos.cart import CartLine
from retailpos.pos.errors import ConfirmationRequired, SubmissionError, ValidationError

logger = logging.getLogger(__name__)


class SuspendResumeManager:

    def __init__(self, session, gateway):
        self.session = session
        self.gateway = gateway

    def suspend(self, name=None, notes=None):
        state = self.session
        if len(state.cart) == 0:
            raise ValidationError('The cart is empty; there is nothing to suspend.')
        if state.loading:
            raise ValidationError('A submission is already in progress.')

        state.loading = True
        try:
            record = self.gateway.create_suspended(
                cart_items=state.cart.to_list(),
                created_by=state.cashier_id,
                name=name,
                notes=notes,
                member_id=state.member.id if state.member else None,
                attendant_id=state.attendant.id if state.attendant else None,
                additional_discount=state.additional_discount,
            )
        finally:
            state.loading = False

        logger.info("Cashier %s suspended %d line(s) as #%s",
                    state.cashier_id, len(state.cart), record.id)
        state.reset()
        return record

    def list_suspended(self):
        return self.gateway.list_suspended()

    def resume(self, suspended, confirm_discard: bool = False):
        """
        Replace the open transaction with `suspended`.

        A non-empty cart is only discarded with confirm_discard=True.
        Members or attendants that no longer exist are left unset.
        """
        state = self.session
        if len(state.cart) and not confirm_discard:
            raise ConfirmationRequired('The current cart is not empty. Confirm to discard it and resume.')

        try:
            lines = [CartLine.from_dict(row) for row in suspended.cart_items]
        except (KeyError, TypeError, ValueError, ArithmeticError):
            logger.error("Suspended sale %s has unreadable cart lines", suspended.id)
            raise ValidationError('This suspended sale cannot be read.')
        if not lines:
            raise ValidationError('This suspended sale has no items.')

        member = None
        if suspended.member_id is not None:
            member = self.gateway.get_member(suspended.member_id)
            if member is None:
                logger.info("Member %s of suspended sale %s no longer exists",
                            suspended.member_id, suspended.id)

        attendant = None
        if suspended.attendant_id is not None:
            attendant = self.gateway.get_attendant(suspended.attendant_id)
            if attendant is None:
                logger.info("Attendant %s of suspended sale %s no longer exists",
                            suspended.attendant_id, suspended.id)

        state.load(lines, member=member, attendant=attendant,
                   additional_discount=suspended.additional_discount)

        try:
            self.gateway.delete_suspended(suspended.id)
        except SubmissionError as exc:
            logger.warning("Resumed suspended sale %s but could not delete it: %s",
                           suspended.id, exc)

        logger.info("Cashier %s resumed suspended sale %s", state.cashier_id, suspended.id)
        return state.calculation

    def resume_by_id(self, suspended_id: int, confirm_discard: bool = False):
        suspended = self.gateway.get_suspended(suspended_id)
        if suspended is None:
            raise SubmissionError('Suspended sale not found.', status=404)
        return self.resume(suspended, confirm_discard=confirm_discard)
