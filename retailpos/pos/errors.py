"""
retailpos/pos/errors.py
-----------------------
Failure taxonomy of the till core.

ValidationError      detected locally, before any gateway call; no state change
ConfirmationRequired the action would discard work and must be re-issued
                     with an explicit confirmation
SubmissionError      the data API rejected the request; local state unchanged,
                     except status 409 (sale already recorded) which clears it
"""


class PosError(Exception):
    """Base class for every recoverable till error."""


class ValidationError(PosError):
    pass


class ConfirmationRequired(ValidationError):
    pass


class SubmissionError(PosError):
    """Carries the data API's message so it can be shown to the cashier."""

    def __init__(self, message, status=None):
        super().__init__(message)
        self.status = status
