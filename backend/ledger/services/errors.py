"""Errors raised by the recurrence engine and its persistence layer."""

from typing import Optional


class LedgerError(Exception):
    """Base class for ledger errors."""


class ValidationError(LedgerError, ValueError):
    """A recurrence rule or an edit request is outside the accepted contract."""


class TransactionNotFound(LedgerError, LookupError):
    """No transaction row matches the requested id."""

    def __init__(self, transaction_id: str):
        super().__init__(f"Transaction {transaction_id} not found")
        self.transaction_id = transaction_id


class StoreFailure(LedgerError):
    """
    The persistence layer rejected an operation.

    rolled_back is set when the failure ended an atomic block: True when the
    database transaction was rolled back, False when the rollback itself failed.
    """

    def __init__(self, message: str, rolled_back: Optional[bool] = None):
        super().__init__(message)
        self.rolled_back = rolled_back


class PartialSeriesFailure(LedgerError):
    """
    The child batch of a new series failed after the parent was written.

    rollback_succeeded tells the caller whether the parent was removed again.
    When it is False the parent row identified by parent_id needs manual cleanup
    and rollback_error holds the reason.
    """

    def __init__(
        self,
        parent_id: str,
        rollback_succeeded: bool,
        rollback_error: Optional[BaseException] = None,
    ):
        if rollback_succeeded:
            message = f"Creating occurrences for series {parent_id} failed; series was rolled back"
        else:
            message = (
                f"Creating occurrences for series {parent_id} failed and the parent "
                f"could not be removed: {rollback_error}"
            )
        super().__init__(message)
        self.parent_id = parent_id
        self.rollback_succeeded = rollback_succeeded
        self.rollback_error = rollback_error
