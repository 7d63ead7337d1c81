"""SQLAlchemy-backed persistence for transaction rows."""

import logging
from contextlib import contextmanager
from datetime import date, timedelta
from typing import Any, Dict, Iterator, List, Optional

from sqlalchemy import func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ledger.models.recurrence import ExecutionWindow, Frequency
from ledger.models.transaction import Transaction, TransactionType
from ledger.services.errors import StoreFailure

logger = logging.getLogger(__name__)


def _window_condition(window: ExecutionWindow, today: date):
    next_date = Transaction.next_recurrence_date
    if window == ExecutionWindow.today:
        return next_date == today
    if window == ExecutionWindow.tomorrow:
        return next_date == today + timedelta(days=1)
    if window == ExecutionWindow.week:
        return next_date.between(today, today + timedelta(days=7))
    if window == ExecutionWindow.month:
        return next_date.between(today, today + timedelta(days=30))
    return next_date < today


class TransactionStore:
    """
    Row-level operations the series manager relies on.

    Every call commits on its own. Inside `atomic()` the calls share one
    database transaction that is committed when the block exits cleanly and
    rolled back otherwise.
    """

    def __init__(self, db: Session, transactional: bool = True):
        self.db = db
        self.supports_transactions = transactional
        self._in_atomic = False

    @contextmanager
    def atomic(self) -> Iterator["TransactionStore"]:
        if not self.supports_transactions:
            raise RuntimeError("This store does not support multi-statement transactions")
        if self._in_atomic:
            yield self
            return

        self._in_atomic = True
        try:
            yield self
            self.db.commit()
        except SQLAlchemyError as e:
            rolled_back = self._rollback()
            raise StoreFailure(f"Transaction failed: {e}", rolled_back=rolled_back) from e
        except StoreFailure as e:
            e.rolled_back = self._rollback()
            raise
        except BaseException:
            self._rollback()
            raise
        finally:
            self._in_atomic = False

    def _rollback(self) -> bool:
        """Roll back the session. Returns False when the rollback itself failed."""
        try:
            self.db.rollback()
        except SQLAlchemyError as e:
            logger.error(f"Rollback failed: {e}")
            return False
        return True

    def _finish(self) -> None:
        """Flush inside atomic blocks, commit otherwise."""
        if self._in_atomic:
            self.db.flush()
        else:
            self.db.commit()

    @contextmanager
    def _guard(self, operation: str) -> Iterator[None]:
        try:
            yield
        except SQLAlchemyError as e:
            logger.error(f"Store {operation} failed: {e}")
            if not self._in_atomic:
                self._rollback()
            raise StoreFailure(f"{operation} failed: {e}") from e

    # Reads

    def get(self, transaction_id: str) -> Optional[Transaction]:
        with self._guard("get"):
            return self.db.query(Transaction).filter(Transaction.id == transaction_id).first()

    def list_series_children(self, parent_id: str) -> List[Transaction]:
        with self._guard("list_series_children"):
            return self.db.query(Transaction).filter(
                Transaction.parent_transaction_id == parent_id
            ).order_by(Transaction.date).all()

    def list_parents(
        self,
        transaction_type: Optional[TransactionType] = None,
        category_id: Optional[str] = None,
        frequency: Optional[Frequency] = None,
        next_execution: Optional[ExecutionWindow] = None,
        upcoming: bool = False,
        search: Optional[str] = None,
        today: Optional[date] = None,
    ) -> List[Transaction]:
        """
        Parent templates, soonest upcoming occurrence first.

        next_execution matches on next_recurrence_date relative to `today`.
        upcoming keeps only series with an occurrence on or after `today`.
        """
        today = today or date.today()
        with self._guard("list_parents"):
            query = self.db.query(Transaction).filter(Transaction.is_parent_template == True)

            if transaction_type:
                query = query.filter(Transaction.type == transaction_type)
            if category_id:
                query = query.filter(Transaction.category_id == category_id)
            if frequency:
                query = query.filter(Transaction.recurrence_frequency == frequency)
            if next_execution:
                query = query.filter(_window_condition(next_execution, today))
            if upcoming:
                pending = select(Transaction.parent_transaction_id).where(
                    Transaction.parent_transaction_id.isnot(None),
                    Transaction.date >= today,
                )
                query = query.filter(Transaction.id.in_(pending))
            if search:
                query = query.filter(Transaction.title.ilike(f"%{search}%"))

            return query.order_by(Transaction.next_recurrence_date, Transaction.title).all()

    def count_children(self, parent_id: str) -> int:
        with self._guard("count_children"):
            return self.db.query(Transaction).filter(
                Transaction.parent_transaction_id == parent_id
            ).count()

    def child_counts(self, parent_ids: List[str]) -> Dict[str, int]:
        """Occurrence count per parent id in one grouped query. Parents without rows map to 0."""
        if not parent_ids:
            return {}
        with self._guard("child_counts"):
            rows = self.db.query(
                Transaction.parent_transaction_id, func.count(Transaction.id)
            ).filter(
                Transaction.parent_transaction_id.in_(parent_ids)
            ).group_by(Transaction.parent_transaction_id).all()
        counts = dict.fromkeys(parent_ids, 0)
        counts.update({parent_id: count for parent_id, count in rows})
        return counts

    # Writes

    def insert_one(self, record: Dict[str, Any]) -> Transaction:
        """Insert a single row and return it with its assigned id."""
        with self._guard("insert_one"):
            transaction = Transaction(**record)
            self.db.add(transaction)
            self._finish()
            self.db.refresh(transaction)
            return transaction

    def insert_batch(self, records: List[Dict[str, Any]]) -> List[Transaction]:
        """Insert all rows or none of them."""
        with self._guard("insert_batch"):
            transactions = [Transaction(**record) for record in records]
            self.db.add_all(transactions)
            self._finish()
            for transaction in transactions:
                self.db.refresh(transaction)
            return transactions

    def update_by_id(self, transaction_id: str, patch: Dict[str, Any]) -> int:
        with self._guard("update_by_id"):
            updated = self.db.query(Transaction).filter(
                Transaction.id == transaction_id
            ).update(patch, synchronize_session="fetch")
            self._finish()
            return updated

    def update_by_parent_id(self, parent_id: str, patch: Dict[str, Any]) -> int:
        with self._guard("update_by_parent_id"):
            updated = self.db.query(Transaction).filter(
                Transaction.parent_transaction_id == parent_id
            ).update(patch, synchronize_session="fetch")
            self._finish()
            return updated

    def delete_by_id(self, transaction_id: str) -> int:
        with self._guard("delete_by_id"):
            deleted = self.db.query(Transaction).filter(
                Transaction.id == transaction_id
            ).delete(synchronize_session="fetch")
            self._finish()
            return deleted

    def delete_by_parent_id(self, parent_id: str, include_parent: bool = False) -> int:
        """Delete every row referencing `parent_id`, and the parent itself when asked."""
        with self._guard("delete_by_parent_id"):
            condition = Transaction.parent_transaction_id == parent_id
            if include_parent:
                condition = or_(condition, Transaction.id == parent_id)
            deleted = self.db.query(Transaction).filter(condition).delete(
                synchronize_session="fetch"
            )
            self._finish()
            return deleted
