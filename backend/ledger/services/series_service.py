"""Creation, editing and deletion of recurring transaction series."""

import logging
from contextlib import nullcontext
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, Iterable, List, Optional

from ledger.models.transaction import Transaction
from ledger.services.errors import (
    PartialSeriesFailure,
    StoreFailure,
    TransactionNotFound,
    ValidationError,
)
from ledger.services.recurrence_service import RecurrenceRule, generate_dates, next_occurrence
from ledger.services.transaction_store import TransactionStore

logger = logging.getLogger(__name__)

# Payload copied verbatim onto every row of a series
SHARED_FIELDS = (
    "title",
    "description",
    "amount",
    "type",
    "category_id",
    "account_id",
    "card_id",
)
# Rule metadata, stored on the parent only
RULE_FIELDS = (
    "recurrence_frequency",
    "recurrence_interval",
    "recurrence_count",
    "custom_days",
)
# Columns a patch may change but never clear
REQUIRED_FIELDS = ("title", "amount", "type", "date")


@dataclass
class SeriesResult:
    """A created or loaded series. Non-recurring records have no children."""
    parent: Transaction
    children: List[Transaction] = field(default_factory=list)


@dataclass
class SeriesUpdate:
    parent: Transaction
    children_updated: int


def _only(values: Dict[str, Any], allowed: Iterable[str]) -> Dict[str, Any]:
    allowed = set(allowed)
    unknown = sorted(set(values) - allowed)
    if unknown:
        raise ValidationError(f"Fields not editable here: {', '.join(unknown)}")
    return dict(values)


def _normalize_refs(values: Dict[str, Any]) -> Dict[str, Any]:
    """Keep account_id and card_id mutually exclusive."""
    if values.get("account_id") is not None and values.get("card_id") is not None:
        raise ValidationError("A transaction can reference an account or a card, not both")
    if values.get("account_id") is not None:
        values.setdefault("card_id", None)
    if values.get("card_id") is not None:
        values.setdefault("account_id", None)
    return values


class SeriesLifecycleManager:
    """
    Turns recurrence rules into parent/child rows and keeps them consistent.

    A series is written as one parent template plus one child per generated
    date. Shared edits go to the parent and fan out to the children with a
    single update scoped by parent id. Deleting is either one row
    (delete_single) or the whole series (delete_series).
    """

    def __init__(self, store: TransactionStore):
        self.store = store

    # Creation

    def create(self, payload: Dict[str, Any], rule: Optional[RecurrenceRule] = None) -> SeriesResult:
        if rule is None:
            return SeriesResult(parent=self.create_single(payload))
        return self.create_series(payload, rule)

    def create_single(self, payload: Dict[str, Any]) -> Transaction:
        record = _normalize_refs(_only(payload, SHARED_FIELDS + ("date",)))
        if not isinstance(record.get("date"), date):
            raise ValidationError("A non-recurring transaction needs a date")
        record.update(is_recurring=False, is_parent_template=False, parent_transaction_id=None)

        transaction = self.store.insert_one(record)
        logger.info(f"Created transaction {transaction.id} on {transaction.date}")
        return transaction

    def create_series(self, payload: Dict[str, Any], rule: RecurrenceRule) -> SeriesResult:
        if not isinstance(rule, RecurrenceRule):
            raise ValidationError("A recurring transaction needs a valid recurrence rule")
        shared = _normalize_refs(_only(payload, SHARED_FIELDS + ("date",)))
        # The parent is anchored on the rule's start date
        shared.pop("date", None)

        dates = generate_dates(rule)
        parent_record = dict(
            shared,
            date=rule.start_date,
            is_recurring=True,
            is_parent_template=True,
            parent_transaction_id=None,
            recurrence_frequency=rule.frequency,
            recurrence_interval=rule.interval,
            recurrence_count=rule.count,
            custom_days=rule.custom_days,
            next_recurrence_date=dates[0],
        )

        if self.store.supports_transactions:
            result = self._create_series_atomic(parent_record, shared, dates)
        else:
            result = self._create_series_compensating(parent_record, shared, dates)

        logger.info(
            f"Created series {result.parent.id}: {rule.frequency.value} x{rule.count} "
            f"from {rule.start_date} to {dates[-1]}"
        )
        return result

    def _child_records(self, parent_id: str, shared: Dict[str, Any], dates: List[date]) -> List[Dict[str, Any]]:
        return [
            dict(
                shared,
                date=occurrence,
                is_recurring=False,
                is_parent_template=False,
                parent_transaction_id=parent_id,
            )
            for occurrence in dates
        ]

    def _create_series_atomic(self, parent_record, shared, dates) -> SeriesResult:
        parent_id = None
        try:
            with self.store.atomic():
                parent = self.store.insert_one(parent_record)
                parent_id = parent.id
                children = self.store.insert_batch(self._child_records(parent_id, shared, dates))
        except StoreFailure as e:
            if parent_id is None:
                raise
            if e.rolled_back is False:
                logger.error(f"Occurrences for series {parent_id} failed and the rollback failed: {e}")
                raise PartialSeriesFailure(parent_id, rollback_succeeded=False, rollback_error=e) from e
            logger.error(f"Occurrences for series {parent_id} failed, transaction rolled back: {e}")
            raise PartialSeriesFailure(parent_id, rollback_succeeded=True) from e
        return SeriesResult(parent=parent, children=children)

    def _create_series_compensating(self, parent_record, shared, dates) -> SeriesResult:
        # A failed parent insert propagates before any child is attempted
        parent = self.store.insert_one(parent_record)
        parent_id = parent.id
        try:
            children = self.store.insert_batch(self._child_records(parent_id, shared, dates))
        except StoreFailure as e:
            logger.error(f"Occurrences for series {parent_id} failed, removing parent: {e}")
            try:
                self.store.delete_by_id(parent_id)
            except StoreFailure as rollback_error:
                logger.error(f"Could not remove orphaned parent {parent_id}: {rollback_error}")
                raise PartialSeriesFailure(
                    parent_id, rollback_succeeded=False, rollback_error=rollback_error
                ) from e
            raise PartialSeriesFailure(parent_id, rollback_succeeded=True) from e
        return SeriesResult(parent=parent, children=children)

    # Reads

    def get_series(self, parent_id: str) -> SeriesResult:
        parent = self._require(parent_id)
        if not parent.is_parent_template:
            raise ValidationError(f"Transaction {parent_id} is not a recurring series")
        return SeriesResult(parent=parent, children=self.store.list_series_children(parent_id))

    # Edits

    def edit_single(self, transaction_id: str, patch: Dict[str, Any]) -> Transaction:
        """Update one row only. Children never carry recurrence fields."""
        record = self._require(transaction_id)
        allowed = SHARED_FIELDS + ("date",)
        if record.is_parent_template:
            allowed += RULE_FIELDS
        changes = self._prepare_patch(record, patch, allowed)

        self.store.update_by_id(transaction_id, changes)
        logger.info(f"Updated transaction {transaction_id}: {sorted(changes)}")
        return self._require(transaction_id)

    def edit_shared(self, parent_id: str, patch: Dict[str, Any]) -> SeriesUpdate:
        """Update the parent and copy the shared fields to every child of the series."""
        parent = self._require(parent_id)
        if not parent.is_parent_template:
            raise ValidationError(f"Transaction {parent_id} is not a recurring series")
        changes = self._prepare_patch(parent, patch, SHARED_FIELDS + RULE_FIELDS)
        shared = {name: value for name, value in changes.items() if name in SHARED_FIELDS}

        children_updated = 0
        with self._unit_of_work():
            self.store.update_by_id(parent_id, changes)
            if shared:
                children_updated = self.store.update_by_parent_id(parent_id, shared)

        logger.info(
            f"Updated series {parent_id}: {sorted(changes)} "
            f"({children_updated} occurrences)"
        )
        return SeriesUpdate(parent=self._require(parent_id), children_updated=children_updated)

    def _prepare_patch(self, record: Transaction, patch: Dict[str, Any], allowed) -> Dict[str, Any]:
        changes = _normalize_refs(_only(patch, allowed))
        if not changes:
            raise ValidationError("Nothing to update")
        cleared = [name for name in REQUIRED_FIELDS if name in changes and changes[name] is None]
        if cleared:
            raise ValidationError(f"Fields cannot be cleared: {', '.join(cleared)}")

        rule_changes = {name: changes[name] for name in RULE_FIELDS if name in changes}
        if rule_changes:
            rule = self._merged_rule(record, rule_changes)
            changes.update(
                recurrence_frequency=rule.frequency,
                recurrence_interval=rule.interval,
                recurrence_count=rule.count,
                custom_days=rule.custom_days,
                next_recurrence_date=next_occurrence(rule),
            )
            # Occurrences stay as materialized; only the parent's metadata moves
            logger.warning(
                f"Recurrence rule of series {record.id} changed; "
                f"existing occurrences are not regenerated"
            )
        return changes

    def _merged_rule(self, record: Transaction, rule_changes: Dict[str, Any]) -> RecurrenceRule:
        frequency = rule_changes.get("recurrence_frequency", record.recurrence_frequency)
        custom_days = rule_changes.get("custom_days", record.custom_days)
        if frequency is not None and frequency != "custom" and "custom_days" not in rule_changes:
            custom_days = None
        return RecurrenceRule(
            frequency=frequency,
            start_date=record.date,
            count=rule_changes.get("recurrence_count", record.recurrence_count),
            interval=rule_changes.get("recurrence_interval", record.recurrence_interval or 1),
            custom_days=custom_days,
        )

    # Deletion

    def delete_single(self, transaction_id: str) -> int:
        """
        Remove exactly one row.

        Removing a parent this way leaves its children pointing at an id that no
        longer exists; delete_series removes them afterwards.
        """
        record = self._require(transaction_id)
        if record.is_parent_template:
            orphans = self.store.count_children(transaction_id)
            if orphans:
                logger.warning(
                    f"Deleting parent {transaction_id} alone leaves {orphans} occurrences orphaned"
                )
        deleted = self.store.delete_by_id(transaction_id)
        logger.info(f"Deleted transaction {transaction_id}")
        return deleted

    def delete_series(self, parent_id: str) -> int:
        """Remove the parent and every row referencing it in one scoped delete."""
        record = self.store.get(parent_id)
        if record is not None and not record.is_parent_template:
            raise ValidationError(f"Transaction {parent_id} is not a recurring series")

        deleted = self.store.delete_by_parent_id(parent_id, include_parent=True)
        if deleted == 0:
            raise TransactionNotFound(parent_id)
        logger.info(f"Deleted series {parent_id} ({deleted} rows)")
        return deleted

    # Helpers

    def _unit_of_work(self):
        if self.store.supports_transactions:
            return self.store.atomic()
        return nullcontext()

    def _require(self, transaction_id: str) -> Transaction:
        record = self.store.get(transaction_id)
        if record is None:
            raise TransactionNotFound(transaction_id)
        return record

