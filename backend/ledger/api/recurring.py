"""API endpoints for recurring series management."""

from fastapi import APIRouter, Depends, HTTPException, Query
from typing import List, Optional

from ledger.dependencies import get_series_manager, get_transaction_store
from ledger.models.recurrence import ExecutionWindow, Frequency
from ledger.models.transaction import TransactionType
from ledger.schemas.recurring import RecurrencePreviewRequest, RecurrencePreviewResponse
from ledger.schemas.transaction import (
    RecurringSeriesResponse,
    SeriesResponse,
    SeriesUpdateRequest,
    SeriesUpdateResponse,
    TransactionResponse,
)
from ledger.services.errors import TransactionNotFound, ValidationError
from ledger.services.recurrence_service import (
    RecurrenceRule,
    describe_duration,
    describe_frequency,
    generate_dates,
)
from ledger.services.series_service import SeriesLifecycleManager
from ledger.services.transaction_store import TransactionStore

router = APIRouter(prefix="/recurring", tags=["recurring"])


@router.get("", response_model=List[RecurringSeriesResponse])
def list_series(
    transaction_type: Optional[TransactionType] = Query(None, alias="type"),
    category_id: Optional[str] = None,
    frequency: Optional[Frequency] = None,
    next_execution: Optional[ExecutionWindow] = None,
    upcoming: bool = False,
    search: Optional[str] = None,
    store: TransactionStore = Depends(get_transaction_store)
):
    """Get recurring series templates, optionally filtered"""
    parents = store.list_parents(
        transaction_type=transaction_type,
        category_id=category_id,
        frequency=frequency,
        next_execution=next_execution,
        upcoming=upcoming,
        search=search,
    )
    counts = store.child_counts([parent.id for parent in parents])

    result = []
    for parent in parents:
        response = RecurringSeriesResponse.model_validate(parent)
        response.child_count = counts[parent.id]
        result.append(response)

    return result


@router.post("/preview", response_model=RecurrencePreviewResponse)
def preview_recurrence(request: RecurrencePreviewRequest):
    """Dates a series would get, without writing anything."""
    try:
        rule = request.to_rule(request.start_date)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    dates = generate_dates(rule)
    return RecurrencePreviewResponse(
        dates=dates,
        end_date=dates[-1],
        frequency_label=describe_frequency(rule),
        duration_description=describe_duration(rule),
    )


@router.get("/{parent_id}", response_model=SeriesResponse)
def get_series(
    parent_id: str,
    manager: SeriesLifecycleManager = Depends(get_series_manager)
):
    """Get a series template with its occurrences."""
    try:
        series = manager.get_series(parent_id)
    except TransactionNotFound:
        raise HTTPException(status_code=404, detail="Recurring series not found")
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return SeriesResponse(
        parent=TransactionResponse.model_validate(series.parent),
        children=[TransactionResponse.model_validate(c) for c in series.children],
        duration_description=describe_duration(RecurrenceRule.from_transaction(series.parent)),
    )


@router.patch("/{parent_id}", response_model=SeriesUpdateResponse)
def update_series(
    parent_id: str,
    update: SeriesUpdateRequest,
    manager: SeriesLifecycleManager = Depends(get_series_manager)
):
    """Update a series template and copy its shared fields to every occurrence."""
    try:
        result = manager.edit_shared(parent_id, update.model_dump(exclude_unset=True))
    except TransactionNotFound:
        raise HTTPException(status_code=404, detail="Recurring series not found")
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return SeriesUpdateResponse(
        parent=TransactionResponse.model_validate(result.parent),
        children_updated=result.children_updated,
    )


@router.delete("/{parent_id}")
def delete_series(
    parent_id: str,
    manager: SeriesLifecycleManager = Depends(get_series_manager)
):
    """Delete a series template and all of its occurrences."""
    try:
        deleted = manager.delete_series(parent_id)
    except TransactionNotFound:
        raise HTTPException(status_code=404, detail="Recurring series not found")
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return {"deleted": deleted}
