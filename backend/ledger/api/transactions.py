"""
Transaction API endpoints.
"""

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session
from sqlalchemy import or_
from typing import Optional
from datetime import date

from ledger.dependencies import get_db, get_series_manager
from ledger.models.transaction import Transaction
from ledger.schemas.transaction import (
    TransactionCreate,
    TransactionResponse,
    TransactionUpdate,
    TransactionListResponse,
    SeriesResponse,
)
from ledger.services.errors import TransactionNotFound, ValidationError
from ledger.services.recurrence_service import describe_duration
from ledger.services.series_service import SeriesLifecycleManager

router = APIRouter(prefix="/transactions", tags=["transactions"])


@router.get("", response_model=TransactionListResponse)
def list_transactions(
    page: int = Query(1, ge=1),
    per_page: int = Query(50, ge=1, le=100),
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    search: Optional[str] = None,
    is_recurring: Optional[bool] = None,
    parent_transaction_id: Optional[str] = None,
    db: Session = Depends(get_db)
):
    """List transactions with filtering and pagination"""
    query = db.query(Transaction)

    if start_date:
        query = query.filter(Transaction.date >= start_date)
    if end_date:
        query = query.filter(Transaction.date <= end_date)
    if is_recurring is not None:
        query = query.filter(Transaction.is_recurring == is_recurring)
    if parent_transaction_id:
        query = query.filter(Transaction.parent_transaction_id == parent_transaction_id)
    if search:
        search_term = f"%{search}%"
        query = query.filter(
            or_(
                Transaction.title.ilike(search_term),
                Transaction.description.ilike(search_term)
            )
        )

    total = query.count()

    query = query.order_by(Transaction.date, Transaction.created_at)
    query = query.offset((page - 1) * per_page).limit(per_page)

    transactions = query.all()
    pages = (total + per_page - 1) // per_page

    return TransactionListResponse(
        items=[TransactionResponse.model_validate(t) for t in transactions],
        total=total,
        page=page,
        pages=pages
    )


@router.post("", response_model=SeriesResponse, status_code=201)
def create_transaction(
    data: TransactionCreate,
    manager: SeriesLifecycleManager = Depends(get_series_manager)
):
    """Create a transaction, or a recurring series when recurrence is set"""
    payload = data.model_dump(exclude={"recurrence"})
    try:
        rule = data.recurrence.to_rule(data.date) if data.recurrence else None
        result = manager.create(payload, rule)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return SeriesResponse(
        parent=TransactionResponse.model_validate(result.parent),
        children=[TransactionResponse.model_validate(c) for c in result.children],
        duration_description=describe_duration(rule) if rule else None,
    )


@router.get("/{transaction_id}", response_model=TransactionResponse)
def get_transaction(
    transaction_id: str,
    db: Session = Depends(get_db)
):
    """Get a single transaction"""
    transaction = db.query(Transaction).filter(Transaction.id == transaction_id).first()
    if not transaction:
        raise HTTPException(status_code=404, detail="Transaction not found")
    return TransactionResponse.model_validate(transaction)


@router.patch("/{transaction_id}", response_model=TransactionResponse)
def update_transaction(
    transaction_id: str,
    update: TransactionUpdate,
    manager: SeriesLifecycleManager = Depends(get_series_manager)
):
    """Update this transaction only, even when it belongs to a series"""
    try:
        transaction = manager.edit_single(transaction_id, update.model_dump(exclude_unset=True))
    except TransactionNotFound:
        raise HTTPException(status_code=404, detail="Transaction not found")
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return TransactionResponse.model_validate(transaction)


@router.delete("/{transaction_id}")
def delete_transaction(
    transaction_id: str,
    manager: SeriesLifecycleManager = Depends(get_series_manager)
):
    """Delete this transaction only. Deleting a series parent leaves its occurrences in place."""
    try:
        deleted = manager.delete_single(transaction_id)
    except TransactionNotFound:
        raise HTTPException(status_code=404, detail="Transaction not found")

    return {"deleted": deleted}
