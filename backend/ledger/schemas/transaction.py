"""
Transaction schemas.
"""

import datetime as dt
from pydantic import BaseModel, Field, model_validator
from typing import Optional
from decimal import Decimal

from ledger.models.recurrence import Frequency
from ledger.models.transaction import TransactionType
from ledger.schemas.recurring import RecurrenceIn


def _one_reference(model):
    if model.account_id is not None and model.card_id is not None:
        raise ValueError("Set either account_id or card_id, not both")
    return model


class TransactionBase(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    amount: Decimal = Field(..., gt=0, decimal_places=2)
    type: TransactionType = TransactionType.expense
    category_id: Optional[str] = None
    account_id: Optional[str] = None
    card_id: Optional[str] = None

    @model_validator(mode="after")
    def check_account_or_card(self):
        return _one_reference(self)


class TransactionCreate(TransactionBase):
    date: dt.date  # Start date when recurrence is set
    recurrence: Optional[RecurrenceIn] = None


class SharedFieldsUpdate(BaseModel):
    """Fields copied to every occurrence of a series."""
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    amount: Optional[Decimal] = Field(None, gt=0, decimal_places=2)
    type: Optional[TransactionType] = None
    category_id: Optional[str] = None
    account_id: Optional[str] = None
    card_id: Optional[str] = None

    @model_validator(mode="after")
    def check_account_or_card(self):
        return _one_reference(self)


class SeriesUpdateRequest(SharedFieldsUpdate):
    # Rule metadata; occurrences are not regenerated
    recurrence_frequency: Optional[Frequency] = None
    recurrence_interval: Optional[int] = None
    recurrence_count: Optional[int] = None
    custom_days: Optional[int] = None


class TransactionUpdate(SeriesUpdateRequest):
    date: Optional[dt.date] = None


class TransactionResponse(BaseModel):
    id: str
    title: str
    description: Optional[str]
    amount: Decimal
    type: TransactionType
    date: dt.date
    category_id: Optional[str]
    account_id: Optional[str]
    card_id: Optional[str]
    parent_transaction_id: Optional[str]
    is_recurring: bool
    is_parent_template: bool
    recurrence_frequency: Optional[Frequency] = None
    recurrence_interval: Optional[int] = None
    recurrence_count: Optional[int] = None
    custom_days: Optional[int] = None
    next_recurrence_date: Optional[dt.date] = None
    created_at: dt.datetime
    updated_at: dt.datetime

    class Config:
        from_attributes = True


class TransactionListResponse(BaseModel):
    items: list[TransactionResponse]
    total: int
    page: int
    pages: int


class SeriesResponse(BaseModel):
    """A created transaction, with its occurrences when it is recurring."""
    parent: TransactionResponse
    children: list[TransactionResponse] = []
    duration_description: Optional[str] = None


class RecurringSeriesResponse(TransactionResponse):
    child_count: Optional[int] = None


class SeriesUpdateResponse(BaseModel):
    parent: TransactionResponse
    children_updated: int
