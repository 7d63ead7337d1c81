"""
Pydantic schemas package.
"""

from ledger.schemas.recurring import (
    RecurrenceIn,
    RecurrencePreviewRequest,
    RecurrencePreviewResponse,
)
from ledger.schemas.transaction import (
    TransactionBase,
    TransactionCreate,
    SharedFieldsUpdate,
    SeriesUpdateRequest,
    TransactionUpdate,
    TransactionResponse,
    TransactionListResponse,
    SeriesResponse,
    RecurringSeriesResponse,
    SeriesUpdateResponse,
)

__all__ = [
    "RecurrenceIn",
    "RecurrencePreviewRequest",
    "RecurrencePreviewResponse",
    "TransactionBase",
    "TransactionCreate",
    "SharedFieldsUpdate",
    "SeriesUpdateRequest",
    "TransactionUpdate",
    "TransactionResponse",
    "TransactionListResponse",
    "SeriesResponse",
    "RecurringSeriesResponse",
    "SeriesUpdateResponse",
]
