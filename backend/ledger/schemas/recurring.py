"""Pydantic schemas for recurring series."""

import datetime as dt
from pydantic import BaseModel
from typing import Optional, List

from ledger.models.recurrence import Frequency
from ledger.services.recurrence_service import RecurrenceRule


class RecurrenceIn(BaseModel):
    """Recurrence settings as submitted by a form."""
    frequency: Frequency
    interval: int = 1
    count: int = 12
    custom_days: Optional[int] = None  # Only read for the custom frequency

    def to_rule(self, start_date: dt.date) -> RecurrenceRule:
        return RecurrenceRule(
            frequency=self.frequency,
            start_date=start_date,
            count=self.count,
            interval=self.interval,
            custom_days=self.custom_days if self.frequency == Frequency.custom else None,
        )


class RecurrencePreviewRequest(RecurrenceIn):
    start_date: dt.date


class RecurrencePreviewResponse(BaseModel):
    dates: List[dt.date]
    end_date: dt.date
    frequency_label: str
    duration_description: str
