"""
Recurrence frequency and scheduling window enumerations.
"""

import enum


class Frequency(str, enum.Enum):
    """Recurrence frequency enumeration."""
    daily = "daily"
    weekly = "weekly"
    biweekly = "biweekly"
    monthly = "monthly"
    quarterly = "quarterly"
    semiannual = "semiannual"
    yearly = "yearly"
    custom = "custom"


class ExecutionWindow(str, enum.Enum):
    """Where a series' next occurrence falls, relative to today."""
    today = "today"
    tomorrow = "tomorrow"
    week = "week"  # today through 7 days ahead
    month = "month"  # today through 30 days ahead
    overdue = "overdue"
