"""Recurrence rules, occurrence date generation and duration summaries."""

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Iterator, List, Optional

from dateutil.relativedelta import relativedelta

from ledger.models.recurrence import Frequency
from ledger.services.errors import ValidationError

MAX_RECURRENCE_COUNT = 365

# Base unit of each frequency, before the interval multiplier
DAY_STEPS = {
    Frequency.daily: 1,
    Frequency.weekly: 7,
    Frequency.biweekly: 14,
}
MONTH_STEPS = {
    Frequency.monthly: 1,
    Frequency.quarterly: 3,
    Frequency.semiannual: 6,
    Frequency.yearly: 12,
}

FREQUENCY_LABELS = {
    Frequency.daily: "Daily",
    Frequency.weekly: "Weekly",
    Frequency.biweekly: "Biweekly",
    Frequency.monthly: "Monthly",
    Frequency.quarterly: "Quarterly",
    Frequency.semiannual: "Semiannual",
    Frequency.yearly: "Yearly",
}
FREQUENCY_UNITS = {
    Frequency.daily: "days",
    Frequency.weekly: "weeks",
    Frequency.biweekly: "fortnights",
    Frequency.monthly: "months",
    Frequency.quarterly: "quarters",
    Frequency.semiannual: "semesters",
    Frequency.yearly: "years",
}


def _require_int(name: str, value, minimum: int = 1, maximum: Optional[int] = None) -> None:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{name} must be an integer, got {value!r}")
    if value < minimum:
        raise ValidationError(f"{name} must be at least {minimum}, got {value}")
    if maximum is not None and value > maximum:
        raise ValidationError(f"{name} must be at most {maximum}, got {value}")


@dataclass(frozen=True)
class RecurrenceRule:
    """
    A repeating schedule: every `interval` units of `frequency`, `count` times,
    anchored on `start_date`.

    custom_days is required for the custom frequency and must be absent for
    every other one. A rule that violates this, or whose count/interval is out
    of range, cannot be constructed.
    """

    frequency: Frequency
    start_date: date
    count: int
    interval: int = 1
    custom_days: Optional[int] = None

    def __post_init__(self):
        try:
            frequency = Frequency(self.frequency)
        except ValueError:
            raise ValidationError(f"Unknown recurrence frequency: {self.frequency!r}") from None
        object.__setattr__(self, "frequency", frequency)

        start = self.start_date
        if isinstance(start, datetime):
            start = start.date()
        if not isinstance(start, date):
            raise ValidationError(f"start_date must be a date, got {start!r}")
        object.__setattr__(self, "start_date", start)

        _require_int("count", self.count, maximum=MAX_RECURRENCE_COUNT)
        _require_int("interval", self.interval)

        if frequency == Frequency.custom:
            if self.custom_days is None:
                raise ValidationError("custom_days is required for the custom frequency")
            _require_int("custom_days", self.custom_days)
        elif self.custom_days is not None:
            raise ValidationError(
                f"custom_days is only allowed for the custom frequency, not {frequency.value}"
            )

        self._check_span()

    def _check_span(self) -> None:
        """Reject rules whose last occurrence falls past date.max."""
        if self.frequency in MONTH_STEPS:
            total_months = self.count * self.interval * MONTH_STEPS[self.frequency]
            last_year = self.start_date.year + (self.start_date.month - 1 + total_months) // 12
            fits = last_year <= date.max.year
        else:
            total_days = self.count * self.step_days
            fits = self.start_date.toordinal() + total_days <= date.max.toordinal()
        if not fits:
            raise ValidationError("Recurrence extends past the last representable date")

    @property
    def step_days(self) -> int:
        """Length of one step in days, for day-based frequencies."""
        if self.frequency == Frequency.custom:
            return self.custom_days * self.interval
        return DAY_STEPS[self.frequency] * self.interval

    @classmethod
    def from_transaction(cls, transaction) -> "RecurrenceRule":
        """Rebuild the rule stored on a parent template record."""
        if not transaction.is_parent_template or transaction.recurrence_frequency is None:
            raise ValidationError(f"Transaction {transaction.id} does not carry a recurrence rule")
        frequency = Frequency(transaction.recurrence_frequency)
        return cls(
            frequency=frequency,
            start_date=transaction.date,
            count=transaction.recurrence_count,
            interval=transaction.recurrence_interval or 1,
            custom_days=transaction.custom_days if frequency == Frequency.custom else None,
        )


def step(current: date, rule: RecurrenceRule, anchor_day: Optional[int] = None) -> date:
    """
    Advance one occurrence from `current`.

    Month-based frequencies land on `anchor_day` (defaults to current.day),
    clamped to the length of the target month.
    """
    if rule.frequency in MONTH_STEPS:
        months = MONTH_STEPS[rule.frequency] * rule.interval
        return current + relativedelta(months=months, day=anchor_day or current.day)
    return current + timedelta(days=rule.step_days)


def iter_dates(rule: RecurrenceRule) -> Iterator[date]:
    """Yield the occurrences after the rule's start date, each chained from the previous one."""
    anchor_day = rule.start_date.day
    current = rule.start_date
    for _ in range(rule.count):
        current = step(current, rule, anchor_day)
        yield current


def generate_dates(rule: RecurrenceRule) -> List[date]:
    """Materialize all `rule.count` occurrence dates in increasing order."""
    if not isinstance(rule, RecurrenceRule):
        raise ValidationError(f"Expected a RecurrenceRule, got {type(rule).__name__}")
    return list(iter_dates(rule))


def next_occurrence(rule: RecurrenceRule) -> date:
    """First occurrence after the start date."""
    return step(rule.start_date, rule)


@dataclass(frozen=True)
class DurationSummary:
    start_date: date
    end_date: date
    count: int
    unit: str
    amount: int
    text: str


def _plural(amount: int, word: str) -> str:
    return f"{amount} {word}" if amount == 1 else f"{amount} {word}s"


def _span_in_largest_unit(start: date, end: date) -> tuple:
    span = relativedelta(end, start)
    total_months = span.years * 12 + span.months

    if total_months >= 12:
        return "year", span.years + (1 if span.months >= 6 else 0)
    if total_months >= 1:
        months = total_months + (1 if span.days >= 15 else 0)
        if months == 12:
            return "year", 1
        return "month", months

    days = (end - start).days
    if days >= 7 and days % 7 == 0:
        return "week", days // 7
    return "day", days


def summarize_duration(rule: RecurrenceRule) -> DurationSummary:
    """Total span from the start date to the last generated occurrence."""
    dates = generate_dates(rule)
    end_date = dates[-1]
    unit, amount = _span_in_largest_unit(rule.start_date, end_date)
    text = f"{_plural(rule.count, 'repetition')} • duration ≈ {_plural(amount, unit)}"
    return DurationSummary(
        start_date=rule.start_date,
        end_date=end_date,
        count=rule.count,
        unit=unit,
        amount=amount,
        text=text,
    )


def describe_duration(rule: RecurrenceRule) -> str:
    return summarize_duration(rule).text


def describe_frequency(rule: RecurrenceRule) -> str:
    """Human label for how often the rule repeats."""
    if rule.frequency == Frequency.custom:
        days = rule.step_days
        return "Every day" if days == 1 else f"Every {days} days"
    if rule.interval == 1:
        return FREQUENCY_LABELS[rule.frequency]
    return f"Every {rule.interval} {FREQUENCY_UNITS[rule.frequency]}"
