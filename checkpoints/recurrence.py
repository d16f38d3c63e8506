"""Pure recurrence math for checkpoint schedules.

Each stored config is turned into one of four rule shapes, and every
calculation dispatches on the shape. Day-of-month is capped at 28 so a
monthly rule exists in every month.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Iterable, List, Optional, Sequence, Tuple, Union

from dateutil.relativedelta import relativedelta

MAX_DAY_OF_MONTH = 28
QUARTERLY_DEFAULT_MONTHS: Tuple[int, ...] = (3, 6, 9, 12)
SEMI_ANNUAL_DEFAULT_MONTHS: Tuple[int, ...] = (6, 12)

FREQUENCY_LABELS = {
    "monthly": "Monthly",
    "quarterly": "Quarterly",
    "semi_annual": "Every 6 months",
    "specific_date": "Specific date",
}


@dataclass(frozen=True)
class Monthly:
    day: int


@dataclass(frozen=True)
class Quarterly:
    day: int
    months: Tuple[int, ...] = QUARTERLY_DEFAULT_MONTHS


@dataclass(frozen=True)
class SemiAnnual:
    day: int
    months: Tuple[int, ...] = SEMI_ANNUAL_DEFAULT_MONTHS


@dataclass(frozen=True)
class SpecificDate:
    on: date


RecurrenceRule = Union[Monthly, Quarterly, SemiAnnual, SpecificDate]


def build_rule(
    frequency: str,
    day_of_month: Optional[int] = None,
    months: Optional[Iterable[int]] = None,
    specific_date: Optional[date] = None,
) -> RecurrenceRule:
    """Validate raw config fields and return the matching rule; raises ValueError."""
    if frequency == "specific_date":
        if specific_date is None:
            raise ValueError("A specific-date checkpoint needs a date.")
        return SpecificDate(on=specific_date)

    if frequency not in ("monthly", "quarterly", "semi_annual"):
        raise ValueError(f"Unknown checkpoint frequency: {frequency!r}.")

    day = _validate_day(day_of_month)
    if frequency == "monthly":
        return Monthly(day=day)

    cleaned_months = _validate_months(months)
    if frequency == "quarterly":
        return Quarterly(day=day, months=cleaned_months or QUARTERLY_DEFAULT_MONTHS)
    return SemiAnnual(day=day, months=cleaned_months or SEMI_ANNUAL_DEFAULT_MONTHS)


def rule_from_config(config) -> RecurrenceRule:
    return build_rule(
        config.frequency,
        day_of_month=config.day_of_month,
        months=config.months,
        specific_date=config.specific_date,
    )


def next_occurrence(rule: RecurrenceRule, today: date) -> Optional[date]:
    """Return the first date on or after ``today`` that the rule fires."""
    match rule:
        case Monthly(day=day):
            candidate = date(today.year, today.month, day)
            if candidate >= today:
                return candidate
            return candidate + relativedelta(months=1)
        case Quarterly(day=day, months=months) | SemiAnnual(day=day, months=months):
            for year in (today.year, today.year + 1):
                for month in sorted(set(months)):
                    candidate = date(year, month, day)
                    if candidate >= today:
                        return candidate
            return None
        case SpecificDate(on=on):
            candidate = map_onto_year(on, today.year)
            if candidate >= today:
                return candidate
            return map_onto_year(on, today.year + 1)
    raise TypeError(f"Unsupported recurrence rule: {rule!r}")


def matches_day(rule: RecurrenceRule, today: date) -> bool:
    """True when the rule fires exactly on ``today``."""
    match rule:
        case Monthly(day=day):
            return today.day == day
        case Quarterly(day=day, months=months) | SemiAnnual(day=day, months=months):
            return today.day == day and today.month in months
        case SpecificDate(on=on):
            return map_onto_year(on, today.year) == today
    raise TypeError(f"Unsupported recurrence rule: {rule!r}")


def map_onto_year(value: date, year: int) -> date:
    # Feb 29 lands on Feb 28 in non-leap years.
    return value + relativedelta(year=year)


def get_next_checkpoint_date(configs: Sequence, today: date) -> Optional[date]:
    """Soonest upcoming date across all active configs, or None."""
    upcoming: List[date] = []
    for config in configs:
        if not config.is_active:
            continue
        candidate = next_occurrence(rule_from_config(config), today)
        if candidate is not None:
            upcoming.append(candidate)
    return min(upcoming) if upcoming else None


def todays_checkpoints(configs: Sequence, today: date) -> list:
    return [
        config
        for config in configs
        if config.is_active and matches_day(rule_from_config(config), today)
    ]


def ordinal(value: int) -> str:
    if 11 <= value % 100 <= 13:
        suffix = "th"
    else:
        suffix = {1: "st", 2: "nd", 3: "rd"}.get(value % 10, "th")
    return f"{value}{suffix}"


def format_checkpoint_frequency(frequency: str) -> str:
    return FREQUENCY_LABELS.get(frequency, frequency)


def format_checkpoint_description(config) -> str:
    if config.label:
        return config.label
    if config.frequency == "specific_date" and config.specific_date:
        return f"{config.specific_date:%B} {config.specific_date.day}"
    return f"{format_checkpoint_frequency(config.frequency)} on the {ordinal(config.day_of_month or 1)}"


def format_next_checkpoint_date(when: Optional[date], today: date) -> str:
    if when is None:
        return "No upcoming checkpoints"
    days_away = (when - today).days
    if days_away <= 0:
        return "Today"
    if days_away == 1:
        return "Tomorrow"
    if days_away < 7:
        return f"In {days_away} days"
    return f"{when:%b} {when.day}"


def _validate_day(day_of_month: Optional[int]) -> int:
    try:
        day = int(day_of_month)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        raise ValueError("Day of month must be a number between 1 and 28.") from None
    if not 1 <= day <= MAX_DAY_OF_MONTH:
        raise ValueError("Day of month must be between 1 and 28.")
    return day


def _validate_months(months: Optional[Iterable[int]]) -> Tuple[int, ...]:
    if months is None:
        return ()
    if not isinstance(months, (list, tuple)):
        raise ValueError("Months must be a list of numbers between 1 and 12.")
    cleaned = set()
    for raw in months:
        try:
            month = int(raw)
        except (TypeError, ValueError):
            raise ValueError("Months must be numbers between 1 and 12.") from None
        if not 1 <= month <= 12:
            raise ValueError("Months must be between 1 and 12.")
        cleaned.add(month)
    return tuple(sorted(cleaned))
