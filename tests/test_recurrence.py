from __future__ import annotations

from datetime import date

import pytest

from checkpoints.models import CheckpointConfig
from checkpoints.recurrence import (
    Monthly,
    Quarterly,
    SemiAnnual,
    SpecificDate,
    build_rule,
    format_checkpoint_description,
    format_checkpoint_frequency,
    format_next_checkpoint_date,
    get_next_checkpoint_date,
    matches_day,
    next_occurrence,
    ordinal,
    rule_from_config,
    todays_checkpoints,
)


def make_config(**overrides) -> CheckpointConfig:
    fields = {
        "couple_id": 1,
        "frequency": "monthly",
        "day_of_month": 15,
        "months": None,
        "specific_date": None,
        "label": None,
        "is_active": True,
    }
    fields.update(overrides)
    return CheckpointConfig(**fields)


@pytest.mark.parametrize(
    "today, expected",
    [
        (date(2024, 6, 10), date(2024, 6, 15)),
        (date(2024, 6, 15), date(2024, 6, 15)),
        (date(2024, 6, 20), date(2024, 7, 15)),
        (date(2024, 12, 20), date(2025, 1, 15)),
    ],
)
def test_monthly_next_occurrence(today, expected):
    assert next_occurrence(Monthly(day=15), today) == expected


def test_quarterly_picks_next_listed_month():
    rule = Quarterly(day=15, months=(3, 6, 9, 12))
    assert next_occurrence(rule, date(2024, 2, 1)) == date(2024, 3, 15)
    assert next_occurrence(rule, date(2024, 3, 16)) == date(2024, 6, 15)


def test_quarterly_rolls_into_next_year():
    rule = Quarterly(day=15, months=(3, 6, 9, 12))
    assert next_occurrence(rule, date(2024, 12, 20)) == date(2025, 3, 15)


def test_semi_annual_uses_default_months():
    rule = build_rule("semi_annual", day_of_month=15)
    assert rule == SemiAnnual(day=15, months=(6, 12))
    assert next_occurrence(rule, date(2024, 1, 1)) == date(2024, 6, 15)


def test_specific_date_same_year_and_next_year():
    rule = SpecificDate(on=date(2024, 3, 8))
    assert next_occurrence(rule, date(2024, 2, 1)) == date(2024, 3, 8)
    assert next_occurrence(rule, date(2024, 4, 1)) == date(2025, 3, 8)


def test_specific_leap_day_maps_to_february_28th():
    rule = SpecificDate(on=date(2020, 2, 29))
    assert next_occurrence(rule, date(2023, 1, 1)) == date(2023, 2, 28)
    assert next_occurrence(rule, date(2024, 1, 1)) == date(2024, 2, 29)


def test_matches_day_is_exact():
    assert matches_day(Monthly(day=15), date(2024, 6, 15))
    assert not matches_day(Monthly(day=15), date(2024, 6, 14))
    assert matches_day(Quarterly(day=1, months=(3, 6, 9, 12)), date(2024, 9, 1))
    assert not matches_day(Quarterly(day=1, months=(3, 6, 9, 12)), date(2024, 8, 1))
    assert matches_day(SpecificDate(on=date(2023, 3, 8)), date(2024, 3, 8))
    assert not matches_day(SpecificDate(on=date(2023, 3, 8)), date(2024, 3, 9))


def test_soonest_of_many_configs():
    configs = [make_config(day_of_month=20), make_config(day_of_month=10)]
    assert get_next_checkpoint_date(configs, date(2024, 6, 1)) == date(2024, 6, 10)


def test_next_checkpoint_date_without_active_configs():
    assert get_next_checkpoint_date([], date(2024, 6, 1)) is None
    assert get_next_checkpoint_date([make_config(is_active=False)], date(2024, 6, 1)) is None


def test_todays_checkpoints_skips_inactive():
    active = make_config(label="Monthly peek")
    inactive = make_config(is_active=False)
    assert todays_checkpoints([active, inactive], date(2024, 6, 15)) == [active]
    assert todays_checkpoints([active, inactive], date(2024, 6, 16)) == []


def test_rule_from_config_quarterly_keeps_stored_months():
    config = make_config(frequency="quarterly", months=[12, 3])
    assert rule_from_config(config) == Quarterly(day=15, months=(3, 12))


@pytest.mark.parametrize(
    "fields",
    [
        {"frequency": "monthly", "day_of_month": 29},
        {"frequency": "monthly", "day_of_month": None},
        {"frequency": "quarterly", "day_of_month": 1, "months": [13]},
        {"frequency": "specific_date"},
        {"frequency": "weekly", "day_of_month": 1},
    ],
)
def test_build_rule_rejects_invalid_fields(fields):
    with pytest.raises(ValueError):
        build_rule(**fields)


@pytest.mark.parametrize(
    "value, expected",
    [(1, "1st"), (2, "2nd"), (3, "3rd"), (4, "4th"), (11, "11th"), (12, "12th"), (13, "13th"), (21, "21st"), (22, "22nd"), (23, "23rd")],
)
def test_ordinal_suffixes(value, expected):
    assert ordinal(value) == expected


def test_frequency_labels():
    assert format_checkpoint_frequency("monthly") == "Monthly"
    assert format_checkpoint_frequency("quarterly") == "Quarterly"
    assert format_checkpoint_frequency("semi_annual") == "Every 6 months"
    assert format_checkpoint_frequency("specific_date") == "Specific date"


def test_checkpoint_descriptions():
    assert format_checkpoint_description(make_config(label="Sarah's Birthday")) == "Sarah's Birthday"
    assert format_checkpoint_description(make_config()) == "Monthly on the 15th"
    assert format_checkpoint_description(make_config(frequency="semi_annual", months=[6, 12])) == "Every 6 months on the 15th"
    specific = make_config(frequency="specific_date", day_of_month=None, specific_date=date(2024, 3, 8))
    assert format_checkpoint_description(specific) == "March 8"


def test_next_checkpoint_labels():
    today = date(2024, 6, 15)
    assert format_next_checkpoint_date(None, today) == "No upcoming checkpoints"
    assert format_next_checkpoint_date(today, today) == "Today"
    assert format_next_checkpoint_date(date(2024, 6, 16), today) == "Tomorrow"
    assert format_next_checkpoint_date(date(2024, 6, 20), today) == "In 5 days"
    assert format_next_checkpoint_date(date(2024, 7, 20), today) == "Jul 20"
