# tests/test_recurrence.py

from __future__ import annotations

from datetime import datetime

import pytest

from taskgraph.tasks.recurrence import describe_repeat, repeat_from_str, repeat_to_str
from taskgraph.tasks.task_models import RepeatPattern, RepeatType


def test_describe_repeat_variants() -> None:
    assert describe_repeat(None) == ""
    assert describe_repeat(RepeatPattern(type=RepeatType.DAILY)) == "Every day"
    assert describe_repeat(RepeatPattern(type=RepeatType.WEEKLY, interval=2)) == "Every 2 weeks"
    assert describe_repeat(RepeatPattern(type="custom", interval=3)) == "Custom"

    until = RepeatPattern(type=RepeatType.MONTHLY, interval=1, end_date=datetime(2026, 3, 5))
    assert describe_repeat(until) == "Every month until Mar 5, 2026"

    days = RepeatPattern(type=RepeatType.WEEKLY, days_of_week=(3, 1))
    assert describe_repeat(days) == "Every week on Mon, Wed"


def test_repeat_pattern_validation() -> None:
    with pytest.raises(ValueError):
        RepeatPattern(type=RepeatType.DAILY, interval=0)
    with pytest.raises(ValueError):
        RepeatPattern(type=RepeatType.WEEKLY, days_of_week=(7,))
    with pytest.raises(ValueError):
        RepeatPattern(type="hourly")


def test_repeat_storage_string_restores_pattern() -> None:
    pattern = RepeatPattern(
        type=RepeatType.CUSTOM,
        interval=2,
        end_date=datetime(2026, 12, 31, 0, 0),
        days_of_week=(1, 3, 5),
    )
    assert repeat_from_str(repeat_to_str(pattern)) == pattern
    assert repeat_to_str(None) is None


def test_malformed_repeat_string_reads_as_none() -> None:
    assert repeat_from_str(None) is None
    assert repeat_from_str("not json") is None
    assert repeat_from_str('{"interval": 2}') is None
    assert repeat_from_str('{"type": "weekly", "interval": 0}') is None
