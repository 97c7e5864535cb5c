# src/taskgraph/tasks/recurrence.py

"""
Recurrence descriptor helpers.

A RepeatPattern is captured on a task, persisted as a JSON string property
and rendered back as text ("Every 2 weeks until Mar 5, 2026").
Expanding a pattern into concrete dates is not implemented.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime
from typing import Any

from .task_models import RepeatPattern, RepeatType

logger = logging.getLogger(__name__)

WEEKDAY_NAMES = ("Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat")

_SINGULAR = {
    RepeatType.DAILY: "day",
    RepeatType.WEEKLY: "week",
    RepeatType.MONTHLY: "month",
    RepeatType.YEARLY: "year",
}


def describe_repeat(pattern: RepeatPattern | None) -> str:
    if pattern is None:
        return ""

    if pattern.type == RepeatType.CUSTOM:
        text = "Custom"
    else:
        unit = _SINGULAR[pattern.type]
        text = f"Every {pattern.interval} {unit}s" if pattern.interval > 1 else f"Every {unit}"

    if pattern.days_of_week:
        names = ", ".join(WEEKDAY_NAMES[d] for d in pattern.days_of_week)
        text = f"{text}: {names}" if pattern.type == RepeatType.CUSTOM else f"{text} on {names}"

    if pattern.end_date is not None:
        end = pattern.end_date
        text += f" until {end.strftime('%b')} {end.day}, {end.year}"
    return text


def repeat_to_dict(pattern: RepeatPattern) -> dict[str, Any]:
    return {
        "type": pattern.type.value,
        "interval": pattern.interval,
        "endDate": pattern.end_date.isoformat() if pattern.end_date else None,
        "daysOfWeek": list(pattern.days_of_week) if pattern.days_of_week else None,
    }


def repeat_from_dict(data: dict[str, Any]) -> RepeatPattern:
    raw_end = data.get("endDate")
    days = data.get("daysOfWeek")
    interval = data.get("interval")
    return RepeatPattern(
        type=RepeatType(data["type"]),
        interval=int(interval) if interval is not None else 1,
        end_date=datetime.fromisoformat(raw_end) if raw_end else None,
        days_of_week=tuple(days) if days else None,
    )


def repeat_to_str(pattern: RepeatPattern | None) -> str | None:
    """Encode for storage. Graph node properties cannot hold nested maps."""
    if pattern is None:
        return None
    return json.dumps(repeat_to_dict(pattern), ensure_ascii=False)


def repeat_from_str(raw: str | None) -> RepeatPattern | None:
    if not raw:
        return None
    try:
        data = json.loads(raw)
        if not isinstance(data, dict):
            return None
        return repeat_from_dict(data)
    except (ValueError, KeyError, TypeError):
        logger.warning("Ignoring malformed repeat descriptor: %r", raw)
        return None
