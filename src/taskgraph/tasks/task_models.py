# src/taskgraph/tasks/task_models.py

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum

DEFAULT_CATEGORY_ICON = "tag"


class Priority(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @classmethod
    def from_db(cls, raw: str | None) -> Priority | None:
        if not raw:
            return None
        try:
            return cls(str(raw).lower())
        except ValueError:
            return None


class RepeatType(StrEnum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"
    CUSTOM = "custom"


@dataclass(slots=True, frozen=True)
class RepeatPattern:
    """
    How a task repeats.

    Stored and displayed only; nothing expands it into concrete occurrences.
    days_of_week uses 0-6 with 0 = Sunday.
    """

    type: RepeatType
    interval: int = 1
    end_date: datetime | None = None
    days_of_week: tuple[int, ...] | None = None

    def __post_init__(self) -> None:
        # Accept plain strings / lists from callers and normalize them.
        object.__setattr__(self, "type", RepeatType(self.type))
        if isinstance(self.interval, bool) or not isinstance(self.interval, int):
            raise ValueError("repeat interval must be an integer")
        if self.interval < 1:
            raise ValueError("repeat interval must be >= 1")
        if self.days_of_week is not None:
            days = tuple(sorted({int(d) for d in self.days_of_week}))
            if any(d < 0 or d > 6 for d in days):
                raise ValueError("days_of_week values must be in 0..6")
            object.__setattr__(self, "days_of_week", days or None)


@dataclass(slots=True)
class Task:
    id: str
    title: str
    completed: bool
    created_at: datetime
    updated_at: datetime

    description: str | None = None
    due_date: datetime | None = None
    reminder_time: datetime | None = None
    category: str | None = None
    priority: Priority | None = None
    repeat: RepeatPattern | None = None
    notes: str | None = None
    symbol: str | None = None


@dataclass(slots=True)
class Category:
    id: str
    name: str
    color: str
    icon: str = DEFAULT_CATEGORY_ICON


# Fields a caller may pass to create/update. id / created_at / updated_at are backend-owned.
TASK_FIELDS: frozenset[str] = frozenset(
    {
        "title",
        "description",
        "completed",
        "due_date",
        "reminder_time",
        "category",
        "priority",
        "repeat",
        "notes",
        "symbol",
    }
)
CATEGORY_FIELDS: frozenset[str] = frozenset({"name", "color", "icon"})

PROTECTED_FIELDS: frozenset[str] = frozenset({"id", "created_at", "updated_at"})


def require_text(value: str | None, field_name: str) -> str:
    """Return the stripped value or raise ValueError when it is blank."""
    if value is None or not str(value).strip():
        raise ValueError(f"{field_name} is required")
    return str(value).strip()
