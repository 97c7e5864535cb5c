# src/taskgraph/tasks/views.py

"""
Derived task views.

Everything here is pure: it takes the cached task collection and returns a
new list (or a number). No backend calls, no mutation of the input.

Dates:
- naive datetimes are taken as local time,
- aware datetimes are converted to local time before truncating to a day.
"""

from __future__ import annotations

import calendar
import locale
import unicodedata
from collections.abc import Iterable, Sequence
from datetime import date, datetime, timedelta
from enum import StrEnum

from .task_models import Priority, Task

DEFAULT_UPCOMING_DAYS = 7

_PRIORITY_RANK = {
    Priority.HIGH: 0,
    Priority.MEDIUM: 1,
    Priority.LOW: 2,
}
_UNSET_PRIORITY_RANK = 3


class SortKey(StrEnum):
    DUE_DATE = "due_date"
    PRIORITY = "priority"
    ALPHABETICAL = "alphabetical"
    CREATED_AT = "created_at"


def local_day(value: datetime) -> date:
    if value.tzinfo is not None:
        value = value.astimezone()
    return value.date()


def _local_instant(value: datetime) -> datetime:
    # astimezone() on a naive value assumes local time, so both kinds compare safely.
    return value.astimezone()


def _today(today: date | None) -> date:
    return today if today is not None else datetime.now().astimezone().date()


def tasks_due_on(tasks: Iterable[Task], day: date) -> list[Task]:
    """Tasks whose due date falls on the given calendar day."""
    return [t for t in tasks if t.due_date is not None and local_day(t.due_date) == day]


def task_counts_by_day(tasks: Iterable[Task], year: int, month: int) -> dict[date, int]:
    """
    Number of tasks due on each day of a month (calendar grid view).

    Every day of the month is present, days without tasks map to 0.
    """
    _, last = calendar.monthrange(year, month)
    counts = {date(year, month, d): 0 for d in range(1, last + 1)}
    for t in tasks:
        if t.due_date is None:
            continue
        d = local_day(t.due_date)
        if d in counts:
            counts[d] += 1
    return counts


def today_tasks(tasks: Iterable[Task], *, today: date | None = None) -> list[Task]:
    return tasks_due_on(tasks, _today(today))


def upcoming_tasks(
    tasks: Iterable[Task],
    *,
    today: date | None = None,
    days: int = DEFAULT_UPCOMING_DAYS,
) -> list[Task]:
    """
    Tasks due after today and no later than `days` days from today.

    The window is by calendar day: today+days is included, today+days+1 is not.
    """
    start = _today(today)
    end = start + timedelta(days=days)
    out: list[Task] = []
    for t in tasks:
        if t.due_date is None:
            continue
        d = local_day(t.due_date)
        if start < d <= end:
            out.append(t)
    return out


def completion_ratio(tasks: Sequence[Task]) -> float:
    total = len(tasks)
    if total == 0:
        return 0.0
    done = sum(1 for t in tasks if t.completed)
    return max(0.0, min(1.0, done / total))


def count_tasks_in_category(tasks: Iterable[Task], category_id: str) -> int:
    """Count by the task's scalar category field (what summaries display)."""
    return sum(1 for t in tasks if t.category == category_id)


def matches_search(task: Task, query: str) -> bool:
    needle = query.casefold()
    if needle in task.title.casefold():
        return True
    return bool(task.description) and needle in task.description.casefold()


def filter_tasks(
    tasks: Iterable[Task],
    *,
    search: str | None = None,
    completed: bool | None = None,
) -> list[Task]:
    """
    Apply the search and completion filters together.

    completed=None shows everything, True only completed, False only pending.
    An empty search string matches everything.
    """
    out: list[Task] = []
    for t in tasks:
        if search and not matches_search(t, search):
            continue
        if completed is not None and t.completed != completed:
            continue
        out.append(t)
    return out


def _fold(text: str) -> str:
    # Strip accents so accented titles sort beside their plain letters under any locale.
    decomposed = unicodedata.normalize("NFKD", text.casefold())
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def _title_key(task: Task) -> tuple[str, str]:
    return (locale.strxfrm(_fold(task.title)), locale.strxfrm(task.title))


def sort_tasks(tasks: Iterable[Task], key: SortKey | str) -> list[Task]:
    """Return a new list sorted by one key. Ties keep their input order."""
    key = SortKey(key)
    items = list(tasks)

    if key == SortKey.DUE_DATE:
        dated = [t for t in items if t.due_date is not None]
        undated = [t for t in items if t.due_date is None]
        dated.sort(key=lambda t: _local_instant(t.due_date))  # type: ignore[arg-type]
        return dated + undated

    if key == SortKey.PRIORITY:
        return sorted(
            items,
            key=lambda t: _PRIORITY_RANK.get(t.priority, _UNSET_PRIORITY_RANK),
        )

    if key == SortKey.ALPHABETICAL:
        return sorted(items, key=_title_key)

    # Newest first; sorted() keeps ties in input order even with reverse=True.
    return sorted(items, key=lambda t: _local_instant(t.created_at), reverse=True)


def derive_task_list(
    tasks: Iterable[Task],
    *,
    search: str | None = None,
    completed: bool | None = None,
    sort_by: SortKey | str = SortKey.DUE_DATE,
) -> list[Task]:
    """Filter (search AND completion), then sort by the active key."""
    return sort_tasks(filter_tasks(tasks, search=search, completed=completed), sort_by)
