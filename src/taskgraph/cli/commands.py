# src/taskgraph/cli/commands.py

from __future__ import annotations

import calendar
import logging
import shlex
from collections.abc import Awaitable, Callable, Iterable
from datetime import date, datetime, timedelta
from typing import Any

from ..core.state import AppState
from ..errors import TaskGraphError
from ..tasks.recurrence import describe_repeat
from ..tasks.task_models import Category, RepeatPattern, RepeatType, Task
from ..tasks.views import (
    SortKey,
    completion_ratio,
    count_tasks_in_category,
    derive_task_list,
    task_counts_by_day,
    tasks_due_on,
    today_tasks,
    upcoming_tasks,
)

CommandHandler = Callable[[AppState, list[str]], Awaitable[str]]

logger = logging.getLogger(__name__)

DEFAULT_CATEGORY_COLOR = "#4A90E2"

_SORT_ALIASES = {
    "due": SortKey.DUE_DATE,
    "due_date": SortKey.DUE_DATE,
    "priority": SortKey.PRIORITY,
    "prio": SortKey.PRIORITY,
    "alpha": SortKey.ALPHABETICAL,
    "alphabetical": SortKey.ALPHABETICAL,
    "created": SortKey.CREATED_AT,
    "created_at": SortKey.CREATED_AT,
}

_FILTER_VALUES: dict[str, bool | None] = {
    "all": None,
    "done": True,
    "completed": True,
    "pending": False,
    "open": False,
}

# option name on the command line -> task field
_TASK_OPTIONS = {
    "title": "title",
    "desc": "description",
    "description": "description",
    "due": "due_date",
    "remind": "reminder_time",
    "cat": "category",
    "category": "category",
    "prio": "priority",
    "priority": "priority",
    "repeat": "repeat",
    "notes": "notes",
    "symbol": "symbol",
}


class CommandRegistry:
    """Simple slash-command registry used by the console (/help, /tasks, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    async def handle(self, state: AppState, line: str) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.
        """
        if not line.startswith("/"):
            return None

        try:
            parts = shlex.split(line[1:])
        except ValueError:
            parts = line[1:].split()
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        try:
            return await handler(state, args)
        except ValueError as e:
            return f"Invalid input: {e}"
        except TaskGraphError as e:
            logger.debug("Command /%s failed: %s", name, e)
            return state.store.error or str(e)

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


# ---- parsing helpers ----


def parse_when(raw: str, *, now: datetime | None = None) -> datetime:
    """
    Parse a due / reminder value.

    Accepts: today, tomorrow, +N (days from today), or an ISO date / datetime.
    Bare dates resolve to local midnight.
    """
    now = now or datetime.now()
    midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)
    value = raw.strip().lower()
    if value == "today":
        return midnight
    if value == "tomorrow":
        return midnight + timedelta(days=1)
    if value.startswith("+") and value[1:].isdigit():
        return midnight + timedelta(days=int(value[1:]))
    try:
        return datetime.fromisoformat(raw.strip())
    except ValueError:
        raise ValueError(f"cannot parse date: {raw!r}") from None


def parse_repeat(raw: str) -> RepeatPattern:
    """
    repeat=<type>[:interval][:until][:days]

    e.g. weekly, weekly:2, monthly:1:2026-12-31, custom:1::1,3,5
    """
    parts = raw.split(":")
    rtype = RepeatType(parts[0].strip().lower())
    interval = int(parts[1]) if len(parts) > 1 and parts[1] else 1
    end_date = parse_when(parts[2]) if len(parts) > 2 and parts[2] else None
    days = (
        tuple(int(d) for d in parts[3].split(",") if d.strip())
        if len(parts) > 3 and parts[3]
        else None
    )
    return RepeatPattern(type=rtype, interval=interval, end_date=end_date, days_of_week=days)


def parse_task_options(args: Iterable[str]) -> tuple[list[str], dict[str, Any]]:
    """Split args into free words and key=value task fields."""
    words: list[str] = []
    fields: dict[str, Any] = {}
    for arg in args:
        key, sep, value = arg.partition("=")
        if not sep or key.lower() not in _TASK_OPTIONS:
            words.append(arg)
            continue
        field_name = _TASK_OPTIONS[key.lower()]
        if value == "" or value.lower() == "none":
            fields[field_name] = None
        elif field_name in ("due_date", "reminder_time"):
            fields[field_name] = parse_when(value)
        elif field_name == "repeat":
            fields[field_name] = parse_repeat(value)
        elif field_name == "priority":
            fields[field_name] = value.lower()
        else:
            fields[field_name] = value
    return words, fields


def resolve_task_id(state: AppState, ref: str) -> str:
    """Allow a unique id prefix of a cached task; anything else is passed through."""
    matches = [t.id for t in state.store.tasks if t.id.startswith(ref)]
    return matches[0] if len(matches) == 1 else ref


def resolve_category_id(state: AppState, ref: str) -> str:
    """Match a cached category by id prefix or by exact name (case-insensitive)."""
    by_name = [c.id for c in state.store.categories if c.name.casefold() == ref.casefold()]
    if len(by_name) == 1:
        return by_name[0]
    matches = [c.id for c in state.store.categories if c.id.startswith(ref)]
    return matches[0] if len(matches) == 1 else ref


# ---- formatting ----


def _short(ident: str) -> str:
    return ident[:8]


def format_task(task: Task, categories: Iterable[Category] = ()) -> str:
    mark = "x" if task.completed else " "
    parts = [f"[{mark}] {task.title} ({_short(task.id)})"]
    if task.due_date is not None:
        parts.append(f"due {task.due_date:%Y-%m-%d %H:%M}")
    if task.priority is not None:
        parts.append(f"!{task.priority.value}")
    if task.category:
        names = {c.id: c.name for c in categories}
        parts.append(f"#{names.get(task.category, '?' + _short(task.category))}")
    if task.repeat is not None:
        parts.append(f"({describe_repeat(task.repeat)})")
    return " ".join(parts)


def _format_list(title: str, tasks: list[Task], categories: Iterable[Category]) -> str:
    if not tasks:
        return f"{title}: nothing here."
    cats = list(categories)
    lines = [f"{title} ({len(tasks)}):"]
    lines.extend(f"  {format_task(t, cats)}" for t in tasks)
    return "\n".join(lines)


# ---- commands ----


async def cmd_help(state: AppState, args: list[str]) -> str:
    return registry.build_help()


async def cmd_status(state: AppState, args: list[str]) -> str:
    store = state.store
    ratio = completion_ratio(store.tasks)
    done = sum(1 for t in store.tasks if t.completed)
    flt = {None: "all", True: "completed", False: "pending"}[state.completed_filter]
    return (
        "Status:\n"
        f"  Backend: {getattr(state.settings, 'neo4j_uri', '?')}\n"
        f"  Tasks: {len(store.tasks)} ({done} done, {ratio:.0%})\n"
        f"  Categories: {len(store.categories)}\n"
        f"  List view: search={state.search or '-'} filter={flt} sort={state.sort_by.value}\n"
        f"  Last error: {store.error or '-'}"
    )


async def cmd_tasks(state: AppState, args: list[str]) -> str:
    """
    /tasks                 -> list with the current search / filter / sort
    /tasks search <text>   -> set the search text (no text clears it)
    /tasks filter all|done|pending
    /tasks sort due|priority|alpha|created
    """
    if args:
        sub = args[0].lower()
        rest = args[1:]
        if sub == "search":
            state.search = " ".join(rest) or None
        elif sub == "filter":
            if not rest or rest[0].lower() not in _FILTER_VALUES:
                return "Usage: /tasks filter all|done|pending"
            state.completed_filter = _FILTER_VALUES[rest[0].lower()]
        elif sub == "sort":
            if not rest or rest[0].lower() not in _SORT_ALIASES:
                return "Usage: /tasks sort due|priority|alpha|created"
            state.sort_by = _SORT_ALIASES[rest[0].lower()]
        else:
            return "Usage: /tasks [search <text> | filter <mode> | sort <key>]"

    tasks = derive_task_list(
        state.store.tasks,
        search=state.search,
        completed=state.completed_filter,
        sort_by=state.sort_by,
    )
    return _format_list("Tasks", tasks, state.store.categories)


async def cmd_today(state: AppState, args: list[str]) -> str:
    return _format_list("Today", today_tasks(state.store.tasks), state.store.categories)


async def cmd_upcoming(state: AppState, args: list[str]) -> str:
    days = int(getattr(state.settings, "upcoming_days", 7))
    tasks = upcoming_tasks(state.store.tasks, days=days)
    return _format_list(f"Next {days} days", tasks, state.store.categories)


async def cmd_day(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /day <YYYY-MM-DD|today|tomorrow|+N>"
    day: date = parse_when(args[0]).date()
    return _format_list(day.isoformat(), tasks_due_on(state.store.tasks, day), state.store.categories)


_WEEK_HEADER = ("Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat")
_CELL = 7


def parse_month(raw: str) -> tuple[int, int]:
    try:
        parsed = datetime.strptime(raw.strip(), "%Y-%m")
    except ValueError:
        raise ValueError(f"cannot parse month: {raw!r} (expected YYYY-MM)") from None
    return parsed.year, parsed.month


def format_month(counts: dict[date, int], year: int, month: int) -> str:
    """Render a Sunday-first month grid; days with due tasks show the count as 19(2)."""
    lines = [f"{date(year, month, 1):%B %Y}", "".join(h.rjust(_CELL) for h in _WEEK_HEADER)]
    for week in calendar.Calendar(firstweekday=6).monthdatescalendar(year, month):
        cells = []
        for d in week:
            if d.month != month:
                cells.append(" " * _CELL)
                continue
            n = counts.get(d, 0)
            cells.append((f"{d.day}({n})" if n else str(d.day)).rjust(_CELL))
        lines.append("".join(cells).rstrip())
    lines.append(f"{sum(counts.values())} task(s) due this month.")
    return "\n".join(lines)


async def cmd_month(state: AppState, args: list[str]) -> str:
    if args:
        year, month = parse_month(args[0])
    else:
        today = datetime.now().astimezone().date()
        year, month = today.year, today.month
    counts = task_counts_by_day(state.store.tasks, year, month)
    return format_month(counts, year, month)


async def cmd_add(state: AppState, args: list[str]) -> str:
    words, fields = parse_task_options(args)
    title = fields.pop("title", None) or " ".join(words)
    if "category" in fields and fields["category"]:
        fields["category"] = resolve_category_id(state, fields["category"])
    task = await state.store.add_task(title=title, **fields)
    return f"Added: {format_task(task, state.store.categories)}"


async def cmd_show(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /show <task_id>"
    task = state.store.find_task(resolve_task_id(state, args[0]))
    if task is None:
        return f"Task not found: {args[0]}"
    lines = [format_task(task, state.store.categories), f"  id: {task.id}"]
    if task.description:
        lines.append(f"  description: {task.description}")
    if task.reminder_time is not None:
        lines.append(f"  reminder: {task.reminder_time:%Y-%m-%d %H:%M}")
    if task.repeat is not None:
        lines.append(f"  repeat: {describe_repeat(task.repeat)}")
    if task.notes:
        lines.append(f"  notes: {task.notes}")
    lines.append(f"  created: {task.created_at:%Y-%m-%d %H:%M}, updated: {task.updated_at:%Y-%m-%d %H:%M}")
    return "\n".join(lines)


async def cmd_edit(state: AppState, args: list[str]) -> str:
    if len(args) < 2:
        return "Usage: /edit <task_id> key=value ... (title, desc, due, remind, cat, prio, repeat, notes, symbol)"
    task_id = resolve_task_id(state, args[0])
    words, fields = parse_task_options(args[1:])
    if words:
        return f"Unrecognized arguments: {' '.join(words)}"
    if fields.get("category"):
        fields["category"] = resolve_category_id(state, fields["category"])
    task = await state.store.update_task(task_id, fields)
    if task is None:
        return f"Task not found: {args[0]}"
    return f"Updated: {format_task(task, state.store.categories)}"


async def _set_completed(state: AppState, args: list[str], completed: bool) -> str:
    if not args:
        return "Usage: /done <task_id> | /undo <task_id>"
    task = await state.store.toggle_task_completion(resolve_task_id(state, args[0]), completed)
    if task is None:
        return f"Task not found: {args[0]}"
    return format_task(task, state.store.categories)


async def cmd_done(state: AppState, args: list[str]) -> str:
    return await _set_completed(state, args, True)


async def cmd_undo(state: AppState, args: list[str]) -> str:
    return await _set_completed(state, args, False)


async def cmd_del(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /del <task_id>"
    deleted = await state.store.delete_task(resolve_task_id(state, args[0]))
    return "Task deleted." if deleted else f"Task not found: {args[0]}"


async def cmd_cats(state: AppState, args: list[str]) -> str:
    cats = state.store.categories
    if not cats:
        return "No categories yet. Use /addcat <name> [color=#hex] [icon=name]."
    lines = [f"Categories ({len(cats)}):"]
    for c in cats:
        n = count_tasks_in_category(state.store.tasks, c.id)
        lines.append(f"  {c.name} ({_short(c.id)}) {c.color} icon={c.icon}: {n} tasks")
    return "\n".join(lines)


async def cmd_addcat(state: AppState, args: list[str]) -> str:
    words: list[str] = []
    color = DEFAULT_CATEGORY_COLOR
    icon: str | None = None
    for arg in args:
        key, sep, value = arg.partition("=")
        if sep and key.lower() == "color":
            color = value
        elif sep and key.lower() == "icon":
            icon = value or None
        else:
            words.append(arg)
    category = await state.store.add_category(name=" ".join(words), color=color, icon=icon)
    return f"Added category {category.name} ({_short(category.id)})."


async def cmd_delcat(state: AppState, args: list[str]) -> str:
    """Delete a category. Tasks pointing at it are reported, not blocked or changed."""
    if not args:
        return "Usage: /delcat <category>"
    category_id = resolve_category_id(state, args[0])
    linked = await state.store.get_tasks_by_category(category_id)
    deleted = await state.store.delete_category(category_id)
    if not deleted:
        return f"Category not found: {args[0]}"
    if linked:
        return f"Category deleted. {len(linked)} task(s) still reference it."
    return "Category deleted."


async def cmd_assign(state: AppState, args: list[str]) -> str:
    if len(args) < 2:
        return "Usage: /assign <task_id> <category>"
    task_id = resolve_task_id(state, args[0])
    await state.store.assign_task_to_category(task_id, resolve_category_id(state, args[1]))
    task = state.store.find_task(task_id)
    return f"Assigned: {format_task(task, state.store.categories)}" if task else "Assigned."


async def cmd_incat(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /incat <category>"
    category_id = resolve_category_id(state, args[0])
    tasks = await state.store.get_tasks_by_category(category_id)
    return _format_list(f"In category {args[0]}", tasks, state.store.categories)


async def cmd_refresh(state: AppState, args: list[str]) -> str:
    # initialize() reconnects if the first attempt failed; connect is a no-op otherwise.
    if not await state.store.initialize():
        return state.store.error or "Reload failed."
    return f"Reloaded {len(state.store.tasks)} tasks and {len(state.store.categories)} categories."


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("status", cmd_status, help_text="Show backend, counts and list-view settings.")
registry.register(
    "tasks", cmd_tasks, help_text="List tasks: /tasks [search <text> | filter <mode> | sort <key>].", aliases=["ls"]
)
registry.register("today", cmd_today, help_text="Tasks due today.")
registry.register("upcoming", cmd_upcoming, help_text="Tasks due in the next days.")
registry.register("day", cmd_day, help_text="Tasks due on a day: /day 2026-10-20.")
registry.register("month", cmd_month, help_text="Month grid with due-task counts: /month [YYYY-MM].", aliases=["cal"])
registry.register("add", cmd_add, help_text="Add a task: /add Buy milk due=today prio=high cat=Home.")
registry.register("show", cmd_show, help_text="Show task details: /show <task_id>.")
registry.register("edit", cmd_edit, help_text="Edit a task: /edit <task_id> key=value ...")
registry.register("done", cmd_done, help_text="Mark a task completed.")
registry.register("undo", cmd_undo, help_text="Mark a task pending again.")
registry.register("del", cmd_del, help_text="Delete a task.", aliases=["rm"])
registry.register("cats", cmd_cats, help_text="List categories with task counts.")
registry.register("addcat", cmd_addcat, help_text="Add a category: /addcat Home color=#ff9800 icon=home.")
registry.register("delcat", cmd_delcat, help_text="Delete a category (tasks keep their reference).")
registry.register("assign", cmd_assign, help_text="Put a task in a category: /assign <task_id> <category>.")
registry.register("incat", cmd_incat, help_text="Tasks linked to a category.")
registry.register("refresh", cmd_refresh, help_text="Reload tasks and categories from the database.")
