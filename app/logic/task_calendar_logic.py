"""Per-day execution status of a project task.

A task carries a sparse set of ``(date, status)`` entries. A date with no
entry has no status. Everything here works on any object exposing
``start_date``, ``duration_days`` and a mutable ``days`` list whose items have
``date`` and ``status`` attributes, so ORM rows and plain dataclasses are
handled the same way.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Any

from app.models.projects import TaskStatus

# Wire value <-> label shown on the task calendar.
STATUS_LABELS: dict[TaskStatus, str] = {
    TaskStatus.new: "Pending",
    TaskStatus.in_progress: "Doing",
    TaskStatus.done: "Done",
    TaskStatus.delayed: "Delayed",
}
LABEL_STATUSES: dict[str, TaskStatus] = {label: status for status, label in STATUS_LABELS.items()}

# One click on a calendar cell moves one step right; None means "no entry".
STATUS_CYCLE: tuple[TaskStatus | None, ...] = (
    TaskStatus.new,
    TaskStatus.in_progress,
    TaskStatus.done,
    TaskStatus.delayed,
    None,
)


@dataclass
class DayEntry:
    date: date
    status: TaskStatus


def status_label(status: TaskStatus) -> str:
    return STATUS_LABELS[status]


def status_from_label(label: str) -> TaskStatus:
    try:
        return LABEL_STATUSES[label]
    except (KeyError, TypeError) as exc:
        raise ValueError(f"Unknown task status label: {label!r}") from exc


def parse_status(value: str | TaskStatus | None) -> TaskStatus | None:
    """Accept a wire value ("InProgress") or a calendar label ("Doing")."""
    if value is None or isinstance(value, TaskStatus):
        return value
    try:
        return TaskStatus(value)
    except ValueError:
        return status_from_label(value)


def _as_date(value: date | datetime) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value


def sorted_days(task: Any) -> list:
    return sorted(task.days or [], key=lambda entry: _as_date(entry.date))


def find_day(task: Any, day: date | datetime):
    target = _as_date(day)
    for entry in task.days or []:
        if _as_date(entry.date) == target:
            return entry
    return None


def upsert_day(
    task: Any,
    day: date | datetime,
    status: TaskStatus | None,
    make_entry: Callable[[date, TaskStatus], Any] = DayEntry,
):
    """Set the status of one day; ``status=None`` removes the entry.

    Returns the stored entry, or ``None`` when the day ended up without one.
    """
    target = _as_date(day)
    existing = find_day(task, target)
    if status is None:
        if existing is not None:
            task.days.remove(existing)
        return None
    if existing is not None:
        existing.status = status
        return existing
    entry = make_entry(target, status)
    task.days.append(entry)
    return entry


def overall_status(task: Any) -> TaskStatus:
    """Status of the latest-dated entry; Pending when nothing was recorded.

    A stale last entry is still returned when today lies beyond it.
    """
    entries = sorted_days(task)
    if not entries:
        return TaskStatus.new
    return entries[-1].status


def is_in_range(task: Any, day: date | datetime) -> bool:
    duration = task.duration_days or 0
    if duration < 1 or task.start_date is None:
        return False
    start = _as_date(task.start_date)
    end = start + timedelta(days=duration - 1)
    return start <= _as_date(day) <= end


def next_status(current: TaskStatus | None) -> TaskStatus | None:
    index = STATUS_CYCLE.index(current)
    return STATUS_CYCLE[(index + 1) % len(STATUS_CYCLE)]


def advance_day_status(
    task: Any,
    day: date | datetime,
    make_entry: Callable[[date, TaskStatus], Any] = DayEntry,
):
    """Step one day's status forward through ``STATUS_CYCLE``."""
    existing = find_day(task, day)
    current = existing.status if existing is not None else None
    return upsert_day(task, day, next_status(current), make_entry=make_entry)
