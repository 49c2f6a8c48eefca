"""Tests for the per-day task calendar and the status cycle."""

from dataclasses import dataclass, field
from datetime import date, datetime

import pytest

from app.logic import task_calendar_logic as logic
from app.logic.task_calendar_logic import DayEntry
from app.models.projects import TaskStatus


@dataclass
class _Task:
    name: str = "Lắp đặt đèn"
    start_date: date | None = date(2025, 1, 1)
    duration_days: int = 5
    days: list = field(default_factory=list)


class TestStatusLabels:
    """Tests for the wire value <-> calendar label table."""

    def test_labels_for_every_status(self):
        assert logic.status_label(TaskStatus.new) == "Pending"
        assert logic.status_label(TaskStatus.in_progress) == "Doing"
        assert logic.status_label(TaskStatus.done) == "Done"
        assert logic.status_label(TaskStatus.delayed) == "Delayed"

    def test_label_lookup_is_bidirectional(self):
        for status in TaskStatus:
            assert logic.status_from_label(logic.status_label(status)) is status

    def test_unknown_label_raises(self):
        with pytest.raises(ValueError, match="Unknown task status label"):
            logic.status_from_label("Blocked")

    def test_parse_status_accepts_wire_values_and_labels(self):
        assert logic.parse_status("InProgress") is TaskStatus.in_progress
        assert logic.parse_status("Doing") is TaskStatus.in_progress
        assert logic.parse_status("New") is TaskStatus.new
        assert logic.parse_status("Pending") is TaskStatus.new
        assert logic.parse_status(None) is None
        assert logic.parse_status(TaskStatus.done) is TaskStatus.done

    def test_parse_status_rejects_garbage(self):
        with pytest.raises(ValueError):
            logic.parse_status("done-ish")


class TestUpsertDay:
    """Tests for upsert_day."""

    def test_inserts_new_entry(self):
        task = _Task()
        entry = logic.upsert_day(task, date(2025, 1, 2), TaskStatus.in_progress)
        assert entry == DayEntry(date(2025, 1, 2), TaskStatus.in_progress)
        assert task.days == [entry]

    def test_replaces_existing_entry_in_place(self):
        task = _Task(days=[DayEntry(date(2025, 1, 2), TaskStatus.new)])
        entry = logic.upsert_day(task, date(2025, 1, 2), TaskStatus.done)
        assert entry is task.days[0]
        assert len(task.days) == 1
        assert task.days[0].status is TaskStatus.done

    def test_none_removes_entry(self):
        task = _Task(days=[DayEntry(date(2025, 1, 2), TaskStatus.new)])
        assert logic.upsert_day(task, date(2025, 1, 2), None) is None
        assert task.days == []

    def test_none_on_missing_day_is_noop(self):
        task = _Task(days=[DayEntry(date(2025, 1, 3), TaskStatus.new)])
        assert logic.upsert_day(task, date(2025, 1, 2), None) is None
        assert len(task.days) == 1

    def test_datetime_is_truncated_to_date(self):
        task = _Task(days=[DayEntry(date(2025, 1, 2), TaskStatus.new)])
        logic.upsert_day(task, datetime(2025, 1, 2, 17, 45), TaskStatus.delayed)
        assert len(task.days) == 1
        assert task.days[0].status is TaskStatus.delayed

    def test_uses_entry_factory(self):
        created = []

        def _factory(day, status):
            created.append((day, status))
            return DayEntry(day, status)

        task = _Task()
        logic.upsert_day(task, date(2025, 1, 4), TaskStatus.done, make_entry=_factory)
        assert created == [(date(2025, 1, 4), TaskStatus.done)]


class TestOverallStatus:
    """Tests for overall_status."""

    def test_no_entries_is_pending(self):
        assert logic.overall_status(_Task()) is TaskStatus.new

    def test_latest_date_wins_regardless_of_insertion_order(self):
        task = _Task(
            days=[
                DayEntry(date(2025, 1, 1), TaskStatus.new),
                DayEntry(date(2025, 1, 3), TaskStatus.in_progress),
                DayEntry(date(2025, 1, 2), TaskStatus.done),
            ]
        )
        assert logic.overall_status(task) is TaskStatus.in_progress

    def test_single_entry(self):
        task = _Task(days=[DayEntry(date(2025, 1, 9), TaskStatus.delayed)])
        assert logic.overall_status(task) is TaskStatus.delayed

    def test_sorted_days_orders_by_date(self):
        task = _Task(
            days=[
                DayEntry(date(2025, 1, 3), TaskStatus.new),
                DayEntry(date(2025, 1, 1), TaskStatus.done),
            ]
        )
        assert [entry.date for entry in logic.sorted_days(task)] == [date(2025, 1, 1), date(2025, 1, 3)]


class TestIsInRange:
    """Tests for is_in_range."""

    def test_inclusive_bounds(self):
        task = _Task(start_date=date(2025, 1, 1), duration_days=3)
        assert logic.is_in_range(task, date(2025, 1, 1))
        assert logic.is_in_range(task, date(2025, 1, 3))

    def test_outside_bounds(self):
        task = _Task(start_date=date(2025, 1, 1), duration_days=3)
        assert not logic.is_in_range(task, date(2024, 12, 31))
        assert not logic.is_in_range(task, date(2025, 1, 4))

    def test_single_day_task(self):
        task = _Task(start_date=date(2025, 1, 1), duration_days=1)
        assert logic.is_in_range(task, date(2025, 1, 1))
        assert not logic.is_in_range(task, date(2025, 1, 2))

    def test_zero_duration_is_never_in_range(self):
        task = _Task(start_date=date(2025, 1, 1), duration_days=0)
        assert not logic.is_in_range(task, date(2025, 1, 1))

    def test_missing_start_date_is_never_in_range(self):
        task = _Task(start_date=None)
        assert not logic.is_in_range(task, date(2025, 1, 1))

    def test_month_boundary(self):
        task = _Task(start_date=date(2025, 1, 30), duration_days=4)
        assert logic.is_in_range(task, date(2025, 2, 2))
        assert not logic.is_in_range(task, date(2025, 2, 3))


class TestStatusCycle:
    """Tests for next_status and advance_day_status."""

    def test_next_status_follows_cycle(self):
        assert logic.next_status(None) is TaskStatus.new
        assert logic.next_status(TaskStatus.new) is TaskStatus.in_progress
        assert logic.next_status(TaskStatus.in_progress) is TaskStatus.done
        assert logic.next_status(TaskStatus.done) is TaskStatus.delayed
        assert logic.next_status(TaskStatus.delayed) is None

    def test_first_advance_creates_pending_entry(self):
        task = _Task()
        entry = logic.advance_day_status(task, date(2025, 1, 2))
        assert entry.status is TaskStatus.new
        assert len(task.days) == 1

    def test_five_advances_return_to_no_entry(self):
        task = _Task()
        day = date(2025, 1, 2)
        seen = []
        for _ in range(5):
            entry = logic.advance_day_status(task, day)
            seen.append(entry.status if entry else None)
        assert seen == [TaskStatus.new, TaskStatus.in_progress, TaskStatus.done, TaskStatus.delayed, None]
        assert task.days == []

    def test_advance_only_touches_one_day(self):
        other = DayEntry(date(2025, 1, 5), TaskStatus.done)
        task = _Task(days=[other])
        logic.advance_day_status(task, date(2025, 1, 2))
        assert other in task.days
        assert other.status is TaskStatus.done
        assert len(task.days) == 2
