"""Tests for the project report compiler."""

import uuid
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from types import SimpleNamespace

from app.logic import project_report_logic as logic
from app.logic.task_calendar_logic import DayEntry
from app.models.projects import ProjectStatus, TaskStatus


@dataclass
class _Task:
    name: str | None
    days: list = field(default_factory=list)
    start_date: date = date(2025, 1, 1)
    duration_days: int = 5


def _task(name, *statuses):
    days = [DayEntry(date(2025, 1, 1 + index), status) for index, status in enumerate(statuses)]
    return _Task(name=name, days=days)


def _project(**overrides):
    values = {
        "id": uuid.UUID("7f1c2a9e-1b9d-4c55-9a0e-3f4b8d2e6a10"),
        "code": "PRJ-2025-001",
        "name": "Chiếu sáng nhà xưởng",
        "customer_name": "Công ty ABC",
        "status": ProjectStatus.in_progress,
        "start_date": date(2025, 1, 1),
        "end_date": date(2025, 12, 31),
        "budget": Decimal("10000000"),
    }
    values.update(overrides)
    return SimpleNamespace(**values)


class TestProgressPercent:
    """Tests for progress_percent."""

    def test_no_tasks_is_zero(self):
        assert logic.progress_percent(0, 0) == 0

    def test_one_of_three_rounds_down(self):
        assert logic.progress_percent(1, 3) == 33

    def test_two_of_three_rounds_up(self):
        assert logic.progress_percent(2, 3) == 67

    def test_half_rounds_away_from_zero(self):
        assert logic.progress_percent(1, 8) == 13
        assert logic.progress_percent(5, 8) == 63

    def test_all_done(self):
        assert logic.progress_percent(4, 4) == 100


class TestSummarizeTaskProgress:
    """Tests for summarize_task_progress."""

    def test_four_task_scenario(self):
        tasks = [
            _task("A", TaskStatus.done),
            _task("B", TaskStatus.new, TaskStatus.done),
            _task("C", TaskStatus.delayed),
            _task("D"),
        ]
        progress = logic.summarize_task_progress(tasks)
        assert progress.total == 4
        assert progress.completed == 2
        assert progress.delayed == 1
        assert progress.active == 1
        assert progress.percent == 50

    def test_task_without_days_counts_as_active(self):
        progress = logic.summarize_task_progress([_task("A")])
        assert progress.active == 1
        assert progress.completed == 0

    def test_counts_add_up(self):
        tasks = [_task(str(i), status) for i, status in enumerate(TaskStatus)]
        progress = logic.summarize_task_progress(tasks)
        assert progress.completed + progress.delayed + progress.active == progress.total


class TestCollectIssues:
    """Tests for collect_issues and is_project_overdue."""

    def test_delayed_tasks_are_listed_in_order(self):
        tasks = [
            _task("Đi dây", TaskStatus.delayed),
            _task("Lắp đèn", TaskStatus.done),
            _task("Nghiệm thu", TaskStatus.done, TaskStatus.delayed),
        ]
        issues = logic.collect_issues(_project(), tasks, date(2025, 6, 1))
        assert issues == ["Đi dây", "Nghiệm thu"]

    def test_blank_task_name_uses_placeholder(self):
        issues = logic.collect_issues(_project(), [_task("   ", TaskStatus.delayed)], date(2025, 6, 1))
        assert issues == [logic.UNTITLED_TASK]

    def test_overdue_project_adds_issue(self):
        project = _project(end_date=date(2025, 3, 31))
        issues = logic.collect_issues(project, [], date(2025, 4, 1))
        assert issues == ["Project overdue: end date 2025-03-31 has passed"]

    def test_end_date_today_is_not_overdue(self):
        project = _project(end_date=date(2025, 3, 31))
        assert not logic.is_project_overdue(project, date(2025, 3, 31))

    def test_finished_projects_are_not_overdue(self):
        for status in (ProjectStatus.done, ProjectStatus.delivered):
            project = _project(end_date=date(2025, 3, 31), status=status)
            assert not logic.is_project_overdue(project, date(2025, 6, 1))

    def test_cancelled_project_past_end_date_is_overdue(self):
        project = _project(end_date=date(2025, 1, 1), status=ProjectStatus.cancelled)
        issues = logic.collect_issues(project, [], date(2025, 6, 1))
        assert issues == ["Project overdue: end date 2025-01-01 has passed"]

    def test_status_given_as_string(self):
        project = _project(end_date=date(2025, 3, 31), status="Done")
        assert not logic.is_project_overdue(project, date(2025, 6, 1))

    def test_no_end_date_is_not_overdue(self):
        assert not logic.is_project_overdue(_project(end_date=None), date(2025, 6, 1))


class TestCompileReport:
    """Tests for compile_report."""

    def test_full_report(self):
        project = _project(end_date=date(2025, 3, 31))
        tasks = [
            _task("A", TaskStatus.done),
            _task("B", TaskStatus.done),
            _task("C", TaskStatus.delayed),
            _task("D", TaskStatus.in_progress),
        ]
        products = [SimpleNamespace(total=Decimal("6000000"))]
        expenses = [SimpleNamespace(amount=Decimal("3500000"))]

        report = logic.compile_report(project, tasks, products, expenses, date(2025, 4, 15))

        assert report.project_id == project.id
        assert report.code == "PRJ-2025-001"
        assert report.status == "InProgress"
        assert report.budget == Decimal("10000000")
        assert report.actual_all_in == Decimal("9500000")
        assert report.variance == Decimal("500000")
        assert report.profit_approx == Decimal("2500000")
        assert report.task_count == 4
        assert report.task_completed == 2
        assert report.task_delayed == 1
        assert report.task_active == 1
        assert report.progress_percent == 50
        assert report.issues == ["C", "Project overdue: end date 2025-03-31 has passed"]

    def test_empty_project(self):
        project = _project(budget=None)
        report = logic.compile_report(project, [], [], [], date(2025, 6, 1))
        assert report.budget == Decimal("0")
        assert report.task_count == 0
        assert report.progress_percent == 0
        assert report.issues == []
