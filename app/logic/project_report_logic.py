from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from app.logic.project_cost_logic import compute_cost_summary, to_money
from app.logic.task_calendar_logic import overall_status
from app.models.projects import ProjectStatus, TaskStatus

# Finished projects never raise the overdue issue.
OVERDUE_EXEMPT_STATUSES = frozenset({ProjectStatus.done, ProjectStatus.delivered})

UNTITLED_TASK = "Untitled task"


@dataclass(frozen=True)
class TaskProgress:
    total: int
    completed: int
    delayed: int
    active: int
    percent: int


@dataclass(frozen=True)
class ProjectReportData:
    project_id: Any
    code: str | None
    name: str | None
    customer_name: str | None
    status: str | None
    start_date: date | None
    end_date: date | None
    budget: Decimal
    total_product_amount: Decimal
    total_other_expenses: Decimal
    actual_all_in: Decimal
    variance: Decimal
    profit_approx: Decimal
    task_count: int
    task_completed: int
    task_delayed: int
    task_active: int
    progress_percent: int
    issues: list[str] = field(default_factory=list)


def _status_value(status) -> str | None:
    if status is None:
        return None
    return status.value if isinstance(status, ProjectStatus) else str(status)


def _coerce_project_status(status) -> ProjectStatus | None:
    if status is None or isinstance(status, ProjectStatus):
        return status
    try:
        return ProjectStatus(status)
    except ValueError:
        return None


def progress_percent(completed: int, total: int) -> int:
    if total <= 0:
        return 0
    ratio = Decimal(completed * 100) / Decimal(total)
    return int(ratio.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def summarize_task_progress(tasks: Sequence[Any]) -> TaskProgress:
    completed = 0
    delayed = 0
    for task in tasks:
        status = overall_status(task)
        if status == TaskStatus.done:
            completed += 1
        elif status == TaskStatus.delayed:
            delayed += 1
    total = len(tasks)
    return TaskProgress(
        total=total,
        completed=completed,
        delayed=delayed,
        active=max(total - completed - delayed, 0),
        percent=progress_percent(completed, total),
    )


def is_project_overdue(project: Any, today: date) -> bool:
    if project.end_date is None:
        return False
    return project.end_date < today and _coerce_project_status(project.status) not in OVERDUE_EXEMPT_STATUSES


def collect_issues(project: Any, tasks: Sequence[Any], today: date) -> list[str]:
    issues = []
    for task in tasks:
        if overall_status(task) == TaskStatus.delayed:
            name = (task.name or "").strip()
            issues.append(name or UNTITLED_TASK)
    if is_project_overdue(project, today):
        issues.append(f"Project overdue: end date {project.end_date.isoformat()} has passed")
    return issues


def compile_report(
    project: Any,
    tasks: Sequence[Any],
    products: Sequence[Any],
    expenses: Sequence[Any],
    today: date,
) -> ProjectReportData:
    """Assemble the report from already-loaded collections.

    ``today`` is the UTC calendar date used for the overdue check.
    """
    progress = summarize_task_progress(tasks)
    costs = compute_cost_summary(project, products, expenses)
    return ProjectReportData(
        project_id=project.id,
        code=project.code,
        name=project.name,
        customer_name=project.customer_name,
        status=_status_value(project.status),
        start_date=project.start_date,
        end_date=project.end_date,
        budget=to_money(project.budget),
        total_product_amount=costs.total_product_amount,
        total_other_expenses=costs.total_other_expenses,
        actual_all_in=costs.actual_all_in,
        variance=costs.variance,
        profit_approx=costs.profit_approx,
        task_count=progress.total,
        task_completed=progress.completed,
        task_delayed=progress.delayed,
        task_active=progress.active,
        progress_percent=progress.percent,
        issues=collect_issues(project, tasks, today),
    )
