import logging
import re
from datetime import UTC, date, datetime
from decimal import Decimal

from fastapi import HTTPException
from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from app.logic import task_calendar_logic
from app.logic.project_cost_logic import to_money
from app.models.projects import (
    Project,
    ProjectExpense,
    ProjectProduct,
    ProjectStatus,
    TaskDay,
    TaskItem,
    TaskStatus,
)
from app.schemas.projects import (
    ProjectCreate,
    ProjectExpenseCreate,
    ProjectExpenseUpdate,
    ProjectProductCreate,
    ProjectProductUpdate,
    ProjectUpdate,
    TaskDayPayload,
    TaskItemCreate,
    TaskItemUpdate,
)
from app.services.common import (
    apply_ordering,
    apply_pagination,
    coerce_uuid,
    get_or_404,
    round_money,
    validate_enum,
)
from app.services.response import ListResponseMixin

logger = logging.getLogger(__name__)

# Statuses left out of the portfolio overdue counter.
CLOSED_PROJECT_STATUSES = (ProjectStatus.done, ProjectStatus.delivered, ProjectStatus.cancelled)

PROJECT_CODE_PREFIX = "PRJ"
PROJECT_CODE_PADDING = 3

# set_day/advance_day retry once when a concurrent writer inserted the same day first.
DAY_WRITE_ATTEMPTS = 2


def _today() -> date:
    return datetime.now(UTC).date()


def _ensure_project_open(project: Project) -> None:
    if project.status == ProjectStatus.done:
        raise HTTPException(status_code=409, detail="Project is completed")


def _check_date_order(start_date: date | None, end_date: date | None) -> None:
    if start_date and end_date and end_date < start_date:
        raise HTTPException(status_code=422, detail="end_date must be on or after start_date")


def _new_task_day(day: date, status: TaskStatus) -> TaskDay:
    return TaskDay(date=day, status=status)


def _collapse_days(days: list[TaskDayPayload]) -> dict[date, TaskStatus]:
    """Later entries for the same date win."""
    collapsed: dict[date, TaskStatus] = {}
    for entry in days:
        collapsed[entry.date] = entry.status
    return collapsed


def _day_result(task: TaskItem, day: date, entry: TaskDay | None) -> dict:
    if entry is None:
        return {"task_id": task.id, "date": day, "status": None, "label": None, "removed": True}
    return {
        "task_id": task.id,
        "date": entry.date,
        "status": entry.status,
        "label": task_calendar_logic.status_label(entry.status),
        "removed": False,
    }


class Projects(ListResponseMixin):
    @staticmethod
    def _next_code(db: Session, year: int) -> str:
        prefix = f"{PROJECT_CODE_PREFIX}-{year}-"
        pattern = re.compile(rf"^{re.escape(prefix)}(\d+)$")
        highest = 0
        for (code,) in db.query(Project.code).filter(Project.code.like(f"{prefix}%")).all():
            match = pattern.match(code or "")
            if match:
                highest = max(highest, int(match.group(1)))
        return f"{prefix}{highest + 1:0{PROJECT_CODE_PADDING}d}"

    @staticmethod
    def _ensure_code_available(db: Session, code: str, exclude_id=None) -> None:
        query = db.query(Project.id).filter(Project.code == code)
        if exclude_id is not None:
            query = query.filter(Project.id != exclude_id)
        if query.first():
            raise HTTPException(status_code=409, detail="Project code already exists")

    @staticmethod
    def create(db: Session, payload: ProjectCreate, created_by: str | None = None):
        data = payload.model_dump()
        code = (data.get("code") or "").strip()
        if not code:
            code = Projects._next_code(db, _today().year)
        Projects._ensure_code_available(db, code)
        data["code"] = code
        data["created_by"] = created_by
        project = Project(**data)
        db.add(project)
        try:
            db.commit()
        except IntegrityError as exc:
            db.rollback()
            raise HTTPException(status_code=409, detail="Project code already exists") from exc
        db.refresh(project)
        logger.info("project_created project_id=%s code=%s", project.id, project.code)
        return project

    @staticmethod
    def get(db: Session, project_id: str):
        return get_or_404(db, Project, project_id, detail="Project not found")

    @staticmethod
    def list(
        db: Session,
        search: str | None,
        status: str | None,
        project_manager_name: str | None,
        is_active: bool | None,
        order_by: str,
        order_dir: str,
        limit: int,
        offset: int,
    ):
        query = db.query(Project)
        if status:
            query = query.filter(Project.status == validate_enum(status, ProjectStatus, "status"))
        if project_manager_name:
            query = query.filter(Project.project_manager_name == project_manager_name)
        if search and search.strip():
            like_term = f"%{search.strip()}%"
            query = query.filter(
                or_(
                    Project.code.ilike(like_term),
                    Project.name.ilike(like_term),
                    Project.customer_name.ilike(like_term),
                )
            )
        if is_active is None:
            query = query.filter(Project.is_active.is_(True))
        else:
            query = query.filter(Project.is_active == is_active)
        query = apply_ordering(
            query,
            order_by,
            order_dir,
            {"created_at": Project.created_at, "name": Project.name, "code": Project.code},
        )
        return apply_pagination(query, limit, offset).all()

    @staticmethod
    def update(db: Session, project_id: str, payload: ProjectUpdate):
        project = Projects.get(db, project_id)
        data = payload.model_dump(exclude_unset=True)
        for key in ("name", "status"):
            if key in data and data[key] is None:
                raise HTTPException(status_code=400, detail=f"{key} is required")
        _check_date_order(
            data.get("start_date", project.start_date),
            data.get("end_date", project.end_date),
        )
        previous_status = project.status
        for key, value in data.items():
            setattr(project, key, value)
        db.commit()
        db.refresh(project)
        if project.status != previous_status:
            logger.info(
                "project_status_changed project_id=%s from=%s to=%s",
                project.id,
                previous_status.value if previous_status else None,
                project.status.value,
            )
        return project

    @staticmethod
    def delete(db: Session, project_id: str):
        """Soft delete a project."""
        project = Projects.get(db, project_id)
        project.is_active = False
        db.commit()
        logger.info("project_deactivated project_id=%s", project.id)

    @staticmethod
    def overview(db: Session, today: date | None = None) -> dict:
        """Portfolio counters over active projects."""
        today = today or _today()
        base = db.query(Project).filter(Project.is_active.is_(True))
        rows = (
            db.query(Project.status, func.count(Project.id))
            .filter(Project.is_active.is_(True))
            .group_by(Project.status)
            .all()
        )
        counts = {status: count for status, count in rows if status}
        total_budget = (
            db.query(func.coalesce(func.sum(Project.budget), 0)).filter(Project.is_active.is_(True)).scalar()
        )
        overdue = base.filter(
            Project.end_date.isnot(None),
            Project.end_date < today,
            Project.status.notin_(CLOSED_PROJECT_STATUSES),
        ).count()
        return {
            "total": sum(counts.values()),
            "draft": counts.get(ProjectStatus.draft, 0),
            "in_progress": counts.get(ProjectStatus.in_progress, 0),
            "delivered": counts.get(ProjectStatus.done, 0) + counts.get(ProjectStatus.delivered, 0),
            "total_budget": round_money(to_money(total_budget)),
            "overdue": overdue,
        }


class ProjectTasks(ListResponseMixin):
    @staticmethod
    def _ensure_dependency(db: Session, project_id, depends_on_task_id, task_id=None) -> None:
        if depends_on_task_id is None:
            return
        if task_id is not None and coerce_uuid(depends_on_task_id) == task_id:
            raise HTTPException(status_code=400, detail="Task cannot depend on itself")
        dependency = db.get(TaskItem, coerce_uuid(depends_on_task_id))
        if not dependency or dependency.project_id != project_id:
            raise HTTPException(status_code=404, detail="Dependency task not found")

    @staticmethod
    def create(db: Session, payload: TaskItemCreate):
        project = Projects.get(db, str(payload.project_id))
        _ensure_project_open(project)
        ProjectTasks._ensure_dependency(db, project.id, payload.depends_on_task_id)
        data = payload.model_dump(exclude={"days"})
        task = TaskItem(**data)
        for day, status in _collapse_days(payload.days or []).items():
            task.days.append(_new_task_day(day, status))
        db.add(task)
        db.commit()
        db.refresh(task)
        logger.info("project_task_created task_id=%s project_id=%s", task.id, project.id)
        return task

    @staticmethod
    def get(db: Session, task_id: str):
        return get_or_404(db, TaskItem, task_id, detail="Task not found")

    @staticmethod
    def list(
        db: Session,
        project_id: str,
        order_by: str = "start_date",
        order_dir: str = "asc",
        limit: int | None = None,
        offset: int = 0,
    ):
        Projects.get(db, project_id)
        query = (
            db.query(TaskItem)
            .options(selectinload(TaskItem.days))
            .filter(TaskItem.project_id == coerce_uuid(project_id))
        )
        query = apply_ordering(
            query,
            order_by,
            order_dir,
            {"start_date": TaskItem.start_date, "name": TaskItem.name, "created_at": TaskItem.created_at},
        )
        return apply_pagination(query, limit, offset).all()

    @staticmethod
    def update(db: Session, task_id: str, payload: TaskItemUpdate):
        task = ProjectTasks.get(db, task_id)
        _ensure_project_open(task.project)
        data = payload.model_dump(exclude_unset=True, exclude={"days"})
        for key in ("name", "start_date", "duration_days"):
            if key in data and data[key] is None:
                raise HTTPException(status_code=400, detail=f"{key} is required")
        if "depends_on_task_id" in data:
            ProjectTasks._ensure_dependency(db, task.project_id, data["depends_on_task_id"], task_id=task.id)
        for key, value in data.items():
            setattr(task, key, value)
        if payload.days is not None:
            task.days.clear()
            # Old rows must be gone before re-inserting the same dates.
            db.flush()
            for day, status in _collapse_days(payload.days).items():
                task.days.append(_new_task_day(day, status))
        db.commit()
        db.refresh(task)
        return task

    @staticmethod
    def delete(db: Session, task_id: str):
        task = ProjectTasks.get(db, task_id)
        _ensure_project_open(task.project)
        db.query(TaskItem).filter(TaskItem.depends_on_task_id == task.id).update(
            {TaskItem.depends_on_task_id: None}, synchronize_session=False
        )
        db.delete(task)
        db.commit()
        logger.info("project_task_deleted task_id=%s", task_id)

    @staticmethod
    def _write_day(db: Session, task_id: str, day: date, apply) -> dict:
        for attempt in range(1, DAY_WRITE_ATTEMPTS + 1):
            task = ProjectTasks.get(db, task_id)
            _ensure_project_open(task.project)
            if not task_calendar_logic.is_in_range(task, day):
                logger.info("project_task_day_outside_range task_id=%s date=%s", task.id, day)
            entry = apply(task)
            try:
                db.commit()
            except IntegrityError:
                db.rollback()
                if attempt == DAY_WRITE_ATTEMPTS:
                    raise
                logger.warning("project_task_day_conflict task_id=%s date=%s", task_id, day)
                continue
            if entry is not None:
                db.refresh(entry)
            return _day_result(task, day, entry)

    @staticmethod
    def set_day(db: Session, task_id: str, day: date, status: TaskStatus | None) -> dict:
        """Set one calendar cell; ``status=None`` clears it."""
        return ProjectTasks._write_day(
            db,
            task_id,
            day,
            lambda task: task_calendar_logic.upsert_day(task, day, status, make_entry=_new_task_day),
        )

    @staticmethod
    def advance_day(db: Session, task_id: str, day: date) -> dict:
        """Step one calendar cell to the next status in the cycle."""
        return ProjectTasks._write_day(
            db,
            task_id,
            day,
            lambda task: task_calendar_logic.advance_day_status(task, day, make_entry=_new_task_day),
        )


class ProjectProducts:
    @staticmethod
    def create(db: Session, project_id: str, payload: ProjectProductCreate):
        project = Projects.get(db, project_id)
        _ensure_project_open(project)
        duplicate = (
            db.query(ProjectProduct.id)
            .filter(ProjectProduct.project_id == project.id)
            .filter(ProjectProduct.product_id == payload.product_id)
            .first()
        )
        if duplicate:
            raise HTTPException(status_code=409, detail="Product already added to this project")
        data = payload.model_dump()
        data["total"] = round_money(payload.quantity * payload.unit_price)
        item = ProjectProduct(project_id=project.id, **data)
        db.add(item)
        db.commit()
        db.refresh(item)
        return item

    @staticmethod
    def get(db: Session, item_id: str):
        return get_or_404(db, ProjectProduct, item_id, detail="Project product not found")

    @staticmethod
    def list(db: Session, project_id: str):
        Projects.get(db, project_id)
        return (
            db.query(ProjectProduct)
            .filter(ProjectProduct.project_id == coerce_uuid(project_id))
            .order_by(ProjectProduct.created_at.asc())
            .all()
        )

    @staticmethod
    def list_with_subtotal(db: Session, project_id: str) -> dict:
        items = ProjectProducts.list(db, project_id)
        subtotal = sum((to_money(item.total) for item in items), Decimal("0"))
        return {"project_id": coerce_uuid(project_id), "items": items, "subtotal": subtotal}

    @staticmethod
    def update(db: Session, item_id: str, payload: ProjectProductUpdate):
        item = ProjectProducts.get(db, item_id)
        _ensure_project_open(item.project)
        data = payload.model_dump(exclude_unset=True)
        for key, value in data.items():
            if value is not None or key == "note":
                setattr(item, key, value)
        item.total = round_money(to_money(item.quantity) * to_money(item.unit_price))
        db.commit()
        db.refresh(item)
        return item

    @staticmethod
    def delete(db: Session, item_id: str):
        item = ProjectProducts.get(db, item_id)
        _ensure_project_open(item.project)
        db.delete(item)
        db.commit()


class ProjectExpenses:
    @staticmethod
    def create(db: Session, project_id: str, payload: ProjectExpenseCreate):
        project = Projects.get(db, project_id)
        _ensure_project_open(project)
        expense = ProjectExpense(project_id=project.id, **payload.model_dump())
        db.add(expense)
        db.commit()
        db.refresh(expense)
        logger.info("project_expense_created expense_id=%s project_id=%s", expense.id, project.id)
        return expense

    @staticmethod
    def get(db: Session, expense_id: str):
        return get_or_404(db, ProjectExpense, expense_id, detail="Project expense not found")

    @staticmethod
    def _filtered(
        db: Session,
        project_id: str,
        date_from: date | None,
        date_to: date | None,
        category: str | None,
        vendor: str | None,
        keyword: str | None,
    ):
        query = db.query(ProjectExpense).filter(ProjectExpense.project_id == coerce_uuid(project_id))
        if date_from:
            query = query.filter(ProjectExpense.date >= date_from)
        if date_to:
            query = query.filter(ProjectExpense.date <= date_to)
        if category and category.strip():
            query = query.filter(ProjectExpense.category == category.strip())
        if vendor and vendor.strip():
            query = query.filter(ProjectExpense.vendor.ilike(f"%{vendor.strip()}%"))
        if keyword and keyword.strip():
            like_term = f"%{keyword.strip()}%"
            query = query.filter(
                or_(
                    ProjectExpense.description.ilike(like_term),
                    ProjectExpense.vendor.ilike(like_term),
                    ProjectExpense.category.ilike(like_term),
                )
            )
        return query

    @staticmethod
    def list(
        db: Session,
        project_id: str,
        date_from: date | None = None,
        date_to: date | None = None,
        category: str | None = None,
        vendor: str | None = None,
        keyword: str | None = None,
        order_by: str = "date",
        order_dir: str = "desc",
        limit: int | None = None,
        offset: int = 0,
    ):
        Projects.get(db, project_id)
        query = ProjectExpenses._filtered(db, project_id, date_from, date_to, category, vendor, keyword)
        query = apply_ordering(
            query,
            order_by,
            order_dir,
            {"date": ProjectExpense.date, "amount": ProjectExpense.amount, "created_at": ProjectExpense.created_at},
        )
        return apply_pagination(query, limit, offset).all()

    @staticmethod
    def page(
        db: Session,
        project_id: str,
        date_from: date | None,
        date_to: date | None,
        category: str | None,
        vendor: str | None,
        keyword: str | None,
        order_by: str,
        order_dir: str,
        limit: int,
        offset: int,
    ) -> dict:
        """One page of expenses plus count and amount over the whole filtered set."""
        items = ProjectExpenses.list(
            db, project_id, date_from, date_to, category, vendor, keyword, order_by, order_dir, limit, offset
        )
        filtered = ProjectExpenses._filtered(db, project_id, date_from, date_to, category, vendor, keyword)
        count, total_amount = filtered.with_entities(
            func.count(ProjectExpense.id),
            func.coalesce(func.sum(ProjectExpense.amount), 0),
        ).one()
        return {
            "items": items,
            "count": count,
            "limit": limit,
            "offset": offset,
            "total_amount": to_money(total_amount),
        }

    @staticmethod
    def update(db: Session, expense_id: str, payload: ProjectExpenseUpdate):
        expense = ProjectExpenses.get(db, expense_id)
        _ensure_project_open(expense.project)
        data = payload.model_dump(exclude_unset=True)
        if "date" in data and data["date"] is None:
            raise HTTPException(status_code=400, detail="date is required")
        if "amount" in data and data["amount"] is None:
            raise HTTPException(status_code=400, detail="amount is required")
        for key, value in data.items():
            setattr(expense, key, value)
        db.commit()
        db.refresh(expense)
        return expense

    @staticmethod
    def delete(db: Session, expense_id: str):
        expense = ProjectExpenses.get(db, expense_id)
        _ensure_project_open(expense.project)
        db.delete(expense)
        db.commit()
        logger.info("project_expense_deleted expense_id=%s", expense_id)


projects = Projects()
project_tasks = ProjectTasks()
project_products = ProjectProducts()
project_expenses = ProjectExpenses()
