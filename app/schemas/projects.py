from __future__ import annotations

import datetime as dt
from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from app.logic import task_calendar_logic
from app.models.projects import ProjectStatus, TaskStatus

MAX_EXPENSE_AMOUNT = Decimal("1000000000")


def _check_date_order(start_date: date | None, end_date: date | None) -> None:
    if start_date and end_date and end_date < start_date:
        raise ValueError("end_date must be on or after start_date")


class ProjectBase(BaseModel):
    model_config = ConfigDict(populate_by_name=True)
    code: str | None = Field(default=None, max_length=50)
    name: str = Field(min_length=1, max_length=200)
    customer_name: str | None = Field(default=None, max_length=200)
    customer_contact: str | None = Field(default=None, max_length=100)
    status: ProjectStatus = ProjectStatus.draft
    start_date: date | None = None
    end_date: date | None = None
    budget: Decimal | None = Field(default=None, ge=0)
    description: str | None = Field(default=None, max_length=2000)
    project_manager_name: str | None = Field(default=None, max_length=150)


class ProjectCreate(ProjectBase):
    @model_validator(mode="after")
    def _validate_dates(self) -> ProjectCreate:
        _check_date_order(self.start_date, self.end_date)
        return self


class ProjectUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=200)
    customer_name: str | None = Field(default=None, max_length=200)
    customer_contact: str | None = Field(default=None, max_length=100)
    status: ProjectStatus | None = None
    start_date: date | None = None
    end_date: date | None = None
    budget: Decimal | None = Field(default=None, ge=0)
    description: str | None = Field(default=None, max_length=2000)
    project_manager_name: str | None = Field(default=None, max_length=150)

    @model_validator(mode="after")
    def _validate_dates(self) -> ProjectUpdate:
        _check_date_order(self.start_date, self.end_date)
        return self


class ProjectRead(ProjectBase):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: UUID
    code: str
    created_by: str | None = None
    is_active: bool
    created_at: datetime
    updated_at: datetime


class ProjectOverview(BaseModel):
    total: int
    draft: int
    in_progress: int
    delivered: int
    total_budget: Decimal
    overdue: int


class TaskDayPayload(BaseModel):
    date: dt.date
    status: TaskStatus

    @field_validator("status", mode="before")
    @classmethod
    def _parse_status(cls, value):
        return task_calendar_logic.parse_status(value)


class TaskDayRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    date: dt.date
    status: TaskStatus

    @computed_field
    @property
    def label(self) -> str:
        return task_calendar_logic.status_label(self.status)


class TaskDaySet(BaseModel):
    """``status=None`` clears the day."""

    status: TaskStatus | None = None

    @field_validator("status", mode="before")
    @classmethod
    def _parse_status(cls, value):
        return task_calendar_logic.parse_status(value)


class TaskDayResult(BaseModel):
    task_id: UUID
    date: dt.date
    status: TaskStatus | None = None
    label: str | None = None
    removed: bool


class TaskItemBase(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    assignee: str | None = Field(default=None, max_length=150)
    start_date: date
    duration_days: int = Field(default=1, ge=1)
    depends_on_task_id: UUID | None = None


class TaskItemCreate(TaskItemBase):
    project_id: UUID
    days: list[TaskDayPayload] | None = None


class TaskItemUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=200)
    assignee: str | None = Field(default=None, max_length=150)
    start_date: date | None = None
    duration_days: int | None = Field(default=None, ge=1)
    depends_on_task_id: UUID | None = None
    days: list[TaskDayPayload] | None = None


class TaskItemRead(TaskItemBase):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    project_id: UUID
    days: list[TaskDayRead] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime

    @computed_field
    @property
    def overall_status(self) -> TaskStatus:
        return task_calendar_logic.overall_status(self)

    @computed_field
    @property
    def overall_label(self) -> str:
        return task_calendar_logic.status_label(self.overall_status)


class ProjectProductCreate(BaseModel):
    product_id: int = Field(ge=1)
    product_name: str = Field(min_length=1, max_length=200)
    uom: str = Field(default="pcs", min_length=1, max_length=50)
    quantity: Decimal = Field(gt=0, decimal_places=3)
    unit_price: Decimal = Field(ge=0, decimal_places=2)
    note: str | None = Field(default=None, max_length=500)


class ProjectProductUpdate(BaseModel):
    quantity: Decimal | None = Field(default=None, gt=0, decimal_places=3)
    unit_price: Decimal | None = Field(default=None, ge=0, decimal_places=2)
    note: str | None = Field(default=None, max_length=500)


class ProjectProductRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    project_id: UUID
    product_id: int
    product_name: str
    uom: str
    quantity: Decimal
    unit_price: Decimal
    total: Decimal
    note: str | None = None
    created_at: datetime
    updated_at: datetime


class ProjectProductList(BaseModel):
    project_id: UUID
    items: list[ProjectProductRead]
    subtotal: Decimal


class ProjectExpenseBase(BaseModel):
    date: dt.date
    category: str | None = Field(default=None, max_length=100)
    vendor: str | None = Field(default=None, max_length=300)
    description: str | None = Field(default=None, max_length=500)
    amount: Decimal = Field(ge=0, le=MAX_EXPENSE_AMOUNT, decimal_places=2)
    receipt_url: str | None = Field(default=None, max_length=300)


class ProjectExpenseCreate(ProjectExpenseBase):
    pass


class ProjectExpenseUpdate(BaseModel):
    date: dt.date | None = None
    category: str | None = Field(default=None, max_length=100)
    vendor: str | None = Field(default=None, max_length=300)
    description: str | None = Field(default=None, max_length=500)
    amount: Decimal | None = Field(default=None, ge=0, le=MAX_EXPENSE_AMOUNT, decimal_places=2)
    receipt_url: str | None = Field(default=None, max_length=300)


class ProjectExpenseRead(ProjectExpenseBase):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    project_id: UUID
    created_at: datetime
    updated_at: datetime


class ProjectExpenseList(BaseModel):
    items: list[ProjectExpenseRead]
    count: int
    limit: int
    offset: int
    total_amount: Decimal


class CostSummary(BaseModel):
    project_id: UUID
    budget: Decimal
    total_product_amount: Decimal
    total_other_expenses: Decimal
    actual_all_in: Decimal
    variance: Decimal
    profit_approx: Decimal


class ProjectReport(BaseModel):
    """Report payload shared by the UI and the PDF exporter (camelCase on the wire)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    project_id: UUID
    code: str | None = None
    name: str | None = None
    customer_name: str | None = None
    status: str | None = None
    start_date: date | None = None
    end_date: date | None = None
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
    issues: list[str] = Field(default_factory=list)
