from dataclasses import asdict
from datetime import date

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from app.api.deps import get_db, require_project_editor
from app.schemas.common import ListResponse
from app.schemas.projects import (
    CostSummary,
    ProjectCreate,
    ProjectExpenseCreate,
    ProjectExpenseList,
    ProjectExpenseRead,
    ProjectExpenseUpdate,
    ProjectOverview,
    ProjectProductCreate,
    ProjectProductList,
    ProjectProductRead,
    ProjectProductUpdate,
    ProjectRead,
    ProjectReport,
    ProjectUpdate,
    TaskDayResult,
    TaskDaySet,
    TaskItemCreate,
    TaskItemRead,
    TaskItemUpdate,
)
from app.services import project_reports as project_reports_service
from app.services import projects as projects_service
from app.services.auth_dependencies import RequestContext

router = APIRouter()


@router.post(
    "/projects",
    response_model=ProjectRead,
    status_code=status.HTTP_201_CREATED,
    tags=["projects"],
)
def create_project(
    payload: ProjectCreate,
    auth: RequestContext = Depends(require_project_editor),
    db: Session = Depends(get_db),
):
    return projects_service.projects.create(db, payload, created_by=auth.actor_name)


@router.get("/projects", response_model=ListResponse[ProjectRead], tags=["projects"])
def list_projects(
    search: str | None = None,
    status: str | None = None,
    project_manager_name: str | None = None,
    is_active: bool | None = None,
    order_by: str = Query(default="created_at"),
    order_dir: str = Query(default="desc", pattern="^(asc|desc)$"),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
):
    return projects_service.projects.list_response(
        db,
        search,
        status,
        project_manager_name,
        is_active,
        order_by,
        order_dir,
        limit,
        offset,
    )


@router.get("/projects/overview", response_model=ProjectOverview, tags=["projects"])
def projects_overview(db: Session = Depends(get_db)):
    return projects_service.projects.overview(db)


@router.get("/projects/{project_id}", response_model=ProjectRead, tags=["projects"])
def get_project(project_id: str, db: Session = Depends(get_db)):
    return projects_service.projects.get(db, project_id)


@router.patch("/projects/{project_id}", response_model=ProjectRead, tags=["projects"])
def update_project(
    project_id: str,
    payload: ProjectUpdate,
    _auth: RequestContext = Depends(require_project_editor),
    db: Session = Depends(get_db),
):
    return projects_service.projects.update(db, project_id, payload)


@router.delete("/projects/{project_id}", status_code=status.HTTP_204_NO_CONTENT, tags=["projects"])
def delete_project(
    project_id: str,
    _auth: RequestContext = Depends(require_project_editor),
    db: Session = Depends(get_db),
):
    projects_service.projects.delete(db, project_id)


@router.get(
    "/projects/{project_id}/cost-summary",
    response_model=CostSummary,
    tags=["projects"],
)
def project_cost_summary(project_id: str, db: Session = Depends(get_db)):
    return project_reports_service.compute_cost_summary(db, project_id)


@router.get(
    "/projects/{project_id}/report",
    response_model=ProjectReport,
    tags=["project-reports"],
)
def project_report(project_id: str, db: Session = Depends(get_db)):
    report = project_reports_service.compile_report(db, project_id)
    return ProjectReport(**asdict(report))


@router.get("/projects/{project_id}/report/pdf", tags=["project-reports"])
def project_report_pdf(project_id: str, db: Session = Depends(get_db)):
    filename, pdf_bytes = project_reports_service.render_report_pdf(db, project_id)
    return Response(
        content=pdf_bytes,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get(
    "/projects/{project_id}/tasks",
    response_model=ListResponse[TaskItemRead],
    tags=["project-tasks"],
)
def list_project_tasks(
    project_id: str,
    order_by: str = Query(default="start_date"),
    order_dir: str = Query(default="asc", pattern="^(asc|desc)$"),
    limit: int = Query(default=200, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
):
    return projects_service.project_tasks.list_response(db, project_id, order_by, order_dir, limit, offset)


@router.post(
    "/project-tasks",
    response_model=TaskItemRead,
    status_code=status.HTTP_201_CREATED,
    tags=["project-tasks"],
)
def create_project_task(
    payload: TaskItemCreate,
    _auth: RequestContext = Depends(require_project_editor),
    db: Session = Depends(get_db),
):
    return projects_service.project_tasks.create(db, payload)


@router.get("/project-tasks/{task_id}", response_model=TaskItemRead, tags=["project-tasks"])
def get_project_task(task_id: str, db: Session = Depends(get_db)):
    return projects_service.project_tasks.get(db, task_id)


@router.patch("/project-tasks/{task_id}", response_model=TaskItemRead, tags=["project-tasks"])
def update_project_task(
    task_id: str,
    payload: TaskItemUpdate,
    _auth: RequestContext = Depends(require_project_editor),
    db: Session = Depends(get_db),
):
    return projects_service.project_tasks.update(db, task_id, payload)


@router.delete(
    "/project-tasks/{task_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    tags=["project-tasks"],
)
def delete_project_task(
    task_id: str,
    _auth: RequestContext = Depends(require_project_editor),
    db: Session = Depends(get_db),
):
    projects_service.project_tasks.delete(db, task_id)


@router.put(
    "/project-tasks/{task_id}/days/{day}",
    response_model=TaskDayResult,
    tags=["project-tasks"],
)
def set_project_task_day(
    task_id: str,
    day: date,
    payload: TaskDaySet,
    _auth: RequestContext = Depends(require_project_editor),
    db: Session = Depends(get_db),
):
    return projects_service.project_tasks.set_day(db, task_id, day, payload.status)


@router.post(
    "/project-tasks/{task_id}/days/{day}/advance",
    response_model=TaskDayResult,
    tags=["project-tasks"],
)
def advance_project_task_day(
    task_id: str,
    day: date,
    _auth: RequestContext = Depends(require_project_editor),
    db: Session = Depends(get_db),
):
    return project_reports_service.advance_day_status(db, task_id, day)


@router.get(
    "/projects/{project_id}/products",
    response_model=ProjectProductList,
    tags=["project-products"],
)
def list_project_products(project_id: str, db: Session = Depends(get_db)):
    return projects_service.project_products.list_with_subtotal(db, project_id)


@router.post(
    "/projects/{project_id}/products",
    response_model=ProjectProductRead,
    status_code=status.HTTP_201_CREATED,
    tags=["project-products"],
)
def create_project_product(
    project_id: str,
    payload: ProjectProductCreate,
    _auth: RequestContext = Depends(require_project_editor),
    db: Session = Depends(get_db),
):
    return projects_service.project_products.create(db, project_id, payload)


@router.patch(
    "/project-products/{item_id}",
    response_model=ProjectProductRead,
    tags=["project-products"],
)
def update_project_product(
    item_id: str,
    payload: ProjectProductUpdate,
    _auth: RequestContext = Depends(require_project_editor),
    db: Session = Depends(get_db),
):
    return projects_service.project_products.update(db, item_id, payload)


@router.delete(
    "/project-products/{item_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    tags=["project-products"],
)
def delete_project_product(
    item_id: str,
    _auth: RequestContext = Depends(require_project_editor),
    db: Session = Depends(get_db),
):
    projects_service.project_products.delete(db, item_id)


@router.get(
    "/projects/{project_id}/expenses",
    response_model=ProjectExpenseList,
    tags=["project-expenses"],
)
def list_project_expenses(
    project_id: str,
    date_from: date | None = Query(default=None, alias="from"),
    date_to: date | None = Query(default=None, alias="to"),
    category: str | None = None,
    vendor: str | None = None,
    keyword: str | None = None,
    order_by: str = Query(default="date"),
    order_dir: str = Query(default="desc", pattern="^(asc|desc)$"),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
):
    return projects_service.project_expenses.page(
        db,
        project_id,
        date_from,
        date_to,
        category,
        vendor,
        keyword,
        order_by,
        order_dir,
        limit,
        offset,
    )


@router.post(
    "/projects/{project_id}/expenses",
    response_model=ProjectExpenseRead,
    status_code=status.HTTP_201_CREATED,
    tags=["project-expenses"],
)
def create_project_expense(
    project_id: str,
    payload: ProjectExpenseCreate,
    _auth: RequestContext = Depends(require_project_editor),
    db: Session = Depends(get_db),
):
    return projects_service.project_expenses.create(db, project_id, payload)


@router.get(
    "/project-expenses/{expense_id}",
    response_model=ProjectExpenseRead,
    tags=["project-expenses"],
)
def get_project_expense(expense_id: str, db: Session = Depends(get_db)):
    return projects_service.project_expenses.get(db, expense_id)


@router.patch(
    "/project-expenses/{expense_id}",
    response_model=ProjectExpenseRead,
    tags=["project-expenses"],
)
def update_project_expense(
    expense_id: str,
    payload: ProjectExpenseUpdate,
    _auth: RequestContext = Depends(require_project_editor),
    db: Session = Depends(get_db),
):
    return projects_service.project_expenses.update(db, expense_id, payload)


@router.delete(
    "/project-expenses/{expense_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    tags=["project-expenses"],
)
def delete_project_expense(
    expense_id: str,
    _auth: RequestContext = Depends(require_project_editor),
    db: Session = Depends(get_db),
):
    projects_service.project_expenses.delete(db, expense_id)
