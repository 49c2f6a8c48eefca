"""Project report, cost summary and PDF export.

Collections are loaded one after another in the request's session. A failure
in any load propagates to the caller, so a report is either complete or not
produced at all.
"""

import logging
import os
from dataclasses import asdict
from datetime import UTC, date, datetime
from decimal import ROUND_HALF_UP, Decimal

from fastapi import HTTPException
from jinja2 import Environment, FileSystemLoader
from sqlalchemy.orm import Session

from app.config import settings
from app.logic import project_cost_logic, project_report_logic, task_calendar_logic
from app.models.projects import TaskStatus
from app.services.projects import project_expenses, project_products, project_tasks, projects

logger = logging.getLogger(__name__)

_TEMPLATES_DIR = os.path.join(os.path.dirname(__file__), "..", "templates")


def _today() -> date:
    return datetime.now(UTC).date()


def format_money(value, symbol: str | None = None) -> str:
    """Whole-unit amount with dot thousands separators, e.g. ``10.000.000 ₫``."""
    symbol = settings.report_currency_symbol if symbol is None else symbol
    amount = project_cost_logic.to_money(value).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    text = f"{abs(amount):,}".replace(",", ".")
    sign = "-" if amount < 0 else ""
    return f"{sign}{text} {symbol}".rstrip()


def compute_overall_status(task) -> TaskStatus:
    return task_calendar_logic.overall_status(task)


def advance_day_status(db: Session, task_id: str, day: date) -> dict:
    return project_tasks.advance_day(db, task_id, day)


def compute_cost_summary(db: Session, project_id: str) -> dict:
    project = projects.get(db, project_id)
    products = project_products.list(db, project_id)
    expenses = project_expenses.list(db, project_id)
    breakdown = project_cost_logic.compute_cost_summary(project, products, expenses)
    return {
        "project_id": project.id,
        "budget": project_cost_logic.to_money(project.budget),
        **asdict(breakdown),
    }


def compile_report(db: Session, project_id: str, today: date | None = None):
    project = projects.get(db, project_id)
    tasks = project_tasks.list(db, project_id)
    products = project_products.list(db, project_id)
    expenses = project_expenses.list(db, project_id)
    report = project_report_logic.compile_report(project, tasks, products, expenses, today or _today())
    logger.info(
        "project_report_compiled project_id=%s tasks=%s progress=%s issues=%s",
        project.id,
        report.task_count,
        report.progress_percent,
        len(report.issues),
    )
    return report


def render_report_html(report) -> str:
    env = Environment(loader=FileSystemLoader(os.path.abspath(_TEMPLATES_DIR)), autoescape=True)
    env.filters["money"] = format_money
    template = env.get_template("projects/report.html")
    return template.render(
        report=report,
        company_name=settings.report_company_name,
        generated_at=datetime.now(UTC),
        over_budget=report.variance < 0,
    )


def report_filename(report) -> str:
    code = (report.code or "").strip() or "project"
    safe_code = "".join(ch if ch.isalnum() or ch in "-_" else "_" for ch in code)
    return f"ProjectReport_{safe_code}.pdf"


def render_report_pdf(db: Session, project_id: str, today: date | None = None) -> tuple[str, bytes]:
    report = compile_report(db, project_id, today=today)
    report_html = render_report_html(report)
    try:
        from weasyprint import HTML
    except ImportError as exc:
        raise HTTPException(
            status_code=500,
            detail="WeasyPrint is not installed on the server. Install it to generate PDFs.",
        ) from exc
    pdf_bytes = HTML(string=report_html).write_pdf()
    filename = report_filename(report)
    logger.info("project_report_pdf_rendered project_id=%s bytes=%s", project_id, len(pdf_bytes))
    return filename, pdf_bytes
