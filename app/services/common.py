from __future__ import annotations

import uuid
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import TypeVar

from fastapi import HTTPException
from sqlalchemy.orm import Query, Session

E = TypeVar("E", bound=Enum)

CENT = Decimal("0.01")


def coerce_uuid(value) -> uuid.UUID | None:
    if value is None or isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError) as exc:
        raise HTTPException(status_code=400, detail=f"Invalid id: {value}") from exc


def get_or_404(db: Session, model, record_id, detail: str | None = None):
    record = db.get(model, coerce_uuid(record_id))
    if not record:
        raise HTTPException(status_code=404, detail=detail or f"{model.__name__} not found")
    return record


def validate_enum(value: str | None, enum_cls: type[E], label: str) -> E | None:
    if value is None:
        return None
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=f"Invalid {label}") from exc


def apply_ordering(query: Query, order_by: str, order_dir: str, allowed_columns: dict) -> Query:
    if order_by not in allowed_columns:
        raise HTTPException(
            status_code=400,
            detail=f"Invalid order_by. Allowed: {', '.join(sorted(allowed_columns))}",
        )
    column = allowed_columns[order_by]
    if order_dir == "desc":
        return query.order_by(column.desc())
    return query.order_by(column.asc())


def apply_pagination(query: Query, limit: int, offset: int) -> Query:
    return query.limit(limit).offset(offset)


def round_money(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)
