import os
import sqlite3
import uuid
from datetime import date
from decimal import Decimal

import pytest
from dotenv import load_dotenv
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Must be set before app.config is imported.
os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite://")
load_dotenv(os.path.join(os.getcwd(), ".env"))

# Register UUID adapter for SQLite - store as string
sqlite3.register_adapter(uuid.UUID, lambda u: str(u))

# Monkey-patch SQLAlchemy's UUID type for SQLite compatibility
# This must happen before any models are imported
from sqlalchemy.sql import sqltypes  # noqa: E402

_original_uuid_bind_processor = sqltypes.Uuid.bind_processor
_original_uuid_result_processor = sqltypes.Uuid.result_processor


def _sqlite_uuid_bind_processor(self, dialect):
    if dialect.name == "sqlite":
        def process(value):
            if value is not None:
                if isinstance(value, uuid.UUID):
                    return str(value)
                return str(uuid.UUID(value)) if value else None
            return None
        return process
    return _original_uuid_bind_processor(self, dialect)


def _sqlite_uuid_result_processor(self, dialect, coltype):
    if dialect.name == "sqlite":
        def process(value):
            if value is not None:
                if isinstance(value, uuid.UUID):
                    return value
                return uuid.UUID(value) if value else None
            return None
        return process
    return _original_uuid_result_processor(self, dialect, coltype)


sqltypes.Uuid.bind_processor = _sqlite_uuid_bind_processor
sqltypes.Uuid.result_processor = _sqlite_uuid_result_processor

from app.db import Base, get_db  # noqa: E402
from app.models.projects import ProjectStatus  # noqa: E402
from app.schemas.projects import ProjectCreate, TaskItemCreate  # noqa: E402
from app.services import projects as projects_service  # noqa: E402

EDITOR_HEADERS = {"X-Actor-Name": "Nguyen Van A", "X-Actor-Roles": "project_manager"}
VIEWER_HEADERS = {"X-Actor-Name": "Tran Thi B", "X-Actor-Roles": "staff"}


@pytest.fixture(scope="session")
def engine():
    engine = create_engine(
        "sqlite+pysqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(engine, "connect")
    def _enable_foreign_keys(dbapi_connection, _connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    Base.metadata.create_all(engine)
    return engine


@pytest.fixture()
def db_session(engine):
    connection = engine.connect()
    transaction = connection.begin()
    SessionLocal = sessionmaker(bind=connection, autoflush=False, autocommit=False)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        transaction.rollback()
        connection.close()


@pytest.fixture()
def project(db_session):
    project = projects_service.projects.create(
        db_session,
        ProjectCreate(
            name="Chiếu sáng nhà xưởng Bình Dương",
            customer_name="Công ty ABC",
            status=ProjectStatus.in_progress,
            start_date=date(2025, 1, 1),
            end_date=date(2025, 3, 31),
            budget=Decimal("10000000"),
        ),
        created_by="Nguyen Van A",
    )
    return project


@pytest.fixture()
def task_factory(db_session, project):
    def _create(name="Lắp đặt đèn", start_date=date(2025, 1, 1), duration_days=5, days=None, project_id=None):
        return projects_service.project_tasks.create(
            db_session,
            TaskItemCreate(
                project_id=project_id or project.id,
                name=name,
                start_date=start_date,
                duration_days=duration_days,
                days=days,
            ),
        )

    return _create


@pytest.fixture()
def project_task(task_factory):
    return task_factory()


@pytest.fixture()
def client(db_session):
    from fastapi.testclient import TestClient

    from app.main import app

    def _override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = _override_get_db
    try:
        with TestClient(app) as test_client:
            yield test_client
    finally:
        app.dependency_overrides.pop(get_db, None)


@pytest.fixture()
def editor_headers():
    return dict(EDITOR_HEADERS)


@pytest.fixture()
def viewer_headers():
    return dict(VIEWER_HEADERS)
