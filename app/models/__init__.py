from app.models.projects import (  # noqa: F401
    Project,
    ProjectExpense,
    ProjectProduct,
    ProjectStatus,
    TaskDay,
    TaskItem,
    TaskStatus,
)
