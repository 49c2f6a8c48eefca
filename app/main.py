from fastapi import Depends, FastAPI
from starlette.responses import Response

from app.api.deps import require_user_auth
from app.api.projects import router as projects_router
from app.errors import register_error_handlers
from app.logging import configure_logging

app = FastAPI(title="Sao Kim Projects API")
configure_logging()
register_error_handlers(app)

app.include_router(projects_router, prefix="/api", dependencies=[Depends(require_user_auth)])


@app.get("/health")
def health_check():
    return {"status": "ok"}


@app.head("/health")
def head_health():
    return Response(status_code=200)
