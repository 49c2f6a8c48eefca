"""Per-request identity taken from headers set by the upstream gateway.

The gateway authenticates the caller and forwards the display name and a
comma separated role list; this service trusts them as-is.
"""

from dataclasses import dataclass, field

from fastapi import Depends, HTTPException, Request

from app.config import settings

PROJECT_EDITOR_ROLES = ("admin", "manager", "project_manager")


@dataclass(frozen=True)
class RequestContext:
    actor_name: str
    roles: frozenset[str] = field(default_factory=frozenset)

    def has_any_role(self, *role_names: str) -> bool:
        return any(role.lower() in self.roles for role in role_names)


def _parse_roles(raw: str | None) -> frozenset[str]:
    if not raw:
        return frozenset()
    return frozenset(part.strip().lower() for part in raw.split(",") if part.strip())


def require_user_auth(request: Request) -> RequestContext:
    actor_name = (request.headers.get(settings.actor_name_header) or "").strip()
    if not actor_name:
        raise HTTPException(status_code=401, detail="Unauthorized")
    context = RequestContext(
        actor_name=actor_name,
        roles=_parse_roles(request.headers.get(settings.actor_roles_header)),
    )
    request.state.actor_name = context.actor_name
    return context


def require_role(*role_names: str):
    def _require_role(auth: RequestContext = Depends(require_user_auth)) -> RequestContext:
        if auth.has_any_role(*role_names):
            return auth
        raise HTTPException(status_code=403, detail="Forbidden")

    return _require_role


require_project_editor = require_role(*PROJECT_EDITOR_ROLES)
