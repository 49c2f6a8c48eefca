from typing import Any


def list_response(items: list, limit: int, offset: int) -> dict[str, Any]:
    return {"items": items, "count": len(items), "limit": limit, "offset": offset}


class ListResponseMixin:
    """Adds ``list_response`` to a service exposing ``list(db, ..., limit, offset)``."""

    @classmethod
    def list_response(cls, db, *args, **kwargs) -> dict[str, Any]:
        items = cls.list(db, *args, **kwargs)
        limit = kwargs.get("limit", args[-2] if len(args) >= 2 else None)
        offset = kwargs.get("offset", args[-1] if args else None)
        return list_response(items, limit, offset)
