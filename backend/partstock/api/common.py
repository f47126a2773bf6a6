"""
Shared response shapes for the API routers.

Every successful response is wrapped as {"success": true, "data": ..., "message": ...};
list endpoints put {"items", "page", "page_size", "total"} in `data`.
"""
from typing import Any, Optional, Type

from fastapi import Query
from pydantic import BaseModel


class Pagination:
    """Page/page_size query parameters turned into limit/offset."""

    def __init__(
        self,
        page: int = Query(1, ge=1),
        page_size: int = Query(15, ge=1, le=100),
    ):
        self.page = page
        self.page_size = page_size

    @property
    def limit(self) -> int:
        return self.page_size

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size


def success(data: Any = None, message: Optional[str] = None) -> dict:
    body = {"success": True, "data": data}
    if message:
        body["message"] = message
    return body


def serialize(schema: Type[BaseModel], obj) -> dict:
    return schema.model_validate(obj).model_dump(mode="json")


def paginated(schema: Type[BaseModel], rows, total: int, pagination: Pagination) -> dict:
    return success({
        "items": [serialize(schema, row) for row in rows],
        "page": pagination.page,
        "page_size": pagination.page_size,
        "total": total,
    })
