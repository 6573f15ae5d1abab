"""
Uniform response envelope.

Success:  {success, status_code, message, data, timestamp, pagination?}
Failure:  {success: false, status_code, message, errors?, timestamp}
"""

from __future__ import annotations

from typing import Any

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from c2c_portal.core.utils import utc_now


class Pagination(BaseModel):
    page: int
    limit: int
    total: int

    @property
    def pages(self) -> int:
        return (self.total + self.limit - 1) // self.limit if self.limit else 0


def envelope(
    data: Any = None,
    message: str = "Success",
    status_code: int = 200,
    pagination: Pagination | None = None,
) -> dict[str, Any]:
    body: dict[str, Any] = {
        "success": status_code < 400,
        "status_code": status_code,
        "message": message,
        "data": data,
        "timestamp": utc_now().isoformat(),
    }
    if pagination is not None:
        body["pagination"] = {**pagination.model_dump(), "pages": pagination.pages}
    return body


def send_success(
    data: Any = None,
    message: str = "Success",
    status_code: int = 200,
    pagination: Pagination | None = None,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder(envelope(data, message, status_code, pagination)),
    )


def send_created(data: Any = None, message: str = "Created successfully") -> JSONResponse:
    return send_success(data, message, status_code=201)


def send_error(
    message: str = "Error",
    status_code: int = 500,
    errors: list[dict[str, Any]] | None = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    body: dict[str, Any] = {
        "success": False,
        "status_code": status_code,
        "message": message,
        "timestamp": utc_now().isoformat(),
    }
    if errors:
        body["errors"] = errors
    return JSONResponse(status_code=status_code, content=jsonable_encoder(body), headers=headers)
