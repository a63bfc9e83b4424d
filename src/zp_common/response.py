"""Unified API response wrapper.

All /api/v1 endpoints return this format:
{
    "code": 0,           // 0=success, non-0=error code
    "message": "success",
    "data": { ... },     // null on error
    "timestamp": "...",
    "request_id": "..."
}

The public listing proxy (/api/random-listing) keeps its own flat shape.
"""

import uuid
from datetime import datetime, timezone
from typing import Any

from fastapi import Request
from pydantic import BaseModel, Field


class ApiResponse(BaseModel):
    code: int = 0
    message: str = "success"
    data: Any = None
    timestamp: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    request_id: str = Field(default_factory=lambda: f"req_{uuid.uuid4().hex[:12]}")


def success_response(data: Any = None) -> ApiResponse:
    return ApiResponse(code=0, message="success", data=data)


def error_response(code: int, message: str) -> ApiResponse:
    return ApiResponse(code=code, message=message, data=None)


def respond(request: Request, data: BaseModel | dict[str, Any]) -> ApiResponse:
    """Wrap data and carry over the request_id set by RequestLogMiddleware."""
    payload = data.model_dump() if isinstance(data, BaseModel) else data
    resp = success_response(payload)
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp
