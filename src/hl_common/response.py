"""Unified API response envelope.

Every ledger endpoint, success or error, returns:
{
    "code": 0,           // 0=success, otherwise an AppError code
    "message": "success",
    "data": { ... },     // null on error, except the 2004 adjustment preview
    "timestamp": "...",
    "request_id": "..."  // same id the request log line carries
}
"""

import uuid
from typing import Any

from pydantic import BaseModel, Field

from src.hl_common.datetime_utils import utc_now


def new_request_id() -> str:
    return f"req_{uuid.uuid4().hex[:12]}"


class ApiResponse(BaseModel):
    code: int = 0
    message: str = "success"
    data: Any = None
    timestamp: str = Field(default_factory=lambda: utc_now().isoformat())
    request_id: str = Field(default_factory=new_request_id)


def _envelope(code: int, message: str, data: Any, request_id: str | None) -> ApiResponse:
    if request_id is None:
        return ApiResponse(code=code, message=message, data=data)
    return ApiResponse(code=code, message=message, data=data, request_id=request_id)


def success_response(data: Any = None, request_id: str | None = None) -> ApiResponse:
    return _envelope(0, "success", data, request_id)


def error_response(
    code: int, message: str, data: Any = None, request_id: str | None = None
) -> ApiResponse:
    return _envelope(code, message, data, request_id)
