"""Unified API response envelope.

Every /api/v1 endpoint, and every error raised while serving one, returns:
{
    "code": 0,           // 0=success, otherwise an AppError code (1xxx, 9xxx)
    "message": "success",
    "data": { ... },     // null on error and on delete
    "timestamp": "...",
    "request_id": "..."  // same value as the X-Request-ID response header
}
"""

from typing import Any

from pydantic import BaseModel, Field

from src.uc_common.datetime_utils import utc_now
from src.uc_common.request_context import current_request_id


class ApiResponse(BaseModel):
    code: int = 0
    message: str = "success"
    data: Any = None
    timestamp: str = Field(default_factory=lambda: utc_now().isoformat())
    request_id: str = Field(default_factory=current_request_id)


def success_response(data: Any = None, message: str = "success") -> ApiResponse:
    return ApiResponse(code=0, message=message, data=data)


def error_response(code: int, message: str) -> ApiResponse:
    return ApiResponse(code=code, message=message, data=None)
