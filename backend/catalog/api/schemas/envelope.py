"""Response envelopes shared by every endpoint."""

from datetime import datetime, timezone
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")


def _now() -> datetime:
    return datetime.now(timezone.utc)


class ApiResponse(BaseModel, Generic[T]):
    """Successful read or write: ``{success, data, message?, timestamp}``."""

    success: bool = True
    data: T | None = None
    message: str | None = None
    timestamp: datetime = Field(default_factory=_now)


class ErrorBody(BaseModel):
    code: str
    message: str
    details: list[dict[str, Any]] | None = None
    stack: str | None = None


class ErrorResponse(BaseModel):
    success: bool = False
    error: ErrorBody
    timestamp: str
    path: str
    request_id: str | None = None
