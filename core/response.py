"""
统一响应格式：{code, message, data, error}
"""
from datetime import datetime, timezone
from typing import Any, Generic, List, Optional, TypeVar

from pydantic import BaseModel, Field, field_serializer

from shared.codes import BusinessCode


T = TypeVar("T")


def format_utc(value: datetime) -> str:
    """UTC ISO8601，统一以 Z 结尾；naive 时间视为 UTC"""
    ts = value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


class ErrorDetail(BaseModel):
    type: str
    details: Optional[dict] = None
    field: Optional[str] = None
    request_id: Optional[str] = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @field_serializer("timestamp")
    def _serialize_timestamp(self, timestamp: datetime) -> str:
        return format_utc(timestamp)


class Response(BaseModel, Generic[T]):
    code: int
    message: str
    data: Optional[T] = None
    error: Optional[ErrorDetail] = None


class PaginatedData(BaseModel, Generic[T]):
    items: List[T]
    total: int
    page: int
    size: int
    pages: int


def success_response(data: Any = None, message: str = "Success") -> Response:
    return Response(code=BusinessCode.SUCCESS, message=message, data=data)


def error_response(
    code: int,
    message: str,
    error_type: str = "BusinessError",
    details: Optional[dict] = None,
    field: Optional[str] = None,
    request_id: Optional[str] = None,
) -> Response:
    """
    构造错误响应

    code 为业务码（见 shared.codes），HTTP 状态码由 core.exceptions 另行映射。
    """
    return Response(
        code=code,
        message=message,
        error=ErrorDetail(
            type=error_type,
            details=details,
            field=field,
            request_id=request_id,
        ),
    )


def paginated_response(items: list, total: int, page: int, size: int, message: str = "Success") -> Response:
    """分页响应；pages 按 size 向上取整"""
    pages = (total + size - 1) // size if size > 0 else 0
    return success_response(
        data=PaginatedData(items=items, total=total, page=page, size=size, pages=pages),
        message=message,
    )
