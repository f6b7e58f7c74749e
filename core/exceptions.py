"""
全局异常处理器：把领域异常映射为统一响应与 HTTP 状态码

领域失败 → 400；不存在 → 404；卡号冲突、并发冲突 → 409；请求体校验 → 422；
未预期的异常记录日志后返回 500。
"""
import traceback
import uuid
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette import status as http_status
from starlette.exceptions import HTTPException

from core.logging_config import get_logger
from core.response import error_response
from domain.common.exceptions import BusinessException
from shared.codes import BusinessCode
from shared.codes.payment_codes import PAYMENT_CODE_TO_HTTP_STATUS


logger = get_logger(__name__)


_BUSINESS_CODE_TO_HTTP_STATUS = {
    BusinessCode.NOT_FOUND: http_status.HTTP_404_NOT_FOUND,
    BusinessCode.CONFLICT: http_status.HTTP_409_CONFLICT,
    BusinessCode.SYSTEM_ERROR: http_status.HTTP_500_INTERNAL_SERVER_ERROR,
    BusinessCode.DATABASE_ERROR: http_status.HTTP_500_INTERNAL_SERVER_ERROR,
    BusinessCode.SERVICE_UNAVAILABLE: http_status.HTTP_503_SERVICE_UNAVAILABLE,
}

_HTTP_STATUS_TO_BUSINESS_CODE = {
    http_status.HTTP_404_NOT_FOUND: BusinessCode.NOT_FOUND,
    http_status.HTTP_405_METHOD_NOT_ALLOWED: BusinessCode.PARAM_ERROR,
    http_status.HTTP_409_CONFLICT: BusinessCode.CONFLICT,
    http_status.HTTP_503_SERVICE_UNAVAILABLE: BusinessCode.SERVICE_UNAVAILABLE,
}


def business_code_to_http_status(code: int) -> int:
    """根据业务码映射HTTP状态码（默认400）。"""
    if code in PAYMENT_CODE_TO_HTTP_STATUS:
        return PAYMENT_CODE_TO_HTTP_STATUS[code]
    return _BUSINESS_CODE_TO_HTTP_STATUS.get(code, http_status.HTTP_400_BAD_REQUEST)


def _json_error(
    request: Request,
    status_code: int,
    code: int,
    message: str,
    error_type: str,
    details: Optional[dict] = None,
    field: Optional[str] = None,
    headers: Optional[dict] = None,
) -> JSONResponse:
    request_id = getattr(request.state, "request_id", None) or str(uuid.uuid4())
    body = error_response(
        code=code,
        message=message,
        error_type=error_type,
        details=details,
        field=field,
        request_id=request_id,
    )
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(mode="json"),
        headers=headers,
    )


def register_exception_handlers(app: FastAPI):
    """注册全局异常处理器"""

    @app.exception_handler(BusinessException)
    async def business_exception_handler(request: Request, exc: BusinessException):
        status_code = business_code_to_http_status(exc.code)
        logger.info(
            "business_exception",
            error_type=exc.error_type,
            code=int(exc.code),
            status_code=status_code,
        )
        return _json_error(
            request, status_code, exc.code, exc.message, exc.error_type,
            details=exc.details, field=exc.field,
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        errors = jsonable_encoder(exc.errors())
        first = errors[0] if errors else {}
        # loc 首段为 body/query/path
        field = ".".join(str(part) for part in first.get("loc", [])[1:])
        return _json_error(
            request,
            http_status.HTTP_422_UNPROCESSABLE_ENTITY,
            BusinessCode.PARAM_VALIDATION_ERROR,
            f"Validation failed: {first.get('msg', 'unknown')}",
            "ValidationError",
            details={"errors": errors},
            field=field or None,
        )

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        return _json_error(
            request,
            exc.status_code,
            _HTTP_STATUS_TO_BUSINESS_CODE.get(exc.status_code, BusinessCode.SYSTEM_ERROR),
            str(exc.detail),
            "HTTPError",
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.error("unhandled_exception", error=str(exc), exc_info=True)
        # 开发环境返回堆栈便于排查
        details = {"exception": str(exc), "traceback": traceback.format_exc()} if app.debug else None
        return _json_error(
            request,
            http_status.HTTP_500_INTERNAL_SERVER_ERROR,
            BusinessCode.SYSTEM_ERROR,
            "Internal server error",
            "SystemError",
            details=details,
        )
