"""
请求/响应日志中间件
记录所有HTTP请求和响应，包括耗时统计；卡号、CVV、确认码不会以明文写入日志
"""
import json
import time
from typing import Any

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from core.logging_config import get_logger, SENSITIVE_LOG_KEYS
from core.config import settings


logger = get_logger(__name__)


def _mask_card_number(value: Any) -> Any:
    if isinstance(value, str) and len(value) > 4:
        return "*" * (len(value) - 4) + value[-4:]
    return "***"


class LoggingMiddleware(BaseHTTPMiddleware):
    """
    日志记录中间件

    功能：
    1. 记录请求信息（方法、路径、参数、脱敏后的请求体）
    2. 记录响应信息（状态码、耗时）
    3. 记录未处理异常
    """

    # 跳过日志的路径
    SKIP_PATHS = {"/health", "/docs", "/redoc", "/openapi.json"}

    SENSITIVE_FIELDS = SENSITIVE_LOG_KEYS

    def __init__(self, app: ASGIApp):
        super().__init__(app)
        self.enable_body_log_default: bool = settings.LOG_REQUEST_BODY_ENABLE_BY_DEFAULT
        self.max_body_log_bytes: int = settings.LOG_REQUEST_BODY_MAX_BYTES

    async def dispatch(self, request: Request, call_next):
        if request.url.path in self.SKIP_PATHS:
            return await call_next(request)

        start_time = time.time()
        request_info = await self._get_request_info(request)
        logger.info("request_started", **request_info)

        try:
            response = await call_next(request)
        except Exception as exc:
            duration = time.time() - start_time
            logger.error(
                "request_failed",
                duration=duration,
                error=str(exc),
                error_type=type(exc).__name__,
                **request_info,
                exc_info=True
            )
            # 重新抛出异常，让异常处理器处理
            raise

        duration = time.time() - start_time
        self._log_response(response, duration, request_info)
        response.headers["X-Process-Time"] = f"{duration:.3f}"
        return response

    async def _get_request_info(self, request: Request) -> dict:
        info = {
            "http_method": request.method,
            "http_path": request.url.path,
            "query_params": self._sanitize_data(dict(request.query_params)),
        }

        # 按卡号查询时卡号出现在路径中
        if "/by-number/" in request.url.path:
            prefix, _, number = request.url.path.rpartition("/")
            info["http_path"] = f"{prefix}/{_mask_card_number(number)}"

        if request.method in ["POST", "PUT", "PATCH"] and self._should_log_body(request):
            body_snippet = await self._extract_and_sanitize_body(request)
            if body_snippet is not None:
                info["body"] = body_snippet

        user_agent = request.headers.get("User-Agent")
        if user_agent:
            info["user_agent"] = user_agent

        return info

    def _should_log_body(self, request: Request) -> bool:
        # X-Log-Body: true/false 可覆盖默认行为
        header = (request.headers.get("X-Log-Body") or "").lower()
        if header in {"true", "1", "yes"}:
            return True
        if header in {"false", "0", "no"}:
            return False
        return bool(self.enable_body_log_default and settings.DEBUG)

    async def _extract_and_sanitize_body(self, request: Request) -> Any:
        body = await request.body()
        if not body:
            return None

        snippet = body[: self.max_body_log_bytes].decode("utf-8", errors="ignore")
        if "application/json" not in request.headers.get("content-type", "").lower():
            return {"content_length": len(body)}
        try:
            parsed = json.loads(snippet)
        except ValueError:
            # 截断后的 JSON 无法解析，不记录原文以免泄露敏感字段
            return {"content_length": len(body), "truncated": True}
        return self._sanitize_data(parsed)

    def _sanitize_data(self, data: Any) -> Any:
        if isinstance(data, dict):
            sanitized = {}
            for key, value in data.items():
                lowered = str(key).lower()
                if lowered == "card_number":
                    sanitized[key] = _mask_card_number(value)
                elif lowered in self.SENSITIVE_FIELDS:
                    sanitized[key] = "***"
                else:
                    sanitized[key] = self._sanitize_data(value)
            return sanitized
        if isinstance(data, list):
            return [self._sanitize_data(v) for v in data]
        return data

    def _log_response(self, response: Response, duration: float, request_info: dict):
        status_code = response.status_code
        log_data = {
            "status_code": status_code,
            "duration": duration,
            **request_info
        }

        if status_code < 400:
            logger.info("request_completed", **log_data)
        elif status_code < 500:
            logger.warning("request_client_error", **log_data)
        else:
            logger.error("request_server_error", **log_data)
