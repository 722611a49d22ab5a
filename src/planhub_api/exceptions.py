"""应用异常处理注册。"""

import logging

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from planhub_api.core.config import get_settings
from planhub_api.errors import ErrorKind
from planhub_api.utils.response import DEFAULT_ERROR_MESSAGE, error_payload

logger = logging.getLogger("planhub_api.errors")


def _default_http_error_code(status_code: int) -> str:
    if status_code == status.HTTP_400_BAD_REQUEST:
        return ErrorKind.VALIDATION_ERROR
    if status_code == status.HTTP_401_UNAUTHORIZED:
        return ErrorKind.UNAUTHORIZED
    if status_code == status.HTTP_403_FORBIDDEN:
        return ErrorKind.FORBIDDEN
    if status_code == status.HTTP_404_NOT_FOUND:
        return ErrorKind.NOT_FOUND
    if status_code == status.HTTP_409_CONFLICT:
        return ErrorKind.CONFLICT
    if status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
        return ErrorKind.INTERNAL_ERROR
    return "HTTP_ERROR"


def _default_http_message(status_code: int) -> str:
    if status_code == status.HTTP_400_BAD_REQUEST:
        return "请求参数不合法。"
    if status_code == status.HTTP_401_UNAUTHORIZED:
        return "未登录或登录状态已失效。"
    if status_code == status.HTTP_403_FORBIDDEN:
        return "无权限访问该资源。"
    if status_code == status.HTTP_404_NOT_FOUND:
        return "请求资源不存在。"
    if status_code == status.HTTP_405_METHOD_NOT_ALLOWED:
        return "请求方法不被允许。"
    if status_code == status.HTTP_409_CONFLICT:
        return "请求与当前数据状态冲突。"
    return "请求处理失败。"


def _default_http_suggestion(status_code: int) -> str:
    if status_code == status.HTTP_400_BAD_REQUEST:
        return "请根据错误字段提示修正请求参数后重试。"
    if status_code == status.HTTP_401_UNAUTHORIZED:
        return "请重新登录并携带有效访问令牌。"
    if status_code == status.HTTP_403_FORBIDDEN:
        return "请确认当前账号是否为项目成员或管理员。"
    if status_code == status.HTTP_404_NOT_FOUND:
        return "请确认资源 ID 是否正确，或资源是否已被删除。"
    if status_code == status.HTTP_409_CONFLICT:
        return "请刷新页面获取最新数据后重试。"
    return "请稍后重试，若持续失败请联系管理员。"


def _parse_http_detail(detail: object, status_code: int) -> tuple[str, str, dict[str, object]]:
    code = _default_http_error_code(status_code)
    message = _default_http_message(status_code)
    details: dict[str, object] = {
        "status_code": status_code,
        "reason": code.lower(),
        "suggestion": _default_http_suggestion(status_code),
    }

    if isinstance(detail, dict):
        code = str(detail.get("code") or code)
        message = str(detail.get("message") or detail.get("detail") or message)
        raw_details = detail.get("details")
        if isinstance(raw_details, dict):
            details.update(raw_details)
        elif raw_details is not None:
            details["details"] = raw_details

        for key, value in detail.items():
            if key in {"code", "message", "details"}:
                continue
            details[key] = value
        return code, message, details

    if isinstance(detail, str) and detail.strip():
        # 框架内置异常（如 404 路由不存在）的英文 detail 仅保留在 details 中。
        details["detail"] = detail
        return code, message, details

    if detail is not None:
        details["detail"] = detail
    return code, message, details


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """将协议异常统一包装为标准错误结构。"""
    code, message, details = _parse_http_detail(exc.detail, exc.status_code)
    return JSONResponse(
        status_code=exc.status_code,
        content=error_payload(request, code=code, message=message, details=details),
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """统一处理请求参数校验错误，返回 400 VALIDATION_ERROR。"""
    normalized_errors = [
        {
            "field": ".".join(str(item) for item in err.get("loc", []) if item != "body"),
            "message": err.get("msg"),
            "type": err.get("type"),
        }
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=error_payload(
            request,
            code=ErrorKind.VALIDATION_ERROR,
            message="请求参数校验失败。",
            details={
                "status_code": status.HTTP_400_BAD_REQUEST,
                "reason": "validation_error",
                "suggestion": _default_http_suggestion(status.HTTP_400_BAD_REQUEST),
                "errors": normalized_errors,
            },
        ),
    )


async def database_exception_handler(request: Request, exc: SQLAlchemyError):
    """存储层异常统一返回 DATABASE_ERROR，超时与连接类错误标记为可重试。"""
    logger.exception(
        "database error request_id=%s path=%s",
        getattr(request.state, "request_id", "-"),
        request.url.path,
    )
    details: dict[str, object] = {
        "status_code": status.HTTP_500_INTERNAL_SERVER_ERROR,
        "reason": "database_error",
        "retryable": isinstance(exc, OperationalError),
        "suggestion": "请稍后重试，若持续失败请联系管理员并提供 request_id。",
    }
    if get_settings().expose_error_details:
        details["exception"] = exc.__class__.__name__
        details["error"] = str(exc.orig) if getattr(exc, "orig", None) is not None else str(exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_payload(
            request,
            code=ErrorKind.DATABASE_ERROR,
            message="数据存储暂时不可用。",
            details=details,
        ),
    )


async def unexpected_exception_handler(request: Request, exc: Exception):
    """处理未捕获异常，避免内部细节泄露。"""
    logger.exception(
        "unexpected error request_id=%s path=%s",
        getattr(request.state, "request_id", "-"),
        request.url.path,
    )
    details: dict[str, object] = {
        "status_code": status.HTTP_500_INTERNAL_SERVER_ERROR,
        "reason": "unexpected_exception",
        "suggestion": "请稍后重试，若持续失败请联系管理员并提供 request_id。",
    }
    if get_settings().expose_error_details:
        details["exception"] = exc.__class__.__name__
        details["error"] = str(exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_payload(
            request,
            code=ErrorKind.INTERNAL_ERROR,
            message=DEFAULT_ERROR_MESSAGE,
            details=details,
        ),
    )


def register_exception_handlers(app: FastAPI) -> None:
    """集中注册异常处理器。"""
    app.exception_handler(StarletteHTTPException)(http_exception_handler)
    app.exception_handler(HTTPException)(http_exception_handler)
    app.exception_handler(RequestValidationError)(validation_exception_handler)
    app.exception_handler(SQLAlchemyError)(database_exception_handler)
    app.exception_handler(Exception)(unexpected_exception_handler)
