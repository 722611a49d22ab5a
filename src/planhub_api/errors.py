"""业务错误码与统一异常构造。

服务层只抛出 HTTPException，detail 固定为 `{code, message, details}` 结构，
由 `planhub_api.exceptions` 统一包装为错误响应。
"""

from enum import StrEnum
from typing import Any

from fastapi import HTTPException, status


class ErrorKind(StrEnum):
    """机器可识别错误码。"""

    UNAUTHORIZED = "UNAUTHORIZED"  # 未携带或携带无效的访问令牌。
    USER_NOT_FOUND = "USER_NOT_FOUND"  # 身份有效但找不到用户资料。
    FORBIDDEN = "FORBIDDEN"  # 已认证但无权执行。
    VALIDATION_ERROR = "VALIDATION_ERROR"  # 请求参数不合法。
    INVALID_STATE = "INVALID_STATE"  # 文档当前状态不允许该流转。
    CONFLICT = "CONFLICT"  # 并发修改或唯一约束冲突。
    NOT_FOUND = "NOT_FOUND"  # 资源不存在。
    DATABASE_ERROR = "DATABASE_ERROR"  # 存储层异常。
    INTERNAL_ERROR = "INTERNAL_ERROR"  # 未预期异常。


# 错误码默认 HTTP 状态。
ERROR_STATUS: dict[ErrorKind, int] = {
    ErrorKind.UNAUTHORIZED: status.HTTP_401_UNAUTHORIZED,
    ErrorKind.USER_NOT_FOUND: status.HTTP_401_UNAUTHORIZED,
    ErrorKind.FORBIDDEN: status.HTTP_403_FORBIDDEN,
    ErrorKind.VALIDATION_ERROR: status.HTTP_400_BAD_REQUEST,
    ErrorKind.INVALID_STATE: status.HTTP_400_BAD_REQUEST,
    ErrorKind.CONFLICT: status.HTTP_409_CONFLICT,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.DATABASE_ERROR: status.HTTP_500_INTERNAL_SERVER_ERROR,
    ErrorKind.INTERNAL_ERROR: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def app_error(
    kind: ErrorKind,
    message: str,
    *,
    status_code: int | None = None,
    **details: Any,
) -> HTTPException:
    """构造携带统一错误结构的协议异常。"""
    return HTTPException(
        status_code=status_code or ERROR_STATUS[kind],
        detail={
            "code": kind.value,
            "message": message,
            "details": {"reason": kind.value.lower(), **details},
        },
    )


def unauthorized(message: str = "未登录或登录状态已失效。") -> HTTPException:
    return app_error(ErrorKind.UNAUTHORIZED, message)


def user_not_found(message: str = "当前身份没有对应的用户资料。", *, status_code: int | None = None, **details: Any) -> HTTPException:
    """身份缺失资料时为 401；成员操作中目标用户不存在时调用方传入 404。"""
    return app_error(ErrorKind.USER_NOT_FOUND, message, status_code=status_code, **details)


def forbidden(message: str = "无权限执行该操作。", **details: Any) -> HTTPException:
    return app_error(ErrorKind.FORBIDDEN, message, **details)


def not_found(message: str, **details: Any) -> HTTPException:
    return app_error(ErrorKind.NOT_FOUND, message, **details)


def validation_error(message: str, **details: Any) -> HTTPException:
    return app_error(ErrorKind.VALIDATION_ERROR, message, **details)


def invalid_state(message: str, **details: Any) -> HTTPException:
    return app_error(ErrorKind.INVALID_STATE, message, **details)


def conflict(message: str, **details: Any) -> HTTPException:
    return app_error(ErrorKind.CONFLICT, message, **details)


def database_error(message: str = "数据存储暂时不可用。", *, retryable: bool = False, **details: Any) -> HTTPException:
    return app_error(ErrorKind.DATABASE_ERROR, message, retryable=retryable, **details)


def error_code(exc: HTTPException) -> str | None:
    """读取异常中的业务错误码，便于测试与日志断言。"""
    if isinstance(exc.detail, dict):
        return exc.detail.get("code")
    return None
