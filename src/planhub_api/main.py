"""FastAPI 应用入口点。"""

from fastapi import FastAPI

from planhub_api.api.router import api_router
from planhub_api.core.config import get_settings
from planhub_api.core.logging import setup_logging
from planhub_api.exceptions import register_exception_handlers
from planhub_api.middlewares import register_middlewares

settings = get_settings()


def create_app() -> FastAPI:
    """创建并配置 FastAPI 应用实例。"""
    setup_logging()
    app = FastAPI(
        title=settings.app_name,
        version="1.0.0",
        debug=settings.app_debug,
        description=(
            "协作策划平台接口：项目成员、访问控制与策划文档审批流转。\n\n"
            "所有业务接口统一返回：`{request_id, data, meta}`。\n"
            "错误统一返回：`{request_id, error: {code, message, details}}`。\n"
            "通过 Bearer 访问令牌进行认证。"
        ),
        openapi_tags=[
            {"name": "health", "description": "服务存活与就绪探针。"},
            {"name": "auth", "description": "认证身份辅助接口。"},
            {"name": "users", "description": "用户检索（管理员）。"},
            {"name": "projects", "description": "项目生命周期与进度查询。"},
            {"name": "members", "description": "项目成员与策划角色管理。"},
            {"name": "documents", "description": "策划文档、审批流转与历史查询。"},
            {"name": "activities", "description": "项目活动日志与协作统计。"},
        ],
    )

    register_middlewares(app)
    register_exception_handlers(app)
    app.include_router(api_router, prefix=settings.api_prefix)
    return app


app = create_app()
