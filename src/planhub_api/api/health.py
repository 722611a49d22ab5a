"""健康检查接口。"""

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from planhub_api.core.config import get_settings
from planhub_api.db.session import get_db
from planhub_api.models.document import PlanningDocument
from planhub_api.schemas.common import ErrorResponse, SuccessResponse
from planhub_api.schemas.responses import HealthStatusData
from planhub_api.utils.response import success

router = APIRouter(prefix="/health", tags=["health"])


def _health_payload(health_status: str) -> dict[str, str]:
    settings = get_settings()
    return {"status": health_status, "service": settings.app_name, "environment": settings.app_env}


@router.get(
    "/live",
    summary="存活探针",
    description="策划协作服务进程存活检测，不访问数据库。",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[HealthStatusData],
    responses={500: {"model": ErrorResponse}},
)
def live(request: Request):
    return success(request, _health_payload("ok"))


@router.get(
    "/ready",
    summary="就绪探针",
    description="确认数据库可达且策划文档表已完成迁移。不可用时返回 DATABASE_ERROR。",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[HealthStatusData],
    responses={500: {"model": ErrorResponse}},
)
def ready(request: Request, db: Session = Depends(get_db)):
    """读取一行文档主键，表缺失或连接失败由统一异常处理返回。"""
    db.execute(select(PlanningDocument.id).limit(1)).first()
    return success(request, _health_payload("ready"))
