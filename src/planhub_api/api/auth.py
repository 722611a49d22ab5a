"""认证身份辅助接口。"""

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from planhub_api.db.session import get_db
from planhub_api.dependencies import Identity, get_current_identity
from planhub_api.schemas.common import ErrorResponse, SuccessResponse
from planhub_api.schemas.responses import AuthMeData
from planhub_api.services.users import describe_identity
from planhub_api.utils.response import success

router = APIRouter(prefix="/auth", tags=["auth"])


@router.get(
    "/me",
    summary="获取当前用户",
    description="返回当前用户资料、是否为全局管理员以及已加入的项目。",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[AuthMeData],
    responses={401: {"model": ErrorResponse}},
)
def me(
    request: Request,
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    return success(request, describe_identity(db, identity))
