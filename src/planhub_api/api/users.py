"""用户检索接口。"""

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from planhub_api.db.session import get_db
from planhub_api.dependencies import Identity, get_current_identity
from planhub_api.schemas.common import ErrorResponse, SuccessResponse
from planhub_api.schemas.responses import UserSearchItem
from planhub_api.services.users import search_users
from planhub_api.utils.response import success

router = APIRouter(prefix="/users", tags=["users"])


@router.get(
    "/search",
    summary="检索用户",
    description="按邮箱或展示名模糊检索用户，用于挑选项目成员。仅管理员可用。",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[list[UserSearchItem]],
    responses={401: {"model": ErrorResponse}, 403: {"model": ErrorResponse}},
)
def search(
    request: Request,
    q: str | None = Query(default=None, max_length=128, description="检索关键字。"),
    limit: int = Query(default=20, ge=1, le=100, description="最大返回条数。"),
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    """检索用户。"""
    return success(request, search_users(db, identity, keyword=q, limit=limit))
