"""项目成员管理接口。"""

from uuid import UUID

from fastapi import APIRouter, Depends, Path, Request, status
from sqlalchemy.orm import Session

from planhub_api.db.session import get_db
from planhub_api.dependencies import Identity, get_current_identity
from planhub_api.schemas.common import ErrorResponse, SuccessResponse
from planhub_api.schemas.member import ProjectMemberAddRequest, ProjectMemberRoleUpdateRequest
from planhub_api.schemas.responses import MemberData, MemberRemoveData
from planhub_api.services import membership as membership_service
from planhub_api.services import pop_ledger_warnings
from planhub_api.utils.response import success

router = APIRouter(prefix="/projects/{project_id}/members", tags=["members"])

_MANAGEMENT_ERRORS = {
    400: {"model": ErrorResponse},
    401: {"model": ErrorResponse},
    403: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
}


@router.get(
    "",
    summary="查询项目成员",
    description="项目成员与管理员可查看成员列表及其策划角色。",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[list[MemberData]],
    responses={401: {"model": ErrorResponse}, 403: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
def list_members(
    request: Request,
    project_id: UUID = Path(..., description="项目 ID。"),
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    return success(request, membership_service.list_members(db, identity, project_id))


@router.post(
    "",
    summary="添加项目成员",
    description="以指定策划角色添加成员，同一用户在项目内只能有一个角色。仅管理员。",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[MemberData],
    responses={**_MANAGEMENT_ERRORS, 409: {"model": ErrorResponse}},
)
def add_member(
    payload: ProjectMemberAddRequest,
    request: Request,
    project_id: UUID = Path(..., description="项目 ID。"),
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    data = membership_service.add_member(db, identity, project_id, user_id=payload.user_id, role=payload.role)
    return success(request, data, warnings=pop_ledger_warnings(db))


@router.patch(
    "/{user_id}",
    summary="变更成员角色",
    description="变更成员在项目内的策划角色。仅管理员。",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[MemberData],
    responses=_MANAGEMENT_ERRORS,
)
def update_member_role(
    payload: ProjectMemberRoleUpdateRequest,
    request: Request,
    project_id: UUID = Path(..., description="项目 ID。"),
    user_id: UUID = Path(..., description="成员用户 ID。"),
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    data = membership_service.update_member_role(db, identity, project_id, user_id=user_id, role=payload.role)
    return success(request, data, warnings=pop_ledger_warnings(db))


@router.delete(
    "/{user_id}",
    summary="移除项目成员",
    description="将成员移出项目，其已创建文档的作者身份保留。仅管理员。",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[MemberRemoveData],
    responses=_MANAGEMENT_ERRORS,
)
def remove_member(
    request: Request,
    project_id: UUID = Path(..., description="项目 ID。"),
    user_id: UUID = Path(..., description="成员用户 ID。"),
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    data = membership_service.remove_member(db, identity, project_id, user_id=user_id)
    return success(request, data, warnings=pop_ledger_warnings(db))
