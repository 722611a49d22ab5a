"""项目管理接口。"""

from uuid import UUID

from fastapi import APIRouter, Depends, Path, Request, status
from sqlalchemy.orm import Session

from planhub_api.db.session import get_db
from planhub_api.dependencies import Identity, get_current_identity
from planhub_api.schemas.common import ErrorResponse, SuccessResponse
from planhub_api.schemas.project import ProjectCreateRequest, ProjectUpdateRequest
from planhub_api.schemas.responses import ProjectData, ProjectDeleteData, ProjectDetailData
from planhub_api.services import pop_ledger_warnings
from planhub_api.services import projects as project_service
from planhub_api.utils.response import success

router = APIRouter(prefix="/projects", tags=["projects"])


@router.get(
    "",
    summary="查询项目列表",
    description="管理员返回全部项目，其余用户返回已加入的项目。",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[list[ProjectData]],
    responses={401: {"model": ErrorResponse}},
)
def list_projects(
    request: Request,
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    return success(request, project_service.list_projects_for_viewer(db, identity))


@router.post(
    "",
    summary="创建项目",
    description="仅管理员可创建项目，创建者以服务策划角色自动加入。",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[ProjectData],
    responses={400: {"model": ErrorResponse}, 401: {"model": ErrorResponse}, 403: {"model": ErrorResponse}},
)
def create_project(
    payload: ProjectCreateRequest,
    request: Request,
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    data = project_service.create_project(db, identity, name=payload.name, description=payload.description)
    return success(request, data, warnings=pop_ledger_warnings(db))


@router.get(
    "/{project_id}",
    summary="查询项目详情",
    description="返回项目信息、调用方权限以及九个策划步骤的进度。",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[ProjectDetailData],
    responses={401: {"model": ErrorResponse}, 403: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
def get_project(
    request: Request,
    project_id: UUID = Path(..., description="项目 ID。"),
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    return success(request, project_service.get_project(db, identity, project_id))


@router.patch(
    "/{project_id}",
    summary="更新项目",
    description="更新项目名称或说明，仅管理员。",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[ProjectData],
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
    },
)
def update_project(
    payload: ProjectUpdateRequest,
    request: Request,
    project_id: UUID = Path(..., description="项目 ID。"),
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    data = project_service.update_project(
        db,
        identity,
        project_id,
        name=payload.name,
        description=payload.description,
    )
    return success(request, data, warnings=pop_ledger_warnings(db))


@router.delete(
    "/{project_id}",
    summary="删除项目",
    description="删除项目并级联清理成员、文档与活动记录，仅管理员。",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[ProjectDeleteData],
    responses={401: {"model": ErrorResponse}, 403: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
def delete_project(
    request: Request,
    project_id: UUID = Path(..., description="项目 ID。"),
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    return success(request, project_service.delete_project(db, identity, project_id))
