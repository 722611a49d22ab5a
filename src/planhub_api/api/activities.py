"""项目活动接口。"""

from uuid import UUID

from fastapi import APIRouter, Depends, Path, Query, Request, status
from sqlalchemy.orm import Session

from planhub_api.core.config import get_settings
from planhub_api.db.session import get_db
from planhub_api.dependencies import Identity, get_current_identity
from planhub_api.models.enums import ActivityType
from planhub_api.models.user import UserProfile
from planhub_api.schemas.activity import ActivityRecordRequest
from planhub_api.schemas.common import ErrorResponse, SuccessResponse
from planhub_api.schemas.responses import ActivityData, ActivityListData
from planhub_api.services import (
    compute_collaboration_stats,
    compute_member_summaries,
    list_activities,
    record_activity,
    require_project_access,
)
from planhub_api.services.activity import activity_to_dict, ensure_client_recordable
from planhub_api.utils.response import success

router = APIRouter(prefix="/projects/{project_id}/activities", tags=["activities"])


@router.get(
    "",
    summary="查询项目活动",
    description="按时间倒序分页返回项目活动，可附带协作统计与成员活跃度汇总。",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[ActivityListData],
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
    },
)
def get_activities(
    request: Request,
    project_id: UUID = Path(..., description="项目 ID。"),
    limit: int | None = Query(default=None, ge=1, description="每页条数，默认 20。"),
    offset: int = Query(default=0, ge=0, description="起始偏移量。"),
    activity_type: ActivityType | None = Query(default=None, alias="type", description="按活动类型过滤。"),
    include_stats: bool = Query(default=False, alias="includeStats", description="是否返回协作统计。"),
    include_member_summary: bool = Query(
        default=False,
        alias="includeMemberSummary",
        description="是否返回成员活跃度汇总。",
    ),
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    """查询活动列表。"""
    settings = get_settings()
    require_project_access(db, identity, project_id)

    page_size = min(limit or settings.activity_page_size_default, settings.activity_page_size_max)
    items, total = list_activities(
        db,
        project_id=project_id,
        limit=page_size,
        offset=offset,
        activity_type=activity_type.value if activity_type else None,
    )
    data = {
        "items": items,
        "pagination": {
            "limit": page_size,
            "offset": offset,
            "total": total,
            "has_more": offset + len(items) < total,
        },
        "stats": compute_collaboration_stats(db, project_id=project_id) if include_stats else None,
        "member_summary": compute_member_summaries(db, project_id=project_id) if include_member_summary else None,
    }
    return success(request, data)


@router.post(
    "",
    summary="记录项目活动",
    description="由客户端补充记录 AI 对话、冲突分析等活动，流转类活动只由系统写入。写入失败返回 DATABASE_ERROR。",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[ActivityData],
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
)
def create_activity(
    payload: ActivityRecordRequest,
    request: Request,
    project_id: UUID = Path(..., description="项目 ID。"),
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    """记录一条活动，操作人固定为当前用户。"""
    require_project_access(db, identity, project_id)
    ensure_client_recordable(payload.activity_type)
    activity = record_activity(
        db,
        project_id=project_id,
        user_id=identity.user_id,
        activity_type=payload.activity_type,
        target_type=payload.target_type,
        target_id=payload.target_id,
        metadata=payload.metadata,
        description=payload.description,
        strict=True,
    )
    db.commit()
    db.refresh(activity)
    return success(request, activity_to_dict(activity, db.get(UserProfile, identity.user_id)))
