"""项目活动日志服务。

活动记录只追加写入。业务流转中的记录失败不会回滚主操作：
失败被写入 warning 日志并累积到会话的 ledger_warnings，由路由层放入响应 meta。
"""

import logging
from typing import Any
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session

from planhub_api.errors import database_error, validation_error
from planhub_api.models.activity import ProjectActivity
from planhub_api.models.document import PlanningDocument
from planhub_api.models.enums import ActivityType, DocumentStatus
from planhub_api.models.project import ProjectMember
from planhub_api.models.user import UserProfile

logger = logging.getLogger("planhub_api.activity")

# Session.info 中累积活动写入告警的键。
LEDGER_WARNINGS_KEY = "ledger_warnings"

# 允许客户端直接记录的活动类型；项目、成员与文档流转类活动只由对应操作写入。
CLIENT_RECORDABLE_TYPES: frozenset[str] = frozenset(
    {
        ActivityType.AI_CONVERSATION_STARTED,
        ActivityType.CONFLICT_ANALYSIS_COMPLETED,
    }
)

# 成员汇总中需要计数的活动类型与对应字段。
_SUMMARY_FIELDS: dict[str, str] = {
    ActivityType.DOCUMENT_CREATED: "documents_created",
    ActivityType.DOCUMENT_UPDATED: "documents_updated",
    ActivityType.DOCUMENT_APPROVED: "documents_approved",
    ActivityType.AI_CONVERSATION_STARTED: "ai_conversations",
}


def record_activity(
    db: Session,
    *,
    project_id: UUID,
    user_id: UUID | None,
    activity_type: str,
    target_type: str | None = None,
    target_id: UUID | None = None,
    metadata: dict[str, Any] | None = None,
    description: str | None = None,
    strict: bool = False,
) -> ProjectActivity | None:
    """在保存点内追加一条活动记录。

    strict=False 时写入失败只记录告警并返回 None；strict=True 时抛出 DATABASE_ERROR。
    """
    activity = ProjectActivity(
        project_id=project_id,
        user_id=user_id,
        activity_type=str(activity_type),
        target_type=str(target_type) if target_type else None,
        target_id=target_id,
        details=dict(metadata or {}),
        description=description,
    )
    try:
        with db.begin_nested():
            db.add(activity)
    except SQLAlchemyError as exc:
        if strict:
            logger.exception("activity record failed project_id=%s type=%s", project_id, activity_type)
            raise database_error(
                "活动记录写入失败。",
                retryable=isinstance(exc, OperationalError),
            ) from exc
        logger.warning(
            "activity record skipped project_id=%s type=%s error=%s",
            project_id,
            activity_type,
            exc.__class__.__name__,
        )
        db.info.setdefault(LEDGER_WARNINGS_KEY, []).append(
            {
                "code": "ACTIVITY_NOT_RECORDED",
                "activity_type": str(activity_type),
                "message": "操作已完成，但活动记录写入失败。",
            }
        )
        return None
    return activity


def ensure_client_recordable(activity_type: str) -> None:
    if activity_type not in CLIENT_RECORDABLE_TYPES:
        raise validation_error(
            "该活动类型只能由系统记录。",
            field="activity_type",
            allowed=sorted(CLIENT_RECORDABLE_TYPES),
        )


def pop_ledger_warnings(db: Session) -> list[dict[str, Any]]:
    """取出并清空当前会话累积的活动写入告警。"""
    return db.info.pop(LEDGER_WARNINGS_KEY, [])


def _profiles_by_id(db: Session, user_ids: set[UUID]) -> dict[UUID, UserProfile]:
    if not user_ids:
        return {}
    profiles = db.execute(select(UserProfile).where(UserProfile.id.in_(user_ids))).scalars().all()
    return {profile.id: profile for profile in profiles}


def activity_to_dict(activity: ProjectActivity, profile: UserProfile | None = None) -> dict[str, Any]:
    return {
        "id": activity.id,
        "project_id": activity.project_id,
        "user_id": activity.user_id,
        "user_email": profile.email if profile else None,
        "user_display_name": profile.display_name if profile else None,
        "activity_type": activity.activity_type,
        "target_type": activity.target_type,
        "target_id": activity.target_id,
        "metadata": activity.details or {},
        "description": activity.description,
        "created_at": activity.created_at,
    }


def list_activities(
    db: Session,
    *,
    project_id: UUID,
    limit: int,
    offset: int = 0,
    activity_type: str | None = None,
) -> tuple[list[dict[str, Any]], int]:
    """按时间倒序分页查询活动，返回 (记录, 总数)。"""
    stmt = select(ProjectActivity).where(ProjectActivity.project_id == project_id)
    count_stmt = select(func.count()).select_from(ProjectActivity).where(ProjectActivity.project_id == project_id)
    if activity_type:
        stmt = stmt.where(ProjectActivity.activity_type == activity_type)
        count_stmt = count_stmt.where(ProjectActivity.activity_type == activity_type)

    total = int(db.execute(count_stmt).scalar_one())
    activities = (
        db.execute(
            stmt.order_by(ProjectActivity.created_at.desc(), ProjectActivity.id.desc()).offset(offset).limit(limit)
        )
        .scalars()
        .all()
    )
    profiles = _profiles_by_id(db, {item.user_id for item in activities if item.user_id})
    return [activity_to_dict(item, profiles.get(item.user_id)) for item in activities], total


def compute_collaboration_stats(db: Session, *, project_id: UUID) -> dict[str, Any]:
    """按当前数据实时计算项目协作统计，结果只依赖存储状态。"""
    status_rows = db.execute(
        select(PlanningDocument.status, func.count())
        .where(PlanningDocument.project_id == project_id)
        .group_by(PlanningDocument.status)
    ).all()
    by_status = {status: int(count) for status, count in status_rows}

    total_members = db.execute(
        select(func.count()).select_from(ProjectMember).where(ProjectMember.project_id == project_id)
    ).scalar_one()
    total_activities, last_activity_at = db.execute(
        select(func.count(), func.max(ProjectActivity.created_at)).where(ProjectActivity.project_id == project_id)
    ).one()

    return {
        "project_id": project_id,
        "total_documents": sum(by_status.values()),
        "official_documents": by_status.get(DocumentStatus.OFFICIAL, 0),
        "pending_documents": by_status.get(DocumentStatus.PENDING_APPROVAL, 0),
        "private_documents": by_status.get(DocumentStatus.PRIVATE, 0),
        "total_members": int(total_members),
        "total_activities": int(total_activities),
        "last_activity_at": last_activity_at,
    }


def compute_member_summaries(db: Session, *, project_id: UUID) -> list[dict[str, Any]]:
    """按成员汇总活动次数，未产生活动的成员计数为 0。"""
    members = (
        db.execute(
            select(ProjectMember)
            .where(ProjectMember.project_id == project_id)
            .order_by(ProjectMember.added_at.asc())
        )
        .scalars()
        .all()
    )
    rows = db.execute(
        select(
            ProjectActivity.user_id,
            ProjectActivity.activity_type,
            func.count(),
            func.max(ProjectActivity.created_at),
        )
        .where(ProjectActivity.project_id == project_id)
        .where(ProjectActivity.user_id.is_not(None))
        .group_by(ProjectActivity.user_id, ProjectActivity.activity_type)
    ).all()

    counters: dict[UUID, dict[str, Any]] = {}
    for user_id, activity_type, count, last_at in rows:
        entry = counters.setdefault(user_id, {field: 0 for field in _SUMMARY_FIELDS.values()} | {"last_activity_at": None})
        field = _SUMMARY_FIELDS.get(activity_type)
        if field:
            entry[field] += int(count)
        if last_at is not None and (entry["last_activity_at"] is None or last_at > entry["last_activity_at"]):
            entry["last_activity_at"] = last_at

    profiles = _profiles_by_id(db, {member.user_id for member in members})
    summaries = []
    for member in members:
        entry = counters.get(member.user_id, {})
        profile = profiles.get(member.user_id)
        summaries.append(
            {
                "user_id": member.user_id,
                "email": profile.email if profile else None,
                "display_name": profile.display_name if profile else None,
                "role": member.role,
                "documents_created": entry.get("documents_created", 0),
                "documents_updated": entry.get("documents_updated", 0),
                "documents_approved": entry.get("documents_approved", 0),
                "ai_conversations": entry.get("ai_conversations", 0),
                "last_activity_at": entry.get("last_activity_at"),
            }
        )
    return summaries
