"""项目成员管理服务。

同一用户在同一项目内至多一个策划角色；增删改仅全局管理员可执行，
每次变更同步写入一条项目活动。
"""

import logging
from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from planhub_api.dependencies import Identity
from planhub_api.errors import conflict, not_found, user_not_found, validation_error
from planhub_api.models.enums import ActivityType, ProjectRole, TargetType
from planhub_api.models.project import ProjectMember
from planhub_api.models.user import UserProfile
from planhub_api.services.access import require_project_access, require_project_management
from planhub_api.services.activity import record_activity
from planhub_api.services.roles import get_membership

logger = logging.getLogger("planhub_api.membership")

_ROLE_VALUES = {role.value for role in ProjectRole}


def _normalize_role(role: str) -> ProjectRole:
    if str(role) not in _ROLE_VALUES:
        raise validation_error("不支持的项目角色。", role=str(role), allowed=sorted(_ROLE_VALUES))
    return ProjectRole(str(role))


def member_to_dict(member: ProjectMember, profile: UserProfile | None) -> dict[str, Any]:
    return {
        "project_id": member.project_id,
        "user_id": member.user_id,
        "email": profile.email if profile else None,
        "display_name": profile.display_name if profile else None,
        "role": member.role,
        "added_by": member.added_by,
        "added_at": member.added_at,
    }


def _get_member_or_404(db: Session, *, project_id: UUID, user_id: UUID) -> ProjectMember:
    member = get_membership(db, project_id=project_id, user_id=user_id)
    if member is None:
        raise not_found("该用户不是项目成员。", project_id=str(project_id), user_id=str(user_id))
    return member


def list_members(db: Session, identity: Identity, project_id: UUID) -> list[dict[str, Any]]:
    """列出项目成员，项目成员与管理员可读。"""
    require_project_access(db, identity, project_id)
    rows = db.execute(
        select(ProjectMember, UserProfile)
        .outerjoin(UserProfile, UserProfile.id == ProjectMember.user_id)
        .where(ProjectMember.project_id == project_id)
        .order_by(ProjectMember.added_at.asc())
    ).all()
    return [member_to_dict(member, profile) for member, profile in rows]


def add_member(
    db: Session,
    identity: Identity,
    project_id: UUID,
    *,
    user_id: UUID,
    role: str,
) -> dict[str, Any]:
    """添加项目成员。"""
    require_project_management(db, identity, project_id)
    project_role = _normalize_role(role)

    profile = db.get(UserProfile, user_id)
    if profile is None:
        raise user_not_found("目标用户不存在。", status_code=404, user_id=str(user_id))
    if get_membership(db, project_id=project_id, user_id=user_id) is not None:
        raise conflict("该用户已是项目成员。", project_id=str(project_id), user_id=str(user_id))

    member = ProjectMember(project_id=project_id, user_id=user_id, role=project_role, added_by=identity.user_id)
    db.add(member)
    try:
        db.flush()
    except IntegrityError as exc:
        db.rollback()
        raise conflict("该用户已是项目成员。", project_id=str(project_id), user_id=str(user_id)) from exc

    record_activity(
        db,
        project_id=project_id,
        user_id=identity.user_id,
        activity_type=ActivityType.MEMBER_ADDED,
        target_type=TargetType.MEMBER,
        target_id=user_id,
        metadata={"member_email": profile.email, "role": project_role.value},
        description=f"{profile.display_name} 以 {project_role.value} 角色加入项目",
    )
    db.commit()
    db.refresh(member)
    logger.info("member added project_id=%s user_id=%s role=%s", project_id, user_id, project_role)
    return member_to_dict(member, profile)


def update_member_role(
    db: Session,
    identity: Identity,
    project_id: UUID,
    *,
    user_id: UUID,
    role: str,
) -> dict[str, Any]:
    """变更成员策划角色，角色未变化时不产生活动。"""
    require_project_management(db, identity, project_id)
    project_role = _normalize_role(role)
    member = _get_member_or_404(db, project_id=project_id, user_id=user_id)
    profile = db.get(UserProfile, user_id)

    previous_role = member.role
    if previous_role == project_role:
        return member_to_dict(member, profile)

    member.role = project_role
    db.flush()
    record_activity(
        db,
        project_id=project_id,
        user_id=identity.user_id,
        activity_type=ActivityType.MEMBER_ROLE_CHANGED,
        target_type=TargetType.MEMBER,
        target_id=user_id,
        metadata={"previous_role": previous_role, "new_role": project_role.value},
        description=f"成员角色由 {previous_role} 变更为 {project_role.value}",
    )
    db.commit()
    db.refresh(member)
    logger.info(
        "member role changed project_id=%s user_id=%s from=%s to=%s",
        project_id,
        user_id,
        previous_role,
        project_role,
    )
    return member_to_dict(member, profile)


def remove_member(db: Session, identity: Identity, project_id: UUID, *, user_id: UUID) -> dict[str, Any]:
    """移除项目成员，作者身份保留在其文档上。"""
    require_project_management(db, identity, project_id)
    member = _get_member_or_404(db, project_id=project_id, user_id=user_id)
    previous_role = member.role
    db.delete(member)
    db.flush()

    record_activity(
        db,
        project_id=project_id,
        user_id=identity.user_id,
        activity_type=ActivityType.MEMBER_REMOVED,
        target_type=TargetType.MEMBER,
        target_id=user_id,
        metadata={"role": previous_role},
        description="成员已移出项目",
    )
    db.commit()
    logger.info("member removed project_id=%s user_id=%s", project_id, user_id)
    return {"project_id": project_id, "user_id": user_id, "removed": True}
