"""用户查询服务。"""

from typing import Any

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from planhub_api.dependencies import Identity
from planhub_api.models.project import Project, ProjectMember
from planhub_api.models.user import UserProfile
from planhub_api.services.access import require_global_admin


def profile_to_dict(profile: UserProfile) -> dict[str, Any]:
    return {
        "id": profile.id,
        "email": profile.email,
        "display_name": profile.display_name,
        "role": profile.role,
        "status": profile.status,
        "last_login_at": profile.last_login_at,
    }


def describe_identity(db: Session, identity: Identity) -> dict[str, Any]:
    """返回当前用户资料与已加入项目。"""
    profile = db.get(UserProfile, identity.user_id)
    rows = db.execute(
        select(ProjectMember, Project)
        .join(Project, Project.id == ProjectMember.project_id)
        .where(ProjectMember.user_id == identity.user_id)
        .order_by(Project.created_at.desc())
    ).all()
    return {
        "user": profile_to_dict(profile),
        "is_admin": identity.is_admin,
        "projects": [
            {"project_id": project.id, "name": project.name, "role": member.role}
            for member, project in rows
        ],
    }


def search_users(db: Session, identity: Identity, *, keyword: str | None = None, limit: int = 20) -> list[dict[str, Any]]:
    """按邮箱或展示名模糊检索用户，仅管理员可用。"""
    require_global_admin(identity)
    stmt = select(UserProfile).order_by(UserProfile.email.asc()).limit(limit)
    if keyword and keyword.strip():
        pattern = f"%{keyword.strip().lower()}%"
        stmt = stmt.where(
            or_(
                UserProfile.email.ilike(pattern),
                UserProfile.display_name.ilike(pattern),
            )
        )
    return [
        {
            "id": profile.id,
            "email": profile.email,
            "display_name": profile.display_name,
            "role": profile.role,
        }
        for profile in db.execute(stmt).scalars().all()
    ]
