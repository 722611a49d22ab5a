"""角色判定服务。

将「用户 + 项目」解析为三种权限之一：全局管理员、项目成员（附策划角色）、无权限。
判定只读，不修改任何数据。
"""

from dataclasses import dataclass
from enum import StrEnum
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from planhub_api.errors import not_found
from planhub_api.models.project import Project, ProjectMember


class AuthorityKind(StrEnum):
    """权限判定类别。"""

    GLOBAL_ADMIN = "global_admin"  # 身份层管理员，覆盖所有项目。
    PROJECT_MEMBER = "project_member"  # 项目成员，携带策划角色。
    NONE = "none"  # 与项目无关联。


@dataclass(frozen=True)
class Authority:
    """调用方在某个项目内的权限。"""

    kind: AuthorityKind
    user_id: UUID
    # 仅 PROJECT_MEMBER 时非空。
    role: str | None = None

    @property
    def is_admin(self) -> bool:
        return self.kind == AuthorityKind.GLOBAL_ADMIN

    @property
    def is_member(self) -> bool:
        return self.kind == AuthorityKind.PROJECT_MEMBER

    @property
    def has_access(self) -> bool:
        return self.kind != AuthorityKind.NONE

    def as_dict(self) -> dict:
        return {"kind": self.kind.value, "role": self.role}


def get_membership(db: Session, *, project_id: UUID, user_id: UUID) -> ProjectMember | None:
    """查询用户在项目中的成员关系。"""
    return (
        db.execute(
            select(ProjectMember)
            .where(ProjectMember.project_id == project_id)
            .where(ProjectMember.user_id == user_id)
        )
        .scalar_one_or_none()
    )


def get_project_or_404(db: Session, project_id: UUID) -> Project:
    project = db.get(Project, project_id)
    if project is None:
        raise not_found("项目不存在或已删除。", project_id=str(project_id))
    return project


def resolve_authority(db: Session, *, user_id: UUID, is_admin: bool, project_id: UUID) -> Authority:
    """解析调用方在项目内的权限。

    判定规则：
    1. 项目不存在时抛出 NOT_FOUND。
    2. 身份层管理员优先，无论是否为成员。
    3. 存在成员关系时返回成员权限与其策划角色。
    4. 其余情况为无权限。
    """
    get_project_or_404(db, project_id)
    if is_admin:
        return Authority(kind=AuthorityKind.GLOBAL_ADMIN, user_id=user_id)

    membership = get_membership(db, project_id=project_id, user_id=user_id)
    if membership is not None:
        return Authority(kind=AuthorityKind.PROJECT_MEMBER, user_id=user_id, role=membership.role)
    return Authority(kind=AuthorityKind.NONE, user_id=user_id)
