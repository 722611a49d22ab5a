"""访问控制守卫。

所有守卫只读，必须在任何写操作之前调用。
"""

from uuid import UUID

from sqlalchemy.orm import Session

from planhub_api.dependencies import Identity
from planhub_api.errors import forbidden
from planhub_api.services.roles import Authority, resolve_authority


def authority_for(db: Session, identity: Identity, project_id: UUID) -> Authority:
    """解析调用方在项目中的权限，不做拒绝判断。"""
    return resolve_authority(db, user_id=identity.user_id, is_admin=identity.is_admin, project_id=project_id)


def require_project_access(db: Session, identity: Identity, project_id: UUID) -> Authority:
    """校验项目读权限：全局管理员或项目成员。"""
    authority = authority_for(db, identity, project_id)
    if not authority.has_access:
        raise forbidden("当前用户不是该项目成员。", project_id=str(project_id))
    return authority


def require_project_management(db: Session, identity: Identity, project_id: UUID) -> Authority:
    """校验项目管理权限：仅全局管理员。"""
    authority = authority_for(db, identity, project_id)
    if not authority.is_admin:
        raise forbidden("仅管理员可执行该操作。", project_id=str(project_id))
    return authority


def require_global_admin(identity: Identity) -> None:
    """校验身份层管理员。"""
    if not identity.is_admin:
        raise forbidden("仅管理员可执行该操作。")
