"""文档可见性过滤。

规则：
1. official 文档对同项目成员与全局管理员可见。
2. private 与 pending_approval 文档仅作者与全局管理员可见。
无权限（NONE）的调用方看不到任何文档。
"""

from collections.abc import Iterable
from uuid import UUID

from sqlalchemy import ColumnElement, and_, false, or_, true

from planhub_api.models.document import PlanningDocument
from planhub_api.models.enums import DocumentStatus
from planhub_api.services.roles import Authority


def can_view(*, authority: Authority, status: str, created_by: UUID) -> bool:
    """纯判定函数，便于穷举测试。"""
    if authority.is_admin:
        return True
    if not authority.is_member:
        return False
    if status == DocumentStatus.OFFICIAL:
        return True
    return created_by == authority.user_id


def can_view_document(authority: Authority, document: PlanningDocument) -> bool:
    return can_view(authority=authority, status=document.status, created_by=document.created_by)


def filter_visible_documents(authority: Authority, documents: Iterable[PlanningDocument]) -> list[PlanningDocument]:
    """保留调用方可见的文档，保持原有顺序。"""
    return [document for document in documents if can_view_document(authority, document)]


def visible_documents_clause(authority: Authority) -> ColumnElement[bool]:
    """生成与 can_view 等价的查询条件，供列表查询下推到数据库。"""
    if authority.is_admin:
        return true()
    if not authority.is_member:
        return false()
    return or_(
        PlanningDocument.status == DocumentStatus.OFFICIAL,
        and_(
            PlanningDocument.status != DocumentStatus.OFFICIAL,
            PlanningDocument.created_by == authority.user_id,
        ),
    )
