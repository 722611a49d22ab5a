"""策划文档审批流转服务。

状态机：
    private           --提交（仅作者）-->      pending_approval
    pending_approval  --通过（仅管理员）-->    official
    pending_approval  --驳回（仅管理员）-->    private
    official / pending_approval --作者或管理员修改--> private

每次流转在单个事务内完成，写入使用带状态与修订号条件的 UPDATE，
影响行数不为 1 时说明读取后已被并发修改，返回 CONFLICT。
同一项目同一步骤至多一份 official 文档，由部分唯一索引兜底。
"""

from datetime import datetime, timezone
import logging
from typing import Any
from uuid import UUID

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from planhub_api.dependencies import Identity
from planhub_api.errors import conflict, forbidden, invalid_state, not_found, validation_error
from planhub_api.models.document import DocumentApprovalHistory, DocumentVersion, PlanningDocument
from planhub_api.models.enums import ActivityType, ApprovalAction, DocumentStatus, TargetType
from planhub_api.models.project import Project
from planhub_api.models.user import UserProfile
from planhub_api.services.access import (
    authority_for,
    require_global_admin,
    require_project_access,
    require_project_management,
)
from planhub_api.services.activity import record_activity
from planhub_api.services.roles import Authority
from planhub_api.services.steps import WORKFLOW_STEP_COUNT, is_valid_step, step_name
from planhub_api.services.visibility import can_view_document, filter_visible_documents, visible_documents_clause

logger = logging.getLogger("planhub_api.workflow")

TITLE_MAX_LENGTH = 255
_STATUS_VALUES = {item.value for item in DocumentStatus}


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def document_to_dict(document: PlanningDocument) -> dict[str, Any]:
    return {
        "id": document.id,
        "project_id": document.project_id,
        "workflow_step": document.workflow_step,
        "step_name": step_name(document.workflow_step),
        "title": document.title,
        "content": document.content,
        "status": document.status,
        "version": document.version,
        "created_by": document.created_by,
        "approved_by": document.approved_by,
        "created_at": document.created_at,
        "updated_at": document.updated_at,
        "approved_at": document.approved_at,
    }


def _validate_step(step: object) -> int:
    if not is_valid_step(step):
        raise validation_error(
            f"策划步骤必须为 1 到 {WORKFLOW_STEP_COUNT} 之间的整数。",
            field="workflow_step",
            value=step if isinstance(step, (int, str)) else None,
        )
    return step  # type: ignore[return-value]


def _validate_title(title: object) -> str:
    if not isinstance(title, str) or not title.strip():
        raise validation_error("文档标题不能为空。", field="title")
    if len(title) > TITLE_MAX_LENGTH:
        raise validation_error(f"文档标题不能超过 {TITLE_MAX_LENGTH} 个字符。", field="title")
    return title


def _validate_content(content: object) -> str:
    if not isinstance(content, str) or not content.strip():
        raise validation_error("文档正文不能为空。", field="content")
    return content


def _get_document_or_404(db: Session, document_id: UUID) -> PlanningDocument:
    document = db.get(PlanningDocument, document_id)
    if document is None:
        raise not_found("文档不存在或已删除。", document_id=str(document_id))
    return document


def _commit(db: Session, document_id: UUID) -> None:
    """提交事务，唯一约束冲突统一转换为 CONFLICT。"""
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        logger.info("document transition conflict document_id=%s", document_id)
        raise conflict("文档已被并发修改，请刷新后重试。", document_id=str(document_id)) from exc


def _guarded_update(db: Session, document: PlanningDocument, **values: Any) -> None:
    """按读取时的状态与修订号做条件更新。"""
    document_id = document.id
    stmt = (
        update(PlanningDocument)
        .where(PlanningDocument.id == document_id)
        .where(PlanningDocument.status == document.status)
        .where(PlanningDocument.version == document.version)
        .values(updated_at=_utc_now(), **values)
        .execution_options(synchronize_session=False)
    )
    try:
        result = db.execute(stmt)
    except IntegrityError as exc:
        db.rollback()
        raise conflict("同一步骤已存在生效文档，请刷新后重试。", document_id=str(document_id)) from exc
    if result.rowcount != 1:
        db.rollback()
        logger.info("document stale write rejected document_id=%s", document_id)
        raise conflict("文档已被并发修改，请刷新后重试。", document_id=str(document_id))
    db.refresh(document)


def _record_history(
    db: Session,
    document: PlanningDocument,
    *,
    action: ApprovalAction,
    previous_status: str,
    actor_user_id: UUID,
    reason: str | None = None,
) -> None:
    db.add(
        DocumentApprovalHistory(
            document_id=document.id,
            action=action,
            previous_status=previous_status,
            new_status=document.status,
            reason=reason,
            actor_user_id=actor_user_id,
        )
    )


def _ensure_author_or_admin(authority: Authority, document: PlanningDocument) -> None:
    """作者（仍为项目成员）或全局管理员。"""
    if authority.is_admin:
        return
    if authority.is_member and document.created_by == authority.user_id:
        return
    raise forbidden("仅作者或管理员可修改该文档。", document_id=str(document.id))


def _document_event_metadata(document: PlanningDocument, **extra: Any) -> dict[str, Any]:
    return {
        "document_title": document.title,
        "workflow_step": document.workflow_step,
        "step_name": step_name(document.workflow_step),
        **extra,
    }


def create_document(
    db: Session,
    identity: Identity,
    project_id: UUID,
    *,
    workflow_step: int,
    title: str,
    content: str,
) -> dict[str, Any]:
    """创建 private 草稿，项目成员与管理员可执行。"""
    require_project_access(db, identity, project_id)
    step = _validate_step(workflow_step)
    title = _validate_title(title)
    content = _validate_content(content)

    document = PlanningDocument(
        project_id=project_id,
        workflow_step=step,
        title=title,
        content=content,
        status=DocumentStatus.PRIVATE,
        version=1,
        created_by=identity.user_id,
    )
    db.add(document)
    db.flush()

    record_activity(
        db,
        project_id=project_id,
        user_id=identity.user_id,
        activity_type=ActivityType.DOCUMENT_CREATED,
        target_type=TargetType.DOCUMENT,
        target_id=document.id,
        metadata=_document_event_metadata(document),
        description=f"创建文档「{document.title}」",
    )
    _commit(db, document.id)
    db.refresh(document)
    logger.info("document created document_id=%s project_id=%s step=%s", document.id, project_id, step)
    return document_to_dict(document)


def get_document(db: Session, identity: Identity, document_id: UUID) -> dict[str, Any]:
    """读取单个文档，不可见时返回 FORBIDDEN。"""
    document, _ = _load_visible_document(db, identity, document_id)
    return document_to_dict(document)


def _load_visible_document(db: Session, identity: Identity, document_id: UUID) -> tuple[PlanningDocument, Authority]:
    document = _get_document_or_404(db, document_id)
    authority = authority_for(db, identity, document.project_id)
    if not can_view_document(authority, document):
        raise forbidden("无权查看该文档。", document_id=str(document_id))
    return document, authority


def list_documents(
    db: Session,
    identity: Identity,
    project_id: UUID,
    *,
    workflow_step: int | None = None,
    status: str | None = None,
) -> list[dict[str, Any]]:
    """列出调用方可见的项目文档。"""
    authority = require_project_access(db, identity, project_id)
    stmt = select(PlanningDocument).where(PlanningDocument.project_id == project_id)
    if workflow_step is not None:
        stmt = stmt.where(PlanningDocument.workflow_step == _validate_step(workflow_step))
    if status is not None:
        if status not in _STATUS_VALUES:
            raise validation_error("不支持的文档状态。", field="status", allowed=sorted(_STATUS_VALUES))
        stmt = stmt.where(PlanningDocument.status == status)
    stmt = stmt.where(visible_documents_clause(authority)).order_by(
        PlanningDocument.workflow_step.asc(),
        PlanningDocument.updated_at.desc(),
    )
    documents = db.execute(stmt).scalars().all()
    return [document_to_dict(item) for item in filter_visible_documents(authority, documents)]


def edit_document(
    db: Session,
    identity: Identity,
    document_id: UUID,
    *,
    title: str | None = None,
    content: str | None = None,
    expected_version: int | None = None,
) -> dict[str, Any]:
    """修改文档内容。

    实际发生变化时修订号加一并保存修改前快照；official 或 pending_approval 文档退回 private，
    审批信息清空。未发生变化的修改直接返回原文档。
    """
    document = _get_document_or_404(db, document_id)
    authority = authority_for(db, identity, document.project_id)
    _ensure_author_or_admin(authority, document)
    if expected_version is not None and expected_version != document.version:
        raise conflict(
            "文档已被其他人修改，请刷新后重试。",
            document_id=str(document_id),
            expected_version=expected_version,
            current_version=document.version,
        )

    changes: dict[str, Any] = {}
    if title is not None and _validate_title(title) != document.title:
        changes["title"] = title
    if content is not None and _validate_content(content) != document.content:
        changes["content"] = content
    if not changes:
        return document_to_dict(document)

    previous_status = document.status
    previous_version = document.version
    snapshot = DocumentVersion(
        document_id=document.id,
        version=document.version,
        title=document.title,
        content=document.content,
        status=document.status,
        changed_by=identity.user_id,
    )
    _guarded_update(
        db,
        document,
        version=previous_version + 1,
        status=DocumentStatus.PRIVATE,
        approved_by=None,
        approved_at=None,
        **changes,
    )
    db.add(snapshot)
    db.flush()

    status_reset = previous_status != DocumentStatus.PRIVATE
    record_activity(
        db,
        project_id=document.project_id,
        user_id=identity.user_id,
        activity_type=ActivityType.DOCUMENT_UPDATED,
        target_type=TargetType.DOCUMENT,
        target_id=document.id,
        metadata=_document_event_metadata(
            document,
            changed_fields=sorted(changes),
            previous_version=previous_version,
            version=document.version,
            previous_status=previous_status,
            status_reset=status_reset,
        ),
        description=f"修改文档「{document.title}」",
    )
    _commit(db, document.id)
    db.refresh(document)
    logger.info(
        "document edited document_id=%s version=%s previous_status=%s",
        document.id,
        document.version,
        previous_status,
    )
    return document_to_dict(document)


def submit_for_approval(db: Session, identity: Identity, document_id: UUID) -> dict[str, Any]:
    """作者提交审批：private -> pending_approval。"""
    document = _get_document_or_404(db, document_id)
    authority = authority_for(db, identity, document.project_id)
    if not authority.has_access or document.created_by != identity.user_id:
        raise forbidden("仅作者可提交审批。", document_id=str(document_id))
    if document.status != DocumentStatus.PRIVATE:
        raise invalid_state(
            "仅草稿状态的文档可以提交审批。",
            document_id=str(document_id),
            status=document.status,
        )

    previous_status = document.status
    _guarded_update(db, document, status=DocumentStatus.PENDING_APPROVAL)
    _record_history(
        db,
        document,
        action=ApprovalAction.REQUESTED,
        previous_status=previous_status,
        actor_user_id=identity.user_id,
    )
    db.flush()
    record_activity(
        db,
        project_id=document.project_id,
        user_id=identity.user_id,
        activity_type=ActivityType.DOCUMENT_APPROVAL_REQUESTED,
        target_type=TargetType.DOCUMENT,
        target_id=document.id,
        metadata=_document_event_metadata(document),
        description=f"提交文档「{document.title}」审批",
    )
    _commit(db, document.id)
    db.refresh(document)
    logger.info("document submitted document_id=%s", document.id)
    return document_to_dict(document)


def approve_document(db: Session, identity: Identity, document_id: UUID) -> dict[str, Any]:
    """管理员通过审批：pending_approval -> official。

    同一项目同一步骤原有的 official 文档在同一事务内退回 private。
    """
    document = _get_document_or_404(db, document_id)
    require_project_management(db, identity, document.project_id)
    if document.status != DocumentStatus.PENDING_APPROVAL:
        raise invalid_state(
            "仅待审批状态的文档可以通过审批。",
            document_id=str(document_id),
            status=document.status,
        )

    previous_status = document.status
    superseded_ids = list(
        db.execute(
            select(PlanningDocument.id)
            .where(PlanningDocument.project_id == document.project_id)
            .where(PlanningDocument.workflow_step == document.workflow_step)
            .where(PlanningDocument.status == DocumentStatus.OFFICIAL)
            .where(PlanningDocument.id != document.id)
        )
        .scalars()
        .all()
    )
    if superseded_ids:
        db.execute(
            update(PlanningDocument)
            .where(PlanningDocument.id.in_(superseded_ids))
            .where(PlanningDocument.status == DocumentStatus.OFFICIAL)
            .values(status=DocumentStatus.PRIVATE, approved_by=None, approved_at=None, updated_at=_utc_now())
            .execution_options(synchronize_session=False)
        )

    _guarded_update(
        db,
        document,
        status=DocumentStatus.OFFICIAL,
        approved_by=identity.user_id,
        approved_at=_utc_now(),
    )
    _record_history(
        db,
        document,
        action=ApprovalAction.APPROVED,
        previous_status=previous_status,
        actor_user_id=identity.user_id,
    )
    db.flush()
    record_activity(
        db,
        project_id=document.project_id,
        user_id=identity.user_id,
        activity_type=ActivityType.DOCUMENT_APPROVED,
        target_type=TargetType.DOCUMENT,
        target_id=document.id,
        metadata=_document_event_metadata(
            document,
            author_id=str(document.created_by),
            superseded_document_ids=[str(item) for item in superseded_ids],
        ),
        description=f"文档「{document.title}」审批通过",
    )
    _commit(db, document.id)
    db.refresh(document)
    logger.info(
        "document approved document_id=%s superseded=%s",
        document.id,
        ",".join(str(item) for item in superseded_ids) or "-",
    )
    return document_to_dict(document)


def reject_document(
    db: Session,
    identity: Identity,
    document_id: UUID,
    *,
    reason: str | None = None,
) -> dict[str, Any]:
    """管理员驳回审批：pending_approval -> private。"""
    document = _get_document_or_404(db, document_id)
    require_project_management(db, identity, document.project_id)
    if document.status != DocumentStatus.PENDING_APPROVAL:
        raise invalid_state(
            "仅待审批状态的文档可以驳回。",
            document_id=str(document_id),
            status=document.status,
        )

    reason = reason.strip() if reason and reason.strip() else None
    previous_status = document.status
    _guarded_update(db, document, status=DocumentStatus.PRIVATE, approved_by=None, approved_at=None)
    _record_history(
        db,
        document,
        action=ApprovalAction.REJECTED,
        previous_status=previous_status,
        actor_user_id=identity.user_id,
        reason=reason,
    )
    db.flush()
    record_activity(
        db,
        project_id=document.project_id,
        user_id=identity.user_id,
        activity_type=ActivityType.DOCUMENT_REJECTED,
        target_type=TargetType.DOCUMENT,
        target_id=document.id,
        metadata=_document_event_metadata(document, author_id=str(document.created_by), reason=reason),
        description=f"文档「{document.title}」被驳回",
    )
    _commit(db, document.id)
    db.refresh(document)
    logger.info("document rejected document_id=%s", document.id)
    return document_to_dict(document)


def delete_document(db: Session, identity: Identity, document_id: UUID) -> dict[str, Any]:
    """删除文档及其快照与审批历史，作者或管理员可执行。"""
    document = _get_document_or_404(db, document_id)
    authority = authority_for(db, identity, document.project_id)
    _ensure_author_or_admin(authority, document)

    project_id = document.project_id
    metadata = _document_event_metadata(document, status=document.status)
    title = document.title
    db.execute(delete(DocumentVersion).where(DocumentVersion.document_id == document_id))
    db.execute(delete(DocumentApprovalHistory).where(DocumentApprovalHistory.document_id == document_id))
    db.delete(document)
    db.flush()

    record_activity(
        db,
        project_id=project_id,
        user_id=identity.user_id,
        activity_type=ActivityType.DOCUMENT_DELETED,
        target_type=TargetType.DOCUMENT,
        target_id=document_id,
        metadata=metadata,
        description=f"删除文档「{title}」",
    )
    _commit(db, document_id)
    logger.info("document deleted document_id=%s project_id=%s", document_id, project_id)
    return {"id": document_id, "deleted": True}


def list_versions(db: Session, identity: Identity, document_id: UUID) -> list[dict[str, Any]]:
    """按修订号倒序列出文档快照。

    非作者成员只能看到曾经生效的快照，草稿与待审批修订仅作者和管理员可见。
    """
    document, authority = _load_visible_document(db, identity, document_id)
    stmt = select(DocumentVersion).where(DocumentVersion.document_id == document.id)
    if not authority.is_admin and document.created_by != authority.user_id:
        stmt = stmt.where(DocumentVersion.status == DocumentStatus.OFFICIAL)
    versions = db.execute(stmt.order_by(DocumentVersion.version.desc())).scalars().all()
    return [
        {
            "id": item.id,
            "document_id": item.document_id,
            "version": item.version,
            "title": item.title,
            "content": item.content,
            "status": item.status,
            "changed_by": item.changed_by,
            "created_at": item.created_at,
        }
        for item in versions
    ]


def list_approval_history(db: Session, identity: Identity, document_id: UUID) -> list[dict[str, Any]]:
    """按时间顺序列出审批流转记录。"""
    document, _ = _load_visible_document(db, identity, document_id)
    records = (
        db.execute(
            select(DocumentApprovalHistory)
            .where(DocumentApprovalHistory.document_id == document.id)
            .order_by(DocumentApprovalHistory.created_at.asc())
        )
        .scalars()
        .all()
    )
    return [
        {
            "id": item.id,
            "document_id": item.document_id,
            "action": item.action,
            "previous_status": item.previous_status,
            "new_status": item.new_status,
            "reason": item.reason,
            "actor_user_id": item.actor_user_id,
            "created_at": item.created_at,
        }
        for item in records
    ]


def list_pending_approvals(db: Session, identity: Identity) -> list[dict[str, Any]]:
    """管理员待审批队列，按提交时间先后排列。"""
    require_global_admin(identity)
    rows = db.execute(
        select(PlanningDocument, Project, UserProfile)
        .outerjoin(Project, Project.id == PlanningDocument.project_id)
        .outerjoin(UserProfile, UserProfile.id == PlanningDocument.created_by)
        .where(PlanningDocument.status == DocumentStatus.PENDING_APPROVAL)
        .order_by(PlanningDocument.updated_at.asc())
    ).all()
    return [
        {
            **document_to_dict(document),
            "project_name": project.name if project else None,
            "author_email": author.email if author else None,
            "author_display_name": author.display_name if author else None,
        }
        for document, project, author in rows
    ]
