"""策划文档、版本快照与审批历史模型。"""

from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy import DateTime, Index, Integer, String, Text, UniqueConstraint, func, text
from sqlalchemy.orm import Mapped, mapped_column

from planhub_api.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin
from planhub_api.models.enums import DocumentStatus

_OFFICIAL_ONLY = text("status = 'official'")


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class PlanningDocument(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """项目某一策划步骤下的文档。"""

    __tablename__ = "planning_documents"
    __table_args__ = (
        # 同一项目同一步骤至多一份 official 文档，由存储层兜底保证。
        Index(
            "uk_planning_documents_official_step",
            "project_id",
            "workflow_step",
            unique=True,
            sqlite_where=_OFFICIAL_ONLY,
            postgresql_where=_OFFICIAL_ONLY,
        ),
        Index("ix_planning_documents_project_step", "project_id", "workflow_step"),
    )

    # 所属项目 ID。
    project_id: Mapped[UUID] = mapped_column(nullable=False, index=True)
    # 策划步骤序号（1..9）。
    workflow_step: Mapped[int] = mapped_column(Integer, nullable=False)
    # 文档标题。
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    # 文档正文。
    content: Mapped[str] = mapped_column(Text, nullable=False)
    # 文档状态（private/pending_approval/official）。
    status: Mapped[str] = mapped_column(String(32), nullable=False, default=DocumentStatus.PRIVATE, index=True)
    # 修订号，每次实际修改递增，用于乐观并发校验。
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    # 作者用户 ID，创建后不可变。
    created_by: Mapped[UUID] = mapped_column(nullable=False, index=True)
    # 审批人用户 ID，仅 official 状态非空。
    approved_by: Mapped[UUID | None] = mapped_column()
    # 审批通过时间，仅 official 状态非空。
    approved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))


class DocumentVersion(Base, UUIDPrimaryKeyMixin):
    """文档修订前快照。"""

    __tablename__ = "document_versions"
    __table_args__ = (UniqueConstraint("document_id", "version", name="uk_document_version"),)

    # 所属文档 ID。
    document_id: Mapped[UUID] = mapped_column(nullable=False, index=True)
    # 快照对应的修订号。
    version: Mapped[int] = mapped_column(Integer, nullable=False)
    # 快照标题。
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    # 快照正文。
    content: Mapped[str] = mapped_column(Text, nullable=False)
    # 快照时的状态。
    status: Mapped[str] = mapped_column(String(32), nullable=False)
    # 触发修订的用户 ID。
    changed_by: Mapped[UUID | None] = mapped_column()
    # 快照写入时间。
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utc_now, server_default=func.now(), nullable=False
    )


class DocumentApprovalHistory(Base, UUIDPrimaryKeyMixin):
    """文档审批流转记录。"""

    __tablename__ = "document_approval_history"

    # 所属文档 ID。
    document_id: Mapped[UUID] = mapped_column(nullable=False, index=True)
    # 动作（requested/approved/rejected）。
    action: Mapped[str] = mapped_column(String(32), nullable=False)
    # 流转前状态。
    previous_status: Mapped[str] = mapped_column(String(32), nullable=False)
    # 流转后状态。
    new_status: Mapped[str] = mapped_column(String(32), nullable=False)
    # 驳回原因等补充说明。
    reason: Mapped[str | None] = mapped_column(Text)
    # 操作人用户 ID。
    actor_user_id: Mapped[UUID] = mapped_column(nullable=False)
    # 记录时间。
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utc_now, server_default=func.now(), nullable=False
    )
