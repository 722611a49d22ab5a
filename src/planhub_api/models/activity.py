"""项目活动日志模型。"""

from datetime import datetime, timezone
from typing import Any
from uuid import UUID

from sqlalchemy import DateTime, Index, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from planhub_api.models.base import Base, UUIDPrimaryKeyMixin


class ProjectActivity(Base, UUIDPrimaryKeyMixin):
    """项目活动记录，仅追加写入。"""

    __tablename__ = "project_activities"
    __table_args__ = (Index("ix_project_activities_project_created", "project_id", "created_at"),)

    # 所属项目 ID。
    project_id: Mapped[UUID] = mapped_column(nullable=False)
    # 操作人用户 ID，系统动作可为空。
    user_id: Mapped[UUID | None] = mapped_column(index=True)
    # 活动类型。
    activity_type: Mapped[str] = mapped_column(String(64), nullable=False)
    # 目标类型（project/member/document/conversation）。
    target_type: Mapped[str | None] = mapped_column(String(32))
    # 目标 ID。
    target_id: Mapped[UUID | None] = mapped_column()
    # 扩展信息，例如步骤号、驳回原因、被替换的文档。
    # 属性名避开 DeclarativeBase 保留的 metadata。
    details: Mapped[dict[str, Any]] = mapped_column("metadata", nullable=False, default=dict)
    # 人类可读描述。
    description: Mapped[str | None] = mapped_column(Text)
    # 记录时间，使用应用时钟保证排序精度。
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        server_default=func.now(),
        nullable=False,
    )
