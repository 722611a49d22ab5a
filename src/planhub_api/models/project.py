"""项目与项目成员模型。"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import DateTime, String, Text, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from planhub_api.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin
from planhub_api.models.enums import ProjectRole


class Project(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """策划项目，成员与文档的协作边界。"""

    __tablename__ = "projects"

    # 项目名称。
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    # 项目描述。
    description: Mapped[str | None] = mapped_column(Text)
    # 创建人用户 ID。
    created_by: Mapped[UUID] = mapped_column(nullable=False, index=True)


class ProjectMember(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """项目成员关系，同一用户在同一项目内至多一个角色。"""

    __tablename__ = "project_members"
    __table_args__ = (UniqueConstraint("project_id", "user_id", name="uk_project_member"),)

    # 所属项目 ID。
    project_id: Mapped[UUID] = mapped_column(nullable=False, index=True)
    # 成员用户 ID。
    user_id: Mapped[UUID] = mapped_column(nullable=False, index=True)
    # 项目内策划角色。
    role: Mapped[str] = mapped_column(String(32), nullable=False, default=ProjectRole.SERVICE_PLANNING)
    # 添加人用户 ID。
    added_by: Mapped[UUID | None] = mapped_column()
    # 加入项目时间。
    added_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
