"""用户资料模型。"""

from datetime import datetime

from sqlalchemy import DateTime, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from planhub_api.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin
from planhub_api.models.enums import UserRole


class UserProfile(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """用户资料，对接外部身份系统后的本地账号。"""

    __tablename__ = "user_profiles"
    __table_args__ = (UniqueConstraint("auth_provider", "external_subject", name="uk_user_external_identity"),)

    # 登录与通知主邮箱，系统内全局唯一。
    email: Mapped[str] = mapped_column(String(256), nullable=False, unique=True)
    # 前端展示名。
    display_name: Mapped[str] = mapped_column(String(128), nullable=False)
    # 身份层角色（user/admin），决定是否为全局管理员。
    role: Mapped[str] = mapped_column(String(32), nullable=False, default=UserRole.USER)
    # 本地用户状态。
    status: Mapped[str] = mapped_column(String(32), nullable=False, default="active")
    # 外部认证提供方标识。
    auth_provider: Mapped[str] = mapped_column(String(64), nullable=False, default="jwt")
    # 外部身份系统中的主体 ID（sub）。
    external_subject: Mapped[str] = mapped_column(String(256), nullable=False)
    # 最近一次访问时间。
    last_login_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
