"""请求身份依赖。

职责:
1. 解析并校验访问令牌。
2. 将认证主体映射为本地用户资料，缺失时返回 USER_NOT_FOUND。
3. 生成后续路由统一使用的 Identity。
"""

from dataclasses import dataclass
from datetime import datetime, timezone
import hashlib
import logging
from uuid import UUID, uuid4

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import select
from sqlalchemy.orm import Session

from planhub_api.core.config import get_settings
from planhub_api.core.security import AuthenticatedPrincipal, parse_authorization_header
from planhub_api.db.session import get_db
from planhub_api.errors import user_not_found
from planhub_api.models.enums import UserRole
from planhub_api.models.user import UserProfile

logger = logging.getLogger("planhub_api.auth")

bearer_scheme = HTTPBearer(auto_error=False)


@dataclass
class Identity:
    """已认证调用方。

    该对象在路由与服务层作为统一输入，避免重复查询用户资料。
    """

    # 当前请求用户 ID。
    user_id: UUID
    # 用户邮箱。
    email: str
    # 用户展示名。
    display_name: str
    # 身份层角色是否为 admin。
    is_admin: bool
    # 认证主体原始信息（来自 JWT），本地构造时可为空。
    principal: AuthenticatedPrincipal | None = None


def normalize_email(email: str) -> str:
    """统一邮箱格式（去空白 + 小写）。"""
    return email.strip().lower()


def _normalize_external_subject(subject: str) -> str:
    """标准化 external_subject，防止写库超长。"""
    normalized = subject.strip() or "anonymous"
    if len(normalized) <= 256:
        return normalized
    return f"hash:{hashlib.sha256(normalized.encode('utf-8')).hexdigest()}"


def _build_display_name(principal: AuthenticatedPrincipal) -> str:
    """构造用户展示名。"""
    if principal.display_name and principal.display_name.strip():
        return principal.display_name.strip()[:128]
    if principal.email:
        return principal.email.split("@")[0][:128] or "user"
    return f"user-{principal.subject[:8]}"


def identity_from_profile(profile: UserProfile, principal: AuthenticatedPrincipal | None = None) -> Identity:
    return Identity(
        user_id=profile.id,
        email=profile.email,
        display_name=profile.display_name,
        is_admin=profile.role == UserRole.ADMIN,
        principal=principal,
    )


def find_profile(db: Session, principal: AuthenticatedPrincipal) -> UserProfile | None:
    """按外部身份查找用户资料，找不到时按邮箱兜底关联。"""
    subject = _normalize_external_subject(principal.subject)
    profile = (
        db.execute(
            select(UserProfile)
            .where(UserProfile.auth_provider == principal.provider)
            .where(UserProfile.external_subject == subject)
        )
        .scalar_one_or_none()
    )
    if profile is not None:
        return profile

    # 令牌 sub 直接为本地用户 ID 的场景。
    try:
        profile = db.get(UserProfile, UUID(principal.subject))
    except ValueError:
        profile = None
    if profile is not None:
        return profile

    if principal.email:
        return (
            db.execute(select(UserProfile).where(UserProfile.email == normalize_email(principal.email)))
            .scalar_one_or_none()
        )
    return None


def ensure_profile(db: Session, principal: AuthenticatedPrincipal) -> UserProfile:
    """确保认证主体在本地存在用户资料。

    默认不自动建档：资料缺失返回 USER_NOT_FOUND。
    开启 auth_auto_provision_profiles 后首次访问创建普通用户资料。
    """
    profile = find_profile(db, principal)
    now = datetime.now(timezone.utc)
    if profile is not None:
        profile.last_login_at = now
        db.flush()
        return profile

    if not get_settings().auth_auto_provision_profiles or not principal.email:
        raise user_not_found(subject=principal.subject)

    profile = UserProfile(
        id=uuid4(),
        email=normalize_email(principal.email),
        display_name=_build_display_name(principal),
        role=UserRole.USER,
        auth_provider=principal.provider,
        external_subject=_normalize_external_subject(principal.subject),
        last_login_at=now,
    )
    db.add(profile)
    db.flush()
    logger.info("user profile provisioned user_id=%s provider=%s", profile.id, principal.provider)
    return profile


def get_current_principal(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> AuthenticatedPrincipal:
    """提取并解析当前请求认证主体。"""
    authorization = None
    if credentials is not None and credentials.credentials:
        authorization = f"{credentials.scheme} {credentials.credentials}"
    return parse_authorization_header(authorization)


def get_current_identity(
    principal: AuthenticatedPrincipal = Depends(get_current_principal),
    db: Session = Depends(get_db),
) -> Identity:
    """认证调用方并加载用户资料。"""
    try:
        profile = ensure_profile(db, principal)
    except Exception:
        db.rollback()
        raise
    db.commit()
    return identity_from_profile(profile, principal)
