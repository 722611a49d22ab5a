"""认证解析与令牌校验工具。"""

from dataclasses import dataclass
from functools import lru_cache
import re
from typing import Any

import jwt
from jwt import InvalidTokenError, PyJWKClient

from planhub_api.core.config import get_settings
from planhub_api.errors import unauthorized


@dataclass
class AuthenticatedPrincipal:
    """统一认证主体对象。"""

    # 外部身份主体标识（sub）。
    subject: str
    # 认证提供方（issuer）。
    provider: str
    # 可选邮箱。
    email: str | None
    # 可选展示名。
    display_name: str | None
    # 原始声明集，便于下游扩展。
    claims: dict[str, Any]


@lru_cache
def _get_jwks_client(jwks_url: str) -> PyJWKClient:
    """缓存密钥集合客户端，减少重复网络开销。"""
    return PyJWKClient(jwks_url)


def _decode_jwt(token: str) -> dict[str, Any]:
    """按配置解码并校验令牌。"""
    settings = get_settings()
    options = {"verify_signature": True, "verify_aud": bool(settings.auth_jwt_audience)}

    try:
        if settings.auth_jwks_url:
            # 配置 JWKS 时支持密钥轮换。
            key = _get_jwks_client(settings.auth_jwks_url).get_signing_key_from_jwt(token).key
        else:
            key = settings.auth_jwt_secret
        return jwt.decode(
            token,
            key=key,
            algorithms=settings.auth_algorithms,
            issuer=settings.auth_jwt_issuer,
            audience=settings.auth_jwt_audience,
            leeway=settings.auth_jwt_leeway_seconds,
            options=options,
        )
    except InvalidTokenError as exc:
        raise unauthorized("访问令牌无效或已过期。") from exc


def _extract_bearer_token(authorization: str | None) -> str:
    """从 Authorization 头中提取 Bearer token，兼容重复头被逗号拼接的场景。"""
    if not authorization:
        raise unauthorized()
    tokens = [item.strip() for item in re.findall(r"Bearer\s+([^,\s]+)", authorization, flags=re.IGNORECASE)]
    tokens = [item for item in tokens if item]
    if not tokens:
        raise unauthorized()
    return tokens[-1]


def parse_authorization_header(authorization: str | None) -> AuthenticatedPrincipal:
    """解析认证头并返回认证主体。"""
    token = _extract_bearer_token(authorization)
    claims = _decode_jwt(token)

    subject = str(claims.get("sub") or "").strip()
    if not subject:
        raise unauthorized()

    email = claims.get("email")
    display_name = claims.get("name") or claims.get("preferred_username")
    provider = claims.get("provider")
    issuer = str(provider if isinstance(provider, str) and provider else (claims.get("iss") or "jwt"))

    return AuthenticatedPrincipal(
        subject=subject,
        provider=issuer,
        email=email if isinstance(email, str) else None,
        display_name=display_name if isinstance(display_name, str) else None,
        claims=claims,
    )


def issue_access_token(
    *,
    subject: str,
    email: str | None = None,
    display_name: str | None = None,
    extra_claims: dict[str, Any] | None = None,
) -> str:
    """使用对称密钥签发访问令牌，供本地联调与测试使用。"""
    settings = get_settings()
    claims: dict[str, Any] = {"sub": subject}
    if email:
        claims["email"] = email
    if display_name:
        claims["name"] = display_name
    if settings.auth_jwt_issuer:
        claims["iss"] = settings.auth_jwt_issuer
    if settings.auth_jwt_audience:
        claims["aud"] = settings.auth_jwt_audience
    if extra_claims:
        claims.update(extra_claims)
    return jwt.encode(claims, settings.auth_jwt_secret, algorithm=settings.auth_algorithms[0])


