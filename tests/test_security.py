import pytest
from fastapi import HTTPException

from conftest import code_of, create_user
from planhub_api.core.config import get_settings
from planhub_api.core.security import issue_access_token, parse_authorization_header
from planhub_api.dependencies import ensure_profile
from planhub_api.errors import ErrorKind
from planhub_api.models.enums import UserRole


@pytest.fixture(autouse=True)
def jwt_settings(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("PH_AUTH_JWT_SECRET", "security-test-secret-key-at-least-32-bytes")
    monkeypatch.setenv("PH_AUTH_JWT_ISSUER", "planhub-test")
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def test_parse_authorization_header_reads_claims():
    token = issue_access_token(subject="ext-1", email="a@example.com", display_name="策划甲")

    principal = parse_authorization_header(f"Bearer {token}")

    assert principal.subject == "ext-1"
    assert principal.provider == "planhub-test"
    assert principal.email == "a@example.com"
    assert principal.display_name == "策划甲"


def test_duplicate_authorization_header_uses_last_token():
    stale = issue_access_token(subject="old")
    fresh = issue_access_token(subject="new")

    principal = parse_authorization_header(f"Bearer {stale}, Bearer {fresh}")

    assert principal.subject == "new"


@pytest.mark.parametrize("header", [None, "", "Basic abc", "Bearer not-a-jwt"])
def test_invalid_authorization_header_is_unauthorized(header):
    with pytest.raises(HTTPException) as exc_info:
        parse_authorization_header(header)
    assert exc_info.value.status_code == 401
    assert code_of(exc_info) == ErrorKind.UNAUTHORIZED


def test_token_signed_with_other_secret_is_rejected(monkeypatch: pytest.MonkeyPatch):
    token = issue_access_token(subject="ext-1")
    monkeypatch.setenv("PH_AUTH_JWT_SECRET", "another-secret-key-that-is-long-enough")
    get_settings.cache_clear()

    with pytest.raises(HTTPException) as exc_info:
        parse_authorization_header(f"Bearer {token}")
    assert code_of(exc_info) == ErrorKind.UNAUTHORIZED


def test_profile_is_found_by_external_subject(db_session):
    profile = create_user(db_session, email="bound@example.com")
    profile.auth_provider = "planhub-test"
    profile.external_subject = "ext-bound"
    db_session.commit()

    principal = parse_authorization_header(f"Bearer {issue_access_token(subject='ext-bound')}")

    assert ensure_profile(db_session, principal).id == profile.id


def test_missing_profile_without_provisioning(db_session):
    principal = parse_authorization_header(
        f"Bearer {issue_access_token(subject='ext-new', email='new@example.com')}"
    )

    with pytest.raises(HTTPException) as exc_info:
        ensure_profile(db_session, principal)
    assert exc_info.value.status_code == 401
    assert code_of(exc_info) == ErrorKind.USER_NOT_FOUND


def test_missing_profile_is_provisioned_when_enabled(db_session, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("PH_AUTH_AUTO_PROVISION_PROFILES", "true")
    get_settings.cache_clear()
    principal = parse_authorization_header(
        f"Bearer {issue_access_token(subject='ext-new', email='New@Example.com')}"
    )

    profile = ensure_profile(db_session, principal)

    assert profile.email == "new@example.com"
    assert profile.role == UserRole.USER
    assert profile.external_subject == "ext-new"
