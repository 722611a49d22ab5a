from collections.abc import Generator
from uuid import uuid4

import pytest
from fastapi import HTTPException
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool
from starlette.requests import Request

import planhub_api.models  # noqa: F401
from planhub_api.dependencies import Identity, identity_from_profile
from planhub_api.errors import error_code
from planhub_api.models.base import Base
from planhub_api.models.enums import UserRole
from planhub_api.models.user import UserProfile


def make_request(path: str = "/test", method: str = "GET") -> Request:
    request = Request({"type": "http", "method": method, "path": path, "headers": [], "query_string": b""})
    request.state.request_id = "test-request-id"
    return request


def create_user(db: Session, *, email: str, admin: bool = False, display_name: str | None = None) -> UserProfile:
    profile = UserProfile(
        id=uuid4(),
        email=email,
        display_name=display_name or email.split("@")[0],
        role=UserRole.ADMIN if admin else UserRole.USER,
        status="active",
        auth_provider="local",
        external_subject=email,
    )
    db.add(profile)
    db.commit()
    return profile


def identity_of(profile: UserProfile) -> Identity:
    return identity_from_profile(profile)


def code_of(exc_info: pytest.ExceptionInfo[HTTPException]) -> str | None:
    return error_code(exc_info.value)


@pytest.fixture
def session_factory() -> Generator[sessionmaker, None, None]:
    engine = create_engine(
        "sqlite+pysqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield sessionmaker(bind=engine, autoflush=False, autocommit=False, class_=Session)
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def db_session(session_factory: sessionmaker) -> Generator[Session, None, None]:
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


class PlanningWorld:
    """一个项目 + 管理员 + 两名成员 + 一名非成员。"""

    def __init__(self, db: Session) -> None:
        from planhub_api.services import membership, projects

        self.admin_profile = create_user(db, email="admin@example.com", admin=True)
        self.u1_profile = create_user(db, email="u1@example.com")
        self.u2_profile = create_user(db, email="u2@example.com")
        self.outsider_profile = create_user(db, email="outsider@example.com")

        self.admin = identity_of(self.admin_profile)
        self.u1 = identity_of(self.u1_profile)
        self.u2 = identity_of(self.u2_profile)
        self.outsider = identity_of(self.outsider_profile)

        project = projects.create_project(db, self.admin, name="校园二手交易平台", description="demo")
        self.project_id = project["id"]
        membership.add_member(db, self.admin, self.project_id, user_id=self.u1.user_id, role="content_planning")
        membership.add_member(db, self.admin, self.project_id, user_id=self.u2.user_id, role="uiux_planning")


@pytest.fixture
def world(db_session: Session) -> PlanningWorld:
    return PlanningWorld(db_session)
