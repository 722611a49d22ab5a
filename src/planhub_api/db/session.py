"""数据库会话管理。"""

from collections.abc import Generator

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from planhub_api.core.config import get_settings

settings = get_settings()


def _engine_options() -> dict:
    """按数据库方言组装连接参数。"""
    options: dict = {"future": True, "pool_pre_ping": True}
    if settings.database_url.startswith("postgresql"):
        options["pool_timeout"] = settings.db_pool_timeout_seconds
        # 所有语句受统一超时约束，超时后以 DATABASE_ERROR 返回。
        options["connect_args"] = {"options": f"-c statement_timeout={settings.db_statement_timeout_ms}"}
    return options


# 全局数据库引擎，开启连接预检查以减少僵尸连接影响。
engine = create_engine(settings.database_url, **_engine_options())
# 统一会话工厂，路由层通过依赖注入获取短生命周期会话。
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, class_=Session)


def get_db() -> Generator[Session, None, None]:
    """为每个请求提供独立数据库会话。"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
