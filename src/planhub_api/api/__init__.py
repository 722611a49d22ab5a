"""路由模块导出集合。"""

from . import activities, auth, documents, health, members, projects, users

__all__ = [
    "activities",
    "auth",
    "documents",
    "health",
    "members",
    "projects",
    "users",
]
