"""ORM 模型导出集合。"""

from planhub_api.models.activity import ProjectActivity
from planhub_api.models.document import DocumentApprovalHistory, DocumentVersion, PlanningDocument
from planhub_api.models.project import Project, ProjectMember
from planhub_api.models.user import UserProfile

__all__ = [
    "DocumentApprovalHistory",
    "DocumentVersion",
    "PlanningDocument",
    "Project",
    "ProjectActivity",
    "ProjectMember",
    "UserProfile",
]
