"""领域枚举定义。"""

from enum import StrEnum


class UserRole(StrEnum):
    """身份层角色。"""

    USER = "user"  # 普通用户，仅能访问所属项目。
    ADMIN = "admin"  # 全局管理员，可管理全部项目与审批。


class ProjectRole(StrEnum):
    """项目内策划角色，仅用于标识分工，不附带额外权限。"""

    CONTENT_PLANNING = "content_planning"  # 内容策划。
    SERVICE_PLANNING = "service_planning"  # 服务策划。
    UIUX_PLANNING = "uiux_planning"  # UI/UX 策划。
    DEVELOPER = "developer"  # 开发。


class DocumentStatus(StrEnum):
    """策划文档状态。"""

    PRIVATE = "private"  # 草稿，仅作者与管理员可见。
    PENDING_APPROVAL = "pending_approval"  # 已提交审批，仅作者与管理员可见。
    OFFICIAL = "official"  # 已审批生效，项目成员均可见。


class ApprovalAction(StrEnum):
    """审批历史动作。"""

    REQUESTED = "requested"  # 作者提交审批。
    APPROVED = "approved"  # 管理员通过。
    REJECTED = "rejected"  # 管理员驳回。


class ActivityType(StrEnum):
    """项目活动类型。"""

    PROJECT_CREATED = "project_created"
    PROJECT_UPDATED = "project_updated"
    MEMBER_ADDED = "member_added"
    MEMBER_REMOVED = "member_removed"
    MEMBER_ROLE_CHANGED = "member_role_changed"
    DOCUMENT_CREATED = "document_created"
    DOCUMENT_UPDATED = "document_updated"
    DOCUMENT_APPROVAL_REQUESTED = "document_approval_requested"
    DOCUMENT_APPROVED = "document_approved"
    DOCUMENT_REJECTED = "document_rejected"
    DOCUMENT_DELETED = "document_deleted"
    AI_CONVERSATION_STARTED = "ai_conversation_started"
    CONFLICT_ANALYSIS_COMPLETED = "conflict_analysis_completed"


class TargetType(StrEnum):
    """活动目标类型。"""

    PROJECT = "project"
    MEMBER = "member"
    DOCUMENT = "document"
    CONVERSATION = "conversation"
