"""接口成功响应 `data` 字段结构定义。

说明：
1. 所有业务接口统一返回 `SuccessResponse[data=...]`。
2. 本文件专注于定义各接口在 `data` 中的业务字段。
3. 字段描述会直接用于 Swagger 展示，便于联调时理解含义。
"""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import Field

from planhub_api.schemas.common import BaseSchema, OffsetPaginationMeta


class HealthStatusData(BaseSchema):
    """健康检查返回结构。"""

    status: str = Field(description="健康状态值，常见为 ok 或 ready。")
    service: str = Field(description="服务名称。")
    environment: str = Field(description="运行环境标识。")


class UserProfileData(BaseSchema):
    """用户基础资料。"""

    id: UUID = Field(description="用户主键 ID。")
    email: str = Field(description="用户邮箱。")
    display_name: str = Field(description="用户展示名。")
    role: str = Field(description="身份层角色，user 或 admin。")
    status: str = Field(description="用户状态，例如 active。")
    last_login_at: datetime | None = Field(default=None, description="最近一次访问时间。")


class ProjectAccessItem(BaseSchema):
    """当前用户在某个项目下的成员视图。"""

    project_id: UUID = Field(description="项目 ID。")
    name: str = Field(description="项目名称。")
    role: str = Field(description="当前用户在该项目中的策划角色。")


class AuthMeData(BaseSchema):
    """`/auth/me` 接口返回的数据结构。"""

    user: UserProfileData = Field(description="当前登录用户信息。")
    is_admin: bool = Field(description="是否为全局管理员。")
    projects: list[ProjectAccessItem] = Field(description="当前用户加入的项目集合。")


class AuthorityData(BaseSchema):
    """调用方在项目内的权限判定结果。"""

    kind: str = Field(description="global_admin / project_member / none。")
    role: str | None = Field(default=None, description="kind 为 project_member 时的策划角色。")


class ProjectData(BaseSchema):
    """项目列表与详情基础结构。"""

    id: UUID = Field(description="项目 ID。")
    name: str = Field(description="项目名称。")
    description: str | None = Field(default=None, description="项目说明。")
    created_by: UUID = Field(description="创建人用户 ID。")
    created_at: datetime | None = Field(default=None, description="创建时间。")
    updated_at: datetime | None = Field(default=None, description="更新时间。")
    viewer_role: str | None = Field(default=None, description="当前用户在项目中的策划角色，管理员非成员时为空。")
    member_count: int = Field(default=0, description="成员数量。")
    official_document_count: int = Field(default=0, description="已生效文档数量。")


class StepProgressData(BaseSchema):
    """单个策划步骤的进度。"""

    step: int = Field(description="步骤序号。")
    name: str = Field(description="步骤名称。")
    official_document_id: UUID | None = Field(default=None, description="该步骤当前生效文档 ID。")
    official_title: str | None = Field(default=None, description="该步骤当前生效文档标题。")
    visible_document_count: int = Field(description="调用方在该步骤可见的文档数量。")


class ProjectDetailData(BaseSchema):
    """项目详情结构。"""

    project: ProjectData = Field(description="项目基础信息。")
    authority: AuthorityData = Field(description="调用方权限判定。")
    steps: list[StepProgressData] = Field(description="九个策划步骤的进度。")


class ProjectDeleteData(BaseSchema):
    """项目删除结果。"""

    id: UUID = Field(description="已删除项目 ID。")
    deleted: bool = Field(description="是否删除成功。")


class MemberData(BaseSchema):
    """项目成员结构。"""

    project_id: UUID = Field(description="项目 ID。")
    user_id: UUID = Field(description="成员用户 ID。")
    email: str | None = Field(default=None, description="成员邮箱。")
    display_name: str | None = Field(default=None, description="成员展示名。")
    role: str = Field(description="项目内策划角色。")
    added_by: UUID | None = Field(default=None, description="添加人用户 ID。")
    added_at: datetime | None = Field(default=None, description="加入时间。")


class MemberRemoveData(BaseSchema):
    """移除成员结果。"""

    project_id: UUID = Field(description="项目 ID。")
    user_id: UUID = Field(description="被移除的用户 ID。")
    removed: bool = Field(description="是否移除成功。")


class UserSearchItem(BaseSchema):
    """用户检索结果项。"""

    id: UUID = Field(description="用户 ID。")
    email: str = Field(description="用户邮箱。")
    display_name: str = Field(description="用户展示名。")
    role: str = Field(description="身份层角色。")


class DocumentData(BaseSchema):
    """策划文档结构。"""

    id: UUID = Field(description="文档 ID。")
    project_id: UUID = Field(description="所属项目 ID。")
    workflow_step: int = Field(description="策划步骤序号。")
    step_name: str | None = Field(default=None, description="策划步骤名称。")
    title: str = Field(description="文档标题。")
    content: str = Field(description="文档正文。")
    status: str = Field(description="文档状态：private / pending_approval / official。")
    version: int = Field(description="修订号。")
    created_by: UUID = Field(description="作者用户 ID。")
    approved_by: UUID | None = Field(default=None, description="审批人用户 ID。")
    created_at: datetime | None = Field(default=None, description="创建时间。")
    updated_at: datetime | None = Field(default=None, description="最近修改时间。")
    approved_at: datetime | None = Field(default=None, description="审批通过时间。")


class PendingApprovalData(DocumentData):
    """待审批队列项。"""

    project_name: str | None = Field(default=None, description="所属项目名称。")
    author_email: str | None = Field(default=None, description="作者邮箱。")
    author_display_name: str | None = Field(default=None, description="作者展示名。")


class DocumentVersionData(BaseSchema):
    """文档修订快照。"""

    id: UUID = Field(description="快照 ID。")
    document_id: UUID = Field(description="文档 ID。")
    version: int = Field(description="快照对应修订号。")
    title: str = Field(description="快照标题。")
    content: str = Field(description="快照正文。")
    status: str = Field(description="快照时的文档状态。")
    changed_by: UUID | None = Field(default=None, description="触发修订的用户 ID。")
    created_at: datetime | None = Field(default=None, description="快照时间。")


class ApprovalHistoryData(BaseSchema):
    """审批流转记录。"""

    id: UUID = Field(description="记录 ID。")
    document_id: UUID = Field(description="文档 ID。")
    action: str = Field(description="requested / approved / rejected。")
    previous_status: str = Field(description="流转前状态。")
    new_status: str = Field(description="流转后状态。")
    reason: str | None = Field(default=None, description="驳回原因等说明。")
    actor_user_id: UUID = Field(description="操作人用户 ID。")
    created_at: datetime | None = Field(default=None, description="记录时间。")


class DocumentDeleteData(BaseSchema):
    """文档删除结果。"""

    id: UUID = Field(description="已删除文档 ID。")
    deleted: bool = Field(description="是否删除成功。")


class ActivityData(BaseSchema):
    """项目活动记录。"""

    id: UUID = Field(description="活动 ID。")
    project_id: UUID = Field(description="项目 ID。")
    user_id: UUID | None = Field(default=None, description="操作人用户 ID。")
    user_email: str | None = Field(default=None, description="操作人邮箱。")
    user_display_name: str | None = Field(default=None, description="操作人展示名。")
    activity_type: str = Field(description="活动类型。")
    target_type: str | None = Field(default=None, description="目标类型。")
    target_id: UUID | None = Field(default=None, description="目标 ID。")
    metadata: dict[str, Any] = Field(default_factory=dict, description="扩展信息。")
    description: str | None = Field(default=None, description="人类可读描述。")
    created_at: datetime | None = Field(default=None, description="记录时间。")


class CollaborationStatsData(BaseSchema):
    """项目协作统计。"""

    project_id: UUID = Field(description="项目 ID。")
    total_documents: int = Field(description="文档总数。")
    official_documents: int = Field(description="已生效文档数。")
    pending_documents: int = Field(description="待审批文档数。")
    private_documents: int = Field(description="草稿文档数。")
    total_members: int = Field(description="成员总数。")
    total_activities: int = Field(description="活动总数。")
    last_activity_at: datetime | None = Field(default=None, description="最近活动时间。")


class MemberActivitySummaryData(BaseSchema):
    """成员活跃度汇总。"""

    user_id: UUID = Field(description="成员用户 ID。")
    email: str | None = Field(default=None, description="成员邮箱。")
    display_name: str | None = Field(default=None, description="成员展示名。")
    role: str = Field(description="项目内策划角色。")
    documents_created: int = Field(description="创建文档次数。")
    documents_updated: int = Field(description="修改文档次数。")
    documents_approved: int = Field(description="审批通过文档次数（以操作人计）。")
    ai_conversations: int = Field(description="发起 AI 对话次数。")
    last_activity_at: datetime | None = Field(default=None, description="最近活动时间。")


class ActivityListData(BaseSchema):
    """活动列表结构。"""

    items: list[ActivityData] = Field(description="活动记录，按时间倒序。")
    pagination: OffsetPaginationMeta = Field(description="分页信息。")
    stats: CollaborationStatsData | None = Field(default=None, description="协作统计，includeStats 时返回。")
    member_summary: list[MemberActivitySummaryData] | None = Field(
        default=None,
        description="成员活跃度汇总，includeMemberSummary 时返回。",
    )
