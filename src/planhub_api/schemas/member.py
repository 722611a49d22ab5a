"""项目成员相关请求结构。"""

from uuid import UUID

from pydantic import BaseModel, Field

from planhub_api.models.enums import ProjectRole


class ProjectMemberAddRequest(BaseModel):
    """添加项目成员请求体。"""

    user_id: UUID = Field(description="目标用户 ID。")
    role: ProjectRole = Field(description="授予的项目内策划角色。", examples=["content_planning"])


class ProjectMemberRoleUpdateRequest(BaseModel):
    """变更成员角色请求体。"""

    role: ProjectRole = Field(description="新的项目内策划角色。", examples=["developer"])
