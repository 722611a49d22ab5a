"""项目相关请求结构。"""

from pydantic import BaseModel, Field


class ProjectCreateRequest(BaseModel):
    """创建项目请求体。"""

    name: str = Field(min_length=1, max_length=255, description="项目名称。", examples=["校园二手交易平台"])
    description: str | None = Field(default=None, description="项目说明。", examples=["面向高校学生的闲置交易服务"])


class ProjectUpdateRequest(BaseModel):
    """更新项目请求体。"""

    name: str | None = Field(default=None, min_length=1, max_length=255, description="新的项目名称。")
    description: str | None = Field(default=None, description="新的项目说明。")
