"""策划文档相关请求结构。"""

from pydantic import BaseModel, Field

from planhub_api.services.steps import WORKFLOW_STEP_COUNT


class DocumentCreateRequest(BaseModel):
    """创建文档请求体。"""

    workflow_step: int = Field(ge=1, le=WORKFLOW_STEP_COUNT, description="策划步骤序号（1..9）。", examples=[1])
    title: str = Field(min_length=1, max_length=255, description="文档标题。", examples=["服务概述初稿"])
    content: str = Field(min_length=1, description="文档正文。")


class DocumentEditRequest(BaseModel):
    """编辑文档请求体，未传字段保持不变。"""

    title: str | None = Field(default=None, min_length=1, max_length=255, description="新的文档标题。")
    content: str | None = Field(default=None, min_length=1, description="新的文档正文。")
    expected_version: int | None = Field(
        default=None,
        ge=1,
        description="客户端读取时的修订号，不一致时返回 CONFLICT。",
    )


class DocumentRejectRequest(BaseModel):
    """驳回文档请求体。"""

    reason: str | None = Field(default=None, max_length=2000, description="驳回原因。")
