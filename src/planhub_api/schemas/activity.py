"""项目活动相关请求结构。"""

from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field

from planhub_api.models.enums import ActivityType, TargetType


class ActivityRecordRequest(BaseModel):
    """手动记录活动请求体。"""

    activity_type: ActivityType = Field(description="活动类型。", examples=["ai_conversation_started"])
    target_type: TargetType | None = Field(default=None, description="目标类型。")
    target_id: UUID | None = Field(default=None, description="目标 ID。")
    metadata: dict[str, Any] = Field(default_factory=dict, description="扩展信息。")
    description: str = Field(min_length=1, max_length=2000, description="人类可读描述。")
