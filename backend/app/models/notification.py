from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field
from pydantic.config import ConfigDict


NotificationType = Literal[
    "review_assigned",
    "review_submitted",
    "decision_made",
    "deadline_approaching",
    "general",
]


class Notification(BaseModel):
    """
    通知实体（用于 API 返回）

    中文注释:
    - notifications 表由 Supabase 存储；此模型用于后端显式校验输出结构。
    """

    id: str
    user_id: str
    related_article_id: Optional[str] = None
    type: NotificationType
    title: str = Field(..., max_length=255)
    message: str = Field(..., max_length=2000)
    action_url: Optional[str] = None
    is_read: bool = False
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
