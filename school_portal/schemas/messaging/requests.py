from typing import List, Optional

from pydantic import Field, field_validator, model_validator

from school_portal.schemas.base import CamelModel
from school_portal.schemas.enums import NotificationPriority, UserRoleEnum


class NotificationCreate(CamelModel):
    """Fan-out target is the union of ``targetRoles`` and ``targetUserIds``"""
    title: str = Field(min_length=1, max_length=200)
    message: str = Field(min_length=1)
    type: str = "CUSTOM"
    priority: NotificationPriority = NotificationPriority.NORMAL
    target_roles: List[UserRoleEnum] = []
    target_user_ids: List[int] = []

    @model_validator(mode="after")
    def validate_targets(self) -> "NotificationCreate":
        if not self.target_roles and not self.target_user_ids:
            raise ValueError("At least one target role or user is required")
        return self


class ChatCreate(CamelModel):
    participant_ids: List[int] = Field(min_length=1)
    name: Optional[str] = None
    is_group: bool = False


class MessageCreate(CamelModel):
    chat_id: int
    content: str
    message_type: str = "TEXT"

    @field_validator("content")
    @classmethod
    def validate_content(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Message content is required")
        return v
