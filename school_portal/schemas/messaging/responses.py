from datetime import datetime
from typing import List, Optional

from school_portal.schemas.base import CamelModel, Envelope
from school_portal.schemas.enums import NotificationPriority, UserRoleEnum


class NotificationResponse(CamelModel):
    id: int
    user_id: int
    sender_id: Optional[int] = None
    type: str
    title: str
    message: str
    priority: NotificationPriority
    is_read: bool
    read_at: Optional[datetime] = None
    created_at: datetime


class ChatUser(CamelModel):
    id: int
    name: str
    role: UserRoleEnum


class ChatParticipantResponse(CamelModel):
    user_id: int
    is_active: bool
    user: Optional[ChatUser] = None


class MessageResponse(CamelModel):
    id: int
    chat_id: int
    sender_id: Optional[int] = None
    content: str
    message_type: str
    created_at: datetime
    sender: Optional[ChatUser] = None


class ChatResponse(CamelModel):
    id: int
    name: Optional[str] = None
    is_group: bool
    created_by: Optional[int] = None
    updated_at: datetime
    participants: List[ChatParticipantResponse] = []
    last_message: Optional[MessageResponse] = None
    unread_count: int = 0


# Envelopes
class NotificationListEnvelope(Envelope):
    notifications: List[NotificationResponse]
    total: int
    unread_count: int


class NotificationCreateEnvelope(Envelope):
    notification: NotificationResponse
    target_users: int


class NotificationEnvelope(Envelope):
    notification: NotificationResponse


class ChatListEnvelope(Envelope):
    chats: List[ChatResponse]


class ChatEnvelope(Envelope):
    chat: ChatResponse


class ChatMessagesEnvelope(Envelope):
    chat: ChatResponse
    messages: List[MessageResponse]


class MessageEnvelope(Envelope):
    message: MessageResponse
