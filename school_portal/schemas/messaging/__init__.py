from .requests import NotificationCreate, ChatCreate, MessageCreate
from .responses import (
    NotificationResponse,
    ChatUser,
    ChatParticipantResponse,
    MessageResponse,
    ChatResponse,
    NotificationListEnvelope,
    NotificationCreateEnvelope,
    NotificationEnvelope,
    ChatListEnvelope,
    ChatEnvelope,
    ChatMessagesEnvelope,
    MessageEnvelope,
)
