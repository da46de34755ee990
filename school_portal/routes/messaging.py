from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from school_portal.core.database import get_db
from school_portal.core.dependencies import get_current_claims
from school_portal.core.permissions import require_staff
from school_portal.schemas.auth import TokenClaims
from school_portal.schemas.messaging import (
    ChatCreate,
    ChatEnvelope,
    ChatListEnvelope,
    ChatMessagesEnvelope,
    MessageCreate,
    MessageEnvelope,
    MessageResponse,
    NotificationCreate,
    NotificationCreateEnvelope,
    NotificationEnvelope,
    NotificationListEnvelope,
    NotificationResponse,
)
from school_portal.services import ChatService, NotificationService

router = APIRouter(tags=["Messaging"])


def get_notification_service(db: AsyncSession = Depends(get_db)) -> NotificationService:
    return NotificationService(db)


def get_chat_service(db: AsyncSession = Depends(get_db)) -> ChatService:
    return ChatService(db)


# Notifications

@router.get("/notifications", response_model=NotificationListEnvelope)
async def list_notifications(
    is_read: Optional[bool] = Query(None, alias="isRead"),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    claims: TokenClaims = Depends(get_current_claims),
    service: NotificationService = Depends(get_notification_service)
) -> NotificationListEnvelope:
    notifications, total, unread_count = await service.list_notifications(
        claims.user_id, is_read, limit, offset
    )
    return NotificationListEnvelope(
        notifications=[NotificationResponse.model_validate(n) for n in notifications],
        total=total,
        unread_count=unread_count,
    )


@router.post("/notifications", response_model=NotificationCreateEnvelope, status_code=status.HTTP_201_CREATED)
async def create_notification(
    request: NotificationCreate,
    claims: TokenClaims = Depends(require_staff),
    service: NotificationService = Depends(get_notification_service)
) -> NotificationCreateEnvelope:
    """Send a notification to every user in the target roles or id list"""
    notification, target_users = await service.create_notification(claims.user_id, request)
    return NotificationCreateEnvelope(
        notification=NotificationResponse.model_validate(notification),
        target_users=target_users,
    )


@router.put("/notifications/{notification_id}/read", response_model=NotificationEnvelope)
async def mark_notification_read(
    notification_id: int,
    claims: TokenClaims = Depends(get_current_claims),
    service: NotificationService = Depends(get_notification_service)
) -> NotificationEnvelope:
    notification = await service.mark_read(claims.user_id, notification_id)
    return NotificationEnvelope(notification=NotificationResponse.model_validate(notification))


# Chats

@router.get("/chats", response_model=ChatListEnvelope)
async def list_chats(
    claims: TokenClaims = Depends(get_current_claims),
    service: ChatService = Depends(get_chat_service)
) -> ChatListEnvelope:
    return ChatListEnvelope(chats=await service.list_chats(claims.user_id))


@router.post("/chats", response_model=ChatEnvelope, status_code=status.HTTP_201_CREATED)
async def create_chat(
    request: ChatCreate,
    response: Response,
    claims: TokenClaims = Depends(get_current_claims),
    service: ChatService = Depends(get_chat_service)
) -> ChatEnvelope:
    """Open a chat; an existing direct chat with the same user is returned instead"""
    chat, created = await service.create_chat(claims.user_id, request)
    if not created:
        response.status_code = status.HTTP_200_OK
    return ChatEnvelope(chat=chat)


@router.get("/chats/{chat_id}", response_model=ChatMessagesEnvelope)
async def get_chat(
    chat_id: int,
    claims: TokenClaims = Depends(get_current_claims),
    service: ChatService = Depends(get_chat_service)
) -> ChatMessagesEnvelope:
    chat, messages = await service.get_chat_messages(claims.user_id, chat_id)
    return ChatMessagesEnvelope(
        chat=chat,
        messages=[MessageResponse.model_validate(message) for message in messages],
    )


@router.post("/messages", response_model=MessageEnvelope, status_code=status.HTTP_201_CREATED)
async def post_message(
    request: MessageCreate,
    claims: TokenClaims = Depends(get_current_claims),
    service: ChatService = Depends(get_chat_service)
) -> MessageEnvelope:
    message = await service.post_message(claims.user_id, request)
    return MessageEnvelope(message=MessageResponse.model_validate(message))
