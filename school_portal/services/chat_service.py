from typing import Dict, List, Optional, Tuple

from sqlalchemy import and_, func, or_, select
from sqlalchemy.orm import selectinload

from school_portal.core.errors import NotFoundError, PermissionDenied, ValidationError
from school_portal.core.logging import logger
from school_portal.models import Chat, ChatParticipant, Message, User
from school_portal.schemas.messaging.requests import ChatCreate, MessageCreate
from school_portal.schemas.messaging.responses import ChatResponse, MessageResponse
from school_portal.services.base_service import BaseService
from school_portal.utils.dates import utcnow

CHAT_LOAD_OPTIONS = (
    selectinload(Chat.participants).selectinload(ChatParticipant.user),
)


class ChatService(BaseService):
    """Direct and group conversations between users"""

    async def _load_chat(self, chat_id: int) -> Chat:
        result = await self.db.execute(
            select(Chat)
            .where(Chat.id == chat_id)
            .options(*CHAT_LOAD_OPTIONS)
            .execution_options(populate_existing=True)
        )
        chat = result.scalar_one_or_none()
        if not chat:
            raise NotFoundError("Chat not found")
        return chat

    @staticmethod
    def _membership(chat: Chat, user_id: int) -> ChatParticipant:
        for participant in chat.participants:
            if participant.user_id == user_id and participant.is_active:
                return participant
        raise PermissionDenied("You are not a participant of this chat")

    async def _last_messages(self, chat_ids: List[int]) -> Dict[int, Message]:
        if not chat_ids:
            return {}
        newest = (
            select(func.max(Message.id))
            .where(Message.chat_id.in_(chat_ids))
            .group_by(Message.chat_id)
        )
        result = await self.db.execute(
            select(Message).where(Message.id.in_(newest)).options(selectinload(Message.sender))
        )
        return {message.chat_id: message for message in result.scalars().all()}

    async def _unread_counts(self, user_id: int, chat_ids: List[int]) -> Dict[int, int]:
        """Messages from others newer than the user's read marker, per chat"""
        if not chat_ids:
            return {}
        result = await self.db.execute(
            select(Message.chat_id, func.count(Message.id))
            .join(
                ChatParticipant,
                and_(
                    ChatParticipant.chat_id == Message.chat_id,
                    ChatParticipant.user_id == user_id,
                ),
            )
            .where(Message.chat_id.in_(chat_ids))
            .where(
                or_(
                    ChatParticipant.last_read_message_id.is_(None),
                    Message.id > ChatParticipant.last_read_message_id,
                )
            )
            .where(or_(Message.sender_id.is_(None), Message.sender_id != user_id))
            .group_by(Message.chat_id)
        )
        return dict(result.all())

    @staticmethod
    def _to_response(chat: Chat, last_message: Optional[Message], unread_count: int) -> ChatResponse:
        response = ChatResponse.model_validate(chat)
        response.last_message = MessageResponse.model_validate(last_message) if last_message else None
        response.unread_count = unread_count
        return response

    async def list_chats(self, user_id: int) -> List[ChatResponse]:
        result = await self.db.execute(
            select(Chat)
            .join(ChatParticipant, ChatParticipant.chat_id == Chat.id)
            .where(ChatParticipant.user_id == user_id, ChatParticipant.is_active.is_(True))
            .options(*CHAT_LOAD_OPTIONS)
            .order_by(Chat.updated_at.desc(), Chat.id.desc())
        )
        chats = list(result.scalars().all())
        chat_ids = [chat.id for chat in chats]

        last_messages = await self._last_messages(chat_ids)
        unread = await self._unread_counts(user_id, chat_ids)
        return [
            self._to_response(chat, last_messages.get(chat.id), unread.get(chat.id, 0))
            for chat in chats
        ]

    async def get_chat_messages(self, user_id: int, chat_id: int) -> Tuple[ChatResponse, List[Message]]:
        """Full message history; opening a chat marks it read for the user"""
        chat = await self._load_chat(chat_id)
        participant = self._membership(chat, user_id)

        result = await self.db.execute(
            select(Message)
            .where(Message.chat_id == chat_id)
            .options(selectinload(Message.sender))
            .order_by(Message.id)
        )
        messages = list(result.scalars().all())

        if messages and participant.last_read_message_id != messages[-1].id:
            async with self.transaction():
                participant.last_read_message_id = messages[-1].id

        return self._to_response(chat, messages[-1] if messages else None, 0), messages

    async def create_chat(self, user_id: int, data: ChatCreate) -> Tuple[ChatResponse, bool]:
        """
        Open a chat between the requester and ``participant_ids``.

        A direct chat between the same two users is reused. Returns the chat
        and whether it was newly created.
        """
        member_ids = list(dict.fromkeys([user_id, *data.participant_ids]))
        found = set((await self.db.execute(
            select(User.id).where(User.id.in_(member_ids), User.is_active.is_(True))
        )).scalars().all())
        missing = [member_id for member_id in member_ids if member_id not in found]
        if missing:
            raise ValidationError(f"Invalid participant: {missing[0]}")

        is_group = data.is_group or len(member_ids) > 2
        if not is_group:
            if len(member_ids) < 2:
                raise ValidationError("A chat needs at least one other participant")
            existing_id = await self._find_direct_chat(*member_ids)
            if existing_id is not None:
                chats = await self.list_chats(user_id)
                return next(chat for chat in chats if chat.id == existing_id), False

        async with self.transaction():
            chat = Chat(name=data.name, is_group=is_group, created_by=user_id)
            chat.participants = [ChatParticipant(user_id=member_id, is_active=True) for member_id in member_ids]
            self.db.add(chat)

        logger.info(f"User {user_id} created chat {chat.id} with {len(member_ids)} participant(s)")
        return self._to_response(await self._load_chat(chat.id), None, 0), True

    async def _find_direct_chat(self, first_user_id: int, second_user_id: int) -> Optional[int]:
        members = (
            select(ChatParticipant.chat_id)
            .where(ChatParticipant.user_id.in_([first_user_id, second_user_id]))
            .group_by(ChatParticipant.chat_id)
            .having(func.count(ChatParticipant.id) == 2)
        )
        return await self.db.scalar(
            select(Chat.id)
            .where(Chat.is_group.is_(False), Chat.id.in_(members))
            .order_by(Chat.id)
            .limit(1)
        )

    async def post_message(self, user_id: int, data: MessageCreate) -> Message:
        chat = await self._load_chat(data.chat_id)
        participant = self._membership(chat, user_id)

        async with self.transaction():
            message = Message(
                chat_id=chat.id,
                sender_id=user_id,
                content=data.content.strip(),
                message_type=data.message_type,
            )
            self.db.add(message)
            await self.db.flush()
            participant.last_read_message_id = message.id
            chat.updated_at = utcnow()

        logger.info(f"User {user_id} posted message {message.id} in chat {chat.id}")
        result = await self.db.execute(
            select(Message)
            .where(Message.id == message.id)
            .options(selectinload(Message.sender))
            .execution_options(populate_existing=True)
        )
        return result.scalar_one()
