# app/services/message_service.py

import logging
import math
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Dict, List, Tuple

from app.core.exceptions import ForbiddenError, InvalidStateError, NotFoundError
from app.core.websocket_manager import manager, user_topic
from app.models.message import DELETED_MESSAGE_CONTENT, Message
from app.models.user import User
from app.repositories.message_repo import MessageRepository
from app.repositories.project_repo import ProjectRepository
from app.repositories.user_repo import UserRepository
from app.schemas.message_schema import ConversationOut, LastMessageOut, MessageCreate

logger = logging.getLogger(__name__)

# 推播預覽的字數
PREVIEW_LENGTH = 30


def preview(content: str) -> str:
    if len(content) > PREVIEW_LENGTH:
        return content[:PREVIEW_LENGTH] + "..."
    return content


class MessageService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.message_repo = MessageRepository(db)
        self.user_repo = UserRepository(db)
        self.project_repo = ProjectRepository(db)

    async def _get_user(self, user_id: str) -> User:
        user = await self.user_repo.get_user_by_id(user_id)
        if not user:
            raise NotFoundError("使用者不存在")
        return user

    async def _get_message(self, message_id: str) -> Message:
        message = await self.message_repo.get_message_by_id(message_id)
        if not message:
            raise NotFoundError("訊息不存在")
        return message

    async def send_message(self, data: MessageCreate, sender: User) -> Message:
        """
        傳送私訊，commit 後推播 new_message 到對方的 user_{id} 頻道
        """
        if data.receiver_id == sender.user_id:
            raise InvalidStateError("無法傳送訊息給自己")
        await self._get_user(data.receiver_id)
        if data.project_id and not await self.project_repo.get_project_by_id(data.project_id):
            raise NotFoundError("案件不存在")

        message = Message(
            sender_id=sender.user_id,
            receiver_id=data.receiver_id,
            project_id=data.project_id,
            content=data.content,
            is_read=False,
        )
        await self.message_repo.create_message(message)
        await self.db.commit()
        logger.info(f"Message {message.message_id} sent from {sender.user_id} to {data.receiver_id}")

        await manager.publish(user_topic(data.receiver_id), "new_message", {
            "message_id": message.message_id,
            "sender_id": sender.user_id,
            "content": preview(data.content),
        })
        # 重新載入 sender / receiver
        return await self.message_repo.get_message_by_id(message.message_id)

    async def get_conversation(
        self, user: User, other_user_id: str, page: int = 1, limit: int = 20
    ) -> Tuple[List[Message], int, int]:
        """
        與某位使用者的對話 (新 -> 舊)，對方傳來的未讀訊息一併標記為已讀
        回傳 (訊息列表, 總筆數, 總頁數)
        """
        await self._get_user(other_user_id)

        updated = await self.message_repo.mark_conversation_as_read(
            sender_id=other_user_id, receiver_id=user.user_id
        )
        if updated:
            await self.db.commit()

        messages, total = await self.message_repo.get_conversation(user.user_id, other_user_id, page, limit)
        total_pages = math.ceil(total / limit) if limit else 0
        return messages, total, total_pages

    async def list_conversations(self, user: User) -> List[ConversationOut]:
        """
        對話列表：每位對象一列，依最後一則訊息時間排序 (新 -> 舊)
        """
        messages = await self.message_repo.list_messages_for_user(user.user_id)

        last_messages: Dict[str, Message] = {}
        unread_counts: Dict[str, int] = {}
        for message in messages:
            other_id = message.receiver_id if message.sender_id == user.user_id else message.sender_id
            # 訊息已依時間由新到舊排序，第一次出現的就是最後一則
            last_messages.setdefault(other_id, message)
            if message.receiver_id == user.user_id and not message.is_read:
                unread_counts[other_id] = unread_counts.get(other_id, 0) + 1

        users = await self.message_repo.get_users_by_ids(list(last_messages))
        names = {u.user_id: u.name for u in users}

        return [
            ConversationOut(
                user_id=other_id,
                user_name=names.get(other_id, "Unknown User"),
                last_message=LastMessageOut(
                    content=message.content,
                    sender_id=message.sender_id,
                    created_at=message.created_at,
                ),
                unread_count=unread_counts.get(other_id, 0),
            )
            for other_id, message in last_messages.items()
        ]

    async def mark_message_as_read(self, message_id: str, user: User) -> Message:
        """
        只有收件者可以標記已讀
        """
        message = await self._get_message(message_id)
        if message.receiver_id != user.user_id:
            raise ForbiddenError("無權操作此訊息")
        if not message.is_read:
            message.is_read = True
            await self.db.commit()
        return message

    async def delete_message(self, message_id: str, user: User) -> Message:
        """
        只有寄件者可以刪除 (軟刪除：內容改為固定字樣)
        """
        message = await self._get_message(message_id)
        if message.sender_id != user.user_id:
            raise ForbiddenError("無權刪除此訊息")
        message.content = DELETED_MESSAGE_CONTENT
        await self.db.commit()
        logger.info(f"Message {message_id} deleted by {user.user_id}")
        return message
