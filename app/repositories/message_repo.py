# app/repositories/message_repo.py

from sqlalchemy import and_, func, or_, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from typing import List, Optional, Tuple

from app.models.message import Message
from app.models.user import User


class MessageRepository:
    """
    私訊資料表 (只 flush，commit 由 Service 層執行)
    """
    def __init__(self, db: AsyncSession):
        self.db = db

    @staticmethod
    def _between(user_id: str, other_user_id: str):
        # 兩人之間 (雙向) 的訊息
        return or_(
            and_(Message.sender_id == user_id, Message.receiver_id == other_user_id),
            and_(Message.sender_id == other_user_id, Message.receiver_id == user_id),
        )

    async def create_message(self, message: Message) -> Message:
        self.db.add(message)
        await self.db.flush()
        return message

    async def get_message_by_id(self, message_id: str) -> Optional[Message]:
        stmt = (
            select(Message)
            .where(Message.message_id == message_id)
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(stmt)
        return result.scalars().first()

    async def get_conversation(
        self, user_id: str, other_user_id: str, page: int = 1, limit: int = 20
    ) -> Tuple[List[Message], int]:
        """
        兩人之間的對話 (新 -> 舊，分頁)，回傳 (訊息列表, 總筆數)
        """
        condition = self._between(user_id, other_user_id)
        total = (await self.db.execute(select(func.count(Message.message_id)).where(condition))).scalar_one()

        stmt = (
            select(Message)
            .where(condition)
            .order_by(Message.created_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(stmt)
        return result.scalars().all(), total

    async def mark_conversation_as_read(self, sender_id: str, receiver_id: str) -> int:
        """
        將 sender 傳給 receiver 的未讀訊息設為已讀，回傳更新筆數
        """
        stmt = (
            update(Message)
            .where(
                Message.sender_id == sender_id,
                Message.receiver_id == receiver_id,
                Message.is_read.is_(False),
            )
            .values(is_read=True)
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(stmt)
        return result.rowcount

    async def list_messages_for_user(self, user_id: str) -> List[Message]:
        """
        使用者收發過的所有訊息 (新 -> 舊)，用於整理對話列表
        """
        stmt = (
            select(Message)
            .where(or_(Message.sender_id == user_id, Message.receiver_id == user_id))
            .order_by(Message.created_at.desc())
        )
        result = await self.db.execute(stmt)
        return result.scalars().all()

    async def get_users_by_ids(self, user_ids: List[str]) -> List[User]:
        if not user_ids:
            return []
        result = await self.db.execute(select(User).where(User.user_id.in_(user_ids)))
        return result.scalars().all()
