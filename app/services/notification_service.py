# app/services/notification_service.py

from sqlalchemy.ext.asyncio import AsyncSession
from typing import Dict, List, Mapping, Optional

from app.core.exceptions import ForbiddenError, NotFoundError
from app.core.notification_templates import NotificationTemplateStore, get_template_store
from app.core.websocket_manager import manager, user_topic
from app.models.user import User
from app.models.notification import Notification
from app.repositories.notification_repo import NotificationRepository
from app.repositories.user_repo import UserRepository
from app.schemas.notification_schema import NotificationOut, TemplateNotificationCreate

import logging

logger = logging.getLogger(__name__)

class NotificationService:
    def __init__(self, db: AsyncSession, template_store: Optional[NotificationTemplateStore] = None):
        self.db = db
        self.repo = NotificationRepository(db)
        self.template_store = template_store or get_template_store()
        # 已寫入 Session、尚未推播的通知 (commit 後才推播)
        self._outbox: List[Notification] = []

    async def create_notification(
        self,
        user_id: str,
        title: str,
        link_url: str,
        message: Optional[str] = None
    ) -> Notification:
        """
        (內部使用) 供其他 Service 呼叫的介面
        通知與業務資料在同一個交易中，呼叫端 commit 後再呼叫 dispatch_pending()
        """
        new_notification = Notification(
            user_id=user_id,
            title=title,
            message=message,
            link_url=link_url,
            is_read=False
        )
        logger.info(f"建立通知 for User ID: {user_id}, Title: {title}, Link: {link_url}")
        created = await self.repo.create_notification(new_notification)
        self._outbox.append(created)
        return created

    async def create_from_template(
        self,
        user_id: str,
        category: str,
        template_type: str,
        replacements: Mapping[str, object],
        link_url: str,
    ) -> Notification:
        """
        以範本產生站內通知：簡訊範本作為標題，Email 範本作為內容
        """
        title = self.template_store.render(category, template_type, "sms", replacements)
        message = self.template_store.render(category, template_type, "email", replacements)
        return await self.create_notification(
            user_id=user_id,
            title=title[:255],
            link_url=link_url,
            message=message,
        )

    async def dispatch_pending(self) -> int:
        """
        (commit 之後) 將本次交易建立的通知推播到 user_{id} 頻道
        推播失敗不影響已寫入的資料
        """
        pending, self._outbox = self._outbox, []
        delivered = 0
        for notification in pending:
            payload = NotificationOut.model_validate(notification).model_dump(mode="json")
            delivered += await manager.publish(user_topic(notification.user_id), "notification", payload)
        return delivered

    async def get_my_notifications(self, user: User, unread_only: bool = False) -> List[Notification]:
        """
        (API 用) 獲取當前登入者的通知列表
        """
        return await self.repo.list_notifications_by_user(user.user_id, unread_only=unread_only)

    async def mark_all_as_read(self, user: User) -> int:
        count = await self.repo.mark_all_as_read(user.user_id)
        await self.db.commit()
        return count

    async def mark_notification_as_read(
        self, 
        notification_id: str, 
        user: User
    ) -> Notification:
        """
        (API 用) 將通知設為已讀，並檢查權限
        """
        notification = await self.repo.get_notification_by_id(notification_id)
        
        if not notification:
            raise NotFoundError("通知不存在")
        
        # (重要) 只能標記自己的通知
        if notification.user_id != user.user_id:
            raise ForbiddenError("無權操作此通知")
            
        if notification.is_read:
            return notification # 已讀，直接回傳
            
        await self.repo.mark_as_read(notification)
        await self.db.commit()
        return notification

    # --- 範本管理 (管理員) ---

    def list_templates(self) -> Dict[str, Dict[str, Dict[str, str]]]:
        return self.template_store.list_templates()

    def update_template(self, category: str, template_type: str, channel: str, content: str) -> Dict[str, str]:
        return self.template_store.update_template(category, template_type, channel, content)

    async def send_template_notification(self, data: TemplateNotificationCreate) -> Notification:
        """
        (管理員) 以範本發送站內通知給指定使用者
        """
        user = await UserRepository(self.db).get_user_by_id(data.user_id)
        if not user:
            raise NotFoundError("使用者不存在")

        notification = await self.create_from_template(
            user_id=user.user_id,
            category=data.category,
            template_type=data.type,
            replacements=data.replacements,
            link_url=data.link_url or "/notifications",
        )
        await self.db.commit()
        await self.dispatch_pending()
        return notification
