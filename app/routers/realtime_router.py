# app/routers/realtime_router.py

import logging
from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.security import get_current_user_from_websocket_token
from app.core.websocket_manager import manager, project_topic, user_topic
from app.models.user import User
from app.repositories.project_repo import ProjectRepository

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Realtime"])


async def _keep_alive(websocket: WebSocket, topic: str, user: User, db: AsyncSession) -> None:
    """
    訂閱後只負責維持連線 (伺服器單向推播)，前端送來的訊息一律忽略
    """
    # 驗證完就歸還資料庫連線，訂閱期間不佔用連線池
    await db.close()
    await manager.connect(topic, user.user_id, websocket)
    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        manager.disconnect(topic, user.user_id, websocket)
    except Exception as e:
        logger.error(f"Unexpected error in WS {topic} for user {user.user_id}: {e}")
        manager.disconnect(topic, user.user_id, websocket)


@router.websocket("/ws/projects/{project_id}")
async def project_events(
    websocket: WebSocket,
    project_id: str,
    # 連線 URL: /ws/projects/{project_id}?token=<JWT_TOKEN>
    user: User = Depends(get_current_user_from_websocket_token),
    db: AsyncSession = Depends(get_db)
):
    """
    訂閱案件事件 (bid_received、counter_offer_accepted、project_status_changed ...)
    """
    project = await ProjectRepository(db).get_project_by_id(project_id)
    if not project:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason="Project not found")
        return

    await _keep_alive(websocket, project_topic(project_id), user, db)


@router.websocket("/ws/notifications")
async def notification_events(
    websocket: WebSocket,
    user: User = Depends(get_current_user_from_websocket_token),
    # 與 Token 驗證共用同一個 Session
    db: AsyncSession = Depends(get_db)
):
    """
    訂閱自己的站內通知 (user_{id})
    """
    await _keep_alive(websocket, user_topic(user.user_id), user, db)
