# app/core/websocket_manager.py
# 即時推播層：依 topic (project_{id} / user_{id}) 管理 WebSocket 連線

from fastapi import WebSocket
from typing import Any, Dict, List, Tuple
import json
import logging

logger = logging.getLogger(__name__)


def project_topic(project_id: str) -> str:
    return f"project_{project_id}"


def user_topic(user_id: str) -> str:
    return f"user_{user_id}"


# 連線管理器：維護 'topic' -> List[Tuple[user_id, WebSocket]] 的映射
class ConnectionManager:
    """
    管理 WebSocket 連線，並提供 publish(topic, event_name, payload)。
    推播是 best-effort：不等待確認、不重送、失敗的連線直接移除。
    """
    
    def __init__(self):
        # 結構: {topic: [(user_id, WebSocket)]}
        self.active_connections: Dict[str, List[Tuple[str, WebSocket]]] = {}

    async def connect(self, topic: str, user_id: str, websocket: WebSocket):
        await websocket.accept()
        if topic not in self.active_connections:
            self.active_connections[topic] = []
        self.active_connections[topic].append((user_id, websocket))
        logger.info(f"User {user_id} subscribed to {topic}. Total connections: {len(self.active_connections[topic])}")

    def disconnect(self, topic: str, user_id: str, websocket: WebSocket):
        connection = (user_id, websocket)
        connections = self.active_connections.get(topic)
        if not connections or connection not in connections:
            return # 可能是重複斷開
        connections.remove(connection)
        if not connections:
            del self.active_connections[topic]
        logger.info(f"User {user_id} unsubscribed from {topic}.")

    def subscriber_count(self, topic: str) -> int:
        return len(self.active_connections.get(topic, []))

    async def publish(self, topic: str, event_name: str, payload: Any) -> int:
        """
        將事件推播給訂閱該 topic 的所有連線，回傳成功送出的連線數。
        """
        connections = list(self.active_connections.get(topic, []))
        if not connections:
            return 0

        message = json.dumps({"event": event_name, "data": payload}, default=str, ensure_ascii=False)
        delivered = 0
        disconnected_clients = []
        for user_id, ws in connections:
            try:
                await ws.send_text(message)
                delivered += 1
            except Exception as e:
                logger.warning(f"Failed to push '{event_name}' to {user_id} on {topic}: {e}")
                disconnected_clients.append((user_id, ws))

        # 清理已斷開的連線
        for user_id, ws in disconnected_clients:
            self.disconnect(topic, user_id, ws)
        return delivered

# 實例化管理器 (全域單例)
manager = ConnectionManager()
