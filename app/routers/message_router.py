# app/routers/message_router.py

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List

from app.core.database import get_db
from app.core.security import get_current_user
from app.models.user import User
from app.services.message_service import MessageService
from app.schemas.message_schema import ConversationOut, ConversationPageOut, MessageCreate, MessageOut

router = APIRouter(
    prefix="/messages",
    tags=["Messaging"],
    dependencies=[Depends(get_current_user)]
)

@router.post("/", response_model=MessageOut, status_code=status.HTTP_201_CREATED, summary="傳送私訊")
async def send_message(
    data: MessageCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    傳送私訊給其他使用者，對方若有連線 /ws/notifications 會即時收到 new_message。
    """
    return await MessageService(db).send_message(data, current_user)

@router.get("/conversations", response_model=List[ConversationOut], summary="對話列表")
async def list_conversations(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await MessageService(db).list_conversations(current_user)

@router.get("/conversation/{user_id}", response_model=ConversationPageOut, summary="與某位使用者的對話")
async def get_conversation(
    user_id: str,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    分頁 (新 -> 舊)。對方傳來的未讀訊息會被標記為已讀。
    """
    messages, total, total_pages = await MessageService(db).get_conversation(
        current_user, user_id, page=page, limit=limit
    )
    return ConversationPageOut(
        messages=messages,
        current_page=page,
        total_pages=total_pages,
        total=total,
    )

@router.patch("/{message_id}/read", response_model=MessageOut)
async def mark_message_read(
    message_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await MessageService(db).mark_message_as_read(message_id, current_user)

@router.delete("/{message_id}", response_model=MessageOut)
async def delete_message(
    message_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    寄件者刪除訊息 (保留紀錄，內容改為 [Message deleted])。
    """
    return await MessageService(db).delete_message(message_id, current_user)
