# app/core/exceptions.py
# 業務錯誤分類：全部繼承 HTTPException，Service 層直接 raise，由 FastAPI 轉成回應
from typing import Optional
from fastapi import HTTPException, status


class NotFoundError(HTTPException):
    """引用的資料不存在"""
    def __init__(self, detail: str = "資料不存在"):
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class ForbiddenError(HTTPException):
    """操作者與資料之間沒有必要的關係 (非擁有者、角色不符)"""
    def __init__(self, detail: str = "你沒有權限執行此操作"):
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


class InvalidStateError(HTTPException):
    """目前狀態不允許此操作"""
    def __init__(self, detail: str = "目前狀態無法執行此操作"):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class InvalidTransitionError(HTTPException):
    """狀態轉移不在允許的轉移表中，回報目前狀態與嘗試的狀態"""
    def __init__(self, current_status: str, attempted_status: str):
        self.current_status = current_status
        self.attempted_status = attempted_status
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail={
                "message": f"不合法的狀態轉移: {current_status} -> {attempted_status}",
                "current_status": current_status,
                "attempted_status": attempted_status,
            },
        )


class InvalidRangeError(HTTPException):
    """數值參數超出範圍"""
    def __init__(self, detail: str = "數值超出允許範圍"):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class PersistenceFailureError(HTTPException):
    """資料庫存取失敗"""
    def __init__(self, detail: Optional[str] = None):
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=detail or "資料庫操作失敗",
        )
