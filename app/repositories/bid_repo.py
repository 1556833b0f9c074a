# app/repositories/bid_repo.py

from sqlalchemy import case, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy.orm import selectinload
from typing import Dict, List, Optional

from app.models.bid import Bid

# 交付天數區間 (左閉右開)
DELIVERY_TIME_BUCKETS = [
    ("0-7", 0, 7),
    ("7-15", 7, 15),
    ("15-30", 15, 30),
    ("30+", 30, None),
]

class BidRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_bid_by_id(self, bid_id: str) -> Optional[Bid]:
        """
        透過 ID 獲取單一出價
        """
        stmt = select(Bid).where(Bid.bid_id == bid_id).execution_options(populate_existing=True)
        result = await self.db.execute(stmt)
        return result.scalars().first()

    async def get_bids_by_project_id(self, project_id: str) -> List[Bid]:
        """
        獲取特定案件的所有出價 (雇主檢視用，新 -> 舊)
        """
        stmt = select(Bid).where(Bid.project_id == project_id).options(
            # 效能優化：一併載入出價者，避免 N+1 查詢
            selectinload(Bid.freelancer)
        ).order_by(Bid.created_at.desc())
        
        result = await self.db.execute(stmt)
        return result.scalars().all()

    async def get_bids_by_freelancer_id(self, freelancer_id: str) -> List[Bid]:
        """
        獲取特定工作者的所有出價 (工作者檢視「我的出價」用)
        """
        stmt = select(Bid).where(Bid.freelancer_id == freelancer_id).options(
            # 載入關聯的案件資訊
            selectinload(Bid.project)
        ).order_by(Bid.created_at.desc())
        
        result = await self.db.execute(stmt)
        return result.scalars().all()

    async def create_bid(self, bid: Bid) -> Bid:
        """
        新增出價 (commit 由 Service 層執行)
        """
        self.db.add(bid)
        await self.db.flush()
        return bid

    async def update_bid(self, bid: Bid) -> Bid:
        """
        送出出價的變更 (status、還價)
        """
        await self.db.flush()
        return bid

    # --- 出價統計 (聚合查詢) ---

    async def get_basic_stats(self, project_id: str) -> Dict[str, float]:
        stmt = select(
            func.count(Bid.bid_id),
            func.avg(Bid.amount),
            func.min(Bid.amount),
            func.max(Bid.amount),
            func.avg(Bid.delivery_time),
        ).where(Bid.project_id == project_id)
        total, avg_amount, min_amount, max_amount, avg_delivery = (await self.db.execute(stmt)).one()
        return {
            "total_bids": total or 0,
            "average_amount": float(avg_amount or 0),
            "min_amount": float(min_amount or 0),
            "max_amount": float(max_amount or 0),
            "average_delivery_time": float(avg_delivery or 0),
        }

    async def get_status_distribution(self, project_id: str) -> Dict[str, int]:
        stmt = (
            select(Bid.status, func.count(Bid.bid_id))
            .where(Bid.project_id == project_id)
            .group_by(Bid.status)
        )
        result = await self.db.execute(stmt)
        return {
            (status.value if hasattr(status, "value") else status): count
            for status, count in result.all()
        }

    async def get_delivery_time_ranges(self, project_id: str) -> Dict[str, int]:
        whens = []
        for label, lower, upper in DELIVERY_TIME_BUCKETS:
            if upper is None:
                whens.append((Bid.delivery_time >= lower, label))
            else:
                whens.append(((Bid.delivery_time >= lower) & (Bid.delivery_time < upper), label))
        bucket = case(*whens, else_="other").label("bucket")

        stmt = (
            select(bucket, func.count(Bid.bid_id))
            .where(Bid.project_id == project_id)
            .group_by(bucket)
        )
        result = await self.db.execute(stmt)
        counts = {label: 0 for label, _, _ in DELIVERY_TIME_BUCKETS}
        counts.update({label: count for label, count in result.all()})
        return counts
