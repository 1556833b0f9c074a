# app/models/bid.py
import enum
import uuid
from sqlalchemy import Column, TEXT, INT, Float, DateTime, ForeignKey, Enum, CHAR, String
from sqlalchemy.orm import relationship
from app.core.database import Base, utc_now

# 出價狀態
class BidStatusEnum(str, enum.Enum):
    pending = "pending"
    accepted = "accepted"
    rejected = "rejected"
    countered = "countered"

class Bid(Base):
    __tablename__ = "bids"

    bid_id = Column(CHAR(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    
    project_id = Column(CHAR(36), ForeignKey("projects.project_id", ondelete="CASCADE"), nullable=False, index=True)
    freelancer_id = Column(CHAR(36), ForeignKey("users.user_id"), nullable=False, index=True)
    
    amount = Column(Float, nullable=False)
    proposal = Column(TEXT, nullable=False)
    delivery_time = Column(INT, nullable=False) # 天數 (1~365)
    status = Column(
        Enum(BidStatusEnum, values_callable=lambda obj: [e.value for e in obj], name="bid_status_enum"),
        default=BidStatusEnum.pending,
        nullable=False,
        index=True,
    )

    # --- 還價 (三個欄位同時存在或同時為空) ---
    counter_offer_amount = Column(Float, nullable=True)
    counter_offer_message = Column(String(500), nullable=True)
    counter_offer_at = Column(DateTime, nullable=True)
    
    created_at = Column(DateTime, default=utc_now)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now)

    project = relationship("Project")
    freelancer = relationship("User")

    @property
    def counter_offer(self) -> dict | None:
        """以單一物件呈現還價 (供 Pydantic 序列化)"""
        if self.counter_offer_amount is None:
            return None
        return {
            "amount": self.counter_offer_amount,
            "message": self.counter_offer_message,
            "timestamp": self.counter_offer_at,
        }

    def set_counter_offer(self, amount: float, message: str) -> None:
        self.counter_offer_amount = amount
        self.counter_offer_message = message
        self.counter_offer_at = utc_now()
        self.status = BidStatusEnum.countered

    def clear_counter_offer(self) -> None:
        self.counter_offer_amount = None
        self.counter_offer_message = None
        self.counter_offer_at = None
