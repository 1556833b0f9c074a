# app/models/review.py
import uuid
from sqlalchemy import Column, String, INT, BOOLEAN, CHAR, ForeignKey, DateTime, CheckConstraint
from sqlalchemy.orm import relationship
from app.core.database import Base, utc_now

class Review(Base):
    __tablename__ = "reviews"
    __table_args__ = (
        CheckConstraint("rating >= 1 AND rating <= 5", name="ck_reviews_rating_range"),
    )

    review_id = Column(CHAR(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    project_id = Column(CHAR(36), ForeignKey("projects.project_id", ondelete="CASCADE"), nullable=False, index=True)
    client_id = Column(CHAR(36), ForeignKey("users.user_id"), nullable=False, index=True)
    freelancer_id = Column(CHAR(36), ForeignKey("users.user_id"), nullable=False, index=True)

    rating = Column(INT, nullable=False)
    comment = Column(String(500), nullable=False)
    freelancer_response = Column(String(500), nullable=True)
    is_public = Column(BOOLEAN, default=True, nullable=False)

    created_at = Column(DateTime, default=utc_now)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now)

    client = relationship("User", foreign_keys=[client_id])
    project = relationship("Project")
