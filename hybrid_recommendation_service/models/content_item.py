"""Content catalog table"""
from datetime import UTC, datetime

from sqlalchemy import JSON, Column, DateTime, Float, Integer, String

from hybrid_recommendation_service.models.base import Base


class ContentItemRecord(Base):
    """One movie or series in the content catalog."""

    __tablename__ = "content_items"

    content_id = Column(String(64), primary_key=True)
    title = Column(String(255), nullable=True)
    genres = Column(JSON, nullable=True)
    year = Column(Integer, nullable=True)
    type = Column(String(20), nullable=False, default="movie")
    popularity = Column(Float, nullable=True)
    rating = Column(Float, nullable=True)

    synced_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)

    def __repr__(self):
        return f"<ContentItemRecord(content_id='{self.content_id}', title='{self.title}')>"
