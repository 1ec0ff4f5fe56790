"""Profile catalog table"""
from datetime import UTC, datetime

from sqlalchemy import JSON, Column, DateTime, String

from hybrid_recommendation_service.models.base import Base


class ProfileRecord(Base):
    """A viewer profile and its ordered genre preferences."""

    __tablename__ = "profiles"

    profile_id = Column(String(64), primary_key=True)
    name = Column(String(255), nullable=True)
    preferred_genres = Column(JSON, nullable=True)

    synced_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)

    def __repr__(self):
        return f"<ProfileRecord(profile_id='{self.profile_id}', name='{self.name}')>"
