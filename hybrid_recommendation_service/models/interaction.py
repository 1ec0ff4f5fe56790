"""Append-only interaction log table"""
from datetime import UTC, datetime

from sqlalchemy import JSON, Column, DateTime, Index, Integer, String

from hybrid_recommendation_service.models.base import Base


class InteractionRecord(Base):
    """One interaction event.

    Profile and content ids are not foreign keys: the log may reference
    content that has since been removed from the catalog.
    """

    __tablename__ = "interactions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    profile_id = Column(String(64), nullable=False)
    content_id = Column(String(64), nullable=False)
    type = Column(String(20), nullable=False)
    details = Column("metadata", JSON, nullable=True)

    created_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)

    __table_args__ = (
        Index("idx_interaction_profile", "profile_id"),
        Index("idx_interaction_content", "content_id"),
    )

    def __repr__(self):
        return (
            f"<InteractionRecord(profile_id='{self.profile_id}', content_id='{self.content_id}', "
            f"type='{self.type}')>"
        )
