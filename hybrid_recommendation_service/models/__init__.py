"""SQLAlchemy models"""

from hybrid_recommendation_service.models.base import Base
from hybrid_recommendation_service.models.content_item import ContentItemRecord
from hybrid_recommendation_service.models.interaction import InteractionRecord
from hybrid_recommendation_service.models.profile import ProfileRecord

__all__ = [
    "Base",
    "ContentItemRecord",
    "InteractionRecord",
    "ProfileRecord",
]
