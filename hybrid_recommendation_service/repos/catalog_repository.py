"""Repository for the content catalog, profile catalog and interaction log."""

import logging
from datetime import UTC, datetime
from typing import Dict, List

from sqlalchemy.orm import Session

from hybrid_recommendation_service.ml.types import ContentItem, Interaction, Profile
from hybrid_recommendation_service.models import (
    ContentItemRecord,
    InteractionRecord,
    ProfileRecord,
)

logger = logging.getLogger(__name__)


def _record_to_content_item(record: ContentItemRecord) -> ContentItem:
    return ContentItem.from_dict({
        "id": record.content_id,
        "title": record.title,
        "genres": record.genres,
        "year": record.year,
        "type": record.type,
        "popularity": record.popularity,
        "rating": record.rating,
    })


def _record_to_profile(record: ProfileRecord) -> Profile:
    return Profile(
        id=str(record.profile_id),
        preferred_genres=tuple(record.preferred_genres or ()),
        name=record.name,  # type: ignore[arg-type]
    )


def _parse_timestamp(value) -> datetime:
    """Event time of an exported interaction; now when absent or unreadable."""
    if value is None:
        return datetime.now(UTC)
    try:
        return datetime.fromisoformat(str(value))
    except ValueError:
        logger.warning(f"Unreadable interaction timestamp {value!r}; using current time")
        return datetime.now(UTC)


def _record_to_interaction(record: InteractionRecord) -> Interaction:
    return Interaction(
        profile_id=str(record.profile_id),
        content_id=str(record.content_id),
        type=str(record.type),
        timestamp=record.created_at.isoformat() if record.created_at is not None else None,
        metadata=dict(record.details or {}),
    )


class CatalogRepository:
    """
    Repository over the three catalog tables.
    """

    def __init__(self, db: Session):
        self.db = db

    # ===== SNAPSHOT LOADS =====

    def load_content_catalog(self) -> List[ContentItem]:
        """Every content item, ordered by content id."""
        records = self.db.query(ContentItemRecord).order_by(ContentItemRecord.content_id).all()
        return [_record_to_content_item(record) for record in records]

    def load_profile_catalog(self) -> List[Profile]:
        """Every profile, ordered by profile id."""
        records = self.db.query(ProfileRecord).order_by(ProfileRecord.profile_id).all()
        return [_record_to_profile(record) for record in records]

    def load_interaction_log(self) -> List[Interaction]:
        """The full interaction log in insertion order."""
        records = self.db.query(InteractionRecord).order_by(InteractionRecord.id).all()
        return [_record_to_interaction(record) for record in records]

    # ===== WRITES =====

    def store_content_item(self, item: ContentItem) -> ContentItemRecord:
        """
        Store or update a content item.

        Args:
            item: Content item

        Returns:
            ContentItemRecord object
        """
        existing = self.db.query(ContentItemRecord).filter(
            ContentItemRecord.content_id == item.id
        ).first()

        if existing:
            existing.title = item.title  # type: ignore[assignment]
            existing.genres = list(item.genres)  # type: ignore[assignment]
            existing.year = item.year  # type: ignore[assignment]
            existing.type = item.type.value  # type: ignore[assignment]
            existing.popularity = item.popularity  # type: ignore[assignment]
            existing.rating = item.rating  # type: ignore[assignment]
            existing.synced_at = datetime.now(UTC)  # type: ignore[assignment]
            record = existing
        else:
            record = ContentItemRecord(
                content_id=item.id,
                title=item.title,
                genres=list(item.genres),
                year=item.year,
                type=item.type.value,
                popularity=item.popularity,
                rating=item.rating,
                synced_at=datetime.now(UTC),
            )
            self.db.add(record)

        self.db.commit()
        self.db.refresh(record)

        return record

    def bulk_store_content(self, items: List[ContentItem], batch_size: int = 100) -> int:
        """
        Replace the content catalog.

        Args:
            items: Content items
            batch_size: Batch size for inserts

        Returns:
            Number of items stored
        """
        logger.info("Clearing existing content catalog...")
        self.db.query(ContentItemRecord).delete()
        self.db.commit()

        records = [
            ContentItemRecord(
                content_id=item.id,
                title=item.title,
                genres=list(item.genres),
                year=item.year,
                type=item.type.value,
                popularity=item.popularity,
                rating=item.rating,
                synced_at=datetime.now(UTC),
            )
            for item in items
        ]

        count = 0
        for i in range(0, len(records), batch_size):
            batch = records[i : i + batch_size]
            self.db.bulk_save_objects(batch)
            self.db.commit()
            count += len(batch)

        logger.info(f"✓ Stored {count} content items")
        return count

    def store_profile(self, profile: Profile) -> ProfileRecord:
        """
        Store or update a profile.

        Args:
            profile: Profile

        Returns:
            ProfileRecord object
        """
        existing = self.db.query(ProfileRecord).filter(
            ProfileRecord.profile_id == profile.id
        ).first()

        if existing:
            existing.name = profile.name  # type: ignore[assignment]
            existing.preferred_genres = list(profile.preferred_genres)  # type: ignore[assignment]
            existing.synced_at = datetime.now(UTC)  # type: ignore[assignment]
            record = existing
        else:
            record = ProfileRecord(
                profile_id=profile.id,
                name=profile.name,
                preferred_genres=list(profile.preferred_genres),
                synced_at=datetime.now(UTC),
            )
            self.db.add(record)

        self.db.commit()
        self.db.refresh(record)

        return record

    def record_interaction(self, interaction: Interaction) -> InteractionRecord:
        """
        Append an interaction to the log.

        The interaction's own timestamp is kept when it has one.

        Args:
            interaction: Interaction event

        Returns:
            InteractionRecord object
        """
        record = InteractionRecord(
            profile_id=interaction.profile_id,
            content_id=interaction.content_id,
            type=interaction.type,
            details=dict(interaction.metadata) or None,
            created_at=_parse_timestamp(interaction.timestamp),
        )
        self.db.add(record)
        self.db.commit()
        self.db.refresh(record)

        logger.debug(
            f"Recorded {interaction.type!r} interaction for profile {interaction.profile_id!r} "
            f"on content {interaction.content_id!r}"
        )
        return record

    # ===== COUNTS =====

    def counts(self) -> Dict[str, int]:
        """Row counts for the three tables."""
        return {
            "content_items": self.db.query(ContentItemRecord).count(),
            "profiles": self.db.query(ProfileRecord).count(),
            "interactions": self.db.query(InteractionRecord).count(),
        }
