"""Catalog store adapters that supply read snapshots to the recommendation engine."""
import json
import logging
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Protocol

from sqlalchemy.orm import Session

from hybrid_recommendation_service.config import get_catalog_source
from hybrid_recommendation_service.ml.types import ContentItem, Interaction, Profile
from hybrid_recommendation_service.repos import CatalogRepository

logger = logging.getLogger(__name__)


class CatalogStore(Protocol):
    """Anything that can hand the engine a point-in-time catalog snapshot."""

    def load_content_catalog(self) -> List[ContentItem]:
        ...

    def load_profile_catalog(self) -> List[Profile]:
        ...

    def load_interaction_log(self) -> List[Interaction]:
        ...


class DatabaseCatalogStore:
    """Loads snapshots through CatalogRepository, one session per load."""

    def __init__(self, session_factory: Optional[Callable[[], Session]] = None):
        if session_factory is None:
            from hybrid_recommendation_service.models.database import SessionLocal
            session_factory = SessionLocal
        self.session_factory = session_factory

    def _load(self, loader: Callable[[CatalogRepository], List[Any]]) -> List[Any]:
        db = self.session_factory()
        try:
            return loader(CatalogRepository(db))
        finally:
            db.close()

    def load_content_catalog(self) -> List[ContentItem]:
        return self._load(lambda repo: repo.load_content_catalog())

    def load_profile_catalog(self) -> List[Profile]:
        return self._load(lambda repo: repo.load_profile_catalog())

    def load_interaction_log(self) -> List[Interaction]:
        return self._load(lambda repo: repo.load_interaction_log())


class JsonFileCatalogStore:
    """
    Loads snapshots from a JSON document of the form
    ``{"content": [...], "profiles": [...], "interactions": [...]}``.

    A snapshot starts with load_content_catalog(), which re-reads the file so a
    refresh picks up edits. Profile and interaction loads slice the document
    parsed by that read, so one snapshot never mixes two versions of the file.
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        self._document: Optional[Dict[str, Any]] = None

    def _read_document(self) -> Dict[str, Any]:
        with open(self.path) as f:
            self._document = json.load(f)
        return self._document

    def _read_section(self, key: str, reload: bool = False) -> List[Dict[str, Any]]:
        document = self._document
        if reload or document is None:
            document = self._read_document()
        return list(document.get(key) or [])

    def load_content_catalog(self) -> List[ContentItem]:
        return [ContentItem.from_dict(doc) for doc in self._read_section("content", reload=True)]

    def load_profile_catalog(self) -> List[Profile]:
        return [Profile.from_dict(doc) for doc in self._read_section("profiles")]

    def load_interaction_log(self) -> List[Interaction]:
        return [Interaction.from_dict(doc) for doc in self._read_section("interactions")]


def get_catalog_store() -> CatalogStore:
    """
    Build the catalog store selected by CATALOG_SOURCE.

    Returns:
        DatabaseCatalogStore or CatalogDataLoader
    """
    source = get_catalog_source()

    if source == "service":
        from hybrid_recommendation_service.services.catalog_loader_service import CatalogDataLoader
        logger.info("Using catalog service for snapshots")
        return CatalogDataLoader()

    logger.info("Using database for snapshots")
    return DatabaseCatalogStore()
