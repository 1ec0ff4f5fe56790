"""Shared test fixtures and configuration for pytest."""
import os

# Keep module-level engine creation off MySQL during test collection
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

import json
import pytest
from pathlib import Path
from unittest.mock import Mock
from typing import Dict, List
import tempfile
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from hybrid_recommendation_service.ml.types import ContentItem, Interaction, Profile
from hybrid_recommendation_service.models.base import Base
from hybrid_recommendation_service.services.hybrid_recommendation_service import (
    HybridRecommendationService,
)


# ===== Database Fixtures =====

@pytest.fixture(scope="function")
def test_db_engine():
    """Create an in-memory SQLite database engine for testing."""
    engine = create_engine("sqlite:///:memory:", echo=False)
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture(scope="function")
def test_db_session(test_db_engine):
    """Create a database session for testing."""
    SessionLocal = sessionmaker(bind=test_db_engine)
    session = SessionLocal()
    yield session
    session.close()


# ===== Sample Data Fixtures =====

@pytest.fixture
def sample_content_docs() -> List[Dict]:
    """Content catalog documents as the catalog store returns them."""
    return [
        {'id': 'm1', 'title': 'Heat', 'genres': ['Action', 'Crime', 'Drama'],
         'year': 1995, 'type': 'movie', 'popularity': 0.8, 'rating': 8.3},
        {'id': 'm2', 'title': 'Collateral', 'genres': ['Action', 'Crime'],
         'year': 2004, 'type': 'movie', 'popularity': 0.6, 'rating': 7.5},
        {'id': 's1', 'title': 'The Wire', 'genres': ['Crime', 'Drama'],
         'year': 2002, 'type': 'series', 'popularity': 0.9, 'rating': 9.3},
        {'id': 's2', 'title': 'The Office', 'genres': ['Comedy'],
         'year': 2005, 'type': 'series', 'popularity': 0.7, 'rating': 9.0},
        {'id': 'm3', 'title': 'Amelie', 'genres': ['Comedy', 'Romance'],
         'year': 2001, 'type': 'movie'},
    ]


@pytest.fixture
def sample_profile_docs() -> List[Dict]:
    """Profile documents with nested genre preferences."""
    return [
        {'id': 'p1', 'name': 'Alex', 'preferences': {'genres': ['Crime', 'Drama']}},
        {'id': 'p2', 'name': 'Sam', 'preferences': {'genres': ['Action']}},
        {'id': 'p3', 'name': 'Kim', 'preferences': {'genres': ['Comedy']}},
        {'id': 'p4', 'name': 'New', 'preferences': {'genres': []}},
    ]


@pytest.fixture
def sample_interaction_docs() -> List[Dict]:
    """Interaction log documents, including one stale reference."""
    return [
        {'profileId': 'p1', 'contentId': 'm1', 'type': 'complete'},
        {'profileId': 'p1', 'contentId': 's1', 'type': 'like'},
        {'profileId': 'p2', 'contentId': 'm1', 'type': 'view'},
        {'profileId': 'p2', 'contentId': 's1', 'type': 'like'},
        {'profileId': 'p2', 'contentId': 'm2', 'type': 'like'},
        {'profileId': 'p3', 'contentId': 's2', 'type': 'like'},
        {'profileId': 'p3', 'contentId': 'm1', 'type': 'dislike'},
        {'profileId': 'p2', 'contentId': 'deleted', 'type': 'view'},
    ]


@pytest.fixture
def sample_content_items(sample_content_docs) -> List[ContentItem]:
    return [ContentItem.from_dict(doc) for doc in sample_content_docs]


@pytest.fixture
def sample_profiles(sample_profile_docs) -> List[Profile]:
    return [Profile.from_dict(doc) for doc in sample_profile_docs]


@pytest.fixture
def sample_interactions(sample_interaction_docs) -> List[Interaction]:
    return [Interaction.from_dict(doc) for doc in sample_interaction_docs]


# ===== Mock Fixtures =====

@pytest.fixture
def mock_catalog_store(sample_content_items, sample_profiles, sample_interactions):
    """Catalog store returning the sample snapshot."""
    mock = Mock()
    mock.load_content_catalog.return_value = sample_content_items
    mock.load_profile_catalog.return_value = sample_profiles
    mock.load_interaction_log.return_value = sample_interactions
    return mock


@pytest.fixture
def make_catalog_store():
    """Factory for catalog stores over ad-hoc documents."""
    def _make(content: List[Dict], profiles: List[Dict], interactions: List[Dict]):
        mock = Mock()
        mock.load_content_catalog.return_value = [ContentItem.from_dict(d) for d in content]
        mock.load_profile_catalog.return_value = [Profile.from_dict(d) for d in profiles]
        mock.load_interaction_log.return_value = [Interaction.from_dict(d) for d in interactions]
        return mock
    return _make


@pytest.fixture
def recommendation_service(mock_catalog_store) -> HybridRecommendationService:
    """Engine over the sample snapshot (not yet initialized)."""
    return HybridRecommendationService(catalog_store=mock_catalog_store)


# ===== Temporary Directory Fixtures =====

@pytest.fixture
def temp_data_dir():
    """Create a temporary directory for test data."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def catalog_json_file(temp_data_dir, sample_content_docs, sample_profile_docs, sample_interaction_docs):
    """JSON catalog export with the sample snapshot."""
    path = temp_data_dir / 'catalog.json'
    with open(path, 'w') as f:
        json.dump({
            'content': sample_content_docs,
            'profiles': sample_profile_docs,
            'interactions': sample_interaction_docs,
        }, f)
    return path


# ===== Script Fixtures =====

@pytest.fixture
def mock_sys_argv(monkeypatch):
    """Mock sys.argv for script testing."""
    def _mock_argv(args):
        monkeypatch.setattr('sys.argv', args)
    return _mock_argv
