"""Service for hybrid (collaborative + content-based) recommendations."""
import threading
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple
import logging

import numpy as np
import pandas as pd

from hybrid_recommendation_service.errors import (
    ConfigurationFailure,
    ContentNotFound,
    ProfileNotFound,
)
from hybrid_recommendation_service.ml.collaborative_scorer import CollaborativeScorer
from hybrid_recommendation_service.ml.content_based_scorer import ContentBasedScorer
from hybrid_recommendation_service.ml.feature_extractor import (
    GENRE_PREFIX,
    ContentFeatureExtractor,
    frame_to_vectors,
)
from hybrid_recommendation_service.ml.interaction_matrix import (
    InteractionMatrixBuilder,
    watched_content_ids,
)
from hybrid_recommendation_service.ml.similarity_computer import (
    ContentSimilarityComputer,
    UserSimilarityComputer,
)
from hybrid_recommendation_service.ml.types import (
    ContentFeatureVector,
    ContentItem,
    Profile,
    ScoredContent,
)
from hybrid_recommendation_service.services.catalog_store import CatalogStore

logger = logging.getLogger(__name__)


class EngineState(str, Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    READY = "ready"
    FAILED = "failed"


@dataclass(frozen=True, eq=False)
class EngineSnapshot:
    """Everything derived from one catalog snapshot. Never mutated once published."""
    content_items: Tuple[ContentItem, ...]
    profiles: Tuple[Profile, ...]
    interaction_matrix: pd.DataFrame
    squared_norms: pd.Series
    feature_frame: pd.DataFrame
    accepted_interactions: int
    discarded_interactions: int
    loaded_at: datetime
    content_by_id: Dict[str, ContentItem] = field(init=False)
    profiles_by_id: Dict[str, Profile] = field(init=False)

    def __post_init__(self):
        object.__setattr__(self, 'content_by_id', {item.id: item for item in self.content_items})
        object.__setattr__(self, 'profiles_by_id', {profile.id: profile for profile in self.profiles})

    @property
    def genre_universe(self) -> List[str]:
        return [
            column[len(GENRE_PREFIX):]
            for column in self.feature_frame.columns
            if column.startswith(GENRE_PREFIX)
        ]

    @property
    def genre_features(self) -> np.ndarray:
        genre_columns = [c for c in self.feature_frame.columns if c.startswith(GENRE_PREFIX)]
        return self.feature_frame[genre_columns].to_numpy(dtype=float)


def _unique_by_id(records: Sequence[Any], label: str) -> List[Any]:
    """Keep the first record for each id."""
    seen = set()
    unique = []
    for record in records:
        if record.id in seen:
            logger.warning(f"Duplicate {label} id {record.id!r} in catalog; keeping first occurrence")
            continue
        seen.add(record.id)
        unique.append(record)
    return unique


# noinspection PyMethodMayBeStatic
class HybridRecommendationService:
    """
    Recommendation engine over an in-memory catalog snapshot.

    Personalized results blend a neighborhood collaborative score with a
    content-based score; similar-content results use item attributes only.
    The snapshot is rebuilt from scratch on initialize()/refresh().
    """

    def __init__(
            self,
            catalog_store: CatalogStore,
            collaborative_weight: float = 0.7,
            content_weight: float = 0.3,
            matrix_builder: Optional[InteractionMatrixBuilder] = None,
            feature_extractor: Optional[ContentFeatureExtractor] = None,
            user_similarity: Optional[UserSimilarityComputer] = None,
            content_similarity: Optional[ContentSimilarityComputer] = None,
            collaborative_scorer: Optional[CollaborativeScorer] = None,
            content_scorer: Optional[ContentBasedScorer] = None
    ):
        """
        Initialize the recommendation service.

        Args:
            catalog_store: Source of content, profile and interaction snapshots
            collaborative_weight: Weight of the collaborative score in the hybrid score
            content_weight: Weight of the content-based score in the hybrid score
            matrix_builder: Interaction matrix builder
            feature_extractor: Content feature extractor
            user_similarity: Profile similarity computer
            content_similarity: Content similarity computer
            collaborative_scorer: Collaborative scorer
            content_scorer: Content-based scorer
        """
        self.catalog_store = catalog_store
        self.collaborative_weight = collaborative_weight
        self.content_weight = content_weight

        self.matrix_builder = matrix_builder or InteractionMatrixBuilder()
        self.feature_extractor = feature_extractor or ContentFeatureExtractor()
        self.user_similarity = user_similarity or UserSimilarityComputer()
        self.content_similarity = content_similarity or ContentSimilarityComputer()
        self.collaborative_scorer = collaborative_scorer or CollaborativeScorer()
        self.content_scorer = content_scorer or ContentBasedScorer()

        self._lock = threading.Lock()
        self._state = EngineState.UNINITIALIZED
        self._snapshot: Optional[EngineSnapshot] = None
        self._last_error: Optional[Exception] = None

        logger.info("Initialized HybridRecommendationService")
        logger.info(f"Weights - Collaborative: {collaborative_weight}, Content: {content_weight}")

    # ===== LIFECYCLE =====

    @property
    def state(self) -> EngineState:
        return self._state

    @property
    def is_ready(self) -> bool:
        return self._state is EngineState.READY

    @property
    def last_error(self) -> Optional[Exception]:
        return self._last_error

    def initialize(self, force: bool = False) -> None:
        """
        Load a catalog snapshot and build the matrix and feature table.

        No-op once ready unless ``force`` is set. At most one build runs at a
        time; callers that waited for a concurrent build return once it is ready.

        Args:
            force: Rebuild even if a snapshot is already published

        Raises:
            ConfigurationFailure: The catalog store could not supply a snapshot
        """
        if not force and self._state is EngineState.READY:
            return

        with self._lock:
            if not force and self._state is EngineState.READY:
                return

            self._publish_snapshot()

    def _publish_snapshot(self) -> EngineSnapshot:
        """Build and publish a snapshot. Caller holds ``_lock``."""
        self._state = EngineState.INITIALIZING
        try:
            snapshot = self._build_snapshot()
        except Exception as e:
            self._snapshot = None
            self._last_error = e
            self._state = EngineState.FAILED
            logger.error(f"Recommendation engine initialization failed: {e}")
            raise

        self._snapshot = snapshot
        self._last_error = None
        self._state = EngineState.READY
        return snapshot

    def refresh(self) -> None:
        """Force a full rebuild from a fresh catalog snapshot."""
        self.initialize(force=True)

    def _load_catalogs(self) -> Tuple[List[ContentItem], List[Profile], list]:
        try:
            content_items = self.catalog_store.load_content_catalog()
            profiles = self.catalog_store.load_profile_catalog()
            interactions = self.catalog_store.load_interaction_log()
        except Exception as e:
            raise ConfigurationFailure(f"Failed to load catalog snapshot: {e}") from e

        return (
            _unique_by_id(content_items, "content"),
            _unique_by_id(profiles, "profile"),
            list(interactions)
        )

    def _build_snapshot(self) -> EngineSnapshot:
        logger.info("="*60)
        logger.info("INITIALIZING RECOMMENDATION ENGINE")
        logger.info("="*60)

        content_items, profiles, interactions = self._load_catalogs()
        logger.info(
            f"Loaded {len(content_items)} content items, {len(profiles)} profiles, "
            f"{len(interactions)} interactions"
        )

        interaction_matrix = self.matrix_builder.build(interactions, profiles, content_items)
        squared_norms = self.user_similarity.compute_squared_norms(interaction_matrix)
        feature_frame = self.feature_extractor.extract_feature_frame(content_items)

        snapshot = EngineSnapshot(
            content_items=tuple(content_items),
            profiles=tuple(profiles),
            interaction_matrix=interaction_matrix,
            squared_norms=squared_norms,
            feature_frame=feature_frame,
            accepted_interactions=self.matrix_builder.accepted_count,
            discarded_interactions=self.matrix_builder.discarded_count,
            loaded_at=datetime.now(UTC)
        )

        logger.info("="*60)
        logger.info("RECOMMENDATION ENGINE READY")
        logger.info("="*60)

        return snapshot

    def _ready_snapshot(self) -> EngineSnapshot:
        """Current snapshot, initializing implicitly when nothing has been built yet."""
        snapshot = self._snapshot
        if self._state is EngineState.READY and snapshot is not None:
            return snapshot

        if self._state is EngineState.FAILED and self._last_error is not None:
            raise self._last_error

        with self._lock:
            # A build that failed while we waited is not retried implicitly
            if self._state is EngineState.FAILED and self._last_error is not None:
                raise self._last_error
            if self._state is EngineState.READY and self._snapshot is not None:
                return self._snapshot
            return self._publish_snapshot()

    def _get_profile(self, snapshot: EngineSnapshot, profile_id: str) -> Profile:
        profile = snapshot.profiles_by_id.get(profile_id)
        if profile is None:
            raise ProfileNotFound(profile_id)
        return profile

    def _get_content(self, snapshot: EngineSnapshot, content_id: str) -> ContentItem:
        item = snapshot.content_by_id.get(content_id)
        if item is None:
            raise ContentNotFound(content_id)
        return item

    # ===== SNAPSHOT VIEWS =====

    def get_interaction_matrix(self) -> pd.DataFrame:
        """Copy of the current interaction matrix."""
        return self._ready_snapshot().interaction_matrix.copy()

    def get_content_features(self) -> Dict[str, ContentFeatureVector]:
        """Feature vector for every content item in the current snapshot."""
        return frame_to_vectors(self._ready_snapshot().feature_frame)

    def get_watch_history(self, profile_id: str) -> List[str]:
        """Content ids the profile has a strictly positive accumulated weight for."""
        snapshot = self._ready_snapshot()
        self._get_profile(snapshot, profile_id)
        return watched_content_ids(snapshot.interaction_matrix, profile_id)

    # ===== SCORING =====

    def similar_users(self, profile_id: str) -> List[Tuple[str, float]]:
        """
        Profiles with positive cosine similarity to the given one.

        Args:
            profile_id: Target profile

        Returns:
            (profile_id, similarity) pairs, most similar first
        """
        snapshot = self._ready_snapshot()
        self._get_profile(snapshot, profile_id)

        return self.user_similarity.similar_users(
            snapshot.interaction_matrix,
            profile_id,
            snapshot.squared_norms
        )

    def collaborative_score(self, profile_id: str, content_id: str) -> float:
        """Similarity-weighted average of neighbor interaction weights for one item."""
        snapshot = self._ready_snapshot()
        self._get_content(snapshot, content_id)
        neighbors = self.similar_users(profile_id)

        return self.collaborative_scorer.score(snapshot.interaction_matrix, neighbors, content_id)

    def content_based_score(self, profile_id: str, content_id: str) -> float:
        """Preference/attribute match score for one item."""
        snapshot = self._ready_snapshot()
        profile = self._get_profile(snapshot, profile_id)
        item = self._get_content(snapshot, content_id)

        return self.content_scorer.score(profile, item)

    def hybrid_score(self, collaborative_score: float, content_score: float) -> float:
        return self.collaborative_weight * collaborative_score + self.content_weight * content_score

    def _rank(self, scored: List[ScoredContent], count: int) -> List[ScoredContent]:
        # sorted() is stable, so equal scores keep catalog order
        ranked = sorted(scored, key=lambda result: -result.score)
        return ranked[:max(count, 0)]

    # ===== RECOMMENDATIONS =====

    def get_personalized_recommendations(
            self,
            profile_id: str,
            count: int = 10
    ) -> List[ScoredContent]:
        """
        Hybrid recommendations for a profile, excluding content it already watched.

        Args:
            profile_id: Profile to recommend for
            count: Maximum number of results

        Returns:
            ScoredContent list, best first (shorter than ``count`` when few candidates remain)

        Raises:
            ProfileNotFound: Unknown profile id
        """
        snapshot = self._ready_snapshot()
        profile = self._get_profile(snapshot, profile_id)
        matrix = snapshot.interaction_matrix

        watched = set(watched_content_ids(matrix, profile_id))
        neighbors = self.user_similarity.similar_users(matrix, profile_id, snapshot.squared_norms)
        collaborative_scores = self.collaborative_scorer.score_all(matrix, neighbors)

        logger.debug(
            f"Profile {profile_id}: {len(watched)} watched, {len(neighbors)} similar profiles"
        )

        scored = []
        for item in snapshot.content_items:
            if item.id in watched:
                continue

            collaborative_score = float(collaborative_scores[item.id])
            content_score = self.content_scorer.score(profile, item)

            scored.append(ScoredContent(
                item=item,
                score=self.hybrid_score(collaborative_score, content_score),
                components={
                    'collaborative_score': collaborative_score,
                    'content_score': content_score
                }
            ))

        return self._rank(scored, count)

    def get_similar_content(self, content_id: str, count: int = 10) -> List[ScoredContent]:
        """
        Content most similar to a reference item by genres, release year and type.

        Args:
            content_id: Reference content id
            count: Maximum number of results

        Returns:
            ScoredContent list, most similar first, never including the reference item

        Raises:
            ContentNotFound: Unknown content id
        """
        snapshot = self._ready_snapshot()
        self._get_content(snapshot, content_id)

        position = snapshot.feature_frame.index.get_loc(content_id)
        similarities = self.content_similarity.compute_similarities(
            snapshot.genre_features,
            snapshot.content_items,
            snapshot.feature_frame['type'].tolist(),
            position
        )

        scored = []
        for idx, item in enumerate(snapshot.content_items):
            if idx == position:
                continue

            scored.append(ScoredContent(
                item=item,
                score=float(similarities['content_similarity'][idx]),
                components={
                    'genre_score': float(similarities['genre_similarity'][idx]),
                    'year_score': float(similarities['year_similarity'][idx]),
                    'type_score': float(similarities['type_similarity'][idx])
                }
            ))

        return self._rank(scored, count)

    def _popularity_score(self, snapshot: EngineSnapshot, item: ContentItem) -> float:
        rating = float(snapshot.feature_frame.at[item.id, 'rating'])
        return 0.7 * float(item.popularity) + 0.3 * rating

    def get_genre_recommendations(
            self,
            genre: str,
            count: int = 10,
            profile_id: Optional[str] = None
    ) -> List[ScoredContent]:
        """
        Most popular content within one genre.

        Args:
            genre: Genre tag (exact match)
            count: Maximum number of results
            profile_id: When given, content this profile already watched is excluded

        Returns:
            ScoredContent list ranked by popularity and rating
        """
        snapshot = self._ready_snapshot()

        watched: set = set()
        if profile_id is not None:
            self._get_profile(snapshot, profile_id)
            watched = set(watched_content_ids(snapshot.interaction_matrix, profile_id))

        scored = [
            ScoredContent(item=item, score=self._popularity_score(snapshot, item))
            for item in snapshot.content_items
            if genre in item.genres and item.id not in watched
        ]
        return self._rank(scored, count)

    def get_trending_content(self, count: int = 10) -> List[ScoredContent]:
        """Most popular content across the whole catalog."""
        snapshot = self._ready_snapshot()

        scored = [
            ScoredContent(item=item, score=self._popularity_score(snapshot, item))
            for item in snapshot.content_items
        ]
        return self._rank(scored, count)

    def get_stats(self) -> Dict[str, Any]:
        """Get statistics about the recommendation engine."""
        stats: Dict[str, Any] = {
            'state': self._state.value,
            'weights': {
                'collaborative': self.collaborative_weight,
                'content': self.content_weight
            }
        }

        snapshot = self._snapshot
        if snapshot is None:
            return stats

        matrix = snapshot.interaction_matrix
        cells = matrix.shape[0] * matrix.shape[1]
        nonzero = int(np.count_nonzero(matrix.to_numpy()))

        stats.update({
            'content_items': len(snapshot.content_items),
            'profiles': len(snapshot.profiles),
            'accepted_interactions': snapshot.accepted_interactions,
            'discarded_interactions': snapshot.discarded_interactions,
            'genres': snapshot.genre_universe,
            'matrix_density': nonzero / cells if cells else 0.0,
            'loaded_at': snapshot.loaded_at.isoformat()
        })
        return stats
