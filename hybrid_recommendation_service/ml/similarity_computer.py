"""Similarity computations between profiles and between content items."""
import numpy as np
import pandas as pd
from typing import Dict, List, Optional, Sequence, Tuple
import logging

from hybrid_recommendation_service.ml.types import ContentItem

logger = logging.getLogger(__name__)


class UserSimilarityComputer:
    """Compute profile-to-profile cosine similarity from the interaction matrix."""

    def compute_squared_norms(self, matrix: pd.DataFrame) -> pd.Series:
        """
        Squared L2 norm of every profile row.

        Computed once per snapshot so repeated queries only pay for the dot products.
        """
        values = matrix.to_numpy(dtype=float)
        return pd.Series((values * values).sum(axis=1), index=matrix.index)

    def compute_similarities(
        self,
        matrix: pd.DataFrame,
        profile_id: str,
        squared_norms: Optional[pd.Series] = None
    ) -> pd.Series:
        """
        Cosine similarity between one profile and every profile (itself included).

        Args:
            matrix: Interaction matrix (profiles x content)
            profile_id: Target profile
            squared_norms: Pre-computed squared row norms

        Returns:
            Series of similarities indexed by profile id
        """
        if squared_norms is None:
            squared_norms = self.compute_squared_norms(matrix)

        values = matrix.to_numpy(dtype=float)
        position = matrix.index.get_loc(profile_id)
        norms = squared_norms.to_numpy(dtype=float)

        dots = values @ values[position]
        denominators = np.sqrt(norms * norms[position])

        similarities = np.divide(
            dots,
            denominators,
            out=np.zeros_like(dots),
            where=denominators > 0
        )
        return pd.Series(similarities, index=matrix.index)

    def similar_users(
        self,
        matrix: pd.DataFrame,
        profile_id: str,
        squared_norms: Optional[pd.Series] = None
    ) -> List[Tuple[str, float]]:
        """
        Profiles positively similar to the target, most similar first.

        The target itself and pairs with similarity <= 0 are excluded. Ties
        are broken by ascending profile id.

        Args:
            matrix: Interaction matrix (profiles x content)
            profile_id: Target profile
            squared_norms: Pre-computed squared row norms

        Returns:
            List of (profile_id, similarity) tuples
        """
        if profile_id not in matrix.index:
            return []

        similarities = self.compute_similarities(matrix, profile_id, squared_norms)

        neighbors = [
            (str(other_id), float(similarity))
            for other_id, similarity in similarities.items()
            if other_id != profile_id and similarity > 0
        ]
        neighbors.sort(key=lambda pair: (-pair[1], pair[0]))
        logger.debug(f"Found {len(neighbors)} similar profiles for {profile_id!r}")
        return neighbors


class ContentSimilarityComputer:
    """Attribute similarity between content items (genres, release year, type)."""

    def __init__(
        self,
        genre_weight: float = 0.6,
        year_weight: float = 0.3,
        type_weight: float = 0.1,
        year_span: float = 50.0,
        missing_year_diff: float = 0.5
    ):
        """
        Initialize content similarity computer.

        Args:
            genre_weight: Weight for genre Jaccard similarity
            year_weight: Weight for release-year proximity
            type_weight: Weight for matching content type
            year_span: Year difference at which year similarity reaches 0
            missing_year_diff: Normalized year difference used when a year is missing
        """
        self.genre_weight = genre_weight
        self.year_weight = year_weight
        self.type_weight = type_weight
        self.year_span = year_span
        self.missing_year_diff = missing_year_diff

    def compute_genre_similarity(self, genre_features: np.ndarray, position: int) -> np.ndarray:
        """
        Jaccard similarity of one item's genre set against every item's.

        Args:
            genre_features: Binary genre matrix (n_items x n_genres)
            position: Row of the reference item

        Returns:
            Array of Jaccard scores, 0 where both genre sets are empty
        """
        genre_features = np.asarray(genre_features, dtype=float)
        if genre_features.shape[1] == 0:
            return np.zeros(genre_features.shape[0])

        reference = genre_features[position]
        intersection = genre_features @ reference
        union = genre_features.sum(axis=1) + reference.sum() - intersection

        return np.divide(
            intersection,
            union,
            out=np.zeros_like(intersection),
            where=union > 0
        )

    def compute_year_similarity(self, years: Sequence[Optional[int]], position: int) -> np.ndarray:
        """
        Release-year proximity: 1 - min(|dYear| / year_span, 1).

        Missing years on either side use ``missing_year_diff`` as the difference.
        """
        year_values = np.array(
            [np.nan if year is None else float(year) for year in years],
            dtype=float
        )
        diffs = np.abs(year_values - year_values[position]) / self.year_span
        diffs = np.where(np.isnan(diffs), self.missing_year_diff, diffs)

        return 1.0 - np.minimum(diffs, 1.0)

    def compute_type_similarity(self, types: Sequence[int], position: int) -> np.ndarray:
        type_values = np.asarray(types)
        return (type_values == type_values[position]).astype(float)

    def combine(self, genre_similarity, year_similarity, type_similarity):
        """Weighted combination, normalized by the total weight."""
        total_weight = self.genre_weight + self.year_weight + self.type_weight
        return (
            self.genre_weight * genre_similarity +
            self.year_weight * year_similarity +
            self.type_weight * type_similarity
        ) / total_weight

    def compute_similarities(
        self,
        genre_features: np.ndarray,
        content_items: Sequence[ContentItem],
        type_flags: Sequence[int],
        position: int
    ) -> Dict[str, np.ndarray]:
        """
        Compute all similarity components for one reference item.

        Args:
            genre_features: Binary genre matrix aligned with ``content_items``
            content_items: Content catalog snapshot
            type_flags: 0/1 type flag per item
            position: Index of the reference item

        Returns:
            Dictionary with genre, year, type and combined similarity arrays
        """
        genre_similarity = self.compute_genre_similarity(genre_features, position)
        year_similarity = self.compute_year_similarity(
            [item.year for item in content_items], position
        )
        type_similarity = self.compute_type_similarity(type_flags, position)

        return {
            'genre_similarity': genre_similarity,
            'year_similarity': year_similarity,
            'type_similarity': type_similarity,
            'content_similarity': self.combine(genre_similarity, year_similarity, type_similarity)
        }

