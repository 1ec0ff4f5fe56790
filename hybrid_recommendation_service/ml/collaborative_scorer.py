"""Neighborhood collaborative filtering scores."""
from typing import List, Tuple
import logging

import numpy as np
import pandas as pd

logger = logging.getLogger(__name__)


class CollaborativeScorer:
    """
    Predict a profile's affinity for content from its similar profiles.

    score = sum(weight_neighbor(content) * similarity_neighbor) / sum(similarity_neighbor),
    and 0 when there are no positively similar neighbors.
    """

    def score(
        self,
        matrix: pd.DataFrame,
        neighbors: List[Tuple[str, float]],
        content_id: str
    ) -> float:
        """
        Collaborative score for a single content item.

        Args:
            matrix: Interaction matrix (profiles x content)
            neighbors: (profile_id, similarity) pairs from the similarity engine
            content_id: Content item to score

        Returns:
            Similarity-weighted average of neighbor weights
        """
        total_similarity = 0.0
        weighted_sum = 0.0

        for neighbor_id, similarity in neighbors:
            weighted_sum += float(matrix.at[neighbor_id, content_id]) * similarity
            total_similarity += similarity

        if total_similarity <= 0:
            return 0.0
        return weighted_sum / total_similarity

    def score_all(
        self,
        matrix: pd.DataFrame,
        neighbors: List[Tuple[str, float]]
    ) -> pd.Series:
        """
        Collaborative score for every content item at once.

        Args:
            matrix: Interaction matrix (profiles x content)
            neighbors: (profile_id, similarity) pairs from the similarity engine

        Returns:
            Series of scores indexed by content id
        """
        logger.debug(f"Scoring {matrix.shape[1]} content items from {len(neighbors)} neighbors")
        if not neighbors:
            return pd.Series(np.zeros(matrix.shape[1]), index=matrix.columns)

        neighbor_ids = [neighbor_id for neighbor_id, _ in neighbors]
        similarities = np.array([similarity for _, similarity in neighbors], dtype=float)
        total_similarity = similarities.sum()

        if total_similarity <= 0:
            return pd.Series(np.zeros(matrix.shape[1]), index=matrix.columns)

        neighbor_weights = matrix.loc[neighbor_ids].to_numpy(dtype=float)
        scores = (similarities @ neighbor_weights) / total_similarity

        return pd.Series(scores, index=matrix.columns)
