"""Build the profile x content interaction matrix from an interaction log."""
from typing import Dict, List, Optional, Sequence
import logging

import numpy as np
import pandas as pd

from hybrid_recommendation_service.ml.types import ContentItem, Interaction, InteractionType, Profile

logger = logging.getLogger(__name__)

# Weight added per event type; any other type counts as a weak positive signal.
INTERACTION_WEIGHTS: Dict[str, float] = {
    InteractionType.VIEW.value: 1.0,
    InteractionType.COMPLETE.value: 3.0,
    InteractionType.LIKE.value: 5.0,
    InteractionType.DISLIKE.value: -5.0,
}
UNKNOWN_INTERACTION_WEIGHT = 0.5


class InteractionMatrixBuilder:
    """Aggregate interaction events into a dense profile x content weight matrix."""

    def __init__(
        self,
        weights: Optional[Dict[str, float]] = None,
        unknown_weight: float = UNKNOWN_INTERACTION_WEIGHT
    ):
        """
        Initialize matrix builder.

        Args:
            weights: Weight per interaction type (defaults to INTERACTION_WEIGHTS)
            unknown_weight: Weight for interaction types not in ``weights``
        """
        self.weights = dict(INTERACTION_WEIGHTS if weights is None else weights)
        self.unknown_weight = unknown_weight

        # Populated by build()
        self.accepted_count = 0
        self.discarded_count = 0

    def weight_for(self, interaction_type: str) -> float:
        return self.weights.get(interaction_type, self.unknown_weight)

    def build(
        self,
        interactions: Sequence[Interaction],
        profiles: Sequence[Profile],
        content_items: Sequence[ContentItem]
    ) -> pd.DataFrame:
        """
        Build the interaction matrix.

        Every (profile, content) cell starts at 0 and accumulates the weight of
        each interaction on that pair. Interactions that reference an unknown
        profile or content item are dropped.

        Args:
            interactions: Full interaction log
            profiles: Profile catalog
            content_items: Content catalog

        Returns:
            DataFrame indexed by profile id with one column per content id
        """
        logger.info("Building interaction matrix...")

        profile_ids = [profile.id for profile in profiles]
        content_ids = [item.id for item in content_items]
        profile_index = {profile_id: i for i, profile_id in enumerate(profile_ids)}
        content_index = {content_id: j for j, content_id in enumerate(content_ids)}

        values = np.zeros((len(profile_ids), len(content_ids)), dtype=float)

        self.accepted_count = 0
        self.discarded_count = 0

        for interaction in interactions:
            row = profile_index.get(interaction.profile_id)
            col = content_index.get(interaction.content_id)

            if row is None or col is None:
                self.discarded_count += 1
                logger.debug(
                    f"Discarding interaction {interaction.type!r} for "
                    f"profile={interaction.profile_id!r} content={interaction.content_id!r}"
                )
                continue

            values[row, col] += self.weight_for(interaction.type)
            self.accepted_count += 1

        matrix = pd.DataFrame(
            values,
            index=pd.Index(profile_ids, dtype=object, name="profile_id"),
            columns=pd.Index(content_ids, dtype=object, name="content_id")
        )

        logger.info(f" Interaction matrix: {matrix.shape}")
        logger.info(f"  Accepted interactions: {self.accepted_count}")
        if self.discarded_count:
            logger.info(f"  Discarded interactions (unknown profile/content): {self.discarded_count}")

        return matrix


def matrix_to_dict(matrix: pd.DataFrame) -> Dict[str, Dict[str, float]]:
    """Nested ``{profile_id: {content_id: weight}}`` view of the matrix."""
    return {
        profile_id: {content_id: float(weight) for content_id, weight in row.items()}
        for profile_id, row in matrix.iterrows()
    }


def watched_content_ids(matrix: pd.DataFrame, profile_id: str) -> List[str]:
    """Content ids with strictly positive accumulated weight for a profile."""
    row = matrix.loc[profile_id]
    return [str(content_id) for content_id in row.index[row.to_numpy() > 0]]
