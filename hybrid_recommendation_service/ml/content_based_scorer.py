"""Content-based scores from a profile's stated genre preferences."""
from typing import Dict

from hybrid_recommendation_service.ml.types import ContentItem, Profile


# noinspection PyMethodMayBeStatic
class ContentBasedScorer:
    """Hand-weighted linear model over genre match, recency and popularity."""

    def __init__(
        self,
        genre_weight: float = 0.6,
        year_weight: float = 0.1,
        popularity_weight: float = 0.3,
        recency_start_year: int = 2000,
        recency_span: int = 25,
        default_year_score: float = 0.5
    ):
        """
        Initialize content-based scorer.

        Args:
            genre_weight: Weight for the share of content genres the profile prefers
            year_weight: Weight for the recency score
            popularity_weight: Weight for content popularity
            recency_start_year: Release year mapped to a recency score of 0
            recency_span: Years after ``recency_start_year`` that reach a score of 1
            default_year_score: Recency score for items without a release year
        """
        self.genre_weight = genre_weight
        self.year_weight = year_weight
        self.popularity_weight = popularity_weight
        self.recency_start_year = recency_start_year
        self.recency_span = recency_span
        self.default_year_score = default_year_score

    def genre_score(self, profile: Profile, content: ContentItem) -> float:
        """Fraction of the content's genres that appear in the profile's preferences."""
        if not content.genres:
            return 0.0

        preferred = set(profile.preferred_genres)
        matches = sum(1 for genre in content.genres if genre in preferred)
        return matches / len(content.genres)

    def year_score(self, content: ContentItem) -> float:
        if content.year is None:
            return self.default_year_score
        score = (content.year - self.recency_start_year) / self.recency_span
        return min(max(score, 0.0), 1.0)

    def score_components(self, profile: Profile, content: ContentItem) -> Dict[str, float]:
        """
        Compute every component and the combined score.

        Returns:
            Dict with genre_score, year_score, popularity_score and score
        """
        genre_score = self.genre_score(profile, content)
        year_score = self.year_score(content)
        popularity_score = float(content.popularity)

        return {
            'genre_score': genre_score,
            'year_score': year_score,
            'popularity_score': popularity_score,
            'score': (
                self.genre_weight * genre_score +
                self.year_weight * year_score +
                self.popularity_weight * popularity_score
            )
        }

    def score(self, profile: Profile, content: ContentItem) -> float:
        return self.score_components(profile, content)['score']
