"""Feature extraction for content-based recommendations."""
import numpy as np
import pandas as pd
from typing import Dict, List, Optional, Sequence
from sklearn.preprocessing import MultiLabelBinarizer  # type: ignore
import logging

from hybrid_recommendation_service.ml.types import (
    ContentFeatureVector,
    ContentItem,
    ContentType,
)

logger = logging.getLogger(__name__)

SCALAR_FEATURES = ["year", "type", "popularity", "rating"]
GENRE_PREFIX = "genre:"


class ContentFeatureExtractor:
    """Extract normalized feature vectors from content items."""

    def __init__(
        self,
        min_year: int = 1950,
        year_span: int = 75,
        default_year: float = 0.5,
        default_rating: float = 0.5
    ):
        """
        Initialize feature extractor.

        Args:
            min_year: Release year mapped to 0
            year_span: Number of years mapped onto [0, 1]
            default_year: Normalized year for items without a release year
            default_rating: Normalized rating for unrated items
        """
        self.min_year = min_year
        self.year_span = year_span
        self.default_year = default_year
        self.default_rating = default_rating

        # Fitted during extract
        self.genre_encoder: Optional[MultiLabelBinarizer] = None

    @property
    def genre_universe(self) -> List[str]:
        """Sorted genre universe of the last fitted catalog."""
        if self.genre_encoder is None:
            return []
        return [str(genre) for genre in self.genre_encoder.classes_]

    def normalize_year(self, year: Optional[int]) -> float:
        if year is None:
            return self.default_year
        return float(np.clip((year - self.min_year) / self.year_span, 0.0, 1.0))

    def normalize_rating(self, rating: Optional[float]) -> float:
        if rating is None:
            return self.default_rating
        return float(np.clip(rating / 10, 0.0, 1.0))

    def fit_transform_genre_features(
        self,
        genres_list: List[Sequence[str]]
    ) -> np.ndarray:
        """
        Multi-hot encode genres over the union of all genres in the catalog.

        Args:
            genres_list: Genre list for each item

        Returns:
            Binary genre matrix (n_items x n_genres), columns in sorted genre order
        """
        logger.info("Extracting genre features...")

        self.genre_encoder = MultiLabelBinarizer()
        if not genres_list:
            self.genre_encoder.fit([])
            return np.zeros((0, 0), dtype=int)

        genre_features = self.genre_encoder.fit_transform([list(genres) for genres in genres_list])

        logger.info(f" Genre features: {genre_features.shape}")
        logger.info(f"  Unique genres: {len(self.genre_encoder.classes_)}")

        return genre_features

    def extract_feature_frame(self, content_items: Sequence[ContentItem]) -> pd.DataFrame:
        """
        Extract features for every item as a DataFrame.

        Args:
            content_items: Content catalog snapshot

        Returns:
            DataFrame indexed by content id with ``genre:<name>`` columns
            followed by year, type, popularity and rating
        """
        logger.info(f"Processing {len(content_items)} content items...")

        genre_features = self.fit_transform_genre_features(
            [item.genres for item in content_items]
        )
        genre_columns = [f"{GENRE_PREFIX}{genre}" for genre in self.genre_universe]

        frame = pd.DataFrame(
            genre_features.reshape(len(content_items), len(genre_columns)),
            index=pd.Index([item.id for item in content_items], dtype=object, name="content_id"),
            columns=genre_columns
        )

        frame["year"] = [self.normalize_year(item.year) for item in content_items]
        frame["type"] = [1 if item.type == ContentType.SERIES else 0 for item in content_items]
        frame["popularity"] = [float(item.popularity) for item in content_items]
        frame["rating"] = [self.normalize_rating(item.rating) for item in content_items]

        return frame

    def extract_all_features(
        self,
        content_items: Sequence[ContentItem]
    ) -> Dict[str, ContentFeatureVector]:
        """
        Extract a feature vector for every content item.

        Args:
            content_items: Content catalog snapshot

        Returns:
            Mapping content id -> ContentFeatureVector
        """
        frame = self.extract_feature_frame(content_items)
        return frame_to_vectors(frame)


def frame_to_vectors(frame: pd.DataFrame) -> Dict[str, ContentFeatureVector]:
    """Convert a feature frame into per-item feature vectors."""
    genre_columns = [column for column in frame.columns if column.startswith(GENRE_PREFIX)]

    vectors = {}
    for content_id, row in frame.iterrows():
        vectors[str(content_id)] = ContentFeatureVector(
            genres={column[len(GENRE_PREFIX):]: int(row[column]) for column in genre_columns},
            year=float(row["year"]),
            type=int(row["type"]),
            popularity=float(row["popularity"]),
            rating=float(row["rating"])
        )
    return vectors
