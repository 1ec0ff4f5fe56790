"""Domain records consumed and produced by the recommendation engine."""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

DEFAULT_POPULARITY = 0.5


class ContentType(str, Enum):
    """Kind of content item."""
    MOVIE = "movie"
    SERIES = "series"

    @classmethod
    def parse(cls, value: Optional[str]) -> "ContentType":
        """Anything that is not explicitly a series is treated as a movie."""
        if value is not None and str(value).lower() == cls.SERIES.value:
            return cls.SERIES
        return cls.MOVIE


class InteractionType(str, Enum):
    """Known interaction event types."""
    VIEW = "view"
    COMPLETE = "complete"
    LIKE = "like"
    DISLIKE = "dislike"


@dataclass(frozen=True)
class ContentItem:
    """A catalog entry (movie or series)."""
    id: str
    genres: Tuple[str, ...] = ()
    year: Optional[int] = None
    type: ContentType = ContentType.MOVIE
    popularity: float = DEFAULT_POPULARITY
    rating: Optional[float] = None
    title: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ContentItem":
        """
        Build a content item from a catalog document.

        Args:
            data: Document with at least an ``id`` key

        Returns:
            ContentItem
        """
        year = data.get("year")
        popularity = data.get("popularity")
        rating = data.get("rating")

        return cls(
            id=str(data["id"]),
            genres=tuple(data.get("genres") or ()),
            year=int(year) if year is not None else None,
            type=ContentType.parse(data.get("type")),
            popularity=float(popularity) if popularity is not None else DEFAULT_POPULARITY,
            rating=float(rating) if rating is not None else None,
            title=data.get("title"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "genres": list(self.genres),
            "year": self.year,
            "type": self.type.value,
            "popularity": self.popularity,
            "rating": self.rating,
        }


@dataclass(frozen=True)
class Profile:
    """A viewer profile. Earlier preference genres are the stronger taste signal."""
    id: str
    preferred_genres: Tuple[str, ...] = ()
    name: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Profile":
        """Accepts both ``preferences.genres`` and a flat ``preferred_genres`` list."""
        preferences = data.get("preferences") or {}
        genres = preferences.get("genres") or data.get("preferred_genres") or ()

        return cls(
            id=str(data["id"]),
            preferred_genres=tuple(genres),
            name=data.get("name"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "preferences": {"genres": list(self.preferred_genres)},
        }


@dataclass(frozen=True)
class Interaction:
    """A single append-only interaction event."""
    profile_id: str
    content_id: str
    type: str
    timestamp: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict, compare=False, hash=False)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Interaction":
        """Accepts camelCase (``profileId``) and snake_case (``profile_id``) keys."""
        profile_id = data.get("profileId", data.get("profile_id"))
        content_id = data.get("contentId", data.get("content_id"))

        return cls(
            profile_id=str(profile_id) if profile_id is not None else "",
            content_id=str(content_id) if content_id is not None else "",
            type=str(data.get("type") or ""),
            timestamp=data.get("timestamp"),
            metadata=dict(data.get("metadata") or {}),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "profileId": self.profile_id,
            "contentId": self.content_id,
            "type": self.type,
            "timestamp": self.timestamp,
            "metadata": dict(self.metadata),
        }


@dataclass(frozen=True)
class ContentFeatureVector:
    """Normalized features for one content item."""
    genres: Dict[str, int]
    year: float
    type: int
    popularity: float
    rating: float

    def genre_set(self) -> List[str]:
        return [genre for genre, member in self.genres.items() if member]


@dataclass(frozen=True)
class ScoredContent:
    """A ranked result row: the item, its final score and the parts it came from."""
    item: ContentItem
    score: float
    components: Dict[str, float] = field(default_factory=dict)

    @property
    def id(self) -> str:
        return self.item.id

    def to_dict(self) -> Dict[str, Any]:
        result = self.item.to_dict()
        result["score"] = self.score
        result.update(self.components)
        return result
