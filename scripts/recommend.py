"""
Print recommendation lists from the command line.

Usage:
    # Personalized recommendations from the configured catalog store
    python scripts/recommend.py personalized p1 --n 5

    # Similar content from a JSON catalog export
    python scripts/recommend.py similar tt0111161 --catalog data/catalog.json

    # Genre and trending rows
    python scripts/recommend.py genre Drama --profile-id p1
    python scripts/recommend.py trending
"""

import sys
from pathlib import Path

# Add parent directory to path
project_root = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(project_root))

import argparse
import logging
from typing import List, Optional

from hybrid_recommendation_service.config import get_hybrid_weights
from hybrid_recommendation_service.errors import RecommendationError
from hybrid_recommendation_service.ml.types import ScoredContent
from hybrid_recommendation_service.services import (
    HybridRecommendationService,
    JsonFileCatalogStore,
    get_catalog_store,
)

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

logger = logging.getLogger(__name__)

MODES = ('personalized', 'similar', 'genre', 'trending')


def build_service(catalog: Optional[str] = None) -> HybridRecommendationService:
    """
    Build an engine over a JSON export, or over the configured catalog store.

    Args:
        catalog: Optional path to a JSON catalog export

    Returns:
        HybridRecommendationService (not yet initialized)
    """
    store = JsonFileCatalogStore(Path(catalog)) if catalog else get_catalog_store()
    collaborative_weight, content_weight = get_hybrid_weights()

    return HybridRecommendationService(
        catalog_store=store,
        collaborative_weight=collaborative_weight,
        content_weight=content_weight
    )


def run_query(
    service: HybridRecommendationService,
    mode: str,
    target: Optional[str] = None,
    n: int = 10,
    profile_id: Optional[str] = None
) -> List[ScoredContent]:
    """
    Run one recommendation query.

    Args:
        service: Recommendation engine
        mode: One of MODES
        target: Profile id, content id or genre depending on ``mode``
        n: Number of results
        profile_id: Profile whose watched content is excluded (genre mode only)

    Returns:
        Ranked results
    """
    if mode == 'trending':
        return service.get_trending_content(n)

    if not target:
        raise ValueError(f"'{mode}' requires a target")

    if mode == 'personalized':
        return service.get_personalized_recommendations(target, n)
    if mode == 'similar':
        return service.get_similar_content(target, n)
    if mode == 'genre':
        return service.get_genre_recommendations(target, n, profile_id=profile_id)

    raise ValueError(f"Unknown mode: {mode}")


def format_results(results: List[ScoredContent]) -> List[str]:
    """One line per result."""
    lines = []
    for i, result in enumerate(results, 1):
        item = result.item
        label = item.title or item.id
        year = f" ({item.year})" if item.year is not None else ""
        lines.append(
            f"{i}. {label}{year} "
            f"(score: {result.score:.3f}, genres: {', '.join(item.genres) or '-'})"
        )
    return lines


def main():
    """Main execution function."""
    parser = argparse.ArgumentParser(description='Print recommendation lists')
    parser.add_argument('mode', choices=MODES, help='Recommendation type')
    parser.add_argument(
        'target',
        nargs='?',
        default=None,
        help='Profile id (personalized), content id (similar) or genre (genre)'
    )
    parser.add_argument('--n', type=int, default=10, help='Number of results (default: 10)')
    parser.add_argument(
        '--catalog',
        type=str,
        default=None,
        help='JSON catalog export to use instead of the configured catalog store'
    )
    parser.add_argument(
        '--profile-id',
        type=str,
        default=None,
        help='Exclude content this profile already watched (genre mode)'
    )

    args = parser.parse_args()

    service = build_service(args.catalog)

    try:
        results = run_query(service, args.mode, args.target, args.n, args.profile_id)
    except (RecommendationError, ValueError) as e:
        logger.error(f"Error: {str(e)}")
        sys.exit(1)

    if not results:
        logger.info("No recommendations found")
        return

    for line in format_results(results):
        print(line)


if __name__ == '__main__':
    main()
