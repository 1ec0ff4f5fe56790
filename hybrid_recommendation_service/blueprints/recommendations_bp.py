"""HTTP endpoints for hybrid recommendations."""
import azure.functions as func
import logging
import json
from typing import Any, Optional, Tuple

from hybrid_recommendation_service.config import get_hybrid_weights, get_max_recommendations
from hybrid_recommendation_service.errors import ConfigurationFailure, NotFound
from hybrid_recommendation_service.services import HybridRecommendationService, get_catalog_store

# Initialize blueprint
bp = func.Blueprint()

# One engine per worker process; built lazily on the first request
collaborative_weight, content_weight = get_hybrid_weights()
recommendation_service = HybridRecommendationService(
    catalog_store=get_catalog_store(),
    collaborative_weight=collaborative_weight,
    content_weight=content_weight
)

logger = logging.getLogger(__name__)


def _json_response(body: Any, status_code: int = 200) -> func.HttpResponse:
    return func.HttpResponse(
        json.dumps(body, default=str),
        status_code=status_code,
        mimetype="application/json"
    )


def _parse_count(req: func.HttpRequest) -> Tuple[Optional[int], Optional[func.HttpResponse]]:
    """Read and validate the ``n`` query parameter."""
    max_n = get_max_recommendations()

    try:
        n = int(req.params.get('n', 10))
    except ValueError:
        return None, _json_response({"error": "n must be an integer"}, 400)

    if n < 1 or n > max_n:
        return None, _json_response({"error": f"n must be between 1 and {max_n}"}, 400)

    return n, None


def _error_response(e: Exception, action: str) -> func.HttpResponse:
    """Map engine errors onto HTTP responses."""
    if isinstance(e, NotFound):
        return _json_response({"error": str(e), "code": e.code}, e.status)

    if isinstance(e, ConfigurationFailure):
        logger.error(f"Recommendation engine unavailable: {str(e)}")
        return _json_response({"error": "Recommendation engine unavailable", "code": e.code}, e.status)

    logger.error(f"Error {action}: {str(e)}", exc_info=True)
    return _json_response({"error": "Internal server error"}, 500)


def get_profile_recommendations(req: func.HttpRequest) -> func.HttpResponse:
    """
    Get personalized recommendations for a profile.

    Query Parameters:
        - n: Number of recommendations (default: 10, max: MAX_RECOMMENDATIONS)
    """
    profile_id = req.route_params.get('profile_id')
    if not profile_id:
        return _json_response({"error": "profile_id is required"}, 400)

    n, error = _parse_count(req)
    if error is not None:
        return error

    try:
        recommendations = recommendation_service.get_personalized_recommendations(profile_id, n)
    except Exception as e:
        return _error_response(e, "getting personalized recommendations")

    return _json_response({
        "profile_id": profile_id,
        "count": len(recommendations),
        "recommendations": [result.to_dict() for result in recommendations]
    })


def get_similar_content(req: func.HttpRequest) -> func.HttpResponse:
    """
    Get content similar to a content item.

    Query Parameters:
        - n: Number of results (default: 10, max: MAX_RECOMMENDATIONS)
    """
    content_id = req.route_params.get('content_id')
    if not content_id:
        return _json_response({"error": "content_id is required"}, 400)

    n, error = _parse_count(req)
    if error is not None:
        return error

    try:
        similar = recommendation_service.get_similar_content(content_id, n)
    except Exception as e:
        return _error_response(e, "getting similar content")

    return _json_response({
        "content_id": content_id,
        "count": len(similar),
        "recommendations": [result.to_dict() for result in similar]
    })


def get_genre_recommendations(req: func.HttpRequest) -> func.HttpResponse:
    """
    Get the most popular content in a genre.

    Query Parameters:
        - n: Number of results (default: 10, max: MAX_RECOMMENDATIONS)
        - profile_id: Optional profile whose watched content is excluded
    """
    genre = req.route_params.get('genre')
    if not genre:
        return _json_response({"error": "genre is required"}, 400)

    n, error = _parse_count(req)
    if error is not None:
        return error

    profile_id = req.params.get('profile_id') or None

    try:
        results = recommendation_service.get_genre_recommendations(genre, n, profile_id=profile_id)
    except Exception as e:
        return _error_response(e, "getting genre recommendations")

    return _json_response({
        "genre": genre,
        "count": len(results),
        "recommendations": [result.to_dict() for result in results]
    })


def get_trending_content(req: func.HttpRequest) -> func.HttpResponse:
    """
    Get the most popular content across the catalog.

    Query Parameters:
        - n: Number of results (default: 10, max: MAX_RECOMMENDATIONS)
    """
    n, error = _parse_count(req)
    if error is not None:
        return error

    try:
        results = recommendation_service.get_trending_content(n)
    except Exception as e:
        return _error_response(e, "getting trending content")

    return _json_response({
        "count": len(results),
        "recommendations": [result.to_dict() for result in results]
    })


# noinspection PyUnusedLocal
def refresh_recommendations(req: func.HttpRequest) -> func.HttpResponse:
    """Rebuild the engine from a fresh catalog snapshot."""
    try:
        recommendation_service.refresh()
    except Exception as e:
        return _error_response(e, "refreshing recommendation engine")

    return _json_response(recommendation_service.get_stats())


# noinspection PyUnusedLocal
def get_recommendation_stats(req: func.HttpRequest) -> func.HttpResponse:
    """
    Get statistics about the recommendation engine.
    """
    try:
        stats = recommendation_service.get_stats()
    except Exception as e:
        return _error_response(e, "getting stats")

    return _json_response(stats)


# noinspection PyUnusedLocal
def health_check(req: func.HttpRequest) -> func.HttpResponse:
    """Health check endpoint."""
    return _json_response({
        "status": "healthy",
        "service": "hybrid-recommendation-service",
        "version": "1.0.0",
        "engine_state": recommendation_service.state.value
    })


# Registered without decorating so the handlers stay plain callables
bp.route(route="profiles/{profile_id}/recommendations", methods=["GET"],
         auth_level=func.AuthLevel.ANONYMOUS)(get_profile_recommendations)
bp.route(route="content/{content_id}/similar", methods=["GET"],
         auth_level=func.AuthLevel.ANONYMOUS)(get_similar_content)
bp.route(route="genres/{genre}/recommendations", methods=["GET"],
         auth_level=func.AuthLevel.ANONYMOUS)(get_genre_recommendations)
bp.route(route="recommendations/trending", methods=["GET"],
         auth_level=func.AuthLevel.ANONYMOUS)(get_trending_content)
bp.route(route="recommendations/refresh", methods=["POST"])(refresh_recommendations)
bp.route(route="recommendations/stats", methods=["GET"])(get_recommendation_stats)
bp.route(route="recommendations/health", methods=["GET"])(health_check)
