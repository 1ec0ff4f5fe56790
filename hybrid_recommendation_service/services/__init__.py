"""Service classes"""

from .catalog_loader_service import CatalogDataLoader
from .catalog_store import CatalogStore, DatabaseCatalogStore, JsonFileCatalogStore, get_catalog_store
from .hybrid_recommendation_service import EngineState, HybridRecommendationService

__all__ = [
    "CatalogDataLoader",
    "CatalogStore",
    "DatabaseCatalogStore",
    "EngineState",
    "HybridRecommendationService",
    "JsonFileCatalogStore",
    "get_catalog_store",
]
