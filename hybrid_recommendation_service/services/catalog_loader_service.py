"""Service to load catalog snapshots from the catalog microservice"""
from typing import Any, Dict, List, Optional
import time
import logging
import requests

from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from hybrid_recommendation_service.config import get_service_url
from hybrid_recommendation_service.ml.types import ContentItem, Interaction, Profile

logger = logging.getLogger(__name__)


class CatalogDataLoader:
    """Service to load content, profiles and interactions from the catalog microservice."""

    def __init__(
            self,
            catalog_service_url: Optional[str] = None,
            batch_size: int = 100
    ):
        # Default to localhost for development
        self.catalog_service_url = catalog_service_url or get_service_url('catalog', 7071)
        self.batch_size = batch_size

        # Configure session with retries
        self.session = requests.Session()
        retry_strategy = Retry(
            total=3,
            backoff_factor=1,
            status_forcelist=[429, 500, 502, 503, 504]
        )
        adapter = HTTPAdapter(max_retries=retry_strategy)
        # noinspection HttpUrlsUsage
        self.session.mount("http://", adapter)
        self.session.mount("https://", adapter)

    def get_page(self, resource: str, offset: int = 0, limit: int = 100) -> Dict:
        """
        Fetch one page of a collection.

        Returns:
            {
                "items": [...],
                "total": 12345
            }
        """
        url = f"{self.catalog_service_url}/{resource}"
        params = {'offset': offset, 'limit': limit}
        response = self.session.get(url, params=params, timeout=10)
        response.raise_for_status()
        return response.json()

    def get_all(self, resource: str) -> List[Dict[str, Any]]:
        """
        Fetch a whole collection using pagination.

        Args:
            resource: Collection path ('content', 'profiles' or 'interactions')

        Returns:
            List of documents
        """
        documents: List[Dict[str, Any]] = []
        offset = 0

        logger.info(f"Fetching all {resource} (batch size: {self.batch_size})...")

        while True:
            result = self.get_page(resource, offset=offset, limit=self.batch_size)
            items = result.get('items', [])

            if not items:
                break

            documents.extend(items)
            logger.info(f"  Loaded {len(documents)} {resource}...")

            # Fewer items than requested means this was the last page
            if len(items) < self.batch_size:
                break

            offset += self.batch_size
            time.sleep(0.1)  # Rate limiting

        logger.info(f"✓ Loaded {len(documents)} total {resource}")
        return documents

    def load_content_catalog(self) -> List[ContentItem]:
        return [ContentItem.from_dict(doc) for doc in self.get_all('content')]

    def load_profile_catalog(self) -> List[Profile]:
        return [Profile.from_dict(doc) for doc in self.get_all('profiles')]

    def load_interaction_log(self) -> List[Interaction]:
        return [Interaction.from_dict(doc) for doc in self.get_all('interactions')]
