"""
Populate the database with the content catalog, profiles and interaction log.
This script loads a JSON catalog export and stores it in the database the engine reads from.
"""

import sys
from pathlib import Path

# Add parent directory to path
project_root = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(project_root))

import argparse
import logging

from hybrid_recommendation_service.services import JsonFileCatalogStore

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

logger = logging.getLogger(__name__)


def populate_database(catalog_path: Path, session, append_interactions: bool = False) -> dict:
    """
    Store every record of a JSON catalog export in the database.

    Args:
        catalog_path: Path to the JSON export
        session: Database session
        append_interactions: Keep existing interactions instead of replacing the log

    Returns:
        Dict with the number of records stored per table
    """
    from hybrid_recommendation_service.models import InteractionRecord, ProfileRecord
    from hybrid_recommendation_service.repos import CatalogRepository

    if not catalog_path.exists():
        raise FileNotFoundError(f"Catalog file not found: {catalog_path}")

    store = JsonFileCatalogStore(catalog_path)
    repo = CatalogRepository(session)

    logger.info("="*70)
    logger.info("POPULATING CATALOG")
    logger.info("="*70)

    content_items = store.load_content_catalog()
    content_count = repo.bulk_store_content(content_items)

    logger.info("Clearing existing profiles...")
    session.query(ProfileRecord).delete()
    session.commit()

    profiles = store.load_profile_catalog()
    for profile in profiles:
        repo.store_profile(profile)
    logger.info(f"✓ Stored {len(profiles)} profiles")

    if not append_interactions:
        logger.info("Clearing existing interaction log...")
        session.query(InteractionRecord).delete()
        session.commit()

    interactions = store.load_interaction_log()
    for interaction in interactions:
        repo.record_interaction(interaction)
    logger.info(f"✓ Stored {len(interactions)} interactions")

    return {
        'content_items': content_count,
        'profiles': len(profiles),
        'interactions': len(interactions)
    }


def main():
    """Main execution function."""
    parser = argparse.ArgumentParser(
        description='Populate database with content, profiles and interactions'
    )
    parser.add_argument(
        'catalog',
        type=str,
        help='JSON file with "content", "profiles" and "interactions" arrays'
    )
    parser.add_argument(
        '--append-interactions',
        action='store_true',
        help='Append interactions instead of replacing the existing log'
    )
    parser.add_argument(
        '--create-tables',
        action='store_true',
        help='Create missing tables before loading'
    )

    args = parser.parse_args()

    from hybrid_recommendation_service.models.database import SessionLocal, create_tables

    if args.create_tables:
        logger.info("Creating tables...")
        create_tables()

    db = SessionLocal()
    try:
        counts = populate_database(
            Path(args.catalog),
            db,
            append_interactions=args.append_interactions
        )
    except Exception as e:
        logger.error(f"Error during database population: {str(e)}", exc_info=True)
        sys.exit(1)
    finally:
        db.close()

    logger.info("="*70)
    logger.info("POPULATE DATABASE COMPLETE")
    logger.info("="*70)
    for table, count in counts.items():
        logger.info(f"  {table}: {count}")


if __name__ == '__main__':
    main()
