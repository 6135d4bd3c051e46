#!/usr/bin/env python3
"""
Steam Workshop Collection Sync - Main Entry Point

Makes a target collection contain exactly the items of one or more source
collections, expanding nested collections.

Usage:
    python -m collection_sync.main --target 123 --source 456 --source 789
    python -m collection_sync.main --dry-run    # Preview changes without applying
    python -m collection_sync.main --verbose    # Enable debug logging

Environment Variables:
    STEAM_SESSION_ID          - sessionid of a logged-in community session
    STEAM_COOKIES             - Raw Cookie header of that session
    SYNC_TARGET_COLLECTION    - Default target collection ID
    SYNC_SOURCE_COLLECTIONS   - Default source collection IDs, comma separated
"""

import argparse
import logging
import sys
from pathlib import Path

from config.settings import load_settings, ConfigurationError, Settings
from collection_sync.steam.client import SteamCollectionClient, SteamAPIError
from collection_sync.steam.session import (
    CookieSessionProvider,
    SessionProvider,
    StaticSessionProvider,
)
from collection_sync.sync.engine import SyncOrchestrator


def setup_logging(verbose: bool = False, level_name: str = "INFO") -> None:
    """
    Configure logging for the application.

    Args:
        verbose: If True, enable DEBUG level logging
        level_name: Level to use when not verbose
    """
    level = logging.DEBUG if verbose else getattr(logging, level_name, logging.INFO)

    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[
            logging.StreamHandler(sys.stdout),
        ],
    )

    # Reduce noise from external libraries
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("requests").setLevel(logging.WARNING)


def parse_args(argv=None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Sync a Steam Workshop collection with the union of other collections",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    python -m collection_sync.main -t 123 -s 456 -s 789   # Full sync
    python -m collection_sync.main --dry-run              # Preview changes
    python -m collection_sync.main --env .env.local       # Use custom env file
        """,
    )

    parser.add_argument(
        "-t", "--target",
        help="Target collection ID (default: SYNC_TARGET_COLLECTION)",
    )

    parser.add_argument(
        "-s", "--source",
        action="append",
        default=[],
        help="Source collection ID, may be repeated (default: SYNC_SOURCE_COLLECTIONS)",
    )

    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Preview changes without making any modifications",
    )

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose/debug logging",
    )

    parser.add_argument(
        "--env",
        type=Path,
        help="Path to .env file (default: .env in current directory)",
    )

    return parser.parse_args(argv)


def build_session_provider(settings: Settings) -> SessionProvider:
    """Prefer an explicit session ID, fall back to the cookie header."""
    if settings.steam.session_id:
        return StaticSessionProvider(settings.steam.session_id)
    return CookieSessionProvider(settings.steam.cookies)


def build_cookie_jar(settings: Settings) -> dict[str, str]:
    """Cookies for the community host, with the session ID filled in."""
    jar = CookieSessionProvider.parse(settings.steam.cookies)
    if settings.steam.session_id:
        jar["sessionid"] = settings.steam.session_id
    return jar


def main(argv=None) -> int:
    """
    Main entry point.

    Returns:
        Exit code (0 for success, 1 for error)
    """
    args = parse_args(argv)

    try:
        settings = load_settings(env_file=args.env)
    except ConfigurationError as e:
        setup_logging(verbose=args.verbose)
        logging.getLogger(__name__).error(f"Configuration error: {e}")
        return 1

    setup_logging(verbose=args.verbose, level_name=settings.log_level)
    logger = logging.getLogger(__name__)

    target_id = args.target or settings.sync.target_collection
    source_ids = args.source or list(settings.sync.source_collections)

    if not target_id:
        logger.error("No target collection given (use --target or SYNC_TARGET_COLLECTION)")
        return 1
    if not source_ids:
        logger.error("No source collections given (use --source or SYNC_SOURCE_COLLECTIONS)")
        return 1

    logger.info("Steam Workshop Collection Sync")
    logger.info("=" * 50)

    try:
        with SteamCollectionClient(
            api_base_url=settings.steam.api_base_url,
            community_base_url=settings.steam.community_base_url,
            timeout=settings.steam.request_timeout,
            pool_size=settings.sync.max_workers + 2,
            cookies=build_cookie_jar(settings),
        ) as client:
            orchestrator = SyncOrchestrator(
                client=client,
                session_provider=build_session_provider(settings),
                max_workers=settings.sync.max_workers,
                dry_run=args.dry_run or settings.sync.dry_run,
            )

            result = orchestrator.sync(target_id, source_ids)

        logger.info("=" * 50)
        logger.info("Sync Summary")
        logger.info("=" * 50)
        logger.info(f"Target collection:   {result.target_id}")
        logger.info(f"Changes detected:    {len(result.diff)}")
        logger.info(f"Items added:         {len(result.added)}")
        logger.info(f"Items removed:       {len(result.removed)}")
        logger.info(f"Failed mutations:    {len(result.failed)}")
        logger.info("=" * 50)

        if not result.succeeded:
            logger.error(f"Sync failed: {result.error}")
            logger.error("Already applied changes were kept; re-run to continue")
            return 1

        logger.info("Sync completed successfully!")
        return 0

    except SteamAPIError as e:
        logger.error(f"Steam API error: {e}")
        return 1
    except KeyboardInterrupt:
        logger.info("Sync interrupted by user")
        return 130
    except Exception as e:
        logger.error(f"Unexpected error: {e}", exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
