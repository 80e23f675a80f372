"""Main application entry point."""

import argparse
import asyncio
import sys
from typing import List, Optional

from dotenv import load_dotenv
from sqlalchemy.exc import SQLAlchemyError

from .api_clients import GitHubClient, NotionClient, AuthenticationError
from .config.loader import ConfigLoader, ConfigurationError, load_config_from_env
from .config.schema import SyncConfig
from .config.settings import get_settings
from .core import (
    FetchError, IdentityCache, SourceFetcher, SyncOptions, SyncOrchestrator, SyncResult, TargetWriter
)
from .database import CacheStore, SyncMode, init_database, close_database
from .utils.logging import setup_logging, get_logger


class StarSyncApp:
    """Wires settings, clients and the identity cache into one sync run."""

    def __init__(self, config: SyncConfig):
        self.settings = get_settings()
        self.config = config
        self.logger = get_logger("StarSync")

    async def run(self, mode: SyncMode) -> SyncResult:
        """Run one sync and release every resource afterwards."""
        self.logger.info(
            "Starting star-sync",
            version=self.settings.version,
            environment=self.settings.environment,
            mode=mode.value
        )

        db_manager = init_database(self.settings.cache.database_url, create_tables=True)
        store = CacheStore(db_manager)
        timeout = self.settings.request_timeout_seconds

        try:
            async with GitHubClient(
                token=self.settings.github.token,
                api_url=self.settings.github.api_url,
                timeout_seconds=timeout
            ) as github, NotionClient(
                api_key=self.settings.notion.api_key,
                database_id=self.settings.notion.database_id,
                api_url=self.settings.notion.api_url,
                notion_version=self.settings.notion.notion_version,
                timeout_seconds=timeout
            ) as notion:
                orchestrator = self.build_orchestrator(github, notion, store)
                return await orchestrator.run(mode)
        finally:
            close_database()
            self.logger.info("star-sync stopped")

    def build_orchestrator(self, source, target, store: CacheStore) -> SyncOrchestrator:
        retry = self.config.retry
        cache = IdentityCache(store, namespace=self.config.cache_namespace)

        fetcher = SourceFetcher(
            source,
            page_policy=retry.source_fetch.to_policy(),
            tail_policy=retry.source_tail.to_policy()
        )
        writer = TargetWriter(
            target,
            cache,
            write_policy=retry.target_write.to_policy(),
            batch_size=self.config.batch_size
        )
        options = SyncOptions(
            page_size=self.config.page_size,
            topics_limit=self.config.topics_limit,
            fullsync_limit=self.config.fullsync_limit,
            recent_count=self.config.recent_count,
            inventory_policy=retry.target_query.to_policy()
        )

        return SyncOrchestrator(fetcher, writer, cache, target, options=options, store=store)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="starsync",
        description="Mirror GitHub stars into a Notion database"
    )
    parser.add_argument(
        "mode",
        nargs="?",
        choices=[mode.value for mode in SyncMode],
        default=SyncMode.INCREMENTAL.value,
        help="full: fetch every star (only on an empty cache); incremental: fetch the latest stars"
    )
    parser.add_argument("--config", help="YAML or JSON file with sync tuning")
    parser.add_argument("--log-level", help="Override LOG_LEVEL")
    parser.add_argument("--log-format", choices=["json", "console"], help="Override LOG_FORMAT")
    return parser


async def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    load_dotenv()
    args = build_parser().parse_args(argv)

    setup_logging(log_level=args.log_level, log_format=args.log_format)
    logger = get_logger("main")

    try:
        if args.config:
            config = ConfigLoader().load_from_file(args.config)
        else:
            config = load_config_from_env()
    except ConfigurationError as e:
        logger.error("Invalid configuration", error=str(e))
        return 1

    app = StarSyncApp(config)

    try:
        result = await app.run(SyncMode(args.mode))
    except (FetchError, AuthenticationError, SQLAlchemyError, ValueError) as e:
        logger.error("Sync run failed", error=str(e))
        return 1

    if result.write_report.failed:
        logger.warning("Some repositories were not synced", repositories=result.write_report.failed)

    return 0


def cli():
    try:
        sys.exit(asyncio.run(main()))
    except KeyboardInterrupt:
        print("\nShutdown requested by user")
        sys.exit(130)


if __name__ == "__main__":
    cli()
