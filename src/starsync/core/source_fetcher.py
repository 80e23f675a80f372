"""Paginated and tail-window fetching of starred repositories."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from .errors import FetchError
from .retry import RetryPolicy, retry_async
from ..api_clients.base import RepositoryRecord, SourceClient
from ..config.schema import MAX_SOURCE_PAGE_SIZE
from ..utils.logging import get_logger, log_async_execution_time


@dataclass
class PageCursor:
    """Forward pagination state of the source."""

    end_cursor: Optional[str] = None
    has_next_page: bool = True


@dataclass
class StarredPage:
    """Normalized records of one source page."""

    records: List[RepositoryRecord]
    cursor: PageCursor


@dataclass
class FetchResult:
    """Records gathered by a full fetch, in source order."""

    records: List[RepositoryRecord] = field(default_factory=list)
    cursor: PageCursor = field(default_factory=PageCursor)
    rounds: int = 0

    def __len__(self) -> int:
        return len(self.records)


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp, returning None when absent or malformed."""
    if not value or not isinstance(value, str):
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


class SourceFetcher:
    """Pulls starred repositories from the source and normalizes them."""

    def __init__(
        self,
        client: SourceClient,
        page_policy: RetryPolicy,
        tail_policy: RetryPolicy
    ):
        """Initialize the fetcher.

        Args:
            client: Source collaborator
            page_policy: Retry timing for bulk page requests
            tail_policy: Retry timing for tail-window requests
        """
        self.client = client
        self.page_policy = page_policy
        self.tail_policy = tail_policy
        self.logger = get_logger(self.__class__.__name__)

    @log_async_execution_time
    async def fetch_all_from_start(
        self,
        page_size: int,
        topic_limit: int,
        max_total: int
    ) -> FetchResult:
        """Walk the starred list from the first page until exhausted or capped.

        Pages are requested one at a time; each request asks only for what is
        left under ``max_total``.

        Raises:
            FetchError: If a page request exhausts its retries
        """
        page_size = max(1, min(page_size, MAX_SOURCE_PAGE_SIZE))
        result = FetchResult()

        self.logger.info(
            "Starting full fetch of starred repositories",
            page_size=page_size,
            max_total=max_total
        )

        while result.cursor.has_next_page and len(result.records) < max_total:
            remaining = max_total - len(result.records)
            page = await self._fetch_page(result.cursor.end_cursor, min(page_size, remaining), topic_limit)

            result.records.extend(page.records[:remaining])
            result.cursor = page.cursor
            result.rounds += 1

            self.logger.info(
                "Fetched starred repositories page",
                round=result.rounds,
                count=len(result.records),
                cursor=result.cursor.end_cursor,
                has_next_page=result.cursor.has_next_page
            )

            # A page that cannot move the cursor would loop forever
            if result.cursor.has_next_page and not result.cursor.end_cursor:
                self.logger.warning("Source reported more pages without a cursor, stopping")
                break

        self.logger.info(
            "Full fetch completed",
            count=len(result.records),
            rounds=result.rounds,
            cursor=result.cursor.end_cursor,
            has_next_page=result.cursor.has_next_page
        )

        return result

    async def fetch_most_recent(self, count: int, topic_limit: int) -> List[RepositoryRecord]:
        """Fetch the ``count`` most recently starred repositories in one request.

        Raises:
            FetchError: If the request exhausts its retries
        """
        if count > MAX_SOURCE_PAGE_SIZE:
            self.logger.warning(
                "Recent window exceeds the source page limit, clamping",
                requested=count,
                limit=MAX_SOURCE_PAGE_SIZE
            )
        count = max(1, min(count, MAX_SOURCE_PAGE_SIZE))
        self.logger.info("Fetching most recent starred repositories", count=count)

        outcome = await retry_async(
            lambda: self.client.query_last_starred(count, topic_limit),
            self.tail_policy,
            description="fetch_most_recent",
            count=count
        )
        if not outcome.succeeded:
            raise FetchError(f"Failed to fetch recent stars: {outcome.error}") from outcome.error

        records = self.normalize_edges(outcome.value, topic_limit)
        self.logger.info("Fetched most recent starred repositories", count=len(records))
        return records

    async def _fetch_page(self, cursor: Optional[str], page_size: int, topic_limit: int) -> StarredPage:
        outcome = await retry_async(
            lambda: self.client.query_starred(cursor, page_size, topic_limit),
            self.page_policy,
            description="fetch_starred_page",
            cursor=cursor
        )
        if not outcome.succeeded:
            raise FetchError(f"Failed to fetch starred page after cursor {cursor!r}: {outcome.error}") from outcome.error

        connection = outcome.value
        page_info = connection.get("pageInfo") or {}
        return StarredPage(
            records=self.normalize_edges(connection, topic_limit),
            cursor=PageCursor(
                end_cursor=page_info.get("endCursor"),
                has_next_page=bool(page_info.get("hasNextPage"))
            )
        )

    def normalize_edges(self, connection: Dict[str, Any], topic_limit: int) -> List[RepositoryRecord]:
        """Turn a raw starredRepositories connection into records."""
        records = []
        for edge in connection.get("edges") or []:
            record = self.normalize_edge(edge, topic_limit)
            if record is not None:
                records.append(record)
        return records

    def normalize_edge(self, edge: Dict[str, Any], topic_limit: int) -> Optional[RepositoryRecord]:
        node = (edge or {}).get("node")
        if not node or not node.get("nameWithOwner"):
            self.logger.warning("Dropping starred edge without a repository name", edge=edge)
            return None

        topic_nodes = (node.get("repositoryTopics") or {}).get("nodes") or []
        topics = tuple(
            topic_node["topic"]["name"]
            for topic_node in topic_nodes
            if topic_node and (topic_node.get("topic") or {}).get("name")
        )[:topic_limit]

        language = (node.get("primaryLanguage") or {}).get("name")

        return RepositoryRecord(
            name_with_owner=node["nameWithOwner"],
            url=node.get("url") or "",
            description=node.get("description"),
            primary_language=language,
            starred_at=parse_timestamp(edge.get("starredAt")),
            updated_at=parse_timestamp(node.get("updatedAt")),
            stargazer_count=max(int(node.get("stargazerCount") or 0), 0),
            topics=topics
        )
