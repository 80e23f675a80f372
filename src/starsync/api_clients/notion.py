"""Notion API client: database inventory and page creation."""

from typing import Any, Dict, List, Optional

import aiohttp

from .base import (
    TargetClient, RepositoryRecord, ExistingRecord, InventoryPage,
    RateLimitError, AuthenticationError, APIConnectionError, RecordValidationError
)


# Notion rejects rich text content longer than 2000 characters
MAX_TEXT_LENGTH = 2000
TRUNCATION_MARKER = "..."
INVENTORY_PAGE_SIZE = 100


def truncate_text(value: Optional[str], limit: int = MAX_TEXT_LENGTH) -> str:
    """Fit text into a Notion rich text block, marking the cut."""
    if not value:
        return ""
    if len(value) >= limit:
        return value[:limit - len(TRUNCATION_MARKER)] + TRUNCATION_MARKER
    return value


def _rich_text(content: str) -> Dict[str, Any]:
    return {
        "type": "rich_text",
        "rich_text": [{"type": "text", "text": {"content": content}}],
    }


def build_page_properties(record: RepositoryRecord) -> Dict[str, Any]:
    """Map a repository record onto the star database columns."""
    properties: Dict[str, Any] = {
        "Name": {
            "type": "title",
            "title": [{"type": "text", "text": {"content": record.name_with_owner}}],
        },
        "Link": {"type": "url", "url": record.url or None},
        "Description": _rich_text(truncate_text(record.description)),
        "Primary Language": _rich_text(truncate_text(record.primary_language)),
        "Repository Topics": _rich_text(truncate_text(",".join(record.topics))),
        "Stargazers": {"type": "number", "number": record.stargazer_count},
    }

    if record.starred_at is not None:
        starred_at = record.starred_at.isoformat()
        properties["Starred At"] = {
            "type": "date",
            "date": {"start": starred_at, "end": starred_at},
        }

    return properties


def extract_page_key(page: Dict[str, Any]) -> Optional[str]:
    """Return the plain text of a page's title, or None if it has none."""
    title = (page.get("properties") or {}).get("Name", {}).get("title") or []
    if not title:
        return None
    return title[0].get("plain_text") or None


class NotionClient(TargetClient):
    """Notion API client writing one page per starred repository."""

    def __init__(
        self,
        api_key: str,
        database_id: str,
        api_url: str = "https://api.notion.com/v1",
        notion_version: str = "2022-06-28",
        timeout_seconds: float = 60.0,
        session: Optional[aiohttp.ClientSession] = None
    ):
        """Initialize Notion client.

        Args:
            api_key: Integration secret
            database_id: Database receiving one page per repository
            api_url: REST API base URL
            notion_version: Value of the Notion-Version header
            timeout_seconds: Total timeout per HTTP request
            session: Existing session to reuse, owned by the caller
        """
        super().__init__()
        if not api_key:
            raise AuthenticationError("Notion API key is not configured")
        if not database_id:
            raise ValueError("Notion database_id is required")

        self.api_key = api_key
        self.database_id = database_id
        self.api_url = api_url.rstrip('/')
        self.notion_version = notion_version
        self.timeout = aiohttp.ClientTimeout(total=timeout_seconds)
        self.session = session
        self._owns_session = session is None

    async def __aenter__(self):
        if self.session is None:
            self.session = aiohttp.ClientSession(timeout=self.timeout)
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def close(self):
        if self.session and self._owns_session:
            await self.session.close()
            self.session = None

    async def query_existing(self, cursor: Optional[str]) -> InventoryPage:
        body: Dict[str, Any] = {"page_size": INVENTORY_PAGE_SIZE}
        if cursor:
            body["start_cursor"] = cursor

        data = await self._post(f"/databases/{self.database_id}/query", body)

        items: List[ExistingRecord] = []
        for page in data.get("results", []):
            key = extract_page_key(page)
            if key is None:
                self.logger.warning("Skipping page without a title", page_id=page.get("id"))
                continue
            items.append(ExistingRecord(key=key, record_id=page["id"]))

        return InventoryPage(
            items=items,
            next_cursor=data.get("next_cursor"),
            has_more=bool(data.get("has_more"))
        )

    async def create_record(self, record: RepositoryRecord) -> str:
        data = await self._post("/pages", {
            "parent": {"database_id": self.database_id},
            "properties": build_page_properties(record),
        })
        return data["id"]

    async def _post(self, path: str, body: Dict[str, Any]) -> Dict[str, Any]:
        """Make an authenticated API request."""
        if self.session is None:
            self.session = aiohttp.ClientSession(timeout=self.timeout)
            self._owns_session = True

        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Notion-Version": self.notion_version,
            "Content-Type": "application/json"
        }

        try:
            async with self.session.post(f"{self.api_url}{path}", json=body, headers=headers) as response:
                if response.status == 401:
                    raise AuthenticationError("Notion rejected the API key")
                elif response.status == 429:
                    retry_after = response.headers.get("Retry-After")
                    raise RateLimitError(
                        "Notion rate limit exceeded",
                        int(retry_after) if retry_after and retry_after.isdigit() else None
                    )
                elif response.status == 400:
                    error_text = await response.text()
                    raise RecordValidationError(f"Notion rejected the request: {error_text}")
                elif response.status != 200:
                    error_text = await response.text()
                    raise APIConnectionError(f"Notion request failed: {response.status} - {error_text}")

                return await response.json()

        except aiohttp.ClientError as e:
            raise APIConnectionError(f"Network error: {e}") from e
