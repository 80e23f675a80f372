"""GitHub GraphQL client for the viewer's starred repositories."""

from typing import Any, Dict, Optional

import aiohttp

from .base import SourceClient, RateLimitError, AuthenticationError, APIConnectionError


# GitHub rejects connection arguments above 100 nodes
MAX_CONNECTION_SIZE = 100


_REPOSITORY_FIELDS = """
                    starredAt
                    node {
                        nameWithOwner
                        url
                        description
                        primaryLanguage {
                            name
                        }
                        repositoryTopics(first: $topicFirst) {
                            nodes {
                                topic {
                                    name
                                }
                            }
                        }
                        updatedAt
                        stargazerCount
                    }
"""

STARRED_AFTER_CURSOR_QUERY = """
query ($after: String, $pageSize: Int!, $topicFirst: Int!) {
    viewer {
        starredRepositories(first: $pageSize, after: $after) {
            pageInfo {
                startCursor
                endCursor
                hasNextPage
            }
            edges {%s            }
        }
    }
}
""" % _REPOSITORY_FIELDS

LAST_STARRED_QUERY = """
query ($last: Int!, $topicFirst: Int!) {
    viewer {
        starredRepositories(last: $last) {
            pageInfo {
                startCursor
                endCursor
                hasNextPage
            }
            edges {%s            }
        }
    }
}
""" % _REPOSITORY_FIELDS


class GitHubClient(SourceClient):
    """GitHub GraphQL API client for starred repositories."""

    def __init__(
        self,
        token: str,
        api_url: str = "https://api.github.com/graphql",
        timeout_seconds: float = 60.0,
        session: Optional[aiohttp.ClientSession] = None
    ):
        """Initialize GitHub client.

        Args:
            token: Personal access token with read access to stars
            api_url: GraphQL endpoint
            timeout_seconds: Total timeout per HTTP request
            session: Existing session to reuse, owned by the caller
        """
        super().__init__()
        if not token:
            raise AuthenticationError("GitHub token is not configured")

        self.token = token
        self.api_url = api_url
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

    async def query_starred(
        self,
        cursor: Optional[str],
        page_size: int,
        topic_limit: int
    ) -> Dict[str, Any]:
        data = await self._execute_query(
            STARRED_AFTER_CURSOR_QUERY,
            {"after": cursor or None, "pageSize": page_size, "topicFirst": min(topic_limit, MAX_CONNECTION_SIZE)}
        )
        return self._starred_connection(data)

    async def query_last_starred(self, count: int, topic_limit: int) -> Dict[str, Any]:
        data = await self._execute_query(
            LAST_STARRED_QUERY,
            {"last": count, "topicFirst": min(topic_limit, MAX_CONNECTION_SIZE)}
        )
        return self._starred_connection(data)

    def _starred_connection(self, data: Dict[str, Any]) -> Dict[str, Any]:
        viewer = data.get("viewer") or {}
        connection = viewer.get("starredRepositories")
        if connection is None:
            raise APIConnectionError("GitHub response did not include starredRepositories")
        return connection

    async def _execute_query(self, query: str, variables: Dict[str, Any]) -> Dict[str, Any]:
        """Execute a GraphQL query and map failures onto client errors."""
        if self.session is None:
            self.session = aiohttp.ClientSession(timeout=self.timeout)
            self._owns_session = True

        headers = {
            "Authorization": f"Bearer {self.token}",
            "Content-Type": "application/json",
            "Accept": "application/json"
        }

        try:
            async with self.session.post(
                self.api_url,
                json={"query": query, "variables": variables},
                headers=headers
            ) as response:
                if response.status == 401:
                    raise AuthenticationError("GitHub rejected the token")
                elif response.status in (403, 429):
                    retry_after = response.headers.get("Retry-After")
                    raise RateLimitError(
                        f"GitHub rate limit exceeded: {response.status}",
                        int(retry_after) if retry_after and retry_after.isdigit() else None
                    )
                elif response.status != 200:
                    error_text = await response.text()
                    raise APIConnectionError(f"GitHub request failed: {response.status} - {error_text}")

                payload = await response.json()

        except aiohttp.ClientError as e:
            raise APIConnectionError(f"Network error: {e}") from e

        errors = payload.get("errors")
        if errors:
            messages = [error.get("message", "") for error in errors]
            if any(error.get("type") == "RATE_LIMITED" for error in errors):
                raise RateLimitError(f"GitHub GraphQL rate limit: {messages}")
            raise APIConnectionError(f"GitHub GraphQL errors: {messages}")

        return payload.get("data") or {}
