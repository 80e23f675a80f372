"""Base API client interfaces and shared record types."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from ..utils.logging import get_logger


@dataclass(frozen=True)
class RepositoryRecord:
    """One starred repository, normalized from a source page edge."""

    name_with_owner: str
    url: str = ""
    description: Optional[str] = None
    primary_language: Optional[str] = None
    starred_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    stargazer_count: int = 0
    topics: Tuple[str, ...] = ()

    @property
    def key(self) -> str:
        """Natural key used for de-duplication."""
        return self.name_with_owner


@dataclass(frozen=True)
class ExistingRecord:
    """A record already present in the target service."""

    key: str
    record_id: str


@dataclass
class InventoryPage:
    """One page of the target inventory."""

    items: List[ExistingRecord] = field(default_factory=list)
    next_cursor: Optional[str] = None
    has_more: bool = False


class SourceClient(ABC):
    """Read-only access to the starred repository catalog."""

    def __init__(self):
        self.logger = get_logger(self.__class__.__name__)

    @abstractmethod
    async def query_starred(
        self,
        cursor: Optional[str],
        page_size: int,
        topic_limit: int
    ) -> Dict[str, Any]:
        """Fetch one forward page of starred repositories.

        Args:
            cursor: End cursor of the previous page, None for the first page
            page_size: Number of items requested
            topic_limit: Topics requested per repository

        Returns:
            Raw ``starredRepositories`` connection with ``pageInfo`` and ``edges``
        """
        pass

    @abstractmethod
    async def query_last_starred(self, count: int, topic_limit: int) -> Dict[str, Any]:
        """Fetch the ``count`` most recently starred repositories.

        Returns:
            Raw ``starredRepositories`` connection, same shape as ``query_starred``
        """
        pass


class TargetClient(ABC):
    """Query and create access to the record-keeping service."""

    def __init__(self):
        self.logger = get_logger(self.__class__.__name__)

    @abstractmethod
    async def query_existing(self, cursor: Optional[str]) -> InventoryPage:
        """Fetch one page of existing target records."""
        pass

    @abstractmethod
    async def create_record(self, record: RepositoryRecord) -> str:
        """Create a target record and return its identifier."""
        pass


class RateLimitError(Exception):
    """Raised when API rate limit is exceeded."""

    def __init__(self, message: str, retry_after: Optional[int] = None):
        super().__init__(message)
        self.retry_after = retry_after


class AuthenticationError(Exception):
    """Raised when API authentication fails."""
    pass


class APIConnectionError(Exception):
    """Raised when API connection fails or the service returns a server error."""
    pass


class RecordValidationError(Exception):
    """Raised when the target service rejects a record as malformed."""
    pass
