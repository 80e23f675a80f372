"""API clients package for the source and target services."""

from .base import (
    RepositoryRecord,
    ExistingRecord,
    InventoryPage,
    SourceClient,
    TargetClient,
    RateLimitError,
    AuthenticationError,
    APIConnectionError,
    RecordValidationError
)

from .github import GitHubClient
from .notion import NotionClient, build_page_properties, truncate_text

__all__ = [
    # Records and interfaces
    "RepositoryRecord",
    "ExistingRecord",
    "InventoryPage",
    "SourceClient",
    "TargetClient",

    # Exceptions
    "RateLimitError",
    "AuthenticationError",
    "APIConnectionError",
    "RecordValidationError",

    # Client implementations
    "GitHubClient",
    "NotionClient",
    "build_page_properties",
    "truncate_text"
]
