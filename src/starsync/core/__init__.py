"""Core synchronization logic package."""

from .errors import SyncError, FetchError
from .retry import RetryPolicy, RetryOutcome, RetryExhaustedError, retry_async
from .source_fetcher import SourceFetcher, PageCursor, StarredPage, FetchResult
from .identity_cache import IdentityCache
from .target_writer import TargetWriter, WriteReport, WriteStatus
from .orchestrator import SyncOrchestrator, SyncOptions, SyncResult

__all__ = [
    "SyncError",
    "FetchError",
    "RetryPolicy",
    "RetryOutcome",
    "RetryExhaustedError",
    "retry_async",
    "SourceFetcher",
    "PageCursor",
    "StarredPage",
    "FetchResult",
    "IdentityCache",
    "TargetWriter",
    "WriteReport",
    "WriteStatus",
    "SyncOrchestrator",
    "SyncOptions",
    "SyncResult"
]
