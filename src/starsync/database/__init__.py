"""Database package for the durable identity cache and run log."""

from .database import (
    DatabaseManager,
    get_db_manager,
    init_database,
    close_database
)

from .models import (
    Base,
    CacheEntryModel,
    SyncRunModel,
    SyncMode,
    SyncStatus
)

from .operations import CacheEntryRepository, SyncRunRepository
from .service import CacheStore

__all__ = [
    # Database management
    "DatabaseManager",
    "get_db_manager",
    "init_database",
    "close_database",

    # Models
    "Base",
    "CacheEntryModel",
    "SyncRunModel",
    "SyncMode",
    "SyncStatus",

    # Repositories and service
    "CacheEntryRepository",
    "SyncRunRepository",
    "CacheStore"
]
