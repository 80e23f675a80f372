"""Sync run errors."""


class SyncError(Exception):
    """Base exception for sync errors."""
    pass


class FetchError(SyncError):
    """A read from the source or the target inventory exhausted its retries.

    Fatal to the current run; nothing fetched in the run is written.
    """
    pass
