"""Configuration package for star-sync."""

from .settings import (
    GitHubSettings,
    NotionSettings,
    CacheSettings,
    LoggingSettings,
    AppSettings,
    get_settings,
    reset_settings
)

from .schema import (
    MAX_SOURCE_PAGE_SIZE,
    RetryPolicyConfig,
    RetryConfig,
    SyncConfig
)

__all__ = [
    "GitHubSettings",
    "NotionSettings",
    "CacheSettings",
    "LoggingSettings",
    "AppSettings",
    "get_settings",
    "reset_settings",

    "MAX_SOURCE_PAGE_SIZE",
    "RetryPolicyConfig",
    "RetryConfig",
    "SyncConfig"
]
