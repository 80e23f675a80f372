"""Application configuration settings."""

from typing import Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _env_config(prefix: str) -> SettingsConfigDict:
    return SettingsConfigDict(
        env_prefix=prefix,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


class GitHubSettings(BaseSettings):
    """GitHub GraphQL API configuration."""

    model_config = _env_config("GITHUB_")

    token: str = Field(default="", validation_alias=AliasChoices("GITHUB_TOKEN", "TOKEN_OF_GITHUB"))
    api_url: str = "https://api.github.com/graphql"
    page_size: int = 100
    topics_limit: int = Field(default=50, validation_alias=AliasChoices("GITHUB_TOPICS_LIMIT", "REPO_TOPICS_LIMIT"))
    fullsync_limit: int = Field(default=2000, validation_alias=AliasChoices("GITHUB_FULLSYNC_LIMIT", "FULLSYNC_LIMIT"))
    partialsync_limit: int = Field(
        default=10,
        validation_alias=AliasChoices("GITHUB_PARTIALSYNC_LIMIT", "PARTIALSYNC_LIMIT")
    )


class NotionSettings(BaseSettings):
    """Notion API configuration."""

    model_config = _env_config("NOTION_")

    api_key: str = ""
    database_id: str = ""
    api_url: str = "https://api.notion.com/v1"
    notion_version: str = "2022-06-28"
    batch_size: int = Field(default=5, validation_alias=AliasChoices("NOTION_BATCH_SIZE", "OPERATION_BATCH_SIZE"))


class CacheSettings(BaseSettings):
    """Identity cache persistence configuration."""

    model_config = _env_config("CACHE_")

    database_url: str = "sqlite:///./data/starsync.db"
    namespace: str = "notion-page"


class LoggingSettings(BaseSettings):
    """Logging configuration."""

    model_config = _env_config("LOG_")

    level: str = "INFO"
    format: str = "json"
    file_path: Optional[str] = "./logs/starsync.log"


class AppSettings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    name: str = Field(default="star-sync", validation_alias="APP_NAME")
    version: str = Field(default="1.0.0", validation_alias="APP_VERSION")
    environment: str = Field(default="development", validation_alias="ENVIRONMENT")
    request_timeout_seconds: float = Field(default=60.0, validation_alias="REQUEST_TIMEOUT_SECONDS")

    github: GitHubSettings = Field(default_factory=GitHubSettings)
    notion: NotionSettings = Field(default_factory=NotionSettings)
    cache: CacheSettings = Field(default_factory=CacheSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


_settings: Optional[AppSettings] = None


def get_settings() -> AppSettings:
    """Get application settings."""
    global _settings
    if _settings is None:
        _settings = AppSettings()
    return _settings


def reset_settings() -> None:
    """Drop the cached settings so the next call re-reads the environment."""
    global _settings
    _settings = None
