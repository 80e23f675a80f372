"""Configuration schema definitions for sync runs and retry policies."""

from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator


# GitHub caps connection page sizes at 100 nodes
MAX_SOURCE_PAGE_SIZE = 100


class RetryPolicyConfig(BaseModel):
    """Retry policy for one kind of remote call."""

    max_attempts: int = Field(default=6, description="Total attempts, including the first call")
    backoff_factor: float = Field(default=2.0, description="Multiplier applied to the delay after each failure")
    min_delay_seconds: float = Field(default=5.0, description="Delay before the first retry")
    max_delay_seconds: Optional[float] = Field(default=None, description="Upper bound for any single delay")

    @field_validator('max_attempts')
    @classmethod
    def validate_attempts(cls, v):
        if v < 1:
            raise ValueError("max_attempts must be at least 1")
        return v

    @field_validator('backoff_factor')
    @classmethod
    def validate_factor(cls, v):
        if v < 1:
            raise ValueError("backoff_factor must be at least 1")
        return v

    @field_validator('min_delay_seconds', 'max_delay_seconds')
    @classmethod
    def validate_delay(cls, v):
        if v is not None and v < 0:
            raise ValueError("delays cannot be negative")
        return v

    def to_policy(self):
        """Build the runtime retry policy."""
        from ..core.retry import RetryPolicy

        return RetryPolicy(
            max_attempts=self.max_attempts,
            backoff_factor=self.backoff_factor,
            min_delay=self.min_delay_seconds,
            max_delay=self.max_delay_seconds,
        )


class RetryConfig(BaseModel):
    """Retry policies per remote operation."""

    # Bulk fetch can wait out a GitHub secondary rate limit
    source_fetch: RetryPolicyConfig = Field(
        default_factory=lambda: RetryPolicyConfig(max_attempts=6, min_delay_seconds=120.0)
    )
    source_tail: RetryPolicyConfig = Field(
        default_factory=lambda: RetryPolicyConfig(max_attempts=4, min_delay_seconds=5.0)
    )
    target_query: RetryPolicyConfig = Field(
        default_factory=lambda: RetryPolicyConfig(max_attempts=6, min_delay_seconds=5.0)
    )
    target_write: RetryPolicyConfig = Field(
        default_factory=lambda: RetryPolicyConfig(max_attempts=6, min_delay_seconds=10.0)
    )


class SyncConfig(BaseModel):
    """Tuning for one synchronization run."""

    page_size: int = Field(default=MAX_SOURCE_PAGE_SIZE, description="Source items per page")
    topics_limit: int = Field(default=50, description="Topics kept per repository")
    fullsync_limit: int = Field(default=2000, description="Maximum repositories fetched by a full sync")
    recent_count: int = Field(default=10, description="Tail window size for incremental syncs")
    batch_size: int = Field(default=5, description="Concurrent target writes per batch")
    cache_namespace: str = Field(default="notion-page", description="Durable cache namespace")

    retry: RetryConfig = Field(default_factory=RetryConfig)

    @field_validator('page_size')
    @classmethod
    def validate_page_size(cls, v):
        if v < 1 or v > MAX_SOURCE_PAGE_SIZE:
            raise ValueError(f"page_size must be between 1 and {MAX_SOURCE_PAGE_SIZE}")
        return v

    @field_validator('topics_limit', 'recent_count')
    @classmethod
    def validate_connection_size(cls, v):
        if v < 1 or v > MAX_SOURCE_PAGE_SIZE:
            raise ValueError(f"value must be between 1 and {MAX_SOURCE_PAGE_SIZE}")
        return v

    @field_validator('fullsync_limit', 'batch_size')
    @classmethod
    def validate_positive(cls, v):
        if v < 1:
            raise ValueError("value must be at least 1")
        return v

    @model_validator(mode='after')
    def validate_namespace(self):
        if not self.cache_namespace.strip():
            raise ValueError("cache_namespace cannot be empty")
        return self
