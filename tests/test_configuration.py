"""Tests for settings, the sync configuration schema and the loader."""

import json

import pytest

from starsync.config import (
    AppSettings, GitHubSettings, NotionSettings, RetryPolicyConfig, SyncConfig, get_settings, reset_settings
)
from starsync.config.loader import ConfigLoader, ConfigurationError, load_config_from_env
from starsync.core.retry import RetryPolicy


ENV_NAMES = [
    "GITHUB_TOKEN", "TOKEN_OF_GITHUB", "REPO_TOPICS_LIMIT", "GITHUB_TOPICS_LIMIT", "FULLSYNC_LIMIT",
    "GITHUB_FULLSYNC_LIMIT", "PARTIALSYNC_LIMIT", "GITHUB_PARTIALSYNC_LIMIT", "NOTION_BATCH_SIZE",
    "OPERATION_BATCH_SIZE", "STARSYNC_PAGE_SIZE", "STARSYNC_TOPICS_LIMIT", "STARSYNC_FULLSYNC_LIMIT",
    "STARSYNC_RECENT_COUNT", "STARSYNC_BATCH_SIZE", "STARSYNC_CACHE_NAMESPACE", "STARSYNC_CONFIG_FILE",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_NAMES:
        monkeypatch.delenv(name, raising=False)
    reset_settings()
    yield
    reset_settings()


class TestSettings:
    """Test environment-driven settings."""

    def test_defaults(self):
        settings = AppSettings()

        assert settings.github.page_size == 100
        assert settings.github.topics_limit == 50
        assert settings.github.fullsync_limit == 2000
        assert settings.github.partialsync_limit == 10
        assert settings.notion.batch_size == 5
        assert settings.notion.notion_version == "2022-06-28"
        assert settings.cache.namespace == "notion-page"

    def test_legacy_variable_names(self, monkeypatch):
        monkeypatch.setenv("TOKEN_OF_GITHUB", "ghp_legacy")
        monkeypatch.setenv("REPO_TOPICS_LIMIT", "7")
        monkeypatch.setenv("FULLSYNC_LIMIT", "300")
        monkeypatch.setenv("PARTIALSYNC_LIMIT", "20")
        monkeypatch.setenv("OPERATION_BATCH_SIZE", "3")

        github = GitHubSettings()
        notion = NotionSettings()

        assert github.token == "ghp_legacy"
        assert github.topics_limit == 7
        assert github.fullsync_limit == 300
        assert github.partialsync_limit == 20
        assert notion.batch_size == 3

    def test_prefixed_variable_names(self, monkeypatch):
        monkeypatch.setenv("GITHUB_TOKEN", "ghp_new")
        monkeypatch.setenv("NOTION_BATCH_SIZE", "8")

        assert GitHubSettings().token == "ghp_new"
        assert NotionSettings().batch_size == 8

    def test_get_settings_is_cached_until_reset(self, monkeypatch):
        first = get_settings()
        assert get_settings() is first

        reset_settings()

        assert get_settings() is not first


class TestSchema:
    """Test validation of the sync configuration."""

    def test_default_retry_policies(self):
        config = SyncConfig()

        assert config.retry.source_fetch.max_attempts == 6
        assert config.retry.source_fetch.min_delay_seconds == 120.0
        assert config.retry.source_tail.max_attempts == 4
        assert config.retry.target_query.min_delay_seconds == 5.0
        assert config.retry.target_write.min_delay_seconds == 10.0

    @pytest.mark.parametrize("field, value", [
        ("page_size", 0),
        ("page_size", 101),
        ("batch_size", 0),
        ("recent_count", 0),
        ("recent_count", 250),
        ("topics_limit", 0),
        ("topics_limit", 150),
        ("cache_namespace", "  "),
    ])
    def test_invalid_values_rejected(self, field, value):
        with pytest.raises(ValueError):
            SyncConfig(**{field: value})

    def test_connection_sizes_accept_source_maximum(self):
        config = SyncConfig(page_size=100, topics_limit=100, recent_count=100)

        assert config.topics_limit == 100
        assert config.recent_count == 100

    def test_oversized_recent_window_rejected_by_loader(self, monkeypatch):
        monkeypatch.setenv("PARTIALSYNC_LIMIT", "250")

        with pytest.raises(ConfigurationError):
            ConfigLoader(AppSettings()).load_from_dict({})

    def test_retry_policy_conversion(self):
        policy = RetryPolicyConfig(max_attempts=3, backoff_factor=3.0, min_delay_seconds=2.0, max_delay_seconds=10.0)

        assert policy.to_policy() == RetryPolicy(max_attempts=3, backoff_factor=3.0, min_delay=2.0, max_delay=10.0)

    def test_retry_policy_validation(self):
        with pytest.raises(ValueError):
            RetryPolicyConfig(max_attempts=0)
        with pytest.raises(ValueError):
            RetryPolicyConfig(min_delay_seconds=-1)


class TestConfigLoader:
    """Test file, dictionary and environment loading."""

    def test_dict_overrides_settings_defaults(self):
        loader = ConfigLoader(AppSettings())

        config = loader.load_from_dict({"recent_count": 25})

        assert config.recent_count == 25
        assert config.fullsync_limit == 2000

    def test_settings_feed_defaults(self, monkeypatch):
        monkeypatch.setenv("PARTIALSYNC_LIMIT", "15")

        config = ConfigLoader(AppSettings()).load_from_dict({})

        assert config.recent_count == 15

    def test_yaml_file(self, tmp_path):
        path = tmp_path / "sync.yaml"
        path.write_text(
            "page_size: 50\n"
            "batch_size: 2\n"
            "retry:\n"
            "  target_write:\n"
            "    max_attempts: 3\n"
            "    min_delay_seconds: 1\n"
        )

        config = ConfigLoader(AppSettings()).load_from_file(path)

        assert config.page_size == 50
        assert config.batch_size == 2
        assert config.retry.target_write.max_attempts == 3
        assert config.retry.source_fetch.max_attempts == 6

    def test_json_file(self, tmp_path):
        path = tmp_path / "sync.json"
        path.write_text(json.dumps({"fullsync_limit": 100}))

        config = ConfigLoader(AppSettings()).load_from_file(path)

        assert config.fullsync_limit == 100

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError):
            ConfigLoader(AppSettings()).load_from_file(tmp_path / "absent.yaml")

    def test_unsupported_format(self, tmp_path):
        path = tmp_path / "sync.toml"
        path.write_text("page_size = 5")

        with pytest.raises(ConfigurationError):
            ConfigLoader(AppSettings()).load_from_file(path)

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "sync.yaml"
        path.write_text("page_size: [unclosed")

        with pytest.raises(ConfigurationError):
            ConfigLoader(AppSettings()).load_from_file(path)

    def test_validation_error_is_wrapped(self):
        with pytest.raises(ConfigurationError):
            ConfigLoader(AppSettings()).load_from_dict({"page_size": 500})

    def test_environment_overrides_win(self, monkeypatch):
        monkeypatch.setenv("STARSYNC_BATCH_SIZE", "9")
        monkeypatch.setenv("STARSYNC_CACHE_NAMESPACE", "stars")
        monkeypatch.setenv("STARSYNC_PAGE_SIZE", "not-a-number")

        config = ConfigLoader(AppSettings()).load_from_dict({"batch_size": 2, "page_size": 40})

        assert config.batch_size == 9
        assert config.cache_namespace == "stars"
        assert config.page_size == 40

    def test_config_file_from_environment(self, monkeypatch, tmp_path):
        path = tmp_path / "sync.yaml"
        path.write_text("recent_count: 4\n")
        monkeypatch.setenv("STARSYNC_CONFIG_FILE", str(path))

        config = load_config_from_env(AppSettings())

        assert config.recent_count == 4

    def test_missing_config_file_from_environment_falls_back(self, monkeypatch, tmp_path):
        monkeypatch.setenv("STARSYNC_CONFIG_FILE", str(tmp_path / "absent.yaml"))

        config = load_config_from_env(AppSettings())

        assert config.recent_count == 10
