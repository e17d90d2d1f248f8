"""Tests for centralized configuration module."""

import os
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from pastebin_core.config import (
    AppConfig,
    DatabaseSettings,
    LoggingConfig,
    ObjectStoreConfig,
    RateLimitConfig,
    SizeLimitConfig,
    SweeperConfig,
    get_config,
    reset_config,
    set_config,
)
from pastebin_core.constants import HttpVerb, Limits, ObjectStoreBackend, RouteCategory


class TestDatabaseSettings:
    def test_default_values(self):
        with patch.dict(os.environ, {}, clear=True):
            config = DatabaseSettings()
        assert config.connection_string == "sqlite:///./pastebin.db"
        assert config.pool_size == 5
        assert config.echo is False

    def test_from_env(self):
        with patch.dict(os.environ, {"DATABASE_URL": "postgresql://u:p@db/pastes"}):
            assert DatabaseSettings().connection_string == "postgresql://u:p@db/pastes"


class TestLoggingConfig:
    def test_level_is_normalized(self):
        assert LoggingConfig(level="debug").level == "DEBUG"

    def test_invalid_level(self):
        with pytest.raises(ValidationError):
            LoggingConfig(level="LOUD")


class TestObjectStoreConfig:
    def test_from_env(self):
        env = {
            "OBJECT_STORE_BACKEND": "memory",
            "S3_BUCKET": "pastes",
            "S3_SECRET_KEY": "very-secret",
        }
        with patch.dict(os.environ, env):
            config = ObjectStoreConfig()
        assert config.backend == ObjectStoreBackend.MEMORY
        assert config.bucket == "pastes"

    def test_repr_masks_secret(self):
        config = ObjectStoreConfig(backend="s3", secret_key="very-secret")
        assert "very-secret" not in repr(config)

    def test_default_bucket(self):
        with patch.dict(os.environ, {}, clear=True):
            assert ObjectStoreConfig().bucket == "documents"


class TestSizeLimitConfig:
    def test_defaults(self):
        limits = SizeLimitConfig()
        assert limits.maximum_total_document_count == 10
        assert limits.maximum_document_size == 5_000_000
        assert limits.maximum_total_document_size == 10_000_000
        assert limits.minimum_document_name_size == 3
        assert limits.maximum_document_name_size == 50
        assert limits.default_expiry_hours is None

    def test_minimum_above_maximum_rejected(self):
        with pytest.raises(ValidationError, match="minimum_document_size"):
            SizeLimitConfig(minimum_document_size=10, maximum_document_size=5)

    def test_document_larger_than_paste_rejected(self):
        with pytest.raises(ValidationError, match="maximum_document_size"):
            SizeLimitConfig(maximum_document_size=100, maximum_total_document_size=50)

    def test_default_expiry_outside_range_rejected(self):
        with pytest.raises(ValidationError, match="default_expiry_hours"):
            SizeLimitConfig(maximum_expiry_hours=24, default_expiry_hours=48)
        with pytest.raises(ValidationError, match="default_expiry_hours"):
            SizeLimitConfig(minimum_expiry_hours=2, default_expiry_hours=1)

    def test_expiry_range_inverted_rejected(self):
        with pytest.raises(ValidationError):
            SizeLimitConfig(minimum_expiry_hours=10, maximum_expiry_hours=5)

    def test_name_size_capped_at_stored_length(self):
        SizeLimitConfig(maximum_document_name_size=Limits.DOCUMENT_NAME_LENGTH)

        with pytest.raises(ValidationError, match="maximum_document_name_size"):
            SizeLimitConfig(maximum_document_name_size=Limits.DOCUMENT_NAME_LENGTH + 1)


class TestRateLimitConfig:
    def test_category_budget(self):
        config = RateLimitConfig(global_document=42)
        assert config.category_budget(RouteCategory.DOCUMENT) == 42
        assert config.category_budget(RouteCategory.PASTE) == 500

    def test_verb_budgets_cover_configured_pairs(self):
        budgets = RateLimitConfig(post_paste=7).verb_budgets()

        assert budgets[(RouteCategory.PASTE, HttpVerb.POST)] == 7
        assert budgets[(RouteCategory.CONFIG, HttpVerb.GET)] == 200
        assert (RouteCategory.CONFIG, HttpVerb.DELETE) not in budgets

    def test_budgets_must_be_positive(self):
        with pytest.raises(ValidationError):
            RateLimitConfig(get_paste=0)


class TestSweeperConfig:
    def test_interval_from_env(self):
        with patch.dict(os.environ, {"SWEEP_INTERVAL_SECONDS": "15"}):
            assert SweeperConfig().interval_seconds == 15.0

    def test_default_interval(self):
        with patch.dict(os.environ, {}, clear=True):
            assert SweeperConfig().interval_seconds == 3000.0


class TestGlobalConfig:
    def test_get_config_is_cached(self):
        assert get_config() is get_config()

    def test_set_and_reset(self):
        custom = AppConfig(environment="test")
        set_config(custom)
        assert get_config() is custom

        reset_config()
        assert get_config() is not custom
