"""Tests for the application container."""

import pytest

from pastebin_core import Application, HttpVerb, RateLimited, RouteCategory
from pastebin_core.app import build_object_store
from pastebin_core.config import (
    AppConfig,
    DatabaseSettings,
    ObjectStoreConfig,
    RateLimitConfig,
    SizeLimitConfig,
    SweeperConfig,
)
from pastebin_core.storage import MemoryObjectStore, S3ObjectStore

from paste_doubles import make_documents


@pytest.fixture
def app_config(tmp_path):
    return AppConfig(
        environment="test",
        database=DatabaseSettings(connection_string=f"sqlite:///{tmp_path / 'app.db'}"),
        object_store=ObjectStoreConfig(backend="memory"),
        size_limits=SizeLimitConfig(default_expiry_hours=24, maximum_expiry_hours=48),
        rate_limits=RateLimitConfig(post_paste=2),
        sweeper=SweeperConfig(interval_seconds=3600),
    )


@pytest.fixture
def app(app_config):
    application = Application(app_config)
    yield application
    application.shutdown()


class TestApplication:
    def test_create_and_fetch(self, app):
        app.start(run_sweeper=False)

        created = app.coordinator.create_paste(make_documents("notes.txt"))
        fetched = app.coordinator.get_paste(created.paste.id, include_content=True)

        assert fetched.documents[0].content == b"hello world"
        assert fetched.expiry is not None

    def test_rate_limit_gate(self, app):
        app.start(run_sweeper=False)

        app.check_rate_limit("10.0.0.1", RouteCategory.PASTE, HttpVerb.POST)
        app.check_rate_limit("10.0.0.1", RouteCategory.PASTE, HttpVerb.POST)
        with pytest.raises(RateLimited):
            app.check_rate_limit("10.0.0.1", RouteCategory.PASTE, HttpVerb.POST)

    def test_describe_limits(self, app):
        limits = app.describe_limits()

        assert limits.defaults.expiry_hours == 24
        assert limits.size_limits.maximum_expiry_hours == 48

    def test_sweeper_lifecycle(self, app):
        app.start()
        assert app.sweeper.running

        app.shutdown()
        assert not app.sweeper.running


class TestBuildObjectStore:
    def test_memory_backend(self, app_config):
        assert isinstance(build_object_store(app_config), MemoryObjectStore)

    def test_s3_backend(self, app_config):
        app_config.object_store = ObjectStoreConfig(
            backend="s3",
            endpoint_url="http://localhost:9000",
            region="us-east-1",
            access_key="minio",
            secret_key="minio-secret",
            bucket="documents",
        )

        store = build_object_store(app_config)

        assert isinstance(store, S3ObjectStore)
        assert store.bucket == "documents"
