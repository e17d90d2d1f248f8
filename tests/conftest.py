"""
Shared fixtures for the paste engine tests.

Every test gets its own file-backed SQLite database (foreign keys on, so
cascades behave as in production), an in-memory object store, a controllable
clock and a coordinator wired to all three.
"""

from typing import Optional

import pytest
from sqlalchemy.orm import Session

from pastebin_core.config import RateLimitConfig, SizeLimitConfig, reset_config
from pastebin_core.db import DatabaseConfig, DatabaseManager, import_all_models
from pastebin_core.exceptions import clear_correlation_id
from pastebin_core.processing.limits_policy import LimitsPolicy
from pastebin_core.processing.rate_limiter import RateLimiter
from pastebin_core.services.storage_coordinator import StorageCoordinator
from pastebin_core.storage.memory_object_store import MemoryObjectStore
from pastebin_core.utils.id_utils import IdGenerator
from pastebin_core.utils.logger import reset_logging

from paste_doubles import FakeClock


@pytest.fixture(autouse=True)
def reset_globals():
    """Each test starts without cached config, service logger or correlation id."""
    reset_config()
    reset_logging()
    clear_correlation_id()
    yield
    reset_config()
    reset_logging()
    clear_correlation_id()


@pytest.fixture
def db_config(tmp_path) -> DatabaseConfig:
    """File-backed SQLite so worker threads share one database."""
    return DatabaseConfig(
        db_type="sqlite",
        database=str(tmp_path / "pastes.db"),
    )


@pytest.fixture
def db_manager(db_config: DatabaseConfig):
    import_all_models()
    manager = DatabaseManager(db_config)
    manager.create_tables()
    yield manager
    manager.close()


@pytest.fixture
def db_session(db_manager: DatabaseManager) -> Session:
    session = db_manager.session_factory()
    yield session
    session.rollback()
    session.close()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def object_store() -> MemoryObjectStore:
    return MemoryObjectStore()


@pytest.fixture
def size_limits() -> SizeLimitConfig:
    return SizeLimitConfig()


@pytest.fixture
def limits_policy(size_limits: SizeLimitConfig) -> LimitsPolicy:
    return LimitsPolicy(size_limits)


@pytest.fixture
def id_generator() -> IdGenerator:
    return IdGenerator(node_id=1)


@pytest.fixture
def make_coordinator(db_manager, limits_policy, id_generator, clock):
    """Factory for coordinators over a chosen object store; all are closed after the test."""
    created = []

    def _make(object_store, policy: Optional[LimitsPolicy] = None, session_factory=None, **kwargs):
        coordinator = StorageCoordinator(
            session_factory or db_manager.session_factory,
            object_store,
            policy or limits_policy,
            id_generator,
            clock=clock,
            store_timeout=kwargs.pop("store_timeout", 5.0),
            **kwargs,
        )
        created.append(coordinator)
        return coordinator

    yield _make
    for coordinator in created:
        coordinator.close()


@pytest.fixture
def coordinator(make_coordinator, object_store) -> StorageCoordinator:
    return make_coordinator(object_store)


@pytest.fixture
def rate_limiter() -> RateLimiter:
    limiter = RateLimiter(RateLimitConfig())
    yield limiter
    limiter.reset()
