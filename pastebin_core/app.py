"""
Application container.

Builds every component from an AppConfig and owns their lifecycle. An HTTP
layer holds one Application per process, calls ``check_rate_limit`` before
each handler, then the coordinator.
"""

from typing import Callable, Optional

from .config import AppConfig, get_config
from .constants import HttpVerb, ObjectStoreBackend, RouteCategory
from .db.db_base import utc_now
from .db.db_config import DatabaseConfig, DatabaseManager, import_all_models
from .processing.limits_policy import LimitsPolicy
from .processing.rate_limiter import Admit, RateLimiter
from .processors.expiry_sweeper import ExpirySweeper
from .schemas.paste_schemas import LimitsView
from .services.storage_coordinator import StorageCoordinator
from .storage.memory_object_store import MemoryObjectStore
from .storage.object_store import ObjectStore
from .storage.s3_object_store import S3ObjectStore
from .utils.id_utils import IdGenerator
from .utils.logger import get_logger


def build_object_store(config: AppConfig) -> ObjectStore:
    if config.object_store.backend == ObjectStoreBackend.MEMORY:
        return MemoryObjectStore()
    return S3ObjectStore(config.object_store)


class Application:
    """Wires the database, object store, limits, rate limiter, coordinator and sweeper."""

    def __init__(
        self,
        config: Optional[AppConfig] = None,
        object_store: Optional[ObjectStore] = None,
        db_manager: Optional[DatabaseManager] = None,
        clock: Callable = utc_now,
    ):
        self.config = config or get_config()
        self.logger = get_logger()

        import_all_models()
        self.db_manager = db_manager or DatabaseManager(
            DatabaseConfig.from_url(
                self.config.database.connection_string,
                pool_size=self.config.database.pool_size,
                max_overflow=self.config.database.max_overflow,
                pool_timeout=self.config.database.pool_timeout,
                echo=self.config.database.echo,
            )
        )
        self.object_store = object_store or build_object_store(self.config)
        self.limits_policy = LimitsPolicy(self.config.size_limits)
        self.id_generator = IdGenerator()
        self.rate_limiter = RateLimiter(self.config.rate_limits)
        self.coordinator = StorageCoordinator(
            self.db_manager.session_factory,
            self.object_store,
            self.limits_policy,
            self.id_generator,
            clock=clock,
            store_timeout=self.config.object_store.operation_timeout,
            max_blob_workers=self.config.object_store.max_concurrent_writes,
        )
        self.sweeper = ExpirySweeper(self.coordinator, self.config.sweeper)

    def start(self, run_sweeper: bool = True) -> None:
        """Create tables and buckets, then start the sweeper loop."""
        self.db_manager.create_tables()
        self.object_store.create_buckets()
        if run_sweeper:
            self.sweeper.start()
        self.logger.info(
            "Application started",
            extra={
                "environment": self.config.environment,
                "object_store": self.object_store.get_store_name(),
                "sweeper": run_sweeper,
            },
        )

    def shutdown(self) -> None:
        """Stop the sweeper, then release store clients and connections."""
        self.sweeper.stop()
        self.coordinator.close()
        self.db_manager.close()
        self.rate_limiter.reset()
        self.logger.info("Application stopped")

    def check_rate_limit(self, client_key: str, category: RouteCategory, verb: HttpVerb) -> Admit:
        """
        Admission check every handler runs first.

        Raises:
            RateLimited: With the seconds to wait before retrying
        """
        return self.rate_limiter.check(client_key, category, verb)

    def describe_limits(self) -> LimitsView:
        return self.limits_policy.describe()
