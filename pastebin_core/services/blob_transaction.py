"""
Staged blob writes for one create or patch.

Blobs written here are provisional: they become part of a paste only when
the caller's metadata commit succeeds and it calls ``claim()``. Until then
``compensate()`` removes every key this transaction attempted, including
writes that were still in flight when the transaction gave up on them.
"""

import time
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from dataclasses import dataclass
from typing import Dict, List, Sequence

from ..enums import OperationStage
from ..exceptions import ObjectStoreWriteFailed
from ..storage.object_store import ObjectStore
from ..utils.logger import get_logger


@dataclass(frozen=True)
class PendingBlob:
    key: str
    data: bytes
    content_type: str


class BlobTransaction:
    """Tracks provisional blobs through WRITING, COMMITTING and COMPENSATING or COMMITTED."""

    def __init__(self, object_store: ObjectStore, timeout: float, max_workers: int = 8):
        self.object_store = object_store
        self.timeout = timeout
        self.max_workers = max_workers
        self.logger = get_logger()
        self.stage = OperationStage.WRITING
        self._attempted: List[str] = []
        self._in_flight: Dict[str, Future] = {}

    @property
    def keys(self) -> List[str]:
        return list(self._attempted)

    def write_all(self, blobs: Sequence[PendingBlob]) -> Dict[str, int]:
        """
        Write every blob concurrently and return stored sizes by key.

        A write that fails or does not finish within ``timeout`` fails the
        whole batch. Nothing written survives a failure.

        Raises:
            ObjectStoreWriteFailed: After compensating every attempted key
        """
        if self.stage != OperationStage.WRITING:
            raise RuntimeError(f"Cannot write blobs in stage {self.stage.value}")
        if not blobs:
            return {}

        sizes: Dict[str, int] = {}
        executor = ThreadPoolExecutor(
            max_workers=min(self.max_workers, len(blobs)), thread_name_prefix="blob-write"
        )
        try:
            for blob in blobs:
                self._attempted.append(blob.key)
                self._in_flight[blob.key] = executor.submit(
                    self.object_store.put, blob.key, blob.data, blob.content_type
                )

            deadline = time.monotonic() + self.timeout
            for key, future in list(self._in_flight.items()):
                sizes[key] = future.result(timeout=max(0.0, deadline - time.monotonic()))
        except Exception as e:
            timed_out = isinstance(e, FutureTimeout)
            self.logger.warning(
                "Blob write failed, compensating",
                extra={
                    "attempted": len(self._attempted),
                    "written": len(sizes),
                    "timed_out": timed_out,
                    "error_type": type(e).__name__,
                },
            )
            self.compensate()
            raise ObjectStoreWriteFailed(
                "Timed out writing document content" if timed_out else "Failed to write document content",
                cause=e,
                keys=list(self._attempted),
            ) from e
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

        return sizes

    def begin_commit(self) -> None:
        self.stage = OperationStage.COMMITTING

    def claim(self) -> None:
        """The metadata commit succeeded; the blobs now belong to the paste."""
        self.stage = OperationStage.COMMITTED
        self._in_flight.clear()

    def compensate(self) -> None:
        """
        Delete every attempted key, waiting at most ``timeout`` for the store.

        Writes still running are cleaned up when they finish, so a late
        success cannot leave an orphan behind.
        """
        if self.stage == OperationStage.COMMITTED:
            raise RuntimeError("Cannot compensate a committed blob transaction")
        self.stage = OperationStage.COMPENSATING

        settled = []
        for key in self._attempted:
            future = self._in_flight.get(key)
            if future is not None and not future.done():
                future.add_done_callback(lambda f, key=key: self._delete_all_quietly([key]))
                continue
            settled.append(key)
        self._delete_all_quietly(settled)

        self.stage = OperationStage.ABORTED

    def _delete_all_quietly(self, keys: List[str]) -> None:
        if not keys:
            return

        executor = ThreadPoolExecutor(
            max_workers=min(self.max_workers, len(keys)), thread_name_prefix="blob-compensate"
        )
        try:
            futures = {key: executor.submit(self.object_store.delete, key) for key in keys}
            deadline = time.monotonic() + self.timeout
            for key, future in futures.items():
                try:
                    future.result(timeout=max(0.0, deadline - time.monotonic()))
                except Exception as e:
                    # Left for the orphan sweep; the caller is already reporting a failure
                    self.logger.warning(
                        "Failed to remove provisional blob",
                        extra={
                            "key": key,
                            "timed_out": isinstance(e, FutureTimeout),
                            "error_type": type(e).__name__,
                            "error": str(e),
                        },
                    )
        finally:
            executor.shutdown(wait=False, cancel_futures=True)
