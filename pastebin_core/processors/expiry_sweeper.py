"""
Expiry sweeper for pastes past their expiry or view cap.

Runs as a background loop in the service process. Each cycle selects
eligible pastes and deletes them through the storage coordinator's internal
path, several at a time. A paste whose deletion fails stays eligible and is
picked up again next cycle.
"""

import threading
from concurrent.futures import CancelledError, ThreadPoolExecutor, wait
from datetime import datetime
from typing import Any, Dict, List, Optional

from ..config import SweeperConfig
from ..constants import OperationStatus
from ..exceptions import NotFound
from ..services.storage_coordinator import StorageCoordinator
from ..utils.logger import get_logger


class ExpirySweeper:
    """
    Periodically deletes expired pastes.

    ``run_cycle()`` performs one pass and can be called directly (tests, a
    cron entry point). ``start()``/``stop()`` manage the recurring loop.
    """

    def __init__(self, coordinator: StorageCoordinator, config: Optional[SweeperConfig] = None):
        self.coordinator = coordinator
        self.config = config or SweeperConfig()
        self.logger = get_logger()
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._executor: Optional[ThreadPoolExecutor] = None
        self._executor_lock = threading.Lock()

    def get_processor_name(self) -> str:
        return "ExpirySweeper"

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def run_cycle(self) -> Dict[str, Any]:
        """
        Delete every currently eligible paste, up to ``batch_size``.

        Returns:
            Cycle metrics: status, candidates, deleted, skipped, already_gone, failed, timings
        """
        start_time = self.coordinator.clock()
        self.logger.info(
            "Starting expiry sweep",
            extra={"processor": self.get_processor_name(), "start_time": start_time.isoformat()},
        )

        try:
            candidates = self.coordinator.find_expired(limit=self.config.batch_size)
        except Exception as e:
            end_time = self.coordinator.clock()
            result = self._result(OperationStatus.ERROR, start_time, end_time, [], 0, 0, 0, [])
            result.update({"error": str(e), "error_type": type(e).__name__})
            self.logger.error("Expiry sweep failed", extra=result, exc_info=True)
            return result

        deleted, skipped, already_gone, failed = self._delete_all(candidates)

        end_time = self.coordinator.clock()
        handled = len(deleted) + skipped + already_gone + len(failed)
        if self._stop_event.is_set() and handled < len(candidates):
            status = OperationStatus.CANCELLED
        elif failed:
            status = OperationStatus.PARTIAL
        else:
            status = OperationStatus.SUCCESS

        result = self._result(
            status, start_time, end_time, candidates, len(deleted), skipped, already_gone, failed
        )
        log = self.logger.warning if failed else self.logger.info
        log("Expiry sweep completed", extra=result)
        return result

    def _delete_all(self, candidates: List[int]):
        deleted: List[int] = []
        failed: List[int] = []
        skipped = already_gone = 0
        if not candidates:
            return deleted, skipped, already_gone, failed

        with self._executor_lock:
            # stop() ran between the query and here; nothing is submitted
            if self._stop_event.is_set():
                return deleted, skipped, already_gone, failed
            self._executor = ThreadPoolExecutor(
                max_workers=self.config.max_workers, thread_name_prefix="expiry-sweep"
            )
            futures = {
                self._executor.submit(self.coordinator.expire_paste, paste_id): paste_id
                for paste_id in candidates
            }

        try:
            wait(futures)
            for future, paste_id in futures.items():
                try:
                    if future.result():
                        deleted.append(paste_id)
                    else:
                        skipped += 1
                except NotFound:
                    already_gone += 1
                except CancelledError:
                    # Left untouched by shutdown, eligible again next cycle
                    pass
                except Exception as e:
                    failed.append(paste_id)
                    self.logger.warning(
                        "Expired paste not deleted, retrying next cycle",
                        extra={"paste_id": paste_id, "error_type": type(e).__name__, "error": str(e)},
                    )
        finally:
            with self._executor_lock:
                self._executor.shutdown(wait=True)
                self._executor = None

        return deleted, skipped, already_gone, failed

    def _result(
        self,
        status: OperationStatus,
        start_time: datetime,
        end_time: datetime,
        candidates: List[int],
        deleted: int,
        skipped: int,
        already_gone: int,
        failed: List[int],
    ) -> Dict[str, Any]:
        return {
            "status": status.value,
            "candidates": len(candidates),
            "deleted": deleted,
            "skipped": skipped,
            "already_gone": already_gone,
            "failed": len(failed),
            "failed_ids": failed,
            "start_time": start_time.isoformat(),
            "end_time": end_time.isoformat(),
            "duration_seconds": (end_time - start_time).total_seconds(),
            "processor": self.get_processor_name(),
        }

    # ==================== LOOP ====================

    def start(self) -> None:
        """Start the recurring loop in a daemon thread. The first cycle runs immediately."""
        if self.running:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._loop, name="expiry-sweeper", daemon=True)
        self._thread.start()
        self.logger.info(
            "Expiry sweeper started",
            extra={"interval_seconds": self.config.interval_seconds, "max_workers": self.config.max_workers},
        )

    def _loop(self) -> None:
        while not self._stop_event.is_set():
            try:
                self.run_cycle()
            except Exception as e:
                self.logger.error(
                    "Unexpected sweeper failure",
                    extra={"error_type": type(e).__name__, "error": str(e)},
                    exc_info=True,
                )
            self._stop_event.wait(self.config.interval_seconds)

    def stop(self, timeout: Optional[float] = None) -> bool:
        """
        Stop the loop and wait for the in-flight cycle.

        Queued deletions are cancelled; deletions already running finish, so
        no paste is left half deleted.

        Returns:
            True if the loop thread exited within ``timeout``
        """
        self._stop_event.set()
        with self._executor_lock:
            if self._executor is not None:
                self._executor.shutdown(wait=False, cancel_futures=True)

        if self._thread is None:
            return True
        self._thread.join(timeout if timeout is not None else self.config.shutdown_timeout)
        stopped = not self._thread.is_alive()
        self.logger.info("Expiry sweeper stopped", extra={"clean": stopped})
        if stopped:
            self._thread = None
        return stopped
