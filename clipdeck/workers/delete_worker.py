"""Background deletion of project-owned media files."""

from __future__ import annotations

import concurrent.futures
import logging
import threading

from clipdeck.storage import AssetStore, StorageResult

logger = logging.getLogger(__name__)


class AssetDeleter:
    """Fire-and-forget deletion requests against an AssetStore.

    The editor state is already consistent when a request is submitted; a
    failed deletion leaves a stray file behind and is logged, never raised
    or retried. Requests target distinct paths, so their completion order
    does not matter.
    """

    def __init__(self, store: AssetStore, max_workers: int = 2):
        self.store = store
        self._executor = concurrent.futures.ThreadPoolExecutor(
            max_workers=max_workers,
            thread_name_prefix="clipdeck-delete",
        )
        self._pending: set[concurrent.futures.Future] = set()
        self._lock = threading.Lock()

    def submit(self, project_id: str, relative_path: str) -> concurrent.futures.Future:
        future = self._executor.submit(self._delete, project_id, relative_path)
        with self._lock:
            self._pending.add(future)
        future.add_done_callback(self._forget)
        return future

    def _forget(self, future: concurrent.futures.Future) -> None:
        with self._lock:
            self._pending.discard(future)

    def _delete(self, project_id: str, relative_path: str) -> StorageResult:
        try:
            result = self.store.delete_asset(project_id, relative_path)
        except Exception as e:
            logger.warning("Deleting %s from project %s raised: %s", relative_path, project_id, e)
            return StorageResult(False, error=str(e))
        if not result.success:
            logger.warning(
                "Failed to delete %s from project %s: %s", relative_path, project_id, result.error
            )
        return result

    def wait(self, timeout: float | None = None) -> None:
        """Block until every request submitted so far has finished."""
        with self._lock:
            pending = list(self._pending)
        concurrent.futures.wait(pending, timeout=timeout)

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)
