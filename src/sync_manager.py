"""
DyeTracker - Sync Manager
Pushes the RNG data snapshot to the backend.

Features:
- Debounced sync (30s after the last data change; bursts collapse into one)
- Only the latest snapshot is kept, never a queue of them
- Exponential backoff on failure: 5s, 10s, 20s, ... capped at 5 min,
  abandoned after 5 attempts; a success resets the backoff
- Manual sync that skips the debounce and returns a Future

One timer is pending at most. Scheduling anything (debounce or retry)
cancels the previous timer first.
"""

import logging
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, Optional

from api_client import ApiSuccess
from config import (
    SYNC_DEBOUNCE_SECONDS,
    SYNC_INITIAL_RETRY_DELAY,
    SYNC_MAX_RETRY_ATTEMPTS,
    SYNC_MAX_RETRY_DELAY,
)
from rng_data import PlayerRngData

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SyncResult:
    success: bool
    message: str


class SyncManager:
    """Debounced, retried sync of RNG data, gated on the account being linked.

    Usage:
        sync = SyncManager(api_client, is_linked=linker.is_linked)
        store.add_listener(sync.on_data_changed)
        result = sync.sync_now(store.get_snapshot()).result()
    """

    def __init__(self, api_client, is_linked: Callable[[], bool],
                 debounce_seconds: float = SYNC_DEBOUNCE_SECONDS,
                 initial_retry_delay: float = SYNC_INITIAL_RETRY_DELAY,
                 max_retry_delay: float = SYNC_MAX_RETRY_DELAY,
                 max_retry_attempts: int = SYNC_MAX_RETRY_ATTEMPTS,
                 timer_factory: Callable = threading.Timer):
        self._api = api_client
        self._is_linked = is_linked
        self.debounce_seconds = debounce_seconds
        self.initial_retry_delay = initial_retry_delay
        self.max_retry_delay = max_retry_delay
        self.max_retry_attempts = max_retry_attempts
        self._timer_factory = timer_factory

        self._lock = threading.RLock()
        self._timer = None
        self._generation = 0     # bumps on every (re)schedule; stale timers check it
        self._pending_data: Optional[PlayerRngData] = None

        self.last_sync_time: float = 0
        self.last_sync_success: bool = True
        self.last_sync_message: str = ""
        self.retry_attempts = 0
        self.current_retry_delay = initial_retry_delay

        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="DyeTracker-Sync")

    # ── Status ───────────────────────────────────────

    @property
    def queue_size(self) -> int:
        with self._lock:
            return 1 if self._pending_data is not None else 0

    @property
    def is_sync_pending(self) -> bool:
        with self._lock:
            return self._timer is not None

    def get_status(self) -> dict:
        with self._lock:
            return {
                "last_sync_time": self.last_sync_time or None,
                "last_sync_success": self.last_sync_success,
                "last_sync_message": self.last_sync_message,
                "sync_pending": self._timer is not None,
                "queue_size": 1 if self._pending_data is not None else 0,
                "retry_attempts": self.retry_attempts,
                "retry_delay": self.current_retry_delay,
            }

    # ── Triggers ─────────────────────────────────────

    def on_data_changed(self, data: PlayerRngData):
        """RngDataStore listener: schedule a debounced sync."""
        if not self._is_linked():
            logger.debug("SyncManager: skipping sync - account not linked")
            return

        with self._lock:
            self._pending_data = data
            self._schedule(self.debounce_seconds)
        logger.debug(f"Sync scheduled in {self.debounce_seconds:g}s")

    def sync_now(self, data: PlayerRngData) -> "Future[SyncResult]":
        """Sync immediately, bypassing the debounce.

        Not linked → an already-completed Future, no network attempt.
        """
        if not self._is_linked():
            future = Future()
            future.set_result(SyncResult(False, "Account not linked"))
            return future

        with self._lock:
            self._cancel_timer()
            self._pending_data = data
        return self._executor.submit(self._sync_pending)

    def cancel_pending_sync(self):
        with self._lock:
            self._cancel_timer()

    def shutdown(self):
        """Cancel timers and stop the sync worker."""
        self.cancel_pending_sync()
        self._executor.shutdown(wait=False)

    # ── Scheduling ───────────────────────────────────

    def _schedule(self, delay: float):
        """Replace the pending timer with one that fires after delay seconds."""
        with self._lock:
            self._cancel_timer()
            self._generation += 1
            timer = self._timer_factory(delay, self._on_timer, args=(self._generation,))
            timer.daemon = True
            self._timer = timer
            timer.start()

    def _cancel_timer(self):
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        self._generation += 1

    def _on_timer(self, generation: int):
        with self._lock:
            if generation != self._generation:
                return
            self._timer = None
            if self._pending_data is None:
                return

        result = self._sync_pending()
        if result.success:
            return
        with self._lock:
            # A forced sync or a newer schedule took over while this one was in flight
            if generation != self._generation or self._pending_data is None:
                return
            self._schedule_retry()

    def _schedule_retry(self):
        with self._lock:
            self.retry_attempts += 1
            if self.retry_attempts > self.max_retry_attempts:
                logger.warning("Max retry attempts reached, giving up on sync")
                self._reset_backoff()
                return

            delay = self.current_retry_delay
            logger.info(
                f"Scheduling sync retry {self.retry_attempts} of "
                f"{self.max_retry_attempts} in {delay:g}s")
            self._schedule(delay)
            self.current_retry_delay = min(delay * 2, self.max_retry_delay)

    def _reset_backoff(self):
        self.retry_attempts = 0
        self.current_retry_delay = self.initial_retry_delay

    # ── Sync ─────────────────────────────────────────

    def _sync_pending(self) -> SyncResult:
        with self._lock:
            data = self._pending_data
        if data is None:
            return SyncResult(False, "No data to sync")

        logger.info("Syncing RNG data to backend...")
        try:
            api_result = self._api.sync_rng_data(data)
        except Exception as e:
            logger.error(f"Sync exception: {e}", exc_info=True)
            return self._record_failure(f"Network error: {e}")

        if isinstance(api_result, ApiSuccess):
            with self._lock:
                # A newer snapshot may have arrived while this one was in flight
                if self._pending_data is data:
                    self._pending_data = None
                self.last_sync_time = time.time()
                self.last_sync_success = True
                self.last_sync_message = "Sync successful"
                self._reset_backoff()
            logger.info("RNG data synced successfully")
            return SyncResult(True, "Sync successful")

        logger.warning(f"Sync failed: {api_result.message} ({api_result.status_code})")
        return self._record_failure(api_result.message)

    def _record_failure(self, message: str) -> SyncResult:
        with self._lock:
            self.last_sync_success = False
            self.last_sync_message = message
        return SyncResult(False, message)
