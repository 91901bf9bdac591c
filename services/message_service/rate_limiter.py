"""
Sliding-window rate limiter keyed by client id.
"""

import threading
import time
from contextlib import contextmanager
from typing import Callable, Dict, List, Optional

from utils.exceptions import RateLimitExceeded
from utils.logging_config import get_logger


class RateLimiter:
    """
    Allows max_requests per client inside a rolling window.

    Timestamps are kept in epoch milliseconds and pruned lazily on every
    check. A rejected request does not take a slot. Access to one client's
    record is serialized through a striped lock chosen by client id. Once
    more than max_tracked_clients are known, clients whose window has
    emptied are swept out.
    """

    def __init__(
        self,
        max_requests: int = 10,
        window_ms: int = 60_000,
        clock: Callable[[], float] = time.time,
        lock_stripes: int = 16,
        max_tracked_clients: int = 1024
    ):
        self.logger = get_logger(__name__)
        self.max_requests = max_requests
        self.window_ms = window_ms
        self._clock = clock
        self._requests: Dict[str, List[int]] = {}
        self.max_tracked_clients = max_tracked_clients
        self._locks = [threading.Lock() for _ in range(max(1, lock_stripes))]

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    def _lock_for(self, client_id: str) -> threading.Lock:
        return self._locks[hash(client_id) % len(self._locks)]

    @contextmanager
    def _all_locks(self):
        for lock in self._locks:
            lock.acquire()
        try:
            yield
        finally:
            for lock in self._locks:
                lock.release()

    def _valid_requests(self, client_id: str, now_ms: int) -> List[int]:
        return [ts for ts in self._requests.get(client_id, []) if now_ms - ts < self.window_ms]

    def try_acquire(self, client_id: str) -> bool:
        """Record a request for client_id if the window has room"""
        if len(self._requests) > self.max_tracked_clients:
            self.prune_expired()

        with self._lock_for(client_id):
            now_ms = self._now_ms()
            valid_requests = self._valid_requests(client_id, now_ms)

            if len(valid_requests) >= self.max_requests:
                self._requests[client_id] = valid_requests
                return False

            valid_requests.append(now_ms)
            self._requests[client_id] = valid_requests
            return True

    def check(self, client_id: str) -> None:
        """
        Record a request or reject it

        Raises:
            RateLimitExceeded: If the client already used every slot in the window
        """
        if not self.try_acquire(client_id):
            status = self.get_status(client_id)
            retry_after_ms = max(0, status["reset_time"] - self._now_ms())
            self.logger.warning(f"Rate limit exceeded for client {client_id}")
            raise RateLimitExceeded(retry_after_ms=retry_after_ms)

    def get_status(self, client_id: str = "default") -> Dict[str, int]:
        """
        Remaining requests and when the oldest one leaves the window

        Returns:
            Dict with remaining and reset_time (epoch ms)
        """
        with self._lock_for(client_id):
            now_ms = self._now_ms()
            valid_requests = self._valid_requests(client_id, now_ms)
            if not valid_requests:
                self._requests.pop(client_id, None)

        remaining = max(0, self.max_requests - len(valid_requests))
        reset_time = valid_requests[0] + self.window_ms if valid_requests else now_ms
        return {"remaining": remaining, "reset_time": reset_time}

    def prune_expired(self) -> int:
        """Drop clients with no request left in the window, returning how many were dropped"""
        with self._all_locks():
            now_ms = self._now_ms()
            expired = [
                client_id for client_id in self._requests
                if not self._valid_requests(client_id, now_ms)
            ]
            for client_id in expired:
                del self._requests[client_id]

        if expired:
            self.logger.debug(f"Dropped {len(expired)} idle rate-limit clients")
        return len(expired)

    def clear(self, client_id: Optional[str] = None) -> None:
        """Forget one client's requests, or everyone's when client_id is None"""
        if client_id is None:
            with self._all_locks():
                self._requests.clear()
            return

        with self._lock_for(client_id):
            self._requests.pop(client_id, None)
