"""
Per-principal admission control: a fixed-window request quota plus a cap on
concurrent in-flight requests.

State lives on an AdmissionController instance. The rate map is bounded two
ways: after every check the oldest-inserted entries are dropped once the map
grows past ``max_entries``, and a background sweep periodically removes
entries whose window has elapsed.
"""

import logging
import threading
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from itertools import islice

from otlp_gateway.config import settings
from otlp_gateway.errors import ConcurrencyExceeded, RateLimitExceeded

logger = logging.getLogger(__name__)


def _monotonic_ms() -> float:
    return time.monotonic() * 1000


def _or_setting(value: int | None, default: int) -> int:
    # Explicit zero is a real limit, only None falls back
    return default if value is None else value


@dataclass
class RateEntry:
    count: int
    window_start: float


class AdmissionController:
    """
    Fixed-window rate limiter and concurrency limiter keyed by principal.

    Fixed windows admit up to twice ``max_requests`` across a window
    boundary; within one window the quota is exact.

    Eviction from the rate map is by insertion order, not by recency of
    access. Starting a new window for a known principal keeps its position.

    Args:
        window_ms: Length of a rate window
        max_requests: Requests admitted per principal per window
        max_concurrent: In-flight requests admitted per principal
        max_entries: Capacity of each principal map
        cleanup_interval_ms: Period of the expired-window sweep
        clock: Returns the current time in milliseconds (monotonic)
        start_sweeper: Start the background sweep immediately
    """

    def __init__(
        self,
        window_ms: int | None = None,
        max_requests: int | None = None,
        max_concurrent: int | None = None,
        max_entries: int | None = None,
        cleanup_interval_ms: int | None = None,
        clock: Callable[[], float] | None = None,
        start_sweeper: bool = True,
    ):
        self.window_ms = _or_setting(window_ms, settings.rate_limit_window_ms)
        self.max_requests = _or_setting(max_requests, settings.rate_limit_max_requests)
        self.max_concurrent = _or_setting(
            max_concurrent, settings.max_concurrent_requests
        )
        self.max_entries = _or_setting(max_entries, settings.limiter_max_entries)
        self.cleanup_interval_ms = _or_setting(
            cleanup_interval_ms, settings.limiter_cleanup_interval_ms
        )
        self._clock = clock or _monotonic_ms

        self._rates: dict[str, RateEntry] = {}
        self._concurrency: dict[str, int] = {}
        self._lock = threading.Lock()

        self._stop = threading.Event()
        self._sweeper: threading.Thread | None = None

        if start_sweeper:
            self.start()

    # ------------------------------------------------------------------
    # Rate limiting
    # ------------------------------------------------------------------

    def check_limit(self, principal: str) -> None:
        """Count one request for ``principal``; raise RateLimitExceeded over quota."""
        with self._lock:
            now = self._clock()
            entry = self._rates.get(principal)
            if entry is None or now - entry.window_start >= self.window_ms:
                entry = RateEntry(count=0, window_start=now)
                self._rates[principal] = entry

            entry.count += 1
            count = entry.count
            self._evict_overflow()

        if count > self.max_requests:
            logger.warning(
                f"Rate limit exceeded for principal {principal} "
                f"({count}/{self.max_requests} in window)"
            )
            raise RateLimitExceeded()

    def _evict_overflow(self) -> None:
        overflow = len(self._rates) - self.max_entries
        if overflow <= 0:
            return
        for key in list(islice(self._rates, overflow)):
            del self._rates[key]
        logger.debug(f"Evicted {overflow} oldest rate limit entries")

    def evict_expired(self) -> int:
        """Drop every rate entry whose window has elapsed. Returns the number removed."""
        with self._lock:
            now = self._clock()
            expired = [
                key
                for key, entry in self._rates.items()
                if now - entry.window_start >= self.window_ms
            ]
            for key in expired:
                del self._rates[key]

        if expired:
            logger.debug(f"Swept {len(expired)} expired rate limit entries")
        return len(expired)

    def request_count(self, principal: str) -> int:
        """Requests counted for ``principal`` in its current (or last) window."""
        with self._lock:
            entry = self._rates.get(principal)
            return entry.count if entry else 0

    @property
    def rate_entry_count(self) -> int:
        return len(self._rates)

    # ------------------------------------------------------------------
    # Concurrency limiting
    # ------------------------------------------------------------------

    def acquire_slot(self, principal: str) -> None:
        """Take one in-flight slot; raise ConcurrencyExceeded when none is free."""
        with self._lock:
            active = self._concurrency.get(principal, 0)
            at_capacity = active == 0 and len(self._concurrency) >= self.max_entries
            if active >= self.max_concurrent or at_capacity:
                rejected = True
            else:
                self._concurrency[principal] = active + 1
                rejected = False

        if rejected:
            logger.warning(
                f"Concurrency limit reached for principal {principal} "
                f"({active}/{self.max_concurrent} active)"
            )
            raise ConcurrencyExceeded()

    def release_slot(self, principal: str) -> None:
        """Give back one slot. Unknown principals and over-release are no-ops."""
        with self._lock:
            active = self._concurrency.get(principal)
            if active is None:
                return
            if active - 1 <= 0:
                del self._concurrency[principal]
            else:
                self._concurrency[principal] = active - 1

    @contextmanager
    def slot(self, principal: str) -> Iterator[None]:
        """
        Hold one concurrency slot for the duration of the block.

        The slot is released on every exit path, including exceptions and
        task cancellation.

        Example:
            with admission.slot(api_key_id):
                process(request)
        """
        self.acquire_slot(principal)
        try:
            yield
        finally:
            self.release_slot(principal)

    def active_slots(self, principal: str) -> int:
        with self._lock:
            return self._concurrency.get(principal, 0)

    @property
    def concurrency_entry_count(self) -> int:
        return len(self._concurrency)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Start the periodic sweep. Calling it again while running does nothing."""
        if self._sweeper is not None and self._sweeper.is_alive():
            return

        self._stop.clear()
        # Daemon thread so an unclosed controller never blocks interpreter exit
        self._sweeper = threading.Thread(
            target=self._run_sweeper,
            name="admission-sweeper",
            daemon=True,
        )
        self._sweeper.start()
        logger.info(
            f"Admission sweeper started (interval {self.cleanup_interval_ms} ms)"
        )

    def _run_sweeper(self) -> None:
        interval = self.cleanup_interval_ms / 1000
        while not self._stop.wait(interval):
            self.evict_expired()

    def close(self) -> None:
        """Cancel the periodic sweep. Safe to call more than once."""
        self._stop.set()
        sweeper, self._sweeper = self._sweeper, None
        if sweeper is not None and sweeper is not threading.current_thread():
            sweeper.join()
            logger.info("Admission sweeper stopped")

    @property
    def sweeper_running(self) -> bool:
        return self._sweeper is not None and self._sweeper.is_alive()

    def __enter__(self) -> "AdmissionController":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
