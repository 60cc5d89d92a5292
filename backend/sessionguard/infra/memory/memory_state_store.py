"""In-process expiring key-value store with lazy and periodic expiry."""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass

from sessionguard.services._shared.ports.state_store import (
    TTL_MISSING,
    TTL_PERSISTENT,
    InvalidStoreArgument,
    StoreStats,
    StoreUnavailable,
    validate_key,
    validate_ttl,
    validate_value,
)

log = logging.getLogger(__name__)


@dataclass(slots=True)
class _Entry:
    value: str
    expires_at: float | None = None

    def is_expired(self, now: float) -> bool:
        return self.expires_at is not None and now >= self.expires_at


class InMemoryStateStore:
    """
    Thread-safe in-memory implementation of :class:`StateStore`.

    Expiry is enforced twice:

    * lazily, on every access to a key (the expired entry is purged);
    * proactively, by :meth:`sweep`, run periodically by one background
      thread started with :meth:`start_sweeper`.

    All operations serialize on a single lock acquired with a bounded
    timeout; a timeout or a closed store surfaces as
    :class:`StoreUnavailable`.

    :param timeout: Seconds to wait for the lock before giving up.
    :param clock: Callable returning epoch seconds; ``time.time`` when omitted.
    """

    backend = "memory"

    def __init__(
        self,
        *,
        timeout: float = 0.25,
        clock: Callable[[], float] | None = None,
    ) -> None:
        self._data: dict[str, _Entry] = {}
        self._lock = threading.Lock()
        self._timeout = timeout
        self._clock = clock
        self._closed = False
        self._stop = threading.Event()
        self._sweeper: threading.Thread | None = None

    # ------------------------- helpers -------------------------

    def _now(self) -> float:
        return self._clock() if self._clock is not None else time.time()

    @contextmanager
    def _locked(self) -> Iterator[float]:
        if self._closed:
            raise StoreUnavailable("State store is closed.")
        if not self._lock.acquire(timeout=self._timeout):
            raise StoreUnavailable(f"Timed out after {self._timeout}s waiting for the state store.")
        try:
            yield self._now()
        finally:
            self._lock.release()

    def _live(self, key: str, now: float) -> _Entry | None:
        """Return the live entry for ``key``, purging it when expired."""
        entry = self._data.get(key)
        if entry is None:
            return None
        if entry.is_expired(now):
            del self._data[key]
            return None
        return entry

    # -------------------------- API ----------------------------

    def set(self, key: str, value: str) -> bool:
        validate_key(key)
        validate_value(value)
        with self._locked():
            self._data[key] = _Entry(value)
        return True

    def set_with_ttl(self, key: str, value: str, ttl_seconds: int) -> bool:
        validate_key(key)
        validate_value(value)
        validate_ttl(ttl_seconds)
        with self._locked() as now:
            self._data[key] = _Entry(value, now + ttl_seconds)
        return True

    def get(self, key: str) -> str | None:
        validate_key(key)
        with self._locked() as now:
            entry = self._live(key, now)
            return entry.value if entry is not None else None

    def delete(self, key: str) -> bool:
        validate_key(key)
        with self._locked() as now:
            existed = self._live(key, now) is not None
            self._data.pop(key, None)
            return existed

    def increment(self, key: str, *, ttl_seconds: int | None = None) -> int:
        validate_key(key)
        if ttl_seconds is not None:
            validate_ttl(ttl_seconds)
        with self._locked() as now:
            entry = self._live(key, now)
            current = 0
            if entry is not None:
                try:
                    current = int(entry.value)
                except ValueError:
                    raise InvalidStoreArgument(f"Value at {key!r} is not an integer.") from None
            new_value = current + 1
            expires_at = entry.expires_at if entry is not None else None
            if ttl_seconds is not None:
                expires_at = now + ttl_seconds
            self._data[key] = _Entry(str(new_value), expires_at)
            return new_value

    def expire(self, key: str, ttl_seconds: int) -> bool:
        validate_key(key)
        validate_ttl(ttl_seconds)
        with self._locked() as now:
            entry = self._live(key, now)
            if entry is None:
                return False
            entry.expires_at = now + ttl_seconds
            return True

    def ttl(self, key: str) -> int:
        validate_key(key)
        with self._locked() as now:
            entry = self._live(key, now)
            if entry is None:
                return TTL_MISSING
            if entry.expires_at is None:
                return TTL_PERSISTENT
            return max(0, int(entry.expires_at - now))

    def keys_with_prefix(self, prefix: str) -> list[str]:
        if not isinstance(prefix, str):
            raise InvalidStoreArgument("Prefix must be a string.")
        with self._locked() as now:
            return sorted(
                key
                for key, entry in self._data.items()
                if key.startswith(prefix) and not entry.is_expired(now)
            )

    def stats(self) -> StoreStats:
        with self._locked() as now:
            live = [e for e in self._data.values() if not e.is_expired(now)]
        with_expiry = sum(1 for e in live if e.expires_at is not None)
        return StoreStats(
            total=len(live),
            with_expiry=with_expiry,
            without_expiry=len(live) - with_expiry,
            backend=self.backend,
        )

    # ------------------------ lifecycle ------------------------

    def sweep(self) -> int:
        """Remove every expired entry and return how many were dropped."""
        with self._locked() as now:
            expired = [key for key, entry in self._data.items() if entry.is_expired(now)]
            for key in expired:
                del self._data[key]
        if expired:
            log.debug("state_store.sweep removed=%d", len(expired))
        return len(expired)

    def start_sweeper(self, interval_seconds: float) -> None:
        """Start the background sweep thread (no-op when already running)."""
        if interval_seconds <= 0:
            raise InvalidStoreArgument("Sweep interval must be positive.")
        if self._closed:
            raise StoreUnavailable("State store is closed.")
        if self._sweeper is not None and self._sweeper.is_alive():
            return
        self._stop.clear()
        self._sweeper = threading.Thread(
            target=self._sweep_loop,
            args=(interval_seconds,),
            name="state-store-sweeper",
            daemon=True,
        )
        self._sweeper.start()
        log.info("state_store.sweeper_started interval=%ss", interval_seconds)

    def _sweep_loop(self, interval_seconds: float) -> None:
        while not self._stop.wait(interval_seconds):
            try:
                self.sweep()
            except StoreUnavailable as exc:
                log.warning("state_store.sweep_skipped reason=%s", exc)

    def ping(self) -> bool:
        """``False`` when the lock cannot be taken or the store is closed."""
        try:
            with self._locked():
                return True
        except StoreUnavailable:
            return False

    @property
    def sweeper_running(self) -> bool:
        return self._sweeper is not None and self._sweeper.is_alive()

    def close(self) -> None:
        """Stop the sweeper; subsequent operations raise :class:`StoreUnavailable`."""
        self._stop.set()
        sweeper = self._sweeper
        if sweeper is not None and sweeper is not threading.current_thread():
            sweeper.join(timeout=max(self._timeout, 1.0))
        self._sweeper = None
        self._closed = True
