from __future__ import annotations

import re
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from typing import cast

import redis  # type: ignore[import-untyped]
from redis.exceptions import ConnectionError as RedisConnectionError  # type: ignore[import-untyped]
from redis.exceptions import RedisError, ResponseError  # type: ignore[import-untyped]
from redis.exceptions import TimeoutError as RedisTimeoutError  # type: ignore[import-untyped]

from sessionguard.services._shared.ports.state_store import (
    TTL_MISSING,
    InvalidStoreArgument,
    StoreStats,
    StoreUnavailable,
    validate_key,
    validate_ttl,
    validate_value,
)

_GLOB_SPECIALS = re.compile(r"([*?\[\]\\])")
_INTEGER = re.compile(r"-?\d+")


def _text(raw: bytes | str) -> str:
    return raw.decode() if isinstance(raw, bytes | bytearray) else str(raw)


@dataclass(slots=True)
class RedisStateStore:
    """
    Redis-backed :class:`StateStore`.

    Redis enforces expiry itself, so :meth:`sweep` has nothing to do and the
    sweeper is never started. Connectivity failures and socket timeouts are
    surfaced as :class:`StoreUnavailable`.

    :param r: A Redis client (already configured with socket timeouts).
    """

    r: redis.Redis
    backend: str = "redis"

    # -------------------- helpers --------------------

    @contextmanager
    def _guard(self) -> Iterator[None]:
        try:
            yield
        except (RedisConnectionError, RedisTimeoutError) as exc:
            raise StoreUnavailable(str(exc) or "Redis is unreachable.") from exc
        except ResponseError as exc:
            raise InvalidStoreArgument(str(exc)) from exc
        except RedisError as exc:
            raise StoreUnavailable(str(exc) or "Redis command failed.") from exc

    @staticmethod
    def _match(prefix: str) -> str:
        return _GLOB_SPECIALS.sub(r"\\\1", prefix) + "*"

    # -------------------- API ------------------------

    def set(self, key: str, value: str) -> bool:
        validate_key(key)
        validate_value(value)
        with self._guard():
            return bool(self.r.set(key, value))

    def set_with_ttl(self, key: str, value: str, ttl_seconds: int) -> bool:
        validate_key(key)
        validate_value(value)
        validate_ttl(ttl_seconds)
        with self._guard():
            return bool(self.r.set(key, value, ex=ttl_seconds))

    def get(self, key: str) -> str | None:
        validate_key(key)
        with self._guard():
            raw = self.r.get(key)
        return None if raw is None else _text(raw)

    def delete(self, key: str) -> bool:
        validate_key(key)
        with self._guard():
            return cast(int, self.r.delete(key)) > 0

    def increment(self, key: str, *, ttl_seconds: int | None = None) -> int:
        validate_key(key)
        if ttl_seconds is None:
            with self._guard():
                return int(self.r.incr(key))
        validate_ttl(ttl_seconds)

        def _incr_with_ttl(pipe: redis.client.Pipeline) -> None:
            # MULTI has no rollback: reject before EXPIRE is queued
            current = pipe.get(key)
            if current is not None and not _INTEGER.fullmatch(_text(current)):
                raise InvalidStoreArgument(f"Value at {key!r} is not an integer.")
            pipe.multi()
            pipe.incr(key)
            pipe.expire(key, ttl_seconds)

        with self._guard():
            value, _ = self.r.transaction(_incr_with_ttl, key)
        return int(value)

    def expire(self, key: str, ttl_seconds: int) -> bool:
        validate_key(key)
        validate_ttl(ttl_seconds)
        with self._guard():
            return bool(self.r.expire(key, ttl_seconds))

    def ttl(self, key: str) -> int:
        validate_key(key)
        with self._guard():
            remaining = int(self.r.ttl(key))
        return remaining if remaining >= -1 else TTL_MISSING

    def keys_with_prefix(self, prefix: str) -> list[str]:
        if not isinstance(prefix, str):
            raise InvalidStoreArgument("Prefix must be a string.")
        with self._guard():
            return sorted(_text(k) for k in self.r.scan_iter(match=self._match(prefix)))

    def stats(self) -> StoreStats:
        keys = self.keys_with_prefix("")
        with self._guard():
            pipe = self.r.pipeline(transaction=False)
            for key in keys:
                pipe.ttl(key)
            ttls = [int(t) for t in pipe.execute()] if keys else []
        live = [t for t in ttls if t != TTL_MISSING]
        with_expiry = sum(1 for t in live if t >= 0)
        return StoreStats(
            total=len(live),
            with_expiry=with_expiry,
            without_expiry=len(live) - with_expiry,
            backend=self.backend,
        )

    # -------------------- lifecycle ------------------

    def sweep(self) -> int:
        return 0

    def start_sweeper(self, interval_seconds: float) -> None:
        return None

    def ping(self) -> bool:
        try:
            with self._guard():
                return bool(self.r.ping())
        except StoreUnavailable:
            return False

    def close(self) -> None:
        with self._guard():
            self.r.close()
