"""
Advisory locks that serialize check-then-create booking sequences.

Two stores share one interface: RedisLockStore (SET NX EX, shared across
instances) and InMemoryLockStore (process-local, single node and tests).
Acquisition never blocks; a held key raises LockAcquisitionException.
Every acquisition returns an owner token, and release only frees the key
while that token still holds it, so a holder whose ttl lapsed cannot drop
a newer holder's lock. The bookings overlap constraint in the database
stays authoritative.
"""

from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime
import logging
import threading
import time
from typing import Callable, Dict, Iterator, Optional, Protocol, Tuple, TypeVar
import uuid

from redis import Redis

from app.core.config import settings
from app.core.exceptions import LockAcquisitionException
from app.monitoring.prometheus_metrics import prometheus_metrics

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Delete only if the stored value is still the caller's token
RELEASE_LUA = r"""
if redis.call('GET', KEYS[1]) == ARGV[1] then
  return redis.call('DEL', KEYS[1])
end
return 0
"""


class BookingLockStore(Protocol):
    backend: str

    def acquire(self, key: str, ttl_s: int) -> Optional[str]:
        ...

    def release(self, key: str, token: str) -> bool:
        ...


def booking_lock_key(facility_id: str, start_time: datetime, court_id: Optional[str] = None) -> str:
    return f"booking:{facility_id}:{court_id or '*'}:{start_time.isoformat()}"


def _new_token() -> str:
    return uuid.uuid4().hex


class InMemoryLockStore:
    """Process-local lock map. A lock older than its ttl counts as released."""

    backend = "memory"

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._holders: Dict[str, Tuple[str, float]] = {}
        self._mutex = threading.Lock()

    def acquire(self, key: str, ttl_s: int) -> Optional[str]:
        now = self._clock()
        with self._mutex:
            held = self._holders.get(key)
            if held is not None and now < held[1]:
                return None
            token = _new_token()
            self._holders[key] = (token, now + ttl_s)
            return token

    def release(self, key: str, token: str) -> bool:
        with self._mutex:
            held = self._holders.get(key)
            if held is None or held[0] != token:
                return False
            del self._holders[key]
            return True

    def is_locked(self, key: str) -> bool:
        with self._mutex:
            held = self._holders.get(key)
            return held is not None and self._clock() < held[1]


class RedisLockStore:
    """Shared TTL-backed lock store on Redis."""

    backend = "redis"

    def __init__(self, client: Redis, namespace: str) -> None:
        self._client = client
        self._namespace = namespace

    def _namespaced_key(self, key: str) -> str:
        return f"{self._namespace}:lock:{key}"

    def acquire(self, key: str, ttl_s: int) -> Optional[str]:
        token = _new_token()
        try:
            acquired = self._client.set(self._namespaced_key(key), token, nx=True, ex=ttl_s)
        except Exception as exc:
            prometheus_metrics.record_booking_lock("acquire", "error", self.backend)
            logger.warning(
                "booking_lock_redis_acquire_failed",
                extra={"lock_key": key, "error": str(exc), "error_type": type(exc).__name__},
            )
            # Fail open; the overlap constraint still rejects double bookings
            return token
        return token if acquired else None

    def release(self, key: str, token: str) -> bool:
        try:
            deleted = self._client.eval(RELEASE_LUA, 1, self._namespaced_key(key), token)
        except Exception as exc:
            prometheus_metrics.record_booking_lock("release", "error", self.backend)
            logger.warning(
                "booking_lock_redis_release_failed",
                extra={"lock_key": key, "error": str(exc), "error_type": type(exc).__name__},
            )
            return False
        return bool(deleted)


_STORE: Optional[BookingLockStore] = None
_STORE_LOCK = threading.Lock()


def _build_store() -> BookingLockStore:
    if settings.booking_lock_backend != "redis":
        return InMemoryLockStore()
    try:
        client = Redis.from_url(settings.redis_url, encoding="utf-8", decode_responses=True)
        client.ping()
    except Exception as exc:
        logger.warning(
            "booking_lock_redis_unavailable, falling back to in-memory store: %s",
            exc,
        )
        prometheus_metrics.record_booking_lock("connect", "redis_unavailable", "redis")
        return InMemoryLockStore()
    return RedisLockStore(client, settings.lock_namespace)


def get_lock_store() -> BookingLockStore:
    global _STORE
    if _STORE is not None:
        return _STORE
    with _STORE_LOCK:
        if _STORE is None:
            _STORE = _build_store()
            logger.info("Booking lock store initialised: %s", _STORE.backend)
        return _STORE


def set_lock_store(store: Optional[BookingLockStore]) -> None:
    """Replace the process-wide store (None resets to settings on next use)."""
    global _STORE
    with _STORE_LOCK:
        _STORE = store


@contextmanager
def booking_lock(
    key: str,
    ttl_s: Optional[int] = None,
    store: Optional[BookingLockStore] = None,
) -> Iterator[str]:
    lock_store = store or get_lock_store()
    ttl = ttl_s or settings.booking_lock_ttl_seconds
    token = lock_store.acquire(key, ttl)
    if token is None:
        prometheus_metrics.record_booking_lock("acquire", "blocked", lock_store.backend)
        logger.info("Booking lock busy", extra={"lock_key": key})
        raise LockAcquisitionException(key)
    prometheus_metrics.record_booking_lock("acquire", "success", lock_store.backend)
    try:
        yield key
    finally:
        if lock_store.release(key, token):
            prometheus_metrics.record_booking_lock("release", "success", lock_store.backend)
        else:
            # ttl lapsed and the key expired or passed to another holder
            prometheus_metrics.record_booking_lock("release", "not_owner", lock_store.backend)
            logger.warning("Booking lock expired before release", extra={"lock_key": key})


def with_booking_lock(
    key: str,
    fn: Callable[[], T],
    *,
    ttl_s: Optional[int] = None,
    store: Optional[BookingLockStore] = None,
) -> T:
    """Run fn while holding the lock for key."""
    with booking_lock(key, ttl_s=ttl_s, store=store):
        return fn()
