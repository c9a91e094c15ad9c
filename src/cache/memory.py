"""In-memory, name-keyed store with optional per-entry TTL."""

import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Generic, TypeVar

import structlog

from src.errors import AlreadyExistsError, NotFoundError


logger = structlog.get_logger()

T = TypeVar("T")

_DEFAULT_NAME = "memory"


@dataclass(frozen=True)
class CacheItem(Generic[T]):
    """A stored value and its absolute expiry (monotonic seconds)."""

    value: T
    expires_at: float | None = None

    def is_expired(self, now: float) -> bool:
        """Check whether the entry is past its expiry."""
        return self.expires_at is not None and now >= self.expires_at


class MemoryCache(Generic[T]):
    """Thread-safe typed store used as a registration backend.

    One lock per instance, held only for the duration of each map access.

    Expiry is lazy: an expired entry is reported as absent by get() and
    exists(), but stays in the map until the same key is written again,
    deleted or the cache is cleared. Keys written once and never again
    therefore keep their memory after expiry.
    """

    def __init__(self, name: str = _DEFAULT_NAME) -> None:
        """Initialize the cache.

        Args:
            name: Store name used in logs and errors.
        """
        self._name = name
        self._data: dict[str, CacheItem[T]] = {}
        self._lock = threading.Lock()
        self._log = logger.bind(component=f"cache/{name}")

    @property
    def name(self) -> str:
        """Get the store name."""
        return self._name

    def __len__(self) -> int:
        """Number of physically stored entries, expired ones included."""
        with self._lock:
            return len(self._data)

    def get(self, key: str) -> T:
        """Look up a live value.

        Args:
            key: Entry key.

        Returns:
            The stored value.

        Raises:
            NotFoundError: If the key is absent or expired.
        """
        with self._lock:
            item = self._data.get(key)
        if item is None or item.is_expired(time.monotonic()):
            raise NotFoundError(key, self._name)
        return item.value

    def exists(self, key: str) -> bool:
        """Check whether get() would currently succeed."""
        try:
            self.get(key)
        except NotFoundError:
            return False
        return True

    def set(self, key: str, value: T) -> None:
        """Store a value without expiry, replacing any previous entry."""
        with self._lock:
            self._data[key] = CacheItem(value=value)
        self._log.debug("cache_set", key=key)

    def set_with_ttl(self, key: str, value: T, ttl: float) -> None:
        """Store a value that expires ``ttl`` seconds from now.

        Args:
            key: Entry key.
            value: Value to store.
            ttl: Lifetime in seconds; must be positive.

        Raises:
            ValueError: If ttl is not positive.
        """
        if ttl <= 0:
            msg = f"ttl must be positive, got {ttl}"
            raise ValueError(msg)
        with self._lock:
            self._data[key] = CacheItem(
                value=value, expires_at=time.monotonic() + ttl
            )
        self._log.debug("cache_set_with_ttl", key=key, ttl=ttl)

    def delete(self, key: str) -> None:
        """Remove an entry; missing keys are ignored."""
        with self._lock:
            self._data.pop(key, None)
        self._log.debug("cache_deleted", key=key)

    def keys(self) -> list[str]:
        """Return all physically stored keys, expired ones included."""
        with self._lock:
            return list(self._data)

    def clear(self) -> None:
        """Remove every entry."""
        with self._lock:
            self._data = {}
        self._log.debug("cache_cleared")

    def register(self, key: str, value: T) -> None:
        """Store a value only if the key is not currently live.

        The check and the write take the lock separately, so two threads
        registering the same key concurrently may both succeed; the later
        write wins.

        Args:
            key: Entry key.
            value: Value to store.

        Raises:
            AlreadyExistsError: If a live entry exists for the key.
        """
        if self.exists(key):
            raise AlreadyExistsError(key, self._name)
        self.set(key, value)

    def get_or_compute(
        self,
        key: str,
        loader: Callable[[str], T],
        ttl: float | None = None,
    ) -> T:
        """Return the live value or compute, store and return it.

        The loader runs outside the lock. Concurrent misses for the same key
        may each invoke the loader; the last result stored wins. Loader
        exceptions propagate and nothing is stored.

        Args:
            key: Entry key.
            loader: Called with the key on a miss.
            ttl: Lifetime of the computed entry; None or <= 0 means no expiry.

        Returns:
            Cached or freshly computed value.
        """
        try:
            return self.get(key)
        except NotFoundError:
            pass

        self._log.debug("cache_miss_loading", key=key, ttl=ttl)
        try:
            value = loader(key)
        except Exception as e:
            self._log.warning("cache_loader_failed", key=key, error=str(e))
            raise

        if ttl is not None and ttl > 0:
            self.set_with_ttl(key, value, ttl)
        else:
            self.set(key, value)
        return value
