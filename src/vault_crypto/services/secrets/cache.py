# SPDX-License-Identifier: MPL-2.0
"""Time-bounded secret cache in front of a remote secret store.

Resolution order for :meth:`SecretCache.get`:

1. Return the cached value if its entry has not expired.
2. Fetch from the store and cache the result for ``ttl``.
3. Return ``None`` when the store reports the secret as missing.

Thread Safety:
    Entries live in a dict guarded by a ``threading.Lock``. The lock is only
    held for in-memory reads and writes and never across an ``await``, so the
    cache can be shared by threads and coroutines alike. Concurrent misses for
    the same name each reach the store; the last completed write wins.
    Every name carries a generation that :meth:`set`, :meth:`delete` and
    :meth:`invalidate` bump; a fetch only caches its result if the generation
    it saw before awaiting the store is still current, so a slow read never
    replaces a newer write. Two :meth:`set` calls on the same name from
    different threads are cached in the order they take the lock.

Write Ordering:
    :meth:`set` and :meth:`delete` only touch the local entry after the store
    has confirmed the write or the delete, so an unpersisted value is never
    visible through the cache.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Awaitable, Callable, Dict, Iterable, NoReturn, Optional, TypeVar, Union

from vault_crypto.core.config import Settings
from vault_crypto.core.exceptions import (
    ConfigurationError,
    NotFoundError,
    TransientError,
    VaultCryptoError,
)
from vault_crypto.core.models import SecretEntry
from vault_crypto.services.store.base import SecretStore
from vault_crypto.utils import require_text, utcnow

logger = logging.getLogger(__name__)

DEFAULT_TTL = timedelta(minutes=5)

T = TypeVar("T")


@dataclass(frozen=True)
class CacheStats:
    """Point-in-time cache counters."""

    hits: int
    misses: int
    entries: int


class SecretCache:
    """Serve secrets with at most ``ttl`` staleness.

    Construct one instance per process and pass it to whatever needs secrets.

    Example:
        >>> cache = SecretCache(InMemoryVault(), ttl=timedelta(minutes=5))
        >>> value = await cache.get("database-password")
        >>> if value is None:
        ...     ...  # the secret does not exist
    """

    def __init__(
        self,
        store: SecretStore,
        ttl: timedelta = DEFAULT_TTL,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        """Initialize the cache.

        Args:
            store: Remote store the cache fronts
            ttl: How long a fetched or written value may be served
            clock: Source of the current UTC time
        """
        if ttl <= timedelta(0):
            raise ConfigurationError("Cache TTL must be positive", details={"ttl": str(ttl)})
        self._store = store
        self._ttl = ttl
        self._clock = clock
        self._entries: Dict[str, SecretEntry] = {}
        self._generations: Dict[str, int] = {}
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0

    @classmethod
    def from_settings(
        cls,
        store: SecretStore,
        settings: Settings,
        clock: Callable[[], datetime] = utcnow,
    ) -> "SecretCache":
        return cls(store, ttl=settings.cache_ttl, clock=clock)

    @property
    def ttl(self) -> timedelta:
        return self._ttl

    # === Primary API ===

    async def get(self, name: str) -> Optional[str]:
        """Return the secret value, or ``None`` if the store does not have it.

        Raises:
            ValidationError: If ``name`` is empty
            TransientError: If the store failed for any reason other than
                the secret being absent
        """
        require_text(name, "Secret name")

        cached = self._lookup(name)
        if cached is not None:
            logger.debug("Secret %s served from cache", name)
            return cached

        generation = self._generation(name)
        try:
            value = await self._store.fetch_secret(name)
        except NotFoundError:
            logger.warning("Secret %s not found in store", name)
            self._evict_if_expired(name)
            return None
        except Exception as exc:
            self._raise_store_failure("fetch", name, exc)

        if not self._remember(name, value, expected_generation=generation):
            logger.debug("Secret %s changed while it was fetched, not caching", name)
        logger.info("Secret %s fetched from store", name)
        return value

    async def set(self, name: str, value: str) -> None:
        """Write ``value`` to the store, then cache it.

        Raises:
            ValidationError: If ``name`` or ``value`` is empty
            TransientError: If the store write failed; the cache is unchanged
        """
        require_text(name, "Secret name")
        require_text(value, "Secret value")

        try:
            await self._store.write_secret(name, value)
        except Exception as exc:
            self._raise_store_failure("write", name, exc)

        self._remember(name, value)
        logger.info("Secret %s written to store", name)

    async def delete(self, name: str) -> bool:
        """Delete the secret remotely and, once confirmed, locally.

        Returns:
            True if the secret was deleted, False if the store did not have it

        Raises:
            ValidationError: If ``name`` is empty
            TransientError: If the delete failed or could not be confirmed
        """
        require_text(name, "Secret name")

        try:
            operation = await self._store.begin_delete_secret(name)
            await self._store.wait_for_completion(operation)
        except NotFoundError:
            logger.warning("Secret %s not found in store, nothing to delete", name)
            self.invalidate(name)
            return False
        except Exception as exc:
            self._raise_store_failure("delete", name, exc)

        self.invalidate(name)
        logger.info("Secret %s deleted from store", name)
        return True

    async def get_all(self) -> Dict[str, str]:
        """Resolve every enabled secret the store lists.

        Each name is resolved independently through :meth:`get`; names whose
        fetch fails are skipped, so the result may be partial.

        Raises:
            TransientError: If the store listing itself failed
        """
        try:
            properties = await self._store.list_secret_properties()
        except Exception as exc:
            self._raise_store_failure("list", "*", exc)

        names = [item.name for item in properties if item.enabled]
        return await self.get_many(names)

    # === Convenience API ===

    async def get_many(self, names: Iterable[str]) -> Dict[str, str]:
        """Resolve several secrets concurrently, skipping misses and failures."""
        unique = list(dict.fromkeys(names))
        values = await asyncio.gather(*(self._get_or_skip(name) for name in unique))
        results = {name: value for name, value in zip(unique, values) if value is not None}
        logger.info("Resolved %d of %d requested secrets", len(results), len(unique))
        return results

    async def get_as(self, name: str, converter: Callable[[str], T]) -> Optional[T]:
        """Fetch a secret and convert it, returning ``None`` if conversion fails."""
        value = await self.get(name)
        if value is None:
            return None
        try:
            return converter(value)
        except (ValueError, TypeError, KeyError) as exc:
            logger.error("Could not convert secret %s: %s", name, type(exc).__name__)
            return None

    async def exists(self, name: str) -> bool:
        return await self.get(name) is not None

    async def rotate(
        self,
        name: str,
        generator: Callable[[], Union[str, Awaitable[str]]],
    ) -> Optional[str]:
        """Replace a secret with a generated value, keeping a backup copy.

        The current value (if any) is first written to
        ``"{name}-backup-{YYYYmmddHHMMSS}"``. If generating or writing the new
        value fails, the previous value is written back and the original
        error is re-raised.

        Returns:
            The backup secret name, or None if there was nothing to back up
        """
        require_text(name, "Secret name")

        current = await self.get(name)
        backup_name = None
        if current is not None:
            backup_name = f"{name}-backup-{self._clock():%Y%m%d%H%M%S}"
            await self.set(backup_name, current)
            logger.info("Backed up secret %s as %s", name, backup_name)

        try:
            new_value = generator()
            if inspect.isawaitable(new_value):
                new_value = await new_value
            await self.set(name, new_value)
        except Exception:
            logger.error("Rotation of secret %s failed", name)
            if current is not None:
                try:
                    await self.set(name, current)
                    logger.warning("Rolled back secret %s to its previous value", name)
                except VaultCryptoError:
                    logger.critical("Rollback of secret %s failed", name, exc_info=True)
            raise

        logger.info("Secret %s rotated", name)
        return backup_name

    # === Local management ===

    def invalidate(self, name: str) -> bool:
        """Drop the local entry for ``name``; the store is not contacted."""
        with self._lock:
            self._bump(name)
            return self._entries.pop(name, None) is not None

    def clear(self) -> int:
        """Drop every local entry and return how many there were."""
        with self._lock:
            count = len(self._entries)
            for name in self._generations:
                self._bump(name)
            self._entries.clear()
        return count

    def stats(self) -> CacheStats:
        with self._lock:
            return CacheStats(hits=self._hits, misses=self._misses, entries=len(self._entries))

    # === Internals ===

    def _lookup(self, name: str) -> Optional[str]:
        now = self._clock()
        with self._lock:
            entry = self._entries.get(name)
            if entry is not None and not entry.is_expired(now):
                self._hits += 1
                return entry.value
            self._misses += 1
            return None

    def _generation(self, name: str) -> int:
        with self._lock:
            return self._generations.get(name, 0)

    def _bump(self, name: str) -> None:
        # Caller holds self._lock
        self._generations[name] = self._generations.get(name, 0) + 1

    def _remember(
        self, name: str, value: str, expected_generation: Optional[int] = None
    ) -> bool:
        """Cache ``value``; a fetch passes the generation it started from."""
        entry = SecretEntry(name=name, value=value, expires_at=self._clock() + self._ttl)
        with self._lock:
            if expected_generation is None:
                self._bump(name)
            elif self._generations.get(name, 0) != expected_generation:
                return False
            self._entries[name] = entry
            return True

    def _evict_if_expired(self, name: str) -> None:
        now = self._clock()
        with self._lock:
            entry = self._entries.get(name)
            if entry is not None and entry.is_expired(now):
                del self._entries[name]

    async def _get_or_skip(self, name: str) -> Optional[str]:
        try:
            return await self.get(name)
        except VaultCryptoError as exc:
            logger.warning("Skipping secret %s: %s", name, exc.message)
            return None

    @staticmethod
    def _raise_store_failure(action: str, name: str, exc: Exception) -> NoReturn:
        logger.error("Failed to %s secret %s: %s", action, name, exc)
        if isinstance(exc, TransientError):
            raise exc
        raise TransientError(
            f"Failed to {action} secret {name}: {exc}",
            details={"name": name, "action": action},
        ) from exc
