"""
Session cache for resolved institution contexts.

Resolving a token costs several queries, so the result is memoized per raw
token string. An entry lives until the earlier of the cache TTL and the
token's own expiry, and all entries for an institution can be dropped at once
when its membership changes.
"""
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, Optional, Set
from uuid import UUID

import structlog

from app.core.config import settings
from app.core.security import fingerprint
from app.domain.schemas.auth import InstitutionContext
from app.infrastructure.cache.redis import RedisCache

logger = structlog.get_logger(__name__)

# Stale entries are swept from the in-process cache at most this often
SWEEP_INTERVAL_SECONDS = 60


@dataclass
class _Entry:
    context: InstitutionContext
    expires_at: float
    scopes: Set[str] = field(default_factory=set)


def _scopes(context: InstitutionContext) -> Set[str]:
    scopes = set()
    if context.institution_id is not None:
        scopes.add(f"institution:{context.institution_id}")
    if context.application_id is not None:
        scopes.add(f"application:{context.application_id}")
    return scopes


class SessionCache:
    """In-process token -> context cache."""

    def __init__(
        self,
        ttl_seconds: Optional[int] = None,
        clock: Callable[[], float] = time.time,
        sweep_interval_seconds: int = SWEEP_INTERVAL_SECONDS,
    ):
        self.ttl_seconds = ttl_seconds if ttl_seconds is not None else settings.SESSION_CACHE_TTL_SECONDS
        self._clock = clock
        self._entries: Dict[str, _Entry] = {}
        self._index: Dict[str, Set[str]] = {}
        self.sweep_interval_seconds = sweep_interval_seconds
        self._next_sweep = clock() + sweep_interval_seconds

    def _expiry(self, token_expires_at: Optional[float]) -> float:
        expires_at = self._clock() + self.ttl_seconds
        if token_expires_at is not None:
            expires_at = min(expires_at, float(token_expires_at))
        return expires_at

    async def get(self, token: str) -> Optional[InstitutionContext]:
        """Return a fresh entry or None; stale entries are evicted on read."""
        entry = self._entries.get(token)
        if entry is None:
            return None
        if entry.expires_at <= self._clock():
            self._drop(token)
            return None
        return entry.context

    async def set(
        self,
        token: str,
        context: InstitutionContext,
        token_expires_at: Optional[float] = None,
    ) -> None:
        """Store a resolution for at most the TTL and never past the token's `exp`."""
        if self._clock() >= self._next_sweep:
            await self.purge_expired()

        expires_at = self._expiry(token_expires_at)
        if expires_at <= self._clock():
            return

        self._drop(token)
        scopes = _scopes(context)
        self._entries[token] = _Entry(context=context, expires_at=expires_at, scopes=scopes)
        for scope in scopes:
            self._index.setdefault(scope, set()).add(token)

    async def delete(self, token: str) -> None:
        self._drop(token)

    async def invalidate_institution(self, institution_id: UUID) -> int:
        """Drop every cached resolution for an institution."""
        return self._invalidate_scope(f"institution:{institution_id}")

    async def invalidate_application(self, application_id: UUID) -> int:
        """Drop every cached resolution derived from an application."""
        return self._invalidate_scope(f"application:{application_id}")

    async def clear(self) -> None:
        self._entries.clear()
        self._index.clear()

    async def purge_expired(self) -> int:
        """Evict all stale entries; returns how many were removed."""
        now = self._clock()
        stale = [token for token, entry in self._entries.items() if entry.expires_at <= now]
        for token in stale:
            self._drop(token)
        self._next_sweep = now + self.sweep_interval_seconds
        return len(stale)

    def __len__(self) -> int:
        return len(self._entries)

    def _invalidate_scope(self, scope: str) -> int:
        tokens = self._index.pop(scope, set())
        for token in tokens:
            self._drop(token)
        if tokens:
            logger.info("session_cache_invalidated", scope=scope, entries=len(tokens))
        return len(tokens)

    def _drop(self, token: str) -> None:
        entry = self._entries.pop(token, None)
        if entry is None:
            return
        for scope in entry.scopes:
            tokens = self._index.get(scope)
            if tokens is not None:
                tokens.discard(token)
                if not tokens:
                    del self._index[scope]


class RedisSessionCache:
    """Token -> context cache shared by all API instances through Redis."""

    def __init__(
        self,
        cache: Optional[RedisCache] = None,
        ttl_seconds: Optional[int] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.cache = cache or RedisCache(prefix="xentro:session")
        self.ttl_seconds = ttl_seconds if ttl_seconds is not None else settings.SESSION_CACHE_TTL_SECONDS
        self._clock = clock

    @staticmethod
    def _key(token: str) -> str:
        return "ctx:" + fingerprint(token)

    async def get(self, token: str) -> Optional[InstitutionContext]:
        value = await self.cache.get(self._key(token))
        if value is None:
            return None
        return InstitutionContext.model_validate(value)

    async def set(
        self,
        token: str,
        context: InstitutionContext,
        token_expires_at: Optional[float] = None,
    ) -> None:
        ttl = float(self.ttl_seconds)
        if token_expires_at is not None:
            ttl = min(ttl, float(token_expires_at) - self._clock())
        if ttl < 1:
            return

        key = self._key(token)
        await self.cache.set(key, context.model_dump(mode="json"), expire=int(ttl))
        for scope in _scopes(context):
            await self.cache.add_to_set(scope, key, expire=self.ttl_seconds)

    async def delete(self, token: str) -> None:
        await self.cache.delete(self._key(token))

    async def invalidate_institution(self, institution_id: UUID) -> int:
        return await self._invalidate_scope(f"institution:{institution_id}")

    async def invalidate_application(self, application_id: UUID) -> int:
        return await self._invalidate_scope(f"application:{application_id}")

    async def clear(self) -> None:
        await self.cache.clear_pattern("*")

    async def purge_expired(self) -> int:
        # Redis expires keys on its own
        return 0

    async def _invalidate_scope(self, scope: str) -> int:
        keys = await self.cache.pop_set(scope)
        if not keys:
            return 0
        removed = await self.cache.delete(*keys)
        logger.info("session_cache_invalidated", scope=scope, entries=removed)
        return removed
