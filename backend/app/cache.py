"""Read-through cache, invalidation keys and the advisory click counter.

The store is a plain key/value capability with per-key TTL. It is created once by the
application and handed to whatever needs it, so tests can swap in MemoryCacheStore.
Concurrent misses on the same key all run the producer and all write the key; the
click counter is a read-then-write and can lose increments under concurrency.
"""

import json
import logging
import time
from collections.abc import Callable
from datetime import date, datetime, timedelta, timezone
from typing import Any, Protocol

from fastapi.encoders import jsonable_encoder
from sqlalchemy import Engine
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session

from app.models import CacheEntry

logger = logging.getLogger(__name__)

LIST_TTL_SECONDS = 300
ARTICLE_TTL_SECONDS = 600
CATEGORIES_TTL_SECONDS = 600
FEATURED_TTL_SECONDS = 300
CLICK_TTL_SECONDS = 86400 * 7

FEATURED_ARTICLES_KEY = "featured_articles"
CATEGORIES_KEY = "categories_with_counts"


class CacheStore(Protocol):
    def get(self, key: str) -> str | None: ...

    def put(self, key: str, value: str, ttl_seconds: int) -> None: ...

    def delete(self, key: str) -> None: ...


class MemoryCacheStore:
    """Process-local store. Entries expire lazily on read."""

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._entries: dict[str, tuple[str, float]] = {}

    def get(self, key: str) -> str | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if self._clock() >= expires_at:
            self._entries.pop(key, None)
            return None
        return value

    def put(self, key: str, value: str, ttl_seconds: int) -> None:
        self._entries[key] = (value, self._clock() + ttl_seconds)

    def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes even for timezone-aware columns
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class DatabaseCacheStore:
    """Store shared by every worker through the cache_entries table."""

    def __init__(self, engine: Engine):
        self.engine = engine

    def get(self, key: str) -> str | None:
        with Session(self.engine) as session:
            entry = session.get(CacheEntry, key)
            if entry is None:
                return None
            if _as_utc(entry.expires_at) <= datetime.now(timezone.utc):
                session.delete(entry)
                session.commit()
                return None
            return entry.value

    def put(self, key: str, value: str, ttl_seconds: int) -> None:
        expires_at = datetime.now(timezone.utc) + timedelta(seconds=ttl_seconds)
        with Session(self.engine) as session:
            entry = session.get(CacheEntry, key)
            if entry is None:
                session.add(CacheEntry(key=key, value=value, expires_at=expires_at))
                try:
                    session.commit()
                    return
                except IntegrityError:
                    # Another writer inserted the key after our read; last write wins
                    session.rollback()
                    entry = session.get(CacheEntry, key)
                    if entry is None:
                        return
            entry.value = value
            entry.expires_at = expires_at
            session.add(entry)
            session.commit()

    def delete(self, key: str) -> None:
        with Session(self.engine) as session:
            entry = session.get(CacheEntry, key)
            if entry is not None:
                session.delete(entry)
                session.commit()


def read_through(
    cache: CacheStore,
    key: str,
    ttl_seconds: int,
    producer: Callable[[], Any],
) -> Any:
    """Return the cached JSON value for key, computing and storing it on a miss.

    A producer result of None is returned without being stored. A failing store only
    costs the lookup: its errors are logged and the producer's value is served.
    """
    try:
        cached = cache.get(key)
    except Exception as exc:
        logger.warning("Cache read failed for %s: %s", key, exc)
        cached = None

    if cached is not None:
        try:
            return json.loads(cached)
        except json.JSONDecodeError:
            logger.warning("Discarding undecodable cache entry %s", key)

    value = jsonable_encoder(producer())
    if value is None:
        return None
    try:
        cache.put(key, json.dumps(value), ttl_seconds)
    except Exception as exc:
        logger.warning("Cache write failed for %s: %s", key, exc)
    return value


# Keys

def articles_list_key(category: str | None, article_type: str | None, page: int, limit: int) -> str:
    return f"articles_{category or 'all'}_{article_type or 'all'}_{page}_{limit}"


def article_key(slug: str) -> str:
    return f"article_{slug}"


def category_key(category_id: int) -> str:
    return f"category_{category_id}"


def click_key(link_id: int, day: date) -> str:
    return f"clicks_{link_id}_{day.isoformat()}"


# Invalidation

def invalidate_after_generation(cache: CacheStore, category_id: int | None) -> None:
    cache.delete(FEATURED_ARTICLES_KEY)
    if category_id is not None:
        cache.delete(category_key(category_id))


def invalidate_article(cache: CacheStore, slug: str) -> None:
    cache.delete(article_key(slug))


# Click counter

def _utc_today() -> date:
    return datetime.now(timezone.utc).date()


def _parse_count(value: str | None) -> int:
    try:
        return int(value or 0)
    except ValueError:
        return 0


def record_click(cache: CacheStore, link_id: int, day: date | None = None) -> int:
    """Increment the per-day click count for a link. Not atomic."""
    key = click_key(link_id, day or _utc_today())
    count = _parse_count(cache.get(key)) + 1
    cache.put(key, str(count), CLICK_TTL_SECONDS)
    return count


def read_clicks(cache: CacheStore, link_id: int, day: date | None = None) -> int:
    return _parse_count(cache.get(click_key(link_id, day or _utc_today())))
