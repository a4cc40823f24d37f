import json
from datetime import date, datetime, timedelta, timezone
from unittest.mock import patch

from sqlmodel import Session

from app.cache import (
    CLICK_TTL_SECONDS,
    DatabaseCacheStore,
    MemoryCacheStore,
    article_key,
    articles_list_key,
    click_key,
    invalidate_article,
    read_clicks,
    read_through,
    record_click,
)
from app.core.db import engine
from app.models import CacheEntry


class Clock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


class CountingProducer:
    def __init__(self, value):
        self.value = value
        self.calls = 0

    def __call__(self):
        self.calls += 1
        return self.value


def test_miss_then_hit_runs_producer_once():
    cache = MemoryCacheStore()
    producer = CountingProducer({"articles": [1, 2]})

    first = read_through(cache, "k", 300, producer)
    second = read_through(cache, "k", 300, producer)

    assert first == second == {"articles": [1, 2]}
    assert producer.calls == 1


def test_invalidation_forces_recompute():
    cache = MemoryCacheStore()
    producer = CountingProducer({"title": "x"})

    read_through(cache, article_key("slug-1"), 600, producer)
    invalidate_article(cache, "slug-1")
    read_through(cache, article_key("slug-1"), 600, producer)

    assert producer.calls == 2


def test_entries_expire_after_ttl():
    clock = Clock()
    cache = MemoryCacheStore(clock=clock)
    producer = CountingProducer([1])

    read_through(cache, "k", 300, producer)
    clock.now += 299
    read_through(cache, "k", 300, producer)
    clock.now += 1
    read_through(cache, "k", 300, producer)

    assert producer.calls == 2


def test_none_results_are_not_cached():
    cache = MemoryCacheStore()
    producer = CountingProducer(None)

    assert read_through(cache, "missing", 600, producer) is None
    assert read_through(cache, "missing", 600, producer) is None
    assert producer.calls == 2
    assert cache.get("missing") is None


def test_values_are_stored_as_json_text():
    cache = MemoryCacheStore()
    moment = datetime(2026, 5, 1, 12, 0, tzinfo=timezone.utc)

    read_through(cache, "k", 300, lambda: {"published_at": moment})

    assert json.loads(cache.get("k")) == {"published_at": moment.isoformat()}


def test_listing_keys_distinguish_query_shapes():
    keys = {
        articles_list_key(None, None, 1, 12),
        articles_list_key("watches", None, 1, 12),
        articles_list_key(None, "guide", 1, 12),
        articles_list_key("watches", "guide", 2, 12),
        articles_list_key("watches", "guide", 2, 24),
    }
    assert len(keys) == 5
    assert articles_list_key(None, None, 1, 12) == "articles_all_all_1_12"


def test_click_counter_increments_per_day():
    cache = MemoryCacheStore()
    day = date(2026, 10, 18)

    assert record_click(cache, 5, day) == 1
    assert record_click(cache, 5, day) == 2
    assert record_click(cache, 5, day + timedelta(days=1)) == 1

    assert read_clicks(cache, 5, day) == 2
    assert read_clicks(cache, 6, day) == 0
    assert click_key(5, day) == "clicks_5_2026-10-18"


def test_click_counter_treats_garbage_as_zero():
    cache = MemoryCacheStore()
    day = date(2026, 10, 18)
    cache.put(click_key(1, day), "not-a-number", CLICK_TTL_SECONDS)

    assert record_click(cache, 1, day) == 1


def test_click_counter_entries_live_seven_days():
    clock = Clock()
    cache = MemoryCacheStore(clock=clock)
    day = date(2026, 10, 18)

    record_click(cache, 1, day)
    clock.now += CLICK_TTL_SECONDS - 1
    assert read_clicks(cache, 1, day) == 1
    clock.now += 1
    assert read_clicks(cache, 1, day) == 0


def test_database_store_round_trip(db: Session):
    cache = DatabaseCacheStore(engine)
    producer = CountingProducer({"count": 3})

    assert read_through(cache, "categories_with_counts", 600, producer) == {"count": 3}
    assert read_through(cache, "categories_with_counts", 600, producer) == {"count": 3}
    assert producer.calls == 1

    cache.put("categories_with_counts", "[]", 600)
    assert cache.get("categories_with_counts") == "[]"

    cache.delete("categories_with_counts")
    cache.delete("categories_with_counts")
    assert cache.get("categories_with_counts") is None


def test_database_store_drops_expired_entries(db: Session):
    cache = DatabaseCacheStore(engine)
    db.add(
        CacheEntry(
            key="stale",
            value="1",
            expires_at=datetime.now(timezone.utc) - timedelta(seconds=1),
        )
    )
    db.commit()

    assert cache.get("stale") is None
    db.expire_all()
    assert db.get(CacheEntry, "stale") is None


class BrokenStore:
    """Store whose backend is down."""

    def get(self, key: str) -> str | None:
        raise RuntimeError("cache store unavailable")

    def put(self, key: str, value: str, ttl_seconds: int) -> None:
        raise RuntimeError("cache store unavailable")

    def delete(self, key: str) -> None:
        raise RuntimeError("cache store unavailable")


def test_failing_store_still_serves_producer_value():
    producer = CountingProducer({"count": 3})

    assert read_through(BrokenStore(), "k", 300, producer) == {"count": 3}
    assert read_through(BrokenStore(), "k", 300, producer) == {"count": 3}
    assert producer.calls == 2


def test_failing_write_after_successful_read_miss():
    cache = MemoryCacheStore()
    producer = CountingProducer([1, 2])

    with patch.object(cache, "put", side_effect=RuntimeError("disk full")):
        assert read_through(cache, "k", 300, producer) == [1, 2]

    assert cache.get("k") is None


def test_undecodable_entry_is_recomputed_and_replaced():
    cache = MemoryCacheStore()
    cache.put("k", "{not json", 300)
    producer = CountingProducer({"ok": True})

    assert read_through(cache, "k", 300, producer) == {"ok": True}
    assert json.loads(cache.get("k")) == {"ok": True}


def test_database_store_put_when_another_writer_inserted_first(db: Session):
    cache = DatabaseCacheStore(engine)
    cache.put("featured_articles", "[]", 300)

    real_get = Session.get
    reads: list[str] = []

    def get_missing_first_time(self, entity, ident, **kwargs):
        # The first lookup runs before the competing insert became visible
        reads.append(ident)
        if len(reads) == 1:
            return None
        return real_get(self, entity, ident, **kwargs)

    with patch.object(Session, "get", get_missing_first_time):
        cache.put("featured_articles", '["fresh"]', 300)

    assert len(reads) == 2
    assert cache.get("featured_articles") == '["fresh"]'
