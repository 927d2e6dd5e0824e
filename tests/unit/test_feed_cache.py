from __future__ import annotations

import os
from pathlib import Path

import pytest

from v16_beacons.common.errors import CacheWriteError, TransportError
from v16_beacons.harvest.feed_cache import SOURCE_CACHE, SOURCE_UPSTREAM, FeedCache, FileCacheStore, MemoryCacheStore


class FakeClock:
    def __init__(self, now: float = 1_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


class CountingFetcher:
    def __init__(self, *bodies: bytes):
        self.bodies = list(bodies)
        self.calls: list[tuple[str, float]] = []

    def __call__(self, url: str, timeout: float) -> bytes:
        self.calls.append((url, timeout))
        if len(self.bodies) > 1:
            return self.bodies.pop(0)
        return self.bodies[0]


class FailingFetcher:
    def __call__(self, url: str, timeout: float) -> bytes:
        raise TransportError(f"connection refused: {url}")


class BrokenStore(MemoryCacheStore):
    def write(self, body: bytes, stored_at: float) -> None:
        raise CacheWriteError("disk full")


def _cache(store, fetcher, clock, ttl: float = 30) -> FeedCache:
    return FeedCache(store, url="https://feed.test/datex2.xml", ttl_seconds=ttl, timeout=12, fetcher=fetcher, clock=clock)


def test_read_within_ttl_returns_cached_bytes_without_fetching():
    clock = FakeClock()
    fetcher = CountingFetcher(b"<a>first</a>", b"<a>second</a>")
    cache = _cache(MemoryCacheStore(), fetcher, clock)

    first = cache.get_feed()
    clock.now += 30
    second = cache.get_feed()

    assert first == second == b"<a>first</a>"
    assert len(fetcher.calls) == 1
    assert cache.get_feed_with_source() == (b"<a>first</a>", SOURCE_CACHE)


def test_read_after_ttl_triggers_exactly_one_fetch():
    clock = FakeClock()
    fetcher = CountingFetcher(b"<a>first</a>", b"<a>second</a>")
    cache = _cache(MemoryCacheStore(), fetcher, clock)

    cache.get_feed()
    clock.now += 30.5
    refreshed = cache.get_feed()
    again = cache.get_feed()

    assert refreshed == again == b"<a>second</a>"
    assert len(fetcher.calls) == 2
    assert fetcher.calls[0] == ("https://feed.test/datex2.xml", 12)


def test_blank_cached_body_is_a_miss():
    clock = FakeClock()
    store = MemoryCacheStore()
    store.write(b"  \n ", clock())
    fetcher = CountingFetcher(b"<a/>")

    assert _cache(store, fetcher, clock).get_feed() == b"<a/>"
    assert len(fetcher.calls) == 1


def test_fetch_failure_without_cache_raises():
    cache = _cache(MemoryCacheStore(), FailingFetcher(), FakeClock())

    with pytest.raises(TransportError):
        cache.get_feed()


def test_cache_write_failure_still_returns_fresh_body():
    fetcher = CountingFetcher(b"<a/>")
    cache = _cache(BrokenStore(), fetcher, FakeClock())

    assert cache.get_feed() == b"<a/>"
    assert cache.age_seconds() is None


def test_file_store_round_trip_uses_mtime_as_storage_time(tmp_path: Path):
    clock = FakeClock()
    path = tmp_path / "cache" / "feed.xml"
    fetcher = CountingFetcher(b"<a>file</a>")
    cache = _cache(FileCacheStore(path), fetcher, clock)

    assert cache.age_seconds() is None
    assert cache.get_feed() == b"<a>file</a>"
    assert path.read_bytes() == b"<a>file</a>"
    assert os.stat(path).st_mtime == pytest.approx(clock.now)

    clock.now += 12
    assert cache.get_feed() == b"<a>file</a>"
    assert cache.age_seconds() == 12
    assert len(fetcher.calls) == 1


def test_file_store_stale_file_is_refetched(tmp_path: Path):
    clock = FakeClock()
    path = tmp_path / "feed.xml"
    path.write_bytes(b"<a>old</a>")
    os.utime(path, (clock.now - 120, clock.now - 120))
    fetcher = CountingFetcher(b"<a>new</a>")

    assert _cache(FileCacheStore(path), fetcher, clock).get_feed() == b"<a>new</a>"
    assert path.read_bytes() == b"<a>new</a>"


def test_file_store_write_failure_raises_cache_write_error(tmp_path: Path):
    blocker = tmp_path / "not_a_dir"
    blocker.write_text("x", encoding="utf-8")
    store = FileCacheStore(blocker / "feed.xml")

    with pytest.raises(CacheWriteError):
        store.write(b"<a/>", 0.0)


def test_invalidate_clears_store(tmp_path: Path):
    path = tmp_path / "feed.xml"
    cache = _cache(FileCacheStore(path), CountingFetcher(b"<a/>"), FakeClock())
    cache.get_feed()

    cache.invalidate()
    cache.invalidate()

    assert not path.exists()


def test_get_feed_with_source_names_where_each_body_came_from():
    clock = FakeClock()
    fetcher = CountingFetcher(b"<a>first</a>", b"<a>second</a>")
    cache = _cache(MemoryCacheStore(), fetcher, clock)

    assert cache.get_feed_with_source() == (b"<a>first</a>", SOURCE_UPSTREAM)
    assert cache.get_feed_with_source() == (b"<a>first</a>", SOURCE_CACHE)
    clock.now += 31
    assert cache.get_feed_with_source() == (b"<a>second</a>", SOURCE_UPSTREAM)


def test_source_is_returned_per_call_not_kept_on_the_cache():
    clock = FakeClock()
    cache = _cache(MemoryCacheStore(), CountingFetcher(b"<a/>"), clock)

    _body, first_source = cache.get_feed_with_source()
    _body, second_source = cache.get_feed_with_source()

    assert (first_source, second_source) == (SOURCE_UPSTREAM, SOURCE_CACHE)
    assert not hasattr(cache, "last_source")
