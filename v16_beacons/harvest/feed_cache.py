"""Freshness-bounded single-slot cache in front of the upstream feed."""

from __future__ import annotations

import logging
import os
import time
from pathlib import Path
from typing import Callable, Protocol

from v16_beacons.common.constants import CACHE_TTL_SECONDS, FEED_URL, FETCH_TIMEOUT_SECONDS
from v16_beacons.common.errors import CacheWriteError
from v16_beacons.common.fs import write_bytes_atomic
from v16_beacons.common.logging import log_event
from v16_beacons.common.models import CacheEntry
from v16_beacons.harvest.fetcher import fetch_feed

Fetcher = Callable[[str, float], bytes]
SOURCE_CACHE = "cache"
SOURCE_UPSTREAM = "upstream"


class CacheStore(Protocol):
    def read(self) -> CacheEntry | None: ...

    def write(self, body: bytes, stored_at: float) -> None: ...

    def stored_at(self) -> float | None: ...

    def clear(self) -> None: ...


class FileCacheStore:
    """Cached body in one file; the file's mtime is the storage time."""

    def __init__(self, path: Path) -> None:
        self.path = path

    def read(self) -> CacheEntry | None:
        try:
            stored_at = self.path.stat().st_mtime
            body = self.path.read_bytes()
        except OSError:
            return None
        return CacheEntry(body=body, stored_at=stored_at)

    def write(self, body: bytes, stored_at: float) -> None:
        try:
            write_bytes_atomic(self.path, body)
            os.utime(self.path, (stored_at, stored_at))
        except OSError as exc:
            raise CacheWriteError(f"Could not write feed cache {self.path}: {exc}") from exc

    def stored_at(self) -> float | None:
        try:
            return self.path.stat().st_mtime
        except OSError:
            return None

    def clear(self) -> None:
        try:
            self.path.unlink()
        except FileNotFoundError:
            pass


class MemoryCacheStore:
    def __init__(self) -> None:
        self.entry: CacheEntry | None = None

    def read(self) -> CacheEntry | None:
        return self.entry

    def write(self, body: bytes, stored_at: float) -> None:
        self.entry = CacheEntry(body=body, stored_at=stored_at)

    def stored_at(self) -> float | None:
        return self.entry.stored_at if self.entry is not None else None

    def clear(self) -> None:
        self.entry = None


class FeedCache:
    """Serve the feed from the store while it is fresh, otherwise fetch and store it.

    Age is measured against storage time, never against timestamps inside the
    document. Concurrent refreshes may each hit upstream; the last write wins.
    """

    def __init__(
        self,
        store: CacheStore,
        *,
        url: str = FEED_URL,
        ttl_seconds: float = CACHE_TTL_SECONDS,
        timeout: float = FETCH_TIMEOUT_SECONDS,
        fetcher: Fetcher = fetch_feed,
        clock: Callable[[], float] = time.time,
        logger: logging.Logger | None = None,
    ) -> None:
        self.store = store
        self.url = url
        self.ttl_seconds = ttl_seconds
        self.timeout = timeout
        self.fetcher = fetcher
        self.clock = clock
        self.logger = logger or logging.getLogger(__name__)

    def get_feed(self) -> bytes:
        body, _source = self.get_feed_with_source()
        return body

    def get_feed_with_source(self) -> tuple[bytes, str]:
        """Like get_feed, also naming where the body came from: "cache" or "upstream"."""
        entry = self.store.read()
        if entry is not None:
            age = entry.age_seconds(self.clock())
            if age <= self.ttl_seconds and entry.body.strip():
                log_event(
                    self.logger,
                    "feed served from cache",
                    stage="cache",
                    event="FEED_CACHE_HIT",
                    status="ok",
                    cache_age_s=round(age, 3),
                )
                return entry.body, SOURCE_CACHE
        return self.refresh(), SOURCE_UPSTREAM

    def refresh(self) -> bytes:
        started = time.monotonic()
        body = self.fetcher(self.url, self.timeout)
        log_event(
            self.logger,
            "feed fetched from upstream",
            stage="fetch",
            source=self.url,
            event="FEED_FETCH",
            status="ok",
            duration_ms=int((time.monotonic() - started) * 1000),
        )
        try:
            self.store.write(body, self.clock())
        except CacheWriteError as exc:
            log_event(
                self.logger,
                str(exc),
                level=logging.WARNING,
                stage="cache",
                event="CACHE_WRITE_FAIL",
                status="error",
                error_code=exc.error_code,
            )
        return body

    def invalidate(self) -> None:
        self.store.clear()

    def age_seconds(self) -> int | None:
        stored_at = self.store.stored_at()
        if stored_at is None:
            return None
        return round(self.clock() - stored_at)
