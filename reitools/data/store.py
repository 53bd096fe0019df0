"""Quota counters and the time-boxed comparables cache.

Three interchangeable backends implement the QuotaCacheStore protocol:
SQLite for local runs, Redis for shared deployments, and an in-memory
store for tests and throwaway sessions. Counters are keyed by
`source|window` and only go back to zero through `reset_usage`.
"""

import json
import logging
import sqlite3
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable

import redis

from reitools.config import settings
from reitools.models.property import ComparableProperty, PropertyQuery
from reitools.models.usage import CacheInfo, LastSuccess, QuotaStatus, QuotaWindow

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def period_key(window: QuotaWindow, now: datetime) -> str:
    """`YYYY-MM` for monthly windows, `YYYY-MM-DD` for daily ones."""
    if window == QuotaWindow.MONTH:
        return now.strftime("%Y-%m")
    return now.strftime("%Y-%m-%d")


def quota_level(percent_used: float) -> str:
    if percent_used >= 100:
        return "exhausted"
    if percent_used >= 90:
        return "critical"
    if percent_used >= 75:
        return "warning"
    return "healthy"


def cache_freshness(age: timedelta, ttl: timedelta) -> str:
    if age >= ttl:
        return "expired"
    if age < ttl / 2:
        return "fresh"
    return "stale"


def _usage_key(source: str, window: QuotaWindow) -> str:
    return f"{source}|{window.value}"


def _dump_comps(comps: list[ComparableProperty]) -> str:
    return json.dumps([c.to_dict() for c in comps])


def _load_comps(raw: str) -> list[ComparableProperty]:
    return [ComparableProperty.from_dict(d) for d in json.loads(raw)]


class _QuotaPolicy:
    """Threshold checks and reporting shared by every backend."""

    def __init__(
        self,
        limits: dict[str, tuple[int, str]] | None = None,
        threshold: float | None = None,
        ttl_hours: int | None = None,
        clock: Clock = utcnow,
    ):
        self.limits = limits if limits is not None else settings.quota_limits
        self.threshold = threshold if threshold is not None else settings.quota_threshold
        self.ttl = timedelta(hours=ttl_hours if ttl_hours is not None else settings.cache_ttl_hours)
        self.clock = clock

    def get_usage(self, source: str, window: QuotaWindow) -> int:
        raise NotImplementedError

    def _usage_started(self, source: str, window: QuotaWindow) -> datetime | None:
        raise NotImplementedError

    def limit_for(self, source: str) -> int | None:
        entry = self.limits.get(source)
        return int(entry[0]) if entry else None

    def window_for(self, source: str) -> QuotaWindow:
        entry = self.limits.get(source)
        return QuotaWindow(entry[1]) if entry else QuotaWindow.MONTH

    def is_quota_available(self, source: str, window: QuotaWindow) -> bool:
        limit = self.limit_for(source)
        if limit is None:
            return True
        used = self.get_usage(source, window)
        available = used < limit * self.threshold
        logger.debug("Quota %s: %d/%d (available=%s)", source, used, limit, available)
        return available

    def quota_status(self, source: str) -> QuotaStatus:
        window = self.window_for(source)
        limit = self.limit_for(source) or 0
        used = self.get_usage(source, window)
        percent = (used / limit * 100) if limit > 0 else 0.0
        started = self._usage_started(source, window) or self.clock()
        return QuotaStatus(
            source=source,
            window=window,
            period=period_key(window, started),
            used=used,
            limit=limit,
            remaining=max(limit - used, 0),
            percent_used=round(percent, 1),
            level=quota_level(percent),
            available=self.is_quota_available(source, window),
        )

    def usage_report(self) -> list[QuotaStatus]:
        return [self.quota_status(source) for source in self.limits]

    def _is_valid(self, created_at: datetime) -> bool:
        return self.clock() - created_at < self.ttl

    def _cache_info(self, query: PropertyQuery, created_at: datetime, count: int) -> CacheInfo:
        age = self.clock() - created_at
        return CacheInfo(
            key=query.cache_key,
            created_at=created_at,
            age_hours=round(age.total_seconds() / 3600, 1),
            freshness=cache_freshness(age, self.ttl),
            comp_count=count,
        )


class SQLiteStore(_QuotaPolicy):
    def __init__(self, db_path: str | None = None, **kwargs):
        super().__init__(**kwargs)
        self.db_path = db_path or settings.cache_db_path
        Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        self._ensure_tables()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def _ensure_tables(self) -> None:
        with self._connect() as conn:
            conn.executescript("""
                CREATE TABLE IF NOT EXISTS comps_cache (
                    cache_key TEXT PRIMARY KEY,
                    address TEXT,
                    comps_json TEXT,
                    created_at TIMESTAMP
                );

                CREATE TABLE IF NOT EXISTS quota_usage (
                    usage_key TEXT PRIMARY KEY,
                    source TEXT,
                    quota_window TEXT,
                    used INTEGER,
                    started_at TIMESTAMP
                );

                CREATE TABLE IF NOT EXISTS last_success (
                    id INTEGER PRIMARY KEY CHECK (id = 1),
                    source TEXT,
                    succeeded_at TIMESTAMP
                );
            """)

    def _cache_row(self, query: PropertyQuery) -> sqlite3.Row | None:
        with self._connect() as conn:
            return conn.execute(
                "SELECT comps_json, created_at FROM comps_cache WHERE cache_key = ?",
                (query.cache_key,),
            ).fetchone()

    def get_cached(self, query: PropertyQuery) -> list[ComparableProperty] | None:
        """Return cached comps or None if missing/expired."""
        row = self._cache_row(query)
        if row is None or not self._is_valid(datetime.fromisoformat(row["created_at"])):
            return None
        return _load_comps(row["comps_json"])

    def set_cached(self, query: PropertyQuery, comps: list[ComparableProperty]) -> None:
        with self._connect() as conn:
            conn.execute(
                "INSERT OR REPLACE INTO comps_cache (cache_key, address, comps_json, created_at) "
                "VALUES (?, ?, ?, ?)",
                (query.cache_key, query.full, _dump_comps(comps), self.clock().isoformat()),
            )

    def cache_info(self, query: PropertyQuery) -> CacheInfo | None:
        row = self._cache_row(query)
        if row is None:
            return None
        count = len(json.loads(row["comps_json"]))
        return self._cache_info(query, datetime.fromisoformat(row["created_at"]), count)

    def get_usage(self, source: str, window: QuotaWindow) -> int:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT used FROM quota_usage WHERE usage_key = ?",
                (_usage_key(source, window),),
            ).fetchone()
        return row["used"] if row else 0

    def _usage_started(self, source: str, window: QuotaWindow) -> datetime | None:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT started_at FROM quota_usage WHERE usage_key = ?",
                (_usage_key(source, window),),
            ).fetchone()
        return datetime.fromisoformat(row["started_at"]) if row else None

    def increment_usage(self, source: str, window: QuotaWindow, n: int = 1) -> int:
        key = _usage_key(source, window)
        with self._connect() as conn:
            conn.execute(
                "INSERT INTO quota_usage (usage_key, source, quota_window, used, started_at) "
                "VALUES (?, ?, ?, ?, ?) "
                "ON CONFLICT(usage_key) DO UPDATE SET used = used + excluded.used",
                (key, source, window.value, n, self.clock().isoformat()),
            )
        return self.get_usage(source, window)

    def reset_usage(self, window: QuotaWindow) -> None:
        with self._connect() as conn:
            conn.execute("DELETE FROM quota_usage WHERE quota_window = ?", (window.value,))
        logger.info("Reset %s quota counters", window.value)

    def record_success(self, source: str) -> None:
        with self._connect() as conn:
            conn.execute(
                "INSERT OR REPLACE INTO last_success (id, source, succeeded_at) VALUES (1, ?, ?)",
                (source, self.clock().isoformat()),
            )

    def last_success(self) -> LastSuccess | None:
        with self._connect() as conn:
            row = conn.execute("SELECT source, succeeded_at FROM last_success").fetchone()
        if row is None:
            return None
        return LastSuccess(source=row["source"], at=datetime.fromisoformat(row["succeeded_at"]))


class RedisStore(_QuotaPolicy):
    """Redis-backed store. Cache entries are retained past their validity
    window and filtered on read."""

    PREFIX = "reitools"
    RETENTION = timedelta(days=7)

    def __init__(self, client: redis.Redis | None = None, url: str | None = None, **kwargs):
        super().__init__(**kwargs)
        self.client = client or redis.Redis.from_url(url or settings.redis_url, decode_responses=True)

    def _key(self, kind: str, name: str) -> str:
        return f"{self.PREFIX}:{kind}:{name}"

    def _cache_entry(self, query: PropertyQuery) -> dict | None:
        raw = self.client.get(self._key("cache", query.cache_key))
        return json.loads(raw) if raw else None

    def get_cached(self, query: PropertyQuery) -> list[ComparableProperty] | None:
        entry = self._cache_entry(query)
        if entry is None or not self._is_valid(datetime.fromisoformat(entry["created_at"])):
            return None
        return [ComparableProperty.from_dict(d) for d in entry["comps"]]

    def set_cached(self, query: PropertyQuery, comps: list[ComparableProperty]) -> None:
        entry = {
            "address": query.full,
            "created_at": self.clock().isoformat(),
            "comps": [c.to_dict() for c in comps],
        }
        self.client.set(
            self._key("cache", query.cache_key),
            json.dumps(entry),
            ex=int(self.RETENTION.total_seconds()),
        )

    def cache_info(self, query: PropertyQuery) -> CacheInfo | None:
        entry = self._cache_entry(query)
        if entry is None:
            return None
        created_at = datetime.fromisoformat(entry["created_at"])
        return self._cache_info(query, created_at, len(entry["comps"]))

    def get_usage(self, source: str, window: QuotaWindow) -> int:
        raw = self.client.get(self._key("usage", _usage_key(source, window)))
        return int(raw) if raw else 0

    def _usage_started(self, source: str, window: QuotaWindow) -> datetime | None:
        raw = self.client.get(self._key("usage_started", _usage_key(source, window)))
        return datetime.fromisoformat(raw) if raw else None

    def increment_usage(self, source: str, window: QuotaWindow, n: int = 1) -> int:
        name = _usage_key(source, window)
        self.client.set(self._key("usage_started", name), self.clock().isoformat(), nx=True)
        return int(self.client.incrby(self._key("usage", name), n))

    def reset_usage(self, window: QuotaWindow) -> None:
        for kind in ("usage", "usage_started"):
            for key in self.client.scan_iter(match=self._key(kind, f"*|{window.value}")):
                self.client.delete(key)
        logger.info("Reset %s quota counters", window.value)

    def record_success(self, source: str) -> None:
        self.client.set(
            self._key("meta", "last_success"),
            json.dumps({"source": source, "at": self.clock().isoformat()}),
        )

    def last_success(self) -> LastSuccess | None:
        raw = self.client.get(self._key("meta", "last_success"))
        if not raw:
            return None
        data = json.loads(raw)
        return LastSuccess(source=data["source"], at=datetime.fromisoformat(data["at"]))


class MemoryStore(_QuotaPolicy):
    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self._cache: dict[str, tuple[datetime, list[ComparableProperty]]] = {}
        self._usage: dict[str, tuple[int, datetime]] = {}
        self._last_success: LastSuccess | None = None

    def get_cached(self, query: PropertyQuery) -> list[ComparableProperty] | None:
        entry = self._cache.get(query.cache_key)
        if entry is None or not self._is_valid(entry[0]):
            return None
        return list(entry[1])

    def set_cached(self, query: PropertyQuery, comps: list[ComparableProperty]) -> None:
        self._cache[query.cache_key] = (self.clock(), list(comps))

    def cache_info(self, query: PropertyQuery) -> CacheInfo | None:
        entry = self._cache.get(query.cache_key)
        if entry is None:
            return None
        return self._cache_info(query, entry[0], len(entry[1]))

    def get_usage(self, source: str, window: QuotaWindow) -> int:
        entry = self._usage.get(_usage_key(source, window))
        return entry[0] if entry else 0

    def _usage_started(self, source: str, window: QuotaWindow) -> datetime | None:
        entry = self._usage.get(_usage_key(source, window))
        return entry[1] if entry else None

    def increment_usage(self, source: str, window: QuotaWindow, n: int = 1) -> int:
        key = _usage_key(source, window)
        used, started = self._usage.get(key, (0, self.clock()))
        self._usage[key] = (used + n, started)
        return used + n

    def reset_usage(self, window: QuotaWindow) -> None:
        suffix = f"|{window.value}"
        for key in [k for k in self._usage if k.endswith(suffix)]:
            del self._usage[key]

    def record_success(self, source: str) -> None:
        self._last_success = LastSuccess(source=source, at=self.clock())

    def last_success(self) -> LastSuccess | None:
        return self._last_success


def build_store(backend: str | None = None) -> SQLiteStore | RedisStore | MemoryStore:
    """Create the store named by `settings.store_backend`."""
    backend = backend or settings.store_backend
    if backend == "sqlite":
        return SQLiteStore()
    if backend == "redis":
        return RedisStore()
    if backend == "memory":
        return MemoryStore()
    raise ValueError(f"Unknown store backend: {backend}")
