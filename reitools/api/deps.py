"""FastAPI dependency injection."""

from functools import lru_cache

from reitools.analyzer import DealAnalyzer
from reitools.data.store import MemoryStore, RedisStore, SQLiteStore, build_store
from reitools.data.waterfall import DataWaterfall


@lru_cache(maxsize=1)
def get_store() -> SQLiteStore | RedisStore | MemoryStore:
    return build_store()


def get_analyzer() -> DealAnalyzer:
    return DealAnalyzer(DataWaterfall(get_store()))
