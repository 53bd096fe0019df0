"""Pydantic models for source quota and cache reporting."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel


class QuotaWindow(str, Enum):
    MONTH = "month"
    DAY = "day"


class QuotaStatus(BaseModel):
    source: str
    window: QuotaWindow
    period: str  # "2025-11" or "2025-11-15"
    used: int
    limit: int
    remaining: int
    percent_used: float
    level: str  # "healthy" | "warning" | "critical" | "exhausted"
    available: bool


class RateLimitUsage(BaseModel):
    """Usage reported by the provider in its rate-limit response headers."""
    limit: int
    remaining: int
    used: int
    percent_used: float


class LastSuccess(BaseModel):
    source: str
    at: datetime


class CacheInfo(BaseModel):
    key: str
    created_at: datetime
    age_hours: float
    freshness: str  # "fresh" | "stale" | "expired"
    comp_count: int
