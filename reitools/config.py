from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    # API Keys
    rapidapi_key: str = ""
    anthropic_api_key: str = ""

    # Quota & cache store
    store_backend: str = "sqlite"  # sqlite, redis, memory
    cache_db_path: str = "data/reitools.db"
    redis_url: str = "redis://localhost:6379/0"
    cache_ttl_hours: int = 24

    # Source quotas: (limit, window). Window is "month" or "day".
    quota_limits: dict[str, tuple[int, str]] = {
        "private_zillow": (250, "month"),
        "us_real_estate": (300, "month"),
        "redfin": (111, "month"),
        "ai_estimate": (1500, "day"),
    }
    quota_threshold: float = 0.90
    # Moves one source to the front of the waterfall
    primary_source: str = ""

    # Waterfall
    adapter_timeout_seconds: float = 15.0
    ai_estimate_model: str = "claude-haiku-4-5-20251001"

    # ARV blending (product-tuned, not derived)
    comps_weight: float = 0.50
    external_weight: float = 0.25
    trend_deviation_threshold: float = 0.15

    # Hold-and-sell projection
    hold_years: int = 10
    discount_rate: float = 0.10

    # Monte-Carlo
    monte_carlo_trials: int = 1000
    monte_carlo_max_trials: int = 5000
    monte_carlo_deadline_seconds: float = 30.0
    # Uniform draw ranges: ARV/rehab/rent in percent, rate in points, timeline in months
    monte_carlo_ranges: dict[str, tuple[float, float]] = {
        "arv_pct": (-15.0, 15.0),
        "rehab_pct": (-10.0, 30.0),
        "rent_pct": (-10.0, 10.0),
        "rate_delta": (-1.0, 2.0),
        "months_delta": (-2.0, 4.0),
    }

    # App
    debug: bool = False
    log_level: str = "INFO"


settings = Settings()
