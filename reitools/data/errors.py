"""Typed failures raised by the data acquisition layer."""


class DataSourceError(Exception):
    """A single source adapter could not produce comparables."""

    def __init__(self, source: str, message: str):
        super().__init__(f"{source}: {message}")
        self.source = source


class AllSourcesFailed(Exception):
    """Every adapter in the waterfall, including the estimation fallback, failed.

    `failures` maps source id to the reason it was skipped or failed.
    """

    def __init__(self, failures: dict[str, str]):
        detail = "; ".join(f"{k}: {v}" for k, v in failures.items()) or "no sources configured"
        super().__init__(f"All data sources failed ({detail})")
        self.failures = failures
