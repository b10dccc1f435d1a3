"""Core module containing data models, configuration and check logic."""

from .models import Sample, Thresholds, Status, CheckResult
from .config import CheckConfig, ConfigError
from .cache_store import CacheStore, CacheWriteError
from .rate_classifier import classify, round_rate

__all__ = [
    "Sample",
    "Thresholds",
    "Status",
    "CheckResult",
    "CheckConfig",
    "ConfigError",
    "CacheStore",
    "CacheWriteError",
    "classify",
    "round_rate",
]
