"""Shared fixtures for the counter rate check tests."""
from datetime import datetime, timedelta, timezone

import pytest

from snmp_counter_rate.core.cache_store import CacheStore
from snmp_counter_rate.core.config import CheckConfig
from snmp_counter_rate.collectors.snmp_collector import FetchError

HOST = "192.0.2.10"
OID = "1.3.6.1.2.1.2.2.1.10.1"
T0 = datetime(2026, 10, 18, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep environment overrides from leaking into tests."""
    for name in (
        "SNMP_COMMUNITY",
        "SNMP_PORT",
        "SNMP_TIMEOUT",
        "SNMP_RATE_CACHE_DIR",
        "LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def cache_store(tmp_path) -> CacheStore:
    return CacheStore(str(tmp_path / "cache"))


@pytest.fixture
def config(tmp_path) -> CheckConfig:
    config = CheckConfig()
    config.snmp.host = HOST
    config.snmp.oid = OID
    config.cache.directory = str(tmp_path / "cache")
    return config


class FakeCollector:
    """Stands in for SNMPCollector; returns or raises queued results."""

    def __init__(self, *results):
        self.results = list(results)
        self.calls = []

    def fetch_counter_sync(self, ip, oid):
        self.calls.append((ip, oid))
        result = self.results.pop(0)
        if isinstance(result, FetchError):
            raise result
        return result


class FakeClock:
    """Returns T0 plus the given offsets in seconds, one per call."""

    def __init__(self, *offsets):
        self.times = [T0 + timedelta(seconds=s) for s in offsets]

    def __call__(self):
        return self.times.pop(0)
