"""Collectors module for reading counters from remote devices."""

from .snmp_collector import SNMPCollector, FetchError, FetchTimeout

__all__ = [
    "SNMPCollector",
    "FetchError",
    "FetchTimeout",
]
