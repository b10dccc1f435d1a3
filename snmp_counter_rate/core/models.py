"""
Data models for counter rate checks.

These dataclasses represent the samples persisted between runs
and the outcome reported to the monitoring scheduler.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import IntEnum
from typing import Optional


class Status(IntEnum):
    """Monitoring status; the value is the process exit code."""

    OK = 0
    WARNING = 1
    CRITICAL = 2
    UNKNOWN = 3


@dataclass
class Sample:
    """A single observation of a device counter."""

    timestamp: datetime
    counter_value: int

    def __post_init__(self):
        if isinstance(self.timestamp, str):
            self.timestamp = datetime.fromisoformat(self.timestamp)
        # Naive timestamps are taken as UTC
        if self.timestamp.tzinfo is None:
            self.timestamp = self.timestamp.replace(tzinfo=timezone.utc)

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "timestamp": self.timestamp.isoformat(),
            "counter_value": self.counter_value,
        }


@dataclass
class Thresholds:
    """Rate boundaries in units per second."""

    warning_rate: float = 0.0
    critical_rate: float = 0.0


@dataclass
class CheckResult:
    """Outcome of a single check run."""

    status: Status
    message: str
    rate: Optional[float] = None
    thresholds: Thresholds = field(default_factory=Thresholds)

    @property
    def exit_code(self) -> int:
        return int(self.status)

    @property
    def perfdata(self) -> str:
        """Performance data suffix, empty when no rate was computed."""
        if self.rate is None:
            return ""
        return (
            f"rate={format_rate(self.rate)};"
            f"{format_rate(self.thresholds.warning_rate)};"
            f"{format_rate(self.thresholds.critical_rate)}"
        )

    def render(self) -> str:
        """Render the single status line printed to stdout."""
        line = f"{self.status.name} - {self.message}"
        if self.perfdata:
            line = f"{line} | {self.perfdata}"
        return line


def format_rate(value: float) -> str:
    """Format a rate as a plain decimal: 10.0 -> "10", 1e20 without exponent."""
    if value == 0:
        return "0"
    text = f"{value:.6f}"
    if "." not in text:
        # nan, inf
        return text
    return text.rstrip("0").rstrip(".")


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)
