"""
Rate Classifier - turns two samples into a monitoring status.

Computes the per-second rate between the previous and current sample
and maps it onto a status using the warning and critical thresholds.
"""

import logging
import math
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from .models import CheckResult, Sample, Status, Thresholds, format_rate


logger = logging.getLogger(__name__)


RATE_PRECISION = Decimal("0.001")


def round_rate(rate: float) -> float:
    """Round a rate to 3 decimals, halves away from zero.

    The built-in round() rounds halves to even (round(0.3125, 3) == 0.312),
    so the decimal repr is quantized instead: 0.3125 -> 0.313.
    """
    # Floats this large carry no fractional digits to round
    if abs(rate) >= 1e15:
        return float(rate)
    return float(Decimal(repr(rate)).quantize(RATE_PRECISION, rounding=ROUND_HALF_UP))


def classify(
    previous: Optional[Sample],
    current: Sample,
    thresholds: Thresholds,
) -> CheckResult:
    """Classify the counter movement between two samples.

    Rules are applied in order: missing history, decreasing counter,
    stable counter, then the rate against the thresholds.
    """
    if previous is None:
        return CheckResult(
            Status.UNKNOWN,
            f"no prior sample, counter is {current.counter_value} "
            f"(first run or cache lost)",
            thresholds=thresholds,
        )

    if current.counter_value < previous.counter_value:
        return CheckResult(
            Status.UNKNOWN,
            f"counter has decreased from {previous.counter_value} to "
            f"{current.counter_value} (device reset or counter cleared?)",
            thresholds=thresholds,
        )

    if current.counter_value == previous.counter_value:
        return CheckResult(
            Status.OK,
            f"counter unchanged at {current.counter_value}, rate is 0 per second",
            rate=0.0,
            thresholds=thresholds,
        )

    elapsed = (current.timestamp - previous.timestamp).total_seconds()
    delta = current.counter_value - previous.counter_value

    if elapsed <= 0:
        return CheckResult(
            Status.UNKNOWN,
            f"elapsed time since previous sample is not positive ({elapsed}s), "
            f"counter increased by {delta}",
            thresholds=thresholds,
        )

    raw_rate = delta / elapsed
    if not math.isfinite(raw_rate):
        return CheckResult(
            Status.UNKNOWN,
            f"rate is not a finite number (delta {delta} over {elapsed}s)",
            thresholds=thresholds,
        )

    rate = round_rate(raw_rate)
    logger.debug(f"delta={delta} elapsed={elapsed}s rate={rate}")

    return _classify_rate(rate, thresholds)


def _classify_rate(rate: float, thresholds: Thresholds) -> CheckResult:
    """Ordered threshold decision; order matters when warning > critical."""
    warning = thresholds.warning_rate
    critical = thresholds.critical_rate
    shown = format_rate(rate)

    if rate < critical and rate >= warning:
        status = Status.WARNING
        message = f"rate is {shown} per second (warning at {format_rate(warning)})"
    elif rate >= critical:
        status = Status.CRITICAL
        message = f"rate is {shown} per second (critical at {format_rate(critical)})"
    elif rate < warning:
        status = Status.OK
        message = f"rate is {shown} per second"
    else:
        status = Status.UNKNOWN
        message = (
            f"confusing rate {shown} per second for warning "
            f"{format_rate(warning)} and critical {format_rate(critical)}"
        )

    return CheckResult(status, message, rate=rate, thresholds=thresholds)
