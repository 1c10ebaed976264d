"""Helper functions for next-service and status calculations."""

import math
from typing import Any, Optional

from .intervals import DEFAULT_RULES, IntervalRules, interval_for
from .status import ServiceStatus

# Fixed warning band before a service falls due.
SERVICE_SOON_KM = 500


def is_valid_km(value: Any) -> bool:
    """True for a non-negative finite integer (integral floats allowed)."""
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return value >= 0
    if isinstance(value, float):
        return math.isfinite(value) and value.is_integer() and value >= 0
    return False


def next_service_km(
    current_km: Any,
    engine_type: Optional[str],
    category_name: Optional[str],
    rules: IntervalRules = DEFAULT_RULES,
) -> int:
    """
    Kilometer reading at which the next service is due.

    Returns 0 when current_km is not a valid reading. Callers must check for
    the sentinel rather than treat 0 as a threshold.
    """
    if not is_valid_km(current_km):
        return 0
    return int(current_km) + interval_for(engine_type, category_name, rules)


def classify_status(current_km: Any, next_km: Any) -> ServiceStatus:
    """Determine status from the kilometers remaining until the next service."""
    if not current_km or not next_km:
        return ServiceStatus.UNKNOWN
    remaining = next_km - current_km
    if remaining <= 0:
        return ServiceStatus.NEEDS_SERVICE
    if remaining <= SERVICE_SOON_KM:
        return ServiceStatus.SERVICE_SOON
    return ServiceStatus.ACTIVE


def km_remaining(
    current_km: Optional[float], next_km: Optional[float]
) -> Optional[float]:
    if current_km is None or not next_km:
        return None
    return next_km - current_km
