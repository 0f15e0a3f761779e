"""
Resource Translation

Converts human-readable resource strings into backend-native units.
Invalid input normalizes to zero, which callers treat as "unset".
"""

import math
from typing import Any, Dict

# CFS scheduling period in microseconds
CPU_PERIOD_US = 100000

MEMORY_UNITS = {
    "Gi": 1024 ** 3,
    "Mi": 1024 ** 2,
    "Ki": 1024,
}


def parse_memory_limit(limit: str) -> int:
    """
    Parse a memory limit into bytes.

    Args:
        limit: "<int>Ki", "<int>Mi", "<int>Gi" or a bare byte count

    Returns:
        Byte count, or 0 for empty/invalid input
    """
    if not limit:
        return 0

    multiplier = 1
    for suffix, value in MEMORY_UNITS.items():
        if limit.endswith(suffix):
            multiplier = value
            limit = limit[: -len(suffix)]
            break

    # int() alone would accept signs, whitespace and underscores
    if not limit.isdecimal():
        return 0

    return int(limit) * multiplier


def parse_cpu_quota(limit: str) -> int:
    """
    Parse a CPU limit in decimal cores into a CFS quota.

    Args:
        limit: Core count, e.g. "0.5"

    Returns:
        Quota in microseconds per CPU_PERIOD_US, or 0 for empty/invalid input
    """
    if not limit:
        return 0

    try:
        cores = float(limit)
    except ValueError:
        return 0

    if not math.isfinite(cores):
        return 0

    return int(cores * CPU_PERIOD_US)


def calculate_cpu_percent(stats: Dict[str, Any]) -> float:
    """
    CPU usage percent from a Docker stats sample.

    Uses the fixed scheduling period as the reference instead of the
    system CPU delta, so the value is an approximation.
    """
    current = stats.get("cpu_stats", {}).get("cpu_usage", {}).get("total_usage", 0)
    previous = stats.get("precpu_stats", {}).get("cpu_usage", {}).get("total_usage", 0)

    cpu_delta = float(current - previous)
    if cpu_delta <= 0.0:
        return 0.0

    return (cpu_delta / CPU_PERIOD_US) * 100.0
