"""
Duration helpers.

All queue durations are milliseconds; these convert human units.
"""

import math
from typing import Union

Number = Union[int, float, str]


def _to_number(value: Number) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValueError(f"{value!r} is not a valid number.") from None
    if not math.isfinite(number):
        raise ValueError(f"{value!r} is not a valid number.")
    return number


def seconds(num_seconds: Number) -> float:
    """Convert seconds to milliseconds."""
    return _to_number(num_seconds) * 1000


def minutes(num_minutes: Number) -> float:
    """Convert minutes to milliseconds."""
    return _to_number(num_minutes) * seconds(60)


def hours(num_hours: Number) -> float:
    """Convert hours to milliseconds."""
    return _to_number(num_hours) * minutes(60)
