"""
Request parameter validation: rejects NaN, infinity, out-of-range values and
inverted min/max pairs. Values are never clamped; the first offending
parameter is reported by name with its value.
"""

from __future__ import annotations

import math
from typing import Any

from backend_insights.core.exceptions import ValidationFailure

SUCCESS_RATE_MIN = 0.0
SUCCESS_RATE_MAX = 100.0
VOLUME_MIN = 0.0
# Large but finite cap so huge numbers cannot be used to stress range queries
VOLUME_MAX = 1e18

TOP_N_MIN = 1
TOP_N_MAX = 1000


def validate_filter_value(
    value: float | None,
    min_allowed: float,
    max_allowed: float,
    param_name: str,
) -> None:
    """Validate one optional filter value: finite and within [min_allowed, max_allowed]."""
    if value is None:
        return
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationFailure(
            param_name, value, f"{param_name} must be a number (got {value!r})."
        )
    if not math.isfinite(value):
        raise ValidationFailure(
            param_name,
            value,
            f"{param_name} must be a finite number "
            f"(got {'NaN' if math.isnan(value) else 'infinity'}).",
        )
    if value < min_allowed or value > max_allowed:
        raise ValidationFailure(
            param_name,
            value,
            f"{param_name} must be between {min_allowed} and {max_allowed} (got {value}).",
        )


def _validate_order(
    min_value: float | None,
    max_value: float | None,
    min_name: str,
    max_name: str,
) -> None:
    if min_value is not None and max_value is not None and min_value > max_value:
        raise ValidationFailure(
            min_name,
            min_value,
            f"{min_name} must be less than or equal to {max_name} "
            f"(got {min_value} > {max_value}).",
        )


def validate_corridor_filters(
    success_rate_min: float | None = None,
    success_rate_max: float | None = None,
    volume_min: float | None = None,
    volume_max: float | None = None,
) -> None:
    """
    Validate corridor list filter parameters.

    - success_rate_min/max: finite, in [0, 100], min <= max when both set.
    - volume_min/max: finite, in [0, 1e18], min <= max when both set.

    Raises:
        ValidationFailure: naming the first offending parameter.
    """
    validate_filter_value(success_rate_min, SUCCESS_RATE_MIN, SUCCESS_RATE_MAX, "success_rate_min")
    validate_filter_value(success_rate_max, SUCCESS_RATE_MIN, SUCCESS_RATE_MAX, "success_rate_max")
    validate_filter_value(volume_min, VOLUME_MIN, VOLUME_MAX, "volume_min")
    validate_filter_value(volume_max, VOLUME_MIN, VOLUME_MAX, "volume_max")
    _validate_order(success_rate_min, success_rate_max, "success_rate_min", "success_rate_max")
    _validate_order(volume_min, volume_max, "volume_min", "volume_max")


def validate(**params: Any) -> None:
    """Keyword form of validate_corridor_filters, e.g. validate(success_rate_min=0)."""
    unknown = set(params) - {"success_rate_min", "success_rate_max", "volume_min", "volume_max"}
    if unknown:
        name = sorted(unknown)[0]
        raise ValidationFailure(name, params[name], f"Unknown filter parameter: {name}.")
    validate_corridor_filters(**params)


def validate_limit(value: Any, param_name: str, min_allowed: int, max_allowed: int) -> int:
    """Validate an integer count parameter within [min_allowed, max_allowed]."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationFailure(
            param_name, value, f"{param_name} must be an integer (got {value!r})."
        )
    if value < min_allowed or value > max_allowed:
        raise ValidationFailure(
            param_name,
            value,
            f"{param_name} must be between {min_allowed} and {max_allowed} (got {value}).",
        )
    return value


def validate_top_n(top_n: Any) -> int:
    """Validate a top-N limit: integer in [1, 1000]."""
    return validate_limit(top_n, "top_n", TOP_N_MIN, TOP_N_MAX)


def validate_time_range(start: int, end: int) -> None:
    """Validate a half-open [start, end) unix-seconds range."""
    for name, value in (("start", start), ("end", end)):
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            raise ValidationFailure(name, value, f"{name} must be a non-negative unix timestamp.")
    if start > end:
        raise ValidationFailure("start", start, f"start must be <= end (got {start} > {end}).")
