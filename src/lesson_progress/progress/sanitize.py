"""Input sanitation for values arriving from the request layer."""

import math
from typing import Any

from lesson_progress.errors import ValidationError
from lesson_progress.progress.scoring import clamp, round_half_up

_MAX_INT = 2**31 - 1  # INTEGER column bound


def require_id(value: Any, field: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"Missing required field: {field}")
    return value


def require_number(value: Any, field: str) -> float:
    """Coerce to float, rejecting bools, None, NaN and non-numeric strings.

    Integers too large for a float become signed infinity, so callers clamp them.
    """
    if isinstance(value, bool) or value is None:
        raise ValidationError(f"{field} must be a number")
    try:
        number = float(value)
    except OverflowError:
        number = -math.inf if value < 0 else math.inf
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be a number") from None
    if math.isnan(number):
        raise ValidationError(f"{field} must be a number")
    return number


def non_negative_int(value: Any, field: str) -> int:
    """Floor to a non-negative integer."""
    number = require_number(value, field)
    if math.isinf(number):
        return 0 if number < 0 else _MAX_INT
    return min(_MAX_INT, max(0, math.floor(number)))


def percentage(value: Any, field: str) -> float:
    return float(clamp(require_number(value, field)))


def attempt_score(value: Any, field: str = "score") -> float:
    return float(clamp(require_number(value, field)))


def final_score(value: Any, field: str = "final_score") -> int:
    """Clamp and round a caller-supplied unit score."""
    return int(clamp(round_half_up(clamp(require_number(value, field)))))
