"""Unit scoring: reduces asset progress and pronunciation attempts to 0-100.

Pure functions only. The coordinator gathers the inputs.
"""

import math
from collections.abc import Iterable, Mapping, Sequence

SCORE_MIN = 0
SCORE_MAX = 100


def clamp(value: float, low: float = SCORE_MIN, high: float = SCORE_MAX) -> float:
    return max(low, min(high, value))


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for non-negatives.

    Python's built-in ``round`` uses banker's rounding (``round(86.5) == 86``).
    """
    return math.floor(value + 0.5)


def mean(values: Iterable[float]) -> float:
    """Arithmetic mean; 0.0 for an empty input."""
    items = list(values)
    if not items:
        return 0.0
    return sum(items) / len(items)


def asset_component(
    catalog_asset_ids: Sequence[str],
    progress_by_asset: Mapping[str, float],
) -> float | None:
    """Average progress over the catalog's assets for a unit.

    Untouched assets count as 0. Returns None when the unit has no assets.

    Args:
        catalog_asset_ids: Every asset the catalog lists for the unit.
        progress_by_asset: Learner's progress percentage keyed by asset id.
    """
    if not catalog_asset_ids:
        return None
    return mean(clamp(progress_by_asset.get(asset_id, 0.0)) for asset_id in catalog_asset_ids)


def pronunciation_component(attempt_scores: Sequence[float]) -> float | None:
    """Mean of all attempt scores, or None when there are no attempts."""
    if not attempt_scores:
        return None
    return mean(attempt_scores)


def unit_score(
    catalog_asset_ids: Sequence[str],
    progress_by_asset: Mapping[str, float],
    attempt_scores: Sequence[float],
) -> int:
    """Combine the asset and pronunciation components into a unit score.

    Present components are averaged unweighted; with neither present the
    score is 0.

    Returns:
        Integer score in [0, 100].
    """
    components = [
        c
        for c in (
            asset_component(catalog_asset_ids, progress_by_asset),
            pronunciation_component(attempt_scores),
        )
        if c is not None
    ]
    if not components:
        return SCORE_MIN
    return int(clamp(round_half_up(mean(components))))
