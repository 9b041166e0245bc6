"""
Fibonacci retracement levels and bounce detection over a keyword's rank range.

Levels are computed once over the whole series (global range), measured down
from the worst rank toward the best:

    level[r] = high - (high - low) * r

A bounce is an interior point that is a strict local extremum and lands
within ``tolerance`` rank positions of a level:

    - Support:    both neighbours are worse (greater rank number)
    - Resistance: both neighbours are better (smaller rank number)
"""

from __future__ import annotations

import logging
from typing import List, Sequence, Tuple

import numpy as np
from scipy.signal import argrelextrema

from .models import (
    BouncePattern,
    BounceType,
    KeywordSeries,
    RetracementAnalysis,
    RetracementLevels,
)
from .validators import FIBONACCI_LEVELS, MIN_DATA_POINTS, PATTERN_TOLERANCE

logger = logging.getLogger(__name__)


def compute_levels(
    low: float, high: float, ratios: Tuple[float, ...] = FIBONACCI_LEVELS
) -> RetracementLevels:
    """Levels between ``low`` (best rank) and ``high`` (worst rank); flat ranges collapse."""
    return RetracementLevels.from_range(float(low), float(high), ratios)


def levels_for_series(
    series: KeywordSeries, ratios: Tuple[float, ...] = FIBONACCI_LEVELS
) -> RetracementLevels:
    return compute_levels(series.best_position, series.worst_position, ratios)


def find_local_extremes(positions: Sequence[int]) -> List[Tuple[int, BounceType]]:
    """
    Indices of strict interior extrema, in chronological order.

    First and last points are never extrema since they lack a neighbour.
    """
    if len(positions) < 3:
        return []

    values = np.asarray(positions, dtype=float)
    # mode="clip" compares the edges with themselves, which is never strict
    supports = argrelextrema(values, np.less, order=1, mode="clip")[0]
    resistances = argrelextrema(values, np.greater, order=1, mode="clip")[0]

    extremes = [(int(idx), BounceType.SUPPORT) for idx in supports]
    extremes += [(int(idx), BounceType.RESISTANCE) for idx in resistances]
    return sorted(extremes, key=lambda item: item[0])


def detect_bounces(
    series: KeywordSeries,
    levels: RetracementLevels,
    tolerance: float = PATTERN_TOLERANCE,
) -> List[BouncePattern]:
    """
    Find support/resistance bounces at retracement levels.

    A point within tolerance of several levels yields one pattern per level,
    in ratio order.
    """
    patterns: List[BouncePattern] = []
    points = series.points

    for idx, bounce_type in find_local_extremes(series.positions):
        point = points[idx]
        for ratio, level_value in levels.items():
            if abs(point.position - level_value) <= tolerance:
                patterns.append(
                    BouncePattern(
                        date=point.date,
                        position=point.position,
                        level=ratio,
                        value=round(level_value, 4),
                        type=bounce_type,
                    )
                )

    return patterns


def compute_reliability(pattern_count: int, point_count: int) -> float:
    """
    Patterns found per point-to-point move, as a percentage.

    Degenerate inputs (no patterns, fewer than 2 points) score 0.
    """
    if point_count < MIN_DATA_POINTS or pattern_count <= 0:
        return 0.0
    reliability = pattern_count / (point_count - 1) * 100
    # several levels can match one point, so the raw ratio can exceed 100%
    return round(min(100.0, reliability), 2)


def analyze_retracement(
    series: KeywordSeries,
    tolerance: float = PATTERN_TOLERANCE,
    ratios: Tuple[float, ...] = FIBONACCI_LEVELS,
) -> RetracementAnalysis:
    """Compute levels, bounce patterns, and reliability for one series."""
    levels = levels_for_series(series, ratios)
    patterns = detect_bounces(series, levels, tolerance)
    reliability = compute_reliability(len(patterns), len(series))

    logger.debug(
        "%s: range %.0f-%.0f, %d pattern(s), reliability %.2f%%",
        series.keyword,
        levels.low,
        levels.high,
        len(patterns),
        reliability,
    )

    return RetracementAnalysis(
        levels=levels, patterns=tuple(patterns), reliability=reliability
    )
