"""
Volatility scoring for keyword rank series.

score = population std of absolute day-over-day rank changes
        / mean rank * 100

A keyword is volatile when its score exceeds the configured threshold.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional

import numpy as np

from .models import KeywordSeries, VolatilityResult
from .validators import MIN_DATA_POINTS, VOLATILITY_THRESHOLD, InsufficientDataWarning

logger = logging.getLogger(__name__)


def compute_volatility_score(positions: List[int]) -> Optional[float]:
    """Coefficient of variation of rank churn, scaled to a percentage."""
    if len(positions) < MIN_DATA_POINTS:
        return None

    values = np.asarray(positions, dtype=float)
    deltas = np.abs(np.diff(values))
    std_change = float(np.std(deltas))  # ddof=0: population std
    avg_position = float(np.mean(values))

    # positions are >= 1, so avg_position is never 0
    return std_change / avg_position * 100


def score_volatility(
    series: KeywordSeries, threshold: float = VOLATILITY_THRESHOLD
) -> Optional[VolatilityResult]:
    """
    Score a single keyword series.

    Returns:
        VolatilityResult, or None when the series has fewer than 2 points
    """
    score = compute_volatility_score(series.positions)
    if score is None:
        logger.debug(
            "%s: '%s' has %d point(s); skipping volatility",
            InsufficientDataWarning.__name__,
            series.keyword,
            len(series),
        )
        return None

    return VolatilityResult(
        keyword=series.keyword,
        score=round(score, 4),
        is_volatile=score > threshold,
    )


def score_all(
    series_map: Dict[str, KeywordSeries], threshold: float = VOLATILITY_THRESHOLD
) -> List[VolatilityResult]:
    """
    Score every series with enough data.

    Returns:
        Results sorted by score descending; ties keep keyword order
    """
    results = [
        result
        for result in (score_volatility(s, threshold) for s in series_map.values())
        if result is not None
    ]
    # sorted() is stable, so equal scores stay in keyword order
    return sorted(results, key=lambda result: result.score, reverse=True)


def volatile_only(results: List[VolatilityResult]) -> List[VolatilityResult]:
    return [result for result in results if result.is_volatile]
