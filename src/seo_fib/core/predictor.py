"""
Next retracement level prediction for a keyword series.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Tuple

from .models import (
    KeywordSeries,
    LevelValue,
    Prediction,
    RetracementAnalysis,
    RetracementLevels,
    TrendDirection,
)
from .retracement import analyze_retracement
from .validators import MIN_DATA_POINTS, PATTERN_TOLERANCE, InsufficientDataWarning

logger = logging.getLogger(__name__)


def detect_trend(current: int, previous: int) -> TrendDirection:
    """Improving when the rank number dropped since the previous point."""
    if current < previous:
        return TrendDirection.IMPROVING
    return TrendDirection.DECLINING


def nearest_level(levels: RetracementLevels, position: float) -> LevelValue:
    """Level closest to ``position``; ties resolve to the first ratio."""
    ratio, value = min(levels.items(), key=lambda item: abs(position - item[1]))
    return LevelValue(level=ratio, value=round(value, 4))


def next_level(
    levels: RetracementLevels, position: float, trend: TrendDirection
) -> LevelValue:
    """
    Next level the rank is heading toward.

    Improving ranks head for the nearest level with a smaller value, falling
    back to the lowest-value level. Declining ranks head for the nearest level
    with a larger value, falling back to the highest-value level.
    """
    ordered: List[Tuple[float, float]] = levels.sorted_by_value()

    if trend is TrendDirection.IMPROVING:
        below = [item for item in ordered if item[1] < position]
        ratio, value = below[-1] if below else ordered[0]
    else:
        above = [item for item in ordered if item[1] > position]
        ratio, value = above[0] if above else ordered[-1]

    return LevelValue(level=ratio, value=round(value, 4))


def predict_next_level(
    series: KeywordSeries,
    analysis: Optional[RetracementAnalysis] = None,
    tolerance: float = PATTERN_TOLERANCE,
) -> Optional[Prediction]:
    """
    Predict the next support/resistance level for a keyword.

    Confidence reuses the retracement reliability (0-100) scaled to 0-1.

    Args:
        series: Keyword rank history
        analysis: Precomputed retracement analysis for ``series`` (computed when omitted)
        tolerance: Touch tolerance used when computing the analysis here

    Returns:
        Prediction, or None when the series has fewer than 2 points
    """
    if len(series) < MIN_DATA_POINTS:
        logger.debug(
            "%s: '%s' has %d point(s); no prediction",
            InsufficientDataWarning.__name__,
            series.keyword,
            len(series),
        )
        return None

    if analysis is None:
        analysis = analyze_retracement(series, tolerance)

    current = series.current_position
    trend = detect_trend(current, series.previous_position)
    confidence = min(1.0, max(0.0, analysis.reliability / 100))

    return Prediction(
        current_level=nearest_level(analysis.levels, current),
        next_level=next_level(analysis.levels, current, trend),
        trend=trend,
        confidence=round(confidence, 4),
    )
