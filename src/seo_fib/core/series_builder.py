"""
Group PositionRecords into one chronologically ordered series per keyword.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Dict, Iterable, List

from .models import KeywordSeries, PositionRecord, SeriesPoint

logger = logging.getLogger(__name__)


def build_series(records: Iterable[PositionRecord]) -> Dict[str, KeywordSeries]:
    """
    Group records by exact keyword string and sort each group by date.

    The sort is stable, so same-day records keep their input order. The
    series' search volume is taken from the keyword's first record in input
    order (first volume column wins), not the chronologically first one.

    Returns:
        Dict keyed by keyword, in order of first appearance
    """
    grouped: Dict[str, List[PositionRecord]] = defaultdict(list)
    for record in records:
        grouped[record.keyword].append(record)

    series_map: Dict[str, KeywordSeries] = {}
    for keyword, group in grouped.items():
        volumes = {record.search_volume for record in group}
        if len(volumes) > 1:
            logger.warning(
                "Keyword '%s' has %d different search volumes; using first (%d)",
                keyword,
                len(volumes),
                group[0].search_volume,
            )

        ordered = sorted(group, key=lambda record: record.date)
        series_map[keyword] = KeywordSeries(
            keyword=keyword,
            search_volume=group[0].search_volume,
            points=tuple(
                SeriesPoint(date=record.date, position=record.position, url=record.url)
                for record in ordered
            ),
        )

    logger.debug("Built %d keyword series", len(series_map))
    return series_map


def flatten_series(series_map: Dict[str, KeywordSeries]) -> List[PositionRecord]:
    """Turn grouped series back into records (inverse of build_series)."""
    records: List[PositionRecord] = []
    for series in series_map.values():
        for point in series.points:
            records.append(
                PositionRecord(
                    keyword=series.keyword,
                    date=point.date,
                    position=point.position,
                    search_volume=series.search_volume,
                    url=point.url,
                )
            )
    return records
