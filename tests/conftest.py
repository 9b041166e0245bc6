"""Shared pytest fixtures for rank analysis tests."""

from datetime import date, timedelta

import pytest

from seo_fib.core.models import KeywordSeries, SeriesPoint


@pytest.fixture
def make_series():
    """Factory building a daily KeywordSeries from a list of positions."""

    def _make(positions, keyword="shoes", search_volume=1000, start=date(2024, 1, 1)):
        points = tuple(
            SeriesPoint(date=start + timedelta(days=i), position=pos)
            for i, pos in enumerate(positions)
        )
        return KeywordSeries(keyword=keyword, search_volume=search_volume, points=points)

    return _make


@pytest.fixture
def wide_rows():
    """Two keywords in wide export format, one with a single ranked date."""
    return [
        {
            "Keyword": "shoes",
            "Search Volume": "1000",
            "site.com/x_20240101": "10",
            "site.com/x_20240101_type": "organic",
            "site.com/x_20240101_landing": "https://site.com/shoes",
            "site.com/x_20240102": "5",
            "site.com/x_20240102_landing": "https://site.com/shoes",
            "site.com/x_20240103": "8",
            "site.com/x_20240104": "3",
        },
        {
            "Keyword": "boots",
            "Search Volume": "200",
            "site.com/x_20240101": "-",
            "site.com/x_20240102": "42",
            "site.com/x_20240103": "",
            "site.com/x_20240104": "-",
        },
    ]


@pytest.fixture
def long_rows():
    return [
        {"Keyword": "hats", "Date": "2024-01-03", "Position": "7", "Search Volume": "50"},
        {"Keyword": "hats", "Date": "2024-01-01", "Position": "20", "Search Volume": "50"},
        {"Keyword": "hats", "Date": "2024-01-02", "Position": "4", "Search Volume": "50"},
        {"Keyword": "gloves", "Date": "2024-01-01", "Position": "3", "Search Volume": "10"},
    ]
