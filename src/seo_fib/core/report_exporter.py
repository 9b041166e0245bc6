"""
Write analysis reports to disk: full JSON report, volatile keyword CSV,
per-keyword chart payloads, and the human-readable summary table rows.
"""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Dict, List, Optional, Sequence

import pandas as pd

from .models import AnalysisReport, KeywordReport

logger = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")

VOLATILE_CSV_COLUMNS = [
    "keyword",
    "volatility_score",
    "search_volume",
    "current_position",
    "best_position",
    "worst_position",
]


def slugify_keyword(keyword: str) -> str:
    """
    Filesystem-safe name for a keyword.

    Raises:
        ValueError: If nothing usable remains after sanitizing
    """
    slug = _UNSAFE_CHARS.sub("_", keyword.strip().lower()).strip("._")
    # Ensure no path traversal
    slug = slug.replace("..", "_")
    if not slug:
        raise ValueError(f"Cannot build a file name from keyword: {keyword!r}")
    return slug


def _write_json(payload: dict, destination: Path) -> None:
    destination.parent.mkdir(parents=True, exist_ok=True)
    with destination.open("w", encoding="utf-8") as fp:
        json.dump(payload, fp, ensure_ascii=True, indent=2)


def keyword_payload(keyword_report: KeywordReport) -> dict:
    """JSON-compatible chart payload for one keyword."""
    return keyword_report.model_dump(mode="json")


def write_report(report: AnalysisReport, destination: Path) -> None:
    """Write the full report to JSON with stable formatting."""
    _write_json(report.model_dump(mode="json"), destination)
    logger.debug("Wrote report to %s", destination)


def write_keyword_payloads(
    report: AnalysisReport,
    output_dir: Path,
    keywords: Optional[Sequence[str]] = None,
) -> Dict[str, Path]:
    """
    Write one chart payload JSON per keyword.

    Args:
        report: Analysis report
        output_dir: Destination directory
        keywords: Keywords to export (default: the volatile keywords)

    Returns:
        Dict mapping keyword to written file path
    """
    if keywords is None:
        keywords = [row.keyword for row in report.volatile_keywords]

    written: Dict[str, Path] = {}
    used_names: Dict[str, int] = {}

    for keyword in keywords:
        keyword_report = report.keywords.get(keyword)
        if keyword_report is None:
            logger.warning("No analyzed data for keyword: %s", keyword)
            continue

        try:
            slug = slugify_keyword(keyword)
        except ValueError as exc:
            logger.warning("Skipping chart payload: %s", exc)
            continue

        # distinct keywords can sanitize to the same slug
        count = used_names.get(slug, 0)
        used_names[slug] = count + 1
        name = slug if count == 0 else f"{slug}_{count + 1}"

        destination = output_dir / f"{name}_chart.json"
        _write_json(keyword_payload(keyword_report), destination)
        written[keyword] = destination

    return written


def volatile_dataframe(report: AnalysisReport) -> pd.DataFrame:
    rows = [row.model_dump() for row in report.volatile_keywords]
    return pd.DataFrame(rows, columns=VOLATILE_CSV_COLUMNS)


def write_volatile_csv(report: AnalysisReport, destination: Path) -> None:
    """Write the volatile keyword table as CSV (header only when none are volatile)."""
    destination.parent.mkdir(parents=True, exist_ok=True)
    volatile_dataframe(report).to_csv(destination, index=False)


def build_summary_rows(report: AnalysisReport) -> List[dict]:
    """
    Summary table rows for analyzed keywords: volatility, reliability,
    next support/resistance and current trend.
    """
    rows: List[dict] = []
    for keyword, keyword_report in report.keywords.items():
        prediction = keyword_report.prediction
        volatility = keyword_report.volatility
        rows.append(
            {
                "keyword": keyword,
                "volatility_score": (
                    f"{volatility.score:.2f}" if volatility is not None else "N/A"
                ),
                "reliability": f"{keyword_report.reliability:.2f}%",
                "next_level": (
                    f"{prediction.next_level.value:.2f} "
                    f"({prediction.next_level.level * 100:g}%)"
                    if prediction is not None
                    else "N/A"
                ),
                "trend": prediction.trend.value if prediction is not None else "N/A",
            }
        )
    return rows


def write_summary_csv(report: AnalysisReport, destination: Path) -> None:
    """Write the summary table rows as CSV."""
    destination.parent.mkdir(parents=True, exist_ok=True)
    pd.DataFrame(
        build_summary_rows(report),
        columns=["keyword", "volatility_score", "reliability", "next_level", "trend"],
    ).to_csv(destination, index=False)
