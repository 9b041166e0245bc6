"""
Analyze keyword rank-tracking CSV exports and emit JSON reports.

Pipeline (each stage returns a new immutable result):
    rows -> normalize_rows -> build_series -> score_all
                                           -> analyze_retracement -> predict_next_level

Outputs per input file:
    - <stem>_analysis.json   full report (volatile list + per-keyword payloads)
    - <stem>_volatile.csv    volatile keyword table
    - <stem>_summary.csv     keyword / volatility / reliability / next level / trend
    - <stem>_charts/*.json   chart-ready payload per selected keyword
"""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

import pandas as pd

from .models import (
    AnalysisReport,
    KeywordReport,
    KeywordSeries,
    VolatileKeyword,
    VolatilityResult,
)
from .predictor import predict_next_level
from .report_exporter import (
    write_keyword_payloads,
    write_report,
    write_summary_csv,
    write_volatile_csv,
)
from .retracement import analyze_retracement
from .row_normalizer import normalize_rows
from .series_builder import build_series
from .timezone_utils import get_report_now, resolve_timezone
from .validators import (
    MIN_DATA_POINTS,
    AnalysisConfig,
    EmptyInputError,
    RankDataError,
    UnreadableInputError,
)
from .volatility import score_all, volatile_only

SCHEMA_VERSION = 1.0

logger = logging.getLogger(__name__)


def load_rank_csv(file_path: Path) -> List[Dict[str, str]]:
    """
    Load a rank export CSV as a list of row dicts.

    Cells are read as strings with blanks kept as "" so that sentinel values
    like "-" reach the normalizer untouched.

    Raises:
        EmptyInputError: If the file has no header or no data rows
        UnreadableInputError: If the file cannot be read or tokenized
    """
    try:
        df = pd.read_csv(
            file_path,
            dtype=str,
            keep_default_na=False,
            skip_blank_lines=True,
        )
    except pd.errors.EmptyDataError as exc:
        raise EmptyInputError(f"No data in {file_path.name}") from exc
    except (pd.errors.ParserError, UnicodeDecodeError, OSError) as exc:
        raise UnreadableInputError(f"Cannot read {file_path.name}: {exc}") from exc

    df.columns = [str(col).strip() for col in df.columns]
    if df.empty:
        raise EmptyInputError(f"No data rows in {file_path.name}")

    return df.to_dict(orient="records")


def build_keyword_report(
    series: KeywordSeries,
    config: AnalysisConfig,
    volatility: Optional[VolatilityResult] = None,
) -> KeywordReport:
    """Chart-ready payload: series, levels, bounces, prediction, reliability."""
    analysis = analyze_retracement(
        series, config.pattern_tolerance, config.fibonacci_levels
    )
    prediction = predict_next_level(series, analysis)

    return KeywordReport(
        keyword=series.keyword,
        search_volume=series.search_volume,
        series=[
            {"date": point.date.isoformat(), "position": point.position}
            for point in series.points
        ],
        levels=analysis.levels.to_dict(),
        patterns=list(analysis.patterns),
        prediction=prediction,
        reliability=analysis.reliability,
        volatility=volatility,
    )


def build_volatile_keywords(
    series_map: Mapping[str, KeywordSeries], results: Iterable[VolatilityResult]
) -> List[VolatileKeyword]:
    """Volatile keyword table rows, in the order of ``results``."""
    rows: List[VolatileKeyword] = []
    for result in volatile_only(list(results)):
        series = series_map[result.keyword]
        rows.append(
            VolatileKeyword(
                keyword=result.keyword,
                volatility_score=result.score,
                search_volume=series.search_volume,
                current_position=series.current_position,
                best_position=series.best_position,
                worst_position=series.worst_position,
            )
        )
    return rows


def format_status_message(volatile_count: int, total_keywords: int) -> str:
    if volatile_count == 0:
        return "No volatile keywords found in the data"
    return f"Found {volatile_count} volatile keywords out of {total_keywords} total"


def analyze_rows(
    rows: Sequence[Mapping],
    config: Optional[AnalysisConfig] = None,
    source: str = "<memory>",
) -> AnalysisReport:
    """
    Run the full analysis over raw export rows.

    Raises:
        EmptyInputError: If no rows are given or none survive normalization
        MissingColumnsError: If required columns are absent
    """
    config = config or AnalysisConfig()

    normalized = normalize_rows(rows, config)
    if not normalized.records:
        raise EmptyInputError(
            "No valid data found. Make sure the file is a rank tracking export."
        )

    series_map = build_series(normalized.records)
    results = score_all(series_map, config.volatility_threshold)
    volatility_by_keyword = {result.keyword: result for result in results}

    keyword_reports: Dict[str, KeywordReport] = {}
    skipped = 0
    for keyword, series in series_map.items():
        if len(series) < MIN_DATA_POINTS:
            skipped += 1
            continue
        keyword_reports[keyword] = build_keyword_report(
            series, config, volatility_by_keyword.get(keyword)
        )

    if skipped:
        logger.info(
            "%d keyword(s) have fewer than %d points and were not analyzed",
            skipped,
            MIN_DATA_POINTS,
        )

    volatile_keywords = build_volatile_keywords(series_map, results)
    status = format_status_message(len(volatile_keywords), len(series_map))
    logger.info("%s: %s", source, status)

    return AnalysisReport(
        source=source,
        input_format=normalized.input_format,
        generated_at=get_report_now(config.timezone).isoformat(),
        total_keywords=len(series_map),
        analyzed_keywords=len(keyword_reports),
        volatile_keywords=volatile_keywords,
        keywords=keyword_reports,
        warnings=normalized.warnings,
        status_message=status,
        schema_version=SCHEMA_VERSION,
    )


def analyze_dataframe(
    df: pd.DataFrame, config: Optional[AnalysisConfig] = None, source: str = "<dataframe>"
) -> AnalysisReport:
    """Analyze an already-loaded export DataFrame."""
    df = df.fillna("")
    return analyze_rows(df.to_dict(orient="records"), config, source)


def analyze_file(file_path: Path, config: Optional[AnalysisConfig] = None) -> AnalysisReport:
    """Load a CSV export and analyze it."""
    rows = load_rank_csv(file_path)
    return analyze_rows(rows, config, source=file_path.name)


def _resolve_paths_from_patterns(patterns: Iterable[str]) -> List[Path]:
    """Expand glob patterns; relative patterns resolve against CWD."""
    paths: List[Path] = []
    for pattern in patterns:
        candidate = Path(pattern)
        if candidate.exists():
            paths.append(candidate)
            continue

        # Path.glob() rejects absolute patterns, so glob from the anchor instead
        if candidate.is_absolute():
            root = Path(candidate.anchor)
            matches = sorted(root.glob(str(candidate.relative_to(root))))
        else:
            matches = sorted(Path().glob(pattern))
        paths.extend(matches)
    return paths


def collect_input_files(
    input_dir: Optional[Path], glob_patterns: Sequence[str], extra_files: Sequence[str]
) -> List[Path]:
    """
    Collect CSV paths from an input directory (with glob) plus any explicit file paths/globs.
    """
    paths: List[Path] = []

    if input_dir:
        for pattern in glob_patterns:
            paths.extend(sorted(input_dir.glob(pattern)))

    paths.extend(_resolve_paths_from_patterns(extra_files))

    unique_paths: List[Path] = []
    seen = set()
    for path in paths:
        resolved = path.resolve()
        if resolved not in seen:
            seen.add(resolved)
            unique_paths.append(resolved)

    return unique_paths


def _build_config(args: argparse.Namespace) -> AnalysisConfig:
    overrides = {
        "volatility_threshold": args.volatility_threshold,
        "pattern_tolerance": args.tolerance,
        "max_rank": args.max_rank,
        "timezone": args.timezone,
    }
    config = AnalysisConfig(**{k: v for k, v in overrides.items() if v is not None})
    resolve_timezone(config.timezone)
    return config


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description="Score keyword rank volatility and Fibonacci retracement patterns "
        "from rank-tracking CSV exports and emit JSON reports."
    )
    parser.add_argument(
        "--input-dir",
        type=Path,
        help="Directory containing CSV exports (used with --glob).",
    )
    parser.add_argument(
        "--glob",
        dest="glob_patterns",
        nargs="+",
        default=["*.csv"],
        help="Glob pattern(s) to select CSV files (default: *.csv).",
    )
    parser.add_argument(
        "--files",
        nargs="+",
        default=[],
        help="Explicit CSV file paths or glob expressions (optional).",
    )
    parser.add_argument(
        "--output-dir",
        type=Path,
        required=True,
        help="Directory to write JSON/CSV outputs.",
    )
    parser.add_argument(
        "--keywords",
        nargs="+",
        help="Keywords to write chart payloads for (default: volatile keywords).",
    )
    parser.add_argument(
        "--volatility-threshold",
        type=float,
        help="Score above which a keyword is volatile (default: 10).",
    )
    parser.add_argument(
        "--tolerance",
        type=float,
        help="Rank distance counted as a retracement level touch (default: 2).",
    )
    parser.add_argument(
        "--max-rank",
        type=int,
        help="Worst rank accepted; larger positions count as not ranked (default: 100).",
    )
    parser.add_argument(
        "--timezone",
        help="Timezone for report timestamps (default: UTC).",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging.",
    )

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(message)s",
    )

    try:
        config = _build_config(args)
    except ValueError as exc:
        parser.error(str(exc))

    input_files = collect_input_files(args.input_dir, args.glob_patterns, args.files)
    if not input_files:
        parser.error("No CSV files found. Provide --input-dir/--glob or --files.")

    written = 0
    for csv_path in input_files:
        if csv_path.suffix.lower() != ".csv":
            logger.debug("Skipping non-CSV file %s", csv_path)
            continue

        try:
            report = analyze_file(csv_path, config)
        except RankDataError as exc:
            logger.error("Error processing %s: %s", csv_path.name, exc)
            continue

        output_path = args.output_dir / f"{csv_path.stem}_analysis.json"
        write_report(report, output_path)
        write_volatile_csv(report, args.output_dir / f"{csv_path.stem}_volatile.csv")
        write_summary_csv(report, args.output_dir / f"{csv_path.stem}_summary.csv")
        payloads = write_keyword_payloads(
            report, args.output_dir / f"{csv_path.stem}_charts", args.keywords
        )
        written += 1
        logger.info(
            "Wrote analysis for %s -> %s (%d chart payload(s))",
            csv_path.name,
            output_path,
            len(payloads),
        )

    if written == 0:
        logger.warning("No analysis files were written.")
        return 1

    logger.info("Generated %d analysis file(s) in %s", written, args.output_dir)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
