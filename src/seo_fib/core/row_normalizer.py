"""
Normalize rank-tracking export rows into canonical PositionRecords.

Two export shapes are supported and told apart by their column names:

    - long:  Keyword, Date, Position[, Search Volume][, URL]
    - wide:  Keyword, Search Volume, <anything>_<YYYYMMDD>[, <anything>_<YYYYMMDD>_landing]

Per-row and per-cell problems are dropped with a recorded warning; only
structural problems (no rows, missing columns) raise.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Optional, Sequence

from .models import PositionRecord
from .validators import (
    AnalysisConfig,
    EmptyInputError,
    MalformedDateError,
    MissingColumnsError,
    parse_date,
    parse_date_token,
    parse_position,
    parse_search_volume,
)

logger = logging.getLogger(__name__)

WIDE_FORMAT = "wide"
LONG_FORMAT = "long"

KEYWORD_COLUMN = "Keyword"
DATE_COLUMN = "Date"
POSITION_COLUMN = "Position"
URL_COLUMN = "URL"
SEARCH_VOLUME_COLUMNS = ("Search Volume", "Volume")

_REQUIRED_COLUMNS = {
    WIDE_FORMAT: {KEYWORD_COLUMN},
    LONG_FORMAT: {KEYWORD_COLUMN, DATE_COLUMN, POSITION_COLUMN},
}

# <prefix>_<YYYYMMDD>, optionally followed by a _type/_landing marker
_DATE_COLUMN_PATTERN = re.compile(r"^(?P<prefix>.*)_(?P<token>\d{8})(?:_(?P<marker>[A-Za-z]+))?$")
_EXCLUDED_MARKERS = {"type", "landing"}


@dataclass
class NormalizationResult:
    records: List[PositionRecord]
    input_format: str
    warnings: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class DateColumn:
    name: str
    token: str
    date: date
    landing: str


def _clean_row(row: Mapping) -> Dict[str, Any]:
    """Strip column names and string values."""
    cleaned: Dict[str, Any] = {}
    for key, value in row.items():
        name = str(key).strip()
        cleaned[name] = value.strip() if isinstance(value, str) else value
    return cleaned


def _cell_text(value: Any) -> str:
    if value is None:
        return ""
    try:
        if value != value:  # NaN from pandas
            return ""
    except (TypeError, ValueError):
        pass
    return str(value).strip()


def _is_number(value: Any) -> bool:
    text = _cell_text(value)
    if not text:
        return False
    try:
        float(text)
    except ValueError:
        return False
    return True


def find_date_columns(columns: Sequence[str]) -> List[DateColumn]:
    """
    Locate wide-format date columns, sorted chronologically.

    A column qualifies when its name ends in an 8-digit date token and carries
    no ``_type``/``_landing`` marker.
    """
    found: List[DateColumn] = []
    for name in columns:
        match = _DATE_COLUMN_PATTERN.match(name)
        if not match:
            continue
        marker = match.group("marker")
        if marker is not None:
            if marker.lower() not in _EXCLUDED_MARKERS:
                logger.debug("Ignoring column with unknown suffix: %s", name)
            continue

        token = match.group("token")
        try:
            column_date = parse_date_token(token)
        except MalformedDateError:
            logger.warning("Ignoring column with invalid date token: %s", name)
            continue
        found.append(
            DateColumn(name=name, token=token, date=column_date, landing=f"{name}_landing")
        )

    return sorted(found, key=lambda col: col.token)


def detect_input_format(columns: Sequence[str]) -> str:
    """Return 'wide' when any date-encoded column is present, else 'long'."""
    return WIDE_FORMAT if find_date_columns(columns) else LONG_FORMAT


def _header_union(rows: Sequence[Dict[str, Any]]) -> List[str]:
    seen: Dict[str, None] = {}
    for row in rows:
        for key in row:
            seen.setdefault(key, None)
    return list(seen)


def _search_volume(row: Dict[str, Any]) -> int:
    for column in SEARCH_VOLUME_COLUMNS:
        if column in row:
            return parse_search_volume(row[column])
    return 0


def _warn(warnings: List[str], message: str) -> None:
    warnings.append(message)
    logger.debug(message)


def _normalize_wide(
    rows: Sequence[Dict[str, Any]],
    date_columns: List[DateColumn],
    config: AnalysisConfig,
    warnings: List[str],
) -> List[PositionRecord]:
    records: List[PositionRecord] = []

    for index, row in enumerate(rows):
        keyword = _cell_text(row.get(KEYWORD_COLUMN))
        if not keyword:
            _warn(warnings, f"Row {index}: missing keyword, skipped")
            continue

        search_volume = _search_volume(row)
        row_records = 0

        for column in date_columns:
            if column.name not in row:
                continue
            position = parse_position(row[column.name], max_rank=config.max_rank)
            if position is None:
                if _is_number(row[column.name]):
                    _warn(
                        warnings,
                        f"Row {index}: position {row[column.name]!r} for '{keyword}' "
                        f"in {column.name} is not a rank in 1..{config.max_rank}, skipped",
                    )
                    continue
                # "-" and blanks mean "not ranked" for that date
                logger.debug(
                    "Skipping non-rank cell for %s in %s: %r",
                    keyword,
                    column.name,
                    row[column.name],
                )
                continue

            url = _cell_text(row.get(column.landing)) or None
            records.append(
                PositionRecord(
                    keyword=keyword,
                    date=column.date,
                    position=position,
                    search_volume=search_volume,
                    url=url,
                )
            )
            row_records += 1

        if row_records == 0:
            _warn(warnings, f"Row {index}: no ranked dates for keyword '{keyword}'")

    return records


def _normalize_long(
    rows: Sequence[Dict[str, Any]],
    config: AnalysisConfig,
    warnings: List[str],
) -> List[PositionRecord]:
    records: List[PositionRecord] = []

    for index, row in enumerate(rows):
        keyword = _cell_text(row.get(KEYWORD_COLUMN))
        raw_date = _cell_text(row.get(DATE_COLUMN))
        if not keyword or not raw_date:
            _warn(warnings, f"Row {index}: missing keyword or date, skipped")
            continue

        try:
            row_date = parse_date(raw_date)
        except MalformedDateError as exc:
            _warn(warnings, f"Row {index}: {exc}, skipped")
            continue

        position = parse_position(row.get(POSITION_COLUMN), max_rank=config.max_rank)
        if position is None:
            _warn(
                warnings,
                f"Row {index}: position {row.get(POSITION_COLUMN)!r} for '{keyword}' "
                f"is not a rank in 1..{config.max_rank}, skipped",
            )
            continue

        records.append(
            PositionRecord(
                keyword=keyword,
                date=row_date,
                position=position,
                search_volume=_search_volume(row),
                url=_cell_text(row.get(URL_COLUMN)) or None,
            )
        )

    return records


def normalize_rows(
    rows: Sequence[Mapping], config: Optional[AnalysisConfig] = None
) -> NormalizationResult:
    """
    Convert raw export rows into PositionRecords.

    Args:
        rows: Sequence of column -> value mappings (e.g. csv.DictReader / DataFrame records)
        config: Analysis settings (rank acceptance window)

    Returns:
        NormalizationResult with records in input order and dropped-row warnings

    Raises:
        EmptyInputError: If there are no rows or the rows are not mappings
        MissingColumnsError: If the columns required by the detected format are absent
    """
    config = config or AnalysisConfig()

    if rows is None or isinstance(rows, (str, bytes, Mapping)):
        raise EmptyInputError("Input is not a sequence of rows")

    rows = list(rows)
    if not rows:
        raise EmptyInputError("No rows found in input")
    if not all(isinstance(row, Mapping) for row in rows):
        raise EmptyInputError("Input rows must be column -> value mappings")

    cleaned = [_clean_row(row) for row in rows]
    columns = _header_union(cleaned)

    date_columns = find_date_columns(columns)
    input_format = WIDE_FORMAT if date_columns else LONG_FORMAT

    missing = _REQUIRED_COLUMNS[input_format] - set(columns)
    if missing:
        raise MissingColumnsError(missing, input_format)

    warnings: List[str] = []
    if input_format == WIDE_FORMAT:
        logger.debug("Detected wide format with %d date column(s)", len(date_columns))
        records = _normalize_wide(cleaned, date_columns, config, warnings)
    else:
        logger.debug("Detected long format")
        records = _normalize_long(cleaned, config, warnings)

    if warnings:
        logger.warning(
            "Dropped %d row(s) during %s-format normalization", len(warnings), input_format
        )
    logger.info("Normalized %d row(s) into %d record(s)", len(cleaned), len(records))

    return NormalizationResult(records=records, input_format=input_format, warnings=warnings)
