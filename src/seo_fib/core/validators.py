"""
Input validators and analysis settings for SEO-Fib
"""

import math
import re
from datetime import date
from typing import Any, Optional, Tuple

import pandas as pd
from pydantic import BaseModel, ConfigDict, Field, field_validator


# Fibonacci retracement ratios, ordered from the worst rank (0) to the best (1)
FIBONACCI_LEVELS: Tuple[float, ...] = (0.0, 0.236, 0.382, 0.5, 0.618, 0.786, 1.0)

# A keyword is volatile when its churn score exceeds this value
VOLATILITY_THRESHOLD = 10.0

# Max distance (in rank positions) between a point and a level to count as a touch
PATTERN_TOLERANCE = 2.0

# Accepted rank window; anything outside is treated as "not ranked"
MIN_RANK = 1
MAX_RANK = 100

# Series shorter than this carry no volatility/pattern/prediction signal
MIN_DATA_POINTS = 2

# Timezone used for report timestamps
REPORT_TIMEZONE = "UTC"

_DATE_TOKEN_PATTERN = re.compile(r"^\d{8}$")


class RankDataError(Exception):
    """Base error for rank export problems"""

    pass


class EmptyInputError(RankDataError):
    """No usable rows in the input"""

    pass


class UnreadableInputError(RankDataError):
    """The export file could not be read or tokenized as CSV"""

    pass


class MissingColumnsError(RankDataError):
    """Required columns are absent from the input entirely"""

    def __init__(self, missing, input_format: str):
        self.missing = sorted(missing)
        self.input_format = input_format
        super().__init__(
            f"Missing required columns for {input_format} format: "
            f"{', '.join(self.missing)}"
        )


class MalformedDateError(RankDataError):
    """A date value could not be parsed"""

    pass


class InsufficientDataWarning(UserWarning):
    """Series too short to score; excluded from analysis but still counted"""

    pass


class AnalysisConfig(BaseModel):
    """Tunable analysis parameters (defaults mirror the module constants)"""

    model_config = ConfigDict(frozen=True)

    volatility_threshold: float = Field(
        VOLATILITY_THRESHOLD, ge=0, description="Score above which a keyword is volatile"
    )
    pattern_tolerance: float = Field(
        PATTERN_TOLERANCE, ge=0, description="Rank distance counted as a level touch"
    )
    max_rank: int = Field(
        MAX_RANK, ge=MIN_RANK, description="Worst rank accepted before 'not ranked'"
    )
    fibonacci_levels: Tuple[float, ...] = Field(FIBONACCI_LEVELS)
    timezone: str = Field(REPORT_TIMEZONE, description="Timezone for report timestamps")

    @field_validator("fibonacci_levels")
    @classmethod
    def _check_levels(cls, levels: Tuple[float, ...]) -> Tuple[float, ...]:
        if not levels:
            raise ValueError("At least one Fibonacci level is required")
        if any(level < 0 or level > 1 for level in levels):
            raise ValueError(f"Fibonacci levels must be within [0, 1], got: {levels}")
        if list(levels) != sorted(levels):
            raise ValueError(f"Fibonacci levels must be ascending, got: {levels}")
        return tuple(float(level) for level in levels)


def parse_position(value: Any, max_rank: int = MAX_RANK) -> Optional[int]:
    """
    Parse a rank cell.

    Args:
        value: Raw cell value (int, float or string)
        max_rank: Upper bound of the acceptance window

    Returns:
        Integer rank, or None when the cell is not a rank inside [MIN_RANK, max_rank]
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            number = float(text)
        except ValueError:
            return None
    else:
        try:
            number = float(value)
        except (TypeError, ValueError):
            return None

    if math.isnan(number) or math.isinf(number) or not number.is_integer():
        return None

    position = int(number)
    if position < MIN_RANK or position > max_rank:
        return None
    return position


def parse_search_volume(value: Any) -> int:
    """Parse a search volume cell; anything unusable becomes 0."""
    if value is None or isinstance(value, bool):
        return 0
    try:
        number = float(str(value).strip().replace(",", ""))
    except ValueError:
        return 0
    if math.isnan(number) or math.isinf(number) or number < 0:
        return 0
    return int(number)


def parse_date_token(token: str) -> date:
    """
    Parse an 8-digit YYYYMMDD token.

    Raises:
        MalformedDateError: If the token is not a valid calendar date
    """
    if not _DATE_TOKEN_PATTERN.match(token):
        raise MalformedDateError(f"Invalid date token: {token!r}")
    try:
        return date(int(token[:4]), int(token[4:6]), int(token[6:8]))
    except ValueError as exc:
        raise MalformedDateError(f"Invalid date token: {token!r}") from exc


def parse_date(value: Any) -> date:
    """
    Parse a long-format date cell.

    An 8-digit token is read as YYYYMMDD; anything else goes through pandas'
    generic date parsing.

    Raises:
        MalformedDateError: If the value cannot be parsed
    """
    if isinstance(value, date):
        return value

    text = "" if value is None else str(value).strip()
    if not text:
        raise MalformedDateError("Empty date value")

    if _DATE_TOKEN_PATTERN.match(text):
        return parse_date_token(text)

    try:
        parsed = pd.to_datetime(text)
    except (ValueError, TypeError, OverflowError) as exc:
        raise MalformedDateError(f"Unparseable date: {text!r}") from exc

    if pd.isna(parsed):
        raise MalformedDateError(f"Unparseable date: {text!r}")
    return parsed.date()
