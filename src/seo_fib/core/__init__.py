"""
Core module for SEO-Fib
Provides rank export normalization, volatility scoring, and Fibonacci retracement analysis
"""

from .models import (
    PositionRecord,
    SeriesPoint,
    KeywordSeries,
    VolatilityResult,
    RetracementLevels,
    BouncePattern,
    BounceType,
    RetracementAnalysis,
    LevelValue,
    Prediction,
    TrendDirection,
    KeywordReport,
    VolatileKeyword,
    AnalysisReport,
)

from .validators import (
    AnalysisConfig,
    FIBONACCI_LEVELS,
    VOLATILITY_THRESHOLD,
    PATTERN_TOLERANCE,
    MIN_RANK,
    MAX_RANK,
    MIN_DATA_POINTS,
    RankDataError,
    EmptyInputError,
    MissingColumnsError,
    UnreadableInputError,
    MalformedDateError,
    InsufficientDataWarning,
)

from .row_normalizer import (
    NormalizationResult,
    normalize_rows,
    detect_input_format,
)

from .series_builder import (
    build_series,
    flatten_series,
)

from .volatility import (
    score_volatility,
    score_all,
)

from .retracement import (
    compute_levels,
    detect_bounces,
    compute_reliability,
    analyze_retracement,
)

from .predictor import (
    predict_next_level,
)

from .keyword_analyzer import (
    analyze_rows,
    analyze_dataframe,
    analyze_file,
    load_rank_csv,
)

from .report_exporter import (
    write_report,
    write_keyword_payloads,
    write_volatile_csv,
    write_summary_csv,
    build_summary_rows,
)

__all__ = [
    # Models
    "PositionRecord",
    "SeriesPoint",
    "KeywordSeries",
    "VolatilityResult",
    "RetracementLevels",
    "BouncePattern",
    "BounceType",
    "RetracementAnalysis",
    "LevelValue",
    "Prediction",
    "TrendDirection",
    "KeywordReport",
    "VolatileKeyword",
    "AnalysisReport",
    # Validators / settings
    "AnalysisConfig",
    "FIBONACCI_LEVELS",
    "VOLATILITY_THRESHOLD",
    "PATTERN_TOLERANCE",
    "MIN_RANK",
    "MAX_RANK",
    "MIN_DATA_POINTS",
    "RankDataError",
    "EmptyInputError",
    "MissingColumnsError",
    "UnreadableInputError",
    "MalformedDateError",
    "InsufficientDataWarning",
    # Normalizer
    "NormalizationResult",
    "normalize_rows",
    "detect_input_format",
    # Series builder
    "build_series",
    "flatten_series",
    # Volatility
    "score_volatility",
    "score_all",
    # Retracement
    "compute_levels",
    "detect_bounces",
    "compute_reliability",
    "analyze_retracement",
    # Predictor
    "predict_next_level",
    # Pipeline
    "analyze_rows",
    "analyze_dataframe",
    "analyze_file",
    "load_rank_csv",
    # Export
    "write_report",
    "write_keyword_payloads",
    "write_volatile_csv",
    "write_summary_csv",
    "build_summary_rows",
]
