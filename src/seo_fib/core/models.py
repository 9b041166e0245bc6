"""
Data models for SEO-Fib using Pydantic
"""

from datetime import date
from enum import Enum
from typing import Dict, Iterator, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .validators import FIBONACCI_LEVELS


_FROZEN = ConfigDict(frozen=True)


class BounceType(str, Enum):
    SUPPORT = "Support"
    RESISTANCE = "Resistance"


class TrendDirection(str, Enum):
    """Direction named by rank quality: improving means the number went down"""

    IMPROVING = "Improving"
    DECLINING = "Declining"


class PositionRecord(BaseModel):
    """One keyword ranking observation"""

    model_config = _FROZEN

    keyword: str
    date: date
    position: int = Field(..., ge=1, description="Rank, lower is better")
    search_volume: int = Field(0, ge=0)
    url: Optional[str] = None


class SeriesPoint(BaseModel):
    model_config = _FROZEN

    date: date
    position: int = Field(..., ge=1)
    url: Optional[str] = None


class KeywordSeries(BaseModel):
    """Chronologically ordered rank history for a single keyword"""

    model_config = _FROZEN

    keyword: str
    search_volume: int = Field(0, ge=0)
    points: Tuple[SeriesPoint, ...]

    @field_validator("points")
    @classmethod
    def _check_points(cls, points: Tuple[SeriesPoint, ...]) -> Tuple[SeriesPoint, ...]:
        if not points:
            raise ValueError("A keyword series needs at least one point")
        for prev, curr in zip(points, points[1:]):
            if curr.date < prev.date:
                raise ValueError("Series points must be sorted ascending by date")
        return points

    @property
    def positions(self) -> List[int]:
        return [p.position for p in self.points]

    @property
    def dates(self) -> List[date]:
        return [p.date for p in self.points]

    @property
    def current_position(self) -> int:
        return self.points[-1].position

    @property
    def previous_position(self) -> Optional[int]:
        if len(self.points) < 2:
            return None
        return self.points[-2].position

    @property
    def best_position(self) -> int:
        return min(self.positions)

    @property
    def worst_position(self) -> int:
        return max(self.positions)

    def __len__(self) -> int:
        return len(self.points)


class VolatilityResult(BaseModel):
    model_config = _FROZEN

    keyword: str
    score: float = Field(..., ge=0)
    is_volatile: bool


class RetracementLevels(BaseModel):
    """
    Fibonacci retracement levels between a series' best and worst rank.

    Ratio 0 sits on the worst rank (``high``) and ratio 1 on the best (``low``).
    """

    model_config = _FROZEN

    low: float
    high: float
    values: Tuple[Tuple[float, float], ...]

    @model_validator(mode="after")
    def _check_bounds(self) -> "RetracementLevels":
        if self.low > self.high:
            raise ValueError(f"low ({self.low}) must not exceed high ({self.high})")
        return self

    @classmethod
    def from_range(
        cls, low: float, high: float, ratios: Tuple[float, ...] = FIBONACCI_LEVELS
    ) -> "RetracementLevels":
        span = high - low
        return cls(
            low=low,
            high=high,
            values=tuple((ratio, high - span * ratio) for ratio in ratios),
        )

    @property
    def range(self) -> float:
        return self.high - self.low

    @property
    def ratios(self) -> List[float]:
        return [ratio for ratio, _ in self.values]

    def value(self, ratio: float) -> float:
        for level_ratio, level_value in self.values:
            if level_ratio == ratio:
                return level_value
        raise KeyError(ratio)

    def items(self) -> Iterator[Tuple[float, float]]:
        return iter(self.values)

    def sorted_by_value(self) -> List[Tuple[float, float]]:
        """Levels ordered by value ascending (best rank first); ties keep ratio order."""
        return sorted(self.values, key=lambda item: item[1])

    def to_dict(self) -> Dict[str, float]:
        return {f"{ratio:g}": round(level_value, 4) for ratio, level_value in self.values}


class BouncePattern(BaseModel):
    """A local extremum landing on a retracement level"""

    model_config = _FROZEN

    date: date
    position: int
    level: float
    value: float
    type: BounceType


class RetracementAnalysis(BaseModel):
    model_config = _FROZEN

    levels: RetracementLevels
    patterns: Tuple[BouncePattern, ...] = ()
    reliability: float = Field(0.0, ge=0, le=100)


class LevelValue(BaseModel):
    model_config = _FROZEN

    level: float
    value: float


class Prediction(BaseModel):
    model_config = _FROZEN

    current_level: LevelValue
    next_level: LevelValue
    trend: TrendDirection
    confidence: float = Field(..., ge=0, le=1)


class KeywordReport(BaseModel):
    """Chart-ready payload for one keyword"""

    model_config = _FROZEN

    keyword: str
    search_volume: int
    series: List[dict]
    levels: Dict[str, float]
    patterns: List[BouncePattern] = Field(default_factory=list)
    prediction: Optional[Prediction] = None
    reliability: float = Field(0.0, ge=0, le=100)
    volatility: Optional[VolatilityResult] = None


class VolatileKeyword(BaseModel):
    model_config = _FROZEN

    keyword: str
    volatility_score: float
    search_volume: int
    current_position: int
    best_position: int
    worst_position: int


class AnalysisReport(BaseModel):
    """Result of one full analysis pass over a rank export"""

    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {
                "source": "positions.csv",
                "input_format": "wide",
                "total_keywords": 2,
                "analyzed_keywords": 1,
                "status_message": "Found 1 volatile keywords out of 2 total",
            }
        },
    )

    source: str
    input_format: str
    generated_at: str
    total_keywords: int
    analyzed_keywords: int
    volatile_keywords: List[VolatileKeyword] = Field(default_factory=list)
    keywords: Dict[str, KeywordReport] = Field(default_factory=dict)
    warnings: List[str] = Field(
        default_factory=list, description="Rows/cells dropped during normalization"
    )
    status_message: str = ""
    schema_version: float = 1.0

    @property
    def summary(self) -> dict:
        """Get summary of the report"""
        return {
            "total_keywords": self.total_keywords,
            "analyzed_keywords": self.analyzed_keywords,
            "volatile_keywords": len(self.volatile_keywords),
            "volatile_rate": (
                f"{(len(self.volatile_keywords) / self.total_keywords * 100):.1f}%"
                if self.total_keywords > 0
                else "N/A"
            ),
            "dropped_rows": len(self.warnings),
        }
