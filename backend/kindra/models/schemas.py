"""
Pydantic models for Kindra analytics data structures

Input records mirror the rows of the Kindra application (moments,
menstrual cycles, connections). Both the snake_case column names and the
camelCase names used by the web client are accepted on input.
"""
from enum import Enum
from pydantic import AliasChoices, BaseModel, Field, field_validator, model_validator
from typing import List, Literal, Optional
from datetime import date, datetime, timezone


InsightType = Literal["positive", "warning", "neutral", "critical"]
InsightCategory = Literal["pattern", "trend", "correlation", "prediction", "behavioral"]


def _coerce_datetime(value):
    """Accept plain dates and YYYY-MM-DD strings wherever a datetime is expected."""
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime.combine(value, datetime.min.time())
    if isinstance(value, str) and len(value) == 10:
        return datetime.combine(date.fromisoformat(value), datetime.min.time())
    return value


def _to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Day arithmetic is done on naive UTC datetimes."""
    if value is not None and value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


class CyclePhase(str, Enum):
    """The four named segments of a menstrual cycle"""
    MENSTRUAL = "menstrual"
    FOLLICULAR = "follicular"
    OVULATION = "ovulation"
    LUTEAL = "luteal"

    @property
    def label(self) -> str:
        return self.value.capitalize()


# ============================================================================
# Input records (read-only)
# ============================================================================

class Moment(BaseModel):
    """A single emoji-annotated log entry about a connection"""
    id: Optional[int] = None
    connection_id: Optional[int] = Field(
        default=None,
        validation_alias=AliasChoices("connection_id", "connectionId"),
    )
    timestamp: Optional[datetime] = Field(
        default=None,
        validation_alias=AliasChoices("timestamp", "createdAt", "created_at"),
        description="When the moment happened; moments without one are skipped in date analysis",
    )
    emoji: str
    tags: List[str] = Field(default_factory=list)
    is_intimate: bool = Field(
        default=False,
        validation_alias=AliasChoices("is_intimate", "isIntimate"),
    )

    @field_validator("timestamp", mode="before")
    @classmethod
    def _parse_timestamp(cls, value):
        return _coerce_datetime(value)

    @field_validator("timestamp")
    @classmethod
    def _normalize_timestamp(cls, value):
        return _to_naive_utc(value)

    @field_validator("tags", mode="before")
    @classmethod
    def _tags_default(cls, value):
        return value or []

    @field_validator("is_intimate", mode="before")
    @classmethod
    def _intimate_default(cls, value):
        return False if value is None else value


class CycleRecord(BaseModel):
    """One tracked menstrual cycle. connection_id=None is the user's own cycle."""
    id: Optional[int] = None
    connection_id: Optional[int] = Field(
        default=None,
        validation_alias=AliasChoices("connection_id", "connectionId"),
    )
    period_start_date: datetime = Field(
        validation_alias=AliasChoices(
            "period_start_date", "periodStartDate", "startDate", "start_date"
        ),
    )
    cycle_end_date: Optional[datetime] = Field(
        default=None,
        validation_alias=AliasChoices(
            "cycle_end_date", "cycleEndDate", "endDate", "end_date"
        ),
        description="Full cycle end; open cycles are assumed to span 28 days",
    )

    @field_validator("period_start_date", "cycle_end_date", mode="before")
    @classmethod
    def _parse_dates(cls, value):
        return _coerce_datetime(value)

    @field_validator("period_start_date", "cycle_end_date")
    @classmethod
    def _normalize_dates(cls, value):
        return _to_naive_utc(value)

    @model_validator(mode="after")
    def _check_order(self):
        if self.cycle_end_date is not None and self.cycle_end_date.date() < self.period_start_date.date():
            raise ValueError("cycle_end_date must not be before period_start_date")
        return self


class Connection(BaseModel):
    """A person the user tracks moments about. Only used for labels."""
    id: Optional[int] = None
    name: str
    relationship_stage: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("relationship_stage", "relationshipStage"),
    )
    zodiac_sign: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("zodiac_sign", "zodiacSign"),
    )
    love_language: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("love_language", "loveLanguage"),
    )

    @property
    def is_self(self) -> bool:
        """Self connections track personal development rather than a relationship"""
        return self.name.strip().lower() in ("self", "myself") or self.relationship_stage == "Self"


# ============================================================================
# Output
# ============================================================================

class Insight(BaseModel):
    """A structured, human-readable analytic finding"""
    title: str
    description: str
    type: InsightType
    confidence: int = Field(ge=0, le=100)
    category: InsightCategory
    data_points: List[str] = Field(default_factory=list)
    action_items: Optional[List[str]] = None
    related_connections: Optional[List[str]] = None


# ============================================================================
# Cycle correlation intermediates
# ============================================================================

class MomentFacets(BaseModel):
    """Boolean classifications of one moment. Facets overlap."""
    positive: bool = False
    conflict: bool = False
    intimate: bool = False
    communication: bool = False
    emotional: bool = False


class PhaseStats(BaseModel):
    """Facet counters for all moments that fell into one phase"""
    count: int = 0
    positive: int = 0
    intimate: int = 0
    conflict: int = 0
    communication: int = 0
    emotional: int = 0
    dates: List[date] = Field(default_factory=list)


class PhaseAnalysis(BaseModel):
    """Ratios, rule fragments and significance for one phase with data"""
    phase: CyclePhase
    stats: PhaseStats
    positive_ratio: float
    conflict_ratio: float
    intimate_ratio: float
    communication_ratio: float
    emotional_ratio: float
    characteristics: List[str] = Field(default_factory=list)
    insights: List[str] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)
    risk_factors: List[str] = Field(default_factory=list)
    significance: float = 0.0


class TimingPrediction(BaseModel):
    """Projected next occurrence of a phase"""
    next_cycle_start: datetime
    next_optimal_date: datetime
    days_until_optimal: int = Field(description="May be negative if the date has passed")


class CycleVariability(BaseModel):
    """Spread of cycle lengths derived from consecutive period starts"""
    mean_length: float
    std_dev: float
    regularity: str  # 'very regular', 'slight variation', 'variable'
    summary: str


class CycleCorrelationReport(BaseModel):
    """Everything the cycle correlation analysis derived for one input set"""
    has_data: bool
    insight: Optional[Insight] = None
    phases: List[PhaseAnalysis] = Field(default_factory=list)
    consistency: Optional[str] = None
    variability: Optional[CycleVariability] = None
    prediction: Optional[TimingPrediction] = None
