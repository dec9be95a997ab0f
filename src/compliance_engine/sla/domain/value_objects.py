"""
SLA Value Objects
==================

Immutable value objects for the SLA domain.

Value objects are defined by their attributes rather than an identity.
They are immutable and can be freely shared between sweeps.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from compliance_engine.config import SlaLevel, SlaStatus
from compliance_engine.core import SlaCalculationException

Clock = Callable[[], datetime]

DEFAULT_TOTAL_DAYS = 14
DEFAULT_WARNING_THRESHOLD_PERCENT = 80
DEFAULT_CRITICAL_THRESHOLD_HOURS = 24
MAX_PERCENT_USED = 200.0


def utc_now() -> datetime:
    """Default clock."""
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class SlaConfig(BaseModel):
    """
    Per-work-type SLA thresholds.

    Accepts both snake_case keys and the camelCase keys stored on workflow
    templates (``defaultDays``, ``warningThresholdPercent``,
    ``criticalThresholdHours``). A missing or zero value means "use the
    default".
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    total_days: float = Field(
        default=DEFAULT_TOTAL_DAYS,
        gt=0,
        validation_alias=AliasChoices("total_days", "defaultDays", "totalDays"),
        description="Total allotted duration in days"
    )
    warning_threshold_percent: float = Field(
        default=DEFAULT_WARNING_THRESHOLD_PERCENT,
        gt=0,
        validation_alias=AliasChoices("warning_threshold_percent", "warningThresholdPercent"),
        description="Percent of duration elapsed before warning"
    )
    critical_threshold_hours: float = Field(
        default=DEFAULT_CRITICAL_THRESHOLD_HOURS,
        gt=0,
        validation_alias=AliasChoices("critical_threshold_hours", "criticalThresholdHours"),
        description="Hours past due before a breach becomes critical"
    )

    @field_validator("total_days", mode="before")
    @classmethod
    def default_total_days(cls, v: Any) -> Any:
        return v or DEFAULT_TOTAL_DAYS

    @field_validator("warning_threshold_percent", mode="before")
    @classmethod
    def default_warning_threshold(cls, v: Any) -> Any:
        return v or DEFAULT_WARNING_THRESHOLD_PERCENT

    @field_validator("critical_threshold_hours", mode="before")
    @classmethod
    def default_critical_threshold(cls, v: Any) -> Any:
        return v or DEFAULT_CRITICAL_THRESHOLD_HOURS

    @property
    def total_duration(self) -> timedelta:
        return timedelta(days=self.total_days)


class SlaPolicySet(BaseModel):
    """
    SLA policies loaded from YAML, keyed by work type.

    Example file:

        default:
          total_days: 14
        work_types:
          investigation:
            total_days: 30
            warning_threshold_percent: 75
    """

    model_config = ConfigDict(frozen=True)

    default: SlaConfig = Field(default_factory=SlaConfig)
    work_types: Dict[str, SlaConfig] = Field(default_factory=dict)

    def get_config(self, work_type: Optional[str]) -> SlaConfig:
        """Config for the work type, falling back to ``default``."""
        if work_type and work_type in self.work_types:
            return self.work_types[work_type]
        return self.default


@dataclass(frozen=True)
class SlaCalculation:
    """Result of one SLA evaluation. Recomputed every sweep, never stored."""

    status: SlaLevel
    due_date: datetime
    remaining_hours: float
    percent_used: float
    breached_at: Optional[datetime] = None

    @property
    def is_overdue(self) -> bool:
        return self.remaining_hours <= 0

    @property
    def hours_overdue(self) -> float:
        return abs(self.remaining_hours) if self.is_overdue else 0.0

    def to_dict(self) -> dict:
        return {
            "status": self.status.value,
            "due_date": self.due_date.isoformat(),
            "remaining_hours": round(self.remaining_hours, 2),
            "percent_used": round(self.percent_used, 2),
            "breached_at": self.breached_at.isoformat() if self.breached_at else None,
        }


class SlaCalculator:
    """
    Pure SLA time-decay calculation.

    The only source of non-determinism is the clock, which is injected at
    construction and can be overridden per call with ``now``.
    """

    def __init__(self, clock: Clock = utc_now):
        self._clock = clock

    def now(self) -> datetime:
        return _as_utc(self._clock())

    def calculate(
        self,
        due_date: datetime,
        start_date: Optional[datetime] = None,
        config: Optional[SlaConfig] = None,
        now: Optional[datetime] = None,
    ) -> SlaCalculation:
        """
        Calculate the SLA level for a deadline.

        Args:
            due_date: The SLA due date
            start_date: When the clock started; reconstructed from the
                total duration when not tracked
            config: Thresholds, defaults when omitted
            now: Evaluation instant, defaults to the injected clock

        Returns:
            SlaCalculation with level, remaining hours and percent used

        Raises:
            SlaCalculationException: If the dates cannot be evaluated
        """
        if not isinstance(due_date, datetime):
            raise SlaCalculationException("due_date must be a datetime", due_date=due_date)
        if start_date is not None and not isinstance(start_date, datetime):
            raise SlaCalculationException("start_date must be a datetime", due_date=due_date)

        config = config or SlaConfig()
        due_date = _as_utc(due_date)
        current = _as_utc(now) if now is not None else self.now()

        total = config.total_duration
        effective_start = _as_utc(start_date) if start_date is not None else due_date - total

        elapsed = current - effective_start
        percent_used = min(MAX_PERCENT_USED, max(0.0, elapsed / total * 100))
        remaining_hours = (due_date - current).total_seconds() / 3600

        if remaining_hours <= -config.critical_threshold_hours:
            status = SlaLevel.CRITICAL
        elif remaining_hours <= 0:
            status = SlaLevel.BREACHED
        elif percent_used >= config.warning_threshold_percent:
            status = SlaLevel.WARNING
        else:
            status = SlaLevel.ON_TRACK

        return SlaCalculation(
            status=status,
            due_date=due_date,
            remaining_hours=remaining_hours,
            percent_used=percent_used,
            breached_at=current if remaining_hours <= 0 else None,
        )

    @staticmethod
    def calculate_due_date(start: datetime, config: Optional[SlaConfig] = None) -> datetime:
        """Due date for a work item whose clock starts at ``start``."""
        config = config or SlaConfig()
        return _as_utc(start) + config.total_duration

    @staticmethod
    def to_persisted_status(level: SlaLevel) -> SlaStatus:
        """Collapse a calculated level onto the three persisted statuses."""
        if level == SlaLevel.WARNING:
            return SlaStatus.WARNING
        if level in (SlaLevel.BREACHED, SlaLevel.CRITICAL):
            return SlaStatus.OVERDUE
        return SlaStatus.ON_TRACK
