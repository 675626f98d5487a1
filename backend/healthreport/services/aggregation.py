"""
Record aggregation: normalizes the logged collections and computes the
summary statistics shown in the report.

Conventions every statistic follows:
- An optional field that is absent on a record is left out of both the
  sum and the count. Averages divide by the number of present values,
  never by the number of records.
- When nothing contributes to a statistic it is None ("no data"), never
  0 or NaN. Renderers show a placeholder for None.
- Inputs are treated as read-only. Collections arrive newest-first and
  keep that order.
"""

import logging
import re
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Iterable, Optional, Sequence, TypeVar

from pydantic import BaseModel, ValidationError

from healthreport.schemas.records import DietRecord, MetricRecord, WorkoutRecord

logger = logging.getLogger(__name__)

RECENT_WORKOUT_WINDOW = timedelta(days=7)

_BLOOD_PRESSURE_PATTERN = re.compile(r"^\s*(\d{2,3})\s*/\s*(\d{2,3})\s*$")

RecordT = TypeVar("RecordT", bound=BaseModel)


@dataclass(frozen=True)
class MetricSummary:
    count: int = 0
    avg_heart_rate: Optional[float] = None
    avg_sleep_hours: Optional[float] = None
    avg_weight: Optional[float] = None
    avg_bmi: Optional[float] = None
    avg_systolic: Optional[float] = None
    avg_diastolic: Optional[float] = None
    latest: Optional[MetricRecord] = None

    @property
    def has_data(self) -> bool:
        return self.count > 0


@dataclass(frozen=True)
class WorkoutSummary:
    count: int = 0
    total_calories_burned: float = 0.0
    avg_duration: Optional[float] = None
    favorite_type: Optional[str] = None
    distinct_types: int = 0
    recent_count: int = 0  # sessions inside RECENT_WORKOUT_WINDOW

    @property
    def has_data(self) -> bool:
        return self.count > 0


@dataclass(frozen=True)
class DietSummary:
    count: int = 0
    avg_calories: Optional[float] = None
    avg_protein: Optional[float] = None
    avg_carbs: Optional[float] = None
    avg_fat: Optional[float] = None
    total_protein: float = 0.0
    total_carbs: float = 0.0
    total_fat: float = 0.0

    @property
    def has_data(self) -> bool:
        return self.count > 0


@dataclass(frozen=True)
class Summary:
    """Aggregated statistics for one report build."""
    metrics: MetricSummary = field(default_factory=MetricSummary)
    workouts: WorkoutSummary = field(default_factory=WorkoutSummary)
    diet: DietSummary = field(default_factory=DietSummary)
    generated_at: datetime = field(
        default_factory=lambda: datetime.now(timezone.utc)
    )

    @property
    def has_any_data(self) -> bool:
        return self.metrics.has_data or self.workouts.has_data or self.diet.has_data


# ------------------------------------------------------------------
# NORMALIZATION
# ------------------------------------------------------------------

def normalize_records(
    raw: Optional[Iterable[Any]], model: type[RecordT],
) -> tuple[RecordT, ...]:
    """Validate a collection into `model` instances, skipping bad records.

    Accepts model instances, plain dicts, or attribute-bearing objects.
    A record that fails validation is logged and dropped; it never aborts
    the report. Returns a new tuple in the original order.
    """
    records = []
    for index, item in enumerate(raw or ()):
        if isinstance(item, model):
            records.append(item)
            continue
        try:
            records.append(model.model_validate(item))
        except ValidationError as exc:
            logger.warning(
                "Skipping malformed %s at index %d: %s",
                model.__name__, index, exc.errors()[0].get("msg", exc),
            )
    return tuple(records)


# ------------------------------------------------------------------
# AGGREGATION
# ------------------------------------------------------------------

def aggregate(
    metrics: Sequence[Any],
    workouts: Sequence[Any],
    diets: Sequence[Any],
    now: Optional[datetime] = None,
) -> Summary:
    """Compute the report Summary from the three logged collections.

    `now` anchors the trailing workout window; it defaults to the current
    UTC time. Collections may hold raw dicts or validated records.
    """
    now = _as_utc(now or datetime.now(timezone.utc))
    metric_records = normalize_records(metrics, MetricRecord)
    workout_records = normalize_records(workouts, WorkoutRecord)
    diet_records = normalize_records(diets, DietRecord)

    return Summary(
        metrics=summarize_metrics(metric_records),
        workouts=summarize_workouts(workout_records, now),
        diet=summarize_diet(diet_records),
        generated_at=now,
    )


def summarize_metrics(records: Sequence[MetricRecord]) -> MetricSummary:
    if not records:
        return MetricSummary()

    pressures = [parse_blood_pressure(r.blood_pressure) for r in records]
    pressures = [p for p in pressures if p is not None]

    return MetricSummary(
        count=len(records),
        avg_heart_rate=average(r.heart_rate for r in records),
        avg_sleep_hours=average(r.sleep_hours for r in records),
        avg_weight=average(r.weight for r in records),
        avg_bmi=average(r.bmi for r in records),
        avg_systolic=average(sys for sys, _ in pressures),
        avg_diastolic=average(dia for _, dia in pressures),
        latest=records[0],
    )


def summarize_workouts(
    records: Sequence[WorkoutRecord], now: datetime,
) -> WorkoutSummary:
    if not records:
        return WorkoutSummary()

    window_start = now - RECENT_WORKOUT_WINDOW
    type_counts = Counter(r.workout_type for r in records)

    return WorkoutSummary(
        count=len(records),
        total_calories_burned=sum(r.calories_burned or 0.0 for r in records),
        avg_duration=average(r.duration_minutes for r in records),
        favorite_type=favorite_workout_type(records),
        distinct_types=len(type_counts),
        recent_count=sum(1 for r in records if _as_utc(r.timestamp) >= window_start),
    )


def summarize_diet(records: Sequence[DietRecord]) -> DietSummary:
    if not records:
        return DietSummary()

    return DietSummary(
        count=len(records),
        avg_calories=average(r.calories for r in records),
        avg_protein=average(r.protein_grams for r in records),
        avg_carbs=average(r.carb_grams for r in records),
        avg_fat=average(r.fat_grams for r in records),
        total_protein=sum(r.protein_grams or 0.0 for r in records),
        total_carbs=sum(r.carb_grams or 0.0 for r in records),
        total_fat=sum(r.fat_grams or 0.0 for r in records),
    )


# ------------------------------------------------------------------
# HELPERS
# ------------------------------------------------------------------

def average(values: Iterable[Optional[float]]) -> Optional[float]:
    """Mean of the values that are present; None when none are."""
    present = [v for v in values if v is not None]
    if not present:
        return None
    return sum(present) / len(present)


def favorite_workout_type(records: Sequence[WorkoutRecord]) -> Optional[str]:
    """Most frequent workout type.

    Ties go to the type that appears first in the input, which is the
    most recently logged one since collections are newest-first.
    """
    if not records:
        return None
    # Counter keeps first-insertion order and most_common() sorts stably
    return Counter(r.workout_type for r in records).most_common(1)[0][0]


def parse_blood_pressure(value: Optional[str]) -> Optional[tuple[int, int]]:
    """Parse "SYS/DIA" into (systolic, diastolic). Malformed -> None."""
    if not value:
        return None
    match = _BLOOD_PRESSURE_PATTERN.match(value)
    if not match:
        return None
    return int(match.group(1)), int(match.group(2))


def _as_utc(moment: datetime) -> datetime:
    # Naive timestamps from the dashboard are stored as UTC
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)
