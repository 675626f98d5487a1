"""
Pydantic schemas for the report summary endpoint.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from healthreport.schemas.records import MetricRecord


class MetricSummaryResponse(BaseModel):
    """Averages over present values; None means no data for that field."""
    count: int
    has_data: bool
    avg_heart_rate: Optional[float] = None
    avg_sleep_hours: Optional[float] = None
    avg_weight: Optional[float] = None
    avg_bmi: Optional[float] = None
    avg_systolic: Optional[float] = None
    avg_diastolic: Optional[float] = None
    latest: Optional[MetricRecord] = None

    model_config = {"from_attributes": True}


class WorkoutSummaryResponse(BaseModel):
    count: int
    has_data: bool
    total_calories_burned: float
    avg_duration: Optional[float] = None
    favorite_type: Optional[str] = None
    distinct_types: int
    recent_count: int

    model_config = {"from_attributes": True}


class DietSummaryResponse(BaseModel):
    count: int
    has_data: bool
    avg_calories: Optional[float] = None
    avg_protein: Optional[float] = None
    avg_carbs: Optional[float] = None
    avg_fat: Optional[float] = None

    model_config = {"from_attributes": True}


class SummaryResponse(BaseModel):
    """Summary statistics plus the generated recommendations.

    This is what the dashboard shows next to the "Export as PDF" button,
    computed the same way as the statistics printed in the PDF.
    """
    metrics: MetricSummaryResponse
    workouts: WorkoutSummaryResponse
    diet: DietSummaryResponse
    generated_at: datetime
    suggestions: list[str]
