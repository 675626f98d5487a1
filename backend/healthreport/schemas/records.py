"""
Pydantic schemas for the records a health report is built from.

Field names are snake_case; the camelCase names used by the dashboard's
JSON API (heartRate, caloriesBurned, ...) are accepted as aliases, along
with the older dashboard field names (dateRecorded, duration, protein...).
"""

from datetime import date, datetime
from enum import Enum
from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, Field, model_validator
from pydantic.alias_generators import to_camel


RECORD_CONFIG = {
    "alias_generator": to_camel,
    "populate_by_name": True,
    "from_attributes": True,
}


class MealType(str, Enum):
    BREAKFAST = "Breakfast"
    LUNCH = "Lunch"
    DINNER = "Dinner"
    SNACK = "Snack"


class SuggestionCategory(str, Enum):
    DIET = "Diet"
    WORKOUT = "Workout"
    REST = "Rest"


class MetricRecord(BaseModel):
    """One health-metrics reading. Every measurement is optional."""
    timestamp: datetime = Field(
        validation_alias=AliasChoices("timestamp", "dateRecorded"),
    )
    heart_rate: Optional[float] = Field(default=None, ge=0)
    blood_pressure: Optional[str] = None  # "SYS/DIA", e.g. "120/80"
    sleep_hours: Optional[float] = Field(default=None, ge=0)
    weight: Optional[float] = Field(default=None, ge=0)
    bmi: Optional[float] = Field(default=None, ge=0)

    model_config = RECORD_CONFIG


class WorkoutRecord(BaseModel):
    """One logged workout session."""
    timestamp: datetime = Field(
        validation_alias=AliasChoices("timestamp", "dateLogged"),
    )
    workout_type: str = Field(
        validation_alias=AliasChoices("workout_type", "workoutType", "type"),
    )
    duration_minutes: float = Field(
        ge=0,
        validation_alias=AliasChoices("duration_minutes", "durationMinutes", "duration"),
    )
    calories_burned: Optional[float] = Field(default=None, ge=0)

    model_config = RECORD_CONFIG


class DietRecord(BaseModel):
    """One logged meal with optional macronutrients."""
    timestamp: datetime = Field(
        validation_alias=AliasChoices("timestamp", "dateLogged"),
    )
    meal_type: MealType
    calories: Optional[float] = Field(default=None, ge=0)
    protein_grams: Optional[float] = Field(
        default=None, ge=0,
        validation_alias=AliasChoices("protein_grams", "proteinGrams", "protein"),
    )
    carb_grams: Optional[float] = Field(
        default=None, ge=0,
        validation_alias=AliasChoices("carb_grams", "carbGrams", "carbs"),
    )
    fat_grams: Optional[float] = Field(
        default=None, ge=0,
        validation_alias=AliasChoices("fat_grams", "fatGrams", "fats"),
    )

    model_config = RECORD_CONFIG


class SuggestionRecord(BaseModel):
    """A free-text suggestion the user saved on the dashboard."""
    id: str
    category: SuggestionCategory = Field(
        validation_alias=AliasChoices("category", "suggestionType"),
    )
    text: str = Field(
        validation_alias=AliasChoices("text", "personalisedSuggestion"),
    )
    issued_at: datetime = Field(
        validation_alias=AliasChoices("issued_at", "issuedAt", "dateIssued"),
    )

    model_config = RECORD_CONFIG

    @model_validator(mode="before")
    @classmethod
    def stringify_id(cls, data: Any) -> Any:
        # Dashboard ids may be integers or UUIDs
        if isinstance(data, dict) and data.get("id") is not None:
            data = {**data, "id": str(data["id"])}
        return data


class UserProfile(BaseModel):
    """Profile details printed in the report's user information block."""
    full_name: str
    username: str
    email: str
    age: Optional[int] = None
    gender: Optional[str] = None
    contact: Optional[str] = None
    join_date: Optional[date] = None

    model_config = RECORD_CONFIG

    @model_validator(mode="before")
    @classmethod
    def compose_full_name(cls, data: Any) -> Any:
        """Build full_name from firstName/lastName when it isn't given."""
        if not isinstance(data, dict):
            return data
        if data.get("full_name") or data.get("fullName"):
            return data
        parts = [data.get("firstName") or data.get("first_name"),
                 data.get("lastName") or data.get("last_name")]
        name = " ".join(p for p in parts if p)
        return {**data, "full_name": name or data.get("username", "")}


class ReportRequest(BaseModel):
    """Body of the report endpoints.

    Collections stay as raw JSON objects here. Each record is validated
    individually by the aggregator so one malformed entry is skipped
    rather than failing the whole request.
    """
    profile: UserProfile
    metrics: list[dict[str, Any]] = []
    workouts: list[dict[str, Any]] = []
    diets: list[dict[str, Any]] = []
    suggestions: list[dict[str, Any]] = []
