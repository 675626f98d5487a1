"""
Test fixtures shared across the unit and integration tests.

Architecture:
- The report pipeline has no database. Fixtures build the records a
  dashboard would send: validated model instances for service tests and
  camelCase JSON payloads for endpoint tests.
- A fixed NOW keeps the trailing-7-day workout window deterministic.
- The HTTP test client uses the real FastAPI app over ASGITransport.
"""

from datetime import date, datetime, timedelta, timezone

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from healthreport.main import app
from healthreport.schemas.records import (
    DietRecord,
    MealType,
    MetricRecord,
    SuggestionCategory,
    SuggestionRecord,
    UserProfile,
    WorkoutRecord,
)

NOW = datetime(2026, 3, 15, 12, 0, tzinfo=timezone.utc)


def days_ago(days: float) -> datetime:
    return NOW - timedelta(days=days)


@pytest_asyncio.fixture
async def client():
    """Async HTTP test client against the real app."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


# --- Record fixtures (newest-first, like the dashboard API returns them) ---

@pytest.fixture
def profile():
    return UserProfile(
        full_name="Jane Doe",
        username="jdoe",
        email="jane@example.com",
        age=34,
        gender="Female",
        contact=None,
        join_date=date(2025, 9, 1),
    )


@pytest.fixture
def metrics():
    return [
        MetricRecord(timestamp=days_ago(1), heart_rate=72, blood_pressure="120/80",
                     sleep_hours=7.5, weight=68.0, bmi=23.1),
        MetricRecord(timestamp=days_ago(3), heart_rate=75, sleep_hours=6.5, weight=68.4),
        MetricRecord(timestamp=days_ago(6), blood_pressure="118/76", weight=69.1, bmi=23.4),
    ]


@pytest.fixture
def workouts():
    return [
        WorkoutRecord(timestamp=days_ago(1), workout_type="Cardio",
                      duration_minutes=30, calories_burned=300),
        WorkoutRecord(timestamp=days_ago(2), workout_type="Yoga", duration_minutes=45),
        WorkoutRecord(timestamp=days_ago(4), workout_type="Strength",
                      duration_minutes=50, calories_burned=400),
        WorkoutRecord(timestamp=days_ago(10), workout_type="Cardio",
                      duration_minutes=25, calories_burned=250),
    ]


@pytest.fixture
def diets():
    return [
        DietRecord(timestamp=days_ago(1), meal_type=MealType.DINNER, calories=800,
                   protein_grams=40, carb_grams=80, fat_grams=25),
        DietRecord(timestamp=days_ago(1), meal_type=MealType.LUNCH, calories=650,
                   protein_grams=35, carb_grams=70, fat_grams=20),
        DietRecord(timestamp=days_ago(2), meal_type=MealType.SNACK, calories=200),
    ]


@pytest.fixture
def stored_suggestions():
    return [
        SuggestionRecord(id="s1", category=SuggestionCategory.REST,
                         text="Take a rest day after two hard sessions in a row.",
                         issued_at=days_ago(2)),
    ]


@pytest.fixture
def report_payload():
    """JSON body for the report endpoints, in the dashboard's camelCase."""
    return {
        "profile": {
            "firstName": "Jane",
            "lastName": "Doe",
            "username": "jdoe",
            "email": "jane@example.com",
            "age": 34,
            "joinDate": "2025-09-01",
        },
        "metrics": [
            {"dateRecorded": "2026-03-14T08:00:00Z", "heartRate": 72,
             "bloodPressure": "120/80", "sleepHours": 6.0, "weight": 80.0, "bmi": 27.0},
            {"dateRecorded": "2026-03-12T08:00:00Z", "heartRate": 70,
             "sleepHours": 6.5, "weight": 80.4, "bmi": 27.1},
        ],
        "workouts": [
            {"dateLogged": "2026-03-13T18:00:00Z", "workoutType": "Cardio",
             "duration": 30, "caloriesBurned": 320},
        ],
        "diets": [
            {"dateLogged": "2026-03-14T19:00:00Z", "mealType": "Dinner",
             "calories": 900, "protein": 30, "carbs": 110, "fats": 35},
        ],
        "suggestions": [
            {"id": 7, "suggestionType": "Diet",
             "personalisedSuggestion": "Swap one sugary drink a day for water.",
             "dateIssued": "2026-03-10T09:00:00Z"},
        ],
    }
