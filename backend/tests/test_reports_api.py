"""
Integration tests for the report endpoints.

The PDF endpoint is exercised end to end (validation, aggregation, chart
rendering and layout). The summary endpoint returns the same statistics
as JSON, so its values are checked against the payload by hand.
"""

import pytest
from httpx import AsyncClient

from healthreport.services.health_report import HealthReportBuilder, ReportGenerationError
from healthreport.services.suggestions import (
    LOW_PROTEIN_MESSAGE,
    LOW_SLEEP_MESSAGE,
    OVERWEIGHT_MESSAGE,
)


# --- PDF export ---

@pytest.mark.asyncio
async def test_export_pdf(client: AsyncClient, report_payload):
    """POST /api/v1/reports/pdf returns a downloadable PDF."""
    response = await client.post("/api/v1/reports/pdf", json=report_payload)

    assert response.status_code == 200
    assert response.headers["content-type"] == "application/pdf"
    assert response.headers["content-disposition"] == (
        'attachment; filename="health-progress-report.pdf"'
    )
    assert response.content[:5] == b"%PDF-"
    assert int(response.headers["x-report-pages"]) >= 3


@pytest.mark.asyncio
async def test_export_pdf_with_no_records(client: AsyncClient, report_payload):
    """A user who has logged nothing still gets a one-page report."""
    payload = {"profile": report_payload["profile"]}
    response = await client.post("/api/v1/reports/pdf", json=payload)

    assert response.status_code == 200
    assert response.headers["x-report-pages"] == "1"


@pytest.mark.asyncio
async def test_export_pdf_skips_malformed_records(client: AsyncClient, report_payload):
    report_payload["metrics"].append({"weight": "heavy"})
    report_payload["workouts"].append({"dateLogged": "2026-03-11T18:00:00Z"})

    response = await client.post("/api/v1/reports/pdf", json=report_payload)

    assert response.status_code == 200
    assert response.content[:5] == b"%PDF-"


@pytest.mark.asyncio
async def test_export_pdf_requires_profile(client: AsyncClient, report_payload):
    payload = {"metrics": report_payload["metrics"]}
    response = await client.post("/api/v1/reports/pdf", json=payload)

    assert response.status_code == 422


@pytest.mark.asyncio
async def test_export_pdf_invalid_profile(client: AsyncClient):
    """A profile without a username cannot be rendered: 500, no file."""
    response = await client.post(
        "/api/v1/reports/pdf", json={"profile": {"email": "nobody@example.com"}},
    )

    assert response.status_code == 500
    assert response.json()["detail"] == "Failed to export PDF"


@pytest.mark.asyncio
async def test_export_pdf_generation_failure(monkeypatch, client: AsyncClient, report_payload):
    async def failing_build(self, *args, **kwargs):
        raise ReportGenerationError("layout failed")

    monkeypatch.setattr(HealthReportBuilder, "build", failing_build)

    response = await client.post("/api/v1/reports/pdf", json=report_payload)

    assert response.status_code == 500
    assert response.headers["content-type"] == "application/json"
    assert response.json() == {"detail": "Failed to export PDF"}


# --- Summary ---

@pytest.mark.asyncio
async def test_summary(client: AsyncClient, report_payload):
    """POST /api/v1/reports/summary returns statistics and recommendations."""
    response = await client.post("/api/v1/reports/summary", json=report_payload)

    assert response.status_code == 200
    data = response.json()

    metrics = data["metrics"]
    assert metrics["count"] == 2
    assert metrics["has_data"] is True
    assert metrics["avg_weight"] == pytest.approx(80.2)
    assert metrics["avg_bmi"] == pytest.approx(27.05)
    assert metrics["avg_sleep_hours"] == pytest.approx(6.25)
    # blood pressure is only on one record
    assert metrics["avg_systolic"] == pytest.approx(120.0)
    assert metrics["latest"]["weight"] == 80.0

    workouts = data["workouts"]
    assert workouts["count"] == 1
    assert workouts["total_calories_burned"] == pytest.approx(320.0)
    assert workouts["avg_duration"] == pytest.approx(30.0)
    assert workouts["favorite_type"] == "Cardio"

    diet = data["diet"]
    assert diet["count"] == 1
    assert diet["avg_calories"] == pytest.approx(900.0)
    assert diet["avg_protein"] == pytest.approx(30.0)

    suggestions = data["suggestions"]
    assert suggestions[0] == OVERWEIGHT_MESSAGE
    assert LOW_SLEEP_MESSAGE in suggestions
    assert LOW_PROTEIN_MESSAGE in suggestions


@pytest.mark.asyncio
async def test_summary_empty(client: AsyncClient, report_payload):
    payload = {"profile": report_payload["profile"]}
    response = await client.post("/api/v1/reports/summary", json=payload)

    assert response.status_code == 200
    data = response.json()
    assert data["metrics"]["has_data"] is False
    assert data["metrics"]["avg_weight"] is None
    assert data["workouts"]["avg_duration"] is None
    assert data["diet"]["avg_calories"] is None
    assert len(data["suggestions"]) == 2
