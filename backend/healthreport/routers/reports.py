"""
Report API endpoints.

1. POST /reports/pdf     - Build the health progress report and download it
2. POST /reports/summary - Summary statistics and recommendations as JSON

Both endpoints are stateless. The caller sends the user's profile and
logged records in the request body (already fetched and authorized by
the dashboard), and nothing is stored. The PDF is generated on demand
for each request.
"""

from fastapi import APIRouter, HTTPException
from fastapi.responses import Response

from healthreport.schemas.records import ReportRequest
from healthreport.schemas.reports import (
    DietSummaryResponse,
    MetricSummaryResponse,
    SummaryResponse,
    WorkoutSummaryResponse,
)
from healthreport.services.aggregation import aggregate
from healthreport.services.health_report import (
    HealthReportBuilder,
    ReportGenerationError,
)
from healthreport.services.suggestions import generate_suggestions

router = APIRouter(prefix="/api/v1/reports", tags=["reports"])


@router.post("/pdf")
async def download_report_pdf(request: ReportRequest):
    """Generate the health progress report PDF.

    Malformed individual records are skipped, and a chart that fails to
    render is left out. If no document can be produced at all, the
    response is a 500 with a single error message and no file.
    """
    builder = HealthReportBuilder()
    try:
        report = await builder.build(
            profile=request.profile,
            metrics=request.metrics,
            workouts=request.workouts,
            diets=request.diets,
            suggestions=request.suggestions,
        )
    except ReportGenerationError:
        raise HTTPException(status_code=500, detail="Failed to export PDF")

    return Response(
        content=report.content,
        media_type=report.media_type,
        headers={
            "Content-Disposition": f'attachment; filename="{report.filename}"',
            "X-Report-Pages": str(report.page_count),
        },
    )


@router.post("/summary", response_model=SummaryResponse)
async def get_report_summary(request: ReportRequest):
    """Compute the summary statistics and recommendations without a PDF."""
    summary = aggregate(request.metrics, request.workouts, request.diets)

    return SummaryResponse(
        metrics=MetricSummaryResponse.model_validate(summary.metrics),
        workouts=WorkoutSummaryResponse.model_validate(summary.workouts),
        diet=DietSummaryResponse.model_validate(summary.diet),
        generated_at=summary.generated_at,
        suggestions=generate_suggestions(summary),
    )
