"""
Tests for the report assembler: section order, skipped sections for empty
collections, and per-chart failure isolation.
"""

import pytest

from conftest import NOW
from healthreport.services import health_report
from healthreport.services.health_report import (
    REPORT_FILENAME,
    HealthReportBuilder,
    ReportGenerationError,
    build_report,
)
from healthreport.services.layout import BlockKind, LayoutEngine


class RecordingEngine(LayoutEngine):
    """LayoutEngine that keeps a handle on the last instance built."""
    last = None

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        RecordingEngine.last = self


@pytest.fixture
def recording_engine(monkeypatch):
    monkeypatch.setattr(health_report, "LayoutEngine", RecordingEngine)
    RecordingEngine.last = None
    return RecordingEngine


def _texts(engine, kind):
    return [b.content[0] for b in engine.blocks if b.kind == kind]


async def test_full_report_is_pdf(profile, metrics, workouts, diets, stored_suggestions):
    report = await build_report(profile, metrics, workouts, diets, stored_suggestions, now=NOW)

    assert report.content[:5] == b"%PDF-"
    assert report.filename == REPORT_FILENAME == "health-progress-report.pdf"
    assert report.media_type == "application/pdf"
    assert report.chart_failures == []
    # content pages, then a suggestions page, then a charts page
    assert report.page_count >= 3


async def test_section_order(recording_engine, profile, metrics, workouts, diets, stored_suggestions):
    await build_report(profile, metrics, workouts, diets, stored_suggestions, now=NOW)
    engine = recording_engine.last

    assert _texts(engine, BlockKind.HEADING) == [
        "User Information",
        "Logged Data",
        "Summary Statistics",
        "Health Suggestions",
        "Progress Charts",
    ]
    assert _texts(engine, BlockKind.TABLE_TITLE) == ["Health Metrics", "Workout Log", "Diet Log"]
    assert _texts(engine, BlockKind.TEXT)[0] == "Health Progress Report"


async def test_six_charts_two_per_row(recording_engine, profile, metrics, workouts, diets):
    await build_report(profile, metrics, workouts, diets, [], now=NOW)
    images = [b for b in recording_engine.last.blocks if b.kind == BlockKind.IMAGE]

    assert len(images) == 6
    for left, right in zip(images[0::2], images[1::2]):
        assert left.y == right.y
        assert left.content[0] < right.content[0]  # x position
    assert images[0].y < images[2].y < images[4].y


async def test_empty_collections_skip_tables_and_pages(recording_engine, profile):
    report = await build_report(profile, [], [], [], [], now=NOW)
    engine = recording_engine.last

    assert report.page_count == 1
    assert _texts(engine, BlockKind.TABLE_TITLE) == []
    assert "Health Suggestions" not in _texts(engine, BlockKind.HEADING)
    assert "Progress Charts" not in _texts(engine, BlockKind.HEADING)
    texts = _texts(engine, BlockKind.TEXT)
    assert "No health metrics recorded." in texts
    assert "No workouts recorded." in texts
    assert "No meals recorded." in texts


async def test_only_non_empty_tables_drawn(recording_engine, profile, workouts):
    await build_report(profile, [], workouts, [], [], now=NOW)
    engine = recording_engine.last

    assert _texts(engine, BlockKind.TABLE_TITLE) == ["Workout Log"]
    rows = [b for b in engine.blocks if b.kind == BlockKind.TABLE_ROW]
    assert len(rows) == len(workouts)
    images = [b for b in engine.blocks if b.kind == BlockKind.IMAGE]
    assert len(images) == 2


async def test_missing_cells_render_placeholder(recording_engine, profile, workouts):
    await build_report(profile, [], workouts, [], [], now=NOW)
    rows = [b.content for b in recording_engine.last.blocks if b.kind == BlockKind.TABLE_ROW]

    yoga = next(r for r in rows if r[1] == "Yoga")
    assert yoga[3] == "-"
    for row in rows:
        for cell in row:
            assert cell not in ("", "None", "null", "undefined")


async def test_suggestions_page_lists_stored_then_generated(
    recording_engine, profile, metrics, stored_suggestions,
):
    await build_report(profile, metrics, [], [], stored_suggestions, now=NOW)
    engine = recording_engine.last
    lines = _texts(engine, BlockKind.PARAGRAPH_LINE)

    joined = " ".join(lines)
    stored_at = joined.index("Take a rest day")
    generated_at = joined.index("No workouts logged yet")
    assert stored_at < generated_at


async def test_stored_suggestions_alone_still_emit_pages(recording_engine, profile, stored_suggestions):
    report = await build_report(profile, [], [], [], stored_suggestions, now=NOW)
    engine = recording_engine.last

    headings = _texts(engine, BlockKind.HEADING)
    assert "Health Suggestions" in headings
    assert "Progress Charts" in headings
    assert "No logged data to chart yet." in _texts(engine, BlockKind.TEXT)
    assert report.page_count == 3


async def test_user_info_two_columns(recording_engine, profile):
    await build_report(profile, [], [], [], [], now=NOW)
    engine = recording_engine.last

    info = [b for b in engine.blocks
            if b.kind == BlockKind.TEXT and ":" in b.content[0]][:7]
    assert info[0].content[0] == "Name: Jane Doe"
    assert info[0].y == info[4].y          # right column starts level with the left
    assert "Contact: Not provided" in [b.content[0] for b in info]


async def test_summary_uses_one_decimal(recording_engine, profile, workouts):
    await build_report(profile, [], workouts, [], [], now=NOW)
    texts = _texts(recording_engine.last, BlockKind.TEXT)

    assert "Total Workouts: 4" in texts
    assert "Total Calories Burned: 950.0 kcal" in texts
    assert "Average Workout Duration: 37.5 minutes" in texts
    assert "Favorite Workout Type: Cardio" in texts


async def test_chart_failure_is_isolated(monkeypatch, recording_engine, profile, metrics, workouts):
    """One chart failing is logged and skipped; the PDF is still produced."""
    real_render = health_report.render_chart_async

    async def flaky_render(records, value_key, *args, **kwargs):
        if value_key == "bmi":
            raise RuntimeError("surface unavailable")
        return await real_render(records, value_key, *args, **kwargs)

    monkeypatch.setattr(health_report, "render_chart_async", flaky_render)

    report = await build_report(profile, metrics, workouts, [], [], now=NOW)

    assert report.content[:5] == b"%PDF-"
    assert report.chart_failures == ["bmi"]
    images = [b for b in recording_engine.last.blocks if b.kind == BlockKind.IMAGE]
    assert len(images) == 3


async def test_layout_failure_raises_generation_error(monkeypatch, profile, metrics):
    def broken_finish(self):
        raise OSError("disk full")

    monkeypatch.setattr(LayoutEngine, "finish", broken_finish)

    with pytest.raises(ReportGenerationError):
        await HealthReportBuilder(now=NOW).build(profile, metrics)


async def test_invalid_profile_raises_generation_error():
    with pytest.raises(ReportGenerationError):
        await build_report({"email": "nobody@example.com"}, now=NOW)


async def test_malformed_record_is_skipped(recording_engine, profile):
    workouts = [
        {"timestamp": "2026-03-14T08:00:00Z", "workoutType": "Run", "duration": 30},
        {"timestamp": "2026-03-13T08:00:00Z", "workoutType": "Swim"},  # no duration
    ]
    report = await build_report(profile, [], workouts, [], [], now=NOW)

    assert report.content[:5] == b"%PDF-"
    rows = [b for b in recording_engine.last.blocks if b.kind == BlockKind.TABLE_ROW]
    assert len(rows) == 1
