"""
Health progress report assembler: turns a user's logged records into a
multi-page PDF.

Section order is fixed:
1. Title and generation date
2. User information (two columns)
3. Data tables: health metrics, workouts, diet (empty collections skipped)
4. Summary statistics
5. Suggestions page: saved suggestions, then generated recommendations
6. Charts page: two charts per row for each collection family

Pages 5 and 6 are only added when there is something to show, i.e. at
least one of the four collections is non-empty.

Charts are rasterized before any layout starts. They may render
concurrently, but placement always follows the fixed order above. A
chart that fails to render is logged and left out; the rest of the
document is still produced. Only a failure that prevents any document
from being built is raised, as ReportGenerationError.
"""

import asyncio
import logging
import math
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional, Sequence, Union

from pydantic import ValidationError

from healthreport.config import settings
from healthreport.schemas.records import (
    DietRecord,
    MetricRecord,
    SuggestionRecord,
    UserProfile,
    WorkoutRecord,
)
from healthreport.services.aggregation import (
    Summary,
    aggregate,
    normalize_records,
)
from healthreport.services.charts import ChartKind, RasterImage, render_chart_async
from healthreport.services.layout import (
    BODY_FONT,
    BRAND_MUTED,
    BRAND_PRIMARY,
    CAPTION_FONT,
    SUBHEADING_FONT,
    TITLE_FONT,
    LayoutEngine,
    format_value,
)
from healthreport.services.suggestions import generate_suggestions

logger = logging.getLogger(__name__)

REPORT_TITLE = "Health Progress Report"
REPORT_FILENAME = "health-progress-report.pdf"
REPORT_MEDIA_TYPE = "application/pdf"
NOT_PROVIDED = "Not provided"

SECTION_SPACING = 12
CHART_GAP = 20


class ReportGenerationError(Exception):
    """No document could be produced for this request."""


@dataclass(frozen=True)
class ChartSpec:
    name: str
    title: str
    value_key: Union[str, tuple[str, ...]]
    kind: ChartKind = ChartKind.LINE


@dataclass(frozen=True)
class ChartFamily:
    title: str
    collection: str          # "metrics", "workouts" or "diets"
    charts: tuple[ChartSpec, ...]


CHART_FAMILIES = (
    ChartFamily("Health Metrics", "metrics", (
        ChartSpec("weight", "Weight Tracking (kg)", "weight"),
        ChartSpec("bmi", "BMI History", "bmi"),
    )),
    ChartFamily("Workout Progress", "workouts", (
        ChartSpec("duration", "Workout Duration (min)", "duration_minutes", ChartKind.BAR),
        ChartSpec("calories_burned", "Calories Burned", "calories_burned", ChartKind.BAR),
    )),
    ChartFamily("Diet Tracking", "diets", (
        ChartSpec("calorie_intake", "Calorie Intake", "calories"),
        ChartSpec("macronutrients", "Macronutrients (g)",
                  ("protein_grams", "carb_grams", "fat_grams")),
    )),
)


@dataclass
class HealthReport:
    """The finished document, ready to be sent as a download."""
    content: bytes
    page_count: int
    filename: str = REPORT_FILENAME
    media_type: str = REPORT_MEDIA_TYPE
    chart_failures: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class _ReportData:
    profile: UserProfile
    metrics: tuple[MetricRecord, ...]
    workouts: tuple[WorkoutRecord, ...]
    diets: tuple[DietRecord, ...]
    suggestions: tuple[SuggestionRecord, ...]

    def collection(self, name: str) -> tuple:
        return getattr(self, name)

    @property
    def has_any_records(self) -> bool:
        return bool(self.metrics or self.workouts or self.diets or self.suggestions)


class HealthReportBuilder:
    """Builds one health progress report.

    Usage:
        builder = HealthReportBuilder()
        report = await builder.build(profile, metrics, workouts, diets, suggestions)
        Path(report.filename).write_bytes(report.content)

    Each build creates its own LayoutEngine, so a builder can be reused,
    but a single engine is never shared between builds.
    """

    def __init__(self, now: Optional[datetime] = None):
        self.now = now

    async def build(
        self,
        profile: Any,
        metrics: Sequence[Any] = (),
        workouts: Sequence[Any] = (),
        diets: Sequence[Any] = (),
        suggestions: Sequence[Any] = (),
    ) -> HealthReport:
        start_time = time.time()
        now = self.now or datetime.now(timezone.utc)

        try:
            user = profile if isinstance(profile, UserProfile) else UserProfile.model_validate(profile)
        except ValidationError as exc:
            raise ReportGenerationError("Invalid user profile") from exc

        data = _ReportData(
            profile=user,
            metrics=normalize_records(metrics, MetricRecord),
            workouts=normalize_records(workouts, WorkoutRecord),
            diets=normalize_records(diets, DietRecord),
            suggestions=normalize_records(suggestions, SuggestionRecord),
        )
        summary = aggregate(data.metrics, data.workouts, data.diets, now=now)
        recommendations = generate_suggestions(summary)

        failures: list[str] = []
        rasters: dict[str, RasterImage] = {}
        if data.has_any_records:
            rasters = await self._rasterize_charts(data, failures)

        try:
            engine = LayoutEngine(title=REPORT_TITLE, author=user.full_name)
            self._render_title(engine, now)
            self._render_user_info(engine, user)
            self._render_data_tables(engine, data)
            self._render_summary(engine, summary)
            if data.has_any_records:
                self._render_suggestions(engine, data.suggestions, recommendations)
                self._render_charts(engine, data, rasters)
            content = engine.finish()
        except Exception as exc:
            logger.exception("Health report layout failed")
            raise ReportGenerationError("Failed to generate health report") from exc

        logger.info(
            "Built health report: %d pages, %d charts, %d chart failures in %.2fs",
            engine.page_count, len(rasters), len(failures), time.time() - start_time,
        )
        return HealthReport(
            content=content,
            page_count=engine.page_count,
            chart_failures=failures,
        )

    # ------------------------------------------------------------------
    # CHARTS
    # ------------------------------------------------------------------

    async def _rasterize_charts(
        self, data: _ReportData, failures: list[str],
    ) -> dict[str, RasterImage]:
        """Render every chart for the non-empty families, then wait for all."""
        limit = asyncio.Semaphore(settings.CHART_MAX_CONCURRENCY)

        async def render(records, spec: ChartSpec) -> RasterImage:
            async with limit:
                return await render_chart_async(
                    records, spec.value_key, "timestamp", spec.kind, title=spec.title,
                )

        jobs = [
            (spec, data.collection(family.collection))
            for family in CHART_FAMILIES
            if data.collection(family.collection)
            for spec in family.charts
        ]
        results = await asyncio.gather(
            *(render(records, spec) for spec, records in jobs),
            return_exceptions=True,
        )

        rasters = {}
        for (spec, _), result in zip(jobs, results):
            if isinstance(result, Exception):
                logger.error(
                    "Chart '%s' failed to render, leaving it out of the report",
                    spec.name, exc_info=result,
                )
                failures.append(spec.name)
            elif isinstance(result, BaseException):
                raise result
            else:
                rasters[spec.name] = result
        return rasters

    # ------------------------------------------------------------------
    # SECTION RENDERERS
    # ------------------------------------------------------------------

    def _render_title(self, engine: LayoutEngine, now: datetime) -> None:
        engine.draw_text(REPORT_TITLE, TITLE_FONT, BRAND_PRIMARY)
        engine.draw_text(f"Generated on {format_value(now.date())}", CAPTION_FONT, BRAND_MUTED)
        engine.cursor_y += SECTION_SPACING

    def _render_user_info(self, engine: LayoutEngine, user: UserProfile) -> None:
        """Profile fields in two columns starting at the same height."""
        engine.draw_heading("User Information")

        fields = [
            ("Name", user.full_name),
            ("Username", user.username),
            ("Email", user.email),
            ("Age", user.age),
            ("Gender", user.gender),
            ("Contact", user.contact),
            ("Member Since", user.join_date),
        ]
        lines = [f"{label}: {_profile_value(value)}" for label, value in fields]
        split = math.ceil(len(lines) / 2)
        left, right = lines[:split], lines[split:]

        line_height = BODY_FONT[2]
        engine.ensure_space(len(left) * line_height)
        column_width = engine.content_width / 2
        top = engine.cursor_y
        left_end = engine.draw_text_column(left, engine.margin, top, width=column_width)
        right_end = engine.draw_text_column(
            right, engine.margin + column_width, top, width=column_width,
        )
        engine.cursor_y = max(left_end, right_end) + SECTION_SPACING

    def _render_data_tables(self, engine: LayoutEngine, data: _ReportData) -> None:
        if not (data.metrics or data.workouts or data.diets):
            return
        engine.draw_heading("Logged Data")

        if data.metrics:
            engine.draw_table(
                ["Date", "Heart Rate", "Blood Pressure", "Sleep (h)", "Weight (kg)", "BMI"],
                [[m.timestamp, m.heart_rate, m.blood_pressure, m.sleep_hours, m.weight, m.bmi]
                 for m in data.metrics],
                title="Health Metrics",
                col_widths=_column_widths(engine, 6),
            )
        if data.workouts:
            engine.draw_table(
                ["Date", "Workout Type", "Duration (min)", "Calories Burned"],
                [[w.timestamp, w.workout_type, w.duration_minutes, w.calories_burned]
                 for w in data.workouts],
                title="Workout Log",
                col_widths=_column_widths(engine, 4),
            )
        if data.diets:
            engine.draw_table(
                ["Date", "Meal", "Calories", "Protein (g)", "Carbs (g)", "Fats (g)"],
                [[d.timestamp, d.meal_type, d.calories, d.protein_grams, d.carb_grams, d.fat_grams]
                 for d in data.diets],
                title="Diet Log",
                col_widths=_column_widths(engine, 6),
            )

    def _render_summary(self, engine: LayoutEngine, summary: Summary) -> None:
        engine.draw_heading("Summary Statistics")
        indent = 10

        engine.draw_text("Health Metrics", SUBHEADING_FONT, BRAND_PRIMARY)
        metrics = summary.metrics
        if metrics.has_data:
            latest = metrics.latest
            for line in (
                _stat("Records Logged", metrics.count),
                _stat("Latest Weight", latest.weight, "kg"),
                _stat("Latest BMI", latest.bmi),
                _stat("Latest Heart Rate", latest.heart_rate, "bpm"),
                _stat("Latest Blood Pressure", latest.blood_pressure),
                _stat("Latest Sleep", latest.sleep_hours, "hours"),
                _stat("Average Heart Rate", metrics.avg_heart_rate, "bpm"),
                _stat("Average Sleep", metrics.avg_sleep_hours, "hours"),
                _stat("Average Weight", metrics.avg_weight, "kg"),
                _stat("Average BMI", metrics.avg_bmi),
                "Average Blood Pressure: " + _blood_pressure(metrics.avg_systolic, metrics.avg_diastolic),
            ):
                engine.draw_text(line, indent=indent)
        else:
            engine.draw_text("No health metrics recorded.", color=BRAND_MUTED, indent=indent)

        engine.draw_text("Workouts", SUBHEADING_FONT, BRAND_PRIMARY)
        workouts = summary.workouts
        if workouts.has_data:
            for line in (
                _stat("Total Workouts", workouts.count),
                _stat("Total Calories Burned", workouts.total_calories_burned, "kcal"),
                _stat("Average Workout Duration", workouts.avg_duration, "minutes"),
                _stat("Favorite Workout Type", workouts.favorite_type),
                _stat("Workouts in the Last 7 Days", workouts.recent_count),
            ):
                engine.draw_text(line, indent=indent)
        else:
            engine.draw_text("No workouts recorded.", color=BRAND_MUTED, indent=indent)

        engine.draw_text("Diet", SUBHEADING_FONT, BRAND_PRIMARY)
        diet = summary.diet
        if diet.has_data:
            for line in (
                _stat("Meals Logged", diet.count),
                _stat("Average Daily Calories", diet.avg_calories, "kcal"),
                _stat("Average Protein", diet.avg_protein, "g"),
                _stat("Average Carbs", diet.avg_carbs, "g"),
                _stat("Average Fats", diet.avg_fat, "g"),
            ):
                engine.draw_text(line, indent=indent)
        else:
            engine.draw_text("No meals recorded.", color=BRAND_MUTED, indent=indent)

    def _render_suggestions(
        self,
        engine: LayoutEngine,
        stored: Sequence[SuggestionRecord],
        generated: Sequence[str],
    ) -> None:
        """Saved suggestions word for word, then the rule-based ones."""
        engine.add_page()
        engine.draw_heading("Health Suggestions")
        indent = 10

        if stored:
            engine.draw_text("Your Saved Suggestions", SUBHEADING_FONT, BRAND_PRIMARY)
            for suggestion in stored:
                engine.draw_text(
                    f"{suggestion.category.value} - {format_value(suggestion.issued_at)}",
                    CAPTION_FONT, BRAND_MUTED, indent=indent,
                )
                engine.draw_paragraph(suggestion.text, indent=indent)
                engine.cursor_y += 4

        engine.draw_text("Recommendations", SUBHEADING_FONT, BRAND_PRIMARY)
        if generated:
            for message in generated:
                engine.draw_paragraph(f"• {message}", indent=indent)
                engine.cursor_y += 4
        else:
            engine.draw_text(
                "No recommendations right now. Keep up the good work!",
                color=BRAND_MUTED, indent=indent,
            )

    def _render_charts(
        self,
        engine: LayoutEngine,
        data: _ReportData,
        rasters: dict[str, RasterImage],
    ) -> None:
        """Two charts per row, one row per non-empty collection family."""
        engine.add_page()
        engine.draw_heading("Progress Charts")

        families = [f for f in CHART_FAMILIES if data.collection(f.collection)]
        if not families:
            engine.draw_text("No logged data to chart yet.", color=BRAND_MUTED)
            return

        chart_width = (engine.content_width - CHART_GAP) / 2
        chart_height = chart_width * settings.CHART_HEIGHT_PX / settings.CHART_WIDTH_PX
        subheading_height = SUBHEADING_FONT[2]

        for family in families:
            engine.ensure_space(subheading_height + chart_height)
            engine.draw_text(family.title, SUBHEADING_FONT, BRAND_PRIMARY)

            placed = [spec for spec in family.charts if spec.name in rasters]
            if not placed:
                engine.draw_text("Charts unavailable for this section.", color=BRAND_MUTED)
                engine.cursor_y += SECTION_SPACING
                continue

            row_top = engine.cursor_y
            for column, spec in enumerate(family.charts):
                raster = rasters.get(spec.name)
                if raster is None:
                    continue
                x = engine.margin + column * (chart_width + CHART_GAP)
                engine.draw_image(raster, x, row_top, chart_width, chart_height)
            engine.cursor_y = row_top + chart_height + SECTION_SPACING


async def build_report(
    profile: Any,
    metrics: Sequence[Any] = (),
    workouts: Sequence[Any] = (),
    diets: Sequence[Any] = (),
    suggestions: Sequence[Any] = (),
    now: Optional[datetime] = None,
) -> HealthReport:
    """Build a health progress report with a fresh builder."""
    return await HealthReportBuilder(now=now).build(
        profile, metrics, workouts, diets, suggestions,
    )


# ------------------------------------------------------------------
# HELPERS
# ------------------------------------------------------------------

def _stat(label: str, value: Any, unit: str = "") -> str:
    text = format_value(value)
    if unit and value is not None:
        text = f"{text} {unit}"
    return f"{label}: {text}"


def _blood_pressure(systolic: Optional[float], diastolic: Optional[float]) -> str:
    if systolic is None or diastolic is None:
        return format_value(None)
    return f"{format_value(systolic)}/{format_value(diastolic)} mmHg"


def _profile_value(value: Any) -> str:
    if value is None or (isinstance(value, str) and not value.strip()):
        return NOT_PROVIDED
    return format_value(value)


def _column_widths(engine: LayoutEngine, columns: int) -> list[float]:
    # The date column gets a double share
    unit = engine.content_width / (columns + 1)
    return [2 * unit] + [unit] * (columns - 1)
