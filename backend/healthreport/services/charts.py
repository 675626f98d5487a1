"""
Chart rasterizer: renders a time-series chart off-screen and captures it
as a PNG.

Every call gets its own matplotlib Figure on the Agg canvas. Nothing goes
through pyplot, so no global figure registry is touched and no window is
ever opened. The figure is released when the call finishes, whether the
render succeeded or raised.

Sizes are given in logical pixels (like a browser chart container); the
PNG is captured at CHART_PIXEL_RATIO times that resolution so it stays
sharp when scaled into the PDF.
"""

import asyncio
import math
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from io import BytesIO
from typing import Any, Optional, Sequence, Union

from matplotlib.backends.backend_agg import FigureCanvasAgg
from matplotlib.figure import Figure

from healthreport.config import settings

BASE_DPI = 100

# Same palette the dashboard charts use
SERIES_COLORS = ("#8884d8", "#82ca9d", "#ffc658", "#ff7f50", "#4a90e2")
GRID_COLOR = "#e2e8f0"


class ChartKind(str, Enum):
    LINE = "line"
    BAR = "bar"


@dataclass(frozen=True)
class RasterImage:
    """A captured chart. width/height are in device pixels."""
    png: bytes
    width: int
    height: int

    @property
    def aspect_ratio(self) -> float:
        return self.height / self.width if self.width else 0.0


class _RenderSurface:
    """An isolated off-screen drawing surface for a single chart."""

    def __init__(self, width: int, height: int):
        self.figure = Figure(
            figsize=(width / BASE_DPI, height / BASE_DPI),
            dpi=BASE_DPI,
            facecolor="white",
        )
        FigureCanvasAgg(self.figure)

    def __enter__(self) -> Figure:
        return self.figure

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def close(self) -> None:
        self.figure.clear()


def format_date_label(value: Any) -> str:
    """Abbreviated month and day, e.g. "Mar 7"."""
    moment = _to_datetime(value)
    if moment is None:
        return ""
    return f"{moment:%b} {moment.day}"


def render_chart(
    dataset: Sequence[Any],
    value_key: Union[str, Sequence[str]],
    date_key: str = "timestamp",
    kind: ChartKind = ChartKind.LINE,
    width: Optional[int] = None,
    height: Optional[int] = None,
    title: Optional[str] = None,
) -> RasterImage:
    """Render `dataset` as a chart and return the captured raster.

    Args:
        dataset: Records (models or dicts), newest-first. Plotted
            oldest-to-newest. An empty dataset gives empty axes.
        value_key: Field to plot, or several fields for a multi-series
            line chart. Records missing a field are skipped for that series.
        date_key: Field holding the record's datetime.
        kind: ChartKind.LINE or ChartKind.BAR.
        width, height: Logical size in pixels. Defaults come from settings.

    Raises:
        ValueError: If `kind` is not a known ChartKind.
    """
    kind = ChartKind(kind)
    width = width or settings.CHART_WIDTH_PX
    height = height or settings.CHART_HEIGHT_PX
    keys = [value_key] if isinstance(value_key, str) else list(value_key)
    pixel_ratio = settings.CHART_PIXEL_RATIO

    # Oldest first on the x axis
    rows = list(reversed(list(dataset)))
    labels = [format_date_label(_field(row, date_key)) for row in rows]

    with _RenderSurface(width, height) as figure:
        axes = figure.add_subplot(1, 1, 1)
        _plot(axes, kind, rows, keys, labels)
        if title:
            axes.set_title(title, fontsize=10)
        figure.tight_layout()
        figure.canvas.draw()

        buffer = BytesIO()
        figure.savefig(
            buffer,
            format="png",
            dpi=BASE_DPI * pixel_ratio,
            facecolor="white",
        )

    return RasterImage(
        png=buffer.getvalue(),
        width=width * pixel_ratio,
        height=height * pixel_ratio,
    )


async def render_chart_async(*args, **kwargs) -> RasterImage:
    """Run render_chart in a worker thread and wait for the raster."""
    return await asyncio.to_thread(render_chart, *args, **kwargs)


def _plot(axes, kind: ChartKind, rows: list, keys: list[str], labels: list[str]) -> None:
    positions = list(range(len(rows)))
    bar_width = 0.8 / max(len(keys), 1)

    for index, key in enumerate(keys):
        xs, ys = [], []
        for position, row in zip(positions, rows):
            value = _numeric(_field(row, key))
            if value is not None:
                xs.append(position)
                ys.append(value)
        color = SERIES_COLORS[index % len(SERIES_COLORS)]
        label = _series_label(key)

        if kind is ChartKind.BAR:
            offset = (index - (len(keys) - 1) / 2) * bar_width
            axes.bar([x + offset for x in xs], ys, width=bar_width, color=color, label=label)
        else:
            axes.plot(xs, ys, color=color, linewidth=1.5, marker="o", markersize=3, label=label)

    axes.set_xticks(positions)
    axes.set_xticklabels(labels, fontsize=7, rotation=30, ha="right")
    axes.tick_params(axis="y", labelsize=7)
    axes.grid(True, color=GRID_COLOR, linestyle="--", linewidth=0.6)
    axes.set_axisbelow(True)
    if not positions:
        axes.set_xlim(0, 1)
        axes.set_ylim(0, 1)
    if len(keys) > 1:
        axes.legend(fontsize=7, loc="upper left")


def _series_label(key: str) -> str:
    # "protein_grams" -> "Protein"
    return key.replace("_grams", "").replace("_", " ").title()


def _field(record: Any, key: str) -> Any:
    if isinstance(record, dict):
        return record.get(key)
    return getattr(record, key, None)


def _numeric(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return None if math.isnan(number) else number


def _to_datetime(value: Any) -> Optional[datetime]:
    if isinstance(value, datetime):
        return value
    if isinstance(value, str) and value:
        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
    return None
