"""
Document layout engine: a cursor-driven page writer on top of the
ReportLab canvas.

Platypus (SimpleDocTemplate + flowables) hides pagination, but the health
report needs to know exactly where page breaks fall: a table repeats its
header row on every page it spans. This engine therefore drives
`reportlab.pdfgen.canvas.Canvas` directly and keeps the state itself:

    cursor_y            distance from the top edge of the page, in points
    current_page_index  zero-based index of the page being written

All public coordinates are measured from the TOP of the page (like a
browser or jsPDF). ReportLab's origin is bottom-left, so `_pdf_y()`
converts at the last moment.

Every draw call also appends a LayoutBlock to `self.blocks`, an ordered
record of what went where. The report assembler doesn't need it, but it
makes pagination behaviour inspectable.

Key ReportLab concepts used here:
- Canvas.showPage(): closes the current page and starts a new one
- pdfmetrics.stringWidth(): measures rendered text width for a font
- ImageReader: wraps PNG bytes so drawImage() can place them
"""

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from io import BytesIO
from typing import Any, Optional, Sequence

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4, letter
from reportlab.lib.units import inch, mm
from reportlab.lib.utils import ImageReader
from reportlab.pdfbase.pdfmetrics import stringWidth
from reportlab.pdfgen import canvas as pdf_canvas

from healthreport.config import settings
from healthreport.services.charts import RasterImage


# --- Brand Colors ---
BRAND_PRIMARY = colors.HexColor("#1a365d")     # Deep navy, headings
BRAND_SECONDARY = colors.HexColor("#2b6cb0")   # Medium blue, table titles
BRAND_LIGHT_BG = colors.HexColor("#f7fafc")    # Light gray, zebra rows
BRAND_TEXT = colors.HexColor("#2d3748")        # Dark gray, body text
BRAND_MUTED = colors.HexColor("#718096")       # Medium gray, captions
GRID_COLOR = colors.HexColor("#e2e8f0")

# --- Typography (font name, size, line height) ---
TITLE_FONT = ("Helvetica-Bold", 24, 30)
HEADING_FONT = ("Helvetica-Bold", 16, 22)
SUBHEADING_FONT = ("Helvetica-Bold", 12, 18)
BODY_FONT = ("Helvetica", 10, 14)
CAPTION_FONT = ("Helvetica", 9, 13)
TABLE_HEADER_FONT = ("Helvetica-Bold", 9)
TABLE_BODY_FONT = ("Helvetica", 9)

HEADING_RULE_GAP = 8       # space between heading baseline area and the rule
TABLE_TITLE_HEIGHT = 20
TABLE_ROW_HEIGHT = 18
TABLE_CELL_PADDING = 4
TABLE_SPACING_AFTER = 12

MISSING = "-"
ELLIPSIS = "..."

PAGE_SIZES = {"a4": A4, "letter": letter}


class BlockKind(str, Enum):
    TEXT = "text"
    HEADING = "heading"
    TABLE_TITLE = "table_title"
    TABLE_HEADER = "table_header"
    TABLE_ROW = "table_row"
    PARAGRAPH_LINE = "paragraph_line"
    IMAGE = "image"


@dataclass(frozen=True)
class LayoutBlock:
    """One placed element: what it was, on which page, where, how tall."""
    kind: BlockKind
    page: int
    y: float
    height: float
    content: tuple = ()


def format_value(value: Any) -> str:
    """Render a statistic or table cell.

    Floats get one decimal place, integers none. Absent values become the
    "-" placeholder so a missing reading never looks like a zero.
    """
    if value is None:
        return MISSING
    if isinstance(value, bool):
        return "Yes" if value else "No"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        return MISSING if value != value else f"{value:.1f}"  # NaN check
    if isinstance(value, datetime):
        return f"{value:%b} {value.day}, {value.year} {value:%H:%M}"
    if isinstance(value, date):
        return f"{value:%b} {value.day}, {value.year}"
    if isinstance(value, Enum):
        return format_value(value.value)
    text = str(value).strip()
    return text or MISSING


def page_size_from_name(name: str) -> tuple[float, float]:
    return PAGE_SIZES[name.lower()]


class LayoutEngine:
    """Writes one PDF document, page by page.

    Usage:
        engine = LayoutEngine(title="Health Progress Report")
        engine.draw_heading("Workouts")
        engine.draw_table(["Date", "Type"], rows, title="Workout Log")
        engine.draw_paragraph("Some long text ...")
        pdf_bytes = engine.finish()

    One engine instance belongs to one report build. It holds mutable
    cursor state and must not be shared between builds.
    """

    def __init__(
        self,
        pagesize: Optional[tuple[float, float]] = None,
        margin: Optional[float] = None,
        title: Optional[str] = None,
        author: Optional[str] = None,
    ):
        self.page_width, self.page_height = (
            pagesize or page_size_from_name(settings.REPORT_PAGE_SIZE)
        )
        self.margin = margin if margin is not None else settings.REPORT_MARGIN_MM * mm
        self.buffer = BytesIO()
        self.canvas = pdf_canvas.Canvas(
            self.buffer, pagesize=(self.page_width, self.page_height),
        )
        if title:
            self.canvas.setTitle(title)
        if author:
            self.canvas.setAuthor(author)

        self.cursor_y = self.margin
        self.current_page_index = 0
        self.blocks: list[LayoutBlock] = []
        self._finished = False

    # ------------------------------------------------------------------
    # GEOMETRY
    # ------------------------------------------------------------------

    @property
    def content_width(self) -> float:
        return self.page_width - 2 * self.margin

    @property
    def bottom_limit(self) -> float:
        """Lowest y (from the top edge) content may reach."""
        return self.page_height - self.margin

    @property
    def page_count(self) -> int:
        return self.current_page_index + 1

    def ensure_space(self, required_height: float) -> bool:
        """Start a new page if `required_height` doesn't fit below the cursor.

        Returns True when a page break happened. A block taller than a
        whole page is placed at the top of a fresh page rather than
        triggering an endless run of blank pages.
        """
        if self.cursor_y + required_height <= self.bottom_limit:
            return False
        if self.cursor_y <= self.margin:
            return False
        self.add_page()
        return True

    def add_page(self) -> None:
        """Close the current page and continue at the top of a new one."""
        self._draw_page_number()
        self.canvas.showPage()
        self.current_page_index += 1
        self.cursor_y = self.margin

    # ------------------------------------------------------------------
    # TEXT
    # ------------------------------------------------------------------

    def draw_text(
        self,
        text: str,
        font: tuple = BODY_FONT,
        color=BRAND_TEXT,
        indent: float = 0,
    ) -> None:
        """Draw a single line at the cursor and advance by its line height."""
        name, size, line_height = font
        self.ensure_space(line_height)
        self._draw_string(text, self.margin + indent, self.cursor_y, name, size, color)
        self._log(BlockKind.TEXT, line_height, (text,))
        self.cursor_y += line_height

    def draw_heading(self, text: str) -> None:
        """Bold section heading followed by a full-width rule."""
        name, size, line_height = HEADING_FONT
        self.ensure_space(line_height + HEADING_RULE_GAP)
        self._draw_string(text, self.margin, self.cursor_y, name, size, BRAND_PRIMARY)

        rule_y = self.cursor_y + line_height
        self.canvas.saveState()
        self.canvas.setStrokeColor(BRAND_PRIMARY)
        self.canvas.setLineWidth(1.5)
        self.canvas.line(
            self.margin, self._pdf_y(rule_y),
            self.page_width - self.margin, self._pdf_y(rule_y),
        )
        self.canvas.restoreState()

        self._log(BlockKind.HEADING, line_height + HEADING_RULE_GAP, (text,))
        self.cursor_y += line_height + HEADING_RULE_GAP

    def draw_paragraph(
        self,
        text: str,
        indent: float = 0,
        font: tuple = BODY_FONT,
        color=BRAND_TEXT,
    ) -> list[str]:
        """Word-wrap `text` into the column and draw it line by line.

        Greedy: words are added to the current line while its measured
        width fits in the column. A word that is wider than the column on
        its own gets a line to itself; words are never split. Page breaks
        are checked per line, so a long paragraph can continue on the
        next page. Returns the emitted lines.
        """
        name, size, line_height = font
        available = self.content_width - indent
        lines = []
        current: list[str] = []

        for word in text.split():
            candidate = " ".join(current + [word])
            if current and stringWidth(candidate, name, size) > available:
                lines.append(self._emit_line(current, indent, font, color))
                current = [word]
            else:
                current.append(word)
        if current:
            lines.append(self._emit_line(current, indent, font, color))

        return lines

    def draw_text_column(
        self,
        lines: Sequence[str],
        x: float,
        y: float,
        width: Optional[float] = None,
        font: tuple = BODY_FONT,
        color=BRAND_TEXT,
    ) -> float:
        """Draw lines at an explicit position without moving the cursor.

        Used for side-by-side columns: the caller reserves the space,
        draws each column from the same y and then moves the cursor to
        the lower end point. Returns the y just below the last line.
        """
        name, size, line_height = font
        for line in lines:
            if width is not None:
                line = self._fit_text(line, width, name, size)
            self._draw_string(line, x, y, name, size, color)
            self.blocks.append(LayoutBlock(
                BlockKind.TEXT, self.current_page_index, y, line_height, (line,),
            ))
            y += line_height
        return y

    # ------------------------------------------------------------------
    # TABLES
    # ------------------------------------------------------------------

    def draw_table(
        self,
        headers: Sequence[str],
        rows: Sequence[Sequence[Any]],
        title: Optional[str] = None,
        col_widths: Optional[Sequence[float]] = None,
    ) -> None:
        """Draw a titled table, repeating the header row after page breaks.

        Space is checked before the title and before every data row. When
        a row forces a new page, the header is drawn again at the top of
        that page before the row. Cells that are None or blank show "-".
        """
        if not headers:
            raise ValueError("A table needs at least one header")
        widths = list(col_widths or [self.content_width / len(headers)] * len(headers))

        if title:
            # Keep the title with the header and first row
            self.ensure_space(TABLE_TITLE_HEIGHT + 2 * TABLE_ROW_HEIGHT)
            name, size, _ = SUBHEADING_FONT
            self._draw_string(title, self.margin, self.cursor_y, name, size, BRAND_SECONDARY)
            self._log(BlockKind.TABLE_TITLE, TABLE_TITLE_HEIGHT, (title,))
            self.cursor_y += TABLE_TITLE_HEIGHT
        else:
            self.ensure_space(2 * TABLE_ROW_HEIGHT)

        self._draw_table_header(headers, widths)

        for index, row in enumerate(rows):
            if self.ensure_space(TABLE_ROW_HEIGHT):
                self._draw_table_header(headers, widths)
            cells = [format_value(v) for v in row]
            cells += [MISSING] * (len(headers) - len(cells))
            shaded = index % 2 == 1
            self._draw_table_row(cells, widths, TABLE_BODY_FONT, BRAND_TEXT,
                                 BRAND_LIGHT_BG if shaded else None)
            self._log(BlockKind.TABLE_ROW, TABLE_ROW_HEIGHT, tuple(cells))
            self.cursor_y += TABLE_ROW_HEIGHT

        self.cursor_y += TABLE_SPACING_AFTER

    def _draw_table_header(self, headers: Sequence[str], widths: list[float]) -> None:
        self._draw_table_row(list(headers), widths, TABLE_HEADER_FONT,
                             colors.white, BRAND_PRIMARY)
        self._log(BlockKind.TABLE_HEADER, TABLE_ROW_HEIGHT, tuple(headers))
        self.cursor_y += TABLE_ROW_HEIGHT

    def _draw_table_row(self, cells, widths, font, text_color, background) -> None:
        name, size = font
        top = self.cursor_y
        c = self.canvas
        c.saveState()
        x = self.margin
        for cell, width in zip(cells, widths):
            if background is not None:
                c.setFillColor(background)
                c.rect(x, self._pdf_y(top + TABLE_ROW_HEIGHT), width,
                       TABLE_ROW_HEIGHT, stroke=0, fill=1)
            c.setStrokeColor(GRID_COLOR)
            c.setLineWidth(0.5)
            c.rect(x, self._pdf_y(top + TABLE_ROW_HEIGHT), width,
                   TABLE_ROW_HEIGHT, stroke=1, fill=0)

            text = self._fit_text(cell, width - 2 * TABLE_CELL_PADDING, name, size)
            baseline = top + (TABLE_ROW_HEIGHT + size) / 2 - 1
            c.setFillColor(text_color)
            c.setFont(name, size)
            c.drawString(x + TABLE_CELL_PADDING, self._pdf_y(baseline), text)
            x += width
        c.restoreState()

    # ------------------------------------------------------------------
    # IMAGES
    # ------------------------------------------------------------------

    def draw_image(self, raster: RasterImage, x: float, y: float, w: float, h: float) -> None:
        """Place a rasterized chart at (x, y) with size w x h.

        Does not check or move the cursor; callers reserve the row first
        (two charts usually share one row).
        """
        self.canvas.drawImage(
            ImageReader(BytesIO(raster.png)),
            x, self._pdf_y(y + h),
            width=w, height=h,
            preserveAspectRatio=True,
            anchor="c",
        )
        self.blocks.append(LayoutBlock(
            BlockKind.IMAGE, self.current_page_index, y, h, (x, w),
        ))

    # ------------------------------------------------------------------
    # OUTPUT
    # ------------------------------------------------------------------

    def finish(self) -> bytes:
        """Close the last page and return the PDF bytes."""
        if self._finished:
            raise RuntimeError("Document already finished")
        self._draw_page_number()
        self.canvas.save()
        self._finished = True
        return self.buffer.getvalue()

    # ------------------------------------------------------------------
    # HELPERS
    # ------------------------------------------------------------------

    def _emit_line(self, words: list[str], indent: float, font: tuple, color) -> str:
        name, size, line_height = font
        line = " ".join(words)
        self.ensure_space(line_height)
        self._draw_string(line, self.margin + indent, self.cursor_y, name, size, color)
        self._log(BlockKind.PARAGRAPH_LINE, line_height, (line,))
        self.cursor_y += line_height
        return line

    def _draw_string(self, text, x, top, font_name, size, color) -> None:
        # `top` is the top of the line box; the baseline sits one font size below
        self.canvas.setFont(font_name, size)
        self.canvas.setFillColor(color)
        self.canvas.drawString(x, self._pdf_y(top + size), text)

    def _draw_page_number(self) -> None:
        name, size, _ = CAPTION_FONT
        self.canvas.saveState()
        self.canvas.setFont(name, size - 1)
        self.canvas.setFillColor(BRAND_MUTED)
        self.canvas.drawCentredString(
            self.page_width / 2, 0.4 * inch, f"Page {self.page_count}",
        )
        self.canvas.restoreState()

    def _log(self, kind: BlockKind, height: float, content: tuple) -> None:
        self.blocks.append(LayoutBlock(
            kind, self.current_page_index, self.cursor_y, height, content,
        ))

    def _pdf_y(self, top_y: float) -> float:
        return self.page_height - top_y

    @staticmethod
    def _fit_text(text: str, width: float, font_name: str, size: float) -> str:
        """Truncate `text` with an ellipsis so it fits in `width` points."""
        if stringWidth(text, font_name, size) <= width:
            return text
        while text and stringWidth(text + ELLIPSIS, font_name, size) > width:
            text = text[:-1]
        return text + ELLIPSIS
