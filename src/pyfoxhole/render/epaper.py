"""Pillow renderer for grayscale e-paper panels.

Draws a one-page summary of the war (war number, elapsed time, territory
counts per faction, per-region breakdown) and reduces it to a small
number of gray levels with Floyd-Steinberg dithering so it looks sharp
on a 4-bit e-ink display.
"""

from __future__ import annotations

import logging
import os
import re
import threading
import time
from datetime import UTC, datetime, timedelta
from pathlib import Path

from PIL import Image, ImageDraw, ImageFont

from pyfoxhole.config import FoxholeConfig
from pyfoxhole.exceptions import FoxholeRenderError
from pyfoxhole.models.team import Team
from pyfoxhole.models.territory import ConquerStatus

_logger = logging.getLogger(__name__)

FONT_CANDIDATES: tuple[str, ...] = (
    "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf",
    "/usr/share/fonts/TTF/DejaVuSans.ttf",
    "/usr/share/fonts/dejavu/DejaVuSans.ttf",
    "/Library/Fonts/Arial.ttf",
    "DejaVuSans.ttf",
)
BOLD_FONT_CANDIDATES: tuple[str, ...] = (
    "/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf",
    "/usr/share/fonts/TTF/DejaVuSans-Bold.ttf",
    "/usr/share/fonts/dejavu/DejaVuSans-Bold.ttf",
    "/Library/Fonts/Arial Bold.ttf",
    "DejaVuSans-Bold.ttf",
)

# Fill per team; neutral stays light so faction bars dominate.
TEAM_SHADES: dict[Team, int] = {
    Team.WARDENS: 0,
    Team.COLONIALS: 110,
    Team.NEUTRAL: 200,
}

WHITE = 255
BLACK = 0
MARGIN = 16
HEADER_HEIGHT = 64
FOOTER_HEIGHT = 26
REGION_COLUMNS = 3


def load_font(size: int, *, bold: bool = False) -> ImageFont.FreeTypeFont | ImageFont.ImageFont:
    for path in BOLD_FONT_CANDIDATES if bold else FONT_CANDIDATES:
        if os.path.exists(path):
            return ImageFont.truetype(path, size)
    return ImageFont.load_default(size=size)


def region_display_name(region: str) -> str:
    """``"TheFingersHex"`` -> ``"The Fingers"``."""
    name = re.sub(r"Hex$", "", region)
    return re.sub(r"(?<=[a-z])(?=[A-Z])", " ", name).strip() or region


def format_elapsed(elapsed: timedelta | None) -> str:
    if elapsed is None:
        return "not started"
    total_minutes = int(elapsed.total_seconds() // 60)
    days, rem = divmod(total_minutes, 24 * 60)
    hours, minutes = divmod(rem, 60)
    return f"Day {days + 1}, {hours:02d}h {minutes:02d}m"


def _text_width(draw: ImageDraw.ImageDraw, text: str, font: ImageFont.FreeTypeFont | ImageFont.ImageFont) -> int:
    left, _top, right, _bottom = draw.textbbox((0, 0), text, font=font)
    return int(right - left)


def dither_to_levels(image: Image.Image, levels: int) -> Image.Image:
    """Reduce *image* to *levels* evenly spaced grays with Floyd-Steinberg dithering."""
    palette: list[int] = []
    for i in range(levels):
        value = round(i * 255 / (levels - 1))
        palette.extend((value, value, value))
    palette.extend([0] * (768 - len(palette)))
    palette_image = Image.new("P", (1, 1))
    palette_image.putpalette(palette)
    quantized = image.convert("RGB").quantize(palette=palette_image, dither=Image.Dither.FLOYDSTEINBERG)
    return quantized.convert("L")


class EpaperRenderer:
    """Render :class:`ConquerStatus` snapshots to a dithered grayscale PNG."""

    def __init__(
        self,
        output_path: str | Path,
        *,
        width: int = 800,
        height: int = 480,
        gray_levels: int = 16,
    ) -> None:
        self._output_path = Path(output_path)
        self._width = width
        self._height = height
        self._gray_levels = gray_levels
        self._last_render_time: datetime | None = None
        self._lock = threading.Lock()

    @classmethod
    def from_config(cls, config: FoxholeConfig) -> EpaperRenderer:
        return cls(
            config.output_path,
            width=config.display_width,
            height=config.display_height,
            gray_levels=config.gray_levels,
        )

    @property
    def output_path(self) -> Path:
        return self._output_path

    @property
    def last_render_time(self) -> datetime | None:
        return self._last_render_time

    def render(self, status: ConquerStatus, *, reason: str = "") -> Path:
        """Draw *status* and atomically replace the output PNG."""
        with self._lock:
            started = time.monotonic()
            tmp_path = self._output_path.with_name(self._output_path.name + ".tmp")
            try:
                image = dither_to_levels(self.draw(status, reason=reason), self._gray_levels)
                self._output_path.parent.mkdir(parents=True, exist_ok=True)
                image.save(tmp_path, format="PNG", optimize=True)
                os.replace(tmp_path, self._output_path)
            except (OSError, ValueError) as exc:
                tmp_path.unlink(missing_ok=True)
                raise FoxholeRenderError(f"Could not render {self._output_path}: {exc}") from exc
            self._last_render_time = datetime.now(UTC)
            _logger.info("PNG generated successfully in %dms", (time.monotonic() - started) * 1000)
            return self._output_path

    def draw(self, status: ConquerStatus, *, reason: str = "") -> Image.Image:
        """Draw the full-resolution grayscale page (before dithering)."""
        image = Image.new("L", (self._width, self._height), WHITE)
        draw = ImageDraw.Draw(image)
        self._draw_header(draw, status)
        summary_bottom = self._draw_team_summary(draw, status, top=HEADER_HEIGHT + 10)
        self._draw_regions(draw, status, top=summary_bottom + 12, bottom=self._height - FOOTER_HEIGHT - 4)
        self._draw_footer(draw, status, reason)
        return image

    # ------------------------------------------------------------------
    # Sections
    # ------------------------------------------------------------------

    def _draw_header(self, draw: ImageDraw.ImageDraw, status: ConquerStatus) -> None:
        draw.rectangle((0, 0, self._width, HEADER_HEIGHT), fill=BLACK)
        title_font = load_font(34, bold=True)
        sub_font = load_font(20)
        title = f"WAR {status.war_number}" if status.war_number is not None else "WAR ?"
        draw.text((MARGIN, 12), title, font=title_font, fill=WHITE)

        elapsed = format_elapsed(status.war_elapsed())
        draw.text(
            (self._width - MARGIN - _text_width(draw, elapsed, sub_font), 22),
            elapsed,
            font=sub_font,
            fill=WHITE,
        )

    def _draw_team_summary(self, draw: ImageDraw.ImageDraw, status: ConquerStatus, *, top: int) -> int:
        label_font = load_font(20, bold=True)
        counts = status.team_counts()
        total = max(sum(counts.values()), 1)
        label_width = 130
        count_width = 60
        bar_left = MARGIN + label_width
        bar_right = self._width - MARGIN - count_width
        row_height = 30

        y = top
        for team in Team:
            count = counts[team]
            draw.text((MARGIN, y + 2), team.display_name, font=label_font, fill=BLACK)
            draw.rectangle((bar_left, y + 4, bar_right, y + row_height - 6), outline=BLACK, width=1)
            filled = bar_left + round((bar_right - bar_left) * count / total)
            if filled > bar_left:
                draw.rectangle((bar_left, y + 4, filled, y + row_height - 6), fill=TEAM_SHADES[team])
            text = str(count)
            draw.text(
                (self._width - MARGIN - _text_width(draw, text, label_font), y + 2),
                text,
                font=label_font,
                fill=BLACK,
            )
            y += row_height

        if status.required_victory_towns:
            note_font = load_font(14)
            draw.text(
                (MARGIN, y),
                f"{status.required_victory_towns} victory towns needed to win",
                font=note_font,
                fill=BLACK,
            )
            y += 18
        return y

    def _draw_regions(self, draw: ImageDraw.ImageDraw, status: ConquerStatus, *, top: int, bottom: int) -> None:
        regions = status.by_region()
        draw.line((MARGIN, top - 6, self._width - MARGIN, top - 6), fill=BLACK, width=1)
        if not regions:
            draw.text((MARGIN, top), "No territory data yet", font=load_font(16), fill=BLACK)
            return

        font = load_font(12)
        row_height = 15
        rows = max((bottom - top) // row_height, 1)
        capacity = rows * REGION_COLUMNS
        column_width = (self._width - 2 * MARGIN) // REGION_COLUMNS
        items = list(regions.items())
        if len(items) > capacity:
            shown, hidden = items[: capacity - 1], len(items) - (capacity - 1)
        else:
            shown, hidden = items, 0

        for index, (region, counts) in enumerate(shown):
            column, row = divmod(index, rows)
            x = MARGIN + column * column_width
            y = top + row * row_height
            self._draw_region_row(draw, x, y, column_width - 8, region, counts, font)

        if hidden:
            column, row = divmod(len(shown), rows)
            draw.text(
                (MARGIN + column * column_width, top + row * row_height),
                f"+{hidden} more regions",
                font=font,
                fill=BLACK,
            )

    def _draw_region_row(
        self,
        draw: ImageDraw.ImageDraw,
        x: int,
        y: int,
        width: int,
        region: str,
        counts: dict[Team, int],
        font: ImageFont.FreeTypeFont | ImageFont.ImageFont,
    ) -> None:
        bar_width = 60
        name = region_display_name(region)
        summary = f"{counts[Team.WARDENS]}/{counts[Team.COLONIALS]}/{counts[Team.NEUTRAL]}"
        name_width = width - bar_width - _text_width(draw, summary, font) - 12
        while name and _text_width(draw, name, font) > name_width:
            name = name[:-1]
        draw.text((x, y), name, font=font, fill=BLACK)

        summary_x = x + width - bar_width - 6 - _text_width(draw, summary, font)
        draw.text((summary_x, y), summary, font=font, fill=BLACK)

        # Stacked bar: share of each faction within the region.
        total = sum(counts.values())
        bar_left = x + width - bar_width
        cursor = bar_left
        for team in Team:
            if not total or not counts[team]:
                continue
            segment = round(bar_width * counts[team] / total)
            draw.rectangle((cursor, y + 3, min(cursor + segment, bar_left + bar_width), y + 11), fill=TEAM_SHADES[team])
            cursor += segment
        draw.rectangle((bar_left, y + 3, bar_left + bar_width, y + 11), outline=BLACK, width=1)

    def _draw_footer(self, draw: ImageDraw.ImageDraw, status: ConquerStatus, reason: str) -> None:
        font = load_font(14)
        top = self._height - FOOTER_HEIGHT
        draw.line((0, top, self._width, top), fill=BLACK, width=1)
        updated = status.taken_at.astimezone(UTC).strftime("%Y-%m-%d %H:%M UTC")
        draw.text((MARGIN, top + 5), f"Updated {updated}", font=font, fill=BLACK)
        if reason:
            draw.text(
                (self._width - MARGIN - _text_width(draw, reason, font), top + 5),
                reason,
                font=font,
                fill=BLACK,
            )
