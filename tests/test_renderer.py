from __future__ import annotations

from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest
from PIL import Image

from pyfoxhole.config import FoxholeConfig
from pyfoxhole.exceptions import FoxholeRenderError
from pyfoxhole.models.team import Team
from pyfoxhole.models.territory import ConquerStatus, TerritoryKey, TerritoryRecord
from pyfoxhole.render.epaper import EpaperRenderer, dither_to_levels, format_elapsed, region_display_name


def _status(regions: int = 3) -> ConquerStatus:
    teams = list(Team)
    records = tuple(
        TerritoryRecord(
            key=TerritoryKey(icon_type=56, x=0.1 * (i % 5), y=0.5, region=f"Region{i // 5:02d}Hex"),
            team=teams[i % 3],
            label="Town Base 1",
        )
        for i in range(regions * 5)
    )
    start = datetime(2026, 1, 1, tzinfo=UTC)
    return ConquerStatus(
        territories=records,
        war_number=120,
        conquest_start_time=start,
        required_victory_towns=32,
        taken_at=start + timedelta(days=3, hours=4),
    )


def test_render_writes_dithered_png(tmp_path: Path) -> None:
    output = tmp_path / "out" / "latest.png"
    renderer = EpaperRenderer(output)
    assert renderer.last_render_time is None

    path = renderer.render(_status(), reason="2 town changes")

    assert path == output
    assert not output.with_name("latest.png.tmp").exists()
    with Image.open(output) as image:
        assert image.size == (800, 480)
        assert image.mode == "L"
        colors = image.getcolors()
    assert colors is not None and len(colors) <= 16
    assert renderer.last_render_time is not None


def test_render_many_regions_and_empty_state(tmp_path: Path) -> None:
    renderer = EpaperRenderer.from_config(
        FoxholeConfig(output_path=str(tmp_path / "latest.png"), display_width=400, display_height=300, gray_levels=4)
    )

    renderer.render(_status(regions=60))
    renderer.render(ConquerStatus())

    with Image.open(renderer.output_path) as image:
        assert image.size == (400, 300)
        colors = image.getcolors()
    assert colors is not None and len(colors) <= 4


def test_render_failure_raises_render_error(tmp_path: Path) -> None:
    target = tmp_path / "latest.png"
    target.mkdir()

    with pytest.raises(FoxholeRenderError):
        EpaperRenderer(target).render(_status())

    assert not (tmp_path / "latest.png.tmp").exists()


def test_dither_keeps_only_palette_levels() -> None:
    gradient = Image.linear_gradient("L").resize((64, 64))

    dithered = dither_to_levels(gradient, 4)

    assert dithered.mode == "L"
    assert {value for _count, value in dithered.getcolors()} <= {0, 85, 170, 255}


def test_region_display_name() -> None:
    assert region_display_name("TheFingersHex") == "The Fingers"
    assert region_display_name("DeadLandsHex") == "Dead Lands"
    assert region_display_name("Hex") == "Hex"


def test_format_elapsed() -> None:
    assert format_elapsed(None) == "not started"
    assert format_elapsed(timedelta(minutes=5)) == "Day 1, 00h 05m"
    assert format_elapsed(timedelta(days=2, hours=13, minutes=7)) == "Day 3, 13h 07m"
