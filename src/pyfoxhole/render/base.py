"""Renderer contract.

Rendering is an external capability to the sync machinery: anything that
can turn a :class:`ConquerStatus` into an image artifact will do.
"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Protocol

from pyfoxhole.models.territory import ConquerStatus


class Renderer(Protocol):
    """Turns a territory snapshot into a displayable image.

    ``render`` is called from a worker thread; ``reason`` is informational.
    """

    @property
    def last_render_time(self) -> datetime | None:
        ...

    def render(self, status: ConquerStatus, *, reason: str = "") -> Path:
        ...
