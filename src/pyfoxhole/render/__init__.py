"""Snapshot renderers."""

from pyfoxhole.render.base import Renderer
from pyfoxhole.render.epaper import EpaperRenderer

__all__ = ["EpaperRenderer", "Renderer"]
