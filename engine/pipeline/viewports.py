"""Responsive preview widths (component library breakpoints)."""

from __future__ import annotations

from dataclasses import dataclass

DEFAULT_VIEWPORT_ID = "MD"


@dataclass(frozen=True)
class Viewport:
    id: str
    name: str
    width: int
    label: str


VIEWPORTS: tuple[Viewport, ...] = (
    Viewport("2XL", "Desktop Extra Large", 1440, "2XL"),
    Viewport("XL", "Desktop Large", 1280, "XL"),
    Viewport("LG", "Tablet Landscape", 1024, "LG"),
    Viewport("MD", "Tablet Portrait", 768, "MD"),
    Viewport("SM", "Mobile Large", 480, "SM"),
    Viewport("XS", "Mobile Small", 320, "XS"),
)

_BY_ID = {v.id: v for v in VIEWPORTS}

DEFAULT_VIEWPORT_WIDTH = _BY_ID[DEFAULT_VIEWPORT_ID].width


def viewport_width(viewport_id: str) -> int:
    """Pixel width for a breakpoint id; unknown ids fall back to DEFAULT_VIEWPORT_ID."""
    return _BY_ID.get(viewport_id.upper(), _BY_ID[DEFAULT_VIEWPORT_ID]).width
