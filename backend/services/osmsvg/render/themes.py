"""
Named style sets for the renderer.

A theme is a background color plus one (class, declarations) pair per
layer. apply_theme() only touches styles and background; clip relations are
configured separately by configure_clips().
"""

from dataclasses import dataclass, field
from typing import Dict, Tuple

from ..core.constants import CLIP_RELATIONS
from ..core.types import Layer
from .svg_renderer import SvgRenderer

Style = Tuple[str, str]


@dataclass(frozen=True)
class Theme:
    name: str
    background: str
    styles: Dict[Layer, Style] = field(default_factory=dict)


NIGHT_THEME = Theme(
    name="night",
    background="#000020",
    styles={
        Layer.ROAD: ("road", "fill:none; stroke:darkgrey; stroke-width:0.07%; stroke-linecap:round"),
        Layer.BUILDING: ("building", "fill:lightgrey; stroke:lightgrey; stroke-width:1px"),
        Layer.PARK_BUILDING: ("park-building", "fill:#617d61; stroke:#617d61; stroke-width:1px"),
        Layer.PARK_PATH: ("park-path", "fill:none; stroke:#617d61; stroke-width:0.01px"),
        Layer.COASTLINE: ("coastline", "fill:grey; stroke:white; stroke-width:1px"),
        Layer.TRANSIT: ("subway", "fill:none; stroke:#ff0000; stroke-width:0.07%; stroke-linecap:round"),
        Layer.PARK: ("park", "fill: #adbfad; stroke:none;"),
    },
)

PUKE_THEME = Theme(
    name="puke",
    background="#1f2345",
    styles={
        Layer.ROAD: ("road", "fill:none; stroke:#8b8ca9; stroke-width:0.07%; stroke-linecap:round"),
        Layer.BUILDING: ("building", "fill:#dc9433; stroke:#000; stroke-width:0.01px"),
        Layer.PARK_BUILDING: ("park-building", "fill:#ff0000; stroke:#f44336; stroke-width:0.1px"),
        Layer.PARK_PATH: ("park-path", "fill:none; stroke:#e841f4; stroke-width:0.01px"),
        Layer.COASTLINE: ("coastline", "fill:#eee; stroke:white; stroke-width:1px"),
        Layer.TRANSIT: ("subway", "fill:none; stroke:#ff0000; stroke-width:0.07%; stroke-linecap:round"),
        Layer.PARK: ("park", "fill:#42f442; stroke:none;"),
    },
)

GRAY_THEME = Theme(
    name="gray",
    background="#fff",
    styles={
        Layer.ROAD: ("road", "fill:none; stroke:#bbb; stroke-width:0.07%; stroke-linecap:round"),
        Layer.BUILDING: ("building", "fill:#fff; stroke:none;"),
        Layer.PARK_BUILDING: ("park-building", "fill:#777; stroke:none;"),
        Layer.PARK_PATH: ("park-path", "fill:none; stroke:#777; stroke-width:0.01px"),
        Layer.TRANSIT: ("subway", "fill:none; stroke:#ff0000; stroke-width:0.3%; stroke-linecap:round"),
        Layer.COASTLINE: ("coastline", "fill:#777; stroke:none;"),
        Layer.PARK: ("park", "fill:#777; stroke:none;"),
    },
)

THEMES: Dict[str, Theme] = {theme.name: theme for theme in (NIGHT_THEME, PUKE_THEME, GRAY_THEME)}


def get_theme(name: str) -> Theme:
    """
    Raises:
        ValueError: If no theme has this name
    """
    try:
        return THEMES[name]
    except KeyError:
        raise ValueError(f"Unknown theme {name!r}; expected one of {sorted(THEMES)}")


def apply_theme(renderer: SvgRenderer, name: str) -> Theme:
    theme = get_theme(name)
    renderer.set_background(theme.background)
    for layer, (class_name, declarations) in theme.styles.items():
        renderer.set_style(layer, class_name, declarations)
    return theme


def configure_clips(renderer: SvgRenderer) -> None:
    for layer, clipped_by in CLIP_RELATIONS.items():
        renderer.set_clip(layer, clipped_by)
