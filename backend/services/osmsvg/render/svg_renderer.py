"""
Layered SVG rendering.

The renderer accumulates drawable elements per layer and serializes them with
svgwrite as one SVG document:

- <style> block: one rule per registered class, optional background rule
- <defs>: clip paths, nested when a clipping layer is itself clipped
- one <g> per layer in the caller's order, each holding <path> elements

Configuration (styles, clips, background) happens before drawing; drawing
only appends; export is a read of the final state. Clip chains are checked
before anything is written, so a cycle never produces partial output.
"""

import io
import itertools
import os
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Hashable, Iterator, List, Optional, Sequence, TextIO, Tuple, Union

import svgwrite

from ..core.constants import (
    CLIP_ID_PREFIX,
    COORDINATE_PRECISION,
    MAX_CLIP_DEPTH,
    MIN_DRAWABLE_POINTS,
)
from ..core.errors import ClipCycleError
from ..core.types import Bounds, Coordinate

CanvasTransform = Callable[[Coordinate], Coordinate]
Target = Union[str, os.PathLike, TextIO]


@dataclass(frozen=True)
class Drawable:
    """
    One path element in canvas space (y already flipped to top-down).

    Attributes:
        points: Canvas coordinates
        is_ring: First and last input points were equal; fixed at draw time
    """
    points: Tuple[Coordinate, ...]
    is_ring: bool


def format_number(value: float) -> str:
    """Fixed precision, trailing zeros stripped: 12.5000 -> '12.5', -0.0 -> '0'."""
    text = f"{value:.{COORDINATE_PRECISION}f}".rstrip("0").rstrip(".")
    return "0" if text in ("", "-0") else text


def path_data(drawable: Drawable) -> str:
    """Move-to the first point, line-to the rest, close rings."""
    parts = []
    for i, (x, y) in enumerate(drawable.points):
        parts.append(f"{'M' if i == 0 else 'L'}{format_number(x)} {format_number(y)}")
    if drawable.is_ring:
        parts.append("Z")
    return " ".join(parts)


def layer_name(layer: Hashable) -> str:
    return layer.value if isinstance(layer, Enum) else str(layer)


class SvgRenderer:
    """
    Per-layer drawing groups with style and clip registries.

    Layers are any hashable keys (normally core.types.Layer).
    """

    def __init__(self, width: float, height: float, transform: Optional[CanvasTransform] = None):
        """
        Args:
            width, height: Canvas size in output units
            transform: Maps input points to canvas space with a bottom-up y
                axis (None = identity). The renderer flips y on top of it.
        """
        self.width = width
        self.height = height
        self._transform = transform
        self._styles: Dict[Hashable, Tuple[str, str]] = {}
        self._clips: Dict[Hashable, Hashable] = {}
        self._background: Optional[str] = None
        self._layers: Dict[Hashable, List[Drawable]] = {}

    @classmethod
    def from_bounds(cls, bounds: Bounds) -> "SvgRenderer":
        return cls(bounds.width, bounds.height, transform=bounds.to_canvas)

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    def set_style(self, layer: Hashable, class_name: str, declarations: str) -> None:
        self._styles[layer] = (class_name, declarations)

    def set_clip(self, layer: Hashable, clipped_by: Hashable) -> None:
        """Mask `layer` to the union of `clipped_by`'s shapes."""
        self._clips[layer] = clipped_by

    def set_background(self, color: Optional[str]) -> None:
        self._background = color

    @property
    def styles(self) -> Dict[Hashable, Tuple[str, str]]:
        return dict(self._styles)

    @property
    def clips(self) -> Dict[Hashable, Hashable]:
        return dict(self._clips)

    @property
    def background(self) -> Optional[str]:
        return self._background

    # ------------------------------------------------------------------
    # Drawing
    # ------------------------------------------------------------------

    def _to_screen(self, point: Coordinate) -> Coordinate:
        x, y = self._transform(point) if self._transform else point
        return (float(x), float(self.height - y))

    def draw(self, layer: Hashable, points: Sequence[Coordinate]) -> bool:
        """
        Append one element to a layer.

        Polylines with fewer than two points are discarded.

        Returns:
            True if an element was added
        """
        if len(points) < MIN_DRAWABLE_POINTS:
            return False
        # Points may be numpy rows; compare as plain tuples
        first, last = points[0], points[-1]
        is_ring = (float(first[0]), float(first[1])) == (float(last[0]), float(last[1]))
        drawable = Drawable(tuple(self._to_screen(p) for p in points), is_ring)
        self._layers.setdefault(layer, []).append(drawable)
        return True

    def elements(self, layer: Hashable) -> Tuple[Drawable, ...]:
        return tuple(self._layers.get(layer, ()))

    def layer_counts(self) -> Dict[str, int]:
        return {layer_name(layer): len(items) for layer, items in self._layers.items()}

    # ------------------------------------------------------------------
    # Export
    # ------------------------------------------------------------------

    def clip_chain(self, layer: Hashable) -> List[Hashable]:
        """
        Layers clipping `layer`, nearest first.

        Raises:
            ClipCycleError: On a cycle or a chain deeper than MAX_CLIP_DEPTH
        """
        chain: List[Hashable] = []
        seen = {layer}
        current = self._clips.get(layer)
        while current is not None:
            if current in seen:
                names = " -> ".join(layer_name(l) for l in [layer, *chain, current])
                raise ClipCycleError(f"Clip relations form a cycle: {names}")
            if len(chain) >= MAX_CLIP_DEPTH:
                raise ClipCycleError(
                    f"Clip chain of {layer_name(layer)} deeper than {MAX_CLIP_DEPTH}"
                )
            seen.add(current)
            chain.append(current)
            current = self._clips.get(current)
        return chain

    def _stylesheet(self) -> str:
        rules: Dict[str, str] = {}
        for class_name, declarations in self._styles.values():
            rules[class_name] = declarations
        lines = [f".{name} {{ {decl} }}" for name, decl in rules.items()]
        if self._background:
            lines.append(f"svg {{ background-color: {self._background}; }}")
        return "\n".join(lines)

    def _emit_clip(self, dwg: svgwrite.Drawing, layer: Hashable, ids: Iterator[int]) -> str:
        extra = {}
        parent = self._clips.get(layer)
        if parent is not None:
            extra["clip_path"] = f"url(#{self._emit_clip(dwg, parent, ids)})"
        clip_id = f"{CLIP_ID_PREFIX}-{next(ids)}"
        clip_path = dwg.defs.add(dwg.clipPath(id=clip_id, **extra))
        for drawable in self._layers.get(layer, ()):
            clip_path.add(dwg.path(d=path_data(drawable)))
        return clip_id

    def build_document(self, layer_order: Sequence[Hashable]) -> svgwrite.Drawing:
        """
        Build the SVG drawing for the given layer order.

        Layers missing from `layer_order` are not rendered.

        Raises:
            ClipCycleError: Before building anything, if a listed layer's clip
                chain is cyclic or too deep
        """
        for layer in layer_order:
            self.clip_chain(layer)

        # Clip ids are unique per document, not per renderer
        ids = itertools.count()

        width = format_number(self.width)
        height = format_number(self.height)
        # debug=False: svgwrite's validator rejects data-* attributes
        dwg = svgwrite.Drawing(size=(width, height), viewBox=f"0 0 {width} {height}", debug=False)
        dwg.add(dwg.style(self._stylesheet()))

        for layer in layer_order:
            group = dwg.g()
            group["data-layer"] = layer_name(layer)
            clipped_by = self._clips.get(layer)
            if clipped_by is not None:
                group["clip-path"] = f"url(#{self._emit_clip(dwg, clipped_by, ids)})"
            style_entry = self._styles.get(layer)
            for drawable in self._layers.get(layer, ()):
                path = dwg.path(d=path_data(drawable))
                if style_entry is not None:
                    path["class"] = style_entry[0]
                group.add(path)
            dwg.add(group)
        return dwg

    def to_string(self, layer_order: Sequence[Hashable]) -> str:
        buf = io.StringIO()
        self.build_document(layer_order).write(buf)
        return buf.getvalue()

    def export(self, target: Target, layer_order: Sequence[Hashable]) -> None:
        """
        Serialize the document to a path or text stream.

        Raises:
            ClipCycleError: Nothing is written
            OSError: From the sink, propagated unchanged
        """
        dwg = self.build_document(layer_order)
        if hasattr(target, "write"):
            dwg.write(target)
        else:
            dwg.saveas(os.fspath(target))
