"""SVG render surface used to draw node images."""

from __future__ import annotations

import logging
from xml.sax.saxutils import escape

from ..models import NodeDoc, Pin

logger = logging.getLogger(__name__)

# Layout constants (pixels).
CHAR_WIDTH = 7
HEADER_HEIGHT = 28
ROW_HEIGHT = 20
PADDING = 10
PIN_RADIUS = 5
MIN_WIDTH = 120

HEADER_COLOURS: dict[str, str] = {
    "native": "#2f5d8a",
    "content": "#5b7d2f",
}
DEFAULT_HEADER_COLOUR = "#555555"


def _pin_label(pin: Pin) -> str:
    return pin.name if pin.type == "any" else f"{pin.name}: {pin.type}"


class RenderSurface:
    """Shared layout context; only one node can be drawn at a time.

    The surface is opened by the processor's ``init`` and closed by its
    ``finalize``. Drawing on a closed surface is an error.
    """

    def __init__(self) -> None:
        self._open = False
        self.drawn = 0

    @property
    def is_open(self) -> bool:
        return self._open

    def open(self) -> "RenderSurface":
        self._open = True
        self.drawn = 0
        logger.debug("Render surface opened")
        return self

    def close(self) -> None:
        if self._open:
            logger.debug("Render surface closed after %d node(s)", self.drawn)
        self._open = False

    def __enter__(self) -> "RenderSurface":
        return self.open()

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def draw(self, doc: NodeDoc) -> str:
        """Lay out *doc* as a node box and return the SVG markup."""
        if not self._open:
            raise RuntimeError("render surface is not open")

        left = [_pin_label(p) for p in doc.inputs]
        right = [_pin_label(p) for p in doc.outputs]
        longest_left = max((len(s) for s in left), default=0)
        longest_right = max((len(s) for s in right), default=0)
        width = max(
            MIN_WIDTH,
            len(doc.title) * CHAR_WIDTH + 2 * PADDING,
            (longest_left + longest_right) * CHAR_WIDTH + 4 * PADDING,
        )
        rows = max(len(left), len(right), 1)
        height = HEADER_HEIGHT + rows * ROW_HEIGHT + PADDING
        colour = HEADER_COLOURS.get(doc.kind, DEFAULT_HEADER_COLOUR)

        parts = [
            f'<svg xmlns="http://www.w3.org/2000/svg" width="{width}" height="{height}" '
            f'viewBox="0 0 {width} {height}">',
            f'<rect x="0.5" y="0.5" width="{width - 1}" height="{height - 1}" rx="6" '
            f'fill="#1e1e1e" stroke="#000000"/>',
            f'<rect x="0.5" y="0.5" width="{width - 1}" height="{HEADER_HEIGHT}" rx="6" fill="{colour}"/>',
            f'<text x="{PADDING}" y="{HEADER_HEIGHT - 9}" font-family="sans-serif" font-size="13" '
            f'font-weight="bold" fill="#ffffff">{escape(doc.title)}</text>',
        ]
        for i, label in enumerate(left):
            y = HEADER_HEIGHT + (i + 1) * ROW_HEIGHT - 6
            parts.append(f'<circle cx="{PADDING}" cy="{y - 4}" r="{PIN_RADIUS}" fill="#9ecfff"/>')
            parts.append(
                f'<text x="{PADDING + 2 * PIN_RADIUS}" y="{y}" font-family="sans-serif" '
                f'font-size="11" fill="#dddddd">{escape(label)}</text>'
            )
        for i, label in enumerate(right):
            y = HEADER_HEIGHT + (i + 1) * ROW_HEIGHT - 6
            parts.append(f'<circle cx="{width - PADDING}" cy="{y - 4}" r="{PIN_RADIUS}" fill="#ffd27f"/>')
            parts.append(
                f'<text x="{width - PADDING - 2 * PIN_RADIUS}" y="{y}" text-anchor="end" '
                f'font-family="sans-serif" font-size="11" fill="#dddddd">{escape(label)}</text>'
            )
        parts.append("</svg>")

        self.drawn += 1
        return "\n".join(parts) + "\n"
