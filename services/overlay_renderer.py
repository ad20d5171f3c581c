"""Overlay renderer - draws translated text onto a copy of the source image.

Lines are laid out bottom-up and centered horizontally. Each line is drawn
twice: first as a black outline, then filled in gold on top, so the text
stays legible on any background.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

from PIL import ImageDraw, ImageFont

from models.errors import InvalidImageError, RenderError
from models.transport_image import TransportImage
from services.image_codec import ImageCodec

LOGGER = logging.getLogger(__name__)

MIN_FONT_SIZE = 16
FONT_SIZE_DIVISOR = 20
LINE_SPACING = 1.2
BOTTOM_MARGIN = 10

FILL_COLOR = (255, 215, 0)  # #FFD700
STROKE_COLOR = (0, 0, 0)
STROKE_WIDTH = 2
OVERLAY_JPEG_QUALITY = 90

# Horizontally centered on x, y is the alphabetic baseline.
TEXT_ANCHOR = "ms"


@dataclass(frozen=True)
class LinePlacement:
    text: str
    x: float
    y: float


@dataclass(frozen=True)
class OverlayLayout:
    font_size: int
    line_height: float
    baseline: float
    lines: List[LinePlacement]


def split_lines(text: str) -> List[str]:
    return text.replace("\r\n", "\n").replace("\r", "\n").split("\n")


def compute_layout(width: int, height: int, text: str) -> OverlayLayout:
    """Place each line of `text` for an image of the given size.

    The last line's baseline sits `BOTTOM_MARGIN` pixels above the image bottom,
    and each earlier baseline steps up by `LINE_SPACING * font_size`. Lines are
    returned top to bottom.
    """
    font_size = int(max(MIN_FONT_SIZE, height / FONT_SIZE_DIVISOR))
    line_height = font_size * LINE_SPACING
    baseline = float(height - BOTTOM_MARGIN)
    lines = split_lines(text)
    count = len(lines)
    placements = [
        LinePlacement(text=line, x=width / 2, y=baseline - (count - 1 - index) * line_height)
        for index, line in enumerate(lines)
    ]
    return OverlayLayout(font_size=font_size, line_height=line_height, baseline=baseline, lines=placements)


class OverlayRenderer:
    """Render translated text over an image.

    Args:
        codec: Codec used to decode the source image and encode the result.
        font_path: Optional TrueType font file; Pillow's bundled font is used otherwise.
    """

    def __init__(self, codec: Optional[ImageCodec] = None, font_path: Optional[str] = None) -> None:
        self.codec = codec or ImageCodec()
        self.font_path = font_path
        self._fonts: Dict[int, ImageFont.ImageFont] = {}

    def render(self, image: TransportImage, text: str) -> TransportImage:
        """Return a JPEG copy of `image` with `text` drawn along the bottom edge.

        Raises:
            RenderError: If the image cannot be decoded or the text cannot be drawn.
        """
        try:
            canvas = self.codec.decode(image)
        except InvalidImageError as exc:
            raise RenderError("Failed to load image for overlay.") from exc

        layout = compute_layout(canvas.width, canvas.height, text)
        try:
            font = self._font(layout.font_size)
            draw = ImageDraw.Draw(canvas)
            for line in layout.lines:
                if not line.text:
                    continue
                position = (line.x, line.y)
                draw.text(position, line.text, font=font, anchor=TEXT_ANCHOR, fill=STROKE_COLOR,
                          stroke_width=STROKE_WIDTH, stroke_fill=STROKE_COLOR)
                draw.text(position, line.text, font=font, anchor=TEXT_ANCHOR, fill=FILL_COLOR)
        except OSError as exc:
            LOGGER.error("Overlay drawing failed: %s", exc)
            raise RenderError("Failed to draw overlay text.") from exc

        return self.codec.to_transport(canvas, quality=OVERLAY_JPEG_QUALITY)

    def _font(self, size: int) -> ImageFont.ImageFont:
        font = self._fonts.get(size)
        if font is None:
            if self.font_path:
                font = ImageFont.truetype(self.font_path, size)
            else:
                font = ImageFont.load_default(size=size)
            self._fonts[size] = font
        return font
