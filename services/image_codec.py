"""Image codec service.

Provides a small OOP wrapper around Pillow to move captured images between
raw bytes, the base64 transport encoding used by the inference service and
the history store, and decoded Pillow images. It also produces the
fixed-width JPEG thumbnails stored with each history entry.

Public class: `ImageCodec`

Example:
    codec = ImageCodec()
    image = codec.encode(raw_bytes)
    thumb = codec.thumbnail(image, max_width=100)
"""
from __future__ import annotations

import base64
import binascii
import io
import math
from typing import Tuple

from PIL import Image

from models.errors import InvalidImageError
from models.transport_image import TransportImage

_MAGIC_PREFIXES = (
    (b"\xff\xd8\xff", "image/jpeg"),
    (b"\x89PNG\r\n\x1a\n", "image/png"),
    (b"GIF8", "image/gif"),
    (b"BM", "image/bmp"),
)


def thumbnail_size(width: int, height: int, max_width: int) -> Tuple[int, int]:
    """Return the proportional thumbnail size whose width equals `max_width`.

    Raises:
        InvalidImageError: If the source width is zero.
    """
    if width <= 0:
        raise InvalidImageError("Source image has zero width.")
    # Halves round up, never to even.
    return max_width, max(1, math.floor(height * max_width / width + 0.5))


def _sniff_mime_type(raw: bytes) -> str:
    for prefix, mime_type in _MAGIC_PREFIXES:
        if raw.startswith(prefix):
            return mime_type
    if raw[:4] == b"RIFF" and raw[8:12] == b"WEBP":
        return "image/webp"
    return "image/jpeg"


class ImageCodec:
    """Convert capture bytes to and from the transport encoding.

    Args:
        background: Color used to flatten images with alpha before JPEG encoding.
    """

    def __init__(self, background: Tuple[int, int, int] = (255, 255, 255)) -> None:
        self.background = background

    def encode(self, raw: bytes) -> TransportImage:
        """Encode raw capture bytes (file contents or a camera frame) for transport.

        Input that is already base64 text is accepted as-is, so uploads from
        clients that pre-encode their payload take the same path as binary files.
        """
        stripped = raw.strip()
        try:
            decoded = base64.b64decode(stripped, validate=True)
        except (binascii.Error, ValueError):
            return TransportImage(data=base64.b64encode(raw).decode("ascii"), mime_type=_sniff_mime_type(raw))
        return TransportImage(data=stripped.decode("ascii"), mime_type=_sniff_mime_type(decoded))

    def decode(self, image: TransportImage) -> Image.Image:
        """Decode a transport image into an RGB Pillow image.

        Raises:
            InvalidImageError: If the data is not base64 or not a supported image.
        """
        try:
            raw = base64.b64decode(image.data, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise InvalidImageError("Invalid base64 data provided") from exc

        try:
            with Image.open(io.BytesIO(raw)) as src:
                src.load()
                return self._flatten(src)
        except InvalidImageError:
            raise
        except Exception as exc:
            raise InvalidImageError("Decoded bytes are not a supported image format") from exc

    def to_transport(self, image: Image.Image, quality: int = 90) -> TransportImage:
        """Encode a Pillow image as a base64 JPEG transport image."""
        out_io = io.BytesIO()
        self._flatten(image).save(out_io, format="JPEG", quality=quality)
        return TransportImage(data=base64.b64encode(out_io.getvalue()).decode("ascii"), mime_type="image/jpeg")

    def thumbnail(self, image: TransportImage, max_width: int = 100, quality: int = 70) -> TransportImage:
        """Scale an image so its width equals `max_width`, keeping the aspect ratio.

        Returns:
            A JPEG transport image of size `(max_width, round(h * max_width / w))`.

        Raises:
            InvalidImageError: If the image cannot be decoded or has zero width.
        """
        src = self.decode(image)
        size = thumbnail_size(src.width, src.height, max_width)
        resized = src.resize(size, Image.LANCZOS)
        return self.to_transport(resized, quality=quality)

    def _flatten(self, src: Image.Image) -> Image.Image:
        """Return an RGB copy of `src`, flattening alpha against the background."""
        if src.width == 0:
            raise InvalidImageError("Source image has zero width.")
        if src.mode == "RGB":
            return src.copy()
        rgba = src.convert("RGBA")
        background = Image.new("RGB", rgba.size, self.background)
        background.paste(rgba, mask=rgba.split()[3])
        return background
