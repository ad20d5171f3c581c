import base64
import io
import math

import pytest
from PIL import Image

from conftest import make_image_bytes
from models.errors import InvalidImageError
from models.transport_image import TransportImage
from services.image_codec import ImageCodec, thumbnail_size


@pytest.mark.parametrize(
    "width,height",
    [(100, 100), (640, 480), (480, 640), (1920, 1080), (33, 7), (4000, 3), (7, 5000), (101, 99)],
)
def test_thumbnail_size_keeps_aspect_ratio(width, height):
    thumb_w, thumb_h = thumbnail_size(width, height, 100)
    assert thumb_w == 100
    assert thumb_h == max(1, math.floor(height * 100 / width + 0.5))


@pytest.mark.parametrize("height,expected", [(5, 3), (7, 4), (9, 5), (3, 2)])
def test_thumbnail_size_rounds_halves_up(height, expected):
    assert thumbnail_size(200, height, 100) == (100, expected)


def test_thumbnail_size_rejects_zero_width():
    with pytest.raises(InvalidImageError):
        thumbnail_size(0, 50, 100)


def test_encode_binary_upload_sniffs_type():
    codec = ImageCodec()
    raw = make_image_bytes(64, 32)
    image = codec.encode(raw)

    assert image.mime_type == "image/png"
    assert base64.b64decode(image.data) == raw
    assert image.data_url().startswith("data:image/png;base64,")


def test_encode_accepts_pre_encoded_payload():
    codec = ImageCodec()
    raw = make_image_bytes(64, 32, fmt="JPEG")
    encoded = base64.b64encode(raw)

    image = codec.encode(encoded + b"\n")

    assert image.data == encoded.decode("ascii")
    assert image.mime_type == "image/jpeg"


def test_decode_returns_rgb_and_flattens_alpha():
    codec = ImageCodec()
    image = codec.encode(make_image_bytes(20, 10, color=(0, 0, 0, 0)))

    decoded = codec.decode(image)

    assert decoded.mode == "RGB"
    assert decoded.size == (20, 10)
    assert decoded.getpixel((5, 5)) == (255, 255, 255)


def test_decode_rejects_non_image_bytes():
    codec = ImageCodec()
    with pytest.raises(InvalidImageError):
        codec.decode(TransportImage(data=base64.b64encode(b"not an image").decode("ascii")))
    with pytest.raises(InvalidImageError):
        codec.decode(TransportImage(data="***"))


def test_thumbnail_is_jpeg_at_fixed_width():
    codec = ImageCodec()
    thumb = codec.thumbnail(codec.encode(make_image_bytes(400, 300)), max_width=100)

    assert thumb.mime_type == "image/jpeg"
    with Image.open(io.BytesIO(thumb.to_bytes())) as img:
        assert img.format == "JPEG"
        assert img.size == (100, 75)
