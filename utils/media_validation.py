"""Validation helpers for uploaded images."""

from fastapi import HTTPException, UploadFile

ALLOWED_IMAGE_TYPES = {
    "image/jpeg",
    "image/jpg",
    "image/png",
    "image/webp",
    "image/gif",
    "image/bmp",
}

MAX_IMAGE_BYTES = 16 * 1024 * 1024


def validate_image_file(image_file: UploadFile) -> None:
    """Validate that the upload looks like a supported image.

    Camera captures arrive without a filename, so the content type is the
    primary check and the extension is only consulted when it is missing.
    """
    if image_file.content_type:
        content_type = image_file.content_type.lower().split(";", 1)[0].strip()
        if content_type not in ALLOWED_IMAGE_TYPES and content_type != "application/octet-stream":
            raise HTTPException(status_code=415, detail=f"Unsupported image content type: {image_file.content_type}")
    elif image_file.filename and not image_file.filename.lower().endswith(
        (".jpg", ".jpeg", ".png", ".webp", ".gif", ".bmp")
    ):
        raise HTTPException(status_code=415, detail="Unsupported or missing image content type.")


async def read_image_bytes(image_file: UploadFile) -> bytes:
    """Read validated image bytes. An empty upload is returned as b"" for the caller to reject."""
    validate_image_file(image_file)
    image_bytes = await image_file.read()
    if len(image_bytes) > MAX_IMAGE_BYTES:
        raise HTTPException(status_code=413, detail="Uploaded image is too large.")
    return image_bytes
