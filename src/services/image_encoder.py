"""Turn uploaded photos into base64 payloads for the vision model."""

import base64
import binascii
import logging
from dataclasses import dataclass

from fastapi import UploadFile

from src.services.exceptions import ReadError

logger = logging.getLogger(__name__)

ALLOWED_IMAGE_TYPES = {"image/jpeg", "image/png", "image/gif", "image/webp"}


@dataclass(frozen=True)
class EncodedImage:
    """An image held in memory as base64 text plus its MIME type."""

    data: str
    media_type: str


def encode_image(image_data: bytes, media_type: str | None) -> EncodedImage:
    """Encode raw image bytes.

    Raises:
        ReadError: if the type is not a supported image type or there is no data.
    """
    if media_type not in ALLOWED_IMAGE_TYPES:
        raise ReadError(
            f"Invalid file type {media_type!r}. "
            f"Allowed types: {', '.join(sorted(ALLOWED_IMAGE_TYPES))}"
        )
    if not image_data:
        raise ReadError("Image file is empty")

    return EncodedImage(
        data=base64.standard_b64encode(image_data).decode("utf-8"),
        media_type=media_type,
    )


def decode_image(image_data_b64: str, media_type: str) -> EncodedImage:
    """Rebuild an EncodedImage from base64 text handed over a task queue."""
    try:
        raw = base64.b64decode(image_data_b64, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ReadError(f"Image payload is not valid base64: {e}") from e
    return encode_image(raw, media_type)


async def encode_upload(file: UploadFile) -> EncodedImage:
    """Read an uploaded file and encode it.

    Note: must stay async because UploadFile.read() is async.
    """
    try:
        image_data = await file.read()
    except OSError as e:
        logger.error(f"Failed to read uploaded image {file.filename!r}: {e}")
        raise ReadError(f"Could not read uploaded image: {e}") from e

    return encode_image(image_data, file.content_type)
