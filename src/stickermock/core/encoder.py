"""
Image encoding for stickermock.

Reads the uploaded sticker image and converts it into the base64 payload and
media type sent as inline data to the generation service.
"""

import base64
import io
import mimetypes
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO

from PIL import Image

from stickermock.logging_config import get_logger
from stickermock.utils.exceptions import FileReadError, ValidationError

logger = get_logger(__name__)

# Used when neither the caller, the file name, nor the content identifies the type
DEFAULT_MEDIA_TYPE = "image/png"

ImageSource = str | Path | bytes | BinaryIO


@dataclass(frozen=True)
class EncodedImage:
    """Base64 image payload plus the media type the service should decode it as."""

    data_b64: str
    media_type: str

    @property
    def is_empty(self) -> bool:
        return not self.data_b64


def _media_type_from_magic(data: bytes) -> str | None:
    """Identify the image media type from magic bytes. Returns None if unknown."""
    if data[:8] == b"\x89PNG\r\n\x1a\n":
        return "image/png"
    if data[:3] == b"\xff\xd8\xff":
        return "image/jpeg"
    if data[:6] in (b"GIF87a", b"GIF89a"):
        return "image/gif"
    if len(data) >= 12 and data[:4] == b"RIFF" and data[8:12] == b"WEBP":
        return "image/webp"
    if len(data) >= 12 and data[4:12] in (b"ftypheic", b"ftypheix", b"ftypmif1"):
        return "image/heic"
    return None


def _declared_media_type(source: ImageSource, media_type: str | None) -> str | None:
    """Media type declared by the caller or implied by the source's file name."""
    if media_type and media_type.strip():
        return media_type.strip().lower()
    name: str | None = None
    if isinstance(source, (str, Path)):
        name = str(source)
    elif not isinstance(source, bytes):
        name = getattr(source, "name", None)
    if isinstance(name, str) and name:
        guessed, _ = mimetypes.guess_type(name)
        return guessed
    return None


def _read_source(source: ImageSource) -> tuple[bytes, str]:
    """Read raw bytes from source. Returns (data, description for messages)."""
    if isinstance(source, bytes):
        return source, "<bytes>"
    if isinstance(source, (str, Path)):
        path = Path(source)
        try:
            return path.read_bytes(), str(path)
        except OSError as e:
            raise FileReadError(f"Failed to read image file: {e}", path=str(path)) from e
    label = str(getattr(source, "name", "<stream>"))
    try:
        data = source.read()
    except (OSError, ValueError) as e:
        raise FileReadError(f"Failed to read image stream: {e}", path=label) from e
    if not isinstance(data, bytes):
        raise FileReadError("Image stream must be opened in binary mode.", path=label)
    return data, label


def _verify_image(data: bytes, label: str) -> None:
    """Raise FileReadError if data does not decode as an image."""
    try:
        with Image.open(io.BytesIO(data)) as image:
            image.verify()
    except Exception as e:
        raise FileReadError(f"File is not a readable image: {e}", path=label) from e


def encode_image(source: ImageSource, media_type: str | None = None) -> EncodedImage:
    """
    Read an image and encode it as base64 with its media type.

    The media type is taken from media_type, else from the source's file name,
    else from the image's magic bytes, else DEFAULT_MEDIA_TYPE. A declared type
    is never replaced by a guessed one.

    Args:
        source: Path to the image, raw bytes, or a binary file object
        media_type: Declared media type (e.g. 'image/png'), if known

    Returns:
        EncodedImage with base64 data and media type

    Raises:
        ValidationError: If the image is empty or the declared type is not an image type
        FileReadError: If the source cannot be read or is not a decodable image
    """
    declared = _declared_media_type(source, media_type)
    if declared is not None and not declared.startswith("image/"):
        raise ValidationError(
            f"Unsupported file type {declared!r}; please upload an image.",
            field="image_media_type",
        )

    data, label = _read_source(source)
    if not data:
        raise ValidationError("Image is empty.", field="image")
    _verify_image(data, label)

    resolved = declared or _media_type_from_magic(data) or DEFAULT_MEDIA_TYPE
    logger.debug("Encoded image source=%s media_type=%s bytes=%d", label, resolved, len(data))
    return EncodedImage(
        data_b64=base64.b64encode(data).decode("ascii"),
        media_type=resolved,
    )


__all__ = ["DEFAULT_MEDIA_TYPE", "EncodedImage", "ImageSource", "encode_image"]
