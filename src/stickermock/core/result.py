"""
Generation result types.

A session ends in exactly one GenerationResult: a Success carrying the
generated image, or a Failure carrying an ErrorKind and a user-facing message.
"""

import base64
import binascii
from dataclasses import dataclass, field

from stickermock.utils.exceptions import ErrorKind

_EXTENSIONS = {
    "image/png": "png",
    "image/jpeg": "jpg",
    "image/jpg": "jpg",
    "image/webp": "webp",
    "image/gif": "gif",
}


def decode_image_data(data: str) -> bytes:
    """
    Decode base64 image data as the service returns it.

    Missing padding is tolerated.

    Raises:
        ValueError: If data is not valid base64 or decodes to nothing
    """
    data = data.strip()
    try:
        decoded = base64.b64decode(data + "=" * (-len(data) % 4))
    except binascii.Error as e:
        raise ValueError(f"invalid base64 image data: {e}") from e
    if not decoded:
        raise ValueError("image data is empty")
    return decoded


@dataclass(frozen=True)
class Success:
    """Generated image as returned by the service (base64 plus media type)."""

    image_b64: str = field(repr=False)
    media_type: str

    @property
    def image_bytes(self) -> bytes:
        """Decoded image bytes."""
        return decode_image_data(self.image_b64)

    @property
    def extension(self) -> str:
        """File extension matching media_type (png when unknown)."""
        return _EXTENSIONS.get(self.media_type.lower(), "png")


@dataclass(frozen=True)
class Failure:
    """A failed session with its error classification."""

    kind: ErrorKind
    message: str


GenerationResult = Success | Failure

__all__ = ["Failure", "GenerationResult", "Success", "decode_image_data"]
