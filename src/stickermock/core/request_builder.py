"""
Request building for the Gemini generateContent endpoint.

Pure functions: no I/O happens here, so validation failures are reported
before any network resource is touched.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from stickermock.core.encoder import EncodedImage
from stickermock.utils.exceptions import ValidationError

# The only provider option exposed; both text and image are requested back
DEFAULT_GENERATION_OPTIONS: Mapping[str, Any] = MappingProxyType(
    {"responseModalities": ("TEXT", "IMAGE")}
)
RECOGNIZED_OPTIONS = frozenset({"responseModalities"})


@dataclass(frozen=True)
class GenerationRequest:
    """One immutable generation request."""

    prompt_text: str
    image_b64: str = field(repr=False)
    image_media_type: str
    generation_options: Mapping[str, Any] = field(default_factory=lambda: DEFAULT_GENERATION_OPTIONS)

    def to_payload(self) -> dict[str, Any]:
        """Render the JSON request body."""
        config = {
            name: list(value) if isinstance(value, (list, tuple)) else value
            for name, value in self.generation_options.items()
        }
        return {
            "contents": [
                {
                    "parts": [
                        {"text": self.prompt_text},
                        {
                            "inlineData": {
                                "mimeType": self.image_media_type,
                                "data": self.image_b64,
                            }
                        },
                    ]
                }
            ],
            "generationConfig": config,
        }


def _validate_options(options: Mapping[str, Any]) -> Mapping[str, Any]:
    unknown = sorted(set(options) - RECOGNIZED_OPTIONS)
    if unknown:
        raise ValidationError(
            f"Unrecognized generation option(s): {', '.join(unknown)}.",
            field="generation_options",
        )
    merged = dict(DEFAULT_GENERATION_OPTIONS)
    merged.update(options)
    modalities = merged["responseModalities"]
    if (
        not isinstance(modalities, (list, tuple))
        or not modalities
        or not all(isinstance(m, str) and m for m in modalities)
    ):
        raise ValidationError(
            "responseModalities must be a non-empty list of strings.",
            field="generation_options",
        )
    merged["responseModalities"] = tuple(modalities)
    return MappingProxyType(merged)


def build_request(
    prompt_text: str,
    encoded_image: EncodedImage,
    options: Mapping[str, Any] | None = None,
) -> GenerationRequest:
    """
    Build a GenerationRequest from a prompt and an encoded image.

    Args:
        prompt_text: Scene description
        encoded_image: Output of encode_image()
        options: Provider generation options; only responseModalities is recognized

    Returns:
        GenerationRequest ready for GenerationClient.send()

    Raises:
        ValidationError: If the prompt or image is empty, or an option is invalid
    """
    if not prompt_text or not prompt_text.strip():
        raise ValidationError("Prompt cannot be empty.", field="prompt")
    if encoded_image is None or encoded_image.is_empty:
        raise ValidationError("Image cannot be empty.", field="image")

    return GenerationRequest(
        prompt_text=prompt_text,
        image_b64=encoded_image.data_b64,
        image_media_type=encoded_image.media_type,
        generation_options=_validate_options(options or {}),
    )


__all__ = [
    "DEFAULT_GENERATION_OPTIONS",
    "RECOGNIZED_OPTIONS",
    "GenerationRequest",
    "build_request",
]
