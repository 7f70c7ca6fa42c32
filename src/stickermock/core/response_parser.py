"""
Response parsing for the Gemini generateContent endpoint.

The response is a list of candidates, each holding content parts; a part
carries either text or inline binary data. The first candidate's first
inline-data part is the generated image. Nothing unvalidated leaves this
module: every response is classified as Success or Failure.
"""

from typing import Any

from stickermock.core.client import RawResponse
from stickermock.core.encoder import DEFAULT_MEDIA_TYPE
from stickermock.core.result import Failure, GenerationResult, Success, decode_image_data
from stickermock.logging_config import get_logger
from stickermock.utils.exceptions import ErrorKind

logger = get_logger(__name__)

NO_IMAGE_MESSAGE = "no image returned"
NOT_JSON_MESSAGE = "response was not valid JSON"
INVALID_IMAGE_MESSAGE = "image data was not valid base64"


def _first_candidate_parts(body: dict[str, Any]) -> list[Any]:
    """Return candidates[0].content.parts, or [] when any level is missing or mistyped."""
    candidates = body.get("candidates")
    if not isinstance(candidates, list) or not candidates:
        feedback = body.get("promptFeedback")
        if isinstance(feedback, dict) and feedback.get("blockReason"):
            logger.debug("Prompt blocked reason=%s", feedback.get("blockReason"))
        return []
    candidate = candidates[0]
    if not isinstance(candidate, dict):
        return []
    if candidate.get("finishReason"):
        logger.debug("Candidate finish_reason=%s", candidate.get("finishReason"))
    content = candidate.get("content")
    if not isinstance(content, dict):
        return []
    parts = content.get("parts")
    return parts if isinstance(parts, list) else []


def _inline_image(part: Any) -> GenerationResult | None:
    """Classify the part's inline data, or return None if it carries no image data.

    Data that does not decode as base64 is a Failure, so a Success always
    carries usable image bytes.
    """
    if not isinstance(part, dict):
        return None
    inline = part.get("inlineData", part.get("inline_data"))
    if not isinstance(inline, dict):
        return None
    data = inline.get("data")
    if not isinstance(data, str) or not data:
        return None
    media_type = inline.get("mimeType", inline.get("mime_type"))
    if not isinstance(media_type, str) or not media_type:
        media_type = DEFAULT_MEDIA_TYPE
    try:
        decode_image_data(data)
    except ValueError as e:
        logger.debug("Undecodable inline data (%d chars): %s", len(data), e)
        return Failure(ErrorKind.MALFORMED_RESPONSE, INVALID_IMAGE_MESSAGE)
    return Success(image_b64=data, media_type=media_type)


def parse_response(raw: RawResponse) -> GenerationResult:
    """
    Extract the generated image from a raw response.

    Returns:
        Success for the first inline-data part of the first candidate;
        Failure(MALFORMED_RESPONSE) when the body is not JSON, holds no image,
        or the image data is not valid base64
    """
    if not isinstance(raw.body, dict):
        if raw.body is None:
            return Failure(ErrorKind.MALFORMED_RESPONSE, NOT_JSON_MESSAGE)
        return Failure(ErrorKind.MALFORMED_RESPONSE, NO_IMAGE_MESSAGE)

    parts = _first_candidate_parts(raw.body)
    for index, part in enumerate(parts):
        image = _inline_image(part)
        if isinstance(image, Success):
            logger.debug("Image found part=%d of %d media_type=%s", index, len(parts), image.media_type)
        if image is not None:
            return image
        if isinstance(part, dict) and isinstance(part.get("text"), str):
            logger.debug("Skipping text part (%d chars)", len(part["text"]))

    return Failure(ErrorKind.MALFORMED_RESPONSE, NO_IMAGE_MESSAGE)


__all__ = ["INVALID_IMAGE_MESSAGE", "NOT_JSON_MESSAGE", "NO_IMAGE_MESSAGE", "parse_response"]
