"""
HTTP client for the Gemini generateContent endpoint.

Issues exactly one POST per call. Calls are billed by the service, so nothing
here retries: every failure is raised to the caller.
"""

import json
import time
from dataclasses import dataclass, field
from typing import Any

import requests

from stickermock.core.config import Config, get_config
from stickermock.core.credentials import Credential
from stickermock.core.request_builder import GenerationRequest
from stickermock.logging_config import get_logger, log_prompts, truncate_for_log
from stickermock.utils.exceptions import NetworkError, TransportError, ValidationError

logger = get_logger(__name__)

_DEBUG_TRUNCATE_THRESHOLD = 200
_DEBUG_NEVER_TRUNCATE_KEYS = frozenset({"text", "message"})


def _truncate_image_data_for_log(obj: Any, parent_key: str | None = None) -> Any:
    """Recursively replace long base64 strings with placeholders for safe logging."""
    if isinstance(obj, dict):
        return {k: _truncate_image_data_for_log(v, k) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_truncate_image_data_for_log(v, None) for v in obj]
    if isinstance(obj, str) and len(obj) >= _DEBUG_TRUNCATE_THRESHOLD:
        if parent_key in _DEBUG_NEVER_TRUNCATE_KEYS:
            return obj
        return f"<string, {len(obj)} chars>"
    return obj


def _provider_error_message(body: Any) -> str | None:
    """Return error.message from a provider error body, if present."""
    if not isinstance(body, dict):
        return None
    error = body.get("error")
    if isinstance(error, dict):
        message = error.get("message")
        if isinstance(message, str) and message.strip():
            return message.strip()
    return None


@dataclass(frozen=True)
class RawResponse:
    """A successful HTTP response before parsing.

    ``body`` is the decoded JSON, or None when the body was not JSON.
    """

    status_code: int
    body: Any = field(repr=False)
    text: str = field(repr=False)
    elapsed: float


class GenerationClient:
    """Sends GenerationRequests to the remote generation service."""

    def __init__(self, config: Config | None = None) -> None:
        self.config = config or get_config()

    def send(self, request: GenerationRequest, credential: Credential | None) -> RawResponse:
        """
        POST the request and return the raw response.

        Args:
            request: Request built by build_request()
            credential: API key, passed as the ``key`` query parameter

        Returns:
            RawResponse for a 2xx status

        Raises:
            ValidationError: If no API key is configured (no request is made)
            NetworkError: If the service answers with a non-success status
            TransportError: If the request could not be sent
        """
        if credential is None or not credential.key_value.strip():
            raise ValidationError(
                "Gemini API key is required. Configure it in settings or set GEMINI_API_KEY.",
                field="api_key",
            )

        url = self.config.endpoint_url
        timeout = self.config.generation_timeout
        payload = request.to_payload()

        logger.info(
            "Generating mockup model=%s media_type=%s",
            self.config.image_model,
            request.image_media_type,
        )
        if log_prompts():
            logger.info("Prompt: %s", truncate_for_log(request.prompt_text))
        logger.debug("API request url=%s timeout=%s", url, timeout)
        if self.config.debug_api:
            logger.info(
                "API request payload (image data truncated): %s",
                json.dumps(_truncate_image_data_for_log(payload), indent=2),
            )

        start_time = time.time()
        try:
            response = requests.post(
                url,
                params={"key": credential.key_value},
                headers={"Content-Type": "application/json"},
                json=payload,
                timeout=timeout,
            )
        except requests.exceptions.Timeout as e:
            raise TransportError(
                f"Request timed out after {timeout} seconds.", original_error=e
            ) from e
        except requests.exceptions.ConnectionError as e:
            raise TransportError(
                "Failed to connect to the Gemini API. Please check your internet connection.",
                original_error=e,
            ) from e
        except requests.exceptions.RequestException as e:
            raise TransportError(
                f"Network error during API request: {e.__class__.__name__}", original_error=e
            ) from e
        elapsed = time.time() - start_time

        logger.debug(
            "API response status=%s content_type=%s time=%.2fs",
            response.status_code,
            response.headers.get("content-type", ""),
            elapsed,
        )

        try:
            body: Any = response.json()
        except ValueError:
            body = None

        if self.config.debug_api:
            if body is not None:
                logger.info(
                    "API response (image data truncated): %s",
                    json.dumps(_truncate_image_data_for_log(body), indent=2, default=str),
                )
            else:
                logger.info("API response (raw text): %s", truncate_for_log(response.text))

        if not 200 <= response.status_code < 300:
            message = _provider_error_message(body) or (
                f"API request failed with status {response.status_code}"
            )
            logger.info("API request failed status=%s", response.status_code)
            raise NetworkError(message, status_code=response.status_code, response=response.text)

        logger.info("Response received in %.1fs", elapsed)
        return RawResponse(
            status_code=response.status_code,
            body=body,
            text=response.text,
            elapsed=elapsed,
        )


__all__ = ["GenerationClient", "RawResponse"]
