"""
stickermock - AI sticker mockup creator

Upload a sticker image, describe a scene, and get back a mockup composited by
the Gemini image generation API.

Library usage:
- Build a CredentialStore (CredentialStore.from_config(config) for the settings
  file, or CredentialStore(MemoryStorage()) for a throwaway key) and pass it to
  GenerationStateMachine. Call generate(prompt, image) and read the returned
  session, or subscribe() to observe every state change.
- Configuration can be passed explicitly or via the shared config: use
  get_config() / set_config().
- Logging: control verbosity with set_verbosity(0|1|2) or configure_logging(verbose_level, quiet).
"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("stickermock")
except PackageNotFoundError:
    # Package is not installed (e.g., running from source in development)
    __version__ = "0.0.0.dev"

from stickermock.core.client import GenerationClient, RawResponse
from stickermock.core.config import (
    DEFAULT_GEMINI_BASE_URL,
    DEFAULT_IMAGE_MODEL,
    Config,
    get_config,
    set_config,
)
from stickermock.core.credentials import Credential, CredentialStore, mask_key
from stickermock.core.encoder import EncodedImage, encode_image
from stickermock.core.request_builder import GenerationRequest, build_request
from stickermock.core.response_parser import parse_response
from stickermock.core.result import Failure, GenerationResult, Success
from stickermock.core.state_machine import (
    GenerationSession,
    GenerationStateMachine,
    SessionState,
)
from stickermock.logging_config import configure_logging, set_verbosity
from stickermock.utils.exceptions import (
    ConfigurationError,
    ErrorKind,
    FileReadError,
    NetworkError,
    SessionError,
    StickermockError,
    StorageError,
    TransportError,
    ValidationError,
)
from stickermock.utils.storage import JsonFileStorage, KeyValueStorage, MemoryStorage

__all__ = [
    "Config",
    "ConfigurationError",
    "Credential",
    "CredentialStore",
    "DEFAULT_GEMINI_BASE_URL",
    "DEFAULT_IMAGE_MODEL",
    "EncodedImage",
    "ErrorKind",
    "Failure",
    "FileReadError",
    "GenerationClient",
    "GenerationRequest",
    "GenerationResult",
    "GenerationSession",
    "GenerationStateMachine",
    "JsonFileStorage",
    "KeyValueStorage",
    "MemoryStorage",
    "NetworkError",
    "RawResponse",
    "SessionError",
    "SessionState",
    "StickermockError",
    "StorageError",
    "Success",
    "TransportError",
    "ValidationError",
    "build_request",
    "configure_logging",
    "encode_image",
    "get_config",
    "mask_key",
    "parse_response",
    "set_config",
    "set_verbosity",
]
