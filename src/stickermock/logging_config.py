"""
Logging setup for stickermock.

Nothing is configured at import: library users get no output until they call
set_verbosity() or configure_logging(). The CLI and the web UI call
configure_logging() once at startup.

Verbosity (STICKERMOCK_VERBOSITY or repeated -v; the CLI flag wins):
- 0: session outcomes and timings
- 1: also the scene prompt
- 2: also request detail, stale-session discards and urllib3's HTTP lines

The Gemini API key travels as the ``key`` query parameter. Every record that
goes through the stickermock handler has that parameter masked, including the
request lines urllib3 logs at verbosity 2.
"""

import logging
import os
import re

LOG_FORMAT = "%(levelname)s [%(name)s] %(message)s"
ROOT_LOGGER_NAME = "stickermock"
HTTP_LOGGER_NAME = "urllib3"

# Longest prompt echoed at verbosity >= 1
PROMPT_LOG_MAX = 2_000

# verbosity -> (stickermock level, log prompts, show urllib3 debug lines)
_VERBOSITY: dict[int, tuple[int, bool, bool]] = {
    0: (logging.INFO, False, False),
    1: (logging.INFO, True, False),
    2: (logging.DEBUG, True, True),
}
_QUIET = (logging.WARNING, False, False)

_KEY_PARAM = re.compile(r"([?&]key=)[^&\s\"']+")

_handler: logging.Handler | None = None
_log_prompts: bool = False


def redact_api_key(text: str) -> str:
    """Mask the value of every ``key=`` query parameter in text."""
    return _KEY_PARAM.sub(r"\1***", text)


def truncate_for_log(text: str, limit: int = PROMPT_LOG_MAX) -> str:
    """Shorten text to limit characters, noting the original length."""
    if len(text) <= limit:
        return text
    return f"{text[:limit]}... <truncated, {len(text)} chars total>"


class ApiKeyFilter(logging.Filter):
    """Rewrites records so the API key query parameter never reaches output."""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        redacted = redact_api_key(message)
        if redacted != message:
            record.msg = redacted
            record.args = None
        return True


def _ensure_handler() -> logging.Handler:
    """Attach the stderr handler to the stickermock logger once."""
    global _handler
    if _handler is None:
        _handler = logging.StreamHandler()
        _handler.setFormatter(logging.Formatter(LOG_FORMAT))
        _handler.addFilter(ApiKeyFilter())
        logging.getLogger(ROOT_LOGGER_NAME).addHandler(_handler)
    return _handler


def _apply(level: int, prompts: bool, http_debug: bool) -> None:
    global _log_prompts
    handler = _ensure_handler()
    logging.getLogger(ROOT_LOGGER_NAME).setLevel(level)
    http_logger = logging.getLogger(HTTP_LOGGER_NAME)
    if http_debug:
        if handler not in http_logger.handlers:
            http_logger.addHandler(handler)
        http_logger.setLevel(logging.DEBUG)
    else:
        http_logger.removeHandler(handler)
    _log_prompts = prompts


def set_verbosity(level: int) -> None:
    """Set logging verbosity (0=default, 1=with prompts, 2=debug). Out-of-range values are clamped."""
    _apply(*_VERBOSITY[min(max(level, 0), 2)])


def log_prompts() -> bool:
    """Return True if prompt text should be logged at INFO (verbosity 1 or 2)."""
    return _log_prompts


def configure_logging(verbose_level: int = 0, quiet: bool = False) -> None:
    """Configure logging for the CLI or web UI. quiet shows warnings and errors only."""
    if quiet:
        _apply(*_QUIET)
    else:
        set_verbosity(verbose_level)


def get_verbosity_from_env() -> int:
    """Read STICKERMOCK_VERBOSITY (0, 1, or 2). Invalid or missing values return 0."""
    raw = os.environ.get("STICKERMOCK_VERBOSITY", "0").strip()
    if raw in ("1", "2"):
        return int(raw)
    return 0


def get_logger(name: str) -> logging.Logger:
    """Return a logger under stickermock (e.g. stickermock.core.client)."""
    if name.startswith(ROOT_LOGGER_NAME + ".") or name == ROOT_LOGGER_NAME:
        return logging.getLogger(name)
    return logging.getLogger(ROOT_LOGGER_NAME + "." + name)


__all__ = [
    "ApiKeyFilter",
    "configure_logging",
    "get_logger",
    "get_verbosity_from_env",
    "log_prompts",
    "redact_api_key",
    "set_verbosity",
    "truncate_for_log",
]
