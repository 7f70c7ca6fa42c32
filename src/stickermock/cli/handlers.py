"""
Error handling for the CLI.

Maps library exceptions and failed sessions to exit codes and user messages.
"""

import sys
from collections.abc import Callable

import click

from stickermock import ErrorKind, Failure, StickermockError, ValidationError
from stickermock.cli import progress
from stickermock.cli.utils import EXIT_API_OR_NETWORK, EXIT_VALIDATION_OR_CONFIG

_VALIDATION_KINDS = frozenset({ErrorKind.VALIDATION, ErrorKind.FILE_READ})


class SessionFailed(Exception):
    """Raised inside a command when a generation session ends in ERROR."""

    def __init__(self, failure: Failure) -> None:
        self.failure = failure
        super().__init__(failure.message)


def map_failure_to_exit(failure: Failure) -> tuple[int, str]:
    """Map a failed session to (exit_code, user_message)."""
    code = EXIT_VALIDATION_OR_CONFIG if failure.kind in _VALIDATION_KINDS else EXIT_API_OR_NETWORK
    if failure.kind == ErrorKind.NETWORK:
        return (code, f"Generation failed: {failure.message}")
    if failure.kind == ErrorKind.MALFORMED_RESPONSE:
        return (code, f"The service returned no usable image ({failure.message}). Try another prompt.")
    return (code, failure.message)


def map_exception_to_exit(exc: BaseException) -> tuple[int, str]:
    """Map library and known exceptions to (exit_code, user_message)."""
    if isinstance(exc, SessionFailed):
        return map_failure_to_exit(exc.failure)
    if isinstance(exc, ValidationError):
        msg = exc.args[0] if exc.args else "Validation failed."
        if getattr(exc, "field", None):
            msg = f"{msg} (field: {exc.field})"
        return (EXIT_VALIDATION_OR_CONFIG, msg)
    if isinstance(exc, StickermockError):
        if exc.kind in _VALIDATION_KINDS or exc.kind is None:
            return (EXIT_VALIDATION_OR_CONFIG, exc.args[0] if exc.args else "Invalid input.")
        return (EXIT_API_OR_NETWORK, exc.args[0] if exc.args else "API or network error.")
    return (EXIT_API_OR_NETWORK, str(exc) if exc.args else "An unexpected error occurred.")


def run_with_error_handling(
    fn: Callable[[], None],
    *,
    quiet: bool = False,
    debug: bool = False,
) -> None:
    """
    Run fn(); on exception map to exit code and message, print and sys.exit.
    Used so the command bodies stay free of try/except for known errors.
    """
    try:
        fn()
    except (SessionFailed, StickermockError) as e:
        code, msg = map_exception_to_exit(e)
        if quiet:
            click.echo(msg, err=True)
        else:
            progress.print_error(msg)
        sys.exit(code)
    except Exception as e:
        if debug:
            raise
        code, msg = map_exception_to_exit(e)
        if quiet:
            click.echo(msg, err=True)
        else:
            progress.print_error(msg)
        sys.exit(code)


__all__ = [
    "SessionFailed",
    "map_exception_to_exit",
    "map_failure_to_exit",
    "run_with_error_handling",
]
