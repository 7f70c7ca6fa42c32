"""
Helpers for CLI commands: exit codes and where a generated mockup is written.
"""

from datetime import datetime
from pathlib import Path

# Exit codes
EXIT_API_OR_NETWORK = 1
EXIT_VALIDATION_OR_CONFIG = 2

DEFAULT_OUTPUT_STEM = "sticker-mockup"


def default_output_path(ext: str, directory: Path | None = None) -> Path:
    """Return <directory>/sticker-mockup_<YYYYMMDD>_<HHMMSS>.<ext> (current directory by default)."""
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    name = f"{DEFAULT_OUTPUT_STEM}_{timestamp}.{ext or 'png'}"
    return directory / name if directory is not None else Path(name)


def resolve_output_path(out: Path | None, ext: str) -> Path:
    """
    Decide where to write a mockup whose format has extension ext.

    No --out gives a timestamped name in the current directory, and an existing
    directory gets a timestamped name inside it. A file name without a suffix
    gets ext appended; any other path is used as given.
    """
    if out is None:
        return default_output_path(ext)
    if out.is_dir():
        return default_output_path(ext, out)
    if not out.suffix:
        return out.with_suffix(f".{ext or 'png'}")
    return out


__all__ = [
    "DEFAULT_OUTPUT_STEM",
    "EXIT_API_OR_NETWORK",
    "EXIT_VALIDATION_OR_CONFIG",
    "default_output_path",
    "resolve_output_path",
]
