"""Shared CLI helpers for teamcity-dl."""

import sys
from typing import Optional

from teamcity_dl.common.constants import ExitCodes
from teamcity_dl.common.errors import (
    ArchiveFormatError,
    ConfigurationError,
    HttpStatusError,
    NetworkError,
    StageError,
    UnsafeArchivePathError,
    UsageError,
)


def exit_with_error(message: str, exit_code: int) -> None:
    """Print an error message and exit with the specified code."""
    print(f"Error: {message}", file=sys.stderr)
    sys.exit(exit_code)


def map_exception_to_exit_code(exc: BaseException) -> Optional[int]:
    """Translate known exceptions to teamcity-dl exit codes."""
    if isinstance(exc, StageError):
        return map_exception_to_exit_code(exc.cause)
    if isinstance(exc, UsageError):
        return ExitCodes.USAGE
    if isinstance(exc, ConfigurationError):
        return ExitCodes.CONFIGURATION
    if isinstance(exc, NetworkError):
        return ExitCodes.NETWORK
    if isinstance(exc, HttpStatusError):
        return ExitCodes.HTTP_STATUS
    if isinstance(exc, ArchiveFormatError):
        return ExitCodes.ARCHIVE_FORMAT
    if isinstance(exc, UnsafeArchivePathError):
        return ExitCodes.UNSAFE_ARCHIVE_PATH
    if isinstance(exc, OSError):
        return ExitCodes.FILESYSTEM
    return None
