"""
Custom exception classes for teamcity-dl.
"""


class TeamcityDlError(Exception):
    """Base exception class for teamcity-dl errors."""
    pass


class UsageError(TeamcityDlError):
    """Raised when command line arguments are invalid."""
    pass


class ConfigurationError(TeamcityDlError):
    """Raised when required configuration (e.g. the access token) is missing."""
    pass


class DownloadError(TeamcityDlError):
    """Base class for failures while fetching the artifact archive."""
    pass


class NetworkError(DownloadError):
    """Raised when the connection fails or the transfer is interrupted."""
    pass


class FetchTimeoutError(NetworkError):
    """Raised when the download exceeds its overall deadline."""
    pass


class HttpStatusError(DownloadError):
    """Raised when the server answers with a non-2xx status."""

    def __init__(self, status: int, body: str = "") -> None:
        self.status = status
        self.body = body
        super().__init__(f"HTTP {status}: {body}")


class ExtractionError(TeamcityDlError):
    """Base class for failures while unpacking the archive."""
    pass


class ArchiveFormatError(ExtractionError):
    """Raised when the downloaded file is not a readable zip archive."""
    pass


class UnsafeArchivePathError(ExtractionError):
    """Raised when an archive entry would be written outside the destination."""

    def __init__(self, entry_name: str) -> None:
        self.entry_name = entry_name
        super().__init__(f"invalid file path: {entry_name!r}")


class StageError(TeamcityDlError):
    """Wraps a failure with the pipeline stage (download or extraction) it happened in."""

    def __init__(self, stage: str, cause: BaseException) -> None:
        self.stage = stage
        self.cause = cause
        super().__init__(f"{stage} failed: {cause}")
