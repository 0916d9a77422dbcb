"""teamcity-dl - download and unpack TeamCity build artifacts.

Provides:
* Authenticated artifact archive download (`fetch_archive`)
* Zip extraction guarded against archive slip (`extract_archive`)
* The combined download/extract pipeline (`ArtifactDownloader`)
* Thin CLI wrapper (`teamcity-dl`)
"""

from ._version import __version__
from .common.config import Settings
from .common.logging_config import configure_logging
from .core.archive import count_files, extract_archive
from .core.artifacts import ArtifactDownloader, DownloadResult, build_artifacts_url
from .core.fetcher import fetch_archive

__all__ = [
	"__version__",
	"configure_logging",
	"Settings",
	"fetch_archive",
	"extract_archive",
	"count_files",
	"ArtifactDownloader",
	"DownloadResult",
	"build_artifacts_url",
]
