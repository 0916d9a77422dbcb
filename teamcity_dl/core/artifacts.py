"""Download-then-extract pipeline for a single TeamCity build."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Union

from ..common.config import Settings, normalize_base_url
from ..common.constants import (
    ARCHIVE_NAME_TEMPLATE,
    ARTIFACTS_PATH_TEMPLATE,
    EXTRACT_DIR_TEMPLATE,
)
from ..common.errors import StageError, UsageError
from .archive import count_files, extract_archive
from .fetcher import fetch_archive

STAGE_DOWNLOAD = "download"
STAGE_EXTRACTION = "extraction"


def validate_build_id(build_id: str) -> str:
    """Ensure the build id is usable in both the URL and local file names."""
    value = (build_id or "").strip()
    if not value or value in {".", ".."} or "/" in value or "\\" in value:
        raise UsageError(f"invalid build id: {build_id!r}")
    return value


def build_artifacts_url(base_url: str, build_id: str) -> str:
    return normalize_base_url(base_url) + ARTIFACTS_PATH_TEMPLATE.format(build_id=build_id)


@dataclass
class DownloadResult:
    """Outcome of a successful :meth:`ArtifactDownloader.run`."""

    build_id: str
    archive_path: Path
    extract_dir: Path
    bytes_downloaded: int
    files_extracted: int
    file_count: int
    archive_removed: bool


class ArtifactDownloader:
    """Fetches a build's archived artifacts and unpacks them next to the archive."""

    def __init__(self, settings: Settings, logger: logging.Logger) -> None:
        self.settings = settings
        self.logger = logger

    @staticmethod
    def archive_path(out_dir: Union[str, Path], build_id: str) -> Path:
        return Path(out_dir) / ARCHIVE_NAME_TEMPLATE.format(build_id=build_id)

    @staticmethod
    def extract_dir(out_dir: Union[str, Path], build_id: str) -> Path:
        return Path(out_dir) / EXTRACT_DIR_TEMPLATE.format(build_id=build_id)

    def download(self, build_id: str, archive_path: Path) -> int:
        url = build_artifacts_url(self.settings.base_url, build_id)
        self.logger.info("Downloading artifacts for build %s...", build_id)
        written = fetch_archive(
            url,
            self.settings.token,
            archive_path,
            timeout=self.settings.timeout,
            log=self.logger,
        )
        self.logger.info("Downloaded: %s", archive_path)
        return written

    def extract(self, archive_path: Path, extract_dir: Path) -> int:
        self.logger.info("Extracting to: %s", extract_dir)
        return extract_archive(archive_path, extract_dir, log=self.logger)

    def cleanup(self, archive_path: Path) -> bool:
        """Remove the intermediate archive; failure is only a warning."""
        try:
            archive_path.unlink()
        except OSError as exc:
            self.logger.warning("Could not remove zip file %s: %s", archive_path, exc)
            return False
        return True

    def run(self, build_id: str, out_dir: Union[str, Path] = ".") -> DownloadResult:
        """Download, extract and clean up; stage failures raise :class:`StageError`."""
        build_id = validate_build_id(build_id)
        archive_path = self.archive_path(out_dir, build_id)
        extract_dir = self.extract_dir(out_dir, build_id)

        try:
            bytes_downloaded = self.download(build_id, archive_path)
        except Exception as exc:
            raise StageError(STAGE_DOWNLOAD, exc) from exc

        try:
            files_extracted = self.extract(archive_path, extract_dir)
        except Exception as exc:
            raise StageError(STAGE_EXTRACTION, exc) from exc

        archive_removed = self.cleanup(archive_path)
        file_count = count_files(extract_dir)
        self.logger.debug(
            "Build %s: %d entries written, %d files present", build_id, files_extracted, file_count
        )
        return DownloadResult(
            build_id=build_id,
            archive_path=archive_path,
            extract_dir=extract_dir,
            bytes_downloaded=bytes_downloaded,
            files_extracted=files_extracted,
            file_count=file_count,
            archive_removed=archive_removed,
        )
