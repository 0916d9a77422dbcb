"""Shared fixtures for teamcity-dl tests."""

from __future__ import annotations

import os
import sys
import zipfile
from pathlib import Path
from typing import Iterable, Tuple, Union

import pytest

# Ensure project root is on sys.path when running without an install
PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)


Entry = Tuple[str, Union[bytes, str, None]]


def write_zip(path: Path, entries: Iterable[Entry]) -> Path:
    """Write a zip at ``path``; a ``None`` payload marks a directory entry."""
    with zipfile.ZipFile(path, "w", zipfile.ZIP_DEFLATED) as zf:
        for name, data in entries:
            if data is None:
                info = zipfile.ZipInfo(name if name.endswith("/") else name + "/")
                info.external_attr = 0o40755 << 16
                zf.writestr(info, b"")
            else:
                # ZipInfo keeps names such as "../x" that ZipFile.write would sanitize
                zf.writestr(zipfile.ZipInfo(name), data)
    return path


@pytest.fixture
def make_zip(tmp_path):
    def _make(entries, name="artifacts.zip"):
        return write_zip(tmp_path / name, entries)

    return _make


@pytest.fixture
def clean_env(monkeypatch):
    for key in ("TEAMCITY_TOKEN", "TOKEN", "TEAMCITY_URL", "BASE_URL", "TEAMCITY_DL_LOG_LEVEL"):
        monkeypatch.delenv(key, raising=False)
    return monkeypatch
