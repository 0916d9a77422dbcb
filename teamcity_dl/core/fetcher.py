"""Authenticated archive download from the TeamCity REST API."""

from __future__ import annotations

import http.client
import logging
import socket
import time
import urllib.error
import urllib.request
from pathlib import Path
from typing import Optional, Union

from ..common.constants import (
    DOWNLOAD_CHUNK_SIZE,
    DOWNLOAD_TIMEOUT_SECONDS,
    MAX_ERROR_BODY_BYTES,
)
from ..common.errors import FetchTimeoutError, HttpStatusError, NetworkError

logger = logging.getLogger(__name__)

MIN_SOCKET_TIMEOUT = 0.01


def build_request(url: str, token: str) -> urllib.request.Request:
    """Create the GET request carrying the bearer token."""
    return urllib.request.Request(
        url,
        headers={
            "Authorization": f"Bearer {token}",
            "Accept": "application/zip",
        },
        method="GET",
    )


def _error_body(source) -> str:
    try:
        raw = source.read(MAX_ERROR_BODY_BYTES) or b""
    except (OSError, http.client.HTTPException):
        return ""
    return raw.decode("utf-8", errors="replace").strip()


def _is_timeout(exc: BaseException) -> bool:
    return isinstance(exc, (socket.timeout, TimeoutError))


def _open(request: urllib.request.Request, timeout: float):
    try:
        return urllib.request.urlopen(request, timeout=timeout)  # noqa: S310
    except urllib.error.HTTPError as exc:
        raise HttpStatusError(exc.code, _error_body(exc)) from exc
    except urllib.error.URLError as exc:
        if _is_timeout(exc.reason):
            raise FetchTimeoutError(f"timed out connecting to {request.full_url}") from exc
        raise NetworkError(f"could not connect to {request.full_url}: {exc.reason}") from exc
    except OSError as exc:
        if _is_timeout(exc):
            raise FetchTimeoutError(f"timed out connecting to {request.full_url}") from exc
        raise NetworkError(f"could not connect to {request.full_url}: {exc}") from exc
    except http.client.HTTPException as exc:
        raise NetworkError(f"invalid response from {request.full_url}: {exc}") from exc


def _limit_socket_timeout(response, remaining: float) -> None:
    sock = getattr(getattr(getattr(response, "fp", None), "raw", None), "_sock", None)
    if sock is not None:
        sock.settimeout(max(remaining, MIN_SOCKET_TIMEOUT))


def _read_chunk(response, chunk_size: int, remaining: float) -> bytes:
    # read1 returns after a single receive so the deadline is rechecked
    # even when the server trickles bytes.
    _limit_socket_timeout(response, remaining)
    reader = getattr(response, "read1", response.read)
    try:
        return reader(chunk_size)
    except http.client.IncompleteRead as exc:
        raise NetworkError(
            f"transfer interrupted after {len(exc.partial)} bytes of the last chunk"
        ) from exc
    except OSError as exc:
        if _is_timeout(exc):
            raise FetchTimeoutError("timed out while reading response body") from exc
        raise NetworkError(f"transfer interrupted: {exc}") from exc
    except http.client.HTTPException as exc:
        raise NetworkError(f"transfer interrupted: {exc}") from exc


def fetch_archive(
    url: str,
    token: str,
    destination: Union[str, Path],
    *,
    timeout: float = DOWNLOAD_TIMEOUT_SECONDS,
    chunk_size: int = DOWNLOAD_CHUNK_SIZE,
    log: Optional[logging.Logger] = None,
) -> int:
    """Download ``url`` into ``destination`` and return the number of bytes written.

    ``timeout`` bounds the whole transfer, not only individual socket
    operations. Non-2xx responses raise :class:`HttpStatusError` carrying at
    most 4096 bytes of the response body. The destination file is truncated
    if it already exists; nothing is rolled back on failure.
    """
    log = log or logger
    destination = Path(destination)
    destination.parent.mkdir(parents=True, exist_ok=True)

    deadline = time.monotonic() + timeout
    request = build_request(url, token)
    log.debug("GET %s", url)

    with _open(request, timeout) as response:
        status = getattr(response, "status", 200)
        if not 200 <= status < 300:
            raise HttpStatusError(status, _error_body(response))

        written = 0
        with destination.open("wb") as out_file:
            while True:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    raise FetchTimeoutError(
                        f"download exceeded {timeout:g}s after {written} bytes"
                    )
                chunk = _read_chunk(response, chunk_size, remaining)
                if not chunk:
                    break
                out_file.write(chunk)
                written += len(chunk)

    log.info("Downloaded %.2f MB", written / (1024 * 1024))
    return written
