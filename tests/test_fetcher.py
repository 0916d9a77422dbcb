from __future__ import annotations

import http.client
import http.server
import io
import itertools
import socket
import threading
import time
import urllib.error

import pytest

from teamcity_dl.common.constants import DOWNLOAD_TIMEOUT_SECONDS, MAX_ERROR_BODY_BYTES
from teamcity_dl.common.errors import FetchTimeoutError, HttpStatusError, NetworkError
from teamcity_dl.core import fetcher as fetcher_mod
from teamcity_dl.core.fetcher import fetch_archive

URL = "https://teamcity.example.com/app/rest/builds/id:42/artifacts/archived"


class FakeResponse:
    def __init__(self, body=b"", status=200, fail_after=None, failure=None):
        self._buffer = io.BytesIO(body)
        self.status = status
        self._fail_after = fail_after
        self._failure = failure
        self._reads = 0

    def read(self, size=-1):
        if self._fail_after is not None and self._reads >= self._fail_after:
            raise self._failure
        self._reads += 1
        return self._buffer.read(size)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False


@pytest.fixture
def captured(monkeypatch):
    calls = {}

    def install(response=None, error=None):
        def fake_urlopen(request, timeout=None):
            calls["request"] = request
            calls["timeout"] = timeout
            if error is not None:
                raise error
            return response

        monkeypatch.setattr(fetcher_mod.urllib.request, "urlopen", fake_urlopen)
        return calls

    return install


def test_fetch_writes_body_and_sends_headers(tmp_path, captured):
    calls = captured(FakeResponse(b"PK\x03\x04zipdata"))
    dest = tmp_path / "a" / "b" / "build-42-artifacts.zip"

    written = fetch_archive(URL, "secret", dest)

    assert written == len(b"PK\x03\x04zipdata")
    assert dest.read_bytes() == b"PK\x03\x04zipdata"
    request = calls["request"]
    assert request.full_url == URL
    assert request.get_method() == "GET"
    assert request.get_header("Authorization") == "Bearer secret"
    assert request.get_header("Accept") == "application/zip"
    assert calls["timeout"] == DOWNLOAD_TIMEOUT_SECONDS


def test_fetch_overwrites_existing_file(tmp_path, captured):
    captured(FakeResponse(b"new"))
    dest = tmp_path / "out.zip"
    dest.write_bytes(b"old content, much longer than new")

    assert fetch_archive(URL, "t", dest) == 3
    assert dest.read_bytes() == b"new"


def test_fetch_streams_in_chunks(tmp_path, captured):
    body = b"0123456789" * 1000
    captured(FakeResponse(body))
    dest = tmp_path / "out.zip"

    assert fetch_archive(URL, "t", dest, chunk_size=7) == len(body)
    assert dest.read_bytes() == body


def test_fetch_404_raises_http_status_error(tmp_path, captured):
    error = urllib.error.HTTPError(URL, 404, "Not Found", {}, io.BytesIO(b"not found\n"))
    captured(error=error)
    dest = tmp_path / "out.zip"

    with pytest.raises(HttpStatusError) as excinfo:
        fetch_archive(URL, "t", dest)

    assert excinfo.value.status == 404
    assert excinfo.value.body == "not found"
    assert "404" in str(excinfo.value)
    assert "not found" in str(excinfo.value)
    assert not dest.exists()


def test_fetch_error_body_truncated(tmp_path, captured):
    error = urllib.error.HTTPError(URL, 500, "Server Error", {}, io.BytesIO(b"x" * 10000))
    captured(error=error)

    with pytest.raises(HttpStatusError) as excinfo:
        fetch_archive(URL, "t", tmp_path / "out.zip")

    assert excinfo.value.status == 500
    assert len(excinfo.value.body) == MAX_ERROR_BODY_BYTES


def test_fetch_non_2xx_response_object_rejected(tmp_path, captured):
    captured(FakeResponse(b"moved", status=304))

    with pytest.raises(HttpStatusError, match="HTTP 304: moved"):
        fetch_archive(URL, "t", tmp_path / "out.zip")


def test_fetch_connection_refused_raises_network_error(tmp_path, captured):
    captured(error=urllib.error.URLError(ConnectionRefusedError(111, "Connection refused")))

    with pytest.raises(NetworkError) as excinfo:
        fetch_archive(URL, "t", tmp_path / "out.zip")

    assert not isinstance(excinfo.value, FetchTimeoutError)
    assert "could not connect" in str(excinfo.value)


def test_fetch_connect_timeout_raises_timeout_error(tmp_path, captured):
    captured(error=urllib.error.URLError(socket.timeout("timed out")))

    with pytest.raises(FetchTimeoutError):
        fetch_archive(URL, "t", tmp_path / "out.zip")


def test_fetch_read_timeout_raises_timeout_error(tmp_path, captured):
    captured(FakeResponse(b"abcdef", fail_after=1, failure=socket.timeout("timed out")))

    with pytest.raises(FetchTimeoutError, match="reading response body"):
        fetch_archive(URL, "t", tmp_path / "out.zip", chunk_size=2)


def test_fetch_interrupted_transfer_raises_network_error(tmp_path, captured):
    failure = http.client.IncompleteRead(b"abc", 100)
    captured(FakeResponse(b"abcdef", fail_after=1, failure=failure))

    with pytest.raises(NetworkError, match="transfer interrupted"):
        fetch_archive(URL, "t", tmp_path / "out.zip", chunk_size=2)


def test_fetch_overall_deadline(tmp_path, captured, monkeypatch):
    captured(FakeResponse(b"0123456789ab"))
    clock = itertools.count(0, 100)
    monkeypatch.setattr(fetcher_mod.time, "monotonic", lambda: next(clock))
    dest = tmp_path / "out.zip"

    with pytest.raises(FetchTimeoutError, match="exceeded"):
        fetch_archive(URL, "t", dest, timeout=150, chunk_size=4)

    # Best effort only: whatever was flushed before the deadline stays on disk.
    assert dest.read_bytes() == b"0123"


class _ArtifactHandler(http.server.BaseHTTPRequestHandler):
    payload = b"PK\x05\x06" + b"\x00" * 18
    seen = {}

    def do_GET(self):
        type(self).seen = dict(self.headers)
        type(self).seen["path"] = self.path
        if self.path.endswith("/id:404/artifacts/archived"):
            body = b"not found"
            self.send_response(404)
        else:
            body = self.payload
            self.send_response(200)
            self.send_header("Content-Type", "application/zip")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def log_message(self, format, *args):
        pass


@pytest.fixture
def loopback_server(monkeypatch):
    monkeypatch.setenv("no_proxy", "*")
    monkeypatch.setenv("NO_PROXY", "*")
    server = http.server.HTTPServer(("127.0.0.1", 0), _ArtifactHandler)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    try:
        yield f"http://127.0.0.1:{server.server_port}"
    finally:
        server.shutdown()
        server.server_close()


def test_fetch_against_loopback_server(tmp_path, loopback_server):
    dest = tmp_path / "build-7-artifacts.zip"
    url = f"{loopback_server}/app/rest/builds/id:7/artifacts/archived"

    written = fetch_archive(url, "tok", dest, timeout=10)

    assert written == len(_ArtifactHandler.payload)
    assert dest.read_bytes() == _ArtifactHandler.payload
    assert _ArtifactHandler.seen["Authorization"] == "Bearer tok"
    assert _ArtifactHandler.seen["Accept"] == "application/zip"
    assert _ArtifactHandler.seen["path"] == "/app/rest/builds/id:7/artifacts/archived"


def test_fetch_loopback_404(tmp_path, loopback_server):
    url = f"{loopback_server}/app/rest/builds/id:404/artifacts/archived"

    with pytest.raises(HttpStatusError, match="HTTP 404: not found"):
        fetch_archive(url, "tok", tmp_path / "out.zip", timeout=10)


class _TrickleHandler(http.server.BaseHTTPRequestHandler):
    body_size = 40
    delay = 0.15

    def do_GET(self):
        self.send_response(200)
        self.send_header("Content-Type", "application/zip")
        self.send_header("Content-Length", str(self.body_size))
        self.end_headers()
        try:
            for _ in range(self.body_size):
                self.wfile.write(b"x")
                time.sleep(self.delay)
        except OSError:
            # client gave up
            pass

    def log_message(self, format, *args):
        pass


@pytest.fixture
def trickle_server(monkeypatch):
    monkeypatch.setenv("no_proxy", "*")
    monkeypatch.setenv("NO_PROXY", "*")
    server = http.server.ThreadingHTTPServer(("127.0.0.1", 0), _TrickleHandler)
    server.daemon_threads = True
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    try:
        yield f"http://127.0.0.1:{server.server_port}"
    finally:
        server.shutdown()
        server.server_close()


def test_fetch_deadline_bounds_slow_body(tmp_path, trickle_server):
    url = f"{trickle_server}/app/rest/builds/id:1/artifacts/archived"
    started = time.monotonic()

    with pytest.raises(FetchTimeoutError):
        fetch_archive(url, "tok", tmp_path / "out.zip", timeout=1)

    elapsed = time.monotonic() - started
    # The full body would take 6s to arrive.
    assert elapsed < 3
