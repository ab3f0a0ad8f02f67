"""Pytest configuration and fixtures."""

import http.server
import shutil
import socketserver
import threading
from pathlib import Path

import pytest

FIXTURES_DIR = Path(__file__).parent / "fixtures"


@pytest.fixture
def fixtures_dir():
    """Directory holding the static test fixtures."""
    return FIXTURES_DIR


@pytest.fixture
def workdir(tmp_path):
    """Temporary directory pre-populated with a copy of the fixtures."""
    target = tmp_path / "fixtures"
    shutil.copytree(FIXTURES_DIR, target)
    return target


@pytest.fixture
def source_server(tmp_path):
    """
    Fixture for creating a local HTTP server serving source files.

    Automatically starts an HTTP server serving files from a temporary
    directory, pre-populated with the test fixtures, and shuts it down when
    the test completes.

    Usage:
        def test_remote_geometry(source_server):
            url = source_server.url("europe.topojson")
            ...

    Attributes:
        port (int): The port the server is listening on
        fixtures_dir (Path): Directory served by the server
    """

    class SourceServer:
        def __init__(self, port, fixtures_dir, server, thread):
            self.port = port
            self.fixtures_dir = fixtures_dir
            self._server = server
            self._thread = thread

        def url(self, name: str) -> str:
            """Get the URL of a file in the served directory."""
            return f"http://127.0.0.1:{self.port}/{name}"

    fixtures_dir = tmp_path / "served"
    shutil.copytree(FIXTURES_DIR, fixtures_dir)

    class SourceHTTPRequestHandler(http.server.SimpleHTTPRequestHandler):
        def __init__(self, *args, **kwargs):
            super().__init__(*args, directory=str(fixtures_dir), **kwargs)

        def log_message(self, format, *args):
            pass  # Suppress logging during tests

    # Start server on auto-assigned port
    server = socketserver.ThreadingTCPServer(("127.0.0.1", 0), SourceHTTPRequestHandler)
    server.daemon_threads = True
    port = server.server_address[1]

    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()

    yield SourceServer(port, fixtures_dir, server, thread)

    server.shutdown()
    server.server_close()
    thread.join(timeout=5)
