import socket
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Iterator, List

import pytest


@pytest.fixture
def listening_port() -> Iterator[int]:
    """A localhost port that accepts TCP connections."""

    server = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    server.bind(("127.0.0.1", 0))
    server.listen(16)
    try:
        yield server.getsockname()[1]
    finally:
        server.close()


@pytest.fixture
def closed_port() -> int:
    """A localhost port with nothing listening on it."""

    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


class StatusServer:
    """HTTP server answering GET requests with a scripted list of status codes.

    The last status repeats once the script is exhausted.
    """

    def __init__(self, statuses: List[int]) -> None:
        self.statuses = list(statuses)
        self.requests: List[str] = []
        outer = self

        class _Handler(BaseHTTPRequestHandler):
            def do_GET(self) -> None:  # noqa: N802 - http.server naming
                outer.requests.append(self.path)
                index = min(len(outer.requests), len(outer.statuses)) - 1
                status = outer.statuses[index]
                body = f"status {status}".encode("utf-8")
                self.send_response(status)
                self.send_header("Content-Length", str(len(body)))
                if 300 <= status < 400:
                    self.send_header("Location", "http://127.0.0.1:9/elsewhere")
                self.end_headers()
                self.wfile.write(body)

            def log_message(self, format, *args) -> None:  # noqa: A002 - signature fixed by base class
                pass

        self._server = ThreadingHTTPServer(("127.0.0.1", 0), _Handler)
        self._thread = threading.Thread(target=self._server.serve_forever, daemon=True)

    def url(self, path: str = "/") -> str:
        host, port = self._server.server_address[:2]
        return f"http://{host}:{port}{path}"

    def start(self) -> "StatusServer":
        self._thread.start()
        return self

    def stop(self) -> None:
        self._server.shutdown()
        self._server.server_close()


@pytest.fixture
def http_server():
    started: List[StatusServer] = []

    def _factory(*statuses: int) -> StatusServer:
        server = StatusServer(list(statuses)).start()
        started.append(server)
        return server

    yield _factory
    for server in started:
        server.stop()
