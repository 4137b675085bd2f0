"""Parsing of the raw target argument."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union
from urllib.parse import urlsplit

from .errors import InvalidTarget

HTTP_SCHEMES = {"http", "https"}
MAX_PORT = 65535


@dataclass(frozen=True)
class TcpTarget:
    """A ``host:port`` pair probed with a plain TCP connect."""

    host: str
    port: int

    def __str__(self) -> str:
        if ":" in self.host:
            return f"[{self.host}]:{self.port}"
        return f"{self.host}:{self.port}"


@dataclass(frozen=True)
class HttpTarget:
    """An absolute HTTP(S) URL probed with a GET request."""

    url: str

    def __str__(self) -> str:
        return self.url


Target = Union[TcpTarget, HttpTarget]


def _parse_port(raw: str) -> int:
    if not (raw.isascii() and raw.isdigit()):
        raise InvalidTarget(f"Invalid port number: {raw!r}")
    port = int(raw)
    if not 1 <= port <= MAX_PORT:
        raise InvalidTarget(f"Invalid port number: {raw!r} (must be 1-{MAX_PORT})")
    return port


def parse_target(raw: str) -> Target:
    """Classify ``raw`` as an HTTP(S) URL or a ``host:port`` pair.

    Only strings with an ``http://`` or ``https://`` prefix are URLs, and
    they are kept exactly as given. Anything else, ``http:8080`` included,
    must carry a numeric port after its last colon; a bracketed IPv6 literal
    such as ``[::1]:8080`` has its brackets removed so the resolver receives
    the bare address.
    """

    try:
        parts = urlsplit(raw)
    except ValueError as exc:
        raise InvalidTarget(f"Invalid URL format: {raw}") from exc
    if parts.scheme.lower() in HTTP_SCHEMES and raw[len(parts.scheme):].startswith("://"):
        if not parts.netloc or not parts.hostname:
            raise InvalidTarget(f"Invalid URL format: {raw}")
        return HttpTarget(url=raw)

    host, sep, port = raw.rpartition(":")
    if not sep:
        raise InvalidTarget("Target must be in format 'host:port' or 'http(s)://...'")
    parsed_port = _parse_port(port)
    if host.startswith("[") and host.endswith("]"):
        host = host[1:-1]
    if not host:
        raise InvalidTarget("Host cannot be empty")
    return TcpTarget(host=host, port=parsed_port)


__all__ = ["HttpTarget", "Target", "TcpTarget", "parse_target"]
