from __future__ import annotations

"""Connection to a Sesame 2.0 HTTP server.

Nothing is kept open between requests: ``open`` and ``close`` only flip a
state flag, and every request is a separate exchange on the transport.
"""

from typing import Mapping, Optional
from urllib.parse import urlsplit

from .config import SesameConfig
from .responses import parse_decimal
from .transport import Body, HttpClient, HttpResponse, RequestsTransport


class Connection:
    """Resolve server-relative paths and hand requests to a transport."""

    def __init__(
        self,
        url: Optional[str] = None,
        *,
        config: Optional[SesameConfig] = None,
        transport: Optional[HttpClient] = None,
    ) -> None:
        if config is None:
            config = SesameConfig.from_url(url) if url else SesameConfig()
        elif url:
            config = config.with_url(url)
        self.config = config
        self.transport: HttpClient = transport or RequestsTransport(config)
        self.connected = False

    @classmethod
    def open_url(cls, url: str, **kwargs) -> "Connection":
        return cls(url, **kwargs).open()

    def open(self) -> "Connection":
        self.connected = True
        return self

    def close(self) -> None:
        self.connected = False

    def is_open(self) -> bool:
        return self.connected

    def __enter__(self) -> "Connection":
        return self.open()

    def __exit__(self, *exc_info) -> None:
        self.close()

    def url(self, path: Optional[str] = None) -> str:
        """Absolute URL for a server-relative ``path``."""
        base = self.config.url
        if not path:
            return base
        path = str(path)
        if urlsplit(path).scheme:
            return path
        return f"{base}/{path.lstrip('/')}"

    def to_uri(self) -> str:
        return self.url()

    def __str__(self) -> str:
        return self.url()

    def __repr__(self) -> str:
        return f"<{type(self).__name__}({self.url()!r}) connected={self.connected}>"

    def get(self, path: Optional[str] = None, headers: Optional[Mapping[str, str]] = None) -> HttpResponse:
        return self.transport.get(self.url(path), headers or {}, None)

    def post(
        self, path: Optional[str] = None, body: Body = None, headers: Optional[Mapping[str, str]] = None
    ) -> HttpResponse:
        return self.transport.post(self.url(path), headers or {}, body)

    def put(
        self, path: Optional[str] = None, body: Body = None, headers: Optional[Mapping[str, str]] = None
    ) -> HttpResponse:
        return self.transport.put(self.url(path), headers or {}, body)

    def delete(self, path: Optional[str] = None, headers: Optional[Mapping[str, str]] = None) -> HttpResponse:
        return self.transport.delete(self.url(path), headers or {}, None)

    def protocol(self) -> int:
        """Protocol version advertised at ``/protocol``; ``0`` if unreadable."""
        resp = self.get("protocol")
        if not 200 <= resp.status < 300:
            return 0
        return parse_decimal(resp.body)

    protocol_version = protocol


__all__ = ["Connection"]
