from __future__ import annotations

"""Error taxonomy shared by the protocol layer."""


class SesameError(Exception):
    """Base class for every error raised by :mod:`rdfSesame`."""


class HTTPStatusError(SesameError):
    """A response whose status code was classified as a failure."""

    def __init__(self, body: str = "", *, status: int | None = None) -> None:
        super().__init__(body or f"HTTP {status}")
        self.body = body
        self.status = status


class ClientError(HTTPStatusError):
    """4xx response: bad request shape, missing resource or auth failure."""


class MalformedQuery(ClientError):
    """400 response, usually a query or update syntax error."""


class ServerError(HTTPStatusError):
    """5xx response or a status the client did not expect."""


class TransportError(SesameError):
    """The HTTP exchange itself failed (connection refused, timeout, ...)."""


class UnsupportedContentType(SesameError):
    """No decoder is registered for the response content type."""

    def __init__(self, content_type: str) -> None:
        super().__init__(f"Unsupported content type: {content_type!r}")
        self.content_type = content_type


class InvalidPattern(SesameError, ValueError):
    """A filter value is not a valid N-Triples term."""


class DecodeError(SesameError):
    """The response body does not match its declared content type."""


__all__ = [
    "SesameError",
    "HTTPStatusError",
    "ClientError",
    "MalformedQuery",
    "ServerError",
    "TransportError",
    "UnsupportedContentType",
    "InvalidPattern",
    "DecodeError",
]
