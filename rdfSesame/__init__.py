from __future__ import annotations

"""Sesame 2.0 HTTP protocol client for rdflib terms."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("rdfSesame")
except PackageNotFoundError:  # pragma: no cover - package not installed
    __version__ = "0.4.0"

from .config import SesameConfig, load_config
from .connection import Connection
from .exceptions import (
    ClientError,
    DecodeError,
    InvalidPattern,
    MalformedQuery,
    SesameError,
    ServerError,
    TransportError,
    UnsupportedContentType,
)
from .repository import Repository
from .server import RepositoryDescriptor, Server
from .terms import DEFAULT_GRAPH, UNBOUND, Statement, StatementPattern

__all__ = [
    "__version__",
    "SesameConfig",
    "load_config",
    "Connection",
    "Repository",
    "RepositoryDescriptor",
    "Server",
    "Statement",
    "StatementPattern",
    "DEFAULT_GRAPH",
    "UNBOUND",
    "SesameError",
    "ClientError",
    "MalformedQuery",
    "ServerError",
    "TransportError",
    "UnsupportedContentType",
    "InvalidPattern",
    "DecodeError",
]
