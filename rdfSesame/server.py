from __future__ import annotations

"""A server endpoint compatible with the Sesame 2.0 HTTP protocol."""

from dataclasses import dataclass
from typing import Any, Iterator, Optional

from .config import SesameConfig
from .connection import Connection
from .decoders import RESULT_JSON, BlankNodeRegistry, SolutionSequence, decode, media_type
from .endpoints import build_path
from .repository import Repository
from .responses import classify
from .transport import HttpClient
from .utils.log_json import JsonLogger

_logger = JsonLogger("server")


@dataclass(frozen=True)
class RepositoryDescriptor:
    """One row of the repository catalog."""

    id: str
    title: str
    readable: bool
    writable: bool
    uri: str


def _flag(value: Any) -> bool:
    return str(value).strip().lower() == "true"


def descriptors_from_solutions(solutions: SolutionSequence) -> dict[str, RepositoryDescriptor]:
    catalog: dict[str, RepositoryDescriptor] = {}
    for row in solutions:
        if "id" not in row:
            continue
        repo_id = str(row["id"])
        catalog[repo_id] = RepositoryDescriptor(
            id=repo_id,
            title=str(row.get("title", "")),
            readable=_flag(row.get("readable")),
            writable=_flag(row.get("writable")),
            uri=str(row.get("uri", "")),
        )
    return catalog


class Server:
    """Entry point listing and opening repositories on one server."""

    def __init__(
        self,
        url: Optional[str] = None,
        *,
        config: Optional[SesameConfig] = None,
        connection: Optional[Connection] = None,
        transport: Optional[HttpClient] = None,
    ) -> None:
        self.connection = connection or Connection(url, config=config, transport=transport)

    @property
    def config(self) -> SesameConfig:
        return self.connection.config

    def url(self, path: Optional[str] = None) -> str:
        return self.connection.url(path)

    def to_uri(self) -> str:
        return self.url()

    def __str__(self) -> str:
        return self.url()

    def __repr__(self) -> str:
        return f"<{type(self).__name__}({self.url()!r})>"

    def protocol(self) -> int:
        """Protocol version, or ``0`` when it cannot be read."""
        return self.connection.protocol()

    protocol_version = protocol

    def list_repositories(self) -> dict[str, RepositoryDescriptor]:
        """Fetch the catalog; it is never cached."""

        resp = self.connection.get(build_path(None, "repositories"), {"Accept": RESULT_JSON})
        classified = classify(resp.status, resp.body)
        if not classified.ok:
            _logger.warning(
                "http.classified_error",
                method="GET",
                url=self.url("repositories"),
                status=resp.status,
                outcome=classified.outcome.value,
            )
            classified.raise_for_outcome()
        solutions = decode(resp.body, media_type(resp.content_type) or RESULT_JSON, BlankNodeRegistry())
        return descriptors_from_solutions(solutions)

    descriptors = list_repositories

    def _open(self, descriptor: RepositoryDescriptor) -> Repository:
        return Repository(
            server=self,
            id=descriptor.id,
            title=descriptor.title,
            readable=descriptor.readable,
            writable=descriptor.writable,
            uri=descriptor.uri or None,
        )

    def repositories(self) -> dict[str, Repository]:
        return {repo_id: self._open(d) for repo_id, d in self.list_repositories().items()}

    def each_repository(self) -> Iterator[Repository]:
        return iter(self.repositories().values())

    __iter__ = each_repository

    def has_repository(self, repo_id: object) -> bool:
        return str(repo_id) in self.list_repositories()

    __contains__ = has_repository

    def repository(self, repo_id: object) -> Optional[Repository]:
        """Open ``repo_id`` if the catalog lists it; ``None`` otherwise."""
        descriptor = self.list_repositories().get(str(repo_id))
        if descriptor is None:
            return None
        return self._open(descriptor)

    def __getitem__(self, repo_id: object) -> Repository:
        repository = self.repository(repo_id)
        if repository is None:
            raise KeyError(repo_id)
        return repository


__all__ = ["RepositoryDescriptor", "Server", "descriptors_from_solutions"]
