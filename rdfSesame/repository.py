from __future__ import annotations

"""A repository on a Sesame 2.0-compatible HTTP server.

Every method is one synchronous round-trip: build the endpoint, issue the
request, classify the status, decode the body. Nothing about the remote
contents is cached locally.

Example::

    server = Server("http://localhost:8080/openrdf-sesame")
    repository = server.repository("SYSTEM")
    repository.count()
    for statement in repository.query_pattern(StatementPattern(subject=URIRef(...))):
        ...
"""

import re
from typing import TYPE_CHECKING, Any, Iterable, Iterator, Mapping, Optional, Sequence, Union
from urllib.parse import unquote, urlsplit, urlunsplit

from rdflib.term import BNode, Node, URIRef

from .decoders import (
    NTRIPLES,
    RESULT_JSON,
    BlankNodeRegistry,
    SolutionSequence,
    decode,
    media_type,
)
from .endpoints import build_path, build_query_request, context_filter, pattern_filters
from .exceptions import HTTPStatusError
from .responses import classify, parse_decimal
from .terms import (
    DEFAULT_GRAPH,
    UNBOUND,
    GraphScope,
    Statement,
    StatementPattern,
    term_to_ntriples,
)
from .transport import Body, HttpResponse
from .utils.log_json import JsonLogger

if TYPE_CHECKING:  # pragma: no cover
    from .server import Server

_logger = JsonLogger("repository")

UPDATE_RE = re.compile(r"\b(?:insert|delete)\b", re.IGNORECASE)
GRAPH_QUERY_RE = re.compile(r"\b(?:construct|describe)\b", re.IGNORECASE)
# Tokens that may spell a keyword without being one: literals, IRIs,
# comments, variables and prefixed names.
OPAQUE_TOKEN_RE = re.compile(
    r'"""(?:[^"\\]|\\.|"(?!""))*"""'
    r"|'''(?:[^'\\]|\\.|'(?!''))*'''"
    r'|"(?:[^"\\\n]|\\.)*"'
    r"|'(?:[^'\\\n]|\\.)*'"
    r"|<[^<>\"{}|^`\\\s]*>"
    r"|#[^\n]*"
    r"|[?$]\w+"
    r"|(?:[A-Za-z][\w.-]*)?:[\w.-]*",
    re.DOTALL,
)
NO_CONTENT = 204
SUPPORTED_FEATURES = {"context", "graph_name"}

PatternLike = Union[StatementPattern, Statement, Sequence[Optional[Node]]]


def _as_pattern(value: PatternLike, *, exact: bool) -> StatementPattern:
    """Coerce a statement or tuple into a pattern.

    ``exact`` binds a missing graph to the default graph; otherwise a
    three-element value leaves the graph unbound.
    """

    if isinstance(value, StatementPattern):
        return value
    if len(value) == 4:
        return StatementPattern.from_statement(tuple(value))
    if exact:
        return StatementPattern.from_statement(tuple(value))
    s, p, o = value
    return StatementPattern(s, p, o)


def _has_bnode(statement: Statement) -> bool:
    return any(isinstance(term, BNode) for term in (*statement.triple(), statement.graph_name))


def _keywords(query: str) -> str:
    """Query text with every token that cannot be a keyword blanked out."""
    return OPAQUE_TOKEN_RE.sub(" ", query)


class Repository:
    """Remote RDF repository addressed as ``{server}/repositories/{id}``."""

    def __init__(
        self,
        *,
        server: Optional["Server"] = None,
        id: Optional[str] = None,
        title: Optional[str] = None,
        readable: Optional[bool] = None,
        writable: Optional[bool] = None,
        uri: Optional[str] = None,
    ) -> None:
        if server is None:
            raise ValueError("missing server")
        if id is None:
            raise ValueError("missing id")
        self.server = server
        self.id = str(id)
        self.title = title
        self.readable = readable
        self.writable = writable
        self.uri = str(uri) if uri else self.url()

    @classmethod
    def from_url(cls, url: str, **kwargs: Any) -> "Repository":
        """Open ``.../repositories/{id}``, deriving the server from the URL."""
        from .server import Server

        parts = urlsplit(str(url).rstrip("/"))
        segments = parts.path.split("/")
        if len(segments) < 2 or segments[-2] != "repositories" or not segments[-1]:
            raise ValueError(f"Not a repository URL: {url!r}")
        base = urlunsplit((parts.scheme, parts.netloc, "/".join(segments[:-2]), "", ""))
        return cls(server=Server(base, **kwargs), id=unquote(segments[-1]))

    # -- addressing -------------------------------------------------------

    def url(self, resource: Optional[str] = None, filters: Optional[Mapping[str, object]] = None) -> str:
        return self.server.url(build_path(self.id, resource, filters))

    def to_uri(self) -> str:
        return self.url()

    def __str__(self) -> str:
        return self.url()

    def __repr__(self) -> str:
        return f"<{type(self).__name__}({self.id!r}) {self.url()}>"

    def supports(self, feature: str) -> bool:
        return str(feature) in SUPPORTED_FEATURES

    def durable(self) -> bool:
        return True

    # -- plumbing ---------------------------------------------------------

    def _exchange(
        self,
        method: str,
        url: str,
        *,
        headers: Optional[Mapping[str, str]] = None,
        body: Body = None,
    ) -> HttpResponse:
        transport = self.server.connection.transport
        resp = getattr(transport, method.lower())(url, dict(headers or {}), body)
        classified = classify(resp.status, resp.body)
        if not classified.ok:
            _logger.warning(
                "http.classified_error",
                method=method.upper(),
                url=url,
                status=resp.status,
                outcome=classified.outcome.value,
            )
            classified.raise_for_outcome()
        return resp

    def _statements(
        self,
        filters: Mapping[str, str],
        graph_name: Union[Node, GraphScope, None] = UNBOUND,
    ) -> list[Statement]:
        resp = self._exchange("GET", self.url("statements", filters), headers={"Accept": NTRIPLES})
        content_type = media_type(resp.content_type) or NTRIPLES
        return decode(resp.body, content_type, BlankNodeRegistry(), graph_name=graph_name)

    def _bindings(self, resource: str) -> SolutionSequence:
        resp = self._exchange("GET", self.url(resource), headers={"Accept": RESULT_JSON})
        return decode(resp.body, media_type(resp.content_type) or RESULT_JSON, BlankNodeRegistry())

    # -- counting ---------------------------------------------------------

    def count(self, graph_name: Union[Node, GraphScope, None] = UNBOUND) -> int:
        """Number of statements, or ``0`` when the size cannot be read.

        Classified HTTP errors are logged and reported as zero; transport
        failures still propagate.
        """

        try:
            resp = self._exchange("GET", self.url("size", context_filter(graph_name)))
        except HTTPStatusError as exc:
            _logger.warning("repository.count_failed", repository=self.id, status=exc.status)
            return 0
        return parse_decimal(resp.body)

    size = count

    def __len__(self) -> int:
        return self.count()

    def is_empty(self) -> bool:
        return self.count() == 0

    # -- lookups ----------------------------------------------------------

    def has_statement(self, statement: PatternLike) -> bool:
        """True if a statement matching every bound field exists.

        Statements without a graph name are looked up in the default graph.
        """

        pattern = _as_pattern(statement, exact=True)
        return bool(self._statements(pattern_filters(pattern), pattern.graph_filter))

    def has_triple(self, triple: Sequence[Node]) -> bool:
        """True if the triple exists in any graph."""
        return self.has_statement(_as_pattern(tuple(triple), exact=False))

    def has_quad(self, quad: Sequence[Optional[Node]]) -> bool:
        return self.has_statement(Statement.from_quad(quad))

    def __contains__(self, statement: PatternLike) -> bool:
        return self.has_statement(statement)

    def has_graph(self, graph_name: Node) -> bool:
        return graph_name in self.list_graph_names()

    # -- enumeration ------------------------------------------------------

    def list_graph_names(self) -> list[Union[URIRef, BNode]]:
        """Named graphs reported by the ``contexts`` resource."""
        names = []
        for row in self._bindings("contexts"):
            name = row.get("contextID")
            if isinstance(name, (URIRef, BNode)):
                names.append(name)
        return names

    graph_names = list_graph_names

    def list_namespaces(self) -> dict[str, URIRef]:
        return {
            str(row["prefix"]): URIRef(str(row["namespace"]))
            for row in self._bindings("namespaces")
            if "prefix" in row and "namespace" in row
        }

    def each_statement(self) -> Iterator[Statement]:
        """Yield every statement, one GET per graph (default graph first).

        Requests are issued as iteration reaches each graph; a new call is
        needed to enumerate again.
        """

        scopes: list[Optional[Node]] = [None]
        for name in self.list_graph_names():
            if name not in scopes:
                scopes.append(name)
        for scope in scopes:
            graph = DEFAULT_GRAPH if scope is None else scope
            yield from self._statements(context_filter(scope), graph)

    __iter__ = each_statement

    def query_pattern(self, pattern: PatternLike) -> Iterator[Statement]:
        """Yield statements matching ``pattern``.

        When the pattern names one graph scope, that scope is assigned to
        every returned statement.
        """

        pattern = _as_pattern(pattern, exact=False)
        yield from self._statements(pattern_filters(pattern), pattern.graph_filter)

    # -- mutation ---------------------------------------------------------

    def insert_statements(
        self,
        statements: Iterable[Sequence[Node]],
        graph_name: Union[Node, GraphScope, None] = UNBOUND,
    ) -> bool:
        """POST statements as N-Triples, one request per target graph.

        An explicit ``graph_name`` places the whole batch in that graph;
        otherwise each statement goes to its own graph (default if none).
        """

        batches: dict[Optional[Node], list[Statement]] = {}
        for statement in statements:
            if not isinstance(statement, Statement):
                statement = Statement(*statement)
            if graph_name is UNBOUND:
                target = statement.graph_name
            elif graph_name is DEFAULT_GRAPH:
                target = None
            else:
                target = graph_name
            batches.setdefault(target, []).append(statement)
        ok = True
        for target, batch in batches.items():
            body = "".join(s.to_ntriples() + "\n" for s in batch)
            resp = self._exchange(
                "POST",
                self.url("statements", context_filter(target)),
                headers={"Content-Type": NTRIPLES},
                body=body,
            )
            ok = ok and resp.status == NO_CONTENT
        return ok

    def insert(self, *statements: Sequence[Node]) -> bool:
        return self.insert_statements(statements)

    def delete_statement(self, statement: PatternLike) -> bool:
        pattern = _as_pattern(statement, exact=True)
        resp = self._exchange("DELETE", self.url("statements", pattern_filters(pattern)))
        return resp.status == NO_CONTENT

    def delete_statements(self, statements: Iterable[Sequence[Node]]) -> bool:
        """Delete a batch with one ``DELETE DATA`` update.

        SPARQL forbids blank nodes in ``DELETE DATA``, so statements that
        carry one are removed individually through the statements resource.
        """

        ground: list[Statement] = []
        ok = True
        for statement in statements:
            if not isinstance(statement, Statement):
                statement = Statement(*statement)
            if _has_bnode(statement):
                ok = self.delete_statement(statement) and ok
            else:
                ground.append(statement)
        if ground:
            ok = self.update(delete_data(ground)) and ok
        return ok

    def delete(self, *statements: Sequence[Node]) -> bool:
        return self.delete_statements(statements)

    def clear(self, pattern: Optional[PatternLike] = None) -> None:
        """Delete every statement matching ``pattern`` (all statements by default)."""
        filters = pattern_filters(_as_pattern(pattern, exact=False)) if pattern is not None else None
        self._exchange("DELETE", self.url("statements", filters))

    # -- queries ----------------------------------------------------------

    def update(self, update: str) -> bool:
        request = build_query_request(self.url(), update, accept="*/*", update=True)
        resp = self._exchange(request.method, request.url, headers=request.headers, body=request.body)
        return resp.status == NO_CONTENT

    def raw_query(
        self,
        query: str,
        language: str = "sparql",
        *,
        format: Optional[str] = None,
        parsing: Optional[str] = None,
        infer: Optional[bool] = None,
        graph_name: Union[Node, GraphScope, None] = UNBOUND,
    ) -> Any:
        """Run a query (or update) and decode the result.

        Updates (an ``INSERT`` or ``DELETE`` keyword outside IRIs, literals,
        comments and variable names) return a success flag. Queries return
        solutions, statements or a boolean depending on the response type;
        ``parsing="raw"`` returns the body unparsed.
        """

        keywords = _keywords(query)
        if UPDATE_RE.search(keywords):
            return self.update(query)
        accept = format or (NTRIPLES if GRAPH_QUERY_RE.search(keywords) else RESULT_JSON)
        request = build_query_request(
            self.url(),
            query,
            accept=accept,
            language=language,
            max_url_length=self.server.config.max_url_length,
            infer=infer,
        )
        resp = self._exchange(request.method, request.url, headers=request.headers, body=request.body)
        if parsing == "raw":
            return resp.body
        content_type = media_type(resp.content_type) or media_type(accept)
        return decode(resp.body, content_type, BlankNodeRegistry(), graph_name=graph_name)

    def sparql_query(self, query: str, **options: Any) -> Any:
        return self.raw_query(query, "sparql", **options)


def delete_data(statements: Iterable[Statement]) -> str:
    """Render a ``DELETE DATA`` update, grouping quads by graph."""

    default: list[str] = []
    graphs: dict[Node, list[str]] = {}
    for statement in statements:
        line = statement.to_ntriples()
        if statement.graph_name is None:
            default.append(line)
        else:
            graphs.setdefault(statement.graph_name, []).append(line)
    parts = ["DELETE DATA {"]
    parts.extend(f"  {line}" for line in default)
    for graph, lines in graphs.items():
        parts.append(f"  GRAPH {term_to_ntriples(graph)} {{")
        parts.extend(f"    {line}" for line in lines)
        parts.append("  }")
    parts.append("}")
    return "\n".join(parts)


__all__ = ["Repository", "delete_data"]
