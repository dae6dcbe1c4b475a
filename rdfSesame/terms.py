from __future__ import annotations

"""Statements, statement patterns and their N-Triples encoding."""

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, NamedTuple, Optional, Sequence, Union

from rdflib.exceptions import ParserError
from rdflib.plugins.parsers.ntriples import W3CNTriplesParser, r_nodeid
from rdflib.term import BNode, Literal, Node, URIRef, Variable

from .exceptions import InvalidPattern


class GraphScope(Enum):
    """Markers for a pattern's graph field when no graph term is bound."""

    UNBOUND = "unbound"
    DEFAULT = "null"

    def __repr__(self) -> str:
        return f"<{self.name}>"


# No ``context`` filter at all: matches every graph.
UNBOUND = GraphScope.UNBOUND
# ``context=null``: only the unnamed default graph.
DEFAULT_GRAPH = GraphScope.DEFAULT

GraphName = Union[URIRef, BNode]

_PROBE = "<urn:x-rdfsesame:s> <urn:x-rdfsesame:p> {} .\n"


class Statement(NamedTuple):
    """An RDF triple, optionally placed in a named graph."""

    subject: Node
    predicate: Node
    object: Node
    graph_name: Optional[GraphName] = None

    @classmethod
    def from_triple(cls, triple: Sequence[Node]) -> "Statement":
        s, p, o = triple
        return cls(s, p, o)

    @classmethod
    def from_quad(cls, quad: Sequence[Optional[Node]]) -> "Statement":
        s, p, o, g = quad
        return cls(s, p, o, g)

    def has_graph(self) -> bool:
        return self.graph_name is not None

    def triple(self) -> tuple[Node, Node, Node]:
        return (self.subject, self.predicate, self.object)

    def with_graph(self, graph_name: Optional[GraphName]) -> "Statement":
        return self._replace(graph_name=graph_name)

    def to_ntriples(self) -> str:
        """Return the statement as one N-Triples line (without the newline)."""
        return " ".join(term_to_ntriples(t) for t in self.triple()) + " ."


def is_bound(term: object) -> bool:
    return term is not None and not isinstance(term, Variable)


@dataclass(frozen=True)
class StatementPattern:
    """A statement template; unbound fields act as wildcards.

    ``graph_name`` defaults to :data:`UNBOUND` (any graph). Pass
    :data:`DEFAULT_GRAPH` to restrict matches to the default graph.
    """

    subject: Optional[Node] = None
    predicate: Optional[Node] = None
    object: Optional[Node] = None
    graph_name: Union[GraphName, GraphScope, None] = UNBOUND

    @classmethod
    def from_statement(cls, statement: Sequence[Optional[Node]]) -> "StatementPattern":
        """Bind every field of ``statement``; a missing graph means the default graph."""

        if len(statement) == 4:
            s, p, o, g = statement
        else:
            s, p, o = statement
            g = None
        return cls(s, p, o, DEFAULT_GRAPH if g is None else g)

    @property
    def graph_filter(self) -> Union[GraphName, GraphScope]:
        if self.graph_name is None or isinstance(self.graph_name, Variable):
            return UNBOUND
        return self.graph_name

    def is_exact_graph(self) -> bool:
        """True when the pattern selects one explicit graph scope."""
        return self.graph_filter is not UNBOUND

    def bound_terms(self) -> dict[str, Node]:
        terms = {}
        for name in ("subject", "predicate", "object"):
            value = getattr(self, name)
            if is_bound(value):
                terms[name] = value
        return terms


def _escape_literal(value: str) -> str:
    return (
        value.replace("\\", "\\\\")
        .replace('"', '\\"')
        .replace("\n", "\\n")
        .replace("\r", "\\r")
    )


def term_to_ntriples(term: object) -> str:
    """Encode one RDF term in N-Triples syntax."""

    if isinstance(term, Literal):
        encoded = f'"{_escape_literal(str(term))}"'
        if term.language:
            return f"{encoded}@{term.language}"
        if term.datatype:
            return f"{encoded}^^<{term.datatype}>"
        return encoded
    if isinstance(term, (URIRef, BNode)):
        try:
            return term.n3()
        except Exception as exc:
            raise InvalidPattern(f"Cannot encode {term!r} as N-Triples: {exc}") from exc
    raise InvalidPattern(f"Cannot encode {term!r} as an N-Triples term")


class _ObjectSink:
    def __init__(self) -> None:
        self.terms: list[Node] = []

    def triple(self, s: Node, p: Node, o: Node) -> None:
        self.terms.append(o)


def parse_term(text: str) -> Node:
    """Parse a single N-Triples term.

    Blank node labels keep their label; everything else goes through
    rdflib's N-Triples parser so escapes and datatypes follow its rules.
    """

    if not isinstance(text, str) or not text.strip() or "\n" in text or "\r" in text:
        raise InvalidPattern(f"Not an N-Triples term: {text!r}")
    text = text.strip()
    label = r_nodeid.fullmatch(text)
    if label:
        return BNode(label.group(1))
    sink = _ObjectSink()
    try:
        W3CNTriplesParser(sink).parsestring(_PROBE.format(text))
    except (ParserError, ValueError) as exc:
        raise InvalidPattern(f"Not an N-Triples term: {text!r}") from exc
    if len(sink.terms) != 1:
        raise InvalidPattern(f"Not an N-Triples term: {text!r}")
    return sink.terms[0]


def serialize_statements(statements: Iterable[Sequence[Node]]) -> str:
    """Render ``statements`` as an N-Triples document, keeping their order."""

    lines = []
    for statement in statements:
        if not isinstance(statement, Statement):
            statement = Statement(*statement)
        lines.append(statement.to_ntriples() + "\n")
    return "".join(lines)


__all__ = [
    "GraphScope",
    "UNBOUND",
    "DEFAULT_GRAPH",
    "Statement",
    "StatementPattern",
    "is_bound",
    "term_to_ntriples",
    "parse_term",
    "serialize_statements",
]
