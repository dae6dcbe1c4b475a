from __future__ import annotations

"""Decode Sesame response bodies by their declared content type.

Four families of payload come back from a Sesame server:

* ``text/boolean`` for ASK queries answered in plain text,
* SPARQL result bindings, encoded as JSON or XML,
* RDF serializations (N-Triples for statement listings, others on request),
* raw JSON, handed back untouched for callers that asked for it.

Dispatch is driven by the declared content type only; bodies are never
sniffed. Blank nodes in a single body are resolved through a
:class:`BlankNodeRegistry` that lives for exactly one decode call unless the
caller passes one in explicitly.
"""

import json
from dataclasses import dataclass, field
from functools import partial
from typing import Any, Callable, Iterator, Optional, Union

from lxml import etree
from rdflib import Dataset, Graph
from rdflib.graph import DATASET_DEFAULT_GRAPH_ID
from rdflib.exceptions import ParserError
from rdflib.namespace import RDF
from rdflib.plugins.parsers.ntriples import W3CNTriplesParser
from rdflib.term import BNode, Literal, Node, URIRef

from .exceptions import DecodeError, UnsupportedContentType
from .terms import DEFAULT_GRAPH, UNBOUND, GraphScope, Statement
from .utils.log_json import JsonLogger

RESULT_BOOL = "text/boolean"
RESULT_JSON = "application/sparql-results+json"
RESULT_XML = "application/sparql-results+xml"
RESULT_RDF_JSON = "application/rdf+json"
RAW_JSON = "application/json"
NTRIPLES = "text/plain"
NTRIPLES_W3C = "application/n-triples"
TURTLE = "text/turtle"
TURTLE_LEGACY = "application/x-turtle"
RDF_XML = "application/rdf+xml"
N3 = "text/rdf+n3"
TRIG = "application/trig"
NQUADS = "application/n-quads"
JSON_LD = "application/ld+json"

SPARQL_RESULTS_NS = "{http://www.w3.org/2005/sparql-results#}"
XML_LANG = "{http://www.w3.org/XML/1998/namespace}lang"

_logger = JsonLogger("decoder")


class BlankNodeRegistry(dict):
    """Server blank-node label -> local :class:`~rdflib.term.BNode`.

    One registry covers one decode session. Within it a label always
    resolves to the same node; across registries nothing is promised.
    Nodes keep the server's label so they can be sent back in filters.
    """

    def node(self, label: str) -> BNode:
        bnode = self.get(label)
        if bnode is None:
            bnode = self[label] = BNode(label)
        return bnode


Solution = dict


@dataclass
class SolutionSequence:
    """Query solutions in server order; rows map variable names to terms."""

    variables: tuple[str, ...] = ()
    rows: list[dict[str, Node]] = field(default_factory=list)

    def __iter__(self) -> Iterator[dict[str, Node]]:
        return iter(self.rows)

    def __len__(self) -> int:
        return len(self.rows)

    def __getitem__(self, index: int) -> dict[str, Node]:
        return self.rows[index]

    def __bool__(self) -> bool:
        return bool(self.rows)

    def column(self, name: str) -> list[Optional[Node]]:
        return [row.get(name) for row in self.rows]


Result = Union[bool, SolutionSequence, list, dict, int, str]


def media_type(content_type: Optional[str]) -> str:
    """Strip parameters (``; charset=...``) and normalise case."""
    return (content_type or "").split(";", 1)[0].strip().lower()


def _text(body: Union[str, bytes, None]) -> str:
    if body is None:
        return ""
    if isinstance(body, (bytes, bytearray)):
        return body.decode("utf-8")
    return body


def _literal(value: str, language: Optional[str] = None, datatype: Optional[str] = None) -> Literal:
    if language:
        return Literal(value, lang=language)
    if datatype and URIRef(datatype) != RDF.langString:
        return Literal(value, datatype=URIRef(datatype))
    return Literal(value)


def parse_json_value(value: dict[str, Any], registry: BlankNodeRegistry) -> Node:
    """Decode one binding from the SPARQL JSON results format."""

    if not isinstance(value, dict):
        raise DecodeError(f"Binding must be an object, got {value!r}")
    kind = value.get("type")
    text = value.get("value", "")
    if not isinstance(text, str):
        raise DecodeError(f"Binding value must be a string, got {text!r}")
    if kind == "uri":
        return URIRef(text)
    if kind == "literal":
        return _literal(text, value.get("xml:lang") or value.get("lang"), value.get("datatype"))
    if kind == "typed-literal":
        return _literal(text, datatype=value.get("datatype"))
    if kind == "bnode":
        return registry.node(text)
    raise DecodeError(f"Unknown binding type in JSON results: {kind!r}")


def parse_json_bindings(
    body: Union[str, bytes, dict], registry: Optional[BlankNodeRegistry] = None
) -> Union[bool, SolutionSequence]:
    """Decode a ``application/sparql-results+json`` document."""

    registry = BlankNodeRegistry() if registry is None else registry
    if isinstance(body, dict):
        payload = body
    else:
        try:
            payload = json.loads(_text(body))
        except ValueError as exc:
            raise DecodeError("Invalid JSON in SPARQL results") from exc
    if not isinstance(payload, dict):
        raise DecodeError("SPARQL JSON results must be an object")
    if "boolean" in payload:
        return bool(payload["boolean"])
    results = payload.get("results")
    if not isinstance(results, dict):
        raise DecodeError("SPARQL JSON results carry neither 'boolean' nor 'results'")
    head = payload.get("head", {})
    if not isinstance(head, dict):
        raise DecodeError("SPARQL JSON 'head' must be an object")
    variables = head.get("vars", [])
    if not isinstance(variables, list):
        raise DecodeError("SPARQL JSON 'head.vars' must be a list")
    bindings = results.get("bindings", [])
    if not isinstance(bindings, list):
        raise DecodeError("SPARQL JSON 'results.bindings' must be a list")
    rows = []
    for binding in bindings:
        if not isinstance(binding, dict):
            raise DecodeError("Each SPARQL JSON binding must be an object")
        rows.append({str(name): parse_json_value(value, registry) for name, value in binding.items()})
    variables = tuple(str(name) for name in variables)
    return SolutionSequence(variables, rows)


def parse_xml_value(element: etree._Element, registry: BlankNodeRegistry) -> Node:
    """Decode one ``<binding>`` child from the SPARQL XML results format."""

    kind = etree.QName(element).localname
    text = element.text or ""
    if kind == "uri":
        return URIRef(text.strip())
    if kind == "literal":
        return _literal(text, element.get(XML_LANG), element.get("datatype"))
    if kind == "bnode":
        return registry.node(text.strip())
    raise DecodeError(f"Unknown binding element in XML results: {kind!r}")


def parse_xml_bindings(
    body: Union[str, bytes], registry: Optional[BlankNodeRegistry] = None
) -> Union[bool, SolutionSequence]:
    """Decode a ``application/sparql-results+xml`` document."""

    registry = BlankNodeRegistry() if registry is None else registry
    data = body.encode("utf-8") if isinstance(body, str) else body
    parser = etree.XMLParser(resolve_entities=False, no_network=True)
    try:
        root = etree.fromstring(data, parser)
    except etree.XMLSyntaxError as exc:
        raise DecodeError("Invalid XML in SPARQL results") from exc
    boolean = root.find(f"{SPARQL_RESULTS_NS}boolean")
    if boolean is not None:
        return (boolean.text or "").strip() == "true"
    results = root.find(f"{SPARQL_RESULTS_NS}results")
    if results is None:
        raise DecodeError("SPARQL XML results carry neither <boolean> nor <results>")
    head = root.find(f"{SPARQL_RESULTS_NS}head")
    variables: tuple[str, ...] = ()
    if head is not None:
        variables = tuple(v.get("name") for v in head.findall(f"{SPARQL_RESULTS_NS}variable"))
    rows = []
    for result in results.findall(f"{SPARQL_RESULTS_NS}result"):
        row: dict[str, Node] = {}
        for binding in result.findall(f"{SPARQL_RESULTS_NS}binding"):
            children = [child for child in binding if isinstance(child.tag, str)]
            if not children:
                continue
            row[binding.get("name")] = parse_xml_value(children[0], registry)
        rows.append(row)
    return SolutionSequence(variables, rows)


class _LabelContext:
    """Lets rdflib's N-Triples parser resolve labels through a registry."""

    def __init__(self, registry: BlankNodeRegistry) -> None:
        self._registry = registry

    def get(self, label: str, default: Optional[BNode] = None) -> BNode:
        return self._registry.node(label)

    def __setitem__(self, label: str, node: BNode) -> None:
        self._registry[label] = node


class _StatementSink:
    def __init__(self) -> None:
        self.statements: list[Statement] = []

    def triple(self, s: Node, p: Node, o: Node) -> None:
        self.statements.append(Statement(s, p, o))


def _scope(graph_name: object) -> Optional[Node]:
    return None if graph_name is DEFAULT_GRAPH else graph_name  # type: ignore[return-value]


def _apply_graph(statements: list[Statement], graph_name: object) -> list[Statement]:
    if graph_name is UNBOUND or graph_name is None:
        return statements
    scope = _scope(graph_name)
    return [statement.with_graph(scope) for statement in statements]


def parse_ntriples(
    body: Union[str, bytes],
    registry: Optional[BlankNodeRegistry] = None,
    *,
    graph_name: Union[Node, GraphScope, None] = UNBOUND,
) -> list[Statement]:
    """Parse N-Triples in document order.

    When ``graph_name`` names one graph scope, every statement is placed in
    it: the caller's filter decides the graph, not the serialization.
    """

    registry = BlankNodeRegistry() if registry is None else registry
    sink = _StatementSink()
    try:
        W3CNTriplesParser(sink, bnode_context=_LabelContext(registry)).parsestring(_text(body))
    except ParserError as exc:
        raise DecodeError(f"Invalid N-Triples: {exc}") from exc
    return _apply_graph(sink.statements, graph_name)


def _registered(term: Optional[Node], registry: BlankNodeRegistry) -> Optional[Node]:
    return registry.node(str(term)) if isinstance(term, BNode) else term


def parse_rdf_serialization(
    body: Union[str, bytes],
    registry: Optional[BlankNodeRegistry] = None,
    *,
    rdf_format: str,
    graph_name: Union[Node, GraphScope, None] = UNBOUND,
    quads: bool = False,
) -> list[Statement]:
    """Parse any rdflib-supported serialization into statements.

    rdflib assigns its own blank node labels for these formats; the nodes
    are still recorded in ``registry`` so one decode session shares them.
    """

    registry = BlankNodeRegistry() if registry is None else registry
    text = _text(body)
    try:
        if quads:
            dataset = Dataset()
            dataset.parse(data=text, format=rdf_format)
            rows = [(s, p, o, None if g in (None, DATASET_DEFAULT_GRAPH_ID) else g) for s, p, o, g in dataset]
        else:
            graph = Graph()
            graph.parse(data=text, format=rdf_format)
            rows = [(s, p, o, None) for s, p, o in graph]
    except Exception as exc:
        raise DecodeError(f"Invalid {rdf_format} document: {exc}") from exc
    statements = [Statement(*(_registered(term, registry) for term in row)) for row in rows]
    return _apply_graph(statements, graph_name)


def parse_boolean(body: Union[str, bytes], registry: Optional[BlankNodeRegistry] = None) -> bool:
    return _text(body).strip() == "true"


def parse_raw_json(body: Union[str, bytes], registry: Optional[BlankNodeRegistry] = None) -> Any:
    try:
        return json.loads(_text(body))
    except ValueError as exc:
        raise DecodeError("Invalid JSON body") from exc


Decoder = Callable[..., Result]

BINDING_DECODERS: dict[str, Decoder] = {
    RESULT_BOOL: parse_boolean,
    RESULT_JSON: parse_json_bindings,
    RESULT_XML: parse_xml_bindings,
    RESULT_RDF_JSON: parse_raw_json,
    RAW_JSON: parse_raw_json,
}

STATEMENT_DECODERS: dict[str, Decoder] = {
    NTRIPLES: parse_ntriples,
    NTRIPLES_W3C: parse_ntriples,
    TURTLE: partial(parse_rdf_serialization, rdf_format="turtle"),
    TURTLE_LEGACY: partial(parse_rdf_serialization, rdf_format="turtle"),
    RDF_XML: partial(parse_rdf_serialization, rdf_format="xml"),
    N3: partial(parse_rdf_serialization, rdf_format="n3"),
    "text/n3": partial(parse_rdf_serialization, rdf_format="n3"),
    JSON_LD: partial(parse_rdf_serialization, rdf_format="json-ld"),
    TRIG: partial(parse_rdf_serialization, rdf_format="trig", quads=True),
    "application/x-trig": partial(parse_rdf_serialization, rdf_format="trig", quads=True),
    NQUADS: partial(parse_rdf_serialization, rdf_format="nquads", quads=True),
    "text/x-nquads": partial(parse_rdf_serialization, rdf_format="nquads", quads=True),
}


def is_statement_type(content_type: Optional[str]) -> bool:
    return media_type(content_type) in STATEMENT_DECODERS


def decode(
    body: Union[str, bytes, None],
    content_type: Optional[str],
    registry: Optional[BlankNodeRegistry] = None,
    *,
    graph_name: Union[Node, GraphScope, None] = UNBOUND,
) -> Result:
    """Decode ``body`` according to ``content_type``.

    Raises :class:`UnsupportedContentType` for media types without a decoder.
    """

    kind = media_type(content_type)
    registry = BlankNodeRegistry() if registry is None else registry
    if kind in BINDING_DECODERS:
        return BINDING_DECODERS[kind](_text(body), registry)
    if kind in STATEMENT_DECODERS:
        return STATEMENT_DECODERS[kind](_text(body), registry, graph_name=graph_name)
    _logger.warning("decode.unsupported_content_type", content_type=content_type)
    raise UnsupportedContentType(content_type or "")


__all__ = [
    "RESULT_BOOL",
    "RESULT_JSON",
    "RESULT_XML",
    "RESULT_RDF_JSON",
    "NTRIPLES",
    "NTRIPLES_W3C",
    "TURTLE",
    "RDF_XML",
    "TRIG",
    "NQUADS",
    "BlankNodeRegistry",
    "Solution",
    "SolutionSequence",
    "decode",
    "is_statement_type",
    "media_type",
    "parse_boolean",
    "parse_json_bindings",
    "parse_json_value",
    "parse_ntriples",
    "parse_raw_json",
    "parse_rdf_serialization",
    "parse_xml_bindings",
    "parse_xml_value",
]
