from __future__ import annotations

"""Paths and query strings for the Sesame 2.0 HTTP protocol."""

from typing import Mapping, NamedTuple, Optional, Union
from urllib.parse import quote, unquote, urlencode

from rdflib.term import Node

from .exceptions import InvalidPattern
from .terms import DEFAULT_GRAPH, UNBOUND, StatementPattern, is_bound, parse_term, term_to_ntriples

RESOURCES = (
    None,
    "size",
    "statements",
    "contexts",
    "namespaces",
    "protocol",
    "repositories",
)
SERVER_RESOURCES = ("protocol", "repositories")
STATEMENT_FILTER_KEYS = ("subj", "pred", "obj", "context")
NULL_CONTEXT = "null"

SPARQL_QUERY = "application/sparql-query"
SPARQL_UPDATE = "application/sparql-update"
FORM_ENCODED = "application/x-www-form-urlencoded"
QUERY_LANGUAGES = ("sparql", "serql")


class QueryRequest(NamedTuple):
    """A fully prepared query or update exchange."""

    method: str
    url: str
    headers: dict[str, str]
    body: Optional[str] = None


def encode_query(params: Mapping[str, object]) -> str:
    """Percent-encode ``params`` (spaces become ``%20``)."""
    return urlencode([(str(k), str(v)) for k, v in params.items()], quote_via=quote, safe="")


def quote_id(repository_id: object) -> str:
    """Escape a repository id exactly once, even if it arrives pre-escaped."""
    return quote(unquote(str(repository_id)), safe="")


def _validate_statement_filters(filters: Mapping[str, object]) -> None:
    for key in STATEMENT_FILTER_KEYS:
        if key not in filters:
            continue
        value = filters[key]
        if key == "context" and value == NULL_CONTEXT:
            continue
        if not isinstance(value, str):
            raise InvalidPattern(f"Filter {key!r} must be an N-Triples string, got {value!r}")
        parse_term(value)


def build_path(
    repository_id: object = None,
    resource: Optional[str] = None,
    filters: Optional[Mapping[str, object]] = None,
) -> str:
    """Return the server-relative path (and query string) for an operation.

    >>> build_path("SYSTEM", "size")
    'repositories/SYSTEM/size'
    """

    if resource not in RESOURCES:
        raise ValueError(f"Unknown resource: {resource!r}")
    if repository_id is None:
        if resource not in SERVER_RESOURCES:
            raise ValueError(f"Resource {resource!r} requires a repository id")
        path = str(resource)
    else:
        path = f"repositories/{quote_id(repository_id)}"
        if resource is not None:
            path = f"{path}/{resource}"
    if filters:
        if resource in ("statements", "size"):
            _validate_statement_filters(filters)
        path = f"{path}?{encode_query(filters)}"
    return path


def pattern_filters(pattern: StatementPattern) -> dict[str, str]:
    """Encode the bound fields of ``pattern`` as ``subj/pred/obj/context`` filters."""

    filters: dict[str, str] = {}
    for key, term in (
        ("subj", pattern.subject),
        ("pred", pattern.predicate),
        ("obj", pattern.object),
    ):
        if is_bound(term):
            filters[key] = term_to_ntriples(term)
    scope = pattern.graph_filter
    if scope is DEFAULT_GRAPH:
        filters["context"] = NULL_CONTEXT
    elif scope is not UNBOUND:
        filters["context"] = term_to_ntriples(scope)
    return filters


def context_filter(graph_name: Union[Node, None]) -> dict[str, str]:
    """``context`` filter for one graph; ``None`` selects the default graph."""
    if graph_name is None or graph_name is DEFAULT_GRAPH:
        return {"context": NULL_CONTEXT}
    if graph_name is UNBOUND:
        return {}
    return {"context": term_to_ntriples(graph_name)}


def normalize_language(language: object) -> str:
    return "serql" if str(language).lower() == "serql" else "sparql"


def build_query_request(
    repository_url: str,
    query: str,
    *,
    accept: str,
    language: str = "sparql",
    update: bool = False,
    max_url_length: int = 2500,
    infer: Optional[bool] = None,
) -> QueryRequest:
    """Choose between GET and POST for a query, and POST for an update.

    Queries travel in the URL unless it would grow past ``max_url_length``
    bytes, in which case they move into the request body.
    """

    repository_url = repository_url.rstrip("/")
    if update:
        return QueryRequest(
            "POST",
            f"{repository_url}/statements",
            {"Content-Type": SPARQL_UPDATE},
            query,
        )
    language = normalize_language(language)
    params: dict[str, object] = {"query": query, "queryLn": language}
    if infer is not None:
        params["infer"] = "true" if infer else "false"
    url = f"{repository_url}?{encode_query(params)}"
    headers = {"Accept": accept}
    if len(url.encode("utf-8")) <= max_url_length:
        return QueryRequest("GET", url, headers, None)
    if language == "sparql":
        extra = {k: v for k, v in params.items() if k not in ("query", "queryLn")}
        post_url = f"{repository_url}?{encode_query(extra)}" if extra else repository_url
        headers["Content-Type"] = SPARQL_QUERY
        return QueryRequest("POST", post_url, headers, query)
    headers["Content-Type"] = FORM_ENCODED
    return QueryRequest("POST", repository_url, headers, encode_query(params))


__all__ = [
    "RESOURCES",
    "STATEMENT_FILTER_KEYS",
    "NULL_CONTEXT",
    "SPARQL_QUERY",
    "SPARQL_UPDATE",
    "FORM_ENCODED",
    "QUERY_LANGUAGES",
    "QueryRequest",
    "build_path",
    "build_query_request",
    "context_filter",
    "encode_query",
    "normalize_language",
    "pattern_filters",
    "quote_id",
]
