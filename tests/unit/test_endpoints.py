from __future__ import annotations

from urllib.parse import parse_qsl, unquote, urlsplit

import pytest
from rdflib import BNode, Literal, URIRef, Variable

from rdfSesame.endpoints import (
    FORM_ENCODED,
    SPARQL_QUERY,
    SPARQL_UPDATE,
    build_path,
    build_query_request,
    context_filter,
    pattern_filters,
    quote_id,
)
from rdfSesame.exceptions import InvalidPattern
from rdfSesame.terms import DEFAULT_GRAPH, StatementPattern

REPO = "http://sesame.test/openrdf-sesame/repositories/SYSTEM"


def test_build_path_resources():
    assert build_path("SYSTEM") == "repositories/SYSTEM"
    assert build_path("SYSTEM", "size") == "repositories/SYSTEM/size"
    assert build_path("SYSTEM", "contexts") == "repositories/SYSTEM/contexts"
    assert build_path(None, "protocol") == "protocol"
    assert build_path(None, "repositories") == "repositories"


def test_build_path_rejects_unknown_resource():
    with pytest.raises(ValueError):
        build_path("SYSTEM", "bogus")
    with pytest.raises(ValueError):
        build_path(None, "size")


def test_repository_id_is_escaped_once():
    assert quote_id("my repo") == "my%20repo"
    assert quote_id("my%20repo") == "my%20repo"
    assert build_path("my%20repo", "size") == "repositories/my%20repo/size"


def test_subject_only_pattern_emits_single_subj_parameter():
    pattern = StatementPattern(subject=URIRef("http://x/"))
    path = build_path("SYSTEM", "statements", pattern_filters(pattern))
    query = urlsplit(path).query
    assert query == "subj=%3Chttp%3A%2F%2Fx%2F%3E"
    assert parse_qsl(query) == [("subj", "<http://x/>")]


def test_unbound_fields_are_omitted():
    pattern = StatementPattern(predicate=Variable("p"), object=Literal("chat", lang="fr"))
    assert pattern_filters(pattern) == {"obj": '"chat"@fr'}


def test_default_graph_is_distinct_from_no_graph_filter():
    assert "context" not in pattern_filters(StatementPattern())
    assert pattern_filters(StatementPattern(graph_name=DEFAULT_GRAPH)) == {"context": "null"}
    named = pattern_filters(StatementPattern(graph_name=URIRef("http://example.org/g")))
    assert named == {"context": "<http://example.org/g>"}


def test_full_pattern_encodes_every_field():
    pattern = StatementPattern(
        BNode("b1"),
        URIRef("http://xmlns.com/foaf/0.1/age"),
        Literal("42", datatype=URIRef("http://www.w3.org/2001/XMLSchema#integer")),
        DEFAULT_GRAPH,
    )
    path = build_path("SYSTEM", "statements", pattern_filters(pattern))
    params = dict(parse_qsl(urlsplit(path).query))
    assert params == {
        "subj": "_:b1",
        "pred": "<http://xmlns.com/foaf/0.1/age>",
        "obj": '"42"^^<http://www.w3.org/2001/XMLSchema#integer>',
        "context": "null",
    }


def test_spaces_are_percent_encoded():
    path = build_path("SYSTEM", "statements", {"obj": '"a b"'})
    assert "+" not in path
    assert "%20" in path


def test_invalid_filter_value_raises():
    with pytest.raises(InvalidPattern):
        build_path("SYSTEM", "statements", {"subj": "http://not-bracketed/"})
    with pytest.raises(InvalidPattern):
        build_path("SYSTEM", "statements", {"obj": '"unterminated'})


def test_non_statement_filters_are_passed_through():
    path = build_path("SYSTEM", "namespaces", {"anything": "goes here"})
    assert path == "repositories/SYSTEM/namespaces?anything=goes%20here"


def test_context_filter():
    assert context_filter(None) == {"context": "null"}
    assert context_filter(URIRef("http://g/")) == {"context": "<http://g/>"}


def test_short_query_uses_get():
    request = build_query_request(REPO, "SELECT * WHERE { ?s ?p ?o }", accept="application/sparql-results+json")
    assert request.method == "GET"
    assert request.body is None
    assert request.headers == {"Accept": "application/sparql-results+json"}
    params = dict(parse_qsl(urlsplit(request.url).query))
    assert params == {"query": "SELECT * WHERE { ?s ?p ?o }", "queryLn": "sparql"}


def test_long_query_moves_into_body():
    query = "SELECT * WHERE { ?s ?p \"" + "x" * 3000 + "\" }"
    request = build_query_request(REPO, query, accept="application/sparql-results+json", max_url_length=2500)
    assert request.method == "POST"
    assert request.url == REPO
    assert request.headers["Content-Type"] == SPARQL_QUERY
    assert request.body == query


def test_threshold_is_configurable():
    query = "ASK { ?s ?p ?o }"
    request = build_query_request(REPO, query, accept="text/boolean", max_url_length=10)
    assert request.method == "POST"


def test_long_serql_query_is_form_encoded():
    query = "SELECT * FROM {x} p {y} WHERE y LIKE \"" + "z" * 3000 + "\""
    request = build_query_request(REPO, query, accept="application/sparql-results+json", language="serql")
    assert request.headers["Content-Type"] == FORM_ENCODED
    assert "queryLn=serql" in request.body


def test_update_posts_to_statements():
    request = build_query_request(REPO, "DELETE DATA { <a:s> <a:p> <a:o> }", accept="*/*", update=True)
    assert request.method == "POST"
    assert request.url == f"{REPO}/statements"
    assert request.headers == {"Content-Type": SPARQL_UPDATE}


def test_infer_flag_is_forwarded():
    request = build_query_request(REPO, "ASK {}", accept="text/boolean", infer=False)
    assert "infer=false" in unquote(request.url)
