from __future__ import annotations

import json
import os

import pytest
from pytest_socket import disable_socket, enable_socket, socket_allow_hosts

from rdfSesame.config import SesameConfig
from rdfSesame.repository import Repository
from rdfSesame.server import Server

BASE_URL = "http://sesame.test/openrdf-sesame"


@pytest.fixture(autouse=True)
def _disable_network(request: pytest.FixtureRequest):
    """Restrict network access while allowing opt-in socket usage."""

    if os.getenv("PYTEST_ALLOW_NETWORK", "0") == "1":
        yield
        return

    allow_marker = request.node.get_closest_marker(
        "enable_socket"
    ) or request.node.get_closest_marker("network")
    socket_allow_hosts(["127.0.0.1", "::1"])
    if allow_marker:
        enable_socket()
        try:
            yield
        finally:
            disable_socket()
    else:
        disable_socket()
        try:
            yield
        finally:
            enable_socket()


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch):
    for name in (
        "SESAME_URL",
        "SESAME_USERNAME",
        "SESAME_PASSWORD",
        "SESAME_TIMEOUT",
        "SESAME_MAX_URL_LENGTH",
        "SESAME_CONFIG",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def base_url() -> str:
    return BASE_URL


@pytest.fixture
def config() -> SesameConfig:
    return SesameConfig(url=BASE_URL, timeout=5)


@pytest.fixture
def server(config) -> Server:
    return Server(config=config)


@pytest.fixture
def repository(server) -> Repository:
    return Repository(server=server, id="SYSTEM")


@pytest.fixture
def repo_url() -> str:
    return f"{BASE_URL}/repositories/SYSTEM"


def _sparql_json(variables, rows) -> str:
    return json.dumps({"head": {"vars": list(variables)}, "results": {"bindings": list(rows)}})


@pytest.fixture
def sparql_json():
    return _sparql_json


@pytest.fixture
def catalog_body() -> str:
    def row(repo_id, title, readable="true", writable="true"):
        return {
            "uri": {"type": "uri", "value": f"{BASE_URL}/repositories/{repo_id}"},
            "id": {"type": "literal", "value": repo_id},
            "title": {"type": "literal", "value": title},
            "readable": {"type": "typed-literal", "value": readable, "datatype": "http://www.w3.org/2001/XMLSchema#boolean"},
            "writable": {"type": "typed-literal", "value": writable, "datatype": "http://www.w3.org/2001/XMLSchema#boolean"},
        }

    return _sparql_json(
        ["uri", "id", "title", "readable", "writable"],
        [row("SYSTEM", "System configuration repository", writable="false"), row("books", "Library")],
    )
