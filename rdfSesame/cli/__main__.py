from __future__ import annotations

"""Command line access to a Sesame server."""

import json
from pathlib import Path
from typing import Optional

import click
from rdflib.term import Node
from tabulate import tabulate

from rdfSesame import __version__
from rdfSesame.config import load_config
from rdfSesame.decoders import SolutionSequence, parse_ntriples
from rdfSesame.exceptions import SesameError
from rdfSesame.repository import Repository
from rdfSesame.server import Server
from rdfSesame.terms import DEFAULT_GRAPH, UNBOUND, StatementPattern, parse_term, serialize_statements


def _server(ctx: click.Context) -> Server:
    cfg = load_config(ctx.obj.get("config_path"))
    if ctx.obj.get("url"):
        cfg = cfg.with_url(ctx.obj["url"])
    return Server(config=cfg)


def _repository(ctx: click.Context, repo_id: str) -> Repository:
    repository = _server(ctx).repository(repo_id)
    if repository is None:
        raise click.ClickException(f"Repository {repo_id!r} not found")
    return repository


def _graph(value: Optional[str]):
    if value is None:
        return UNBOUND
    if value == "null":
        return DEFAULT_GRAPH
    return parse_term(value)


def _cell(term: Optional[Node]) -> str:
    return "" if term is None else term.n3()


def _solutions_json(solutions: SolutionSequence) -> dict:
    return {
        "head": {"vars": list(solutions.variables)},
        "rows": [{name: _cell(term) for name, term in row.items()} for row in solutions],
    }


@click.group()
@click.version_option(__version__)
@click.option("--url", envvar="SESAME_URL", help="Server base URL, e.g. http://localhost:8080/openrdf-sesame.")
@click.option(
    "--config",
    "config_path",
    type=click.Path(path_type=Path),
    envvar="SESAME_CONFIG",
    default=None,
    help="YAML file with client settings.",
)
@click.pass_context
def cli(ctx: click.Context, url: Optional[str], config_path: Optional[Path]) -> None:  # pragma: no cover - simple wrapper
    """rdf-sesame command line."""
    ctx.ensure_object(dict)
    ctx.obj["url"] = url
    ctx.obj["config_path"] = config_path


@cli.command()
@click.pass_context
def protocol(ctx: click.Context) -> None:
    """Print the server's protocol version."""
    try:
        click.echo(str(_server(ctx).protocol()))
    except SesameError as exc:
        raise click.ClickException(str(exc))


@cli.command()
@click.pass_context
def repositories(ctx: click.Context) -> None:
    """List repositories in the server catalog."""
    try:
        catalog = _server(ctx).list_repositories()
    except SesameError as exc:
        raise click.ClickException(str(exc))
    rows = [
        [d.id, d.title, "yes" if d.readable else "no", "yes" if d.writable else "no", d.uri]
        for d in catalog.values()
    ]
    click.echo(tabulate(rows, headers=["id", "title", "readable", "writable", "uri"]))


@cli.command()
@click.argument("repo_id")
@click.option("--context", default=None, help="Graph to count (N-Triples term or 'null').")
@click.pass_context
def size(ctx: click.Context, repo_id: str, context: Optional[str]) -> None:
    """Print the number of statements in a repository."""
    try:
        click.echo(str(_repository(ctx, repo_id).count(_graph(context))))
    except SesameError as exc:
        raise click.ClickException(str(exc))


@cli.command()
@click.argument("repo_id")
@click.pass_context
def contexts(ctx: click.Context, repo_id: str) -> None:
    """List named graphs."""
    try:
        for name in _repository(ctx, repo_id).list_graph_names():
            click.echo(name.n3())
    except SesameError as exc:
        raise click.ClickException(str(exc))


@cli.command()
@click.argument("repo_id")
@click.pass_context
def namespaces(ctx: click.Context, repo_id: str) -> None:
    """List namespace prefixes."""
    try:
        mapping = _repository(ctx, repo_id).list_namespaces()
    except SesameError as exc:
        raise click.ClickException(str(exc))
    click.echo(tabulate(sorted(mapping.items()), headers=["prefix", "namespace"]))


@cli.command()
@click.argument("repo_id")
@click.option("--file", type=click.Path(exists=True, dir_okay=False, path_type=Path), help="Query file.")
@click.option("--sparql", type=str, help="Inline query text.")
@click.option("--format", "fmt", default=None, help="Accept content type for the result.")
@click.option("--raw", is_flag=True, help="Print the response body without decoding it.")
@click.option("-o", "--out", type=click.Path(dir_okay=False, path_type=Path), default=None)
@click.pass_context
def query(
    ctx: click.Context,
    repo_id: str,
    file: Optional[Path],
    sparql: Optional[str],
    fmt: Optional[str],
    raw: bool,
    out: Optional[Path],
) -> None:
    """Run a SPARQL query or update against a repository."""

    if bool(file) == bool(sparql):
        raise click.UsageError("Provide exactly one of --file or --sparql")
    text = file.read_text(encoding="utf-8") if file else sparql
    try:
        result = _repository(ctx, repo_id).raw_query(text, format=fmt, parsing="raw" if raw else None)
    except SesameError as exc:
        raise click.ClickException(str(exc))
    if isinstance(result, bool):
        rendered = json.dumps({"boolean": result})
    elif isinstance(result, SolutionSequence):
        rendered = json.dumps(_solutions_json(result), ensure_ascii=False, indent=2)
    elif isinstance(result, list):
        rendered = serialize_statements(result)
    elif isinstance(result, str):
        rendered = result
    else:
        rendered = json.dumps(result, ensure_ascii=False, indent=2)
    if out is None:
        click.echo(rendered)
        return
    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_text(rendered, encoding="utf-8")
    click.echo(f"Wrote {out}")


@cli.command()
@click.argument("repo_id")
@click.argument("source", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--context", default=None, help="Target graph (N-Triples term or 'null').")
@click.pass_context
def load(ctx: click.Context, repo_id: str, source: Path, context: Optional[str]) -> None:
    """Insert the statements of an N-Triples file."""
    try:
        statements = parse_ntriples(source.read_text(encoding="utf-8"))
        ok = _repository(ctx, repo_id).insert_statements(statements, _graph(context))
    except SesameError as exc:
        raise click.ClickException(str(exc))
    if not ok:
        raise click.ClickException("Server did not confirm the insert")
    click.echo(f"Inserted {len(statements)} statements")


@cli.command()
@click.argument("repo_id")
@click.option("--context", default=None, help="Only clear this graph (N-Triples term or 'null').")
@click.pass_context
def clear(ctx: click.Context, repo_id: str, context: Optional[str]) -> None:
    """Delete statements from a repository."""
    try:
        graph = _graph(context)
        pattern = None if graph is UNBOUND else StatementPattern(graph_name=graph)
        _repository(ctx, repo_id).clear(pattern)
    except SesameError as exc:
        raise click.ClickException(str(exc))
    click.echo("Cleared")


def main() -> None:  # pragma: no cover - console entry point
    cli(obj={})


if __name__ == "__main__":  # pragma: no cover
    main()
