from __future__ import annotations

"""Command line access to a configured triple store."""

import json
from pathlib import Path

import click
from tabulate import tabulate

from sparqlBridge import __version__
from sparqlBridge.config import load_config
from sparqlBridge.connection import Connection
from sparqlBridge.errors import SparqlBridgeError
from sparqlBridge.results import ResultSet
from sparqlBridge.triplestore import available_adapters


def _connect(config_path: str | None, endpoint: str | None, implementation: str | None) -> Connection:
    cfg = load_config(config_path)
    if endpoint:
        cfg.endpoint = endpoint
        cfg.update_endpoint = None
    if implementation:
        cfg.implementation = implementation
    return Connection(cfg)


def _connection_options(func):
    func = click.option(
        "--implementation",
        type=click.Choice(available_adapters(), case_sensitive=False),
        help="Triple store flavour (overrides config).",
    )(func)
    func = click.option("--endpoint", help="SPARQL query endpoint (overrides config).")(func)
    func = click.option(
        "--config",
        "config_path",
        type=click.Path(dir_okay=False),
        help="YAML settings file (defaults to $SPARQLBRIDGE_CONFIG).",
    )(func)
    return func


@click.group()
@click.version_option(__version__)
def cli() -> None:  # pragma: no cover - simple wrapper
    """sparqlBridge command line."""


@cli.command()
@_connection_options
@click.option("--file", "-f", type=click.Path(exists=True), help="SPARQL query file (.rq)")
@click.option("--sparql", "-q", help="Inline SPARQL query string")
@click.option(
    "--form",
    type=click.Choice(["select", "ask", "construct"]),
    default="select",
    show_default=True,
)
@click.option(
    "--format",
    "fmt",
    type=click.Choice(["json", "table"]),
    default="table",
    show_default=True,
)
@click.option("--out", "-o", type=click.Path(), help="Write the result to this file.")
def query(config_path, endpoint, implementation, file, sparql, form, fmt, out):
    """Run a SPARQL query and print or save the result."""

    if bool(file) == bool(sparql):
        raise click.UsageError("Provide exactly one of --file or --sparql")
    text = Path(file).read_text(encoding="utf-8") if file else sparql
    try:
        with _connect(config_path, endpoint, implementation) as conn:
            if form == "ask":
                output = json.dumps({"boolean": bool(conn.ask(text))})
            elif form == "construct":
                output = conn.construct(text)
            else:
                result = conn.select(text)
                if not isinstance(result, ResultSet):
                    output = json.dumps({"boolean": bool(result)})
                elif fmt == "json":
                    output = json.dumps(result.as_dicts(), ensure_ascii=False, indent=2, default=str)
                else:
                    output = tabulate(
                        [[row.value(var) for var in result.variables] for row in result],
                        headers=result.variables,
                    )
    except SparqlBridgeError as exc:
        raise click.ClickException(str(exc))
    if out:
        out_path = Path(out)
        out_path.parent.mkdir(parents=True, exist_ok=True)
        out_path.write_text(output, encoding="utf-8")
        click.echo(f"Wrote {out_path}")
    else:
        click.echo(output)


@cli.command()
@_connection_options
@click.argument("source", type=click.Path(exists=True, dir_okay=False))
@click.option("--graph", help="Target named graph IRI.")
@click.option("--replace", is_flag=True, help="Replace the graph instead of adding to it.")
@click.option("--format", "rdf_format", default=None, help="rdflib parser format (guessed from the extension).")
def load(config_path, endpoint, implementation, source, graph, replace, rdf_format):
    """Upload an RDF file through the Graph Store Protocol."""

    from rdflib import Graph
    from rdflib.util import guess_format

    rdf_graph = Graph()
    rdf_graph.parse(source, format=rdf_format or guess_format(source) or "turtle")
    try:
        with _connect(config_path, endpoint, implementation) as conn:
            if replace:
                conn.replace_graph(rdf_graph, graph)
            else:
                conn.insert_graph(rdf_graph, graph)
            target = conn.gsp_url(graph)
    except SparqlBridgeError as exc:
        raise click.ClickException(str(exc))
    click.echo(f"{len(rdf_graph)} triples -> {target}")


@cli.command(name="gsp-url")
@_connection_options
@click.option("--graph", help="Named graph IRI.")
def gsp_url(config_path, endpoint, implementation, graph):
    """Print the Graph Store Protocol URL for the configured store."""

    try:
        conn = _connect(config_path, endpoint, implementation)
    except SparqlBridgeError as exc:
        raise click.ClickException(str(exc))
    click.echo(conn.gsp_url(graph))


@cli.group()
def namespace() -> None:
    """Create, delete and check store namespaces (datasets)."""


@namespace.command(name="create")
@_connection_options
@click.argument("name")
@click.option("--property", "properties", multiple=True, help="KEY=VALUE passed to the admin API.")
def namespace_create(config_path, endpoint, implementation, name, properties):
    props = {}
    for item in properties:
        key, sep, value = item.partition("=")
        if not sep:
            raise click.UsageError(f"Expected KEY=VALUE, got {item!r}")
        props[key.strip()] = value.strip()
    try:
        with _connect(config_path, endpoint, implementation) as conn:
            created = conn.create_namespace(name, props)
    except SparqlBridgeError as exc:
        raise click.ClickException(str(exc))
    click.echo(f"created {name}" if created else f"{name} already exists")


@namespace.command(name="delete")
@_connection_options
@click.argument("name")
def namespace_delete(config_path, endpoint, implementation, name):
    try:
        with _connect(config_path, endpoint, implementation) as conn:
            deleted = conn.delete_namespace(name)
    except SparqlBridgeError as exc:
        raise click.ClickException(str(exc))
    click.echo(f"deleted {name}" if deleted else f"{name} not found")


@namespace.command(name="exists")
@_connection_options
@click.argument("name")
def namespace_exists(config_path, endpoint, implementation, name):
    try:
        with _connect(config_path, endpoint, implementation) as conn:
            exists = conn.namespace_exists(name)
    except SparqlBridgeError as exc:
        raise click.ClickException(str(exc))
    click.echo("yes" if exists else "no")
    if not exists:
        click.get_current_context().exit(1)


def main() -> None:  # pragma: no cover - CLI entrypoint
    cli()


if __name__ == "__main__":  # pragma: no cover
    main()
