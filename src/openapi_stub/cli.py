"""CLI entry point for openapi-stub."""

import json
import logging
from pathlib import Path

import click

from openapi_stub.errors import DocumentLoadError
from openapi_stub.server import DEFAULT_PORT, StubServer, create_app, serve
from openapi_stub.spec.loader import load_fixtures, load_spec


def _document_options(func):
    """Options shared by every command: the two input documents and verbosity."""
    func = click.option(
        "--verbose", is_flag=True, envvar="OPENAPI_STUB_VERBOSE",
        help="Log response schemas, compiled paths and response bodies.",
    )(func)
    func = click.option(
        "--fixtures", "fixtures_path", required=True, envvar="OPENAPI_STUB_FIXTURES",
        type=click.Path(path_type=Path), help="Fixtures document (JSON or YAML).",
    )(func)
    func = click.option(
        "--spec", "spec_path", required=True, envvar="OPENAPI_STUB_SPEC",
        type=click.Path(path_type=Path), help="OpenAPI specification document (JSON or YAML).",
    )(func)
    return func


def _configure_logging(verbose: bool, level: int = logging.INFO) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else level,
        format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def _load_stub(spec_path: Path, fixtures_path: Path) -> StubServer:
    """Load both documents and build the stub. Any load failure aborts the command."""
    try:
        spec = load_spec(spec_path)
        fixtures = load_fixtures(fixtures_path)
    except DocumentLoadError as e:
        raise click.ClickException(str(e)) from e
    return StubServer(spec, fixtures)


@click.group()
def main():
    """OpenAPI Stub: answer HTTP requests with data shaped by an OpenAPI spec."""
    pass


@main.command(name="serve")
@_document_options
@click.option("--port", type=int, default=None, envvar="OPENAPI_STUB_PORT", help=f"TCP port to listen on (default {DEFAULT_PORT}).")
@click.option("--unix", default=None, envvar="OPENAPI_STUB_UNIX", help="Unix socket to listen on.")
@click.option("--host", default="0.0.0.0", show_default=True, envvar="OPENAPI_STUB_HOST", help="Interface to bind for TCP.")
def serve_command(spec_path: Path, fixtures_path: Path, verbose: bool, port: int | None, unix: str | None, host: str):
    """Serve stub responses over HTTP."""
    if port is not None and unix:
        raise click.UsageError("Specify only one of --port or --unix")

    _configure_logging(verbose)
    stub = _load_stub(spec_path, fixtures_path)
    serve(
        create_app(stub),
        host=host,
        port=port,
        unix=unix,
        log_level="debug" if verbose else "info",
    )


@main.command()
@_document_options
def routes(spec_path: Path, fixtures_path: Path, verbose: bool):
    """List every route the stub serves."""
    _configure_logging(verbose, level=logging.WARNING)
    stub = _load_stub(spec_path, fixtures_path)

    count = 0
    for route in stub.router.routes():
        click.echo(f"{route.method} {route.template}")
        count += 1
    click.echo(f"{count} endpoint(s).")


@main.command()
@_document_options
@click.argument("method")
@click.argument("path")
def generate(spec_path: Path, fixtures_path: Path, verbose: bool, method: str, path: str):
    """Print the stub response for METHOD PATH without starting a server."""
    _configure_logging(verbose, level=logging.WARNING)
    stub = _load_stub(spec_path, fixtures_path)

    status, body = stub.handle_request(method, path)
    click.echo(f"Status: {status}")
    if body:
        click.echo(json.dumps(json.loads(body), indent=2))

    if status != 200:
        raise click.exceptions.Exit(1)
