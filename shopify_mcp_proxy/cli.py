"""CLI for shopify-mcp-proxy."""

import sys
from typing import Optional

import typer
from dotenv import load_dotenv
from rich.console import Console

from . import config, utils
from .context import ProxyContext, create_context
from .endpoints import SURFACES, STOREFRONT
from .exceptions import ProxyError
from .report import emit_validation, print_kv, print_versions

app = typer.Typer(help="Shopify GraphQL MCP proxy")
schema_app = typer.Typer(help="Schema operations")
config_app = typer.Typer(help="Configuration file operations")
app.add_typer(schema_app, name="schema")
app.add_typer(config_app, name="config")

console = Console(stderr=True)


def _check_surface(surface: str) -> str:
    if surface not in SURFACES:
        raise typer.BadParameter(f"must be one of: {', '.join(SURFACES)}")
    return surface


def build_context(config_path: Optional[str]) -> ProxyContext:
    """Load .env and config, set up logging, wire the services."""
    load_dotenv()
    cfg = config.load(config_path)
    utils.configure_logging(cfg.log_level)
    return create_context(cfg)


def _fail(e: Exception) -> None:
    console.print(f"[red]Error: {e}[/red]")
    if "--debug" in sys.argv:
        raise e
    raise typer.Exit(1)


@app.command("serve")
def serve_cmd(
    config_path: Optional[str] = typer.Option(None, "--config", help="Config file path"),
):
    """Serve the tools over stdio (MCP)."""
    from . import stdio_server

    try:
        ctx = build_context(config_path)
    except ProxyError as e:
        _fail(e)
    try:
        stdio_server.run(ctx)
    finally:
        ctx.close()


@app.command("http")
def http_cmd(
    host: Optional[str] = typer.Option(None, help="Bind address (default from config)"),
    port: Optional[int] = typer.Option(None, help="Bind port (default from config)"),
    config_path: Optional[str] = typer.Option(None, "--config", help="Config file path"),
):
    """Serve the JSON-RPC and GraphQL pass-through endpoints over HTTP."""
    import uvicorn

    from .http_server import create_app

    try:
        ctx = build_context(config_path)
    except ProxyError as e:
        _fail(e)
    try:
        uvicorn.run(
            create_app(ctx),
            host=host or ctx.config.http_host,
            port=port or ctx.config.http_port,
            log_level=ctx.config.log_level.lower(),
        )
    finally:
        ctx.close()


@app.command("versions")
def versions_cmd(
    surface: str = typer.Option(STOREFRONT, callback=_check_surface, help="storefront|admin"),
    config_path: Optional[str] = typer.Option(None, "--config", help="Config file path"),
):
    """List public API versions and show which one would be used."""
    try:
        ctx = build_context(config_path)
    except ProxyError as e:
        _fail(e)
    try:
        resolved = ctx.versions.resolve(surface)
        print_versions(surface, resolved, ctx.versions.cache.get(surface))
    finally:
        ctx.close()


@schema_app.command("pull")
def schema_pull(
    surface: str = typer.Option(STOREFRONT, callback=_check_surface, help="storefront|admin"),
    refresh: bool = typer.Option(False, help="Re-introspect even if the schema file exists"),
    config_path: Optional[str] = typer.Option(None, "--config", help="Config file path"),
):
    """Fetch and cache the GraphQL schema for the resolved API version."""
    try:
        ctx = build_context(config_path)
    except ProxyError as e:
        _fail(e)
    try:
        if refresh:
            path = ctx.schemas.refresh(surface)
            text = utils.read_text(path)
        else:
            text = ctx.schemas.get_schema(surface)
            path = ctx.schemas.schema_path(surface)
    except ProxyError as e:
        _fail(e)
    finally:
        ctx.close()

    if text is None:
        console.print(f"[red]Error: {surface} schema is not available (is the Admin API enabled?)[/red]")
        raise typer.Exit(1)

    print_kv("Schema pulled", {"surface": surface, "path": path, "bytes": len(text.encode("utf-8"))})


@app.command("validate")
def validate_cmd(
    query_file: str = typer.Argument(..., help="GraphQL query file"),
    surface: str = typer.Option(STOREFRONT, callback=_check_surface, help="storefront|admin"),
    output: str = typer.Option("console", help="Output format (console|json)"),
    config_path: Optional[str] = typer.Option(None, "--config", help="Config file path"),
):
    """Validate a GraphQL query file against the cached schema."""
    try:
        ctx = build_context(config_path)
    except ProxyError as e:
        _fail(e)
    try:
        result = ctx.validator.validate(utils.read_text(query_file), surface)
    except OSError as e:
        _fail(e)
    finally:
        ctx.close()

    emit_validation(result, surface, output)
    if not result.valid:
        raise typer.Exit(2)


@config_app.command("init")
def config_init(
    path: Optional[str] = typer.Option(None, help="Where to write the example config"),
):
    """Write an example config file."""
    try:
        written = config.create_example_config(path)
    except OSError as e:
        _fail(e)
    print_kv("Config written", {"path": written})


def main():
    """Main entry point."""
    app()


if __name__ == "__main__":
    main()
