#!/usr/bin/env python3
"""
Main CLI entry point for GraphWrap.
"""

import json
import os
import sys

import click
import uvicorn
from uvicorn.importer import ImportFromStringError, import_from_string

from graphwrap import __version__
from graphwrap.config import settings
from graphwrap.exceptions import SchemaBuildError
from graphwrap.logging import configure_logging, get_logger

logger = get_logger(__name__)


def _load_app(app_path: str):
    try:
        app = import_from_string(app_path)
    except ImportFromStringError as e:
        raise click.BadParameter(str(e), param_hint="APP") from e
    from fastapi import FastAPI

    if not isinstance(app, FastAPI):
        raise click.BadParameter(
            f"{app_path} is a {type(app).__name__}, not a FastAPI application", param_hint="APP"
        )
    return app


@click.group()
@click.version_option(version=__version__, prog_name="graphwrap")
def cli() -> None:
    """GraphWrap CLI - inspect REST views and serve their GraphQL overlay."""
    pass


@cli.command()
@click.option(
    "--host",
    default=settings.api_host,
    help=f"Host to bind to (default: {settings.api_host})",
)
@click.option(
    "--port",
    default=settings.api_port,
    type=int,
    help=f"Port to bind to (default: {settings.api_port})",
)
@click.option(
    "--reload",
    is_flag=True,
    default=False,
    help="Enable auto-reload for development",
)
@click.option(
    "--log-level",
    default="info",
    type=click.Choice(["debug", "info", "warning", "error"]),
    help="Log level (default: info)",
)
@click.option(
    "--app",
    "app_path",
    default="graphwrap.example.app:app",
    help="Application import string (default: the example publishing API)",
)
def serve(host: str, port: int, reload: bool, log_level: str, app_path: str) -> None:
    """Start an API server with its /graphql overlay."""

    configure_logging(debug=(log_level == "debug"))

    logger.info(
        "Starting GraphWrap server",
        host=host,
        port=port,
        reload=reload,
        app=app_path,
        log_level=log_level,
    )

    # The app is imported by uvicorn, so settings travel through the environment
    if log_level == "debug":
        os.environ["GRAPHWRAP_DEBUG"] = "true"
        os.environ["GRAPHWRAP_LOG_LEVEL"] = "debug"
    else:
        os.environ.setdefault("GRAPHWRAP_DEBUG", "false")
        os.environ.setdefault("GRAPHWRAP_LOG_LEVEL", log_level)

    try:
        uvicorn.run(
            app_path,
            host=host,
            port=port,
            reload=reload,
            log_level=log_level,
            access_log=True,
        )
    except KeyboardInterrupt:
        logger.info("Server shutdown requested by user")
    except Exception as e:
        logger.error("Server startup failed", error=str(e))
        sys.exit(1)


@cli.command("print-schema")
@click.argument("app_path", metavar="APP")
def print_schema_command(app_path: str) -> None:
    """Print the GraphQL SDL generated for APP (module:attribute)."""
    from graphwrap.schema import build_schema, print_schema

    configure_logging(log_level="warning")
    app = _load_app(app_path)
    try:
        schema = build_schema(app)
    except SchemaBuildError as e:
        click.echo(f"✗ Cannot build schema: {e}", err=True)
        sys.exit(1)
    click.echo(print_schema(schema))


@cli.command("resources")
@click.argument("app_path", metavar="APP")
@click.option(
    "--output-format",
    default="table",
    type=click.Choice(["table", "json"]),
    help="Output format (default: table)",
)
def list_resources(app_path: str, output_format: str) -> None:
    """List the REST resources discovered on APP."""
    from graphwrap.introspection import discover_resources
    from graphwrap.types import links_of

    configure_logging(log_level="warning")
    app = _load_app(app_path)
    try:
        resources = discover_resources(app)
    except SchemaBuildError as e:
        click.echo(f"✗ Cannot discover resources: {e}", err=True)
        sys.exit(1)

    rows = [
        {
            "name": resource.name,
            "type": resource.model.__name__,
            "detail": resource.detail.route.path if resource.detail else None,
            "list": resource.listing.path if resource.listing else None,
            "filters": [p.name for p in resource.listing.query_params] if resource.listing else [],
            "links": {key: link.resource for key, link in links_of(resource.model).items()},
        }
        for resource in resources
    ]

    if output_format == "json":
        click.echo(json.dumps(rows, indent=2))
        return

    if not rows:
        click.echo("No REST resources found.")
        return

    click.echo(f"Found {len(rows)} resource(s):")
    for row in rows:
        click.echo()
        click.echo(f"  {row['name']} ({row['type']})")
        click.echo(f"    detail:  {row['detail'] or '-'}")
        click.echo(f"    list:    {row['list'] or '-'}")
        if row["filters"]:
            click.echo(f"    filters: {', '.join(row['filters'])}")
        for key, target in row["links"].items():
            click.echo(f"    link:    {key} -> {target}")


def main():
    """Entry point for the CLI."""
    cli()


if __name__ == "__main__":
    cli()
