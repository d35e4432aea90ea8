"""Command line entry point: run the parse service or parse one file."""

import json
import logging
from pathlib import Path

import click

from librium_parser.errors import ParseFatalError

from .config import ServerConfig, load_server_config
from .service import ParseService

logger = logging.getLogger(__name__)


def _load_config(config_path: str | None) -> ServerConfig:
    if config_path is None:
        return ServerConfig()
    try:
        return load_server_config(config_path)
    except (OSError, ValueError) as exc:
        raise click.ClickException(f"invalid config {config_path}: {exc}") from exc


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@click.group()
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="YAML file with server and parser settings.",
)
@click.pass_context
def main(ctx: click.Context, config_path: str | None) -> None:
    """EPUB parse service."""
    ctx.obj = _load_config(config_path)


@main.command()
@click.option("--host", type=str, default=None, help="Interface to bind.")
@click.option("--port", "-p", type=int, default=None, help="Port to listen on.")
@click.option("--log-level", type=str, default=None, help="Logging level.")
@click.pass_obj
def serve(
    config: ServerConfig, host: str | None, port: int | None, log_level: str | None
) -> None:
    """Start the HTTP service.

    Options given here override the config file.
    """
    import uvicorn

    from .app import create_app

    host = host or config.host
    port = port or config.port
    level = log_level or config.log_level
    _setup_logging(level)

    logger.info("Starting parse service on %s:%d", host, port)
    uvicorn.run(create_app(config), host=host, port=port, log_level=level.lower())


@main.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.option("--indent", type=int, default=2, help="JSON indentation.")
@click.pass_obj
def parse(config: ServerConfig, file: str, indent: int) -> None:
    """Parse FILE and print the response JSON."""
    _setup_logging("WARNING")
    path = Path(file)
    service = ParseService(config)
    try:
        response = service.parse_path(
            path, file_name=path.name, file_size=path.stat().st_size
        )
    except ParseFatalError as exc:
        raise click.ClickException(f"failed to parse epub: {exc}") from exc
    click.echo(json.dumps(response.to_wire(), indent=indent, ensure_ascii=False))
