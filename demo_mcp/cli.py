"""Command line entry point: serve over stdio or HTTP."""

from __future__ import annotations

import asyncio
import json
import logging
import sys

import click

from . import __version__
from .protocol import TransportWriteError
from .server import ServerConfig, create_server
from .transport import StdioTransport

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class JsonFormatter(logging.Formatter):
    """One JSON object per log record."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "time": self.formatTime(record),
            "level": record.levelname.lower(),
            "logger": record.name,
            "msg": record.getMessage(),
        }
        if record.exc_info:
            entry["error"] = self.formatException(record.exc_info)
        return json.dumps(entry)


def configure_logging(level: str, json_logs: bool = False) -> None:
    """Send logs to stderr; stdout carries protocol frames in stdio mode."""
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JsonFormatter() if json_logs else logging.Formatter(LOG_FORMAT))
    logging.basicConfig(level=level.upper(), handlers=[handler], force=True)


def _fail(msg: str) -> None:
    click.echo(f"Error: {msg}", err=True)
    sys.exit(1)


@click.group(invoke_without_command=True)
@click.version_option(version=__version__, prog_name="demo-mcp")
@click.option(
    "--log-level",
    envvar="MCP_LOG_LEVEL",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"], case_sensitive=False),
    default=None,
    help="Log level (default: INFO).",
)
@click.option("--json-logs", is_flag=True, help="Emit logs as JSON lines.")
@click.pass_context
def cli(ctx: click.Context, log_level: str | None, json_logs: bool) -> None:
    """Tool server speaking a simplified MCP dialect.

    Serves HTTP when no command is given.
    """
    try:
        config = ServerConfig.from_env()
    except ValueError as e:
        _fail(str(e))
    if log_level:
        config.log_level = log_level.upper()

    configure_logging(config.log_level, json_logs)
    ctx.ensure_object(dict)
    ctx.obj["config"] = config

    if ctx.invoked_subcommand is None:
        ctx.invoke(http)


@cli.command()
@click.pass_context
def stdio(ctx: click.Context) -> None:
    """Serve line-delimited JSON on stdin/stdout."""
    config: ServerConfig = ctx.obj["config"]
    server = create_server(config)
    transport = StdioTransport(input_stream=sys.stdin, output_stream=sys.stdout)

    logger.info("Starting in stdio mode")
    try:
        asyncio.run(server.run(transport))
    except TransportWriteError as e:
        logger.error(f"Failed to write response: {e}")
        sys.exit(1)


@cli.command()
@click.option("--host", default=None, help="Interface to bind (env: HOST).")
@click.option("--port", type=int, default=None, help="Port to listen on (env: PORT).")
@click.pass_context
def http(ctx: click.Context, host: str | None, port: int | None) -> None:
    """Serve JSON over HTTP."""
    import uvicorn

    from .http_app import create_app

    config: ServerConfig = ctx.obj["config"]
    if host:
        config.host = host
    if port is not None:
        config.port = port

    app = create_app(config=config)

    logger.info(f"Starting MCP server on {config.host}:{config.port}")
    try:
        uvicorn.run(
            app,
            host=config.host,
            port=config.port,
            log_level=config.log_level.lower(),
        )
    except OSError as e:
        logger.error(f"Failed to start server: {e}")
        sys.exit(1)


def main() -> None:
    cli(obj={})
