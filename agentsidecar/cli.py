"""Click CLI definitions - main entry point."""

from __future__ import annotations

import logging
import sys

import click

from agentsidecar.commands.config_cmd import config_group
from agentsidecar.commands.server_cmd import server_group


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx, debug: bool) -> None:
    """agentsidecar - JSON-RPC bridge between a host app and coding agents."""
    level = logging.DEBUG if debug else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        stream=sys.stderr,
    )
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug


cli.add_command(config_group, "config")
cli.add_command(server_group, "server")


if __name__ == "__main__":
    cli()
