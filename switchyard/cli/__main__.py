"""Switchyard CLI - Main Entry Point."""

from dataclasses import replace
from typing import Any, Dict, Optional
import importlib
import json
import logging
import sys

import click

from . import __cli_name__
from .. import __version__
from ..config import ConfigError, SettingsLoader
from ..server import SwitchyardServer


def load_target(target: str) -> SwitchyardServer:
    """
    Import ``module:attribute`` and return the server it names.

    Raises:
        click.BadParameter: If the target cannot be imported or is not a server
    """
    module_name, sep, attr = target.partition(":")
    if not sep or not module_name or not attr:
        raise click.BadParameter(f"expected 'module:attribute', got {target!r}", param_hint="TARGET")

    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise click.BadParameter(f"cannot import {module_name!r}: {e}", param_hint="TARGET")

    obj: Any = module
    for part in attr.split("."):
        try:
            obj = getattr(obj, part)
        except AttributeError:
            raise click.BadParameter(f"{module_name!r} has no attribute {attr!r}", param_hint="TARGET")

    if not isinstance(obj, SwitchyardServer) and callable(obj):
        obj = obj()
    if not isinstance(obj, SwitchyardServer):
        raise click.BadParameter(
            f"{target!r} is a {type(obj).__name__}, not a SwitchyardServer", param_hint="TARGET",
        )
    return obj


@click.group()
@click.version_option(version=__version__, prog_name=__cli_name__)
def cli():
    """Controller routing with guarded async middleware."""


@cli.command('routes')
@click.argument('target')
@click.option('--json', 'as_json', is_flag=True, help='Print the route table as JSON')
def routes(target: str, as_json: bool):
    """
    Print the route table of TARGET.

    Examples:
      switchyard routes app:server
      switchyard routes app:server --json
    """
    server = load_target(target)
    info = server.route_info()

    if as_json:
        click.echo(json.dumps(info, indent=2))
        return

    rows = [
        (endpoint["route"], f"{controller['controller']}.{endpoint['action']}", ", ".join(endpoint["middleware"]))
        for controller in info
        for endpoint in controller["endpoints"]
    ]
    if not rows:
        click.echo("No routes registered.")
        return

    width = max(len(r[0]) for r in rows) + 2
    for route, action, middleware in rows:
        line = f"{route.ljust(width)}{action}"
        if middleware:
            line += f"  [{middleware}]"
        click.echo(line)


@cli.command('serve')
@click.argument('target')
@click.option('--host', type=str, default=None, help='Bind address')
@click.option('--port', type=int, default=None, help='Bind port')
@click.option('--env-file', type=click.Path(dir_okay=False), default=None, help='Load settings from a .env file')
@click.option('--log-level', type=click.Choice(['critical', 'error', 'warning', 'info', 'debug']), default=None)
def serve(target: str, host: Optional[str], port: Optional[int], env_file: Optional[str], log_level: Optional[str]):
    """
    Serve TARGET with uvicorn.

    Examples:
      switchyard serve app:server
      switchyard serve app:server --host 0.0.0.0 --port 8080
    """
    server = load_target(target)

    overrides: Dict[str, Any] = {
        key: value
        for key, value in (("host", host), ("port", port), ("log_level", log_level))
        if value is not None
    }
    try:
        if env_file:
            server.settings = SettingsLoader.load(env_file=env_file, overrides=overrides, base=server.settings)
        elif overrides:
            server.settings = replace(server.settings, **overrides)
    except ConfigError as e:
        raise click.UsageError(str(e))

    logging.getLogger("switchyard.cli").debug("Serving %s with %r", target, server.settings)
    try:
        server.run()
    except KeyboardInterrupt:
        click.echo("Server stopped")
        sys.exit(0)


def main():
    """Entry point for `switchyard` command."""
    cli()


if __name__ == '__main__':
    main()
