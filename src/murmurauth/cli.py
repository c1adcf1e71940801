"""Administrative command-line interface."""

from __future__ import annotations

import sys
from pathlib import Path

import click
import uvicorn
import yaml
from pydantic import ValidationError
from safir.click import display_help

from .dependencies.config import config_dependency
from .main import create_openapi
from .util import username_to_id

__all__ = [
    "check_config",
    "help",
    "main",
    "name_to_id",
    "openapi_schema",
    "run",
]


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(message="%(version)s")
def main() -> None:
    """Administrative command-line interface for murmurauth."""


@main.command()
@click.option(
    "--config-path",
    envvar="MURMURAUTH_CONFIG_PATH",
    type=click.Path(path_type=Path),
    default=None,
    help="Application configuration file.",
)
def check_config(*, config_path: Path | None) -> None:
    """Check that the configuration file is valid."""
    path = config_path or config_dependency.config_path
    try:
        config_dependency.set_config_path(path)
    except OSError as e:
        raise click.ClickException(f"Cannot read {path}: {e}") from e
    except (ValidationError, yaml.YAMLError) as e:
        msg = f"Invalid configuration in {path}:\n{e}"
        raise click.ClickException(msg) from e
    sys.stdout.write(f"Configuration in {path} is valid\n")


@main.command()
@click.argument("topic", default=None, required=False, nargs=1)
@click.pass_context
def help(ctx: click.Context, topic: str | None) -> None:
    """Show help for any command."""
    display_help(main, ctx, topic)


@main.command()
@click.argument("username")
def name_to_id(*, username: str) -> None:
    """Print the numeric Mumble user ID for a username.

    The ID is derived from the username alone, so this works whether or not
    the user exists.
    """
    sys.stdout.write(f"{username_to_id(username)}\n")


@main.command()
@click.option(
    "--output",
    default=None,
    type=click.Path(path_type=Path),
    help="Output path (output to stdout if not given).",
)
def openapi_schema(*, output: Path | None) -> None:
    """Generate the OpenAPI schema."""
    schema = create_openapi()
    if output:
        output.parent.mkdir(exist_ok=True)
        output.write_text(schema)
    else:
        sys.stdout.write(schema)


@main.command()
@click.option(
    "--config-path",
    envvar="MURMURAUTH_CONFIG_PATH",
    type=click.Path(path_type=Path),
    default=None,
    help="Application configuration file.",
)
@click.option(
    "--port", default=8080, type=int, help="Port to run the application on."
)
def run(*, config_path: Path | None, port: int) -> None:
    """Run the guest access application."""
    if config_path:
        config_dependency.set_config_path(config_path)
    uvicorn.run("murmurauth.main:create_app", factory=True, port=port)
