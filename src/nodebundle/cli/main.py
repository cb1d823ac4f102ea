"""CLI entry point for nodebundle.

Defines the command group and its global options (--version, --no-color,
--log-level) and registers the build and args commands.
"""

from __future__ import annotations

import click
import rich_click as rclick

from nodebundle import __version__
from nodebundle.cli.commands.args import args
from nodebundle.cli.commands.build import build
from nodebundle.cli.output import set_no_color
from nodebundle.observability import configure_logging

rclick.rich_click.TEXT_MARKUP = "markdown"
rclick.rich_click.SHOW_ARGUMENTS = True
rclick.rich_click.GROUP_ARGUMENTS_OPTIONS = True


def _configure_logging(ctx: click.Context, param: click.Parameter, value: str) -> str:
    configure_logging(log_level=value, json_format=False)
    return value


@click.group(cls=rclick.RichGroup)
@click.version_option(version=__version__, prog_name="nodebundle")
@click.option(
    "--no-color",
    is_flag=True,
    default=False,
    help="Disable colored output.",
    is_eager=True,
    expose_value=False,
    callback=lambda ctx, param, value: set_no_color(value) if value else None,
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default="WARNING",
    show_default=True,
    help="Minimum level of structured log output.",
    expose_value=False,
    callback=_configure_logging,
)
def cli() -> None:
    """nodebundle - compile Dart entry points into Node.js bundles.

    **Commands:**

    - `nodebundle build` - Compile an entry point with dart2js
    - `nodebundle args` - Show the dart2js command for an entry point
    """


cli.add_command(build)
cli.add_command(args)


if __name__ == "__main__":
    cli()
