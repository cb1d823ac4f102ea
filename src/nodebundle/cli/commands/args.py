"""nodebundle args command - Print the compiler invocation without running it."""

from __future__ import annotations

from pathlib import Path

import click

from nodebundle.arguments import build_invocation
from nodebundle.cli.output import print_command
from nodebundle.cli.session import load_config, parse_entrypoint, parse_packages, session_options


@click.command("args")
@session_options
def args(
    entrypoint: str,
    packages: tuple[str, ...],
    root_package: str | None,
    config_path: str | None,
    sdk_dir: str | None,
    staging_dir: str,
    compiler_args: tuple[str, ...],
) -> None:
    """Show the `dart compile js` command derived for ENTRYPOINT.

    Nothing is staged or compiled.

    Examples:

        nodebundle args web/main.dart -p app=.
    """
    package_dirs = parse_packages(packages)
    entry_point = parse_entrypoint(entrypoint, root_package or next(iter(package_dirs)))
    config = load_config(config_path, sdk_dir, compiler_args)

    invocation = build_invocation(entry_point, Path(staging_dir).resolve(), config)
    print_command(invocation.command)
