"""Shared option handling for CLI commands.

Turns command line options into the objects a build step needs: the
session config, the package map and the entry point.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from pathlib import Path
from typing import Any, TypeVar

import click

from nodebundle.assets import AssetId
from nodebundle.cli.errors import EXIT_SYSTEM_ERROR, CLIError
from nodebundle.config import CONFIG_FILE_NAME, BundlerConfig
from nodebundle.errors import ConfigurationError

F = TypeVar("F", bound=Callable[..., Any])


def session_options(func: F) -> F:
    """Options shared by every command that derives an invocation."""
    options = [
        click.argument("entrypoint"),
        click.option(
            "-p",
            "--package",
            "packages",
            multiple=True,
            required=True,
            help="Package root as NAME=DIR. Repeat for every package in the graph.",
        ),
        click.option(
            "-r",
            "--root-package",
            default=None,
            help="Package of ENTRYPOINT when given without 'package|' [default: first --package]",
        ),
        click.option(
            "-c",
            "--config",
            "config_path",
            type=click.Path(dir_okay=False),
            default=None,
            help=f"Path to {CONFIG_FILE_NAME} [default: ./{CONFIG_FILE_NAME} if present]",
        ),
        click.option(
            "--sdk",
            "sdk_dir",
            type=click.Path(file_okay=False),
            default=None,
            help="Dart SDK root [default: $DART_SDK or from 'dart' on PATH]",
        ),
        click.option(
            "-s",
            "--staging-dir",
            type=click.Path(file_okay=False),
            default=".nodebundle/staging",
            help="Staging directory [default: .nodebundle/staging]",
        ),
        click.argument("compiler_args", nargs=-1, type=click.UNPROCESSED),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def parse_packages(specs: Sequence[str]) -> dict[str, Path]:
    """Parse ``NAME=DIR`` package options, keeping their order.

    Raises:
        CLIError: If a spec is malformed or a directory is missing.
    """
    packages: dict[str, Path] = {}
    for spec in specs:
        name, sep, directory = spec.partition("=")
        if not sep or not name or not directory:
            raise CLIError(f"Invalid --package '{spec}', expected NAME=DIR")
        path = Path(directory)
        if not path.is_dir():
            raise CLIError(f"Package directory not found: {directory}", exit_code=EXIT_SYSTEM_ERROR)
        packages[name] = path
    return packages


def parse_entrypoint(value: str, root_package: str) -> AssetId:
    """Parse ENTRYPOINT as ``package|path`` or a path in the root package."""
    try:
        if "|" in value:
            return AssetId.parse(value)
        return AssetId(package=root_package, path=value)
    except ValueError as e:
        raise CLIError(f"Invalid entry point '{value}': {e}") from None


def load_config(
    config_path: str | None,
    sdk_dir: str | None,
    compiler_args: Sequence[str],
) -> BundlerConfig:
    """Load the session config and resolve environment-derived settings.

    Raises:
        CLIError: If the config file is missing or invalid, or no SDK is found.
    """
    try:
        if config_path is not None:
            config = BundlerConfig.from_yaml(Path(config_path))
        elif Path(CONFIG_FILE_NAME).exists():
            config = BundlerConfig.from_yaml(Path(CONFIG_FILE_NAME))
        else:
            config = BundlerConfig()

        updates: dict[str, object] = {
            "compiler_args": (*config.compiler_args, *compiler_args),
        }
        if sdk_dir is not None:
            updates["sdk_dir"] = Path(sdk_dir)
        return config.model_copy(update=updates).with_environment()

    except FileNotFoundError as e:
        raise CLIError(str(e), exit_code=EXIT_SYSTEM_ERROR) from None
    except ConfigurationError as e:
        raise CLIError(e.user_message, exit_code=EXIT_SYSTEM_ERROR) from None
