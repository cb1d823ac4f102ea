"""nodebundle build command - Compile one entry point to a Node.js bundle."""

from __future__ import annotations

from pathlib import Path

import click

from nodebundle.assets import FileSystemAssets
from nodebundle.builder import BundleBuilder, FileSystemBuildStep
from nodebundle.cli.errors import handle_bundle_error
from nodebundle.cli.output import report_skipped, report_written
from nodebundle.cli.session import load_config, parse_entrypoint, parse_packages, session_options
from nodebundle.errors import BundleError
from nodebundle.staging import StagingArea


@click.command("build")
@session_options
@click.option(
    "-o",
    "--output",
    "output_dir",
    type=click.Path(file_okay=False),
    default="build",
    help="Output directory [default: build/]",
)
def build(
    entrypoint: str,
    packages: tuple[str, ...],
    root_package: str | None,
    config_path: str | None,
    sdk_dir: str | None,
    staging_dir: str,
    compiler_args: tuple[str, ...],
    output_dir: str,
) -> None:
    """Compile ENTRYPOINT and its module closure with dart2js.

    Arguments after `--` are passed to dart2js unchanged.

    Examples:

        nodebundle build web/main.dart -p app=.

        nodebundle build app|bin/server.dart -p app=. -p shared=../shared -- -O2
    """
    package_dirs = parse_packages(packages)
    entry_point = parse_entrypoint(entrypoint, root_package or next(iter(package_dirs)))
    config = load_config(config_path, sdk_dir, compiler_args)

    try:
        staging = StagingArea.create(
            Path(staging_dir),
            packages=package_dirs,
            package_config_path=config.package_config_path,
        )
        assets = FileSystemAssets(package_dirs, Path(output_dir))
        step = FileSystemBuildStep(assets, entry_point)
        outcome = BundleBuilder(config).build(step, staging)
    except BundleError as e:
        handle_bundle_error(e)

    if not outcome.built:
        report_skipped(
            str(entry_point),
            [str(lib) for lib in outcome.unsupported_libraries],
            config.platform.name,
        )
        return

    report_written(assets.output_path_for(output) for output in outcome.outputs)
