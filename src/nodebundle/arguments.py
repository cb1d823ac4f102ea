"""Compiler invocation builder.

Maps an entry point to the ``dart compile js`` command line. The mapping is
pure: the same entry point, staging root and config always produce the same
arguments.

Entry points under ``lib/`` are addressed with a ``package:`` URI; all other
entry points go through the multi-root scheme backed by the staging root:

    app|lib/src/main.dart  ->  package:app/src/main.dart
                               -opackages/app/src/main.dart.js
    app|web/main.dart      ->  org-dartlang-app:///web/main.dart
                               -oweb/main.dart.js
"""

from __future__ import annotations

import posixpath
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

from nodebundle.assets import LIB_DIR, AssetId
from nodebundle.config import BundlerConfig
from nodebundle.outputs import output_ids
from nodebundle.staging import PACKAGES_DIR

PACKAGE_SCHEME = "package:"


class CompilerInvocation(BaseModel):
    """A fully derived compiler command.

    Attributes:
        executable: Path of the ``dart`` executable.
        vm_args: Dart VM flags placed before ``compile js``.
        args: dart2js arguments, entry URI last.
        working_directory: Staging root the compiler runs in.
        entry_uri: URI of the entry point as seen by the compiler.
        output_path: Bundle path relative to the working directory.
        output_id: Asset id of the bundle.
        source_map_id: Asset id of the companion source map.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    executable: Path
    vm_args: tuple[str, ...] = ()
    args: tuple[str, ...]
    working_directory: Path
    entry_uri: str = Field(..., min_length=1)
    output_path: str = Field(..., min_length=1)
    output_id: AssetId
    source_map_id: AssetId

    @property
    def command(self) -> list[str]:
        """Full argv for ``subprocess.run``."""
        return [str(self.executable), *self.vm_args, "compile", "js", *self.args]

    @property
    def output_file(self) -> Path:
        return self.working_directory / self.output_path


def entry_uri(entry_point: AssetId, config: BundlerConfig) -> str:
    """URI identifying ``entry_point`` to the compiler."""
    if entry_point.is_lib:
        return f"{PACKAGE_SCHEME}{entry_point.package}/{entry_point.path[len(LIB_DIR) :]}"
    return f"{config.multi_root_scheme}:///{entry_point.path}"


def output_path_for(uri: str, config: BundlerConfig) -> str:
    """Bundle path, relative to the staging root, for an entry URI.

    ``package:`` URIs map under ``packages/``; multi-root URIs drop the
    scheme and the leading separator.
    """
    if uri.startswith(PACKAGE_SCHEME):
        path = f"{PACKAGES_DIR}/{uri[len(PACKAGE_SCHEME) :]}"
    else:
        path = uri.split(":", 1)[1].lstrip("/")
    return posixpath.splitext(path)[0] + config.js_extension


def build_invocation(
    entry_point: AssetId,
    staging_root: Path,
    config: BundlerConfig,
) -> CompilerInvocation:
    """Derive the compiler invocation for ``entry_point``.

    Caller-supplied ``config.compiler_args`` come first, then the fixed flags,
    then the entry URI.

    Args:
        entry_point: The ``.dart`` entry point.
        staging_root: Physical root backing the multi-root scheme.
        config: Session configuration (SDK, scheme, extensions, flags).

    Returns:
        CompilerInvocation ready to run.

    Example:
        >>> invocation = build_invocation(
        ...     AssetId(package="app", path="web/main.dart"),
        ...     Path("/tmp/stage"),
        ...     BundlerConfig(sdk_dir=Path("/opt/dart-sdk")),
        ... )
        >>> invocation.args[-2:]
        ('-oweb/main.dart.js', 'org-dartlang-app:///web/main.dart')
    """
    uri = entry_uri(entry_point, config)
    output_path = output_path_for(uri, config)
    scheme = config.multi_root_scheme
    output_id, source_map_id = output_ids(entry_point, config)

    args = (
        *config.compiler_args,
        f"--libraries-spec={config.libraries_spec}",
        f"--packages={scheme}:///{config.package_config_path}",
        f"--multi-root-scheme={scheme}",
        f"--multi-root={staging_root}",
        f"-o{output_path}",
        uri,
    )

    return CompilerInvocation(
        executable=config.dart_executable,
        vm_args=config.vm_args,
        args=args,
        working_directory=staging_root,
        entry_uri=uri,
        output_path=output_path,
        output_id=output_id,
        source_map_id=source_map_id,
    )
