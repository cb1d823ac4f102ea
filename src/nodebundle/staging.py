"""Staging area for the compiler.

The staging area is a directory shared by every build step of a session.
Sources are mirrored into it so that the compiler can address them through
the multi-root scheme:

- ``lib/`` assets of package ``pkg`` go to ``packages/pkg/<rest>``
- any other asset goes to ``<path>``

A staging root may outlive a session (the CLI reuses one across runs), so
staging compares bytes: a file whose content already matches is left alone,
anything else is replaced. Every write goes through a temporary file in the
target directory followed by ``os.replace``, which keeps concurrent writers
of the same id from producing torn files.
"""

from __future__ import annotations

import hashlib
import json
import os
import tempfile
from collections.abc import Iterable
from pathlib import Path, PurePosixPath

import structlog

from nodebundle.assets import LIB_DIR, AssetId, AssetReader, AssetWriter
from nodebundle.errors import StagingError

logger = structlog.get_logger(__name__)

PACKAGES_DIR = "packages"
DEFAULT_PACKAGE_CONFIG_PATH = ".dart_tool/package_config.json"


def atomic_write_bytes(path: Path, data: bytes) -> None:
    """Write ``data`` to ``path`` so readers see either the old or the new file.

    Raises:
        OSError: If the temporary file cannot be written or moved into place.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "wb") as tmp:
            tmp.write(data)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


def relative_path_for(asset_id: AssetId) -> PurePosixPath:
    """Path of an asset relative to the staging root."""
    if asset_id.is_lib:
        return PurePosixPath(PACKAGES_DIR, asset_id.package, asset_id.path[len(LIB_DIR) :])
    return PurePosixPath(asset_id.path)


def package_config_json(packages: Iterable[str]) -> str:
    """Render a package config mapping each package to ``packages/<name>/``.

    ``rootUri`` is relative to the config file inside ``.dart_tool/``.
    """
    config = {
        "configVersion": 2,
        "packages": [
            {"name": name, "rootUri": f"../{PACKAGES_DIR}/{name}/"}
            for name in sorted(set(packages))
        ],
        "generator": "nodebundle",
    }
    return json.dumps(config, indent=2) + "\n"


class StagingArea:
    """Isolated working directory shared by concurrent build steps.

    Attributes:
        root: Absolute path of the staging directory.

    Example:
        >>> staging = StagingArea.create(Path("/tmp/stage"), packages=["app", "path"])
        >>> staging.ensure_assets(closure.sources, reader)
        >>> staging.file_for(AssetId(package="app", path="web/main.dart"))
        PosixPath('/tmp/stage/web/main.dart')
    """

    def __init__(self, root: Path) -> None:
        self.root = Path(root).resolve()
        self._log = logger.bind(staging_root=str(self.root))

    @classmethod
    def create(
        cls,
        root: Path,
        packages: Iterable[str],
        package_config_path: str = DEFAULT_PACKAGE_CONFIG_PATH,
    ) -> StagingArea:
        """Create the staging root and write the shared package config.

        Raises:
            StagingError: If the directory or package config cannot be written.
        """
        staging = cls(root)
        config_path = staging._resolve(PurePosixPath(package_config_path), package_config_path)
        try:
            staging.root.mkdir(parents=True, exist_ok=True)
            atomic_write_bytes(config_path, package_config_json(packages).encode("utf-8"))
        except OSError as e:
            raise StagingError(
                package_config_path,
                "cannot write package config",
                internal_details=f"{type(e).__name__}: {e}",
            ) from e
        staging._log.debug("staging_area_created", package_config=package_config_path)
        return staging

    def _resolve(self, relative: PurePosixPath, label: str) -> Path:
        target = (self.root / relative).resolve()
        if not target.is_relative_to(self.root):
            raise StagingError(label, "path escapes the staging area")
        return target

    def file_for(self, asset_id: AssetId) -> Path:
        """Physical path of ``asset_id`` inside the staging area."""
        return self._resolve(relative_path_for(asset_id), str(asset_id))

    def ensure_assets(self, asset_ids: Iterable[AssetId], reader: AssetReader) -> int:
        """Materialize every asset in ``asset_ids`` whose staged copy is absent or stale.

        Args:
            asset_ids: Sources to stage.
            reader: Reader for the asset contents.

        Returns:
            Number of files written.

        Raises:
            StagingError: If an asset cannot be read or written.
        """
        written = 0
        for asset_id in asset_ids:
            target = self.file_for(asset_id)
            try:
                data = reader.read_as_bytes(asset_id)
                if target.is_file() and target.read_bytes() == data:
                    continue
                atomic_write_bytes(target, data)
            except OSError as e:
                raise StagingError(
                    str(asset_id),
                    "cannot materialize source",
                    internal_details=f"{type(e).__name__}: {e}",
                ) from e
            written += 1

        self._log.debug("assets_staged", written=written)
        return written

    def discard(self, asset_ids: Iterable[AssetId]) -> None:
        """Remove staged files left over from an earlier compile.

        Raises:
            StagingError: If a file exists but cannot be removed.
        """
        for asset_id in asset_ids:
            try:
                self.file_for(asset_id).unlink(missing_ok=True)
            except OSError as e:
                raise StagingError(
                    str(asset_id),
                    "cannot remove stale output",
                    internal_details=f"{type(e).__name__}: {e}",
                ) from e

    def copy_output(self, asset_id: AssetId, writer: AssetWriter) -> None:
        """Copy a staged file to the runtime's output space."""
        writer.write_as_bytes(asset_id, self.file_for(asset_id).read_bytes())

    def scratch_path_for(self, entry_point: AssetId, prefix: str, suffix: str = "") -> Path:
        """Per-entry-point file directly under the staging root.

        The name embeds the MD5 of the entry point URI, so ``web/foo/bar.dart``
        and ``web/foo-bar.dart`` never share a file.
        """
        digest = hashlib.md5(entry_point.uri.encode("utf-8"), usedforsecurity=False).hexdigest()
        return self.root / f"{prefix}-{digest}{suffix}"
