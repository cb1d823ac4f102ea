"""Asset identities and asset I/O for nodebundle.

An asset is a file addressed by its package and a package-relative POSIX
path, e.g. ``app|web/main.dart``. The orchestration runtime supplies the
reader/writer; FileSystemAssets is the local implementation used by the CLI
and the test suite.
"""

from __future__ import annotations

import posixpath
from pathlib import Path
from typing import Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field, field_validator

LIB_DIR = "lib/"


class AssetId(BaseModel):
    """Package-qualified logical path of one asset.

    Attributes:
        package: Name of the package that owns the asset.
        path: POSIX path relative to the package root (no leading slash).

    Example:
        >>> asset = AssetId(package="app", path="web/main.dart")
        >>> str(asset.change_extension(".dart.js"))
        'app|web/main.dart.js'
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    package: str = Field(..., min_length=1, description="Owning package name")
    path: str = Field(..., min_length=1, description="Package-relative POSIX path")

    @field_validator("path")
    @classmethod
    def path_must_stay_in_package(cls, v: str) -> str:
        """Reject absolute paths and paths escaping the package root."""
        normalized = posixpath.normpath(v.replace("\\", "/"))
        if normalized.startswith("/") or normalized == ".." or normalized.startswith("../"):
            msg = f"asset path must be relative to its package: {v!r}"
            raise ValueError(msg)
        return normalized

    @classmethod
    def parse(cls, value: str) -> AssetId:
        """Parse the serialized ``package|path`` form."""
        package, sep, path = value.partition("|")
        if not sep:
            msg = f"expected 'package|path', got {value!r}"
            raise ValueError(msg)
        return cls(package=package, path=path)

    @property
    def extension(self) -> str:
        return posixpath.splitext(self.path)[1]

    @property
    def is_lib(self) -> bool:
        """True when the asset lives under the package's ``lib/`` root."""
        return self.path.startswith(LIB_DIR)

    @property
    def uri(self) -> str:
        """Dart-style URI: ``package:`` for lib assets, ``asset:`` otherwise."""
        if self.is_lib:
            return f"package:{self.package}/{self.path[len(LIB_DIR):]}"
        return f"asset:{self.package}/{self.path}"

    def change_extension(self, new_extension: str) -> AssetId:
        """Return the id with its last extension replaced by ``new_extension``."""
        stem = posixpath.splitext(self.path)[0]
        return AssetId(package=self.package, path=stem + new_extension)

    def sort_key(self) -> tuple[str, str]:
        return (self.package, self.path)

    def __str__(self) -> str:
        return f"{self.package}|{self.path}"


@runtime_checkable
class AssetReader(Protocol):
    """Read access to assets, provided by the orchestration runtime."""

    def can_read(self, asset_id: AssetId) -> bool: ...

    def read_as_bytes(self, asset_id: AssetId) -> bytes: ...

    def read_as_string(self, asset_id: AssetId) -> str: ...


@runtime_checkable
class AssetWriter(Protocol):
    """Write access to the runtime's output space."""

    def write_as_bytes(self, asset_id: AssetId, data: bytes) -> None: ...


class FileSystemAssets:
    """Asset reader/writer over local package directories.

    Reads look in the output directory first (generated assets such as
    module descriptors), then in the owning package's source directory.
    Writes always go to ``<output_dir>/<package>/<path>``.

    Attributes:
        packages: Mapping of package name to its root directory.
        output_dir: Directory receiving written assets.

    Example:
        >>> assets = FileSystemAssets({"app": Path("app")}, Path("build"))
        >>> assets.read_as_string(AssetId(package="app", path="web/main.dart"))
    """

    def __init__(self, packages: dict[str, Path], output_dir: Path) -> None:
        self.packages = {name: Path(root) for name, root in packages.items()}
        self.output_dir = Path(output_dir)

    def output_path_for(self, asset_id: AssetId) -> Path:
        return self.output_dir / asset_id.package / asset_id.path

    def _source_path_for(self, asset_id: AssetId) -> Path | None:
        root = self.packages.get(asset_id.package)
        if root is None:
            return None
        return root / asset_id.path

    def _locate(self, asset_id: AssetId) -> Path | None:
        generated = self.output_path_for(asset_id)
        if generated.is_file():
            return generated
        source = self._source_path_for(asset_id)
        if source is not None and source.is_file():
            return source
        return None

    def can_read(self, asset_id: AssetId) -> bool:
        return self._locate(asset_id) is not None

    def read_as_bytes(self, asset_id: AssetId) -> bytes:
        path = self._locate(asset_id)
        if path is None:
            raise FileNotFoundError(f"Asset not found: {asset_id}")
        return path.read_bytes()

    def read_as_string(self, asset_id: AssetId) -> str:
        return self.read_as_bytes(asset_id).decode("utf-8")

    def write_as_bytes(self, asset_id: AssetId, data: bytes) -> None:
        target = self.output_path_for(asset_id)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)
