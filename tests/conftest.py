"""Shared pytest fixtures for nodebundle tests.

Provides structlog configuration for log capture, an on-disk package tree
with module descriptors, a staging area, and a fake dart2js that stands in
for ``subprocess.run``.
"""

from __future__ import annotations

import json
import subprocess
import sys
from collections.abc import Sequence
from pathlib import Path
from typing import Any

import pytest
import structlog
from click.testing import CliRunner

from nodebundle.assets import AssetId, FileSystemAssets
from nodebundle.config import BundlerConfig
from nodebundle.staging import StagingArea

MODULE_EXTENSION = ".dart2js.module"


@pytest.fixture(autouse=True)
def configure_structlog_for_tests() -> None:
    """Configure structlog to output to stdout for test capture.

    Loggers are not cached so that ``structlog.testing.capture_logs``
    sees every event regardless of test execution order.
    """
    structlog.configure(
        processors=[
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
        cache_logger_on_first_use=False,
    )


class PackageTree:
    """Packages on disk with sources, module descriptors and library info.

    Assets are given in ``package|path`` form; package directories are
    created under ``root`` on first use.
    """

    def __init__(self, root: Path) -> None:
        self.root = root
        self.packages: dict[str, Path] = {}

    def package_dir(self, name: str) -> Path:
        if name not in self.packages:
            path = self.root / name
            path.mkdir(parents=True, exist_ok=True)
            self.packages[name] = path
        return self.packages[name]

    def _write(self, asset: AssetId, content: str) -> Path:
        path = self.package_dir(asset.package) / asset.path
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)
        return path

    def add_source(self, asset: str, content: str | None = None) -> AssetId:
        asset_id = AssetId.parse(asset)
        self._write(asset_id, content if content is not None else f"// {asset}\n")
        return asset_id

    def add_module(
        self,
        primary: str,
        *,
        sources: Sequence[str] | None = None,
        deps: Sequence[str] = (),
        supported: bool = True,
        missing: bool = False,
    ) -> AssetId:
        """Write the sources and the descriptor of one module."""
        all_sources = list(sources) if sources is not None else [primary]
        if primary not in all_sources:
            all_sources.insert(0, primary)
        for source in all_sources:
            self.add_source(source)

        primary_id = AssetId.parse(primary)
        descriptor: dict[str, Any] = {
            "p": [primary_id.package, primary_id.path],
            "s": [[AssetId.parse(s).package, AssetId.parse(s).path] for s in all_sources],
            "d": list(deps),
            "is": supported,
            "m": missing,
            "pf": "dart2js",
        }
        self._write(primary_id.change_extension(MODULE_EXTENSION), json.dumps(descriptor))
        return primary_id

    def add_library_info(self, source: str, sdk_deps: Sequence[str]) -> None:
        source_id = AssetId.parse(source)
        self._write(
            source_id.change_extension(".module.library"),
            json.dumps({"sdk_deps": list(sdk_deps)}),
        )

    def assets(self, output_dir: Path) -> FileSystemAssets:
        return FileSystemAssets(self.packages, output_dir)


@pytest.fixture
def package_tree(tmp_path: Path) -> PackageTree:
    return PackageTree(tmp_path / "src")


@pytest.fixture
def output_dir(tmp_path: Path) -> Path:
    return tmp_path / "out"


@pytest.fixture
def sdk_dir(tmp_path: Path) -> Path:
    """A fake Dart SDK layout (only paths are used)."""
    sdk = tmp_path / "dart-sdk"
    (sdk / "bin").mkdir(parents=True)
    (sdk / "lib").mkdir()
    (sdk / "lib" / "libraries.json").write_text("{}")
    return sdk


@pytest.fixture
def bundler_config(sdk_dir: Path) -> BundlerConfig:
    return BundlerConfig(sdk_dir=sdk_dir)


@pytest.fixture
def staging(tmp_path: Path) -> StagingArea:
    return StagingArea.create(tmp_path / "staging", packages=["app", "util"])


class FakeCompiler:
    """Stand-in for ``subprocess.run`` that behaves like dart2js.

    Writes the ``-o`` output (and optionally a source map) relative to the
    working directory, then returns a CompletedProcess.
    """

    def __init__(
        self,
        *,
        exit_code: int = 0,
        write_output: bool = True,
        write_source_map: bool = False,
        stdout: str = "Compiled 1 input",
        stderr: str = "",
        body: str = "main();\n",
    ) -> None:
        self.exit_code = exit_code
        self.write_output = write_output
        self.write_source_map = write_source_map
        self.stdout = stdout
        self.stderr = stderr
        self.body = body
        self.calls: list[dict[str, Any]] = []

    def __call__(self, command: list[str], **kwargs: Any) -> subprocess.CompletedProcess[str]:
        self.calls.append({"command": list(command), **kwargs})
        output = next(a[2:] for a in reversed(command) if a.startswith("-o"))
        target = Path(kwargs["cwd"]) / output
        if self.write_output:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(self.body)
        if self.write_source_map:
            target.with_name(target.name + ".map").write_text('{"version":3}')
        return subprocess.CompletedProcess(command, self.exit_code, self.stdout, self.stderr)


@pytest.fixture
def fake_compiler(monkeypatch: pytest.MonkeyPatch) -> Any:
    """Factory installing a FakeCompiler in place of ``subprocess.run``."""

    def install(**kwargs: Any) -> FakeCompiler:
        compiler = FakeCompiler(**kwargs)
        monkeypatch.setattr("nodebundle.process.subprocess.run", compiler)
        return compiler

    return install


@pytest.fixture
def cli_runner() -> CliRunner:
    return CliRunner()
