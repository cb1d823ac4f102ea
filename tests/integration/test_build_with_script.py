"""Build step against a shell script standing in for the Dart SDK.

Exercises the real subprocess path: argv layout, working directory,
environment-derived VM args and output detection.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import TYPE_CHECKING

import pytest

from nodebundle.assets import AssetId
from nodebundle.builder import BundleBuilder, FileSystemBuildStep
from nodebundle.config import VM_ARGS_ENV_VAR, BundlerConfig
from nodebundle.errors import CompilerProcessError
from nodebundle.preamble import get_preamble
from nodebundle.staging import StagingArea

if TYPE_CHECKING:
    from conftest import PackageTree

pytestmark = [
    pytest.mark.posix,
    pytest.mark.skipif(os.name != "posix", reason="fake dart is a /bin/sh script"),
]

FAKE_DART = """\
#!/bin/sh
printf '%s\\n' "$@" > invocation.txt
out=""
for arg in "$@"; do
  case "$arg" in
    -o*) out="${arg#-o}" ;;
  esac
done
if [ -n "$FAKE_DART2JS_FAIL" ]; then
  echo "Error: compilation failed" >&2
  exit 3
fi
mkdir -p "$(dirname "$out")"
echo "main();" > "$out"
echo "Compiled $out"
"""


@pytest.fixture
def script_sdk(sdk_dir: Path) -> Path:
    dart = sdk_dir / "bin" / "dart"
    dart.write_text(FAKE_DART)
    dart.chmod(0o755)
    return sdk_dir


def _build(package_tree: PackageTree, tmp_path: Path, config: BundlerConfig) -> object:
    staging = StagingArea.create(tmp_path / "staging", packages=["app"])
    step = FileSystemBuildStep(
        package_tree.assets(tmp_path / "out"), AssetId.parse("app|web/main.dart")
    )
    return BundleBuilder(config).build(step, staging)


def test_compiles_through_real_process(
    package_tree: PackageTree,
    tmp_path: Path,
    script_sdk: Path,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    package_tree.add_module("app|web/main.dart")
    monkeypatch.setenv(VM_ARGS_ENV_VAR, "--old_gen_heap_size=1024  --enable-asserts")
    config = BundlerConfig(sdk_dir=script_sdk).with_environment()

    _build(package_tree, tmp_path, config)

    bundle = (tmp_path / "out" / "app" / "web" / "main.dart.js").read_text()
    assert bundle == get_preamble() + "main();\n"

    argv = (tmp_path / "staging" / "invocation.txt").read_text().splitlines()
    assert argv[:4] == ["--old_gen_heap_size=1024", "--enable-asserts", "compile", "js"]
    assert argv[-1] == "org-dartlang-app:///web/main.dart"


def test_failure_surfaces_stderr(
    package_tree: PackageTree,
    tmp_path: Path,
    script_sdk: Path,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    package_tree.add_module("app|web/main.dart")
    monkeypatch.setenv("FAKE_DART2JS_FAIL", "1")

    with pytest.raises(CompilerProcessError) as excinfo:
        _build(package_tree, tmp_path, BundlerConfig(sdk_dir=script_sdk))

    assert excinfo.value.result.exit_code == 3
    assert "compilation failed" in excinfo.value.result.stderr
    assert not (tmp_path / "out").exists()
