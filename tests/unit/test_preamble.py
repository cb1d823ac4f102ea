"""Unit tests for the Node preamble and output copying."""

from __future__ import annotations

from pathlib import Path

import pytest

from nodebundle.assets import AssetId, FileSystemAssets
from nodebundle.outputs import copy_if_exists
from nodebundle.preamble import add_preamble, get_preamble
from nodebundle.staging import StagingArea


class TestGetPreamble:
    """Tests for the preamble text."""

    def test_defines_node_globals(self) -> None:
        preamble = get_preamble()
        assert "self.require = require" in preamble
        assert "dartDeferredLibraryLoader" in preamble
        assert "currentScript" in preamble

    def test_minified_is_single_line_without_comments(self) -> None:
        minified = get_preamble(minified=True)
        assert minified.count("\n") == 1
        assert minified.endswith("\n")
        assert not minified.startswith("//")
        assert len(minified) < len(get_preamble())


class TestAddPreamble:
    """Tests for prepending the preamble to a bundle."""

    @pytest.mark.parametrize("minified", [False, True])
    def test_original_content_follows_preamble(self, tmp_path: Path, minified: bool) -> None:
        bundle = tmp_path / "main.dart.js"
        original = b"(function(){main();})();\n\xe2\x9c\x93\n"
        bundle.write_bytes(original)
        preamble = get_preamble(minified=minified)

        add_preamble(bundle, preamble)

        result = bundle.read_bytes()
        assert result.startswith(preamble.encode("utf-8"))
        assert result[len(preamble.encode("utf-8")) :] == original
        assert [p.name for p in tmp_path.iterdir()] == ["main.dart.js"]

    def test_missing_bundle_raises(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            add_preamble(tmp_path / "absent.js", get_preamble())


class TestCopyIfExists:
    """Tests for optional output copying."""

    def test_absent_file_not_copied(self, tmp_path: Path, staging: StagingArea) -> None:
        writer = FileSystemAssets({}, tmp_path / "out")
        copied = copy_if_exists(AssetId.parse("app|web/main.dart.js.map"), staging, writer)
        assert copied is False
        assert not (tmp_path / "out").exists()

    def test_present_file_copied_verbatim(self, tmp_path: Path, staging: StagingArea) -> None:
        asset = AssetId.parse("app|web/main.dart.js.map")
        staged = staging.file_for(asset)
        staged.parent.mkdir(parents=True)
        staged.write_bytes(b'{"version":3,"sources":[]}')
        writer = FileSystemAssets({}, tmp_path / "out")

        assert copy_if_exists(asset, staging, writer) is True
        assert (tmp_path / "out" / "app" / "web" / "main.dart.js.map").read_bytes() == (
            b'{"version":3,"sources":[]}'
        )
