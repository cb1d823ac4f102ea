"""Unit tests for nodebundle.cli.output reporting."""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

import pytest

from nodebundle.cli import output


@pytest.fixture(autouse=True)
def plain_console() -> Iterator[None]:
    """Swap in a colorless console writing to the captured stdout."""
    original = output.console
    output.console = output.create_console(no_color=True)
    try:
        yield
    finally:
        output.console = original


class TestCreateConsole:
    """Tests for create_console()."""

    def test_no_color(self) -> None:
        assert output.create_console(no_color=True).no_color is True

    def test_set_no_color_replaces_console(self) -> None:
        output.set_no_color(True)
        assert output.console.no_color is True


class TestReports:
    """Tests for build result reporting."""

    def test_report_written(self, capsys: pytest.CaptureFixture[str]) -> None:
        output.report_written([Path("build/app/web/main.dart.js"), Path("build/app/web/x.map")])
        out = capsys.readouterr().out
        assert "✓ Wrote build/app/web/main.dart.js" in out
        assert "Wrote build/app/web/x.map" in out

    def test_report_skipped_lists_each_library(
        self, capsys: pytest.CaptureFixture[str]
    ) -> None:
        output.report_skipped(
            "app|web/main.dart", ["app|lib/a.dart", "util|lib/b.dart"], "dart2js"
        )
        out = capsys.readouterr().out
        assert "Skipped app|web/main.dart" in out
        assert "dart2js" in out
        assert out.splitlines()[-2:] == ["    app|lib/a.dart", "    util|lib/b.dart"]


class TestError:
    """Tests for error()."""

    def test_prints_diagnostic_verbatim(self, capsys: pytest.CaptureFixture[str]) -> None:
        output.error(
            "dart2js failed for app|web/main.dart (exit code 1)",
            "ExitCode:1\nStdOut:\n\nStdErr:\n[error] boom",
        )
        out = capsys.readouterr().out
        assert "✗ dart2js failed" in out
        assert "[error] boom" in out

    def test_without_diagnostic(self, capsys: pytest.CaptureFixture[str]) -> None:
        output.error("Package directory not found: [x]")
        assert capsys.readouterr().out.strip() == "✗ Package directory not found: [x]"


def test_print_command_quotes_arguments(capsys: pytest.CaptureFixture[str]) -> None:
    output.print_command(["/opt/dart sdk/bin/dart", "compile", "js", "-O2"])
    assert capsys.readouterr().out.strip() == "'/opt/dart sdk/bin/dart' compile js -O2"
