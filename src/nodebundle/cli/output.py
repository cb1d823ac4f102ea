"""Rich console reporting for the nodebundle CLI.

Every user-facing line the commands print goes through here: written
bundles, skipped entry points with their offending libraries, compiler
failures with the captured diagnostic, and the dry-run command line.
Colors follow the NO_COLOR environment variable and the --no-color flag.
"""

from __future__ import annotations

import os
import shlex
from collections.abc import Iterable, Sequence
from pathlib import Path

from rich.console import Console
from rich.markup import escape

_force_no_color = os.environ.get("NO_COLOR") is not None


def create_console(no_color: bool = False) -> Console:
    """Create a Rich Console, colorless when asked to or when NO_COLOR is set."""
    disable = no_color or _force_no_color
    return Console(force_terminal=False if disable else None, no_color=disable)


console = create_console()


def set_no_color(no_color: bool) -> None:
    """Replace the module-level console (used by the --no-color flag)."""
    global console
    console = create_console(no_color=no_color)


def report_written(paths: Iterable[Path]) -> None:
    """One line per file handed to the output directory."""
    for path in paths:
        console.print(f"[green]✓[/green] Wrote {escape(str(path))}")


def report_skipped(entry_point: str, libraries: Sequence[str], platform: str) -> None:
    """Explain a skipped entry point, listing every offending library."""
    console.print(
        f"[yellow]⚠[/yellow] Skipped {escape(entry_point)}: these libraries need SDK "
        f"libraries that are not supported on {escape(platform)}:"
    )
    for library in libraries:
        console.print(f"    {escape(library)}")


def error(message: str, diagnostic: str | None = None) -> None:
    """Print an error, followed by the compiler's captured output if any."""
    console.print(f"[red]✗[/red] {escape(message)}")
    if diagnostic:
        console.print(diagnostic, markup=False, highlight=False)


def print_command(argv: Sequence[str]) -> None:
    """Print a shell-quoted command line without wrapping."""
    console.print(shlex.join(argv), markup=False, highlight=False, soft_wrap=True)
