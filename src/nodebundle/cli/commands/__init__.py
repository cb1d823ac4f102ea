"""CLI command modules.

Commands are loaded lazily by nodebundle.cli.main.
"""

from __future__ import annotations

__all__: list[str] = []
