"""Command line driver for nodebundle."""

from __future__ import annotations
