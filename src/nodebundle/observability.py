"""Structured logging and OpenTelemetry spans for nodebundle.

This module provides:
- Structured logging setup via structlog
- An OpenTelemetry span helper used around the compiler subprocess

Only the OpenTelemetry API is used; spans are no-ops until the host
process installs a tracer provider.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

import structlog
from opentelemetry import trace
from opentelemetry.trace import SpanKind, Status, StatusCode

if TYPE_CHECKING:
    from opentelemetry.trace import Span, Tracer

TRACER_NAME = "nodebundle"

_tracer: Tracer | None = None


def get_tracer() -> Tracer:
    """Get the OpenTelemetry tracer for nodebundle."""
    global _tracer
    if _tracer is None:
        _tracer = trace.get_tracer(TRACER_NAME)
    return _tracer


def configure_logging(
    *,
    log_level: str = "INFO",
    json_format: bool = True,
    add_timestamp: bool = True,
) -> None:
    """Configure structured logging for nodebundle.

    Args:
        log_level: Minimum log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        json_format: If True, output JSON format. If False, output human-readable.
        add_timestamp: If True, add ISO timestamp to log entries.

    Example:
        >>> configure_logging(log_level="DEBUG", json_format=False)
    """
    processors: list[Any] = [
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if add_timestamp:
        processors.insert(0, structlog.processors.TimeStamper(fmt="iso"))

    if json_format:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )

    logging.basicConfig(
        format="%(message)s",
        level=getattr(logging, log_level.upper()),
    )


@contextmanager
def span(
    name: str,
    *,
    kind: SpanKind = SpanKind.INTERNAL,
    attributes: dict[str, Any] | None = None,
) -> Iterator[Span]:
    """Create an OpenTelemetry span with start/end logging.

    Args:
        name: Span name (e.g., "dart2js.compile").
        kind: Span kind.
        attributes: Optional span attributes, also attached to log entries.

    Yields:
        OpenTelemetry Span instance.

    Example:
        >>> with span("dart2js.compile", attributes={"compiler.entry_uri": uri}):
        ...     subprocess.run(command)
    """
    logger = structlog.get_logger(TRACER_NAME)
    attrs = attributes or {}
    log_attrs = {key.replace(".", "_"): value for key, value in attrs.items()}

    with get_tracer().start_as_current_span(name, kind=kind, attributes=attrs) as s:
        logger.debug(f"{name}_started", **log_attrs)
        try:
            yield s
            s.set_status(Status(StatusCode.OK))
            logger.debug(f"{name}_completed", **log_attrs)
        except Exception as exc:
            s.set_status(Status(StatusCode.ERROR, str(exc)))
            s.record_exception(exc)
            logger.error(f"{name}_failed", error=str(exc), **log_attrs)
            raise
