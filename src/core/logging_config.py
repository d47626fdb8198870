"""Structured logging configuration.

Store and export code log one JSON line per lifecycle event:
``trace_database_opened``/``trace_database_closed``, ``region_instantiated``,
``stream_initialized``, ``tabular_region_initialized``, ``memory_registered``,
``region_exported``, and ``row_append_failed`` at warning level. Each line
carries the emitting module under ``logger``.
"""

from __future__ import annotations

from typing import Any

import structlog

_CONFIGURED = False


def get_logger(name: str) -> Any:
    """Return a lazily bound structlog logger for a trace module.

    The processor chain is installed on the first call only, so loggers
    created later do not reset configuration made by the host application.

    Args:
        name: Logger name, usually __name__.

    Returns:
        A structlog logger bound to ``logger=name``.
    """
    global _CONFIGURED
    if not _CONFIGURED:
        structlog.configure(
            processors=[
                structlog.processors.TimeStamper(fmt="iso"),
                structlog.processors.add_log_level,
                structlog.processors.JSONRenderer(),
            ],
            cache_logger_on_first_use=True,
        )
        _CONFIGURED = True
    return structlog.get_logger().bind(logger=name)
