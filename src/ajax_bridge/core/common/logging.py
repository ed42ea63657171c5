"""
Structured logging helpers.

Per-call debug traces go through structlog so that each event carries the
request it belongs to. They are only emitted when ``BridgeConfig.debug`` is
set; everything else uses the module loggers of the standard library.
"""

from __future__ import annotations

from typing import Any

import structlog


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structured logger.

    Args:
        name: Optional logger name

    Returns:
        A structured logger
    """
    return structlog.get_logger(name)  # type: ignore


class RequestTracer:
    """Debug trace bound to a single AJAX call."""

    def __init__(self, enabled: bool, **context: Any) -> None:
        self.enabled = enabled
        self._logger = get_logger("ajax_bridge").bind(**context) if enabled else None

    def __call__(self, event: str, **fields: Any) -> None:
        if self._logger is not None:
            self._logger.debug(event, **fields)
