# © Copyright 2025-2026, Query.Farm LLC - https://query.farm
# SPDX-License-Identifier: Apache-2.0

"""JSON formatter for structured logging output.

Provides :class:`GrpcWebJsonFormatter`, a :class:`logging.Formatter`
subclass that serializes log records as single-line JSON objects.  Fields
attached through ``extra`` are included; ``bytes`` values are rendered with
the same hex preview the wire loggers use.

This module is **not** auto-imported by ``grpcweb_client``; import it
explicitly (the CLI does so for ``--log-format json``)::

    from grpcweb_client.logging_utils import GrpcWebJsonFormatter
"""

from __future__ import annotations

import json
import logging

from grpcweb_client._debug import fmt_bytes

__all__ = ["GrpcWebJsonFormatter", "configure_logging"]

# Attribute names every LogRecord has; anything else came from ``extra``.
_DEFAULT_RECORD_ATTRS: frozenset[str] = frozenset(logging.LogRecord("", 0, "", 0, "", (), None).__dict__.keys()) | {
    "message",
    "asctime",
}

_RESERVED_KEYS: frozenset[str] = frozenset({"timestamp", "level", "logger", "message", "exception"})


def _json_default(value: object) -> str:
    if isinstance(value, (bytes, bytearray)):
        return fmt_bytes(bytes(value))
    return str(value)


class GrpcWebJsonFormatter(logging.Formatter):
    """JSON formatter that emits the standard fields plus every ``extra`` field.

    ``timestamp``, ``level``, ``logger`` and ``message`` are always present
    and cannot be overwritten by extra fields of the same name.
    """

    def format(self, record: logging.LogRecord) -> str:
        """Format a log record as a single-line JSON string."""
        record.message = record.getMessage()
        obj: dict[str, object] = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.message,
        }
        for key, value in record.__dict__.items():
            if key not in _DEFAULT_RECORD_ATTRS and key not in _RESERVED_KEYS:
                obj[key] = value
        if record.exc_info and record.exc_info[1]:
            obj["exception"] = self.formatException(record.exc_info)
        return json.dumps(obj, default=_json_default)


def configure_logging(level: int | str = logging.WARNING, *, json_output: bool = False) -> logging.Handler:
    """Attach a stderr handler to the ``grpcweb_client`` logger.

    Args:
        level: Level for the ``grpcweb_client`` logger hierarchy.
        json_output: Use ``GrpcWebJsonFormatter`` instead of plain text.

    Returns:
        The installed handler (remove it to undo).

    """
    handler = logging.StreamHandler()
    if json_output:
        handler.setFormatter(GrpcWebJsonFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
    logger = logging.getLogger("grpcweb_client")
    logger.setLevel(level.upper() if isinstance(level, str) else level)
    logger.addHandler(handler)
    return handler
