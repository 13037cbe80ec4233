"""Debug logging infrastructure for wire protocol diagnostics.

Provides logger instances under the ``grpcweb_client.wire.*`` hierarchy and
formatting helpers for request bodies, header maps and frames.  Enabling
``logging.getLogger("grpcweb_client.wire").setLevel(logging.DEBUG)`` shows
exactly what is sent to and received from a gRPC-Web proxy.

The ``fmt_*`` helpers only build strings.  Call sites wrap them in
``isEnabledFor(logging.DEBUG)`` checks, so a disabled wire logger costs
one level comparison per call.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from grpcweb_client._wire import Frame

# ---------------------------------------------------------------------------
# Logger hierarchy: grpcweb_client.wire.*
# ---------------------------------------------------------------------------

wire_request_logger = logging.getLogger("grpcweb_client.wire.request")
"""Request framing and encoding."""

wire_response_logger = logging.getLogger("grpcweb_client.wire.response")
"""Response decoding and status resolution."""

wire_frame_logger = logging.getLogger("grpcweb_client.wire.frame")
"""Frame splitting."""

wire_http_logger = logging.getLogger("grpcweb_client.wire.http")
"""Requestor HTTP exchanges."""

# ---------------------------------------------------------------------------
# Formatting helpers
# ---------------------------------------------------------------------------

_MAX_PREVIEW_BYTES = 32
"""Maximum number of bytes shown by fmt_bytes."""

_MAX_VALUE_LEN = 80
"""Maximum length for individual header values in fmt_headers."""


def fmt_bytes(data: bytes) -> str:
    """Format a byte string as a short hex preview.

    Returns:
        ``"bytes(len=7, 00000000020a00)"``, truncated with ``...`` after
        ``_MAX_PREVIEW_BYTES`` bytes.

    """
    preview = data[:_MAX_PREVIEW_BYTES].hex()
    if len(data) > _MAX_PREVIEW_BYTES:
        preview += "..."
    return f"bytes(len={len(data)}, {preview})"


def fmt_headers(headers: Mapping[str, str] | None) -> str:
    """Format a header map compactly.

    Returns:
        ``"{grpc-status='0', grpc-message='ok'}"`` or ``"None"``.

    """
    if headers is None:
        return "None"
    parts: list[str] = []
    for k, v in headers.items():
        val = str(v)
        if len(val) > _MAX_VALUE_LEN:
            val = val[:_MAX_VALUE_LEN] + "..."
        parts.append(f"{k}={val!r}")
    return "{" + ", ".join(parts) + "}"


def fmt_frame(frame: Frame) -> str:
    """Format a frame summary.

    Returns:
        ``"Frame(DATA, bytes(len=2, 0a00))"``

    """
    return f"Frame({frame.type.name}, {fmt_bytes(frame.payload)})"
