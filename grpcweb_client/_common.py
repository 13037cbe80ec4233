"""Constants, header names, and the exception hierarchy for the gRPC-Web client."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Final

if TYPE_CHECKING:
    from grpcweb_client.status import RpcStatus

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_logger = logging.getLogger("grpcweb_client")

GRPC_WEB_VERSION: Final = "0.1"
DEFAULT_USER_AGENT: Final = f"grpc-web-javascript/{GRPC_WEB_VERSION}"

TEXT_CONTENT_TYPE: Final = "application/grpc-web-text"
BINARY_CONTENT_TYPE: Final = "application/grpc-web+proto"

GRPC_STATUS_HEADER: Final = "grpc-status"
GRPC_MESSAGE_HEADER: Final = "grpc-message"
GRPC_WEB_HEADER: Final = "X-Grpc-Web"
USER_AGENT_HEADER: Final = "X-User-Agent"

# Frame header: 1 flag byte + 4-byte big-endian length.
FRAME_HEADER_SIZE: Final = 5
MAX_FRAME_LENGTH: Final = 0xFFFFFFFF


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class GrpcWebError(Exception):
    """Base class for every error the client delivers or raises.

    Attributes:
        message: Human-readable description.
        code: gRPC status code when one is known, otherwise ``None``.

    """

    def __init__(self, message: str, *, code: int | None = None) -> None:
        """Initialize with a message and an optional gRPC status code."""
        self.message = message
        self.code = code
        super().__init__(message)


class ConfigurationError(GrpcWebError, ValueError):
    """Raised when a ``ClientConfig`` (or another config object) is invalid."""


class TransportError(GrpcWebError):
    """The underlying request failed before any gRPC-level response existed."""


class ProtocolError(GrpcWebError):
    """The response violated the gRPC-Web wire format (frames, trailers, base64)."""


class RpcStatusError(GrpcWebError):
    """Raised by the convenience call helpers when the server reports a non-OK status.

    Attributes:
        status: The ``RpcStatus`` resolved from headers or trailers.

    """

    def __init__(self, status: RpcStatus) -> None:
        """Initialize from a resolved status."""
        self.status = status
        super().__init__(status.message, code=status.code)

    def __str__(self) -> str:
        """Return ``"<CODE_NAME>: <message>"``."""
        return f"{self.status.code_name}: {self.message}"
