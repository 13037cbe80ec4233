# © Copyright 2025-2026, Query.Farm LLC - https://query.farm
# SPDX-License-Identifier: Apache-2.0

"""gRPC status codes and the terminal ``RpcStatus`` of a call.

KEY CLASSES
-----------
StatusCode : IntEnum of the canonical gRPC status codes
RpcStatus  : Immutable ``(code, message)`` pair delivered once per call

"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import IntEnum
from urllib.parse import unquote

from grpcweb_client._common import GRPC_MESSAGE_HEADER, GRPC_STATUS_HEADER, ProtocolError

__all__ = [
    "RpcStatus",
    "StatusCode",
]


class StatusCode(IntEnum):
    """Canonical gRPC status codes."""

    OK = 0
    CANCELLED = 1
    UNKNOWN = 2
    INVALID_ARGUMENT = 3
    DEADLINE_EXCEEDED = 4
    NOT_FOUND = 5
    ALREADY_EXISTS = 6
    PERMISSION_DENIED = 7
    RESOURCE_EXHAUSTED = 8
    FAILED_PRECONDITION = 9
    ABORTED = 10
    OUT_OF_RANGE = 11
    UNIMPLEMENTED = 12
    INTERNAL = 13
    UNAVAILABLE = 14
    DATA_LOSS = 15
    UNAUTHENTICATED = 16


@dataclass(frozen=True)
class RpcStatus:
    """Final status of an RPC.

    Attributes:
        code: Integer status code (``0`` is success). Codes outside
            ``StatusCode`` are kept as-is.
        message: Status message, ``""`` when the server sent none.

    """

    code: int
    message: str = ""

    @property
    def ok(self) -> bool:
        """Whether the call succeeded."""
        return self.code == StatusCode.OK

    @property
    def code_name(self) -> str:
        """Symbolic name of ``code``, or the number for unknown codes."""
        try:
            return StatusCode(self.code).name
        except ValueError:
            return str(self.code)

    @classmethod
    def from_headers(cls, headers: Mapping[str, str]) -> RpcStatus:
        """Build a status from a ``grpc-status`` / ``grpc-message`` header map.

        Missing status defaults to OK and a missing message to ``""``.
        ``grpc-message`` is percent-decoded.

        Raises:
            ProtocolError: If ``grpc-status`` is not an integer.

        """
        raw_code = headers.get(GRPC_STATUS_HEADER)
        code = int(StatusCode.OK)
        if raw_code is not None:
            try:
                code = int(raw_code.strip())
            except ValueError:
                raise ProtocolError(f"invalid {GRPC_STATUS_HEADER} value: {raw_code!r}") from None
        message = unquote(headers.get(GRPC_MESSAGE_HEADER, ""))
        return cls(code=code, message=message)
