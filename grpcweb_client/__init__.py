# © Copyright 2025-2026, Query.Farm LLC - https://query.farm
# SPDX-License-Identifier: Apache-2.0

"""Client-side implementation of the gRPC-Web wire protocol."""

from grpcweb_client._client import CallState, ClientConfig, GrpcWebClient, MethodInfo, RpcCallback
from grpcweb_client._common import (
    BINARY_CONTENT_TYPE,
    DEFAULT_USER_AGENT,
    GRPC_WEB_VERSION,
    TEXT_CONTENT_TYPE,
    ConfigurationError,
    GrpcWebError,
    ProtocolError,
    RpcStatusError,
    TransportError,
)
from grpcweb_client._encoding import ResponseDecoder, ResponseKind, WireEncoding, WireFormat, select_wire_encoding
from grpcweb_client._transport import (
    AsyncHttpxRequestor,
    HttpxRequestor,
    Requestor,
    TransportRequest,
    TransportResponse,
)
from grpcweb_client._wire import Frame, FrameParser, FrameType, encode_frame, parse_http1_headers, split_frames
from grpcweb_client.status import RpcStatus, StatusCode

__all__ = [
    # Client
    "GrpcWebClient",
    "ClientConfig",
    "MethodInfo",
    "RpcCallback",
    "CallState",
    # Status
    "RpcStatus",
    "StatusCode",
    # Errors
    "GrpcWebError",
    "ConfigurationError",
    "TransportError",
    "ProtocolError",
    "RpcStatusError",
    # Transport
    "Requestor",
    "HttpxRequestor",
    "AsyncHttpxRequestor",
    "TransportRequest",
    "TransportResponse",
    # Wire
    "Frame",
    "FrameType",
    "FrameParser",
    "encode_frame",
    "split_frames",
    "parse_http1_headers",
    "WireFormat",
    "ResponseKind",
    "WireEncoding",
    "ResponseDecoder",
    "select_wire_encoding",
    # Constants
    "TEXT_CONTENT_TYPE",
    "BINARY_CONTENT_TYPE",
    "DEFAULT_USER_AGENT",
    "GRPC_WEB_VERSION",
]
