# © Copyright 2025-2026, Query.Farm LLC - https://query.farm
# SPDX-License-Identifier: Apache-2.0

"""gRPC-Web client: request issuing and per-call status resolution.

``GrpcWebClient.rpc_call`` frames and encodes one request, hands it to the
configured requestor, and resolves the response through a per-call
``_CallHandler``.  Results reach the caller through an error-first
callback: ``callback(None, message)`` once per data frame, then exactly one
terminal ``callback(status_or_error, None)``.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

from grpcweb_client._common import (
    DEFAULT_USER_AGENT,
    GRPC_MESSAGE_HEADER,
    GRPC_STATUS_HEADER,
    GRPC_WEB_HEADER,
    USER_AGENT_HEADER,
    ConfigurationError,
    GrpcWebError,
    ProtocolError,
    RpcStatusError,
    TransportError,
    _logger,
)
from grpcweb_client._debug import fmt_headers, wire_response_logger
from grpcweb_client._encoding import ResponseDecoder, WireFormat, coerce_wire_format, select_wire_encoding
from grpcweb_client._transport import Requestor, TransportRequest, TransportResponse
from grpcweb_client._wire import Frame, FrameType, encode_frame, parse_http1_headers
from grpcweb_client.status import RpcStatus

__all__ = [
    "CallState",
    "ClientConfig",
    "GrpcWebClient",
    "MethodInfo",
    "RpcCallback",
]

RpcCallback = Callable[[RpcStatus | GrpcWebError | None, Any], None]
"""Error-first callback: ``(None, message)`` per data frame, then ``(status_or_error, None)`` once."""


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ClientConfig:
    """Immutable client configuration.

    Attributes:
        requestor: Transport capability used for every call.
        format: ``"text"`` (base64, the default) or ``"binary"``.
        user_agent: Value of the ``X-User-Agent`` header.

    Raises:
        ConfigurationError: If *format* is unrecognized, *requestor* has no
            ``request`` method, or *user_agent* is empty.

    """

    requestor: Requestor
    format: WireFormat = WireFormat.TEXT
    user_agent: str = DEFAULT_USER_AGENT

    def __post_init__(self) -> None:
        """Validate and normalize configuration values."""
        object.__setattr__(self, "format", coerce_wire_format(self.format))
        if not callable(getattr(self.requestor, "request", None)):
            raise ConfigurationError(f"requestor must provide a request() method, got {type(self.requestor).__name__}")
        if not self.user_agent:
            raise ConfigurationError("user_agent must not be empty")


@dataclass(frozen=True)
class MethodInfo:
    """Per-method serialization hooks.

    Attributes:
        response_deserializer: Turns one data frame payload into a message.
        request_serializer: Optional; used when the request is not already
            ``bytes`` and has no ``SerializeToString`` method.
        name: Optional method name for log messages.

    """

    response_deserializer: Callable[[bytes], Any]
    request_serializer: Callable[[Any], bytes] | None = None
    name: str = ""


def _serialize_request(request: object, method_info: MethodInfo) -> bytes:
    """Return the request payload bytes."""
    if isinstance(request, (bytes, bytearray, memoryview)):
        return bytes(request)
    if method_info.request_serializer is not None:
        return method_info.request_serializer(request)
    serialize = getattr(request, "SerializeToString", None)
    if callable(serialize):
        return bytes(serialize())
    raise TypeError(f"cannot serialize request of type {type(request).__name__}; pass bytes or a request_serializer")


# ---------------------------------------------------------------------------
# Per-call status resolution
# ---------------------------------------------------------------------------


class CallState(Enum):
    """Lifecycle of a single call."""

    AWAITING_RESPONSE = "awaiting_response"
    DECODING_FRAMES = "decoding_frames"
    TERMINAL = "terminal"


class _CallHandler:
    """Resolves one response into callback deliveries.

    Owns the call's decoder, so nothing is shared between calls.  After the
    first terminal delivery every further delivery is dropped and logged.
    """

    __slots__ = ("_callback", "_decoder", "_deserialize", "_method", "state")

    def __init__(
        self,
        method: str,
        deserialize: Callable[[bytes], Any],
        callback: RpcCallback,
        decoder: ResponseDecoder,
    ) -> None:
        self._method = method
        self._deserialize = deserialize
        self._callback = callback
        self._decoder = decoder
        self.state = CallState.AWAITING_RESPONSE

    def on_failure(self, message: str) -> None:
        """Requestor failure handler."""
        _logger.debug("Transport failure on %s: %s", self._method, message)
        self._deliver(TransportError(message), None)

    def on_success(self, response: TransportResponse) -> None:
        """Requestor success handler."""
        if wire_response_logger.isEnabledFor(logging.DEBUG):
            wire_response_logger.debug(
                "Response for %s: status=%d, headers=%s",
                self._method,
                response.status_code,
                fmt_headers(response.headers),
            )
        if self.state is CallState.AWAITING_RESPONSE:
            self.state = CallState.DECODING_FRAMES

        self._check_header_status(response.headers)

        try:
            frames = self._decoder.feed(response.data)
        except ProtocolError as e:
            self._deliver(e, None)
            return
        self._dispatch(frames)

        try:
            self._decoder.finish()
        except ProtocolError as e:
            self._deliver(e, None)
            return
        if self.state is CallState.TERMINAL:
            return
        # Trailers-only response: the status sits in the headers, possibly without a message.
        lowered = {k.lower(): v for k, v in response.headers.items()}
        if GRPC_STATUS_HEADER in lowered:
            self._deliver_status(lowered)
        else:
            self._deliver(ProtocolError(f"response for {self._method} ended without {GRPC_STATUS_HEADER}"), None)

    def _check_header_status(self, headers: Mapping[str, str]) -> None:
        """Deliver a status carried in the response headers, if complete."""
        lowered = {k.lower(): v for k, v in headers.items()}
        if lowered.get(GRPC_STATUS_HEADER) and lowered.get(GRPC_MESSAGE_HEADER):
            self._deliver_status(lowered)

    def _dispatch(self, frames: list[Frame]) -> None:
        for frame in frames:
            if frame.type is FrameType.DATA:
                try:
                    message = self._deserialize(frame.payload)
                except Exception as e:
                    err = ProtocolError(f"failed to deserialize response message for {self._method}: {e}")
                    err.__cause__ = e
                    self._deliver(err, None)
                    continue
                self._deliver(None, message)
            elif frame.payload:
                # Trailer bytes are 8-bit characters.
                try:
                    trailers = parse_http1_headers(frame.payload.decode("latin-1"))
                except ProtocolError as e:
                    self._deliver(e, None)
                    continue
                self._deliver_status(trailers)

    def _deliver_status(self, headers: Mapping[str, str]) -> None:
        try:
            status = RpcStatus.from_headers(headers)
        except ProtocolError as e:
            self._deliver(e, None)
            return
        self._deliver(status, None)

    def _deliver(self, error: RpcStatus | GrpcWebError | None, message: Any) -> None:
        if self.state is CallState.TERMINAL:
            _logger.warning(
                "Dropping %s for %s delivered after the terminal status",
                "message" if error is None else repr(error),
                self._method,
            )
            return
        if error is not None:
            self.state = CallState.TERMINAL
            if wire_response_logger.isEnabledFor(logging.DEBUG):
                wire_response_logger.debug("Terminal delivery for %s: %r", self._method, error)
        self._callback(error, message)


# ---------------------------------------------------------------------------
# Unary result collection
# ---------------------------------------------------------------------------


class _UnaryCollector:
    """Callback that gathers a unary call's outcome."""

    __slots__ = ("_on_terminal", "done", "messages", "terminal")

    def __init__(self, on_terminal: Callable[[], object] | None = None) -> None:
        self._on_terminal = on_terminal
        self.messages: list[Any] = []
        self.terminal: RpcStatus | GrpcWebError | None = None
        self.done = False

    def __call__(self, error: RpcStatus | GrpcWebError | None, message: Any) -> None:
        if error is None:
            self.messages.append(message)
            return
        self.terminal = error
        self.done = True
        if self._on_terminal is not None:
            self._on_terminal()

    def result(self) -> Any:
        """Return the response message or raise the call's error."""
        if not self.done:
            raise ProtocolError("call has not completed; use unary_call_async with an asynchronous requestor")
        terminal = self.terminal
        if isinstance(terminal, GrpcWebError):
            raise terminal
        assert isinstance(terminal, RpcStatus)
        if not terminal.ok:
            raise RpcStatusError(terminal)
        if not self.messages:
            raise ProtocolError("call completed with OK status but no response message")
        return self.messages[-1]


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------


class GrpcWebClient:
    """Client for gRPC-Web services using the ``application/grpc-web`` wire format.

    Example::

        with HttpxRequestor("https://api.example.com") as requestor:
            client = GrpcWebClient(requestor, format="binary")
            info = MethodInfo(response_deserializer=HelloReply.FromString)
            reply = client.unary_call("/helloworld.Greeter/SayHello", request, info)

    """

    __slots__ = ("_config",)

    def __init__(
        self,
        requestor: Requestor,
        *,
        format: WireFormat | str = WireFormat.TEXT,
        user_agent: str = DEFAULT_USER_AGENT,
    ) -> None:
        """Initialize with a requestor and wire format.

        Raises:
            ConfigurationError: If the configuration is invalid.

        """
        self._config = ClientConfig(requestor=requestor, format=coerce_wire_format(format), user_agent=user_agent)

    @classmethod
    def from_config(cls, config: ClientConfig) -> GrpcWebClient:
        """Build a client from an existing ``ClientConfig``."""
        client = cls.__new__(cls)
        client._config = config
        return client

    @property
    def config(self) -> ClientConfig:
        """The client's immutable configuration."""
        return self._config

    def _build_request(
        self,
        method: str,
        request: object,
        metadata: Mapping[str, str] | None,
        method_info: MethodInfo,
    ) -> TransportRequest:
        framed = encode_frame(_serialize_request(request, method_info))
        encoding = select_wire_encoding(self._config.format, framed)
        protocol_headers = {
            "accept": encoding.content_type,
            "content-type": encoding.content_type,
            GRPC_WEB_HEADER: "1",
            USER_AGENT_HEADER: self._config.user_agent,
        }
        reserved = {k.lower() for k in protocol_headers}
        headers = {k: v for k, v in (metadata or {}).items() if k.lower() not in reserved}
        headers.update(protocol_headers)
        return TransportRequest(
            url=method,
            headers=headers,
            body=encoding.body,
            response_kind=encoding.response_kind,
        )

    def rpc_call(
        self,
        method: str,
        request: object,
        metadata: Mapping[str, str] | None,
        method_info: MethodInfo,
        callback: RpcCallback,
    ) -> object:
        """Issue a unary call.

        Args:
            method: Method URL, e.g. ``"/pkg.Service/Method"``.
            request: Serialized request bytes, or a message with
                ``SerializeToString``.
            metadata: Extra request headers; protocol headers take
                precedence.
            method_info: Response deserializer (and optional request
                serializer).
            callback: Error-first callback receiving each response message
                and then the terminal ``RpcStatus`` or ``GrpcWebError``.

        Returns:
            Whatever the requestor returns (``None`` for ``HttpxRequestor``,
            an ``asyncio.Task`` for ``AsyncHttpxRequestor``).

        Raises:
            ProtocolError: If the request payload is too large to frame.
            TypeError: If the request cannot be serialized.

        """
        transport_request = self._build_request(method, request, metadata, method_info)
        handler = _CallHandler(
            method_info.name or method,
            method_info.response_deserializer,
            callback,
            ResponseDecoder(self._config.format),
        )
        _logger.debug("Issuing %s (%s)", method, self._config.format.value)
        return self._config.requestor.request(transport_request, handler.on_success, handler.on_failure)

    def unary_call(
        self,
        method: str,
        request: object,
        method_info: MethodInfo,
        metadata: Mapping[str, str] | None = None,
    ) -> Any:
        """Issue a unary call through a synchronous requestor and return the response.

        Raises:
            RpcStatusError: If the server reports a non-OK status.
            TransportError: If the request failed.
            ProtocolError: If the response is malformed, carries no message,
                or the requestor did not complete synchronously.

        """
        collector = _UnaryCollector()
        self.rpc_call(method, request, metadata, method_info, collector)
        return collector.result()

    async def unary_call_async(
        self,
        method: str,
        request: object,
        method_info: MethodInfo,
        metadata: Mapping[str, str] | None = None,
    ) -> Any:
        """Issue a unary call and await the response.

        Works with both synchronous and asynchronous requestors.  Raises
        the same errors as ``unary_call``.
        """
        future: asyncio.Future[None] = asyncio.get_running_loop().create_future()

        def _resolve() -> None:
            if not future.done():
                future.set_result(None)

        collector = _UnaryCollector(on_terminal=_resolve)
        pending = self.rpc_call(method, request, metadata, method_info, collector)
        if isinstance(pending, asyncio.Future):
            # Surfaces exceptions raised inside the requestor's task.
            await pending
        await future
        return collector.result()

    def server_streaming(
        self,
        method: str,
        request: object,
        metadata: Mapping[str, str] | None,
        method_info: MethodInfo,
    ) -> Any:
        """Server streaming is not supported by this client.

        Raises:
            NotImplementedError: Always.

        """
        raise NotImplementedError("server streaming calls are not supported by GrpcWebClient")
