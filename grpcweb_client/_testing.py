# © Copyright 2025-2026, Query.Farm LLC - https://query.farm
# SPDX-License-Identifier: Apache-2.0

"""In-process gRPC-Web endpoint and requestor for tests.

``make_wsgi_app`` builds a Falcon WSGI app that speaks both gRPC-Web
content types and delegates each call to a plain Python handler.
``FalconTestRequestor`` drives such an app through
``falcon.testing.TestClient``, so no real HTTP server is needed.
"""

from __future__ import annotations

import base64
import binascii
import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from urllib.parse import quote, urlparse

import falcon
import falcon.testing

from grpcweb_client._common import (
    BINARY_CONTENT_TYPE,
    GRPC_MESSAGE_HEADER,
    GRPC_STATUS_HEADER,
    TEXT_CONTENT_TYPE,
    ProtocolError,
)
from grpcweb_client._transport import FailureHandler, SuccessHandler, TransportRequest, _to_transport_response
from grpcweb_client._wire import FrameType, encode_frame, split_frames

__all__ = [
    "FakeReply",
    "FalconTestRequestor",
    "make_sync_requestor",
    "make_wsgi_app",
]

_logger = logging.getLogger("grpcweb_client.testing")


@dataclass(frozen=True)
class FakeReply:
    """What the in-process endpoint sends back for one call.

    Attributes:
        messages: Serialized response messages, one data frame each.
        code: ``grpc-status`` to report.
        message: ``grpc-message`` to report (percent-encoded on the wire).
        status_in_headers: Send the status as response headers instead of
            a trailer frame (a "trailers-only" response).
        http_status: HTTP status code of the response.
        extra_trailers: Additional trailer lines.

    """

    messages: list[bytes] = field(default_factory=list)
    code: int = 0
    message: str = ""
    status_in_headers: bool = False
    http_status: int = 200
    extra_trailers: Mapping[str, str] = field(default_factory=dict)


CallHandler = Callable[[str, list[bytes], Mapping[str, str]], FakeReply]
"""``(method_path, request_messages, request_headers) -> FakeReply``."""


def _trailer_block(reply: FakeReply) -> bytes:
    lines = [f"{GRPC_STATUS_HEADER}: {reply.code}"]
    if reply.message:
        lines.append(f"{GRPC_MESSAGE_HEADER}: {quote(reply.message)}")
    lines.extend(f"{k}: {v}" for k, v in reply.extra_trailers.items())
    return ("\r\n".join(lines) + "\r\n").encode("latin-1")


class _GrpcWebResource:
    """Falcon resource for ``POST /{service}/{method}``."""

    def __init__(self, handler: CallHandler) -> None:
        self._handler = handler

    def on_post(self, req: falcon.Request, resp: falcon.Response, service: str, method: str) -> None:
        """Decode the request frames, run the handler, and frame the reply."""
        content_type = req.content_type or ""
        if content_type not in (TEXT_CONTENT_TYPE, BINARY_CONTENT_TYPE):
            raise falcon.HTTPUnsupportedMediaType(description=f"unsupported content type {content_type!r}")
        is_text = content_type == TEXT_CONTENT_TYPE

        body = req.bounded_stream.read()
        try:
            if is_text:
                body = base64.b64decode(body, validate=True)
            frames = split_frames(body)
        except (binascii.Error, ProtocolError) as e:
            raise falcon.HTTPBadRequest(description=f"malformed gRPC-Web request: {e}") from None

        path = f"/{service}/{method}"
        request_headers = {k.lower(): v for k, v in req.headers.items()}
        reply = self._handler(path, [f.payload for f in frames if f.type is FrameType.DATA], request_headers)
        _logger.debug("Handled %s: %d message(s), grpc-status=%d", path, len(reply.messages), reply.code)

        out = b"".join(encode_frame(m) for m in reply.messages)
        if reply.status_in_headers:
            resp.set_header(GRPC_STATUS_HEADER, str(reply.code))
            resp.set_header(GRPC_MESSAGE_HEADER, quote(reply.message))
        else:
            out += encode_frame(_trailer_block(reply), FrameType.TRAILER)

        resp.content_type = content_type
        resp.data = base64.b64encode(out) if is_text else out
        resp.status = falcon.code_to_http_status(reply.http_status)


def make_wsgi_app(handler: CallHandler) -> falcon.App[falcon.Request, falcon.Response]:
    """Create a Falcon WSGI app serving gRPC-Web calls from *handler*.

    Args:
        handler: Called once per request with the method path, the decoded
            request message payloads, and the lower-cased request headers.

    Returns:
        A Falcon application routing ``POST /{service}/{method}``.

    """
    app: falcon.App[falcon.Request, falcon.Response] = falcon.App()
    app.add_route("/{service}/{method}", _GrpcWebResource(handler))
    return app


class FalconTestRequestor:
    """Requestor that calls a Falcon WSGI app directly via ``falcon.testing.TestClient``."""

    __slots__ = ("_client", "requests")

    def __init__(self, app: falcon.App[falcon.Request, falcon.Response]) -> None:
        """Initialize with the app under test."""
        self._client = falcon.testing.TestClient(app)
        self.requests: list[TransportRequest] = []

    def request(
        self,
        request: TransportRequest,
        on_success: SuccessHandler,
        on_failure: FailureHandler,
    ) -> None:
        """Simulate the exchange and report the outcome synchronously."""
        self.requests.append(request)
        # Strip scheme+host if present
        path = urlparse(request.url).path
        result = self._client.simulate_request(
            request.method,
            path,
            body=request.body,
            headers=dict(request.headers),
        )
        outcome = _to_transport_response(result.status_code, result.content, result.headers, request.response_kind)
        if isinstance(outcome, str):
            on_failure(outcome)
        else:
            on_success(outcome)


def make_sync_requestor(handler: CallHandler) -> FalconTestRequestor:
    """Create a ``FalconTestRequestor`` for an app built from *handler*."""
    return FalconTestRequestor(make_wsgi_app(handler))
