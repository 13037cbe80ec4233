"""Shared test fixtures for grpcweb-client tests."""

from __future__ import annotations

import base64
from collections.abc import Callable
from typing import Any

import pytest

from grpcweb_client import (
    Frame,
    FrameType,
    GrpcWebError,
    RpcStatus,
    TransportRequest,
    TransportResponse,
    encode_frame,
)
from grpcweb_client._transport import FailureHandler, SuccessHandler


class CallRecorder:
    """Error-first callback that records every delivery in order."""

    def __init__(self) -> None:
        self.calls: list[tuple[RpcStatus | GrpcWebError | None, Any]] = []

    def __call__(self, error: RpcStatus | GrpcWebError | None, message: Any) -> None:
        self.calls.append((error, message))

    @property
    def messages(self) -> list[Any]:
        """Data deliveries only."""
        return [m for e, m in self.calls if e is None]

    @property
    def terminals(self) -> list[RpcStatus | GrpcWebError]:
        """Terminal deliveries only."""
        return [e for e, _ in self.calls if e is not None]


class StubRequestor:
    """Requestor returning a canned response or failure synchronously.

    With neither set, it records the request and never completes.
    """

    def __init__(self, response: TransportResponse | None = None, *, failure: str | None = None) -> None:
        self.response = response
        self.failure = failure
        self.requests: list[TransportRequest] = []

    def request(self, request: TransportRequest, on_success: SuccessHandler, on_failure: FailureHandler) -> None:
        """Record the request and report the canned outcome."""
        self.requests.append(request)
        if self.failure is not None:
            on_failure(self.failure)
        elif self.response is not None:
            on_success(self.response)


def trailer_frame(block: str) -> bytes:
    """Encode a trailer block as a trailer frame."""
    return encode_frame(block.encode("latin-1"), FrameType.TRAILER)


def build_body(*messages: bytes, trailer: str | None = "grpc-status: 0\r\n") -> bytes:
    """Frame *messages* followed by an optional trailer block."""
    out = b"".join(encode_frame(m) for m in messages)
    if trailer is not None:
        out += trailer_frame(trailer)
    return out


def text_response(body: bytes, headers: dict[str, str] | None = None) -> TransportResponse:
    """Wrap a framed body as a grpc-web-text transport response."""
    return TransportResponse(data=base64.b64encode(body).decode("ascii"), headers=headers or {})


def data_frames(frames: list[Frame]) -> list[bytes]:
    """Payloads of the data frames in *frames*."""
    return [f.payload for f in frames if f.type is FrameType.DATA]


@pytest.fixture
def recorder() -> CallRecorder:
    """A fresh callback recorder."""
    return CallRecorder()


@pytest.fixture
def stub_requestor() -> Callable[..., StubRequestor]:
    """Factory for ``StubRequestor`` instances."""
    return StubRequestor
