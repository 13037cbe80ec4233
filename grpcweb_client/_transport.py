"""Requestor protocol and httpx-backed implementations.

A *requestor* performs exactly one HTTP exchange per ``request`` call and
reports the outcome through exactly one of two handlers: ``on_success``
with a ``TransportResponse``, or ``on_failure`` with an error message.
The client never retries; whatever the requestor reports is final.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from types import TracebackType
from typing import Protocol, runtime_checkable

import httpx

from grpcweb_client._common import GRPC_STATUS_HEADER
from grpcweb_client._debug import fmt_bytes, fmt_headers, wire_http_logger
from grpcweb_client._encoding import ResponseKind

__all__ = [
    "AsyncHttpxRequestor",
    "FailureHandler",
    "HttpxRequestor",
    "Requestor",
    "SuccessHandler",
    "TransportRequest",
    "TransportResponse",
]


@dataclass(frozen=True)
class TransportRequest:
    """A single HTTP exchange to perform.

    Attributes:
        url: Method URL (absolute, or relative to the requestor's base URL).
        headers: Request headers, protocol headers included.
        body: Encoded request body.
        response_kind: ``TEXT`` for base64 bodies, ``BINARY`` for raw bytes.
        method: HTTP method, always ``POST`` for gRPC-Web.

    """

    url: str
    headers: Mapping[str, str]
    body: bytes
    response_kind: ResponseKind
    method: str = "POST"


@dataclass(frozen=True)
class TransportResponse:
    """Outcome of a successful HTTP exchange.

    Attributes:
        data: Response body; ``str`` for ``ResponseKind.TEXT``, ``bytes``
            for ``ResponseKind.BINARY``.
        status_code: HTTP status code.
        headers: Response headers with lower-cased names.

    """

    data: bytes | str
    status_code: int = 200
    headers: Mapping[str, str] = field(default_factory=dict)


SuccessHandler = Callable[[TransportResponse], None]
FailureHandler = Callable[[str], None]


@runtime_checkable
class Requestor(Protocol):
    """Injected transport capability."""

    def request(
        self,
        request: TransportRequest,
        on_success: SuccessHandler,
        on_failure: FailureHandler,
    ) -> object:
        """Issue *request* and invoke exactly one handler exactly once."""
        ...


def _body_preview(content: bytes) -> str:
    """Return a truncated, decoded preview of response body."""
    return content[:200].decode(errors="replace") if content else ""


def _to_transport_response(
    status_code: int,
    content: bytes,
    headers: Mapping[str, str],
    response_kind: ResponseKind,
) -> TransportResponse | str:
    """Convert raw HTTP results into a ``TransportResponse`` or a failure message.

    Non-2xx responses are failures unless they carry ``grpc-status``
    (trailers-only error responses from some proxies).
    """
    lowered = {k.lower(): v for k, v in headers.items()}
    if not 200 <= status_code < 300 and GRPC_STATUS_HEADER not in lowered:
        return f"HTTP {status_code}: {_body_preview(content)}"
    data: bytes | str = content.decode("ascii", errors="replace") if response_kind is ResponseKind.TEXT else content
    return TransportResponse(data=data, status_code=status_code, headers=lowered)


def _failure_message(exc: httpx.HTTPError) -> str:
    if isinstance(exc, httpx.TimeoutException):
        return "timeout"
    return str(exc) or type(exc).__name__


def _log_request(request: TransportRequest) -> None:
    wire_http_logger.debug(
        "HTTP %s %s: headers=%s, body=%s",
        request.method,
        request.url,
        fmt_headers(request.headers),
        fmt_bytes(request.body),
    )


def _log_response(request: TransportRequest, response: httpx.Response) -> None:
    wire_http_logger.debug(
        "HTTP %s %s response: status=%d, headers=%s, size=%d",
        request.method,
        request.url,
        response.status_code,
        fmt_headers(response.headers),
        len(response.content),
    )


class HttpxRequestor:
    """Synchronous requestor backed by ``httpx.Client``.

    Handlers run before ``request`` returns.  Supports the context manager
    protocol; an internally created client is closed on exit.
    """

    __slots__ = ("_client", "_own_client", "_timeout")

    def __init__(
        self,
        base_url: str | None = None,
        *,
        client: httpx.Client | None = None,
        timeout: float | httpx.Timeout | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> None:
        """Initialize with a base URL or a pre-built client.

        Args:
            base_url: Prefix for relative method URLs.  Ignored when
                *client* is given.
            client: Optional pre-built ``httpx.Client`` (e.g. with a
                ``MockTransport`` in tests).  Not closed by this requestor.
            timeout: Per-request timeout; ``None`` uses the client default.
            headers: Default headers for an internally created client.

        """
        self._own_client = client is None
        if client is None:
            client = httpx.Client(base_url=base_url or "", follow_redirects=True, headers=dict(headers or {}))
        self._client = client
        self._timeout = timeout

    def request(
        self,
        request: TransportRequest,
        on_success: SuccessHandler,
        on_failure: FailureHandler,
    ) -> None:
        """Perform the POST and report the outcome."""
        if wire_http_logger.isEnabledFor(logging.DEBUG):
            _log_request(request)
        timeout = httpx.USE_CLIENT_DEFAULT if self._timeout is None else self._timeout
        try:
            resp = self._client.request(
                request.method,
                request.url,
                content=request.body,
                headers=dict(request.headers),
                timeout=timeout,
            )
        except httpx.HTTPError as e:
            wire_http_logger.debug("HTTP %s %s failed: %s", request.method, request.url, e)
            on_failure(_failure_message(e))
            return
        if wire_http_logger.isEnabledFor(logging.DEBUG):
            _log_response(request, resp)
        result = _to_transport_response(resp.status_code, resp.content, resp.headers, request.response_kind)
        if isinstance(result, str):
            on_failure(result)
        else:
            on_success(result)

    def close(self) -> None:
        """Close the underlying client if this requestor created it."""
        if self._own_client:
            self._client.close()

    def __enter__(self) -> HttpxRequestor:
        """Enter the context."""
        return self

    def __exit__(
        self,
        _exc_type: type[BaseException] | None,
        _exc_val: BaseException | None,
        _exc_tb: TracebackType | None,
    ) -> None:
        """Exit the context."""
        self.close()


class AsyncHttpxRequestor:
    """Asynchronous requestor backed by ``httpx.AsyncClient``.

    ``request`` must be called from a running event loop; it schedules the
    exchange as a task and returns that task.  Handlers run on the loop
    once the response (or failure) arrives.
    """

    __slots__ = ("_client", "_own_client", "_tasks", "_timeout")

    def __init__(
        self,
        base_url: str | None = None,
        *,
        client: httpx.AsyncClient | None = None,
        timeout: float | httpx.Timeout | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> None:
        """Initialize with a base URL or a pre-built async client."""
        self._own_client = client is None
        if client is None:
            client = httpx.AsyncClient(base_url=base_url or "", follow_redirects=True, headers=dict(headers or {}))
        self._client = client
        self._timeout = timeout
        self._tasks: set[asyncio.Task[None]] = set()

    def request(
        self,
        request: TransportRequest,
        on_success: SuccessHandler,
        on_failure: FailureHandler,
    ) -> asyncio.Task[None]:
        """Schedule the POST on the running loop.

        Raises:
            RuntimeError: If called without a running event loop.

        """
        loop = asyncio.get_running_loop()
        task = loop.create_task(self._exchange(request, on_success, on_failure))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _exchange(
        self,
        request: TransportRequest,
        on_success: SuccessHandler,
        on_failure: FailureHandler,
    ) -> None:
        if wire_http_logger.isEnabledFor(logging.DEBUG):
            _log_request(request)
        timeout = httpx.USE_CLIENT_DEFAULT if self._timeout is None else self._timeout
        try:
            resp = await self._client.request(
                request.method,
                request.url,
                content=request.body,
                headers=dict(request.headers),
                timeout=timeout,
            )
        except httpx.HTTPError as e:
            wire_http_logger.debug("HTTP %s %s failed: %s", request.method, request.url, e)
            on_failure(_failure_message(e))
            return
        if wire_http_logger.isEnabledFor(logging.DEBUG):
            _log_response(request, resp)
        result = _to_transport_response(resp.status_code, resp.content, resp.headers, request.response_kind)
        if isinstance(result, str):
            on_failure(result)
        else:
            on_success(result)

    async def aclose(self) -> None:
        """Wait for in-flight exchanges, then close an internally created client."""
        if self._tasks:
            results = await asyncio.gather(*self._tasks, return_exceptions=True)
            for result in results:
                if isinstance(result, BaseException) and not isinstance(result, asyncio.CancelledError):
                    wire_http_logger.warning("In-flight exchange failed during aclose: %r", result)
        if self._own_client:
            await self._client.aclose()

    async def __aenter__(self) -> AsyncHttpxRequestor:
        """Enter the async context."""
        return self

    async def __aexit__(
        self,
        _exc_type: type[BaseException] | None,
        _exc_val: BaseException | None,
        _exc_tb: TracebackType | None,
    ) -> None:
        """Exit the async context."""
        await self.aclose()
