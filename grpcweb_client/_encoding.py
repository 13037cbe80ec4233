# © Copyright 2025-2026, Query.Farm LLC - https://query.farm
# SPDX-License-Identifier: Apache-2.0

"""Wire encoding selection (text vs. binary) and response body decoding.

``grpc-web-text`` carries base64 of the framed bytes in both directions;
``grpc-web+proto`` carries the framed bytes unchanged.
"""

from __future__ import annotations

import base64
import binascii
import logging
from dataclasses import dataclass
from enum import StrEnum

from grpcweb_client._common import (
    BINARY_CONTENT_TYPE,
    TEXT_CONTENT_TYPE,
    ConfigurationError,
    ProtocolError,
)
from grpcweb_client._debug import fmt_bytes, wire_request_logger, wire_response_logger
from grpcweb_client._wire import Frame, FrameParser

__all__ = [
    "ResponseDecoder",
    "ResponseKind",
    "WireEncoding",
    "WireFormat",
    "coerce_wire_format",
    "select_wire_encoding",
]


class WireFormat(StrEnum):
    """Request/response body encoding."""

    TEXT = "text"
    BINARY = "binary"


class ResponseKind(StrEnum):
    """Response body type the requestor is asked to produce."""

    TEXT = "text"
    BINARY = "arraybuffer"


@dataclass(frozen=True)
class WireEncoding:
    """Encoded request body plus the matching content type and response kind."""

    content_type: str
    body: bytes
    response_kind: ResponseKind


def coerce_wire_format(value: WireFormat | str) -> WireFormat:
    """Return *value* as a ``WireFormat``.

    Raises:
        ConfigurationError: If *value* is not ``"text"`` or ``"binary"``.

    """
    if isinstance(value, WireFormat):
        return value
    try:
        return WireFormat(value)
    except ValueError:
        allowed = ", ".join(repr(f.value) for f in WireFormat)
        raise ConfigurationError(f"unsupported wire format {value!r} (expected one of {allowed})") from None


def select_wire_encoding(wire_format: WireFormat | str, framed: bytes) -> WireEncoding:
    """Encode framed request bytes for *wire_format*.

    Args:
        wire_format: ``"text"`` or ``"binary"``.
        framed: Output of ``encode_frame``.

    Returns:
        The content type, request body, and expected response kind.

    Raises:
        ConfigurationError: If *wire_format* is not recognized.

    """
    fmt = coerce_wire_format(wire_format)
    if fmt is WireFormat.TEXT:
        encoding = WireEncoding(TEXT_CONTENT_TYPE, base64.b64encode(framed), ResponseKind.TEXT)
    else:
        encoding = WireEncoding(BINARY_CONTENT_TYPE, bytes(framed), ResponseKind.BINARY)
    if wire_request_logger.isEnabledFor(logging.DEBUG):
        wire_request_logger.debug(
            "Encoded request: format=%s, content_type=%s, body=%s",
            fmt.value,
            encoding.content_type,
            fmt_bytes(encoding.body),
        )
    return encoding


def _b64decode(text: str) -> bytes:
    """Decode base64 that may be several padded segments back to back."""
    try:
        if "=" not in text.rstrip("="):
            return base64.b64decode(text, validate=True)
        out = bytearray()
        start = 0
        for i in range(0, len(text), 4):
            if "=" in text[i : i + 4]:
                out += base64.b64decode(text[start : i + 4], validate=True)
                start = i + 4
        out += base64.b64decode(text[start:], validate=True)
        return bytes(out)
    except binascii.Error as e:
        raise ProtocolError(f"invalid base64 in response body: {e}") from None


class ResponseDecoder:
    """Turns raw response bodies (possibly chunked) into frames for one call."""

    __slots__ = ("_format", "_parser", "_pending_text")

    def __init__(self, wire_format: WireFormat | str) -> None:
        """Initialize for the format the request was sent with."""
        self._format = coerce_wire_format(wire_format)
        self._parser = FrameParser()
        self._pending_text = ""

    @property
    def wire_format(self) -> WireFormat:
        """The format this decoder expects."""
        return self._format

    def feed(self, raw: bytes | bytearray | str) -> list[Frame]:
        """Decode one chunk of response body and return the completed frames.

        In text mode only whole base64 groups are decoded; a trailing
        partial group is kept for the next chunk.  Returns ``[]`` when
        nothing decodable has arrived yet.

        Raises:
            ProtocolError: On invalid base64 or an invalid frame.

        """
        if self._format is WireFormat.TEXT:
            data = self._decode_text(raw)
        else:
            data = self._as_bytes(raw)
        if not data:
            return []
        if wire_response_logger.isEnabledFor(logging.DEBUG):
            wire_response_logger.debug("Decoded response chunk: %s", fmt_bytes(data))
        return self._parser.parse(data)

    def finish(self) -> None:
        """Assert the response ended cleanly.

        Raises:
            ProtocolError: If an incomplete base64 group or frame remains.

        """
        if self._pending_text:
            raise ProtocolError(f"response ended with {len(self._pending_text)} undecodable base64 characters")
        self._parser.finish()

    def _decode_text(self, raw: bytes | bytearray | str) -> bytes:
        if isinstance(raw, (bytes, bytearray)):
            try:
                raw = raw.decode("ascii")
            except UnicodeDecodeError:
                raise ProtocolError("grpc-web-text response body is not ASCII") from None
        text = self._pending_text + raw
        usable = len(text) - len(text) % 4
        self._pending_text = text[usable:]
        if usable == 0:
            return b""
        return _b64decode(text[:usable])

    @staticmethod
    def _as_bytes(raw: bytes | bytearray | str) -> bytes:
        if isinstance(raw, str):
            # Binary carried as one character per byte.
            try:
                return raw.encode("latin-1")
            except UnicodeEncodeError:
                raise ProtocolError("binary response string contains characters above 0xff") from None
        return bytes(raw)
