"""gRPC-Web length-prefixed framing.

Every message on the wire is a 5-byte header followed by its payload:

- byte 0: flag (``0x00`` data, ``0x80`` trailer)
- bytes 1-4: big-endian unsigned payload length

``encode_frame`` is the single encoder used for requests (and by the
in-process test server for responses).  ``FrameParser`` splits an
arbitrarily chunked byte stream back into ``Frame`` objects; it holds the
partial-frame state for exactly one response.  ``split_frames`` is the
stateless one-shot form.
"""

from __future__ import annotations

import logging
import re
import struct
from dataclasses import dataclass
from enum import IntEnum

from grpcweb_client._common import FRAME_HEADER_SIZE, MAX_FRAME_LENGTH, ProtocolError
from grpcweb_client._debug import fmt_bytes, fmt_frame, wire_frame_logger

__all__ = [
    "Frame",
    "FrameParser",
    "FrameType",
    "encode_frame",
    "parse_http1_headers",
    "split_frames",
]

_HEADER = struct.Struct(">BI")
_LINE_SPLIT = re.compile(r"\r\n|\n")


class FrameType(IntEnum):
    """Flag byte values of a gRPC-Web frame."""

    DATA = 0x00
    TRAILER = 0x80


@dataclass(frozen=True)
class Frame:
    """One decoded frame of a response body.

    Attributes:
        type: ``FrameType.DATA`` for a serialized message,
            ``FrameType.TRAILER`` for an HTTP/1-style header block.
        payload: The raw frame payload.

    """

    type: FrameType
    payload: bytes

    @property
    def is_trailer(self) -> bool:
        """Whether this frame carries the trailer block."""
        return self.type is FrameType.TRAILER


def encode_frame(payload: bytes, frame_type: FrameType = FrameType.DATA) -> bytes:
    """Wrap *payload* in a gRPC-Web frame.

    Args:
        payload: Serialized message (or trailer block) bytes.
        frame_type: Flag byte, ``FrameType.DATA`` for requests.

    Returns:
        ``len(payload) + 5`` bytes: flag, big-endian length, payload.

    Raises:
        ProtocolError: If the payload does not fit a 32-bit length field.

    """
    length = len(payload)
    if length > MAX_FRAME_LENGTH:
        raise ProtocolError(f"payload of {length} bytes exceeds the gRPC-Web frame limit")
    return _HEADER.pack(frame_type, length) + bytes(payload)


class FrameParser:
    """Incremental splitter for a single response body.

    Feed chunks as they arrive; each ``parse`` call returns the frames
    completed by that chunk, in order.  A parser instance belongs to one
    response and must not be shared across calls.
    """

    __slots__ = ("_buffer", "_error")

    def __init__(self) -> None:
        """Initialize with an empty buffer."""
        self._buffer = bytearray()
        self._error: ProtocolError | None = None

    @property
    def pending(self) -> int:
        """Number of buffered bytes belonging to an incomplete frame."""
        return len(self._buffer)

    def parse(self, chunk: bytes) -> list[Frame]:
        """Consume *chunk* and return every frame it completes.

        Raises:
            ProtocolError: On an unknown flag byte.  The parser stays
                failed; later calls raise the same error.

        """
        if self._error is not None:
            raise self._error
        self._buffer.extend(chunk)

        frames: list[Frame] = []
        pos = 0
        buf = self._buffer
        while len(buf) - pos >= 1:
            flag = buf[pos]
            if flag not in (FrameType.DATA, FrameType.TRAILER):
                self._error = ProtocolError(f"unexpected frame flag 0x{flag:02x} at offset {pos}")
                raise self._error
            if len(buf) - pos < FRAME_HEADER_SIZE:
                break
            _, length = _HEADER.unpack_from(buf, pos)
            end = pos + FRAME_HEADER_SIZE + length
            if end > len(buf):
                break
            frame = Frame(FrameType(flag), bytes(buf[pos + FRAME_HEADER_SIZE : end]))
            if wire_frame_logger.isEnabledFor(logging.DEBUG):
                wire_frame_logger.debug("Parsed %s", fmt_frame(frame))
            frames.append(frame)
            pos = end
        del buf[:pos]
        return frames

    def finish(self) -> None:
        """Assert the stream ended on a frame boundary.

        Raises:
            ProtocolError: If a partial frame is still buffered.

        """
        if self._buffer:
            raise ProtocolError(f"response ended inside a frame: {fmt_bytes(bytes(self._buffer))}")


def split_frames(data: bytes) -> list[Frame]:
    """Split a complete response body into frames.

    Returns an empty list for an empty body.

    Raises:
        ProtocolError: On an unknown flag byte or a truncated final frame.

    """
    parser = FrameParser()
    frames = parser.parse(data)
    parser.finish()
    return frames


def parse_http1_headers(text: str) -> dict[str, str]:
    """Parse an HTTP/1-style header block (``name: value`` lines).

    Header names are lower-cased; values are stripped.  Blank lines are
    ignored.

    Raises:
        ProtocolError: If a non-blank line has no colon.

    """
    headers: dict[str, str] = {}
    for line in _LINE_SPLIT.split(text.strip()):
        if not line.strip():
            continue
        name, sep, value = line.partition(":")
        if not sep:
            raise ProtocolError(f"malformed trailer line: {line!r}")
        headers[name.strip().lower()] = value.strip()
    return headers
