"""Tests for gRPC-Web framing: encode_frame, FrameParser, split_frames, trailer parsing."""

from __future__ import annotations

import pytest

from grpcweb_client import Frame, FrameParser, FrameType, ProtocolError, encode_frame, parse_http1_headers, split_frames
from grpcweb_client._common import MAX_FRAME_LENGTH

# ---------------------------------------------------------------------------
# encode_frame
# ---------------------------------------------------------------------------


class TestEncodeFrame:
    """Tests for the single frame encoder."""

    def test_empty_payload(self) -> None:
        """An empty message still gets a full 5-byte header."""
        assert encode_frame(b"") == b"\x00\x00\x00\x00\x00"

    def test_small_payload(self) -> None:
        """Header is flag 0 followed by the big-endian length."""
        assert encode_frame(b"abc") == b"\x00\x00\x00\x00\x03abc"

    @pytest.mark.parametrize("length", [0, 1, 255, 256, 300, 65535, 65536, 70000])
    def test_header_layout(self, length: int) -> None:
        """Length is len+5, first byte 0, bytes 1-4 big-endian length."""
        payload = bytes(i % 251 for i in range(length))
        framed = encode_frame(payload)
        assert len(framed) == length + 5
        assert framed[0] == 0
        assert framed[1:5] == length.to_bytes(4, "big")
        assert framed[5:] == payload

    def test_multi_byte_length(self) -> None:
        """300 bytes encodes as 00 00 01 2c."""
        assert encode_frame(b"x" * 300)[1:5] == b"\x00\x00\x01\x2c"

    def test_trailer_flag(self) -> None:
        """Trailer frames use flag 0x80."""
        framed = encode_frame(b"grpc-status: 0\r\n", FrameType.TRAILER)
        assert framed[0] == 0x80

    def test_accepts_bytearray(self) -> None:
        """Any bytes-like payload is accepted."""
        assert encode_frame(bytearray(b"hi")) == b"\x00\x00\x00\x00\x02hi"

    def test_oversized_payload_rejected(self) -> None:
        """Payloads that overflow the 32-bit length field raise ProtocolError."""

        class _Huge(bytes):
            def __len__(self) -> int:
                return MAX_FRAME_LENGTH + 1

        with pytest.raises(ProtocolError, match="frame limit"):
            encode_frame(_Huge())


# ---------------------------------------------------------------------------
# split_frames
# ---------------------------------------------------------------------------


class TestSplitFrames:
    """Tests for the stateless splitter."""

    def test_empty_body(self) -> None:
        """An empty body yields no frames."""
        assert split_frames(b"") == []

    def test_two_data_frames_in_order(self) -> None:
        """Concatenated frames come back as two data frames, in order."""
        frames = split_frames(encode_frame(b"first") + encode_frame(b"second"))
        assert frames == [Frame(FrameType.DATA, b"first"), Frame(FrameType.DATA, b"second")]

    def test_data_then_trailer(self) -> None:
        """Trailer frames are tagged as trailers."""
        frames = split_frames(encode_frame(b"m") + encode_frame(b"grpc-status: 0", FrameType.TRAILER))
        assert [f.type for f in frames] == [FrameType.DATA, FrameType.TRAILER]
        assert frames[1].is_trailer
        assert not frames[0].is_trailer

    def test_empty_data_frame(self) -> None:
        """A zero-length data frame is still a frame."""
        assert split_frames(encode_frame(b"")) == [Frame(FrameType.DATA, b"")]

    def test_truncated_payload(self) -> None:
        """A body ending mid-payload raises ProtocolError."""
        with pytest.raises(ProtocolError, match="inside a frame"):
            split_frames(encode_frame(b"hello")[:-1])

    def test_truncated_header(self) -> None:
        """A body ending mid-header raises ProtocolError."""
        with pytest.raises(ProtocolError):
            split_frames(b"\x00\x00\x00")

    @pytest.mark.parametrize("flag", [0x01, 0x02, 0x7F, 0x81, 0xFF])
    def test_unknown_flag(self, flag: int) -> None:
        """Flags other than 0x00 and 0x80 (including compression) are rejected."""
        with pytest.raises(ProtocolError, match="unexpected frame flag"):
            split_frames(bytes([flag]) + b"\x00\x00\x00\x00")


# ---------------------------------------------------------------------------
# FrameParser
# ---------------------------------------------------------------------------


class TestFrameParser:
    """Tests for incremental parsing across chunk boundaries."""

    def test_byte_at_a_time(self) -> None:
        """Feeding one byte at a time yields the same frames as one chunk."""
        body = encode_frame(b"one") + encode_frame(b"") + encode_frame(b"three", FrameType.TRAILER)
        parser = FrameParser()
        frames: list[Frame] = []
        for i in range(len(body)):
            frames.extend(parser.parse(body[i : i + 1]))
        parser.finish()
        assert frames == split_frames(body)

    @pytest.mark.parametrize("cut", [1, 4, 5, 6, 8, 9, 12])
    def test_two_chunks(self, cut: int) -> None:
        """Any split point produces the complete frame list."""
        body = encode_frame(b"abc") + encode_frame(b"defg")
        parser = FrameParser()
        frames = parser.parse(body[:cut]) + parser.parse(body[cut:])
        assert [f.payload for f in frames] == [b"abc", b"defg"]
        assert parser.pending == 0

    def test_pending_bytes(self) -> None:
        """Incomplete frame bytes are buffered."""
        parser = FrameParser()
        assert parser.parse(encode_frame(b"abcdef")[:7]) == []
        assert parser.pending == 7
        with pytest.raises(ProtocolError):
            parser.finish()

    def test_error_is_sticky(self) -> None:
        """After a bad flag the parser keeps failing."""
        parser = FrameParser()
        with pytest.raises(ProtocolError):
            parser.parse(b"\x05")
        with pytest.raises(ProtocolError):
            parser.parse(encode_frame(b"ok"))

    def test_independent_instances(self) -> None:
        """Partial state in one parser does not leak into another."""
        a = FrameParser()
        b = FrameParser()
        a.parse(encode_frame(b"partial")[:3])
        assert b.parse(encode_frame(b"whole")) == [Frame(FrameType.DATA, b"whole")]


# ---------------------------------------------------------------------------
# parse_http1_headers
# ---------------------------------------------------------------------------


class TestParseHttp1Headers:
    """Tests for trailer block parsing."""

    def test_status_and_message(self) -> None:
        """CRLF-separated lines parse into a header map."""
        assert parse_http1_headers("grpc-status: 3\r\ngrpc-message: bad\r\n") == {
            "grpc-status": "3",
            "grpc-message": "bad",
        }

    def test_value_with_colon(self) -> None:
        """Only the first colon separates name and value."""
        assert parse_http1_headers("grpc-message: a: b") == {"grpc-message": "a: b"}

    def test_names_lower_cased(self) -> None:
        """Header names are normalized to lower case."""
        assert parse_http1_headers("Grpc-Status: 0") == {"grpc-status": "0"}

    def test_blank_lines_ignored(self) -> None:
        """Blank lines between headers are skipped."""
        assert parse_http1_headers("a: 1\r\n\r\nb: 2\r\n") == {"a": "1", "b": "2"}

    def test_bare_lf_accepted(self) -> None:
        """Lines separated by LF alone still parse."""
        assert parse_http1_headers("a: 1\nb: 2") == {"a": "1", "b": "2"}

    def test_empty_block(self) -> None:
        """An empty block parses to an empty map."""
        assert parse_http1_headers("") == {}

    def test_line_without_colon(self) -> None:
        """A non-blank line without a colon raises ProtocolError."""
        with pytest.raises(ProtocolError, match="malformed trailer line"):
            parse_http1_headers("grpc-status: 0\r\ngarbage\r\n")
