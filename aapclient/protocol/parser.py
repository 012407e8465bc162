"""AAP frame parser for encoding and decoding wire format."""

import struct
from typing import List, Optional, Tuple

from ..errors import MalformedFrame, TruncatedFrame, UnknownFrameType
from .bundle import MAX_PAYLOAD_LENGTH
from .frames import (
    Frame,
    FrameType,
    Register,
    Welcome,
    SendBundle,
    RecvBundle,
    SendConfirm,
    CancelBundle,
    Ping,
    Nack,
)

_U16 = struct.Struct(">H")
_U32 = struct.Struct(">I")


def _pack_string(value: str) -> bytes:
    encoded = value.encode('utf-8')
    return _U16.pack(len(encoded)) + encoded


def _pack_bytes(value: bytes) -> bytes:
    return _U32.pack(len(value)) + value


class _FieldReader:
    """Reads length-prefixed fields from a buffer without consuming it."""

    def __init__(self, data: bytes, offset: int, max_payload: int):
        self.data = data
        self.offset = offset
        self.max_payload = max_payload

    def _take(self, count: int) -> bytes:
        end = self.offset + count
        if end > len(self.data):
            raise TruncatedFrame(needed=end, available=len(self.data))
        chunk = bytes(self.data[self.offset:end])
        self.offset = end
        return chunk

    def read_u8(self) -> int:
        return self._take(1)[0]

    def read_string(self) -> str:
        (length,) = _U16.unpack(self._take(2))
        raw = self._take(length)
        try:
            return raw.decode('utf-8')
        except UnicodeDecodeError as e:
            raise MalformedFrame(f"Invalid UTF-8 in identifier: {e}") from e

    def read_bytes(self) -> bytes:
        (length,) = _U32.unpack(self._take(4))
        # Checked before waiting for the body so a bogus length cannot stall the reader
        if length > self.max_payload:
            raise MalformedFrame(
                f"Declared payload length {length} exceeds limit {self.max_payload}"
            )
        return self._take(length)


class FrameParser:
    """Parser for AAP wire format."""

    @staticmethod
    def encode(frame: Frame) -> bytes:
        """
        Encode a frame to AAP wire format.

        Format: TAG(1) followed by the frame fields. Identifiers carry a
        2-byte length prefix, payloads a 4-byte one, both big-endian.

        Args:
            frame: Frame to encode

        Returns:
            Encoded frame as bytes
        """
        parts = [bytes([frame.frame_type])]

        if isinstance(frame, Register):
            parts.append(_pack_string(frame.agent_id))
        elif isinstance(frame, Welcome):
            parts.append(_pack_string(frame.node_eid))
        elif isinstance(frame, SendBundle):
            parts.append(_pack_string(frame.destination))
            parts.append(_pack_bytes(frame.payload))
        elif isinstance(frame, RecvBundle):
            parts.append(_pack_string(frame.source))
            parts.append(_pack_bytes(frame.payload))
        elif isinstance(frame, CancelBundle):
            parts.append(_pack_string(frame.destination))
        elif isinstance(frame, Nack):
            parts.append(bytes([frame.reason_code]))

        return b''.join(parts)

    @staticmethod
    def decode_buffer(data: bytes,
                      max_payload: int = MAX_PAYLOAD_LENGTH) -> Tuple[Frame, int]:
        """
        Decode the frame at the start of a buffer.

        The buffer is never modified, so a ``TruncatedFrame`` can be retried
        once more bytes are available.

        Args:
            data: Buffered bytes, possibly holding more than one frame
            max_payload: Largest payload length accepted

        Returns:
            Tuple of (decoded frame, number of bytes it occupies)
        """
        if not data:
            raise TruncatedFrame(needed=1, available=0)

        tag = data[0]
        try:
            frame_type = FrameType(tag)
        except ValueError:
            raise UnknownFrameType(tag) from None

        reader = _FieldReader(data, 1, max_payload)

        if frame_type == FrameType.REGISTER:
            frame = Register(agent_id=reader.read_string())
        elif frame_type == FrameType.WELCOME:
            frame = Welcome(node_eid=reader.read_string())
        elif frame_type == FrameType.SENDBUNDLE:
            frame = SendBundle(destination=reader.read_string(), payload=reader.read_bytes())
        elif frame_type == FrameType.RECVBUNDLE:
            frame = RecvBundle(source=reader.read_string(), payload=reader.read_bytes())
        elif frame_type == FrameType.SENDCONFIRM:
            frame = SendConfirm()
        elif frame_type == FrameType.CANCELBUNDLE:
            frame = CancelBundle(destination=reader.read_string())
        elif frame_type == FrameType.PING:
            frame = Ping()
        else:
            frame = Nack(reason_code=reader.read_u8())

        return frame, reader.offset

    @staticmethod
    def decode(data: bytes, max_payload: int = MAX_PAYLOAD_LENGTH) -> Frame:
        """
        Decode bytes holding exactly one frame.

        Args:
            data: Raw frame bytes

        Returns:
            Decoded frame
        """
        frame, consumed = FrameParser.decode_buffer(data, max_payload)
        if consumed != len(data):
            raise MalformedFrame(
                f"{len(data) - consumed} trailing bytes after {frame.frame_type.name} frame"
            )
        return frame


class FrameBuffer:
    """Accumulates stream bytes and splits them into frames."""

    def __init__(self, max_payload: int = MAX_PAYLOAD_LENGTH):
        """
        Initialize frame buffer.

        Args:
            max_payload: Largest payload length accepted from the peer
        """
        self.max_payload = max_payload
        self.buffer = bytearray()

    def __len__(self) -> int:
        return len(self.buffer)

    def feed(self, data: bytes):
        """Append received bytes."""
        self.buffer.extend(data)

    def next_frame(self) -> Optional[Frame]:
        """
        Pop the next complete frame.

        Returns:
            Decoded frame, or None if more data is needed
        """
        try:
            frame, consumed = FrameParser.decode_buffer(self.buffer, self.max_payload)
        except TruncatedFrame:
            return None

        del self.buffer[:consumed]
        return frame

    def decode_frames(self, data: bytes) -> List[Frame]:
        """
        Feed received bytes and return every frame they complete.

        Args:
            data: Received bytes

        Returns:
            List of decoded frames
        """
        self.feed(data)
        frames = []

        while True:
            frame = self.next_frame()
            if frame is None:
                break
            frames.append(frame)

        return frames
