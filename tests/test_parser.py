import pytest

from aapclient.errors import MalformedFrame, TruncatedFrame, UnknownFrameType
from aapclient.protocol import (
    CancelBundle,
    FrameBuffer,
    FrameParser,
    Nack,
    Ping,
    RecvBundle,
    Register,
    SendBundle,
    SendConfirm,
    Welcome,
)


def test_register_to_bytes():
    assert FrameParser.encode(Register("rust_test")) == b"\x01\x00\x09rust_test"


def test_welcome_to_bytes():
    assert FrameParser.encode(Welcome("dtn://node1/")) == b"\x02\x00\x0cdtn://node1/"


def test_send_bundle_to_bytes():
    encoded = FrameParser.encode(SendBundle("dtn://example.org/hello", b"Hello world!"))
    assert encoded == (
        b"\x03"
        b"\x00\x17dtn://example.org/hello"
        b"\x00\x00\x00\x0cHello world!"
    )


def test_fieldless_and_nack_frames_to_bytes():
    assert FrameParser.encode(SendConfirm()) == b"\x05"
    assert FrameParser.encode(Ping()) == b"\x07"
    assert FrameParser.encode(Nack(3)) == b"\x08\x03"
    assert FrameParser.encode(CancelBundle("dtn://a/")) == b"\x06\x00\x08dtn://a/"


def test_recv_bundle_parse():
    data = b"\x04\x00\x0cdtn://peer/x\x00\x00\x00\x07payload"
    assert FrameParser.decode(data) == RecvBundle("dtn://peer/x", b"payload")


@pytest.mark.parametrize("frame", [
    Register("my-agent"),
    Welcome("dtn://node1/"),
    SendBundle("dtn://example.org/hello", b"Hello world!"),
    SendBundle("dtn://example.org/empty", b""),
    RecvBundle("ipn:12.4", bytes(range(256))),
    SendConfirm(),
    CancelBundle("dtn://example.org/hello"),
    Ping(),
    Nack(255),
    Welcome("dtn://nœud/"),
])
def test_round_trip(frame):
    assert FrameParser.decode(FrameParser.encode(frame)) == frame


def test_identifier_at_wire_limit_round_trips():
    eid = "d" * 0xFFFF
    encoded = FrameParser.encode(CancelBundle(eid))
    assert encoded[1:3] == b"\xff\xff"
    assert FrameParser.decode(encoded) == CancelBundle(eid)


def test_unknown_type():
    with pytest.raises(UnknownFrameType) as exc_info:
        FrameParser.decode(b"\x42\x00")
    assert exc_info.value.tag == 0x42


def test_empty_input_is_truncated():
    with pytest.raises(TruncatedFrame):
        FrameParser.decode_buffer(b"")


@pytest.mark.parametrize("cut", [1, 2, 5, 14, 17, 20])
def test_truncated_then_completed(cut):
    frame = RecvBundle("dtn://peer/x", b"payload")
    encoded = FrameParser.encode(frame)

    with pytest.raises(TruncatedFrame):
        FrameParser.decode_buffer(encoded[:cut])

    assert FrameParser.decode_buffer(encoded) == (frame, len(encoded))


def test_nack_without_reason_is_truncated():
    with pytest.raises(TruncatedFrame):
        FrameParser.decode_buffer(b"\x08")


def test_payload_over_limit_is_malformed_before_body_arrives():
    header = b"\x04\x00\x01x\x00\x00\x10\x00"
    with pytest.raises(MalformedFrame):
        FrameParser.decode_buffer(header, max_payload=1024)


def test_invalid_utf8_is_malformed():
    with pytest.raises(MalformedFrame):
        FrameParser.decode(b"\x02\x00\x02\xff\xfe")


def test_trailing_bytes_are_malformed():
    with pytest.raises(MalformedFrame):
        FrameParser.decode(b"\x05\x05")


def test_decode_buffer_reports_consumed_bytes():
    data = FrameParser.encode(Ping()) + FrameParser.encode(Nack(1))
    assert FrameParser.decode_buffer(data) == (Ping(), 1)


def test_frame_buffer_keeps_partial_bytes():
    frame = SendBundle("dtn://example.org/hello", b"Hello world!")
    encoded = FrameParser.encode(frame)
    frames = FrameBuffer()

    assert frames.decode_frames(encoded[:10]) == []
    assert len(frames) == 10
    assert frames.decode_frames(encoded[10:]) == [frame]
    assert len(frames) == 0


def test_frame_buffer_splits_coalesced_frames():
    data = b"".join(FrameParser.encode(f) for f in (Ping(), SendConfirm(), Nack(2)))
    frames = FrameBuffer()

    assert frames.decode_frames(data + b"\x02\x00") == [Ping(), SendConfirm(), Nack(2)]
    assert frames.next_frame() is None
    frames.feed(b"\x01a")
    assert frames.next_frame() == Welcome("a")


def test_frame_buffer_does_not_consume_malformed_frame():
    frames = FrameBuffer()
    frames.feed(b"\x99")
    with pytest.raises(UnknownFrameType):
        frames.next_frame()
    assert len(frames) == 1


def test_nack_reason_range():
    with pytest.raises(ValueError):
        Nack(256)
