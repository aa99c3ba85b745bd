import struct

import numpy as np
import pytest

from netsdrclient.messages import (
    build_control_item_message,
    build_data_item_message,
    extract_samples,
    pack_header,
    samples_to_array,
    split_frames,
    translate_message,
    unpack_header,
)
from netsdrclient.models import ControlItemCode, MessageKind


def _decode_raw_header(msg):
    num = struct.unpack_from("<H", msg, 0)[0]
    kind = num >> 13
    return kind, num - (kind << 13)


def test_control_item_message_layout():
    """Header carries kind and full length; item code and parameters follow."""
    params = bytes(7500)
    msg = build_control_item_message(MessageKind.ACK, ControlItemCode.RECEIVER_STATE, params)

    kind, length = _decode_raw_header(msg)
    assert kind == MessageKind.ACK
    assert length == len(msg) == 2 + 2 + 7500
    assert struct.unpack_from("<h", msg, 2)[0] == ControlItemCode.RECEIVER_STATE
    assert msg[4:] == params


def test_data_item_message_layout():
    params = bytes(7500)
    msg = build_data_item_message(MessageKind.DATA_ITEM2, params)

    kind, length = _decode_raw_header(msg)
    assert kind == MessageKind.DATA_ITEM2
    assert length == len(msg) == 7502
    assert msg[2:] == params


def test_control_item_roundtrip():
    body = b"\x01\x02\x03\x04\x05"
    msg = build_control_item_message(MessageKind.SET_CONTROL_ITEM,
                                     ControlItemCode.RECEIVER_FREQUENCY, body)

    message = translate_message(msg)
    assert message is not None
    assert message.kind == MessageKind.SET_CONTROL_ITEM
    assert message.item_code == ControlItemCode.RECEIVER_FREQUENCY
    assert message.sequence is None
    assert message.body == body


def test_data_item_translation_strips_sequence_number():
    """The first two body bytes of a data item are its sequence number."""
    params = bytes([0x34, 0x12]) + bytes(8)
    msg = build_data_item_message(MessageKind.DATA_ITEM2, params)

    message = translate_message(msg)
    assert message is not None
    assert message.kind == MessageKind.DATA_ITEM2
    assert message.item_code is None
    assert message.sequence == 0x1234
    assert len(message.body) == len(params) - 2


@pytest.mark.parametrize(
    "frame",
    [
        b"",
        b"\x05",
        b"\xab\xcd",                                   # declares 3499 bytes
        pack_header(MessageKind.SET_CONTROL_ITEM, 6) + b"\x18\x00",   # truncated
        pack_header(MessageKind.SET_CONTROL_ITEM, 4) + b"\x18\x00\xff",  # trailing byte
        pack_header(MessageKind.SET_CONTROL_ITEM, 3) + b"\x18",       # no room for item code
        pack_header(MessageKind.DATA_ITEM0, 3) + b"\x01",             # no room for sequence
        pack_header(MessageKind.ACK, 4) + b"\x99\x09",                # unknown item code
    ],
)
def test_translate_rejects_malformed_frames(frame):
    assert translate_message(frame) is None


def test_header_length_matches_frame_length():
    for size in (0, 1, 100, 8187):
        msg = build_control_item_message(MessageKind.SET_CONTROL_ITEM,
                                         ControlItemCode.AD_MODES, bytes(size))
        assert unpack_header(msg) == (MessageKind.SET_CONTROL_ITEM, len(msg))


def test_header_rejects_oversized_frame():
    with pytest.raises(ValueError):
        build_control_item_message(MessageKind.SET_CONTROL_ITEM,
                                   ControlItemCode.AD_MODES, bytes(8188))


def test_max_data_item_length_encodes_as_zero():
    header = pack_header(MessageKind.DATA_ITEM0, 8194)
    assert struct.unpack("<H", header)[0] == MessageKind.DATA_ITEM0 << 13
    assert unpack_header(header) == (MessageKind.DATA_ITEM0, 8194)

    msg = build_data_item_message(MessageKind.DATA_ITEM0, bytes(8192))
    message = translate_message(msg)
    assert message is not None
    assert len(message.body) == 8190


def test_extract_samples_16_bit_little_endian():
    samples = list(extract_samples(16, bytes([0x01, 0x02, 0x03, 0x04])))
    assert samples == [0x0201, 0x0403]


def test_extract_samples_rejects_wide_samples_eagerly():
    with pytest.raises(ValueError):
        extract_samples(40, bytes([0x01, 0x02]))


def test_extract_samples_empty_body():
    assert list(extract_samples(8, b"")) == []


def test_extract_samples_drops_trailing_bits():
    assert list(extract_samples(24, bytes(7))) == [0, 0]
    assert list(extract_samples(12, bytes([0xFF, 0xFF, 0xFF, 0x0F]))) == [0xFFF, 0xFFF]


def test_extract_samples_32_bit_keeps_signed_container():
    assert list(extract_samples(32, b"\xff\xff\xff\xff")) == [-1]


def test_samples_to_array_matches_iterator():
    body = bytes(range(12))
    for width in (8, 12, 16, 24, 32):
        expected = list(extract_samples(width, body))
        arr = samples_to_array(width, body)
        assert arr.dtype == np.int32
        assert arr.tolist() == expected


def test_split_frames_handles_partial_and_coalesced_data():
    a = build_control_item_message(MessageKind.ACK, ControlItemCode.RF_FILTER, b"\x00\x00")
    b = build_control_item_message(MessageKind.CURRENT_CONTROL_ITEM,
                                   ControlItemCode.RECEIVER_STATE, b"\x80\x02")
    stream = a + b

    frames, rest = split_frames(stream[:len(a) + 3])
    assert frames == [a]
    assert rest == b[:3]

    frames, rest = split_frames(rest + stream[len(a) + 3:])
    assert frames == [b]
    assert rest == b""


def test_split_frames_detects_desync():
    with pytest.raises(ValueError):
        split_frames(b"\x01\x00\x00\x00")
