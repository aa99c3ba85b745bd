"""NetSDR message framing: headers, control/data items and packed samples.

Every frame starts with a 16-bit little-endian header::

    bits 15-13: message kind (MessageKind)
    bits 12-0:  total frame length in bytes, header included

Control item kinds follow the header with a 16-bit item code; data item kinds
follow it with a 16-bit sequence number. Nothing here touches the network.
"""

import struct
from typing import Iterator, Optional, Tuple

import numpy as np

from .common import (
    CONTROL_ITEM_LENGTH,
    HEADER_LENGTH,
    MAX_DATA_ITEM_MESSAGE_LENGTH,
    MAX_MESSAGE_LENGTH,
    MAX_SAMPLE_BITS,
    SEQUENCE_NUMBER_LENGTH,
)
from .models import ControlItemCode, Message, MessageKind

HEADER_STRUCT   = struct.Struct("<H")
ITEM_CODE_STRUCT = struct.Struct("<h")
SEQUENCE_STRUCT = struct.Struct("<H")

_KIND_SHIFT = 13

def pack_header(kind: MessageKind, total_length: int) -> bytes:
    """Encode the 2-byte header for a frame of ``total_length`` bytes."""
    kind = MessageKind(kind)
    if kind.is_data_item and total_length == MAX_DATA_ITEM_MESSAGE_LENGTH:
        total_length = 0
    elif total_length < HEADER_LENGTH or total_length > MAX_MESSAGE_LENGTH:
        raise ValueError(
            f"Message length {total_length} outside {HEADER_LENGTH}..{MAX_MESSAGE_LENGTH}"
        )
    return HEADER_STRUCT.pack((int(kind) << _KIND_SHIFT) | total_length)

def unpack_header(data: bytes) -> Optional[Tuple[MessageKind, int]]:
    """Return ``(kind, total_length)`` or None if fewer than 2 bytes are given."""
    if len(data) < HEADER_LENGTH:
        return None
    value = HEADER_STRUCT.unpack_from(data, 0)[0]
    kind = MessageKind(value >> _KIND_SHIFT)
    total_length = value - (int(kind) << _KIND_SHIFT)
    if kind.is_data_item and total_length == 0:
        total_length = MAX_DATA_ITEM_MESSAGE_LENGTH
    return kind, total_length

def build_control_item_message(kind: MessageKind, item_code: ControlItemCode,
                               parameters: bytes = b"") -> bytes:
    parameters = bytes(parameters)
    total_length = HEADER_LENGTH + CONTROL_ITEM_LENGTH + len(parameters)
    return (pack_header(kind, total_length)
            + ITEM_CODE_STRUCT.pack(int(item_code))
            + parameters)

def build_data_item_message(kind: MessageKind, parameters: bytes = b"") -> bytes:
    """Wrap a raw body in a data item header (no item code, no sequence number)."""
    parameters = bytes(parameters)
    return pack_header(kind, HEADER_LENGTH + len(parameters)) + parameters

def translate_message(frame: bytes) -> Optional[Message]:
    """
    Decode one complete frame.
    Returns None for short or truncated frames, a length that disagrees with
    the header, or an unknown control item code. Never raises on bad input.
    """
    header = unpack_header(frame)
    if header is None:
        return None
    kind, total_length = header
    if len(frame) != total_length:
        return None

    offset = HEADER_LENGTH
    if kind.is_data_item:
        if len(frame) < offset + SEQUENCE_NUMBER_LENGTH:
            return None
        sequence = SEQUENCE_STRUCT.unpack_from(frame, offset)[0]
        offset += SEQUENCE_NUMBER_LENGTH
        return Message(kind=kind, item_code=None, sequence=sequence,
                       body=bytes(frame[offset:]))

    if len(frame) < offset + CONTROL_ITEM_LENGTH:
        return None
    raw_code = ITEM_CODE_STRUCT.unpack_from(frame, offset)[0]
    try:
        item_code = ControlItemCode(raw_code)
    except ValueError:
        return None
    offset += CONTROL_ITEM_LENGTH
    return Message(kind=kind, item_code=item_code, sequence=None,
                   body=bytes(frame[offset:]))

def split_frames(buffer: bytes) -> Tuple[list[bytes], bytes]:
    """
    Cut a received byte stream into whole frames.
    Returns (frames, remainder); remainder is an incomplete trailing frame.
    Raises ValueError if a header declares a length shorter than itself,
    which means the stream lost framing.
    """
    frames = []
    offset = 0
    while len(buffer) - offset >= HEADER_LENGTH:
        _, total_length = unpack_header(buffer[offset:offset + HEADER_LENGTH])
        if total_length < HEADER_LENGTH:
            raise ValueError(f"Invalid frame length {total_length} at offset {offset}")
        if len(buffer) - offset < total_length:
            break
        frames.append(bytes(buffer[offset:offset + total_length]))
        offset += total_length
    return frames, bytes(buffer[offset:])

def extract_samples(bit_width: int, body: bytes) -> Iterator[int]:
    """
    Lazily unpack ``bit_width``-bit samples from ``body``.

    The body is consumed as a little-endian bit stream, so byte-aligned
    widths read as little-endian integers. Each sample is zero-extended
    into a signed 32-bit container; trailing partial bits are dropped.
    Raises ValueError immediately for widths outside 1..32.
    """
    if bit_width > MAX_SAMPLE_BITS or bit_width < 1:
        raise ValueError(f"Sample size {bit_width} bits outside 1..{MAX_SAMPLE_BITS}")
    return _iter_samples(bit_width, bytes(body))

def _iter_samples(bit_width: int, body: bytes) -> Iterator[int]:
    mask = (1 << bit_width) - 1
    acc = 0
    acc_bits = 0
    for byte in body:
        acc |= byte << acc_bits
        acc_bits += 8
        while acc_bits >= bit_width:
            value = acc & mask
            acc >>= bit_width
            acc_bits -= bit_width
            if value & 0x80000000:
                value -= 1 << 32
            yield value

_ALIGNED_DTYPES = {8: "<u1", 16: "<u2", 32: "<i4"}

def samples_to_array(bit_width: int, body: bytes) -> np.ndarray:
    """Unpack samples into an int32 array; byte-aligned widths skip the bit walker."""
    dtype = _ALIGNED_DTYPES.get(bit_width)
    if dtype is None:
        return np.fromiter(extract_samples(bit_width, body), dtype=np.int32)
    n_bytes = bit_width // 8
    usable = len(body) - (len(body) % n_bytes)
    return np.frombuffer(bytes(body[:usable]), dtype=dtype).astype(np.int32)
