"""Data structures for NetSDR messages and IQ packets."""

from dataclasses import dataclass
from enum import IntEnum
from typing import Optional

import numpy as np

from .common import NETSDR_TCP_PORT, NETSDR_UDP_PORT

class MessageKind(IntEnum):
    """3-bit message type carried in the top of every header."""
    SET_CONTROL_ITEM     = 0
    CURRENT_CONTROL_ITEM = 1    # request (host) / unsolicited value (target)
    CONTROL_ITEM_RANGE   = 2
    ACK                  = 3
    DATA_ITEM0           = 4
    DATA_ITEM1           = 5
    DATA_ITEM2           = 6
    DATA_ITEM3           = 7

    @property
    def is_data_item(self) -> bool:
        return self >= MessageKind.DATA_ITEM0

class ControlItemCode(IntEnum):
    RECEIVER_STATE        = 0x0018
    RECEIVER_FREQUENCY    = 0x0020
    RF_FILTER             = 0x0044
    AD_MODES              = 0x008A
    IQ_OUTPUT_SAMPLE_RATE = 0x00B8

@dataclass
class NetSdrDevice:
    host: str
    tcp_port: int = NETSDR_TCP_PORT
    udp_port: int = NETSDR_UDP_PORT

@dataclass
class Message:
    """Decoded NetSDR frame."""
    kind:      MessageKind
    item_code: Optional[ControlItemCode]   # None for data items
    sequence:  Optional[int]               # None for control items
    body:      bytes

@dataclass
class IqPacket:
    """Samples unpacked from one IQ data item datagram."""
    kind:        MessageKind
    sequence:    int
    sample_size: int            # bits per sample
    samples:     np.ndarray     # int32, zero-extended raw samples

    def iq(self) -> np.ndarray:
        """Interleaved I, Q pairs as complex64, samples read as two's complement."""
        raw = self.samples.astype(np.int64)
        if self.sample_size < 32:
            sign_bit = 1 << (self.sample_size - 1)
            raw = np.where(raw >= sign_bit, raw - (1 << self.sample_size), raw)
        n_pairs = len(raw) // 2
        samples = raw[0:n_pairs * 2:2] + 1j * raw[1:n_pairs * 2:2]
        return samples.astype(np.complex64)
