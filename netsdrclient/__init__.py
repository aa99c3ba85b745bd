"""NetSDR receiver client package."""

from .common import (
    NETSDR_TCP_PORT,
    NETSDR_UDP_PORT,
    MAX_MESSAGE_LENGTH,
    MAX_DATA_ITEM_MESSAGE_LENGTH,
)
from .models import ControlItemCode, IqPacket, Message, MessageKind, NetSdrDevice
from .messages import (
    build_control_item_message,
    build_data_item_message,
    extract_samples,
    pack_header,
    samples_to_array,
    split_frames,
    translate_message,
    unpack_header,
)
from .transport import DatagramTransport, ReliableTransport
from .tcp_client import TcpClientWrapper
from .udp_client import UdpClientWrapper
from .client import NetSdrClient

__all__ = [
    "NETSDR_TCP_PORT",
    "NETSDR_UDP_PORT",
    "MAX_MESSAGE_LENGTH",
    "MAX_DATA_ITEM_MESSAGE_LENGTH",
    "ControlItemCode",
    "IqPacket",
    "Message",
    "MessageKind",
    "NetSdrDevice",
    "build_control_item_message",
    "build_data_item_message",
    "extract_samples",
    "pack_header",
    "samples_to_array",
    "split_frames",
    "translate_message",
    "unpack_header",
    "DatagramTransport",
    "ReliableTransport",
    "TcpClientWrapper",
    "UdpClientWrapper",
    "NetSdrClient",
]
