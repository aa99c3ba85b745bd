"""Shared constants and logging for the NetSDR client."""

import logging

logging.basicConfig(level=logging.INFO, format='%(asctime)s %(levelname)s %(message)s')
log = logging.getLogger(__name__)

NETSDR_TCP_PORT = 50000         # TCP command/control port

NETSDR_UDP_PORT = 60000         # UDP port the receiver streams IQ data items to

HEADER_LENGTH            = 2
CONTROL_ITEM_LENGTH      = 2
SEQUENCE_NUMBER_LENGTH   = 2

MAX_MESSAGE_LENGTH           = 8191   # 13-bit length field
MAX_DATA_ITEM_MESSAGE_LENGTH = 8194   # encoded as length 0 in data item headers

MAX_SAMPLE_BITS = 32

DEFAULT_SAMPLE_SIZE     = 16          # bits per IQ sample in 16-bit FIFO capture mode
DEFAULT_SAMPLE_RATE     = 100000      # IQ output sample rate requested on connect
DEFAULT_REQUEST_TIMEOUT = 5.0
DEFAULT_QUEUE_SIZE      = 500

MAX_FREQUENCY_HZ = (1 << 40) - 1      # frequency travels as 5 little-endian bytes

# Receiver state arguments: data type, run/stop, capture mode, sample count
RECEIVER_STATE_START = bytes([0x80, 0x02, 0x01, 0x01])
RECEIVER_STATE_STOP  = bytes([0x00, 0x01, 0x00, 0x00])

RF_FILTER_AUTO  = bytes([0x00, 0x00])
AD_MODES_DEFAULT = bytes([0x00, 0x03])
