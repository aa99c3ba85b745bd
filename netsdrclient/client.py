"""NetSDR protocol client: device control over TCP, IQ streaming over UDP."""

import queue
import threading
from typing import Optional

from .common import (
    AD_MODES_DEFAULT,
    DEFAULT_QUEUE_SIZE,
    DEFAULT_REQUEST_TIMEOUT,
    DEFAULT_SAMPLE_RATE,
    DEFAULT_SAMPLE_SIZE,
    MAX_FREQUENCY_HZ,
    MAX_SAMPLE_BITS,
    RECEIVER_STATE_START,
    RECEIVER_STATE_STOP,
    RF_FILTER_AUTO,
    log,
)
from .messages import build_control_item_message, samples_to_array, translate_message
from .models import ControlItemCode, IqPacket, Message, MessageKind
from .transport import DatagramTransport, ReliableTransport

_STOP = object()    # dispatcher shutdown marker

class _PendingRequest:
    def __init__(self):
        self.event    = threading.Event()
        self.response = None

class NetSdrClient:
    """
    Drives a NetSDR receiver through a reliable command transport and a
    datagram transport for IQ data.

    Inbound command frames are queued by the transport callback and consumed
    by a dispatcher thread, which completes the single pending request or
    logs the frame as unsolicited. IQ datagrams are unpacked into IqPacket
    objects and delivered on ``sample_queue``.
    """

    def __init__(self, tcp_client: ReliableTransport, udp_client: DatagramTransport,
                 request_timeout: Optional[float] = DEFAULT_REQUEST_TIMEOUT,
                 sample_size: int = DEFAULT_SAMPLE_SIZE,
                 queue_size: int = DEFAULT_QUEUE_SIZE):
        if not 1 <= sample_size <= MAX_SAMPLE_BITS:
            raise ValueError(f"Sample size {sample_size} bits outside 1..{MAX_SAMPLE_BITS}")
        self._tcp           = tcp_client
        self._udp            = udp_client
        self.request_timeout = request_timeout
        self.sample_size     = sample_size
        self.iq_started      = False
        self.sample_queue    = queue.Queue(maxsize=queue_size)
        self.packet_count    = 0
        self.drop_count      = 0
        self.missed_count    = 0
        self._last_seq       = None

        self._pending: Optional[_PendingRequest] = None
        self._pending_lock = threading.Lock()
        self._request_lock = threading.Lock()   # one correlated request at a time

        self._inbox: queue.Queue = queue.Queue()
        self._dispatcher = None
        self._start_dispatcher()

        self._tcp.set_message_callback(self._inbox.put)
        self._udp.set_message_callback(self._on_udp_message)

    @property
    def connected(self) -> bool:
        return self._tcp.connected

    # ---------- lifecycle ----------

    def connect(self):
        """Connect the command channel and send the receiver setup items."""
        if self._tcp.connected:
            return
        self._start_dispatcher()
        self._tcp.connect()
        if not self._tcp.connected:
            log.warning("Connect failed, receiver not configured")
            return

        sample_rate = DEFAULT_SAMPLE_RATE.to_bytes(5, "little")
        setup_msgs = [
            build_control_item_message(MessageKind.SET_CONTROL_ITEM,
                                       ControlItemCode.IQ_OUTPUT_SAMPLE_RATE, sample_rate),
            build_control_item_message(MessageKind.SET_CONTROL_ITEM,
                                       ControlItemCode.RF_FILTER, RF_FILTER_AUTO),
            build_control_item_message(MessageKind.SET_CONTROL_ITEM,
                                       ControlItemCode.AD_MODES, AD_MODES_DEFAULT),
        ]
        for msg in setup_msgs:
            self._tcp.send_message(msg)
        log.info("Receiver configured")

    def disconnect(self):
        self._tcp.disconnect()

    def close(self):
        """Disconnect, stop IQ listening and shut down the dispatcher thread."""
        self._udp.stop_listening()
        self.iq_started = False
        self._tcp.disconnect()
        dispatcher = self._dispatcher
        if dispatcher is not None and dispatcher.is_alive():
            self._inbox.put(_STOP)
            dispatcher.join(timeout=1.0)
        self._dispatcher = None

    # ---------- IQ streaming ----------

    def start_iq(self):
        if not self._tcp.connected:
            log.debug("start_iq ignored: no active connection")
            return
        msg = build_control_item_message(MessageKind.SET_CONTROL_ITEM,
                                         ControlItemCode.RECEIVER_STATE, RECEIVER_STATE_START)
        self._tcp.send_message(msg)
        self._last_seq = None
        self._udp.start_listening()
        self.iq_started = True
        log.info("IQ stream started")

    def stop_iq(self):
        if not self._tcp.connected:
            log.info("No active connection.")
            return
        msg = build_control_item_message(MessageKind.SET_CONTROL_ITEM,
                                         ControlItemCode.RECEIVER_STATE, RECEIVER_STATE_STOP)
        self._tcp.send_message(msg)
        self._udp.stop_listening()
        self.iq_started = False
        log.info("IQ stream stopped")

    def get_samples(self, timeout: float = 1.0) -> Optional[IqPacket]:
        """Block until a packet arrives or timeout. Returns IqPacket or None."""
        try:
            return self.sample_queue.get(timeout=timeout)
        except queue.Empty:
            return None

    # ---------- control items ----------

    def change_frequency(self, hz: int, channel: int) -> Optional[bytes]:
        """
        Tune ``channel`` to ``hz``.
        Returns the reply body (the raw reply if it does not decode), or
        None when there is no connection.
        """
        if not 0 <= hz <= MAX_FREQUENCY_HZ:
            raise ValueError(f"Frequency {hz} Hz outside 0..{MAX_FREQUENCY_HZ}")
        if not 0 <= channel <= 0xFF:
            raise ValueError(f"Channel {channel} outside 0..255")

        args = bytes([channel]) + hz.to_bytes(5, "little")
        msg = build_control_item_message(MessageKind.SET_CONTROL_ITEM,
                                         ControlItemCode.RECEIVER_FREQUENCY, args)
        response = self._send_tcp_request(msg)
        if response is None:
            return None
        reply = translate_message(response)
        if reply is None:
            log.warning(f"Frequency change reply did not decode: {response.hex(' ')}")
            return response
        return reply.body

    def set_control_item(self, item_code: ControlItemCode, parameters: bytes) -> Optional[Message]:
        msg = build_control_item_message(MessageKind.SET_CONTROL_ITEM, item_code, parameters)
        return self._request_message(msg)

    def request_control_item(self, item_code: ControlItemCode,
                             parameters: bytes = b"") -> Optional[Message]:
        """Ask the receiver for the current value of a control item."""
        msg = build_control_item_message(MessageKind.CURRENT_CONTROL_ITEM, item_code, parameters)
        return self._request_message(msg)

    def _request_message(self, msg: bytes) -> Optional[Message]:
        response = self._send_tcp_request(msg)
        if response is None:
            return None
        reply = translate_message(response)
        if reply is None:
            log.warning(f"Reply did not decode: {response.hex(' ')}")
        return reply

    def _send_tcp_request(self, msg: bytes) -> Optional[bytes]:
        """
        Send a frame and wait for the next inbound frame as its reply.
        Returns None without sending when not connected.
        Raises RuntimeError on timeout; send errors propagate.
        """
        if not self._tcp.connected:
            log.info("No active connection.")
            return None

        with self._request_lock:
            # connection may have dropped while waiting behind another request
            if not self._tcp.connected:
                log.info("No active connection.")
                return None
            pending = _PendingRequest()
            with self._pending_lock:
                self._pending = pending
            try:
                self._tcp.send_message(msg)
                if not pending.event.wait(timeout=self.request_timeout):
                    raise RuntimeError(f"Request timeout: {msg.hex(' ')}")
            finally:
                with self._pending_lock:
                    if self._pending is pending:
                        self._pending = None
        return pending.response

    # ---------- inbound ----------

    def _start_dispatcher(self):
        if self._dispatcher is not None and self._dispatcher.is_alive():
            return
        self._dispatcher = threading.Thread(target=self._dispatch_loop,
                                            name="netsdr-dispatch", daemon=True)
        self._dispatcher.start()

    def _dispatch_loop(self):
        while True:
            frame = self._inbox.get()
            if frame is _STOP:
                break
            try:
                self._handle_tcp_message(frame)
            except Exception as e:
                log.error(f"Failed to handle TCP message: {e}")

    def _handle_tcp_message(self, frame: bytes):
        log.debug(f"Response received: {frame.hex(' ')}")
        with self._pending_lock:
            pending, self._pending = self._pending, None
        if pending is not None:
            pending.response = frame
            pending.event.set()
            return
        self._handle_unsolicited(frame)

    def _handle_unsolicited(self, frame: bytes):
        message = translate_message(frame)
        if message is None:
            log.warning(f"Unsolicited message could not be decoded: {frame.hex(' ')}")
            return

        code = message.item_code.name if message.item_code is not None else None
        log.info(f"Unsolicited message - Type: {message.kind.name}, Code: {code}, "
                 f"Sequence: {message.sequence}")
        if message.kind == MessageKind.ACK:
            log.info(f"Acknowledgment received: {code}")
        elif message.kind.is_data_item:
            log.info(f"Data item update: {message.body.hex(' ')}")
        elif message.kind == MessageKind.CURRENT_CONTROL_ITEM:
            log.info(f"Current control item: {code} = {message.body.hex(' ')}")
        else:
            log.info(f"Other unsolicited message type: {message.kind.name}")

    def _on_udp_message(self, data: bytes):
        message = translate_message(data)
        if message is None or not message.kind.is_data_item:
            log.debug(f"Ignoring undecodable datagram ({len(data)} bytes)")
            return

        pkt = IqPacket(
            kind=message.kind,
            sequence=message.sequence,
            sample_size=self.sample_size,
            samples=samples_to_array(self.sample_size, message.body),
        )
        self.packet_count += 1

        # Sequence counter skips 0 when it wraps
        if self._last_seq is not None:
            expected = (self._last_seq + 1) & 0xFFFF or 1
            if pkt.sequence != expected:
                missed = (pkt.sequence - expected) & 0xFFFF
                self.missed_count += missed
                log.warning(f"Sequence gap: expected {expected}, got {pkt.sequence} "
                            f"({missed} packets missed)")
        self._last_seq = pkt.sequence

        try:
            self.sample_queue.put_nowait(pkt)
        except queue.Full:
            self.drop_count += 1
            log.warning(f"IQ queue full, dropping packet "
                        f"(total drops: {self.drop_count})")
