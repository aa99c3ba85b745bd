"""UDP receiver for NetSDR IQ data item datagrams."""

import socket
import threading
from typing import Callable, Optional

from .common import NETSDR_UDP_PORT, log

RECV_POLL_INTERVAL = 0.2    # seconds between cancellation checks

class UdpClientWrapper:
    """
    Listens for UDP datagrams from the receiver and hands each one to the
    registered message callback. The listening loop runs in its own thread
    and is stopped through a cancellation event.
    """

    def __init__(self, port: int = NETSDR_UDP_PORT, host: str = ""):
        self.host        = host
        self.port        = port
        self.local_port  = None     # actual bound port while listening
        self._sock       = None
        self._cancel     = None     # threading.Event owned by the running loop
        self._thread     = None
        self._message_cb = None

    def __eq__(self, other):
        if not isinstance(other, UdpClientWrapper):
            return NotImplemented
        return (self.host, self.port) == (other.host, other.port)

    def __hash__(self):
        return hash((self.host, self.port))

    def __repr__(self):
        return f"UdpClientWrapper(host={self.host!r}, port={self.port})"

    @property
    def listening(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def set_message_callback(self, cb: Callable[[bytes], None]):
        self._message_cb = cb

    def start_listening(self):
        """Start the receive loop in a background thread, replacing any previous loop."""
        self.stop_listening()
        self.join()
        cancel = threading.Event()
        self._cancel = cancel
        self._thread = threading.Thread(target=self.listen, args=(cancel,),
                                        name="netsdr-udp", daemon=True)
        self._thread.start()

    def stop_listening(self):
        cancel = self._cancel
        if cancel is not None:
            cancel.set()
            log.info(f"Stopping UDP listener on port {self.port}")

    exit = stop_listening

    def join(self, timeout: Optional[float] = None):
        """Wait for the background loop to exit."""
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=timeout)
            if not thread.is_alive():
                self._thread = None

    def listen(self, cancel: Optional[threading.Event] = None):
        """
        Receive datagrams in the calling thread until ``cancel`` is set or a
        socket error occurs. The socket and cancel handle are released on
        every exit path.
        """
        if cancel is None:
            cancel = threading.Event()
            self._cancel = cancel

        log.info("Start listening for UDP messages...")
        sock = None
        try:
            sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
            self._sock = sock
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_RCVBUF, 4 * 1024 * 1024)
            sock.bind((self.host, self.port))
            sock.settimeout(RECV_POLL_INTERVAL)
            self.local_port = sock.getsockname()[1]
            log.info(f"UDP listener bound to port {self.local_port}")

            while not cancel.is_set():
                try:
                    data, addr = sock.recvfrom(65536)
                except socket.timeout:
                    continue
                log.debug(f"Received from {addr[0]}:{addr[1]} ({len(data)} bytes)")
                if self._message_cb:
                    try:
                        self._message_cb(data)
                    except Exception as e:
                        log.error(f"Error receiving message: {e}")
        except OSError as e:
            if not cancel.is_set():
                log.error(f"Error receiving message: {e}")
        finally:
            if sock is not None:
                sock.close()
            self._sock = None
            self.local_port = None
            if self._cancel is cancel:
                self._cancel = None
        log.info("Stopped listening for UDP messages")
