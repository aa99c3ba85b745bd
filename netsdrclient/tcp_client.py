"""NetSDR TCP command/control transport."""

import socket
import threading
from typing import Callable

from .common import log
from .messages import split_frames

class TcpClientWrapper:
    """
    Manages the TCP command/control connection to the receiver.
    Reassembles whole frames from the byte stream and hands each one
    to the registered message callback.
    """

    def __init__(self, host: str, port: int, connect_timeout: float = 5.0):
        self._host        = host
        self._port        = port
        self.connect_timeout = connect_timeout
        self._sock        = None
        self._send_lock   = threading.Lock()
        self._message_cb  = None
        self._running     = False
        self._recv_thread = None

    @property
    def connected(self) -> bool:
        return self._sock is not None and self._running

    def set_message_callback(self, cb: Callable[[bytes], None]):
        """Register callback for every frame received from the receiver."""
        self._message_cb = cb

    def connect(self):
        if self.connected:
            log.info(f"Already connected to {self._host}:{self._port}")
            return
        if self._sock is not None:
            self.disconnect()   # socket left behind by a peer close

        log.info(f"Connecting to {self._host}:{self._port}")
        try:
            sock = socket.create_connection((self._host, self._port),
                                            timeout=self.connect_timeout)
        except OSError as e:
            log.error(f"Failed to connect to {self._host}:{self._port}: {e}")
            return

        sock.settimeout(None)
        self._sock = sock
        self._running = True
        self._recv_thread = threading.Thread(target=self._recv_loop, args=(sock,),
                                             name="netsdr-tcp", daemon=True)
        self._recv_thread.start()
        log.info("TCP connected")

    def disconnect(self):
        self._running = False
        sock, self._sock = self._sock, None
        if sock is not None:
            try:
                sock.shutdown(socket.SHUT_RDWR)
            except OSError:
                pass
            sock.close()
            log.info("TCP disconnected")
        thread, self._recv_thread = self._recv_thread, None
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=1.0)

    close = disconnect

    def send_message(self, data: bytes):
        sock = self._sock
        if sock is None or not self._running:
            raise ConnectionError("Not connected to a NetSDR receiver")
        log.debug(f"TX: {bytes(data).hex(' ')}")
        with self._send_lock:
            sock.sendall(data)

    def _recv_loop(self, sock: socket.socket):
        buf = b""
        while self._running:
            try:
                chunk = sock.recv(4096)
            except OSError as e:
                if self._running:
                    log.error(f"TCP recv error: {e}")
                break
            if not chunk:
                if self._running:
                    log.warning("TCP connection closed by receiver")
                break
            buf += chunk
            try:
                frames, buf = split_frames(buf)
            except ValueError as e:
                log.error(f"Dropping {len(buf)} buffered bytes: {e}")
                buf = b""
                continue
            for frame in frames:
                self._dispatch(frame)
        self._running = False

    def _dispatch(self, frame: bytes):
        log.debug(f"RX: {frame.hex(' ')}")
        if self._message_cb:
            self._message_cb(frame)
