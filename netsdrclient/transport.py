"""
Transport contracts the protocol client is written against.

The client never opens sockets itself. It is handed one reliable (stream)
transport for commands and one datagram transport for IQ data, and only
subscribes to their per-message callbacks. TcpClientWrapper and
UdpClientWrapper are the socket-backed implementations; tests use
in-memory doubles.
"""

from typing import Callable, Protocol, runtime_checkable

MessageCallback = Callable[[bytes], None]


@runtime_checkable
class ReliableTransport(Protocol):
    """Ordered command channel delivering whole frames."""

    @property
    def connected(self) -> bool:
        ...

    def connect(self) -> None:
        ...

    def disconnect(self) -> None:
        ...

    def send_message(self, data: bytes) -> None:
        """Send one frame. Raises if the transport cannot send."""
        ...

    def set_message_callback(self, cb: MessageCallback) -> None:
        """Register the callback invoked once per inbound frame."""
        ...


@runtime_checkable
class DatagramTransport(Protocol):
    """Cancelable datagram receiver for the IQ stream."""

    def start_listening(self) -> None:
        """Start the receive loop in the background, replacing any previous one."""
        ...

    def stop_listening(self) -> None:
        """Request the receive loop to stop. Never raises."""
        ...

    def set_message_callback(self, cb: MessageCallback) -> None:
        """Register the callback invoked once per received datagram."""
        ...
