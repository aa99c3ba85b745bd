"""Command-line entrypoint: connect, tune, stream IQ for a while, report."""

import argparse
import logging
import time

from .client import NetSdrClient
from .common import NETSDR_TCP_PORT, NETSDR_UDP_PORT, log
from .models import NetSdrDevice
from .tcp_client import TcpClientWrapper
from .udp_client import UdpClientWrapper

def build_client(device: NetSdrDevice, **kwargs) -> NetSdrClient:
    tcp = TcpClientWrapper(device.host, device.tcp_port)
    udp = UdpClientWrapper(device.udp_port)
    return NetSdrClient(tcp, udp, **kwargs)

def drain_samples(client: NetSdrClient, secs: float, report_every: int = 50) -> int:
    """Consume IQ packets for ``secs`` seconds and return the number of samples seen."""
    t_end = time.time() + secs
    total_samples = 0
    seen = 0
    while time.time() < t_end:
        pkt = client.get_samples(timeout=min(0.5, max(t_end - time.time(), 0.0)))
        if pkt is None:
            continue
        seen += 1
        total_samples += len(pkt.samples)
        if seen % report_every == 0:
            log.info(f"Packets: {client.packet_count}  Samples: {total_samples}  "
                     f"Missed: {client.missed_count}  Last sequence: {pkt.sequence}")
    return total_samples

def main(argv=None):
    parser = argparse.ArgumentParser(description="NetSDR IQ test receiver")
    parser.add_argument("--host", default="127.0.0.1", help="Receiver IP")
    parser.add_argument("--tcp-port", default=NETSDR_TCP_PORT, type=int, help="Command port")
    parser.add_argument("--udp-port", default=NETSDR_UDP_PORT, type=int, help="IQ data port")
    parser.add_argument("--freq", default=None, type=int, help="Receiver frequency in Hz")
    parser.add_argument("--channel", default=0, type=int, help="Receiver channel")
    parser.add_argument("--secs", default=5, type=int, help="Seconds to stream")
    parser.add_argument("--log-level", default="INFO", help="Logging level")
    args = parser.parse_args(argv)

    logging.getLogger().setLevel(args.log_level.upper())

    device = NetSdrDevice(host=args.host, tcp_port=args.tcp_port, udp_port=args.udp_port)
    client = build_client(device)

    try:
        client.connect()
        if not client.connected:
            return 1

        if args.freq is not None:
            reply = client.change_frequency(args.freq, args.channel)
            log.info(f"Frequency set to {args.freq} Hz, reply: {reply!r}")

        client.start_iq()
        total_samples = drain_samples(client, args.secs)
        log.info(f"Done. {client.packet_count} packets, {total_samples} samples, "
                 f"{client.drop_count} drops, {client.missed_count} missed")

    except KeyboardInterrupt:
        log.info("Interrupted")
    finally:
        client.stop_iq()
        client.close()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
