"""
spush - Serial RAM dumper for devices in bootloader download mode

Negotiates the line rate, then pulls the RAM region and the IRQ/FIQ vector
table over the device's run-length encoded block transfer protocol.
"""

__version__ = "0.1.0"

from spush.protocol import SerialTransport, HandshakeNegotiator, RegionTransferEngine
from spush.core import DumpConfig, DumpSession, dump_memory

__all__ = [
    "SerialTransport",
    "HandshakeNegotiator",
    "RegionTransferEngine",
    "DumpConfig",
    "DumpSession",
    "dump_memory",
    "__version__",
]
