"""Device protocol layer - serial transport, wire codec and dump engine."""

from .serial_transport import (
    SerialTransport,
    DumpError,
    TransportError,
    TransportTimeout,
)
from .frames import (
    Frame,
    checksum,
    parse_frame,
    build_frame,
    pack_scalar,
    unpack_scalar,
    FRAME_SIZE,
)
from .dump_protocol import (
    HandshakeNegotiator,
    RegionTransferEngine,
    RegionDescriptor,
    NegotiatedState,
    StatusReply,
    StatusKind,
    submit_checksum,
    finalize,
    ProtocolMismatch,
    DesyncError,
    ProtocolViolation,
    DumpCancelled,
    BAUD_SELECTORS,
    DEFAULT_BAUD_SELECTOR,
    FRAMES_PER_BATCH,
    VECTOR_REGION_LENGTH,
)

__all__ = [
    # Transport
    "SerialTransport",
    "DumpError",
    "TransportError",
    "TransportTimeout",
    # Wire codec
    "Frame",
    "checksum",
    "parse_frame",
    "build_frame",
    "pack_scalar",
    "unpack_scalar",
    "FRAME_SIZE",
    # Dump protocol
    "HandshakeNegotiator",
    "RegionTransferEngine",
    "RegionDescriptor",
    "NegotiatedState",
    "StatusReply",
    "StatusKind",
    "submit_checksum",
    "finalize",
    "ProtocolMismatch",
    "DesyncError",
    "ProtocolViolation",
    "DumpCancelled",
    "BAUD_SELECTORS",
    "DEFAULT_BAUD_SELECTOR",
    "FRAMES_PER_BATCH",
    "VECTOR_REGION_LENGTH",
]
