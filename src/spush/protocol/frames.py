"""
Wire layouts for the download-mode dump protocol.

Two fixed binary layouts travel over the link:

- Handshake scalars: 4-byte little-endian unsigned integers (error code,
  start address, region length).
- Transfer frames: 5 bytes, 4 payload bytes followed by a repeat count.

    [ word0 | word1 | word2 | word3 | repeat ]

A repeat count of 0 marks the terminal frame of a region (the payload is
repeated until the region is full). Any other value means "this 4-byte word,
repeat times".

Every value the device sends is acknowledged with a one-byte checksum: the
sum of the raw bytes modulo 256.
"""

import struct
from dataclasses import dataclass
from typing import Iterable, Union

FRAME_SIZE = 5
WORD_SIZE = 4
SCALAR_SIZE = 4
MAX_REPEAT = 0xFF

_SCALAR = struct.Struct("<I")

BytesLike = Union[bytes, bytearray, memoryview]


def checksum(data: Iterable[int], initial: int = 0) -> int:
    """
    Calculate the protocol checksum.

    The checksum is the plain sum of all bytes reduced modulo 256. Passing
    the previous result as ``initial`` continues a running checksum across
    several buffers.

    Args:
        data: Bytes to sum
        initial: Running checksum to continue from (default 0)

    Returns:
        Checksum value (0-255)
    """
    return (initial + sum(data)) & 0xFF


def unpack_scalar(data: BytesLike) -> int:
    """Decode a 4-byte little-endian handshake scalar."""
    if len(data) != SCALAR_SIZE:
        raise ValueError(f"Scalar must be {SCALAR_SIZE} bytes, got {len(data)}")
    return _SCALAR.unpack(bytes(data))[0]


def pack_scalar(value: int) -> bytes:
    """Encode a handshake scalar as 4 little-endian bytes."""
    return _SCALAR.pack(value & 0xFFFFFFFF)


@dataclass(frozen=True)
class Frame:
    """One 5-byte transfer frame."""
    payload: bytes
    repeat: int

    @property
    def is_terminal(self) -> bool:
        """Terminal frames fill the rest of the region with their payload."""
        return self.repeat == 0

    def to_bytes(self) -> bytes:
        return self.payload + bytes([self.repeat])


def parse_frame(data: BytesLike) -> Frame:
    """
    Parse a raw 5-byte transfer frame.

    Raises:
        ValueError: If data is not exactly FRAME_SIZE bytes
    """
    if len(data) != FRAME_SIZE:
        raise ValueError(f"Frame must be {FRAME_SIZE} bytes, got {len(data)}")
    raw = bytes(data)
    return Frame(payload=raw[:WORD_SIZE], repeat=raw[WORD_SIZE])


def build_frame(payload: BytesLike, repeat: int) -> bytes:
    """
    Build a raw transfer frame.

    Args:
        payload: 4-byte memory word
        repeat: Repeat count (0 for the terminal frame, 1-255 otherwise)

    Returns:
        5 frame bytes
    """
    if len(payload) != WORD_SIZE:
        raise ValueError(f"Payload must be {WORD_SIZE} bytes, got {len(payload)}")
    if not 0 <= repeat <= MAX_REPEAT:
        raise ValueError(f"Repeat count out of range: {repeat}")
    return bytes(payload) + bytes([repeat])
