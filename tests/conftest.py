"""Shared fixtures: a scripted device on the other end of the wire."""

from typing import Iterable, List, Sequence, Tuple

import pytest

from spush.protocol.frames import build_frame, pack_scalar
from spush.protocol.serial_transport import TransportTimeout


class ScriptedTransport:
    """
    In-memory transport that replays pre-recorded device bytes.

    Host writes are recorded in ``sent``; rate switches in ``baudrates``.
    Reading past the end of the script behaves like a serial timeout.
    """

    def __init__(self, incoming: bytes = b""):
        self.incoming = bytearray(incoming)
        self.sent = bytearray()
        self.baudrates: List[int] = []
        self.open_calls = 0
        self.close_calls = 0

    def feed(self, data: bytes) -> None:
        self.incoming.extend(data)

    @property
    def remaining(self) -> int:
        return len(self.incoming)

    def open(self) -> None:
        self.open_calls += 1

    def close(self) -> None:
        self.close_calls += 1

    def set_baudrate(self, baudrate: int) -> None:
        self.baudrates.append(baudrate)

    def send_raw(self, data: bytes) -> None:
        self.sent.extend(data)

    def recv_exact(self, length: int) -> bytes:
        if len(self.incoming) < length:
            raise TransportTimeout(
                f"Device did not respond (timeout after {len(self.incoming)}/{length} bytes)"
            )
        data = bytes(self.incoming[:length])
        del self.incoming[:length]
        return data


TEST_VERSION = b"TESTDEV" + b"\x00" * 8


def handshake_script(
    error_code: int = 0,
    version: bytes = TEST_VERSION,
    address: int = 0x30000000,
    length: int = 8,
    statuses: Sequence[bytes] = (b"w", b"w", b"w"),
    ready: bytes = b"\x11",
    rate_reply: bytes = b"\x00",
) -> bytes:
    """Bytes a device sends during a handshake."""
    return (
        ready
        + rate_reply
        + pack_scalar(error_code)
        + version
        + statuses[0]
        + pack_scalar(address)
        + statuses[1]
        + pack_scalar(length)
        + statuses[2]
    )


def batch_script(frames: Iterable[Tuple[bytes, int]], status: bytes = b"w") -> bytes:
    """Bytes of one batch of frames followed by the status reply."""
    return b"".join(build_frame(p, r) for p, r in frames) + status


def frames_checksum(frames: Iterable[Tuple[bytes, int]]) -> int:
    return sum(b for p, r in frames for b in build_frame(p, r)) % 256


ZERO_WORD = b"\x00\x00\x00\x00"
FINAL_FRAME = b"\x12\x34\x56\x78\x00"


@pytest.fixture
def transport():
    return ScriptedTransport()
