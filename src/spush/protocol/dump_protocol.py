"""
Download-Mode Dump Protocol

Handshake and block transfer engine for retrieving a memory image from a
device waiting in its bootloader download mode.

Protocol sequence:
1. Send baud selector (0xAB-0xAE) → expect 0x11
2. Switch local rate, send 0xAB → device replies with 1 byte (ignored)
3. Receive error code (u32 LE) + version (15 bytes) → send checksum → status
4. Receive start address (u32 LE) → send checksum → status
5. Receive region length (u32 LE) → send checksum → status
6. Drain primary region in batches of up to 1600 RLE frames,
   each batch acknowledged with a checksum → status
7. Drain the 8 KiB vector region the same way
8. Receive one final frame → send checksum → status, device restarts

Status bytes: 'w' accepted, 'D' checksum rejected (desync). Anything else
means framing has been lost; the protocol has no way to resynchronize.
"""

import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import BinaryIO, Callable, Dict, Optional, Tuple

from .frames import (
    FRAME_SIZE,
    SCALAR_SIZE,
    WORD_SIZE,
    checksum,
    parse_frame,
    unpack_scalar,
)
from .serial_transport import DumpError

logger = logging.getLogger(__name__)

# Handshake constants
READY_BYTE = 0x11
RATE_ACK_BYTE = 0xAB
VERSION_LENGTH = 15

# Baud selector -> line rate
BAUD_SELECTORS: Dict[int, int] = {
    0xAB: 115200,
    0xAC: 230400,
    0xAD: 460800,
    0xAE: 921600,
}
DEFAULT_BAUD_SELECTOR = 0xAB

# Status replies
STATUS_OK = b"w"
STATUS_DESYNC = b"D"

# Transfer constants (device side buffer sizing)
BATCH_BYTES = 8000
FRAMES_PER_BATCH = BATCH_BYTES // FRAME_SIZE  # 1600
VECTOR_REGION_LENGTH = 0x2000

# Largest single sink write when expanding a terminal frame
FILL_CHUNK_BYTES = 64 * 1024

ProgressCallback = Callable[[int, int], None]


class ProtocolMismatch(DumpError):
    """Device did not acknowledge the baud selector (not ready or wrong port)"""

    def __init__(self, received: int):
        super().__init__(
            f"Wrong response to baud selector: 0x{received:02X} "
            f"(expected 0x{READY_BYTE:02X})"
        )
        self.received = received


class DesyncError(DumpError):
    """Device rejected a checksum ('D')"""

    def __init__(self, stage: str):
        super().__init__(f"Wrong checksum ({stage}): device reported desync")
        self.stage = stage


class ProtocolViolation(DumpError):
    """Unexpected byte where the protocol allows no alternative"""

    def __init__(self, stage: str, received: Optional[int] = None, detail: str = ""):
        if detail:
            message = f"Protocol violation ({stage}): {detail}"
        else:
            message = f"Wrong check status response ({stage}): 0x{received:02X}"
        super().__init__(message)
        self.stage = stage
        self.received = received


class DumpCancelled(DumpError):
    """Transfer stopped between batches at the caller's request"""
    pass


class StatusKind(Enum):
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    UNEXPECTED = "unexpected"


@dataclass(frozen=True)
class StatusReply:
    """Device answer to a submitted checksum."""
    kind: StatusKind
    raw: int

    @classmethod
    def from_byte(cls, value: bytes) -> "StatusReply":
        if value == STATUS_OK:
            kind = StatusKind.ACCEPTED
        elif value == STATUS_DESYNC:
            kind = StatusKind.REJECTED
        else:
            kind = StatusKind.UNEXPECTED
        return cls(kind=kind, raw=value[0])

    @property
    def accepted(self) -> bool:
        return self.kind is StatusKind.ACCEPTED

    def raise_for_status(self, stage: str) -> None:
        """
        Raise the matching error unless the checksum was accepted.

        Raises:
            DesyncError: Device answered 'D'
            ProtocolViolation: Device answered anything but 'w' or 'D'
        """
        if self.kind is StatusKind.REJECTED:
            raise DesyncError(stage)
        if self.kind is StatusKind.UNEXPECTED:
            raise ProtocolViolation(stage, self.raw)


def decode_version(raw: bytes) -> str:
    """Version string for display, cut at the first NUL."""
    return raw.split(b"\x00", 1)[0].decode("latin-1")


def submit_checksum(transport, value: int) -> StatusReply:
    """Send a one-byte checksum and wait for the device's status byte."""
    transport.send_raw(bytes([value & 0xFF]))
    return StatusReply.from_byte(transport.recv_exact(1))


@dataclass(frozen=True)
class NegotiatedState:
    """Parameters reported by the device during the handshake."""
    error_code: int
    version: bytes
    start_address: int
    length: int

    @property
    def version_name(self) -> str:
        return decode_version(self.version)


@dataclass
class RegionDescriptor:
    """One memory span to drain into a sink."""
    name: str
    length: int
    sink: BinaryIO
    start_address: int = 0


class HandshakeNegotiator:
    """
    Drives the handshake that selects the line rate and retrieves the
    primary region's addressing parameters.
    """

    def __init__(self, transport):
        self.transport = transport

    def _confirm_scalar(self, value_bytes: bytes, stage: str) -> None:
        submit_checksum(self.transport, checksum(value_bytes)).raise_for_status(stage)

    def run(self, baud_selector: int = DEFAULT_BAUD_SELECTOR) -> NegotiatedState:
        """
        Perform the full handshake.

        Args:
            baud_selector: One of BAUD_SELECTORS

        Returns:
            NegotiatedState with error code, version, start address, length

        Raises:
            ValueError: Unknown baud selector
            ProtocolMismatch: Device did not answer the selector with 0x11
            DesyncError: Device rejected one of our checksums
            ProtocolViolation: Device sent an unexpected status byte
        """
        if baud_selector not in BAUD_SELECTORS:
            raise ValueError(f"Unknown baud selector: 0x{baud_selector:02X}")
        baudrate = BAUD_SELECTORS[baud_selector]

        logger.info("Changing baud rate...")
        self.transport.send_raw(bytes([baud_selector]))
        ready = self.transport.recv_exact(1)[0]
        if ready != READY_BYTE:
            raise ProtocolMismatch(ready)

        self.transport.set_baudrate(baudrate)
        self.transport.send_raw(bytes([RATE_ACK_BYTE]))
        reply = self.transport.recv_exact(1)
        logger.debug(f"Rate switch reply: 0x{reply[0]:02X}")

        # Error code and version name share one checksum
        error_raw = self.transport.recv_exact(SCALAR_SIZE)
        version = self.transport.recv_exact(VERSION_LENGTH)
        running = checksum(error_raw)
        running = checksum(version, initial=running)
        submit_checksum(self.transport, running).raise_for_status("version name")

        error_code = unpack_scalar(error_raw)
        logger.info(f"Version name: {decode_version(version)}")
        logger.info(f"Error code: 0x{error_code:08X}")

        address_raw = self.transport.recv_exact(SCALAR_SIZE)
        self._confirm_scalar(address_raw, "read address")
        start_address = unpack_scalar(address_raw)
        logger.info(f"Read address: 0x{start_address:08X}")

        length_raw = self.transport.recv_exact(SCALAR_SIZE)
        self._confirm_scalar(length_raw, "read length")
        length = unpack_scalar(length_raw)
        logger.info(f"Read length: 0x{length:08X}")

        return NegotiatedState(
            error_code=error_code,
            version=version,
            start_address=start_address,
            length=length,
        )


class RegionTransferEngine:
    """
    Drains one region at a time from the device.

    Frames are run-length encoded 4-byte words. Up to FRAMES_PER_BATCH
    frames are sent before the device waits for a checksum of every raw
    frame byte in the batch.

    Attributes:
        written: Bytes of the current region confirmed and written to its sink
    """

    def __init__(
        self,
        transport,
        block_delay_us: int = 0,
        verbose: bool = False,
        progress_cb: Optional[ProgressCallback] = None,
        should_cancel: Optional[Callable[[], bool]] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.transport = transport
        self.block_delay_us = block_delay_us
        self.verbose = verbose
        self.progress_cb = progress_cb
        self.should_cancel = should_cancel
        self.sleep = sleep
        self.written = 0

    def _read_batch(
        self, region: RegionDescriptor
    ) -> Tuple[int, bytearray, Optional[Tuple[bytes, int]]]:
        """
        Consume one batch of frames.

        A terminal frame is not expanded here; it is returned as
        ``(payload, length)`` so the fill can be streamed after the
        device accepts the batch.

        Returns:
            Tuple of (batch checksum, decoded bytes, terminal fill or None)
        """
        acc = 0
        decoded = bytearray()
        fill = None
        for _ in range(FRAMES_PER_BATCH):
            raw = self.transport.recv_exact(FRAME_SIZE)
            acc = checksum(raw, initial=acc)
            frame = parse_frame(raw)
            offset = self.written + len(decoded)

            if frame.is_terminal:
                remaining = region.length - offset
                if remaining > 0:
                    fill = (frame.payload, remaining)
                break

            if offset + frame.repeat * WORD_SIZE > region.length:
                raise ProtocolViolation(
                    region.name,
                    detail=(
                        f"frame repeats {frame.repeat} words at offset "
                        f"0x{offset:X}, past region length 0x{region.length:X}"
                    ),
                )
            decoded += frame.payload * frame.repeat
        return acc, decoded, fill

    def _write_fill(self, sink: BinaryIO, payload: bytes, length: int) -> None:
        """Write ``length`` bytes of repeated payload, cutting the last word if needed."""
        chunk = payload * (FILL_CHUNK_BYTES // WORD_SIZE)
        while length > 0:
            part = chunk if length >= len(chunk) else chunk[:length]
            sink.write(part)
            self.written += len(part)
            length -= len(part)

    def transfer(self, region: RegionDescriptor) -> int:
        """
        Drain ``region.length`` bytes into ``region.sink``.

        Returns:
            Number of bytes written (equals region.length on success)

        Raises:
            DesyncError: Device rejected a batch checksum
            ProtocolViolation: Unexpected status byte or impossible frame
            DumpCancelled: should_cancel() returned True between batches
        """
        self.written = 0
        target = region.length
        logger.info(f"Dumping {region.name} ({target} bytes)...")

        while True:
            batch_address = region.start_address + self.written
            acc, decoded, fill = self._read_batch(region)
            submit_checksum(self.transport, acc).raise_for_status(region.name)

            # Only batches the device confirmed reach the sink
            if decoded:
                region.sink.write(decoded)
                self.written += len(decoded)
            if fill:
                self._write_fill(region.sink, *fill)

            pct = self.written * 100 // target if target else 100
            logger.log(
                logging.INFO if self.verbose else logging.DEBUG,
                f"--> 0x{batch_address:08X} OK ({pct}%)",
            )
            if self.progress_cb:
                self.progress_cb(self.written, target)

            if self.block_delay_us > 0:
                self.sleep(self.block_delay_us / 1_000_000)

            if self.written >= target:
                break

            if self.should_cancel and self.should_cancel():
                raise DumpCancelled(
                    f"Cancelled during {region.name} at {self.written}/{target} bytes"
                )

        return self.written


def finalize(transport) -> None:
    """
    Acknowledge the trailing frame sent after the vector region.

    Raises:
        DesyncError: Device rejected the checksum
        ProtocolViolation: Unexpected status byte
    """
    raw = transport.recv_exact(FRAME_SIZE)
    submit_checksum(transport, checksum(raw)).raise_for_status("final")
    logger.info("Done. Device will restart now.")
