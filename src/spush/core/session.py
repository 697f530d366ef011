"""
Dump session orchestration.

Sequences handshake → primary region → vector region → final exchange on a
single transport, and guarantees the transport is closed exactly once
whatever happens.
"""

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import BinaryIO, Callable, Dict, Optional

from spush.protocol.dump_protocol import (
    DesyncError,
    DumpCancelled,
    HandshakeNegotiator,
    NegotiatedState,
    ProgressCallback,
    RegionDescriptor,
    RegionTransferEngine,
    VECTOR_REGION_LENGTH,
    finalize,
)
from .config import DumpConfig

logger = logging.getLogger(__name__)

PRIMARY_REGION = "RAM"
VECTOR_REGION = "IRQ/FIQ vectors"


class SessionState(Enum):
    START = "start"
    HANDSHAKING = "handshaking"
    TRANSFERRING_PRIMARY = "transferring_primary"
    TRANSFERRING_VECTORS = "transferring_vectors"
    FINALIZING = "finalizing"
    DONE = "done"
    ABORTED = "aborted"
    FAILED = "failed"


@dataclass
class SessionReport:
    """Outcome of a completed session."""
    negotiated: NegotiatedState
    bytes_written: Dict[str, int] = field(default_factory=dict)
    state: SessionState = SessionState.DONE


class DumpSession:
    """
    One end-to-end dump over an exclusively owned transport.

    The transport must provide open(), close(), set_baudrate(),
    send_raw() and recv_exact(). The session opens it on run() and closes
    it before returning or raising.

    Example:
        transport = SerialTransport(config.device, timeout=config.timeout)
        with open("ram.bin", "wb") as ram, open("vec.bin", "wb") as vec:
            report = DumpSession(config, transport, ram, vec).run()
    """

    def __init__(
        self,
        config: DumpConfig,
        transport,
        primary_sink: BinaryIO,
        vector_sink: BinaryIO,
        progress_cb: Optional[Callable[[str, int, int], None]] = None,
        should_cancel: Optional[Callable[[], bool]] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.config = config
        self.transport = transport
        self.primary_sink = primary_sink
        self.vector_sink = vector_sink
        self.progress_cb = progress_cb
        self.should_cancel = should_cancel
        self.sleep = sleep
        self.state = SessionState.START
        self.negotiated: Optional[NegotiatedState] = None
        self.bytes_written: Dict[str, int] = {}
        self._engine: Optional[RegionTransferEngine] = None

    def _region_progress(self, name: str) -> Optional[ProgressCallback]:
        if self.progress_cb is None:
            return None

        def report(written: int, total: int) -> None:
            self.progress_cb(name, written, total)

        return report

    def _transfer(self, region: RegionDescriptor) -> None:
        self._engine = RegionTransferEngine(
            self.transport,
            block_delay_us=self.config.block_delay_us,
            verbose=self.config.verbose,
            progress_cb=self._region_progress(region.name),
            should_cancel=self.should_cancel,
            sleep=self.sleep,
        )
        try:
            self._engine.transfer(region)
        finally:
            self.bytes_written[region.name] = self._engine.written

    def _run_steps(self) -> None:
        self.state = SessionState.HANDSHAKING
        self.negotiated = HandshakeNegotiator(self.transport).run(
            self.config.baud_selector
        )

        self.state = SessionState.TRANSFERRING_PRIMARY
        self._transfer(RegionDescriptor(
            name=PRIMARY_REGION,
            length=self.negotiated.length,
            sink=self.primary_sink,
            start_address=self.negotiated.start_address,
        ))

        self.state = SessionState.TRANSFERRING_VECTORS
        self._transfer(RegionDescriptor(
            name=VECTOR_REGION,
            length=VECTOR_REGION_LENGTH,
            sink=self.vector_sink,
        ))

        self.state = SessionState.FINALIZING
        finalize(self.transport)
        self.state = SessionState.DONE

    def run(self) -> SessionReport:
        """
        Execute the session.

        Returns:
            SessionReport for a completed dump

        Raises:
            TransportError: Port could not be opened or the line failed
            ProtocolMismatch: Device did not acknowledge the baud selector
            DesyncError: Device rejected a checksum
            ProtocolViolation: Device sent an unexpected byte
            DumpCancelled: should_cancel() asked to stop between batches
        """
        if self.state is not SessionState.START:
            raise RuntimeError("DumpSession.run() may only be called once")

        logger.info(f"Opening serial device {self.config.device}...")
        try:
            self.transport.open()
        except Exception:
            self.state = SessionState.FAILED
            raise

        try:
            self._run_steps()
        except (DesyncError, DumpCancelled):
            self.state = SessionState.ABORTED
            raise
        except Exception:
            self.state = SessionState.FAILED
            raise
        finally:
            self.transport.close()

        return SessionReport(
            negotiated=self.negotiated,
            bytes_written=dict(self.bytes_written),
            state=self.state,
        )
