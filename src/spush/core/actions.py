"""
Core workflow actions for spush.

This module exposes the dump workflow as a function the CLI (or a script)
can call. It owns the output files, captures log lines, and turns every
failure into an OperationResult with a process exit code.
"""

import hashlib
import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Optional

from spush.protocol import (
    DesyncError,
    DumpCancelled,
    ProtocolMismatch,
    ProtocolViolation,
    SerialTransport,
    TransportError,
    TransportTimeout,
)
from .config import DumpConfig
from .results import OperationResult
from .session import PRIMARY_REGION, VECTOR_REGION, DumpSession

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_CANCELLED = 130


class _ListLogHandler(logging.Handler):
    """Capture log records into a list of formatted strings."""

    def __init__(self, level: int = logging.INFO) -> None:
        super().__init__(level)
        self.records = []
        self.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))

    def emit(self, record: logging.LogRecord) -> None:
        self.records.append(self.format(record))


@contextmanager
def _capture_logs(logger_name: str = "spush"):
    """Capture logs for core operations into a list."""
    target_logger = logging.getLogger(logger_name)
    handler = _ListLogHandler()
    previous_level = target_logger.level
    if previous_level in (logging.NOTSET, logging.WARNING, logging.ERROR, logging.CRITICAL):
        target_logger.setLevel(logging.INFO)
    target_logger.addHandler(handler)
    try:
        yield handler.records
    finally:
        target_logger.removeHandler(handler)
        target_logger.setLevel(previous_level)


def _sha256_file(path: Path) -> str:
    digest = hashlib.sha256()
    with path.open("rb") as fh:
        for block in iter(lambda: fh.read(65536), b""):
            digest.update(block)
    return digest.hexdigest()


def _classify(exc: Exception):
    """Map an exception to (error_kind, exit_code, message)."""
    if isinstance(exc, DesyncError):
        return "desync", EXIT_FAILURE, str(exc)
    if isinstance(exc, ProtocolMismatch):
        return "mismatch", EXIT_FAILURE, str(exc)
    if isinstance(exc, ProtocolViolation):
        return "violation", EXIT_FAILURE, str(exc)
    if isinstance(exc, DumpCancelled):
        return "cancelled", EXIT_CANCELLED, str(exc)
    if isinstance(exc, TransportTimeout):
        return "timeout", EXIT_FAILURE, str(exc)
    if isinstance(exc, TransportError):
        return "transport", exc.errno or EXIT_FAILURE, str(exc)
    return "unknown", EXIT_FAILURE, str(exc)


def dump_memory(
    config: DumpConfig,
    transport=None,
    progress_cb: Optional[Callable[[str, int, int], None]] = None,
    should_cancel: Optional[Callable[[], bool]] = None,
) -> OperationResult:
    """
    Dump the device's RAM and IRQ/FIQ vectors to the configured files.

    Args:
        config: Validated session configuration
        transport: Transport to use (default: SerialTransport on config.device)
        progress_cb: Optional progress callback(region_name, bytes_written, total)
        should_cancel: Optional callable polled between batches

    Returns:
        OperationResult with:
            - ok: True if both regions and the final exchange succeeded
            - metadata["negotiated"]: NegotiatedState (once the handshake passed)
            - metadata["bytes_written"]: bytes per region
            - metadata["state"]: final session state name
            - hashes: sha256 per output file (also for partial output)
            - error_kind / exit_code on failure
    """
    with _capture_logs() as logs:
        if transport is None:
            transport = SerialTransport(config.device, timeout=config.timeout)

        result = OperationResult.success(
            operation="dump_memory",
            device=config.device,
        )
        result.logs = logs

        try:
            ram_fh = config.ram_output.open("wb")
        except OSError as e:
            return OperationResult.failure(
                "dump_memory", f"{config.ram_output}: {e}",
                kind="output", device=config.device, logs=logs,
            )
        try:
            vec_fh = config.vectors_output.open("wb")
        except OSError as e:
            ram_fh.close()
            return OperationResult.failure(
                "dump_memory", f"{config.vectors_output}: {e}",
                kind="output", device=config.device, logs=logs,
            )

        session = DumpSession(
            config,
            transport,
            ram_fh,
            vec_fh,
            progress_cb=progress_cb,
            should_cancel=should_cancel,
        )
        try:
            session.run()
        except Exception as e:
            kind, exit_code, message = _classify(e)
            if kind == "unknown":
                logger.exception("dump_memory failed")
            result.add_error(message, kind=kind, exit_code=exit_code)
        finally:
            ram_fh.close()
            vec_fh.close()

        negotiated = session.negotiated
        if negotiated is not None:
            result.region = f"0x{negotiated.start_address:08X}+0x{negotiated.length:X}"
            if negotiated.error_code:
                result.add_warning(
                    f"Device reported error code 0x{negotiated.error_code:08X}"
                )
        if not result.ok and any(session.bytes_written.values()):
            result.add_warning("Output files hold partial data")

        result.bytes_len = sum(session.bytes_written.values())
        result.metadata["negotiated"] = negotiated
        result.metadata["bytes_written"] = dict(session.bytes_written)
        result.metadata["state"] = session.state.value
        result.metadata["outputs"] = {
            PRIMARY_REGION: str(config.ram_output),
            VECTOR_REGION: str(config.vectors_output),
        }
        result.hashes[PRIMARY_REGION] = _sha256_file(config.ram_output)
        result.hashes[VECTOR_REGION] = _sha256_file(config.vectors_output)

        return result
