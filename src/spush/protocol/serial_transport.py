"""
Serial Transport Layer

Handles low-level serial communication with a device sitting in its
download mode.

This module provides:
- Serial port initialization and configuration (raw 8N1, no flow control)
- Baud rate switching after the handshake selector is acknowledged
- Exact-length reads that tolerate partial reads from the driver
- Raw writes with wire-level debug logging
"""

import logging
from typing import Optional

try:
    import serial
except ImportError:
    raise ImportError("PySerial required: pip install pyserial")

logger = logging.getLogger(__name__)

DEFAULT_BAUDRATE = 115200


class DumpError(Exception):
    """Base exception for all dump failures"""
    pass


class TransportError(DumpError):
    """
    Underlying serial channel failure (open, read, write or timeout).

    Attributes:
        errno: OS error number reported by the driver, if any
    """

    def __init__(self, message: str, errno: Optional[int] = None):
        super().__init__(message)
        self.errno = errno


class TransportTimeout(TransportError):
    """Device stopped sending before a read was satisfied"""
    pass


class SerialTransport:
    """
    Serial transport for the dump protocol.

    Handles:
    - Serial port management
    - Rate switching
    - Exact-length reads
    - Timeout and error handling

    Example:
        with SerialTransport(port="/dev/ttyUSB0") as transport:
            transport.send_raw(b"\\xAB")
            reply = transport.recv_exact(1)
            transport.set_baudrate(921600)
    """

    def __init__(
        self,
        port: str,
        baudrate: int = DEFAULT_BAUDRATE,
        timeout: Optional[float] = None,
    ):
        """
        Initialize transport layer.

        Args:
            port: Serial port (e.g., "/dev/ttyUSB0", "COM3")
            baudrate: Initial baud rate (default 115200)
            timeout: Read timeout in seconds, None blocks until data arrives
        """
        self.port = port
        self.baudrate = baudrate
        self.timeout = timeout
        self.ser: Optional[serial.Serial] = None

    def __enter__(self) -> "SerialTransport":
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @property
    def is_open(self) -> bool:
        return bool(self.ser and self.ser.is_open)

    def open(self) -> None:
        """
        Open serial port and configure it for raw binary traffic.

        Raises:
            TransportError: If port cannot be opened
        """
        try:
            self.ser = serial.Serial(
                port=self.port,
                baudrate=self.baudrate,
                bytesize=serial.EIGHTBITS,
                parity=serial.PARITY_NONE,
                stopbits=serial.STOPBITS_ONE,
                timeout=self.timeout,
                xonxoff=False,
                rtscts=False,
            )

            # Drop anything the device sent before we were listening
            self.ser.reset_input_buffer()

            logger.debug(
                f"Opened {self.port} at {self.baudrate} bps "
                f"(timeout={self.timeout})"
            )
        except serial.SerialException as e:
            raise TransportError(
                f"Cannot open port {self.port}: {e}",
                errno=getattr(e, "errno", None),
            )

    def close(self) -> None:
        """Close serial port."""
        if self.ser and self.ser.is_open:
            self.ser.close()
            logger.debug(f"Closed {self.port}")

    def set_baudrate(self, baudrate: int) -> None:
        """
        Switch the local line rate.

        Raises:
            TransportError: If the port is closed or the driver rejects the rate
        """
        if not self.is_open:
            raise TransportError("Serial port not open")

        try:
            self.ser.baudrate = baudrate
            self.baudrate = baudrate
            logger.debug(f"Switched {self.port} to {baudrate} bps")
        except (serial.SerialException, ValueError) as e:
            raise TransportError(f"Cannot set baud rate {baudrate}: {e}")

    def send_raw(self, data: bytes) -> None:
        """
        Send raw bytes to the device.

        Args:
            data: Bytes to send

        Raises:
            TransportError: If write fails
        """
        if not self.is_open:
            raise TransportError("Serial port not open")

        try:
            written = self.ser.write(data)
            if written is not None and written != len(data):
                raise TransportError(
                    f"Incomplete write: sent {written}/{len(data)} bytes"
                )
            logger.debug(f">>> {data.hex().upper()}")
        except serial.SerialException as e:
            raise TransportError(f"Write error: {e}")

    def recv_exact(self, length: int) -> bytes:
        """
        Receive exactly ``length`` bytes from the device.

        Partial reads are expected on a serial line and are accumulated
        until the request is satisfied.

        Args:
            length: Number of bytes to receive

        Returns:
            Bytes received (always ``length`` bytes)

        Raises:
            TransportError: If read fails or times out
        """
        if not self.is_open:
            raise TransportError("Serial port not open")

        buf = bytearray()
        try:
            while len(buf) < length:
                chunk = self.ser.read(length - len(buf))
                if not chunk:
                    raise TransportTimeout(
                        f"Device did not respond (timeout after "
                        f"{len(buf)}/{length} bytes)"
                    )
                buf.extend(chunk)
        except serial.SerialException as e:
            raise TransportError(f"Read error: {e}")

        data = bytes(buf)
        logger.debug(f"<<< {data.hex().upper()}")
        return data
