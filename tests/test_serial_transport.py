"""Tests for the pyserial-backed transport."""

from unittest.mock import MagicMock

import pytest
import serial

from spush.protocol import serial_transport
from spush.protocol.serial_transport import (
    SerialTransport,
    TransportError,
    TransportTimeout,
)


@pytest.fixture
def mock_serial(monkeypatch):
    port = MagicMock()
    port.is_open = True
    factory = MagicMock(return_value=port)
    monkeypatch.setattr(serial_transport.serial, "Serial", factory)
    return factory, port


class TestOpenClose:
    """Port lifecycle."""

    def test_open_configures_raw_port(self, mock_serial):
        factory, port = mock_serial

        transport = SerialTransport("/dev/ttyUSB0")
        transport.open()

        kwargs = factory.call_args.kwargs
        assert kwargs["port"] == "/dev/ttyUSB0"
        assert kwargs["baudrate"] == 115200
        assert kwargs["timeout"] is None
        assert kwargs["rtscts"] is False
        port.reset_input_buffer.assert_called_once()

    def test_open_failure_keeps_errno(self, monkeypatch):
        def boom(**kwargs):
            raise serial.SerialException(13, "could not open port /dev/ttyUSB0: Permission denied")

        monkeypatch.setattr(serial_transport.serial, "Serial", boom)

        with pytest.raises(TransportError) as excinfo:
            SerialTransport("/dev/ttyUSB0").open()
        assert excinfo.value.errno == 13

    def test_context_manager_closes(self, mock_serial):
        _, port = mock_serial

        with SerialTransport("/dev/ttyUSB0"):
            pass

        port.close.assert_called_once()

    def test_operations_require_open_port(self):
        transport = SerialTransport("/dev/ttyUSB0")
        with pytest.raises(TransportError):
            transport.send_raw(b"\xAB")
        with pytest.raises(TransportError):
            transport.recv_exact(1)
        with pytest.raises(TransportError):
            transport.set_baudrate(921600)


class TestIO:
    """Reads, writes and rate switching."""

    def test_recv_exact_joins_partial_reads(self, mock_serial):
        _, port = mock_serial
        port.read.side_effect = [b"\x01\x02", b"\x03", b"\x04\x05"]

        transport = SerialTransport("/dev/ttyUSB0")
        transport.open()

        assert transport.recv_exact(5) == b"\x01\x02\x03\x04\x05"
        assert [c.args[0] for c in port.read.call_args_list] == [5, 3, 2]

    def test_recv_exact_timeout(self, mock_serial):
        _, port = mock_serial
        port.read.side_effect = [b"\x01", b""]

        transport = SerialTransport("/dev/ttyUSB0", timeout=0.5)
        transport.open()

        with pytest.raises(TransportTimeout):
            transport.recv_exact(5)

    def test_read_error_wrapped(self, mock_serial):
        _, port = mock_serial
        port.read.side_effect = serial.SerialException("device disconnected")

        transport = SerialTransport("/dev/ttyUSB0")
        transport.open()

        with pytest.raises(TransportError, match="Read error"):
            transport.recv_exact(1)

    def test_send_raw(self, mock_serial):
        _, port = mock_serial
        port.write.return_value = 1

        transport = SerialTransport("/dev/ttyUSB0")
        transport.open()
        transport.send_raw(b"\xAB")

        port.write.assert_called_once_with(b"\xAB")

    def test_short_write(self, mock_serial):
        _, port = mock_serial
        port.write.return_value = 0

        transport = SerialTransport("/dev/ttyUSB0")
        transport.open()

        with pytest.raises(TransportError, match="Incomplete write"):
            transport.send_raw(b"\xAB")

    def test_set_baudrate(self, mock_serial):
        _, port = mock_serial

        transport = SerialTransport("/dev/ttyUSB0")
        transport.open()
        transport.set_baudrate(921600)

        assert port.baudrate == 921600
        assert transport.baudrate == 921600
