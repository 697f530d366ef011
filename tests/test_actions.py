"""Tests for the dump_memory workflow and its result reporting."""

import hashlib

from spush.core.actions import EXIT_CANCELLED, dump_memory
from spush.core.config import DumpConfig
from spush.core.messages import WarningCode, result_to_warnings
from spush.core.session import PRIMARY_REGION, VECTOR_REGION
from spush.protocol.serial_transport import TransportError

from conftest import FINAL_FRAME, ScriptedTransport, ZERO_WORD, batch_script, handshake_script


def _config(tmp_path, **kwargs):
    return DumpConfig(
        device="/dev/ttyTEST",
        ram_output=tmp_path / "ram.bin",
        vectors_output=tmp_path / "vec.bin",
        **kwargs,
    )


def _script(error_code=0, primary_status=b"w"):
    return (
        handshake_script(error_code=error_code, length=8)
        + batch_script([(b"\xAA\xBB\xCC\xDD", 0)], status=primary_status)
        + batch_script([(ZERO_WORD, 0)])
        + FINAL_FRAME
        + b"w"
    )


class TestDumpMemory:
    """Files, hashes and exit codes."""

    def test_success_writes_both_files(self, tmp_path):
        config = _config(tmp_path)
        result = dump_memory(config, transport=ScriptedTransport(_script()))

        assert result.ok
        assert result.exit_code == 0
        ram = config.ram_output.read_bytes()
        vec = config.vectors_output.read_bytes()
        assert ram == bytes.fromhex("AABBCCDD AABBCCDD")
        assert vec == b"\x00" * 0x2000
        assert result.bytes_len == 8 + 0x2000
        assert result.region == "0x30000000+0x8"
        assert result.hashes[PRIMARY_REGION] == hashlib.sha256(ram).hexdigest()
        assert result.hashes[VECTOR_REGION] == hashlib.sha256(vec).hexdigest()
        assert result.metadata["state"] == "done"
        assert result.metadata["negotiated"].version_name == "TESTDEV"

    def test_logs_are_captured(self, tmp_path):
        result = dump_memory(_config(tmp_path), transport=ScriptedTransport(_script()))

        assert any("Read address: 0x30000000" in line for line in result.logs)
        assert any("Done" in line for line in result.logs)

    def test_nonzero_error_code_warns(self, tmp_path):
        result = dump_memory(
            _config(tmp_path), transport=ScriptedTransport(_script(error_code=0x5))
        )

        assert result.ok
        warnings = result_to_warnings(result)
        assert warnings[0].code is WarningCode.W_DEVICE_ERROR_CODE

    def test_desync_is_distinguished(self, tmp_path):
        config = _config(tmp_path)
        result = dump_memory(config, transport=ScriptedTransport(_script(primary_status=b"D")))

        assert not result.ok
        assert result.error_kind == "desync"
        assert result.exit_code == 1
        assert result.errors == ["Wrong checksum (RAM): device reported desync"]
        assert config.ram_output.read_bytes() == b""
        warnings = result_to_warnings(result)
        assert warnings[-1].code is WarningCode.W_CHECKSUM_REJECTED
        assert "retry" in warnings[-1].remediation

    def test_violation(self, tmp_path):
        script = handshake_script(statuses=(b"\x5A", b"w", b"w"))
        result = dump_memory(_config(tmp_path), transport=ScriptedTransport(script))

        assert result.error_kind == "violation"
        assert result.exit_code == 1
        assert result.metadata["negotiated"] is None
        assert result.metadata["state"] == "failed"

    def test_mismatch(self, tmp_path):
        result = dump_memory(
            _config(tmp_path), transport=ScriptedTransport(handshake_script(ready=b"\x00"))
        )

        assert result.error_kind == "mismatch"
        assert result.exit_code == 1

    def test_open_failure_uses_errno(self, tmp_path):
        class Unopenable(ScriptedTransport):
            def open(self):
                raise TransportError("Cannot open port /dev/ttyTEST", errno=13)

        result = dump_memory(_config(tmp_path), transport=Unopenable())

        assert result.error_kind == "transport"
        assert result.exit_code == 13

    def test_timeout(self, tmp_path):
        result = dump_memory(_config(tmp_path), transport=ScriptedTransport(b"\x11"))

        assert result.error_kind == "timeout"
        assert result.exit_code == 1

    def test_partial_output_warning(self, tmp_path):
        script = (
            handshake_script(length=8)
            + batch_script([(ZERO_WORD, 0)])
            + batch_script([(ZERO_WORD, 0)], status=b"D")
        )
        result = dump_memory(_config(tmp_path), transport=ScriptedTransport(script))

        assert result.error_kind == "desync"
        assert "Output files hold partial data" in result.warnings
        assert result.metadata["bytes_written"] == {PRIMARY_REGION: 8, VECTOR_REGION: 0}

    def test_cancelled(self, tmp_path):
        frames = [(ZERO_WORD, 1)] * 1600
        script = handshake_script(length=6404) + batch_script(frames) + batch_script([(ZERO_WORD, 0)])
        config = _config(tmp_path)

        result = dump_memory(config, transport=ScriptedTransport(script), should_cancel=lambda: True)

        assert result.error_kind == "cancelled"
        assert result.exit_code == EXIT_CANCELLED
        assert len(config.ram_output.read_bytes()) == 6400

    def test_unwritable_output(self, tmp_path):
        config = DumpConfig(
            ram_output=tmp_path / "missing" / "ram.bin",
            vectors_output=tmp_path / "vec.bin",
        )
        transport = ScriptedTransport(_script())

        result = dump_memory(config, transport=transport)

        assert result.error_kind == "output"
        assert result.exit_code == 1
        assert transport.open_calls == 0
