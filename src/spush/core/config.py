"""
Session configuration.

A DumpConfig is built once (by the CLI or a caller) and handed to the
session. It is validated on construction so nothing touches the wire with
bad parameters.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from spush.protocol.dump_protocol import BAUD_SELECTORS, DEFAULT_BAUD_SELECTOR

DEFAULT_DEVICE = "/dev/ttyUSB0"
DEFAULT_RAM_OUTPUT = "./ram_dump.bin"
DEFAULT_VECTORS_OUTPUT = "./vector_dump.bin"


class ConfigurationError(ValueError):
    """Invalid session parameters, raised before any wire activity."""


@dataclass(frozen=True)
class DumpConfig:
    """
    Parameters for one dump session.

    Attributes:
        device: Serial device path
        baud_selector: Selector byte 0xAB-0xAE (115200-921600 bps)
        block_delay_us: Pause between transfer batches, in microseconds
        verbose: Report per-batch progress
        ram_output: Output path for the primary region
        vectors_output: Output path for the IRQ/FIQ vector region
        timeout: Serial read timeout in seconds (None blocks)
    """
    device: str = DEFAULT_DEVICE
    baud_selector: int = DEFAULT_BAUD_SELECTOR
    block_delay_us: int = 0
    verbose: bool = False
    ram_output: Path = Path(DEFAULT_RAM_OUTPUT)
    vectors_output: Path = Path(DEFAULT_VECTORS_OUTPUT)
    timeout: Optional[float] = None

    def __post_init__(self) -> None:
        if not self.device or not str(self.device).strip():
            raise ConfigurationError("Serial device must not be empty")
        if self.baud_selector not in BAUD_SELECTORS:
            raise ConfigurationError(
                f"Incorrect baud selection: 0x{self.baud_selector:02X}"
            )
        if self.block_delay_us < 0:
            raise ConfigurationError(
                f"Block delay must be >= 0, got {self.block_delay_us}"
            )
        if self.timeout is not None and self.timeout <= 0:
            raise ConfigurationError(f"Timeout must be > 0, got {self.timeout}")
        # Accept plain strings for paths
        object.__setattr__(self, "ram_output", Path(self.ram_output))
        object.__setattr__(self, "vectors_output", Path(self.vectors_output))

    @property
    def baudrate(self) -> int:
        """Line rate selected by baud_selector."""
        return BAUD_SELECTORS[self.baud_selector]
