"""
Centralized parsing helpers for command-line values.

The CLI imports these helpers rather than re-implementing them.
"""

from typing import Optional

from spush.protocol.dump_protocol import BAUD_SELECTORS, DEFAULT_BAUD_SELECTOR


def parse_baud_index(value: Optional[int]) -> int:
    """
    Convert a baud index into the selector byte sent to the device.

    Accepts:
        - 0 = 115200 bps
        - 1 = 230400 bps
        - 2 = 460800 bps
        - 3 = 921600 bps
        - None for the default (115200 bps)

    Returns:
        Selector byte (0xAB-0xAE)

    Raises:
        ValueError: If index is outside 0-3.
    """
    if value is None:
        return DEFAULT_BAUD_SELECTOR
    if value & ~3:
        raise ValueError(f"Incorrect baud selection: {value}. Use 0, 1, 2 or 3.")
    return DEFAULT_BAUD_SELECTOR + value


def describe_baud_choices() -> str:
    """Help text listing the baud indexes."""
    return "; ".join(
        f"{selector - DEFAULT_BAUD_SELECTOR} = {rate} bps"
        for selector, rate in sorted(BAUD_SELECTORS.items())
    )


def parse_delay(value: Optional[str]) -> int:
    """
    Parse the inter-batch delay in microseconds.

    Accepts plain integers ("500") or values with a unit suffix
    ("500us", "2ms", "1s").

    Raises:
        ValueError: If value cannot be parsed or is negative.
    """
    if value is None:
        return 0

    text = value.strip().lower()
    if not text:
        return 0

    scale = 1
    for suffix, factor in (("us", 1), ("ms", 1000), ("s", 1_000_000)):
        if text.endswith(suffix):
            text = text[: -len(suffix)]
            scale = factor
            break

    try:
        delay = int(float(text) * scale)
    except (ValueError, OverflowError):
        raise ValueError(
            f"Invalid delay '{value}'. Use microseconds (500) or a suffix (2ms, 1s)."
        )
    if delay < 0:
        raise ValueError(f"Delay must not be negative: {value}")
    return delay
