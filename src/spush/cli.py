"""
spush CLI

Command-line interface for dumping RAM and IRQ/FIQ vectors from a device in
download mode.
"""

import sys
import logging
from pathlib import Path
from typing import Dict, Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.logging import RichHandler
from rich.progress import Progress, BarColumn, TextColumn

from spush.core.actions import dump_memory, EXIT_CANCELLED
from spush.core.config import (
    DumpConfig,
    ConfigurationError,
    DEFAULT_DEVICE,
    DEFAULT_RAM_OUTPUT,
    DEFAULT_VECTORS_OUTPUT,
)
from spush.core.messages import MessageLevel, WarningItem, result_to_warnings
from spush.core.parsing import (
    describe_baud_choices,
    parse_baud_index as _parse_baud_index_core,
    parse_delay as _parse_delay_core,
)
from spush.core.results import OperationResult

logger = logging.getLogger("spush")

console = Console()

app = typer.Typer(help="spush - dump RAM and IRQ/FIQ vectors over a serial download mode link")


def setup_logging(debug: bool = False) -> None:
    """Route spush logs through Rich."""
    logging.basicConfig(
        level=logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=False)],
    )
    logger.setLevel(logging.DEBUG if debug else logging.INFO)


def print_header(text: str) -> None:
    """Print fancy header."""
    console.print(Panel(text, expand=False, style="bold blue"))


def print_success(text: str) -> None:
    """Print success message."""
    console.print(f"✓ {text}", style="green")


def print_warning(text: str) -> None:
    """Print warning message."""
    console.print(f"⚠️  {text}", style="yellow")


def print_error(text: str) -> None:
    """Print error message."""
    console.print(f"❌ {text}", style="red")


def print_structured_warning(warning: WarningItem, verbose: bool = False) -> None:
    """Print a structured warning with its remediation hint."""
    if warning.level == MessageLevel.ERROR:
        style = "red"
        icon = "❌"
    else:
        style = "yellow"
        icon = "⚠️"

    console.print(f"{icon} [{warning.code.value}] {warning.title}", style=style)
    if verbose and warning.detail:
        console.print(f"   {warning.detail}", style="dim")
    if warning.remediation:
        console.print(f"   → {warning.remediation}", style="cyan")


def print_warnings_from_result(result: OperationResult, verbose: bool = False) -> None:
    """Print all warnings and errors from an OperationResult."""
    for warning in result_to_warnings(result):
        print_structured_warning(warning, verbose=verbose)


def parse_baud_index(value: Optional[int]) -> int:
    """
    CLI wrapper around core.parsing.parse_baud_index that converts
    ValueError to typer.BadParameter.
    """
    try:
        return _parse_baud_index_core(value)
    except ValueError as e:
        raise typer.BadParameter(str(e))


def parse_delay(value: Optional[str]) -> int:
    """
    CLI wrapper around core.parsing.parse_delay that converts
    ValueError to typer.BadParameter.
    """
    try:
        return _parse_delay_core(value)
    except ValueError as e:
        raise typer.BadParameter(str(e))


def show_device_info(result: OperationResult) -> None:
    """Print the values negotiated during the handshake."""
    negotiated = result.metadata.get("negotiated")
    if negotiated is None:
        return

    table = Table(title="Device Information")
    table.add_column("Property", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("Version", negotiated.version_name or "-")
    table.add_row("Error Code", f"0x{negotiated.error_code:08X}")
    table.add_row("Read Address", f"0x{negotiated.start_address:08X}")
    table.add_row("Read Length", f"0x{negotiated.length:08X} ({negotiated.length:,} bytes)")
    console.print(table)


@app.command()
def ports() -> None:
    """List available serial ports."""
    print_header("Available Serial Ports")

    import serial.tools.list_ports

    ports_list = list(serial.tools.list_ports.comports())

    if not ports_list:
        print_warning("No serial ports found")
        return

    table = Table(title="Serial Ports")
    table.add_column("Port", style="cyan")
    table.add_column("Device", style="magenta")
    table.add_column("Description", style="green")

    for port in ports_list:
        table.add_row(port.device, port.name or "-", port.description or "-")

    console.print(table)


@app.command()
def dump(
    ram_output: Path = typer.Argument(
        Path(DEFAULT_RAM_OUTPUT), help="Output file for the RAM dump"
    ),
    vectors_output: Path = typer.Argument(
        Path(DEFAULT_VECTORS_OUTPUT), help="Output file for the IRQ/FIQ vectors dump"
    ),
    device: str = typer.Option(DEFAULT_DEVICE, "--device", "-d", help="Serial device to operate on"),
    delay: Optional[str] = typer.Option(
        None, "--delay", "-D", help="Delay between block transfers, microseconds (or 2ms, 1s)"
    ),
    baud: Optional[int] = typer.Option(
        None, "--baud-rate", "-b", help=f"Baud index: {describe_baud_choices()}"
    ),
    timeout: Optional[float] = typer.Option(
        None, "--timeout", "-t", help="Serial read timeout in seconds (default: wait forever)"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log every block transfer"),
    debug: bool = typer.Option(False, "--debug", help="Log raw serial traffic"),
) -> None:
    """Dump RAM and IRQ/FIQ vectors from a device in download mode."""
    setup_logging(debug)
    print_header("Dump Device Memory")

    try:
        config = DumpConfig(
            device=device,
            baud_selector=parse_baud_index(baud),
            block_delay_us=parse_delay(delay),
            verbose=verbose,
            ram_output=ram_output,
            vectors_output=vectors_output,
            timeout=timeout,
        )
    except ConfigurationError as e:
        raise typer.BadParameter(str(e))

    console.print(f"Device:     {config.device}")
    console.print(f"Baud rate:  {config.baudrate} bps")
    console.print(f"RAM out:    {config.ram_output}")
    console.print(f"Vectors out: {config.vectors_output}")
    console.print()

    with Progress(
        TextColumn("[{task.description}]"),
        BarColumn(),
        TextColumn("[{task.percentage:.0f}%]"),
        console=console,
    ) as progress:
        tasks: Dict[str, int] = {}

        def on_progress(region: str, written: int, total: int) -> None:
            if region not in tasks:
                tasks[region] = progress.add_task(f"Dumping {region}", total=total or 1)
            progress.update(tasks[region], completed=written if total else 1)

        result = dump_memory(config, progress_cb=on_progress)

    show_device_info(result)
    print_warnings_from_result(result, verbose=verbose)

    if result.ok:
        console.print(result.to_summary())
        print_success("Done. Device will reboot now.")
        return

    if result.error_kind == "desync":
        print_error("Wrong checksum! The device rejected a checksum; retry the whole run.")
    else:
        print_error(f"Dump failed: {result.errors[-1] if result.errors else 'unknown error'}")
    raise typer.Exit(code=result.exit_code)


def main() -> None:
    """Main entry point."""
    try:
        app()
    except KeyboardInterrupt:
        console.print("\n[yellow]Operation cancelled by user[/yellow]")
        sys.exit(EXIT_CANCELLED)


if __name__ == "__main__":
    main()
