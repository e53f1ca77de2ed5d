"""Command-line interface for serial line tools."""

from __future__ import annotations

import argparse
import sys
import time
from typing import List, Optional

from tqdm import tqdm

from . import (
    DEFAULT_SERIAL_PORT,
    SERIAL_BAUD_RATE,
    SERIAL_BYTESIZE,
    SERIAL_PARITY,
    SERIAL_STOPBITS,
    SERIAL_FLOW_CONTROL,
    TRANSFER_PROGRESS_CHUNK,
)
from .exceptions import SerialLineToolsError
from .serial_port import SerialPort


def open_port(args) -> SerialPort:
    """Create a handle for ``--serial-port`` and open it with the CLI line settings."""
    port = SerialPort(args.serial_port)
    try:
        port.open(
            baud_rate=args.baud_rate,
            char_size=args.char_size,
            parity=args.parity,
            stop_bits=args.stop_bits,
            flow_control=args.flow_control,
        )
    except SerialLineToolsError:
        # open() leaves a partly configured port open
        if port.is_open():
            port.close()
        raise
    return port


def _format_speed(bytes_per_second: float) -> str:
    if bytes_per_second >= 1024:
        return f"{bytes_per_second / 1024:.1f} KB/s"
    return f"{bytes_per_second:.0f} B/s"


def command_list(args) -> int:
    """List available serial ports."""
    ports = SerialPort.list_available_ports()
    if not ports:
        print("No serial ports found.")
    else:
        print("Available serial ports:")
        for p in ports:
            print(f"  {p}")
    return 0


def command_show(args) -> int:
    """Print the line settings a port has after opening."""
    try:
        with open_port(args) as port:
            settings = port.get_settings()
            print(f"{port.device_name}: {settings.describe()}")
            print(f"  data available: {'yes' if port.is_data_available() else 'no'}")
        return 0

    except SerialLineToolsError as e:
        print(f"Error: {str(e)}", file=sys.stderr)
        return 1


def command_send(args) -> int:
    """Write a file to the serial line byte by byte."""
    try:
        with open(args.file, "rb") as f:
            payload = f.read()
    except OSError as e:
        print(f"Error: cannot read {args.file}: {e.strerror or e}", file=sys.stderr)
        return 1

    try:
        with open_port(args) as port:
            start_time = time.monotonic()
            progress_bar = tqdm(
                total=len(payload),
                unit="B",
                unit_scale=True,
                unit_divisor=1024,
                desc=f"Sending to {port.device_name}",
                disable=args.no_progress,
            )
            with progress_bar:
                for offset in range(0, len(payload), TRANSFER_PROGRESS_CHUNK):
                    chunk = payload[offset:offset + TRANSFER_PROGRESS_CHUNK]
                    port.write_bytes(chunk)
                    progress_bar.update(len(chunk))

            elapsed = max(time.monotonic() - start_time, 1e-9)
            print(
                f"Sent {len(payload)} bytes to {port.device_name} at "
                f"{_format_speed(len(payload) / elapsed)}",
                file=sys.stderr,
            )
            return 0

    except SerialLineToolsError as e:
        print(f"Error: {str(e)}", file=sys.stderr)
        return 1


def command_receive(args) -> int:
    """Read a fixed number of bytes from the serial line."""
    if args.count < 0:
        print("Error: --count must be >= 0", file=sys.stderr)
        return 1

    received = bytearray()
    try:
        with open_port(args) as port:
            progress_bar = tqdm(
                total=args.count,
                unit="B",
                unit_scale=True,
                unit_divisor=1024,
                desc=f"Receiving from {port.device_name}",
                disable=args.no_progress,
            )
            with progress_bar:
                while len(received) < args.count:
                    chunk_size = min(TRANSFER_PROGRESS_CHUNK, args.count - len(received))
                    received.extend(port.read_bytes(chunk_size))
                    progress_bar.update(chunk_size)

    except SerialLineToolsError as e:
        print(f"Error: {str(e)}", file=sys.stderr)
        return 1

    if args.output:
        try:
            with open(args.output, "wb") as f:
                f.write(received)
        except OSError as e:
            print(f"Error: cannot write {args.output}: {e.strerror or e}", file=sys.stderr)
            return 1
    else:
        sys.stdout.buffer.write(bytes(received))
        sys.stdout.buffer.flush()
    return 0


def _add_line_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--serial-port", type=str, default=DEFAULT_SERIAL_PORT,
        help="Serial device path (default: $SERIAL_LINE_PORT or /dev/ttyUSB0)",
    )
    parser.add_argument(
        "--baud-rate", type=int, default=SERIAL_BAUD_RATE,
        help=f"Baud rate (default: {SERIAL_BAUD_RATE})",
    )
    parser.add_argument(
        "--char-size", type=int, default=SERIAL_BYTESIZE, choices=[5, 6, 7, 8],
        help=f"Data bits per character (default: {SERIAL_BYTESIZE})",
    )
    parser.add_argument(
        "--parity", type=str.upper, default=SERIAL_PARITY, choices=["N", "E", "O"],
        help=f"Parity: N, E or O (default: {SERIAL_PARITY})",
    )
    parser.add_argument(
        "--stop-bits", type=int, default=SERIAL_STOPBITS, choices=[1, 2],
        help=f"Stop bits (default: {SERIAL_STOPBITS})",
    )
    parser.add_argument(
        "--flow-control", type=str.lower, default=SERIAL_FLOW_CONTROL,
        choices=["none", "hardware"],
        help=f"Flow control (default: {SERIAL_FLOW_CONTROL})",
    )


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for CLI."""
    parser = argparse.ArgumentParser(
        description="Serial Line Tools - configure and exchange raw bytes over a serial line"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    # List ports
    list_parser = subparsers.add_parser("list", help="List available serial ports")
    list_parser.set_defaults(func=command_list)

    # Show settings
    show_parser = subparsers.add_parser(
        "show", help="Open a port and print its line settings",
    )
    _add_line_options(show_parser)
    show_parser.set_defaults(func=command_show)

    # Send file
    send_parser = subparsers.add_parser("send", help="Send a file byte by byte")
    send_parser.add_argument("file", help="File to send")
    _add_line_options(send_parser)
    send_parser.add_argument(
        "--no-progress", action="store_true", default=False,
        help="Do not show a progress bar",
    )
    send_parser.set_defaults(func=command_send)

    # Receive bytes
    receive_parser = subparsers.add_parser(
        "receive", help="Read a number of bytes (blocks until all arrive)",
    )
    receive_parser.add_argument(
        "--count", type=int, required=True,
        help="Number of bytes to read",
    )
    receive_parser.add_argument(
        "--output", type=str, default=None,
        help="Write the bytes to this file instead of stdout",
    )
    _add_line_options(receive_parser)
    receive_parser.add_argument(
        "--no-progress", action="store_true", default=False,
        help="Do not show a progress bar",
    )
    receive_parser.set_defaults(func=command_receive)

    args = parser.parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
