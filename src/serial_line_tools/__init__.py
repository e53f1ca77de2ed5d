"""
Serial Line Tools - configuration and byte-transfer handle for POSIX serial lines

This package drives a serial line exposed by the operating system as a
character device (``/dev/ttyS*``, ``/dev/ttyUSB*``, ``/dev/ttyACM*``, ptys).
It includes:

- **Scoped open/close** that snapshots the device settings and restores them on close
- **Line-parameter accessors** (baud rate, character size, parity, stop bits,
  flow control) built on read-modify-write of the termios record
- **Raw single-byte I/O** with a data-availability query
- **Port discovery** and a small ``serial-line`` command-line tool

The handle emits and consumes raw bytes only; framing and protocols belong to
the caller.
"""

import logging
import os

logging.getLogger("serial_line_tools").addHandler(logging.NullHandler())

__version__ = "0.1.0"

# Default device path.  Override via environment variable:
#   SERIAL_LINE_PORT
DEFAULT_SERIAL_PORT = os.environ.get("SERIAL_LINE_PORT", "/dev/ttyUSB0")

# Line settings applied by SerialPort.open() when the caller passes none.
SERIAL_BAUD_RATE = 57600
SERIAL_BYTESIZE = 8           # 8 data bits
SERIAL_PARITY = "N"           # No parity
SERIAL_STOPBITS = 1           # 1 stop bit
SERIAL_FLOW_CONTROL = "none"  # No hardware flow control

# Sleep between availability polls in read_byte().  0 keeps the tight poll
# loop: the call returns as soon as a byte arrives.
SERIAL_POLL_INTERVAL_S = 0.0

# CLI transfer settings
TRANSFER_PROGRESS_CHUNK = 256  # bytes between progress bar refreshes
