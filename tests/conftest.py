"""Pytest configuration — path setup, logging, and shared device fixtures."""

import errno
import logging
import os
import sys
import termios

import pytest

# ---------------------------------------------------------------------------
# Path setup: ensure the package is importable regardless of installation
# ---------------------------------------------------------------------------
_SRC_DIR = os.path.join(os.path.dirname(__file__), os.pardir, "src")
_SRC_DIR = os.path.normpath(_SRC_DIR)
if _SRC_DIR not in sys.path:
    sys.path.insert(0, _SRC_DIR)

# ---------------------------------------------------------------------------
# Logging: route all library log output to the console so pytest -s shows it
# ---------------------------------------------------------------------------
logging.basicConfig(
    level=logging.DEBUG,
    format="%(asctime)s | %(levelname)-7s | %(name)s | %(message)s",
    datefmt="%H:%M:%S",
)

from serial_line_tools.device import LineDevice  # noqa: E402
from serial_line_tools.line_config import LineConfig  # noqa: E402

_HAS_PTY = False
try:
    import pty
    _HAS_PTY = True
except ImportError:
    pass


def default_line_config():
    """A cooked-mode 9600 8N1 record, like a freshly plugged-in tty."""
    cc = [b"\x00"] * getattr(termios, "NCCS", 32)
    cc[termios.VMIN] = b"\x01"
    cc[termios.VINTR] = b"\x03"
    return LineConfig(
        iflag=termios.ICRNL | termios.IXON,
        oflag=termios.OPOST | termios.ONLCR,
        cflag=termios.CS8 | termios.CREAD | termios.HUPCL,
        lflag=termios.ICANON | termios.ECHO | termios.ISIG,
        ispeed=termios.B9600,
        ospeed=termios.B9600,
        cc=tuple(cc),
    )


class FakeLineDevice(LineDevice):
    """In-memory ``LineDevice`` that records calls and can inject failures.

    * ``config`` — the record the "driver" currently holds.
    * ``fail`` — maps an operation name to the ``OSError`` it should raise.
    * ``reject`` — predicate; ``write_line_config`` raises EINVAL when it
      returns True for the new record (the driver refusing a combination).
    * ``incoming`` / ``outgoing`` — bytes waiting to be read / bytes written.
    * ``empty_polls`` — number of availability queries that report 0 before
      ``incoming`` becomes visible.
    """

    def __init__(self, config=None):
        self.config = config if config is not None else default_line_config()
        self.fail = {}
        self.reject = None
        self.calls = []
        self.open_fds = set()
        self.incoming = bytearray()
        self.outgoing = bytearray()
        self.empty_polls = 0
        self.short_write = False
        self._next_fd = 3

    def _enter(self, operation):
        self.calls.append(operation)
        exc = self.fail.get(operation)
        if exc is not None:
            raise exc

    def open(self, path):
        self._enter("open")
        fd = self._next_fd
        self._next_fd += 1
        self.open_fds.add(fd)
        return fd

    def close(self, fd):
        self._enter("close")
        self.open_fds.discard(fd)

    def read_line_config(self, fd):
        self._enter("read_line_config")
        return self.config

    def write_line_config(self, fd, config):
        self._enter("write_line_config")
        if self.reject is not None and self.reject(config):
            raise OSError(errno.EINVAL, "Invalid argument")
        self.config = config

    def bytes_available(self, fd):
        self._enter("bytes_available")
        if self.empty_polls > 0:
            self.empty_polls -= 1
            return 0
        return len(self.incoming)

    def read(self, fd, size):
        self._enter("read")
        data = bytes(self.incoming[:size])
        del self.incoming[:size]
        return data

    def write(self, fd, data):
        self._enter("write")
        if self.short_write:
            return 0
        self.outgoing.extend(data)
        return len(data)

    def route_signals(self, fd):
        self._enter("route_signals")


class VirtualSerialPair:
    """Creates a connected pair of pseudo-terminal serial ports.

    Bytes written to the master end appear on the slave end and vice versa.
    The slave path is what the code under test opens.
    """

    def __init__(self) -> None:
        if not _HAS_PTY:
            raise RuntimeError(
                "pty module not available — virtual serial pairs require "
                "a POSIX system (Linux / macOS)"
            )

        self.master_fd, self.slave_fd = pty.openpty()
        self.slave_path = os.ttyname(self.slave_fd)

    def write_to_master(self, data):
        # type: (bytes) -> int
        """Write bytes into the master end (appears on the slave)."""
        return os.write(self.master_fd, data)

    def read_from_master(self, size=4096):
        # type: (int) -> bytes
        """Read bytes from the master end (data written to the slave)."""
        return os.read(self.master_fd, size)

    def close(self):
        # type: () -> None
        for fd in (self.master_fd, self.slave_fd):
            try:
                os.close(fd)
            except OSError:
                pass


@pytest.fixture()
def fake_device():
    """A fresh in-memory device per test."""
    return FakeLineDevice()


@pytest.fixture()
def serial_pair():
    """Create a virtual serial pair for one test."""
    if not _HAS_PTY:
        pytest.skip("Serial tests require PTY support (Linux/macOS only)")
    pair = VirtualSerialPair()
    yield pair
    pair.close()
