"""Platform capability consumed by the port engine.

``LineDevice`` is the boundary between the engine's state machine and the
operating system: device-file open/close, line configuration get/set, the
pending-input query, byte read/write, and signal routing.  Every failure is
reported as ``OSError`` so the engine has a single error type to translate.

``PosixLineDevice`` implements it with ``os``, ``termios`` and ``fcntl``.
"""

from __future__ import annotations

import abc
import array
import fcntl
import logging
import os
import termios

from .line_config import LineConfig

logger = logging.getLogger("serial_line_tools.device")

# Open flags: read/write, never become the controlling terminal, and never
# block waiting for carrier detect.
_OPEN_FLAGS = os.O_RDWR | os.O_NOCTTY | os.O_NONBLOCK


class LineDevice(abc.ABC):
    """Operations the engine needs from the host for one device file."""

    @abc.abstractmethod
    def open(self, path: str) -> int:
        """Open *path* and return a descriptor."""

    @abc.abstractmethod
    def close(self, fd: int) -> None:
        """Release a descriptor returned by ``open``."""

    @abc.abstractmethod
    def read_line_config(self, fd: int) -> LineConfig:
        """Return the current line configuration record of *fd*."""

    @abc.abstractmethod
    def write_line_config(self, fd: int, config: LineConfig) -> None:
        """Apply *config* to *fd* immediately."""

    @abc.abstractmethod
    def bytes_available(self, fd: int) -> int:
        """Return the number of received bytes waiting to be read."""

    @abc.abstractmethod
    def read(self, fd: int, size: int) -> bytes:
        """Read at most *size* bytes without waiting."""

    @abc.abstractmethod
    def write(self, fd: int, data: bytes) -> int:
        """Write *data* and return the number of bytes accepted."""

    @abc.abstractmethod
    def route_signals(self, fd: int) -> None:
        """Direct SIGIO/SIGURG for *fd* to the current process."""


def _termios_os_error(exc: termios.error) -> OSError:
    """Convert a ``termios.error`` (errno, message) into an ``OSError``."""
    if len(exc.args) >= 2:
        return OSError(exc.args[0], exc.args[1])
    return OSError(str(exc))


class PosixLineDevice(LineDevice):
    """``LineDevice`` backed by POSIX system calls."""

    def open(self, path: str) -> int:
        fd = os.open(path, _OPEN_FLAGS)
        logger.debug("[DEVICE] Opened %s as fd %d", path, fd)
        return fd

    def close(self, fd: int) -> None:
        os.close(fd)
        logger.debug("[DEVICE] Closed fd %d", fd)

    def read_line_config(self, fd: int) -> LineConfig:
        try:
            return LineConfig.from_attributes(termios.tcgetattr(fd))
        except termios.error as exc:
            raise _termios_os_error(exc) from exc

    def write_line_config(self, fd: int, config: LineConfig) -> None:
        try:
            termios.tcsetattr(fd, termios.TCSANOW, config.to_attributes())
        except termios.error as exc:
            raise _termios_os_error(exc) from exc

    def bytes_available(self, fd: int) -> int:
        buf = array.array("i", [0])
        fcntl.ioctl(fd, termios.FIONREAD, buf, True)
        return buf[0]

    def read(self, fd: int, size: int) -> bytes:
        return os.read(fd, size)

    def write(self, fd: int, data: bytes) -> int:
        return os.write(fd, data)

    def route_signals(self, fd: int) -> None:
        fcntl.fcntl(fd, fcntl.F_SETOWN, os.getpid())
