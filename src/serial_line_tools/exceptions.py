"""Custom exceptions for serial line operations."""

from __future__ import annotations

from typing import Optional


class SerialLineToolsError(Exception):
    """Common base exception for all serial_line_tools errors."""
    pass


class SerialPortError(SerialLineToolsError):
    """Base exception for errors raised by a serial port handle.

    Attributes:
        port: Device name of the port the error belongs to.
        errno: OS error number when the failure came from a system call,
            otherwise ``None``.
        strerror: OS error description matching ``errno``, otherwise ``None``.
    """

    def __init__(
        self,
        message: str,
        *,
        port: str = "",
        errno: Optional[int] = None,
        strerror: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.port = port
        self.errno = errno
        self.strerror = strerror

    @classmethod
    def from_os_error(cls, message: str, exc: OSError, *, port: str) -> "SerialPortError":
        """Build an error that carries the platform description of *exc*."""
        return cls(
            f"{message}: {exc.strerror or exc}",
            port=port,
            errno=exc.errno,
            strerror=exc.strerror,
        )


class AlreadyOpenError(SerialPortError):
    """Exception for opening a port that is already open."""
    pass


class NotOpenError(SerialPortError):
    """Exception for operations that need an open port."""
    pass


class OpenFailedError(SerialPortError):
    """Exception for a device that could not be opened or put into raw mode.

    Raised when acquiring the device, reading its settings snapshot, applying
    the raw-mode configuration, or routing its signals fails.  ``errno``
    tells a busy device (retry) apart from a missing one (fatal).
    """
    pass


class UnsupportedBaudRateError(SerialPortError):
    """Exception for a baud rate the host or driver does not accept."""
    pass


class InvalidArgumentError(SerialPortError, ValueError):
    """Exception for unrecognised setter values or rejected settings.

    Raised locally for values outside the supported enumerations (the device
    is not touched), and when the driver rejects a modified configuration.
    """
    pass


class PlatformError(SerialPortError):
    """Exception for any other failing system call.

    Covers reading the line configuration, the availability query, byte
    reads and writes, and restoring settings on close.
    """
    pass
