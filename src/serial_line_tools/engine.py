"""Open/close state machine and line-parameter protocol for one serial device.

``SerialPortEngine`` owns the descriptor of an open device and the settings
snapshot taken when it was opened.  Every line-parameter setter reads the
current configuration from the device, changes only the bits it owns, and
writes the record back; getters read the device afresh every time.  No
in-memory copy of the configuration is ever treated as authoritative.

The engine is single-threaded: one logical owner must serialise all calls on
a given instance.  Distinct instances for distinct devices are independent.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Optional, Union

from .device import LineDevice, PosixLineDevice
from .exceptions import (
    AlreadyOpenError,
    InvalidArgumentError,
    NotOpenError,
    OpenFailedError,
    PlatformError,
    UnsupportedBaudRateError,
)
from .line_config import LineConfig, speed_code
from .types import (
    BaudRate,
    CharacterSize,
    FlowControl,
    Parity,
    StopBits,
    coerce_enum,
)

logger = logging.getLogger("serial_line_tools.engine")


class SerialPortEngine:
    """State, descriptor and saved settings of one serial device.

    Lifecycle::

        engine = SerialPortEngine("/dev/ttyUSB0")   # closed
        engine.open()                               # raw mode, snapshot taken
        engine.set_parity(Parity.EVEN)
        engine.write_byte(0x41)
        engine.close()                              # snapshot restored

    The engine may be reopened after ``close()``; only ``device_name``
    survives between sessions.
    """

    def __init__(self, device_name: str, device: Optional[LineDevice] = None) -> None:
        """Initialize an engine for *device_name*, closed.

        Args:
            device_name: Path of the device file, e.g. ``/dev/ttyUSB0``.  It
                is not checked until ``open()``.
            device: Platform capability; defaults to ``PosixLineDevice``.
        """
        self._device_name = device_name
        self._device = device if device is not None else PosixLineDevice()
        self._fd: Optional[int] = None
        self._saved_config: Optional[LineConfig] = None

    @property
    def device_name(self) -> str:
        return self._device_name

    # ---- State machine ----

    def is_open(self) -> bool:
        """Check whether the device is currently open."""
        return self._fd is not None

    def open(self) -> None:
        """Open the device and switch it to raw, non-canonical mode.

        Steps: acquire a descriptor (non-blocking, no controlling terminal),
        snapshot the current configuration, apply the raw-mode copy of it,
        and route the device's signals to this process.  If any step after
        acquisition fails, the descriptor is released before raising.

        Raises:
            AlreadyOpenError: If the device is already open.  Nothing is
                changed.
            OpenFailedError: If any step fails.  The engine stays closed.
        """
        if self.is_open():
            msg = f"Serial port {self._device_name} is already open."
            logger.error("[SERIAL-OPEN] %s", msg)
            raise AlreadyOpenError(msg, port=self._device_name)

        logger.info("[SERIAL-OPEN] Opening %s ...", self._device_name)

        try:
            fd = self._device.open(self._device_name)
        except OSError as exc:
            logger.error("[SERIAL-OPEN] FAILED — %s: %s", self._device_name, exc)
            raise OpenFailedError.from_os_error(
                f"Failed to open serial port {self._device_name}", exc,
                port=self._device_name,
            ) from exc

        try:
            saved = self._device.read_line_config(fd)
            self._device.write_line_config(fd, saved.raw())
            self._device.route_signals(fd)
        except OSError as exc:
            logger.error(
                "[SERIAL-OPEN] FAILED to initialise %s: %s", self._device_name, exc,
            )
            self._release(fd)
            raise OpenFailedError.from_os_error(
                f"Failed to initialise serial port {self._device_name}", exc,
                port=self._device_name,
            ) from exc

        self._fd = fd
        self._saved_config = saved
        logger.info("[SERIAL-OPEN] Successfully opened %s", self._device_name)

    def close(self) -> None:
        """Restore the saved settings and release the device.

        The descriptor is released and the engine marked closed even when
        restoring the settings fails; that failure is raised afterwards.

        Raises:
            NotOpenError: If the device is not open.
            PlatformError: If restoring the settings or closing the
                descriptor failed.
        """
        fd = self._require_open("close")
        saved = self._saved_config
        self._fd = None
        self._saved_config = None

        restore_error: Optional[OSError] = None
        try:
            if saved is not None:
                self._device.write_line_config(fd, saved)
        except OSError as exc:
            logger.warning(
                "[SERIAL-CLOSE] Could not restore settings of %s: %s",
                self._device_name, exc,
            )
            restore_error = exc

        try:
            self._device.close(fd)
        except OSError as exc:
            logger.error("[SERIAL-CLOSE] Error closing %s: %s", self._device_name, exc)
            raise PlatformError.from_os_error(
                f"Failed to close serial port {self._device_name}", exc,
                port=self._device_name,
            ) from exc

        if restore_error is not None:
            raise PlatformError.from_os_error(
                f"Closed serial port {self._device_name} but could not restore "
                f"its original settings", restore_error,
                port=self._device_name,
            ) from restore_error

        logger.info("[SERIAL-CLOSE] Closed %s", self._device_name)

    # ---- Line parameters ----

    def set_baud_rate(self, baud_rate: Union[BaudRate, int]) -> None:
        """Set input and output speed.

        Raises:
            NotOpenError: If the device is not open.
            UnsupportedBaudRateError: If *baud_rate* is not a standard rate
                available on this host, or the driver rejects it.
            PlatformError: If the current configuration cannot be read.
        """
        self._require_open("set baud rate")
        if isinstance(baud_rate, bool) or not isinstance(baud_rate, int):
            raise UnsupportedBaudRateError(
                f"Unsupported baud rate {baud_rate!r} for port {self._device_name}.",
                port=self._device_name,
            )
        speed_code(baud_rate, port=self._device_name)
        self._modify(
            "baud rate", baud_rate,
            lambda config: config.with_baud_rate(baud_rate, port=self._device_name),
            rejected=UnsupportedBaudRateError,
        )

    def get_baud_rate(self) -> BaudRate:
        """Return the input speed of the line.

        Raises:
            NotOpenError: If the device is not open.
            PlatformError: If the configuration cannot be read, or holds a
                speed code outside ``BaudRate``.
        """
        config = self._current_config("get baud rate")
        rate = config.baud_rate
        if rate is None:
            msg = (
                f"Unknown baud rate on port {self._device_name} "
                f"(speed code {config.ispeed:#o})."
            )
            logger.error("[SERIAL-CONFIG] %s", msg)
            raise PlatformError(msg, port=self._device_name)
        return rate

    def set_char_size(self, char_size: Union[CharacterSize, int, str]) -> None:
        """Set the number of data bits (5, 6, 7 or 8)."""
        self._require_open("set character size")
        size = coerce_enum(CharacterSize, char_size, port=self._device_name)
        self._modify("character size", size, lambda config: config.with_char_size(size))

    def get_char_size(self) -> CharacterSize:
        return self._current_config("get character size").char_size

    def set_parity(self, parity: Union[Parity, str]) -> None:
        """Set the parity mode: none, even or odd.

        Raises:
            NotOpenError: If the device is not open.
            InvalidArgumentError: If *parity* names no ``Parity`` member (the
                device is not touched), or the driver rejects the setting.
            PlatformError: If the current configuration cannot be read.
        """
        self._require_open("set parity")
        mode = coerce_enum(Parity, parity, port=self._device_name)
        self._modify("parity", mode, lambda config: config.with_parity(mode))

    def get_parity(self) -> Parity:
        return self._current_config("get parity").parity

    def set_stop_bits(self, stop_bits: Union[StopBits, int, str]) -> None:
        """Set one or two stop bits."""
        self._require_open("set stop bits")
        count = coerce_enum(StopBits, stop_bits, port=self._device_name)
        self._modify("stop bits", count, lambda config: config.with_stop_bits(count))

    def get_stop_bits(self) -> StopBits:
        return self._current_config("get stop bits").stop_bits

    def set_flow_control(self, flow_control: Union[FlowControl, str]) -> None:
        """Enable or disable hardware (RTS/CTS) flow control."""
        self._require_open("set flow control")
        mode = coerce_enum(FlowControl, flow_control, port=self._device_name)
        self._modify(
            "flow control", mode,
            lambda config: config.with_flow_control(mode, port=self._device_name),
        )

    def get_flow_control(self) -> FlowControl:
        return self._current_config("get flow control").flow_control

    # ---- Byte I/O ----

    def is_data_available(self) -> bool:
        """Check whether at least one received byte is waiting.

        Raises:
            NotOpenError: If the device is not open.
            PlatformError: If the pending-input query fails.
        """
        fd = self._require_open("check for data")
        try:
            return self._device.bytes_available(fd) > 0
        except OSError as exc:
            logger.error("[SERIAL-IO] Availability query failed on %s: %s", self._device_name, exc)
            raise PlatformError.from_os_error(
                f"Cannot query pending input on {self._device_name}", exc,
                port=self._device_name,
            ) from exc

    def read_byte(self, poll_interval_s: float = 0.0) -> int:
        """Wait until a byte is available, then read and return it.

        There is no timeout and no cancellation: the call polls
        ``is_data_available()`` until data arrives.  With the default
        *poll_interval_s* of 0 the loop never sleeps; a positive value
        sleeps that long between polls.

        Raises:
            NotOpenError: If the device is not open.
            PlatformError: If the availability query or the read fails.
        """
        fd = self._require_open("read byte")

        while not self.is_data_available():
            if poll_interval_s > 0:
                time.sleep(poll_interval_s)

        try:
            data = self._device.read(fd, 1)
        except OSError as exc:
            logger.error("[SERIAL-IO] Read failed on %s: %s", self._device_name, exc)
            raise PlatformError.from_os_error(
                f"Failed to read from {self._device_name}", exc,
                port=self._device_name,
            ) from exc

        if len(data) != 1:
            msg = (
                f"Read from {self._device_name} returned {len(data)} bytes "
                f"although input was pending."
            )
            logger.error("[SERIAL-IO] %s", msg)
            raise PlatformError(msg, port=self._device_name)

        logger.debug("[SERIAL-IO] Read 0x%02X from %s", data[0], self._device_name)
        return data[0]

    def write_byte(self, value: Union[int, bytes]) -> None:
        """Write a single byte.

        Args:
            value: An int in ``0..255`` or a one-byte ``bytes`` object.

        Raises:
            NotOpenError: If the device is not open.
            InvalidArgumentError: If *value* is not a single byte.
            PlatformError: If the write fails or is short.
        """
        fd = self._require_open("write byte")
        data = self._to_byte(value)

        try:
            written = self._device.write(fd, data)
        except OSError as exc:
            logger.error("[SERIAL-IO] Write failed on %s: %s", self._device_name, exc)
            raise PlatformError.from_os_error(
                f"Failed to write to {self._device_name}", exc,
                port=self._device_name,
            ) from exc

        if written != 1:
            msg = f"Short write on {self._device_name}: wrote {written}/1 bytes."
            logger.error("[SERIAL-IO] %s", msg)
            raise PlatformError(msg, port=self._device_name)

        logger.debug("[SERIAL-IO] Wrote 0x%02X to %s", data[0], self._device_name)

    # ---- Helpers ----

    def _require_open(self, operation: str) -> int:
        """Return the descriptor, or raise ``NotOpenError``."""
        if self._fd is None:
            raise NotOpenError(
                f"Cannot {operation}: serial port {self._device_name} is not open.",
                port=self._device_name,
            )
        return self._fd

    def _current_config(self, operation: str) -> LineConfig:
        """Read the configuration record from the device."""
        fd = self._require_open(operation)
        try:
            return self._device.read_line_config(fd)
        except OSError as exc:
            logger.error(
                "[SERIAL-CONFIG] Cannot read settings of %s: %s", self._device_name, exc,
            )
            raise PlatformError.from_os_error(
                f"Cannot read settings of {self._device_name}", exc,
                port=self._device_name,
            ) from exc

    def _modify(
        self,
        label: str,
        value: Any,
        change: Callable[[LineConfig], LineConfig],
        rejected: type = InvalidArgumentError,
    ) -> None:
        """Read the current record, apply *change*, and write it back.

        A write the driver refuses is raised as *rejected*.
        """
        fd = self._require_open(f"set {label}")
        config = change(self._current_config(f"set {label}"))

        try:
            self._device.write_line_config(fd, config)
        except OSError as exc:
            logger.error(
                "[SERIAL-CONFIG] %s rejected %s=%s: %s",
                self._device_name, label, value, exc,
            )
            error_cls: Any = rejected
            raise error_cls.from_os_error(
                f"Serial port {self._device_name} rejected {label} {value!s}", exc,
                port=self._device_name,
            ) from exc

        logger.debug("[SERIAL-CONFIG] Set %s of %s to %s", label, self._device_name, value)

    def _release(self, fd: int) -> None:
        """Close a descriptor whose session never started."""
        try:
            self._device.close(fd)
        except OSError as exc:
            logger.warning(
                "[SERIAL-OPEN] Could not release %s after failed open: %s",
                self._device_name, exc,
            )

    def _to_byte(self, value: Union[int, bytes]) -> bytes:
        if isinstance(value, (bytes, bytearray)) and len(value) == 1:
            return bytes(value)
        if isinstance(value, int) and not isinstance(value, bool) and 0 <= value <= 0xFF:
            return bytes([value])
        raise InvalidArgumentError(
            f"Invalid byte {value!r} for port {self._device_name}. "
            f"Must be an int in 0..255 or a single byte.",
            port=self._device_name,
        )

