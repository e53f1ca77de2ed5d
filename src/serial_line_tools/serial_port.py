"""Public handle for a serial line: open with line settings, configure, transfer bytes.

``SerialPort`` owns one ``SerialPortEngine`` and forwards every call to it.
On top of the engine it bundles opening with the initial line settings,
adds context-manager support, and lists the ports the OS knows about.

Example::

    with SerialPort("/dev/ttyUSB0") as port:          # 57600 8N1, no flow control
        port.set_baud_rate(BaudRate.BAUD_9600)
        port.write_byte(0x41)
        reply = port.read_byte()

Linux/macOS only: the default backend uses termios.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Union

import serial.tools.list_ports
from typeguard import typechecked

from . import (
    SERIAL_BAUD_RATE,
    SERIAL_BYTESIZE,
    SERIAL_PARITY,
    SERIAL_STOPBITS,
    SERIAL_FLOW_CONTROL,
    SERIAL_POLL_INTERVAL_S,
)
from .device import LineDevice
from .engine import SerialPortEngine
from .exceptions import InvalidArgumentError
from .types import (
    BaudRate,
    CharacterSize,
    FlowControl,
    LineSettings,
    Parity,
    StopBits,
)

logger = logging.getLogger("serial_line_tools.serial_port")


@typechecked
class SerialPort:
    """Handle for one serial device.

    The device is not touched until ``open()``.  When the handle goes away
    while still open, it is closed and the device's original settings are
    restored.
    """

    def __init__(
        self,
        device_name: str,
        *,
        device: Optional[LineDevice] = None,
        poll_interval_s: float = SERIAL_POLL_INTERVAL_S,
    ) -> None:
        """Initialize a closed handle.

        Args:
            device_name: Device path — e.g. ``/dev/ttyUSB0`` or ``/dev/ttyS0``.
            device: Platform backend.  Default: POSIX termios.
            poll_interval_s: Sleep between availability polls in
                ``read_byte()``.  Default: 0 (poll without sleeping).

        Raises:
            InvalidArgumentError: If *poll_interval_s* is negative.
        """
        if poll_interval_s < 0:
            raise InvalidArgumentError(
                f"Invalid poll_interval_s {poll_interval_s!r} for port {device_name}. "
                f"Must be 0 (no sleep) or a positive number of seconds.",
                port=device_name,
            )
        self.poll_interval_s = poll_interval_s
        self._engine = SerialPortEngine(device_name, device)

    @property
    def device_name(self) -> str:
        return self._engine.device_name

    # ---- Lifecycle ----

    def open(
        self,
        baud_rate: Union[BaudRate, int] = SERIAL_BAUD_RATE,
        char_size: Union[CharacterSize, int, str] = SERIAL_BYTESIZE,
        parity: Union[Parity, str] = SERIAL_PARITY,
        stop_bits: Union[StopBits, int, str] = SERIAL_STOPBITS,
        flow_control: Union[FlowControl, str] = SERIAL_FLOW_CONTROL,
    ) -> None:
        """Open the device and apply the line settings.

        Settings are applied in the order baud rate, character size, parity,
        stop bits, flow control.  A failure part-way through is not rolled
        back: the port stays open with the settings applied so far, and the
        caller decides whether to ``close()`` and retry.

        Raises:
            AlreadyOpenError: If the port is already open.
            OpenFailedError: If the device cannot be opened or put into raw mode.
            UnsupportedBaudRateError: If the baud rate is rejected.
            InvalidArgumentError: If another setting is rejected.
        """
        self._engine.open()
        self._engine.set_baud_rate(baud_rate)
        self._engine.set_char_size(char_size)
        self._engine.set_parity(parity)
        self._engine.set_stop_bits(stop_bits)
        self._engine.set_flow_control(flow_control)
        logger.info(
            "[SERIAL-OPEN] %s configured — %s %s%s%s, flow control %s",
            self.device_name, int(baud_rate), char_size, parity, stop_bits, flow_control,
        )

    def is_open(self) -> bool:
        return self._engine.is_open()

    def close(self) -> None:
        """Restore the original settings and close the device.

        Raises:
            NotOpenError: If the port is not open.
        """
        self._engine.close()

    # ---- Line parameters ----

    def set_baud_rate(self, baud_rate: Union[BaudRate, int]) -> None:
        self._engine.set_baud_rate(baud_rate)

    def get_baud_rate(self) -> BaudRate:
        return self._engine.get_baud_rate()

    def set_char_size(self, char_size: Union[CharacterSize, int, str]) -> None:
        self._engine.set_char_size(char_size)

    def get_char_size(self) -> CharacterSize:
        return self._engine.get_char_size()

    def set_parity(self, parity: Union[Parity, str]) -> None:
        self._engine.set_parity(parity)

    def get_parity(self) -> Parity:
        return self._engine.get_parity()

    def set_stop_bits(self, stop_bits: Union[StopBits, int, str]) -> None:
        self._engine.set_stop_bits(stop_bits)

    def get_stop_bits(self) -> StopBits:
        return self._engine.get_stop_bits()

    def set_flow_control(self, flow_control: Union[FlowControl, str]) -> None:
        self._engine.set_flow_control(flow_control)

    def get_flow_control(self) -> FlowControl:
        return self._engine.get_flow_control()

    def get_settings(self) -> LineSettings:
        """Read all five line parameters from the device."""
        return LineSettings(
            baud_rate=self._engine.get_baud_rate(),
            char_size=self._engine.get_char_size(),
            parity=self._engine.get_parity(),
            stop_bits=self._engine.get_stop_bits(),
            flow_control=self._engine.get_flow_control(),
        )

    # ---- Byte I/O ----

    def is_data_available(self) -> bool:
        return self._engine.is_data_available()

    def read_byte(self) -> int:
        """Block until a byte arrives and return it (0..255).

        Never times out.  Callers that need a deadline should poll
        ``is_data_available()`` themselves before calling this.
        """
        return self._engine.read_byte(self.poll_interval_s)

    def write_byte(self, value: Union[int, bytes]) -> None:
        self._engine.write_byte(value)

    def read_bytes(self, count: int) -> bytes:
        """Read exactly *count* bytes, one ``read_byte()`` at a time."""
        if count < 0:
            raise InvalidArgumentError(
                f"Invalid count {count!r} for port {self.device_name}. Must be >= 0.",
                port=self.device_name,
            )
        return bytes(self._engine.read_byte(self.poll_interval_s) for _ in range(count))

    def write_bytes(self, data: bytes) -> int:
        """Write *data*, one ``write_byte()`` at a time.  Returns ``len(data)``."""
        for value in data:
            self._engine.write_byte(value)
        return len(data)

    # ---- Context manager ----

    def __enter__(self) -> SerialPort:
        """Context manager entry — opens with the default settings if closed."""
        if not self.is_open():
            self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:  # type: ignore[no-untyped-def]
        """Context manager exit — closes the port if still open."""
        if self.is_open():
            self.close()

    def __del__(self) -> None:
        """Destructor — closes a port that is still open."""
        try:
            engine = self.__dict__.get("_engine")
            if engine is not None and engine.is_open():
                engine.close()
        except Exception:
            pass

    # ---- Helpers ----

    @staticmethod
    def list_available_ports() -> List[str]:
        """Return the serial ports visible to the operating system.

        Each entry reads ``<device> — <description>``.
        """
        descriptions = []
        for p in serial.tools.list_ports.comports():
            descriptions.append(f"{p.device} — {p.description}")
            logger.debug("[SERIAL-LIST] Found port: %s (%s)", p.device, p.description)
        return descriptions
