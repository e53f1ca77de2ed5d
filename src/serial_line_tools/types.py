"""Type definitions for Serial Line Tools."""

from __future__ import annotations

import dataclasses
import enum
from typing import Any, List, Tuple, Type, TypeVar, Union

from .exceptions import InvalidArgumentError

# termios attribute list: [iflag, oflag, cflag, lflag, ispeed, ospeed, cc]
TermiosAttributes = List[Any]

# Control characters; entries are 1-byte ``bytes`` or small ints (VMIN/VTIME)
ControlChars = Tuple[Union[bytes, int], ...]


class BaudRate(enum.IntEnum):
    """Standard line speeds in bits per second.

    Only the rates for which the host defines a termios speed code can be
    applied; the others raise ``UnsupportedBaudRateError``.
    """

    BAUD_50 = 50
    BAUD_75 = 75
    BAUD_110 = 110
    BAUD_134 = 134
    BAUD_150 = 150
    BAUD_200 = 200
    BAUD_300 = 300
    BAUD_600 = 600
    BAUD_1200 = 1200
    BAUD_1800 = 1800
    BAUD_2400 = 2400
    BAUD_4800 = 4800
    BAUD_9600 = 9600
    BAUD_19200 = 19200
    BAUD_38400 = 38400
    BAUD_57600 = 57600
    BAUD_115200 = 115200
    BAUD_230400 = 230400
    BAUD_460800 = 460800
    BAUD_500000 = 500000
    BAUD_576000 = 576000
    BAUD_921600 = 921600
    BAUD_1000000 = 1000000
    BAUD_1152000 = 1152000
    BAUD_1500000 = 1500000
    BAUD_2000000 = 2000000
    BAUD_2500000 = 2500000
    BAUD_3000000 = 3000000
    BAUD_3500000 = 3500000
    BAUD_4000000 = 4000000


class CharacterSize(enum.IntEnum):
    """Number of data bits per character."""

    FIVE = 5
    SIX = 6
    SEVEN = 7
    EIGHT = 8


class Parity(enum.Enum):
    """Parity checking mode (pyserial letters)."""

    NONE = "N"
    EVEN = "E"
    ODD = "O"


class StopBits(enum.IntEnum):
    """Number of stop bits per character."""

    ONE = 1
    TWO = 2


class FlowControl(enum.Enum):
    """Flow control mode."""

    NONE = "none"
    HARDWARE = "hardware"


_E = TypeVar("_E", bound=enum.Enum)


def coerce_enum(enum_cls: Type[_E], value: Any, *, port: str = "") -> _E:
    """Resolve *value* to a member of *enum_cls*.

    Accepts a member, a raw member value (``8``, ``"E"``), or a
    case-insensitive member name or value string (``"even"``, ``"e"``,
    ``"hardware"``, ``"8"``).  Booleans are never accepted.

    Raises:
        InvalidArgumentError: If *value* names no member.
    """
    if isinstance(value, enum_cls):
        return value

    if not isinstance(value, bool):
        try:
            return enum_cls(value)
        except (ValueError, TypeError):
            pass

        if isinstance(value, str):
            key = value.strip().upper()
            for member in enum_cls:
                if key == member.name or key == str(member.value).upper():
                    return member

    valid = ", ".join(repr(m.value) for m in enum_cls)
    raise InvalidArgumentError(
        f"Invalid {enum_cls.__name__} {value!r} for port {port or '<unnamed>'}. "
        f"Must be one of: {valid}.",
        port=port,
    )


@dataclasses.dataclass(frozen=True)
class LineSettings:
    """Snapshot of the negotiated line parameters of an open port."""
    baud_rate: BaudRate
    char_size: CharacterSize
    parity: Parity
    stop_bits: StopBits
    flow_control: FlowControl

    def describe(self) -> str:
        """Return the conventional ``57600 8N1`` notation plus flow control."""
        return (
            f"{int(self.baud_rate)} {int(self.char_size)}"
            f"{self.parity.value}{int(self.stop_bits)} "
            f"(flow control: {self.flow_control.value})"
        )
