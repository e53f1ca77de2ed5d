"""Typed view of the termios line configuration record.

``LineConfig`` is an immutable snapshot of the attribute list returned by
``termios.tcgetattr``.  Each ``with_*`` method returns a copy in which only
the bit-field owned by that parameter has changed, so a read-modify-write
cycle cannot clobber settings it does not target.
"""

from __future__ import annotations

import dataclasses
import termios
from typing import Dict, List, Optional

from .exceptions import InvalidArgumentError, UnsupportedBaudRateError
from .types import (
    BaudRate,
    CharacterSize,
    ControlChars,
    FlowControl,
    Parity,
    StopBits,
    TermiosAttributes,
)

# Not every platform names the RTS/CTS bit the same way.
_CRTSCTS = getattr(termios, "CRTSCTS", getattr(termios, "CNEW_RTSCTS", 0))

# Speed codes the host termios module knows about
_SPEED_CODES: Dict[BaudRate, int] = {
    rate: getattr(termios, f"B{int(rate)}")
    for rate in BaudRate
    if hasattr(termios, f"B{int(rate)}")
}
_RATES_BY_CODE: Dict[int, BaudRate] = {code: rate for rate, code in _SPEED_CODES.items()}

_CHAR_SIZE_FLAGS: Dict[CharacterSize, int] = {
    CharacterSize.FIVE: termios.CS5,
    CharacterSize.SIX: termios.CS6,
    CharacterSize.SEVEN: termios.CS7,
    CharacterSize.EIGHT: termios.CS8,
}
_CHAR_SIZES_BY_FLAG: Dict[int, CharacterSize] = {
    flag: size for size, flag in _CHAR_SIZE_FLAGS.items()
}


def supported_baud_rates() -> List[BaudRate]:
    """Return the baud rates this host can apply, slowest first."""
    return sorted(_SPEED_CODES)


def speed_code(rate: int, *, port: str = "") -> int:
    """Return the termios speed code for *rate*.

    Raises:
        UnsupportedBaudRateError: If *rate* is not a standard rate or the
            host defines no speed code for it.
    """
    code = _SPEED_CODES.get(rate)  # type: ignore[call-overload]
    if code is None:
        raise UnsupportedBaudRateError(
            f"Unsupported baud rate {rate!r} for port {port or '<unnamed>'}. "
            f"Supported rates: {', '.join(str(int(r)) for r in supported_baud_rates())}.",
            port=port,
        )
    return code


@dataclasses.dataclass(frozen=True)
class LineConfig:
    """Immutable termios record: flags, speeds and control characters."""
    iflag: int
    oflag: int
    cflag: int
    lflag: int
    ispeed: int
    ospeed: int
    cc: ControlChars

    # ---- Conversion ----

    @classmethod
    def from_attributes(cls, attributes: TermiosAttributes) -> LineConfig:
        """Build a record from the list returned by ``termios.tcgetattr``."""
        iflag, oflag, cflag, lflag, ispeed, ospeed, cc = attributes
        return cls(
            iflag=int(iflag),
            oflag=int(oflag),
            cflag=int(cflag),
            lflag=int(lflag),
            ispeed=int(ispeed),
            ospeed=int(ospeed),
            cc=tuple(cc),
        )

    def to_attributes(self) -> TermiosAttributes:
        """Return the list form accepted by ``termios.tcsetattr``."""
        return [
            self.iflag,
            self.oflag,
            self.cflag,
            self.lflag,
            self.ispeed,
            self.ospeed,
            list(self.cc),
        ]

    # ---- Modifiers ----

    def raw(self) -> LineConfig:
        """Return a copy in raw, non-canonical mode.

        Local and output processing are switched off, the receiver is
        enabled with modem control lines ignored, and VMIN/VTIME are zeroed
        so a read returns at once with whatever bytes are available.
        """
        cc = list(self.cc)
        cc[termios.VMIN] = 0
        cc[termios.VTIME] = 0
        return dataclasses.replace(
            self,
            lflag=0,
            oflag=0,
            cflag=self.cflag | termios.CREAD | termios.CLOCAL,
            cc=tuple(cc),
        )

    def with_baud_rate(self, rate: int, *, port: str = "") -> LineConfig:
        """Return a copy with input and output speed set to *rate*."""
        code = speed_code(rate, port=port)
        return dataclasses.replace(self, ispeed=code, ospeed=code)

    def with_char_size(self, char_size: CharacterSize) -> LineConfig:
        cflag = self.cflag & ~termios.CSIZE
        return dataclasses.replace(self, cflag=cflag | _CHAR_SIZE_FLAGS[char_size])

    def with_parity(self, parity: Parity) -> LineConfig:
        cflag = self.cflag & ~(termios.PARENB | termios.PARODD)
        if parity is Parity.EVEN:
            cflag |= termios.PARENB
        elif parity is Parity.ODD:
            cflag |= termios.PARENB | termios.PARODD
        return dataclasses.replace(self, cflag=cflag)

    def with_stop_bits(self, stop_bits: StopBits) -> LineConfig:
        cflag = self.cflag & ~termios.CSTOPB
        if stop_bits is StopBits.TWO:
            cflag |= termios.CSTOPB
        return dataclasses.replace(self, cflag=cflag)

    def with_flow_control(self, flow_control: FlowControl, *, port: str = "") -> LineConfig:
        if flow_control is FlowControl.HARDWARE and not _CRTSCTS:
            raise InvalidArgumentError(
                f"Hardware flow control is not available on this host "
                f"(port {port or '<unnamed>'}).",
                port=port,
            )
        cflag = self.cflag & ~_CRTSCTS
        if flow_control is FlowControl.HARDWARE:
            cflag |= _CRTSCTS
        return dataclasses.replace(self, cflag=cflag)

    # ---- Decoding ----

    @property
    def baud_rate(self) -> Optional[BaudRate]:
        """Input line speed, or ``None`` for a code outside ``BaudRate``.

        Only the input direction is decoded; ``with_baud_rate`` always sets
        both directions together.
        """
        return _RATES_BY_CODE.get(self.ispeed)

    @property
    def char_size(self) -> CharacterSize:
        return _CHAR_SIZES_BY_FLAG[self.cflag & termios.CSIZE]

    @property
    def parity(self) -> Parity:
        if not self.cflag & termios.PARENB:
            return Parity.NONE
        if self.cflag & termios.PARODD:
            return Parity.ODD
        return Parity.EVEN

    @property
    def stop_bits(self) -> StopBits:
        return StopBits.TWO if self.cflag & termios.CSTOPB else StopBits.ONE

    @property
    def flow_control(self) -> FlowControl:
        if _CRTSCTS and self.cflag & _CRTSCTS:
            return FlowControl.HARDWARE
        return FlowControl.NONE
