"""Parsers for the text the cellular modem sends back.

These cover the replies to ``AT+GSN``/``AT+CIMI`` (a bare number before
``OK``), ``AT+CSQ``, ``AT*MENGINFO=0`` and ``AT+CCLK?``, as well as the
``$GNRMC`` sentences the modem reports while its GNSS receiver runs.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional, Union

__all__ = [
    "GnssInfo",
    "LocationCollector",
    "parse_rmc",
    "extract_trailing_number",
    "parse_signal_strength",
    "parse_cell_info",
    "parse_network_time",
]

Text = Union[str, bytes, bytearray]

_RMC_PREFIX = b"$GNRMC"
_STATUS_INDEX = 17
_DATE_FIELD = 9
_KNOTS_TO_MPS = 0.5144444
_CELL_PREFIX = "460,11,"
_TIMEZONE_HOURS = 8
_TRAILING_NUMBER = re.compile(r"([0-9]+)[^0-9]*\Z")


def _text(data: Text) -> str:
    if isinstance(data, (bytes, bytearray)):
        return bytes(data).decode("latin-1")
    return data


def _require_digits(value: str) -> str:
    if not value or not all("0" <= c <= "9" for c in value):
        raise ValueError(f"expected digits, got {value!r}")
    return value


@dataclass(frozen=True)
class GnssInfo:
    """A position fix.

    ``time`` is ``YYYYMMDDhhmmss`` in UTC; latitude and longitude are in
    degrees (south and west negative); speed is in metres per second.
    No altitude is reported, so ``altitude`` is always 0.
    """

    time: str
    latitude: float
    longitude: float
    speed: float
    altitude: float = 0.0


def _minutes(whole: str, fraction: str) -> float:
    value = float(int(_require_digits(whole)))
    scale = 0.1
    for digit in _require_digits(fraction):
        value += int(digit) * scale
        scale *= 0.1
    return value


def _latitude(field: str, hemisphere: str) -> float:
    if len(field) < 6 or field[4] != ".":
        raise ValueError(f"malformed latitude {field!r}")
    degrees = float(int(_require_digits(field[:2])))
    minutes = _minutes(field[2:4], field[5:])
    sign = 1.0 if hemisphere[:1] == "N" else -1.0
    return (degrees + minutes / 60.0) * sign


def _longitude(field: str, hemisphere: str) -> float:
    if len(field) < 7 or field[5] != ".":
        raise ValueError(f"malformed longitude {field!r}")
    degrees = float(int(_require_digits(field[:3])))
    _require_digits(field[3])
    # Only the units digit of the whole minutes is counted, as the device
    # firmware does.
    minutes = _minutes(field[4], field[6:])
    sign = 1.0 if hemisphere[:1] == "E" else -1.0
    return (degrees + minutes / 60.0) * sign


def _speed(field: str) -> float:
    whole, dot, fraction = field.partition(".")
    if not dot:
        raise ValueError(f"malformed speed {field!r}")
    knots = float(int(_require_digits(whole))) if whole else 0.0
    scale = 0.1
    for digit in _require_digits(fraction):
        knots += int(digit) * scale
        scale *= 0.1
    return knots * _KNOTS_TO_MPS


def parse_rmc(line: Text) -> GnssInfo:
    """Parse a ``$GNRMC`` sentence into a :class:`GnssInfo`."""
    fields = _text(line).split(",")
    if len(fields) <= _DATE_FIELD:
        raise ValueError("RMC sentence has too few fields")
    clock = fields[1][:6]
    date = fields[_DATE_FIELD][:6]
    if len(clock) < 6 or len(date) < 6:
        raise ValueError("RMC sentence lacks a time or a date")
    time = "20" + date[4:6] + date[2:4] + date[0:2] + clock
    return GnssInfo(
        time=time,
        latitude=_latitude(fields[3], fields[4]),
        longitude=_longitude(fields[5], fields[6]),
        speed=_speed(fields[7]),
    )


def _has_fix(line: bytes) -> bool:
    if len(line) <= _STATUS_INDEX or line[_STATUS_INDEX] != ord("A"):
        return False
    parts = line.split(b",", _DATE_FIELD)
    if len(parts) <= _DATE_FIELD:
        return False
    return not parts[_DATE_FIELD].startswith(b",")


class LocationCollector:
    """Collect one valid ``$GNRMC`` line from the modem's byte stream.

    Once a line with a fix and a date has been captured, further bytes are
    ignored until it is taken.
    """

    def __init__(self) -> None:
        self._buffer = bytearray()
        self._line: Optional[bytes] = None

    @property
    def ready(self) -> bool:
        """True while a captured line waits to be taken."""
        return self._line is not None

    def feed(self, ch: int) -> bool:
        """Take one byte; return True when it completes a valid line."""
        if not 0 <= ch <= 0xFF:
            raise ValueError("a received byte must be in range 0..255")
        if self._line is not None:
            return False
        index = len(self._buffer)
        if index < len(_RMC_PREFIX) and ch != _RMC_PREFIX[index]:
            self._buffer.clear()
            return False
        self._buffer.append(ch)
        if ch != ord("\n"):
            return False
        line = bytes(self._buffer)
        self._buffer.clear()
        if _has_fix(line):
            self._line = line
            return True
        return False

    def take(self) -> Optional[GnssInfo]:
        """Return the captured fix and release it, or None if there is none."""
        if self._line is None:
            return None
        line, self._line = self._line, None
        return parse_rmc(line)


def extract_trailing_number(response: Text) -> str:
    """Return the last run of digits that precedes ``OK`` in ``response``."""
    text = _text(response)
    end = text.find("OK")
    if end < 0:
        raise ValueError("response holds no OK")
    match = _TRAILING_NUMBER.search(text[:end])
    if match is None:
        raise ValueError("response holds no number before OK")
    return match.group(1)


def parse_signal_strength(response: Text) -> int:
    """Return the signal strength of a ``+CSQ:`` reply as a percentage.

    The raw value is scaled by 100/31 in 8-bit arithmetic; 0 means no
    signal.
    """
    text = _text(response)
    start = text.find("+CSQ: ")
    if start < 0:
        raise ValueError("response holds no +CSQ")
    value = 0
    for ch in text[start + 5 :]:
        if ch == ",":
            break
        if "0" <= ch <= "9":
            value = (value * 10 + int(ch)) & 0xFF
    if value:
        value = (100 * value // 31) & 0xFF
    return value


def _after_commas(text: str, pos: int, count: int) -> int:
    for _ in range(count):
        found = text.find(",", pos)
        if found < 0:
            raise ValueError("cell information is truncated")
        pos = found + 1
    return pos


def _quoted(text: str, pos: int) -> tuple[str, int]:
    end = text.find('"', pos)
    if end < 0:
        raise ValueError("cell information is truncated")
    return text[pos:end], end


def parse_cell_info(response: Text) -> str:
    """Return ``460,11,<cell id>,<tac>`` from a ``*MENGINFOSC:`` reply."""
    text = _text(response)
    start = text.find("*MENGINFOSC:")
    if start < 0:
        raise ValueError("response holds no *MENGINFOSC")
    pos = _after_commas(text, start, 3)
    cell, pos = _quoted(text, pos + 1)
    pos = _after_commas(text, pos, 6)
    tac, _ = _quoted(text, pos + 1)
    return f"{_CELL_PREFIX}{cell},{tac}"


def _number(field: str) -> int:
    return int(_require_digits(field.strip()))


def _field(text: str, separator: str) -> tuple[int, str]:
    end = text.find(separator)
    if end < 0:
        raise ValueError("network time is truncated")
    return _number(text[:end]), text[end + 1 :]


def parse_network_time(response: Text) -> tuple[int, int, int, int, int, int]:
    """Parse a ``+CCLK:`` reply into local (UTC+8) date and time.

    Returns ``(year, month, day, hour, minute, second)``.  The year is as
    the modem sent it.  When adding eight hours passes midnight the day is
    advanced with the firmware's rules, but the month is reported as
    received.
    """
    text = _text(response)
    marker = text.find("LK:")
    if marker < 0:
        raise ValueError("response holds no clock")
    rest = text[marker + 3 :]
    year, rest = _field(rest, "/")
    month, rest = _field(rest, "/")
    day, rest = _field(rest, ",")
    hour, rest = _field(rest, ":")
    minute, rest = _field(rest, ":")
    second = _number(rest.split("G", 1)[0])

    hour += _TIMEZONE_HOURS
    current_month = month
    if hour > 24:
        hour -= 24
        day += 1
        if day > 28 and current_month == 2:
            if year % 4 == 0:
                day += 1
            else:
                day = 1
                current_month += 1
        if day > 30:
            if current_month in (1, 3, 5, 7, 8, 10, 12):
                day += 1
            elif current_month in (4, 6, 9, 11):
                day = 1
                current_month += 1
    return year, month, day, hour, minute, second