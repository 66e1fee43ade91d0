"""A compact printf-style formatter for a serial console.

Supported directives: ``%d %i %u %o %b %x %X %p %c %s %f %n %%`` with the
flags ``- + space 0 #``, a field width, a precision and the length modifiers
``h``, ``l`` and ``L``.  A newline in the literal text is written as CR LF.
Hexadecimal digits are always upper case, and floating-point fractions are
truncated rather than rounded.
"""

from __future__ import annotations

import math
import operator
from dataclasses import dataclass
from enum import IntFlag
from typing import Any, Callable, Iterator, Optional, Sequence

__all__ = ["float_to_str", "format_string", "print_formatted"]


class _Flag(IntFlag):
    NONE = 0
    MINUS = 0x01
    PLUS = 0x02
    SPACE = 0x04
    ZERO = 0x08
    POUND = 0x10


_FLAG_CHARS = {
    "-": _Flag.MINUS,
    "+": _Flag.PLUS,
    " ": _Flag.SPACE,
    "0": _Flag.ZERO,
    "#": _Flag.POUND,
}
_DIGITS = "0123456789"
_LENGTH_MODIFIERS = "hlL"
_DEFAULT_FLOAT_PRECISION = 8
_FULL_FRACTION_SCALE = 100000000000000000


@dataclass(frozen=True)
class _Spec:
    flags: _Flag
    width: int
    precision: Optional[int]
    length: Optional[str]
    conversion: str

    def has(self, flag: _Flag) -> bool:
        return bool(self.flags & flag)


def float_to_str(value: float, precision: int) -> str:
    """Render a non-negative number as ``<int>.<fraction>``.

    The fraction keeps ``precision`` digits, truncated; a precision of 0
    keeps seventeen digits.  Trailing zeros of the truncated fraction are
    kept, and a zero fraction is written as ``.0``.
    """
    if precision < 0:
        raise ValueError("precision must not be negative")
    if not math.isfinite(value):
        raise ValueError("value must be finite")
    if value < 0:
        raise ValueError("value must not be negative")

    whole = int(value)
    fraction = value - whole
    if precision == 0:
        scaled = int(fraction * _FULL_FRACTION_SCALE)
    else:
        shifted = fraction
        for _ in range(precision):
            shifted *= 10
        scaled = int(shifted)
    if scaled == 0:
        return f"{whole}.0"

    leading_zeros = 0
    probe = fraction
    while probe < 1:
        probe *= 10
        leading_zeros += 1
    leading_zeros -= 1
    return f"{whole}.{'0' * leading_zeros}{scaled}"


def _parse_spec(fmt: str, pos: int) -> tuple[Optional[_Spec], int]:
    """Parse a directive starting just after ``%``; None if fmt ends early."""
    end = len(fmt)
    flags = _Flag.NONE
    while pos < end and fmt[pos] in _FLAG_CHARS:
        flags |= _FLAG_CHARS[fmt[pos]]
        pos += 1

    width = 0
    while pos < end and fmt[pos] in _DIGITS:
        width = width * 10 + int(fmt[pos])
        pos += 1

    precision: Optional[int] = None
    if pos < end and fmt[pos] == ".":
        pos += 1
        precision = 0
        while pos < end and fmt[pos] in _DIGITS:
            precision = precision * 10 + int(fmt[pos])
            pos += 1

    length: Optional[str] = None
    if pos < end and fmt[pos] in _LENGTH_MODIFIERS:
        # 'h' is accepted but has no effect.
        if fmt[pos] != "h":
            length = fmt[pos]
        pos += 1

    if pos >= end:
        return None, pos
    return _Spec(flags, width, precision, length, fmt[pos]), pos + 1


def _take(values: Iterator[Any]) -> Any:
    try:
        return next(values)
    except StopIteration:
        raise TypeError("not enough arguments for format string") from None


def _as_uint32(arg: Any) -> int:
    return operator.index(arg) & 0xFFFFFFFF


def _as_int32(arg: Any) -> int:
    raw = _as_uint32(arg)
    return raw - (1 << 32) if raw & 0x80000000 else raw


def _signed_field(body: str, negative: bool, spec: _Spec) -> str:
    if negative:
        sign = "-"
    elif spec.has(_Flag.PLUS):
        sign = "+"
    elif spec.has(_Flag.SPACE):
        sign = " "
    else:
        sign = ""
    pad = spec.width - (len(body) + len(sign))
    if spec.has(_Flag.ZERO):
        return sign + "0" * pad + body
    if not spec.has(_Flag.MINUS):
        return " " * pad + sign + body
    return sign + body + " " * pad


def _unsigned_field(digits: str, spec: _Spec) -> str:
    pad = spec.width - len(digits)
    if spec.has(_Flag.ZERO):
        return "0" * pad + digits
    if not spec.has(_Flag.MINUS):
        return " " * pad + digits
    return digits + " " * pad


def _hex_field(digits: str, spec: _Spec) -> str:
    prefix = "0x" if spec.has(_Flag.POUND) else ""
    if spec.has(_Flag.ZERO):
        # The prefix is not counted against the width when zero padding.
        return prefix + "0" * (spec.width - len(digits)) + digits
    pad = spec.width - (len(digits) + len(prefix))
    if not spec.has(_Flag.MINUS):
        return " " * pad + prefix + digits
    return prefix + digits + " " * pad


def _float_field(arg: Any, spec: _Spec) -> str:
    value = float(arg)
    if spec.precision is not None:
        precision = spec.precision
    elif spec.length is None:
        precision = _DEFAULT_FLOAT_PRECISION
    else:
        precision = 0
    body = float_to_str(abs(value), precision)
    return _signed_field(body, value < 0, spec)


def _string_field(arg: Any, spec: _Spec) -> str:
    if arg is None:
        return ""
    if not isinstance(arg, str):
        raise TypeError("%s requires a str argument")
    shown = arg[: spec.precision] if spec.precision else arg
    # Padding is measured against the full string, not the shown part.
    pad = spec.width - len(arg)
    if spec.has(_Flag.MINUS):
        return shown + " " * pad
    return " " * pad + shown


def _char_field(arg: Any) -> str:
    if isinstance(arg, str):
        if len(arg) != 1:
            raise TypeError("%c requires a single character")
        return arg
    return chr(operator.index(arg) & 0xFF)


def _convert(spec: _Spec, values: Iterator[Any]) -> str:
    conv = spec.conversion
    if conv in ("d", "i"):
        number = _as_int32(_take(values))
        return _signed_field(str(abs(number)), number < 0, spec)
    if conv == "f":
        return _float_field(_take(values), spec)
    if conv in ("x", "X"):
        return _hex_field(format(_as_uint32(_take(values)), "X"), spec)
    if conv == "o":
        return _unsigned_field(format(_as_uint32(_take(values)), "o"), spec)
    if conv == "b":
        return _unsigned_field(format(_as_uint32(_take(values)), "b"), spec)
    if conv == "p":
        return _unsigned_field(format(_as_uint32(_take(values)), "X"), spec)
    if conv == "u":
        return _unsigned_field(str(_as_uint32(_take(values))), spec)
    if conv == "c":
        return _char_field(_take(values))
    if conv == "s":
        return _string_field(_take(values), spec)
    return conv


def _render(fmt: str, args: Sequence[Any]) -> Iterator[str]:
    values = iter(args)
    count = 0
    pos = 0
    while pos < len(fmt):
        ch = fmt[pos]
        if ch != "%":
            piece = "\r\n" if ch == "\n" else ch
            pos += 1
        else:
            spec, pos = _parse_spec(fmt, pos + 1)
            if spec is None:
                break
            if spec.conversion == "n":
                _take(values).append(count)
                continue
            piece = _convert(spec, values)
        count += len(piece)
        yield piece


def format_string(fmt: str, *args: Any) -> str:
    """Format ``args`` according to ``fmt`` and return the text.

    A ``%n`` directive appends the number of characters produced so far to
    the list given as its argument.
    """
    return "".join(_render(fmt, args))


def print_formatted(out: Callable[[str], Any], fmt: str, *args: Any) -> int:
    """Format ``args``, pass each character to ``out`` and return the count."""
    count = 0
    for piece in _render(fmt, args):
        for ch in piece:
            out(ch)
            count += 1
    return count