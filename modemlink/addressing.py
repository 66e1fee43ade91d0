"""Validation of the addresses handed to the Wi-Fi module.

The rules follow the module's firmware.  Each check also accepts bytes,
and text ends at the first NUL as it would in a C string.
"""

from __future__ import annotations

from typing import Union

__all__ = ["check_ip", "check_port", "check_mac"]

Text = Union[str, bytes, bytearray]

_MAX_IP_CHARS = 15
_MAX_PORT_CHARS = 5
_MAX_PORT = 65535
_IP_BLOCKS = 4
_MAX_BLOCK_DIGITS = 3
_MAC_LENGTH = 17
_LOWER_HEX = "0123456789abcdef"


def _text(value: Text) -> str:
    if isinstance(value, (bytes, bytearray)):
        value = bytes(value).decode("latin-1")
    elif not isinstance(value, str):
        raise TypeError("expected str or bytes")
    return value.split("\0", 1)[0]


def check_ip(ip: Text) -> bool:
    """Return whether ``ip`` is acceptable as ``xxx.xxx.xxx.xxx``.

    At most 15 characters of digits and dots.  Every block that is closed by
    a dot must hold one to three digits.  Each block must come to at most
    255, counted in 16-bit arithmetic as the firmware does.  Fewer than four
    blocks are accepted.
    """
    text = _text(ip)
    if len(text) > _MAX_IP_CHARS:
        return False
    blocks = [0] * _IP_BLOCKS
    block = 0
    digits = 0
    for ch in text:
        if ch == ".":
            if digits == 0 or digits > _MAX_BLOCK_DIGITS:
                return False
            block += 1
            if block >= _IP_BLOCKS:
                return False
            digits = 0
        elif "0" <= ch <= "9":
            blocks[block] = (blocks[block] * 10 + int(ch)) & 0xFFFF
            digits += 1
        else:
            return False
    return all(value < 256 for value in blocks)


def check_port(port: Text) -> bool:
    """Return whether ``port`` is a decimal port number up to 65535.

    Only the first five characters are examined; an empty port is accepted.
    """
    number = 0
    for ch in _text(port)[:_MAX_PORT_CHARS]:
        if not "0" <= ch <= "9":
            return False
        number = number * 10 + int(ch)
    return number <= _MAX_PORT


def check_mac(mac: Text) -> bool:
    """Return whether ``mac`` starts with ``hh:hh:hh:hh:hh:hh`` in lower case."""
    text = _text(mac)
    if len(text) < _MAC_LENGTH:
        return False
    for position, ch in enumerate(text[:_MAC_LENGTH]):
        if (position + 1) % 3 == 0:
            if ch != ":":
                return False
        elif ch not in _LOWER_HEX:
            return False
    return True