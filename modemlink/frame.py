"""Framing used between the board and its server.

A frame is laid out as::

    "V!" | IMSI (15 bytes) | payload length (2 bytes, big endian)
         | payload | CRC-16 (2 bytes, big endian) | "S$"

The CRC covers the IMSI, the length field and the payload.  It is the
reflected CRC-16 with polynomial 0xA001 and initial value 0xFFFF.

Two byte-at-a-time decoders are provided.  One reassembles such frames.
The other extracts raw payloads from the modem's ``+ESONMI=0,<len>,<data>``
notifications.
"""

from __future__ import annotations

from typing import Optional, Union

__all__ = [
    "FRAME_HEAD",
    "FRAME_TAIL",
    "IMSI_LENGTH",
    "crc16",
    "encode_frame",
    "FrameDecoder",
    "TransparentDecoder",
]

FRAME_HEAD = b"V!"
FRAME_TAIL = b"S$"
IMSI_LENGTH = 15
_HEADER_LENGTH = len(FRAME_HEAD) + IMSI_LENGTH + 2
_OVERHEAD = _HEADER_LENGTH + 2 + len(FRAME_TAIL)
_MAX_PAYLOAD = 0xFFFF
_NOTIFY_PREFIX = b"+ESONMI=0,"


def crc16(data: bytes) -> int:
    """Return the CRC-16 (poly 0xA001, init 0xFFFF) of ``data``."""
    crc = 0xFFFF
    for byte in data:
        crc ^= byte
        for _ in range(8):
            carry = crc & 1
            crc >>= 1
            if carry:
                crc ^= 0xA001
    return crc


def _imsi_field(imsi: Union[str, bytes]) -> bytes:
    raw = imsi.encode("ascii") if isinstance(imsi, str) else bytes(imsi)
    # Copy up to the first NUL, at most 15 bytes, and pad with zeros.
    raw = raw.split(b"\0", 1)[0][:IMSI_LENGTH]
    return raw.ljust(IMSI_LENGTH, b"\0")


def encode_frame(imsi: Union[str, bytes], data: bytes) -> bytes:
    """Build a complete frame carrying ``data`` on behalf of ``imsi``."""
    payload = bytes(data)
    if len(payload) > _MAX_PAYLOAD:
        raise ValueError("payload longer than 65535 bytes")
    body = _imsi_field(imsi) + len(payload).to_bytes(2, "big") + payload
    return FRAME_HEAD + body + crc16(body).to_bytes(2, "big") + FRAME_TAIL


def _check_byte(ch: int) -> int:
    if not 0 <= ch <= 0xFF:
        raise ValueError("a received byte must be in range 0..255")
    return ch


class FrameDecoder:
    """Reassemble frames from a byte stream, one byte at a time.

    A byte that does not fit the frame head, a wrong tail or a wrong CRC
    discards the frame in progress.  A frame whose length field is zero is
    never reported as complete.
    """

    def __init__(self) -> None:
        self._buffer = bytearray()
        self._length = 0

    def reset(self) -> None:
        """Forget any frame in progress."""
        self._buffer.clear()
        self._length = 0

    def feed(self, ch: int) -> Optional[bytes]:
        """Take one byte; return the payload once a valid frame is complete."""
        _check_byte(ch)
        index = len(self._buffer)
        if index < len(FRAME_HEAD) and ch != FRAME_HEAD[index]:
            self.reset()
            return None

        self._buffer.append(ch)
        index += 1
        if index == _HEADER_LENGTH:
            self._length = int.from_bytes(self._buffer[17:19], "big")

        if self._length == 0 or index < self._length + _OVERHEAD:
            return None

        buf = self._buffer
        length = self._length
        body = bytes(buf[2 : length + _HEADER_LENGTH])
        received_crc = bytes(buf[length + 19 : length + 21])
        tail = bytes(buf[index - 2 : index])
        self.reset()
        if tail != FRAME_TAIL or received_crc != crc16(body).to_bytes(2, "big"):
            return None
        return body[IMSI_LENGTH + 2 :]


class TransparentDecoder:
    """Extract payloads from ``+ESONMI=0,<len>,<data>`` notifications.

    The payload is reported when the byte following its last byte arrives;
    that byte is consumed and not examined further.
    """

    def __init__(self) -> None:
        self._matched = 0
        self._in_length = False
        self._in_data = False
        self._length = 0
        self._data = bytearray()

    def reset(self) -> None:
        """Forget any notification in progress."""
        self._matched = 0
        self._in_length = False
        self._in_data = False
        self._length = 0
        self._data.clear()

    def feed(self, ch: int) -> Optional[bytes]:
        """Take one byte; return the payload once a notification is complete."""
        _check_byte(ch)
        if self._in_data:
            if len(self._data) < self._length:
                self._data.append(ch)
                return None
            payload = bytes(self._data)
            self.reset()
            return payload

        if self._in_length:
            if ch == ord(","):
                self._in_length = False
                self._in_data = True
                self._data.clear()
            else:
                self._length = (self._length * 10 + ch - ord("0")) & 0xFFFF
            return None

        if ch == _NOTIFY_PREFIX[self._matched]:
            self._matched += 1
            if self._matched == len(_NOTIFY_PREFIX):
                self._matched = 0
                self._in_length = True
                self._length = 0
        else:
            self._matched = 0
        return None