"""Driver for a Wi-Fi module that is controlled with AT commands.

The module is reached over a serial line that the caller opens at
115200 baud.  The driver writes through a ``write`` callable and switches
the module's supply through ``set_power``.  Every byte the serial line
receives must be handed to :meth:`WifiModule.on_receive`.  That method
collects command replies, watches for the module's ``ready`` message after
power-up, and decodes frames sent by the server.
"""

from __future__ import annotations

import time
from contextlib import suppress
from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Callable, Optional, Union

from modemlink.addressing import check_ip, check_port
from modemlink.frame import FrameDecoder, encode_frame

__all__ = ["WifiMode", "WifiError", "Mac", "WifiModule"]

Text = Union[str, bytes, bytearray]

_MODE_SET = b"AT+CWMODE="
_AUTO_CONNECT = b"AT+CWAUTOCONN=1\r\n"
_LINK_AP = b"AT+WJAP="
_LINK_AP_QUERY = b"AT+WJAP=?\r"
_QUIT_AP = b"AT+WJAPQ\r"
_DHCP = b"AT+WDHCP=ON\r"
_SEND_MODE_NORMAL = b"+++"
_SEND_MODE_RAW = b"AT+CIPSENDRAW\r"
_START = b"AT+CIPSTART="
_CLOSE = b"AT+CIPSTOP=1\r"
_PING = b"AT+PING="
_DOMAIN_RESOLVE = b"AT+CIPDOMAIN="
_STA_IP = b"AT+CIPSTA="
_SET_AP = b"AT+CWSAP="
_GET_MAC = b"AT+WMAC?\r\n"
_ECHO_OFF = b"AT+UARTE=OFF\r"
_EVENTS_OFF = b"AT+CIPEVENT=OFF\r"

_OK_STOP = b"OK"
_ERR_STOP = b"ERROR"
_BOOT_MESSAGE = b"ready"
_DHCP_ADDRESS = b"0.0.0.0"

_RESPONSE_CAPACITY = 400
_LINK_COMMAND_CAPACITY = 40
_SEND_BUFFER = 400
_MAC_CAPACITY = 18
_MAC_PAD = "000"
_MAX_PORT_CHARS = 5
_MAC_WATCHDOG_FEEDS = 3000


class WifiMode(IntEnum):
    """Operating modes of the module."""

    STATION = 1
    AP = 2
    STATION_AP = 3


class WifiError(Exception):
    """A Wi-Fi command failed.

    ``code`` is 1 when the module answered ``ERROR`` or an argument was
    rejected, and 2 when the module did not answer or is busy sending.
    ``response`` holds what the module sent back.
    """

    ERROR = 1
    NO_RESPONSE = 2
    BUSY = 2

    def __init__(self, code: int, message: str, response: bytes = b"") -> None:
        super().__init__(message)
        self.code = code
        self.response = response


@dataclass(frozen=True)
class Mac:
    """MAC addresses of the station and access-point interfaces."""

    sta_mac: str = ""
    ap_mac: str = ""


class _ReceiveMode(IntEnum):
    DATA = 0
    COMMAND = 1
    REBOOT = 2


class _Outcome(IntEnum):
    OK = 1
    ERROR = 2


def _as_bytes(value: Text) -> bytes:
    if isinstance(value, str):
        return value.encode("latin-1")
    return bytes(value)


def _until_nul(value: Text) -> bytes:
    return _as_bytes(value).split(b"\0", 1)[0]


class WifiModule:
    """A Wi-Fi module driven through AT commands."""

    def __init__(
        self,
        write: Callable[[bytes], Any],
        set_power: Callable[[bool], Any],
        sleep: Callable[[float], Any] = time.sleep,
        timeout: float = 5.0,
        poll_interval: float = 0.01,
        watchdog: Optional[Callable[[], Any]] = None,
    ) -> None:
        if poll_interval <= 0:
            raise ValueError("poll_interval must be positive")
        self._write = write
        self._set_power = set_power
        self._sleep = sleep
        self._poll_interval = poll_interval
        self._polls = max(1, int(round(timeout / poll_interval)))
        self._watchdog = watchdog or (lambda: None)
        self._frames = FrameDecoder()
        self._response = bytearray()
        self._outcome: Optional[_Outcome] = None
        self._ok_index = 0
        self._err_index = 0
        self._boot_index = 0
        self._receive_mode = _ReceiveMode.DATA
        self._booted = False
        self._mode_type = WifiMode.STATION
        self._server_connected = False
        self._ap_connected = False
        self._sending = False
        self._sta_mac = ""
        self._ap_mac = ""

    # -- state -----------------------------------------------------------

    def _clear_state(self) -> None:
        self._receive_mode = _ReceiveMode.DATA
        self._response.clear()
        self._server_connected = False
        self._ap_connected = False
        self._sending = False
        self._booted = False
        self._outcome = None

    def state(self) -> int:
        """Return 0 when unlinked, 1 when on an access point, 3 when also on a server."""
        return (int(self._server_connected) << 1) | int(self._ap_connected)

    # -- receiving -------------------------------------------------------

    def _return_check(self, ch: int) -> None:
        self._response.append(ch)
        if (
            self._ok_index == 0
            and ch != _OK_STOP[0]
            and self._err_index == 0
            and ch != _ERR_STOP[0]
        ):
            return
        if self._ok_index < len(_OK_STOP) and ch == _OK_STOP[self._ok_index]:
            self._ok_index += 1
        elif ch == _OK_STOP[0]:
            self._ok_index = 1
        if self._err_index < len(_ERR_STOP) and ch == _ERR_STOP[self._err_index]:
            self._err_index += 1
        elif ch == _ERR_STOP[0]:
            self._err_index = 1
        if self._ok_index == len(_OK_STOP):
            self._outcome = _Outcome.OK
        elif self._err_index == len(_ERR_STOP):
            self._outcome = _Outcome.ERROR

    def _boot_check(self, ch: int) -> bool:
        if ch == _BOOT_MESSAGE[0]:
            self._boot_index = 1
            return False
        if self._boot_index and ch == _BOOT_MESSAGE[self._boot_index]:
            self._boot_index += 1
            if self._boot_index == len(_BOOT_MESSAGE):
                self._boot_index = 0
                return True
            return False
        self._boot_index = 0
        return False

    def on_receive(self, ch: int) -> Optional[bytes]:
        """Handle one received byte; return a payload once a frame is complete."""
        if not 0 <= ch <= 0xFF:
            raise ValueError("a received byte must be in range 0..255")
        mode = self._receive_mode
        if mode is _ReceiveMode.DATA:
            return self._frames.feed(ch)
        if mode is _ReceiveMode.COMMAND:
            if len(self._response) < _RESPONSE_CAPACITY:
                self._return_check(ch)
        elif mode is _ReceiveMode.REBOOT:
            self._booted = self._boot_check(ch)
            if self._booted:
                self._receive_mode = _ReceiveMode.DATA
        return None

    # -- commands --------------------------------------------------------

    def send_command(self, cmd: Text) -> bytes:
        """Send a command and wait for ``OK`` or ``ERROR``.

        Returns the module's reply on ``OK``.  Raises WifiError with code 1
        on ``ERROR`` and code 2 when no answer arrives in time.
        """
        command = _as_bytes(cmd)
        self._response.clear()
        self._outcome = None
        self._ok_index = 0
        self._err_index = 0
        self._receive_mode = _ReceiveMode.COMMAND
        try:
            self._write(command)
            checks = 0
            while self._outcome is None:
                if checks >= self._polls:
                    raise WifiError(
                        WifiError.NO_RESPONSE,
                        "module did not answer",
                        bytes(self._response),
                    )
                self._watchdog()
                self._sleep(self._poll_interval)
                checks += 1
        finally:
            self._receive_mode = _ReceiveMode.DATA
        response = bytes(self._response)
        if self._outcome is _Outcome.ERROR:
            raise WifiError(WifiError.ERROR, "module answered ERROR", response)
        return response

    def _set_mode(self, mode: int) -> None:
        if not 1 <= mode <= 3:
            raise WifiError(WifiError.ERROR, "unknown mode")
        self.send_command(_MODE_SET + b"%d\r\n" % mode)

    def _force_mode(self, mode: WifiMode) -> None:
        while True:
            try:
                self._set_mode(mode)
                return
            except WifiError:
                continue

    def _configure_station_ip(self, ip: Text) -> None:
        with suppress(WifiError):
            if check_ip(ip) and not _until_nul(ip).startswith(_DHCP_ADDRESS):
                self.set_ip(ip)
            else:
                self.send_command(_DHCP)

    def init(self, mode: int, ssid: Text, password: Text, channel: int,
             ip: Text) -> None:
        """Power the module up and configure it for ``mode``.

        The mode command is repeated until the module accepts it.  An
        ``ip`` of ``0.0.0.0`` or an invalid address selects DHCP.  An
        unknown mode leaves the module waiting for its ``ready`` message.
        """
        self._clear_state()
        self._set_power(False)
        self._receive_mode = _ReceiveMode.REBOOT
        self.power(True)
        try:
            selected = WifiMode(mode)
        except ValueError:
            return
        self._force_mode(selected)
        if selected is WifiMode.STATION:
            self._mode_type = WifiMode.STATION
            with suppress(WifiError):
                self.send_command(_AUTO_CONNECT)
            self._configure_station_ip(ip)
        elif selected is WifiMode.AP:
            with suppress(WifiError):
                self.set_ap_params(ssid, password, channel)
            self._mode_type = WifiMode.AP
        else:
            with suppress(WifiError):
                self.set_ap_params(ssid, password, channel)
            self._mode_type = WifiMode.STATION_AP
            self._configure_station_ip(ip)
        self.reset()

    def reset(self) -> None:
        """Clear the link state and switch command echo and events off."""
        self._watchdog()
        self._clear_state()
        self._watchdog()
        with suppress(WifiError):
            self.send_command(_ECHO_OFF)
        self._watchdog()
        with suppress(WifiError):
            self.send_command(_EVENTS_OFF)

    def resolve_domain(self, domain: Text) -> bytes:
        """Resolve ``domain`` and return the module's reply."""
        return self.send_command(_DOMAIN_RESOLVE + b'"' + _until_nul(domain) + b'"\r\n')

    def ping(self, address: Text) -> bytes:
        """Ping ``address`` and return the module's reply."""
        return self.send_command(_PING + b'"' + _until_nul(address) + b'"\r\n')

    def get_mac(self) -> Optional[Mac]:
        """Query the module's MAC addresses for the current mode."""
        with suppress(WifiError):
            self.send_command(_GET_MAC)
        for _ in range(_MAC_WATCHDOG_FEEDS):
            self._watchdog()
        text = bytes(self._response).decode("latin-1")
        colon = text.find(":")
        if colon >= 0:
            end = text.find("\r", colon + 1)
            value = text[colon + 1 :] if end < 0 else text[colon + 1 : end]
            self._sta_mac = (_MAC_PAD + value)[: _MAC_CAPACITY - 1]
        if self._mode_type is WifiMode.STATION:
            return Mac(sta_mac=self._sta_mac)
        if self._mode_type is WifiMode.AP:
            return Mac(ap_mac=self._ap_mac)
        if self._mode_type is WifiMode.STATION_AP:
            return Mac(sta_mac=self._sta_mac, ap_mac=self._ap_mac)
        return None

    def link_to_ssid(self, ssid: Text, password: Text) -> None:
        """Join the access point ``ssid``; raise WifiError on failure."""
        command = _LINK_AP + _until_nul(ssid) + b"," + _until_nul(password) + b"\r"
        if len(command) >= _LINK_COMMAND_CAPACITY:
            raise ValueError("ssid and password are too long")
        try:
            self.send_command(command)
        except WifiError as exc:
            if exc.code == WifiError.NO_RESPONSE:
                with suppress(WifiError):
                    self.send_command(_LINK_AP_QUERY)
            if _OK_STOP not in bytes(self._response):
                raise
        self._ap_connected = True

    def quit_ssid(self) -> None:
        """Leave the access point."""
        self.send_command(_QUIT_AP)

    def connect_server(self, ip: Text, port: Text) -> None:
        """Open a TCP client connection to ``ip:port``.

        Raises WifiError with code 2 once sending has started and code 1
        for an invalid address or a refused connection.
        """
        if self._sending:
            raise WifiError(WifiError.BUSY, "module is in send mode")
        if not check_ip(ip):
            raise WifiError(WifiError.ERROR, "invalid IP address")
        if not check_port(port):
            raise WifiError(WifiError.ERROR, "invalid port")
        with suppress(WifiError):
            self.disconnect()
        command = (
            _START
            + b"1,tcp_client,"
            + _until_nul(ip)
            + b","
            + _until_nul(port)[:_MAX_PORT_CHARS]
            + b"\r"
        )
        self.send_command(command)

    def send(self, data: bytes, imsi: Text) -> None:
        """Send ``data`` in a frame to the server; this enters send mode."""
        frame = encode_frame(imsi, data)
        if len(frame) >= _SEND_BUFFER:
            raise ValueError("frame longer than 399 bytes")
        self._sending = True
        self._write(b"AT+CIPSEND=1,%d\r" % len(frame))
        self._write(frame)

    def set_ip(self, ip: Text) -> None:
        """Give the station interface the fixed address ``ip``."""
        if not check_ip(ip):
            raise WifiError(WifiError.ERROR, "invalid IP address")
        self.send_command(_STA_IP + b'"' + _until_nul(ip) + b'"\r\n')

    def disconnect(self) -> None:
        """Close the TCP connection."""
        self.send_command(_CLOSE)

    def set_send_mode(self, mode: int) -> None:
        """Select normal (0) or pass-through (1) sending."""
        if mode == 0:
            self.send_command(_SEND_MODE_NORMAL)
        elif mode == 1:
            self.send_command(_SEND_MODE_RAW)
        else:
            raise WifiError(WifiError.ERROR, "unknown send mode")

    def set_ap_params(self, ssid: Text, password: Text, channel: int) -> None:
        """Set the access point's SSID, password and channel."""
        command = (
            _SET_AP
            + b'"' + _until_nul(ssid) + b'","' + _until_nul(password) + b'",'
            + b"%d,4\r\n" % channel
        )
        self.send_command(command)

    def power(self, on: bool) -> None:
        """Switch the module's supply on or off."""
        self._set_power(bool(on))