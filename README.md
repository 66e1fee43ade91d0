# modemlink

Host-side helpers for serial modems that are driven by AT commands. The package
holds the byte-level frame codec, parsers for the replies of an NB-IoT module
with GNSS, a driver for a Wi-Fi module, address checks and a small printf-style
formatter. Everything works on plain bytes and callables, so it runs against a
real UART or a simulated one alike.

## Modules

- `modemlink.printk`: `format_string(fmt, *args)` returns formatted text,
  `print_formatted(out, fmt, *args)` passes each character to `out` and returns
  the count, and `float_to_str(value, precision)` renders a non-negative number
  with a truncated fraction. Supported directives are `%d %i %u %o %b %x %X %p %c %s %f %n %%`,
  with the flags `- + space 0 #`, a field width, a precision and the length
  modifiers `h`, `l`, `L`. A `\n` in the format is written as CR LF, hex digits
  are upper case, and `%n` appends the count so far to the list it is given.
- `modemlink.frame`: the frame
  `"V!" + IMSI(15) + length(2, big endian) + data + CRC16(2, big endian) + "S$"`.
  It provides `crc16` (poly 0xA001, init 0xFFFF), `encode_frame(imsi, data)`, and
  two byte-at-a-time decoders. `FrameDecoder.feed` returns the payload of a valid
  frame. `TransparentDecoder.feed` returns the payload of a
  `+ESONMI=0,<len>,<data>` notification. Both have `reset()`.
- `modemlink.responses`: parsers for NB-IoT module replies.
  `parse_rmc` turns a `$GNRMC` sentence into a `GnssInfo` (time, latitude,
  longitude, speed in m/s, altitude always 0). `LocationCollector` captures one
  valid sentence from a byte stream (`feed`, `take`, `ready`). The other
  parsers are `extract_trailing_number` (IMEI/IMSI before `OK`),
  `parse_signal_strength` (`+CSQ:` as a percentage) and `parse_cell_info`
  (`460,11,<cell id>,<tac>`). `parse_network_time` reads `+CCLK:` and returns
  `(year, month, day, hour, minute, second)` shifted to UTC+8.
- `modemlink.addressing`: `check_ip`, `check_port`, `check_mac`, following the
  Wi-Fi module firmware's rules. They accept `str` or bytes.
- `modemlink.wifi`: `WifiModule` drives the Wi-Fi module. It is built with a
  `write(bytes)` callable and a `set_power(bool)` callable. Optional arguments
  are `sleep`, `timeout` (seconds, default 5.0), `poll_interval` (default 0.01)
  and a `watchdog` callable. Every received byte goes to `on_receive`, which
  returns a payload when a server frame is complete. Commands raise `WifiError`,
  whose `code` is 1 for `ERROR` or a rejected argument and 2 for no answer or
  busy, and whose `response` holds the reply. Also defined are `WifiMode`
  (`STATION`, `AP`, `STATION_AP`) and `Mac` (`sta_mac`, `ap_mac`).

## Examples

```python
from modemlink.frame import encode_frame, FrameDecoder

frame = encode_frame(b"000000000000000", b"hello")

decoder = FrameDecoder()
payload = None
for byte in frame:
    result = decoder.feed(byte)
    if result is not None:
        payload = result
assert payload == b"hello"
```

```python
from modemlink.printk import format_string

format_string("a=%06d", 1234)   # 'a=001234'
format_string("%-6d|", 1234)    # '1234  |'
```

```python
from modemlink.addressing import check_ip, check_port, check_mac

check_ip("192.168.1.10")         # True
check_port("70000")              # False
check_mac("12:34:56:78:9a:bc")   # True
```

## What the package does not do

The package has no driver for the NB-IoT cellular module. It can parse that
module's replies and build and decode its frames. Nothing here sends the AT
command sequences for initialisation, attaching to the base station, opening TCP
links or switching GNSS on. The package opens no serial port itself, and it has
no command-line program.

## Tests

```
pip install .[test]
pytest
```