"""Frame codec, modem reply parsers, a Wi-Fi AT-command driver and formatting helpers."""

__version__ = "0.1.0"
__all__ = ["addressing", "frame", "printk", "responses", "wifi"]