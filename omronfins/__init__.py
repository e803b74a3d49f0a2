"""Omron FINS protocol client over UDP and FINS/TCP, with retry and reconnect wrappers."""

__version__ = "0.1.0"