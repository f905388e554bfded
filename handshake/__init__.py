"""Diffie-Hellman key agreement core for handshake protocols."""

__version__ = "0.1.0"
