"""Transports to the bundle node."""

from .transport import Transport, SocketTransport

__all__ = [
    "Transport",
    "SocketTransport",
]
