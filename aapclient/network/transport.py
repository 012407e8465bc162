"""Blocking byte-stream transports to the bundle node."""

import socket
from abc import ABC, abstractmethod
from typing import Optional

from ..errors import TransportInUseError
from ..utils import get_logger


logger = get_logger(__name__)


class Transport(ABC):
    """
    Ordered, reliable, connection-oriented byte channel.

    A transport belongs to exactly one session; ``attach`` records the owner
    and refuses a second one.
    """

    owner = None

    @abstractmethod
    def read(self, max_bytes: int) -> bytes:
        """Block until data is available; empty bytes means end of stream."""
        raise NotImplementedError

    @abstractmethod
    def write(self, data: bytes) -> None:
        """Write all of ``data``."""
        raise NotImplementedError

    @abstractmethod
    def close(self) -> None:
        raise NotImplementedError

    def attach(self, owner) -> None:
        if self.owner is not None and self.owner is not owner:
            raise TransportInUseError(f"Transport already owned by {self.owner!r}")
        self.owner = owner


class SocketTransport(Transport):
    """Transport over a connected stream socket (Unix domain or TCP)."""

    def __init__(self, sock: socket.socket, description: Optional[str] = None):
        """
        Initialize socket transport.

        Args:
            sock: Connected stream socket, owned by the transport from now on
            description: Peer description used in logs
        """
        self.sock = sock
        self.description = description or repr(sock)
        self.closed = False

    @classmethod
    def connect_unix(cls, path: str, timeout: Optional[float] = None) -> 'SocketTransport':
        """
        Connect to a node's AAP Unix domain socket.

        Args:
            path: Socket file path
            timeout: Optional socket timeout in seconds

        Returns:
            Connected transport
        """
        logger.info("Connecting to AAP socket", path=path)
        sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
        sock.settimeout(timeout)
        try:
            sock.connect(path)
        except OSError:
            sock.close()
            raise
        return cls(sock, description=path)

    @classmethod
    def connect_tcp(cls, host: str, port: int, timeout: Optional[float] = None) -> 'SocketTransport':
        """
        Connect to a node's AAP TCP port.

        Args:
            host: Node host
            port: AAP port
            timeout: Optional socket timeout in seconds

        Returns:
            Connected transport
        """
        logger.info("Connecting to AAP port", host=host, port=port)
        sock = socket.create_connection((host, port), timeout=timeout)
        return cls(sock, description=f"{host}:{port}")

    def read(self, max_bytes: int) -> bytes:
        if self.closed:
            return b''
        try:
            return self.sock.recv(max_bytes)
        except OSError:
            # Closing the socket from another thread interrupts a blocked recv
            if self.closed:
                return b''
            raise

    def write(self, data: bytes) -> None:
        self.sock.sendall(data)

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        try:
            self.sock.shutdown(socket.SHUT_RDWR)
        except OSError:
            # Peer may already be gone
            pass
        self.sock.close()
        logger.debug("Transport closed", peer=self.description)

    def __repr__(self) -> str:
        return f"SocketTransport({self.description})"
