"""Client library for the DTN Application Agent Protocol (AAP)."""

from .session import (
    Session,
    SessionState,
    connect,
    connect_unix,
    connect_tcp,
    connect_from_config,
)
from .config import Config
from .errors import (
    AAPError,
    AAPConnectionError,
    ConnectionClosed,
    SessionClosed,
    TransportError,
    TransportInUseError,
    ProtocolError,
    UnknownFrameType,
    MalformedFrame,
    TruncatedFrame,
    UnexpectedFrame,
    InvalidStateError,
    ValidationError,
    TooLongError,
    SendError,
    SendRejected,
    SessionFaulted,
)
from .network import Transport, SocketTransport
from .protocol import EndpointIdentifier, ReceivedBundle

__version__ = "0.1.0"

__all__ = [
    "Session",
    "SessionState",
    "connect",
    "connect_unix",
    "connect_tcp",
    "connect_from_config",
    "Config",
    "AAPError",
    "AAPConnectionError",
    "ConnectionClosed",
    "SessionClosed",
    "TransportError",
    "TransportInUseError",
    "ProtocolError",
    "UnknownFrameType",
    "MalformedFrame",
    "TruncatedFrame",
    "UnexpectedFrame",
    "InvalidStateError",
    "ValidationError",
    "TooLongError",
    "SendError",
    "SendRejected",
    "SessionFaulted",
    "Transport",
    "SocketTransport",
    "EndpointIdentifier",
    "ReceivedBundle",
]
