"""Exception hierarchy for the AAP client."""

from typing import Optional


class AAPError(Exception):
    """Base class for all AAP client errors."""


class AAPConnectionError(AAPError):
    """The connection to the node is unusable."""


class ConnectionClosed(AAPConnectionError):
    """The transport reached end of stream or was closed."""


class SessionClosed(ConnectionClosed):
    """Operation attempted on a session that has been closed."""


class TransportError(AAPConnectionError):
    """I/O failure on the underlying transport."""


class TransportInUseError(AAPConnectionError):
    """A transport can be owned by a single session only."""


class ProtocolError(AAPError):
    """The node and the client disagree about the protocol."""


class UnknownFrameType(ProtocolError):
    """Frame tag is not part of the protocol."""

    def __init__(self, tag: int):
        super().__init__(f"Unknown frame type 0x{tag:02x}")
        self.tag = tag


class MalformedFrame(ProtocolError):
    """Frame content is inconsistent with protocol limits."""


class TruncatedFrame(ProtocolError):
    """Not enough bytes available yet to decode a complete frame."""

    def __init__(self, needed: int, available: int):
        super().__init__(f"Frame needs {needed} bytes, {available} available")
        self.needed = needed
        self.available = available


class UnexpectedFrame(ProtocolError):
    """A frame arrived that is not valid in the current session state."""

    def __init__(self, frame, expected: str):
        super().__init__(f"Unexpected {frame.frame_type.name} frame, expected {expected}")
        self.frame = frame


class InvalidStateError(ProtocolError):
    """Operation is not allowed in the current session state."""

    def __init__(self, operation: str, state):
        super().__init__(f"Cannot {operation} while session is {state.name}")
        self.operation = operation
        self.state = state


class ValidationError(AAPError, ValueError):
    """A value does not fit the wire format."""


class TooLongError(ValidationError):
    """A field is longer than its length prefix can express."""

    def __init__(self, field: str, length: int, limit: int):
        super().__init__(f"{field} is {length} bytes, maximum is {limit}")
        self.field = field
        self.length = length
        self.limit = limit


class SendError(AAPError):
    """The node refused a request."""


class SendRejected(SendError):
    """Node answered a send or cancel request with NACK."""

    def __init__(self, reason_code: int):
        super().__init__(f"Node rejected request (reason {reason_code})")
        self.reason_code = reason_code


class SessionFaulted(AAPError):
    """Session hit an unrecoverable error earlier and can no longer be used."""

    def __init__(self, cause: Optional[BaseException]):
        super().__init__(f"Session is faulted: {cause}")
        self.cause = cause
