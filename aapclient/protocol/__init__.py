"""AAP protocol implementation."""

from .frames import (
    Frame,
    FrameType,
    Register,
    Welcome,
    SendBundle,
    RecvBundle,
    SendConfirm,
    CancelBundle,
    Ping,
    Nack,
)
from .bundle import (
    EndpointIdentifier,
    OutgoingBundle,
    ReceivedBundle,
    MAX_EID_LENGTH,
    MAX_PAYLOAD_LENGTH,
)
from .parser import FrameParser, FrameBuffer
from .contact import (
    ConfigBundle,
    AddContact,
    ReplaceContact,
    DeleteContact,
    Contact,
    ContactDataRate,
)

__all__ = [
    "Frame",
    "FrameType",
    "Register",
    "Welcome",
    "SendBundle",
    "RecvBundle",
    "SendConfirm",
    "CancelBundle",
    "Ping",
    "Nack",
    "EndpointIdentifier",
    "OutgoingBundle",
    "ReceivedBundle",
    "MAX_EID_LENGTH",
    "MAX_PAYLOAD_LENGTH",
    "FrameParser",
    "FrameBuffer",
    "ConfigBundle",
    "AddContact",
    "ReplaceContact",
    "DeleteContact",
    "Contact",
    "ContactDataRate",
]
