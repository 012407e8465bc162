"""AAP frame type definitions."""

from enum import IntEnum
from dataclasses import dataclass


class FrameType(IntEnum):
    """AAP frame type tags."""
    REGISTER = 0x01
    WELCOME = 0x02
    SENDBUNDLE = 0x03
    RECVBUNDLE = 0x04
    SENDCONFIRM = 0x05
    CANCELBUNDLE = 0x06
    PING = 0x07
    NACK = 0x08


class Frame:
    """Base class for AAP frames."""
    frame_type: FrameType = None


@dataclass(frozen=True)
class Register(Frame):
    """Agent registration request."""
    agent_id: str

    frame_type = FrameType.REGISTER


@dataclass(frozen=True)
class Welcome(Frame):
    """Handshake answer carrying the node EID."""
    node_eid: str

    frame_type = FrameType.WELCOME


@dataclass(frozen=True)
class SendBundle(Frame):
    """Bundle transmission request."""
    destination: str
    payload: bytes

    frame_type = FrameType.SENDBUNDLE


@dataclass(frozen=True)
class RecvBundle(Frame):
    """Bundle delivered to the agent."""
    source: str
    payload: bytes

    frame_type = FrameType.RECVBUNDLE


@dataclass(frozen=True)
class SendConfirm(Frame):
    """Positive answer to a send or cancel request."""

    frame_type = FrameType.SENDCONFIRM


@dataclass(frozen=True)
class CancelBundle(Frame):
    """Request to cancel bundles queued for a destination."""
    destination: str

    frame_type = FrameType.CANCELBUNDLE


@dataclass(frozen=True)
class Ping(Frame):
    """Connection liveliness check."""

    frame_type = FrameType.PING


@dataclass(frozen=True)
class Nack(Frame):
    """Negative answer to a send or cancel request."""
    reason_code: int

    frame_type = FrameType.NACK

    def __post_init__(self):
        if not 0 <= self.reason_code <= 0xFF:
            raise ValueError(f"Reason code must be 0-255, got {self.reason_code}")
