"""Endpoint identifiers and bundle value types."""

from dataclasses import dataclass
from typing import NamedTuple, Union

from ..errors import TooLongError

# Bounded by the 2-byte identifier and 4-byte payload length prefixes
MAX_EID_LENGTH = 0xFFFF
MAX_PAYLOAD_LENGTH = 0xFFFFFFFF


def check_string_length(field: str, value: str) -> bytes:
    """
    Encode a string field and check it fits a 2-byte length prefix.

    Args:
        field: Field name used in the error message
        value: String to check

    Returns:
        UTF-8 encoded value
    """
    encoded = value.encode('utf-8')
    if len(encoded) > MAX_EID_LENGTH:
        raise TooLongError(field, len(encoded), MAX_EID_LENGTH)
    return encoded


class EndpointIdentifier(str):
    """
    DTN endpoint identifier such as ``dtn://node1/agent`` or ``ipn:1.0``.

    Only the wire bound is checked; URI syntax is left to the node.
    """

    def __new__(cls, value: str) -> 'EndpointIdentifier':
        if isinstance(value, EndpointIdentifier):
            return value
        if not isinstance(value, str):
            raise TypeError(f"Endpoint identifier must be a string, got {type(value).__name__}")
        check_string_length("endpoint identifier", value)
        return super().__new__(cls, value)

    @property
    def scheme(self) -> str:
        return self.split(':', 1)[0]

    def for_agent(self, agent_id: str) -> 'EndpointIdentifier':
        """
        Build the endpoint of an agent registered on this node.

        ``dtn://node1/`` + ``chat`` gives ``dtn://node1/chat``; for ``ipn``
        endpoints the service number is replaced, ``ipn:1.0`` + ``7`` gives
        ``ipn:1.7``.
        """
        if self.scheme == 'ipn':
            node_number = self[4:].split('.', 1)[0]
            return EndpointIdentifier(f"ipn:{node_number}.{agent_id}")
        return EndpointIdentifier(f"{self}{agent_id}")

    def __repr__(self) -> str:
        return f"EndpointIdentifier({str.__repr__(self)})"


EIDLike = Union[str, EndpointIdentifier]


@dataclass(frozen=True)
class OutgoingBundle:
    """Bundle handed to the node for delivery."""
    destination: EndpointIdentifier
    payload: bytes

    def __post_init__(self):
        # Frozen dataclass, so normalised values go through object.__setattr__
        object.__setattr__(self, 'destination', EndpointIdentifier(self.destination))
        payload = bytes(self.payload)
        if len(payload) > MAX_PAYLOAD_LENGTH:
            raise TooLongError("payload", len(payload), MAX_PAYLOAD_LENGTH)
        object.__setattr__(self, 'payload', payload)


class ReceivedBundle(NamedTuple):
    """Bundle delivered by the node to this agent."""
    source: EndpointIdentifier
    payload: bytes
