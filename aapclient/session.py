"""AAP session: handshake and bundle request/response state machine."""

import threading
from contextlib import contextmanager
from enum import Enum
from typing import Optional

from .config import Config
from .errors import (
    AAPError,
    ConnectionClosed,
    InvalidStateError,
    SendRejected,
    SessionClosed,
    SessionFaulted,
    TransportError,
    UnexpectedFrame,
    ValidationError,
)
from .network import SocketTransport, Transport
from .protocol import (
    CancelBundle,
    ConfigBundle,
    EndpointIdentifier,
    Frame,
    FrameBuffer,
    FrameParser,
    MAX_PAYLOAD_LENGTH,
    Nack,
    OutgoingBundle,
    Ping,
    ReceivedBundle,
    RecvBundle,
    Register,
    SendBundle,
    SendConfirm,
    Welcome,
)
from .protocol.bundle import check_string_length
from .utils import get_logger

# Agent on every ud3tn node that accepts contact configuration
CONFIG_AGENT_ID = "config"


class SessionState(Enum):
    """Session lifecycle states."""
    CONNECTING = "connecting"
    AWAITING_WELCOME = "awaiting_welcome"
    READY = "ready"
    AWAITING_CONFIRM = "awaiting_confirm"
    AWAITING_BUNDLE = "awaiting_bundle"
    CLOSED = "closed"
    FAULTED = "faulted"


class Session:
    """
    Registered agent on a bundle node.

    The session owns its transport. Requests are not pipelined: each send or
    cancel waits for the node's answer before the next request may start, and
    an operation attempted while another one is in flight is refused.

    Use ``connect`` (or ``connect_unix`` / ``connect_tcp``) to obtain a ready
    session rather than calling ``handshake`` directly.
    """

    def __init__(self,
                 transport: Transport,
                 read_size: int = 4096,
                 max_payload_size: int = MAX_PAYLOAD_LENGTH):
        """
        Initialize session.

        Args:
            transport: Connected transport, owned by this session from now on
            read_size: Bytes requested per transport read
            max_payload_size: Largest bundle payload accepted from the node
        """
        transport.attach(self)
        self.transport = transport
        self.read_size = read_size
        self.frames = FrameBuffer(max_payload=max_payload_size)
        self.logger = get_logger(__name__)

        self._state = SessionState.CONNECTING
        self._state_lock = threading.Lock()
        self._fault: Optional[BaseException] = None
        self._node_eid: Optional[EndpointIdentifier] = None
        self._agent_id: Optional[str] = None

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def node_eid(self) -> Optional[EndpointIdentifier]:
        """EID of the node, known once the handshake completed."""
        return self._node_eid

    @property
    def agent_id(self) -> Optional[str]:
        """Agent ID registered with the node."""
        return self._agent_id

    @property
    def endpoint(self) -> Optional[EndpointIdentifier]:
        """Endpoint that bundles addressed to this agent use."""
        if self._node_eid is None:
            return None
        return self._node_eid.for_agent(self._agent_id)

    @property
    def fault(self) -> Optional[BaseException]:
        return self._fault

    def handshake(self, agent_id: str) -> 'Session':
        """
        Register with the node and wait for its WELCOME.

        Args:
            agent_id: Requested agent ID

        Returns:
            This session, now ready
        """
        with self._operation("handshake", SessionState.CONNECTING, SessionState.AWAITING_WELCOME):
            check_string_length("agent ID", agent_id)
            self._write_frame(Register(agent_id=agent_id))
            frame = self._read_frame()
            if not isinstance(frame, Welcome):
                raise UnexpectedFrame(frame, "WELCOME")

            self._node_eid = EndpointIdentifier(frame.node_eid)
            self._agent_id = agent_id

        self.logger.info("Registered with node", node_eid=str(self._node_eid), agent_id=agent_id)
        return self

    def send_bundle(self, destination: str, payload: bytes) -> None:
        """
        Hand a bundle to the node for delivery.

        Blocks until the node confirms or rejects it.

        Args:
            destination: Destination EID
            payload: Bundle payload

        Raises:
            SendRejected: Node answered with NACK
        """
        with self._operation("send bundle", SessionState.READY, SessionState.AWAITING_CONFIRM):
            bundle = OutgoingBundle(destination=destination, payload=payload)
            self._request(SendBundle(destination=bundle.destination, payload=bundle.payload))

        self.logger.debug("Bundle sent", destination=str(bundle.destination), size=len(bundle.payload))

    def cancel_bundle(self, destination: str) -> None:
        """
        Ask the node to cancel bundles queued for a destination.

        Args:
            destination: Destination EID

        Raises:
            SendRejected: Node answered with NACK
        """
        with self._operation("cancel bundle", SessionState.READY, SessionState.AWAITING_CONFIRM):
            destination = EndpointIdentifier(destination)
            self._request(CancelBundle(destination=destination))

        self.logger.debug("Bundle cancelled", destination=str(destination))

    def send_config(self, config: ConfigBundle) -> None:
        """
        Send a contact configuration command to the node's config agent.

        Args:
            config: Configuration command
        """
        with self._operation("send config", SessionState.READY, SessionState.AWAITING_CONFIRM):
            bundle = OutgoingBundle(
                destination=self._node_eid.for_agent(CONFIG_AGENT_ID),
                payload=config.to_bytes()
            )
            self._request(SendBundle(destination=bundle.destination, payload=bundle.payload))

        self.logger.debug("Config sent", destination=str(bundle.destination), command=config.command)

    def receive_bundle(self) -> ReceivedBundle:
        """
        Block until the node delivers a bundle to this agent.

        Returns:
            Received bundle as (source EID, payload)
        """
        with self._operation("receive bundle", SessionState.READY, SessionState.AWAITING_BUNDLE):
            while True:
                frame = self._read_frame()
                if isinstance(frame, RecvBundle):
                    break
                if isinstance(frame, Ping):
                    self.logger.debug("Ping received")
                    continue
                raise UnexpectedFrame(frame, "RECVBUNDLE")

        self.logger.debug("Bundle received", source=frame.source, size=len(frame.payload))
        return ReceivedBundle(source=EndpointIdentifier(frame.source), payload=frame.payload)

    def close(self) -> None:
        """Close the session and its transport."""
        with self._state_lock:
            if self._state is SessionState.CLOSED:
                return
            self._state = SessionState.CLOSED

        self.transport.close()
        self.logger.info("Session closed", node_eid=str(self._node_eid), agent_id=self._agent_id)

    def __enter__(self) -> 'Session':
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def __repr__(self) -> str:
        return f"Session(state={self._state.name}, node_eid={self._node_eid!r}, agent_id={self._agent_id!r})"

    @contextmanager
    def _operation(self, name: str, required: SessionState, in_flight: SessionState):
        """Run one protocol exchange, moving through ``in_flight`` and back to READY.

        Arguments are validated inside the exchange, after the state check, and
        a validation failure returns the session to ``required`` untouched.
        """
        with self._state_lock:
            if self._state is SessionState.CLOSED:
                raise SessionClosed(f"Cannot {name}: session is closed")
            if self._state is SessionState.FAULTED:
                raise SessionFaulted(self._fault)
            if self._state is not required:
                raise InvalidStateError(name, self._state)
            self._state = in_flight

        try:
            yield
        except ValidationError:
            self._set_state(in_flight, required)
            raise
        except SendRejected:
            self._set_state(in_flight, SessionState.READY)
            raise
        except AAPError as e:
            if self._state is SessionState.CLOSED:
                raise ConnectionClosed(f"Session closed during {name}") from e
            self._set_fault(e)
            raise
        except OSError as e:
            if self._state is SessionState.CLOSED:
                raise ConnectionClosed(f"Session closed during {name}") from e
            error = TransportError(f"Transport failed during {name}: {e}")
            self._set_fault(error)
            raise error from e
        except BaseException as e:
            # Interrupted mid-exchange, the stream position is unknown
            self._set_fault(e)
            raise
        else:
            self._set_state(in_flight, SessionState.READY)

    def _set_state(self, expected: SessionState, new: SessionState):
        # close() may have won the race while the exchange was running
        with self._state_lock:
            if self._state is expected:
                self._state = new

    def _set_fault(self, error: BaseException):
        with self._state_lock:
            if self._state is SessionState.CLOSED:
                return
            self._state = SessionState.FAULTED
            self._fault = error
        self.logger.warning("Session faulted", error=str(error), error_type=type(error).__name__)

    def _request(self, frame: Frame):
        self._write_frame(frame)
        answer = self._read_frame()

        if isinstance(answer, SendConfirm):
            return
        if isinstance(answer, Nack):
            self.logger.info("Request rejected by node",
                             frame_type=frame.frame_type.name,
                             reason_code=answer.reason_code)
            raise SendRejected(answer.reason_code)
        raise UnexpectedFrame(answer, "SENDCONFIRM or NACK")

    def _write_frame(self, frame: Frame):
        data = FrameParser.encode(frame)
        self.transport.write(data)
        self.logger.debug("Sent frame", frame_type=frame.frame_type.name, size=len(data))

    def _read_frame(self) -> Frame:
        while True:
            frame = self.frames.next_frame()
            if frame is not None:
                self.logger.debug("Received frame", frame_type=frame.frame_type.name)
                return frame

            data = self.transport.read(self.read_size)
            if not data:
                raise ConnectionClosed("Node closed the connection")
            self.frames.feed(data)


def connect(transport: Transport,
            agent_id: str,
            read_size: int = 4096,
            max_payload_size: int = MAX_PAYLOAD_LENGTH) -> Session:
    """
    Register an agent over an already connected transport.

    Blocks until the node welcomes the agent. No session is returned if the
    handshake fails.

    Args:
        transport: Connected transport, owned by the session from now on
        agent_id: Requested agent ID
        read_size: Bytes requested per transport read
        max_payload_size: Largest bundle payload accepted from the node

    Returns:
        Ready session
    """
    session = Session(transport, read_size=read_size, max_payload_size=max_payload_size)
    return session.handshake(agent_id)


def connect_unix(path: str, agent_id: str, timeout: Optional[float] = None) -> Session:
    """Connect to a node's AAP Unix domain socket and register ``agent_id``."""
    return _connect_owned(SocketTransport.connect_unix(path, timeout=timeout), agent_id)


def connect_tcp(host: str, port: int, agent_id: str, timeout: Optional[float] = None) -> Session:
    """Connect to a node's AAP TCP port and register ``agent_id``."""
    return _connect_owned(SocketTransport.connect_tcp(host, port, timeout=timeout), agent_id)


def connect_from_config(config: Optional[Config] = None, configure_logging: bool = True) -> Session:
    """
    Connect using configuration settings.

    The ``logging`` section is applied first unless ``configure_logging`` is
    False, for applications that set up logging themselves.

    Args:
        config: Configuration (loaded from the default locations if None)
        configure_logging: Apply the ``logging`` section

    Returns:
        Ready session
    """
    if config is None:
        config = Config.load_from_file()

    if configure_logging:
        config.setup_logging()

    node = config.node
    if node.transport == "tcp":
        transport = SocketTransport.connect_tcp(node.host, node.port, timeout=node.timeout)
    else:
        transport = SocketTransport.connect_unix(node.socket_path, timeout=node.timeout)

    return _connect_owned(
        transport,
        config.agent.agent_id,
        read_size=config.protocol.read_size,
        max_payload_size=config.protocol.max_payload_size
    )


def _connect_owned(transport: Transport, agent_id: str, **kwargs) -> Session:
    # The transport was opened here, so it is closed here if the handshake fails
    try:
        return connect(transport, agent_id, **kwargs)
    except BaseException:
        transport.close()
        raise
