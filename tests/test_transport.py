import logging
import socket
import threading
import time

import pytest

from aapclient import (
    Config,
    ConnectionClosed,
    SendRejected,
    SessionState,
    SocketTransport,
    TransportInUseError,
    connect,
    connect_from_config,
    connect_tcp,
    connect_unix,
)
from aapclient.protocol import FrameBuffer, FrameParser, Nack, Register, SendBundle, Welcome


@pytest.fixture
def socket_pair():
    ours, theirs = socket.socketpair()
    yield ours, theirs
    theirs.close()
    ours.close()


def read_frame(sock, frames):
    while True:
        frame = frames.next_frame()
        if frame is not None:
            return frame
        frames.feed(sock.recv(4096))


def test_read_write(socket_pair):
    ours, theirs = socket_pair
    transport = SocketTransport(ours)

    transport.write(b"ping")
    assert theirs.recv(4) == b"ping"

    theirs.sendall(b"pong")
    assert transport.read(4) == b"pong"


def test_read_after_close_reports_end_of_stream(socket_pair):
    ours, _ = socket_pair
    transport = SocketTransport(ours)

    transport.close()
    transport.close()

    assert transport.closed
    assert transport.read(16) == b""


def test_attach_single_owner(socket_pair):
    transport = SocketTransport(socket_pair[0])
    owner = object()
    transport.attach(owner)
    transport.attach(owner)
    with pytest.raises(TransportInUseError):
        transport.attach(object())


def test_session_over_socket(socket_pair):
    ours, theirs = socket_pair
    theirs.sendall(FrameParser.encode(Welcome("dtn://node1/")))

    session = connect(SocketTransport(ours), "my-agent")
    node_frames = FrameBuffer()
    assert read_frame(theirs, node_frames) == Register("my-agent")

    theirs.sendall(FrameParser.encode(Nack(3)))
    with pytest.raises(SendRejected):
        session.send_bundle("dtn://example.org/hello", b"Hello world!")
    assert read_frame(theirs, node_frames) == SendBundle("dtn://example.org/hello", b"Hello world!")


def test_connect_unix(tmp_path):
    path = str(tmp_path / "aap.socket")
    server = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
    server.bind(path)
    server.listen(1)
    registered = []

    def node():
        conn, _ = server.accept()
        with conn:
            registered.append(read_frame(conn, FrameBuffer()))
            conn.sendall(FrameParser.encode(Welcome("dtn://node1/")))
            conn.recv(1)

    thread = threading.Thread(target=node)
    thread.start()
    try:
        with connect_unix(path, "chat/in", timeout=5) as session:
            assert session.endpoint == "dtn://node1/chat/in"
    finally:
        thread.join(timeout=5)
        server.close()

    assert registered == [Register("chat/in")]


@pytest.fixture
def tcp_node():
    server = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    server.bind(("127.0.0.1", 0))
    server.listen(1)
    registered = []

    def node():
        conn, _ = server.accept()
        with conn:
            registered.append(read_frame(conn, FrameBuffer()))
            conn.sendall(FrameParser.encode(Welcome("ipn:7.0")))
            conn.recv(1)

    thread = threading.Thread(target=node)
    thread.start()
    yield server.getsockname()[1], registered
    thread.join(timeout=5)
    server.close()


def test_connect_tcp(tcp_node):
    port, registered = tcp_node

    with connect_tcp("127.0.0.1", port, "3", timeout=5) as session:
        assert session.endpoint == "ipn:7.3"

    assert registered == [Register("3")]


def test_connect_from_config(tcp_node):
    port, registered = tcp_node
    config = Config(
        node={"transport": "tcp", "host": "127.0.0.1", "port": port, "timeout": 5},
        agent={"agent_id": "12"},
    )

    with connect_from_config(config) as session:
        assert session.node_eid == "ipn:7.0"
        assert session.agent_id == "12"

    assert registered == [Register("12")]


def test_close_unblocks_pending_receive(socket_pair):
    ours, theirs = socket_pair
    theirs.sendall(FrameParser.encode(Welcome("dtn://node1/")))
    session = connect(SocketTransport(ours), "my-agent")
    outcome = []

    def receive():
        try:
            session.receive_bundle()
        except Exception as e:
            outcome.append(e)

    thread = threading.Thread(target=receive)
    thread.start()
    # Wait until the receiver is blocked on the socket
    for _ in range(500):
        if session.state is SessionState.AWAITING_BUNDLE:
            break
        time.sleep(0.01)
    assert session.state is SessionState.AWAITING_BUNDLE

    session.close()
    thread.join(timeout=5)

    assert not thread.is_alive()
    assert len(outcome) == 1
    assert isinstance(outcome[0], ConnectionClosed)
    assert session.state is SessionState.CLOSED


def test_connect_from_config_applies_logging(tcp_node):
    port, _ = tcp_node
    config = Config(
        node={"transport": "tcp", "host": "127.0.0.1", "port": port, "timeout": 5},
        logging={"level": "ERROR"},
    )

    with connect_from_config(config):
        assert logging.getLogger("aapclient").level == logging.ERROR


def test_connect_from_config_leaves_logging_alone(tcp_node):
    port, _ = tcp_node
    config = Config(
        node={"transport": "tcp", "host": "127.0.0.1", "port": port, "timeout": 5},
        logging={"level": "ERROR"},
    )
    package_logger = logging.getLogger("aapclient")
    handlers = list(package_logger.handlers)

    with connect_from_config(config, configure_logging=False):
        assert package_logger.level == logging.NOTSET
        assert package_logger.handlers == handlers
