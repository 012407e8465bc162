"""Shared fixtures for AAP client tests."""

import logging
from typing import List, Optional

import pytest
import structlog

from aapclient.network import Transport
from aapclient.protocol import FrameParser
from aapclient.utils.logger import PACKAGE_LOGGER


class FakeTransport(Transport):
    """In-memory transport replaying scripted node output."""

    def __init__(self, incoming: Optional[List[bytes]] = None, chunk_size: Optional[int] = None):
        self.incoming = list(incoming or [])
        self.chunk_size = chunk_size
        self.written = bytearray()
        self.reads = 0
        self.closed = False
        self.read_error: Optional[OSError] = None

    def queue(self, *frames):
        for frame in frames:
            self.incoming.append(FrameParser.encode(frame))

    def read(self, max_bytes: int) -> bytes:
        self.reads += 1
        if self.read_error is not None:
            raise self.read_error
        if self.closed or not self.incoming:
            return b''
        data = self.incoming.pop(0)
        limit = min(max_bytes, self.chunk_size or max_bytes)
        if len(data) > limit:
            self.incoming.insert(0, data[limit:])
            data = data[:limit]
        return data

    def write(self, data: bytes) -> None:
        if self.closed:
            raise BrokenPipeError("transport closed")
        self.written.extend(data)

    def close(self) -> None:
        self.closed = True

    def written_frames(self):
        frames = []
        data = bytes(self.written)
        while data:
            frame, consumed = FrameParser.decode_buffer(data)
            frames.append(frame)
            data = data[consumed:]
        return frames


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture(autouse=True)
def quiet_package_logger():
    yield
    package_logger = logging.getLogger(PACKAGE_LOGGER)
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
        handler.close()
    package_logger.addHandler(logging.NullHandler())
    package_logger.setLevel(logging.NOTSET)
    structlog.reset_defaults()
