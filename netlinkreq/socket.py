"""Buffered netlink sockets and the base for request builders."""

from __future__ import annotations

import asyncio
import dataclasses
import socket
from typing import Any, ClassVar, Optional

from .wire import (
    NLM_F_ACK,
    NLM_F_REQUEST,
    NLMSG_NOOP,
    HeaderParseError,
    NlMsgHeader,
    align,
    validate_ack,
)

NETLINK_ROUTE = 0
AF_NETLINK = getattr(socket, "AF_NETLINK", 16)
NL_SOCKET_DUMP_SIZE = 32768

_SEQUENCE_MASK = 0xFFFFFFFF


class _ResponseAccumulator:
    """Collects received chunks until the last message ends the response."""

    def __init__(self, capacity: int) -> None:
        self.capacity = capacity
        self.chunks: list[bytes] = []
        self.total = 0

    @property
    def remaining(self) -> int:
        remaining = self.capacity - self.total
        if remaining <= 0:
            raise BufferError("netlink response exceeds the receive buffer capacity")
        return remaining

    def feed(self, chunk: bytes) -> bool:
        """Store a chunk; return True once the response is complete."""
        chunk = bytes(chunk)
        last: Optional[NlMsgHeader] = None
        offset = 0
        while offset < len(chunk):
            header = NlMsgHeader.unpack(chunk[offset:])
            if header.length < NlMsgHeader.SIZE or offset + header.length > len(chunk):
                raise HeaderParseError("malformed netlink message length")
            offset += align(header.length)
            last = header
        if last is None:
            raise ConnectionError("netlink transport closed")
        self.chunks.append(chunk)
        self.total += len(chunk)
        return not last.is_multi() or last.is_done()

    def data(self) -> bytes:
        return b"".join(self.chunks)


class NetlinkSocket:
    """A netlink socket with a send buffer and a bounded receive buffer."""

    def __init__(self, transport: Any, capacity: int = NL_SOCKET_DUMP_SIZE) -> None:
        if capacity <= 0:
            raise ValueError("receive capacity must be positive")
        self.transport = transport
        self.capacity = capacity
        self.sequence_number = 0
        self._send_buffer = bytearray()
        self._receive_buffer = b""

    @classmethod
    def open(cls, protocol: int = NETLINK_ROUTE, capacity: int = NL_SOCKET_DUMP_SIZE) -> "NetlinkSocket":
        """Open and bind a raw netlink socket for the given protocol."""
        transport = socket.socket(AF_NETLINK, socket.SOCK_RAW, protocol)
        try:
            transport.bind((0, 0))
        except OSError:
            transport.close()
            raise
        return cls(transport, capacity)

    def next_sequence(self) -> int:
        """Advance and return the sequence number, wrapping at 32 bits."""
        self.sequence_number = (self.sequence_number + 1) & _SEQUENCE_MASK
        return self.sequence_number

    def write(self, data: bytes) -> int:
        """Append request bytes to the send buffer."""
        self._send_buffer += data
        return len(data)

    def _take_request(self) -> bytes:
        request = bytes(self._send_buffer)
        self._send_buffer.clear()
        return request

    def send(self) -> int:
        """Send the buffered request and return the number of bytes written."""
        return self.transport.send(self._take_request())

    def receive(self) -> int:
        """Receive a whole response and return the number of bytes read."""
        accumulator = _ResponseAccumulator(self.capacity)
        while not accumulator.feed(self.transport.recv(accumulator.remaining)):
            pass
        self._receive_buffer = accumulator.data()
        return accumulator.total

    def received(self) -> bytes:
        """The bytes of the last response received."""
        return self._receive_buffer

    def close(self) -> None:
        self.transport.close()

    def __enter__(self) -> "NetlinkSocket":
        return self

    def __exit__(self, *args) -> None:
        self.close()


class AsyncNetlinkSocket:
    """An asyncio front end over a :class:`NetlinkSocket`."""

    def __init__(self, socket: NetlinkSocket) -> None:
        self.socket = socket
        socket.transport.setblocking(False)

    def next_sequence(self) -> int:
        return self.socket.next_sequence()

    def write(self, data: bytes) -> int:
        return self.socket.write(data)

    async def send(self) -> int:
        """Send the buffered request and return the number of bytes written."""
        request = self.socket._take_request()
        loop = asyncio.get_running_loop()
        await loop.sock_sendall(self.socket.transport, request)
        return len(request)

    async def receive(self) -> int:
        """Receive a whole response and return the number of bytes read."""
        loop = asyncio.get_running_loop()
        accumulator = _ResponseAccumulator(self.socket.capacity)
        while True:
            chunk = await loop.sock_recv(self.socket.transport, accumulator.remaining)
            if accumulator.feed(chunk):
                break
        self.socket._receive_buffer = accumulator.data()
        return accumulator.total

    def received(self) -> bytes:
        return self.socket.received()


class MessageBuilder:
    """Base for request builders writing into a socket's send buffer.

    Subclasses set the message type and flags, store their input in
    ``_configure`` and return the body after the netlink header from
    ``_payload``. The default response is an acknowledgement.
    """

    MESSAGE_TYPE: ClassVar[int] = NLMSG_NOOP
    FLAGS: ClassVar[int] = NLM_F_REQUEST | NLM_F_ACK

    def __init__(self, socket: Any, request: Any = None, header: Optional[NlMsgHeader] = None) -> None:
        self.socket = socket
        if header is None:
            header = NlMsgHeader(seq=socket.next_sequence())
        else:
            header = dataclasses.replace(header)
        header.msg_type = self.MESSAGE_TYPE
        header.flags = self.FLAGS
        self.header = header
        self._configure(request)

    def _configure(self, request: Any) -> None:
        self.request = request

    def _payload(self) -> bytes:
        return b""

    def build(self) -> int:
        """Write the request into the socket buffer; return the bytes written."""
        payload = bytes(self._payload())
        self.header.set_payload_length(len(payload))
        return self.socket.write(self.header.pack() + payload)

    def send(self) -> int:
        self.build()
        return self.socket.send()

    def call(self) -> Any:
        """Send the request, receive the response and parse it."""
        self.build()
        self.socket.send()
        self.socket.receive()
        return self.parse_response(self.socket.received())

    async def call_async(self) -> Any:
        self.build()
        await self.socket.send()
        await self.socket.receive()
        return self.parse_response(self.socket.received())

    @classmethod
    def parse_response(cls, data: bytes) -> Any:
        validate_ack(data)
        return None