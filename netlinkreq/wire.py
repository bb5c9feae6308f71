"""Netlink wire format: message headers, attributes and their encodings."""

from __future__ import annotations

import ipaddress
import os
import struct
from dataclasses import dataclass
from typing import ClassVar, Iterator, Optional, Tuple, Union

NLM_F_REQUEST = 0x01
NLM_F_MULTI = 0x02
NLM_F_ACK = 0x04
NLM_F_ECHO = 0x08
NLM_F_ROOT = 0x100
NLM_F_MATCH = 0x200
NLM_F_ATOMIC = 0x400
NLM_F_DUMP = NLM_F_ROOT | NLM_F_MATCH
NLM_F_REPLACE = 0x100
NLM_F_EXCL = 0x200
NLM_F_CREATE = 0x400
NLM_F_APPEND = 0x800

NLMSG_NOOP = 1
NLMSG_ERROR = 2
NLMSG_DONE = 3

NLMSG_ALIGNTO = 4

IpAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]

_HEADER = struct.Struct("=IHHII")
_ATTRIBUTE = struct.Struct("=HH")
_ERROR_CODE = struct.Struct("=i")


class ResponseError(Exception):
    """Base class for failures while reading a netlink response."""


class HeaderParseError(ResponseError):
    """The netlink framing was malformed, or the kernel reported an error."""

    def __init__(self, message: str, errno: Optional[int] = None) -> None:
        super().__init__(message)
        self.errno = errno


class ProtocolParseError(ResponseError):
    """A protocol-level payload could not be interpreted."""

    def __init__(self, reason: object) -> None:
        super().__init__(getattr(reason, "name", str(reason)))
        self.reason = reason


@dataclass
class NlMsgHeader:
    """The fixed header that starts every netlink message."""

    length: int = 0
    msg_type: int = 0
    flags: int = 0
    seq: int = 0
    pid: int = 0

    SIZE: ClassVar[int] = _HEADER.size

    def pack(self) -> bytes:
        return _HEADER.pack(self.length, self.msg_type, self.flags, self.seq, self.pid)

    @classmethod
    def unpack(cls, data: bytes) -> "NlMsgHeader":
        if len(data) < cls.SIZE:
            raise HeaderParseError("truncated netlink message header")
        return cls(*_HEADER.unpack_from(data))

    def is_multi(self) -> bool:
        return bool(self.flags & NLM_F_MULTI)

    def is_done(self) -> bool:
        return self.msg_type == NLMSG_DONE

    def set_payload_length(self, length: int) -> None:
        """Set the total message length from the payload length."""
        self.length = self.SIZE + length


@dataclass
class NlAttribute:
    """The header of a netlink attribute (type-length-value)."""

    length: int = 0
    attr_type: int = 0

    SIZE: ClassVar[int] = _ATTRIBUTE.size

    def pack(self) -> bytes:
        return _ATTRIBUTE.pack(self.length, self.attr_type)

    @classmethod
    def unpack(cls, data: bytes) -> "NlAttribute":
        if len(data) < cls.SIZE:
            raise HeaderParseError("truncated netlink attribute header")
        return cls(*_ATTRIBUTE.unpack_from(data))


def align(length: int) -> int:
    """Round a length up to the netlink alignment."""
    return (length + NLMSG_ALIGNTO - 1) & ~(NLMSG_ALIGNTO - 1)


def attr_length(payload_length: int) -> int:
    """Length of an attribute holding a payload, header included, unpadded."""
    return payload_length + NlAttribute.SIZE


def attr_length_aligned(payload_length: int) -> int:
    """Length of an attribute holding a payload, padding included."""
    return align(attr_length(payload_length))


def string_length_aligned(length: int) -> int:
    """Length of a NUL-terminated string attribute, padding included."""
    return attr_length_aligned(length + 1)


def _ip(address) -> IpAddress:
    return ipaddress.ip_address(address)


def ip_address_attr_length_aligned(address) -> int:
    """Length of an IP address attribute, padding included."""
    return attr_length_aligned(len(_ip(address).packed))


def encode_attr(attr_type: int, payload: bytes) -> bytes:
    """Encode one attribute, padded to the netlink alignment."""
    payload = bytes(payload)
    length = attr_length(len(payload))
    padding = b"\0" * (align(length) - length)
    return NlAttribute(length, attr_type).pack() + payload + padding


def encode_string_attr(attr_type: int, value: str) -> bytes:
    return encode_attr(attr_type, value.encode("utf-8") + b"\0")


def encode_ip_address_attr(attr_type: int, address) -> bytes:
    return encode_attr(attr_type, _ip(address).packed)


def encode_i32_attr(attr_type: int, value: int) -> bytes:
    return encode_attr(attr_type, struct.pack("=i", value))


def encode_u16_attr(attr_type: int, value: int) -> bytes:
    return encode_attr(attr_type, struct.pack("=H", value))


def decode_ip_address(data: bytes) -> IpAddress:
    """Decode a 4-byte IPv4 or 16-byte IPv6 address."""
    data = bytes(data)
    if len(data) == 4:
        return ipaddress.IPv4Address(data)
    if len(data) == 16:
        return ipaddress.IPv6Address(data)
    raise ValueError(f"invalid IP address length: {len(data)}")


def decode_string(data: bytes) -> str:
    """Decode a string attribute, stopping at the first NUL byte."""
    return bytes(data).split(b"\0", 1)[0].decode("utf-8")


def _decode_fixed(fmt: str, data: bytes) -> int:
    layout = struct.Struct(fmt)
    if len(data) != layout.size:
        raise ValueError(f"expected {layout.size} bytes, got {len(data)}")
    return layout.unpack(bytes(data))[0]


def decode_u32(data: bytes) -> int:
    return _decode_fixed("=I", data)


def decode_i32(data: bytes) -> int:
    return _decode_fixed("=i", data)


def decode_u8(data: bytes) -> int:
    return _decode_fixed("=B", data)


def iter_attributes(data: bytes) -> Iterator[Tuple[NlAttribute, bytes]]:
    """Yield each attribute header with its payload from a run of attributes."""
    data = bytes(data)
    offset = 0
    while offset < len(data):
        attribute = NlAttribute.unpack(data[offset:])
        end = offset + attribute.length
        if attribute.length < NlAttribute.SIZE or end > len(data):
            raise HeaderParseError("malformed netlink attribute length")
        yield attribute, data[offset + NlAttribute.SIZE:end]
        offset += align(attribute.length)


def _error_code(payload: bytes) -> int:
    if len(payload) < _ERROR_CODE.size:
        raise HeaderParseError("truncated netlink error message")
    return _ERROR_CODE.unpack_from(payload)[0]


def _raise_for_error(code: int) -> None:
    if code:
        errno = -code
        raise HeaderParseError(os.strerror(errno), errno=errno)


def iter_messages(data: bytes) -> Iterator[Tuple[NlMsgHeader, bytes]]:
    """Yield each data message of a response, stopping at the end of a dump.

    Acknowledgements and no-op messages are skipped; an error message
    carrying a non-zero code raises :class:`HeaderParseError`.
    """
    data = bytes(data)
    offset = 0
    while offset < len(data):
        header = NlMsgHeader.unpack(data[offset:])
        end = offset + header.length
        if header.length < NlMsgHeader.SIZE or end > len(data):
            raise HeaderParseError("malformed netlink message length")
        payload = data[offset + NlMsgHeader.SIZE:end]
        offset += align(header.length)
        if header.msg_type == NLMSG_DONE:
            return
        if header.msg_type == NLMSG_ERROR:
            _raise_for_error(_error_code(payload))
            continue
        if header.msg_type == NLMSG_NOOP:
            continue
        yield header, payload


def validate_ack(data: bytes) -> None:
    """Check that a response is a successful acknowledgement."""
    data = bytes(data)
    header = NlMsgHeader.unpack(data)
    if header.msg_type != NLMSG_ERROR:
        raise HeaderParseError("expected a netlink acknowledgement")
    if header.length < NlMsgHeader.SIZE or header.length > len(data):
        raise HeaderParseError("malformed netlink message length")
    _raise_for_error(_error_code(data[NlMsgHeader.SIZE:header.length]))