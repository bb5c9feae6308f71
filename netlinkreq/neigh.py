"""Neighbour (ARP / NDP cache) requests and their decoding."""

from __future__ import annotations

import enum
import struct
from dataclasses import dataclass, field
from typing import Any, Callable, ClassVar, Dict, List, Tuple, Union

from .route_model import RouteType, route_type
from .rtnetlink import IpFamily
from .socket import MessageBuilder
from .wire import (
    NLM_F_DUMP,
    NLM_F_REQUEST,
    HeaderParseError,
    ProtocolParseError,
    decode_ip_address,
    decode_u32,
    iter_attributes,
    iter_messages,
)

RTM_NEWNEIGH = 28
RTM_DELNEIGH = 29
RTM_GETNEIGH = 30

NDA_DST = 1
NDA_LLADDR = 2
NDA_CACHEINFO = 3
NDA_PROBES = 4

_NDMSG = struct.Struct("=BBHiHBB")
_CACHEINFO = struct.Struct("=IIII")
_LINK_LAYER_ADDRESS_SIZE = 6


@dataclass
class NdMsg:
    """The fixed header of a neighbour message."""

    family: int = int(IpFamily.AF_INET)
    ifindex: int = 0
    state: int = 0
    flags: int = 0
    neigh_type: int = 0

    SIZE: ClassVar[int] = _NDMSG.size

    def pack(self) -> bytes:
        return _NDMSG.pack(
            int(self.family),
            0,
            0,
            self.ifindex,
            int(self.state),
            self.flags,
            int(self.neigh_type),
        )

    @classmethod
    def unpack(cls, data: bytes) -> "NdMsg":
        if len(data) < cls.SIZE:
            raise HeaderParseError("truncated neighbour message header")
        family, _pad1, _pad2, ifindex, state, flags, neigh_type = _NDMSG.unpack_from(
            bytes(data)
        )
        return cls(family, ifindex, state, flags, neigh_type)


class NeighbourState(enum.IntEnum):
    """Neighbour cache entry states (``NUD_*``)."""

    NONE = 0x00
    INCOMPLETE = 0x01
    REACHABLE = 0x02
    STALE = 0x04
    DELAY = 0x08
    PROBE = 0x10
    FAILED = 0x20
    NOARP = 0x40
    PERMANENT = 0x80


def neighbour_state(value: int) -> Union[NeighbourState, int]:
    """The named state for a value, or the value itself when it has no name."""
    try:
        return NeighbourState(value)
    except ValueError:
        return int(value)


@dataclass
class NeighbourCacheInfo:
    """Neighbour cache statistics."""

    confirmed: int = 0
    used: int = 0
    updated: int = 0
    refcnt: int = 0

    SIZE: ClassVar[int] = _CACHEINFO.size

    @classmethod
    def unpack(cls, data: bytes) -> "NeighbourCacheInfo":
        if len(data) != cls.SIZE:
            raise ValueError(f"expected {cls.SIZE} bytes, got {len(data)}")
        return cls(*_CACHEINFO.unpack(bytes(data)))


class NeighbourAttributeKind(enum.Enum):
    DESTINATION = "destination"
    LINK_LOCAL_ADDRESS = "link_local_address"
    CACHE_INFO = "cache_info"
    PROBES = "probes"
    OTHER = "other"


@dataclass(frozen=True)
class NeighbourAttribute:
    """A decoded neighbour attribute; for ``OTHER`` the value is the attribute type."""

    kind: NeighbourAttributeKind
    value: Any


class GetNeighbourParseError(enum.Enum):
    UNKNOW_IP_FAMILY = enum.auto()
    UNPARSABLE_DESTINATION = enum.auto()
    UN_PARSABLE_CACHE_INFO = enum.auto()
    UNPARSABLE_LINK_LOCAL_ADDRSS = enum.auto()
    UNPARSABLE_PROBES = enum.auto()


@dataclass
class Neighbour:
    """One entry from a neighbour dump."""

    family: IpFamily
    ifindex: int
    state: Union[NeighbourState, int]
    neigh_type: Union[RouteType, int]
    attributes: List[NeighbourAttribute] = field(default_factory=list)


def _decode_link_layer_address(data: bytes) -> bytes:
    data = bytes(data)
    if len(data) != _LINK_LAYER_ADDRESS_SIZE:
        raise ValueError(f"expected {_LINK_LAYER_ADDRESS_SIZE} bytes, got {len(data)}")
    return data


_Reader = Tuple[NeighbourAttributeKind, Callable[[bytes], Any], GetNeighbourParseError]

_READERS: Dict[int, _Reader] = {
    NDA_DST: (
        NeighbourAttributeKind.DESTINATION,
        decode_ip_address,
        GetNeighbourParseError.UNPARSABLE_DESTINATION,
    ),
    NDA_LLADDR: (
        NeighbourAttributeKind.LINK_LOCAL_ADDRESS,
        _decode_link_layer_address,
        GetNeighbourParseError.UNPARSABLE_LINK_LOCAL_ADDRSS,
    ),
    NDA_CACHEINFO: (
        NeighbourAttributeKind.CACHE_INFO,
        NeighbourCacheInfo.unpack,
        GetNeighbourParseError.UN_PARSABLE_CACHE_INFO,
    ),
    # A malformed probe count is reported as a link-layer address failure.
    NDA_PROBES: (
        NeighbourAttributeKind.PROBES,
        decode_u32,
        GetNeighbourParseError.UNPARSABLE_LINK_LOCAL_ADDRSS,
    ),
}


def read_neighbour_attr(attr_type: int, payload: bytes) -> NeighbourAttribute:
    """Decode one neighbour attribute; unknown types are kept as ``OTHER``."""
    reader = _READERS.get(attr_type)
    if reader is None:
        return NeighbourAttribute(NeighbourAttributeKind.OTHER, attr_type)
    kind, decode, error = reader
    try:
        value = decode(payload)
    except (ValueError, struct.error) as exc:
        raise ProtocolParseError(error) from exc
    return NeighbourAttribute(kind, value)


def read_neighbour_msg(payload: bytes) -> Neighbour:
    """Decode the body of a neighbour message: its header and attributes."""
    payload = bytes(payload)
    header = NdMsg.unpack(payload)
    try:
        family = IpFamily(header.family)
    except ValueError as exc:
        raise ProtocolParseError(GetNeighbourParseError.UNKNOW_IP_FAMILY) from exc
    attributes = [
        read_neighbour_attr(attribute.attr_type, value)
        for attribute, value in iter_attributes(payload[NdMsg.SIZE:])
    ]
    return Neighbour(
        family=family,
        ifindex=header.ifindex,
        state=neighbour_state(header.state),
        neigh_type=route_type(header.neigh_type),
        attributes=attributes,
    )


class GetNeighMsgBuilder(MessageBuilder):
    """Dump request for the neighbours of one address family."""

    MESSAGE_TYPE = RTM_GETNEIGH
    FLAGS = NLM_F_REQUEST | NLM_F_DUMP

    def _configure(self, request: Any) -> None:
        family = IpFamily.AF_INET if request is None else IpFamily(request)
        self.nd_msg = NdMsg(family=int(family))

    def _payload(self) -> bytes:
        return self.nd_msg.pack()

    def build(self):
        """Write the dump request into the socket's send buffer."""
        return super().build()

    @classmethod
    def parse_response(cls, data: bytes) -> List[Neighbour]:
        return [read_neighbour_msg(payload) for _, payload in iter_messages(data)]