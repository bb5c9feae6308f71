"""Routing messages: the rtmsg header, route enumerations and attribute decoding."""

from __future__ import annotations

import enum
import struct
from dataclasses import dataclass, field
from typing import Any, Callable, ClassVar, Dict, List, Tuple, Union

from .rtnetlink import IpFamily
from .wire import (
    HeaderParseError,
    ProtocolParseError,
    decode_i32,
    decode_ip_address,
    decode_u8,
    decode_u32,
    iter_attributes,
)

RTM_NEWROUTE = 24
RTM_DELROUTE = 25
RTM_GETROUTE = 26

RTA_DST = 1
RTA_SRC = 2
RTA_IIF = 3
RTA_OIF = 4
RTA_GATEWAY = 5
RTA_PRIORITY = 6
RTA_PREFSRC = 7
RTA_METRICS = 8
RTA_MULTIPATH = 9
RTA_FLOW = 11
RTA_CACHEINFO = 12
RTA_TABLE = 15
RTA_MARK = 16
RTA_MFC_STATS = 17
RTA_VIA = 18
RTA_NEWDST = 19
RTA_PREF = 20
RTA_ENCAP_TYPE = 21
RTA_ENCAP = 22
RTA_EXPIRES = 23
RTA_PAD = 24
RTA_UID = 25
RTA_TTL_PROPAGATE = 26
RTA_IP_PROTO = 27
RTA_SPORT = 28
RTA_DPORT = 29
RTA_NH_ID = 30
RTA_FLOWLABEL = 31

_RTMSG = struct.Struct("=BBBBBBBBI")
_CACHEINFO = struct.Struct("=IIiIIIII")


class RouteTable(enum.IntEnum):
    """Well-known routing tables."""

    COMPAT = 252
    DEFAULT = 253
    MAIN = 254
    LOCAL = 255


class RouteProtocol(enum.IntEnum):
    """Origin of a route."""

    UNSPEC = 0
    ICMP_REDIRECT = 1
    KERNEL = 2
    BOOT = 3
    STATIC = 4
    GATED = 8
    RA = 9
    MRT = 10
    ZEBRA = 11
    BIRD = 12
    DN_ROUTED = 13
    XORP = 14
    NTK = 15
    DHCP = 16
    MROUTED = 17
    KEEPALIVED = 18
    BABEL = 42
    OVN = 84
    OPENR = 99
    BGP = 186
    ISIS = 187
    OSPF = 188
    RIP = 189
    EIGRP = 192


class RouteScope(enum.IntEnum):
    """Distance to the destination of a route."""

    UNIVERSE = 0
    SITE = 200
    LINK = 253
    HOST = 254
    NOWHERE = 255


class RouteType(enum.IntEnum):
    """Kind of a route."""

    UNSPEC = 0
    UNICAST = 1
    LOCAL = 2
    BROADCAST = 3
    ANYCAST = 4
    MULTICAST = 5
    BLACKHOLE = 6
    UNREACHABLE = 7
    PROHIBIT = 8
    THROW = 9
    NAT = 10
    EXTERNAL_RESOLVE = 11


def _known(enum_type, value: int) -> Union[enum.IntEnum, int]:
    try:
        return enum_type(value)
    except ValueError:
        return int(value)


def route_table(value: int) -> Union[RouteTable, int]:
    """The named table for a value, or the value itself when it has no name."""
    return _known(RouteTable, value)


def route_protocol(value: int) -> Union[RouteProtocol, int]:
    """The named protocol for a value, or the value itself when it has no name."""
    return _known(RouteProtocol, value)


def route_scope(value: int) -> Union[RouteScope, int]:
    """The named scope for a value, or the value itself when it has no name."""
    return _known(RouteScope, value)


def route_type(value: int) -> Union[RouteType, int]:
    """The named route type for a value, or the value itself when it has no name."""
    return _known(RouteType, value)


@dataclass
class RtMsg:
    """The fixed header of a routing message."""

    family: int = int(IpFamily.AF_INET)
    dst_len: int = 0
    src_len: int = 0
    tos: int = 0
    table: int = 0
    protocol: int = 0
    scope: int = 0
    route_type: int = 0
    flags: int = 0

    SIZE: ClassVar[int] = _RTMSG.size

    def pack(self) -> bytes:
        return _RTMSG.pack(
            int(self.family),
            self.dst_len,
            self.src_len,
            self.tos,
            int(self.table),
            int(self.protocol),
            int(self.scope),
            int(self.route_type),
            self.flags,
        )

    @classmethod
    def unpack(cls, data: bytes) -> "RtMsg":
        if len(data) < cls.SIZE:
            raise HeaderParseError("truncated routing message header")
        return cls(*_RTMSG.unpack_from(bytes(data)))

    @classmethod
    def for_family(cls, family) -> "RtMsg":
        return cls(family=int(family))

    @classmethod
    def add_route_defaults(cls, family) -> "RtMsg":
        family = IpFamily(family)
        return cls(
            family=int(family),
            dst_len=family.max_prefix_length,
            table=int(RouteTable.MAIN),
            protocol=int(RouteProtocol.BOOT),
            scope=int(RouteScope.LINK),
            route_type=int(RouteType.UNICAST),
        )

    @classmethod
    def add_gateway_defaults(cls, family) -> "RtMsg":
        return cls(
            family=int(family),
            table=int(RouteTable.MAIN),
            protocol=int(RouteProtocol.BOOT),
            scope=int(RouteScope.UNIVERSE),
            route_type=int(RouteType.UNICAST),
        )

    @classmethod
    def del_route_defaults(cls, family) -> "RtMsg":
        family = IpFamily(family)
        return cls(
            family=int(family),
            dst_len=family.max_prefix_length,
            scope=int(RouteScope.NOWHERE),
        )

    @classmethod
    def del_gateway_defaults(cls, family) -> "RtMsg":
        return cls(family=int(family), scope=int(RouteScope.NOWHERE))


@dataclass
class RtaCacheInfo:
    """Route cache statistics."""

    clntref: int = 0
    lastuse: int = 0
    expires: int = 0
    error: int = 0
    used: int = 0
    id: int = 0
    ts: int = 0
    tsage: int = 0

    SIZE: ClassVar[int] = _CACHEINFO.size

    def pack(self) -> bytes:
        return _CACHEINFO.pack(
            self.clntref,
            self.lastuse,
            self.expires,
            self.error,
            self.used,
            self.id,
            self.ts,
            self.tsage,
        )

    @classmethod
    def unpack(cls, data: bytes) -> "RtaCacheInfo":
        if len(data) != cls.SIZE:
            raise ValueError(f"expected {cls.SIZE} bytes, got {len(data)}")
        return cls(*_CACHEINFO.unpack(bytes(data)))


class RouteAttributeKind(enum.Enum):
    DESTINATION = "destination"
    OUT_INTERFACE = "out_interface"
    GATEWAY = "gateway"
    PRIORITY = "priority"
    PREFERRED_SOURCE = "preferred_source"
    CACHE_INFO = "cache_info"
    TABLE = "table"
    PREFERENCE = "preference"
    OTHER = "other"


@dataclass(frozen=True)
class RouteAttribute:
    """A decoded route attribute; for ``OTHER`` the value is the attribute type."""

    kind: RouteAttributeKind
    value: Any


class GetRouteParseError(enum.Enum):
    UNPARSABLE_DESTINATION = enum.auto()
    UNPARSABLE_OUT_INTERFACE = enum.auto()
    UNPARSABLE_GATEWAY = enum.auto()
    UNPARSABLE_PRIORITY = enum.auto()
    UNPARSABLE_PREFERED_SOURCE = enum.auto()
    UNPARSABLE_CACHE_INFO = enum.auto()
    UNPARSABLE_TABLE = enum.auto()
    UNPARSABLE_PREFERENCE = enum.auto()


@dataclass
class RouteDetails:
    """One route from a route dump."""

    destination_prefix_length: int
    tos: int
    table: Union[RouteTable, int]
    protocol: Union[RouteProtocol, int]
    scope: Union[RouteScope, int]
    route_type: Union[RouteType, int]
    attributes: List[RouteAttribute] = field(default_factory=list)


_Reader = Tuple[RouteAttributeKind, Callable[[bytes], Any], GetRouteParseError]

_READERS: Dict[int, _Reader] = {
    RTA_DST: (
        RouteAttributeKind.DESTINATION,
        decode_ip_address,
        GetRouteParseError.UNPARSABLE_DESTINATION,
    ),
    RTA_OIF: (
        RouteAttributeKind.OUT_INTERFACE,
        decode_i32,
        GetRouteParseError.UNPARSABLE_OUT_INTERFACE,
    ),
    RTA_GATEWAY: (
        RouteAttributeKind.GATEWAY,
        decode_ip_address,
        GetRouteParseError.UNPARSABLE_GATEWAY,
    ),
    RTA_PRIORITY: (
        RouteAttributeKind.PRIORITY,
        decode_u32,
        GetRouteParseError.UNPARSABLE_PRIORITY,
    ),
    RTA_PREFSRC: (
        RouteAttributeKind.PREFERRED_SOURCE,
        decode_ip_address,
        GetRouteParseError.UNPARSABLE_PREFERED_SOURCE,
    ),
    RTA_CACHEINFO: (
        RouteAttributeKind.CACHE_INFO,
        RtaCacheInfo.unpack,
        GetRouteParseError.UNPARSABLE_CACHE_INFO,
    ),
    RTA_TABLE: (
        RouteAttributeKind.TABLE,
        lambda data: route_table(decode_u32(data)),
        GetRouteParseError.UNPARSABLE_TABLE,
    ),
    RTA_PREF: (
        RouteAttributeKind.PREFERENCE,
        decode_u8,
        GetRouteParseError.UNPARSABLE_PREFERENCE,
    ),
}


def read_route_attr(attr_type: int, payload: bytes) -> RouteAttribute:
    """Decode one route attribute; unknown types are kept as ``OTHER``."""
    reader = _READERS.get(attr_type)
    if reader is None:
        return RouteAttribute(RouteAttributeKind.OTHER, attr_type)
    kind, decode, error = reader
    try:
        value = decode(payload)
    except (ValueError, struct.error, UnicodeDecodeError) as exc:
        raise ProtocolParseError(error) from exc
    return RouteAttribute(kind, value)


def read_route_msg(payload: bytes) -> RouteDetails:
    """Decode the body of a routing message: its header and attributes."""
    payload = bytes(payload)
    header = RtMsg.unpack(payload)
    attributes = [
        read_route_attr(attribute.attr_type, value)
        for attribute, value in iter_attributes(payload[RtMsg.SIZE:])
    ]
    return RouteDetails(
        destination_prefix_length=header.dst_len,
        tos=header.tos,
        table=route_table(header.table),
        protocol=route_protocol(header.protocol),
        scope=route_scope(header.scope),
        route_type=route_type(header.route_type),
        attributes=attributes,
    )