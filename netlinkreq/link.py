"""Definitions shared by the link requests: the ifinfomsg header and attributes."""

from __future__ import annotations

import enum
import struct
from dataclasses import dataclass
from typing import Any, ClassVar

from .wire import HeaderParseError

RTM_NEWLINK = 16
RTM_DELLINK = 17
RTM_GETLINK = 18

AF_PACKET = 17

IFLA_ADDRESS = 1
IFLA_BROADCAST = 2
IFLA_IFNAME = 3
IFLA_MTU = 4
IFLA_LINK = 5
IFLA_QDISC = 6
IFLA_STATS = 7
IFLA_COST = 8
IFLA_PRIORITY = 9
IFLA_MASTER = 10
IFLA_WIRELESS = 11
IFLA_PROTINFO = 12
IFLA_TXQLEN = 13
IFLA_MAP = 14
IFLA_WEIGHT = 15
IFLA_OPERSTATE = 16
IFLA_LINKMODE = 17
IFLA_LINKINFO = 18
IFLA_NET_NS_PID = 19
IFLA_IFALIAS = 20
IFLA_NUM_VF = 21
IFLA_VFINFO_LIST = 22
IFLA_STATS64 = 23
IFLA_VF_PORTS = 24
IFLA_PORT_SELF = 25
IFLA_AF_SPEC = 26
IFLA_GROUP = 27
IFLA_NET_NS_FD = 28
IFLA_EXT_MASK = 29
IFLA_PROMISCUITY = 30

IFLA_INFO_KIND = 1
IFLA_INFO_DATA = 2
IFLA_INFO_XSTATS = 3
IFLA_INFO_SLAVE_KIND = 4
IFLA_INFO_SLAVE_DATA = 5

_IFINFOMSG = struct.Struct("=BBHiII")


class DeviceFlags(enum.IntFlag):
    """Network device flags (``IFF_*``)."""

    UP = 1 << 0
    BROADCAST = 1 << 1
    DEBUG = 1 << 2
    LOOPBACK = 1 << 3
    POINTOPOINT = 1 << 4
    NOTRAILERS = 1 << 5
    RUNNING = 1 << 6
    NOARP = 1 << 7
    PROMISC = 1 << 8
    ALLMULTI = 1 << 9
    MASTER = 1 << 10
    SLAVE = 1 << 11
    MULTICAST = 1 << 12
    PORTSEL = 1 << 13
    AUTOMEDIA = 1 << 14
    DYNAMIC = 1 << 15
    LOWER_UP = 1 << 16
    DORMANT = 1 << 17
    ECHO = 1 << 18


@dataclass
class IfInfoMsg:
    """The fixed header of a link message."""

    family: int = AF_PACKET
    device_type: int = 0
    index: int = 0
    flags: int = 0
    change: int = 0

    SIZE: ClassVar[int] = _IFINFOMSG.size

    def pack(self) -> bytes:
        return _IFINFOMSG.pack(
            int(self.family),
            0,
            self.device_type,
            self.index,
            int(self.flags),
            int(self.change),
        )

    @classmethod
    def unpack(cls, data: bytes) -> "IfInfoMsg":
        if len(data) < cls.SIZE:
            raise HeaderParseError("truncated link message header")
        family, _pad, device_type, index, flags, change = _IFINFOMSG.unpack_from(bytes(data))
        return cls(family, device_type, index, flags, change)


class LinkAttributeKind(enum.Enum):
    ADDRESS = "address"
    BROADCAST_ADDRESS = "broadcast_address"
    INTERFACE_NAME = "interface_name"
    MTU = "mtu"
    LINK = "link"
    OTHER = "other"
    WEIGHT = "weight"
    OPERATIONAL_STATE = "operational_state"
    GROUP = "group"


@dataclass(frozen=True)
class LinkAttribute:
    """A decoded link attribute; for ``OTHER`` the value is the attribute type."""

    kind: LinkAttributeKind
    value: Any