"""Interface address requests: dump, add and delete IP addresses."""

from __future__ import annotations

import enum
import ipaddress
import struct
from dataclasses import dataclass, field
from typing import Any, Callable, ClassVar, Dict, List, Tuple

from .rtnetlink import IpFamily
from .socket import MessageBuilder
from .wire import (
    NLM_F_ACK,
    NLM_F_CREATE,
    NLM_F_DUMP,
    NLM_F_EXCL,
    NLM_F_REQUEST,
    HeaderParseError,
    IpAddress,
    ProtocolParseError,
    decode_ip_address,
    decode_string,
    encode_ip_address_attr,
    iter_attributes,
    iter_messages,
    validate_ack,
)

RTM_NEWADDR = 20
RTM_DELADDR = 21
RTM_GETADDR = 22

IFA_ADDRESS = 1
IFA_LOCAL = 2
IFA_LABEL = 3
IFA_BROADCAST = 4
IFA_ANYCAST = 5
IFA_CACHEINFO = 6
IFA_MULTICAST = 7
IFA_FLAGS = 8
IFA_RT_PRIORITY = 9
IFA_TARGET_NETNSID = 10
IFA_PROTO = 11

_IFADDRMSG = struct.Struct("=BBBBI")


@dataclass
class IfAddrMsg:
    """The fixed header of an interface address message."""

    family: int = 0
    prefixlen: int = 0
    flags: int = 0
    scope: int = 0
    index: int = 0

    SIZE: ClassVar[int] = _IFADDRMSG.size

    def pack(self) -> bytes:
        return _IFADDRMSG.pack(
            int(self.family), self.prefixlen, self.flags, self.scope, self.index
        )

    @classmethod
    def unpack(cls, data: bytes) -> "IfAddrMsg":
        if len(data) < cls.SIZE:
            raise HeaderParseError("truncated interface address message header")
        return cls(*_IFADDRMSG.unpack_from(bytes(data)))

    @classmethod
    def for_interface(cls, interface_index: int, family) -> "IfAddrMsg":
        """A header for a single host address of the family on an interface."""
        family = IpFamily(family)
        return cls(
            family=int(family),
            prefixlen=family.max_prefix_length,
            index=interface_index,
        )


class AddressAttributeKind(enum.Enum):
    ADDRESS = "address"
    LOCAL = "local"
    LABEL = "label"
    BROADCAST = "broadcast"
    OTHER = "other"


@dataclass(frozen=True)
class AddressAttribute:
    """A decoded address attribute; for ``OTHER`` the value is the attribute type."""

    kind: AddressAttributeKind
    value: Any


class GetAddressParseError(enum.Enum):
    UNPARSABLE_ADDRESS = enum.auto()
    UNPARSABLE_LOCAL = enum.auto()
    UNPARSABLE_LABEL = enum.auto()
    UNPARSABLE_BROADCAST = enum.auto()
    NO_ADDRESS = enum.auto()


@dataclass
class RawAddressDetails:
    """An address message as received, before its address is picked out."""

    interface_index: int
    mask: int
    attributes: List[AddressAttribute] = field(default_factory=list)


@dataclass
class AddressDetails:
    """One address from an address dump."""

    interface_index: int
    ip_address: IpAddress
    attributes: List[AddressAttribute] = field(default_factory=list)

    @classmethod
    def from_raw(cls, raw: RawAddressDetails) -> "AddressDetails":
        """Pick the local address, falling back to the peer address.

        An ``IFA_ADDRESS`` attribute is required even when a local
        address is present.
        """
        address = None
        local = None
        for attribute in raw.attributes:
            if attribute.kind is AddressAttributeKind.ADDRESS:
                address = attribute.value
            elif attribute.kind is AddressAttributeKind.LOCAL:
                local = attribute.value
        if address is None:
            raise ProtocolParseError(GetAddressParseError.NO_ADDRESS)
        return cls(
            interface_index=raw.interface_index,
            ip_address=local if local is not None else address,
            attributes=raw.attributes,
        )


@dataclass
class AddressInput:
    """An address and the interface it belongs to."""

    ip_address: IpAddress
    interface_index: int

    def __post_init__(self) -> None:
        self.ip_address = ipaddress.ip_address(self.ip_address)


_Reader = Tuple[AddressAttributeKind, Callable[[bytes], Any], GetAddressParseError]

_READERS: Dict[int, _Reader] = {
    IFA_ADDRESS: (
        AddressAttributeKind.ADDRESS,
        decode_ip_address,
        GetAddressParseError.UNPARSABLE_ADDRESS,
    ),
    IFA_LOCAL: (
        AddressAttributeKind.LOCAL,
        decode_ip_address,
        GetAddressParseError.UNPARSABLE_LOCAL,
    ),
    IFA_LABEL: (
        AddressAttributeKind.LABEL,
        decode_string,
        GetAddressParseError.UNPARSABLE_LABEL,
    ),
    IFA_BROADCAST: (
        AddressAttributeKind.BROADCAST,
        decode_ip_address,
        GetAddressParseError.UNPARSABLE_BROADCAST,
    ),
}


def read_addr_attr(attr_type: int, payload: bytes) -> AddressAttribute:
    """Decode one address attribute; unknown types are kept as ``OTHER``."""
    reader = _READERS.get(attr_type)
    if reader is None:
        return AddressAttribute(AddressAttributeKind.OTHER, attr_type)
    kind, decode, error = reader
    try:
        value = decode(payload)
    except (ValueError, struct.error, UnicodeDecodeError) as exc:
        raise ProtocolParseError(error) from exc
    return AddressAttribute(kind, value)


def read_addr_msg(payload: bytes) -> RawAddressDetails:
    """Decode the body of an address message: its header and attributes."""
    payload = bytes(payload)
    header = IfAddrMsg.unpack(payload)
    attributes = [
        read_addr_attr(attribute.attr_type, value)
        for attribute, value in iter_attributes(payload[IfAddrMsg.SIZE:])
    ]
    return RawAddressDetails(
        interface_index=header.index,
        mask=header.prefixlen,
        attributes=attributes,
    )


class GetAllAddressMsgBuilder(MessageBuilder):
    """Dump request for every address on the host."""

    MESSAGE_TYPE = RTM_GETADDR
    FLAGS = NLM_F_REQUEST | NLM_F_DUMP

    def _configure(self, request: Any) -> None:
        self.if_addr_msg = IfAddrMsg()

    def filter_by_interface(self, ifa_index: int) -> None:
        """Restrict the dump to one interface; needs strict checking on the socket."""
        self.if_addr_msg.index = ifa_index

    def _payload(self) -> bytes:
        return self.if_addr_msg.pack()

    def build(self):
        """Write the dump request into the socket's send buffer."""
        return super().build()

    @classmethod
    def parse_response(cls, data: bytes) -> List[AddressDetails]:
        return [
            AddressDetails.from_raw(read_addr_msg(payload))
            for _, payload in iter_messages(data)
        ]


class _AddressChangeBuilder(MessageBuilder):
    """Shared body of the requests adding or deleting one address."""

    def _configure(self, request: AddressInput) -> None:
        self.ip_address = ipaddress.ip_address(request.ip_address)
        self.if_addr_msg = IfAddrMsg.for_interface(
            request.interface_index, IpFamily.from_address(self.ip_address)
        )
        self.is_local_address = self.ip_address.version == 4

    def _payload(self) -> bytes:
        attr_type = IFA_LOCAL if self.is_local_address else IFA_ADDRESS
        return self.if_addr_msg.pack() + encode_ip_address_attr(attr_type, self.ip_address)


class AddAddressMsgBuilder(_AddressChangeBuilder):
    """Request adding an address to an interface."""

    MESSAGE_TYPE = RTM_NEWADDR
    FLAGS = NLM_F_REQUEST | NLM_F_ACK | NLM_F_EXCL | NLM_F_CREATE

    def set_mask(self, cidr_mask: int) -> None:
        """Set the CIDR prefix length of the address."""
        self.if_addr_msg.prefixlen = cidr_mask

    def build(self):
        """Write the request into the socket's send buffer."""
        return super().build()

    @classmethod
    def parse_response(cls, data: bytes) -> None:
        validate_ack(data)


class DelAddressMsgBuilder(_AddressChangeBuilder):
    """Request deleting an address from an interface."""

    MESSAGE_TYPE = RTM_DELADDR
    FLAGS = NLM_F_REQUEST | NLM_F_ACK

    def set_mask(self, cidr_mask: int) -> None:
        """Set the CIDR prefix length of the address."""
        self.if_addr_msg.prefixlen = cidr_mask

    def build(self):
        """Write the request into the socket's send buffer."""
        return super().build()

    @classmethod
    def parse_response(cls, data: bytes) -> None:
        validate_ack(data)