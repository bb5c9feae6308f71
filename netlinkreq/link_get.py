"""Link dump requests and the decoding of link messages."""

from __future__ import annotations

import enum
import struct
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

from .link import (
    IFLA_ADDRESS,
    IFLA_BROADCAST,
    IFLA_GROUP,
    IFLA_IFNAME,
    IFLA_LINK,
    IFLA_MTU,
    IFLA_OPERSTATE,
    IFLA_WEIGHT,
    RTM_GETLINK,
    IfInfoMsg,
    LinkAttribute,
    LinkAttributeKind,
)
from .socket import MessageBuilder
from .wire import (
    NLM_F_DUMP,
    NLM_F_REQUEST,
    ProtocolParseError,
    decode_string,
    decode_u8,
    decode_u32,
    iter_attributes,
    iter_messages,
)


class GetLinkParseError(enum.Enum):
    UNKNOW_IP_FAMILY = enum.auto()
    UNPARSABLE_ADDRESS = enum.auto()
    UNPARSABLE_BROADCAST_ADDRESS = enum.auto()
    UNPARSABLE_INTERFACE_NAME = enum.auto()
    UNPARSABLE_MTU = enum.auto()
    UNPARSABLE_LINK = enum.auto()
    UNPARSABLE_WEIGHT = enum.auto()
    UNPARSABLE_OPER_STATE = enum.auto()
    UNPARSABLE_GROUP = enum.auto()
    NO_INTERFACE_NAME = enum.auto()


@dataclass
class RawLinkDetails:
    """A link message as received, before its name is picked out."""

    index: int
    attributes: List[LinkAttribute] = field(default_factory=list)


@dataclass
class LinkDetails:
    """One link from a link dump."""

    index: int
    name: str
    attributes: List[LinkAttribute] = field(default_factory=list)

    @classmethod
    def from_raw(cls, raw: RawLinkDetails) -> "LinkDetails":
        """Take the interface name from the attributes; the last one wins."""
        name: Optional[str] = None
        for attribute in raw.attributes:
            if attribute.kind is LinkAttributeKind.INTERFACE_NAME:
                name = attribute.value
        if name is None:
            raise ProtocolParseError(GetLinkParseError.NO_INTERFACE_NAME)
        return cls(index=raw.index, name=name, attributes=raw.attributes)


_Reader = Tuple[LinkAttributeKind, Callable[[bytes], Any], Optional[GetLinkParseError]]

_READERS: Dict[int, _Reader] = {
    IFLA_ADDRESS: (LinkAttributeKind.ADDRESS, bytes, None),
    IFLA_BROADCAST: (LinkAttributeKind.BROADCAST_ADDRESS, bytes, None),
    IFLA_IFNAME: (
        LinkAttributeKind.INTERFACE_NAME,
        decode_string,
        GetLinkParseError.UNPARSABLE_INTERFACE_NAME,
    ),
    IFLA_MTU: (LinkAttributeKind.MTU, decode_u32, GetLinkParseError.UNPARSABLE_MTU),
    IFLA_LINK: (LinkAttributeKind.LINK, decode_u32, GetLinkParseError.UNPARSABLE_LINK),
    IFLA_WEIGHT: (
        LinkAttributeKind.WEIGHT,
        decode_u32,
        GetLinkParseError.UNPARSABLE_WEIGHT,
    ),
    IFLA_OPERSTATE: (
        LinkAttributeKind.OPERATIONAL_STATE,
        decode_u8,
        GetLinkParseError.UNPARSABLE_OPER_STATE,
    ),
    IFLA_GROUP: (
        LinkAttributeKind.GROUP,
        decode_u32,
        GetLinkParseError.UNPARSABLE_GROUP,
    ),
}


def read_link_attr(attr_type: int, payload: bytes) -> LinkAttribute:
    """Decode one link attribute; unknown types are kept as ``OTHER``."""
    reader = _READERS.get(attr_type)
    if reader is None:
        return LinkAttribute(LinkAttributeKind.OTHER, attr_type)
    kind, decode, error = reader
    try:
        value = decode(payload)
    except (ValueError, struct.error, UnicodeDecodeError) as exc:
        raise ProtocolParseError(error) from exc
    return LinkAttribute(kind, value)


def read_link_msg(payload: bytes) -> RawLinkDetails:
    """Decode the body of a link message: its header and attributes."""
    payload = bytes(payload)
    header = IfInfoMsg.unpack(payload)
    attributes = [
        read_link_attr(attribute.attr_type, value)
        for attribute, value in iter_attributes(payload[IfInfoMsg.SIZE:])
    ]
    return RawLinkDetails(index=header.index, attributes=attributes)


class GetAllLinkMsgBuilder(MessageBuilder):
    """Dump request for every link on the host."""

    MESSAGE_TYPE = RTM_GETLINK
    FLAGS = NLM_F_REQUEST | NLM_F_DUMP

    def _configure(self, request: Any) -> None:
        self.if_info_msg = IfInfoMsg()

    def _payload(self) -> bytes:
        return self.if_info_msg.pack()

    def build(self):
        """Write the dump request into the socket's send buffer."""
        return super().build()

    @classmethod
    def parse_response(cls, data: bytes) -> List[LinkDetails]:
        return [
            LinkDetails.from_raw(read_link_msg(payload))
            for _, payload in iter_messages(data)
        ]