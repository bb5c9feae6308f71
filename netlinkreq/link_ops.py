"""Requests creating and deleting links."""

from __future__ import annotations

from typing import Any, Tuple

from .link import (
    IFLA_IFNAME,
    IFLA_INFO_KIND,
    IFLA_LINKINFO,
    RTM_DELLINK,
    RTM_NEWLINK,
    IfInfoMsg,
)
from .socket import MessageBuilder
from .wire import (
    NLM_F_ACK,
    NLM_F_CREATE,
    NLM_F_EXCL,
    NLM_F_REQUEST,
    NlAttribute,
    attr_length,
    encode_attr,
    encode_string_attr,
    validate_ack,
)


class AddLinkMsgBuilder(MessageBuilder):
    """Request creating a link from an ``(interface name, kind)`` pair."""

    MESSAGE_TYPE = RTM_NEWLINK
    FLAGS = NLM_F_REQUEST | NLM_F_ACK | NLM_F_CREATE | NLM_F_EXCL

    def _configure(self, request: Tuple[str, str]) -> None:
        self.if_name, self.if_kind = request
        self.if_info_msg = IfInfoMsg()

    def _payload(self) -> bytes:
        link_info = encode_attr(IFLA_INFO_KIND, self.if_kind.encode("utf-8"))
        return (
            self.if_info_msg.pack()
            + encode_string_attr(IFLA_IFNAME, self.if_name)
            + NlAttribute(attr_length(len(link_info)), IFLA_LINKINFO).pack()
            + link_info
        )

    def build(self):
        """Write the request into the socket's send buffer."""
        return super().build()

    @classmethod
    def parse_response(cls, data: bytes) -> None:
        validate_ack(data)


class DelLinkMsgBuilder(MessageBuilder):
    """Request deleting the link with a given interface index."""

    MESSAGE_TYPE = RTM_DELLINK
    FLAGS = NLM_F_REQUEST | NLM_F_ACK

    def _configure(self, request: Any) -> None:
        self.if_info_msg = IfInfoMsg(index=int(request))

    def _payload(self) -> bytes:
        return self.if_info_msg.pack()

    def build(self):
        """Write the request into the socket's send buffer."""
        return super().build()

    @classmethod
    def parse_response(cls, data: bytes) -> None:
        validate_ack(data)