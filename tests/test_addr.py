import errno
import ipaddress
import struct

import pytest

from netlinkreq.addr import (
    IFA_ADDRESS,
    IFA_FLAGS,
    IFA_LABEL,
    IFA_LOCAL,
    RTM_DELADDR,
    RTM_GETADDR,
    RTM_NEWADDR,
    AddAddressMsgBuilder,
    AddressAttribute,
    AddressAttributeKind,
    AddressDetails,
    AddressInput,
    DelAddressMsgBuilder,
    GetAddressParseError,
    GetAllAddressMsgBuilder,
    IfAddrMsg,
    RawAddressDetails,
    read_addr_attr,
    read_addr_msg,
)
from netlinkreq.rtnetlink import IpFamily
from netlinkreq.socket import NetlinkSocket
from netlinkreq.wire import (
    NLM_F_ACK,
    NLM_F_CREATE,
    NLM_F_DUMP,
    NLM_F_EXCL,
    NLM_F_MULTI,
    NLM_F_REQUEST,
    NLMSG_DONE,
    NLMSG_ERROR,
    HeaderParseError,
    NlAttribute,
    NlMsgHeader,
    ProtocolParseError,
    encode_attr,
    encode_ip_address_attr,
    encode_string_attr,
    iter_attributes,
)


class FakeTransport:
    def __init__(self, responses=()):
        self.sent = []
        self.responses = list(responses)

    def send(self, data):
        self.sent.append(bytes(data))
        return len(data)

    def recv(self, size):
        return self.responses.pop(0)[:size]

    def close(self):
        pass


def _message(msg_type, payload, flags=0):
    header = NlMsgHeader(NlMsgHeader.SIZE + len(payload), msg_type, flags, 1, 0)
    return header.pack() + payload


def _ack(code=0):
    return _message(NLMSG_ERROR, struct.pack("=i", code) + NlMsgHeader().pack())


def _done():
    return _message(NLMSG_DONE, struct.pack("=i", 0), NLM_F_MULTI)


def _socket(responses=()):
    transport = FakeTransport(responses)
    return NetlinkSocket(transport), transport


def test_ifaddrmsg_size_and_round_trip():
    assert IfAddrMsg.SIZE == 8
    msg = IfAddrMsg(family=10, prefixlen=64, flags=1, scope=2, index=9)
    assert IfAddrMsg.unpack(msg.pack()) == msg


def test_ifaddrmsg_truncated():
    with pytest.raises(HeaderParseError):
        IfAddrMsg.unpack(b"\x00\x01")


def test_ifaddrmsg_for_interface_uses_host_prefix():
    v4 = IfAddrMsg.for_interface(4, IpFamily.AF_INET)
    v6 = IfAddrMsg.for_interface(4, IpFamily.AF_INET6)
    assert (v4.family, v4.prefixlen, v4.index) == (IpFamily.AF_INET, 32, 4)
    assert (v6.family, v6.prefixlen, v6.index) == (IpFamily.AF_INET6, 128, 4)


def test_read_addr_attr_decodes_known_types():
    assert read_addr_attr(IFA_LABEL, b"eth0\0") == AddressAttribute(
        AddressAttributeKind.LABEL, "eth0"
    )
    address = ipaddress.ip_address("192.0.2.7")
    assert read_addr_attr(IFA_LOCAL, address.packed) == AddressAttribute(
        AddressAttributeKind.LOCAL, address
    )
    assert read_addr_attr(IFA_FLAGS, b"\x00" * 4) == AddressAttribute(
        AddressAttributeKind.OTHER, IFA_FLAGS
    )


def test_read_addr_attr_rejects_bad_address():
    with pytest.raises(ProtocolParseError) as info:
        read_addr_attr(IFA_ADDRESS, b"\x01\x02\x03")
    assert info.value.reason is GetAddressParseError.UNPARSABLE_ADDRESS


def test_read_addr_msg():
    payload = (
        IfAddrMsg(family=2, prefixlen=24, index=3).pack()
        + encode_ip_address_attr(IFA_ADDRESS, "192.0.2.1")
        + encode_string_attr(IFA_LABEL, "eth0")
    )
    raw = read_addr_msg(payload)
    assert raw.interface_index == 3
    assert raw.mask == 24
    assert [a.kind for a in raw.attributes] == [
        AddressAttributeKind.ADDRESS,
        AddressAttributeKind.LABEL,
    ]


def test_read_addr_msg_malformed_attribute():
    payload = IfAddrMsg().pack() + encode_attr(IFA_LOCAL, b"\x01")
    with pytest.raises(ProtocolParseError) as info:
        read_addr_msg(payload)
    assert info.value.reason is GetAddressParseError.UNPARSABLE_LOCAL


def test_address_details_prefers_local():
    address = ipaddress.ip_address("192.0.2.1")
    local = ipaddress.ip_address("192.0.2.2")
    raw = RawAddressDetails(
        interface_index=2,
        mask=24,
        attributes=[
            AddressAttribute(AddressAttributeKind.ADDRESS, address),
            AddressAttribute(AddressAttributeKind.LOCAL, local),
        ],
    )
    details = AddressDetails.from_raw(raw)
    assert details.ip_address == local
    assert details.interface_index == 2
    assert details.attributes == raw.attributes


def test_address_details_requires_address_attribute():
    local = ipaddress.ip_address("192.0.2.2")
    raw = RawAddressDetails(
        interface_index=2,
        mask=24,
        attributes=[AddressAttribute(AddressAttributeKind.LOCAL, local)],
    )
    with pytest.raises(ProtocolParseError) as info:
        AddressDetails.from_raw(raw)
    assert info.value.reason is GetAddressParseError.NO_ADDRESS


def test_get_all_addresses_call():
    payload = (
        IfAddrMsg(family=2, prefixlen=24, index=3).pack()
        + encode_ip_address_attr(IFA_ADDRESS, "192.0.2.1")
        + encode_string_attr(IFA_LABEL, "eth0")
    )
    socket, transport = _socket([_message(RTM_NEWADDR, payload, NLM_F_MULTI) + _done()])
    result = GetAllAddressMsgBuilder(socket).call()

    assert len(result) == 1
    assert result[0].ip_address == ipaddress.ip_address("192.0.2.1")
    assert result[0].interface_index == 3
    assert result[0].attributes[-1] == AddressAttribute(AddressAttributeKind.LABEL, "eth0")

    request = transport.sent[0]
    header = NlMsgHeader.unpack(request)
    assert header.msg_type == RTM_GETADDR
    assert header.flags == NLM_F_REQUEST | NLM_F_DUMP
    assert header.length == len(request)
    assert header.seq == 1
    assert IfAddrMsg.unpack(request[NlMsgHeader.SIZE:]) == IfAddrMsg()


def test_get_all_addresses_filter_by_interface():
    socket, transport = _socket()
    builder = GetAllAddressMsgBuilder(socket)
    builder.filter_by_interface(7)
    written = builder.send()
    request = transport.sent[0]
    assert written == len(request)
    assert IfAddrMsg.unpack(request[NlMsgHeader.SIZE:]).index == 7


def test_add_ipv4_address_request():
    socket, transport = _socket()
    builder = AddAddressMsgBuilder(socket, AddressInput("127.0.0.2", 1))
    written = builder.build()
    socket.send()
    request = transport.sent[0]

    header = NlMsgHeader.unpack(request)
    assert written == header.length == len(request)
    assert header.msg_type == RTM_NEWADDR
    assert header.flags == NLM_F_REQUEST | NLM_F_ACK | NLM_F_EXCL | NLM_F_CREATE

    body = request[NlMsgHeader.SIZE:]
    msg = IfAddrMsg.unpack(body)
    assert (msg.family, msg.prefixlen, msg.index) == (IpFamily.AF_INET, 32, 1)
    attributes = list(iter_attributes(body[IfAddrMsg.SIZE:]))
    assert attributes == [
        (
            NlAttribute(NlAttribute.SIZE + 4, IFA_LOCAL),
            ipaddress.ip_address("127.0.0.2").packed,
        )
    ]


def test_del_ipv6_address_request_with_mask():
    socket, transport = _socket()
    builder = DelAddressMsgBuilder(socket, AddressInput("2001:db8::1", 5))
    builder.set_mask(64)
    builder.send()
    request = transport.sent[0]

    header = NlMsgHeader.unpack(request)
    assert header.msg_type == RTM_DELADDR
    assert header.flags == NLM_F_REQUEST | NLM_F_ACK

    body = request[NlMsgHeader.SIZE:]
    msg = IfAddrMsg.unpack(body)
    assert (msg.family, msg.prefixlen, msg.index) == (IpFamily.AF_INET6, 64, 5)
    ((attribute, value),) = iter_attributes(body[IfAddrMsg.SIZE:])
    assert attribute.attr_type == IFA_ADDRESS
    assert value == ipaddress.ip_address("2001:db8::1").packed


def test_custom_header_keeps_sequence_and_pid():
    socket, transport = _socket()
    builder = DelAddressMsgBuilder(
        socket, AddressInput("192.0.2.9", 2), NlMsgHeader(seq=42, pid=7)
    )
    builder.send()
    header = NlMsgHeader.unpack(transport.sent[0])
    assert (header.seq, header.pid, header.msg_type) == (42, 7, RTM_DELADDR)


def test_add_address_call_acknowledged():
    socket, _ = _socket([_ack()])
    assert AddAddressMsgBuilder(socket, AddressInput("192.0.2.9", 2)).call() is None


def test_add_address_call_error():
    socket, _ = _socket([_ack(-errno.EEXIST)])
    with pytest.raises(HeaderParseError) as info:
        AddAddressMsgBuilder(socket, AddressInput("192.0.2.9", 2)).call()
    assert info.value.errno == errno.EEXIST


def test_address_input_accepts_text():
    value = AddressInput("192.0.2.5", 3)
    assert value.ip_address == ipaddress.IPv4Address("192.0.2.5")