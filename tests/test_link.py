import dataclasses
import struct

import pytest

from netlinkreq.link import (
    AF_PACKET,
    DeviceFlags,
    IfInfoMsg,
    LinkAttribute,
    LinkAttributeKind,
)
from netlinkreq.wire import HeaderParseError


def test_ifinfomsg_size():
    assert IfInfoMsg.SIZE == 16
    assert len(IfInfoMsg().pack()) == IfInfoMsg.SIZE


def test_ifinfomsg_default_family_is_packet():
    packed = IfInfoMsg(index=5).pack()
    assert packed[0] == AF_PACKET
    assert packed[1] == 0
    assert struct.unpack_from("=i", packed, 4)[0] == 5


def test_ifinfomsg_round_trip():
    msg = IfInfoMsg(device_type=1, index=-3, flags=DeviceFlags.UP, change=1)
    restored = IfInfoMsg.unpack(msg.pack())
    assert restored == msg
    assert restored.family == AF_PACKET


def test_ifinfomsg_unpack_ignores_trailing_bytes():
    msg = IfInfoMsg(index=12, flags=int(DeviceFlags.RUNNING))
    assert IfInfoMsg.unpack(msg.pack() + b"\xff" * 8) == msg


def test_ifinfomsg_truncated():
    with pytest.raises(HeaderParseError):
        IfInfoMsg.unpack(IfInfoMsg().pack()[:-1])


def test_device_flags_values():
    assert DeviceFlags(1) is DeviceFlags.UP
    assert DeviceFlags(1 << 16) is DeviceFlags.LOWER_UP
    combined = DeviceFlags(DeviceFlags.UP | DeviceFlags.RUNNING)
    assert DeviceFlags.UP in combined
    assert DeviceFlags.LOOPBACK not in combined


def test_device_flags_packed_bits():
    packed = IfInfoMsg(flags=DeviceFlags.UP | DeviceFlags.RUNNING).pack()
    assert struct.unpack_from("=I", packed, 8)[0] == (1 << 0) | (1 << 6)


def test_device_flags_survive_packing():
    flags = DeviceFlags.UP | DeviceFlags.MULTICAST
    restored = IfInfoMsg.unpack(IfInfoMsg(flags=flags).pack())
    assert DeviceFlags(restored.flags) == flags


def test_link_attribute_is_immutable_value():
    attribute = LinkAttribute(LinkAttributeKind.INTERFACE_NAME, "lo")
    assert attribute == LinkAttribute(LinkAttributeKind.INTERFACE_NAME, "lo")
    with pytest.raises(dataclasses.FrozenInstanceError):
        attribute.value = "eth0"