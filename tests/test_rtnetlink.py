import ipaddress

import pytest

from netlinkreq.rtnetlink import IpFamily


def test_family_values():
    assert IpFamily(2) is IpFamily.AF_INET
    assert IpFamily(10) is IpFamily.AF_INET6


def test_unknown_family_raises():
    with pytest.raises(ValueError):
        IpFamily(3)


@pytest.mark.parametrize(
    "address, family",
    [
        ("127.0.0.2", IpFamily.AF_INET),
        ("::1", IpFamily.AF_INET6),
        (ipaddress.ip_address("10.1.2.3"), IpFamily.AF_INET),
        (ipaddress.ip_address("fe80::1"), IpFamily.AF_INET6),
    ],
)
def test_from_address(address, family):
    assert IpFamily.from_address(address) is family


def test_from_invalid_address():
    with pytest.raises(ValueError):
        IpFamily.from_address("not-an-address")


@pytest.mark.parametrize("address, length", [("192.0.2.1", 32), ("2001:db8::1", 128)])
def test_max_prefix_length(address, length):
    assert IpFamily.from_address(address).max_prefix_length == length