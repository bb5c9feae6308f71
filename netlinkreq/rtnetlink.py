"""Definitions shared by the routing netlink requests."""

from __future__ import annotations

import enum
import ipaddress


class IpFamily(enum.IntEnum):
    """IPv4 or IPv6 address family."""

    AF_INET = 2
    AF_INET6 = 10

    @classmethod
    def from_address(cls, address) -> "IpFamily":
        """The family of an IP address given as text, bytes or an address object."""
        if ipaddress.ip_address(address).version == 4:
            return cls.AF_INET
        return cls.AF_INET6

    @property
    def max_prefix_length(self) -> int:
        """The prefix length of a single host address in this family."""
        return 32 if self is IpFamily.AF_INET else 128