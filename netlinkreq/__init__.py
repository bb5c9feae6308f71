"""Build, send and parse rtnetlink requests for links, addresses and neighbours, and decode routes."""

__version__ = "0.2.1"

__all__ = [
    "wire",
    "socket",
    "rtnetlink",
    "route_model",
    "addr",
    "link",
    "neigh",
    "link_get",
    "link_ops",
]