# netlinkreq

A small library for building rtnetlink requests, sending them over a netlink
socket and parsing the replies into plain Python objects.

What it can send and parse:

- links: dump all links (`netlinkreq.link_get.GetAllLinkMsgBuilder`), create a
  link of a given kind (`netlinkreq.link_ops.AddLinkMsgBuilder`) and delete a
  link by index (`netlinkreq.link_ops.DelLinkMsgBuilder`);
- IP addresses: dump, add and delete (`netlinkreq.addr`);
- the neighbour table: dump one address family (`netlinkreq.neigh`);
- routes: decoding of routing messages and their attributes
  (`netlinkreq.route_model`).

The live socket needs Linux. Encoding requests and parsing replies work on
any platform, since they only deal with bytes.

## Installation

```
pip install netlinkreq
```

## Listing interfaces

```python
from netlinkreq.socket import NetlinkSocket
from netlinkreq.link_get import GetAllLinkMsgBuilder

with NetlinkSocket.open() as nl:
    for link in GetAllLinkMsgBuilder(nl).call():
        print(link.index, link.name)
```

`NetlinkSocket.open()` opens a raw `NETLINK_ROUTE` socket by default; pass
another protocol number or a receive buffer `capacity` if needed. A builder
takes the socket, an optional request value and an optional `NlMsgHeader`;
without a header it takes the socket's next sequence number.

## Adding and removing addresses

Changing addresses and links needs root or `CAP_NET_ADMIN`.

```python
from netlinkreq.socket import NetlinkSocket
from netlinkreq.addr import AddAddressMsgBuilder, DelAddressMsgBuilder, AddressInput

with NetlinkSocket.open() as nl:
    request = AddressInput("127.0.0.2", 1)
    builder = AddAddressMsgBuilder(nl, request)
    builder.set_mask(8)
    builder.call()
    DelAddressMsgBuilder(nl, request).call()
```

IPv4 addresses are sent as `IFA_LOCAL`, IPv6 addresses as `IFA_ADDRESS`; the
prefix length defaults to a single host (32 or 128).

Dumping addresses returns `AddressDetails` objects. `filter_by_interface()`
narrows the dump to one interface when strict checking is enabled on the
socket.

## Creating and deleting links

```python
from netlinkreq.socket import NetlinkSocket
from netlinkreq.link_ops import AddLinkMsgBuilder, DelLinkMsgBuilder

with NetlinkSocket.open() as nl:
    AddLinkMsgBuilder(nl, ("dummy0", "dummy")).call()
    DelLinkMsgBuilder(nl, 42).call()   # by interface index
```

## Neighbours

```python
from netlinkreq.socket import NetlinkSocket
from netlinkreq.rtnetlink import IpFamily
from netlinkreq.neigh import GetNeighMsgBuilder

with NetlinkSocket.open() as nl:
    for entry in GetNeighMsgBuilder(nl, IpFamily.AF_INET).call():
        print(entry.ifindex, entry.state, entry.attributes)
```

States and types with a known name come back as `NeighbourState` and
`RouteType` members; other values come back as plain integers.

## Working with raw replies

`netlinkreq.wire` holds the framing: `NlMsgHeader`, `NlAttribute`, the
`encode_*` and `decode_*` helpers, `iter_messages()` (yields each data
message, stops at the end of a dump and raises on kernel errors),
`iter_attributes()` and `validate_ack()`. Routing messages can be decoded
with `netlinkreq.route_model.read_route_msg()`:

```python
from netlinkreq.wire import iter_messages
from netlinkreq.route_model import read_route_msg

routes = [read_route_msg(payload) for _, payload in iter_messages(reply_bytes)]
```

## Errors

Failures while reading a reply raise `netlinkreq.wire.ResponseError`:
`HeaderParseError` when the netlink framing is malformed or the kernel
answers with an error (its `errno` attribute is then set), and
`ProtocolParseError` when an attribute cannot be decoded (its `reason`
attribute names the failure, for example
`GetLinkParseError.NO_INTERFACE_NAME`).

## Asynchronous use

Wrap a `NetlinkSocket` in an `AsyncNetlinkSocket`, build requests on it the
same way and await `builder.call_async()`:

```python
from netlinkreq.socket import AsyncNetlinkSocket, NetlinkSocket
from netlinkreq.link_get import GetAllLinkMsgBuilder

async def links():
    nl = AsyncNetlinkSocket(NetlinkSocket.open())
    return await GetAllLinkMsgBuilder(nl).call_async()
```

## What it does not do

There are no request builders for dumping, adding or deleting routes and
gateways; only the decoding of routing messages is provided. Setting a link
up or down, enslaving a link to a master, and creating veth pairs or ipvlan
links in another network namespace are not provided either. There is no
command-line tool.

## Running the tests

```
pip install -e .[test]
pytest
```