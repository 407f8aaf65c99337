"""Interface generation from the network description of the Packet service."""

from __future__ import annotations

import ipaddress
import re
from typing import Optional

from .datasources.packet import Netblock, NetworkData
from .interfaces import BondInterface, LogicalInterface, PhysicalInterface
from .stanza import ConfigMethodStatic, Route

DEFAULT_NAMESERVERS = (
    ipaddress.ip_address("8.8.8.8"),
    ipaddress.ip_address("8.8.4.4"),
)

_BOND_OPTIONS = {
    "Mode": "802.3ad",
    "LACPTransmitRate": "fast",
    "MIIMonitorSec": ".2",
    "UpDelaySec": ".2",
    "DownDelaySec": ".2",
}

_PRIVATE_DESTINATION = ipaddress.ip_interface("10.0.0.0/8")
_DEFAULT_V4 = ipaddress.ip_interface("0.0.0.0/0")
_DEFAULT_V6 = ipaddress.ip_interface("::/0")

_MAC = re.compile(r"[0-9A-Fa-f]{2}([:-])[0-9A-Fa-f]{2}(?:\1[0-9A-Fa-f]{2}){4}")


def process_packet_netconf(netdata: NetworkData) -> list[LogicalInterface]:
    """Build a bond over every listed interface, carrying all the addresses."""
    if netdata.dns is not None:
        nameservers = list(netdata.dns)
    else:
        nameservers = list(DEFAULT_NAMESERVERS)
    return _parse_network(netdata, nameservers)


def _parse_network(netdata: NetworkData, nameservers: list) -> list[LogicalInterface]:
    if not netdata.interfaces:
        raise ValueError("network data lists no interfaces")

    addresses = [
        address
        for address in map(_address, netdata.netblocks)
        if address is not None
    ]
    routes = [_route(netblock) for netblock in netdata.netblocks]

    bond = BondInterface(
        name="bond0",
        hwaddr=_parse_mac(netdata.interfaces[0].mac),
        config=ConfigMethodStatic(
            addresses=addresses, nameservers=list(nameservers), routes=routes
        ),
        options=dict(_BOND_OPTIONS),
    )

    interfaces: list[LogicalInterface] = []
    for index, nic in enumerate(netdata.interfaces):
        bond.slaves.append(nic.name)
        interfaces.append(
            PhysicalInterface(
                name=nic.name,
                config=ConfigMethodStatic(nameservers=list(nameservers)),
                children=[bond],
                config_depth=index,
            )
        )
    interfaces.append(bond)
    return interfaces


def _address(netblock: Netblock):
    if netblock.address is None:
        return None
    mask = netblock.netmask
    if mask is not None and mask.version == netblock.address.version:
        prefix = bin(int(mask)).count("1")
    else:
        prefix = netblock.cidr
    return ipaddress.ip_interface(f"{netblock.address}/{prefix}")


def _route(netblock: Netblock) -> Route:
    if not netblock.public:
        destination = _PRIVATE_DESTINATION
    elif netblock.address_family == 4:
        destination = _DEFAULT_V4
    else:
        destination = _DEFAULT_V6
    return Route(destination, netblock.gateway)


def _parse_mac(text: str) -> Optional[str]:
    if not _MAC.fullmatch(text):
        return None
    return text.lower().replace("-", ":")