"""Parsing of Debian-style network interface configuration stanzas."""

from __future__ import annotations

import enum
import ipaddress
import re
import string
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Optional, Union

IPAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]
IPInterface = Union[ipaddress.IPv4Interface, ipaddress.IPv6Interface]


class StanzaError(ValueError):
    """A network configuration stanza could not be parsed."""


class InterfaceKind(enum.Enum):
    BOND = "bond"
    PHYSICAL = "physical"
    VLAN = "vlan"


@dataclass(frozen=True)
class Route:
    """A route to ``destination`` through ``gateway``."""

    destination: IPInterface
    gateway: Optional[IPAddress]


@dataclass
class ConfigMethodStatic:
    addresses: list[IPInterface] = field(default_factory=list)
    nameservers: list[IPAddress] = field(default_factory=list)
    domains: list[str] = field(default_factory=list)
    routes: list[Route] = field(default_factory=list)
    hwaddress: Optional[str] = None


@dataclass(frozen=True)
class ConfigMethodLoopback:
    pass


@dataclass(frozen=True)
class ConfigMethodManual:
    pass


@dataclass
class ConfigMethodDHCP:
    hwaddress: Optional[str] = None


ConfigMethod = Union[
    ConfigMethodStatic, ConfigMethodLoopback, ConfigMethodManual, ConfigMethodDHCP
]


@dataclass
class StanzaAuto:
    interfaces: list[str]


@dataclass
class StanzaInterface:
    name: str
    kind: InterfaceKind
    config_method: Optional[ConfigMethod]
    options: dict[str, list[str]] = field(default_factory=dict)
    auto: bool = False


Stanza = Union[StanzaAuto, StanzaInterface]

_STANZA_KEYWORDS = frozenset({"auto", "iface", "mapping"})
_VLAN_ID = re.compile(r"[+-]?[0-9]+")
_DEFAULT_ROUTE = ipaddress.ip_interface("0.0.0.0/0")


def parse_stanzas(lines: Optional[Iterable[str]]) -> list[Stanza]:
    """Parse configuration lines into stanzas and mark ``auto`` interfaces."""
    stanzas = [parse_stanza(raw) for raw in split_stanzas(lines or ())]

    autos = {
        name
        for stanza in stanzas
        if isinstance(stanza, StanzaAuto)
        for name in stanza.interfaces
    }
    interfaces = {
        stanza.name: stanza for stanza in stanzas if isinstance(stanza, StanzaInterface)
    }
    for name in autos:
        if name in interfaces:
            interfaces[name].auto = True
    return stanzas


def split_stanzas(lines: Iterable[str]) -> list[list[str]]:
    """Group lines into stanzas, each starting with a stanza keyword."""
    stanzas: list[list[str]] = []
    current: Optional[list[str]] = None
    for line in lines:
        if is_stanza_start(line):
            if current is not None:
                stanzas.append(current)
            current = [line]
        elif current is not None:
            current.append(line)
        else:
            raise StanzaError(f"missing stanza start {line!r}")
    if current is not None:
        stanzas.append(current)
    return stanzas


def is_stanza_start(line: str) -> bool:
    return line.split(" ")[0] in _STANZA_KEYWORDS or line.startswith("allow-")


def parse_stanza(raw_stanza: Sequence[str]) -> Stanza:
    """Parse one stanza: its header line followed by its option lines."""
    if not raw_stanza:
        raise ValueError("empty stanza")
    tokens = raw_stanza[0].split()
    if len(tokens) < 2:
        raise StanzaError(f"malformed stanza start {raw_stanza[0]!r}")

    kind, attributes = tokens[0], tokens[1:]
    options = list(raw_stanza[1:])
    if kind == "auto":
        return parse_auto_stanza(attributes, options)
    if kind == "iface":
        return parse_interface_stanza(attributes, options)
    raise StanzaError(f"unknown stanza {kind!r}")


def parse_auto_stanza(attributes: Sequence[str], options) -> StanzaAuto:
    return StanzaAuto(interfaces=list(attributes))


def parse_interface_stanza(
    attributes: Sequence[str], options: Optional[Iterable[str]]
) -> StanzaInterface:
    """Parse an ``iface <name> <family> <method>`` stanza and its options."""
    if len(attributes) != 3:
        raise StanzaError("incorrect number of attributes")

    iface, _family, method = attributes
    option_map = _parse_options(options or ())
    conf = _parse_config_method(method, iface, option_map)

    if "vlan_raw_device" in option_map or "." in iface:
        return parse_vlan_stanza(iface, conf, attributes, option_map)
    if "bond-slaves" in option_map:
        return parse_bond_stanza(iface, conf, attributes, option_map)
    return parse_physical_stanza(iface, conf, attributes, option_map)


def parse_hwaddress(options: Mapping[str, list[str]], iface: str) -> Optional[str]:
    """Return the ethernet address from a ``hwaddress ether`` option, if any."""
    hwaddress = options.get("hwaddress")
    if hwaddress and len(hwaddress) == 2 and hwaddress[0] == "ether":
        address = _parse_mac(hwaddress[1])
        if address is None:
            raise StanzaError(f"malformed hwaddress option for {iface!r}")
        return address
    return None


def parse_bond_stanza(iface, conf, attributes, options) -> StanzaInterface:
    return StanzaInterface(
        name=iface, kind=InterfaceKind.BOND, config_method=conf, options=options
    )


def parse_physical_stanza(iface, conf, attributes, options) -> StanzaInterface:
    return StanzaInterface(
        name=iface, kind=InterfaceKind.PHYSICAL, config_method=conf, options=options
    )


def parse_vlan_stanza(iface, conf, attributes, options) -> StanzaInterface:
    """Build a VLAN stanza, taking the VLAN id from the interface name."""
    if "." in iface:
        vlan_id = iface.split(".")[-1]
    elif iface.startswith("vlan"):
        vlan_id = iface[len("vlan"):]
    else:
        raise StanzaError(f"malformed vlan name {iface!r}")

    if not _VLAN_ID.fullmatch(vlan_id):
        raise StanzaError(f"malformed vlan name {iface!r}")

    vlan_options = {
        **options,
        "id": [vlan_id],
        "raw_device": list(options.get("vlan_raw_device", [])),
    }
    return StanzaInterface(
        name=iface, kind=InterfaceKind.VLAN, config_method=conf, options=vlan_options
    )


def _parse_options(options: Iterable[str]) -> dict[str, list[str]]:
    option_map: dict[str, list[str]] = {}
    for option in options:
        if option.startswith(("post-up", "pre-down")):
            key = "post-up" if option.startswith("post-up") else "pre-down"
            _head, sep, rest = option.partition(" ")
            if sep:
                option_map.setdefault(key, []).append(rest)
        else:
            tokens = option.split()
            if tokens:
                option_map[tokens[0]] = tokens[1:]
    return option_map


def _parse_config_method(
    method: str, iface: str, options: dict[str, list[str]]
) -> ConfigMethod:
    if method == "static":
        return _parse_static(iface, options)
    if method == "loopback":
        return ConfigMethodLoopback()
    if method == "manual":
        return ConfigMethodManual()
    if method == "dhcp":
        return ConfigMethodDHCP(hwaddress=parse_hwaddress(options, iface))
    raise StanzaError(f"invalid config method {method!r}")


def _parse_static(iface: str, options: dict[str, list[str]]) -> ConfigMethodStatic:
    address_ip = _single_option(options, "address", _parse_ip)
    netmask = _single_option(options, "netmask", _parse_ipv4)
    address = None
    if address_ip is not None and netmask is not None:
        address = _make_interface(address_ip, netmask)
    if address is None:
        raise StanzaError(f"malformed static network config for {iface!r}")

    routes: list[Route] = []
    gateways = options.get("gateway")
    if gateways and len(gateways) == 1:
        routes.append(Route(_DEFAULT_ROUTE, _parse_ip(gateways[0])))

    hwaddress = parse_hwaddress(options, iface)

    nameservers = [
        ip
        for ip in map(_parse_ip, options.get("dns-nameservers", []))
        if ip is not None
    ]
    routes.extend(
        route
        for route in map(_parse_route, options.get("post-up", []))
        if route is not None
    )
    return ConfigMethodStatic(
        addresses=[address],
        nameservers=nameservers,
        routes=routes,
        hwaddress=hwaddress,
    )


def _parse_route(command: str) -> Optional[Route]:
    if not command.startswith("route add"):
        return None

    fields = command.split()
    dest_ip: Optional[IPAddress] = None
    dest_mask: Optional[IPAddress] = None
    gateway: Optional[IPAddress] = None
    for name, value in zip(fields, fields[1:]):
        if name == "-net":
            network = _parse_cidr(value)
            if network is not None:
                dest_ip, dest_mask = network.network_address, network.netmask
            else:
                dest_ip = _parse_ip(value)
        elif name == "netmask":
            dest_mask = _parse_ipv4(value)
        elif name == "gw":
            gateway = _parse_ip(value)

    if dest_ip is None or dest_mask is None or gateway is None:
        return None
    destination = _make_interface(dest_ip, dest_mask)
    if destination is None:
        return None
    return Route(destination, gateway)


def _single_option(options, key, parse):
    values = options.get(key)
    if values and len(values) == 1:
        return parse(values[0])
    return None


def _parse_ip(text: str) -> Optional[IPAddress]:
    try:
        return ipaddress.ip_address(text)
    except ValueError:
        return None


def _parse_ipv4(text: str) -> Optional[ipaddress.IPv4Address]:
    ip = _parse_ip(text)
    if isinstance(ip, ipaddress.IPv6Address):
        return ip.ipv4_mapped
    return ip


def _parse_cidr(text: str):
    if "/" not in text:
        return None
    try:
        return ipaddress.ip_network(text, strict=False)
    except ValueError:
        return None


def _make_interface(ip: IPAddress, mask: IPAddress) -> Optional[IPInterface]:
    if ip.version != mask.version:
        return None
    bits = mask.max_prefixlen
    value = int(mask)
    prefix = bin(value).count("1")
    if value != ((1 << bits) - 1) ^ ((1 << (bits - prefix)) - 1):
        return None
    try:
        return ipaddress.ip_interface(f"{ip}/{prefix}")
    except ValueError:
        return None


def _parse_mac(text: str) -> Optional[str]:
    """Normalise a hardware address to lower-case colon-separated form."""
    if len(text) >= 3 and text[2] in ":-":
        groups, width = text.split(text[2]), 2
    elif len(text) >= 5 and text[4] == ".":
        groups, width = text.split("."), 4
    else:
        return None
    if not all(
        len(group) == width and all(c in string.hexdigits for c in group)
        for group in groups
    ):
        return None
    digits = "".join(groups).lower()
    if len(digits) // 2 not in (6, 8, 20):
        return None
    return ":".join(re.findall("..", digits))