"""Generation of systemd-networkd unit contents from network interface descriptions."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Optional, Protocol, runtime_checkable

from .stanza import (
    ConfigMethod,
    ConfigMethodDHCP,
    ConfigMethodLoopback,
    ConfigMethodManual,
    ConfigMethodStatic,
    InterfaceKind,
    StanzaInterface,
)


@runtime_checkable
class InterfaceGenerator(Protocol):
    """Anything that can render the networkd files for one interface."""

    name: str

    def filename(self) -> str:
        """Base name, without extension, of the generated unit files."""

    def netdev(self) -> str:
        """Contents of the ``.netdev`` file, or an empty string."""

    def link(self) -> str:
        """Contents of the ``.link`` file, or an empty string."""

    def network(self) -> str:
        """Contents of the ``.network`` file, or an empty string."""

    def type(self) -> str:
        """The kind of interface."""

    def modprobe_params(self) -> str:
        """Kernel module parameters needed by the interface."""


def _ip_text(ip: object) -> str:
    return "<nil>" if ip is None else str(ip)


@dataclass
class LogicalInterface:
    """Common state and rendering shared by every interface kind."""

    name: str = ""
    hwaddr: Optional[str] = None
    config: Optional[ConfigMethod] = None
    children: list[LogicalInterface] = field(default_factory=list)
    config_depth: int = 0

    def network(self) -> str:
        parts = ["[Match]\n"]
        if self.name:
            parts.append(f"Name={self.name}\n")
        if self.hwaddr is not None:
            parts.append(f"MACAddress={self.hwaddr}\n")
        parts.append("\n[Network]\n")

        for child in self.children:
            if isinstance(child, VlanInterface):
                parts.append(f"VLAN={child.name}\n")
            elif isinstance(child, BondInterface):
                parts.append(f"Bond={child.name}\n")

        conf = self.config
        if isinstance(conf, ConfigMethodStatic):
            if conf.domains:
                parts.append(f"Domains={' '.join(conf.domains)}\n")
            parts.extend(f"DNS={nameserver}\n" for nameserver in conf.nameservers)
            parts.extend(f"\n[Address]\nAddress={addr}\n" for addr in conf.addresses)
            parts.extend(
                f"\n[Route]\nDestination={route.destination}\n"
                f"Gateway={_ip_text(route.gateway)}\n"
                for route in conf.routes
            )
        elif isinstance(conf, ConfigMethodDHCP):
            parts.append("DHCP=true\n")

        return "".join(parts)

    def link(self) -> str:
        return ""

    def netdev(self) -> str:
        return ""

    def filename(self) -> str:
        name = self.name or (self.hwaddr or "")
        return f"{self.config_depth:02x}-{name}"

    def modprobe_params(self) -> str:
        return ""

    def type(self) -> str:
        return "logical"


@dataclass
class PhysicalInterface(LogicalInterface):
    """A real network device."""

    def type(self) -> str:
        return "physical"


@dataclass
class BondInterface(LogicalInterface):
    """A bond aggregating several slave interfaces."""

    slaves: list[str] = field(default_factory=list)
    options: dict[str, str] = field(default_factory=dict)

    def netdev(self) -> str:
        parts = [f"[NetDev]\nKind=bond\nName={self.name}\n"]
        if self.hwaddr is not None:
            parts.append(f"MACAddress={self.hwaddr}\n")
        parts.append("\n[Bond]\n")
        parts.extend(f"{key}={self.options[key]}\n" for key in sorted(self.options))
        return "".join(parts)

    def modprobe_params(self) -> str:
        return " ".join(f"{key}={self.options[key]}" for key in sorted(self.options))

    def type(self) -> str:
        return "bond"


@dataclass
class VlanInterface(LogicalInterface):
    """A VLAN on top of a raw device."""

    vlan_id: int = 0
    raw_device: str = ""

    def netdev(self) -> str:
        parts = [f"[NetDev]\nKind=vlan\nName={self.name}\n"]
        if isinstance(self.config, (ConfigMethodStatic, ConfigMethodDHCP)):
            if self.config.hwaddress is not None:
                parts.append(f"MACAddress={self.config.hwaddress}\n")
        parts.append(f"\n[VLAN]\nId={self.vlan_id}\n")
        return "".join(parts)

    def type(self) -> str:
        return "vlan"


def build_interfaces(stanzas: Iterable[StanzaInterface]) -> list[LogicalInterface]:
    """Turn interface stanzas into linked interfaces, sorted by name."""
    interface_map = _create_interfaces(stanzas)
    _link_ancestors(interface_map)
    _mark_config_depths(interface_map)
    return [interface_map[name] for name in sorted(interface_map)]


def _blind_physical(name: str) -> PhysicalInterface:
    return PhysicalInterface(name=name, config=ConfigMethodManual())


def _to_int(text: str) -> int:
    try:
        return int(text)
    except ValueError:
        return 0


def _create_interfaces(
    stanzas: Iterable[StanzaInterface],
) -> dict[str, LogicalInterface]:
    interface_map: dict[str, LogicalInterface] = {}
    for stanza in stanzas:
        if stanza.kind is InterfaceKind.BOND:
            bond_options = {
                key: values[0]
                for key in ("mode", "miimon", "lacp-rate")
                if (values := stanza.options.get("bond-" + key))
            }
            slaves = list(stanza.options.get("bond-slaves", []))
            interface_map[stanza.name] = BondInterface(
                name=stanza.name,
                config=stanza.config_method,
                slaves=slaves,
                options=bond_options,
            )
            for slave in slaves:
                if slave not in interface_map:
                    interface_map[slave] = _blind_physical(slave)

        elif stanza.kind is InterfaceKind.PHYSICAL:
            if isinstance(stanza.config_method, ConfigMethodLoopback):
                continue
            interface_map[stanza.name] = PhysicalInterface(
                name=stanza.name, config=stanza.config_method
            )

        elif stanza.kind is InterfaceKind.VLAN:
            id_values = stanza.options.get("id") or [""]
            raw_device = ""
            devices = stanza.options.get("raw_device") or []
            if len(devices) == 1:
                raw_device = devices[0]
                if raw_device not in interface_map:
                    interface_map[raw_device] = _blind_physical(raw_device)
            interface_map[stanza.name] = VlanInterface(
                name=stanza.name,
                config=stanza.config_method,
                vlan_id=_to_int(id_values[0]),
                raw_device=raw_device,
            )
    return interface_map


def _link_ancestors(interface_map: dict[str, LogicalInterface]) -> None:
    for name in sorted(interface_map):
        iface = interface_map[name]
        if isinstance(iface, VlanInterface):
            parents = [iface.raw_device]
        elif isinstance(iface, BondInterface):
            parents = iface.slaves
        else:
            continue
        for parent_name in parents:
            parent = interface_map.get(parent_name)
            if isinstance(parent, (PhysicalInterface, BondInterface)):
                parent.children.append(iface)


def _mark_config_depths(interface_map: dict[str, LogicalInterface]) -> None:
    child_names = {
        child.name for iface in interface_map.values() for child in iface.children
    }
    for name, iface in interface_map.items():
        if name not in child_names:
            _set_depth(iface)


def _set_depth(iface: LogicalInterface) -> int:
    max_depth = max((_set_depth(child) for child in iface.children), default=0)
    iface.config_depth = max_depth
    return max_depth + 1