"""Datasource for the Packet metadata service."""

from __future__ import annotations

import ipaddress
import json
from dataclasses import dataclass, field
from typing import Any, Optional, Union

from ..datasource import Datasource, Metadata
from .metadata import MetadataService

IPAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]

DEFAULT_ADDRESS = "https://metadata.packet.net/"
API_VERSION = ""
USERDATA_PATH = "userdata"
METADATA_PATH = "metadata"


def _optional_ip(value: Any) -> Optional[IPAddress]:
    if value is None or value == "":
        return None
    if not isinstance(value, str):
        raise ValueError(f"expected an IP address string, got {value!r}")
    return ipaddress.ip_address(value)


def _mapping(value: Any, what: str) -> dict:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ValueError(f"expected an object for {what}, got {value!r}")
    return value


@dataclass
class Netblock:
    """One address block assigned to the machine."""

    address: Optional[IPAddress] = None
    cidr: int = 0
    netmask: Optional[IPAddress] = None
    gateway: Optional[IPAddress] = None
    address_family: int = 0
    public: bool = False

    @classmethod
    def from_dict(cls, data: Any) -> Netblock:
        data = _mapping(data, "address")
        return cls(
            address=_optional_ip(data.get("address")),
            cidr=int(data.get("cidr") or 0),
            netmask=_optional_ip(data.get("netmask")),
            gateway=_optional_ip(data.get("gateway")),
            address_family=int(data.get("address_family") or 0),
            public=bool(data.get("public", False)),
        )


@dataclass
class Nic:
    """A network card: its device name and hardware address."""

    name: str = ""
    mac: str = ""

    @classmethod
    def from_dict(cls, data: Any) -> Nic:
        data = _mapping(data, "interface")
        return cls(name=data.get("name") or "", mac=data.get("mac") or "")


@dataclass
class NetworkData:
    """The network description published by the metadata service."""

    interfaces: list[Nic] = field(default_factory=list)
    netblocks: list[Netblock] = field(default_factory=list)
    dns: Optional[list[IPAddress]] = None

    @classmethod
    def from_dict(cls, data: Any) -> NetworkData:
        data = _mapping(data, "network")
        dns = data.get("dns")
        return cls(
            interfaces=[Nic.from_dict(nic) for nic in data.get("interfaces") or []],
            netblocks=[Netblock.from_dict(nb) for nb in data.get("addresses") or []],
            dns=None if dns is None else [_optional_ip(ip) for ip in dns],
        )


@dataclass
class PacketMetadata:
    """The subset of the metadata document that is used."""

    hostname: str = ""
    ssh_keys: list[str] = field(default_factory=list)
    network_data: NetworkData = field(default_factory=NetworkData)

    @classmethod
    def from_dict(cls, data: Any) -> PacketMetadata:
        data = _mapping(data, "metadata")
        return cls(
            hostname=data.get("hostname") or "",
            ssh_keys=list(data.get("ssh_keys") or []),
            network_data=NetworkData.from_dict(data.get("network")),
        )


class PacketMetadataService(MetadataService, Datasource):
    """Reads metadata and user data from the Packet metadata service."""

    def __init__(self, root: str = DEFAULT_ADDRESS, client: Any = None) -> None:
        super().__init__(root, client, API_VERSION, USERDATA_PATH, METADATA_PATH)

    def fetch_metadata(self) -> Metadata:
        metadata = Metadata()
        data = self.fetch_data(self.metadata_url())
        if not data:
            return metadata

        document = PacketMetadata.from_dict(json.loads(data))
        for netblock in document.network_data.netblocks:
            if netblock.address_family == 4:
                if netblock.public:
                    metadata.public_ipv4 = netblock.address
                else:
                    metadata.private_ipv4 = netblock.address
            else:
                metadata.public_ipv6 = netblock.address

        metadata.hostname = document.hostname
        metadata.ssh_public_keys = {
            str(index): key for index, key in enumerate(document.ssh_keys)
        }
        metadata.network_config = document.network_data
        return metadata

    def type(self) -> str:
        return "packet-metadata-service"