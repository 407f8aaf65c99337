"""Datasource for the DigitalOcean metadata service."""

from __future__ import annotations

import ipaddress
import json
from dataclasses import dataclass, field
from typing import Any, Optional

from ..datasource import Datasource, Metadata
from .metadata import MetadataService

DEFAULT_ADDRESS = "http://169.254.169.254/"
API_VERSION = "metadata/v1"
USERDATA_PATH = API_VERSION + "/user-data"
METADATA_PATH = API_VERSION + ".json"


def _mapping(value: Any, what: str) -> dict:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ValueError(f"expected an object for {what}, got {value!r}")
    return value


def _parse_ip(text: str):
    try:
        return ipaddress.ip_address(text)
    except ValueError:
        return None


@dataclass
class Address:
    ip_address: str = ""
    netmask: str = ""
    cidr: int = 0
    gateway: str = ""

    @classmethod
    def from_dict(cls, data: Any) -> Optional[Address]:
        if data is None:
            return None
        data = _mapping(data, "address")
        return cls(
            ip_address=data.get("ip_address") or "",
            netmask=data.get("netmask") or "",
            cidr=int(data.get("cidr") or 0),
            gateway=data.get("gateway") or "",
        )


@dataclass
class Interface:
    ipv4: Optional[Address] = None
    ipv6: Optional[Address] = None
    anchor_ipv4: Optional[Address] = None
    mac: str = ""
    type: str = ""

    @classmethod
    def from_dict(cls, data: Any) -> Interface:
        data = _mapping(data, "interface")
        return cls(
            ipv4=Address.from_dict(data.get("ipv4")),
            ipv6=Address.from_dict(data.get("ipv6")),
            anchor_ipv4=Address.from_dict(data.get("anchor_ipv4")),
            mac=data.get("mac") or "",
            type=data.get("type") or "",
        )


@dataclass
class Interfaces:
    public: list[Interface] = field(default_factory=list)
    private: list[Interface] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Any) -> Interfaces:
        data = _mapping(data, "interfaces")
        return cls(
            public=[Interface.from_dict(i) for i in data.get("public") or []],
            private=[Interface.from_dict(i) for i in data.get("private") or []],
        )


@dataclass
class DNS:
    nameservers: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Any) -> DNS:
        data = _mapping(data, "dns")
        return cls(nameservers=list(data.get("nameservers") or []))


@dataclass
class DigitalOceanMetadata:
    """The metadata document served by the service."""

    hostname: str = ""
    interfaces: Interfaces = field(default_factory=Interfaces)
    public_keys: list[str] = field(default_factory=list)
    dns: DNS = field(default_factory=DNS)

    @classmethod
    def from_dict(cls, data: Any) -> DigitalOceanMetadata:
        data = _mapping(data, "metadata")
        return cls(
            hostname=data.get("hostname") or "",
            interfaces=Interfaces.from_dict(data.get("interfaces")),
            public_keys=list(data.get("public_keys") or []),
            dns=DNS.from_dict(data.get("dns")),
        )


class DigitalOceanMetadataService(MetadataService, Datasource):
    """Reads metadata and user data from the DigitalOcean metadata service."""

    def __init__(self, root: str = DEFAULT_ADDRESS, client: Any = None) -> None:
        super().__init__(root, client, API_VERSION, USERDATA_PATH, METADATA_PATH)

    def fetch_metadata(self) -> Metadata:
        metadata = Metadata()
        data = self.fetch_data(self.metadata_url())
        if not data:
            return metadata

        document = DigitalOceanMetadata.from_dict(json.loads(data))
        if document.interfaces.public:
            first = document.interfaces.public[0]
            if first.ipv4 is not None:
                metadata.public_ipv4 = _parse_ip(first.ipv4.ip_address)
            if first.ipv6 is not None:
                metadata.public_ipv6 = _parse_ip(first.ipv6.ip_address)
        if document.interfaces.private:
            first = document.interfaces.private[0]
            if first.ipv4 is not None:
                metadata.private_ipv4 = _parse_ip(first.ipv4.ip_address)
            if first.ipv6 is not None:
                metadata.private_ipv6 = _parse_ip(first.ipv6.ip_address)

        metadata.hostname = document.hostname
        metadata.ssh_public_keys = {
            str(index): key for index, key in enumerate(document.public_keys)
        }
        metadata.network_config = document
        return metadata

    def type(self) -> str:
        return "digitalocean-metadata-service"