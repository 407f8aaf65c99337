"""Datasource for the CloudSigma server context."""

from __future__ import annotations

import base64
import binascii
import ipaddress
import json
import os
import re
import socket
import struct
from collections.abc import Callable, Iterable
from typing import Any, Optional, Protocol

from ..datasource import Datasource, Metadata

USER_DATA_FIELD_NAME = "cloudinit-user-data"
PRODUCT_NAME_PATH = "/sys/class/dmi/id/product_name"
DHCP_LEASES_DIR = "/run/systemd/netif/leases/"
_NET_CLASS_DIR = "/sys/class/net"
_SIOCGIFADDR = 0x8915

_MAC = re.compile(r"[0-9A-Fa-f]{2}([:-])[0-9A-Fa-f]{2}(?:\1[0-9A-Fa-f]{2}){4}")

InterfaceLister = Callable[[], Iterable[tuple[str, Iterable[Any]]]]


class ServerContextClient(Protocol):
    """The server context reader used by :class:`ServerContextService`."""

    def fetch_raw(self, key: str) -> bytes:
        """Return the raw JSON of the server context below ``key``."""

    def meta(self) -> dict[str, str]:
        """Return the server's meta fields."""


def is_base64_encoded(field: str, userdata: dict[str, str]) -> bool:
    """Whether ``field`` is listed in the ``base64_fields`` meta entry."""
    fields = userdata.get("base64_fields")
    if fields is None:
        return False
    return field in fields.split(",")


def _parse_ip(text: str):
    try:
        return ipaddress.ip_address(text)
    except ValueError:
        return None


def _normalise_mac(text: str) -> Optional[str]:
    text = text.strip()
    if not _MAC.fullmatch(text):
        return None
    return text.lower().replace("-", ":")


def _interface_ipv4(name: str):
    try:
        import fcntl
    except ImportError:
        return None
    try:
        with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sock:
            result = fcntl.ioctl(
                sock.fileno(),
                _SIOCGIFADDR,
                struct.pack("256s", name[:15].encode()),
            )
    except OSError:
        return None
    return ipaddress.IPv4Address(result[20:24])


def _system_interfaces() -> Iterable[tuple[str, list[Any]]]:
    """List the host's interfaces as (hardware address, IPv4 addresses)."""
    try:
        names = sorted(os.listdir(_NET_CLASS_DIR))
    except OSError:
        return []
    interfaces = []
    for name in names:
        try:
            with open(os.path.join(_NET_CLASS_DIR, name, "address")) as handle:
                mac = handle.read().strip()
        except OSError:
            continue
        address = _interface_ipv4(name)
        interfaces.append((mac, [address] if address is not None else []))
    return interfaces


class ServerContextService(Datasource):
    """Reads metadata and user data from the CloudSigma server context."""

    def __init__(
        self,
        client: ServerContextClient,
        *,
        interfaces: Optional[InterfaceLister] = None,
        product_name_path: str = PRODUCT_NAME_PATH,
        leases_dir: str = DHCP_LEASES_DIR,
    ) -> None:
        self.client = client
        self._interfaces = interfaces if interfaces is not None else _system_interfaces
        self.product_name_path = product_name_path
        self.leases_dir = leases_dir

    def is_available(self) -> bool:
        try:
            with open(self.product_name_path, "rb") as handle:
                product_name = handle.read(10)
        except OSError:
            return False
        return product_name == b"CloudSigma" and self._has_dhcp_leases()

    def availability_changes(self) -> bool:
        return True

    def config_root(self) -> str:
        return ""

    def type(self) -> str:
        return "server-context"

    def fetch_metadata(self) -> Metadata:
        document = json.loads(self.client.fetch_raw(""))
        if document is None:
            document = {}
        if not isinstance(document, dict):
            raise ValueError("server context is not a JSON object")

        metadata = Metadata()
        metadata.hostname = document.get("name") or document.get("uuid") or ""

        # An empty string, rather than a missing field, means there is no key.
        key = (document.get("meta") or {}).get("ssh_public_key") or ""
        if key:
            metadata.ssh_public_keys[key.split(" ")[-1]] = key

        for nic in document.get("nics") or []:
            ip_uuid = ((nic.get("ip_v4_conf") or {}).get("ip") or {}).get("uuid") or ""
            if ip_uuid:
                metadata.public_ipv4 = _parse_ip(ip_uuid)
            vlan_uuid = (nic.get("vlan") or {}).get("uuid") or ""
            if vlan_uuid:
                try:
                    metadata.private_ipv4 = self._find_local_ip(nic.get("mac") or "")
                except LookupError:
                    pass
        return metadata

    def fetch_userdata(self) -> bytes:
        meta = self.client.meta()
        user_data = meta.get(USER_DATA_FIELD_NAME)
        if user_data is None:
            return b""
        if is_base64_encoded(USER_DATA_FIELD_NAME, meta):
            cleaned = user_data.replace("\r", "").replace("\n", "")
            try:
                return base64.b64decode(cleaned, validate=True)
            except (binascii.Error, ValueError):
                return b""
        return user_data.encode()

    def _find_local_ip(self, mac: str):
        wanted = _normalise_mac(mac)
        if wanted is None:
            raise LookupError(f"invalid MAC address {mac!r}")
        for hwaddr, addresses in self._interfaces():
            if _normalise_mac(hwaddr) != wanted:
                continue
            for address in addresses:
                if isinstance(address, ipaddress.IPv4Address):
                    return address
                if isinstance(address, ipaddress.IPv6Address) and address.ipv4_mapped:
                    return address.ipv4_mapped
        raise LookupError("Local IP not found")

    def _has_dhcp_leases(self) -> bool:
        try:
            return len(os.listdir(self.leases_dir)) > 0
        except OSError:
            return False