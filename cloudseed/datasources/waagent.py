"""Datasource for the files left behind by the Azure provisioning agent."""

from __future__ import annotations

import ipaddress
import logging
import os
import posixpath
import xml.etree.ElementTree as ElementTree
from collections.abc import Callable
from typing import Optional

from ..datasource import Datasource, Metadata

logger = logging.getLogger(__name__)

ReadFile = Callable[[str], bytes]


def _read_file(filename: str) -> bytes:
    with open(filename, "rb") as handle:
        return handle.read()


def _parse_ip(text: str):
    try:
        return ipaddress.ip_address(text)
    except ValueError:
        return None


def _split_host(hostport: str) -> Optional[str]:
    """Return the host part of ``host:port``, or None when malformed."""
    if hostport.startswith("["):
        end = hostport.find("]")
        if end < 0 or hostport[end + 1 : end + 2] != ":":
            return None
        if ":" in hostport[end + 2 :]:
            return None
        return hostport[1:end]
    colon = hostport.rfind(":")
    if colon < 0:
        return None
    host = hostport[:colon]
    if ":" in host or "[" in host or "]" in host:
        return None
    return host


class WaAgent(Datasource):
    """Reads metadata and user data from the agent's state directory."""

    def __init__(self, root: str, read_file: Optional[ReadFile] = None) -> None:
        self.root = root
        self._read_file = read_file if read_file is not None else _read_file

    def is_available(self) -> bool:
        try:
            os.stat(posixpath.join(self.root, "provisioned"))
        except FileNotFoundError:
            return False
        except OSError:
            return True
        return True

    def availability_changes(self) -> bool:
        return True

    def config_root(self) -> str:
        return self.root

    def fetch_metadata(self) -> Metadata:
        metadata = Metadata()
        data = self._try_read_file(posixpath.join(self.root, "SharedConfig.xml"))
        if not data:
            return metadata

        document = ElementTree.fromstring(data)
        incarnation = document.find("Incarnation")
        wanted = incarnation.get("instance", "") if incarnation is not None else ""

        instance = next(
            (
                candidate
                for candidate in document.findall("Instances/Instance")
                if candidate.get("id", "") == wanted
            ),
            None,
        )
        if instance is None:
            return metadata

        metadata.private_ipv4 = _parse_ip(instance.get("address", ""))
        for endpoint in instance.findall("InputEndpoints/Endpoint"):
            host = _split_host(endpoint.get("loadBalancedPublicAddress", ""))
            if host is not None:
                metadata.public_ipv4 = _parse_ip(host)
                break
        return metadata

    def fetch_userdata(self) -> bytes:
        return self._try_read_file(posixpath.join(self.root, "CustomData"))

    def type(self) -> str:
        return "waagent"

    def _try_read_file(self, filename: str) -> bytes:
        logger.info("Attempting to read from %r", filename)
        try:
            return self._read_file(filename)
        except FileNotFoundError:
            return b""