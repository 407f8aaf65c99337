"""Datasource for the EC2 instance metadata service."""

from __future__ import annotations

import ipaddress
import logging
from typing import Any

from ..datasource import Datasource, Metadata
from .metadata import MetadataService

logger = logging.getLogger(__name__)

DEFAULT_ADDRESS = "http://169.254.169.254/"
API_VERSION = "2009-04-04/"
USERDATA_PATH = API_VERSION + "user-data"
METADATA_PATH = API_VERSION + "meta-data"


def _parse_ip(text: str):
    try:
        return ipaddress.ip_address(text)
    except ValueError:
        return None


def _lines(data: bytes) -> list[str]:
    lines = data.decode("utf-8", errors="replace").split("\n")
    if lines[-1] == "":
        lines.pop()
    return [line.removesuffix("\r") for line in lines]


class Ec2MetadataService(MetadataService, Datasource):
    """Reads metadata and user data from the EC2 metadata service."""

    def __init__(self, root: str = DEFAULT_ADDRESS, client: Any = None) -> None:
        super().__init__(root, client, API_VERSION, USERDATA_PATH, METADATA_PATH)

    def fetch_metadata(self) -> Metadata:
        metadata = Metadata()
        base = self.metadata_url()

        key_ids: dict[str, str] = {}
        for keyname in self.fetch_attributes(f"{base}/public-keys"):
            key_id, sep, name = keyname.partition("=")
            if not sep:
                raise ValueError(f'malformed public key: "{keyname}"')
            key_ids[name] = key_id
        for name, key_id in key_ids.items():
            metadata.ssh_public_keys[name] = self.fetch_attribute(
                f"{base}/public-keys/{key_id}/openssh-key"
            )
            logger.info("Found SSH key for %r", name)

        metadata.hostname = self.fetch_attribute(f"{base}/hostname").split(" ")[0]
        metadata.private_ipv4 = _parse_ip(self.fetch_attribute(f"{base}/local-ipv4"))
        metadata.public_ipv4 = _parse_ip(self.fetch_attribute(f"{base}/public-ipv4"))
        return metadata

    def type(self) -> str:
        return "ec2-metadata-service"

    def fetch_attributes(self, url: str) -> list[str]:
        """Fetch ``url`` and return its lines."""
        return _lines(self.fetch_data(url))

    def fetch_attribute(self, url: str) -> str:
        """Fetch ``url`` and return its first line, or an empty string."""
        attributes = self.fetch_attributes(url)
        return attributes[0] if attributes else ""