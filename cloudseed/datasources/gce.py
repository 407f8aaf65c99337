"""Datasource for the Google Compute Engine metadata service."""

from __future__ import annotations

import ipaddress
from typing import Any, Optional, Union

from ..datasource import Datasource, Metadata
from .metadata import MetadataService

IPAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]

DEFAULT_ADDRESS = "http://metadata.google.internal/"
API_VERSION = "computeMetadata/v1/"
METADATA_PATH = API_VERSION + "instance/"
USERDATA_PATH = API_VERSION + "instance/attributes/user-data"
HEADERS = {"Metadata-Flavor": "Google"}


class GceMetadataService(MetadataService, Datasource):
    """Reads metadata and user data from the GCE metadata service."""

    def __init__(self, root: str = DEFAULT_ADDRESS, client: Any = None) -> None:
        super().__init__(
            root, client, API_VERSION, USERDATA_PATH, METADATA_PATH, headers=HEADERS
        )

    def fetch_metadata(self) -> Metadata:
        public = self._fetch_ip("network-interfaces/0/access-configs/0/external-ip")
        local = self._fetch_ip("network-interfaces/0/ip")
        hostname = self._fetch_string("hostname")
        return Metadata(public_ipv4=public, private_ipv4=local, hostname=hostname)

    def type(self) -> str:
        return "gce-metadata-service"

    def _fetch_string(self, key: str) -> str:
        return self.fetch_data(self.metadata_url() + key).decode(
            "utf-8", errors="replace"
        )

    def _fetch_ip(self, key: str) -> Optional[IPAddress]:
        text = self._fetch_string(key)
        if not text:
            return None
        try:
            return ipaddress.ip_address(text)
        except ValueError:
            raise ValueError(f'couldn\'t parse "{text}" as IP address') from None