"""The common shape of every source of instance metadata and user data."""

from __future__ import annotations

import ipaddress
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Optional, Union

IPAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]


@dataclass
class Metadata:
    """Instance metadata gathered from a datasource."""

    public_ipv4: Optional[IPAddress] = None
    public_ipv6: Optional[IPAddress] = None
    private_ipv4: Optional[IPAddress] = None
    private_ipv6: Optional[IPAddress] = None
    hostname: str = ""
    ssh_public_keys: dict[str, str] = field(default_factory=dict)
    network_config: Any = None


class Datasource(ABC):
    """A place that cloud configuration and metadata can be read from."""

    @abstractmethod
    def is_available(self) -> bool:
        """Whether the datasource can be read right now."""

    @abstractmethod
    def availability_changes(self) -> bool:
        """Whether availability may change over time, so polling is worthwhile."""

    @abstractmethod
    def config_root(self) -> str:
        """The root location of the configuration, or an empty string."""

    @abstractmethod
    def fetch_metadata(self) -> Metadata:
        """Read the instance metadata."""

    @abstractmethod
    def fetch_userdata(self) -> bytes:
        """Read the raw user data."""

    @abstractmethod
    def type(self) -> str:
        """A short name describing the kind of datasource."""