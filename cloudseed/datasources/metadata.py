"""The shared behaviour of HTTP metadata services."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Optional

from ..httpclient import HttpClient, HttpError, NotFoundError


class MetadataService:
    """A metadata service reached over HTTP below a root URL."""

    def __init__(
        self,
        root: str = "",
        client: Any = None,
        api_version: str = "",
        userdata_path: str = "",
        metadata_path: str = "",
        headers: Optional[Mapping[str, str]] = None,
    ) -> None:
        if not root.endswith("/"):
            root += "/"
        self.root = root
        self.client = client if client is not None else HttpClient(headers)
        self.api_version = api_version
        self.userdata_path = userdata_path
        self.metadata_path = metadata_path

    def is_available(self) -> bool:
        try:
            self.client.get(self.root + self.api_version)
        except (HttpError, OSError):
            return False
        return True

    def availability_changes(self) -> bool:
        return True

    def config_root(self) -> str:
        return self.root

    def fetch_userdata(self) -> bytes:
        return self.fetch_data(self.userdata_url())

    def fetch_data(self, url: str) -> bytes:
        """Fetch ``url``; a missing resource yields empty data."""
        try:
            return self.client.get_retry(url)
        except NotFoundError:
            return b""

    def metadata_url(self) -> str:
        return self.root + self.metadata_path

    def userdata_url(self) -> str:
        return self.root + self.userdata_path