"""Datasource fetching user data from a remote URL."""

from __future__ import annotations

from typing import Any

from ..datasource import Datasource, Metadata
from ..httpclient import HttpClient, HttpError


class RemoteFile(Datasource):
    """User data served at a URL."""

    def __init__(self, url: str, client: Any = None) -> None:
        self.url = url
        self.client = client if client is not None else HttpClient()

    def is_available(self) -> bool:
        try:
            self.client.get(self.url)
        except (HttpError, OSError):
            return False
        return True

    def availability_changes(self) -> bool:
        return True

    def config_root(self) -> str:
        return ""

    def fetch_metadata(self) -> Metadata:
        return Metadata()

    def fetch_userdata(self) -> bytes:
        return self.client.get_retry(self.url)

    def type(self) -> str:
        return "url"