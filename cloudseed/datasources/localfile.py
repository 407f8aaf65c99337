"""Datasource reading user data from a local file."""

from __future__ import annotations

import os

from ..datasource import Datasource, Metadata


class LocalFile(Datasource):
    """User data stored in a file on the local filesystem."""

    def __init__(self, path: str) -> None:
        self.path = path

    def is_available(self) -> bool:
        try:
            os.stat(self.path)
        except FileNotFoundError:
            return False
        except OSError:
            return True
        return True

    def availability_changes(self) -> bool:
        return True

    def config_root(self) -> str:
        return ""

    def fetch_metadata(self) -> Metadata:
        return Metadata()

    def fetch_userdata(self) -> bytes:
        with open(self.path, "rb") as handle:
            return handle.read()

    def type(self) -> str:
        return "local-file"