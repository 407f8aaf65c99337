"""Datasource for an OpenStack-style configuration drive."""

from __future__ import annotations

import json
import logging
import os
import posixpath
from collections.abc import Callable
from typing import Optional

from ..datasource import Datasource, Metadata

logger = logging.getLogger(__name__)

OPENSTACK_API_VERSION = "latest"

ReadFile = Callable[[str], bytes]


def _read_file(filename: str) -> bytes:
    with open(filename, "rb") as handle:
        return handle.read()


def _path_exists(path: str) -> bool:
    try:
        os.stat(path)
    except FileNotFoundError:
        return False
    except OSError:
        return True
    return True


class ConfigDrive(Datasource):
    """Reads metadata and user data from a mounted configuration drive."""

    def __init__(self, root: str, read_file: Optional[ReadFile] = None) -> None:
        self.root = root
        self._read_file = read_file if read_file is not None else _read_file

    def is_available(self) -> bool:
        return _path_exists(self.root)

    def availability_changes(self) -> bool:
        return True

    def config_root(self) -> str:
        return self._openstack_root()

    def fetch_metadata(self) -> Metadata:
        metadata = Metadata()
        data = self._try_read_file(
            posixpath.join(self._openstack_version_root(), "meta_data.json")
        )
        if not data:
            return metadata

        document = json.loads(data)
        if document is None:
            return metadata
        if not isinstance(document, dict):
            raise ValueError("meta_data.json does not hold a JSON object")

        metadata.ssh_public_keys = dict(document.get("public_keys") or {})
        metadata.hostname = document.get("hostname") or ""
        network_config = document.get("network_config") or {}
        content_path = network_config.get("content_path") or ""
        if content_path:
            metadata.network_config = self._try_read_file(
                posixpath.join(self._openstack_root(), content_path)
            )
        return metadata

    def fetch_userdata(self) -> bytes:
        return self._try_read_file(
            posixpath.join(self._openstack_version_root(), "user_data")
        )

    def type(self) -> str:
        return "cloud-drive"

    def _openstack_root(self) -> str:
        return posixpath.join(self.root, "openstack")

    def _openstack_version_root(self) -> str:
        return posixpath.join(self._openstack_root(), OPENSTACK_API_VERSION)

    def _try_read_file(self, filename: str) -> bytes:
        logger.info("Attempting to read from %r", filename)
        try:
            return self._read_file(filename)
        except FileNotFoundError:
            return b""