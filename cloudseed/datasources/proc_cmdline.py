"""Datasource that follows a cloud-config URL given on the kernel command line."""

from __future__ import annotations

import logging
from typing import Any, Optional

from ..datasource import Datasource, Metadata
from ..httpclient import HttpClient

logger = logging.getLogger(__name__)

PROC_CMDLINE_LOCATION = "/proc/cmdline"
PROC_CMDLINE_CLOUD_CONFIG_FLAG = "cloud-config-url"


def find_cloud_config_url(text: str) -> str:
    """Return the last ``cloud-config-url`` value on a kernel command line."""
    url: Optional[str] = None
    for token in text.split(" "):
        key, sep, value = token.partition("=")
        if key.replace("_", "-") != PROC_CMDLINE_CLOUD_CONFIG_FLAG:
            continue
        if not sep:
            logger.warning(
                "Found cloud-config-url in /proc/cmdline with no value, ignoring."
            )
            continue
        url = value
    if url is None:
        raise LookupError("cloud-config-url not found")
    return url


class ProcCmdline(Datasource):
    """Fetches user data from the URL named on the kernel command line."""

    def __init__(
        self, location: str = PROC_CMDLINE_LOCATION, client: Any = None
    ) -> None:
        self.location = location
        self.client = client if client is not None else HttpClient()

    def is_available(self) -> bool:
        try:
            find_cloud_config_url(self._read_cmdline())
        except (OSError, LookupError):
            return False
        return True

    def availability_changes(self) -> bool:
        return False

    def config_root(self) -> str:
        return ""

    def fetch_metadata(self) -> Metadata:
        return Metadata()

    def fetch_userdata(self) -> bytes:
        url = find_cloud_config_url(self._read_cmdline())
        return self.client.get_retry(url)

    def type(self) -> str:
        return "proc-cmdline"

    def _read_cmdline(self) -> str:
        with open(self.location, "rb") as handle:
            return handle.read().decode("utf-8", errors="replace").strip()