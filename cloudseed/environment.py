"""The environment that cloud configuration is applied in."""

from __future__ import annotations

import os
import posixpath
import re
from collections.abc import Mapping
from typing import Optional

from .datasource import Metadata

DEFAULT_SSH_KEY_NAME = "coreos-cloudinit"

# Each substitution key and the environment variable it falls back to.
_SUBSTITUTION_VARIABLES = {
    "$public_ipv4": "MILPA_PUBLIC_IPV4",
    "$private_ipv4": "MILPA_PRIVATE_IPV4",
    "$public_ipv6": "MILPA_PUBLIC_IPV6",
    "$private_ipv6": "MILPA_PRIVATE_IPV6",
}


class Environment:
    """Paths and address substitutions used while applying a configuration."""

    def __init__(
        self,
        root: str,
        config_root: str,
        workspace: str,
        ssh_key_name: str = DEFAULT_SSH_KEY_NAME,
        metadata: Optional[Metadata] = None,
        environ: Optional[Mapping[str, str]] = None,
    ) -> None:
        metadata = metadata if metadata is not None else Metadata()
        environ = environ if environ is not None else os.environ
        self.root = root
        self.config_root = config_root
        self.ssh_key_name = ssh_key_name
        self._workspace = workspace

        addresses = {
            "$public_ipv4": metadata.public_ipv4,
            "$private_ipv4": metadata.private_ipv4,
            "$public_ipv6": metadata.public_ipv6,
            "$private_ipv6": metadata.private_ipv6,
        }
        self.substitutions: dict[str, str] = {
            key: str(ip) if ip is not None else environ.get(variable, "")
            for key, variable in _SUBSTITUTION_VARIABLES.items()
            for ip in (addresses[key],)
        }

    def workspace(self) -> str:
        """The workspace directory below the root."""
        if not self.root and not self._workspace:
            return ""
        return posixpath.normpath(posixpath.join(self.root, self._workspace))

    def apply(self, data: str) -> str:
        """Replace every substitution key in ``data`` with its value.

        A key preceded by a backslash is left in place, without the backslash.
        """
        for key, value in self.substitutions.items():
            escaped = re.escape(key)
            data = re.sub(
                r"([^\\]|^)" + escaped,
                lambda match, value=value: match.group(1) + value,
                data,
            )
            data = re.sub(r"\\" + escaped, lambda _match, key=key: key, data)
        return data

    def default_environment_vars(self) -> dict[str, str]:
        """Variables for ``/etc/environment``; empty when no address is known."""
        return {
            variable: self.substitutions[key]
            for key, variable in _SUBSTITUTION_VARIABLES.items()
            if self.substitutions.get(key)
        }