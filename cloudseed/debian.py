"""Conversion of Debian ``interfaces`` files into interface generators."""

from __future__ import annotations

import logging
from typing import Union

from .interfaces import LogicalInterface, build_interfaces
from .stanza import StanzaInterface, parse_stanzas

logger = logging.getLogger(__name__)


def process_debian_netconf(config: Union[bytes, str]) -> list[LogicalInterface]:
    """Parse a Debian network configuration into interfaces."""
    logger.info("Processing Debian network config")
    if isinstance(config, bytes):
        config = config.decode("utf-8", errors="replace")
    stanzas = parse_stanzas(format_config(config))

    interfaces = [stanza for stanza in stanzas if isinstance(stanza, StanzaInterface)]
    logger.info("Parsed %d network interfaces", len(interfaces))

    logger.info("Processed Debian network config")
    return build_interfaces(interfaces)


def format_config(config: str) -> list[str]:
    """Join continued lines and drop blank lines and comments."""
    joined = config.replace("\\\n", "")
    stripped = (line.strip() for line in joined.split("\n"))
    return [line for line in stripped if line and not line.startswith("#")]