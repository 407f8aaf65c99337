"""Fetching of users' public SSH keys from a key listing service."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Optional

from .httpclient import HttpClient

GITHUB_API_ROOT = "https://api.github.com"


@dataclass(frozen=True)
class UserKey:
    """One entry of a key listing."""

    key: str
    id: int = 0

    @classmethod
    def from_dict(cls, data: Any) -> UserKey:
        if not isinstance(data, dict):
            raise ValueError(f"expected a key object, got {data!r}")
        key = data.get("key") or ""
        if not isinstance(key, str):
            raise ValueError(f"expected a key string, got {key!r}")
        key_id = data.get("id") or 0
        if not isinstance(key_id, int) or isinstance(key_id, bool):
            raise ValueError(f"expected an integer id, got {key_id!r}")
        return cls(key=key, id=key_id)


def github_keys_url(github_user: str) -> str:
    """The URL listing the public keys of ``github_user``."""
    return f"{GITHUB_API_ROOT}/users/{github_user}/keys"


def fetch_user_keys(url: str, client: Optional[Any] = None) -> list[str]:
    """Fetch a JSON key listing from ``url`` and return the keys in order."""
    client = client if client is not None else HttpClient()
    document = json.loads(client.get_retry(url))
    if document is None:
        return []
    if not isinstance(document, list):
        raise ValueError("key listing is not a JSON array")
    return [UserKey.from_dict(entry).key for entry in document]