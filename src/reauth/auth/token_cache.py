"""In-memory token cache keyed by target host.

Holds the most recent :class:`~reauth.models.ExtractedToken` per host.
Entries are written after every successful extraction, overwritten on
re-login, and removed either explicitly or when a retry with the cached
token still comes back unauthorized. There is no TTL: staleness is only
discovered by a failed retry.

Reads happen outside the per-host lock (proactive injection), so every
operation is safe for concurrent use without external locking.
"""

from __future__ import annotations

import threading
from typing import Any, Optional

from reauth.models import ExtractedToken


class TokenCache:
    """Thread-safe mapping of host to its latest extracted token.

    Example::

        cache = TokenCache()
        cache.put("api.example.com", token)
        cache.get("api.example.com")  # -> token
    """

    def __init__(self) -> None:
        self._tokens: dict[str, ExtractedToken] = {}
        self._lock = threading.Lock()

    def get(self, host: str) -> Optional[ExtractedToken]:
        """Return the cached token for *host*, or ``None``."""
        return self._tokens.get(host)

    def put(self, host: str, token: ExtractedToken) -> None:
        """Store *token* for *host*, replacing any previous entry."""
        with self._lock:
            self._tokens[host] = token

    def evict(self, host: str) -> bool:
        """Remove the entry for *host*. Returns ``True`` if one existed."""
        with self._lock:
            return self._tokens.pop(host, None) is not None

    def clear(self) -> None:
        """Remove all entries."""
        with self._lock:
            self._tokens.clear()

    def hosts(self) -> list[str]:
        """Return the hosts that currently have a cached token, sorted."""
        with self._lock:
            return sorted(self._tokens)

    def __contains__(self, host: object) -> bool:
        return host in self._tokens

    def __len__(self) -> int:
        return len(self._tokens)

    def stats(self) -> dict[str, Any]:
        """Return ``size`` and ``hosts`` for status displays."""
        hosts = self.hosts()
        return {"size": len(hosts), "hosts": hosts}
