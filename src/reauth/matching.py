"""URL pattern matching and specificity ranking.

A profile's ``url_pattern`` has the form ``host-glob[/path-glob]``:

* **Host glob** -- an exact host, or ``*.example.com`` which matches any
  subdomain of ``example.com`` *and* the bare ``example.com`` itself.
  Comparison is case-insensitive.
* **Path glob** -- ``/**`` matches every path (the default when the pattern
  has no path at all), ``prefix/*`` matches ``prefix`` plus at most one more
  segment, ``prefix/**`` matches ``prefix`` plus any number of segments, and
  anything else must equal the path exactly.

When several enabled profiles match the same URL, :func:`specificity`
ranks them. The score is a heuristic kept for compatibility with existing
configurations: pattern length, +100 when a path is present, -50 when the
path ends in ``/**``, +50 when the host has no wildcard. It is not a total
order over all possible pattern sets; ties go to the profile listed first.

Everything here is a pure function of its arguments.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Iterable, Optional

import httpx

if TYPE_CHECKING:
    from reauth.models import AuthProfile

_ANY_PATH = "/**"


def split_pattern(pattern: str) -> tuple[str, Optional[str]]:
    """Split *pattern* into its host glob and path glob.

    Returns:
        ``(host_glob, path_glob)``; ``path_glob`` is ``None`` for legacy
        host-only patterns.
    """
    slash = pattern.find("/")
    if slash > 0:
        return pattern[:slash], pattern[slash:]
    return pattern, None


def matches_host(host: str, host_glob: str) -> bool:
    """Match *host* against a host glob (``*.`` wildcard supported)."""
    host = host.lower()
    host_glob = host_glob.lower()
    if host_glob.startswith("*."):
        base = host_glob[2:]
        return host == base or host.endswith("." + base)
    return host == host_glob


def _within(path: str, prefix: str) -> Optional[str]:
    """Return the part of *path* after *prefix* if it starts on a segment boundary."""
    if not path.startswith(prefix):
        return None
    rest = path[len(prefix):]
    if rest and not rest.startswith("/") and not prefix.endswith("/"):
        return None
    return rest


def matches_path(path: str, path_glob: str) -> bool:
    """Match *path* against a path glob."""
    if path_glob == _ANY_PATH:
        return True

    if path_glob.endswith("/**"):
        return _within(path, path_glob[:-3]) is not None

    if path_glob.endswith("/*"):
        rest = _within(path, path_glob[:-2])
        if rest is None:
            return False
        if rest.startswith("/"):
            rest = rest[1:]
        # at most one more segment
        return "/" not in rest

    return path == path_glob


def matches_url(pattern: Optional[str], host: str, path: Optional[str]) -> bool:
    """Whether *pattern* governs the URL made of *host* and *path*.

    An empty pattern matches nothing; a missing path is treated as ``/``.
    """
    if not pattern:
        return False
    host_glob, path_glob = split_pattern(pattern)
    if not matches_host(host, host_glob):
        return False
    return matches_path(path or "/", path_glob or _ANY_PATH)


def specificity(pattern: Optional[str]) -> int:
    """Score *pattern* for tie-breaking; higher is more specific."""
    if not pattern:
        return 0
    host_glob, path_glob = split_pattern(pattern)
    score = len(pattern)
    if path_glob is not None:
        score += 100
        if path_glob.endswith(_ANY_PATH):
            score -= 50
    if "*" not in host_glob:
        score += 50
    return score


def rank_matches(
    profiles: Iterable[AuthProfile], host: str, path: Optional[str]
) -> list[tuple[AuthProfile, int]]:
    """Return every enabled profile matching the URL with its score, best first.

    The sort is stable, so equally scored profiles keep their configured order.
    """
    candidates = [
        (profile, specificity(profile.url_pattern))
        for profile in profiles
        if profile.enabled and matches_url(profile.url_pattern, host, path)
    ]
    return sorted(candidates, key=lambda item: item[1], reverse=True)


def find_best_match(
    profiles: Iterable[AuthProfile], host: str, path: Optional[str]
) -> Optional[AuthProfile]:
    """Return the single profile that governs *host* and *path*, or ``None``."""
    ranked = rank_matches(profiles, host, path)
    return ranked[0][0] if ranked else None


def same_url(left: str, right: str | httpx.URL) -> bool:
    """Compare two URLs after normalising scheme, host case and default port."""
    try:
        a = httpx.URL(left)
        b = right if isinstance(right, httpx.URL) else httpx.URL(right)
    except httpx.InvalidURL:
        return str(left) == str(right)
    return (
        a.scheme == b.scheme
        and a.host == b.host
        and _port(a) == _port(b)
        and (a.path or "/") == (b.path or "/")
        and a.query == b.query
    )


def _port(url: httpx.URL) -> Optional[int]:
    if url.port is not None:
        return url.port
    return {"http": 80, "https": 443}.get(url.scheme)
