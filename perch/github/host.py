"""GitHub and GitHub Enterprise host handling."""

from __future__ import annotations

import httpx

from .errors import GitHubConfigError

GITHUB_DOT_COM = "https://github.com"
_ALLOWED_SCHEMES = frozenset({"http", "https"})


def normalize_host(host: str) -> str:
    """Normalise a user-entered host to ``scheme://host[:port]``.

    Parameters
    ----------
    host:
        Host as typed in settings, for example ``github.example.com`` or
        ``https://github.com/``.

    Returns
    -------
    str
        Origin without path or trailing slash. A missing scheme defaults to
        ``https``.

    Raises
    ------
    GitHubConfigError
        If the value has no host or uses an unsupported scheme.

    Examples
    --------
    >>> normalize_host("GitHub.com/")
    'https://github.com'

    """
    raw = host.strip()
    if not raw:
        raise GitHubConfigError.invalid_host(host)
    if "://" not in raw:
        raw = f"https://{raw}"
    try:
        url = httpx.URL(raw)
    except httpx.InvalidURL as exc:
        raise GitHubConfigError.invalid_host(host) from exc
    if url.scheme not in _ALLOWED_SCHEMES or not url.host:
        raise GitHubConfigError.invalid_host(host)
    port = f":{url.port}" if url.port is not None else ""
    return f"{url.scheme}://{url.host.lower()}{port}"


def is_github_dot_com(host: str) -> bool:
    """Return True when ``host`` is public GitHub rather than Enterprise."""
    return normalize_host(host) == GITHUB_DOT_COM
