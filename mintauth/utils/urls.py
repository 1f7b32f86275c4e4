"""Canonical form of endpoint URLs.

Every store, lookup and comparison of an endpoint goes through
normalize_endpoint_url so that "https://Mint.test:443/" and
"https://mint.test" name the same endpoint.
"""

from urllib.parse import urlsplit, urlunsplit

DEFAULT_PORTS = {"http": 80, "https": 443}


def normalize_endpoint_url(url: str) -> str:
    """
    Normalize an endpoint URL.

    Args:
        url: Endpoint address in any accepted spelling

    Returns:
        Canonical URL: lowercase scheme and host, no default port,
        no query or fragment, no trailing slash

    Raises:
        ValueError: If the URL is empty or has no scheme/host
    """
    if not url or not url.strip():
        raise ValueError("Endpoint URL must not be empty")

    parts = urlsplit(url.strip())
    if not parts.scheme or not parts.hostname:
        raise ValueError(f"Invalid endpoint URL: {url!r}")

    scheme = parts.scheme.lower()
    host = parts.hostname.lower()
    if ":" in host:
        # IPv6 literal
        host = f"[{host}]"

    netloc = host
    if parts.port is not None and parts.port != DEFAULT_PORTS.get(scheme):
        netloc = f"{host}:{parts.port}"
    if parts.username:
        userinfo = parts.username
        if parts.password:
            userinfo = f"{userinfo}:{parts.password}"
        netloc = f"{userinfo}@{netloc}"

    path = parts.path.rstrip("/")

    return urlunsplit((scheme, netloc, path, "", ""))
