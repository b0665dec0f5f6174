"""Edge URL synthesis and origin recovery.

Edge URLs carry the origin host as their first path segment::

    https://example.com/wp-content/photo.jpg
    -> https://cdn.test/example.com/wp-content/photo.jpg

which keeps the transform reversible without any lookup table.
"""

import hashlib
import logging
import re
from urllib.parse import SplitResult, urlsplit

logger = logging.getLogger("mediaedge.rewriter")

_ABSOLUTE_HTTP = re.compile(r"^https?://", re.IGNORECASE)

# Browsers strip these from src, poster and srcset values
ASCII_WHITESPACE = " \t\n\f\r"


def parse_url(url: str) -> SplitResult | None:
    """Split a URL, returning None when it cannot be parsed."""
    try:
        parts = urlsplit(url)
        # Accessing .port validates it and raises on garbage like ":abc"
        _ = parts.port
    except ValueError:
        return None
    return parts


def url_host(parts: SplitResult) -> str:
    """Return the host segment (``host`` or ``host:port``) for an edge path."""
    host = parts.hostname or ""
    if host and ":" in host:
        host = f"[{host}]"
    if host and parts.port is not None:
        host = f"{host}:{parts.port}"
    return host


def normalize_url(url: str, site_url: str) -> str:
    """
    Convert relative and protocol-relative URLs to absolute URLs.

    Args:
        url: Candidate URL as found in markup
        site_url: The site's own base URL (scheme + host)

    Returns:
        Absolute URL, or the input unchanged if the site URL is unusable
    """
    url = url.strip(ASCII_WHITESPACE)
    if _ABSOLUTE_HTTP.match(url):
        return url

    if url.startswith("//"):
        return "https:" + url

    if url.startswith("/"):
        site = parse_url(site_url)
        if site is None:
            return url
        scheme = site.scheme or "https"
        host = site.netloc or "localhost"
        return f"{scheme}://{host}{url}"

    return site_url.rstrip("/") + "/" + url.lstrip("/")


def is_edge_url(url: str, edge_domain: str) -> bool:
    """Check if a URL already points at the configured edge domain."""
    if not url or not isinstance(url, str) or not edge_domain:
        return False
    parts = parse_url(url)
    if parts is None:
        # Can't tell; claiming it is an edge URL keeps it from being rewritten
        return edge_domain in url
    return (parts.hostname or "") == edge_domain.lower()


def get_true_origin(url: str, edge_domain: str) -> str:
    """
    Recover the origin URL from an edge URL.

    Non-edge URLs and malformed edge URLs are returned unchanged.
    """
    if not is_edge_url(url, edge_domain):
        return url

    parts = parse_url(url)
    if parts is None or not parts.path:
        return url

    segments = parts.path.strip("/").split("/", 1)
    if len(segments) != 2 or not all(segments):
        logger.debug("Malformed edge URL, leaving as-is: %s", url)
        return url

    origin = f"https://{segments[0]}/{segments[1]}"
    if parts.query:
        origin += "?" + parts.query
    if parts.fragment:
        origin += "#" + parts.fragment
    return origin


class EdgeUrlBuilder:
    """Builds edge URLs, memoizing results for the lifetime of one request."""

    def __init__(self, edge_domain: str, site_url: str) -> None:
        self.edge_domain = edge_domain
        self.site_url = site_url
        self._cache: dict[str, str] = {}

    @staticmethod
    def cache_key(normalized: str) -> str:
        return "edge_" + hashlib.md5(normalized.encode()).hexdigest()

    def build_edge_url(self, url: str) -> str:
        """
        Build the edge URL for an origin URL.

        Never fails: malformed URLs and a missing edge domain both yield the
        normalized input.
        """
        normalized = normalize_url(url, self.site_url)
        key = self.cache_key(normalized)

        cached = self._cache.get(key)
        if cached is not None:
            return cached

        parts = parse_url(normalized)
        if parts is None or not parts.hostname or not parts.path:
            logger.debug("Cannot build edge URL for %s", normalized)
            self._cache[key] = normalized
            return normalized

        if not self.edge_domain:
            self._cache[key] = normalized
            return normalized

        edge_url = f"https://{self.edge_domain}/{url_host(parts)}{parts.path}"
        if parts.query:
            edge_url += "?" + parts.query
        if parts.fragment:
            edge_url += "#" + parts.fragment

        self._cache[key] = edge_url
        return edge_url

    @property
    def size(self) -> int:
        """Return the number of memoized URLs."""
        return len(self._cache)
