"""Eligibility checks deciding which URLs may point at the edge."""

from pathlib import PurePosixPath

from mediaedge.models.rewrite import RewriteConfig
from mediaedge.services.edge_url import ASCII_WHITESPACE, is_edge_url, normalize_url, parse_url


def is_domain_allowed(host: str, allowed_domains: list[str]) -> bool:
    """Check if host equals an allowed domain or is one of its subdomains."""
    if not host or not allowed_domains:
        return False

    host = host.lower()
    for domain in allowed_domains:
        domain = domain.strip().lower()
        if not domain:
            continue
        if host == domain or host.endswith("." + domain):
            return True

    return False


def media_extension(url: str) -> str | None:
    """Return the lower-cased file extension of a URL's path, if any."""
    parts = parse_url(url)
    if parts is None or not parts.path:
        return None
    suffix = PurePosixPath(parts.path).suffix
    return suffix[1:].lower() if suffix else None


class EligibilityFilter:
    """Decides whether a URL references rewritable media on an allowed origin."""

    def __init__(self, config: RewriteConfig, site_url: str) -> None:
        self.config = config
        self.site_url = site_url
        self._extensions = frozenset(config.media_extensions)

    def is_media_url(self, url: str) -> bool:
        """Check if a URL points to a supported media file."""
        ext = media_extension(url)
        return ext is not None and ext in self._extensions

    def should_rewrite(self, url: str) -> bool:
        if not url or not isinstance(url, str):
            return False

        url = url.strip(ASCII_WHITESPACE)

        # Already on the edge
        if is_edge_url(url, self.config.edge_domain):
            return False

        if self.config.allowed_origin_domains:
            parts = parse_url(normalize_url(url, self.site_url))
            host = parts.hostname if parts is not None else None
            if not host or not is_domain_allowed(host, self.config.allowed_origin_domains):
                return False

        return self.is_media_url(url)
