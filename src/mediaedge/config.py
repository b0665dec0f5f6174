"""Application configuration using Pydantic Settings."""

import re
from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from mediaedge.models.rewrite import DEFAULT_MEDIA_EXTENSIONS, RewriteConfig

VALID_DOMAIN = re.compile(r"^[a-z0-9]([a-z0-9\-.]*[a-z0-9])?$")


def sanitize_domain(domain: str) -> str:
    """
    Reduce user input to a bare lower-case domain.

    Strips scheme, port, path and stray dots. Returns an empty string when
    what is left is not a plausible hostname.
    """
    domain = re.sub(r"^https?://", "", domain.strip(), flags=re.IGNORECASE)
    domain = domain.split("/", 1)[0]
    domain = re.sub(r":\d+$", "", domain)
    domain = re.sub(r"\.{2,}", ".", domain.strip(".")).lower()

    if domain and not VALID_DOMAIN.match(domain):
        return ""
    return domain


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Edge delivery
    edge_domain: str = ""
    edge_enabled: bool = False
    allowed_origin_domains: str = ""  # Comma- or newline-separated
    media_extensions: str = ""  # Comma-separated, empty = built-in list

    # Public site URL, used to absolutize relative media URLs
    site_url: str = "http://localhost"

    # Request classification
    admin_path_prefix: str = "/admin"
    api_path_prefix: str = "/api"
    xmlrpc_path: str = "/xmlrpc"
    maintenance_mode: bool = False  # Install/upgrade in progress

    # Security
    secret_key: str = "change-me-in-production"

    # Debug mode
    debug: bool = False

    @field_validator("edge_domain")
    @classmethod
    def _sanitize_edge_domain(cls, value: str) -> str:
        return sanitize_domain(value)

    @property
    def allowed_origin_domains_list(self) -> list[str]:
        """Return allowed origin domains as a sanitized list."""
        if not self.allowed_origin_domains:
            return []
        raw = re.split(r"[,\n]", self.allowed_origin_domains)
        return [d for d in (sanitize_domain(item) for item in raw) if d]

    @property
    def media_extensions_list(self) -> list[str]:
        """Return supported media extensions, falling back to the defaults."""
        if not self.media_extensions.strip():
            return list(DEFAULT_MEDIA_EXTENSIONS)
        return [e.strip().lower().lstrip(".") for e in self.media_extensions.split(",") if e.strip()]

    @property
    def rewrite_config(self) -> RewriteConfig:
        """Build the read-only config consumed by rewrite engines."""
        return RewriteConfig(
            edge_domain=self.edge_domain,
            allowed_origin_domains=self.allowed_origin_domains_list,
            enabled=self.edge_enabled,
            media_extensions=self.media_extensions_list,
        )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
