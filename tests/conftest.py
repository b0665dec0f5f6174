"""Shared fixtures for rewrite engine tests."""

import pytest

from mediaedge.models.rewrite import ContextSignals, RewriteConfig
from mediaedge.services.url_rewriter import RewriteEngine

SITE_URL = "https://example.com"


@pytest.fixture
def config() -> RewriteConfig:
    """Config from the reference scenario: cdn.test fronting example.com."""
    return RewriteConfig(
        edge_domain="cdn.test",
        allowed_origin_domains=["example.com"],
        enabled=True,
    )


@pytest.fixture
def visitor() -> ContextSignals:
    """Signals of an anonymous visitor viewing a public page."""
    return ContextSignals()


@pytest.fixture
def engine(config: RewriteConfig, visitor: ContextSignals) -> RewriteEngine:
    return RewriteEngine(config, visitor, site_url=SITE_URL)
