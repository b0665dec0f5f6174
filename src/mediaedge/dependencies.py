"""FastAPI dependency injection utilities."""

from typing import Annotated

from fastapi import Depends, Request

from mediaedge.config import Settings, get_settings
from mediaedge.services.context import ContextOverrides, DefaultContextOverrides, signals_from_request
from mediaedge.services.url_rewriter import RewriteEngine

# Type alias for settings dependency
SettingsDep = Annotated[Settings, Depends(get_settings)]


def get_context_overrides() -> ContextOverrides:
    """Context overrides for the current request.

    Hosts plug in their own policy with ``app.dependency_overrides``.
    """
    return DefaultContextOverrides()


ContextOverridesDep = Annotated[ContextOverrides, Depends(get_context_overrides)]


def get_rewrite_engine(
    request: Request,
    settings: SettingsDep,
    overrides: ContextOverridesDep,
) -> RewriteEngine:
    """Build the rewrite engine for the current request."""
    return RewriteEngine(
        config=settings.rewrite_config,
        signals=signals_from_request(request, settings),
        overrides=overrides,
        site_url=settings.site_url,
    )


RewriteEngineDep = Annotated[RewriteEngine, Depends(get_rewrite_engine)]
