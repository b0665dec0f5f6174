"""Jinja2 filters exposing the rewrite engine to templates."""

from typing import Any

from jinja2 import Environment, pass_context
from jinja2.runtime import Context
from markupsafe import Markup

from mediaedge.models.rewrite import SrcsetSource
from mediaedge.services.url_rewriter import RewriteEngine

# Template context key holding the per-request engine
ENGINE_CONTEXT_KEY = "edge_rewriter"


def _engine(context: Context) -> RewriteEngine | None:
    engine = context.get(ENGINE_CONTEXT_KEY)
    return engine if isinstance(engine, RewriteEngine) else None


@pass_context
def edge_url(context: Context, value: Any) -> str:
    """Rewrite a single media URL."""
    if not value:
        return ""
    engine = _engine(context)
    if engine is None:
        return str(value)
    return engine.rewrite_url(str(value))


@pass_context
def edge_srcset(context: Context, value: Any) -> str:
    """Rewrite a ``srcset`` string or a list of SrcsetSource entries."""
    if not value:
        return ""

    if isinstance(value, str):
        sources = [_parse_candidate(c) for c in value.split(",") if c.strip()]
    else:
        sources = [s if isinstance(s, SrcsetSource) else SrcsetSource(**s) for s in value]

    engine = _engine(context)
    if engine is not None:
        sources = engine.rewrite_srcset(sources) or []
    return ", ".join(s.to_candidate() for s in sources)


@pass_context
def edge_html(context: Context, value: Any) -> Markup:
    """Rewrite media elements in an already-safe HTML fragment."""
    if not value:
        return Markup("")
    engine = _engine(context)
    if engine is None:
        return Markup(value)
    return Markup(engine.rewrite_content(str(value)))


def _parse_candidate(candidate: str) -> SrcsetSource:
    url, _, descriptor = candidate.strip().partition(" ")
    descriptor = descriptor.strip().lower()
    if descriptor[-1:] in ("w", "x"):
        try:
            return SrcsetSource(url=url, descriptor=descriptor[-1], value=float(descriptor[:-1]))
        except ValueError:
            pass
    return SrcsetSource(url=url, descriptor="x", value=1)


def register_filters(env: Environment) -> None:
    """Register all edge filters on a Jinja2 environment."""
    env.filters["edge_url"] = edge_url
    env.filters["edge_srcset"] = edge_srcset
    env.filters["edge_html"] = edge_html
