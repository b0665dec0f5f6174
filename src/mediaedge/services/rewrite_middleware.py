"""ASGI middleware rewriting media URLs in rendered HTML pages."""

import logging
import re
from typing import Callable

from starlette.requests import Request
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from mediaedge.config import Settings, get_settings
from mediaedge.services.context import ContextOverrides, DefaultContextOverrides, signals_from_request
from mediaedge.services.fallback import EDGE_MARKER, render_fallback_stub
from mediaedge.services.url_rewriter import RewriteEngine

logger = logging.getLogger("mediaedge.middleware")

# Marker attribute on an element, as written by the engine, filters or templates
_MARKED_ELEMENT = re.compile(r"<[a-z][^>]*\s" + EDGE_MARKER + r"[\s=/>]", re.IGNORECASE)
_STUB_SENTINEL = b"window.mediaEdgeConfig="


class EdgeRewriteMiddleware:
    """ASGI middleware that runs whole HTML responses through a rewrite engine.

    A fresh ``RewriteEngine`` is built for every request, so the memo cache,
    context verdict and re-entrancy flag never leak between requests. The
    fallback stub script is injected before ``</head>`` whenever the page
    carries marked elements.
    """

    def __init__(
        self,
        app: ASGIApp,
        settings: Settings | None = None,
        overrides_factory: Callable[[], ContextOverrides] = DefaultContextOverrides,
    ) -> None:
        self.app = app
        self.settings = settings
        self.overrides_factory = overrides_factory

    def _build_engine(self, scope: Scope) -> RewriteEngine:
        settings = self.settings or get_settings()
        request = Request(scope)
        return RewriteEngine(
            config=settings.rewrite_config,
            signals=signals_from_request(request, settings),
            overrides=self.overrides_factory(),
            site_url=settings.site_url,
        )

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        # Buffer response headers so we can check content-type before sending
        is_html = False
        original_status: int = 200
        original_headers: list[tuple[bytes, bytes]] = []
        body_chunks: list[bytes] = []

        async def send_wrapper(message: Message) -> None:
            nonlocal is_html, original_status, original_headers

            if message["type"] == "http.response.start":
                original_status = message.get("status", 200)
                original_headers = list(message.get("headers", []))
                is_html = _is_plain_html(original_headers)

                if not is_html:
                    await send(message)

            elif message["type"] == "http.response.body":
                if not is_html:
                    await send(message)
                    return

                body_chunks.append(message.get("body", b""))
                if message.get("more_body", False):
                    return

                full_body = self._rewrite_body(b"".join(body_chunks), scope)

                new_headers = [
                    (name, value) for name, value in original_headers if name.lower() != b"content-length"
                ]
                new_headers.append((b"content-length", str(len(full_body)).encode()))

                await send({"type": "http.response.start", "status": original_status, "headers": new_headers})
                await send({"type": "http.response.body", "body": full_body, "more_body": False})
            else:
                await send(message)

        await self.app(scope, receive, send_wrapper)

    def _rewrite_body(self, body: bytes, scope: Scope) -> bytes:
        try:
            html = body.decode("utf-8")
        except UnicodeDecodeError:
            logger.debug("Skipping non UTF-8 HTML response for %s", scope.get("path"))
            return body

        engine = self._build_engine(scope)
        if not engine.active:
            return body

        rewritten = engine.rewrite_content(html)
        # Markup rewritten upstream (rewrite_attributes, template filters)
        # still needs the fallback script
        if rewritten == html and not _MARKED_ELEMENT.search(html):
            return body

        settings = self.settings or get_settings()
        return inject_fallback_stub(rewritten.encode("utf-8"), debug=settings.debug)


def _is_plain_html(headers: list[tuple[bytes, bytes]]) -> bool:
    """Check for an uncompressed text/html response."""
    is_html = False
    for name, value in headers:
        lowered = name.lower()
        if lowered == b"content-encoding":
            return False
        if lowered == b"content-type" and b"text/html" in value.lower():
            is_html = True
    return is_html


def inject_fallback_stub(body: bytes, debug: bool = False) -> bytes:
    """Inject the fallback stub script before </head> in HTML."""
    if _STUB_SENTINEL in body:
        return body
    marker = b"</head>"
    idx = body.lower().find(marker)
    if idx == -1:
        return body
    return body[:idx] + render_fallback_stub(debug).encode() + body[idx:]
