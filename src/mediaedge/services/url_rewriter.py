"""Per-request engine rewriting media URLs to the edge."""

import logging
from typing import Any

from mediaedge.models.rewrite import ContextSignals, ImageSource, RewriteConfig, SrcsetSource
from mediaedge.services.context import ContextGuard, ContextOverrides
from mediaedge.services.edge_url import ASCII_WHITESPACE, EdgeUrlBuilder, get_true_origin
from mediaedge.services.eligibility import EligibilityFilter
from mediaedge.services.fallback import (
    EDGE_MARKER,
    IMAGE_ONERROR_HANDLER,
    MEDIA_ONERROR_HANDLER,
    ONLOAD_HANDLER,
    POSTER_MARKER,
)
from mediaedge.services.html_tags import StartTag, TagProcessor

logger = logging.getLogger("mediaedge.rewriter")

IMAGE_TAGS = frozenset({"img", "amp-img", "amp-anim"})
TIMED_MEDIA_TAGS = frozenset({"video", "audio"})
MEDIA_TAGS = IMAGE_TAGS | TIMED_MEDIA_TAGS | {"source"}

# Cheap substring probe run before any parsing
_TAG_PROBES = ("<img", "<amp-img", "<amp-anim", "<video", "<audio", "<source")


class RewriteEngine:
    """Rewrites media references for one page render.

    Create one engine per request: it memoizes the context verdict and the
    edge URLs it builds, and guards fragment processing against re-entry.
    Every integration point returns its input unchanged when rewriting is
    disabled or the request is not visitor-facing.
    """

    def __init__(
        self,
        config: RewriteConfig,
        signals: ContextSignals | None,
        overrides: ContextOverrides | None = None,
        site_url: str = "http://localhost",
    ) -> None:
        self.config = config
        self.guard = ContextGuard(signals, overrides)
        self.eligibility = EligibilityFilter(config, site_url)
        self.builder = EdgeUrlBuilder(config.edge_domain, site_url)
        self._processing = False

    @property
    def processing(self) -> bool:
        return self._processing

    def _inactive(self) -> bool:
        return not self.config.is_active or self.guard.is_unsafe_context()

    @property
    def active(self) -> bool:
        """True when rewriting is enabled and the request is visitor-facing."""
        return not self._inactive()

    def should_rewrite(self, url: str) -> bool:
        return self.eligibility.should_rewrite(url)

    def build_edge_url(self, url: str) -> str:
        return self.builder.build_edge_url(url)

    def get_true_origin(self, url: str) -> str:
        return get_true_origin(url, self.config.edge_domain)

    def rewrite_url(self, url: str) -> str:
        """Rewrite a single media URL."""
        if self._inactive() or self._processing or not self.should_rewrite(url):
            return url
        return self.build_edge_url(url)

    def rewrite_image_src(self, image: ImageSource | None) -> ImageSource | None:
        """Rewrite the primary URL of an image descriptor."""
        if self._inactive() or image is None or self._processing:
            return image
        if image.url and self.should_rewrite(image.url):
            return image.model_copy(update={"url": self.build_edge_url(image.url)})
        return image

    def rewrite_srcset(self, sources: list[SrcsetSource] | None) -> list[SrcsetSource] | None:
        """Rewrite every candidate URL of a responsive source list."""
        if self._inactive() or sources is None or self._processing:
            return sources

        rewritten: list[SrcsetSource] = []
        for source in sources:
            if source.url and self.should_rewrite(source.url):
                source = source.model_copy(update={"url": self.build_edge_url(source.url)})
            rewritten.append(source)
        return rewritten

    def rewrite_attributes(self, attributes: dict[str, Any]) -> dict[str, Any]:
        """
        Rewrite the attributes of an image element built by the host.

        Sets ``src`` to the edge URL and attaches the marker plus the
        load/error handlers. An ``src`` that is already an edge URL is
        rebuilt from its origin so the result is stable.
        """
        if self._inactive():
            return attributes

        src = attributes.get("src")
        if not src or not isinstance(src, str):
            return attributes

        origin = self.get_true_origin(src.strip(ASCII_WHITESPACE))
        if not self.should_rewrite(origin):
            return attributes

        return {
            **attributes,
            "src": self.build_edge_url(origin),
            EDGE_MARKER: "1",
            "onload": ONLOAD_HANDLER,
            "onerror": IMAGE_ONERROR_HANDLER,
        }

    def rewrite_content(self, content: str) -> str:
        """
        Rewrite media elements in an HTML fragment.

        Elements already carrying the edge marker are left alone, so output
        from ``rewrite_attributes`` is never processed twice.

        Args:
            content: HTML fragment or full document

        Returns:
            HTML with eligible media URLs pointing at the edge
        """
        if self._inactive():
            return content

        # Nested renders triggered while processing must not recurse
        if self._processing or not content:
            return content

        lowered = content.lower()
        if not any(probe in lowered for probe in _TAG_PROBES):
            return content  # Fast path: no media tags

        self._processing = True
        try:
            return self._rewrite_tags(content)
        finally:
            self._processing = False

    def _rewrite_tags(self, content: str) -> str:
        processor = TagProcessor(content)
        rewritten = 0

        for tag in processor:
            if tag.name not in MEDIA_TAGS or tag.has_attribute(EDGE_MARKER):
                continue

            marked = False
            if self._rewrite_tag_attribute(tag, "src"):
                tag.set_attribute(EDGE_MARKER, "1")
                marked = True
                rewritten += 1
                if tag.name in IMAGE_TAGS:
                    tag.set_attribute("onload", ONLOAD_HANDLER)
                    tag.set_attribute("onerror", IMAGE_ONERROR_HANDLER)

            if tag.name == "video" and self._rewrite_tag_attribute(tag, "poster"):
                tag.set_attribute(POSTER_MARKER, "1")
                marked = True

            # Sources usually live in <source> children, so the handler is
            # attached even when the element's own URLs were not rewritten.
            # An existing handler is kept unless this element was marked.
            if tag.name in TIMED_MEDIA_TAGS and (marked or not tag.has_attribute("onerror")):
                tag.set_attribute("onerror", MEDIA_ONERROR_HANDLER)

        logger.debug("Rewrote %d media element(s)", rewritten)
        return processor.get_updated_html()

    def _rewrite_tag_attribute(self, tag: StartTag, name: str) -> bool:
        value = tag.get_attribute(name)
        if not value:
            return False

        origin = self.get_true_origin(value.strip(ASCII_WHITESPACE))
        if not self.should_rewrite(origin):
            return False

        tag.set_attribute(name, self.build_edge_url(origin))
        return True
