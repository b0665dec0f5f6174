"""Client-side fallback behavior attached to rewritten elements.

Every handler recovers the origin with a plain string split of the failed
edge URL::

    "https://cdn.test/example.com/a/b.jpg".split("/")
    -> ["https:", "", "cdn.test", "example.com", "a", "b.jpg"]

Index 3 onward is the origin host followed by the origin path. One retry
against the origin is made (data-fallback="1"); a second failure marks the
element terminal (data-fallback="2").
"""

from pathlib import Path

# Attribute set on every element whose src now points at the edge
EDGE_MARKER = "data-edge-cdn"
# Attribute set on <video> elements whose poster now points at the edge
POSTER_MARKER = "data-edge-poster"
LOADED_CLASS = "edge-loaded"

ONLOAD_HANDLER = f"this.classList.add('{LOADED_CLASS}')"

IMAGE_ONERROR_HANDLER = (
    "if (!this.dataset.fallback) { "
    "this.dataset.fallback = '1'; "
    "var u = this.currentSrc || this.src; "
    "var p = u.split('/').slice(3); "
    "this.onerror = function() { this.dataset.fallback = '2'; this.onerror = null; }; "
    "this.removeAttribute('srcset'); "
    "this.src = 'https://' + p[0] + '/' + p.slice(1).join('/'); "
    "}"
)

# Only marked src/poster/<source> values are touched, so third-party players
# sharing the tag name keep their URLs.
MEDIA_ONERROR_HANDLER = (
    "if (!this.dataset.fallback) { "
    "this.dataset.fallback = '1'; "
    "var changed = false; "
    "if (this.src && this.dataset.edgeCdn) { "
    "var p = this.src.split('/').slice(3); "
    "this.src = 'https://' + p[0] + '/' + p.slice(1).join('/'); changed = true; } "
    "var sources = this.querySelectorAll('source[data-edge-cdn]'); "
    "for (var i = 0; i < sources.length; i++) { "
    "var sp = sources[i].src.split('/').slice(3); "
    "sources[i].src = 'https://' + sp[0] + '/' + sp.slice(1).join('/'); changed = true; } "
    "if (this.poster && this.dataset.edgePoster) { "
    "var pp = this.poster.split('/').slice(3); "
    "this.poster = 'https://' + pp[0] + '/' + pp.slice(1).join('/'); changed = true; } "
    "if (changed) { "
    "this.onerror = function() { this.dataset.fallback = '2'; this.onerror = null; }; "
    "this.load(); } "
    "}"
)

_STUB_PATH = Path(__file__).parent / "edge_fallback.js"
_STUB_SCRIPT = _STUB_PATH.read_text()


def render_fallback_stub(debug: bool = False) -> str:
    """Return the ``<script>`` block defining ``window.MediaEdge``."""
    config = "window.mediaEdgeConfig={debug:%d};" % (1 if debug else 0)
    return "<script>" + config + _STUB_SCRIPT + "</script>"
