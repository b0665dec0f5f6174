"""MediaEdge: media URL rewriting to a content-delivery edge."""

__version__ = "0.1.0"
