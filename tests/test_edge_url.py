"""Tests for edge URL synthesis and origin recovery."""

import pytest

from mediaedge.services.edge_url import (
    EdgeUrlBuilder,
    get_true_origin,
    is_edge_url,
    normalize_url,
)

SITE = "https://example.com"


@pytest.fixture
def builder() -> EdgeUrlBuilder:
    return EdgeUrlBuilder("cdn.test", SITE)


class TestNormalizeUrl:
    """Tests for normalize_url."""

    def test_absolute_url_unchanged(self):
        assert normalize_url("https://example.com/a.jpg", SITE) == "https://example.com/a.jpg"
        assert normalize_url("HTTP://Example.com/a.jpg", SITE) == "HTTP://Example.com/a.jpg"

    def test_protocol_relative_gets_https(self):
        assert normalize_url("//img.example.com/a.jpg", SITE) == "https://img.example.com/a.jpg"

    def test_root_relative_uses_site_host(self):
        assert normalize_url("/wp-content/a.jpg", "http://blog.example.com:8080") == (
            "http://blog.example.com:8080/wp-content/a.jpg"
        )

    def test_path_relative_joins_site_url(self):
        assert normalize_url("uploads/a.jpg", "https://example.com/") == "https://example.com/uploads/a.jpg"

    @pytest.mark.parametrize(
        "url, expected",
        [
            (" https://example.com/a.jpg \n", "https://example.com/a.jpg"),
            ("\t/uploads/a.jpg ", "https://example.com/uploads/a.jpg"),
            ("  //img.example.com/a.jpg", "https://img.example.com/a.jpg"),
        ],
    )
    def test_surrounding_whitespace_is_stripped(self, url, expected):
        assert normalize_url(url, "https://example.com") == expected


class TestBuildEdgeUrl:
    """Tests for EdgeUrlBuilder.build_edge_url."""

    def test_builds_edge_url(self, builder):
        """The origin host becomes the first path segment."""
        result = builder.build_edge_url("https://example.com/wp-content/photo.jpg")
        assert result == "https://cdn.test/example.com/wp-content/photo.jpg"

    def test_preserves_query_and_fragment(self, builder):
        result = builder.build_edge_url("https://example.com/a.svg?v=2#icon")
        assert result == "https://cdn.test/example.com/a.svg?v=2#icon"

    def test_preserves_explicit_port(self, builder):
        result = builder.build_edge_url("https://example.com:8443/a.jpg")
        assert result == "https://cdn.test/example.com:8443/a.jpg"

    def test_relative_url_is_normalized_first(self, builder):
        assert builder.build_edge_url("/media/a.png") == "https://cdn.test/example.com/media/a.png"
        assert builder.build_edge_url("//img.example.com/a.png") == "https://cdn.test/img.example.com/a.png"

    def test_empty_edge_domain_returns_normalized(self):
        """Without an edge domain the builder is a normalizing no-op."""
        builder = EdgeUrlBuilder("", SITE)
        assert builder.build_edge_url("https://example.com/a.jpg") == "https://example.com/a.jpg"
        assert builder.build_edge_url("/a.jpg") == "https://example.com/a.jpg"

    def test_malformed_url_returned_normalized(self, builder):
        assert builder.build_edge_url("https://example.com:abc/a.jpg") == "https://example.com:abc/a.jpg"

    def test_url_without_path_returned_normalized(self, builder):
        assert builder.build_edge_url("https://example.com") == "https://example.com"

    def test_results_are_memoized(self, builder):
        first = builder.build_edge_url("https://example.com/a.jpg")
        second = builder.build_edge_url("https://example.com/a.jpg")
        assert first == second
        assert builder.size == 1

    def test_equivalent_inputs_share_cache_entry(self, builder):
        """Relative and absolute forms of one URL normalize to the same key."""
        builder.build_edge_url("/a.jpg")
        builder.build_edge_url("https://example.com/a.jpg")
        assert builder.size == 1

    def test_cache_key_is_deterministic(self):
        key = EdgeUrlBuilder.cache_key("https://example.com/a.jpg")
        assert key == EdgeUrlBuilder.cache_key("https://example.com/a.jpg")
        assert key.startswith("edge_")


class TestIsEdgeUrl:
    """Tests for is_edge_url."""

    def test_detects_edge_host(self):
        assert is_edge_url("https://cdn.test/example.com/a.jpg", "cdn.test") is True
        assert is_edge_url("//cdn.test/example.com/a.jpg", "cdn.test") is True

    def test_edge_domain_in_path_is_not_edge(self):
        assert is_edge_url("https://example.com/cdn.test/a.jpg", "cdn.test") is False

    def test_empty_inputs(self):
        assert is_edge_url("", "cdn.test") is False
        assert is_edge_url("https://cdn.test/example.com/a.jpg", "") is False


class TestGetTrueOrigin:
    """Tests for get_true_origin."""

    def test_recovers_origin(self):
        result = get_true_origin("https://cdn.test/example.com/wp-content/photo.jpg", "cdn.test")
        assert result == "https://example.com/wp-content/photo.jpg"

    def test_recovers_query_and_fragment(self):
        result = get_true_origin("https://cdn.test/example.com/a.jpg?v=1#top", "cdn.test")
        assert result == "https://example.com/a.jpg?v=1#top"

    def test_origin_url_unchanged(self):
        url = "https://example.com/a.jpg"
        assert get_true_origin(url, "cdn.test") == url

    def test_missing_path_part_is_malformed(self):
        """An edge URL with only a host segment is returned as-is."""
        url = "https://cdn.test/example.com"
        assert get_true_origin(url, "cdn.test") == url

    def test_bare_edge_root_is_malformed(self):
        url = "https://cdn.test/"
        assert get_true_origin(url, "cdn.test") == url


@pytest.mark.parametrize(
    "url",
    [
        "https://example.com/wp-content/photo.jpg",
        "https://img.example.com/a/b/c.webp?w=300&h=200",
        "https://example.com/clip.mp4#t=10",
        "https://example.com:8443/a.png",
        "//example.com/x/y.png",
        "/uploads/2026/01/hero.avif",
    ],
)
def test_round_trip_recovers_normalized_url(builder, url):
    """Origin recovery is the inverse of edge URL synthesis."""
    edge = builder.build_edge_url(url)
    assert edge.startswith("https://cdn.test/")
    assert get_true_origin(edge, "cdn.test") == normalize_url(url, SITE)
