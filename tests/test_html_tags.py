"""Tests for the start-tag scanner."""

from mediaedge.services.html_tags import TagProcessor


def _names(html: str) -> list[str]:
    return [tag.name for tag in TagProcessor(html)]


class TestScanning:
    """Tests for locating start tags."""

    def test_finds_start_tags_in_order(self):
        assert _names('<p>a</p><img src="x.jpg"><br/>') == ["p", "img", "br"]

    def test_tag_names_are_lowercased(self):
        assert _names('<IMG SRC="x.jpg"><Amp-Img src="y.jpg">') == ["img", "amp-img"]

    def test_skips_comments(self):
        assert _names("<!-- <img src='x.jpg'> --><p>x</p>") == ["p"]

    def test_skips_script_bodies(self):
        assert _names("<script>var s = '<img src=x.jpg>';</script>") == ["script"]

    def test_next_tag_exhausts(self):
        processor = TagProcessor("<p>x</p>")
        assert processor.next_tag() is not None
        assert processor.tag is not None and processor.tag.name == "p"
        assert processor.next_tag() is None
        assert processor.tag is None


class TestAttributes:
    """Tests for reading and writing attributes."""

    def test_reads_quoted_and_unquoted_values(self):
        tag = TagProcessor("<img src=\"a.jpg\" alt='An image' width=300 hidden>").next_tag()
        assert tag is not None
        assert tag.get_attribute("src") == "a.jpg"
        assert tag.get_attribute("alt") == "An image"
        assert tag.get_attribute("width") == "300"
        assert tag.get_attribute("hidden") == ""
        assert tag.get_attribute("title") is None

    def test_reads_are_case_insensitive_and_unescaped(self):
        tag = TagProcessor('<img SRC="a.jpg?w=1&amp;h=2">').next_tag()
        assert tag is not None
        assert tag.has_attribute("src") is True
        assert tag.get_attribute("src") == "a.jpg?w=1&h=2"

    def test_first_duplicate_wins(self):
        tag = TagProcessor('<img src="first.jpg" src="second.jpg">').next_tag()
        assert tag is not None
        assert tag.get_attribute("src") == "first.jpg"

    def test_set_replaces_in_place(self):
        html = "<p class=\"x\">Hi</p><img alt='A' SRC=a.jpg loading=\"lazy\">"
        processor = TagProcessor(html)
        for tag in processor:
            if tag.name == "img":
                tag.set_attribute("src", "b.jpg")
        assert processor.get_updated_html() == "<p class=\"x\">Hi</p><img alt='A' SRC=\"b.jpg\" loading=\"lazy\">"

    def test_set_appends_missing_attribute(self):
        processor = TagProcessor('<img src="a.jpg">')
        tag = processor.next_tag()
        assert tag is not None
        tag.set_attribute("data-x", "1")
        assert processor.get_updated_html() == '<img src="a.jpg" data-x="1">'

    def test_set_appends_before_self_closing_slash(self):
        processor = TagProcessor('<img src="a.jpg"/>')
        tag = processor.next_tag()
        assert tag is not None
        tag.set_attribute("data-x", "1")
        assert processor.get_updated_html() == '<img src="a.jpg" data-x="1"/>'

    def test_set_escapes_values(self):
        processor = TagProcessor('<img src="a.jpg">')
        tag = processor.next_tag()
        assert tag is not None
        tag.set_attribute("onerror", "this.title = 'a \"b\" & c'")
        html = processor.get_updated_html()
        assert "'" not in html.split("onerror=", 1)[1][1:-2]
        assert TagProcessor(html).next_tag().get_attribute("onerror") == "this.title = 'a \"b\" & c'"


class TestUpdatedHtml:
    """Tests for re-serializing the fragment."""

    def test_unchanged_without_edits(self):
        html = "<div>\n<img src=a.jpg>  <!-- x -->\n</div>"
        processor = TagProcessor(html)
        for _ in processor:
            pass
        assert processor.get_updated_html() == html

    def test_edits_on_later_lines(self):
        html = "<div>\n  <p>intro &amp; more</p>\n  <img src='a.jpg'>\n</div>\n"
        processor = TagProcessor(html)
        for tag in processor:
            if tag.name == "img":
                tag.set_attribute("src", "b.jpg")
        assert processor.get_updated_html() == '<div>\n  <p>intro &amp; more</p>\n  <img src="b.jpg">\n</div>\n'

    def test_multiple_edits_keep_surrounding_text(self):
        html = 'a<img src="1.jpg">b<img src="2.jpg">c'
        processor = TagProcessor(html)
        for tag in processor:
            tag.set_attribute("src", tag.get_attribute("src").replace(".jpg", ".png"))
        assert processor.get_updated_html() == 'a<img src="1.png">b<img src="2.png">c'
