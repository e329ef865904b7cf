"""
Unit tests for ContentCleaner.
"""

import pytest

from userfeed.ingestion.content_cleaner import ContentCleaner


@pytest.fixture
def cleaner():
    return ContentCleaner()


class TestStripAllTags:

    def test_removes_markup(self, cleaner):
        assert cleaner.strip_all_tags("<p>Hello <b>World</b></p>") == "Hello World"

    def test_removes_script_and_style_contents(self, cleaner):
        text = "<style>p {color: red}</style>Visible<script>alert('x')</script>"
        assert cleaner.strip_all_tags(text) == "Visible"

    def test_removes_comments(self, cleaner):
        assert cleaner.strip_all_tags("A<!-- hidden -->B") == "AB"

    def test_decodes_remaining_entities(self, cleaner):
        assert cleaner.strip_all_tags("<b>T &amp; J</b>") == "T & J"

    @pytest.mark.parametrize("value", ["", "   ", None])
    def test_empty(self, cleaner, value):
        assert cleaner.strip_all_tags(value) == ""


class TestDecodeEntities:

    def test_decodes_named_and_numeric(self, cleaner):
        assert cleaner.decode_entities("&lt;p&gt;Caf&eacute; &#38; bar&lt;/p&gt;") == "<p>Café & bar</p>"


class TestSanitizePostHtml:

    def test_keeps_allowed_markup(self, cleaner):
        html = '<p>Full <strong>body</strong> <a href="https://x/1" title="t">link</a></p>'
        assert cleaner.sanitize_post_html(html) == html

    def test_drops_dangerous_elements_with_contents(self, cleaner):
        result = cleaner.sanitize_post_html("<p>Safe</p><script>alert(1)</script><iframe src='x'></iframe>")

        assert result == "<p>Safe</p>"

    def test_unwraps_unknown_elements(self, cleaner):
        assert cleaner.sanitize_post_html("<p><font color='red'>Text</font></p>") == "<p>Text</p>"

    def test_strips_event_handlers_and_unsafe_urls(self, cleaner):
        result = cleaner.sanitize_post_html(
            '<a href="javascript:alert(1)" onclick="steal()">x</a><img src="/img.png" onerror="x()">'
        )

        assert "onclick" not in result
        assert "onerror" not in result
        assert "javascript:" not in result
        assert 'src="/img.png"' in result

    def test_nested_dangerous_elements(self, cleaner):
        result = cleaner.sanitize_post_html("<form><p>Inside</p><input name='q'></form><p>After</p>")
        assert result == "<p>After</p>"


class TestAutop:

    def test_single_paragraph(self, cleaner):
        assert cleaner.autop("Hi") == "<p>Hi</p>\n"

    def test_paragraphs_and_line_breaks(self, cleaner):
        text = "First line\nsecond line\n\nNext paragraph"
        assert cleaner.autop(text) == "<p>First line<br />\nsecond line</p>\n<p>Next paragraph</p>\n"

    def test_escapes_text(self, cleaner):
        assert cleaner.autop("a < b & c") == "<p>a &lt; b &amp; c</p>\n"

    def test_empty(self, cleaner):
        assert cleaner.autop("  ") == ""


class TestSanitizeTextField:

    def test_single_line(self, cleaner):
        assert cleaner.sanitize_text_field("<b>guid</b>\n  with\ttabs") == "guid with tabs"

    def test_removes_percent_octets(self, cleaner):
        assert cleaner.sanitize_text_field("post%20one") == "postone"
