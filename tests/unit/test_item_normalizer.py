"""
Unit tests for ItemNormalizer.
"""

from datetime import datetime, timezone

import pytest

from userfeed.database.models import ImportConfig, PostStatus, RawFeedEntry
from userfeed.processing.item_normalizer import ItemNormalizer


@pytest.fixture
def config():
    return ImportConfig(timezone="UTC", post_status=PostStatus.DRAFT)


class TestItemNormalizer:
    """Test mapping of raw entries onto drafts."""

    def test_fallback_body_with_read_more_link(self, config):
        entry = RawFeedEntry(title="Hello World", description="<p>Hi</p>", link="https://x/1")

        draft = ItemNormalizer(config).normalize(entry, owner_id=7)

        assert draft.title == "Hello World"
        assert draft.excerpt == "Hi"
        assert draft.body == '<p>Hi</p>\n<br/><a href="https://x/1" target="_blank">Read Full Article</a>'
        assert draft.author_id == 7
        assert draft.publish_at is None
        assert draft.status == PostStatus.DRAFT

    def test_encoded_content_is_sanitized(self, config):
        entry = RawFeedEntry(
            title="<b>Rich</b> Post",
            description="Summary",
            encoded_content="<p>Full</p><script>alert(1)</script>",
            link="https://x/2",
        )

        draft = ItemNormalizer(config).normalize(entry, owner_id=7)

        assert draft.title == "Rich Post"
        assert draft.body == "<p>Full</p>"

    def test_entity_encoded_content_is_decoded_before_sanitizing(self, config):
        entry = RawFeedEntry(title="T", encoded_content="&lt;p&gt;Escaped&lt;/p&gt;")

        draft = ItemNormalizer(config).normalize(entry, owner_id=7)

        assert draft.body == "<p>Escaped</p>"

    def test_excerpt_decodes_entities_then_strips(self, config):
        entry = RawFeedEntry(title="T", description="&lt;em&gt;Fish &amp;amp; chips&lt;/em&gt;")

        assert ItemNormalizer(config).normalize(entry, 7).excerpt == "Fish & chips"

    def test_publish_date_in_site_timezone(self):
        config = ImportConfig(timezone="America/New_York")
        entry = RawFeedEntry(
            title="T",
            description="D",
            published=datetime(2024, 9, 5, 12, 0, tzinfo=timezone.utc),
        )

        draft = ItemNormalizer(config).normalize(entry, 7)

        assert draft.publish_at_local == "2024-09-05 08:00:00"

    def test_status_from_config(self):
        config = ImportConfig(post_status="publish")
        draft = ItemNormalizer(config).normalize(RawFeedEntry(title="T", description="D"), 7)
        assert draft.status == PostStatus.PUBLISH

    def test_guid_is_single_line_text(self, config):
        entry = RawFeedEntry(title="T", description="D", guid="<b>abc</b>\n123")
        assert ItemNormalizer(config).normalize(entry, 7).external_guid == "abc 123"

    def test_read_more_hook_replaces_link(self, config):
        def hook(default_link, entry):
            assert "https://x/1" in default_link
            return f'<a href="{entry.link}">More</a>'

        entry = RawFeedEntry(title="T", description="Hi", link="https://x/1")
        draft = ItemNormalizer(config, read_more_link=hook).normalize(entry, 7)

        assert draft.body == '<p>Hi</p>\n<a href="https://x/1">More</a>'

    def test_read_more_text_from_config(self):
        config = ImportConfig(read_more_text="Continue reading")
        entry = RawFeedEntry(title="T", description="Hi", link="https://x/1")

        assert ItemNormalizer(config).normalize(entry, 7).body.endswith(">Continue reading</a>")

    def test_empty_entry_yields_empty_fields(self, config):
        draft = ItemNormalizer(config).normalize(RawFeedEntry(), 7)

        assert draft.title == ""
        assert draft.excerpt == ""
        assert draft.body == '<br/><a href="" target="_blank">Read Full Article</a>'

    def test_title_is_plain_text(self, config):
        entry = RawFeedEntry(title="<b>T &amp; J</b>", description="Hi", link="https://x/1")

        assert ItemNormalizer(config).normalize(entry, owner_id=7).title == "T & J"
