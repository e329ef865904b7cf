"""
Content Cleaner
===============

HTML cleaning helpers used to derive content fields from feed markup.

This module provides:
- Full tag stripping for plain-text fields
- Allow-list sanitization for HTML bodies
- Paragraph formatting for plain text
- Single-line text field sanitization
"""

import html
import re
from typing import Dict, List

from bs4 import BeautifulSoup, Comment
from bs4.element import CData, Declaration, Doctype, ProcessingInstruction

from ..utils.logging import get_logger_for_component


class ContentCleaner:
    """HTML content cleaner with an allow-list for post bodies."""

    # HTML elements to completely remove (including content)
    DANGEROUS_ELEMENTS = {
        "script",
        "style",
        "iframe",
        "embed",
        "object",
        "applet",
        "form",
        "input",
        "button",
        "select",
        "textarea",
        "meta",
        "link",
        "base",
        "noscript",
        "canvas",
        "frame",
        "frameset",
    }

    # HTML elements that are safe to keep in a post body
    SAFE_ELEMENTS = {
        "a", "abbr", "address", "article", "aside", "b", "blockquote", "br",
        "caption", "cite", "code", "dd", "del", "details", "div", "dl", "dt",
        "em", "figcaption", "figure", "h1", "h2", "h3", "h4", "h5", "h6", "hr",
        "i", "img", "ins", "li", "mark", "ol", "p", "pre", "q", "s", "section",
        "small", "span", "strike", "strong", "sub", "summary", "sup", "table",
        "tbody", "td", "tfoot", "th", "thead", "tr", "u", "ul",
    }

    GLOBAL_ATTRIBUTES = ["class", "id", "title", "lang", "dir"]

    # Attributes to keep for specific elements
    SAFE_ATTRIBUTES: Dict[str, List[str]] = {
        "a": ["href", "rel", "target", "name"],
        "img": ["src", "alt", "width", "height", "srcset", "sizes"],
        "blockquote": ["cite"],
        "q": ["cite"],
        "del": ["datetime"],
        "ins": ["datetime"],
        "td": ["colspan", "rowspan"],
        "th": ["colspan", "rowspan", "scope"],
        "ol": ["start", "reversed", "type"],
    }

    URL_ATTRIBUTES = {"href", "src", "cite"}
    SAFE_URL_SCHEMES = {"http", "https", "mailto", "ftp"}

    WHITESPACE_PATTERN = re.compile(r"\s+")
    LINE_BREAKS_PATTERN = re.compile(r"[\r\n\t]+")
    OCTETS_PATTERN = re.compile(r"%[a-fA-F0-9]{2}")
    PARAGRAPH_SPLIT_PATTERN = re.compile(r"\n\s*\n")
    SCHEME_PATTERN = re.compile(r"^\s*([a-zA-Z][a-zA-Z0-9+.\-]*):")

    def __init__(self):
        self.logger = get_logger_for_component("content_cleaner")
        self.parser = "html.parser"

    def strip_all_tags(self, text: str) -> str:
        """Remove all markup, including script and style contents.

        Entities in the remaining text are decoded (``T &amp; J`` becomes
        ``T & J``), so the result is plain text rather than HTML.

        Args:
            text: HTML or plain text

        Returns:
            Plain text, trimmed
        """
        if not text or not text.strip():
            return ""

        soup = BeautifulSoup(text, self.parser)
        for element in soup(["script", "style"]):
            if not element.decomposed:
                element.decompose()
        self._remove_non_content_elements(soup)

        return soup.get_text().strip()

    def decode_entities(self, text: str) -> str:
        return html.unescape(text or "")

    def sanitize_post_html(self, html_content: str) -> str:
        """Reduce HTML to the allow-listed subset used for post bodies.

        Dangerous elements are dropped with their contents, other unknown
        elements are unwrapped, disallowed attributes and unsafe URLs removed.
        """
        if not html_content or not html_content.strip():
            return ""

        soup = BeautifulSoup(html_content, self.parser)
        self._remove_non_content_elements(soup)

        for element in soup.find_all(sorted(self.DANGEROUS_ELEMENTS)):
            # Nested matches are gone with their ancestor
            if not element.decomposed:
                element.decompose()

        for element in soup.find_all(True):
            name = element.name.lower()
            if name not in self.SAFE_ELEMENTS:
                element.unwrap()
                continue
            self._clean_attributes(element, name)

        cleaned = str(soup).strip()
        self.logger.debug(f"Sanitized HTML: {len(html_content)} -> {len(cleaned)} chars")
        return cleaned

    def autop(self, text: str) -> str:
        """Format plain text as HTML paragraphs.

        Blank lines separate paragraphs; single newlines become <br />.
        """
        if not text or not text.strip():
            return ""

        text = text.replace("\r\n", "\n").replace("\r", "\n")
        paragraphs = [p.strip() for p in self.PARAGRAPH_SPLIT_PATTERN.split(text) if p.strip()]

        formatted = []
        for paragraph in paragraphs:
            lines = [html.escape(line.strip(), quote=False) for line in paragraph.split("\n")]
            formatted.append("<p>" + "<br />\n".join(lines) + "</p>\n")

        return "".join(formatted)

    def sanitize_text_field(self, text: str) -> str:
        """Reduce a value to a single line of plain text."""
        if not text:
            return ""

        text = self.strip_all_tags(str(text))
        text = self.LINE_BREAKS_PATTERN.sub(" ", text)
        text = self.OCTETS_PATTERN.sub("", text)
        text = self.WHITESPACE_PATTERN.sub(" ", text)
        return text.strip()

    def _clean_attributes(self, element, name: str) -> None:
        allowed = set(self.GLOBAL_ATTRIBUTES) | set(self.SAFE_ATTRIBUTES.get(name, []))

        for attr_name in list(element.attrs):
            lowered = attr_name.lower()
            if lowered not in allowed:
                del element[attr_name]
            elif lowered in self.URL_ATTRIBUTES and not self._is_safe_url(element.get(attr_name)):
                del element[attr_name]

    def _is_safe_url(self, value) -> bool:
        if not isinstance(value, str):
            return False
        match = self.SCHEME_PATTERN.match(value)
        # Relative URLs have no scheme
        return match is None or match.group(1).lower() in self.SAFE_URL_SCHEMES

    def _remove_non_content_elements(self, soup: BeautifulSoup) -> None:
        """Remove comments, CDATA, doctypes and processing instructions."""
        for element in soup.find_all(
            string=lambda text: isinstance(
                text, (Comment, CData, ProcessingInstruction, Declaration, Doctype)
            )
        ):
            element.extract()
