"""
Content Cleaner
===============

Strips feed-supplied markup down to escaped plain text. Nothing survives: no tags,
no attributes, and the bodies of script-like elements are dropped entirely.
Markup that arrived entity-encoded stays encoded, so the result never holds
a literal `<` or `>`.
"""

import html
import re

from bs4 import BeautifulSoup, Comment
from bs4.element import CData, ProcessingInstruction, Doctype

from campusnews.utils.logging import get_logger_for_component


class ContentCleaner:
    """HTML sanitizer with an empty allowlist."""

    # Elements removed together with their content
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
        "svg",
        "template",
    }

    WHITESPACE_PATTERN = re.compile(r"\s+")

    def __init__(self):
        self.logger = get_logger_for_component("content_cleaner")
        self.parser = "html.parser"

    def sanitize(self, html_content: str) -> str:
        """
        Reduce HTML to safe plain text.

        Args:
            html_content: Feed supplied text, possibly containing markup

        Returns:
            HTML-escaped plain text with whitespace runs collapsed
        """
        if not html_content or not html_content.strip():
            return ""

        soup = BeautifulSoup(html_content, self.parser)

        for element in soup(list(self.DANGEROUS_ELEMENTS)):
            element.decompose()

        for node in soup.find_all(
            string=lambda text: isinstance(
                text, (Comment, CData, ProcessingInstruction, Doctype)
            )
        ):
            node.extract()

        text = soup.get_text()
        text = self.WHITESPACE_PATTERN.sub(" ", text).strip()
        text = html.escape(text, quote=False)

        self.logger.debug(f"Sanitized content: {len(html_content)} -> {len(text)} chars")
        return text
