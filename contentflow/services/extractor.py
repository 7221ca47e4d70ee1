"""Main-content extraction from raw HTML."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

from bs4 import BeautifulSoup

from contentflow.models.content_submission import MAX_TITLE_LENGTH

logger = logging.getLogger(__name__)

UNTITLED = "Untitled Content"
TRUNCATION_MARKER = "..."

# Presentation and navigation noise, removed before any text is read
NOISE_SELECTOR = "script, style, nav, footer, aside, .advertisement, .ads"

# Common "main content" containers; list order decides, not document order
CONTENT_SELECTORS = (
    "article",
    '[role="main"]',
    ".content",
    ".post-content",
    ".entry-content",
    ".article-content",
    "main",
    ".main-content",
)

_WHITESPACE_RE = re.compile(r"\s+")


@dataclass(frozen=True)
class ExtractedContent:
    """Cleaned page text ready to be folded into a generation prompt."""

    title: str
    content: str
    url: str
    word_count: int


def normalize_text(text: str) -> str:
    """Collapse every whitespace run (blank lines included) to one space and trim."""
    return _WHITESPACE_RE.sub(" ", text).strip()


def truncate_content(content: str, max_chars: int = 8000) -> str:
    """Cut content to max_chars and append the truncation marker.

    Content of exactly max_chars is returned unchanged.
    """
    if len(content) <= max_chars:
        return content
    return content[:max_chars] + TRUNCATION_MARKER


class ContentExtractor:
    """Pick the article text out of a page using ordered CSS selectors.

    Usage:
        extractor = ContentExtractor()
        extracted = extractor.extract(html, "https://example.com/post")
        print(extracted.title, extracted.word_count)
    """

    def __init__(self, max_chars: int = 8000, min_candidate_chars: int = 200) -> None:
        self.max_chars = max_chars
        self.min_candidate_chars = min_candidate_chars

    def extract(self, html: str, url: str) -> ExtractedContent:
        """Extract title and main text from HTML.

        Args:
            html: Raw HTML of the page.
            url: Originating URL, echoed into the result.

        Returns:
            ExtractedContent with normalized, possibly truncated text.
        """
        soup = BeautifulSoup(html, "lxml")

        for element in soup.select(NOISE_SELECTOR):
            # Children of an already removed element are gone with it
            if element.decomposed:
                continue
            element.decompose()

        title = self._extract_title(soup)
        content, source = self._extract_main_text(soup)
        content = truncate_content(content, self.max_chars)

        logger.debug(
            "Extracted %d chars from %s (source=%s)", len(content), url, source
        )

        return ExtractedContent(
            title=title,
            content=content,
            url=url,
            word_count=len(content.split()),
        )

    def _extract_title(self, soup: BeautifulSoup) -> str:
        """Resolve the page title: <title>, then first <h1>, then a placeholder.

        Whitespace is collapsed and the result cut to the stored column width.
        """
        for tag in (soup.find("title"), soup.find("h1")):
            if tag is None:
                continue
            text = normalize_text(tag.get_text())
            if text:
                return text[:MAX_TITLE_LENGTH].rstrip()

        return UNTITLED

    def _extract_main_text(self, soup: BeautifulSoup) -> tuple[str, str]:
        """Return (normalized text, selector that produced it).

        The first selector whose matched elements together yield more than
        min_candidate_chars characters wins. Falls back to the body text.
        """
        for selector in CONTENT_SELECTORS:
            elements = soup.select(selector)
            if not elements:
                continue
            text = normalize_text(" ".join(el.get_text(" ") for el in elements))
            if len(text) > self.min_candidate_chars:
                return text, selector

        root = soup.body if soup.body is not None else soup
        return normalize_text(root.get_text(" ")), "body"
