"""
Extracted web content handed over by the extraction stage.

The chunking engine treats this record as read-only input: it never
mutates it and only reads the fields documented below.
"""

from dataclasses import dataclass
from typing import List, Optional


@dataclass
class ExtractedContent:
    """
    Output of the extraction stage for a single web page.

    Attributes:
        text: Plain text extracted from the page
        main_content: Main-content text; takes precedence over ``text`` when set
        url: Canonical URL of the page
        original_url: URL originally requested (used when ``url`` is missing)
        title: Page title, if known
        headings: Heading strings detected during extraction
        image_urls: Image URLs found in the page
        original_html: Raw HTML, used only by DOM-aware chunking
    """
    text: Optional[str] = None
    main_content: Optional[str] = None
    url: Optional[str] = None
    original_url: Optional[str] = None
    title: Optional[str] = None
    headings: Optional[List[str]] = None
    image_urls: Optional[List[str]] = None
    original_html: Optional[str] = None

    @property
    def effective_text(self) -> str:
        """Text to chunk: main content first, then plain text, never None."""
        if self.main_content is not None:
            return self.main_content
        return self.text or ""

    @property
    def source_url(self) -> str:
        return self.url or self.original_url or ""

    @property
    def has_headings(self) -> bool:
        return bool(self.headings)

    @property
    def has_images(self) -> bool:
        return bool(self.image_urls)
