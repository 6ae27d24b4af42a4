"""
Ingestion types consumed by the chunking engine.

Crawling and extraction happen upstream; this package only defines the
record they hand over.
"""

from .extracted_content import ExtractedContent

__all__ = ["ExtractedContent"]
