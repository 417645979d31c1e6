"""Web pages fetched through the configured proxy and cleaned with BeautifulSoup."""

import logging
import re
from typing import Tuple
from urllib.parse import urlparse

import httpx
from bs4 import BeautifulSoup

from studyforge.core.errors import ExtractionError
from studyforge.schemas.extracted_content import ExtractedContent, WebpageMetadata
from studyforge.schemas.raw_input import UrlInput
from studyforge.services.extraction.registry import NetworkExtractor, register_extractor, study_frame

logger = logging.getLogger(__name__)

MIN_CONTENT_CHARS = 50
NOISE_SELECTORS = "script, style, noscript, nav, footer, aside, .ad, .advertisement, .sidebar"
MAIN_CONTENT_SELECTORS = "main, article, .content, .post, .entry, #content, #main"


def validate_url(url: str) -> str:
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ExtractionError("Invalid URL format. Please enter a valid website URL.", {"url": url})
    return url


def html_to_text(html: str) -> Tuple[str, str]:
    """Return (title, main text) of an HTML page with navigation and ads removed."""
    soup = BeautifulSoup(html, "html.parser")
    title = soup.title.get_text(strip=True) if soup.title and soup.title.get_text(strip=True) else "Web Page"
    for element in soup.select(NOISE_SELECTORS):
        element.decompose()
    content_area = soup.select_one(MAIN_CONTENT_SELECTORS) or soup.body or soup
    text = re.sub(r"\s+", " ", content_area.get_text(separator=" ", strip=True)).strip()
    return title, text


@register_extractor(priority=10)
class WebPageExtractor(NetworkExtractor):
    name = "web"
    kind = "webpage"

    def placeholder(self, raw: UrlInput, error: str) -> ExtractedContent:
        url = raw.url
        logger.warning(f"Using placeholder for {url}: {error}")
        text = (
            f"[Website: {url}]\n\n"
            f"URL: {url}\n\n"
            f"Content extraction failed: {error}\n\n"
            "The page could not be retrieved or contained too little readable text.\n\n"
            "To use this content:\n"
            "1. Open the page and add its key points below\n"
            "2. Or paste the article text directly as a text source\n\n"
            "Manual Notes Section:\n"
            "- [Add main concepts from the page]\n"
            "- [Add important facts and definitions]\n"
            "- [Add examples or case studies]"
        )
        return self.stand_in(url, text, WebpageMetadata(url=url, failed=True, error=error))

    async def extract(self, raw, session) -> ExtractedContent:
        if not isinstance(raw, UrlInput):
            raise ExtractionError(f"{self.name} strategy expects a URL, got {type(raw).__name__}")
        url = validate_url(raw.url)

        try:
            html = await session.web.get(url)
        except (httpx.HTTPError, ExtractionError, ValueError) as e:
            return self.placeholder(raw, f"Unable to access the website: {e}")

        title, text = html_to_text(html)
        if len(text) < MIN_CONTENT_CHARS:
            return self.placeholder(
                raw,
                "Unable to extract meaningful content from the webpage. "
                "The page may be mostly images, videos, or protected content.",
            )

        logger.info(f"Extracted {len(text)} characters from {url}")
        metadata = WebpageMetadata(url=url, title=title, content_length=len(text))
        return self.build(
            title,
            text,
            metadata,
            frame=lambda body: study_frame(
                f"Website: {title}",
                body,
                [
                    "Key concepts and main ideas",
                    "Important facts and information",
                    "Educational content and explanations",
                    "Structured knowledge and insights",
                    "Actionable information and examples",
                ],
                details=f"URL: {url}",
                checklist_intro="This web content should be analyzed for:",
            ),
        )
