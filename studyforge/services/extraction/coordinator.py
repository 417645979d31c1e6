"""Runs the resolved extraction strategy and normalizes its result."""

import asyncio
import logging
from typing import Optional

from studyforge.core.config import settings
from studyforge.schemas.extracted_content import ExtractedContent
from studyforge.schemas.raw_input import RawInput
from studyforge.services.extraction.engines import ExtractionSession
from studyforge.services.extraction.registry import (
    Extractor,
    ExtractorRegistry,
    InputDescriptor,
    NetworkExtractor,
)

logger = logging.getLogger(__name__)


class ExtractionCoordinator:
    """Turns any RawInput into an ExtractedContent record.

    Network-sourced strategies (web pages, video transcripts) run under
    ``network_timeout`` and fall back to a labelled placeholder when the
    remote side is slow or unavailable. Strategies count words over the
    extracted body; the count is filled in here only when a strategy left it
    unset.
    """

    def __init__(self, registry: Optional[ExtractorRegistry] = None, network_timeout: Optional[float] = None):
        self.registry = registry or ExtractorRegistry()
        self.network_timeout = network_timeout if network_timeout is not None else settings.NETWORK_TIMEOUT_SECONDS

    def resolve(self, raw: RawInput) -> Extractor:
        return self.registry.resolve(InputDescriptor.from_raw(raw))

    async def extract(self, raw: RawInput, session: Optional[ExtractionSession] = None) -> ExtractedContent:
        """Extract text from a raw input.

        Args:
            raw: File, URL or pasted text
            session: Engines to use; a private session is opened (and closed) when omitted

        Returns:
            ExtractedContent with non-empty text and a populated word count
        """
        if session is None:
            async with ExtractionSession() as own_session:
                return await self._extract(raw, own_session)
        return await self._extract(raw, session)

    async def _extract(self, raw: RawInput, session: ExtractionSession) -> ExtractedContent:
        extractor = self.resolve(raw)
        logger.info(f"Extracting {type(raw).__name__} with the {extractor.name} strategy")

        if isinstance(extractor, NetworkExtractor):
            try:
                content = await asyncio.wait_for(extractor.extract(raw, session), timeout=self.network_timeout)
            except asyncio.TimeoutError:
                content = extractor.placeholder(raw, f"Timed out after {self.network_timeout} seconds")
        else:
            content = await extractor.extract(raw, session)

        if not content.metadata.word_count:
            content.metadata.word_count = len(content.text.split())
        logger.info(
            f"Extracted {content.kind} '{content.source_label}': {content.metadata.word_count} words"
            + (" (placeholder)" if content.failed else "")
        )
        return content
