"""OCR strategy for images."""

import logging

from studyforge.schemas.extracted_content import ExtractedContent, ImageMetadata
from studyforge.services.extraction.registry import Extractor, register_extractor

logger = logging.getLogger(__name__)


@register_extractor(priority=7)
class ImageOcrExtractor(Extractor):
    name = "image"
    kind = "image"
    content_types = ("image/*",)
    extensions = ("png", "jpg", "jpeg", "gif", "bmp", "tiff", "webp")

    async def extract(self, raw, session) -> ExtractedContent:
        file = self.require_file(raw)
        text = await session.ocr.recognize(file.data)
        logger.info(f"OCR recognized {len(text)} characters in {file.filename}")
        return self.build(file.filename, text.strip(), ImageMetadata(processed_with_ocr=True))
