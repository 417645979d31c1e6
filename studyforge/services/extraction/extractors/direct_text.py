"""Text pasted directly by the user."""

import logging

from studyforge.core.errors import ExtractionError
from studyforge.schemas.extracted_content import DirectTextMetadata, ExtractedContent
from studyforge.schemas.raw_input import TextInput
from studyforge.services.extraction.registry import Extractor, register_extractor, study_frame

logger = logging.getLogger(__name__)

MIN_TEXT_CHARS = 10
DEFAULT_TITLE = "Custom Text Input"


@register_extractor(priority=12)
class DirectTextExtractor(Extractor):
    name = "direct-text"
    kind = "direct-text"

    async def extract(self, raw, session) -> ExtractedContent:
        if not isinstance(raw, TextInput):
            raise ExtractionError(f"{self.name} strategy expects pasted text, got {type(raw).__name__}")
        text = (raw.text or "").strip()
        if len(text) < MIN_TEXT_CHARS:
            raise ExtractionError(
                f"Text input is too short. Please provide at least {MIN_TEXT_CHARS} characters of meaningful content."
            )

        title = (raw.title or "").strip() or DEFAULT_TITLE
        metadata = DirectTextMetadata(title=title, content_length=len(text))
        return self.build(
            title,
            text,
            metadata,
            frame=lambda body: study_frame(
                f"Direct Text Input: {title}",
                body,
                [
                    "Key concepts and main ideas",
                    "Important information and facts",
                    "Educational content and explanations",
                    "Learning objectives and insights",
                    "Practical applications and examples",
                ],
                details="Source: User-provided text content",
                checklist_intro="This text content should be analyzed for:",
            ),
        )
