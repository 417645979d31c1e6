"""PPTX slide text, read straight from the Office Open XML archive."""

import asyncio
import io
import logging
import re
import xml.etree.ElementTree as ET
import zipfile
from typing import List, Tuple

from studyforge.core.errors import ExtractionError
from studyforge.schemas.extracted_content import ExtractedContent, PresentationMetadata
from studyforge.services.extraction.registry import Extractor, register_extractor, study_frame

logger = logging.getLogger(__name__)

PPTX_CONTENT_TYPE = "application/vnd.openxmlformats-officedocument.presentationml.presentation"
_SLIDE_PATH = re.compile(r"^ppt/slides/slide(\d+)\.xml$")


def _read_slides(data: bytes) -> Tuple[List[str], int]:
    """Return the non-empty slide texts in slide order and the total slide count."""
    slide_texts = []
    with zipfile.ZipFile(io.BytesIO(data)) as archive:
        slide_paths = sorted(
            (name for name in archive.namelist() if _SLIDE_PATH.match(name)),
            key=lambda name: int(_SLIDE_PATH.match(name).group(1)),
        )
        for slide_path in slide_paths:
            try:
                root = ET.fromstring(archive.read(slide_path))
            except ET.ParseError:
                logger.warning(f"Failed to parse slide XML '{slide_path}'")
                continue
            texts = [node.text.strip() for node in root.iter() if node.tag.endswith("}t") and node.text and node.text.strip()]
            if texts:
                slide_texts.append(" ".join(texts))
    return slide_texts, len(slide_paths)


@register_extractor(priority=4)
class PresentationExtractor(Extractor):
    name = "presentation"
    kind = "presentation"
    content_types = (PPTX_CONTENT_TYPE,)
    extensions = ("pptx",)

    async def extract(self, raw, session) -> ExtractedContent:
        file = self.require_file(raw)
        try:
            slide_texts, slide_count = await asyncio.to_thread(_read_slides, file.data)
        except zipfile.BadZipFile as e:
            raise ExtractionError(
                f"Failed to extract text from PowerPoint presentation: {e}", {"filename": file.filename}
            ) from e

        logger.info(f"Found {slide_count} slides in {file.filename}, {len(slide_texts)} with text")
        body = "\n\n".join(f"Slide {i}:\n{text}" for i, text in enumerate(slide_texts, start=1))
        metadata = PresentationMetadata(slide_count=slide_count, slides_with_content=len(slide_texts))
        return self.build(
            file.filename,
            body,
            metadata,
            frame=lambda b: study_frame(
                f"PowerPoint Presentation: {file.filename}",
                b,
                [
                    "Key presentation topics and themes",
                    "Main points and bullet items",
                    "Visual content descriptions",
                    "Structured learning objectives",
                    "Sequential information flow",
                    "Educational concepts and examples",
                ],
                details=f"Presentation Structure: {slide_count} slides",
                checklist_intro="This PowerPoint presentation should be analyzed for:",
            ),
        )
