"""Word-processing documents: PDF via pdfminer.six, DOCX via python-docx."""

import asyncio
import io
import logging
import re
import zipfile
from typing import Tuple

import docx
from docx.opc.exceptions import PackageNotFoundError
from pdfminer.high_level import extract_pages
from pdfminer.layout import LTTextContainer
from pdfminer.psparser import PSException

from studyforge.core.errors import ExtractionError
from studyforge.schemas.extracted_content import DocumentMetadata, ExtractedContent
from studyforge.services.extraction.registry import Extractor, register_extractor, study_frame

logger = logging.getLogger(__name__)

DOCUMENT_CHECKLIST = [
    "Key concepts and definitions",
    "Main topics and subtopics",
    "Important facts and details",
]

DOCX_CONTENT_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"


def _read_pdf(data: bytes) -> Tuple[str, int]:
    pages = []
    for page_layout in extract_pages(io.BytesIO(data)):
        page_text = " ".join(
            element.get_text().strip() for element in page_layout if isinstance(element, LTTextContainer)
        )
        pages.append(page_text)
    text = re.sub(r"\s+", " ", "\n\n".join(pages)).strip()
    return text, len(pages)


def _read_docx(data: bytes) -> Tuple[str, int]:
    document = docx.Document(io.BytesIO(data))
    paragraphs = [p.text for p in document.paragraphs if p.text.strip()]
    return "\n".join(paragraphs), len(paragraphs)


@register_extractor(priority=2)
class PdfExtractor(Extractor):
    name = "pdf"
    kind = "document"
    content_types = ("application/pdf",)
    extensions = ("pdf",)

    async def extract(self, raw, session) -> ExtractedContent:
        file = self.require_file(raw)
        try:
            text, page_count = await asyncio.to_thread(_read_pdf, file.data)
        except PSException as e:
            raise ExtractionError(f"Failed to extract text from PDF: {e}", {"filename": file.filename}) from e

        logger.info(f"Extracted {len(text)} characters from {page_count} PDF pages of {file.filename}")
        metadata = DocumentMetadata(document_type="PDF Document", page_count=page_count)
        return self.build(
            file.filename,
            text,
            metadata,
            frame=lambda body: study_frame(
                f"PDF Document: {file.filename}",
                body,
                DOCUMENT_CHECKLIST + ["Structured information and diagrams", "Educational content and examples"],
                details=f"Document Structure: {page_count} pages",
                checklist_intro="This PDF document should be analyzed for:",
            ),
        )


@register_extractor(priority=3)
class WordDocumentExtractor(Extractor):
    name = "word"
    kind = "document"
    content_types = (DOCX_CONTENT_TYPE,)
    extensions = ("docx",)

    async def extract(self, raw, session) -> ExtractedContent:
        file = self.require_file(raw)
        try:
            text, paragraph_count = await asyncio.to_thread(_read_docx, file.data)
        except (PackageNotFoundError, zipfile.BadZipFile, KeyError) as e:
            raise ExtractionError(
                f"Failed to extract text from Word document: {e}", {"filename": file.filename}
            ) from e

        metadata = DocumentMetadata(document_type="Word Document", paragraph_count=paragraph_count)
        return self.build(
            file.filename,
            text,
            metadata,
            frame=lambda body: study_frame(
                f"Word Document: {file.filename}",
                body,
                DOCUMENT_CHECKLIST + ["Structured information and lists", "Educational content and examples"],
                body_heading="Document Content:",
                checklist_intro="This Word document should be analyzed for:",
            ),
        )
