"""Extraction strategies; importing this package registers all of them."""

from studyforge.services.extraction.extractors.audio import AudioExtractor
from studyforge.services.extraction.extractors.delimited import DelimitedTextExtractor
from studyforge.services.extraction.extractors.direct_text import DirectTextExtractor
from studyforge.services.extraction.extractors.documents import PdfExtractor, WordDocumentExtractor
from studyforge.services.extraction.extractors.image import ImageOcrExtractor
from studyforge.services.extraction.extractors.markup import MarkupExtractor
from studyforge.services.extraction.extractors.presentation import PresentationExtractor
from studyforge.services.extraction.extractors.spreadsheet import SpreadsheetExtractor
from studyforge.services.extraction.extractors.text import PlainTextExtractor
from studyforge.services.extraction.extractors.video import VideoTranscriptExtractor
from studyforge.services.extraction.extractors.web import WebPageExtractor

__all__ = [
    "AudioExtractor",
    "DelimitedTextExtractor",
    "DirectTextExtractor",
    "ImageOcrExtractor",
    "MarkupExtractor",
    "PdfExtractor",
    "PlainTextExtractor",
    "PresentationExtractor",
    "SpreadsheetExtractor",
    "VideoTranscriptExtractor",
    "WebPageExtractor",
    "WordDocumentExtractor",
]
