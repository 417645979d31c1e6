"""Structured markup files: XML, JSON and HTML."""

import json
import logging
import os
from typing import Any

from studyforge.schemas.extracted_content import CodeMetadata, ExtractedContent
from studyforge.services.extraction.extractors.text import decode_text, detect_language
from studyforge.services.extraction.registry import Extractor, register_extractor, study_frame

logger = logging.getLogger(__name__)

_FORMATS = {
    "xml": "xml",
    "json": "json",
    "html": "html",
    "htm": "html",
    "application/xml": "xml",
    "text/xml": "xml",
    "application/json": "json",
    "text/html": "html",
}


def summarize_json(data: Any, depth: int = 0) -> str:
    """One-line description of a JSON value's top-level shape."""
    if depth > 3:
        return "deeply nested structure"
    if isinstance(data, list):
        first = type(data[0]).__name__ if data else "unknown"
        return f"Array with {len(data)} items ({first} type)"
    if isinstance(data, dict):
        keys = list(data.keys())
        sample = ", ".join(keys[:3])
        return f"Object with {len(keys)} properties ({sample}{'...' if len(keys) > 3 else ''})"
    return f"{type(data).__name__} value"


@register_extractor(priority=8)
class MarkupExtractor(Extractor):
    name = "markup"
    kind = "code"
    content_types = ("application/xml", "text/xml", "application/json", "text/html")
    extensions = ("xml", "json", "html", "htm")

    def _format(self, filename: str, content_type: str) -> str:
        ext = os.path.splitext(filename)[1].lower().lstrip(".")
        mime = (content_type or "").split(";")[0].strip().lower()
        return _FORMATS.get(ext) or _FORMATS.get(mime) or "xml"

    async def extract(self, raw, session) -> ExtractedContent:
        file = self.require_file(raw)
        text = decode_text(file.data)
        fmt = self._format(file.filename, file.content_type)
        language = detect_language(file.filename)
        if language == "Unknown":
            language = fmt.upper()
        line_count = text.count("\n") + 1
        details = f"File Type: {language}"

        if fmt == "json":
            try:
                data = json.loads(text)
            except json.JSONDecodeError as e:
                logger.warning(f"{file.filename} is not valid JSON ({e}), keeping raw text")
                metadata = CodeMetadata(document_type="JSON Data", language=language, line_count=line_count)
                return self.build(
                    file.filename,
                    text,
                    metadata,
                    frame=lambda body: study_frame(
                        f"JSON File: {file.filename}",
                        body,
                        ["Potential JSON structure", "Data patterns and formatting", "Configuration or data content"],
                        details=details,
                        body_heading="Content (Invalid JSON):",
                        checklist_intro="This file appears to be JSON but has parsing errors. It should be analyzed for:",
                    ),
                )

            summary = summarize_json(data)
            metadata = CodeMetadata(
                document_type="JSON Data", language=language, line_count=line_count, json_summary=summary
            )
            return self.build(
                file.filename,
                json.dumps(data, indent=2, ensure_ascii=False),
                metadata,
                frame=lambda body: study_frame(
                    f"JSON Data File: {file.filename}",
                    body,
                    [
                        "Data structure and object relationships",
                        "Key-value pairs and data types",
                        "Configuration settings or data records",
                        "API responses or data exchange formats",
                        "Nested structures and arrays",
                    ],
                    details=f"{details}\nStructure: {summary}",
                    body_heading="JSON Content:",
                    checklist_intro="This JSON file should be analyzed for:",
                ),
            )

        if fmt == "html":
            metadata = CodeMetadata(document_type="HTML Document", language=language, line_count=line_count)
            return self.build(
                file.filename,
                text,
                metadata,
                frame=lambda body: study_frame(
                    f"HTML Document: {file.filename}",
                    body,
                    [
                        "Web page structure and content",
                        "Text content within HTML elements",
                        "Semantic markup and organization",
                        "Educational or informational content",
                        "Key concepts presented in the document",
                    ],
                    details=details,
                    body_heading="HTML Content:",
                    checklist_intro="This HTML document should be analyzed for:",
                ),
            )

        metadata = CodeMetadata(document_type="XML Document", language=language, line_count=line_count)
        return self.build(
            file.filename,
            text,
            metadata,
            frame=lambda body: study_frame(
                f"XML Data File: {file.filename}",
                body,
                [
                    "Data structure and hierarchy",
                    "Element relationships and attributes",
                    "Configuration or data content",
                    "Schema patterns and organization",
                    "Key information and values",
                ],
                details=details,
                body_heading="XML Structure and Content:",
                checklist_intro="This XML file should be analyzed for:",
            ),
        )
