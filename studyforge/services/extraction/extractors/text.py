"""Plain text and source code files; also the registry's final fallback."""

import logging
import os

from studyforge.schemas.extracted_content import CodeMetadata, DocumentMetadata, ExtractedContent
from studyforge.schemas.raw_input import FileInput, TextInput
from studyforge.services.extraction.registry import Extractor, register_extractor, study_frame

logger = logging.getLogger(__name__)

LANGUAGE_MAP = {
    "js": "JavaScript",
    "jsx": "React/JavaScript",
    "ts": "TypeScript",
    "tsx": "React/TypeScript",
    "py": "Python",
    "cpp": "C++",
    "c": "C",
    "h": "C/C++ Header",
    "java": "Java",
    "cs": "C#",
    "php": "PHP",
    "rb": "Ruby",
    "go": "Go",
    "rs": "Rust",
    "asm": "Assembly",
    "sql": "SQL",
    "html": "HTML",
    "htm": "HTML",
    "css": "CSS",
    "json": "JSON",
    "xml": "XML",
    "yaml": "YAML",
    "yml": "YAML",
    "md": "Markdown",
    "txt": "Plain Text",
}

CODE_EXTENSIONS = {"js", "jsx", "ts", "tsx", "py", "cpp", "c", "h", "java", "cs", "php", "rb", "go", "rs", "asm", "sql", "css", "yaml", "yml"}


def detect_language(filename: str) -> str:
    ext = os.path.splitext(filename or "")[1].lower().lstrip(".")
    return LANGUAGE_MAP.get(ext, "Unknown")


def decode_text(data: bytes) -> str:
    return data.decode("utf-8-sig", errors="replace")


@register_extractor(priority=9)
class PlainTextExtractor(Extractor):
    """Text and code files.

    Code files are framed with their language; prose is kept verbatim so its
    word count reflects the author's text.
    """

    name = "text"
    kind = "document"
    content_types = ("text/*",)
    extensions = ("txt", "md") + tuple(sorted(CODE_EXTENSIONS))

    async def extract(self, raw, session) -> ExtractedContent:
        if isinstance(raw, TextInput):
            label = raw.title or "Pasted Text"
            return self.build(label, raw.text.strip(), DocumentMetadata(document_type="Text Document"))

        file: FileInput = self.require_file(raw)
        text = decode_text(file.data)
        ext = os.path.splitext(file.filename)[1].lower().lstrip(".")

        if ext in CODE_EXTENSIONS:
            language = detect_language(file.filename)
            metadata = CodeMetadata(language=language, line_count=text.count("\n") + 1)
            return self.build(
                file.filename,
                text,
                metadata,
                kind="code",
                frame=lambda body: study_frame(
                    f"Code File: {file.filename}",
                    body,
                    [
                        "Key programming concepts and patterns",
                        "Important functions and algorithms",
                        "Best practices and techniques",
                        "Common errors and debugging approaches",
                        "Framework or library usage",
                    ],
                    details=f"Programming Language: {language}",
                    body_heading="Code Content:",
                    checklist_intro="This is source code that should be analyzed for:",
                ),
            )

        return self.build(file.filename, text.strip(), DocumentMetadata(document_type="Text Document"))
