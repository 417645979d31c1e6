"""Extraction strategies and the registry that picks one per input."""

import abc
import logging
import os
import re
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple, Type
from urllib.parse import urlparse

from studyforge.core.errors import ExtractionError, UnsupportedFormatError
from studyforge.schemas.extracted_content import ContentMetadata, ExtractedContent
from studyforge.schemas.raw_input import FileInput, RawInput, TextInput, UrlInput

logger = logging.getLogger(__name__)

# Strategy classes registered via @register_extractor, keyed by priority
EXTRACTOR_REGISTRY: Dict[int, Type["Extractor"]] = {}

LEGACY_EXTENSIONS = {"doc": "DOCX", "ppt": "PPTX", "xls": "XLSX"}
LEGACY_CONTENT_TYPES = {
    "application/msword": ("DOC", "DOCX"),
    "application/vnd.ms-powerpoint": ("PPT", "PPTX"),
    "application/vnd.ms-excel": ("XLS", "XLSX"),
}

VIDEO_HOSTS = ("youtube.com", "youtu.be", "youtube-nocookie.com")
_BARE_VIDEO_ID = re.compile(r"^([a-zA-Z0-9_-]{11})$")


def register_extractor(priority: int):
    """Decorator to register an extraction strategy at a priority (lower runs first)."""

    def decorator(cls):
        if priority in EXTRACTOR_REGISTRY:
            raise ValueError(f"Priority {priority} already taken by {EXTRACTOR_REGISTRY[priority].__name__}")
        EXTRACTOR_REGISTRY[priority] = cls
        cls.priority = priority
        return cls

    return decorator


@dataclass(frozen=True)
class InputDescriptor:
    """What the registry knows about an input before reading it."""

    content_type: Optional[str] = None
    filename: Optional[str] = None
    url: Optional[str] = None
    direct_text: bool = False

    @property
    def mime(self) -> str:
        return (self.content_type or "").split(";")[0].strip().lower()

    @property
    def extension(self) -> str:
        if not self.filename:
            return ""
        return os.path.splitext(self.filename)[1].lower().lstrip(".")

    @classmethod
    def from_raw(cls, raw: RawInput) -> "InputDescriptor":
        if isinstance(raw, FileInput):
            return cls(content_type=raw.content_type, filename=raw.filename)
        if isinstance(raw, UrlInput):
            return cls(url=raw.url)
        if isinstance(raw, TextInput):
            return cls(content_type="text/plain", direct_text=raw.direct)
        raise TypeError(f"Unsupported raw input type: {type(raw).__name__}")


def is_video_url(url: str) -> bool:
    """True for YouTube hostnames and bare 11-character video ids."""
    if _BARE_VIDEO_ID.match(url.strip()):
        return True
    host = (urlparse(url.strip()).hostname or "").lower()
    return any(host == h or host.endswith("." + h) for h in VIDEO_HOSTS)


def study_frame(header: str, body: str, checklist: List[str], details: str = "", body_heading: str = "Content:",
                checklist_intro: Optional[str] = None) -> str:
    """Wrap extracted text in a labelled header and an analysis checklist."""
    parts = [f"[{header}]"]
    if details:
        parts.append(details)
    parts.append(f"{body_heading}\n{body}" if body_heading else body)
    intro = checklist_intro or "This content should be analyzed for:"
    parts.append(intro + "\n" + "\n".join(f"- {item}" for item in checklist))
    return "\n\n".join(parts)


class Extractor(abc.ABC):
    """One extraction strategy.

    Subclasses declare the content types (exact, or ``type/*`` prefixes) and
    filename extensions they accept, and implement :meth:`extract`.
    """

    name: str = "extractor"
    kind: str = "document"
    priority: int = 0
    content_types: Tuple[str, ...] = ()
    extensions: Tuple[str, ...] = ()

    def matches_content_type(self, descriptor: InputDescriptor) -> bool:
        mime = descriptor.mime
        if not mime:
            return False
        for pattern in self.content_types:
            if pattern.endswith("/*"):
                if mime.startswith(pattern[:-1]):
                    return True
            elif mime == pattern:
                return True
        return False

    def matches_extension(self, descriptor: InputDescriptor) -> bool:
        return bool(descriptor.extension) and descriptor.extension in self.extensions

    def can_handle(self, descriptor: InputDescriptor) -> bool:
        return self.matches_content_type(descriptor) or self.matches_extension(descriptor)

    def require_file(self, raw: RawInput) -> FileInput:
        if not isinstance(raw, FileInput):
            raise ExtractionError(f"{self.name} strategy expects a file, got {type(raw).__name__}")
        return raw

    @abc.abstractmethod
    async def extract(self, raw: RawInput, session) -> ExtractedContent:
        """Turn the raw input into an ExtractedContent record.

        Args:
            raw: The input, fully read
            session: ExtractionSession providing scoped engines
        """

    def build(
        self,
        source_label: str,
        body: str,
        metadata: ContentMetadata,
        frame: Optional[Callable[[str], str]] = None,
        kind: Optional[str] = None,
    ) -> ExtractedContent:
        """Assemble the result, substituting a labelled placeholder for blank text.

        The word count is taken from the extracted body before any study
        framing, or from the placeholder text when the body is blank.
        """
        if not body or not body.strip():
            logger.warning(f"{self.name} produced no text for {source_label}, using placeholder")
            if hasattr(metadata, "failed"):
                metadata.failed = True
                metadata.error = metadata.error or "No readable text content found"
            text = f"[{source_label}]\n\n[No readable text content could be extracted from this {kind or self.kind}.]"
            metadata.word_count = len(text.split())
        else:
            text = frame(body) if frame else body
            metadata.word_count = len(body.split())
        return ExtractedContent(kind=kind or self.kind, source_label=source_label, text=text, metadata=metadata)


class NetworkExtractor(Extractor):
    """Strategy whose input is fetched over the network.

    The coordinator runs these under a timeout and substitutes
    :meth:`placeholder` when the remote side is slow or unavailable.
    """

    @abc.abstractmethod
    def placeholder(self, raw: RawInput, error: str) -> ExtractedContent:
        """Labelled manual-notes stand-in for an input that could not be fetched."""

    def stand_in(self, source_label: str, text: str, metadata: ContentMetadata) -> ExtractedContent:
        metadata.word_count = len(text.split())
        return ExtractedContent(kind=self.kind, source_label=source_label, text=text, metadata=metadata)


class ExtractorRegistry:
    """Resolves an InputDescriptor to exactly one strategy.

    Order: legacy office formats are rejected, then explicit direct text,
    content type, filename extension, URL shape, and finally plain text.
    """

    def __init__(self, extractors: Optional[List[Extractor]] = None):
        if extractors is None:
            extractors = default_extractors()
        self.extractors = sorted(extractors, key=lambda e: e.priority)
        self._by_name = {e.name: e for e in self.extractors}

    def get(self, name: str) -> Extractor:
        return self._by_name[name]

    def resolve(self, descriptor: InputDescriptor) -> Extractor:
        self._reject_legacy(descriptor)

        if descriptor.direct_text:
            return self.get("direct-text")

        for extractor in self.extractors:
            if extractor.matches_content_type(descriptor):
                return extractor

        for extractor in self.extractors:
            if extractor.matches_extension(descriptor):
                return extractor

        if descriptor.url:
            return self.get("video" if is_video_url(descriptor.url) else "web")

        logger.info(f"No strategy matched {descriptor.filename or descriptor.content_type}, using plain text")
        return self.get("text")

    @staticmethod
    def _reject_legacy(descriptor: InputDescriptor) -> None:
        if descriptor.extension in LEGACY_EXTENSIONS:
            raise UnsupportedFormatError(
                descriptor.extension.upper(),
                LEGACY_EXTENSIONS[descriptor.extension],
                {"filename": descriptor.filename},
            )
        if descriptor.mime in LEGACY_CONTENT_TYPES:
            legacy, modern = LEGACY_CONTENT_TYPES[descriptor.mime]
            raise UnsupportedFormatError(legacy, modern, {"filename": descriptor.filename})


def default_extractors() -> List[Extractor]:
    # Importing the package registers every strategy
    import studyforge.services.extraction.extractors  # noqa: F401

    return [cls() for _, cls in sorted(EXTRACTOR_REGISTRY.items())]
