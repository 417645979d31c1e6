"""Canonical extraction record and its per-kind metadata variants."""

from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

ContentKind = Literal[
    "document",
    "code",
    "spreadsheet",
    "presentation",
    "image",
    "audio",
    "webpage",
    "video",
    "direct-text",
]


class _MetadataBase(BaseModel):
    model_config = ConfigDict(extra="forbid")

    word_count: int = 0


class DocumentMetadata(_MetadataBase):
    kind: Literal["document"] = "document"
    document_type: str = "Text Document"
    page_count: Optional[int] = None
    paragraph_count: Optional[int] = None
    failed: bool = False
    error: Optional[str] = None


class CodeMetadata(_MetadataBase):
    kind: Literal["code"] = "code"
    document_type: str = "Code File"
    language: str = "Unknown"
    line_count: int = 0
    json_summary: Optional[str] = None


class SpreadsheetMetadata(_MetadataBase):
    kind: Literal["spreadsheet"] = "spreadsheet"
    document_type: str = "Spreadsheet"
    row_count: int = 0
    column_count: int = 0
    headers: List[str] = Field(default_factory=list)
    sheet_count: Optional[int] = None
    delimiter: Optional[str] = None


class PresentationMetadata(_MetadataBase):
    kind: Literal["presentation"] = "presentation"
    slide_count: int = 0
    slides_with_content: int = 0


class ImageMetadata(_MetadataBase):
    kind: Literal["image"] = "image"
    processed_with_ocr: bool = True


class AudioMetadata(_MetadataBase):
    kind: Literal["audio"] = "audio"
    duration_seconds: Optional[float] = None
    language: Optional[str] = None
    transcription_model: Optional[str] = None


class WebpageMetadata(_MetadataBase):
    kind: Literal["webpage"] = "webpage"
    url: str
    title: Optional[str] = None
    content_length: int = 0
    failed: bool = False
    error: Optional[str] = None


class VideoMetadata(_MetadataBase):
    kind: Literal["video"] = "video"
    url: str
    video_id: Optional[str] = None
    platform: str = "YouTube"
    has_transcript: bool = False
    segment_count: int = 0
    duration_seconds: Optional[float] = None
    failed: bool = False
    error: Optional[str] = None


class DirectTextMetadata(_MetadataBase):
    kind: Literal["direct-text"] = "direct-text"
    title: str
    content_length: int = 0


ContentMetadata = Annotated[
    Union[
        DocumentMetadata,
        CodeMetadata,
        SpreadsheetMetadata,
        PresentationMetadata,
        ImageMetadata,
        AudioMetadata,
        WebpageMetadata,
        VideoMetadata,
        DirectTextMetadata,
    ],
    Field(discriminator="kind"),
]


class ExtractedContent(BaseModel):
    """Normalized result of any extraction strategy.

    ``text`` is never empty: strategies that cannot produce text return a
    clearly labelled placeholder and set ``metadata.failed`` where the variant
    supports it.
    """

    kind: ContentKind
    source_label: str
    text: str
    metadata: ContentMetadata

    @field_validator("text")
    @classmethod
    def text_not_empty(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("extracted text must not be empty")
        return v

    @model_validator(mode="after")
    def metadata_matches_kind(self) -> "ExtractedContent":
        if self.metadata.kind != self.kind:
            raise ValueError(f"metadata variant '{self.metadata.kind}' does not match kind '{self.kind}'")
        return self

    @property
    def failed(self) -> bool:
        return bool(getattr(self.metadata, "failed", False))

    def metadata_dict(self) -> dict:
        """Metadata as a JSON-ready dict without the discriminator."""
        return self.metadata.model_dump(exclude={"kind"}, exclude_none=True)
