"""Raw inputs accepted by the extraction layer."""

from typing import Optional, Union

from pydantic import BaseModel, Field, field_validator


class FileInput(BaseModel):
    """An uploaded file, read fully into memory before dispatch."""

    filename: str = Field(..., description="Original filename as uploaded")
    content_type: Optional[str] = Field(None, description="MIME type reported by the client")
    data: bytes = Field(..., description="Complete file body")

    @property
    def size_bytes(self) -> int:
        return len(self.data)


class UrlInput(BaseModel):
    """A web page or video reference."""

    url: str = Field(..., description="http(s) URL or bare video id")

    @field_validator("url")
    @classmethod
    def strip_url(cls, v: str) -> str:
        return v.strip()


class TextInput(BaseModel):
    """Pasted text.

    ``direct`` routes the text through the direct-text strategy instead of
    the plain text one.
    """

    text: str = Field(..., description="Pasted body")
    title: Optional[str] = Field(None, description="Display label for the text")
    direct: bool = Field(True, description="Treat as direct pasted text")


RawInput = Union[FileInput, UrlInput, TextInput]
