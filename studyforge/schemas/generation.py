"""Schemas for completion-service items and generation results."""

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from studyforge.core.constants import (
    BREAKDOWN_KEYS,
    ITEM_TITLE_MAX_LENGTH,
    ITEM_TYPE_FLASHCARD,
    ITEM_TYPE_MULTIPLE_CHOICE,
    ITEM_TYPE_OPEN_ENDED,
    ITEM_TYPE_SUMMARY,
)

Difficulty = Literal["easy", "medium", "hard"]


class StudyItem(BaseModel):
    """Fields and helpers shared by every generated item type."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    item_type: str

    @field_validator("difficulty", mode="before", check_fields=False)
    @classmethod
    def normalize_difficulty(cls, value: Any) -> str:
        if isinstance(value, str) and value.strip().lower() in ("easy", "medium", "hard"):
            return value.strip().lower()
        return "medium"

    @property
    def title(self) -> str:
        """Short label stored with the generation record."""
        return self.item_type.replace("-", " ").title()

    @property
    def item_difficulty(self) -> Optional[str]:
        return getattr(self, "difficulty", None)

    def to_payload(self) -> Dict[str, Any]:
        payload = self.model_dump(by_alias=True, exclude={"item_type"})
        payload["type"] = self.item_type
        return payload


class Flashcard(StudyItem):
    item_type: Literal["flashcard"] = ITEM_TYPE_FLASHCARD
    front: str = Field(min_length=1)
    back: str = Field(min_length=1)
    difficulty: Difficulty = "medium"
    category: Optional[str] = None

    @property
    def title(self) -> str:
        return self.front[:ITEM_TITLE_MAX_LENGTH] or "Flashcard"


class MultipleChoice(StudyItem):
    item_type: Literal["multiple-choice"] = ITEM_TYPE_MULTIPLE_CHOICE
    question: str = Field(min_length=1)
    options: List[str] = Field(min_length=2)
    correct_answer: int = Field(alias="correctAnswer")
    explanation: Optional[str] = None
    difficulty: Difficulty = "medium"

    @model_validator(mode="after")
    def answer_in_range(self) -> "MultipleChoice":
        if not 0 <= self.correct_answer < len(self.options):
            raise ValueError(f"correct answer index {self.correct_answer} out of range")
        return self

    @property
    def title(self) -> str:
        return self.question[:ITEM_TITLE_MAX_LENGTH] or "Multiple Choice"


class OpenEnded(StudyItem):
    item_type: Literal["open-ended"] = ITEM_TYPE_OPEN_ENDED
    question: str = Field(min_length=1)
    sample_answer: Optional[str] = Field(default=None, alias="sampleAnswer")
    rubric: Optional[str] = None
    difficulty: Difficulty = "medium"

    @property
    def title(self) -> str:
        return self.question[:ITEM_TITLE_MAX_LENGTH] or "Open-Ended Question"


class Summary(StudyItem):
    item_type: Literal["summary"] = ITEM_TYPE_SUMMARY
    title_text: str = Field(alias="title", min_length=1)
    content: str = Field(min_length=1)
    key_terms: List[str] = Field(default_factory=list, alias="keyTerms")

    @property
    def title(self) -> str:
        return self.title_text[:ITEM_TITLE_MAX_LENGTH] or "Summary"

    @property
    def item_difficulty(self) -> Optional[str]:
        return None


class ParsedCompletion(BaseModel):
    """Typed collections parsed from one completion response."""

    flashcards: List[Flashcard] = Field(default_factory=list)
    multiple_choice: List[MultipleChoice] = Field(default_factory=list)
    open_ended: List[OpenEnded] = Field(default_factory=list)
    summaries: List[Summary] = Field(default_factory=list)
    dropped: int = 0

    @property
    def items(self) -> List[StudyItem]:
        return [*self.flashcards, *self.multiple_choice, *self.open_ended, *self.summaries]

    @property
    def total(self) -> int:
        return len(self.items)

    @property
    def breakdown(self) -> Dict[str, int]:
        counts = {key: 0 for key in BREAKDOWN_KEYS.values()}
        for item in self.items:
            counts[BREAKDOWN_KEYS[item.item_type]] += 1
        return counts


class GeneratedQuestion(BaseModel):
    """A newly created Question as returned to the caller."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    item_type: str
    payload: Dict[str, Any]
    generation_id: Optional[str] = None
    source_attribution: List[str] = Field(default_factory=list)
    is_saved: bool = False


class GenerationResult(BaseModel):
    """Outcome of one generation workflow."""

    generation_id: str
    generation_type: str
    status: str
    source_ids: List[str]
    items_generated: int
    breakdown: Dict[str, int]
    processing_time_ms: int
    questions: List[GeneratedQuestion] = Field(default_factory=list)

    @property
    def message(self) -> str:
        if self.source_ids:
            return (
                f"Successfully generated {self.items_generated} study items "
                f"from {len(self.source_ids)} source(s)!"
            )
        return f"Successfully generated {self.items_generated} study items!"


class GenerateRequest(BaseModel):
    """Body of a generation request; omitted ``source_ids`` means every source."""

    source_ids: Optional[List[str]] = Field(None, description="Subset of topic sources to generate from")


class GenerateFromTextRequest(BaseModel):
    text: str = Field(..., description="Text to generate study items from")
    title: Optional[str] = Field(None, description="Label for the pasted text")
