"""Generation service: source resolution, completion and attributed persistence."""

import asyncio
import logging
from typing import Dict, List, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from studyforge.core.constants import (
    GENERATION_STATUS_COMPLETED,
    GENERATION_STATUS_FAILED,
    GENERATION_TYPE_BULK,
    GENERATION_TYPE_DIRECT_TEXT,
    GENERATION_TYPE_SELECTIVE,
)
from studyforge.core.errors import EmptyIntersectionError, NoSourcesError
from studyforge.db.models import Generation, Question, Source
from studyforge.schemas.generation import GeneratedQuestion, GenerationResult
from studyforge.schemas.raw_input import TextInput
from studyforge.services.extraction import ExtractionCoordinator
from studyforge.services.generation.client import CompletionClient
from studyforge.services.generation.parser import parse_completion
from studyforge.services.provenance.store import ProvenanceStore

logger = logging.getLogger(__name__)


class GenerationService:
    """Service for generating study items from a topic's sources.

    Every generated item is attributed to the exact set of sources the
    generation used. Generations only ever add Questions to a topic's pool.
    """

    def __init__(
        self,
        db_session: AsyncSession,
        completion_client: Optional[CompletionClient] = None,
        coordinator: Optional[ExtractionCoordinator] = None,
    ):
        """Initialize the generation service.

        Args:
            db_session: SQLAlchemy async session
            completion_client: Client for the completion service
            coordinator: Extraction coordinator used for pasted text
        """
        self.db = db_session
        self.store = ProvenanceStore(db_session)
        self.completion_client = completion_client or CompletionClient()
        self.coordinator = coordinator or ExtractionCoordinator()

    async def resolve_sources(
        self, topic_id: str, principal_id: str, source_ids: Optional[List[str]] = None
    ) -> List[Source]:
        """Resolve the sources a generation will use, in ingestion order.

        Args:
            topic_id: Topic to draw sources from
            principal_id: Owner of the topic
            source_ids: Requested subset, or None for every source of the topic

        Raises:
            NoSourcesError: the topic has no sources
            EmptyIntersectionError: none of ``source_ids`` belongs to the topic
        """
        sources = await self.store.list_sources(topic_id, principal_id)
        if source_ids is None:
            if not sources:
                raise NoSourcesError("No sources available for this topic", {"topic_id": topic_id})
            return sources

        requested = set(source_ids)
        selected = [source for source in sources if source.id in requested]
        foreign = requested - {source.id for source in selected}
        if foreign:
            logger.warning(f"Ignoring {len(foreign)} source id(s) not in topic {topic_id}")
        if not selected:
            raise EmptyIntersectionError("None of the selected sources belong to this topic", {"topic_id": topic_id})
        return selected

    async def generate(
        self, topic_id: str, principal_id: str, source_ids: Optional[List[str]] = None
    ) -> GenerationResult:
        """Generate study items from a topic's sources.

        Args:
            topic_id: Topic to generate for
            principal_id: Owner of the topic
            source_ids: Selected sources; None generates from all of them

        Returns:
            GenerationResult carrying only the newly created items
        """
        topic = await self.store.get_topic(topic_id, principal_id)
        sources = await self.resolve_sources(topic_id, principal_id, source_ids)
        generation_type = GENERATION_TYPE_BULK if source_ids is None else GENERATION_TYPE_SELECTIVE
        resolved_ids = [source.id for source in sources]

        generation = await self.store.create_generation(
            topic_id, principal_id, generation_type, resolved_ids, ai_model=self.completion_client.model
        )
        try:
            texts = await self.store.get_knowledge_texts(sources)
            content = "\n\n".join(texts[source.id] for source in sources if texts.get(source.id))
            questions, breakdown = await self._generate_items(generation, topic.name, content, resolved_ids)
        except BaseException as e:
            await asyncio.shield(self._fail(generation, e))
            raise
        return await self._complete(generation, questions, breakdown)

    async def generate_from_text(
        self, topic_id: str, principal_id: str, text: str, title: Optional[str] = None
    ) -> GenerationResult:
        """Generate study items from pasted text without storing a Source.

        The Generation is recorded with no sources and its items carry no attribution.
        """
        topic = await self.store.get_topic(topic_id, principal_id)
        content = await self.coordinator.extract(TextInput(text=text, title=title, direct=True))

        generation = await self.store.create_generation(
            topic_id, principal_id, GENERATION_TYPE_DIRECT_TEXT, [], ai_model=self.completion_client.model
        )
        try:
            questions, breakdown = await self._generate_items(generation, topic.name, content.text, [])
        except BaseException as e:
            await asyncio.shield(self._fail(generation, e))
            raise
        return await self._complete(generation, questions, breakdown)

    async def _generate_items(
        self, generation: Generation, topic_name: str, content: str, derived_from_sources: List[str]
    ) -> Tuple[List[Question], Dict[str, int]]:
        response = await self.completion_client.complete(topic_name, content)
        parsed = parse_completion(response)
        if parsed.total == 0:
            logger.warning(f"Generation {generation.id} produced no valid items")
        questions = await self.store.add_generated_items(generation, parsed.items, derived_from_sources)
        return questions, parsed.breakdown

    async def _complete(
        self, generation: Generation, questions: List[Question], breakdown: Dict[str, int]
    ) -> GenerationResult:
        try:
            generation = await asyncio.shield(
                self.store.finalize_generation(
                    generation, GENERATION_STATUS_COMPLETED, items_generated=len(questions), breakdown=breakdown
                )
            )
        except BaseException as e:
            await asyncio.shield(self._fail(generation, e))
            raise
        return GenerationResult(
            generation_id=generation.id,
            generation_type=generation.generation_type,
            status=generation.status,
            source_ids=list(generation.source_ids or []),
            items_generated=generation.items_generated,
            breakdown=dict(generation.breakdown or {}),
            processing_time_ms=generation.processing_time_ms or 0,
            questions=[GeneratedQuestion.model_validate(question) for question in questions],
        )

    async def _fail(self, generation: Generation, error: BaseException) -> None:
        """Finalize a Generation to failed; a failure here is logged and does not mask ``error``."""
        message = str(error) or type(error).__name__
        try:
            await self.store.finalize_generation(generation, GENERATION_STATUS_FAILED, error_message=message)
        except Exception as e:
            logger.error(f"Could not mark generation {generation.id} as failed: {e}")

    async def list_questions(self, topic_id: str, principal_id: str, saved_only: bool = False) -> List[Question]:
        return await self.store.list_questions(topic_id, principal_id, saved_only=saved_only)

    async def save_question(self, question_id: str, principal_id: str) -> Question:
        return await self.store.set_question_saved(question_id, principal_id, saved=True)
