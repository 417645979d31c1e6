from datetime import datetime, UTC
import logging
from typing import Any, Dict, Iterable, List, Optional, Sequence
from uuid import uuid4

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from studyforge.core.constants import (
    GENERATION_STATUS_PROCESSING,
    PROCESSING_STATUS_COMPLETED,
    TERMINAL_GENERATION_STATUSES,
)
from studyforge.core.errors import GenerationStateError, NotFoundError, PersistenceError
from studyforge.db.models import (
    Document,
    Generation,
    GenerationItem,
    GenerationItemSource,
    KnowledgeBaseEntry,
    Question,
    Source,
    Topic,
)
from studyforge.schemas.extracted_content import ExtractedContent
from studyforge.schemas.generation import StudyItem

logger = logging.getLogger(__name__)


class ProvenanceStore:
    """Persistence for topics, sources, generations and their attribution.

    Every write commits on its own so that callers can compensate with real
    deletes. Relational failures are rolled back, logged and re-raised as
    ``PersistenceError``.
    """

    def __init__(self, db_session: AsyncSession):
        """Initialize the store with a database session.

        Args:
            db_session: SQLAlchemy async session
        """
        self.db = db_session

    async def _commit(self, action: str, context: Optional[Dict[str, Any]] = None) -> None:
        try:
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Error {action}: {str(e)}")
            raise PersistenceError(f"Database error while {action}: {e}", context) from e

    async def _execute(self, statement, action: str, context: Optional[Dict[str, Any]] = None):
        try:
            return await self.db.execute(statement)
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Error {action}: {str(e)}")
            raise PersistenceError(f"Database error while {action}: {e}", context) from e

    # Topics

    async def create_topic(self, user_id: str, name: str) -> Topic:
        topic = Topic(id=str(uuid4()), user_id=user_id, name=name)
        self.db.add(topic)
        await self._commit("creating topic", {"user_id": user_id})
        logger.info(f"Created topic {topic.id} '{name}' for user {user_id}")
        return topic

    async def list_topics(self, user_id: str) -> List[Topic]:
        result = await self.db.execute(
            select(Topic).where(Topic.user_id == user_id).order_by(Topic.created_at.desc())
        )
        return list(result.scalars().all())

    async def get_topic(self, topic_id: str, user_id: str) -> Topic:
        """Get a topic owned by ``user_id``.

        Raises:
            NotFoundError: if the topic does not exist for this user
        """
        result = await self.db.execute(select(Topic).where(Topic.id == topic_id, Topic.user_id == user_id))
        topic = result.scalars().first()
        if topic is None:
            raise NotFoundError("Topic not found", {"topic_id": topic_id})
        return topic

    # Documents, knowledge base entries and sources

    async def create_document(
        self,
        topic_id: str,
        user_id: str,
        filename: str,
        storage_path: Optional[str],
        content_type: Optional[str],
        size_bytes: Optional[int],
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Document:
        document = Document(
            id=str(uuid4()),
            topic_id=topic_id,
            user_id=user_id,
            filename=filename,
            storage_path=storage_path,
            content_type=content_type,
            size_bytes=size_bytes,
            document_metadata=metadata or {},
        )
        self.db.add(document)
        await self._commit("creating document", {"topic_id": topic_id})
        logger.info(f"Created document {document.id} ({filename}) in topic {topic_id}")
        return document

    async def get_document(self, document_id: str, user_id: str) -> Document:
        result = await self.db.execute(
            select(Document).where(Document.id == document_id, Document.user_id == user_id)
        )
        document = result.scalars().first()
        if document is None:
            raise NotFoundError("Document not found", {"document_id": document_id})
        return document

    async def rename_document(self, document_id: str, user_id: str, filename: str) -> Document:
        document = await self.get_document(document_id, user_id)
        document.filename = filename
        # The Source keeps the display name in step with its Document
        await self._execute(
            update(Source).where(Source.document_id == document_id).values(source_name=filename),
            "renaming document",
            {"document_id": document_id},
        )
        await self._commit("renaming document", {"document_id": document_id})
        logger.info(f"Renamed document {document_id} to '{filename}'")
        return document

    async def delete_document(self, document_id: str) -> None:
        """Delete a Document with its knowledge base entry and Source."""
        context = {"document_id": document_id}
        await self._execute(delete(Source).where(Source.document_id == document_id), "deleting document", context)
        await self._execute(
            delete(KnowledgeBaseEntry).where(KnowledgeBaseEntry.document_id == document_id), "deleting document", context
        )
        await self._execute(delete(Document).where(Document.id == document_id), "deleting document", context)
        await self._commit("deleting document", context)
        logger.info(f"Deleted document {document_id}")

    async def create_knowledge_entry(
        self,
        topic_id: str,
        user_id: str,
        content: ExtractedContent,
        document_id: Optional[str] = None,
    ) -> KnowledgeBaseEntry:
        entry = KnowledgeBaseEntry(
            id=str(uuid4()),
            topic_id=topic_id,
            user_id=user_id,
            document_id=document_id,
            kind=content.kind,
            source_label=content.source_label,
            text=content.text,
            entry_metadata=content.metadata_dict(),
        )
        self.db.add(entry)
        await self._commit("creating knowledge base entry", {"topic_id": topic_id, "document_id": document_id})
        return entry

    async def delete_knowledge_entry(self, entry_id: str) -> None:
        context = {"knowledge_base_id": entry_id}
        await self._execute(
            delete(KnowledgeBaseEntry).where(KnowledgeBaseEntry.id == entry_id), "deleting knowledge base entry", context
        )
        await self._commit("deleting knowledge base entry", context)

    async def create_source(
        self,
        topic_id: str,
        user_id: str,
        content: ExtractedContent,
        knowledge_base_id: str,
        ingested_at: datetime,
        document_id: Optional[str] = None,
        original_name: Optional[str] = None,
        content_type: Optional[str] = None,
        size_bytes: Optional[int] = None,
    ) -> Source:
        processed_at = max(datetime.now(UTC), ingested_at)
        source = Source(
            id=str(uuid4()),
            topic_id=topic_id,
            user_id=user_id,
            document_id=document_id,
            knowledge_base_id=knowledge_base_id,
            kind=content.kind,
            source_name=content.source_label,
            original_name=original_name,
            content_type=content_type,
            size_bytes=size_bytes,
            word_count=content.metadata.word_count,
            processing_status=PROCESSING_STATUS_COMPLETED,
            source_metadata=content.metadata_dict(),
            ingested_at=ingested_at,
            processed_at=processed_at,
        )
        self.db.add(source)
        await self._commit("creating source", {"topic_id": topic_id, "knowledge_base_id": knowledge_base_id})
        logger.info(f"Recorded {content.kind} source {source.id} ({source.word_count} words) in topic {topic_id}")
        return source

    async def delete_source(self, source_id: str) -> None:
        context = {"source_id": source_id}
        await self._execute(delete(Source).where(Source.id == source_id), "deleting source", context)
        await self._commit("deleting source", context)

    async def list_sources(self, topic_id: str, user_id: str) -> List[Source]:
        """Sources of a topic in ingestion order."""
        result = await self.db.execute(
            select(Source)
            .where(Source.topic_id == topic_id, Source.user_id == user_id)
            .order_by(Source.ingested_at, Source.id)
        )
        return list(result.scalars().all())

    async def get_knowledge_texts(self, sources: Sequence[Source]) -> Dict[str, str]:
        """Map source id to its knowledge base text."""
        entry_ids = {s.knowledge_base_id: s.id for s in sources if s.knowledge_base_id}
        if not entry_ids:
            return {}
        result = await self.db.execute(
            select(KnowledgeBaseEntry.id, KnowledgeBaseEntry.text).where(KnowledgeBaseEntry.id.in_(list(entry_ids)))
        )
        return {entry_ids[entry_id]: text for entry_id, text in result.all()}

    # Generations and generated items

    async def create_generation(
        self,
        topic_id: str,
        user_id: str,
        generation_type: str,
        source_ids: List[str],
        ai_model: Optional[str] = None,
    ) -> Generation:
        generation = Generation(
            id=str(uuid4()),
            topic_id=topic_id,
            user_id=user_id,
            generation_type=generation_type,
            ai_model=ai_model,
            source_ids=list(source_ids),
            status=GENERATION_STATUS_PROCESSING,
            items_generated=0,
            breakdown={},
            started_at=datetime.now(UTC),
            items=[],
        )
        self.db.add(generation)
        await self._commit("creating generation", {"topic_id": topic_id})
        logger.info(f"Started {generation_type} generation {generation.id} over {len(source_ids)} source(s)")
        return generation

    async def _verify_attribution(self, generation: Generation, source_ids: Iterable[str]) -> None:
        requested = set(source_ids)
        outside = requested - set(generation.source_ids or [])
        if outside:
            raise PersistenceError(
                f"Attribution to sources outside the generation: {sorted(outside)}",
                {"generation_id": generation.id},
            )
        if not requested:
            return
        result = await self.db.execute(select(Source.id).where(Source.id.in_(list(requested))))
        missing = requested - set(result.scalars().all())
        if missing:
            raise PersistenceError(
                f"Attribution to sources that no longer exist: {sorted(missing)}",
                {"generation_id": generation.id},
            )

    async def add_generated_items(
        self,
        generation: Generation,
        items: Sequence[StudyItem],
        derived_from_sources: List[str],
    ) -> List[Question]:
        """Persist items as Questions with their GenerationItem attribution.

        All items of one generation are committed together.

        Args:
            generation: The owning, still-processing Generation
            items: Validated study items
            derived_from_sources: Source ids every item is attributed to

        Returns:
            The created Question rows, in item order
        """
        if generation.is_terminal:
            raise GenerationStateError(
                f"Generation is already {generation.status}", {"generation_id": generation.id}
            )
        await self._verify_attribution(generation, derived_from_sources)

        questions = []
        for item in items:
            question = Question(
                id=str(uuid4()),
                topic_id=generation.topic_id,
                user_id=generation.user_id,
                item_type=item.item_type,
                payload=item.to_payload(),
                is_saved=False,
                generation_id=generation.id,
                source_attribution=list(derived_from_sources),
            )
            generation_item = GenerationItem(
                id=str(uuid4()),
                generation_id=generation.id,
                question_id=question.id,
                item_type=item.item_type,
                item_title=item.title,
                difficulty=item.item_difficulty,
                source_links=[GenerationItemSource(source_id=source_id) for source_id in derived_from_sources],
            )
            self.db.add(question)
            self.db.add(generation_item)
            questions.append(question)

        await self._commit("saving generated items", {"generation_id": generation.id})
        logger.info(f"Saved {len(questions)} items for generation {generation.id}")
        return questions

    async def finalize_generation(
        self,
        generation: Generation,
        status: str,
        items_generated: int = 0,
        breakdown: Optional[Dict[str, int]] = None,
        error_message: Optional[str] = None,
    ) -> Generation:
        """Move a Generation from processing to a terminal status, exactly once.

        Raises:
            GenerationStateError: if the Generation already left ``processing``
        """
        if status not in TERMINAL_GENERATION_STATUSES:
            raise ValueError(f"Not a terminal status: {status}")

        # A rollback in the workflow expires the instance; reload before reading it
        try:
            await self.db.refresh(generation)
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise PersistenceError(f"Database error while loading generation: {e}") from e

        completed_at = datetime.now(UTC)
        started_at = generation.started_at
        if started_at.tzinfo is None:
            started_at = started_at.replace(tzinfo=UTC)
        processing_time_ms = max(int((completed_at - started_at).total_seconds() * 1000), 0)

        try:
            result = await self.db.execute(
                update(Generation)
                .where(Generation.id == generation.id, Generation.status == GENERATION_STATUS_PROCESSING)
                .values(
                    status=status,
                    items_generated=items_generated,
                    breakdown=breakdown or {},
                    error_message=error_message,
                    completed_at=completed_at,
                    processing_time_ms=processing_time_ms,
                )
                .execution_options(synchronize_session=False)
            )
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Error finalizing generation {generation.id}: {str(e)}")
            raise PersistenceError(f"Database error while finalizing generation: {e}",
                                   {"generation_id": generation.id}) from e

        if result.rowcount == 0:
            await self.db.rollback()
            await self.db.refresh(generation)
            raise GenerationStateError("Generation already reached a terminal status",
                                       {"generation_id": generation.id})

        await self._commit("finalizing generation", {"generation_id": generation.id})
        await self.db.refresh(generation)
        logger.info(
            f"Generation {generation.id} {status}: {items_generated} items in {processing_time_ms}ms"
            + (f" ({error_message})" if error_message else "")
        )
        return generation

    async def list_generations(self, topic_id: str, user_id: str) -> List[Generation]:
        """Generations of a topic, newest first, with items and attribution loaded."""
        result = await self.db.execute(
            select(Generation)
            .where(Generation.topic_id == topic_id, Generation.user_id == user_id)
            .options(selectinload(Generation.items).selectinload(GenerationItem.source_links))
            .order_by(Generation.started_at.desc())
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def count_items_for_source(self, source_id: str) -> int:
        """Number of GenerationItems whose derived sources contain ``source_id``."""
        result = await self.db.execute(
            select(func.count()).select_from(GenerationItemSource).where(GenerationItemSource.source_id == source_id)
        )
        return int(result.scalar_one())

    # Question pool

    async def list_questions(self, topic_id: str, user_id: str, saved_only: bool = False) -> List[Question]:
        query = select(Question).where(Question.topic_id == topic_id, Question.user_id == user_id)
        if saved_only:
            query = query.where(Question.is_saved.is_(True))
        result = await self.db.execute(query.order_by(Question.created_at, Question.id))
        return list(result.scalars().all())

    async def count_questions(self, topic_id: str, user_id: str) -> int:
        result = await self.db.execute(
            select(func.count()).select_from(Question).where(Question.topic_id == topic_id, Question.user_id == user_id)
        )
        return int(result.scalar_one())

    async def set_question_saved(self, question_id: str, user_id: str, saved: bool = True) -> Question:
        result = await self.db.execute(
            select(Question).where(Question.id == question_id, Question.user_id == user_id)
        )
        question = result.scalars().first()
        if question is None:
            raise NotFoundError("Question not found", {"question_id": question_id})
        question.is_saved = saved
        await self._commit("saving question", {"question_id": question_id})
        return question
