"""Read-only history and attribution reports for a topic."""

from datetime import datetime, UTC
import logging
from typing import List

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from studyforge.db.models import Generation, Source
from studyforge.schemas.history import (
    GenerationItemRead,
    GenerationRecord,
    HistoryEntry,
    SourceStats,
    TopicReport,
    TopicSummary,
)
from studyforge.services.provenance.store import ProvenanceStore

logger = logging.getLogger(__name__)


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes
    return value.replace(tzinfo=UTC) if value.tzinfo is None else value


class HistoryReporter:
    """Builds timelines and per-source attribution counts.

    Generations still in ``processing`` are reported as they are.
    """

    def __init__(self, db_session: AsyncSession):
        self.db = db_session
        self.store = ProvenanceStore(db_session)

    async def topic_history(self, topic_id: str, principal_id: str) -> List[HistoryEntry]:
        """Merged timeline of Sources and Generations, newest first.

        Args:
            topic_id: Topic to report on
            principal_id: Owner of the topic

        Returns:
            HistoryEntry list sorted by timestamp descending
        """
        sources = await self.store.list_sources(topic_id, principal_id)
        generations = await self.store.list_generations(topic_id, principal_id)

        entries = [self._source_entry(source) for source in sources]
        entries.extend(self._generation_entry(generation) for generation in generations)
        entries.sort(key=lambda entry: entry.timestamp, reverse=True)
        return entries

    @staticmethod
    def _source_entry(source: Source) -> HistoryEntry:
        return HistoryEntry(
            entry_type="source",
            id=source.id,
            title=source.source_name,
            timestamp=_as_utc(source.ingested_at),
            status=source.processing_status,
            details={
                "kind": source.kind,
                "word_count": source.word_count,
                "original_name": source.original_name,
            },
        )

    @staticmethod
    def _generation_entry(generation: Generation) -> HistoryEntry:
        timestamp = generation.completed_at or generation.started_at
        return HistoryEntry(
            entry_type="generation",
            id=generation.id,
            title=f"{generation.generation_type.replace('-', ' ').title()} generation",
            timestamp=_as_utc(timestamp),
            status=generation.status,
            details={
                "items_generated": generation.items_generated,
                "breakdown": dict(generation.breakdown or {}),
                "source_ids": list(generation.source_ids or []),
                "error_message": generation.error_message,
            },
        )

    async def sources_with_stats(self, topic_id: str, principal_id: str) -> List[SourceStats]:
        """Each Source with the number of generated items derived from it.

        A count that cannot be computed is reported as None with the error;
        the other sources are still reported. The failed statement is rolled
        back so the session stays usable, which expires the loaded Sources, so
        their fields are copied out before any count runs.
        """
        sources = await self.store.list_sources(topic_id, principal_id)
        stats = [
            SourceStats(
                id=source.id,
                kind=source.kind,
                source_name=source.source_name,
                word_count=source.word_count or 0,
                processing_status=source.processing_status,
                ingested_at=_as_utc(source.ingested_at),
                document_id=source.document_id,
                metadata=dict(source.source_metadata or {}),
            )
            for source in sources
        ]
        for entry in stats:
            try:
                entry.generated_items_count = await self.store.count_items_for_source(entry.id)
            except SQLAlchemyError as e:
                await self.db.rollback()
                logger.error(f"Error counting generated items for source {entry.id}: {str(e)}")
                entry.generated_items_count = None
                entry.error = f"Could not count generated items: {e}"
        return stats

    async def generation_history(self, topic_id: str, principal_id: str) -> List[GenerationRecord]:
        generations = await self.store.list_generations(topic_id, principal_id)
        return [
            GenerationRecord(
                id=generation.id,
                generation_type=generation.generation_type,
                status=generation.status,
                source_ids=list(generation.source_ids or []),
                items_generated=generation.items_generated or 0,
                breakdown=dict(generation.breakdown or {}),
                ai_model=generation.ai_model,
                started_at=_as_utc(generation.started_at),
                completed_at=_as_utc(generation.completed_at) if generation.completed_at else None,
                processing_time_ms=generation.processing_time_ms,
                error_message=generation.error_message,
                items=[
                    GenerationItemRead(
                        id=item.id,
                        question_id=item.question_id,
                        item_type=item.item_type,
                        item_title=item.item_title,
                        difficulty=item.difficulty,
                        derived_from_sources=item.derived_from_sources,
                    )
                    for item in generation.items
                ],
            )
            for generation in generations
        ]

    async def topic_report(self, topic_id: str, principal_id: str) -> TopicReport:
        """Summary totals, timeline, sources and generations for one topic."""
        await self.store.get_topic(topic_id, principal_id)
        timeline = await self.topic_history(topic_id, principal_id)
        sources = await self.sources_with_stats(topic_id, principal_id)
        generations = await self.generation_history(topic_id, principal_id)

        summary = TopicSummary(
            total_sources=len(sources),
            total_generations=len(generations),
            total_words=sum(source.word_count for source in sources),
            total_generated_items=sum(source.generated_items_count or 0 for source in sources),
        )
        return TopicReport(
            topic_id=topic_id, summary=summary, timeline=timeline, sources=sources, generations=generations
        )
