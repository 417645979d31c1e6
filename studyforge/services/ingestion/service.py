"""Ingestion service: extraction, blob upload and provenance records with compensation."""

import asyncio
import logging
from datetime import datetime, UTC
from typing import Awaitable, Callable, Dict, List, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from studyforge.core.errors import StudyForgeError
from studyforge.db.models import Document, Source
from studyforge.schemas.extracted_content import ExtractedContent
from studyforge.schemas.raw_input import FileInput, RawInput, TextInput, UrlInput
from studyforge.schemas.source import BatchIngestionResult, FileIngestionOutcome, SourceRead
from studyforge.services.extraction import ExtractionCoordinator, ExtractionSession
from studyforge.services.provenance.store import ProvenanceStore
from studyforge.services.storage.blob_store import BlobStore, LocalBlobStore, build_blob_path

logger = logging.getLogger(__name__)

Compensation = Tuple[str, Callable[[], Awaitable[None]]]


class IngestionService:
    """Service for ingesting content into a topic.

    One call produces exactly one Source. The steps are extraction, blob
    upload (files only), Document, knowledge base entry and Source. Each
    persisted step commits on its own; when a later step fails the earlier ones
    are undone in reverse order.
    """

    def __init__(
        self,
        db_session: AsyncSession,
        blob_store: Optional[BlobStore] = None,
        coordinator: Optional[ExtractionCoordinator] = None,
        session_factory: Callable[[], ExtractionSession] = ExtractionSession,
    ):
        """Initialize the ingestion service.

        Args:
            db_session: SQLAlchemy async session
            blob_store: Where uploaded files are kept
            coordinator: Extraction coordinator
            session_factory: Builds the engine scope for each workflow
        """
        self.db = db_session
        self.store = ProvenanceStore(db_session)
        self.blob_store = blob_store or LocalBlobStore()
        self.coordinator = coordinator or ExtractionCoordinator()
        self.session_factory = session_factory

    async def ingest(self, topic_id: str, principal_id: str, raw: RawInput) -> Source:
        """Ingest one input and record it as a Source.

        Args:
            topic_id: Target topic
            principal_id: Owner of the topic
            raw: File, URL or pasted text

        Returns:
            The created Source with ``processing_status`` completed

        Raises:
            ExtractionError: extraction failed; nothing was persisted
            UploadError: blob upload failed; nothing was persisted
            PersistenceError: a record could not be written; earlier steps were undone
        """
        ingested_at = datetime.now(UTC)
        await self.store.get_topic(topic_id, principal_id)

        async with self.session_factory() as extraction_session:
            content = await self.coordinator.extract(raw, extraction_session)

        compensations: List[Compensation] = []
        context = {"topic_id": topic_id, "source": content.source_label}
        try:
            storage_path = None
            if isinstance(raw, FileInput):
                storage_path = build_blob_path(topic_id, principal_id, raw.filename)
                await self.blob_store.put(storage_path, raw.data, raw.content_type)
                compensations.append(("blob", lambda: self.blob_store.delete(storage_path)))

            # Ids are captured as plain values; a failed commit expires the instances
            document = await self._create_document(topic_id, principal_id, raw, content, storage_path)
            document_id, content_type, size_bytes = document.id, document.content_type, document.size_bytes
            compensations.append(("document", lambda: self.store.delete_document(document_id)))

            entry = await self.store.create_knowledge_entry(topic_id, principal_id, content, document_id)
            entry_id = entry.id
            compensations.append(("knowledge base entry", lambda: self.store.delete_knowledge_entry(entry_id)))

            source = await self.store.create_source(
                topic_id,
                principal_id,
                content,
                knowledge_base_id=entry_id,
                ingested_at=ingested_at,
                document_id=document_id,
                original_name=self._original_name(raw),
                content_type=content_type,
                size_bytes=size_bytes,
            )
        except BaseException as e:
            logger.error(f"Ingestion of '{content.source_label}' into topic {topic_id} failed: {e}")
            await asyncio.shield(self._compensate(compensations, context))
            raise

        logger.info(f"Ingested {content.kind} '{content.source_label}' as source {source.id} in topic {topic_id}")
        return source

    async def _create_document(
        self,
        topic_id: str,
        principal_id: str,
        raw: RawInput,
        content: ExtractedContent,
        storage_path: Optional[str],
    ) -> Document:
        if isinstance(raw, FileInput):
            content_type = raw.content_type or "application/octet-stream"
            size_bytes = raw.size_bytes
        elif isinstance(raw, UrlInput):
            content_type = "text/html"
            size_bytes = len(content.text.encode("utf-8"))
        else:
            content_type = "text/plain"
            size_bytes = len(raw.text.encode("utf-8"))
        return await self.store.create_document(
            topic_id,
            principal_id,
            filename=content.source_label,
            storage_path=storage_path,
            content_type=content_type,
            size_bytes=size_bytes,
            metadata=content.metadata_dict(),
        )

    @staticmethod
    def _original_name(raw: RawInput) -> Optional[str]:
        if isinstance(raw, FileInput):
            return raw.filename
        if isinstance(raw, UrlInput):
            return raw.url
        return raw.title

    async def _compensate(self, compensations: List[Compensation], context: Dict[str, str]) -> None:
        """Undo completed steps in reverse order; failures are logged, never raised."""
        for label, undo in reversed(compensations):
            try:
                await undo()
                logger.info(f"Compensated {label} for {context}")
            except Exception as e:
                logger.error(f"Failed to compensate {label} for {context}: {e}")

    async def ingest_file(
        self, topic_id: str, principal_id: str, filename: str, data: bytes, content_type: Optional[str] = None
    ) -> Source:
        return await self.ingest(
            topic_id, principal_id, FileInput(filename=filename, content_type=content_type, data=data)
        )

    async def ingest_text(self, topic_id: str, principal_id: str, text: str, title: Optional[str] = None) -> Source:
        """Ingest pasted text as a direct-text source."""
        return await self.ingest(topic_id, principal_id, TextInput(text=text, title=title, direct=True))

    async def ingest_url(self, topic_id: str, principal_id: str, url: str) -> Source:
        """Ingest a web page or a video transcript, chosen by the URL's shape."""
        return await self.ingest(topic_id, principal_id, UrlInput(url=url))

    async def ingest_files(self, topic_id: str, principal_id: str, files: List[FileInput]) -> BatchIngestionResult:
        """Ingest several files strictly one at a time, in the order given.

        A failing file is reported in the result and does not stop the batch.
        """
        logger.info(f"Processing {len(files)} files for topic {topic_id}")
        result = BatchIngestionResult()
        for index, file in enumerate(files):
            logger.info(f"Processing file {index + 1}/{len(files)}: {file.filename}")
            try:
                source = await self.ingest(topic_id, principal_id, file)
            except StudyForgeError as e:
                logger.error(f"Error processing file {file.filename}: {e}")
                result.results.append(FileIngestionOutcome(filename=file.filename, success=False, error=e.message))
                continue
            result.results.append(
                FileIngestionOutcome(filename=file.filename, success=True, source=SourceRead.model_validate(source))
            )
        logger.info(f"Batch for topic {topic_id}: {result.succeeded} succeeded, {result.failed} failed")
        return result

    async def rename_document(self, document_id: str, principal_id: str, filename: str) -> Document:
        return await self.store.rename_document(document_id, principal_id, filename)

    async def delete_document(self, document_id: str, principal_id: str) -> None:
        """Delete a Document, its knowledge base entry, its Source and its blob.

        A blob that cannot be removed is logged and left behind.
        """
        document = await self.store.get_document(document_id, principal_id)
        storage_path = document.storage_path
        await self.store.delete_document(document_id)
        if storage_path:
            try:
                await self.blob_store.delete(storage_path)
            except OSError as e:
                logger.error(f"Failed to delete blob {storage_path} for document {document_id}: {e}")
