import asyncio
from unittest.mock import AsyncMock

import pytest
from sqlalchemy import func, select

from studyforge.core.errors import ExtractionError, NotFoundError, PersistenceError, UnsupportedFormatError, UploadError
from studyforge.db.models import Document, KnowledgeBaseEntry, Source
from studyforge.schemas.raw_input import FileInput


async def count_rows(db_session, model):
    result = await db_session.execute(select(func.count()).select_from(model))
    return result.scalar_one()


def stored_files(tmp_path):
    root = tmp_path / "blobs"
    if not root.exists():
        return []
    return [path for path in root.rglob("*") if path.is_file()]


async def test_ingest_text_file(ingestion_service, topic, principal_id, store, blob_store):
    source = await ingestion_service.ingest_file(
        topic.id, principal_id, "notes.txt", b"Hello world, this is a test.", "text/plain"
    )

    assert source.processing_status == "completed"
    assert source.word_count == 6
    assert source.kind == "document"
    assert source.original_name == "notes.txt"
    assert source.processed_at >= source.ingested_at

    document = await store.get_document(source.document_id, principal_id)
    assert document.storage_path.startswith(f"{topic.id}/{principal_id}/")
    assert document.storage_path.endswith("_notes.txt")
    assert await blob_store.exists(document.storage_path)

    texts = await store.get_knowledge_texts([source])
    assert texts[source.id] == "Hello world, this is a test."


async def test_pasted_text_word_count_is_the_users_words(ingestion_service, topic, principal_id):
    source = await ingestion_service.ingest_text(topic.id, principal_id, "Hello world, this is a test.")

    assert source.word_count == 6
    assert source.source_metadata["word_count"] == 6


async def test_ingest_pasted_text_has_no_blob(ingestion_service, topic, principal_id, store, tmp_path):
    source = await ingestion_service.ingest_text(topic.id, principal_id, "Enzymes are biological catalysts.", "Enzymes")

    assert source.kind == "direct-text"
    assert source.source_name == "Enzymes"
    document = await store.get_document(source.document_id, principal_id)
    assert document.storage_path is None
    assert stored_files(tmp_path) == []


async def test_unreachable_video_still_creates_source(ingestion_service, topic, principal_id):
    source = await ingestion_service.ingest_url(topic.id, principal_id, "https://www.youtube.com/watch?v=dQw4w9WgXcQ")

    assert source.processing_status == "completed"
    assert source.kind == "video"
    assert source.source_metadata["has_transcript"] is False
    assert source.source_metadata["failed"] is True


async def test_extraction_failure_persists_nothing(ingestion_service, topic, principal_id, db_session, tmp_path):
    with pytest.raises(ExtractionError):
        await ingestion_service.ingest_text(topic.id, principal_id, "short")

    assert await count_rows(db_session, Document) == 0
    assert await count_rows(db_session, Source) == 0
    assert stored_files(tmp_path) == []


async def test_legacy_format_is_rejected(ingestion_service, topic, principal_id, db_session):
    with pytest.raises(UnsupportedFormatError):
        await ingestion_service.ingest_file(topic.id, principal_id, "old.doc", b"\xd0\xcf\x11\xe0", "application/msword")

    assert await count_rows(db_session, Document) == 0


async def test_unknown_topic(ingestion_service, principal_id):
    with pytest.raises(NotFoundError):
        await ingestion_service.ingest_text("missing-topic", principal_id, "Some perfectly fine text.")


async def test_upload_failure_persists_nothing(ingestion_service, topic, principal_id, db_session):
    ingestion_service.blob_store.put = AsyncMock(side_effect=UploadError("bucket unavailable"))

    with pytest.raises(UploadError):
        await ingestion_service.ingest_file(topic.id, principal_id, "notes.txt", b"Some notes on cells.", "text/plain")

    assert await count_rows(db_session, Document) == 0
    assert await count_rows(db_session, KnowledgeBaseEntry) == 0


async def test_document_failure_removes_uploaded_blob(ingestion_service, topic, principal_id, blob_store, tmp_path):
    put_spy = AsyncMock(wraps=blob_store.put)
    ingestion_service.blob_store.put = put_spy
    ingestion_service.store.create_document = AsyncMock(side_effect=PersistenceError("insert failed"))

    with pytest.raises(PersistenceError):
        await ingestion_service.ingest_file(topic.id, principal_id, "notes.txt", b"Some notes on cells.", "text/plain")

    blob_path = put_spy.call_args.args[0]
    assert await blob_store.resolve_signed_url(blob_path) is None
    assert stored_files(tmp_path) == []


async def test_source_failure_compensates_in_reverse(ingestion_service, topic, principal_id, db_session, tmp_path):
    ingestion_service.store.create_source = AsyncMock(side_effect=PersistenceError("constraint violated"))

    with pytest.raises(PersistenceError, match="constraint violated"):
        await ingestion_service.ingest_file(topic.id, principal_id, "notes.txt", b"Some notes on cells.", "text/plain")

    assert await count_rows(db_session, KnowledgeBaseEntry) == 0
    assert await count_rows(db_session, Document) == 0
    assert await count_rows(db_session, Source) == 0
    assert stored_files(tmp_path) == []


async def test_failed_compensation_does_not_mask_original_error(ingestion_service, topic, principal_id, caplog):
    ingestion_service.store.create_source = AsyncMock(side_effect=PersistenceError("constraint violated"))
    ingestion_service.store.delete_knowledge_entry = AsyncMock(side_effect=PersistenceError("delete failed"))

    with pytest.raises(PersistenceError, match="constraint violated"):
        await ingestion_service.ingest_text(topic.id, principal_id, "Ribosomes build proteins.")

    assert "Failed to compensate knowledge base entry" in caplog.text


async def test_cancelled_ingestion_still_compensates(ingestion_service, topic, principal_id, db_session):
    ingestion_service.store.create_source = AsyncMock(side_effect=asyncio.CancelledError())

    with pytest.raises(asyncio.CancelledError):
        await ingestion_service.ingest_text(topic.id, principal_id, "Ribosomes build proteins.")

    assert await count_rows(db_session, Document) == 0
    assert await count_rows(db_session, KnowledgeBaseEntry) == 0


async def test_batch_processes_files_in_order(ingestion_service, topic, principal_id, store):
    files = [
        FileInput(filename="first.txt", content_type="text/plain", data=b"The first file about cells."),
        FileInput(filename="legacy.ppt", content_type=None, data=b"\xd0\xcf"),
        FileInput(filename="third.csv", content_type="text/csv", data=b"organelle,function\nnucleus,storage\n"),
    ]

    result = await ingestion_service.ingest_files(topic.id, principal_id, files)

    assert [outcome.filename for outcome in result.results] == ["first.txt", "legacy.ppt", "third.csv"]
    assert [outcome.success for outcome in result.results] == [True, False, True]
    assert "PPTX" in result.results[1].error
    assert result.succeeded == 2
    assert result.failed == 1

    sources = await store.list_sources(topic.id, principal_id)
    assert [source.source_name for source in sources] == ["first.txt", "third.csv"]


async def test_rename_document_updates_source_name(ingestion_service, topic, principal_id, db_session):
    source = await ingestion_service.ingest_text(topic.id, principal_id, "Mitosis has four phases.", "Mitosis")

    document = await ingestion_service.rename_document(source.document_id, principal_id, "Cell division")

    assert document.filename == "Cell division"
    result = await db_session.execute(select(Source.source_name).where(Source.id == source.id))
    assert result.scalar_one() == "Cell division"


async def test_delete_document_removes_records_and_blob(ingestion_service, topic, principal_id, db_session, tmp_path):
    source = await ingestion_service.ingest_file(topic.id, principal_id, "notes.txt", b"Notes on the cell cycle.")

    await ingestion_service.delete_document(source.document_id, principal_id)

    assert await count_rows(db_session, Source) == 0
    assert await count_rows(db_session, KnowledgeBaseEntry) == 0
    assert await count_rows(db_session, Document) == 0
    assert stored_files(tmp_path) == []
