import httpx
import pytest

from studyforge.api.deps import get_blob_store, get_db, get_generation_service, get_ingestion_service
from studyforge.core.config import settings
from studyforge.core.constants import DEFAULT_USER
from studyforge.core.errors import (
    CompletionTimeoutError,
    EmptyIntersectionError,
    ExtractionTimeoutError,
    GenerationStateError,
    PersistenceError,
    QuotaError,
    UnsupportedFormatError,
)
from studyforge.main import app, status_code_for

API = settings.API_PREFIX


@pytest.fixture
async def client(db_session, blob_store, ingestion_service, generation_service):
    async def override_db():
        yield db_session

    app.dependency_overrides[get_db] = override_db
    app.dependency_overrides[get_blob_store] = lambda: blob_store
    app.dependency_overrides[get_ingestion_service] = lambda: ingestion_service
    app.dependency_overrides[get_generation_service] = lambda: generation_service

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
async def topic_id(client):
    response = await client.post(f"{API}/topics", json={"name": "Genetics"})
    assert response.status_code == 201
    return response.json()["id"]


async def test_create_and_list_topics(client, topic_id):
    response = await client.get(f"{API}/topics")

    assert response.status_code == 200
    [topic] = response.json()
    assert topic["id"] == topic_id
    assert topic["user_id"] == DEFAULT_USER["id"]


async def test_upload_files_reports_each_file(client, topic_id):
    files = [
        ("files", ("genes.txt", b"Genes are segments of DNA.", "text/plain")),
        ("files", ("old.doc", b"\xd0\xcf\x11\xe0", "application/msword")),
    ]

    response = await client.post(f"{API}/topics/{topic_id}/sources/files", files=files)

    assert response.status_code == 200
    body = response.json()
    assert [result["success"] for result in body["results"]] == [True, False]
    assert body["succeeded"] == 1
    assert body["failed"] == 1
    assert "DOCX" in body["results"][1]["error"]


async def test_upload_over_the_size_limit(client, topic_id, monkeypatch):
    monkeypatch.setattr(settings, "MAX_UPLOAD_BYTES", 10)

    response = await client.post(
        f"{API}/topics/{topic_id}/sources/files",
        files=[("files", ("big.txt", b"x" * 11, "text/plain"))],
    )

    assert response.status_code == 413


async def test_generate_and_read_history(client, topic_id):
    source = await client.post(
        f"{API}/topics/{topic_id}/sources/text", json={"text": "Alleles are variants of a gene.", "title": "Alleles"}
    )
    assert source.status_code == 201

    response = await client.post(f"{API}/topics/{topic_id}/generations")

    assert response.status_code == 200
    body = response.json()
    assert body["generation_type"] == "bulk"
    assert body["items_generated"] == 5
    assert body["message"] == "Successfully generated 5 study items from 1 source(s)!"

    history = (await client.get(f"{API}/topics/{topic_id}/history")).json()
    assert history["summary"]["total_sources"] == 1
    assert history["summary"]["total_generated_items"] == 5

    questions = (await client.get(f"{API}/topics/{topic_id}/questions")).json()
    assert len(questions) == 5
    assert all(question["source_attribution"] == [source.json()["id"]] for question in questions)


async def test_generate_without_sources_is_a_client_error(client, topic_id):
    response = await client.post(f"{API}/topics/{topic_id}/generations", json={"source_ids": None})

    assert response.status_code == 400
    assert response.json()["error"] == "NoSourcesError"


async def test_unknown_topic_is_not_found(client):
    response = await client.get(f"{API}/topics/missing-topic/history")

    assert response.status_code == 404
    assert response.json()["context"] == {"topic_id": "missing-topic"}


async def test_rename_and_delete_document(client, topic_id):
    source = (
        await client.post(f"{API}/topics/{topic_id}/sources/text", json={"text": "Dominant alleles mask recessive ones."})
    ).json()

    renamed = await client.patch(f"{API}/documents/{source['document_id']}", json={"filename": "Dominance"})
    assert renamed.status_code == 200
    assert renamed.json()["filename"] == "Dominance"

    deleted = await client.delete(f"{API}/documents/{source['document_id']}")
    assert deleted.status_code == 204
    assert (await client.get(f"{API}/topics/{topic_id}/sources")).json() == []


def test_status_codes_for_errors():
    assert status_code_for(UnsupportedFormatError("DOC", "DOCX")) == 415
    assert status_code_for(ExtractionTimeoutError("slow")) == 504
    assert status_code_for(CompletionTimeoutError("slow")) == 504
    assert status_code_for(EmptyIntersectionError("none")) == 400
    assert status_code_for(QuotaError("limit")) == 429
    assert status_code_for(GenerationStateError("terminal")) == 502
    assert status_code_for(PersistenceError("db")) == 500


async def test_health_reports_database(client):
    response = await client.get(f"{API}/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
    assert response.json()["database"] == "connected"
