"""Test fixtures for the application."""

import json
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from studyforge.core.config import settings
from studyforge.db.base import Base
from studyforge.services.common.retry import RetryConfig
from studyforge.services.extraction.engines import ExtractionSession, Transcription, TranscriptUnavailable
from studyforge.services.generation import GenerationService
from studyforge.services.ingestion import IngestionService
from studyforge.services.provenance.store import ProvenanceStore
from studyforge.services.storage.blob_store import LocalBlobStore


@pytest_asyncio.fixture(scope="function")
async def db_session():
    """Create a clean database session for a test."""
    # A single shared connection keeps the in-memory database alive
    engine = create_async_engine(settings.TEST_DATABASE_URL, poolclass=StaticPool)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with async_session() as session:
        yield session
        await session.rollback()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def principal_id():
    return "test-user-id"


@pytest.fixture
def store(db_session):
    return ProvenanceStore(db_session)


@pytest_asyncio.fixture
async def topic(store, principal_id):
    return await store.create_topic(principal_id, "Cell Biology")


@pytest.fixture
def blob_store(tmp_path):
    """Filesystem blob store under the test's temporary directory, without retries."""
    return LocalBlobStore(
        root=str(tmp_path / "blobs"),
        public_url="http://testserver/blobs",
        signing_key="test-signing-key",
        retry_config=RetryConfig(max_attempts=1, retry_exceptions=(OSError,)),
    )


@pytest.fixture
def mock_ocr():
    ocr = MagicMock()
    ocr.recognize = AsyncMock(return_value="Mitochondria are the powerhouse of the cell.")
    return ocr


@pytest.fixture
def mock_speech_to_text():
    speech = MagicMock()
    speech.model = "whisper-1"
    speech.transcribe = AsyncMock(
        return_value=Transcription(
            text="Today we discuss how enzymes lower activation energy.", duration_seconds=125.0, language="en"
        )
    )
    return speech


@pytest.fixture
def mock_transcripts():
    transcripts = MagicMock()
    transcripts.fetch_transcript = AsyncMock(side_effect=TranscriptUnavailable("Subtitles are disabled for this video"))
    return transcripts


@pytest.fixture
def mock_web():
    web = MagicMock()
    web.get = AsyncMock(
        return_value=(
            "<html><head><title>Photosynthesis</title></head><body>"
            "<nav>Home | About</nav>"
            "<article>Photosynthesis converts light energy into chemical energy stored in glucose. "
            "It takes place in the chloroplasts of plant cells.</article>"
            "<script>trackVisitor();</script></body></html>"
        )
    )
    return web


@pytest.fixture
def extraction_session_factory(mock_ocr, mock_speech_to_text, mock_transcripts, mock_web):
    """Builds extraction sessions whose engines are mocks."""

    def factory():
        return ExtractionSession(
            speech_to_text=mock_speech_to_text,
            transcripts=mock_transcripts,
            web=mock_web,
            ocr_factory=lambda: mock_ocr,
        )

    return factory


@pytest.fixture
def ingestion_service(db_session, blob_store, extraction_session_factory):
    return IngestionService(db_session, blob_store=blob_store, session_factory=extraction_session_factory)


@pytest.fixture
def completion_payload():
    """A completion response with five valid items and one invalid multiple-choice item."""
    return {
        "flashcards": [
            {"type": "flashcard", "front": "What is ATP?", "back": "The cell's energy currency.", "difficulty": "easy",
             "category": "definition"},
            {"front": "Where does glycolysis occur?", "back": "In the cytoplasm.", "difficulty": "HARD"},
        ],
        "multipleChoice": [
            {"question": "Which organelle produces ATP?", "options": ["Nucleus", "Mitochondrion", "Ribosome"],
             "correctAnswer": 1, "explanation": "Oxidative phosphorylation happens there.", "difficulty": "medium"},
            {"question": "Broken question", "options": ["A", "B"], "correctAnswer": 5},
        ],
        "openEnded": [
            {"question": "Explain why cells need ATP.", "sampleAnswer": "Energy coupling...", "rubric": "Mentions coupling"},
        ],
        "summaries": [
            {"title": "Cellular respiration", "content": "Glucose is oxidized to produce ATP.",
             "keyTerms": ["ATP", "glycolysis"]},
        ],
    }


@pytest.fixture
def completion_client(completion_payload):
    client = MagicMock()
    client.model = "test-model"
    client.complete = AsyncMock(return_value=json.dumps(completion_payload))
    return client


@pytest.fixture
def generation_service(db_session, completion_client):
    return GenerationService(db_session, completion_client=completion_client)
