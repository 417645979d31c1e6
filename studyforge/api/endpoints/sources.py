"""Source ingestion and document management endpoints."""

import logging
from typing import List

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile

from studyforge.api.deps import get_current_user_or_mock, get_history_reporter, get_ingestion_service
from studyforge.core.config import settings
from studyforge.core.constants import DEFAULT_USER
from studyforge.schemas.history import SourceStats
from studyforge.schemas.raw_input import FileInput
from studyforge.schemas.source import (
    BatchIngestionResult,
    DocumentUpdate,
    SourceRead,
    TextSourceCreate,
    UrlSourceCreate,
)
from studyforge.services.history.reporter import HistoryReporter
from studyforge.services.ingestion.service import IngestionService

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/topics/{topic_id}/sources/files", response_model=BatchIngestionResult)
async def upload_files(
    topic_id: str,
    files: List[UploadFile] = File(...),
    current_user: dict = Depends(get_current_user_or_mock),
    service: IngestionService = Depends(get_ingestion_service),
):
    """
    Upload one or more files into a topic.

    Files are processed one at a time in the order given; a failing file is
    reported in the result without stopping the rest.
    """
    user_id = current_user.get("id", DEFAULT_USER["id"])

    inputs = []
    for upload in files:
        data = await upload.read()
        if len(data) > settings.MAX_UPLOAD_BYTES:
            raise HTTPException(
                status_code=413,
                detail=f"File too large: {upload.filename} is {len(data)} bytes (max: {settings.MAX_UPLOAD_BYTES} bytes)",
            )
        inputs.append(FileInput(filename=upload.filename or "upload", content_type=upload.content_type, data=data))

    logger.info(f"Received {len(inputs)} file(s) for topic {topic_id}")
    return await service.ingest_files(topic_id, user_id, inputs)


@router.post("/topics/{topic_id}/sources/text", response_model=SourceRead, status_code=201)
async def add_text_source(
    topic_id: str,
    request: TextSourceCreate,
    current_user: dict = Depends(get_current_user_or_mock),
    service: IngestionService = Depends(get_ingestion_service),
):
    user_id = current_user.get("id", DEFAULT_USER["id"])
    return await service.ingest_text(topic_id, user_id, request.text, request.title)


@router.post("/topics/{topic_id}/sources/url", response_model=SourceRead, status_code=201)
async def add_url_source(
    topic_id: str,
    request: UrlSourceCreate,
    current_user: dict = Depends(get_current_user_or_mock),
    service: IngestionService = Depends(get_ingestion_service),
):
    """Ingest a web page or, for video links, the video's transcript."""
    user_id = current_user.get("id", DEFAULT_USER["id"])
    return await service.ingest_url(topic_id, user_id, request.url)


@router.get("/topics/{topic_id}/sources", response_model=List[SourceStats])
async def list_sources(
    topic_id: str,
    current_user: dict = Depends(get_current_user_or_mock),
    reporter: HistoryReporter = Depends(get_history_reporter),
):
    user_id = current_user.get("id", DEFAULT_USER["id"])
    await reporter.store.get_topic(topic_id, user_id)
    return await reporter.sources_with_stats(topic_id, user_id)


@router.patch("/documents/{document_id}")
async def rename_document(
    document_id: str,
    request: DocumentUpdate,
    current_user: dict = Depends(get_current_user_or_mock),
    service: IngestionService = Depends(get_ingestion_service),
):
    user_id = current_user.get("id", DEFAULT_USER["id"])
    document = await service.rename_document(document_id, user_id, request.filename)
    return document.to_dict()


@router.delete("/documents/{document_id}", status_code=204)
async def delete_document(
    document_id: str,
    current_user: dict = Depends(get_current_user_or_mock),
    service: IngestionService = Depends(get_ingestion_service),
):
    user_id = current_user.get("id", DEFAULT_USER["id"])
    await service.delete_document(document_id, user_id)
