"""Topic endpoints."""

import logging
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from studyforge.api.deps import get_current_user_or_mock, get_db, get_history_reporter
from studyforge.core.constants import DEFAULT_USER
from studyforge.schemas.history import TopicReport
from studyforge.schemas.source import TopicCreate, TopicRead
from studyforge.services.history.reporter import HistoryReporter
from studyforge.services.provenance.store import ProvenanceStore

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("", response_model=TopicRead, status_code=201)
async def create_topic(
    request: TopicCreate,
    current_user: dict = Depends(get_current_user_or_mock),
    db: AsyncSession = Depends(get_db),
):
    user_id = current_user.get("id", DEFAULT_USER["id"])
    return await ProvenanceStore(db).create_topic(user_id, request.name)


@router.get("", response_model=List[TopicRead])
async def list_topics(
    current_user: dict = Depends(get_current_user_or_mock),
    db: AsyncSession = Depends(get_db),
):
    user_id = current_user.get("id", DEFAULT_USER["id"])
    return await ProvenanceStore(db).list_topics(user_id)


@router.get("/{topic_id}/history", response_model=TopicReport)
async def topic_history(
    topic_id: str,
    current_user: dict = Depends(get_current_user_or_mock),
    reporter: HistoryReporter = Depends(get_history_reporter),
):
    """Complete history of sources and generations for a topic."""
    user_id = current_user.get("id", DEFAULT_USER["id"])
    return await reporter.topic_report(topic_id, user_id)
