"""Generation endpoints."""

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends

from studyforge.api.deps import get_current_user_or_mock, get_generation_service
from studyforge.core.constants import DEFAULT_USER
from studyforge.schemas.generation import GenerateFromTextRequest, GenerateRequest
from studyforge.services.generation import GenerationService

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/{topic_id}/generations")
async def generate(
    topic_id: str,
    request: Optional[GenerateRequest] = None,
    current_user: dict = Depends(get_current_user_or_mock),
    service: GenerationService = Depends(get_generation_service),
) -> Dict[str, Any]:
    """
    Generate study items from a topic's sources.

    Without ``source_ids`` every source of the topic is used. Ids that do not
    belong to the topic are ignored.
    """
    user_id = current_user.get("id", DEFAULT_USER["id"])
    source_ids = request.source_ids if request else None
    result = await service.generate(topic_id, user_id, source_ids)
    return {**result.model_dump(), "message": result.message}


@router.post("/{topic_id}/generations/text")
async def generate_from_text(
    topic_id: str,
    request: GenerateFromTextRequest,
    current_user: dict = Depends(get_current_user_or_mock),
    service: GenerationService = Depends(get_generation_service),
) -> Dict[str, Any]:
    """Generate study items directly from pasted text; no source is stored."""
    user_id = current_user.get("id", DEFAULT_USER["id"])
    result = await service.generate_from_text(topic_id, user_id, request.text, request.title)
    return {**result.model_dump(), "message": result.message}
