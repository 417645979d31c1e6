"""Question pool endpoints."""

from typing import Any, Dict, List

from fastapi import APIRouter, Depends, Query

from studyforge.api.deps import get_current_user_or_mock, get_generation_service
from studyforge.core.constants import DEFAULT_USER
from studyforge.services.generation import GenerationService

router = APIRouter()


@router.get("/topics/{topic_id}/questions")
async def list_questions(
    topic_id: str,
    saved_only: bool = Query(False, description="Only return saved questions"),
    current_user: dict = Depends(get_current_user_or_mock),
    service: GenerationService = Depends(get_generation_service),
) -> List[Dict[str, Any]]:
    user_id = current_user.get("id", DEFAULT_USER["id"])
    questions = await service.list_questions(topic_id, user_id, saved_only=saved_only)
    return [question.to_dict() for question in questions]


@router.post("/questions/{question_id}/save")
async def save_question(
    question_id: str,
    current_user: dict = Depends(get_current_user_or_mock),
    service: GenerationService = Depends(get_generation_service),
) -> Dict[str, Any]:
    user_id = current_user.get("id", DEFAULT_USER["id"])
    question = await service.save_question(question_id, user_id)
    return question.to_dict()
