from fastapi import APIRouter

from studyforge.api.endpoints import generations, health, questions, sources, topics

api_router = APIRouter()

api_router.include_router(health.router, prefix="/health", tags=["health"])
api_router.include_router(topics.router, prefix="/topics", tags=["topics"])
api_router.include_router(generations.router, prefix="/topics", tags=["generations"])
api_router.include_router(sources.router, tags=["sources"])
api_router.include_router(questions.router, tags=["questions"])
