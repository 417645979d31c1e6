from collections.abc import AsyncGenerator
from typing import Annotated, Optional

from fastapi import HTTPException, Security, status, Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import jwt
from jose.exceptions import JWTError
from sqlalchemy.ext.asyncio import AsyncSession
import logging

from studyforge.core.config import settings
from studyforge.core.constants import DEFAULT_USER
from studyforge.db.session import AsyncSessionLocal
from studyforge.services.generation import GenerationService
from studyforge.services.history.reporter import HistoryReporter
from studyforge.services.ingestion.service import IngestionService
from studyforge.services.storage.blob_store import BlobStore, LocalBlobStore

logger = logging.getLogger(__name__)

security = HTTPBearer()
# Optional security scheme that doesn't raise an error for missing credentials
optional_security = HTTPBearer(auto_error=False)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Dependency for getting async database session."""
    async with AsyncSessionLocal() as session:
        yield session


async def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials, Security(security)],
) -> dict:
    """Get the current authenticated user from a bearer token."""
    try:
        # Development only: the signature is not verified
        payload = jwt.decode(
            credentials.credentials,
            "",
            algorithms=settings.AUTH_ALGORITHMS,
            options={"verify_signature": False},
        )
        user_id = payload.get("sub")
        if not user_id:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid authentication credentials",
            )
        return {"id": user_id}
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication credentials",
        )


async def get_current_user_or_mock(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(optional_security),
) -> dict:
    """Get the current authenticated user or the development user.

    Args:
        credentials: Optional HTTP auth credentials

    Returns:
        User dict with ID
    """
    if credentials:
        try:
            return await get_current_user(credentials)
        except HTTPException:
            logger.warning("Authentication failed, using mock user")
            return DEFAULT_USER

    logger.warning("No authentication provided, using mock user")
    return DEFAULT_USER


def get_blob_store() -> BlobStore:
    return LocalBlobStore()


def get_ingestion_service(
    db: AsyncSession = Depends(get_db),
    blob_store: BlobStore = Depends(get_blob_store),
) -> IngestionService:
    return IngestionService(db, blob_store=blob_store)


def get_generation_service(db: AsyncSession = Depends(get_db)) -> GenerationService:
    return GenerationService(db)


def get_history_reporter(db: AsyncSession = Depends(get_db)) -> HistoryReporter:
    return HistoryReporter(db)
