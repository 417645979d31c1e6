"""Blob storage for uploaded source files.

Blobs are addressed by ``{topic_id}/{principal_id}/{timestamp_ms}_{name}``.
Read access is handed out as short-lived signed URLs whose token is an HS256
JWT carrying the blob path.
"""

import abc
import logging
import os
import re
import time
from datetime import datetime, timedelta, timezone
from typing import Optional

import aiofiles
import aiofiles.os
from jose import JWTError, jwt

from studyforge.core.config import settings
from studyforge.core.errors import UploadError
from studyforge.services.common.retry import RetryConfig, retry_async

logger = logging.getLogger(__name__)

SIGNING_ALGORITHM = "HS256"

_UNSAFE_NAME_CHARS = re.compile(r"[^a-zA-Z0-9.-]")


def sanitize_filename(filename: str) -> str:
    """Replace every character outside ``[a-zA-Z0-9.-]`` with an underscore."""
    return _UNSAFE_NAME_CHARS.sub("_", filename)


def build_blob_path(topic_id: str, principal_id: str, filename: str, timestamp_ms: Optional[int] = None) -> str:
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)
    return f"{topic_id}/{principal_id}/{timestamp_ms}_{sanitize_filename(filename)}"


class BlobStore(abc.ABC):
    """Object storage boundary used by the ingestion workflow."""

    @abc.abstractmethod
    async def put(self, path: str, data: bytes, content_type: Optional[str] = None) -> str:
        """Store ``data`` at ``path`` and return the path."""

    @abc.abstractmethod
    async def delete(self, path: str) -> None:
        """Remove the blob; deleting a missing blob is not an error."""

    @abc.abstractmethod
    async def exists(self, path: str) -> bool:
        ...

    @abc.abstractmethod
    def signed_read_url(self, path: str, ttl_seconds: Optional[int] = None) -> str:
        ...

    async def resolve_signed_url(self, path: str, ttl_seconds: Optional[int] = None) -> Optional[str]:
        """Signed URL for an existing blob, or None when it is gone."""
        if not await self.exists(path):
            return None
        return self.signed_read_url(path, ttl_seconds)


def verify_signed_token(token: str, signing_key: Optional[str] = None) -> Optional[str]:
    """Return the blob path carried by a signed token, or None if invalid or expired."""
    try:
        claims = jwt.decode(token, signing_key or settings.STORAGE_SIGNING_KEY, algorithms=[SIGNING_ALGORITHM])
    except JWTError as e:
        logger.warning(f"Rejected blob token: {e}")
        return None
    return claims.get("sub")


class LocalBlobStore(BlobStore):
    """Filesystem-backed blob store."""

    def __init__(
        self,
        root: Optional[str] = None,
        public_url: Optional[str] = None,
        signing_key: Optional[str] = None,
        retry_config: Optional[RetryConfig] = None,
    ):
        self.root = os.path.abspath(root or settings.STORAGE_ROOT)
        self.public_url = (public_url or settings.STORAGE_PUBLIC_URL).rstrip("/")
        self.signing_key = signing_key or settings.STORAGE_SIGNING_KEY
        self.retry_config = retry_config or RetryConfig.from_settings(retry_exceptions=(OSError,))

    def _full_path(self, path: str) -> str:
        full_path = os.path.abspath(os.path.join(self.root, path))
        if not full_path.startswith(self.root + os.sep):
            raise UploadError("Blob path escapes storage root", {"path": path})
        return full_path

    async def put(self, path: str, data: bytes, content_type: Optional[str] = None) -> str:
        full_path = self._full_path(path)

        async def _write() -> None:
            await aiofiles.os.makedirs(os.path.dirname(full_path), exist_ok=True)
            async with aiofiles.open(full_path, "wb") as f:
                await f.write(data)

        try:
            await retry_async(_write, self.retry_config, description=f"blob upload {path}")
        except OSError as e:
            await self._remove_partial(full_path, path)
            raise UploadError(f"Failed to upload file: {e}", {"path": path}) from e

        logger.info(f"Stored blob {path} ({len(data)} bytes, {content_type or 'unknown type'})")
        return path

    async def _remove_partial(self, full_path: str, path: str) -> None:
        try:
            await aiofiles.os.remove(full_path)
            logger.warning(f"Removed partially written blob {path}")
        except FileNotFoundError:
            logger.debug(f"No partial blob left at {path}")
        except OSError as e:
            logger.error(f"Could not remove partially written blob {path}: {str(e)}")

    async def delete(self, path: str) -> None:
        full_path = self._full_path(path)
        try:
            await aiofiles.os.remove(full_path)
            logger.info(f"Deleted blob {path}")
        except FileNotFoundError:
            logger.debug(f"Blob {path} already absent")

    async def exists(self, path: str) -> bool:
        return await aiofiles.os.path.isfile(self._full_path(path))

    def signed_read_url(self, path: str, ttl_seconds: Optional[int] = None) -> str:
        ttl = ttl_seconds if ttl_seconds is not None else settings.SIGNED_URL_TTL_SECONDS
        expires = datetime.now(timezone.utc) + timedelta(seconds=ttl)
        token = jwt.encode({"sub": path, "exp": expires}, self.signing_key, algorithm=SIGNING_ALGORITHM)
        return f"{self.public_url}/{path}?token={token}"
