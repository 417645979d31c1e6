"""External engines used by extraction strategies.

Every engine call is awaitable and bounded: blocking libraries run in a worker
thread under ``asyncio.wait_for``, network clients use their own timeouts.
Engines are owned by an :class:`ExtractionSession`, which acquires them lazily
and releases them when the workflow ends.
"""

import asyncio
import io
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import httpx
import openai
import pytesseract
from openai import AsyncOpenAI
from PIL import Image, UnidentifiedImageError
from youtube_transcript_api import CouldNotRetrieveTranscript, YouTubeTranscriptApi

from studyforge.core.config import settings
from studyforge.core.errors import ExtractionError, ExtractionTimeoutError
from studyforge.services.common.retry import RetryConfig, retry_async

logger = logging.getLogger(__name__)


class OcrEngine:
    """Tesseract OCR bound to one extraction workflow."""

    def __init__(self, language: Optional[str] = None, timeout: Optional[float] = None):
        self.language = language or settings.OCR_LANGUAGE
        self.timeout = timeout if timeout is not None else settings.OCR_TIMEOUT_SECONDS
        self.closed = False

    def _recognize_sync(self, image_bytes: bytes) -> str:
        with Image.open(io.BytesIO(image_bytes)) as image:
            return pytesseract.image_to_string(image, lang=self.language)

    async def recognize(self, image_bytes: bytes) -> str:
        if self.closed:
            raise RuntimeError("OCR engine used after its session ended")
        try:
            return await asyncio.wait_for(asyncio.to_thread(self._recognize_sync, image_bytes), timeout=self.timeout)
        except asyncio.TimeoutError as e:
            raise ExtractionTimeoutError(f"OCR timed out after {self.timeout}s") from e
        except UnidentifiedImageError as e:
            raise ExtractionError(f"Failed to extract text from image: {e}") from e
        except pytesseract.TesseractError as e:
            raise ExtractionError(f"Failed to extract text from image: {e}") from e

    def close(self) -> None:
        self.closed = True
        logger.debug("OCR engine released")


@dataclass
class Transcription:
    text: str
    duration_seconds: Optional[float] = None
    language: Optional[str] = None


class SpeechToText:
    """Audio transcription through the OpenAI transcription endpoint."""

    def __init__(
        self,
        client: Optional[AsyncOpenAI] = None,
        model: Optional[str] = None,
        timeout: Optional[float] = None,
        retry_config: Optional[RetryConfig] = None,
    ):
        self.timeout = timeout if timeout is not None else settings.OPENAI_TIMEOUT_SECONDS
        self.client = client or AsyncOpenAI(api_key=settings.OPENAI_API_KEY, timeout=self.timeout)
        self.model = model or settings.TRANSCRIPTION_MODEL
        self.retry_config = retry_config or RetryConfig.from_settings(retry_exceptions=(openai.APIConnectionError,))

    async def transcribe(self, audio_bytes: bytes, filename: str, max_size_bytes: int) -> Transcription:
        """Transcribe an audio file.

        Args:
            audio_bytes: Complete audio body
            filename: Original filename, used by the service to detect the format
            max_size_bytes: Upper bound enforced before any network call

        Returns:
            Transcription with text, duration and detected language
        """
        if len(audio_bytes) > max_size_bytes:
            raise ExtractionError(
                f"Audio file is too large ({len(audio_bytes) / 1024 / 1024:.1f}MB). "
                f"Maximum size is {max_size_bytes // (1024 * 1024)}MB. Please compress the audio file and try again.",
                {"filename": filename},
            )

        async def _create() -> Any:
            return await self.client.audio.transcriptions.create(
                model=self.model,
                file=(filename, audio_bytes),
                response_format="verbose_json",
                timeout=self.timeout,
            )

        try:
            response = await retry_async(_create, self.retry_config, description=f"transcription of {filename}")
        except openai.APITimeoutError as e:
            raise ExtractionTimeoutError(f"Audio transcription timed out after {self.timeout}s", {"filename": filename}) from e
        except openai.OpenAIError as e:
            raise ExtractionError(f"Failed to transcribe audio file: {e}", {"filename": filename}) from e

        return Transcription(
            text=getattr(response, "text", "") or "",
            duration_seconds=getattr(response, "duration", None),
            language=getattr(response, "language", None),
        )


class TranscriptUnavailable(Exception):
    """The video has no retrievable transcript."""


@dataclass
class TranscriptSegment:
    text: str
    start: float
    duration: float


class TranscriptProvider:
    """Caption lookup through youtube-transcript-api."""

    def __init__(self, languages: Optional[List[str]] = None):
        self.languages = languages or list(settings.TRANSCRIPT_LANGUAGES)

    def _fetch_sync(self, video_id: str) -> List[Dict[str, Any]]:
        return YouTubeTranscriptApi().fetch(video_id, languages=self.languages).to_raw_data()

    async def fetch_transcript(self, video_id: str, timeout: float) -> List[TranscriptSegment]:
        try:
            raw = await asyncio.wait_for(asyncio.to_thread(self._fetch_sync, video_id), timeout=timeout)
        except asyncio.TimeoutError as e:
            raise ExtractionTimeoutError(f"Transcript fetch timeout after {timeout} seconds", {"video_id": video_id}) from e
        except CouldNotRetrieveTranscript as e:
            raise TranscriptUnavailable(str(e).splitlines()[0] if str(e) else "No transcript available") from e

        segments = [
            TranscriptSegment(
                text=entry.get("text", ""),
                start=float(entry.get("start", 0.0)),
                duration=float(entry.get("duration", 0.0)),
            )
            for entry in raw
        ]
        if not segments:
            raise TranscriptUnavailable("No transcript available for this video")
        return segments


class WebFetcher:
    """Fetches page HTML through an intermediary that answers ``{"contents": html}``."""

    def __init__(
        self,
        proxy_url: Optional[str] = None,
        timeout: Optional[float] = None,
        retry_config: Optional[RetryConfig] = None,
    ):
        self.proxy_url = proxy_url or settings.WEB_PROXY_URL
        self.timeout = timeout if timeout is not None else settings.NETWORK_TIMEOUT_SECONDS
        self.retry_config = retry_config or RetryConfig.from_settings()

    async def get(self, url: str) -> str:
        async def _request() -> httpx.Response:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.get(self.proxy_url, params={"url": url})
                response.raise_for_status()
                return response

        response = await retry_async(_request, self.retry_config, description=f"fetch of {url}")
        data = response.json()
        contents = data.get("contents") if isinstance(data, dict) else None
        if not contents or not isinstance(contents, str):
            raise ExtractionError("No content received from the website.", {"url": url})
        return contents


class ExtractionSession:
    """Engines scoped to one extraction workflow.

    The OCR engine is created on the first image and closed when the session
    exits, whether or not the workflow succeeded.

    Usage::

        async with ExtractionSession() as session:
            content = await coordinator.extract(raw, session)
    """

    def __init__(
        self,
        speech_to_text: Optional[SpeechToText] = None,
        transcripts: Optional[TranscriptProvider] = None,
        web: Optional[WebFetcher] = None,
        ocr_factory=None,
    ):
        self._speech_to_text = speech_to_text
        self._transcripts = transcripts
        self._web = web
        self._ocr_factory = ocr_factory or OcrEngine
        self._ocr: Optional[OcrEngine] = None

    async def __aenter__(self) -> "ExtractionSession":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.close()

    @property
    def ocr(self) -> OcrEngine:
        if self._ocr is None:
            logger.info("Initializing OCR engine for this session")
            self._ocr = self._ocr_factory()
        return self._ocr

    @property
    def speech_to_text(self) -> SpeechToText:
        if self._speech_to_text is None:
            self._speech_to_text = SpeechToText()
        return self._speech_to_text

    @property
    def transcripts(self) -> TranscriptProvider:
        if self._transcripts is None:
            self._transcripts = TranscriptProvider()
        return self._transcripts

    @property
    def web(self) -> WebFetcher:
        if self._web is None:
            self._web = WebFetcher()
        return self._web

    def close(self) -> None:
        if self._ocr is not None:
            self._ocr.close()
            self._ocr = None
