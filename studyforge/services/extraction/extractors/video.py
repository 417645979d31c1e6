"""Video transcripts, with a manual-notes placeholder when captions are missing."""

import logging
import re
from typing import Optional

from studyforge.core.config import settings
from studyforge.core.errors import ExtractionError, ExtractionTimeoutError
from studyforge.schemas.extracted_content import ExtractedContent, VideoMetadata
from studyforge.schemas.raw_input import UrlInput
from studyforge.services.extraction.engines import TranscriptUnavailable
from studyforge.services.extraction.registry import NetworkExtractor, register_extractor, study_frame

logger = logging.getLogger(__name__)

_VIDEO_URL_PATTERNS = [
    re.compile(r"(?:youtube\.com/watch\?(?:.*&)?v=|youtu\.be/|youtube\.com/embed/|youtube\.com/v/|youtube\.com/shorts/)([^&\n?#/]+)"),
    re.compile(r"^([a-zA-Z0-9_-]{11})$"),
]


def extract_video_id(url: str) -> Optional[str]:
    for pattern in _VIDEO_URL_PATTERNS:
        match = pattern.search(url.strip())
        if match:
            return match.group(1)
    return None


def clean_transcript(text: str) -> str:
    """Drop bracketed cues such as [Music] and collapse whitespace."""
    text = re.sub(r"\[.*?\]", "", text)
    return re.sub(r"\s+", " ", text).strip()


@register_extractor(priority=11)
class VideoTranscriptExtractor(NetworkExtractor):
    name = "video"
    kind = "video"

    def placeholder(self, raw: UrlInput, error: str) -> ExtractedContent:
        video_id = extract_video_id(raw.url)
        logger.warning(f"Transcript unavailable for {raw.url}: {error}")
        text = (
            f"[YouTube Video: {raw.url}]\n\n"
            f"Video ID: {video_id or 'Unknown'}\n\n"
            f"Transcript extraction failed: {error}\n\n"
            "This video may not have captions available, or they may be auto-generated and restricted.\n\n"
            "To use this content:\n"
            "1. Watch the video and manually add key points below\n"
            "2. Or try a different video with available captions\n\n"
            "Manual Notes Section:\n"
            "- [Add main concepts from the video]\n"
            "- [Add important explanations]\n"
            "- [Add examples or case studies]\n"
            "- [Add any formulas or definitions]\n\n"
            "This content will be used by the AI to generate study materials."
        )
        return self.stand_in(
            f"YouTube Video: {video_id or 'Unknown'}",
            text,
            VideoMetadata(url=raw.url, video_id=video_id, has_transcript=False, failed=True, error=error),
        )

    async def extract(self, raw, session) -> ExtractedContent:
        if not isinstance(raw, UrlInput):
            raise ExtractionError(f"{self.name} strategy expects a URL, got {type(raw).__name__}")
        video_id = extract_video_id(raw.url)
        if not video_id:
            raise ExtractionError("Invalid YouTube URL - could not extract video ID", {"url": raw.url})

        try:
            segments = await session.transcripts.fetch_transcript(video_id, timeout=settings.NETWORK_TIMEOUT_SECONDS)
        except (TranscriptUnavailable, ExtractionTimeoutError) as e:
            return self.placeholder(raw, str(e))
        except Exception as e:
            # Transport failures inside the transcript library surface as assorted request errors
            logger.error(f"Transcript fetch for {video_id} failed: {e}")
            return self.placeholder(raw, str(e))

        transcript = clean_transcript(" ".join(segment.text for segment in segments))
        duration = max((segment.start + segment.duration for segment in segments), default=None)
        logger.info(f"Fetched {len(segments)} transcript segments for video {video_id}")

        metadata = VideoMetadata(
            url=raw.url,
            video_id=video_id,
            has_transcript=True,
            segment_count=len(segments),
            duration_seconds=duration,
        )
        return self.build(
            f"YouTube Video: {video_id}",
            transcript,
            metadata,
            frame=lambda body: study_frame(
                f"YouTube Video: {video_id}",
                body,
                [
                    "Key spoken concepts and ideas",
                    "Important explanations and definitions",
                    "Educational content and examples",
                ],
                details=f"URL: {raw.url}",
                body_heading="Transcript:",
                checklist_intro="This video transcript should be analyzed for:",
            ),
        )
