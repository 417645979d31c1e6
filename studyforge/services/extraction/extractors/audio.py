"""Speech-to-text strategy for audio and audio-bearing video files."""

import logging

from studyforge.core.config import settings
from studyforge.core.errors import ExtractionError
from studyforge.schemas.extracted_content import AudioMetadata, ExtractedContent
from studyforge.services.extraction.registry import Extractor, register_extractor, study_frame

logger = logging.getLogger(__name__)

MIN_TRANSCRIPT_CHARS = 10


def format_duration(seconds) -> str:
    if seconds is None:
        return "Unknown"
    total = int(round(seconds))
    return f"{total // 60}:{total % 60:02d}"


@register_extractor(priority=1)
class AudioExtractor(Extractor):
    name = "audio"
    kind = "audio"
    content_types = ("audio/*",)
    extensions = ("mp3", "wav", "m4a", "aac", "ogg", "flac", "wma", "mp4", "mov", "avi", "webm")

    def __init__(self, max_size_bytes: int = None):
        self.max_size_bytes = max_size_bytes or settings.AUDIO_MAX_BYTES

    async def extract(self, raw, session) -> ExtractedContent:
        file = self.require_file(raw)
        if file.size_bytes > self.max_size_bytes:
            raise ExtractionError(
                f"Audio file is too large ({file.size_bytes / 1024 / 1024:.1f}MB). "
                f"Maximum size is {self.max_size_bytes // (1024 * 1024)}MB. Please compress the audio file and try again.",
                {"filename": file.filename, "size_bytes": file.size_bytes},
            )
        logger.info(f"Transcribing audio file {file.filename} ({file.size_bytes} bytes)")

        transcription = await session.speech_to_text.transcribe(file.data, file.filename, self.max_size_bytes)
        transcript = transcription.text.strip()
        if len(transcript) < MIN_TRANSCRIPT_CHARS:
            raise ExtractionError(
                "No speech detected in audio file or transcription too short. "
                "Please ensure the audio contains clear speech.",
                {"filename": file.filename},
            )

        details = "\n".join([
            "Audio Details:",
            f"- Duration: {format_duration(transcription.duration_seconds)}",
            f"- Language: {transcription.language or 'Detected automatically'}",
            f"- File Size: {file.size_bytes / 1024 / 1024:.2f} MB",
            f"- Format: {file.content_type or 'Audio file'}",
        ])
        metadata = AudioMetadata(
            duration_seconds=transcription.duration_seconds,
            language=transcription.language,
            transcription_model=session.speech_to_text.model,
        )
        return self.build(
            file.filename,
            transcript,
            metadata,
            frame=lambda body: study_frame(
                f"Audio Recording: {file.filename}",
                body,
                [
                    "Key spoken concepts and ideas",
                    "Important explanations and definitions",
                    "Educational content and examples",
                    "Discussion points and insights",
                    "Lecture or presentation material",
                ],
                details=details,
                body_heading="Transcript:",
                checklist_intro="This audio transcript should be analyzed for:",
            ),
        )
