"""
Batch transcription of uploaded files and plain text export
"""

from dataclasses import dataclass
from typing import Iterable, List
from radioscript.core.logging import get_logger
from radioscript.exceptions import RadioScriptError, BatchTranscriptionError
from radioscript.models.audio import AudioPayload
from radioscript.models.requests import TranscriptionRequest
from radioscript.models.responses import FileTranscription
from radioscript.services.transcription_service import TranscriptionOrchestrator

logger = get_logger(__name__)

EXPORT_FILE_NAME = "radioscript_transcripcion.txt"
EXPORT_HEADER = "--- Transcripción de: {file_name} ---"
EXPORT_FILE_SEPARATOR = "\n\n\n"


@dataclass(frozen=True)
class UploadedAudio:
    """A file as received from the client."""
    file_name: str
    content_type: str
    data: bytes


def select_files(files: Iterable[UploadedAudio]) -> List[UploadedAudio]:
    """Keeps audio files only, dropping repeated file names."""
    selected: List[UploadedAudio] = []
    seen = set()
    for file in files:
        if not (file.content_type or "").startswith("audio/"):
            logger.info(f"Skipping non-audio upload {file.file_name} ({file.content_type})")
            continue
        if file.file_name in seen:
            logger.info(f"Skipping duplicate upload {file.file_name}")
            continue
        seen.add(file.file_name)
        selected.append(file)
    return selected


def build_export_text(transcriptions: Iterable[FileTranscription]) -> str:
    return EXPORT_FILE_SEPARATOR.join(
        f"{EXPORT_HEADER.format(file_name=t.file_name)}\n\n{t.text}" for t in transcriptions
    )


class BatchTranscriber:
    """Transcribes a batch of files one after another."""

    def __init__(self, orchestrator: TranscriptionOrchestrator):
        self.orchestrator = orchestrator

    async def transcribe_batch(self, files: List[UploadedAudio]) -> List[FileTranscription]:
        """
        Files are processed strictly in order, each one completely before
        the next. A failure on any file fails the whole batch and discards
        the transcripts already produced.
        """
        results: List[FileTranscription] = []
        for file in files:
            mime_type = file.content_type.split(";")[0].strip()
            payload = AudioPayload(mime_type=mime_type, data=file.data)
            request = TranscriptionRequest(audio_data_uri=payload.to_data_uri())
            try:
                result = await self.orchestrator.transcribe(request)
            except RadioScriptError as e:
                logger.error(f"Transcription of {file.file_name} failed, aborting batch: {e}")
                raise BatchTranscriptionError(file.file_name, cause=e) from e
            results.append(FileTranscription(file_name=file.file_name, text=result.transcribed_text))
            logger.info(f"Transcribed {file.file_name} ({len(results)}/{len(files)})")
        return results
