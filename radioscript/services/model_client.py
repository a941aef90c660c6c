"""
Gemini client for audio transcription
"""

from abc import ABC, abstractmethod
from google import genai
from google.genai import types
from pydantic import ValidationError
from radioscript.core.logging import get_logger
from radioscript.exceptions import ModelCallError
from radioscript.models.audio import AudioPayload
from radioscript.models.responses import TranscriptionResult

logger = get_logger(__name__)

TRANSCRIPTION_PROMPT = (
    "You are an expert medical transcriptionist. "
    "Please transcribe the following audio recording of a radiology report into text."
)


class TranscriptionModelClient(ABC):
    """A hosted model that turns an audio payload into text."""

    @abstractmethod
    async def generate_transcript(self, model: str, prompt: str, payload: AudioPayload) -> str:
        """Returns the transcribed text or raises ModelCallError."""


class GeminiModelClient(TranscriptionModelClient):
    """Transcription through the Google Gemini API."""

    def __init__(self, client: genai.Client):
        self._client = client

    async def generate_transcript(self, model: str, prompt: str, payload: AudioPayload) -> str:
        try:
            response = await self._client.aio.models.generate_content(
                model=model,
                contents=[
                    prompt,
                    types.Part.from_bytes(data=payload.data, mime_type=payload.mime_type),
                ],
                config={
                    "response_mime_type": "application/json",
                    "response_schema": TranscriptionResult,
                },
            )
        except Exception as e:
            raise ModelCallError(model, str(e), cause=e) from e

        if not response.text:
            raise ModelCallError(model, "empty response")

        try:
            result = TranscriptionResult.model_validate_json(response.text)
        except ValidationError as e:
            raise ModelCallError(model, "malformed response", cause=e) from e

        logger.info(f"Gemini model {model} returned {len(result.transcribed_text)} characters")
        return result.transcribed_text
