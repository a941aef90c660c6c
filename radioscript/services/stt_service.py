"""
Speech-to-Text Service
Sends one audio payload to the primary model and, if that fails, once to the fallback model.
"""

import asyncio
from typing import Tuple
from prometheus_client import Counter
from tenacity import AsyncRetrying, RetryCallState, RetryError, stop_after_attempt
from radioscript.core.logging import get_logger, audit_logger
from radioscript.exceptions import ModelCallError, TranscriptionError
from radioscript.models.audio import AudioPayload
from radioscript.services.model_client import TranscriptionModelClient, TRANSCRIPTION_PROMPT

logger = get_logger(__name__)

model_fallbacks = Counter("model_fallbacks_total", "Model calls retried against the fallback model")


class STTService:
    """Service for Speech-to-Text transcription with a fallback model."""

    def __init__(
        self,
        client: TranscriptionModelClient,
        primary_model: str,
        fallback_model: str,
        timeout_seconds: float,
        prompt: str = TRANSCRIPTION_PROMPT,
    ):
        self.client = client
        self.models: Tuple[str, str] = (primary_model, fallback_model)
        self.timeout_seconds = timeout_seconds
        self.prompt = prompt

    async def transcribe(self, payload: AudioPayload) -> str:
        """
        Transcribes a payload. The first attempt uses the primary model and
        the second, only after any failure, the fallback model.

        Raises:
            TranscriptionError: if both attempts fail.
        """
        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(len(self.models)),
                before_sleep=self._log_fallback,
            ):
                with attempt:
                    model = self.models[attempt.retry_state.attempt_number - 1]
                    return await self._call_model(model, payload)
        except RetryError as e:
            last_error = e.last_attempt.exception()
            logger.error(f"Primary and fallback models failed: {last_error}")
            raise TranscriptionError(
                "Transcription failed with primary and fallback models", cause=last_error
            ) from last_error

    async def _call_model(self, model: str, payload: AudioPayload) -> str:
        audit_logger.log_transcription_request(
            model=model,
            mime_type=payload.mime_type,
            audio_size_bytes=payload.size,
        )
        try:
            return await asyncio.wait_for(
                self.client.generate_transcript(model, self.prompt, payload),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError as e:
            raise ModelCallError(model, f"no response within {self.timeout_seconds}s", cause=e) from e

    def _log_fallback(self, retry_state: RetryCallState) -> None:
        error = retry_state.outcome.exception()
        model_fallbacks.inc()
        logger.warning(f"Primary model failed, attempting transcription with fallback model: {error}")
        audit_logger.log_model_fallback(
            primary_model=self.models[0],
            fallback_model=self.models[1],
            error_message=str(error),
        )
