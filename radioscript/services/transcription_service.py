"""
Transcription orchestration: duration check, chunking, reassembly
"""

import asyncio
import os
import tempfile
import time
from typing import List
from radioscript.config import OrchestratorConfig
from radioscript.core.logging import get_logger, audit_logger
from radioscript.exceptions import DurationProbeError, TranscriptionError
from radioscript.models.audio import AudioPayload, Chunk, plan_chunks
from radioscript.models.requests import TranscriptionRequest
from radioscript.models.responses import TranscriptionResult
from radioscript.services.audio_processor import AudioTranscoder
from radioscript.services.stt_service import STTService

logger = get_logger(__name__)

CHUNK_SEPARATOR = "\n\n"


class TranscriptionOrchestrator:
    """Turns one recording into one transcript, splitting long recordings."""

    def __init__(self, config: OrchestratorConfig, stt_service: STTService, transcoder: AudioTranscoder):
        self.config = config
        self.stt_service = stt_service
        self.transcoder = transcoder
        if config.scratch_dir:
            os.makedirs(config.scratch_dir, exist_ok=True)

    async def transcribe(self, request: TranscriptionRequest) -> TranscriptionResult:
        """
        Transcribes the recording carried by the request.

        Recordings up to the chunk threshold go to the model in one call.
        Longer ones are cut into threshold-sized chunks which are
        transcribed concurrently and joined in chunk order.

        Raises:
            MalformedInputError: the data URI cannot be parsed.
            ChunkEncodingError: a chunk could not be extracted.
            TranscriptionError: a model call failed on both models or the
                chunk fan-out did not finish in time.
        """
        payload = request.payload()
        start_time = time.time()

        # Everything written for this request lives in one directory.
        with tempfile.TemporaryDirectory(prefix="radioscript-", dir=self.config.scratch_dir) as workdir:
            source_path = os.path.join(workdir, f"source{payload.extension}")
            with open(source_path, "wb") as f:
                f.write(payload.data)
            logger.info(f"Saved {payload.size} bytes of {payload.mime_type} audio to {source_path}")

            duration = await self._probe_duration(source_path)

            if duration <= self.config.chunk_threshold_seconds:
                chunk_count = 1
                text = await self.stt_service.transcribe(payload)
            else:
                chunks = plan_chunks(duration, self.config.chunk_threshold_seconds)
                chunk_count = len(chunks)
                logger.info(f"Audio is {duration:.1f}s long, splitting into {chunk_count} chunks")
                texts = await self._transcribe_chunks(payload, source_path, workdir, chunks)
                text = CHUNK_SEPARATOR.join(texts)

        audit_logger.log_audio_processing(
            audio_duration=duration,
            audio_size_bytes=payload.size,
            chunk_count=chunk_count,
            processing_time_ms=int((time.time() - start_time) * 1000),
        )
        return TranscriptionResult(transcribed_text=text)

    async def _probe_duration(self, path: str) -> float:
        try:
            return await self.transcoder.probe_duration(path)
        except DurationProbeError as e:
            logger.warning(f"Could not determine audio duration, transcribing as a single clip: {e}")
            return 0.0

    async def _transcribe_chunks(
        self,
        payload: AudioPayload,
        source_path: str,
        workdir: str,
        chunks: List[Chunk],
    ) -> List[str]:
        semaphore = asyncio.Semaphore(self.config.max_parallel_chunks)

        async def run(chunk: Chunk) -> str:
            async with semaphore:
                return await self._transcribe_chunk(payload, source_path, workdir, chunk)

        tasks = [asyncio.create_task(run(chunk)) for chunk in chunks]
        try:
            _, pending = await asyncio.wait(
                tasks,
                timeout=self.config.chunk_fanout_timeout_seconds,
                return_when=asyncio.FIRST_EXCEPTION,
            )
        finally:
            # One failed chunk fails the file, so the rest are not worth finishing.
            for task in tasks:
                if not task.done():
                    task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)

        # tasks are in chunk order, so the first error is the earliest chunk's.
        errors = [
            task.exception() for task in tasks
            if not task.cancelled() and task.exception() is not None
        ]
        if errors:
            raise errors[0]
        if pending:
            raise TranscriptionError(
                f"Chunk transcription did not finish within {self.config.chunk_fanout_timeout_seconds}s"
            )
        return [task.result() for task in tasks]

    async def _transcribe_chunk(
        self,
        payload: AudioPayload,
        source_path: str,
        workdir: str,
        chunk: Chunk,
    ) -> str:
        chunk_path = os.path.join(workdir, f"chunk-{chunk.index:04d}{payload.extension}")
        try:
            await self.transcoder.trim(source_path, chunk_path, chunk.start, chunk.duration)
            with open(chunk_path, "rb") as f:
                chunk_payload = AudioPayload(mime_type=payload.mime_type, data=f.read())
            text = await self.stt_service.transcribe(chunk_payload)
        finally:
            if os.path.exists(chunk_path):
                os.remove(chunk_path)

        logger.info(f"Chunk {chunk.index} transcribed ({chunk.start:.0f}s+{chunk.duration:.0f}s)")
        return text
