"""Pytest configuration and shared fakes."""
import asyncio
import os

os.environ.setdefault("API_SECRET_KEY", "test-secret-key-very-long-for-testing-purposes")
os.environ.setdefault("GEMINI_API_KEY", "test-gemini-key")
os.environ.setdefault("RATE_LIMIT_REQUESTS", "1000")
os.environ.setdefault("AUDIT_LOG_ENABLED", "false")

import pytest

from radioscript.config import OrchestratorConfig
from radioscript.exceptions import DurationProbeError, ChunkEncodingError, ModelCallError
from radioscript.services.audio_processor import AudioTranscoder
from radioscript.services.model_client import TranscriptionModelClient
from radioscript.services.stt_service import STTService
from radioscript.services.transcription_service import TranscriptionOrchestrator


class FakeModelClient(TranscriptionModelClient):
    """Echoes the payload bytes back as text and records every call."""

    def __init__(self, failing_models=(), delays=None):
        self.failing_models = set(failing_models)
        self.delays = delays or {}
        self.calls = []

    async def generate_transcript(self, model, prompt, payload):
        self.calls.append((model, payload))
        text = payload.data.decode()
        delay = self.delays.get(text)
        if delay:
            await asyncio.sleep(delay)
        if model in self.failing_models:
            raise ModelCallError(model, "overloaded")
        return text


class FakeTranscoder(AudioTranscoder):
    """Reports a fixed duration and writes a marker instead of real audio."""

    def __init__(self, duration=10.0, fail_at=None):
        self.duration = duration
        self.fail_at = fail_at
        self.trims = []

    async def probe_duration(self, path):
        if self.duration is None:
            raise DurationProbeError(path)
        return self.duration

    async def trim(self, source, destination, start, duration):
        self.trims.append((start, duration))
        if self.fail_at is not None and start == self.fail_at:
            raise ChunkEncodingError(start, duration, "corrupt frame")
        with open(destination, "wb") as f:
            f.write(f"chunk@{start:g}".encode())


@pytest.fixture
def scratch_dir(tmp_path):
    path = tmp_path / "scratch"
    path.mkdir()
    return path


@pytest.fixture
def config(scratch_dir):
    return OrchestratorConfig(
        primary_model="primary",
        fallback_model="fallback",
        chunk_threshold_seconds=180,
        scratch_dir=str(scratch_dir),
        model_timeout_seconds=5,
        chunk_fanout_timeout_seconds=10,
    )


@pytest.fixture
def model_client():
    return FakeModelClient()


@pytest.fixture
def transcoder():
    return FakeTranscoder()


@pytest.fixture
def make_orchestrator(config):
    def _make(client, transcoder, **overrides):
        cfg = config.model_copy(update=overrides)
        stt = STTService(client, cfg.primary_model, cfg.fallback_model, cfg.model_timeout_seconds)
        return TranscriptionOrchestrator(cfg, stt, transcoder)
    return _make
