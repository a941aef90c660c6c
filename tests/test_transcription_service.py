import os

import pytest

from conftest import FakeModelClient, FakeTranscoder
from radioscript.exceptions import ChunkEncodingError, MalformedInputError, TranscriptionError
from radioscript.models.audio import AudioPayload
from radioscript.models.requests import TranscriptionRequest


def make_request(data=b"whole recording", mime_type="audio/mpeg"):
    return TranscriptionRequest(audio_data_uri=AudioPayload(mime_type, data).to_data_uri())


@pytest.mark.asyncio
@pytest.mark.parametrize("duration", [0.5, 60, 180])
async def test_short_recording_is_one_call(make_orchestrator, model_client, duration, scratch_dir):
    transcoder = FakeTranscoder(duration=duration)
    orchestrator = make_orchestrator(model_client, transcoder)

    result = await orchestrator.transcribe(make_request())

    assert result.transcribed_text == "whole recording"
    assert len(model_client.calls) == 1
    assert model_client.calls[0][1] == AudioPayload("audio/mpeg", b"whole recording")
    assert transcoder.trims == []
    assert os.listdir(scratch_dir) == []


@pytest.mark.asyncio
async def test_long_recording_is_split_into_chunks(make_orchestrator, model_client, scratch_dir):
    transcoder = FakeTranscoder(duration=400)
    orchestrator = make_orchestrator(model_client, transcoder)

    result = await orchestrator.transcribe(make_request())

    assert sorted(transcoder.trims) == [(0, 180), (180, 180), (360, 40)]
    assert len(model_client.calls) == 3
    assert all(payload.mime_type == "audio/mpeg" for _, payload in model_client.calls)
    assert b"whole recording" not in [payload.data for _, payload in model_client.calls]
    assert result.transcribed_text == "chunk@0\n\nchunk@180\n\nchunk@360"
    assert os.listdir(scratch_dir) == []


@pytest.mark.asyncio
@pytest.mark.parametrize("duration,expected_calls", [(181, 2), (540, 3), (541, 4)])
async def test_chunk_call_count(make_orchestrator, duration, expected_calls):
    client = FakeModelClient()
    orchestrator = make_orchestrator(client, FakeTranscoder(duration=duration))

    await orchestrator.transcribe(make_request())

    assert len(client.calls) == expected_calls


@pytest.mark.asyncio
async def test_chunks_reassembled_in_order_when_completed_out_of_order(make_orchestrator):
    client = FakeModelClient(delays={"chunk@0": 0.1, "chunk@360": 0.1, "chunk@720": 0.05})
    orchestrator = make_orchestrator(client, FakeTranscoder(duration=800))

    result = await orchestrator.transcribe(make_request())

    assert len(client.calls) == 5
    assert result.transcribed_text == "\n\n".join(
        ["chunk@0", "chunk@180", "chunk@360", "chunk@540", "chunk@720"]
    )


@pytest.mark.asyncio
async def test_unknown_duration_is_treated_as_short(make_orchestrator, model_client):
    transcoder = FakeTranscoder(duration=None)
    orchestrator = make_orchestrator(model_client, transcoder)

    result = await orchestrator.transcribe(make_request())

    assert result.transcribed_text == "whole recording"
    assert len(model_client.calls) == 1
    assert transcoder.trims == []


@pytest.mark.asyncio
async def test_chunk_fallback_is_per_chunk(make_orchestrator):
    client = FakeModelClient(failing_models={"primary"})
    orchestrator = make_orchestrator(client, FakeTranscoder(duration=300))

    result = await orchestrator.transcribe(make_request())

    assert result.transcribed_text == "chunk@0\n\nchunk@180"
    assert sorted(model for model, _ in client.calls) == ["fallback", "fallback", "primary", "primary"]


@pytest.mark.asyncio
async def test_failed_chunk_extraction_fails_the_file(make_orchestrator, model_client, scratch_dir):
    orchestrator = make_orchestrator(model_client, FakeTranscoder(duration=400, fail_at=180))

    with pytest.raises(ChunkEncodingError):
        await orchestrator.transcribe(make_request())

    assert os.listdir(scratch_dir) == []


@pytest.mark.asyncio
async def test_failed_chunk_transcription_fails_the_file(make_orchestrator, scratch_dir):
    client = FakeModelClient(failing_models={"primary", "fallback"})
    orchestrator = make_orchestrator(client, FakeTranscoder(duration=400))

    with pytest.raises(TranscriptionError):
        await orchestrator.transcribe(make_request())

    assert os.listdir(scratch_dir) == []


@pytest.mark.asyncio
async def test_chunk_fanout_deadline(make_orchestrator, scratch_dir):
    client = FakeModelClient(delays={"chunk@0": 1})
    orchestrator = make_orchestrator(
        client, FakeTranscoder(duration=400), chunk_fanout_timeout_seconds=0.1
    )

    with pytest.raises(TranscriptionError):
        await orchestrator.transcribe(make_request())

    assert os.listdir(scratch_dir) == []


@pytest.mark.asyncio
async def test_malformed_input_is_not_sent_to_the_model(make_orchestrator, model_client, transcoder):
    orchestrator = make_orchestrator(model_client, transcoder)

    with pytest.raises(MalformedInputError):
        await orchestrator.transcribe(TranscriptionRequest(audio_data_uri="not-a-data-uri"))

    assert model_client.calls == []


@pytest.mark.asyncio
async def test_failed_chunk_cancels_remaining_chunks(make_orchestrator, scratch_dir):
    client = FakeModelClient(
        failing_models={"primary"},
        delays={"chunk@180": 0.5, "chunk@360": 0.5},
    )
    orchestrator = make_orchestrator(client, FakeTranscoder(duration=400, fail_at=0))

    with pytest.raises(ChunkEncodingError):
        await orchestrator.transcribe(make_request())

    # the surviving chunks were stopped before reaching their fallback attempt
    assert "fallback" not in [model for model, _ in client.calls]
    assert os.listdir(scratch_dir) == []
