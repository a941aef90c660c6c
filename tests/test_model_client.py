from types import SimpleNamespace

import pytest

from radioscript.exceptions import ModelCallError
from radioscript.models.audio import AudioPayload
from radioscript.services.model_client import GeminiModelClient, TRANSCRIPTION_PROMPT

PAYLOAD = AudioPayload("audio/mpeg", b"ID3 dictado")


class StubModels:
    def __init__(self, text=None, error=None):
        self.text = text
        self.error = error
        self.requests = []

    async def generate_content(self, **kwargs):
        self.requests.append(kwargs)
        if self.error:
            raise self.error
        return SimpleNamespace(text=self.text)


def make_client(models):
    return GeminiModelClient(SimpleNamespace(aio=SimpleNamespace(models=models)))


@pytest.mark.asyncio
async def test_returns_transcribed_text_from_json():
    models = StubModels(text='{"transcribedText": "Estudio sin hallazgos."}')

    text = await make_client(models).generate_transcript("gemini-x", TRANSCRIPTION_PROMPT, PAYLOAD)

    assert text == "Estudio sin hallazgos."
    request = models.requests[0]
    assert request["model"] == "gemini-x"
    assert request["contents"][0] == TRANSCRIPTION_PROMPT
    audio_part = request["contents"][1]
    assert audio_part.inline_data.data == b"ID3 dictado"
    assert audio_part.inline_data.mime_type == "audio/mpeg"
    assert request["config"]["response_mime_type"] == "application/json"


@pytest.mark.asyncio
@pytest.mark.parametrize("text", [None, ""])
async def test_empty_response_is_a_model_error(text):
    with pytest.raises(ModelCallError) as exc_info:
        await make_client(StubModels(text=text)).generate_transcript("gemini-x", "p", PAYLOAD)

    assert exc_info.value.model == "gemini-x"


@pytest.mark.asyncio
@pytest.mark.parametrize("text", ["not json", '{"text": "wrong field"}'])
async def test_malformed_response_is_a_model_error(text):
    with pytest.raises(ModelCallError) as exc_info:
        await make_client(StubModels(text=text)).generate_transcript("gemini-x", "p", PAYLOAD)

    assert exc_info.value.cause is not None


@pytest.mark.asyncio
async def test_sdk_errors_are_wrapped():
    boom = RuntimeError("503 overloaded")

    with pytest.raises(ModelCallError) as exc_info:
        await make_client(StubModels(error=boom)).generate_transcript("gemini-x", "p", PAYLOAD)

    assert exc_info.value.cause is boom
    assert "503 overloaded" in str(exc_info.value)
