import base64

import pytest

from radioscript.exceptions import MalformedInputError
from radioscript.models.audio import AudioPayload, plan_chunks
from radioscript.models.requests import TranscriptionRequest


def test_data_uri_round_trip():
    body = base64.b64encode(b"ID3\x04\x00 radiology report \xff\xfb").decode()
    uri = f"data:audio/mpeg;base64,{body}"

    payload = AudioPayload.from_data_uri(uri)

    assert payload.mime_type == "audio/mpeg"
    assert payload.data == b"ID3\x04\x00 radiology report \xff\xfb"
    assert payload.to_data_uri() == uri


def test_data_uri_with_extra_parameters():
    payload = AudioPayload.from_data_uri("data:audio/webm;codecs=opus;base64,AAEC")
    assert payload.mime_type == "audio/webm"
    assert payload.data == b"\x00\x01\x02"


@pytest.mark.parametrize("uri", [
    "audio/mpeg;base64,AAEC",
    "data:;base64,AAEC",
    "data:audio/mpeg;base64",
    "data:audio/mpeg,AAEC",
    "data:audio/mpeg;base64,not base64!",
    "data:audio/mpeg;base64,QR==",
])
def test_malformed_data_uri(uri):
    with pytest.raises(MalformedInputError):
        AudioPayload.from_data_uri(uri)


def test_request_exposes_payload():
    request = TranscriptionRequest.model_validate({"audioDataUri": "data:audio/wav;base64,UklGRg=="})
    payload = request.payload()
    assert payload.mime_type == "audio/wav"
    assert payload.data == b"RIFF"
    assert payload.extension == ".wav"


def test_unknown_mime_type_gets_generic_extension():
    assert AudioPayload("audio/x-unknown", b"").extension == ".bin"


def test_plan_chunks_for_400_seconds():
    chunks = plan_chunks(400, 180)
    assert [c.index for c in chunks] == [0, 1, 2]
    assert [c.start for c in chunks] == [0, 180, 360]
    assert [c.duration for c in chunks] == [180, 180, 40]


@pytest.mark.parametrize("duration,expected", [(180.5, 2), (360, 2), (361, 3), (1000, 6)])
def test_plan_chunks_count(duration, expected):
    assert len(plan_chunks(duration, 180)) == expected
