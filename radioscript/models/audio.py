"""
Audio payload envelope and chunk planning
"""

import base64
import binascii
import math
from dataclasses import dataclass
from typing import List

from radioscript.exceptions import MalformedInputError

DATA_URI_PREFIX = "data:"
BASE64_MARKER = ";base64"

_EXTENSIONS = {
    "audio/mpeg": ".mp3",
    "audio/mp3": ".mp3",
    "audio/wav": ".wav",
    "audio/x-wav": ".wav",
    "audio/wave": ".wav",
    "audio/mp4": ".m4a",
    "audio/m4a": ".m4a",
    "audio/x-m4a": ".m4a",
    "audio/ogg": ".ogg",
    "audio/webm": ".webm",
    "audio/flac": ".flac",
    "audio/aac": ".aac",
}


@dataclass(frozen=True)
class AudioPayload:
    """Raw audio bytes plus their declared MIME type."""
    mime_type: str
    data: bytes

    @classmethod
    def from_data_uri(cls, uri: str) -> "AudioPayload":
        """Parses a `data:<mime>;base64,<payload>` envelope."""
        header, sep, body = uri.partition(",")
        if not sep or not header.startswith(DATA_URI_PREFIX):
            raise MalformedInputError("Audio must be a data URI of the form data:<mime>;base64,<data>")

        params = header[len(DATA_URI_PREFIX):].split(";")
        mime_type = params[0].strip()
        if not mime_type:
            raise MalformedInputError("Data URI does not declare a MIME type")
        if "base64" not in (p.strip().lower() for p in params[1:]):
            raise MalformedInputError("Data URI payload must be base64 encoded")

        try:
            data = base64.b64decode(body, validate=True)
        except (binascii.Error, ValueError) as e:
            raise MalformedInputError(f"Invalid base64 payload: {e}", cause=e) from e

        # Non-zero pad bits decode fine but would not survive re-encoding.
        if base64.b64encode(data).decode("ascii") != body:
            raise MalformedInputError("Base64 payload is not canonically encoded")

        return cls(mime_type=mime_type, data=data)

    def to_data_uri(self) -> str:
        encoded = base64.b64encode(self.data).decode("ascii")
        return f"{DATA_URI_PREFIX}{self.mime_type}{BASE64_MARKER},{encoded}"

    @property
    def extension(self) -> str:
        """File suffix the encoder uses to pick the container."""
        return _EXTENSIONS.get(self.mime_type.lower(), ".bin")

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass(frozen=True)
class Chunk:
    """A time window [start, start + duration) of a longer recording."""
    index: int
    start: float
    duration: float


def plan_chunks(total_duration: float, window: float) -> List[Chunk]:
    """
    Splits a recording into consecutive windows. The last window is cut
    to the remaining length of the recording.
    """
    if window <= 0:
        raise ValueError("window must be positive")

    count = math.ceil(total_duration / window)
    chunks = []
    for index in range(count):
        start = index * window
        chunks.append(Chunk(index=index, start=start, duration=min(window, total_duration - start)))
    return chunks
