"""
Pydantic Models for API Requests
"""

from typing import List
from pydantic import BaseModel, ConfigDict, Field

from radioscript.models.audio import AudioPayload
from radioscript.models.responses import FileTranscription


class TranscriptionRequest(BaseModel):
    """One recording to transcribe, carried as a data URI"""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    audio_data_uri: str = Field(
        alias="audioDataUri",
        description="Audio recording of a radiology report as 'data:<mimetype>;base64,<encoded_data>'",
    )

    def payload(self) -> AudioPayload:
        return AudioPayload.from_data_uri(self.audio_data_uri)


class LoginRequest(BaseModel):
    """Credentials for the demo login/signup screens"""
    email: str = Field(min_length=3, description="Email address")
    password: str = Field(min_length=1, description="Password (not verified)")


class ExportRequest(BaseModel):
    """Transcriptions to render into the downloadable text file"""
    transcriptions: List[FileTranscription] = Field(min_length=1)
