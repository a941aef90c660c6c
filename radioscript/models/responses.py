"""
Pydantic Models for API Responses
"""

from typing import Optional, Dict, Any, List
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field


class TranscriptionResult(BaseModel):
    """Transcript of one recording"""
    model_config = ConfigDict(populate_by_name=True)

    transcribed_text: str = Field(
        alias="transcribedText",
        description="The transcribed text from the audio recording.",
    )


class FileTranscription(BaseModel):
    """Transcript of one uploaded file in a batch"""
    model_config = ConfigDict(populate_by_name=True)

    file_name: str = Field(alias="fileName", description="Name of the uploaded file")
    text: str = Field(description="Transcribed text")


class BatchTranscriptionResponse(BaseModel):
    """Result of a batch, in upload order"""
    model_config = ConfigDict(populate_by_name=True)

    request_id: str = Field(alias="requestId", description="Unique request ID")
    transcriptions: List[FileTranscription] = Field(default_factory=list)
    export_text: str = Field(alias="exportText", description="Plain text export of all transcripts")
    processing_time_ms: int = Field(alias="processingTimeMs")


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int = Field(description="Token lifetime in seconds")


class HealthCheckResponse(BaseModel):
    """Health Check Response"""
    status: str = Field(description="Service status (healthy/unhealthy)")
    timestamp: datetime = Field(description="Check time")
    version: str = Field(description="Service version")
    uptime_seconds: int = Field(description="Uptime in seconds")
    details: Optional[Dict[str, Any]] = Field(default=None)


class ErrorResponse(BaseModel):
    """Standardized error response"""
    error: str = Field(description="Error type")
    title: Optional[str] = Field(default=None, description="User-facing title")
    message: str = Field(description="Error description")
    request_id: Optional[str] = Field(default=None, description="Request ID for debugging")
    timestamp: datetime = Field(description="Error time")


class RateLimitResponse(BaseModel):
    """Rate Limit Exceeded Response"""
    error: str = Field(default="rate_limit_exceeded")
    message: str = Field(description="Rate limit message")
    retry_after: int = Field(description="Seconds until the next attempt")
    limit: int = Field(description="Request limit")
    window: int = Field(description="Window in seconds")
    timestamp: datetime = Field(description="Error time")
