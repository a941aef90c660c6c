"""
Error taxonomy for the transcription flow
"""

from typing import Optional


class RadioScriptError(Exception):
    """Base class for all transcription flow errors."""

    def __init__(self, message: str, cause: Optional[Exception] = None):
        self.cause = cause
        super().__init__(message)


class MalformedInputError(RadioScriptError):
    """Raised when an audio data URI cannot be parsed."""


class DurationProbeError(RadioScriptError):
    """Raised when the encoder cannot report a clip's duration."""

    def __init__(self, path: str, cause: Optional[Exception] = None):
        self.path = path
        super().__init__(f"Could not determine duration of '{path}'", cause=cause)


class ModelCallError(RadioScriptError):
    """Raised when a single model invocation fails."""

    def __init__(self, model: str, message: str, cause: Optional[Exception] = None):
        self.model = model
        super().__init__(f"Model '{model}' failed: {message}", cause=cause)


class ChunkEncodingError(RadioScriptError):
    """Raised when the encoder fails to produce a sub-clip."""

    def __init__(self, start: float, duration: float, reason: str, cause: Optional[Exception] = None):
        self.start = start
        self.duration = duration
        self.reason = reason
        super().__init__(
            f"Failed to extract chunk at {start:.1f}s ({duration:.1f}s): {reason}", cause=cause
        )


class TranscriptionError(RadioScriptError):
    """Terminal failure for one recording."""


class BatchTranscriptionError(RadioScriptError):
    """Raised when any file of a batch fails; no partial results are kept."""

    def __init__(self, file_name: str, cause: Optional[Exception] = None):
        self.file_name = file_name
        super().__init__(f"Batch aborted while transcribing '{file_name}'", cause=cause)
