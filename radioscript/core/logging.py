"""
Structured logging setup for RadioScript
"""

import logging
import structlog
from datetime import datetime
from typing import Optional
from radioscript.config import settings, Environment


def setup_logging():
    """Configures structured logging"""

    timestamper = structlog.processors.TimeStamper(fmt="ISO")

    processors = [
        structlog.processors.add_log_level,
        timestamper,
        structlog.processors.StackInfoRenderer(),
    ]

    if settings.environment == Environment.DEVELOPMENT:
        # Development: colored console output, renders exc_info itself
        processors.append(structlog.dev.ConsoleRenderer(colors=True))
    else:
        # Production: JSON output
        processors.extend([
            structlog.processors.dict_tracebacks,
            structlog.processors.JSONRenderer()
        ])

    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, settings.log_level.upper(), logging.INFO)
        ),
        cache_logger_on_first_use=True,
    )


def get_logger(name: Optional[str] = None):
    """Returns a configured logger"""
    return structlog.get_logger(name or __name__)


class AuditLogger:
    """Logger for audit events"""

    def __init__(self):
        self.logger = get_logger("audit")
        self.enabled = settings.audit_log_enabled

    def _emit(self, event: str, **kwargs):
        if not self.enabled:
            return
        self.logger.info(event, timestamp=datetime.utcnow().isoformat(), **kwargs)

    def log_api_request(
        self,
        request_id: str,
        endpoint: str,
        method: str,
        subject: Optional[str] = None,
        user_agent: Optional[str] = None,
        ip_address: Optional[str] = None,
        **kwargs
    ):
        """Logs API requests for auditing"""
        self._emit(
            "api_request",
            request_id=request_id,
            endpoint=endpoint,
            method=method,
            subject=subject,
            user_agent=user_agent,
            ip_address=ip_address,
            **kwargs
        )

    def log_transcription_request(
        self,
        model: str,
        mime_type: str,
        audio_size_bytes: int,
        **kwargs
    ):
        """Logs an outbound model invocation"""
        self._emit(
            "transcription_request",
            provider="gemini",
            model=model,
            mime_type=mime_type,
            audio_size_bytes=audio_size_bytes,
            **kwargs
        )

    def log_model_fallback(
        self,
        primary_model: str,
        fallback_model: str,
        error_message: str,
        **kwargs
    ):
        """Logs the switch from the primary to the fallback model"""
        self._emit(
            "model_fallback",
            primary_model=primary_model,
            fallback_model=fallback_model,
            error_message=error_message,
            **kwargs
        )

    def log_audio_processing(
        self,
        audio_duration: float,
        audio_size_bytes: int,
        chunk_count: int,
        processing_time_ms: int,
        **kwargs
    ):
        """Logs audio processing events"""
        self._emit(
            "audio_processing",
            audio_duration=audio_duration,
            audio_size_bytes=audio_size_bytes,
            chunk_count=chunk_count,
            processing_time_ms=processing_time_ms,
            **kwargs
        )

    def log_error(
        self,
        request_id: str,
        error_type: str,
        error_message: str,
        stack_trace: Optional[str] = None,
        **kwargs
    ):
        """Logs error events"""
        self.logger.error(
            "error_event",
            request_id=request_id,
            error_type=error_type,
            error_message=error_message,
            stack_trace=stack_trace,
            timestamp=datetime.utcnow().isoformat(),
            **kwargs
        )


# Global audit logger instance
audit_logger = AuditLogger()
