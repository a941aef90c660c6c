"""
RadioScript - FastAPI Main Application
"""

import time
import traceback
from contextlib import asynccontextmanager
from datetime import datetime
from typing import List

from fastapi import FastAPI, HTTPException, Request, Depends, status, UploadFile, File, Form
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from google import genai
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from radioscript.config import settings
from radioscript.core.logging import setup_logging, get_logger, audit_logger
from radioscript.core.security import get_current_user, security_manager
from radioscript.exceptions import MalformedInputError, RadioScriptError
from radioscript.models.requests import TranscriptionRequest, LoginRequest, ExportRequest
from radioscript.models.responses import (
    TranscriptionResult, BatchTranscriptionResponse, HealthCheckResponse,
    ErrorResponse, RateLimitResponse, TokenResponse
)
from radioscript.services.audio_processor import FFmpegTranscoder
from radioscript.services.batch_service import (
    BatchTranscriber, UploadedAudio, select_files, build_export_text, EXPORT_FILE_NAME
)
from radioscript.services.model_client import GeminiModelClient
from radioscript.services.stt_service import STTService
from radioscript.services.transcription_service import TranscriptionOrchestrator

# Initialize logging
setup_logging()
logger = get_logger(__name__)

TRANSCRIPTION_ERROR_TITLE = "Error de Transcripción"
TRANSCRIPTION_ERROR_MESSAGE = "No se pudo transcribir el audio. Por favor, inténtalo de nuevo."

# Prometheus metrics
request_count = Counter('http_requests_total', 'Total HTTP requests', ['method', 'endpoint', 'status'])
request_duration = Histogram('http_request_duration_seconds', 'HTTP request duration')
transcription_duration = Histogram('transcription_duration_seconds', 'Time to transcribe one recording')

# Rate limiter
limiter = Limiter(key_func=get_remote_address)

# Service instances
orchestrator_config = settings.orchestrator_config()
transcoder = FFmpegTranscoder(ffmpeg_binary=settings.ffmpeg_binary)
stt_service = STTService(
    client=GeminiModelClient(genai.Client(api_key=settings.gemini_api_key)),
    primary_model=orchestrator_config.primary_model,
    fallback_model=orchestrator_config.fallback_model,
    timeout_seconds=orchestrator_config.model_timeout_seconds,
)
orchestrator = TranscriptionOrchestrator(orchestrator_config, stt_service, transcoder)

START_TIME = time.time()


def get_orchestrator() -> TranscriptionOrchestrator:
    return orchestrator


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events"""
    logger.info("🚀 RadioScript starting...")
    logger.info(f"Environment: {settings.environment}")
    logger.info(
        f"Models: primary={orchestrator_config.primary_model} fallback={orchestrator_config.fallback_model}, "
        f"chunk threshold {orchestrator_config.chunk_threshold_seconds:.0f}s"
    )

    yield

    logger.info("🛑 RadioScript shutting down...")


# Create FastAPI app
app = FastAPI(
    title=settings.api_title,
    description=settings.api_description,
    version=settings.api_version,
    lifespan=lifespan,
    docs_url="/docs" if settings.environment == "development" else None,
    redoc_url="/redoc" if settings.environment == "development" else None,
    debug=settings.debug,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
)

# Rate limiting
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_middleware(SlowAPIMiddleware)


# Middleware for security headers
@app.middleware("http")
async def add_security_headers(request: Request, call_next):
    """Add security headers to all responses."""
    response = await call_next(request)
    response.headers.setdefault("Strict-Transport-Security", "max-age=31536000; includeSubDomains")
    response.headers.setdefault("X-Content-Type-Options", "nosniff")
    response.headers.setdefault("X-Frame-Options", "DENY")
    return response


# Middleware for request tracking and metrics
@app.middleware("http")
async def track_requests(request: Request, call_next):
    """Request tracking and Prometheus metrics"""

    start_time = time.time()
    request_id = security_manager.generate_request_id()

    request.state.request_id = request_id
    request.state.start_time = start_time

    try:
        response = await call_next(request)

        duration = time.time() - start_time
        request_count.labels(
            method=request.method,
            endpoint=request.url.path,
            status=response.status_code
        ).inc()
        request_duration.observe(duration)

        response.headers["X-Request-ID"] = request_id
        response.headers["X-Processing-Time"] = f"{duration:.3f}s"

        return response

    except Exception as e:
        request_count.labels(
            method=request.method,
            endpoint=request.url.path,
            status=500
        ).inc()

        logger.error(f"Request {request_id} failed: {e}")

        return JSONResponse(
            status_code=500,
            content={
                "error": "internal_server_error",
                "message": "An internal error occurred",
                "request_id": request_id,
                "timestamp": datetime.utcnow().isoformat()
            },
            headers={"X-Request-ID": request_id}
        )


# Health check endpoint
@app.get("/health", response_model=HealthCheckResponse)
async def health_check():
    """Service health check"""

    return HealthCheckResponse(
        status="healthy",
        timestamp=datetime.utcnow(),
        version=settings.api_version,
        uptime_seconds=int(time.time() - START_TIME)
    )


@app.get("/ready")
async def readiness_check():
    """
    Checks that the audio encoder and the model credentials are in place.
    Returns 200 OK if all checks pass, otherwise 503 Service Unavailable.
    """
    details = {
        "ffmpeg": (
            {"status": "ok", "message": f"{settings.ffmpeg_binary} found."}
            if transcoder.is_available()
            else {"status": "error", "message": f"{settings.ffmpeg_binary} not found on PATH."}
        ),
        "gemini": (
            {"status": "ok", "message": "API key configured."}
            if settings.gemini_api_key
            else {"status": "error", "message": "GEMINI_API_KEY is empty."}
        ),
    }
    all_ok = all(check["status"] == "ok" for check in details.values())

    response_data = {
        "status": "ready" if all_ok else "unavailable",
        "timestamp": datetime.utcnow().isoformat(),
        "version": settings.api_version,
        "details": details
    }

    if all_ok:
        return JSONResponse(status_code=status.HTTP_200_OK, content=response_data)
    logger.warning(f"Readiness check failed: {details}")
    return JSONResponse(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, content=response_data)


# Prometheus metrics endpoint
@app.get(settings.metrics_path)
async def metrics():
    """Prometheus metrics"""
    if not settings.enable_metrics:
        raise HTTPException(status_code=404, detail="Metrics disabled")

    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)


@app.post("/v1/auth/login", response_model=TokenResponse)
@app.post("/v1/auth/signup", response_model=TokenResponse)
@limiter.limit(f"{settings.rate_limit_requests}/minute")
async def login(request: Request, credentials: LoginRequest):
    """Demo login: every email/password pair is accepted."""
    token = security_manager.issue_demo_token(credentials.email)
    return TokenResponse(
        access_token=token,
        expires_in=settings.access_token_expire_minutes * 60,
    )


@app.post(
    "/v1/transcribe",
    response_model=TranscriptionResult,
    response_model_by_alias=True,
    responses={
        401: {"model": ErrorResponse},
        422: {"model": ErrorResponse},
        429: {"model": ErrorResponse},
        502: {"model": ErrorResponse},
    }
)
@limiter.limit(f"{settings.rate_limit_requests}/minute")
async def transcribe_audio(
    request: Request,
    body: TranscriptionRequest,
    user_info: dict = Depends(get_current_user),
    orchestrator: TranscriptionOrchestrator = Depends(get_orchestrator),
):
    """Transcribes a single recording sent as a data URI."""
    request_id = request.state.request_id
    audit_logger.log_api_request(
        request_id=request_id,
        endpoint=request.url.path,
        method=request.method,
        subject=user_info.get("sub"),
        user_agent=request.headers.get("user-agent"),
    )

    with transcription_duration.time():
        result = await orchestrator.transcribe(body)

    logger.info(f"[{request_id}] Transcription complete: {len(result.transcribed_text)} characters")
    return result


@app.post(
    "/v1/transcribe/batch",
    response_model=BatchTranscriptionResponse,
    response_model_by_alias=True,
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        413: {"model": ErrorResponse},
        422: {"model": ErrorResponse},
        429: {"model": ErrorResponse},
        502: {"model": ErrorResponse},
    }
)
@limiter.limit(f"{settings.rate_limit_requests}/minute")
async def transcribe_batch(
    request: Request,
    files: List[UploadFile] = File(...),
    disclaimer_accepted: bool = Form(False),
    user_info: dict = Depends(get_current_user),
    orchestrator: TranscriptionOrchestrator = Depends(get_orchestrator),
):
    """
    Transcribes several uploaded recordings one after another. Non-audio
    files and repeated file names are ignored. If any file fails the whole
    batch fails and no transcript is returned.
    """
    request_id = request.state.request_id

    if not disclaimer_accepted:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="The medical disclaimer must be accepted before transcribing."
        )

    max_bytes = settings.max_file_size_mb * 1024 * 1024
    uploads = []
    for upload in files:
        data = await upload.read()
        if len(data) > max_bytes:
            raise HTTPException(
                status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                detail=f"File '{upload.filename}' exceeds {settings.max_file_size_mb} MB."
            )
        uploads.append(UploadedAudio(
            file_name=upload.filename or "audio",
            content_type=upload.content_type or "",
            data=data,
        ))

    selected = select_files(uploads)
    if not selected:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No audio files to transcribe."
        )

    audit_logger.log_api_request(
        request_id=request_id,
        endpoint=request.url.path,
        method=request.method,
        subject=user_info.get("sub"),
        file_count=len(selected),
    )

    with transcription_duration.time():
        transcriptions = await BatchTranscriber(orchestrator).transcribe_batch(selected)

    return BatchTranscriptionResponse(
        request_id=request_id,
        transcriptions=transcriptions,
        export_text=build_export_text(transcriptions),
        processing_time_ms=int((time.time() - request.state.start_time) * 1000),
    )


@app.post("/v1/transcribe/export", response_class=PlainTextResponse)
async def export_transcriptions(
    body: ExportRequest,
    user_info: dict = Depends(get_current_user),
):
    """Renders transcripts into the downloadable text file."""
    return PlainTextResponse(
        build_export_text(body.transcriptions),
        headers={"Content-Disposition": f'attachment; filename="{EXPORT_FILE_NAME}"'},
    )


def _error_response(request: Request, status_code: int, error: str, message: str, title: str = None) -> JSONResponse:
    request_id = getattr(request.state, 'request_id', None)
    body = ErrorResponse(
        error=error,
        title=title,
        message=message,
        request_id=request_id,
        timestamp=datetime.utcnow(),
    )
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(mode="json", exclude_none=True),
        headers={"X-Request-ID": request_id} if request_id else None,
    )


@app.exception_handler(MalformedInputError)
async def malformed_input_handler(request: Request, exc: MalformedInputError):
    """The audio envelope could not be parsed"""
    logger.warning(f"Malformed audio input: {exc}")
    return _error_response(request, status.HTTP_422_UNPROCESSABLE_ENTITY, "malformed_input", str(exc))


@app.exception_handler(RadioScriptError)
async def transcription_error_handler(request: Request, exc: RadioScriptError):
    """Any terminal transcription failure is reported with one generic message"""
    request_id = getattr(request.state, 'request_id', 'unknown')
    audit_logger.log_error(
        request_id=request_id,
        error_type=type(exc).__name__,
        error_message=str(exc),
        cause=repr(exc.cause) if exc.cause else None,
    )
    return _error_response(
        request,
        status.HTTP_502_BAD_GATEWAY,
        "transcription_failed",
        TRANSCRIPTION_ERROR_MESSAGE,
        title=TRANSCRIPTION_ERROR_TITLE,
    )


# Override rate limit handler
@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    """Custom rate limit error handler"""
    retry_after = settings.rate_limit_window

    response = RateLimitResponse(
        message="Too many requests. Please try again later.",
        retry_after=retry_after,
        limit=settings.rate_limit_requests,
        window=settings.rate_limit_window,
        timestamp=datetime.utcnow()
    )

    return JSONResponse(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        content=response.model_dump(mode="json"),
        headers={"Retry-After": str(retry_after)}
    )


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler for unhandled errors"""

    request_id = getattr(request.state, 'request_id', 'unknown')

    logger.error(f"Unhandled error in request {request_id}: {exc}")
    logger.error(f"Stacktrace: {traceback.format_exc()}")

    return JSONResponse(
        status_code=500,
        content={
            "error": "internal_server_error",
            "message": "An unexpected error occurred",
            "request_id": request_id,
            "timestamp": datetime.utcnow().isoformat()
        },
        headers={"X-Request-ID": request_id}
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "radioscript.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.environment == "development"
    )
