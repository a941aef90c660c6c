"""
Central configuration for the RadioScript Service
"""

from typing import List, Optional
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from enum import Enum


class Environment(str, Enum):
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


class ModelName(str, Enum):
    GEMINI_15_FLASH = "gemini-1.5-flash-latest"
    GEMINI_15_PRO = "gemini-1.5-pro-latest"


class OrchestratorConfig(BaseModel):
    """Settings the transcription orchestrator is constructed with."""
    primary_model: str = ModelName.GEMINI_15_FLASH.value
    fallback_model: str = ModelName.GEMINI_15_PRO.value
    chunk_threshold_seconds: float = Field(default=180.0, gt=0)
    scratch_dir: Optional[str] = None
    model_timeout_seconds: float = Field(default=120.0, gt=0)
    chunk_fanout_timeout_seconds: float = Field(default=900.0, gt=0)
    max_parallel_chunks: int = Field(default=4, ge=1)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    # Environment
    environment: Environment = Environment.DEVELOPMENT
    debug: bool = Field(default=False)
    log_level: str = Field(default="INFO")

    # API Configuration
    api_title: str = Field(default="RadioScript API")
    api_description: str = Field(default="Radiology Dictation Transcription Service")
    api_version: str = Field(default="1.0.0")
    api_host: str = Field(default="0.0.0.0")
    api_port: int = Field(default=3001)
    api_secret_key: str = Field(...)

    # External Service APIs
    gemini_api_key: str = Field(...)

    # Rate Limiting
    rate_limit_requests: int = Field(default=10)
    rate_limit_window: int = Field(default=60)  # seconds

    # Audio Processing
    max_file_size_mb: int = Field(default=50)
    ffmpeg_binary: str = Field(default="ffmpeg")
    scratch_dir: Optional[str] = Field(default=None)
    chunk_threshold_seconds: float = Field(default=180.0)
    max_parallel_chunks: int = Field(default=4)

    # Models, Timeouts
    primary_model: str = Field(default=ModelName.GEMINI_15_FLASH.value)
    fallback_model: str = Field(default=ModelName.GEMINI_15_PRO.value)
    model_timeout_seconds: float = Field(default=120.0)
    chunk_fanout_timeout_seconds: float = Field(default=900.0)

    # CORS Configuration
    cors_origins: List[str] = Field(
        default=[
            "http://localhost:3000",
            "http://localhost:9002",
        ]
    )
    cors_allow_credentials: bool = Field(default=True)
    cors_allow_methods: List[str] = Field(default=["GET", "POST"])
    cors_allow_headers: List[str] = Field(default=["*"])

    # Security
    token_algorithm: str = Field(default="HS256")
    access_token_expire_minutes: int = Field(default=30)
    jwt_issuer: str = Field(default="radioscript")

    # Monitoring
    enable_metrics: bool = Field(default=True)
    metrics_path: str = Field(default="/metrics")

    # Audit Logging
    audit_log_enabled: bool = Field(default=True)

    def orchestrator_config(self) -> OrchestratorConfig:
        """Builds the explicit orchestrator configuration from the environment."""
        return OrchestratorConfig(
            primary_model=self.primary_model,
            fallback_model=self.fallback_model,
            chunk_threshold_seconds=self.chunk_threshold_seconds,
            scratch_dir=self.scratch_dir,
            model_timeout_seconds=self.model_timeout_seconds,
            chunk_fanout_timeout_seconds=self.chunk_fanout_timeout_seconds,
            max_parallel_chunks=self.max_parallel_chunks,
        )


# Global settings instance
settings = Settings()
