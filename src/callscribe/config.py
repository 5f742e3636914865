"""
Configuration settings for the call-and-transcribe pipeline.

All settings are loaded from environment variables with sensible defaults.
Use .env file for local development (see .env.example).

Resilience settings come in two families (VOICE_* and TRANSCRIPTION_*)
because call placement needs short timeouts while transcription of long
recordings needs long ones.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # === Application ===
    APP_NAME: str = "Call Transcription Pipeline"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    ENVIRONMENT: str = "development"  # development | production

    # === Plivo (voice API) ===
    PLIVO_AUTH_ID: str = ""
    PLIVO_AUTH_TOKEN: str = ""
    PLIVO_PHONE_NUMBER: str = ""  # Default caller id for outbound calls
    PLIVO_BASE_URL: str = "https://api.plivo.com/v1"
    APP_BASE_URL: str = "http://localhost:8000"  # Public URL Plivo calls back into
    PLIVO_DEFAULT_TIME_LIMIT: int = 3600  # seconds
    PLIVO_DEFAULT_RING_TIMEOUT: int = 30  # seconds
    PLIVO_HTTP_TIMEOUT: float = 30.0  # seconds

    # === Deepgram (speech-to-text API) ===
    DEEPGRAM_API_KEY: str = ""
    DEEPGRAM_BASE_URL: str = "https://api.deepgram.com/v1"
    DEEPGRAM_MODEL: str = "nova-2"
    DEEPGRAM_LANGUAGE: str = "en"
    DEEPGRAM_SMART_FORMAT: bool = True
    DEEPGRAM_DIARIZE: bool = True
    DEEPGRAM_UTTERANCES: bool = True
    DEEPGRAM_SENTIMENT: bool = False
    DEEPGRAM_HTTP_TIMEOUT: float = 120.0  # seconds, recordings can be long

    # === Resilience: voice calls ===
    VOICE_BREAKER_TIMEOUT: float = 30.0  # seconds, 0 disables
    VOICE_BREAKER_ERROR_THRESHOLD_PERCENTAGE: float = 50.0
    VOICE_BREAKER_RESET_TIMEOUT: float = 30.0
    VOICE_BREAKER_ROLLING_COUNT_TIMEOUT: float = 10.0
    VOICE_BREAKER_ROLLING_COUNT_BUCKETS: int = 10
    VOICE_BREAKER_VOLUME_THRESHOLD: int = 0
    VOICE_RETRY_MAX_RETRIES: int = 3
    VOICE_RETRY_INITIAL_DELAY: float = 1.0
    VOICE_RETRY_MULTIPLIER: float = 2.0
    VOICE_RETRY_MAX_DELAY: float = 10.0

    # === Resilience: transcription ===
    TRANSCRIPTION_BREAKER_TIMEOUT: float = 60.0
    TRANSCRIPTION_BREAKER_ERROR_THRESHOLD_PERCENTAGE: float = 50.0
    TRANSCRIPTION_BREAKER_RESET_TIMEOUT: float = 30.0
    TRANSCRIPTION_BREAKER_ROLLING_COUNT_TIMEOUT: float = 10.0
    TRANSCRIPTION_BREAKER_ROLLING_COUNT_BUCKETS: int = 10
    TRANSCRIPTION_BREAKER_VOLUME_THRESHOLD: int = 0
    TRANSCRIPTION_RETRY_MAX_RETRIES: int = 3
    TRANSCRIPTION_RETRY_INITIAL_DELAY: float = 2.0
    TRANSCRIPTION_RETRY_MULTIPLIER: float = 2.0
    TRANSCRIPTION_RETRY_MAX_DELAY: float = 20.0

    # === Recording callback orchestration ===
    TRANSCRIPTION_MAX_CONCURRENCY: int = 0  # 0 = unbounded
    DEDUPE_RECORDING_CALLBACKS: bool = True  # Ignore duplicates while in flight

    # === Storage ===
    STORAGE_BACKEND: str = "redis"  # redis | memory
    REDIS_URL: str = "redis://redis:6379/0"
    REDIS_MAX_CONNECTIONS: int = 50  # Connection pool size
    CALL_RECORD_TTL_SECONDS: int = 0  # 0 = keep forever

    # === Monitoring ===
    PROMETHEUS_ENABLED: bool = True

    # === HTTP ===
    CORS_ORIGINS: list[str] = ["*"]


# Global settings instance
settings = Settings()
