"""Configuration management for the Sea Lion gateway."""

from __future__ import annotations

import os
from dataclasses import dataclass


DEFAULT_MODEL_ID = "@cf/aisingapore/gemma-sea-lion-v4-27b-it"


def _env_bool(name: str, default: bool) -> bool:
    """Get boolean environment variable with fallback."""
    v = os.getenv(name)
    if v is None or v == "":
        return default
    return v.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_float(name: str, default: float) -> float:
    """Get float environment variable with fallback."""
    v = os.getenv(name)
    if v is None or v == "":
        return default
    try:
        return float(v)
    except ValueError:
        return default


def _env_int(name: str, default: int) -> int:
    """Get integer environment variable with fallback."""
    v = os.getenv(name)
    if v is None or v == "":
        return default
    try:
        return int(v.strip())
    except ValueError:
        return default


def _env_str(name: str, default: str) -> str:
    """Get string environment variable with fallback."""
    v = os.getenv(name)
    if v is None:
        return default
    return v.strip()


@dataclass(frozen=True)
class AppConfig:
    """Application configuration."""

    # Workers AI settings
    cloudflare_account_id: str
    cloudflare_api_token: str
    workers_ai_base_url: str
    model_id: str

    # Timeouts and limits
    request_timeout_s: float
    max_request_bytes: int

    # Server settings
    port: int
    log_level: str
    log_path: str
    log_color: bool
    user_agent: str

    @classmethod
    def from_env(cls) -> AppConfig:
        """Load configuration from environment variables."""
        return cls(
            cloudflare_account_id=_env_str("CLOUDFLARE_ACCOUNT_ID", ""),
            cloudflare_api_token=_env_str("CLOUDFLARE_API_TOKEN", ""),
            workers_ai_base_url=_env_str(
                "WORKERS_AI_BASE_URL", "https://api.cloudflare.com/client/v4"
            ).rstrip("/"),
            model_id=_env_str("MODEL_ID", DEFAULT_MODEL_ID) or DEFAULT_MODEL_ID,
            request_timeout_s=_env_float("REQUEST_TIMEOUT_S", 60.0),
            max_request_bytes=_env_int("MAX_REQUEST_BYTES", 2_000_000),  # ~2MB
            port=_env_int("PORT", 8000),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper().strip(),
            log_path=_env_str("LOG_PATH", "/var/log/sealion-gateway/sealion-gateway.log"),
            log_color=_env_bool("LOG_COLOR", True),
            user_agent=_env_str("USER_AGENT", "sealion-gateway/0.1.0"),
        )

    @property
    def has_credentials(self) -> bool:
        return bool(self.cloudflare_account_id and self.cloudflare_api_token)

    def validate(self, require_credentials: bool = True) -> None:
        """Validate configuration."""
        if require_credentials and not self.cloudflare_account_id:
            raise ValueError("CLOUDFLARE_ACCOUNT_ID is required")
        if require_credentials and not self.cloudflare_api_token:
            raise ValueError("CLOUDFLARE_API_TOKEN is required")
        if not self.workers_ai_base_url.startswith(("http://", "https://")):
            raise ValueError("WORKERS_AI_BASE_URL must be an http(s) URL")
        if not self.model_id:
            raise ValueError("MODEL_ID must be non-empty")
        if self.request_timeout_s <= 0:
            raise ValueError("REQUEST_TIMEOUT_S must be > 0")
        if self.max_request_bytes <= 0:
            raise ValueError("MAX_REQUEST_BYTES must be > 0")
        if not 0 < self.port < 65536:
            raise ValueError("PORT must be between 1 and 65535")
        if self.log_level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL", "DISABLE"}:
            raise ValueError("LOG_LEVEL must be DEBUG, INFO, WARNING, ERROR, CRITICAL or DISABLE")
        if not self.log_path:
            raise ValueError("LOG_PATH must be non-empty")
        if not self.user_agent:
            raise ValueError("USER_AGENT must be non-empty")


def load_config() -> AppConfig:
    """Load configuration from environment."""
    return AppConfig.from_env()
