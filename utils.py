"""Utility functions for the Sea Lion gateway."""

from __future__ import annotations

import logging
from pathlib import Path

from dotenv import load_dotenv

from config import AppConfig
from logger import LOGGER_NAME, mask_secret

log = logging.getLogger(LOGGER_NAME)


def load_env_files() -> bool:
    """Load .env files from program and current directory."""
    this_dir = Path(__file__).resolve().parent
    p1 = this_dir / ".env"
    p2 = Path.cwd() / ".env"

    loaded_any = False
    if p1.exists():
        loaded_any = load_dotenv(dotenv_path=str(p1), override=True) or loaded_any
        log.info("Loaded .env from %s", str(p1))
    else:
        log.debug("No .env in program directory: %s", str(p1))

    if p2.exists() and p2 != p1:
        loaded_any = load_dotenv(dotenv_path=str(p2), override=True) or loaded_any
        log.info("Loaded .env from %s", str(p2))
    elif p2 != p1:
        log.debug("No .env in current directory: %s", str(p2))

    if not loaded_any:
        log.info(".env not loaded (not found or no variables applied).")
    return loaded_any


def dump_config(config: AppConfig) -> None:
    """Log effective configuration at startup."""
    log.info("=== Sea Lion gateway startup config ===")
    log.info("WORKERS_AI_BASE_URL=%s", config.workers_ai_base_url)
    log.info("MODEL_ID=%s", config.model_id)
    log.info("CLOUDFLARE_ACCOUNT_ID=%s", mask_secret(config.cloudflare_account_id))
    log.info(
        "CLOUDFLARE_API_TOKEN_set=%s value=%s len=%s",
        bool(config.cloudflare_api_token),
        mask_secret(config.cloudflare_api_token),
        len(config.cloudflare_api_token or ""),
    )
    log.info("REQUEST_TIMEOUT_S=%s", config.request_timeout_s)
    log.info("MAX_REQUEST_BYTES=%s", config.max_request_bytes)
    log.info("PORT=%s", config.port)
    log.info("LOG_LEVEL=%s", config.log_level)
    log.info("LOG_PATH=%s", config.log_path)
    log.info("USER_AGENT=%s", config.user_agent)
    log.info("WorkingDir=%s", str(Path.cwd()))
    log.info("ProgramDir=%s", str(Path(__file__).resolve().parent))
    log.info("=======================================")
