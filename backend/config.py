"""Settings and logging setup for the generation backend.

Every value can come from the environment or a ``.env`` file. Provider
credentials double as feature switches: a backend whose key is empty (or
still holds a template placeholder) is simply not enabled.
"""

import json
import logging
from typing import Any

import structlog
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_CORS_ORIGINS = ["http://localhost:3000"]


def _split_origins(value: str) -> list[str]:
    """Origins from a JSON array, a comma-separated list or a single URL."""
    value = value.strip()
    if value.startswith("["):
        try:
            decoded = json.loads(value)
        except json.JSONDecodeError:
            decoded = None
        if isinstance(decoded, list):
            return [str(origin) for origin in decoded]
    return [origin.strip() for origin in value.split(",") if origin.strip()]


class Settings(BaseSettings):
    """Runtime configuration, read once at import time.

    Attributes:
        openai_api_key: Credential of the OpenAI backend (and the default judge).
        anthropic_api_key: Credential of the Claude backend.
        xai_api_key: Credential of the Grok backend.
        groq_api_key: Credential of the Groq-hosted Llama backend.
        deepseek_api_key: Credential of the DeepSeek backend.
        gemini_api_key: Credential of the Gemini backend.
        mistral_api_key: Credential of the Mistral backend.
        judge_backend: Backend id whose credential the judge adapter uses.
        judge_model: Model used for requirement analysis and evaluation.
        generation_timeout_seconds: Deadline of each fan-out generation call.
        judge_timeout_seconds: Deadline of analysis and evaluation calls.
        evaluation_excerpt_chars: Characters of each submission shown to the judge.
        llm_max_retries: Retries of transient provider errors within one call.
        staging_dir: Directory deployments are written under.
        staging_domain: Domain of subdomain-style preview URLs.
        use_path_based_previews: Address previews by path instead of subdomain.
        preview_base_url: Base of path-based preview URLs.
        database_path: SQLite file holding the generation history.
        backend_port: Port uvicorn listens on.
        cors_origins: Origins allowed by the CORS middleware.
        log_level: Minimum level emitted (DEBUG, INFO, WARNING, ERROR).
        log_format: ``json`` for machine-readable logs, anything else for console.
    """

    # Provider credentials; empty disables the backend
    openai_api_key: str = ""
    anthropic_api_key: str = ""
    xai_api_key: str = ""
    groq_api_key: str = ""
    deepseek_api_key: str = ""
    gemini_api_key: str = ""
    mistral_api_key: str = ""

    # LiteLLM model ids, provider-prefixed
    openai_model: str = "openai/gpt-4o"
    claude_model: str = "anthropic/claude-3-5-sonnet-20241022"
    grok_model: str = "xai/grok-2-1212"
    llama_model: str = "groq/llama-3.1-405b-reasoning"
    deepseek_model: str = "deepseek/deepseek-coder"
    gemini_model: str = "gemini/gemini-1.5-pro"
    mistral_model: str = "mistral/mistral-large-2407"

    # Judge
    judge_backend: str = "openai"
    judge_model: str = "openai/gpt-4o"
    judge_temperature: float = 0.1
    judge_max_tokens: int = 2000
    judge_timeout_seconds: float = 30.0
    evaluation_excerpt_chars: int = 1500

    # Generation
    generation_temperature: float = 0.1
    generation_max_tokens: int = 4000
    generation_timeout_seconds: float = 30.0
    llm_max_retries: int = 1

    # Preview deployment
    staging_dir: str = "./data/staging"
    staging_domain: str = "staging.localhost"
    use_path_based_previews: bool = True
    preview_base_url: str = "http://localhost/preview"

    # Generation history
    database_path: str = "./data/generations.db"

    # Server
    backend_port: int = 3001
    cors_origins: str | list[str] = DEFAULT_CORS_ORIGINS
    log_level: str = "INFO"
    log_format: str = "json"

    model_config = SettingsConfigDict(
        # `.env` next to the process or one level up (repo root vs `backend/`)
        env_file=(".env", "../.env"),
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    @field_validator("cors_origins", mode="before")
    @classmethod
    def parse_cors_origins(cls, v: Any) -> list[str]:
        if isinstance(v, list):
            return v
        if isinstance(v, str):
            return _split_origins(v)
        return list(DEFAULT_CORS_ORIGINS)


def configure_logging(log_level: str = "INFO", log_format: str = "json") -> None:
    """Install the structlog pipeline used by every module.

    Args:
        log_level: Minimum level name; unknown names fall back to INFO.
        log_format: ``json`` renders one JSON object per event, any other
            value renders colored console output.
    """
    renderer: structlog.types.Processor = (
        structlog.processors.JSONRenderer()
        if log_format == "json"
        else structlog.dev.ConsoleRenderer(colors=True)
    )
    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


settings = Settings()

configure_logging(settings.log_level, settings.log_format)
