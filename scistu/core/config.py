from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()

def _get_env(name: str, default: str | None = None) -> str | None:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    return value


def _get_env_bool(name: str, default: bool) -> bool:
    raw = _get_env(name, None)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _get_env_int(name: str, default: int) -> int:
    raw = _get_env(name, None)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _get_env_float(name: str, default: float) -> float:
    raw = _get_env(name, None)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _get_env_list(name: str, default: list[str]) -> tuple[str, ...]:
    raw = _get_env(name, None)
    if raw is None:
        return tuple(default)
    values = [item.strip() for item in raw.split(",")]
    clean = [item for item in values if item]
    return tuple(clean) if clean else tuple(default)


@dataclass(frozen=True)
class Settings:
    api_key: str | None
    access_mode: str
    rate_limit: str
    llm_rate_limit: str
    rate_limit_enabled: bool
    humanize_rate_limit: int
    humanize_rate_window_s: int
    humanize_history_max_sessions: int
    log_level: str
    sentry_dsn: str | None
    cors_allowed_origins: tuple[str, ...]
    cors_allow_origin_regex: str | None
    cors_allow_credentials: bool
    max_upload_mb: int
    preview_chars: int
    reader_session_ttl_s: int
    reader_max_articles: int
    blog_content_dir: str
    blog_posts_per_page: int
    default_chat_model: str
    default_humanize_model: str
    resume_analysis_model: str
    llm_timeout_s: float
    llm_max_retries: int

    @property
    def max_upload_bytes(self) -> int:
        return self.max_upload_mb * 1024 * 1024


settings = Settings(
    api_key=_get_env("API_KEY"),
    access_mode=(_get_env("ACCESS_MODE", "public") or "public").strip().lower(),
    rate_limit=_get_env("RATE_LIMIT", "60/minute") or "60/minute",
    llm_rate_limit=_get_env("LLM_RATE_LIMIT", "20/minute") or "20/minute",
    rate_limit_enabled=_get_env_bool("RATE_LIMIT_ENABLED", True),
    humanize_rate_limit=_get_env_int("HUMANIZE_RATE_LIMIT", 5),
    humanize_rate_window_s=_get_env_int("HUMANIZE_RATE_WINDOW_S", 60),
    humanize_history_max_sessions=_get_env_int("HUMANIZE_HISTORY_MAX_SESSIONS", 1000),
    log_level=_get_env("LOG_LEVEL", "INFO") or "INFO",
    sentry_dsn=_get_env("SENTRY_DSN"),
    cors_allowed_origins=_get_env_list(
        "CORS_ALLOWED_ORIGINS",
        [
            "http://localhost:3000",
            "http://127.0.0.1:3000",
            "http://[::1]:3000",
        ],
    ),
    cors_allow_origin_regex=_get_env("CORS_ALLOW_ORIGIN_REGEX", r"^https:\/\/[a-z0-9-]+-.*\.vercel\.app$"),
    cors_allow_credentials=_get_env_bool("CORS_ALLOW_CREDENTIALS", False),
    max_upload_mb=_get_env_int("MAX_UPLOAD_MB", 10),
    preview_chars=_get_env_int("PREVIEW_CHARS", 500),
    reader_session_ttl_s=_get_env_int("READER_SESSION_TTL_S", 3600),
    reader_max_articles=_get_env_int("READER_MAX_ARTICLES", 50),
    blog_content_dir=_get_env("BLOG_CONTENT_DIR", "content/blog") or "content/blog",
    blog_posts_per_page=_get_env_int("BLOG_POSTS_PER_PAGE", 5),
    default_chat_model=_get_env("DEFAULT_CHAT_MODEL", "openai:gpt-4o") or "openai:gpt-4o",
    default_humanize_model=(
        _get_env("DEFAULT_HUMANIZE_MODEL", "deepseek:deepseek-reasoner") or "deepseek:deepseek-reasoner"
    ),
    resume_analysis_model=_get_env("RESUME_ANALYSIS_MODEL", "openai:gpt-4") or "openai:gpt-4",
    llm_timeout_s=_get_env_float("LLM_TIMEOUT_S", 30.0),
    llm_max_retries=_get_env_int("LLM_MAX_RETRIES", 2),
)

if settings.access_mode not in {"public", "protected"}:
    raise RuntimeError("ACCESS_MODE must be either 'public' or 'protected'.")

if settings.access_mode == "protected" and not settings.api_key:
    raise RuntimeError("ACCESS_MODE=protected requires API_KEY to be set.")
