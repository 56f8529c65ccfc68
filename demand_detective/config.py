"""Configuration helpers for the Detective de Demanda backend."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import List, Mapping

from dotenv import load_dotenv

from .errors import FatalConfigurationError

DEFAULT_MODEL = "gpt-4o-mini"
DEFAULT_LOG_LEVEL = "INFO"

load_dotenv(override=False)


@dataclass(frozen=True)
class LLMSettings:
    """Settings container for the text-generation provider.

    Only OpenAI is wired in; the key is resolved once at startup and a missing
    key stops the application from being created.
    """

    openai_api_key: str | None = None
    model: str = DEFAULT_MODEL
    log_level: str = DEFAULT_LOG_LEVEL
    allowed_origins: tuple[str, ...] = ()

    @property
    def has_api_key(self) -> bool:
        """True when an OpenAI key is configured."""

        return bool(self.openai_api_key)


def _split_origins(raw: str | None) -> tuple[str, ...]:
    if not raw:
        return ()
    return tuple(origin.strip() for origin in raw.split(",") if origin.strip())


def _settings_from(environ: Mapping[str, str]) -> LLMSettings:
    return LLMSettings(
        openai_api_key=environ.get("OPENAI_API_KEY") or None,
        model=environ.get("DEMAND_DETECTIVE_MODEL") or DEFAULT_MODEL,
        log_level=(environ.get("DEMAND_DETECTIVE_LOG_LEVEL") or DEFAULT_LOG_LEVEL).upper(),
        allowed_origins=_split_origins(environ.get("DEMAND_DETECTIVE_ALLOWED_ORIGINS")),
    )


@lru_cache(maxsize=1)
def get_llm_settings() -> LLMSettings:
    """Read environment variables and return cached LLM settings."""

    return _settings_from(os.environ)


def require_llm_settings() -> LLMSettings:
    """Return settings, refusing to continue when no credential is configured."""

    settings = get_llm_settings()
    if not settings.has_api_key:
        raise FatalConfigurationError(
            "OPENAI_API_KEY environment variable not set; the wizard cannot start without it."
        )
    return settings


def resolve_allowed_origins(settings: LLMSettings, defaults: List[str]) -> List[str]:
    """Return allowed CORS origins, preferring the configured override."""

    if settings.allowed_origins:
        return list(settings.allowed_origins)
    return list(defaults)
