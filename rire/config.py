"""Configuration helpers for the localization engine."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional

import yaml

try:
    from dotenv import load_dotenv
except ImportError as exc:  # pragma: no cover - import guard
    raise RuntimeError(
        "python-dotenv is required. Install dependencies via 'pip install -e .'."
    ) from exc

SUPPORTED_PROVIDERS = ("gemini", "openai", "anthropic")
DEFAULT_PROVIDER = "gemini"
DEFAULT_MODELS = {
    "gemini": "gemini-2.5-flash",
    "openai": "gpt-4o-mini",
    "anthropic": "claude-sonnet-4-20250514",
}
API_KEY_ENV_VARS = {
    "gemini": "GOOGLE_API_KEY",
    "openai": "OPENAI_API_KEY",
    "anthropic": "ANTHROPIC_API_KEY",
}

TRANSLATION_BATCH_SIZE = 100
REVISION_BATCH_SIZE = 100
ADVISE_BATCH_SIZE = 50
LEGACY_BATCH_SIZE = 10
DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_RETRY_BASE_DELAY_SECONDS = 2.0

LANGUAGES_FILE = Path("config/languages.yml")
DEFAULT_LANGUAGE_NAMES = {
    "de": "German",
    "fr": "French",
    "es": "Spanish",
    "it": "Italian",
    "pt": "Portuguese",
    "nl": "Dutch",
    "pl": "Polish",
    "ja": "Japanese",
    "zh": "Chinese (Simplified)",
    "ko": "Korean",
    "ru": "Russian",
    "tr": "Turkish",
    "ar": "Arabic",
}


load_dotenv()


@dataclass(frozen=True)
class ProviderSettings:
    """Which provider and model to talk to, and with what credential."""

    provider: str
    api_key: str
    model: str

    @staticmethod
    def default_provider() -> str:
        return os.getenv("RIRE_PROVIDER", DEFAULT_PROVIDER).lower()

    @staticmethod
    def env_api_key(provider: str) -> Optional[str]:
        env_var = API_KEY_ENV_VARS.get(provider)
        return os.getenv(env_var) if env_var else None

    @classmethod
    def from_env(cls, provider: Optional[str] = None) -> "ProviderSettings":
        provider = (provider or cls.default_provider()).lower()
        if provider not in SUPPORTED_PROVIDERS:
            raise ValueError(
                f"Unsupported provider: {provider}. Expected one of {', '.join(SUPPORTED_PROVIDERS)}"
            )
        api_key = cls.env_api_key(provider)
        if not api_key:
            raise RuntimeError(
                f"{API_KEY_ENV_VARS[provider]} is not configured. Set it in the environment or .env file."
            )
        model = os.getenv("RIRE_MODEL", DEFAULT_MODELS[provider])
        return cls(provider=provider, api_key=api_key, model=model)


def _get_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ValueError(f"Environment variable {name} must be an integer, got: {raw}") from exc


def _get_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ValueError(f"Environment variable {name} must be a float, got: {raw}") from exc


@dataclass(frozen=True)
class EngineSettings:
    """Runtime knobs for the batch engine."""

    translation_batch_size: int = TRANSLATION_BATCH_SIZE
    revision_batch_size: int = REVISION_BATCH_SIZE
    advise_batch_size: int = ADVISE_BATCH_SIZE
    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    retry_base_delay_seconds: float = DEFAULT_RETRY_BASE_DELAY_SECONDS

    @classmethod
    def from_env(cls) -> "EngineSettings":
        return cls(
            translation_batch_size=_get_int("RIRE_TRANSLATION_BATCH_SIZE", TRANSLATION_BATCH_SIZE),
            revision_batch_size=_get_int("RIRE_REVISION_BATCH_SIZE", REVISION_BATCH_SIZE),
            advise_batch_size=_get_int("RIRE_ADVISE_BATCH_SIZE", ADVISE_BATCH_SIZE),
            max_attempts=_get_int("RIRE_MAX_ATTEMPTS", DEFAULT_MAX_ATTEMPTS),
            retry_base_delay_seconds=_get_float(
                "RIRE_RETRY_BASE_DELAY_SECONDS", DEFAULT_RETRY_BASE_DELAY_SECONDS
            ),
        )


@dataclass(frozen=True)
class AppSettings:
    """Aggregates configuration needed by the CLI entry points."""

    provider: ProviderSettings
    engine: EngineSettings

    @classmethod
    def load(cls, provider: Optional[str] = None) -> "AppSettings":
        return cls(ProviderSettings.from_env(provider), EngineSettings.from_env())


def load_language_names(path: Path = LANGUAGES_FILE) -> Dict[str, str]:
    """Load language code to name mapping, falling back to the embedded table."""
    if not path.exists():
        return dict(DEFAULT_LANGUAGE_NAMES)

    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
        if not isinstance(data, dict) or "languages" not in data:
            raise ValueError("languages.yml must contain a 'languages' mapping")
        return {str(k).lower(): str(v) for k, v in data["languages"].items()}
    except Exception as e:
        raise RuntimeError(f"Failed to load language configuration: {e}") from e


__all__ = [
    "API_KEY_ENV_VARS",
    "AppSettings",
    "DEFAULT_LANGUAGE_NAMES",
    "DEFAULT_MODELS",
    "EngineSettings",
    "ProviderSettings",
    "SUPPORTED_PROVIDERS",
    "load_language_names",
]
