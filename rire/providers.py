"""Provider registry and credential checks."""

from __future__ import annotations

import logging
from typing import Callable, Dict

import requests

from rire import provider_anthropic, provider_gemini, provider_openai
from rire.config import SUPPORTED_PROVIDERS
from rire.interfaces import LLMClient

logger = logging.getLogger(__name__)

VERIFY_TIMEOUT_SECONDS = 10
ANTHROPIC_VERSION = "2023-06-01"
ANTHROPIC_PROBE_MODEL = "claude-3-haiku-20240307"

_FACTORIES: Dict[str, Callable[[str, str], LLMClient]] = {
    "gemini": provider_gemini.create_client,
    "openai": provider_openai.create_client,
    "anthropic": provider_anthropic.create_client,
}


class UnknownProviderError(ValueError):
    """Raised for a provider name outside the supported set."""


def create_client(provider: str, api_key: str, model: str) -> LLMClient:
    """Build the :class:`LLMClient` for ``provider``."""
    try:
        factory = _FACTORIES[provider]
    except KeyError:
        raise UnknownProviderError(
            f"Unknown provider: {provider}. Expected one of {', '.join(SUPPORTED_PROVIDERS)}"
        ) from None
    return factory(api_key, model)


def _probe_gemini(api_key: str) -> bool:
    response = requests.get(
        "https://generativelanguage.googleapis.com/v1beta/models",
        params={"key": api_key},
        timeout=VERIFY_TIMEOUT_SECONDS,
    )
    return response.status_code == 200


def _probe_openai(api_key: str) -> bool:
    response = requests.get(
        "https://api.openai.com/v1/models",
        headers={"Authorization": f"Bearer {api_key}"},
        timeout=VERIFY_TIMEOUT_SECONDS,
    )
    return response.status_code == 200


def _probe_anthropic(api_key: str) -> bool:
    # No cheap listing endpoint; a one-token message tells a bad key (401)
    # apart from everything else.
    response = requests.post(
        "https://api.anthropic.com/v1/messages",
        headers={
            "x-api-key": api_key,
            "anthropic-version": ANTHROPIC_VERSION,
            "content-type": "application/json",
        },
        json={
            "model": ANTHROPIC_PROBE_MODEL,
            "max_tokens": 1,
            "messages": [{"role": "user", "content": "hi"}],
        },
        timeout=VERIFY_TIMEOUT_SECONDS,
    )
    return response.status_code != 401


_PROBES: Dict[str, Callable[[str], bool]] = {
    "gemini": _probe_gemini,
    "openai": _probe_openai,
    "anthropic": _probe_anthropic,
}


def verify_api_key(api_key: str, provider: str) -> bool:
    """Return True when ``api_key`` looks valid for ``provider``; never raises."""
    if not api_key:
        return False
    probe = _PROBES.get(provider)
    if probe is None:
        logger.warning(f"Cannot verify key for unknown provider: {provider}")
        return False
    try:
        return probe(api_key)
    except Exception as exc:  # noqa: BLE001
        logger.warning(f"API key check for {provider} failed: {exc}")
        return False


__all__ = ["UnknownProviderError", "create_client", "verify_api_key"]
