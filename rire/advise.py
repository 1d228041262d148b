"""Website advising: whole-page review, streamed review and label batches."""

from __future__ import annotations

import json
import logging
import re
import threading
from typing import Iterable, Iterator, List, Mapping, Optional, Sequence

from rire.config import EngineSettings
from rire.interfaces import URL_CONTEXT_TOOL, LLMClient
from rire.pipeline import BatchOrchestrator, LabelAdviseTask, ProgressCallback
from rire.prompts import build_advise_website_prompt
from rire.providers import create_client
from rire.reconcile import StreamingArrayParser, suggestions_from_text
from rire.retry import with_retry
from rire.structures import (
    ADVISE_ERROR_TYPES,
    DEFAULT_WEBSITE_ERROR_TYPES,
    RevisionSuggestion,
)

logger = logging.getLogger(__name__)

ADVISE_PROVIDER = "gemini"
_SCHEME_RE = re.compile(r"^https?://", re.IGNORECASE)


def normalize_url(url: str) -> str:
    """Strip whitespace and default to https when no scheme is given."""
    url = url.strip()
    if not _SCHEME_RE.match(url):
        return f"https://{url}"
    return url


def _allowed_types(error_types: Sequence[str]) -> tuple:
    return tuple(dict.fromkeys([*ADVISE_ERROR_TYPES, *error_types]))


def _tools_for(client: LLMClient) -> tuple:
    return (URL_CONTEXT_TOOL,) if client.supports_url_context else ()


def advise_website(
    website_url: str,
    error_types: Sequence[str],
    api_key: str,
    model: str,
    *,
    client: Optional[LLMClient] = None,
    settings: Optional[EngineSettings] = None,
) -> List[RevisionSuggestion]:
    """Let the model visit ``website_url`` and return its suggestions.

    Uses Gemini with the URL context tool unless ``client`` is given. An
    answer without a parseable JSON array yields an empty list.
    """
    settings = settings or EngineSettings()
    if client is None:
        client = create_client(ADVISE_PROVIDER, api_key, model)
    error_types = list(error_types) or list(DEFAULT_WEBSITE_ERROR_TYPES)
    prompt = build_advise_website_prompt(error_types, website_url)
    tools = _tools_for(client)

    logger.info(f"Advising on {website_url} with {client.model}")
    response = with_retry(
        lambda: client.generate(prompt, tools=tools),
        max_attempts=settings.max_attempts,
        base_delay_seconds=settings.retry_base_delay_seconds,
    )
    suggestions, _ = suggestions_from_text(response.text, _allowed_types(error_types))
    return suggestions


def advise_website_stream(
    website_url: str,
    error_types: Sequence[str],
    api_key: str,
    model: str,
    *,
    client: Optional[LLMClient] = None,
    cancel: Optional[threading.Event] = None,
) -> Iterator[RevisionSuggestion]:
    """Yield suggestions for ``website_url`` as soon as the model completes each one.

    The sequence is finite and cannot be restarted. It ends when the model
    finishes, when ``cancel`` is set, or when the caller closes the generator;
    in the last two cases the provider stream is closed and any half-received
    suggestion is discarded.
    """
    if client is None:
        client = create_client(ADVISE_PROVIDER, api_key, model)
    error_types = list(error_types) or list(DEFAULT_WEBSITE_ERROR_TYPES)
    allowed = _allowed_types(error_types)
    prompt = build_advise_website_prompt(error_types, website_url)

    logger.info(f"Streaming advice for {website_url} with {client.model}")

    def cancelled() -> bool:
        return cancel is not None and cancel.is_set()

    chunks = client.stream(prompt, tools=_tools_for(client))
    parser = StreamingArrayParser()
    try:
        for chunk in chunks:
            for record in parser.feed(chunk):
                if cancelled():
                    break
                suggestion = RevisionSuggestion.from_dict(record, allowed)
                if suggestion is None:
                    logger.debug(f"Skipping streamed record outside the schema: {record}")
                    continue
                yield suggestion
            if cancelled():
                break
        if cancelled():
            logger.info("Advice stream cancelled by caller")
            parser.reset()
    finally:
        close = getattr(chunks, "close", None)
        if close is not None:
            close()


def advise_labels(
    labels: Mapping[str, str],
    website_url: str,
    error_types: Sequence[str],
    api_key: str,
    provider: str,
    model: str,
    on_progress: Optional[ProgressCallback] = None,
    *,
    client: Optional[LLMClient] = None,
    batch_size: Optional[int] = None,
    structured_output: Optional[bool] = None,
    settings: Optional[EngineSettings] = None,
) -> List[RevisionSuggestion]:
    """Review labels extracted from ``website_url`` in batches (50 by default).

    Keys describe where a label appears (page path and element type); values
    are the label text.
    """
    settings = settings or EngineSettings()
    if client is None:
        client = create_client(provider, api_key, model)
    orchestrator = BatchOrchestrator(
        client,
        batch_size=batch_size or settings.advise_batch_size,
        max_attempts=settings.max_attempts,
        base_delay_seconds=settings.retry_base_delay_seconds,
        structured_output=structured_output,
    )
    task = LabelAdviseTask(list(error_types) or list(DEFAULT_WEBSITE_ERROR_TYPES), website_url)
    return orchestrator.run(labels, task, on_progress).value


def encode_ndjson(suggestions: Iterable[RevisionSuggestion]) -> Iterator[str]:
    """Encode suggestions as newline-delimited JSON for a streaming response.

    A failure while producing suggestions becomes a final ``{"error": ...}``
    line so clients can tell an empty result from a broken one.
    """
    try:
        for suggestion in suggestions:
            yield json.dumps(suggestion.to_dict(), ensure_ascii=False) + "\n"
    except Exception as exc:  # noqa: BLE001 - reported in-band to the client
        logger.error(f"Advice stream failed: {exc}")
        yield json.dumps({"error": str(exc) or "Unknown error"}, ensure_ascii=False) + "\n"


__all__ = [
    "advise_labels",
    "advise_website",
    "advise_website_stream",
    "encode_ndjson",
    "normalize_url",
]
