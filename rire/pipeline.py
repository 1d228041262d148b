"""Batch orchestrator for translation and revision runs."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, Generic, List, Mapping, Optional, Sequence, TypeVar

from rire.batcher import partition
from rire.config import (
    DEFAULT_MAX_ATTEMPTS,
    DEFAULT_RETRY_BASE_DELAY_SECONDS,
    LEGACY_BATCH_SIZE,
    EngineSettings,
    load_language_names,
)
from rire.interfaces import (
    TRANSLATION_SCHEMA,
    BatchTask,
    LLMClient,
    ModelResponse,
    OutputSchema,
    suggestions_schema,
)
from rire.prompts import (
    build_advise_prompt,
    build_advise_system_prompt,
    build_revision_prompt,
    build_revision_system_prompt,
    build_system_prompt,
    build_translation_prompt,
)
from rire.providers import create_client
from rire.reconcile import (
    suggestions_from_output,
    suggestions_from_text,
    translations_from_output,
    translations_from_text,
)
from rire.retry import with_retry
from rire.structures import (
    ADVISE_ERROR_TYPES,
    REVISION_ERROR_TYPES,
    Entry,
    ErrorType,
    MessageMap,
    RevisionSuggestion,
)

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]
T = TypeVar("T")


@dataclass(frozen=True)
class BatchReport:
    """Outcome of one batch; ``parsed`` is False when the fallback policy applied."""

    index: int
    size: int
    parsed: bool


@dataclass
class RunResult(Generic[T]):
    value: T
    batches: List[BatchReport] = field(default_factory=list)

    @property
    def fallback_batches(self) -> int:
        return sum(1 for report in self.batches if not report.parsed)


class TranslationTask:
    """Translate every entry into one target language."""

    schema: OutputSchema = TRANSLATION_SCHEMA

    def __init__(
        self,
        target_language: str,
        context: str = "",
        language_names: Optional[Mapping[str, str]] = None,
    ) -> None:
        self.system_prompt = build_system_prompt(target_language, context, language_names)

    def new_accumulator(self) -> MessageMap:
        return {}

    def build_prompt(self, batch: Sequence[Entry]) -> str:
        return build_translation_prompt(self.system_prompt, batch)

    def reconcile(
        self,
        accumulator: MessageMap,
        batch: Sequence[Entry],
        response: ModelResponse,
        structured: bool,
    ) -> bool:
        if structured:
            translated, parsed = translations_from_output(batch, response.output)
        else:
            translated, parsed = translations_from_text(batch, response.text)
        accumulator.update(translated)
        return parsed


class RevisionTask:
    """Collect suggestions for entries with grammar, wording or phrasing issues."""

    catalog: Mapping[str, ErrorType] = REVISION_ERROR_TYPES
    with_location = False

    def __init__(self, error_types: Sequence[str], context: str = "") -> None:
        self.error_types = list(error_types)
        # Any catalog type validates, selected or not.
        self.allowed_types = tuple(dict.fromkeys([*self.catalog, *self.error_types]))
        self.schema = suggestions_schema(self.allowed_types, with_location=self.with_location)
        self.system_prompt = self._system_prompt(context)

    def _system_prompt(self, context: str) -> str:
        return build_revision_system_prompt(self.error_types, context)

    def new_accumulator(self) -> List[RevisionSuggestion]:
        return []

    def build_prompt(self, batch: Sequence[Entry]) -> str:
        return build_revision_prompt(self.system_prompt, batch)

    def reconcile(
        self,
        accumulator: List[RevisionSuggestion],
        batch: Sequence[Entry],
        response: ModelResponse,
        structured: bool,
    ) -> bool:
        if structured:
            suggestions, parsed = suggestions_from_output(response.output, self.allowed_types)
        else:
            suggestions, parsed = suggestions_from_text(response.text, self.allowed_types)
        accumulator.extend(suggestions)
        return parsed


class LabelAdviseTask(RevisionTask):
    """Review labels already extracted from a website."""

    catalog = ADVISE_ERROR_TYPES
    with_location = True

    def __init__(self, error_types: Sequence[str], website_url: str) -> None:
        self.website_url = website_url
        super().__init__(error_types)

    def _system_prompt(self, context: str) -> str:
        return build_advise_system_prompt(self.error_types, self.website_url)

    def build_prompt(self, batch: Sequence[Entry]) -> str:
        return build_advise_prompt(self.system_prompt, batch)


class BatchOrchestrator:
    """Drive prompt building, model calls and reconciliation batch by batch.

    Batches run strictly one after another. Each ``run`` owns its accumulator
    and progress counters, so one orchestrator may serve several runs.
    """

    def __init__(
        self,
        client: LLMClient,
        batch_size: int,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        base_delay_seconds: float = DEFAULT_RETRY_BASE_DELAY_SECONDS,
        structured_output: Optional[bool] = None,
        sleep: Optional[Callable[[float], None]] = None,
    ) -> None:
        self._client = client
        self._batch_size = batch_size
        self._max_attempts = max_attempts
        self._base_delay_seconds = base_delay_seconds
        if structured_output is None:
            structured_output = bool(getattr(client, "supports_structured_output", False))
        self._structured = structured_output
        self._sleep = sleep

    @property
    def structured(self) -> bool:
        return self._structured

    def run(
        self,
        entries: Mapping[str, str],
        task: BatchTask,
        on_progress: Optional[ProgressCallback] = None,
    ) -> RunResult:
        total = len(entries)
        result = RunResult(task.new_accumulator())
        if not total:
            return result

        batches = partition(entries, self._batch_size)
        mode = "structured" if self._structured else "free-text"
        logger.info(
            f"Processing {total} entries in {len(batches)} batches "
            f"({mode}, model {self._client.model})"
        )

        processed = 0
        for index, batch in enumerate(batches, start=1):
            prompt = task.build_prompt(batch)
            response = self._invoke(prompt, task.schema if self._structured else None)
            parsed = task.reconcile(result.value, batch, response, self._structured)
            result.batches.append(BatchReport(index=index, size=len(batch), parsed=parsed))

            processed += len(batch)
            logger.debug(f"Batch {index}/{len(batches)} done, {processed}/{total} entries")
            if on_progress is not None:
                on_progress(processed, total)

        if result.fallback_batches:
            logger.warning(f"{result.fallback_batches}/{len(batches)} batches used the fallback")
        return result

    def _invoke(self, prompt: str, schema: Optional[OutputSchema]) -> ModelResponse:
        return with_retry(
            lambda: self._client.generate(prompt, schema=schema),
            max_attempts=self._max_attempts,
            base_delay_seconds=self._base_delay_seconds,
            sleep=self._sleep,
        )


def _orchestrator(
    client: Optional[LLMClient],
    provider: str,
    api_key: str,
    model: str,
    batch_size: int,
    settings: EngineSettings,
    structured_output: Optional[bool],
) -> BatchOrchestrator:
    if client is None:
        client = create_client(provider, api_key, model)
    return BatchOrchestrator(
        client,
        batch_size=batch_size,
        max_attempts=settings.max_attempts,
        base_delay_seconds=settings.retry_base_delay_seconds,
        structured_output=structured_output,
    )


def translate_messages(
    messages: Mapping[str, str],
    target_language: str,
    context: str,
    api_key: str,
    provider: str,
    model: str,
    on_progress: Optional[ProgressCallback] = None,
    *,
    client: Optional[LLMClient] = None,
    batch_size: Optional[int] = None,
    structured_output: Optional[bool] = None,
    settings: Optional[EngineSettings] = None,
) -> Dict[str, str]:
    """Translate ``messages`` from English into ``target_language``.

    Messages are sent in batches (100 by default) and the result maps every
    key to its translation. Placeholders like ``{name}``, ``{count}`` and
    ``{{variable}}`` as well as HTML and markdown are kept by the prompt.
    When a free-text answer cannot be parsed, the batch keeps its source text.

    Args:
        messages: Message keys mapped to English source text.
        target_language: Language code such as ``de``; unknown codes are used as-is.
        context: Product description for better translations; may be empty.
        api_key: Provider credential.
        provider: ``gemini``, ``openai`` or ``anthropic``.
        model: Provider model identifier.
        on_progress: Called as ``(processed, total)`` after every batch.
        client: Ready-made client, bypassing ``provider``/``api_key`` (tests).
        batch_size: Override for the batch size.
        structured_output: Force structured (True) or free-text (False) mode.
        settings: Engine knobs; defaults to :class:`EngineSettings`.

    Raises:
        RateLimitError: A batch stayed rate limited after every retry.
    """
    settings = settings or EngineSettings()
    orchestrator = _orchestrator(
        client,
        provider,
        api_key,
        model,
        batch_size or settings.translation_batch_size,
        settings,
        structured_output,
    )
    task = TranslationTask(target_language, context, load_language_names())
    return orchestrator.run(messages, task, on_progress).value


def translate_messages_legacy(
    messages: Mapping[str, str],
    target_language: str,
    context: str,
    client: LLMClient,
    on_progress: Optional[ProgressCallback] = None,
    settings: Optional[EngineSettings] = None,
) -> Dict[str, str]:
    """Small-batch free-text translation for clients without structured output."""
    settings = settings or EngineSettings()
    orchestrator = BatchOrchestrator(
        client,
        batch_size=LEGACY_BATCH_SIZE,
        max_attempts=settings.max_attempts,
        base_delay_seconds=settings.retry_base_delay_seconds,
        structured_output=False,
    )
    task = TranslationTask(target_language, context, load_language_names())
    return orchestrator.run(messages, task, on_progress).value


def revise_messages(
    messages: Mapping[str, str],
    error_types: Sequence[str],
    context: str,
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
    """Proofread ``messages`` and return suggestions for entries with issues.

    Entries without issues produce nothing. A batch whose answer cannot be
    parsed also produces nothing, which callers cannot tell apart from a
    clean batch.
    """
    settings = settings or EngineSettings()
    orchestrator = _orchestrator(
        client,
        provider,
        api_key,
        model,
        batch_size or settings.revision_batch_size,
        settings,
        structured_output,
    )
    task = RevisionTask(error_types or ["grammar"], context)
    return orchestrator.run(messages, task, on_progress).value


__all__ = [
    "BatchOrchestrator",
    "BatchReport",
    "LabelAdviseTask",
    "RevisionTask",
    "RunResult",
    "TranslationTask",
    "revise_messages",
    "translate_messages",
    "translate_messages_legacy",
]
