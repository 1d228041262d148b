"""Core interfaces for dependency inversion."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterator, Optional, Protocol, Sequence, Tuple

URL_CONTEXT_TOOL = "url_context"


@dataclass(frozen=True)
class OutputSchema:
    """A JSON Schema the provider should enforce on its answer.

    The root is always an object so every provider can honour it.
    """

    name: str
    description: str
    json_schema: Dict[str, Any]


@dataclass(frozen=True)
class ModelResponse:
    """Raw result of one model call.

    ``output`` holds the decoded structured payload when a schema was
    requested and the provider returned one; ``text`` is the free-text answer.
    """

    text: str = ""
    output: Any = None


class LLMClient(Protocol):
    """Protocol for language model clients used by the batch engine.

    This protocol defines the interface that all LLM providers must implement.
    It allows for easy swapping between providers (Gemini, OpenAI, Anthropic)
    and test doubles without changing the orchestration logic.

    Implementations perform exactly one network request per ``generate`` call
    and let provider errors propagate unchanged; retrying is the caller's job.
    """

    @property
    def model(self) -> str:
        """Return the model identifier (e.g., 'gemini-2.5-flash', 'gpt-4o-mini')."""
        ...

    @property
    def supports_structured_output(self) -> bool:
        """Whether ``generate`` can enforce an :class:`OutputSchema`."""
        ...

    @property
    def supports_url_context(self) -> bool:
        """Whether the model can fetch web pages through the ``url_context`` tool."""
        ...

    def generate(
        self,
        prompt: str,
        schema: Optional[OutputSchema] = None,
        tools: Sequence[str] = (),
    ) -> ModelResponse:
        """Send ``prompt`` and return the model's answer.

        Args:
            prompt: Complete prompt text.
            schema: Optional structured output contract.
            tools: Names of provider tools to enable (e.g. ``url_context``).
        """
        ...

    def stream(self, prompt: str, tools: Sequence[str] = ()) -> Iterator[str]:
        """Send ``prompt`` and yield the answer text as it is generated."""
        ...


class BatchTask(Protocol):
    """Protocol for the work the batch engine runs over message entries.

    A task owns the prompt wording and the reconciliation policy; the engine
    only splits entries into batches and calls the model.
    """

    schema: OutputSchema

    def new_accumulator(self) -> Any:
        """Return the empty result a run fills batch by batch."""
        ...

    def build_prompt(self, batch: Sequence[Tuple[str, str]]) -> str:
        """Render the complete prompt for one batch of ``(key, text)`` entries."""
        ...

    def reconcile(
        self,
        accumulator: Any,
        batch: Sequence[Tuple[str, str]],
        response: ModelResponse,
        structured: bool,
    ) -> bool:
        """Merge ``response`` for ``batch`` into ``accumulator``.

        Returns False when the answer could not be parsed and the fallback
        policy supplied the batch result instead.
        """
        ...


TRANSLATION_SCHEMA = OutputSchema(
    name="translations",
    description="Translated text for every message key",
    json_schema={
        "type": "object",
        "additionalProperties": {"type": "string", "description": "Translated text"},
    },
)


def suggestions_schema(error_types: Sequence[str], with_location: bool = False) -> OutputSchema:
    """Schema for ``{"suggestions": [...]}`` restricted to ``error_types``."""
    properties: Dict[str, Any] = {
        "key": {"type": "string", "description": "The message key"},
        "original": {"type": "string", "description": "The original text"},
        "suggested": {"type": "string", "description": "The suggested replacement"},
        "reason": {"type": "string", "description": "Brief explanation for the suggestion"},
        "type": {"type": "string", "enum": list(error_types), "description": "The type of issue"},
    }
    if with_location:
        properties["section"] = {"type": "string", "description": "Where on the page"}
        properties["severity"] = {
            "type": "string",
            "enum": ["high", "medium", "low", "very low"],
        }
    return OutputSchema(
        name="suggestions",
        description="Revision suggestions for messages with issues",
        json_schema={
            "type": "object",
            "properties": {
                "suggestions": {
                    "type": "array",
                    "items": {
                        "type": "object",
                        "properties": properties,
                        "required": ["key", "original", "suggested", "reason", "type"],
                    },
                }
            },
            "required": ["suggestions"],
        },
    )


__all__ = [
    "BatchTask",
    "LLMClient",
    "ModelResponse",
    "OutputSchema",
    "TRANSLATION_SCHEMA",
    "URL_CONTEXT_TOOL",
    "suggestions_schema",
]
