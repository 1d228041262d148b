"""Anthropic messages API client implementation."""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterator, Optional, Sequence

from anthropic import Anthropic

from rire.interfaces import ModelResponse, OutputSchema

logger = logging.getLogger(__name__)

DEFAULT_MAX_TOKENS = 8192


class AnthropicClient:
    """Wrapper around ``Anthropic().messages``.

    Structured output is obtained by forcing a single tool call whose input
    schema is the requested :class:`OutputSchema`.
    """

    supports_structured_output = True
    supports_url_context = False

    def __init__(self, api_key: str, model: str, max_tokens: int = DEFAULT_MAX_TOKENS) -> None:
        self._model = model
        self._max_tokens = max_tokens
        self._client = Anthropic(api_key=api_key, max_retries=0)

    @property
    def model(self) -> str:
        return self._model

    def _payload(self, prompt: str) -> Dict[str, Any]:
        return {
            "model": self._model,
            "max_tokens": self._max_tokens,
            "messages": [{"role": "user", "content": prompt}],
        }

    def generate(
        self,
        prompt: str,
        schema: Optional[OutputSchema] = None,
        tools: Sequence[str] = (),
    ) -> ModelResponse:
        if tools:
            logger.debug(f"Anthropic client ignores unsupported tools: {', '.join(tools)}")
        payload = self._payload(prompt)
        if schema is not None:
            payload["tools"] = [
                {
                    "name": schema.name,
                    "description": schema.description,
                    "input_schema": schema.json_schema,
                }
            ]
            payload["tool_choice"] = {"type": "tool", "name": schema.name}
        message = self._client.messages.create(**payload)

        text_parts = []
        output = None
        for block in message.content:
            if block.type == "text":
                text_parts.append(block.text)
            elif block.type == "tool_use" and schema is not None and block.name == schema.name:
                output = block.input
        return ModelResponse(text="".join(text_parts), output=output)

    def stream(self, prompt: str, tools: Sequence[str] = ()) -> Iterator[str]:
        with self._client.messages.stream(**self._payload(prompt)) as stream:
            yield from stream.text_stream


def create_client(api_key: str, model: str) -> AnthropicClient:
    return AnthropicClient(api_key, model)


__all__ = ["AnthropicClient", "create_client"]
