"""OpenAI chat completions client implementation."""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, Iterator, Optional, Sequence, cast

import openai

from rire.interfaces import ModelResponse, OutputSchema

logger = logging.getLogger(__name__)


class OpenAIChatClient:
    """Thin wrapper around the OpenAI chat completions API.

    The SDK's own retries are disabled; rate limits surface as
    ``openai.RateLimitError`` whose message carries the 429 status.
    """

    supports_structured_output = True
    supports_url_context = False

    def __init__(self, api_key: str, model: str, timeout_seconds: Optional[float] = None) -> None:
        self._model = model
        options: Dict[str, Any] = {"api_key": api_key, "max_retries": 0}
        if timeout_seconds is not None:
            options["timeout"] = timeout_seconds
        self._client = openai.OpenAI(**options)

    @property
    def model(self) -> str:
        return self._model

    def _payload(self, prompt: str) -> Dict[str, Any]:
        return {
            "model": self._model,
            "messages": [{"role": "user", "content": prompt}],
        }

    def generate(
        self,
        prompt: str,
        schema: Optional[OutputSchema] = None,
        tools: Sequence[str] = (),
    ) -> ModelResponse:
        if tools:
            logger.debug(f"OpenAI client ignores unsupported tools: {', '.join(tools)}")
        client = cast(Any, self._client.chat.completions)
        payload = self._payload(prompt)
        if schema is not None:
            payload["response_format"] = {"type": "json_object"}
            payload["messages"].insert(
                0,
                {
                    "role": "system",
                    "content": (
                        f"Respond with a JSON object ({schema.description}) matching this "
                        f"JSON Schema: {json.dumps(schema.json_schema)}"
                    ),
                },
            )
        response = client.create(**payload)
        content = response.choices[0].message.content or ""
        if schema is None:
            return ModelResponse(text=content)
        try:
            output = json.loads(content) if content else None
        except json.JSONDecodeError:
            logger.warning("OpenAI returned invalid JSON despite json_object mode")
            output = None
        return ModelResponse(text=content, output=output)

    def stream(self, prompt: str, tools: Sequence[str] = ()) -> Iterator[str]:
        client = cast(Any, self._client.chat.completions)
        response = client.create(**self._payload(prompt), stream=True)
        try:
            for chunk in response:
                if not chunk.choices:
                    continue
                delta = chunk.choices[0].delta.content
                if delta:
                    yield delta
        finally:
            response.close()


def create_client(api_key: str, model: str) -> OpenAIChatClient:
    return OpenAIChatClient(api_key, model)


__all__ = ["OpenAIChatClient", "create_client"]
