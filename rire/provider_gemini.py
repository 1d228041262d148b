"""Google Gemini client implementation (google-genai SDK)."""

from __future__ import annotations

import json
import logging
from typing import Iterator, List, Optional, Sequence

from google import genai
from google.genai import types

from rire.interfaces import URL_CONTEXT_TOOL, ModelResponse, OutputSchema

logger = logging.getLogger(__name__)


class GeminiClient:
    """Wrapper around ``genai.Client().models``.

    Rate limits surface as ``google.genai.errors.ClientError`` whose message
    starts with ``429 RESOURCE_EXHAUSTED``.
    """

    supports_structured_output = True
    supports_url_context = True

    def __init__(self, api_key: str, model: str) -> None:
        self._model = model
        self._client = genai.Client(api_key=api_key)

    @property
    def model(self) -> str:
        return self._model

    @staticmethod
    def _tools(tools: Sequence[str]) -> Optional[List[types.Tool]]:
        enabled = []
        for name in tools:
            if name == URL_CONTEXT_TOOL:
                enabled.append(types.Tool(url_context=types.UrlContext()))
            else:
                logger.debug(f"Gemini client ignores unknown tool: {name}")
        return enabled or None

    def generate(
        self,
        prompt: str,
        schema: Optional[OutputSchema] = None,
        tools: Sequence[str] = (),
    ) -> ModelResponse:
        config = types.GenerateContentConfig(tools=self._tools(tools))
        if schema is not None:
            config.response_mime_type = "application/json"
            config.response_json_schema = schema.json_schema
        response = self._client.models.generate_content(
            model=self._model,
            contents=prompt,
            config=config,
        )
        text = response.text or ""
        if schema is None:
            return ModelResponse(text=text)
        try:
            output = json.loads(text) if text else None
        except json.JSONDecodeError:
            logger.warning("Gemini returned invalid JSON despite a response schema")
            output = None
        return ModelResponse(text=text, output=output)

    def stream(self, prompt: str, tools: Sequence[str] = ()) -> Iterator[str]:
        chunks = self._client.models.generate_content_stream(
            model=self._model,
            contents=prompt,
            config=types.GenerateContentConfig(tools=self._tools(tools)),
        )
        try:
            for chunk in chunks:
                if chunk.text:
                    yield chunk.text
        finally:
            close = getattr(chunks, "close", None)
            if close is not None:
                close()


def create_client(api_key: str, model: str) -> GeminiClient:
    return GeminiClient(api_key, model)


__all__ = ["GeminiClient", "create_client"]
