"""Tests for provider clients with the SDKs replaced by fakes."""

import json
from types import SimpleNamespace

import pytest
from rire import provider_anthropic, provider_gemini, provider_openai
from rire.interfaces import TRANSLATION_SCHEMA, URL_CONTEXT_TOOL


class FakeCompletions:
    def __init__(self, content=None, chunks=()):
        self.content = content
        self.chunks = chunks
        self.calls = []
        self.stream_closed = False

    def create(self, **payload):
        self.calls.append(payload)
        if payload.get("stream"):
            return FakeStream(self, self.chunks)
        message = SimpleNamespace(content=self.content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


class FakeStream:
    def __init__(self, owner, deltas):
        self._owner = owner
        self._deltas = deltas

    def __iter__(self):
        for delta in self._deltas:
            choices = [SimpleNamespace(delta=SimpleNamespace(content=delta))] if delta else []
            yield SimpleNamespace(choices=choices)

    def close(self):
        self._owner.stream_closed = True


@pytest.fixture
def openai_completions(monkeypatch):
    completions = FakeCompletions()
    options = {}

    def fake_openai(**kwargs):
        options.update(kwargs)
        return SimpleNamespace(chat=SimpleNamespace(completions=completions))

    monkeypatch.setattr(provider_openai.openai, "OpenAI", fake_openai)
    completions.options = options
    return completions


class TestOpenAIChatClient:
    """Test cases for OpenAIChatClient."""

    def test_sdk_retries_disabled(self, openai_completions):
        """Test that the SDK does not retry on its own."""
        provider_openai.create_client("sk", "gpt-4o-mini")
        assert openai_completions.options["max_retries"] == 0

    def test_free_text(self, openai_completions):
        """Test a plain completion."""
        openai_completions.content = "Bonjour"
        response = provider_openai.create_client("sk", "gpt-4o-mini").generate("Hello")
        assert response.text == "Bonjour"
        assert response.output is None
        assert "response_format" not in openai_completions.calls[0]

    def test_structured(self, openai_completions):
        """Test JSON mode with the schema in a system message."""
        openai_completions.content = '{"a": "Hallo"}'
        client = provider_openai.create_client("sk", "gpt-4o-mini")
        response = client.generate("Translate", schema=TRANSLATION_SCHEMA)

        payload = openai_completions.calls[0]
        assert payload["response_format"] == {"type": "json_object"}
        assert payload["messages"][0]["role"] == "system"
        assert response.output == {"a": "Hallo"}

    def test_structured_invalid_json(self, openai_completions):
        """Test that invalid JSON leaves the output empty."""
        openai_completions.content = "not json"
        client = provider_openai.create_client("sk", "gpt-4o-mini")
        assert client.generate("x", schema=TRANSLATION_SCHEMA).output is None

    def test_stream(self, openai_completions):
        """Test that deltas are yielded and the stream is closed."""
        openai_completions.chunks = ["[{", None, '"key": "a"}]']
        client = provider_openai.create_client("sk", "gpt-4o-mini")
        assert "".join(client.stream("x")) == '[{"key": "a"}]'
        assert openai_completions.stream_closed


class FakeMessages:
    def __init__(self, content):
        self.content = content
        self.calls = []

    def create(self, **payload):
        self.calls.append(payload)
        return SimpleNamespace(content=self.content)

    def stream(self, **payload):
        self.calls.append(payload)
        return FakeTextStream(["Hel", "lo"])


class FakeTextStream:
    def __init__(self, parts):
        self.text_stream = iter(parts)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False


@pytest.fixture
def anthropic_messages(monkeypatch):
    messages = FakeMessages([])
    monkeypatch.setattr(
        provider_anthropic,
        "Anthropic",
        lambda **kwargs: SimpleNamespace(messages=messages),
    )
    return messages


class TestAnthropicClient:
    """Test cases for AnthropicClient."""

    def test_free_text(self, anthropic_messages):
        """Test that text blocks are joined."""
        anthropic_messages.content = [
            SimpleNamespace(type="text", text="Hal"),
            SimpleNamespace(type="text", text="lo"),
        ]
        response = provider_anthropic.create_client("k", "claude").generate("Hello")
        assert response.text == "Hallo"
        assert "tools" not in anthropic_messages.calls[0]

    def test_structured_via_forced_tool(self, anthropic_messages):
        """Test that the schema becomes a forced tool call."""
        anthropic_messages.content = [
            SimpleNamespace(type="tool_use", name="translations", input={"a": "Hallo"})
        ]
        response = provider_anthropic.create_client("k", "claude").generate(
            "Translate", schema=TRANSLATION_SCHEMA
        )
        payload = anthropic_messages.calls[0]
        assert payload["tool_choice"] == {"type": "tool", "name": "translations"}
        assert payload["tools"][0]["input_schema"] == TRANSLATION_SCHEMA.json_schema
        assert response.output == {"a": "Hallo"}

    def test_stream(self, anthropic_messages):
        """Test streamed text."""
        assert list(provider_anthropic.create_client("k", "claude").stream("x")) == ["Hel", "lo"]


class FakeModels:
    def __init__(self, text="", chunks=()):
        self.text = text
        self.chunks = chunks
        self.calls = []
        self.stream_closed = False

    def generate_content(self, **kwargs):
        self.calls.append(kwargs)
        return SimpleNamespace(text=self.text)

    def generate_content_stream(self, **kwargs):
        self.calls.append(kwargs)
        return FakeChunkStream(self, self.chunks)


class FakeChunkStream:
    def __init__(self, owner, texts):
        self._owner = owner
        self._chunks = iter([SimpleNamespace(text=text) for text in texts])

    def __iter__(self):
        return self

    def __next__(self):
        return next(self._chunks)

    def close(self):
        self._owner.stream_closed = True


@pytest.fixture
def gemini_models(monkeypatch):
    models = FakeModels()
    monkeypatch.setattr(
        provider_gemini.genai, "Client", lambda **kwargs: SimpleNamespace(models=models)
    )
    return models


class TestGeminiClient:
    """Test cases for GeminiClient."""

    def test_url_context_tool(self, gemini_models):
        """Test that the URL context tool is enabled on request."""
        gemini_models.text = "[]"
        client = provider_gemini.create_client("g", "gemini-2.5-flash")
        client.generate("Visit", tools=(URL_CONTEXT_TOOL,))

        config = gemini_models.calls[0]["config"]
        assert len(config.tools) == 1
        assert config.tools[0].url_context is not None

    def test_structured(self, gemini_models):
        """Test JSON output under a response schema."""
        gemini_models.text = json.dumps({"a": "Hallo"})
        client = provider_gemini.create_client("g", "gemini-2.5-flash")
        response = client.generate("Translate", schema=TRANSLATION_SCHEMA)

        config = gemini_models.calls[0]["config"]
        assert config.response_mime_type == "application/json"
        assert response.output == {"a": "Hallo"}

    def test_stream_skips_empty_chunks(self, gemini_models):
        """Test that empty chunks are not yielded."""
        gemini_models.chunks = ["[", None, "]"]
        client = provider_gemini.create_client("g", "gemini-2.5-flash")
        assert list(client.stream("x")) == ["[", "]"]

    def test_stream_closed_when_exhausted(self, gemini_models):
        """Test that the SDK stream is closed after the last chunk."""
        gemini_models.chunks = ["[", "]"]
        client = provider_gemini.create_client("g", "gemini-2.5-flash")
        assert "".join(client.stream("x")) == "[]"
        assert gemini_models.stream_closed

    def test_stream_closed_when_abandoned(self, gemini_models):
        """Test that closing the generator early closes the SDK stream."""
        gemini_models.chunks = ["[", "{", "}", "]"]
        stream = provider_gemini.create_client("g", "gemini-2.5-flash").stream("x")
        assert next(stream) == "["
        stream.close()
        assert gemini_models.stream_closed
