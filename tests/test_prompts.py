"""Unit tests for prompt builders."""

import json

from rire.prompts import (
    build_advise_prompt,
    build_advise_system_prompt,
    build_advise_website_prompt,
    build_revision_prompt,
    build_revision_system_prompt,
    build_system_prompt,
    build_translation_prompt,
    resolve_language_name,
)

BATCH = [("greeting", "Hello {name}"), ("cta", "Sign <b>up</b>")]


class TestSystemPrompt:
    """Test cases for build_system_prompt."""

    def test_known_language(self):
        assert "from English to French" in build_system_prompt("fr", "")

    def test_unknown_language_verbatim(self):
        assert "from English to unknown-lang" in build_system_prompt("unknown-lang", "")

    def test_placeholders_mentioned(self):
        prompt = build_system_prompt("de", "")
        assert "{name}, {count}, {{variable}}" in prompt
        assert "only translate" in prompt

    def test_context_omitted_when_empty(self):
        assert "Product context" not in build_system_prompt("de", "")

    def test_context_appended(self):
        prompt = build_system_prompt("de", "A budgeting app for students")
        assert prompt.endswith(
            "Product context for better translations:\nA budgeting app for students"
        )

    def test_custom_language_table(self):
        prompt = build_system_prompt("tlh", "", {"tlh": "Klingon"})
        assert "from English to Klingon" in prompt

    def test_deterministic(self):
        assert build_system_prompt("ja", "ctx") == build_system_prompt("ja", "ctx")


class TestResolveLanguageName:
    """Test cases for resolve_language_name."""

    def test_case_insensitive(self):
        assert resolve_language_name("DE") == "German"

    def test_fallback(self):
        assert resolve_language_name("xx-YY") == "xx-YY"


class TestTranslationPrompt:
    """Test cases for build_translation_prompt."""

    def test_batch_serialized(self):
        prompt = build_translation_prompt("SYSTEM", BATCH)
        assert prompt.startswith("SYSTEM\n")
        payload = prompt.split("Messages to translate:\n\n", 1)[1]
        assert json.loads(payload) == dict(BATCH)

    def test_non_ascii_kept(self):
        prompt = build_translation_prompt("SYSTEM", [("a", "Grüße")])
        assert "Grüße" in prompt


class TestRevisionPrompts:
    """Test cases for revision prompts."""

    def test_selected_types_described(self):
        prompt = build_revision_system_prompt(["grammar", "phrasing"], "")
        assert "- grammar: Grammar or spelling mistakes (critical)" in prompt
        assert "- phrasing:" in prompt
        assert "- wording:" not in prompt

    def test_context_conditional(self):
        assert "Product context" not in build_revision_system_prompt(["grammar"], "")
        prompt = build_revision_system_prompt(["grammar"], "Docs site")
        assert "Product context for better understanding:\nDocs site" in prompt

    def test_revision_prompt(self):
        prompt = build_revision_prompt("SYSTEM", BATCH)
        assert "JSON array of suggestions" in prompt
        assert json.loads(prompt.split("Messages to analyze:\n\n", 1)[1]) == dict(BATCH)


class TestAdvisePrompts:
    """Test cases for website advising prompts."""

    def test_website_prompt(self):
        prompt = build_advise_website_prompt(["seo", "ai-tone"], "https://example.com")
        assert "Visit the website https://example.com" in prompt
        assert "- seo:" in prompt
        assert "- ai-tone:" in prompt
        assert "buttons and calls to action" in prompt
        assert "type: one of seo, ai-tone" in prompt

    def test_label_prompts(self):
        system = build_advise_system_prompt(["spelling"], "https://example.com")
        prompt = build_advise_prompt(system, [("/pricing button", "Buy now")])
        assert "extracted from the website: https://example.com" in prompt
        assert json.loads(prompt.split("Labels to analyze:\n\n", 1)[1]) == {
            "/pricing button": "Buy now"
        }

    def test_grammar_uses_revision_description(self):
        prompt = build_advise_website_prompt(["grammar"], "https://example.com")
        assert "- grammar: Grammar or spelling mistakes (critical)" in prompt
