"""Unit tests for configuration loading."""

import pytest
from rire.config import (
    ADVISE_BATCH_SIZE,
    DEFAULT_MODELS,
    AppSettings,
    EngineSettings,
    ProviderSettings,
    load_language_names,
)

ENV_VARS = (
    "RIRE_PROVIDER",
    "RIRE_MODEL",
    "GOOGLE_API_KEY",
    "OPENAI_API_KEY",
    "ANTHROPIC_API_KEY",
    "RIRE_TRANSLATION_BATCH_SIZE",
    "RIRE_REVISION_BATCH_SIZE",
    "RIRE_ADVISE_BATCH_SIZE",
    "RIRE_MAX_ATTEMPTS",
    "RIRE_RETRY_BASE_DELAY_SECONDS",
)


@pytest.fixture
def clean_env(monkeypatch):
    """Remove every variable the settings read."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestProviderSettings:
    """Test cases for ProviderSettings.from_env."""

    def test_defaults_to_gemini(self, clean_env):
        """Test the default provider and model."""
        clean_env.setenv("GOOGLE_API_KEY", "g-key")
        settings = ProviderSettings.from_env()
        assert settings == ProviderSettings("gemini", "g-key", DEFAULT_MODELS["gemini"])

    def test_explicit_provider_and_model(self, clean_env):
        """Test provider from the argument and model from the environment."""
        clean_env.setenv("ANTHROPIC_API_KEY", "sk-ant")
        clean_env.setenv("RIRE_MODEL", "claude-custom")
        settings = ProviderSettings.from_env("Anthropic")
        assert settings.provider == "anthropic"
        assert settings.model == "claude-custom"

    def test_provider_from_environment(self, clean_env):
        """Test RIRE_PROVIDER selection."""
        clean_env.setenv("RIRE_PROVIDER", "openai")
        clean_env.setenv("OPENAI_API_KEY", "sk")
        assert ProviderSettings.from_env().provider == "openai"

    def test_missing_key(self, clean_env):
        """Test that a missing API key is reported by variable name."""
        with pytest.raises(RuntimeError, match="OPENAI_API_KEY"):
            ProviderSettings.from_env("openai")

    def test_unsupported_provider(self, clean_env):
        """Test that unknown providers are rejected."""
        with pytest.raises(ValueError, match="Unsupported provider"):
            ProviderSettings.from_env("mistral")


class TestEngineSettings:
    """Test cases for EngineSettings.from_env."""

    def test_defaults(self, clean_env):
        """Test default batch sizes and retry knobs."""
        settings = EngineSettings.from_env()
        assert settings.translation_batch_size == 100
        assert settings.revision_batch_size == 100
        assert settings.advise_batch_size == ADVISE_BATCH_SIZE
        assert settings.max_attempts == 3
        assert settings.retry_base_delay_seconds == 2.0

    def test_overrides(self, clean_env):
        """Test environment overrides."""
        clean_env.setenv("RIRE_TRANSLATION_BATCH_SIZE", "20")
        clean_env.setenv("RIRE_RETRY_BASE_DELAY_SECONDS", "0.5")
        settings = EngineSettings.from_env()
        assert settings.translation_batch_size == 20
        assert settings.retry_base_delay_seconds == 0.5

    def test_invalid_integer(self, clean_env):
        """Test that malformed integers raise a clear error."""
        clean_env.setenv("RIRE_MAX_ATTEMPTS", "three")
        with pytest.raises(ValueError, match="RIRE_MAX_ATTEMPTS"):
            EngineSettings.from_env()


def test_app_settings_load(clean_env):
    """Test aggregation of provider and engine settings."""
    clean_env.setenv("OPENAI_API_KEY", "sk")
    settings = AppSettings.load("openai")
    assert settings.provider.api_key == "sk"
    assert settings.engine == EngineSettings()


class TestLanguageNames:
    """Test cases for load_language_names."""

    def test_embedded_table(self, tmp_path):
        """Test fallback to the embedded table when no file exists."""
        names = load_language_names(tmp_path / "missing.yml")
        assert names["fr"] == "French"

    def test_yaml_override(self, tmp_path):
        """Test loading names from YAML with lower-cased codes."""
        path = tmp_path / "languages.yml"
        path.write_text("languages:\n  PT-BR: Brazilian Portuguese\n", encoding="utf-8")
        assert load_language_names(path) == {"pt-br": "Brazilian Portuguese"}

    def test_invalid_yaml(self, tmp_path):
        """Test that a file without a languages mapping is rejected."""
        path = tmp_path / "languages.yml"
        path.write_text("- de\n- fr\n", encoding="utf-8")
        with pytest.raises(RuntimeError, match="languages"):
            load_language_names(path)
