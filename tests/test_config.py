import logging

from labor_rag.config import EMBEDDING_PREFIX_CHARS, Settings, get_settings, reset_settings_cache


def test_defaults_without_environment():
    settings = Settings.from_env()

    assert settings.port == 3001
    assert settings.max_file_size_mb == 20
    assert settings.max_file_size_bytes == 20 * 1024 * 1024
    assert settings.chunk_size == 1000
    assert settings.chunk_overlap == 200
    assert settings.embedding_prefix_chars == EMBEDDING_PREFIX_CHARS == 1000
    assert settings.chat_top_k == 6
    assert settings.llm_max_tokens == 1000
    assert settings.llm_temperature == 0.2
    assert settings.openai_model == "gpt-3.5-turbo"
    assert settings.embedding_provider == "mock"
    assert settings.llm_provider == "mock"
    assert settings.cors_origins == (
        "http://127.0.0.1:5500",
        "http://localhost:5500",
        "http://localhost:3000",
    )


def test_api_key_switches_default_backends(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")

    settings = Settings.from_env()

    assert settings.embedding_provider == "openai"
    assert settings.llm_provider == "openai"


def test_explicit_backends_and_overrides(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    monkeypatch.setenv("EMBEDDING_PROVIDER", "local")
    monkeypatch.setenv("LLM_PROVIDER", "MOCK")
    monkeypatch.setenv("PORT", "8080")
    monkeypatch.setenv("CORS_ORIGINS", "https://a.example, https://b.example")
    monkeypatch.setenv("LLM_TEMPERATURE", "0.7")

    settings = Settings.from_env()

    assert settings.embedding_provider == "local"
    assert settings.llm_provider == "mock"
    assert settings.port == 8080
    assert settings.cors_origins == ("https://a.example", "https://b.example")
    assert settings.llm_temperature == 0.7


def test_invalid_values_fall_back_to_defaults(monkeypatch):
    monkeypatch.setenv("PORT", "not-a-port")
    monkeypatch.setenv("LLM_TEMPERATURE", "warm")
    monkeypatch.setenv("EMBEDDING_PROVIDER", "cohere")
    monkeypatch.setenv("PROVIDER_MAX_RETRIES", "0")

    settings = Settings.from_env()

    assert settings.port == 3001
    assert settings.llm_temperature == 0.2
    assert settings.embedding_provider == "mock"
    assert settings.provider_max_retries == 1


def test_get_settings_is_cached_until_reset(monkeypatch):
    monkeypatch.setenv("CHAT_TOP_K", "4")
    first = get_settings()
    monkeypatch.setenv("CHAT_TOP_K", "9")

    assert get_settings() is first
    reset_settings_cache()
    assert get_settings().chat_top_k == 9


def test_missing_api_key_warns_about_mock_backends(caplog):
    with caplog.at_level(logging.WARNING, logger="labor_rag.config"):
        Settings.from_env()

    assert "EMBEDDING_PROVIDER and LLM_PROVIDER falling back to the mock backend" in caplog.text


def test_explicit_mock_backends_do_not_warn(monkeypatch, caplog):
    monkeypatch.setenv("EMBEDDING_PROVIDER", "mock")
    monkeypatch.setenv("LLM_PROVIDER", "mock")

    with caplog.at_level(logging.WARNING, logger="labor_rag.config"):
        Settings.from_env()

    assert "falling back to the mock backend" not in caplog.text
