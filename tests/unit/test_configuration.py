# ============================================================================
# FILE: tests/unit/test_configuration.py
# ============================================================================
"""
Unit tests for configuration loading and backend selection
"""

import pytest

from allergy_scribe.config import base_settings, clinical_settings, logging_settings
from allergy_scribe.core.config import get_config, reload_config
from allergy_scribe.llm.client import clear_client_cache, create_client
from allergy_scribe.llm.ollama_client import OllamaClient
from allergy_scribe.llm.openai_client import AzureOpenAIClient, OpenAIClient


@pytest.fixture(autouse=True)
def fresh_config():
    clear_client_cache()
    yield
    clear_client_cache()
    reload_config()


def test_settings_defaults():
    assert base_settings.VISIT_DB_PATH.name == "visits.db"
    assert logging_settings.LOG_LEVEL
    assert "severe" in clinical_settings.RED_FLAG_SEVERITIES
    assert "life-threatening" in clinical_settings.RED_FLAG_SEVERITIES


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("BACKEND", "ollama")
    monkeypatch.setenv("EXTRACTION_TIMEOUT", "30")
    monkeypatch.setenv("STRICT_SCHEMA", "false")

    config = reload_config()

    assert config["backend"] == "ollama"
    assert config["extraction_timeout"] == 30.0
    assert config["strict_schema"] is False
    assert get_config() is config


def test_malformed_numbers_fall_back(monkeypatch):
    monkeypatch.setenv("MAX_TOKENS", "lots")

    assert reload_config()["max_tokens"] == 8000


@pytest.mark.parametrize("backend,expected", [
    ("openai", OpenAIClient),
    ("azure", AzureOpenAIClient),
    ("ollama", OllamaClient),
    ("OLLAMA", OllamaClient),
])
def test_create_client_selects_backend(backend, expected):
    client = create_client({"backend": backend})

    assert type(client) is expected


def test_create_client_caches_per_connection():
    first = create_client({"backend": "ollama", "ollama_host": "http://a:11434"})

    assert create_client({"backend": "ollama", "ollama_host": "http://a:11434"}) is first
    assert create_client({"backend": "ollama", "ollama_host": "http://b:11434"}) is not first

    clear_client_cache()
    assert create_client({"backend": "ollama", "ollama_host": "http://a:11434"}) is not first


def test_create_client_unknown_backend():
    with pytest.raises(ValueError):
        create_client({"backend": "gemini"})


@pytest.mark.asyncio
async def test_health_check_without_credentials():
    client = OpenAIClient({"openai_api_key": ""})

    health = await client.health_check()

    assert health["healthy"] is False
    assert health["backend"] == "openai"


def test_openai_sdk_does_not_retry():
    client = OpenAIClient({"openai_api_key": "sk-test", "extraction_timeout": 30})

    assert client.client.max_retries == 0
    assert client.client.timeout == 30.0


def test_azure_sdk_does_not_retry():
    client = AzureOpenAIClient({
        "azure_endpoint": "https://example.openai.azure.com",
        "azure_api_key": "key",
        "extraction_timeout": 30,
    })

    assert client.client.max_retries == 0
    assert client.client.timeout == 30.0
