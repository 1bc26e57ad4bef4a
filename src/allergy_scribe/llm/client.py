# ============================================================================
# src/allergy_scribe/llm/client.py
# ============================================================================
"""
LLM Client Factory

Provides a unified interface for creating text-to-structure clients.
Supports multiple backends:
- openai: OpenAI chat completions (default)
- azure: Azure OpenAI deployment
- ollama: Ollama server

Usage:
    from allergy_scribe.llm.client import create_client

    client = create_client({'backend': 'ollama'})
    result = await client.generate(prompt, system=instruction, json_schema=schema)
"""

import logging
from typing import Dict, Any, Optional

from .base import BaseLLMClient, BackendType
from .ollama_client import OllamaClient, DEFAULT_OLLAMA_MODEL
from .openai_client import AzureOpenAIClient, OpenAIClient
from ..core.config import get_config


DEFAULT_BACKEND = "openai"

# Singleton cache keyed by backend + connection params so HTTP sessions
# are reused across visits.
_client_cache: Dict[tuple, BaseLLMClient] = {}

_logger = logging.getLogger(__name__)


def create_client(config: Optional[Dict[str, Any]] = None) -> BaseLLMClient:
    """
    Factory function to create an LLM client.

    Configuration is loaded from the environment (.env) and merged with any
    passed config. Passed config values take precedence.

    Args:
        config: Configuration dict with at minimum:
            - backend: "openai" | "azure" | "ollama" (default: "openai")

    Returns:
        Configured client instance (cached per connection params)

    Raises:
        ValueError: If backend type is not supported
    """
    env_config = get_config()
    config = {**env_config, **(config or {})}
    backend = (config.get('backend') or DEFAULT_BACKEND).lower()

    if backend == BackendType.OLLAMA.value:
        cache_key = (backend, config.get('ollama_host'), config.get('ollama_model'))
    elif backend == BackendType.OPENAI.value:
        cache_key = (backend, config.get('openai_base_url'), config.get('openai_model'), config.get('openai_api_key'))
    elif backend == BackendType.AZURE.value:
        cache_key = (backend, config.get('azure_endpoint'), config.get('azure_deployment'), config.get('azure_api_key'))
    else:
        raise ValueError(
            f"Unknown backend: {backend}. "
            f"Supported backends: {', '.join(b.value for b in BackendType)}"
        )

    if cache_key in _client_cache:
        _logger.debug(f"Reusing cached {backend} client")
        return _client_cache[cache_key]

    if backend == BackendType.OLLAMA.value:
        client = OllamaClient(config)
    elif backend == BackendType.AZURE.value:
        client = AzureOpenAIClient(config)
    else:
        client = OpenAIClient(config)

    _client_cache[cache_key] = client
    _logger.info(f"Created and cached {backend} client: model={client.model_name}")

    return client


def clear_client_cache():
    """Drop cached clients (tests, config reloads)."""
    _client_cache.clear()


__all__ = [
    "create_client",
    "clear_client_cache",
    "BaseLLMClient",
    "BackendType",
    "OllamaClient",
    "OpenAIClient",
    "AzureOpenAIClient",
    "DEFAULT_BACKEND",
    "DEFAULT_OLLAMA_MODEL",
]
