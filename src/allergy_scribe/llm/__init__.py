# ============================================================================
# src/allergy_scribe/llm/__init__.py
# ============================================================================
"""
Text-to-structure backends.
"""

from .base import BaseLLMClient, BackendType
from .client import create_client, clear_client_cache
from .ollama_client import OllamaClient
from .openai_client import OpenAIClient, AzureOpenAIClient

__all__ = [
    'BaseLLMClient',
    'BackendType',
    'create_client',
    'clear_client_cache',
    'OllamaClient',
    'OpenAIClient',
    'AzureOpenAIClient',
]
