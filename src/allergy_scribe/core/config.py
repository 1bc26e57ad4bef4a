# ============================================================================
# src/allergy_scribe/core/config.py
# ============================================================================
"""
Centralized Configuration Management

Loads configuration from environment variables (.env file) with sensible defaults.
All runtime config values for the extraction backends flow from this single
source of truth.

Usage:
    from allergy_scribe.core.config import get_config, Config

    # Get full config dict
    config = get_config()

    # Or use Config class for attribute access
    cfg = get_config_instance()
    print(cfg.openai_model)
"""

import os
from dataclasses import asdict, dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict

from dotenv import load_dotenv


def _load_dotenv() -> bool:
    """Load .env file if it exists."""
    # Project root first, then current working directory
    env_path = Path(__file__).parent.parent.parent.parent / '.env'
    if env_path.exists():
        load_dotenv(env_path)
        return True

    cwd_env = Path.cwd() / '.env'
    if cwd_env.exists():
        load_dotenv(cwd_env)
        return True

    return False


def _get_bool(key: str, default: bool = False) -> bool:
    """Get boolean from environment variable."""
    value = os.getenv(key)
    if value is None:
        return default
    return value.lower() in ('true', '1', 'yes', 'on')


def _get_int(key: str, default: int = 0) -> int:
    """Get integer from environment variable."""
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _get_float(key: str, default: float = 0.0) -> float:
    """Get float from environment variable."""
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        return default


@dataclass
class Config:
    """
    Configuration container with attribute access.

    All values are loaded from environment variables with defaults.
    Credentials are allowed to be empty here; clients raise
    ConfigurationError on first use instead of at startup.
    """

    # General
    log_level: str = field(default_factory=lambda: os.getenv('LOG_LEVEL', 'INFO'))

    # Text-to-structure backend: "openai" | "azure" | "ollama"
    backend: str = field(default_factory=lambda: os.getenv('BACKEND', 'openai'))

    # OpenAI
    openai_api_key: str = field(default_factory=lambda: os.getenv('OPENAI_API_KEY', ''))
    openai_model: str = field(default_factory=lambda: os.getenv('OPENAI_MODEL', 'gpt-4o'))
    openai_base_url: str = field(default_factory=lambda: os.getenv('OPENAI_BASE_URL', ''))

    # Azure OpenAI
    azure_endpoint: str = field(default_factory=lambda: os.getenv('AZURE_OPENAI_ENDPOINT', ''))
    azure_api_key: str = field(default_factory=lambda: os.getenv('AZURE_OPENAI_API_KEY', ''))
    azure_deployment: str = field(default_factory=lambda: os.getenv('AZURE_OPENAI_CHAT_MODEL_DEPLOYMENT', 'gpt-4o'))
    azure_api_version: str = field(default_factory=lambda: os.getenv('AZURE_OPENAI_API_VERSION', '2024-08-01-preview'))

    # Ollama
    ollama_host: str = field(default_factory=lambda: os.getenv('OLLAMA_HOST', 'http://localhost:11434'))
    ollama_model: str = field(default_factory=lambda: os.getenv('OLLAMA_MODEL', 'llama3.1:8b'))

    # Generation
    max_tokens: int = field(default_factory=lambda: _get_int('MAX_TOKENS', 8000))
    temperature: float = field(default_factory=lambda: _get_float('TEMPERATURE', 0.1))

    # Extraction
    # Hard ceiling for one extraction round-trip; exceeding it is a retryable failure
    extraction_timeout: float = field(default_factory=lambda: _get_float('EXTRACTION_TIMEOUT', 120.0))
    strict_schema: bool = field(default_factory=lambda: _get_bool('STRICT_SCHEMA', True))
    # OCR sources below this confidence (0-1) get a source quality flag
    low_ocr_confidence_threshold: float = field(
        default_factory=lambda: _get_float('LOW_OCR_CONFIDENCE_THRESHOLD', 0.6)
    )

    # Visit persistence: "memory" | "sqlite"
    visit_store: str = field(default_factory=lambda: os.getenv('VISIT_STORE', 'memory'))

    def __post_init__(self):
        """Ensure .env is loaded before accessing values."""
        _load_dotenv()

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary for passing to components."""
        return asdict(self)


@lru_cache(maxsize=1)
def get_config() -> Dict[str, Any]:
    """
    Get configuration dictionary.

    Cached for performance - call once and pass to components.

    Returns:
        Configuration dictionary with all settings
    """
    _load_dotenv()
    return Config().to_dict()


def get_config_instance() -> Config:
    """
    Get Config instance for attribute access.

    Returns:
        Config instance with all settings
    """
    _load_dotenv()
    return Config()


def reload_config() -> Dict[str, Any]:
    """Reload configuration from environment (clears cache)."""
    get_config.cache_clear()
    return get_config()
