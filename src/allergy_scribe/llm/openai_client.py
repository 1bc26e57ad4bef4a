# ============================================================================
# src/allergy_scribe/llm/openai_client.py
# ============================================================================
"""
OpenAI / Azure OpenAI Client

Chat completions with `response_format = json_schema` so the model is
biased toward output matching the clinical extraction schema.

The SDK client is sync; calls run in the default executor so the event
loop is not blocked. The SDK client is created lazily: missing credentials
surface as ConfigurationError on first use rather than at import time.

Usage:
    client = OpenAIClient({'openai_api_key': '...', 'openai_model': 'gpt-4o'})
    result = await client.generate(prompt, system=instruction, json_schema=schema)
"""

import asyncio
from datetime import datetime
from typing import Dict, Any, Optional

from openai import AzureOpenAI, OpenAI, OpenAIError

from .base import BaseLLMClient, BackendType
from ..utils.exceptions import ConfigurationError


class OpenAIClient(BaseLLMClient):
    """
    OpenAI chat completions client.

    Config options:
        openai_api_key: API key (required on first use)
        openai_model: Model name (default: gpt-4o)
        openai_base_url: Optional alternative endpoint
        max_tokens: Default max tokens (default: 8000)
        temperature: Default temperature (default: 0.1)
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        super().__init__(config)
        self._client = None

        self.api_key = self.config.get('openai_api_key', '')
        self.base_url = self.config.get('openai_base_url') or None
        self._model_name = self.config.get('openai_model') or 'gpt-4o'

        self.default_max_tokens = self.config.get('max_tokens', 8000)
        self.default_temperature = self.config.get('temperature', 0.1)
        # Retries belong to the caller; the SDK must neither retry nor outlive
        # the extraction timeout
        self.request_timeout = float(self.config.get('extraction_timeout') or 120.0)

        if not self.is_configured():
            self.logger.warning("OpenAI credentials not configured. Set OPENAI_API_KEY.")

    @property
    def backend_type(self) -> BackendType:
        return BackendType.OPENAI

    @property
    def model_name(self) -> str:
        return self._model_name

    def is_configured(self) -> bool:
        return bool(self.api_key)

    @property
    def client(self):
        """Lazy load OpenAI client."""
        if self._client is None:
            if not self.is_configured():
                raise ConfigurationError(
                    "The OPENAI_API_KEY environment variable is missing or empty"
                )
            self._client = OpenAI(
                api_key=self.api_key,
                base_url=self.base_url,
                max_retries=0,
                timeout=self.request_timeout,
            )
            self.logger.info(f"OpenAI client initialized: model={self._model_name}")
        return self._client

    async def health_check(self) -> Dict[str, Any]:
        healthy = self.is_configured()
        return {
            "healthy": healthy,
            "backend": self.backend_type.value,
            "model": self._model_name,
            "details": "Credentials configured" if healthy else "Missing API credentials",
        }

    async def generate(
        self,
        prompt: str,
        system: Optional[str] = None,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
        json_schema: Optional[Dict[str, Any]] = None,
        schema_name: str = "structured_output"
    ) -> Dict[str, Any]:
        """
        Generate a response with chat completions.

        Raises:
            ConfigurationError: credentials missing
            openai.OpenAIError: API or transport failure
        """
        start_time = datetime.now()

        max_tokens = max_tokens or self.default_max_tokens
        temperature = temperature if temperature is not None else self.default_temperature

        messages = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})

        request: Dict[str, Any] = {
            "model": self._model_name,
            "messages": messages,
            "max_tokens": max_tokens,
            "temperature": temperature,
        }
        if json_schema is not None:
            request["response_format"] = {
                "type": "json_schema",
                "json_schema": {
                    "name": schema_name,
                    "schema": json_schema,
                    "strict": bool(self.config.get('strict_schema', True)),
                },
            }

        client = self.client

        # Run in executor since the openai client is sync
        def call_api():
            return client.chat.completions.create(**request)

        loop = asyncio.get_running_loop()
        try:
            response = await loop.run_in_executor(None, call_api)
        except OpenAIError as e:
            self._record_failure()
            self.logger.error(f"{self.backend_type.value} completion failed: {e}")
            raise

        choice = response.choices[0]
        text = choice.message.content or ""
        usage = getattr(response, "usage", None)
        inference_time = (datetime.now() - start_time).total_seconds()

        self._record_inference(inference_time)
        self.logger.info(
            f"Completion finished in {inference_time:.2f}s "
            f"(finish_reason={choice.finish_reason})"
        )

        return {
            "text": text.strip(),
            "prompt_tokens": getattr(usage, "prompt_tokens", 0) if usage else 0,
            "generated_tokens": getattr(usage, "completion_tokens", 0) if usage else 0,
            "model": self._model_name,
            "backend": self.backend_type.value,
            "inference_time": inference_time,
            "finish_reason": choice.finish_reason,
        }


class AzureOpenAIClient(OpenAIClient):
    """
    Azure OpenAI deployment. Same request shape; the deployment name is
    passed as the model.

    Config options:
        azure_endpoint, azure_api_key, azure_deployment, azure_api_version
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        config = config or {}
        self.azure_endpoint = config.get('azure_endpoint', '')
        self.azure_api_key = config.get('azure_api_key', '')
        self.azure_api_version = config.get('azure_api_version') or '2024-08-01-preview'
        super().__init__(config)
        self._model_name = config.get('azure_deployment') or 'gpt-4o'

    @property
    def backend_type(self) -> BackendType:
        return BackendType.AZURE

    def is_configured(self) -> bool:
        return bool(self.azure_endpoint and self.azure_api_key)

    @property
    def client(self):
        """Lazy load Azure OpenAI client."""
        if self._client is None:
            if not self.is_configured():
                raise ConfigurationError(
                    "Azure OpenAI credentials not configured. "
                    "Set AZURE_OPENAI_ENDPOINT and AZURE_OPENAI_API_KEY."
                )
            self._client = AzureOpenAI(
                azure_endpoint=self.azure_endpoint,
                api_key=self.azure_api_key,
                api_version=self.azure_api_version,
                max_retries=0,
                timeout=self.request_timeout,
            )
            self.logger.info(
                f"Azure OpenAI client initialized: endpoint={self.azure_endpoint}, "
                f"deployment={self._model_name}"
            )
        return self._client
