# ============================================================================
# src/allergy_scribe/llm/base.py
# ============================================================================
"""
Base LLM Client Interface

Defines the abstract interface that all text-to-structure backends implement.
Supported backends:
- openai: OpenAI chat completions (structured output via json_schema)
- azure: Azure OpenAI deployment (same API surface as openai)
- ollama: Ollama server (format = JSON schema)
"""

from abc import ABC, abstractmethod
from typing import Dict, Any, Optional
from enum import Enum
import logging
import json

from json_repair import repair_json


class BackendType(Enum):
    """Supported inference backends."""
    OPENAI = "openai"    # OpenAI API
    AZURE = "azure"      # Azure OpenAI deployment
    OLLAMA = "ollama"    # Ollama server


class BaseLLMClient(ABC):
    """
    Abstract base class for text-to-structure clients.

    All backends must implement:
    - generate(): Async text generation, optionally schema-constrained
    - health_check(): Verify backend is available
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        self.config = config or {}
        self.logger = logging.getLogger(self.__class__.__name__)

        self._inference_count = 0
        self._failure_count = 0
        self._total_inference_time = 0.0

    @property
    @abstractmethod
    def backend_type(self) -> BackendType:
        """Return the backend type."""
        pass

    @property
    @abstractmethod
    def model_name(self) -> str:
        """Return the model identifier."""
        pass

    @abstractmethod
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
        Generate response from prompt.

        Args:
            prompt: User message
            system: System instruction
            max_tokens: Maximum tokens to generate
            temperature: Sampling temperature (0.0 = deterministic)
            json_schema: If given, constrain output to this JSON Schema
            schema_name: Name attached to the schema (OpenAI requires one)

        Returns:
            {
                "text": str,              # Generated text
                "prompt_tokens": int,     # Input token count
                "generated_tokens": int,  # Output token count
                "model": str,             # Model identifier
                "backend": str,           # Backend type
                "inference_time": float,  # Seconds
            }
        """
        pass

    @abstractmethod
    async def health_check(self) -> Dict[str, Any]:
        """
        Check if the backend is available and ready.

        Returns:
            {
                "healthy": bool,
                "backend": str,
                "model": str,
                "details": str
            }
        """
        pass

    async def close(self):
        """Release network resources. No-op unless the backend holds a session."""
        pass

    def extract_json(self, response_text: str) -> Optional[Dict]:
        """
        Extract a JSON object from generated text.

        Schema-constrained backends normally return bare JSON, but local
        models sometimes wrap it in prose or emit trailing commas. Uses
        json_repair as a fallback for malformed JSON.

        Returns:
            The parsed object, or None when no JSON object can be recovered
        """
        if not response_text or not response_text.strip():
            self.logger.warning("Empty response text, no JSON to extract")
            return None

        # Try 1: Direct parse of entire response
        try:
            parsed = json.loads(response_text.strip())
            return parsed if isinstance(parsed, dict) else None
        except json.JSONDecodeError:
            pass

        # Try 2: Extract the outermost object by brace matching
        start_idx = response_text.find('{')
        if start_idx == -1:
            self.logger.warning("No JSON object found in response")
            return None

        depth = 0
        end_idx = len(response_text) - 1
        for i, char in enumerate(response_text[start_idx:], start=start_idx):
            if char == '{':
                depth += 1
            elif char == '}':
                depth -= 1
                if depth == 0:
                    end_idx = i
                    break

        json_str = response_text[start_idx:end_idx + 1]
        try:
            parsed = json.loads(json_str)
            if isinstance(parsed, dict):
                return parsed
        except json.JSONDecodeError:
            pass

        # Try 3: json_repair on the extracted block
        try:
            repaired = repair_json(json_str, return_objects=True)
            if isinstance(repaired, dict) and repaired:
                self.logger.debug("json_repair fixed extracted JSON block")
                return repaired
        except (ValueError, TypeError) as e:
            self.logger.debug(f"json_repair failed on extracted block: {e}")

        self.logger.warning(f"Could not parse JSON from response ({len(response_text)} chars)")
        return None

    def _record_inference(self, inference_time: float):
        self._inference_count += 1
        self._total_inference_time += inference_time

    def _record_failure(self):
        self._failure_count += 1

    def get_statistics(self) -> Dict[str, Any]:
        """Get inference statistics."""
        avg_time = (
            self._total_inference_time / self._inference_count
            if self._inference_count > 0
            else 0.0
        )

        return {
            "backend": self.backend_type.value,
            "model": self.model_name,
            "inference_count": self._inference_count,
            "failure_count": self._failure_count,
            "total_inference_time": self._total_inference_time,
            "average_inference_time": avg_time,
        }
