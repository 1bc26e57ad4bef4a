# ============================================================================
# src/allergy_scribe/core/extraction_engine.py
# ============================================================================
"""
Extraction Engine

Turns an aggregated source corpus into a candidate clinical record by
delegating to a text-to-structure backend. Supplies:

1. A fixed system instruction with the extraction rules
2. The JSON Schema generated from the Schema Model, so the backend is
   biased toward well-formed output

The result is untrusted: no semantic checks happen here, that is the
Validator's job. The engine never retries and never invents a fallback
record; every failure surfaces as ExtractionFailure.
"""

import asyncio
import logging
from typing import Any, Dict, Optional

from .config import get_config
from .prompts import EXTRACTION_SYSTEM_PROMPT, SCHEMA_NAME, build_extraction_prompt
from ..llm.base import BaseLLMClient
from ..schema.clinical import CLINICAL_EXTRACTION
from ..schema.fields import RecordField
from ..schema.json_schema import to_json_schema
from ..utils.exceptions import ConfigurationError, ExtractionFailure


class ExtractionEngine:
    """
    Single-shot LLM extraction.

    Usage:
        engine = ExtractionEngine()
        candidate = await engine.extract(corpus)
    """

    def __init__(self, config: Dict[str, Any] = None, client: Optional[BaseLLMClient] = None):
        # Merge env config with passed config (passed config takes precedence)
        env_config = get_config()
        self.config = {**env_config, **(config or {})}
        self.logger = logging.getLogger(__name__)

        self._llm_client = client

        self.max_tokens = int(self.config.get('max_tokens', 8000))
        self.temperature = float(self.config.get('temperature', 0.1))
        self.timeout = float(self.config.get('extraction_timeout', 120.0))

        # JSON Schema per descriptor tree; the root schema never changes
        self._schema_cache: Dict[int, Dict[str, Any]] = {}

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
        return False

    async def close(self):
        """Close the backend session, if any."""
        if self._llm_client is not None:
            await self._llm_client.close()

    @property
    def llm_client(self) -> BaseLLMClient:
        if self._llm_client is None:
            from ..llm.client import create_client
            self._llm_client = create_client(self.config)
        return self._llm_client

    def json_schema_for(self, schema: RecordField) -> Dict[str, Any]:
        key = id(schema)
        if key not in self._schema_cache:
            self._schema_cache[key] = to_json_schema(schema)
        return self._schema_cache[key]

    async def extract(self, corpus: str, schema: RecordField = CLINICAL_EXTRACTION) -> Dict[str, Any]:
        """
        Produce a candidate record from the corpus.

        Args:
            corpus: Aggregated source text
            schema: Root descriptor the candidate should match

        Returns:
            Parsed JSON object (unvalidated)

        Raises:
            ExtractionFailure: backend error, timeout, empty or non-JSON output
            ConfigurationError: backend credentials missing
        """
        client = self.llm_client
        json_schema = self.json_schema_for(schema)

        self.logger.info(
            f"Extracting from corpus ({len(corpus)} chars) via "
            f"{client.backend_type.value}/{client.model_name}"
        )

        try:
            response = await asyncio.wait_for(
                client.generate(
                    build_extraction_prompt(corpus),
                    system=EXTRACTION_SYSTEM_PROMPT,
                    max_tokens=self.max_tokens,
                    temperature=self.temperature,
                    json_schema=json_schema,
                    schema_name=SCHEMA_NAME,
                ),
                timeout=self.timeout,
            )
        except ConfigurationError:
            raise
        except asyncio.TimeoutError as e:
            self.logger.error(f"Extraction timed out after {self.timeout}s")
            raise ExtractionFailure(f"Extraction timed out after {self.timeout}s", cause=e)
        except Exception as e:
            self.logger.error(f"Extraction backend failed: {e}")
            raise ExtractionFailure(f"Extraction backend failed: {e}", cause=e)

        text = (response or {}).get("text") or ""
        if not text.strip():
            raise ExtractionFailure("Extraction backend returned empty output")

        candidate = client.extract_json(text)
        if candidate is None:
            raise ExtractionFailure("Extraction output is not a JSON object")

        self.logger.info(f"Extraction returned {len(candidate)} top-level keys")
        return candidate
