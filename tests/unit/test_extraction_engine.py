# ============================================================================
# FILE: tests/unit/test_extraction_engine.py
# ============================================================================
"""
Unit tests for the extraction engine (backend mocked)
"""

import asyncio

import pytest

from allergy_scribe.core.extraction_engine import ExtractionEngine
from allergy_scribe.core.prompts import EXTRACTION_SYSTEM_PROMPT, SCHEMA_NAME
from allergy_scribe.llm.openai_client import OpenAIClient
from allergy_scribe.utils.exceptions import ConfigurationError, ExtractionFailure


@pytest.mark.asyncio
async def test_extract_returns_parsed_candidate(fake_client, json_text, asthma_candidate):
    client = fake_client(json_text(asthma_candidate))
    engine = ExtractionEngine({"max_tokens": 4000, "temperature": 0.0}, client=client)

    candidate = await engine.extract("=== SOURCE 1 (TEXT) ===\nwheezing")

    assert candidate == asthma_candidate
    call = client.calls[0]
    assert "wheezing" in call["prompt"]
    assert call["system"] == EXTRACTION_SYSTEM_PROMPT
    assert call["max_tokens"] == 4000
    assert call["temperature"] == 0.0
    assert call["schema_name"] == SCHEMA_NAME
    assert call["json_schema"]["additionalProperties"] is False
    assert "needsConfirmation" in call["json_schema"]["required"]


@pytest.mark.asyncio
async def test_extract_does_not_validate(fake_client):
    """Engine output is untrusted: invalid values pass straight through"""
    client = fake_client('{"atopicComorbidities": {"asthma": "maybe"}, "patientName": "Jane"}')
    engine = ExtractionEngine(client=client)

    candidate = await engine.extract("corpus")

    assert candidate["patientName"] == "Jane"


@pytest.mark.asyncio
async def test_extract_repairs_wrapped_json(fake_client):
    client = fake_client('Here is the record: {"chiefComplaint": "hives",} Thanks')
    engine = ExtractionEngine(client=client)

    candidate = await engine.extract("corpus")

    assert candidate == {"chiefComplaint": "hives"}


@pytest.mark.asyncio
@pytest.mark.parametrize("text", ["", "   ", "I cannot help with that.", "[1, 2, 3]", "42"])
async def test_extract_non_object_output_fails(fake_client, text):
    engine = ExtractionEngine(client=fake_client(text))

    with pytest.raises(ExtractionFailure) as exc_info:
        await engine.extract("corpus")

    assert exc_info.value.retryable is True


@pytest.mark.asyncio
async def test_extract_backend_error_is_wrapped(fake_client):
    cause = ConnectionError("Cannot connect to Ollama")
    engine = ExtractionEngine(client=fake_client(error=cause))

    with pytest.raises(ExtractionFailure) as exc_info:
        await engine.extract("corpus")

    assert exc_info.value.cause is cause


@pytest.mark.asyncio
async def test_extract_timeout(fake_client):
    engine = ExtractionEngine({"extraction_timeout": 0.05}, client=fake_client("{}", delay=1.0))

    with pytest.raises(ExtractionFailure) as exc_info:
        await engine.extract("corpus")

    assert "timed out" in str(exc_info.value)
    assert isinstance(exc_info.value.cause, asyncio.TimeoutError)


@pytest.mark.asyncio
async def test_missing_credentials_raise_configuration_error():
    client = OpenAIClient({"openai_api_key": ""})
    engine = ExtractionEngine(client=client)

    with pytest.raises(ConfigurationError):
        await engine.extract("corpus")


def test_json_schema_is_cached():
    engine = ExtractionEngine(client=object())

    from allergy_scribe.schema import CLINICAL_EXTRACTION
    first = engine.json_schema_for(CLINICAL_EXTRACTION)

    assert engine.json_schema_for(CLINICAL_EXTRACTION) is first
