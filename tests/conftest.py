# ============================================================================
# FILE: tests/conftest.py
# ============================================================================
"""
Pytest configuration and shared fixtures for testing.
"""

import json
import logging

import pytest

from allergy_scribe.core.sources import Source
from allergy_scribe.core.visit_service import VisitService
from allergy_scribe.core.visit_store import InMemoryVisitRepository
from allergy_scribe.llm.ollama_client import OllamaClient
from allergy_scribe.validators.schema_validator import SchemaValidator


@pytest.fixture
def minimal_candidate():
    """Smallest candidate that yields a complete record"""
    return {
        "patientAlias": "Patient A",
        "chiefComplaint": "Hives after eating peanuts",
    }


@pytest.fixture
def asthma_candidate():
    """Candidate resembling real model output for an allergy consult"""
    return {
        "patientAlias": "Patient B",
        "visitContext": {"date": "2024-03-02", "setting": "clinic", "visitType": "new-patient"},
        "chiefComplaint": "Wheezing and rhinitis every spring",
        "hpi": {
            "onset": "Age 12",
            "severity": "moderate",
            "triggers": ["tree pollen", "cats"],
            "associatedSymptoms": ["sneezing", "itchy eyes"],
        },
        "allergyHistory": {
            "food": [
                {"allergen": "peanut", "reaction": "throat swelling", "severity": "severe",
                 "timing": "immediate", "certainty": "confirmed"},
            ],
            "drug": [
                {"allergen": "amoxicillin", "reaction": "rash", "severity": "mild"},
            ],
            "environmental": [
                {"allergen": "birch pollen", "seasonality": "spring", "certainty": "reported"},
            ],
        },
        "atopicComorbidities": {"asthma": "yes", "eczema": "no"},
        "medications": [
            {"name": "albuterol", "dose": "90 mcg", "frequency": "as needed"},
        ],
        "pmh": ["Asthma"],
        "exam": ["Mild expiratory wheezing bilaterally"],
        "testsAndLabs": {
            "allergyTesting": [
                {"type": "SPT", "allergensPositive": ["birch", "cat"], "confidence": "high"},
            ],
        },
        "assessmentCandidates": [
            {"problem": "Allergic rhinitis", "icd10Code": "J30.1", "supportingEvidence": ["seasonal symptoms"]},
        ],
        "planCandidates": [
            {"item": "Prescribe epinephrine auto-injector", "priority": "urgent", "category": "therapeutic"},
        ],
        "needsConfirmation": ["Confirm date of peanut reaction"],
        "sourceQualityFlags": [],
    }


@pytest.fixture
def validator():
    return SchemaValidator()


@pytest.fixture
def validated_record(validator, asthma_candidate):
    result = validator.validate(asthma_candidate)
    assert result.is_valid, result.errors
    return result.record


@pytest.fixture
def fake_client():
    """
    Build a client whose generate() returns canned text.

    Usage:
        client = fake_client(json.dumps({...}))
    """
    def build(text=None, error=None, delay=None):
        client = OllamaClient({"ollama_host": "http://localhost:11434"})
        client.calls = []

        async def mock_generate(prompt, **kwargs):
            client.calls.append({"prompt": prompt, **kwargs})
            if delay:
                import asyncio
                await asyncio.sleep(delay)
            if error is not None:
                raise error
            return {"text": text, "backend": "ollama", "model": "fake"}

        client.generate = mock_generate
        return client

    return build


@pytest.fixture
def json_text():
    """Serialize a candidate the way a backend would return it"""
    return lambda data: json.dumps(data)


@pytest.fixture
def sample_sources():
    return [
        Source.from_transcription({
            "text": "Patient reports hives within minutes of eating peanut butter.",
            "segments": [{"start": 0.0, "end": 4.2, "text": "Patient reports hives"}],
        }),
        Source.from_ocr({"text": "Referral: r/o peanut allergy", "confidence": 0.91}, filename="referral.png"),
    ]


@pytest.fixture
def audit_logger():
    logger = logging.getLogger("audit.tests")
    logger.propagate = False
    if not logger.handlers:
        logger.addHandler(logging.NullHandler())
    return logger


@pytest.fixture
def visit_service(audit_logger):
    return VisitService(repository=InMemoryVisitRepository(), audit_logger=audit_logger)
