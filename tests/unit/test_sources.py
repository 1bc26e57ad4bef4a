# ============================================================================
# FILE: tests/unit/test_sources.py
# ============================================================================
"""
Unit tests for source adapters and corpus aggregation
"""

import pytest

from allergy_scribe.core.sources import (
    SOURCE_SEPARATOR,
    Source,
    SourceMetadata,
    SourceType,
    aggregate,
)


def test_aggregate_format(sample_sources):
    corpus = aggregate(sample_sources)

    blocks = corpus.split(SOURCE_SEPARATOR)
    assert len(blocks) == 2
    assert blocks[0] == (
        "=== SOURCE 1 (AUDIO) ===\n"
        "Patient reports hives within minutes of eating peanut butter."
    )
    assert blocks[1] == (
        "=== SOURCE 2 (DOCUMENT) ===\n"
        "[File: referral.png]\n"
        "[OCR Confidence: 91%]\n"
        "Referral: r/o peanut allergy"
    )


def test_aggregate_preserves_order():
    sources = [Source.from_paste(f"note {i}") for i in range(5)]

    corpus = aggregate(sources)

    positions = [corpus.index(f"note {i}") for i in range(5)]
    assert positions == sorted(positions)
    assert "=== SOURCE 5 (PASTE) ===" in corpus


def test_aggregate_is_pure(sample_sources):
    assert aggregate(sample_sources) == aggregate(sample_sources)


def test_aggregate_empty_list():
    assert aggregate([]) == ""


@pytest.mark.parametrize("confidence,expected", [
    (0.0, 0),
    (0.456, 46),
    (1.0, 100),
    (87, 87),
    (None, None),
])
def test_confidence_percent(confidence, expected):
    assert SourceMetadata(confidence=confidence).confidence_percent() == expected


def test_from_transcription_keeps_segments():
    source = Source.from_transcription(
        {"text": "hello", "segments": [{"start": 0, "end": 1, "text": "hello"}]},
        timestamp="2024-03-02T10:00:00",
    )

    assert source.type == SourceType.AUDIO
    assert source.metadata.segments[0]["end"] == 1
    assert "[Timestamp: 2024-03-02T10:00:00]" in source.render(1)


def test_from_document_text():
    source = Source.from_document_text("Lab results", filename="labs.pdf")

    assert source.type == SourceType.DOCUMENT
    assert source.metadata.confidence is None
    assert source.render(3) == "=== SOURCE 3 (DOCUMENT) ===\n[File: labs.pdf]\nLab results"


def test_from_dict_wire_form():
    source = Source.from_dict({
        "type": "document",
        "content": "scan text",
        "metadata": {"filename": "scan.jpg", "confidence": 0.5},
    })

    assert source.type == SourceType.DOCUMENT
    assert source.metadata.filename == "scan.jpg"
    assert source.metadata.confidence_percent() == 50


def test_from_dict_rejects_unknown_type():
    with pytest.raises(ValueError):
        Source.from_dict({"type": "fax", "content": "x"})


@pytest.mark.parametrize("confidence", ["high", [0.9], {"value": 0.9}, True, "nan", -0.2])
def test_from_dict_rejects_bad_confidence(confidence):
    with pytest.raises(ValueError):
        Source.from_dict({"type": "document", "content": "x", "metadata": {"confidence": confidence}})


def test_from_dict_accepts_numeric_string_confidence():
    source = Source.from_dict({"type": "document", "content": "x", "metadata": {"confidence": "0.75"}})

    assert source.metadata.confidence == 0.75
    assert "[OCR Confidence: 75%]" in aggregate([source])
