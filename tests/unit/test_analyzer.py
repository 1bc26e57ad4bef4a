# ============================================================================
# FILE: tests/unit/test_analyzer.py
# ============================================================================
"""
Unit tests for the completeness & safety analyzer
"""

import pytest

from allergy_scribe.config.clinical_config import ClinicalSettings
from allergy_scribe.core.analyzer import AnalysisStatus, SafetyAnalyzer, analyze
from allergy_scribe.validators import validate_extraction


def _record(**fields):
    return validate_extraction(fields)


def test_minimal_valid_extraction_is_complete(minimal_candidate):
    metadata = analyze(validate_extraction(minimal_candidate))

    assert metadata.status == AnalysisStatus.COMPLETE
    assert metadata.missing_fields == []
    assert metadata.red_flags == []


def test_missing_mandatory_fields_reported_individually():
    metadata = analyze(_record(patientAlias="   ", chiefComplaint=None))

    assert metadata.status == AnalysisStatus.INCOMPLETE
    assert metadata.missing_fields == ["Patient alias is missing", "Chief complaint is missing"]


def test_single_missing_field_forces_incomplete():
    metadata = analyze(_record(patientAlias="Patient C"))

    assert metadata.status == AnalysisStatus.INCOMPLETE
    assert metadata.missing_fields == ["Chief complaint is missing"]


def test_severe_allergy_flag():
    record = _record(
        patientAlias="Patient D",
        chiefComplaint="Bee sting reaction",
        allergyHistory={"stingingInsects": [{"allergen": "honeybee", "severity": "severe"}]},
    )

    metadata = analyze(record)

    assert metadata.red_flags == ["Severe stinging insect allergy: honeybee (severe)"]
    # Red flags never change status on their own
    assert metadata.status == AnalysisStatus.COMPLETE


def test_red_flags_scan_all_categories():
    record = _record(allergyHistory={
        "food": [{"allergen": "peanut", "severity": "life-threatening"}],
        "drug": [{"allergen": "penicillin", "severity": "mild"}],
        "latexOther": [{"allergen": "latex", "severity": "severe"}],
    })

    metadata = analyze(record)

    assert len(metadata.red_flags) == 2
    assert "peanut" in metadata.red_flags[0]
    assert "latex" in metadata.red_flags[1]


def test_red_flag_matching_is_case_insensitive():
    analyzer = SafetyAnalyzer()
    record = {"allergyHistory": {"food": [{"allergen": "sesame", "severity": " Anaphylaxis "}]}}

    assert len(analyzer.analyze(record).red_flags) == 1


def test_red_flag_monotonicity():
    """Adding a severe entry never removes existing flags"""
    base = _record(allergyHistory={"food": [{"allergen": "peanut", "severity": "severe"}]})
    before = analyze(base).red_flags

    extended = _record(allergyHistory={
        "food": [{"allergen": "peanut", "severity": "severe"}],
        "drug": [{"allergen": "sulfa", "severity": "severe"}],
    })
    after = analyze(extended).red_flags

    assert set(before) <= set(after)
    assert len(after) == len(before) + 1


def test_red_flag_terms_are_configurable():
    settings = ClinicalSettings(RED_FLAG_SEVERITIES=["severe", "critical"])
    analyzer = SafetyAnalyzer(settings)
    record = {"allergyHistory": {"food": [
        {"allergen": "fish", "severity": "critical"},
        {"allergen": "egg", "severity": "life-threatening"},
    ]}}

    flags = analyzer.analyze(record).red_flags

    assert flags == ["Severe food allergy: fish (critical)"]


def test_advisories_do_not_affect_status(minimal_candidate):
    metadata = analyze(validate_extraction(minimal_candidate))

    assert metadata.status == AnalysisStatus.COMPLETE
    assert "No current medications listed" in metadata.advisories
    assert any("onset" in a for a in metadata.advisories)
    assert any("allergy history" in a for a in metadata.advisories)


def test_clinical_advisories(validated_record):
    record = dict(validated_record)
    record["hpi"] = dict(record["hpi"], severity="Severe", triggers=["needed epinephrine after shrimp"])

    advisories = analyze(record).advisories

    assert "Severe allergic reaction reported in HPI" in advisories
    assert "History of severe allergic reactions requiring medical intervention" in advisories
    assert "Abnormal physical exam findings suggestive of allergic disease" in advisories
    assert "1 item(s) need clinician confirmation" in advisories
    assert "No current medications listed" not in advisories


def test_metadata_to_dict(validated_record):
    data = analyze(validated_record).to_dict()

    assert set(data) == {"missingFields", "redFlags", "status", "advisories"}
    assert data["status"] == "complete"
    assert data["redFlags"] == ["Severe food allergy: peanut (severe)"]


@pytest.mark.parametrize("severity", ["mild", "moderate", "unknown", None])
def test_non_severe_entries_not_flagged(severity):
    record = _record(allergyHistory={"drug": [{"allergen": "aspirin", "severity": severity}]})

    assert analyze(record).red_flags == []
