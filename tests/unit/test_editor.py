# ============================================================================
# FILE: tests/unit/test_editor.py
# ============================================================================
"""
Unit tests for the reconciliation editor
"""

import copy

import pytest

from allergy_scribe.core.analyzer import analyze
from allergy_scribe.core.editor import ReconciliationEditor, apply_edit
from allergy_scribe.utils.exceptions import EditError
from allergy_scribe.validators import validate_extraction


@pytest.fixture
def editor():
    return ReconciliationEditor()


def test_edit_replaces_array(editor, validated_record):
    updated = editor.apply_edit(validated_record, "hpi.triggers", ["birch pollen", "dust mites"])

    assert updated["hpi"]["triggers"] == ["birch pollen", "dust mites"]
    assert updated["hpi"]["onset"] == validated_record["hpi"]["onset"]


def test_edit_isolation(editor, validated_record):
    """Input record is never mutated and untouched subtrees are shared"""
    snapshot = copy.deepcopy(validated_record)

    updated = editor.apply_edit(validated_record, "allergyHistory.food.0.severity", "life-threatening")

    assert validated_record == snapshot
    assert updated is not validated_record
    assert updated["allergyHistory"]["food"][0]["severity"] == "life-threatening"
    assert updated["allergyHistory"] is not validated_record["allergyHistory"]
    assert updated["allergyHistory"]["drug"] is validated_record["allergyHistory"]["drug"]
    assert updated["hpi"] is validated_record["hpi"]


def test_edit_result_is_still_valid(editor, validated_record):
    updated = editor.apply_edit(validated_record, "planCandidates", [{"item": "Spirometry"}])

    assert updated["planCandidates"] == [{
        "item": "Spirometry",
        "rationale": None,
        "cptCode": None,
        "priority": "low",
        "category": None,
    }]
    assert validate_extraction(updated) == updated


def test_edit_to_nonexistent_path(editor, validated_record):
    snapshot = copy.deepcopy(validated_record)

    with pytest.raises(EditError) as exc_info:
        editor.apply_edit(validated_record, "allergyHistory.food.0.invalidKey", "x")

    error = exc_info.value
    assert error.path == "allergyHistory.food.0.invalidKey"
    assert "invalidKey" in error.reason
    assert validated_record == snapshot


def test_edit_rejects_out_of_set_enum(editor, validated_record):
    with pytest.raises(EditError) as exc_info:
        editor.apply_edit(validated_record, "atopicComorbidities.asthma", "maybe")

    error = exc_info.value
    assert error.expected == "one of ['yes', 'no', 'unknown']"
    assert [e.path for e in error.errors] == ["atopicComorbidities.asthma"]


def test_edit_rejects_non_array_for_array_path(editor, validated_record):
    with pytest.raises(EditError) as exc_info:
        editor.apply_edit(validated_record, "hpi.triggers", "pollen")

    assert exc_info.value.expected.startswith("array of")


def test_edit_rejects_null_where_not_nullable(editor, validated_record):
    with pytest.raises(EditError):
        editor.apply_edit(validated_record, "ros", None)

    with pytest.raises(EditError):
        editor.apply_edit(validated_record, "allergyHistory.food.0.allergen", None)


def test_edit_null_defaulted_enum_falls_back(editor, validated_record):
    updated = editor.apply_edit(validated_record, "allergyHistory.food.0.certainty", None)

    assert updated["allergyHistory"]["food"][0]["certainty"] == "unclear"


def test_edit_nullable_scalar_to_null(editor, validated_record):
    updated = editor.apply_edit(validated_record, "chiefComplaint", None)

    assert updated["chiefComplaint"] is None
    assert analyze(updated).status.value == "incomplete"


def test_edit_index_out_of_range(editor, validated_record):
    with pytest.raises(EditError) as exc_info:
        editor.apply_edit(validated_record, "allergyHistory.food.5.severity", "mild")

    assert "out of range" in exc_info.value.reason


def test_edit_descending_into_scalar(editor, validated_record):
    with pytest.raises(EditError):
        editor.apply_edit(validated_record, "chiefComplaint.text", "x")


def test_edit_rejects_null_array_item(editor, validated_record):
    with pytest.raises(EditError):
        editor.apply_edit(validated_record, "pmh.0", None)


def test_edit_whole_array_item(editor, validated_record):
    updated = editor.apply_edit(
        validated_record,
        "allergyHistory.drug.0",
        {"allergen": "cefalexin", "severity": "moderate"},
    )

    drug = updated["allergyHistory"]["drug"][0]
    assert drug["allergen"] == "cefalexin"
    assert drug["certainty"] == "unclear"


def test_edit_rejects_item_missing_required_field(editor, validated_record):
    with pytest.raises(EditError) as exc_info:
        editor.apply_edit(validated_record, "allergyHistory.food", [{"reaction": "hives"}])

    assert [e.path for e in exc_info.value.errors] == ["allergyHistory.food.0.allergen"]


def test_edit_materializes_null_parent(editor, minimal_candidate):
    record = validate_extraction(minimal_candidate)
    assert record["allergyHistory"] is None

    updated = editor.apply_edit(record, "allergyHistory.food", [{"allergen": "peanut", "severity": "severe"}])

    history = updated["allergyHistory"]
    assert history["food"][0]["allergen"] == "peanut"
    assert history["drug"] == []
    assert history["latexOther"] == []
    assert record["allergyHistory"] is None
    assert validate_extraction(updated) == updated


def test_edit_then_analyze_raises_flag(validated_record):
    updated = apply_edit(validated_record, "allergyHistory.drug.0.severity", "severe")

    flags = analyze(updated).red_flags

    assert "Severe drug allergy: amoxicillin (severe)" in flags


@pytest.mark.parametrize("path", ["", "hpi..onset", ".hpi", "pmh.²", "allergyHistory.food.٣.severity"])
def test_edit_malformed_path(editor, validated_record, path):
    with pytest.raises(EditError):
        editor.apply_edit(validated_record, path, "x")


def test_edit_error_to_dict(editor, validated_record):
    with pytest.raises(EditError) as exc_info:
        editor.apply_edit(validated_record, "visitContext.setting", "hospital")

    data = exc_info.value.to_dict()
    assert data["path"] == "visitContext.setting"
    assert data["fieldErrors"][0]["value"] == "hospital"
    assert "clinic" in data["expected"]


def test_edit_rejects_unknown_keys_in_object_value(editor, validated_record):
    """Identifiers smuggled inside an object edit are rejected, not trimmed"""
    with pytest.raises(EditError) as exc_info:
        editor.apply_edit(validated_record, "hpi", {"onset": "Age 5", "patientName": "Jane Doe"})

    assert [e.path for e in exc_info.value.errors] == ["hpi.patientName"]
    assert validated_record["hpi"]["onset"] == "Age 12"


def test_edit_rejects_unknown_keys_in_array_items(editor, validated_record):
    with pytest.raises(EditError) as exc_info:
        editor.apply_edit(
            validated_record,
            "allergyHistory.drug",
            [{"allergen": "sulfa", "mrn": "12345"}],
        )

    assert [e.path for e in exc_info.value.errors] == ["allergyHistory.drug.0.mrn"]
