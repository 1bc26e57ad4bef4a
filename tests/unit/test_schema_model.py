# ============================================================================
# FILE: tests/unit/test_schema_model.py
# ============================================================================
"""
Unit tests for field descriptors, path resolution and JSON Schema export
"""

import pytest

from allergy_scribe.schema import CLINICAL_EXTRACTION
from allergy_scribe.schema.clinical import ALLERGY_HISTORY, ALLERGY_ITEM, ROS
from allergy_scribe.schema.fields import (
    ArrayField,
    EnumField,
    empty_record,
    empty_value,
    has_required_fields,
    one_of,
)
from allergy_scribe.schema.json_schema import to_json_schema
from allergy_scribe.schema.paths import (
    Index,
    Key,
    PathError,
    join_path,
    parse_path,
    resolve_spec,
)


class TestDescriptors:

    def test_enum_default_must_be_member(self):
        with pytest.raises(ValueError):
            one_of("a", "b", default="c")

    def test_empty_values(self):
        assert empty_value(ArrayField()) == []
        assert empty_value(one_of("low", "high", default="low", nullable=False)) == "low"
        assert empty_value(ALLERGY_HISTORY) is None
        assert empty_value(ROS) == {"positives": [], "negatives": [], "notReviewed": []}

    def test_empty_record(self):
        history = empty_record(ALLERGY_HISTORY)

        assert history == {
            "food": [],
            "drug": [],
            "environmental": [],
            "stingingInsects": [],
            "latexOther": [],
        }

    def test_has_required_fields(self):
        assert has_required_fields(ALLERGY_ITEM)
        assert not has_required_fields(ALLERGY_HISTORY)

    def test_root_has_no_identifier_fields(self):
        for name in ("patientName", "name", "dob", "dateOfBirth", "mrn"):
            assert name not in CLINICAL_EXTRACTION.fields


class TestPaths:

    def test_parse_path(self):
        assert parse_path("allergyHistory.food.0.severity") == [
            Key("allergyHistory"), Key("food"), Index(0), Key("severity"),
        ]

    @pytest.mark.parametrize("path", ["", "a..b", "a.", ".a"])
    def test_parse_rejects_empty_segments(self, path):
        with pytest.raises(PathError):
            parse_path(path)

    @pytest.mark.parametrize("segment", ["²", "٣", "１"])
    def test_non_ascii_digits_are_keys(self, segment):
        assert parse_path(f"pmh.{segment}") == [Key("pmh"), Key(segment)]

        with pytest.raises(PathError):
            resolve_spec(CLINICAL_EXTRACTION, parse_path(f"pmh.{segment}"))

    def test_join_path(self):
        assert join_path(parse_path("hpi.triggers.2")) == "hpi.triggers.2"

    def test_resolve_spec(self):
        spec, _ = resolve_spec(CLINICAL_EXTRACTION, parse_path("allergyHistory.food.0.severity"))

        assert isinstance(spec, EnumField)
        assert "life-threatening" in spec.choices

    def test_resolve_unknown_field(self):
        with pytest.raises(PathError) as exc_info:
            resolve_spec(CLINICAL_EXTRACTION, parse_path("hpi.dob"))

        assert "'dob' is not a field of HPI" in str(exc_info.value)

    def test_resolve_index_on_record(self):
        with pytest.raises(PathError):
            resolve_spec(CLINICAL_EXTRACTION, parse_path("hpi.0"))

    def test_resolve_key_on_array(self):
        with pytest.raises(PathError):
            resolve_spec(CLINICAL_EXTRACTION, parse_path("pmh.first"))


class TestJsonSchema:

    @pytest.fixture(scope="class")
    def schema(self):
        return to_json_schema(CLINICAL_EXTRACTION)

    def test_root_is_strict_object(self, schema):
        assert schema["type"] == "object"
        assert schema["additionalProperties"] is False
        assert schema["required"] == list(CLINICAL_EXTRACTION.fields)

    def test_nullable_record_is_union(self, schema):
        hpi = schema["properties"]["hpi"]

        assert hpi["anyOf"][1] == {"type": "null"}
        obj = hpi["anyOf"][0]
        assert obj["additionalProperties"] is False
        assert set(obj["required"]) == set(obj["properties"])

    def test_arrays_are_never_nullable(self, schema):
        assert schema["properties"]["pmh"] == {"type": "array", "items": {"type": "string"}}

    def test_enums(self, schema):
        severity = schema["properties"]["allergyHistory"]["anyOf"][0]["properties"]["food"]["items"][
            "properties"]["severity"]
        asthma = schema["properties"]["atopicComorbidities"]["anyOf"][0]["properties"]["asthma"]

        assert severity["enum"][-1] is None
        assert "severe" in severity["enum"]
        # Defaulted enums accept null and normalize during validation
        assert None in asthma["enum"]

    def test_array_items_are_never_nullable(self, schema):
        """Null array items fail validation, so the model must not be offered them"""
        root = schema["properties"]
        food = root["allergyHistory"]["anyOf"][0]["properties"]["food"]["items"]

        for items in (food, root["medications"]["items"], root["planCandidates"]["items"]):
            assert "anyOf" not in items
            assert items["type"] == "object"
            assert items["additionalProperties"] is False

    def test_export_leaves_descriptors_untouched(self):
        from allergy_scribe.schema.clinical import ALLERGY_ITEM

        to_json_schema(CLINICAL_EXTRACTION)

        assert ALLERGY_ITEM.nullable is True

    def test_descriptions_carried(self, schema):
        assert "description" in schema["properties"]["patientAlias"]
