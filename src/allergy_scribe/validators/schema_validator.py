# ============================================================================
# src/allergy_scribe/validators/schema_validator.py
# ============================================================================
"""
Schema Validator

The only gate between "whatever the model said" and a record the rest of
the system can rely on. Walks the schema descriptor tree alongside the raw
candidate and:

1. Normalizes absence: missing scalars/records become null, missing arrays
   become [], missing defaulted enums take their conservative default
2. Rejects wrong primitive types and out-of-set enum values with a
   field-level error naming the dotted path
3. Drops keys the schema does not know (identifiers such as a patient name
   never make it into the record)

Errors are aggregated, never fail-fast. The returned record is always
schema-conformant: offending values are replaced by null/default, array
items that cannot be repaired are omitted.

Pure and deterministic.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from ..schema.clinical import CLINICAL_EXTRACTION
from ..schema.fields import (
    ArrayField,
    BooleanField,
    EnumField,
    FieldSpec,
    RecordField,
    StringField,
)
from ..schema.paths import parse_path, resolve_spec
from ..utils.exceptions import SchemaValidationError


logger = logging.getLogger(__name__)

# Marker for "no valid value could be produced"
_INVALID = object()
_MISSING = object()


def format_path(segments: Tuple[Any, ...]) -> str:
    """Dotted path; array indices appear as plain segments (food.0.severity)."""
    return ".".join(str(s) for s in segments) or "<root>"


@dataclass
class FieldError:
    """A single field that could not be normalized."""
    path: str
    message: str
    expected: str
    value: Any = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "path": self.path,
            "message": self.message,
            "expected": self.expected,
            "value": self.value,
        }


@dataclass
class ValidationResult:
    """
    Outcome of validating one candidate.

    `record` is schema-conformant even when `errors` is non-empty; callers
    decide whether to re-extract or accept the partially corrected record.
    """
    record: Dict[str, Any]
    errors: List[FieldError] = field(default_factory=list)
    dropped_paths: List[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def error_paths(self) -> List[str]:
        return [e.path for e in self.errors]


class _Run:
    """Per-call accumulator; keeps the validator itself stateless."""

    def __init__(self):
        self.errors: List[FieldError] = []
        self.dropped: List[str] = []

    def fail(self, path, spec: FieldSpec, message: str, value: Any = None):
        self.errors.append(FieldError(
            path=format_path(path),
            message=message,
            expected=spec.describe(),
            value=value,
        ))


class SchemaValidator:
    """
    Recursive-descent validator over a schema descriptor tree.

    Usage:
        validator = SchemaValidator()
        result = validator.validate(raw_candidate)
        if result.is_valid:
            record = result.record
    """

    def __init__(self, schema: RecordField = CLINICAL_EXTRACTION):
        self.schema = schema

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def validate(self, raw: Any) -> ValidationResult:
        """
        Validate and normalize a raw candidate against the root schema.

        Args:
            raw: Untrusted JSON-like value (usually the model's output)

        Returns:
            ValidationResult with a conformant record and any field errors
        """
        run = _Run()
        record = self._check(self.schema, raw, (), run)
        if record is _INVALID or record is None:
            # Root has no required fields, so this only happens for a
            # non-object candidate; fall back to the empty record
            record = self._check(self.schema, {}, (), _Run())

        if run.errors:
            logger.info(
                f"Validation found {len(run.errors)} error(s): "
                f"{', '.join(e.path for e in run.errors[:10])}"
            )
        if run.dropped:
            logger.debug(f"Dropped unknown keys: {run.dropped}")

        return ValidationResult(record=record, errors=run.errors, dropped_paths=run.dropped)

    def validate_value(
        self,
        spec: FieldSpec,
        value: Any,
        path: Tuple[Any, ...] = (),
        reject_null: bool = False,
        reject_unknown: bool = False
    ) -> Tuple[Any, List[FieldError]]:
        """
        Validate a value against one sub-schema (used for path-scoped edits).

        Args:
            spec: Descriptor at the target path
            value: Candidate value
            path: Path segments used to name errors
            reject_null: Treat an explicit null as an error unless the
                sub-schema is nullable or has a default
            reject_unknown: Report keys the sub-schema does not define as
                errors instead of dropping them

        Returns:
            (normalized value, errors)
        """
        run = _Run()
        if value is None and reject_null and not _accepts_null(spec):
            run.fail(path, spec, "null is not allowed here", None)
            return None, run.errors

        normalized = self._check(spec, value, tuple(path), run)
        if reject_unknown:
            for dropped in run.dropped:
                run.errors.append(FieldError(
                    path=dropped,
                    message="unknown field",
                    expected="a field defined by the schema",
                ))
        if normalized is _INVALID:
            normalized = None
        return normalized, run.errors

    def validate_at(self, path: str, value: Any) -> Tuple[Any, List[FieldError]]:
        """
        Validate a value against the sub-schema addressed by a dotted path.

        Explicit null is rejected unless the target is nullable or defaulted,
        and keys unknown to the sub-schema are errors.

        Raises:
            PathError: path does not exist in the schema
        """
        accessors = parse_path(path)
        spec, _ = resolve_spec(self.schema, accessors)
        segments = tuple(str(a) for a in accessors)
        return self.validate_value(spec, value, segments, reject_null=True, reject_unknown=True)

    # ------------------------------------------------------------------
    # Recursive descent
    # ------------------------------------------------------------------
    def _check(self, spec: FieldSpec, value: Any, path: Tuple[Any, ...], run: _Run) -> Any:
        if isinstance(spec, RecordField):
            return self._check_record(spec, value, path, run)
        if isinstance(spec, ArrayField):
            return self._check_array(spec, value, path, run)
        if isinstance(spec, EnumField):
            return self._check_enum(spec, value, path, run)
        if isinstance(spec, BooleanField):
            return self._check_boolean(spec, value, path, run)
        if isinstance(spec, StringField):
            return self._check_string(spec, value, path, run)
        raise TypeError(f"Unsupported field descriptor: {type(spec).__name__}")

    def _check_string(self, spec: StringField, value, path, run) -> Any:
        if value is None:
            if spec.nullable:
                return None
            run.fail(path, spec, "required value is null")
            return _INVALID

        if isinstance(value, str):
            return value

        run.fail(path, spec, f"expected string, got {type(value).__name__}", value)
        return None if spec.nullable else _INVALID

    def _check_boolean(self, spec: BooleanField, value, path, run) -> Any:
        if value is None:
            if spec.default is not None:
                return spec.default
            if spec.nullable:
                return None
            run.fail(path, spec, "required value is null")
            return _INVALID

        if isinstance(value, bool):
            return value

        run.fail(path, spec, f"expected boolean, got {type(value).__name__}", value)
        if spec.default is not None:
            return spec.default
        return None if spec.nullable else _INVALID

    def _check_enum(self, spec: EnumField, value, path, run) -> Any:
        if value is None:
            if spec.default is not None:
                return spec.default
            if spec.nullable:
                return None
            run.fail(path, spec, "required value is null")
            return _INVALID

        if isinstance(value, str) and value in spec.choices:
            return value

        if isinstance(value, str):
            run.fail(path, spec, f"'{value}' is not an allowed value", value)
        else:
            run.fail(path, spec, f"expected string, got {type(value).__name__}", value)

        # Replacement keeps the record conformant; the error is still reported
        if spec.default is not None:
            return spec.default
        return None if spec.nullable else _INVALID

    def _check_array(self, spec: ArrayField, value, path, run) -> Any:
        if value is None:
            return []

        if not isinstance(value, list):
            run.fail(path, spec, f"expected array, got {type(value).__name__}", value)
            return []

        items = []
        for index, item in enumerate(value):
            item_path = path + (index,)
            if item is None:
                run.fail(item_path, spec.item, "array items cannot be null")
                continue
            checked = self._check(spec.item, item, item_path, run)
            if checked is _INVALID or checked is None:
                continue
            items.append(checked)
        return items

    def _check_record(self, spec: RecordField, value, path, run) -> Any:
        if value is None:
            if spec.nullable:
                return None
            value = {}

        if not isinstance(value, dict):
            run.fail(path, spec, f"expected object, got {type(value).__name__}", value)
            if spec.nullable:
                return None
            value = {}

        result: Dict[str, Any] = {}
        invalid = False

        for name, child in spec.fields.items():
            child_path = path + (name,)
            raw_child = value.get(name, _MISSING)

            if raw_child is _MISSING:
                if _is_required(child):
                    run.fail(child_path, child, "required field is missing")
                    invalid = True
                    continue
                raw_child = None

            checked = self._check(child, raw_child, child_path, run)
            if checked is _INVALID:
                if child.nullable:
                    checked = None
                else:
                    invalid = True
                    continue
            result[name] = checked

        for key in value:
            if key not in spec.fields:
                run.dropped.append(format_path(path + (key,)))

        if invalid:
            return _INVALID
        return result


def _is_required(spec: FieldSpec) -> bool:
    """A field whose absence cannot be normalized away."""
    if isinstance(spec, StringField):
        return not spec.nullable
    if isinstance(spec, (EnumField, BooleanField)):
        return not spec.nullable and spec.default is None
    return False


def _accepts_null(spec: FieldSpec) -> bool:
    if spec.nullable:
        return True
    return isinstance(spec, (EnumField, BooleanField)) and spec.default is not None


def validate_extraction(raw: Any, validator: Optional[SchemaValidator] = None) -> Dict[str, Any]:
    """
    Convenience function: validate and return the record, or raise.

    Raises:
        SchemaValidationError: carrying every field error and the
            partially corrected record
    """
    validator = validator or SchemaValidator()
    result = validator.validate(raw)
    if not result.is_valid:
        raise SchemaValidationError(result.errors, partial_record=result.record)
    return result.record
