# ============================================================================
# src/allergy_scribe/core/editor.py
# ============================================================================
"""
Reconciliation Editor

Applies one clinician edit to a validated record:

1. Parse the dotted path into typed accessors and resolve it against the
   Schema Model. Nothing is written if the path does not exist.
2. Validate the value against the sub-schema at that path, with the same
   rules as the Validator (explicit null rejected where not nullable).
3. Build a new record by copying only the containers along the path.
   The caller's record is never mutated; untouched siblings are shared.

Stateless and reentrant. Serializing concurrent edits to one visit is the
caller's job (see VisitService).
"""

import logging
from typing import Any, Dict, List, Optional

from ..schema.clinical import CLINICAL_EXTRACTION
from ..schema.fields import ArrayField, FieldSpec, RecordField, empty_record, has_required_fields
from ..schema.paths import Accessor, Index, Key, PathError, join_path, parse_path, resolve_spec
from ..utils.exceptions import EditError
from ..validators.schema_validator import SchemaValidator


logger = logging.getLogger(__name__)


class ReconciliationEditor:
    """
    Path-scoped, copy-on-write edits.

    Usage:
        editor = ReconciliationEditor()
        updated = editor.apply_edit(record, "allergyHistory.food.0.severity", "severe")
    """

    def __init__(self, schema: RecordField = CLINICAL_EXTRACTION, validator: Optional[SchemaValidator] = None):
        self.schema = schema
        self.validator = validator or SchemaValidator(schema)

    def apply_edit(self, record: Dict[str, Any], path: str, value: Any) -> Dict[str, Any]:
        """
        Return a new record with `value` assigned at `path`.

        Raises:
            EditError: path does not exist, index out of range, or value
                does not satisfy the sub-schema; `record` is untouched
        """
        try:
            accessors = parse_path(path)
            spec, _ = resolve_spec(self.schema, accessors)
        except PathError as e:
            raise EditError(path, str(e))

        if value is None and isinstance(accessors[-1], Index):
            raise EditError(path, "array items cannot be null", expected=spec.describe())

        segments = tuple(str(a) for a in accessors)
        normalized, errors = self.validator.validate_value(
            spec, value, segments, reject_null=True, reject_unknown=True
        )
        if errors:
            raise EditError(
                path,
                f"value does not match {spec.describe()}",
                expected=spec.describe(),
                errors=errors,
            )

        updated = self._assign(record, self.schema, accessors, normalized, path, [])
        logger.debug(f"Applied edit at {path}")
        return updated

    def _assign(
        self,
        node: Any,
        spec: FieldSpec,
        accessors: List[Accessor],
        value: Any,
        path: str,
        walked: List[Accessor]
    ) -> Any:
        if not accessors:
            return value

        accessor, rest = accessors[0], accessors[1:]
        where = join_path(walked) or "<root>"

        if isinstance(accessor, Key):
            if node is None:
                node = self._materialize(spec, path, where)
            if not isinstance(node, dict):
                raise EditError(path, f"'{where}' is not an object in this record")
            child_spec = spec.fields[accessor.name]
            copy = dict(node)
            copy[accessor.name] = self._assign(
                node.get(accessor.name), child_spec, rest, value, path, walked + [accessor]
            )
            return copy

        if node is None:
            node = []
        if not isinstance(node, list):
            raise EditError(path, f"'{where}' is not an array in this record")
        if accessor.position >= len(node):
            raise EditError(
                path,
                f"index {accessor.position} is out of range for '{where}' (length {len(node)})",
            )
        item_spec = spec.item if isinstance(spec, ArrayField) else spec
        copy = list(node)
        copy[accessor.position] = self._assign(
            node[accessor.position], item_spec, rest, value, path, walked + [accessor]
        )
        return copy

    @staticmethod
    def _materialize(spec: FieldSpec, path: str, where: str) -> Dict[str, Any]:
        """Empty-but-complete record for a null parent on the edit path."""
        if isinstance(spec, RecordField) and not has_required_fields(spec):
            return empty_record(spec)
        raise EditError(
            path,
            f"'{where}' is null; set the whole object first",
            expected=spec.describe(),
        )


_default_editor: Optional[ReconciliationEditor] = None


def apply_edit(record: Dict[str, Any], path: str, value: Any) -> Dict[str, Any]:
    """Apply an edit against the clinical extraction schema."""
    global _default_editor
    if _default_editor is None:
        _default_editor = ReconciliationEditor()
    return _default_editor.apply_edit(record, path, value)
