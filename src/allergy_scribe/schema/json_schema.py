# ============================================================================
# src/allergy_scribe/schema/json_schema.py
# ============================================================================
"""
JSON Schema export

Renders the descriptor tree as a JSON Schema the model backend can use as a
structured-output constraint. Output follows the strict structured-output
rules: every property listed in `required`, no additional properties, and
nullability expressed as a union with null.
"""

from dataclasses import replace
from typing import Any, Dict

from .fields import (
    ArrayField,
    BooleanField,
    EnumField,
    FieldSpec,
    RecordField,
    StringField,
)


def to_json_schema(spec: FieldSpec) -> Dict[str, Any]:
    """Convert a field descriptor (usually the root record) to JSON Schema."""
    if isinstance(spec, StringField):
        node: Dict[str, Any] = {"type": ["string", "null"] if spec.nullable else "string"}

    elif isinstance(spec, BooleanField):
        node = {"type": ["boolean", "null"] if spec.nullable else "boolean"}

    elif isinstance(spec, EnumField):
        choices = list(spec.choices)
        # Defaulted enums accept null from the model; validation applies the default
        if spec.nullable or spec.default is not None:
            node = {"type": ["string", "null"], "enum": choices + [None]}
        else:
            node = {"type": "string", "enum": choices}

    elif isinstance(spec, ArrayField):
        # Null array items are rejected by validation, so items are never nullable
        item = replace(spec.item, nullable=False) if spec.item.nullable else spec.item
        node = {"type": "array", "items": to_json_schema(item)}

    elif isinstance(spec, RecordField):
        obj = {
            "type": "object",
            "properties": {
                name: to_json_schema(child) for name, child in spec.fields.items()
            },
            "required": list(spec.fields),
            "additionalProperties": False,
        }
        node = {"anyOf": [obj, {"type": "null"}]} if spec.nullable else obj

    else:
        raise TypeError(f"Unsupported field descriptor: {type(spec).__name__}")

    if spec.description and "anyOf" not in node:
        node["description"] = spec.description
    return node
