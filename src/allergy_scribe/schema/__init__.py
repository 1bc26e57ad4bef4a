# ============================================================================
# src/allergy_scribe/schema/__init__.py
# ============================================================================
"""
Schema Model for clinical extraction records.
"""

from .fields import (
    FieldKind,
    FieldSpec,
    StringField,
    BooleanField,
    EnumField,
    RecordField,
    ArrayField,
    empty_record,
    empty_value,
    has_required_fields,
)
from .clinical import (
    CLINICAL_EXTRACTION,
    ALLERGY_CATEGORIES,
    CERTAINTY_DEFAULT,
    CONFIDENCE_DEFAULT,
    PRIORITY_DEFAULT,
)
from .json_schema import to_json_schema
from .paths import Index, Key, PathError, join_path, parse_path, resolve_spec

__all__ = [
    'FieldKind',
    'FieldSpec',
    'StringField',
    'BooleanField',
    'EnumField',
    'RecordField',
    'ArrayField',
    'empty_record',
    'empty_value',
    'has_required_fields',
    'CLINICAL_EXTRACTION',
    'ALLERGY_CATEGORIES',
    'CERTAINTY_DEFAULT',
    'CONFIDENCE_DEFAULT',
    'PRIORITY_DEFAULT',
    'to_json_schema',
    'Index',
    'Key',
    'PathError',
    'join_path',
    'parse_path',
    'resolve_spec',
]
