# ============================================================================
# src/allergy_scribe/validators/__init__.py
# ============================================================================
"""
Validators Package

Structural validation of extraction candidates against the Schema Model.
"""

from .schema_validator import (
    SchemaValidator,
    ValidationResult,
    FieldError,
    format_path,
    validate_extraction,
)

__all__ = [
    'SchemaValidator',
    'ValidationResult',
    'FieldError',
    'format_path',
    'validate_extraction',
]
