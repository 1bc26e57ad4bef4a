# ============================================================================
# src/allergy_scribe/utils/exceptions.py
# ============================================================================
"""
Custom exceptions for the allergy scribe core.

Callers distinguish three situations by exception type:
- ExtractionFailure: ask the model again (retryable)
- SchemaValidationError / EditError: the data or the edit request is bad
- ConfigurationError: infrastructure is not reachable or not configured
"""

from typing import Any, List, Optional


class AllergyScribeError(Exception):
    """Base exception for all allergy scribe errors."""
    pass


class ConfigurationError(AllergyScribeError):
    """A required credential or endpoint is missing."""
    pass


class ExtractionFailure(AllergyScribeError):
    """
    The text-to-structure backend errored, timed out, or returned
    output that could not be parsed as a JSON object.
    """

    retryable = True

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause


class EmptyCorpusError(AllergyScribeError):
    """No sources were supplied for extraction."""
    pass


class SchemaValidationError(AllergyScribeError):
    """One or more fields of a candidate record violate the schema."""

    def __init__(self, errors: List[Any], partial_record: Optional[dict] = None):
        paths = ", ".join(e.path for e in errors[:5])
        more = f" (+{len(errors) - 5} more)" if len(errors) > 5 else ""
        super().__init__(f"{len(errors)} field(s) failed validation: {paths}{more}")
        self.errors = errors
        self.partial_record = partial_record


class EditError(AllergyScribeError):
    """An edit addressed a non-existent path or supplied an invalid value."""

    def __init__(
        self,
        path: str,
        message: str,
        expected: Optional[str] = None,
        errors: Optional[List[Any]] = None
    ):
        super().__init__(f"Invalid edit at '{path}': {message}")
        self.path = path
        self.reason = message
        self.expected = expected
        self.errors = errors or []

    def to_dict(self) -> dict:
        return {
            "path": self.path,
            "error": self.reason,
            "expected": self.expected,
            "fieldErrors": [e.to_dict() for e in self.errors],
        }


class VisitNotFoundError(AllergyScribeError):
    """No visit stored under the requested id."""

    def __init__(self, visit_id: str):
        super().__init__(f"Visit not found: {visit_id}")
        self.visit_id = visit_id


class VisitExistsError(AllergyScribeError):
    """A visit with this id already exists."""

    def __init__(self, visit_id: str):
        super().__init__(f"Visit ID already exists: {visit_id}")
        self.visit_id = visit_id
