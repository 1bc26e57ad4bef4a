# ============================================================================
# src/allergy_scribe/utils/__init__.py
# ============================================================================
"""
Utility modules for the allergy scribe core.
"""

from .exceptions import (
    AllergyScribeError,
    ConfigurationError,
    ExtractionFailure,
    EmptyCorpusError,
    SchemaValidationError,
    EditError,
    VisitNotFoundError,
    VisitExistsError,
)

from .logging import (
    setup_logging,
    JsonFormatter,
    log_performance,
    create_audit_logger,
)

__all__ = [
    # Exceptions
    'AllergyScribeError',
    'ConfigurationError',
    'ExtractionFailure',
    'EmptyCorpusError',
    'SchemaValidationError',
    'EditError',
    'VisitNotFoundError',
    'VisitExistsError',
    # Logging
    'setup_logging',
    'JsonFormatter',
    'log_performance',
    'create_audit_logger',
]
