# ============================================================================
# src/allergy_scribe/core/__init__.py
# ============================================================================
"""
Core pipeline stages and visit lifecycle.
"""

from .sources import Source, SourceMetadata, SourceType, SOURCE_SEPARATOR, aggregate
from .extraction_engine import ExtractionEngine
from .analyzer import AnalysisMetadata, AnalysisStatus, SafetyAnalyzer, analyze
from .editor import ReconciliationEditor, apply_edit
from .visit_store import (
    InMemoryVisitRepository,
    SqliteVisitRepository,
    StoredVisit,
    VisitRepository,
    VisitStatus,
    create_repository,
)
from .visit_service import VisitLocks, VisitService
from .pipeline import ExtractionOutcome, ExtractionPipeline

__all__ = [
    'Source',
    'SourceMetadata',
    'SourceType',
    'SOURCE_SEPARATOR',
    'aggregate',
    'ExtractionEngine',
    'AnalysisMetadata',
    'AnalysisStatus',
    'SafetyAnalyzer',
    'analyze',
    'ReconciliationEditor',
    'apply_edit',
    'InMemoryVisitRepository',
    'SqliteVisitRepository',
    'StoredVisit',
    'VisitRepository',
    'VisitStatus',
    'create_repository',
    'VisitLocks',
    'VisitService',
    'ExtractionOutcome',
    'ExtractionPipeline',
]
