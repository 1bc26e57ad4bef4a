# ============================================================================
# src/allergy_scribe/__init__.py
# ============================================================================
"""
Allergy Scribe core: turns visit sources into a validated, reviewable
allergist extraction record.
"""

__version__ = "0.1.0"
