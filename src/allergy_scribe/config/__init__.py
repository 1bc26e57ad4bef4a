# ============================================================================
# src/allergy_scribe/config/__init__.py
# ============================================================================
"""
Convenient imports for all settings
"""

from .base_config import base_settings
from .clinical_config import clinical_settings
from .logging_config import logging_settings
