# ============================================================================
# src/allergy_scribe/config/clinical_config.py
# ============================================================================
"""
Clinical Safety Settings
- Red-flag severity terms
- Advisory keyword lists (HPI triggers, exam findings)
"""

from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings


class ClinicalSettings(BaseSettings):
    RED_FLAG_SEVERITIES: List[str] = Field(
        default=["severe", "life-threatening", "anaphylaxis"],
        description=(
            "Allergy severities (case-insensitive) that raise a red flag. "
            "Synonyms such as 'critical' are only flagged if added here."
        )
    )
    SEVERE_REACTION_KEYWORDS: List[str] = Field(
        default=["anaphylaxis", "severe reaction", "hospitalization", "epinephrine"],
        description="HPI trigger phrases suggesting a prior severe reaction"
    )
    ABNORMAL_EXAM_KEYWORDS: List[str] = Field(
        default=["wheezing", "stridor", "hypotension", "tachycardia"],
        description="Exam findings suggestive of active allergic disease"
    )


clinical_settings = ClinicalSettings()
