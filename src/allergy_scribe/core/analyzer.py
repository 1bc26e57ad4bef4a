# ============================================================================
# src/allergy_scribe/core/analyzer.py
# ============================================================================
"""
Completeness & Safety Analyzer

Pure function of a validated record. Re-run after every edit so the review
screen never shows stale status.

Three separate outputs:
- missingFields: mandatory fields that are blank (drive `status`)
- redFlags: allergy entries whose severity is in the red-flag set, scanned
  over the union of all five allergy categories
- advisories: softer review hints (incomplete HPI, abnormal exam findings,
  pending confirmations); never affect status or red flags
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Tuple

from ..config.clinical_config import ClinicalSettings, clinical_settings
from ..schema.clinical import ALLERGY_CATEGORIES


logger = logging.getLogger(__name__)

# (field, human label) checked for blankness
MANDATORY_FIELDS: Tuple[Tuple[str, str], ...] = (
    ("patientAlias", "Patient alias"),
    ("chiefComplaint", "Chief complaint"),
)

_CATEGORY_LABELS = {
    "food": "food",
    "drug": "drug",
    "environmental": "environmental",
    "stingingInsects": "stinging insect",
    "latexOther": "latex/other",
}


class AnalysisStatus(str, Enum):
    COMPLETE = "complete"
    INCOMPLETE = "incomplete"


@dataclass
class AnalysisMetadata:
    missing_fields: List[str] = field(default_factory=list)
    red_flags: List[str] = field(default_factory=list)
    status: AnalysisStatus = AnalysisStatus.COMPLETE
    advisories: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "missingFields": list(self.missing_fields),
            "redFlags": list(self.red_flags),
            "status": self.status.value,
            "advisories": list(self.advisories),
        }


def _blank(value: Any) -> bool:
    return not isinstance(value, str) or not value.strip()


def _mentions(texts: Iterable[Any], keywords: List[str]) -> bool:
    lowered = [k.lower() for k in keywords]
    for text in texts:
        if isinstance(text, str):
            candidate = text.lower()
            if any(k in candidate for k in lowered):
                return True
    return False


def flatten_allergies(record: Dict[str, Any]) -> List[Tuple[str, Dict[str, Any]]]:
    """All allergy entries as (category, entry), in category order."""
    history = record.get("allergyHistory") or {}
    entries = []
    for category in ALLERGY_CATEGORIES:
        for entry in history.get(category) or []:
            if isinstance(entry, dict):
                entries.append((category, entry))
    return entries


class SafetyAnalyzer:
    """
    Completeness and red-flag analysis.

    The red-flag term set comes from ClinicalSettings.RED_FLAG_SEVERITIES;
    matching is case-insensitive on the stripped severity value.
    """

    def __init__(self, settings: Optional[ClinicalSettings] = None):
        self.settings = settings or clinical_settings
        self.red_flag_terms = frozenset(
            term.strip().lower() for term in self.settings.RED_FLAG_SEVERITIES
        )

    def is_red_flag_severity(self, severity: Any) -> bool:
        return isinstance(severity, str) and severity.strip().lower() in self.red_flag_terms

    def analyze(self, record: Dict[str, Any]) -> AnalysisMetadata:
        missing = [
            f"{label} is missing"
            for name, label in MANDATORY_FIELDS
            if _blank(record.get(name))
        ]

        red_flags = []
        for category, entry in flatten_allergies(record):
            severity = entry.get("severity")
            if self.is_red_flag_severity(severity):
                allergen = entry.get("allergen") or "unspecified allergen"
                red_flags.append(
                    f"Severe {_CATEGORY_LABELS[category]} allergy: {allergen} ({severity})"
                )

        status = AnalysisStatus.INCOMPLETE if missing else AnalysisStatus.COMPLETE
        metadata = AnalysisMetadata(
            missing_fields=missing,
            red_flags=red_flags,
            status=status,
            advisories=self._advisories(record),
        )

        logger.debug(
            f"Analysis: status={status.value}, missing={len(missing)}, "
            f"red_flags={len(red_flags)}, advisories={len(metadata.advisories)}"
        )
        return metadata

    def _advisories(self, record: Dict[str, Any]) -> List[str]:
        advisories = []
        hpi = record.get("hpi") or {}

        if _blank(hpi.get("onset")):
            advisories.append("History of present illness is incomplete (onset not documented)")

        if not flatten_allergies(record):
            advisories.append("No allergy history found; may need additional information")

        if not record.get("medications"):
            advisories.append("No current medications listed")

        if self.is_red_flag_severity(hpi.get("severity")):
            advisories.append("Severe allergic reaction reported in HPI")

        if _mentions(hpi.get("triggers") or [], self.settings.SEVERE_REACTION_KEYWORDS):
            advisories.append("History of severe allergic reactions requiring medical intervention")

        if _mentions(record.get("exam") or [], self.settings.ABNORMAL_EXAM_KEYWORDS):
            advisories.append("Abnormal physical exam findings suggestive of allergic disease")

        pending = record.get("needsConfirmation") or []
        if pending:
            advisories.append(f"{len(pending)} item(s) need clinician confirmation")

        return advisories


_default_analyzer: Optional[SafetyAnalyzer] = None


def analyze(record: Dict[str, Any]) -> AnalysisMetadata:
    """Analyze with the default clinical settings."""
    global _default_analyzer
    if _default_analyzer is None:
        _default_analyzer = SafetyAnalyzer()
    return _default_analyzer.analyze(record)
