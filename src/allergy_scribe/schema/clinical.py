# ============================================================================
# src/allergy_scribe/schema/clinical.py
# ============================================================================
"""
Clinical Extraction Schema

Canonical shape of one visit's structured allergist extraction. Keys are
camelCase because the record is exchanged verbatim with the model and the
HTTP surface.

The record deliberately has no patient name, DOB or MRN fields; only a
non-identifying `patientAlias`.
"""

from .fields import (
    RecordField,
    flag,
    list_of,
    one_of,
    record,
    text,
)


# ----------------------------------------------------------------------------
# Enumerations
# ----------------------------------------------------------------------------

SEVERITY = ("mild", "moderate", "severe", "life-threatening", "unknown")
TIMING = ("immediate", "delayed", "unknown")
CERTAINTY = ("confirmed", "reported", "suspected", "ruled-out", "unclear")
YES_NO_UNKNOWN = ("yes", "no", "unknown")
CONFIDENCE = ("high", "medium", "low")
PRIORITY = ("urgent", "high", "medium", "low")
VISIT_SETTING = ("self", "clinic", "televisit")
VISIT_TYPE = ("new-patient", "follow-up", "consultation", "procedure", "other")
ALLERGY_TEST_TYPE = ("SPT", "sIgE", "component", "patch", "challenge", "total-IgE", "tryptase", "other")
PLAN_CATEGORY = ("diagnostic", "therapeutic", "education", "referral", "follow-up")

# Conservative defaults: ambiguity never upgrades a claim
CERTAINTY_DEFAULT = "unclear"
CONFIDENCE_DEFAULT = "low"
PRIORITY_DEFAULT = "low"

ALLERGY_CATEGORIES = ("food", "drug", "environmental", "stingingInsects", "latexOther")


def _certainty():
    return one_of(*CERTAINTY, default=CERTAINTY_DEFAULT, nullable=False)


def _confidence():
    return one_of(*CONFIDENCE, default=CONFIDENCE_DEFAULT, nullable=False)


def _strings():
    return list_of(text(required=True))


# ----------------------------------------------------------------------------
# Allergy history
# ----------------------------------------------------------------------------

ALLERGY_ITEM = record(
    "AllergyItem",
    {
        "allergen": text(required=True),
        "reaction": text(),
        "severity": one_of(*SEVERITY),
        "timing": one_of(*TIMING),
        "dateOrAge": text(),
        "treatmentUsed": text(),
        "certainty": _certainty(),
    },
)

ENVIRONMENTAL_ALLERGY = record(
    "EnvironmentalAllergy",
    {
        "allergen": text(required=True),
        "reaction": text(),
        "seasonality": text(),
        "certainty": _certainty(),
    },
)

STINGING_INSECT_ALLERGY = record(
    "StingingInsectAllergy",
    {
        "allergen": text(required=True),
        "reaction": text(),
        "severity": one_of(*SEVERITY),
        "certainty": _certainty(),
    },
)

LATEX_OTHER_ALLERGY = record(
    "LatexOtherAllergy",
    {
        "allergen": text(required=True),
        "reaction": text(),
        "severity": one_of(*SEVERITY),
        "certainty": _certainty(),
    },
)

ALLERGY_HISTORY = record(
    "AllergyHistory",
    {
        "food": list_of(ALLERGY_ITEM),
        "drug": list_of(ALLERGY_ITEM),
        "environmental": list_of(ENVIRONMENTAL_ALLERGY),
        "stingingInsects": list_of(STINGING_INSECT_ALLERGY),
        "latexOther": list_of(LATEX_OTHER_ALLERGY),
    },
)


# ----------------------------------------------------------------------------
# Subjective
# ----------------------------------------------------------------------------

VISIT_CONTEXT = record(
    "VisitContext",
    {
        "date": text(),
        "setting": one_of(*VISIT_SETTING),
        "visitType": one_of(*VISIT_TYPE),
        "referralSource": text(),
    },
)

HPI = record(
    "HPI",
    {
        "onset": text(),
        "location": text(),
        "duration": text(),
        "characterization": text(),
        "alleviatingFactors": _strings(),
        "radiatingTo": text(),
        "timeline": text(),
        "severity": text(),
        "triggers": _strings(),
        "relievers": _strings(),
        "exposures": _strings(),
        "environment": _strings(),
        "foodContext": _strings(),
        "medicationContext": _strings(),
        "associatedSymptoms": _strings(),
    },
)

ATOPIC_COMORBIDITIES = record(
    "AtopicComorbidities",
    {
        name: one_of(*YES_NO_UNKNOWN, default="unknown", nullable=False)
        for name in (
            "asthma",
            "eczema",
            "chronicRhinitis",
            "sinusitis",
            "urticariaAngioedema",
            "foodAllergies",
            "drugAllergies",
            "anaphylaxisHistory",
        )
    },
)

MEDICATION = record(
    "MedicationEntry",
    {
        "name": text(required=True),
        "dose": text(),
        "frequency": text(),
        "route": text(),
        "indication": text(),
        "response": text(),
        "adverseEffects": text(),
        "startDate": text(),
        "prescribedBy": text(),
    },
)

ROS = record(
    "ReviewOfSystems",
    {
        "positives": _strings(),
        "negatives": _strings(),
        "notReviewed": _strings(),
    },
    nullable=False,
)


# ----------------------------------------------------------------------------
# Objective
# ----------------------------------------------------------------------------

VITAL_SIGNS = record(
    "VitalSigns",
    {
        "bp": text(),
        "hr": text(),
        "rr": text(),
        "temp": text(),
        "spo2": text(),
        "weight": text(),
        "height": text(),
        "bmi": text(),
    },
)

ALLERGY_TEST_VALUE = record(
    "AllergyTestValue",
    {
        "allergen": text(required=True),
        "value": text(required=True),
        "unit": text(),
        "interpretation": text(),
    },
)

ALLERGY_TEST = record(
    "AllergyTest",
    {
        "type": one_of(*ALLERGY_TEST_TYPE, default="other", nullable=False),
        "date": text(),
        "keyFindings": text(),
        "allergensPositive": _strings(),
        "allergensNegative": _strings(),
        "values": list_of(ALLERGY_TEST_VALUE),
        "confidence": _confidence(),
    },
)

LAB_FINDING = record(
    "LabFinding",
    {
        "test": text(required=True),
        "value": text(required=True),
        "referenceRange": text(),
        "interpretation": text(),
    },
)

LAB = record(
    "Lab",
    {
        "panel": text(required=True),
        "date": text(),
        "abnormalFindings": list_of(LAB_FINDING),
        "notableNormals": _strings(),
        "confidence": _confidence(),
    },
)

IMAGING_ENTRY = record(
    "ImagingEntry",
    {
        "type": text(required=True),
        "date": text(),
        "finding": text(),
        "impression": text(),
        "confidence": _confidence(),
    },
)

TESTS_AND_LABS = record(
    "TestsAndLabs",
    {
        "allergyTesting": list_of(ALLERGY_TEST),
        "labs": list_of(LAB),
        "imagingOrOther": list_of(IMAGING_ENTRY),
    },
)


# ----------------------------------------------------------------------------
# Assessment & plan
# ----------------------------------------------------------------------------

ASSESSMENT_CANDIDATE = record(
    "AssessmentCandidate",
    {
        "problem": text(required=True),
        "icd10Code": text(),
        "supportingEvidence": _strings(),
        "differentialDiagnosis": _strings(),
        "confidence": _confidence(),
    },
)

PLAN_CANDIDATE = record(
    "PlanCandidate",
    {
        "item": text(required=True),
        "rationale": text(),
        "cptCode": text(),
        "priority": one_of(*PRIORITY, default=PRIORITY_DEFAULT, nullable=False),
        "category": one_of(*PLAN_CATEGORY),
    },
)

CPT_CODE = record(
    "CptCode",
    {
        "code": text(required=True),
        "description": text(required=True),
        "rationale": text(),
        "modifier": text(),
        "confidence": _confidence(),
    },
)

ICD10_CODE = record(
    "Icd10Code",
    {
        "code": text(required=True),
        "description": text(required=True),
        "isPrimary": flag(default=False),
        "supportingEvidence": _strings(),
        "confidence": _confidence(),
    },
)


# ----------------------------------------------------------------------------
# Root
# ----------------------------------------------------------------------------

CLINICAL_EXTRACTION: RecordField = record(
    "ClinicalExtraction",
    {
        "patientAlias": text(description="Non-identifying label; never a real name"),
        "visitContext": VISIT_CONTEXT,
        "chiefComplaint": text(),
        "hpi": HPI,
        "allergyHistory": ALLERGY_HISTORY,
        "atopicComorbidities": ATOPIC_COMORBIDITIES,
        "medications": list_of(MEDICATION),
        "pmh": _strings(),
        "psh": _strings(),
        "fh": _strings(),
        "sh": _strings(),
        "ros": ROS,
        "vitalSigns": VITAL_SIGNS,
        "exam": _strings(),
        "testsAndLabs": TESTS_AND_LABS,
        "assessmentCandidates": list_of(ASSESSMENT_CANDIDATE),
        "clinicalReasoning": text(),
        "planCandidates": list_of(PLAN_CANDIDATE),
        "cptCodes": list_of(CPT_CODE),
        "icd10Codes": list_of(ICD10_CODE),
        "needsConfirmation": list_of(
            text(required=True),
            description="Items the clinician must confirm; always populated when anything is uncertain",
        ),
        "sourceQualityFlags": list_of(
            text(required=True),
            description="Problems with the source material (illegible, low OCR confidence, contradictions)",
        ),
    },
    nullable=False,
)
